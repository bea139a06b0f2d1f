from datetime import datetime, timezone
import json

import httpx
import pytest

from url_threat_scoring.core.errors import ThreatListError
from url_threat_scoring.domain.url.models import TriState
from url_threat_scoring.tools.intel.rdap import RdapPolicy, lookup_domain_age, registration_date
from url_threat_scoring.tools.intel.safe_browsing import (
    SAFE_BROWSING_ENDPOINT,
    ThreatListPolicy,
    build_lookup_payload,
    check_threat_list,
)

NOW = datetime(2025, 6, 1, tzinfo=timezone.utc)
RDAP_URL = "https://rdap.org/domain/example.com"


def test_registration_date_reads_the_registration_event():
    payload = {"events": [{"eventAction": "registration", "eventDate": "2001-02-03T04:05:06Z"}]}
    assert registration_date(payload) == datetime(2001, 2, 3, 4, 5, 6, tzinfo=timezone.utc)
    assert registration_date({"events": [{"eventAction": "expiration", "eventDate": "2030-01-01"}]}) is None
    assert registration_date({"events": "nope"}) is None
    assert registration_date([]) is None


@pytest.mark.asyncio
async def test_old_domain_is_classified_old(recording_transport, rdap_record):
    transport, seen = recording_transport({("GET", RDAP_URL): rdap_record("1995-08-14T04:00:00Z")})
    async with httpx.AsyncClient(transport=transport) as client:
        result = await lookup_domain_age("example.com", client=client, now=NOW)
    assert result.is_old is TriState.TRUE
    assert result.failed is False
    assert "rdap+json" in seen[0].headers["accept"]


@pytest.mark.asyncio
async def test_recent_registration_is_classified_new(recording_transport, rdap_record):
    transport, _ = recording_transport({("GET", RDAP_URL): rdap_record("2025-05-20T12:00:00Z")})
    async with httpx.AsyncClient(transport=transport) as client:
        result = await lookup_domain_age("example.com", client=client, now=NOW)
    assert result.is_old is TriState.FALSE


@pytest.mark.asyncio
async def test_bootstrap_redirect_is_followed(recording_transport, rdap_record, public_resolver):
    registry = "https://rdap.verisign.com/com/v1/domain/example.com"
    transport, seen = recording_transport(
        {
            ("GET", RDAP_URL): httpx.Response(302, headers={"Location": registry}),
            ("GET", registry): rdap_record("1995-08-14T04:00:00Z"),
        }
    )
    async with httpx.AsyncClient(transport=transport) as client:
        result = await lookup_domain_age("example.com", client=client, now=NOW, resolver=public_resolver)
    assert result.is_old is TriState.TRUE
    assert [str(request.url) for request in seen] == [RDAP_URL, registry]


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "location",
    ["http://127.0.0.1/domain/example.com", "http://169.254.169.254/latest/meta-data/", "http://intranet/rdap"],
)
async def test_bootstrap_redirect_into_private_network_is_blocked(location, recording_transport, public_resolver):
    transport, seen = recording_transport({("GET", RDAP_URL): httpx.Response(302, headers={"Location": location})})
    async with httpx.AsyncClient(transport=transport) as client:
        result = await lookup_domain_age("example.com", client=client, now=NOW, resolver=public_resolver)
    assert [str(request.url) for request in seen] == [RDAP_URL]
    assert result.status == "blocked"
    assert result.is_old is TriState.UNKNOWN
    assert result.failed is True


@pytest.mark.asyncio
async def test_bootstrap_redirects_are_bounded(public_resolver):
    seen: list[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(str(request.url))
        return httpx.Response(302, headers={"Location": f"https://rdap.example.net/hop{len(seen)}"})

    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
        result = await lookup_domain_age(
            "example.com", RdapPolicy(max_redirects=2), client=client, now=NOW, resolver=public_resolver
        )
    assert result.status == "redirect_limit_exceeded"
    assert result.failed is True
    assert len(seen) == 3


@pytest.mark.asyncio
@pytest.mark.parametrize(
    ("outcome", "failed"),
    [
        (httpx.Response(200, json={"events": []}), False),
        (httpx.Response(200, content=b"<html>"), False),
        (httpx.Response(404), False),
        (httpx.Response(500), True),
        (httpx.ConnectError("refused"), True),
        (httpx.ReadTimeout("slow"), True),
    ],
)
async def test_missing_or_failed_lookups_are_unknown(outcome, failed, recording_transport):
    transport, _ = recording_transport({("GET", RDAP_URL): outcome})
    async with httpx.AsyncClient(transport=transport) as client:
        result = await lookup_domain_age("example.com", client=client, now=NOW)
    assert result.is_old is TriState.UNKNOWN
    assert result.failed is failed


@pytest.mark.asyncio
async def test_rdap_skips_single_label_and_disabled_lookups():
    assert (await lookup_domain_age("localhost")).status == "skipped"
    assert (await lookup_domain_age("example.com", RdapPolicy(enabled=False))).status == "skipped"


def test_lookup_payload_shape():
    payload = build_lookup_payload(["https://a.example/", "https://b.example/", "https://a.example/"], ThreatListPolicy())
    info = payload["threatInfo"]
    assert payload["client"] == {"clientId": "url-threat-scoring", "clientVersion": "1.0"}
    assert info["threatTypes"] == ["MALWARE", "SOCIAL_ENGINEERING", "UNWANTED_SOFTWARE", "POTENTIALLY_HARMFUL_APPLICATION"]
    assert info["platformTypes"] == ["ANY_PLATFORM"]
    assert info["threatEntryTypes"] == ["URL"]
    assert info["threatEntries"] == [{"url": "https://a.example/"}, {"url": "https://b.example/"}]


@pytest.mark.asyncio
async def test_threat_list_match_is_flagged(recording_transport):
    policy = ThreatListPolicy(api_key="test-key")
    transport, seen = recording_transport(
        {("POST", SAFE_BROWSING_ENDPOINT): httpx.Response(200, json={"matches": [{"threatType": "MALWARE"}]})}
    )
    async with httpx.AsyncClient(transport=transport) as client:
        flagged = await check_threat_list(["https://evil.example/"], policy, client=client)
    assert flagged is True
    assert seen[0].url.params["key"] == "test-key"
    body = json.loads(seen[0].content)
    assert body["threatInfo"]["threatEntries"] == [{"url": "https://evil.example/"}]


@pytest.mark.asyncio
async def test_empty_response_means_clean(recording_transport):
    transport, _ = recording_transport({("POST", SAFE_BROWSING_ENDPOINT): httpx.Response(200, json={})})
    async with httpx.AsyncClient(transport=transport) as client:
        assert await check_threat_list("https://example.com/", ThreatListPolicy(api_key="k"), client=client) is False


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "outcome",
    [
        httpx.Response(500),
        httpx.Response(403, json={"error": {"code": 403}}),
        httpx.Response(200, content=b"not json"),
        httpx.Response(200, json={"matches": "yes"}),
        httpx.ConnectError("refused"),
    ],
)
async def test_threat_list_failures_raise(outcome, recording_transport):
    transport, _ = recording_transport({("POST", SAFE_BROWSING_ENDPOINT): outcome})
    async with httpx.AsyncClient(transport=transport) as client:
        with pytest.raises(ThreatListError):
            await check_threat_list(["https://example.com/"], ThreatListPolicy(api_key="k"), client=client)


@pytest.mark.asyncio
async def test_threat_list_requires_a_key():
    with pytest.raises(ThreatListError):
        await check_threat_list(["https://example.com/"], ThreatListPolicy())
