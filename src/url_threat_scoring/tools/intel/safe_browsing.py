"""Google Safe Browsing v4 threat-list lookups."""

from __future__ import annotations

from dataclasses import dataclass
import logging
from typing import Any, Sequence

import httpx

from url_threat_scoring.core.errors import ThreatListError

logger = logging.getLogger(__name__)

SAFE_BROWSING_ENDPOINT = "https://safebrowsing.googleapis.com/v4/threatMatches:find"
THREAT_TYPES = (
    "MALWARE",
    "SOCIAL_ENGINEERING",
    "UNWANTED_SOFTWARE",
    "POTENTIALLY_HARMFUL_APPLICATION",
)


@dataclass(frozen=True)
class ThreatListPolicy:
    api_key: str | None = None
    endpoint: str = SAFE_BROWSING_ENDPOINT
    timeout_s: float = 5.0
    client_id: str = "url-threat-scoring"
    client_version: str = "1.0"
    # Results already at or below this score are dangerous enough without a lookup.
    danger_score_threshold: int = 25

    @property
    def enabled(self) -> bool:
        return bool((self.api_key or "").strip())


def build_lookup_payload(urls: Sequence[str], policy: ThreatListPolicy) -> dict[str, Any]:
    entries = list(dict.fromkeys(url for url in urls if url))
    return {
        "client": {"clientId": policy.client_id, "clientVersion": policy.client_version},
        "threatInfo": {
            "threatTypes": list(THREAT_TYPES),
            "platformTypes": ["ANY_PLATFORM"],
            "threatEntryTypes": ["URL"],
            "threatEntries": [{"url": url} for url in entries],
        },
    }


async def _post(urls: Sequence[str], cfg: ThreatListPolicy, client: httpx.AsyncClient) -> bool:
    try:
        response = await client.post(
            cfg.endpoint,
            params={"key": cfg.api_key},
            json=build_lookup_payload(urls, cfg),
            timeout=cfg.timeout_s,
        )
    except httpx.HTTPError as exc:
        raise ThreatListError(f"threat-list request failed: {exc.__class__.__name__}") from exc

    if not response.is_success:
        raise ThreatListError(f"threat-list returned HTTP {response.status_code}")
    try:
        payload = response.json()
    except ValueError as exc:
        raise ThreatListError("threat-list returned a non-JSON body") from exc
    if not isinstance(payload, dict):
        raise ThreatListError("threat-list returned an unexpected body")

    matches = payload.get("matches")
    if matches is not None and not isinstance(matches, list):
        raise ThreatListError("threat-list returned malformed matches")
    return bool(matches)


async def check_threat_list(
    urls: Sequence[str] | str,
    policy: ThreatListPolicy,
    *,
    client: httpx.AsyncClient | None = None,
) -> bool:
    """Return True when any of the URLs is on a threat list.

    Raises ThreatListError when the lookup cannot be completed, so callers can
    tell "clean" apart from "not checked".
    """

    if not policy.enabled:
        raise ThreatListError("threat-list lookup requested without an API key")
    batch = [urls] if isinstance(urls, str) else list(urls)
    if not batch:
        return False

    if client is not None:
        return await _post(batch, policy, client)
    async with httpx.AsyncClient() as owned:
        return await _post(batch, policy, owned)
