import pytest
from fastapi.testclient import TestClient

from url_threat_scoring.api.app import create_app
from url_threat_scoring.config.settings import AppConfig
from url_threat_scoring.core.errors import ConfigError

OFFLINE = AppConfig(probe_enabled=False, rdap_enabled=False)


@pytest.fixture
def client():
    return TestClient(create_app(OFFLINE))


def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok"}
    assert response.headers["x-content-type-options"] == "nosniff"


def test_validate_url_returns_camel_case_result(client):
    response = client.post("/validate-url", json={"url": "  paypal-secure-login.com  "})
    assert response.status_code == 200
    assert response.headers["cache-control"] == "no-store"
    assert response.headers["x-content-type-options"] == "nosniff"
    payload = response.json()
    assert payload["url"] == "https://paypal-secure-login.com/"
    assert payload["safe"] is False
    assert payload["checks"]["noBrandSquat"] is False
    assert payload["checks"]["resolves"] is None
    assert payload["source"] == ["local"]
    assert "Domain appears to impersonate a well-known brand" in payload["flags"]


def test_unparseable_url_is_still_a_200(client):
    response = client.post("/validate-url", json={"url": "not a url"})
    assert response.status_code == 200
    assert response.json()["score"] == 0


def test_undecodable_body_is_400(client):
    response = client.post("/validate-url", content=b"{not json", headers={"Content-Type": "application/json"})
    assert response.status_code == 400
    assert response.headers["x-content-type-options"] == "nosniff"


@pytest.mark.parametrize(
    "body",
    [{}, {"url": ""}, {"url": "   "}, {"url": 42}, {"url": "a" * 2049}, ["https://example.com"]],
)
def test_schema_violations_are_422(client, body):
    response = client.post("/validate-url", json=body)
    assert response.status_code == 422
    assert "error" in response.json()


def test_analysis_failure_is_503(client, monkeypatch):
    async def broken(*args, **kwargs):
        raise RuntimeError("tables unavailable")

    monkeypatch.setattr("url_threat_scoring.api.app.validate", broken)
    response = client.post("/validate-url", json={"url": "example.com"})
    assert response.status_code == 503


def test_bad_tables_fail_at_startup(tmp_path):
    path = tmp_path / "tables.yaml"
    path.write_text("brands: [oops]\n", encoding="utf-8")
    with pytest.raises(ConfigError):
        create_app(AppConfig(tables_path=str(path)))
