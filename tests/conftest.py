from __future__ import annotations

import os
import socket

import httpx
import pytest

from url_threat_scoring.config.settings import ENV_PREFIX

PUBLIC_ADDRESS = "93.184.216.34"


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in list(os.environ):
        if name.startswith(ENV_PREFIX):
            monkeypatch.delenv(name, raising=False)
    monkeypatch.delenv("GOOGLE_SAFE_BROWSING_API_KEY", raising=False)


@pytest.fixture
def public_resolver():
    async def _resolve(host: str) -> list[str]:
        return [PUBLIC_ADDRESS]

    return _resolve


@pytest.fixture
def nxdomain_resolver():
    async def _resolve(host: str) -> list[str]:
        raise socket.gaierror(socket.EAI_NONAME, "Name or service not known")

    return _resolve


@pytest.fixture
def recording_transport():
    """MockTransport answering from a ``(method, url-without-query)`` route table; records every request."""

    def _build(routes: dict[tuple[str, str], httpx.Response | Exception]):
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            key = (request.method, str(request.url).split("?", 1)[0])
            outcome = routes.get(key)
            if outcome is None:
                return httpx.Response(404)
            if isinstance(outcome, Exception):
                raise outcome
            return outcome

        return httpx.MockTransport(handler), seen

    return _build


@pytest.fixture
def rdap_record():
    def _build(event_date: str) -> httpx.Response:
        return httpx.Response(
            200,
            json={
                "objectClassName": "domain",
                "events": [
                    {"eventAction": "last changed", "eventDate": "2024-03-01T00:00:00Z"},
                    {"eventAction": "registration", "eventDate": event_date},
                ],
            },
        )

    return _build
