"""Domain registration age via RDAP."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
import logging
from typing import Any
from urllib.parse import quote, urljoin

import httpx

from url_threat_scoring.domain.url.models import TriState
from url_threat_scoring.tools.url_fetch.service import (
    REDIRECT_STATUSES,
    ProbePolicy,
    Resolver,
    check_network_target,
    system_resolver,
)

logger = logging.getLogger(__name__)

RDAP_BOOTSTRAP_URL = "https://rdap.org/domain/"


@dataclass(frozen=True)
class RdapPolicy:
    enabled: bool = True
    base_url: str = RDAP_BOOTSTRAP_URL
    timeout_s: float = 5.0
    min_age_days: int = 30
    max_redirects: int = 3
    allow_private_network: bool = False
    user_agent: str = "UrlThreatScoring-Bot/1.0"


@dataclass(frozen=True)
class DomainAgeResult:
    domain: str
    is_old: TriState
    status: str = "ok"
    registered_at: datetime | None = None
    failed: bool = False


def _parse_event_date(raw: Any) -> datetime | None:
    if not isinstance(raw, str) or not raw.strip():
        return None
    text = raw.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        value = datetime.fromisoformat(text)
    except ValueError:
        return None
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value


def registration_date(payload: Any) -> datetime | None:
    """Pull the ``registration`` event date out of an RDAP domain object."""

    if not isinstance(payload, dict):
        return None
    events = payload.get("events")
    if not isinstance(events, list):
        return None
    for event in events:
        if not isinstance(event, dict):
            continue
        if str(event.get("eventAction", "")).strip().lower() != "registration":
            continue
        return _parse_event_date(event.get("eventDate"))
    return None


def _unknown(domain: str, status: str, *, failed: bool = False) -> DomainAgeResult:
    return DomainAgeResult(domain=domain, is_old=TriState.UNKNOWN, status=status, failed=failed)


async def _get_record(
    domain: str,
    cfg: RdapPolicy,
    client: httpx.AsyncClient,
    resolver: Resolver | None,
) -> httpx.Response | DomainAgeResult:
    """GET the RDAP record, following the bootstrap redirect hop by hop.

    The configured base URL is dialled as-is; every redirect target it hands
    out goes through the same network guard as the probe.
    """

    url = f"{cfg.base_url.rstrip('/')}/{quote(domain, safe='')}"
    guard = ProbePolicy(timeout_s=cfg.timeout_s, allow_private_network=cfg.allow_private_network)
    headers = {"Accept": "application/rdap+json, application/json", "User-Agent": cfg.user_agent}

    for hop in range(cfg.max_redirects + 1):
        if hop > 0:
            reason = await check_network_target(url, guard, resolver or system_resolver)
            if reason is not None:
                logger.warning("rdap redirect for %s to %s blocked: %s", domain, url, reason)
                return _unknown(domain, "blocked", failed=True)
        try:
            response = await client.get(url, headers=headers, timeout=cfg.timeout_s, follow_redirects=False)
        except httpx.TimeoutException:
            logger.warning("rdap lookup for %s timed out", domain)
            return _unknown(domain, "timeout", failed=True)
        except httpx.HTTPError as exc:
            logger.warning("rdap lookup for %s failed: %s", domain, exc)
            return _unknown(domain, "network_error", failed=True)

        location = response.headers.get("location")
        if response.status_code not in REDIRECT_STATUSES or not location:
            return response
        try:
            url = urljoin(str(response.url), location.strip())
        except ValueError:
            logger.warning("rdap lookup for %s sent an unusable Location: %r", domain, location)
            return _unknown(domain, "http_error", failed=True)

    logger.warning("rdap lookup for %s exceeded %d redirects", domain, cfg.max_redirects)
    return _unknown(domain, "redirect_limit_exceeded", failed=True)


async def _fetch(
    domain: str,
    cfg: RdapPolicy,
    client: httpx.AsyncClient,
    now: datetime,
    resolver: Resolver | None,
) -> DomainAgeResult:
    response = await _get_record(domain, cfg, client, resolver)
    if isinstance(response, DomainAgeResult):
        return response

    if response.status_code == 404:
        logger.info("rdap has no record for %s", domain)
        return _unknown(domain, "not_found")
    if not response.is_success:
        logger.warning("rdap lookup for %s returned HTTP %s", domain, response.status_code)
        return _unknown(domain, "http_error", failed=True)

    try:
        payload = response.json()
    except ValueError:
        return _unknown(domain, "malformed")

    registered_at = registration_date(payload)
    if registered_at is None or registered_at > now:
        return _unknown(domain, "malformed")

    is_old = now - registered_at >= timedelta(days=cfg.min_age_days)
    return DomainAgeResult(domain=domain, is_old=TriState.from_bool(is_old), registered_at=registered_at)


async def lookup_domain_age(
    domain: str,
    policy: RdapPolicy | None = None,
    *,
    client: httpx.AsyncClient | None = None,
    now: datetime | None = None,
    resolver: Resolver | None = None,
) -> DomainAgeResult:
    """Classify a registrable domain as old enough or recently registered. Never raises."""

    cfg = policy or RdapPolicy()
    clean_domain = (domain or "").strip().lower().rstrip(".")
    if not clean_domain or "." not in clean_domain:
        return DomainAgeResult(domain=clean_domain, is_old=TriState.UNKNOWN, status="skipped")
    if not cfg.enabled:
        return DomainAgeResult(domain=clean_domain, is_old=TriState.UNKNOWN, status="skipped")

    current = now or datetime.now(timezone.utc)
    if client is not None:
        return await _fetch(clean_domain, cfg, client, current, resolver)
    async with httpx.AsyncClient() as owned:
        return await _fetch(clean_domain, cfg, owned, current, resolver)
