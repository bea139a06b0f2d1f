"""SSRF-guarded reachability probe with manual redirect following."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
import logging
import socket
from typing import Awaitable, Callable
from urllib.parse import urljoin, urlsplit

import httpx

from url_threat_scoring.core.security import check_host_literal, is_private_or_local_ip, parse_ip_literal
from url_threat_scoring.domain.url.models import TriState

logger = logging.getLogger(__name__)

Resolver = Callable[[str], Awaitable[list[str]]]

REDIRECT_STATUSES = frozenset({301, 302, 303, 307, 308})

_DEFINITIVE_GAI_ERRORS = frozenset(
    code for code in (socket.EAI_NONAME, getattr(socket, "EAI_NODATA", None)) if code is not None
)
_NXDOMAIN_HINTS = (
    "name or service not known",
    "nodename nor servname provided",
    "no address associated with hostname",
    "no such host",
)


@dataclass(frozen=True)
class ProbePolicy:
    enabled: bool = True
    timeout_s: float = 5.0
    max_hops: int = 5
    resolve_dns: bool = True
    allow_private_network: bool = False
    user_agent: str = "UrlThreatScoring-Bot/1.0"


@dataclass(frozen=True)
class ProbeResult:
    url: str
    resolves: TriState
    status: str
    final_url: str | None = None
    status_code: int | None = None
    redirect_chain: tuple[str, ...] = ()
    blocked_reason: str | None = None


async def system_resolver(host: str) -> list[str]:
    loop = asyncio.get_running_loop()
    infos = await loop.getaddrinfo(host, None, type=socket.SOCK_STREAM)
    return [str(info[4][0]) for info in infos]


def build_probe_client(policy: ProbePolicy) -> httpx.AsyncClient:
    return httpx.AsyncClient(
        follow_redirects=False,
        timeout=policy.timeout_s,
        headers={"User-Agent": policy.user_agent},
    )


async def check_network_target(url: str, policy: ProbePolicy, resolver: Resolver = system_resolver) -> str | None:
    """Return a block reason for the target of an outbound request, or None when it may be dialled."""

    parsed = urlsplit(url)
    if parsed.scheme not in {"http", "https"}:
        return "unsupported_scheme"
    try:
        host = parsed.hostname or ""
    except ValueError:
        return "missing_host"

    reason = check_host_literal(host, allow_private=policy.allow_private_network)
    if reason is not None:
        return reason
    if not policy.resolve_dns or parse_ip_literal(host) is not None:
        return None

    try:
        addresses = await asyncio.wait_for(resolver(host), timeout=policy.timeout_s)
    except socket.gaierror as exc:
        if exc.errno in _DEFINITIVE_GAI_ERRORS:
            return "dns_name_not_found"
        return "dns_resolution_failed"
    except (asyncio.TimeoutError, OSError):
        return "dns_resolution_failed"
    except ValueError:
        # The stdlib idna codec rejects empty or over-long labels before any lookup.
        return "dns_resolution_failed"
    if not addresses:
        return "dns_name_not_found"
    if not policy.allow_private_network and any(is_private_or_local_ip(addr) for addr in addresses):
        return "private_network_blocked"
    return None


def _is_name_resolution_failure(exc: BaseException) -> bool:
    seen: set[int] = set()
    current: BaseException | None = exc
    while current is not None and id(current) not in seen:
        seen.add(id(current))
        if isinstance(current, socket.gaierror) and current.errno in _DEFINITIVE_GAI_ERRORS:
            return True
        message = str(current).lower()
        if any(hint in message for hint in _NXDOMAIN_HINTS):
            return True
        current = current.__cause__ or current.__context__
    return False


async def _follow_chain(url: str, cfg: ProbePolicy, client: httpx.AsyncClient, resolver: Resolver) -> ProbeResult:
    chain: list[str] = []
    visited = {url}
    current = url
    status_code: int | None = None

    for hop in range(cfg.max_hops):
        reason = await check_network_target(current, cfg, resolver)
        if reason == "dns_name_not_found" and hop == 0:
            return ProbeResult(url=url, resolves=TriState.FALSE, status="nxdomain", blocked_reason=reason)
        if reason is not None:
            logger.debug("probe hop %d for %s blocked: %s", hop, current, reason)
            status = "blocked" if reason not in {"dns_resolution_failed", "dns_name_not_found"} else "network_error"
            # Past the first hop a server has already answered, unless the chain points somewhere private.
            alive = hop > 0 and status == "network_error"
            return ProbeResult(
                url=url,
                resolves=TriState.TRUE if alive else TriState.UNKNOWN,
                status=status,
                status_code=status_code,
                redirect_chain=tuple(chain),
                blocked_reason=reason,
            )

        try:
            response = await client.head(current, timeout=cfg.timeout_s)
        except httpx.TimeoutException:
            return _failed_hop(url, hop, "timeout", status_code, chain)
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            if hop == 0 and _is_name_resolution_failure(exc):
                return ProbeResult(url=url, resolves=TriState.FALSE, status="nxdomain")
            logger.debug("probe hop %d for %s failed: %s", hop, current, exc)
            return _failed_hop(url, hop, "network_error", status_code, chain)

        status_code = response.status_code
        location = response.headers.get("location")
        if status_code not in REDIRECT_STATUSES or not location:
            return ProbeResult(
                url=url,
                resolves=TriState.TRUE,
                status="ok",
                final_url=current if current != url else None,
                status_code=status_code,
                redirect_chain=tuple(chain),
            )

        try:
            next_url = urljoin(current, location.strip())
        except ValueError:
            # The server answered; only its Location header is unusable.
            logger.debug("probe hop %d for %s sent an unusable Location: %r", hop, current, location)
            return ProbeResult(
                url=url,
                resolves=TriState.TRUE,
                status="invalid_redirect",
                status_code=status_code,
                redirect_chain=tuple(chain),
            )
        if next_url in visited:
            logger.debug("probe for %s hit a redirect loop at %s", url, next_url)
            return ProbeResult(
                url=url,
                resolves=TriState.UNKNOWN,
                status="redirect_loop",
                status_code=status_code,
                redirect_chain=tuple(chain),
            )
        visited.add(next_url)
        chain.append(next_url)
        current = next_url

    return ProbeResult(
        url=url,
        resolves=TriState.UNKNOWN,
        status="redirect_limit_exceeded",
        status_code=status_code,
        redirect_chain=tuple(chain),
    )


def _failed_hop(url: str, hop: int, status: str, status_code: int | None, chain: list[str]) -> ProbeResult:
    return ProbeResult(
        url=url,
        resolves=TriState.TRUE if hop > 0 else TriState.UNKNOWN,
        status=status,
        status_code=status_code,
        redirect_chain=tuple(chain),
    )


async def probe(
    url: str,
    policy: ProbePolicy | None = None,
    *,
    client: httpx.AsyncClient | None = None,
    resolver: Resolver | None = None,
) -> ProbeResult:
    """HEAD-probe a URL hop by hop. Never raises; every failure maps to a ProbeResult."""

    cfg = policy or ProbePolicy()
    clean_url = (url or "").strip()
    if not clean_url:
        return ProbeResult(url=clean_url, resolves=TriState.UNKNOWN, status="blocked", blocked_reason="empty_url")
    if not cfg.enabled:
        return ProbeResult(url=clean_url, resolves=TriState.UNKNOWN, status="skipped")

    active_resolver = resolver or system_resolver
    if client is not None:
        return await _follow_chain(clean_url, cfg, client, active_resolver)
    async with build_probe_client(cfg) as owned:
        return await _follow_chain(clean_url, cfg, owned, active_resolver)
