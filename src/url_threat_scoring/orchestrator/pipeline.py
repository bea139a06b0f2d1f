"""Full validation pipeline: local checks, concurrent probes, threat-list lookup."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
import logging

import httpx

from url_threat_scoring.config.settings import AppConfig
from url_threat_scoring.core.errors import ThreatListError
from url_threat_scoring.domain.url.extract import registered_domain, url_hostname
from url_threat_scoring.domain.url.models import TriState, ValidationResult
from url_threat_scoring.domain.url.tables import DEFAULT_TABLES, ThreatTables
from url_threat_scoring.orchestrator.merge import (
    apply_head_result,
    apply_rdap_result,
    apply_redirect_result,
    apply_safe_browsing_error,
    apply_safe_browsing_result,
    apply_stage_failure,
)
from url_threat_scoring.orchestrator.precheck import analyze, is_ip_host
from url_threat_scoring.tools.intel.rdap import DomainAgeResult, RdapPolicy, lookup_domain_age
from url_threat_scoring.tools.intel.safe_browsing import ThreatListPolicy, check_threat_list
from url_threat_scoring.tools.url_fetch.service import ProbePolicy, ProbeResult, Resolver, probe

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PipelinePolicy:
    probe: ProbePolicy = field(default_factory=ProbePolicy)
    rdap: RdapPolicy = field(default_factory=RdapPolicy)
    threat_list: ThreatListPolicy = field(default_factory=ThreatListPolicy)
    request_timeout_s: float = 15.0
    user_agent: str = "UrlThreatScoring-Bot/1.0"

    @classmethod
    def from_config(cls, config: AppConfig) -> PipelinePolicy:
        return cls(
            probe=ProbePolicy(
                enabled=config.probe_enabled,
                timeout_s=config.probe_timeout_s,
                max_hops=config.probe_max_hops,
                resolve_dns=config.probe_resolve_dns,
                allow_private_network=config.allow_private_network,
                user_agent=config.user_agent,
            ),
            rdap=RdapPolicy(
                enabled=config.rdap_enabled,
                base_url=config.rdap_base_url,
                timeout_s=config.rdap_timeout_s,
                min_age_days=config.rdap_min_age_days,
                allow_private_network=config.allow_private_network,
                user_agent=config.user_agent,
            ),
            threat_list=ThreatListPolicy(
                api_key=config.safe_browsing_api_key,
                endpoint=config.safe_browsing_endpoint,
                timeout_s=config.safe_browsing_timeout_s,
                client_id=config.safe_browsing_client_id,
                client_version=config.safe_browsing_client_version,
                danger_score_threshold=config.safe_browsing_danger_threshold,
            ),
            request_timeout_s=config.request_timeout_s,
            user_agent=config.user_agent,
        )


LOCAL_ONLY_POLICY = PipelinePolicy(
    probe=ProbePolicy(enabled=False),
    rdap=RdapPolicy(enabled=False),
    threat_list=ThreatListPolicy(api_key=None),
)


@dataclass
class _Progress:
    """Latest merged result, handed back as-is when the deadline fires."""

    result: ValidationResult


async def _domain_age(
    hostname: str,
    domain: str,
    policy: RdapPolicy,
    client: httpx.AsyncClient,
    resolver: Resolver | None,
) -> DomainAgeResult:
    if is_ip_host(hostname):
        return DomainAgeResult(domain=domain, is_old=TriState.UNKNOWN, status="skipped")
    try:
        return await lookup_domain_age(domain, policy, client=client, resolver=resolver)
    except Exception:
        logger.exception("rdap lookup for %s failed unexpectedly", domain)
        return DomainAgeResult(domain=domain, is_old=TriState.UNKNOWN, status="error", failed=True)


async def _head(
    url: str,
    policy: ProbePolicy,
    client: httpx.AsyncClient,
    resolver: Resolver | None,
) -> ProbeResult:
    # Unexpected failures stay inside this task; the sibling and the threat list still run.
    try:
        return await probe(url, policy, client=client, resolver=resolver)
    except Exception:
        logger.exception("probe for %s failed unexpectedly", url)
        return ProbeResult(url=url, resolves=TriState.UNKNOWN, status="error")


async def _run_stages(
    progress: _Progress,
    policy: PipelinePolicy,
    client: httpx.AsyncClient,
    tables: ThreatTables,
    resolver: Resolver | None,
) -> None:
    original = progress.result
    hostname = url_hostname(original.url)
    domain = registered_domain(hostname, tables.compound_suffixes)

    async with asyncio.TaskGroup() as group:
        probe_task = group.create_task(_head(original.url, policy.probe, client, resolver))
        age_task = group.create_task(_domain_age(hostname, domain, policy.rdap, client, resolver))
    head = probe_task.result()
    age = age_task.result()
    logger.debug("probe for %s: %s, rdap for %s: %s", original.url, head.status, domain, age.status)

    merged = apply_head_result(original, head.resolves)
    merged = apply_rdap_result(merged, age.is_old, failed=age.failed)
    if head.status == "error":
        merged = apply_stage_failure(merged, "head")
    progress.result = merged

    lookup_urls = [original.url]
    if head.final_url:
        final_host = url_hostname(head.final_url)
        if final_host and registered_domain(final_host, tables.compound_suffixes) != domain:
            destination = analyze(head.final_url, tables)
            progress.result = apply_redirect_result(progress.result, destination, head.final_url)
            lookup_urls.append(head.final_url)

    threat_list = policy.threat_list
    if not threat_list.enabled:
        logger.info("threat-list stage skipped: no API key configured")
        return
    if progress.result.score <= threat_list.danger_score_threshold:
        logger.info(
            "threat-list stage skipped for %s: score %s already at or below %s",
            original.url,
            progress.result.score,
            threat_list.danger_score_threshold,
        )
        return

    try:
        flagged = await check_threat_list(lookup_urls, threat_list, client=client)
    except ThreatListError as exc:
        logger.warning("threat-list lookup for %s failed: %s", original.url, exc)
        progress.result = apply_safe_browsing_error(progress.result)
        return
    progress.result = apply_safe_browsing_result(progress.result, flagged)


def build_http_client(policy: PipelinePolicy) -> httpx.AsyncClient:
    return httpx.AsyncClient(
        follow_redirects=False,
        timeout=policy.probe.timeout_s,
        headers={"User-Agent": policy.user_agent},
    )


async def validate(
    candidate: str,
    *,
    config: AppConfig | PipelinePolicy | None = None,
    client: httpx.AsyncClient | None = None,
    tables: ThreatTables = DEFAULT_TABLES,
    resolver: Resolver | None = None,
) -> ValidationResult:
    """Score a candidate URL with every available signal.

    Never raises: unreachable services degrade to unknown signals and an
    expired deadline returns the most recently merged result.
    """

    if isinstance(config, AppConfig):
        policy = PipelinePolicy.from_config(config)
    else:
        policy = config or PipelinePolicy()

    progress = _Progress(result=analyze(candidate, tables))
    if not progress.result.checks.parseable:
        return progress.result

    try:
        async with asyncio.timeout(policy.request_timeout_s):
            if client is not None:
                await _run_stages(progress, policy, client, tables, resolver)
            else:
                async with build_http_client(policy) as owned:
                    await _run_stages(progress, policy, owned, tables, resolver)
    except TimeoutError:
        logger.warning(
            "validation of %s hit the %.1fs deadline; returning partial result",
            progress.result.url,
            policy.request_timeout_s,
        )
    except Exception:
        logger.exception("external stages failed for %s; returning partial result", progress.result.url)
        progress.result = apply_stage_failure(progress.result, "pipeline")
    return progress.result
