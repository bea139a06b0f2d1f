"""Config loader from env + yaml."""

from __future__ import annotations

import logging
from pathlib import Path
import os
from typing import Any

import yaml
from pydantic import BaseModel, Field, ValidationError

from url_threat_scoring.core.errors import ConfigError

PACKAGE_ROOT = Path(__file__).resolve().parents[1]
DEFAULT_CONFIG_PATH = PACKAGE_ROOT / "config" / "defaults.yaml"
ENV_PREFIX = "URL_THREAT_SCORING_"


class AppConfig(BaseModel):

    probe_enabled: bool = Field(default=True)
    probe_timeout_s: float = Field(default=5.0)
    probe_max_hops: int = Field(default=5)
    probe_resolve_dns: bool = Field(default=True)
    allow_private_network: bool = Field(default=False)
    user_agent: str = Field(default="UrlThreatScoring-Bot/1.0")
    rdap_enabled: bool = Field(default=True)
    rdap_base_url: str = Field(default="https://rdap.org/domain/")
    rdap_timeout_s: float = Field(default=5.0)
    rdap_min_age_days: int = Field(default=30)
    safe_browsing_api_key: str | None = Field(default=None)
    safe_browsing_endpoint: str = Field(default="https://safebrowsing.googleapis.com/v4/threatMatches:find")
    safe_browsing_timeout_s: float = Field(default=5.0)
    safe_browsing_client_id: str = Field(default="url-threat-scoring")
    safe_browsing_client_version: str = Field(default="1.0")
    safe_browsing_danger_threshold: int = Field(default=25, ge=0, le=100)
    request_timeout_s: float = Field(default=15.0, gt=0)
    log_level: str = Field(default="INFO")
    tables_path: str | None = Field(default=None)
    default_config_path: str = Field(default=str(DEFAULT_CONFIG_PATH))


def load_yaml(path: str | Path) -> dict[str, Any]:
    p = Path(path)
    if not p.exists():
        return {}
    try:
        payload = yaml.safe_load(p.read_text(encoding="utf-8"))
    except yaml.YAMLError as exc:
        raise ConfigError(f"invalid YAML in {p}: {exc}") from exc
    if payload is None:
        return {}
    if not isinstance(payload, dict):
        raise ConfigError(f"config file {p} must contain a mapping at the top level")
    return payload


def _pick_env(name: str, fallback: Any) -> Any:
    value = os.getenv(name)
    return value if value not in (None, "") else fallback


def _parse_int(raw: Any, fallback: int) -> int:
    try:
        value = int(raw)
    except (TypeError, ValueError):
        return fallback
    return value if value > 0 else fallback


def _parse_float(raw: Any, fallback: float) -> float:
    try:
        value = float(raw)
    except (TypeError, ValueError):
        return fallback
    return value if value > 0 else fallback


def _parse_bool(raw: Any, fallback: bool) -> bool:
    if isinstance(raw, bool):
        return raw
    if raw is None:
        return fallback
    value = str(raw).strip().lower()
    if value in {"1", "true", "yes", "on"}:
        return True
    if value in {"0", "false", "no", "off"}:
        return False
    return fallback


def _parse_str(raw: Any, fallback: str) -> str:
    value = str(raw if raw is not None else "").strip()
    return value or fallback


def _parse_optional_str(raw: Any) -> str | None:
    value = str(raw if raw is not None else "").strip()
    return value or None


def _resolve_default_config_path(path: str | Path | None) -> Path:
    if path is not None:
        return Path(path)
    env_default_path = os.getenv(f"{ENV_PREFIX}CONFIG_PATH")
    if env_default_path:
        return Path(env_default_path)
    return DEFAULT_CONFIG_PATH


def load_config(path: str | Path | None = None) -> AppConfig:
    default_path = _resolve_default_config_path(path)
    merged = load_yaml(default_path)

    def _setting(name: str, fallback: Any) -> Any:
        return _pick_env(f"{ENV_PREFIX}{name.upper()}", merged.get(name, fallback))

    payload = {
        "probe_enabled": _parse_bool(_setting("probe_enabled", True), True),
        "probe_timeout_s": _parse_float(_setting("probe_timeout_s", 5.0), 5.0),
        "probe_max_hops": _parse_int(_setting("probe_max_hops", 5), 5),
        "probe_resolve_dns": _parse_bool(_setting("probe_resolve_dns", True), True),
        "allow_private_network": _parse_bool(_setting("allow_private_network", False), False),
        "user_agent": _parse_str(_setting("user_agent", "UrlThreatScoring-Bot/1.0"), "UrlThreatScoring-Bot/1.0"),
        "rdap_enabled": _parse_bool(_setting("rdap_enabled", True), True),
        "rdap_base_url": _parse_str(_setting("rdap_base_url", "https://rdap.org/domain/"), "https://rdap.org/domain/"),
        "rdap_timeout_s": _parse_float(_setting("rdap_timeout_s", 5.0), 5.0),
        "rdap_min_age_days": _parse_int(_setting("rdap_min_age_days", 30), 30),
        # The bare Google variable is what most deployments already export.
        "safe_browsing_api_key": _parse_optional_str(
            _pick_env(
                f"{ENV_PREFIX}SAFE_BROWSING_API_KEY",
                _pick_env("GOOGLE_SAFE_BROWSING_API_KEY", merged.get("safe_browsing_api_key")),
            )
        ),
        "safe_browsing_endpoint": _parse_str(
            _setting("safe_browsing_endpoint", AppConfig.model_fields["safe_browsing_endpoint"].default),
            AppConfig.model_fields["safe_browsing_endpoint"].default,
        ),
        "safe_browsing_timeout_s": _parse_float(_setting("safe_browsing_timeout_s", 5.0), 5.0),
        "safe_browsing_client_id": _parse_str(
            _setting("safe_browsing_client_id", "url-threat-scoring"), "url-threat-scoring"
        ),
        "safe_browsing_client_version": _parse_str(_setting("safe_browsing_client_version", "1.0"), "1.0"),
        "safe_browsing_danger_threshold": _parse_int(_setting("safe_browsing_danger_threshold", 25), 25),
        "request_timeout_s": _parse_float(_setting("request_timeout_s", 15.0), 15.0),
        "log_level": _parse_str(_setting("log_level", "INFO"), "INFO").upper(),
        "tables_path": _parse_optional_str(_setting("tables_path", None)),
        "default_config_path": str(default_path),
    }
    try:
        return AppConfig.model_validate(payload)
    except ValidationError as exc:
        raise ConfigError(f"invalid configuration: {exc}") from exc


def configure_logging(config: AppConfig) -> None:
    level = logging.getLevelName(config.log_level.upper())
    logging.basicConfig(
        level=level if isinstance(level, int) else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
