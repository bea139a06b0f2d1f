"""Custom exceptions for url_threat_scoring."""


class UrlThreatScoringError(Exception):
    """Base exception for application-level errors."""


class ConfigError(UrlThreatScoringError):
    """Raised when configuration or static tables cannot be loaded or validated."""


class ThreatListError(UrlThreatScoringError):
    """Raised when the threat-list service was attempted but did not answer cleanly."""
