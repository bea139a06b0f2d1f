"""URL threat scoring engine."""

from url_threat_scoring.domain.url.models import CheckSet, TriState, ValidationResult
from url_threat_scoring.orchestrator.pipeline import PipelinePolicy, validate
from url_threat_scoring.orchestrator.precheck import analyze

__all__ = ["CheckSet", "PipelinePolicy", "TriState", "ValidationResult", "analyze", "validate"]
