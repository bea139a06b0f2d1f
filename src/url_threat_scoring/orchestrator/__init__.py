"""Local analysis, merge steps and the async validation pipeline."""

from url_threat_scoring.orchestrator.pipeline import PipelinePolicy, validate
from url_threat_scoring.orchestrator.precheck import analyze

__all__ = ["PipelinePolicy", "analyze", "validate"]
