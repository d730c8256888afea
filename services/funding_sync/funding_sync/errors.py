"""Pipeline failure types."""

from __future__ import annotations

from typing import Any


class PipelineError(Exception):
    """Base class for pipeline failures."""

    error_code = "PIPELINE_ERROR"


class ConfigError(PipelineError, ValueError):
    """Raised for invalid or missing configuration."""

    error_code = "CONFIG_ERROR"


class NetworkError(PipelineError):
    """Source document could not be retrieved."""

    error_code = "NETWORK_ERROR"


class ExtractionError(PipelineError):
    """AI service reply could not be turned into structured records."""

    error_code = "EXTRACTION_ERROR"


class ValidationError(PipelineError):
    """Extracted dataset failed a plausibility check."""

    error_code = "VALIDATION_ERROR"

    def __init__(self, check: str, observed: Any, expected: Any) -> None:
        self.check = check
        self.observed = observed
        self.expected = expected
        super().__init__(f"Validation check '{check}' failed: observed {observed}, expected {expected}")


class PersistenceError(PipelineError):
    """Snapshot or backup could not be written."""

    error_code = "PERSISTENCE_ERROR"


class PublishError(PipelineError):
    """Publishing to version control failed. Soft: the run still succeeds."""

    error_code = "PUBLISH_ERROR"
