"""
Error taxonomy shared by all pipeline stages.

Per-unit errors (one source, one embedding batch, one topic) are caught at
the stage boundary and reported; ConfigurationError and StorageUnavailable
are fatal and end the run.
"""

from __future__ import annotations


class TrendPressError(Exception):
    """Base class for all pipeline errors."""

    kind = "error"

    def describe(self) -> str:
        return f"{self.kind}: {self}"


class SourceFetchError(TrendPressError):
    """A single source could not be fetched or parsed."""

    kind = "source_fetch"

    def __init__(self, source_id: str, message: str):
        super().__init__(f"{source_id}: {message}")
        self.source_id = source_id


class ProviderError(TrendPressError):
    """An embedding or generation provider call failed."""

    kind = "provider"

    def __init__(self, provider: str, message: str, reason: str = "request_failed"):
        super().__init__(f"{provider}: {message}")
        self.provider = provider
        self.reason = reason


class MalformedOutput(ProviderError):
    """The provider answered, but not in the expected shape."""

    kind = "malformed_output"

    def __init__(self, provider: str, message: str):
        super().__init__(provider, message, reason="malformed_output")


class ValidationError(TrendPressError):
    """A topic failed the content-quality gate."""

    kind = "validation"

    def __init__(self, reason: str):
        super().__init__(reason)
        self.reason = reason


class DuplicateError(TrendPressError):
    """The record already exists; callers treat this as a no-op."""

    kind = "duplicate"


class ConfigurationError(TrendPressError):
    """A required setting or credential is missing."""

    kind = "configuration"


class StorageUnavailable(TrendPressError):
    """The persistent store cannot be read or written."""

    kind = "storage_unavailable"


FATAL_ERRORS = (ConfigurationError, StorageUnavailable)
