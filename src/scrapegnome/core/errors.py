"""Error taxonomy for the identification and resolution pipeline.

Every per-attempt failure raised by the extractors, the type resolver or the
orchestrator derives from ScrapeGnomeError so the task processor can turn it
into a ``last_error`` string. Retryability is decided by the scheduler, not by
the error class.
"""


class ScrapeGnomeError(Exception):
    """Base class for all scrapegnome pipeline errors."""

    pass


class ExtractionError(ScrapeGnomeError):
    """Raised when no usable title (or, for files, episode) can be parsed."""

    pass


class AmbiguousResultError(ScrapeGnomeError):
    """Raised when the resolver cannot settle on exactly one candidate."""

    pass


class ProviderError(ScrapeGnomeError):
    """Raised when a metadata provider call fails (network or HTTP fault)."""

    def __init__(self, message: str, endpoint: str | None = None) -> None:
        """Initialize the error with an optional provider endpoint."""
        super().__init__(message)
        self.endpoint = endpoint


class ModelParseError(ScrapeGnomeError):
    """Raised when LLM output cannot be turned into a JSON object.

    Only used inside the natural-language extractor; callers never see it.
    """

    pass


class ProcessingTimeoutError(ScrapeGnomeError, TimeoutError):
    """Raised when a task attempt exceeds the configured processing timeout."""

    pass
