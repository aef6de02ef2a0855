"""Error kinds raised by the enrichment pipeline."""


class EnrichmentError(Exception):
    """Base class for enrichment pipeline errors."""


class AnalysisUnavailable(EnrichmentError):
    """The LLM analysis call failed or returned unusable content.

    Hard failure for the post: nothing is persisted and the post stays in the
    backlog for a later pass.
    """


class ResponseParseError(AnalysisUnavailable):
    """The LLM returned content that is not valid JSON or not the expected shape."""

    def __init__(self, message: str, sample: str | None = None):
        super().__init__(message)
        self.sample = sample


class EmbeddingError(EnrichmentError):
    """Base class for embedding endpoint failures."""


class EmbeddingTransientError(EmbeddingError):
    """Rate limit, server error or transport failure; worth retrying."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class EmbeddingPermanentError(EmbeddingError):
    """Non-retryable status, malformed payload or wrong vector length."""


class PersistenceSkip(EnrichmentError):
    """A result that must not be written (invalid embedding or store-side dimension constraint)."""
