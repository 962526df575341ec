"""Custom exception classes for the recommendation service."""


class RecommendationServiceError(Exception):
    """Base exception for all recommendation service errors."""

    def __init__(self, message: str, details: dict | None = None):
        self.message = message
        self.details = details or {}
        super().__init__(self.message)


class InvalidPreferenceSpec(RecommendationServiceError):
    """Raised when caller-supplied preferences fail shape validation."""

    pass


class CompletionFailure(RecommendationServiceError):
    """Raised when no model text could be obtained for a request."""

    pass


class AllProvidersExhausted(CompletionFailure):
    """Raised when every configured completion provider failed."""

    pass


class ProviderError(RecommendationServiceError):
    """Raised by a single completion provider. Handled by the fallback chain."""

    def __init__(self, provider: str, message: str, details: dict | None = None):
        self.provider = provider
        super().__init__(message, details)


class ParseFailure(RecommendationServiceError):
    """Raised when no well-formed candidate could be extracted from model text."""

    pass


class CatalogLookupFailure(RecommendationServiceError):
    """Raised when a catalog call fails after the bounded retry budget."""

    def __init__(self, message: str, details: dict | None = None, status_code: int | None = None):
        self.status_code = status_code
        super().__init__(message, details)


class NoMatchesFound(RecommendationServiceError):
    """Raised when neither the AI path nor the popularity fallback produced results."""

    pass
