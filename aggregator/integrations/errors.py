"""
Error taxonomy for provider calls, normalization and merging.
Per-provider errors are downgraded to "no contribution" at the fan-out;
only NoProviderDataError reaches callers.
"""

from aggregator.models.catalog import Provider


class AggregatorError(Exception):
    """Base class for aggregator errors."""

    pass


class ProviderError(AggregatorError):
    """Error tied to a single provider's contribution."""

    def __init__(self, provider: Provider, message: str):
        self.provider = provider
        self.message = message
        super().__init__(f"{provider.value}: {message}")


class ProviderAuthError(ProviderError):
    """Raised when a token could not be created or refreshed."""

    pass


class ProviderFetchError(ProviderError):
    """Raised on a non-2xx or undecodable provider response."""

    def __init__(self, provider: Provider, message: str, status_code: int | None = None):
        self.status_code = status_code
        super().__init__(provider, message)


class MalformedPayloadError(ProviderError):
    """Raised when an adapter cannot locate the fields it expects."""

    pass


class NoProviderDataError(AggregatorError):
    """Raised when no provider contributed anything to merge."""

    pass
