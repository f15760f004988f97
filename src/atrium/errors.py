"""Error taxonomy for the chat orchestration core."""


class AtriumError(Exception):
    """Base class for all atrium errors."""


class ValidationError(AtriumError):
    """A chat request was malformed.

    Raised while coercing request fields. ChatRequest.from_dict catches it
    and substitutes the default, so callers never see it.
    """


class ProviderError(AtriumError):
    """A completion provider failed to produce a response."""

    def __init__(self, message: str, provider: str | None = None) -> None:
        super().__init__(message)
        self.provider = provider


class ProviderTimeout(ProviderError):
    """The provider did not answer within its time budget."""


class ProviderAuthError(ProviderError):
    """The provider rejected our credentials."""


class ProviderRateLimited(ProviderError):
    """The provider is throttling requests."""


class ProviderUnavailable(ProviderError):
    """The provider is unreachable or returned a server error."""


class MemoryStoreError(AtriumError):
    """A memory read or write failed. Always treated as non-fatal."""
