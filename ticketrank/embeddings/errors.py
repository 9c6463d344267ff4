from __future__ import annotations


class EmbeddingProviderError(RuntimeError):
    """Base error for failures talking to the embedding provider."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code

    def __str__(self) -> str:
        prefix = f"[{self.status_code}] " if self.status_code is not None else ""
        return f"{prefix}{super().__str__()}"


class ProviderConfigurationError(EmbeddingProviderError):
    """Raised when no provider endpoint or credential is configured."""


class ProviderAuthError(EmbeddingProviderError):
    """Raised when the provider rejects the credential."""


class ProviderRateLimitError(EmbeddingProviderError):
    """Raised when the provider reports that the rate limit was exceeded."""


class ProviderNetworkError(EmbeddingProviderError):
    """Raised when the provider could not be reached."""


class ProviderTimeoutError(ProviderNetworkError):
    """Raised when a provider request exceeded the configured timeout."""


class ProviderResponseError(EmbeddingProviderError):
    """Raised for any other error response or a malformed payload."""


class ProviderTokenLimitError(ProviderResponseError):
    """Raised when a request exceeded the model's context length."""
