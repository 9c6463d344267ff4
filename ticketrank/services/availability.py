from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable

from ticketrank.core.config import ProviderConfig
from ticketrank.embeddings.errors import (
    EmbeddingProviderError,
    ProviderAuthError,
    ProviderConfigurationError,
    ProviderNetworkError,
    ProviderRateLimitError,
)
from ticketrank.embeddings.provider import OpenAIEmbeddingProvider

logger = logging.getLogger(__name__)

PROBE_TEXT = "Test ticket for similarity feature check"


class ProbeReason(str, Enum):
    AVAILABLE = "available"
    UNCONFIGURED = "unconfigured"
    AUTH_FAILED = "auth_failed"
    RATE_LIMITED = "rate_limited"
    NETWORK_ERROR = "network_error"
    UNKNOWN_ERROR = "unknown_error"


@dataclass(slots=True, frozen=True)
class ProbeResult:
    available: bool
    reason: ProbeReason
    message: str | None = None


_CLASSIFICATION: tuple[tuple[type[EmbeddingProviderError], ProbeReason], ...] = (
    (ProviderConfigurationError, ProbeReason.UNCONFIGURED),
    (ProviderAuthError, ProbeReason.AUTH_FAILED),
    (ProviderRateLimitError, ProbeReason.RATE_LIMITED),
    (ProviderNetworkError, ProbeReason.NETWORK_ERROR),
)


@dataclass(slots=True)
class AvailabilityProbe:
    """Check whether the embedding provider is reachable and accepts our credential.

    Issues one small embedding request; never reads or writes the embedding
    cache.
    """

    provider_factory: Callable[[ProviderConfig], OpenAIEmbeddingProvider] = OpenAIEmbeddingProvider

    async def probe(self, config: ProviderConfig | None) -> ProbeResult:
        if config is None or not config.api_key:
            return ProbeResult(available=False, reason=ProbeReason.UNCONFIGURED)

        provider = self.provider_factory(config)
        try:
            await provider.embed_one(PROBE_TEXT)
        except Exception as exc:
            return self._classify(exc)
        finally:
            await provider.aclose()
        return ProbeResult(available=True, reason=ProbeReason.AVAILABLE)

    @staticmethod
    def _classify(exc: Exception) -> ProbeResult:
        for error_type, reason in _CLASSIFICATION:
            if isinstance(exc, error_type):
                logger.info("Embedding provider unavailable (%s): %s", reason.value, exc)
                return ProbeResult(available=False, reason=reason, message=str(exc))
        logger.warning("Embedding provider probe failed unexpectedly: %s", exc)
        return ProbeResult(available=False, reason=ProbeReason.UNKNOWN_ERROR, message=str(exc) or type(exc).__name__)
