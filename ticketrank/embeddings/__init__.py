"""Embedding generation and the tiered embedding cache."""

from .batching import chunk, estimate_tokens, split_until_under_budget
from .cache import EmbeddingCache
from .durable import (
    DurableEmbeddingStore,
    NullEmbeddingStore,
    PostgresEmbeddingStore,
    QdrantCollectionConfig,
    QdrantEmbeddingStore,
)
from .errors import (
    EmbeddingProviderError,
    ProviderAuthError,
    ProviderConfigurationError,
    ProviderNetworkError,
    ProviderRateLimitError,
    ProviderResponseError,
    ProviderTimeoutError,
    ProviderTokenLimitError,
)
from .fetcher import BatchEmbeddingFetcher, restore_request_order
from .provider import EmbeddingProvider, IndexedEmbedding, OpenAIEmbeddingProvider
from .store import TieredEmbeddingStore
from .vectors import Embedding, EmbeddingVector, validate_embedding_vector

__all__ = [
    "BatchEmbeddingFetcher",
    "DurableEmbeddingStore",
    "Embedding",
    "EmbeddingCache",
    "EmbeddingProvider",
    "EmbeddingProviderError",
    "EmbeddingVector",
    "IndexedEmbedding",
    "NullEmbeddingStore",
    "OpenAIEmbeddingProvider",
    "PostgresEmbeddingStore",
    "ProviderAuthError",
    "ProviderConfigurationError",
    "ProviderNetworkError",
    "ProviderRateLimitError",
    "ProviderResponseError",
    "ProviderTimeoutError",
    "ProviderTokenLimitError",
    "QdrantCollectionConfig",
    "QdrantEmbeddingStore",
    "TieredEmbeddingStore",
    "chunk",
    "estimate_tokens",
    "restore_request_order",
    "split_until_under_budget",
    "validate_embedding_vector",
]
