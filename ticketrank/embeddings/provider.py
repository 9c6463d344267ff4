"""Client for OpenAI-compatible ``/embeddings`` endpoints."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Mapping, Protocol, Sequence

import httpx

from ticketrank.core.config import ProviderConfig
from ticketrank.tickets.models import truncate_for_embedding

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
from .vectors import Embedding, validate_embedding_vector

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class IndexedEmbedding:
    """One item of a batch response, tagged with its position in the request."""

    index: int
    embedding: Embedding


class EmbeddingProvider(Protocol):
    async def embed_one(self, text: str) -> Embedding:
        ...

    async def embed_batch(self, texts: Sequence[str]) -> Sequence[IndexedEmbedding]:
        ...


def _extract_error_message(response: httpx.Response) -> str:
    try:
        data = response.json()
    except ValueError:
        return response.text or "Unknown provider error"

    if isinstance(data, Mapping):
        error = data.get("error")
        if isinstance(error, Mapping) and isinstance(error.get("message"), str):
            return error["message"]
        if isinstance(error, str):
            return error
    return response.text or "Unknown provider error"


def _classify_response(response: httpx.Response) -> EmbeddingProviderError:
    status = response.status_code
    message = _extract_error_message(response)
    if status in (401, 403):
        return ProviderAuthError(f"Provider authentication failed: {message}", status_code=status)
    if status == 429:
        return ProviderRateLimitError(f"Provider rate limit exceeded: {message}", status_code=status)
    if status == 400 and "maximum context length" in message:
        return ProviderTokenLimitError(f"Token limit exceeded: {message}", status_code=status)
    return ProviderResponseError(message, status_code=status)


class OpenAIEmbeddingProvider:
    """Embedding provider speaking the OpenAI embeddings wire format."""

    def __init__(
        self,
        config: ProviderConfig | None,
        *,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self.config = config
        self._client = client
        self._owns_client = client is None

    def _ensure_client(self) -> httpx.AsyncClient:
        if self.config is None or not self.config.api_key:
            raise ProviderConfigurationError("Embedding provider is not configured")
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.config.timeout)
        return self._client

    async def aclose(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    async def embed_one(self, text: str) -> Embedding:
        items = await self._request(truncate_for_embedding(text))
        if len(items) != 1:
            raise ProviderResponseError(f"Expected one embedding, received {len(items)}")
        return items[0].embedding

    async def embed_batch(self, texts: Sequence[str]) -> list[IndexedEmbedding]:
        """Embed ``texts`` in one request; items keep the provider's response order."""

        if not texts:
            return []
        return await self._request([truncate_for_embedding(text) for text in texts])

    async def _request(self, payload_input: str | list[str]) -> list[IndexedEmbedding]:
        client = self._ensure_client()
        assert self.config is not None
        url = f"{self.config.base_url.rstrip('/')}/embeddings"
        headers = {
            "Authorization": f"Bearer {self.config.api_key}",
            "Content-Type": "application/json",
            **self.config.headers,
        }
        body = {"model": self.config.embedding_model, "input": payload_input}

        try:
            response = await client.post(url, json=body, headers=headers, timeout=self.config.timeout)
        except httpx.TimeoutException as exc:
            raise ProviderTimeoutError(f"Provider request timed out: {exc}") from exc
        except httpx.TransportError as exc:
            raise ProviderNetworkError(f"Network error when connecting to provider: {exc}") from exc

        if response.status_code >= 400:
            error = _classify_response(response)
            logger.warning("Embedding request failed: %s", error)
            raise error

        return self._parse_items(response)

    def _parse_items(self, response: httpx.Response) -> list[IndexedEmbedding]:
        try:
            data: Any = response.json()
            raw_items = data["data"]
            return [
                IndexedEmbedding(
                    index=int(item["index"]),
                    embedding=validate_embedding_vector(
                        item["embedding"], expected_size=self.config.dimensions if self.config else None
                    ),
                )
                for item in raw_items
            ]
        except (KeyError, TypeError, ValueError) as exc:
            raise ProviderResponseError(f"Malformed embeddings response: {exc}") from exc
