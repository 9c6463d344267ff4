"""Validation helpers for embedding payloads."""
from __future__ import annotations

from typing import Any, Sequence

from pydantic import BaseModel, ConfigDict, Field, field_validator

Embedding = list[float]


class EmbeddingVector(BaseModel):
    """Validated embedding vector container."""

    model_config = ConfigDict(extra="forbid")

    values: list[float] = Field(..., min_length=1)

    @field_validator("values", mode="before")
    @classmethod
    def _coerce_values(cls, value: Any) -> list[float]:
        if isinstance(value, Sequence) and not isinstance(value, (str, bytes)):
            try:
                return [float(item) for item in value]
            except (TypeError, ValueError) as exc:
                raise ValueError("Embedding vector must contain numeric values") from exc
        raise TypeError("Embedding vector must be a sequence of floats")


def validate_embedding_vector(values: Sequence[float], *, expected_size: int | None = None) -> Embedding:
    """Validate an embedding vector and optionally enforce its dimensionality."""

    model = EmbeddingVector(values=values)
    if expected_size is not None and len(model.values) != expected_size:
        raise ValueError(
            f"Embedding dimension mismatch: expected {expected_size}, received {len(model.values)} values."
        )
    return model.values
