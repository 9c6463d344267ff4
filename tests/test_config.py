import logging

import pytest
from pydantic import ValidationError

from ticketrank.core.config import ProviderConfig, RankingConfig, Settings
from ticketrank.core.logging import configure_logging, init_tracer, parse_otlp_headers


def test_provider_config_requires_api_key():
    assert Settings(_env_file=None, llm_api_key=None).provider_config() is None


def test_settings_build_provider_config(monkeypatch):
    monkeypatch.setenv("LLM_API_KEY", "sk-env")
    monkeypatch.setenv("LLM_BASE_URL", "https://llm.internal/v1")
    monkeypatch.setenv("EMBEDDING_DIMENSIONS", "768")

    config = Settings(_env_file=None).provider_config()

    assert config == ProviderConfig(
        api_key="sk-env",
        base_url="https://llm.internal/v1",
        dimensions=768,
    )


def test_ranking_config_defaults():
    config = Settings(_env_file=None).ranking_config()

    assert config == RankingConfig()
    assert config.batch_size == 20
    assert config.concurrency == 3
    assert config.token_limit == 8000
    assert config.similarity_threshold == 0.75
    assert config.max_owner_tickets == 20


def test_ranking_config_rejects_invalid_values():
    with pytest.raises(ValidationError):
        RankingConfig(batch_size=0)
    with pytest.raises(ValidationError):
        RankingConfig(similarity_threshold=1.5)


def test_unknown_durable_backend_is_rejected():
    with pytest.raises(ValidationError):
        Settings(_env_file=None, durable_backend="redis")


def test_parse_otlp_headers_skips_malformed_items():
    assert parse_otlp_headers("api-key=abc, bad ,x-team = ranking") == {"api-key": "abc", "x-team": "ranking"}
    assert parse_otlp_headers(None) == {}


def test_configure_logging_quiets_httpx():
    logger = configure_logging(Settings(_env_file=None, log_level="debug"))

    assert logger.name == "ticketrank"
    assert logger.level == logging.DEBUG
    assert logging.getLogger("httpx").level == logging.WARNING


def test_tracer_is_disabled_by_default():
    assert init_tracer(Settings(_env_file=None)) is None
