"""
Tests for settings and extraction configuration
"""
import pytest
from pydantic import ValidationError

from listing_extraction.core.config import ExtractionConfig, Settings


def test_defaults(monkeypatch):
    for name in ("EXTRACTION_MODEL", "EXTRACTION_MAX_TOKENS", "EXTRACTION_TEMPERATURE"):
        monkeypatch.delenv(name, raising=False)
    settings = Settings(_env_file=None)
    assert settings.extraction_model == "gpt-4o-mini"
    assert settings.extraction_max_tokens == 8000
    assert settings.extraction_temperature == 0.3
    assert settings.extraction_max_content_chars == 0


def test_environment_overrides(monkeypatch):
    monkeypatch.setenv("EXTRACTION_MODEL", "local-model")
    monkeypatch.setenv("EXTRACTION_MAX_TOKENS", "2048")
    monkeypatch.setenv("LLM_BASE_URL", "http://localhost:11434/v1/")
    settings = Settings(_env_file=None)
    assert settings.extraction_model == "local-model"
    assert settings.extraction_max_tokens == 2048
    assert settings.llm_base_url == "http://localhost:11434/v1"


def test_temperature_bounds(monkeypatch):
    monkeypatch.setenv("EXTRACTION_TEMPERATURE", "3.5")
    with pytest.raises(ValidationError):
        Settings(_env_file=None)


def test_allowed_origins_list():
    settings = Settings(_env_file=None, allowed_origins="http://a.test, http://b.test,")
    assert settings.allowed_origins_list == ["http://a.test", "http://b.test"]


def test_extraction_config_from_settings(monkeypatch):
    monkeypatch.setenv("LLM_API_KEY", "sk-abc")
    monkeypatch.setenv("LLM_TIMEOUT_SECONDS", "12")
    monkeypatch.setenv("EXTRACTION_MAX_CONTENT_CHARS", "5000")
    config = ExtractionConfig.from_settings(Settings(_env_file=None))
    assert config.api_key == "sk-abc"
    assert config.timeout_seconds == 12.0
    assert config.max_content_chars == 5000


def test_extraction_config_is_frozen():
    config = ExtractionConfig()
    with pytest.raises(AttributeError):
        config.model = "other"
