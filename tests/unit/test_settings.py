from pathlib import Path

import pytest
from pydantic import ValidationError

from src.config.settings import Settings


def test_defaults():
    settings = Settings(_env_file=None)

    assert settings.anthropic_api_key is None
    assert settings.has_llm() is False
    assert settings.llm_confidence_threshold == 0.55
    assert settings.max_tool_rounds == 8
    assert settings.max_retries == 3
    assert settings.message_max_length == 1200
    assert settings.data_file is None


def test_own_brand_keys_and_bounds():
    settings = Settings(_env_file=None, OWN_BRANDS=" Innova , BLCKTEC ,")

    assert settings.own_brand_keys() == ["innova", "blcktec"]
    assert settings.bucket_bounds() == (75.0, 200.0, 400.0)


def test_api_key_enables_llm():
    settings = Settings(_env_file=None, ANTHROPIC_API_KEY="sk-ant-test")

    assert settings.has_llm() is True
    assert settings.anthropic_api_key.get_secret_value() == "sk-ant-test"


def test_blank_api_key_is_none():
    assert Settings(_env_file=None, ANTHROPIC_API_KEY="  ").anthropic_api_key is None


def test_invalid_api_key_rejected():
    with pytest.raises(ValidationError):
        Settings(_env_file=None, ANTHROPIC_API_KEY="not-a-key")


@pytest.mark.parametrize("bounds", ["75,200", "400,200,75", "a,b,c"])
def test_invalid_bucket_bounds_rejected(bounds):
    with pytest.raises(ValidationError):
        Settings(_env_file=None, PRICE_BUCKET_BOUNDS=bounds)


def test_reads_environment(monkeypatch):
    monkeypatch.setenv("DATA_FILE", "data/tables.json")
    monkeypatch.setenv("LLM_ONLY_MODE", "true")

    settings = Settings(_env_file=None)

    assert settings.data_file == Path("data/tables.json")
    assert settings.llm_only_mode is True
