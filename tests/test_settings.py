from __future__ import annotations

import pytest
from pydantic import ValidationError

from limitless_gateway.settings import load_settings


def test_defaults():
    settings = load_settings({})

    assert settings.api_key == ""
    assert settings.api_base_url == "https://api.limitless.ai/v1"
    assert settings.api_timeout_seconds == 120
    assert settings.api_max_retries == 3
    assert settings.cache_ttl == 300
    assert settings.cache_check_period == 600
    assert settings.cache_max_keys == 500

    multipliers = settings.ttl_multipliers()
    assert (multipliers.metadata, multipliers.listing, multipliers.search, multipliers.summary) == (
        3.0,
        2.0,
        1.5,
        4.0,
    )


def test_environment_overrides():
    settings = load_settings(
        {
            "LIMITLESS_API_KEY": "secret",
            "LIMITLESS_API_TIMEOUT_MS": "5000",
            "LIMITLESS_CACHE_TTL": "60",
            "CACHE_TTL_SEARCH": "2.5",
            "UNRELATED_VARIABLE": "ignored",
        }
    )

    assert settings.api_key == "secret"
    assert settings.api_timeout_seconds == 5.0
    assert settings.cache_ttl == 60
    assert settings.ttl_multipliers().search == 2.5


@pytest.mark.parametrize(
    "env",
    [
        {"LIMITLESS_CACHE_MAX_KEYS": "0"},
        {"LIMITLESS_API_MAX_RETRIES": "-1"},
        {"LIMITLESS_CACHE_TTL": "five minutes"},
    ],
)
def test_invalid_values_are_rejected(env):
    with pytest.raises(ValidationError):
        load_settings(env)


def test_describe_never_leaks_the_api_key():
    banner = load_settings({"LIMITLESS_API_KEY": "super-secret"}).describe()

    assert "super-secret" not in banner
    assert "API Key: set" in banner
    assert "Cache Max Keys: 500" in banner
    assert "- Search: 1.5x" in banner
