"""Tests for configuration normalisation and validation helpers."""

from types import SimpleNamespace

import pytest

from trisub.configuration import (
    format_validation_errors,
    normalise_provider_name,
    validate_provider_settings,
)
from trisub.errors import TranslationProviderConfigurationError


def settings(**overrides):
    values = {
        "TRISUB_PROVIDER": "gemini",
        "GEMINI_API_KEY": None,
        "GOOGLE_API_KEY": None,
        "OPENAI_API_KEY": None,
        "TRISUB_REQUEST_TIMEOUT": 300.0,
    }
    values.update(overrides)
    return SimpleNamespace(**values)


@pytest.mark.parametrize(
    "raw, expected",
    [
        (None, "gemini"),
        ("Google-GenAI", "gemini"),
        ("OpenAI", "openai"),
        ("gpt", "openai"),
        ("mock", "echo"),
        ("something-else", "gemini"),
    ],
)
def test_normalise_provider_name(raw, expected):
    assert normalise_provider_name(raw) == expected


class TestValidateProviderSettings:
    def test_gemini_key_required(self):
        with pytest.raises(TranslationProviderConfigurationError, match="GEMINI_API_KEY"):
            validate_provider_settings(settings())

    def test_google_key_accepted(self):
        validate_provider_settings(settings(GOOGLE_API_KEY="abc"))

    def test_provider_override(self):
        with pytest.raises(TranslationProviderConfigurationError, match="OPENAI_API_KEY"):
            validate_provider_settings(settings(GEMINI_API_KEY="abc"), "openai")

    def test_echo_needs_nothing(self):
        validate_provider_settings(settings(TRISUB_PROVIDER="echo"))

    def test_timeout_must_be_positive(self):
        with pytest.raises(TranslationProviderConfigurationError, match="TIMEOUT"):
            validate_provider_settings(settings(GEMINI_API_KEY="abc", TRISUB_REQUEST_TIMEOUT=0))


def test_format_validation_errors():
    message = format_validation_errors(
        [{"path": ["TRISUB_REQUEST_TIMEOUT"], "message": "not a number", "source": "env:process"}]
    )

    assert message.splitlines()[1] == (
        "- TRISUB_REQUEST_TIMEOUT: not a number (source: env:process)"
    )
