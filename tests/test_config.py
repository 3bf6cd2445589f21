"""Configuration boundary tests: defaults, validation and environment loading."""

from __future__ import annotations

import dataclasses

import pytest

from serdekit.config import (
    DEFAULT_CONFIG,
    INVARIANT,
    KNOWN_CULTURES,
    Culture,
    SerializationConfig,
    validate_input,
)
from serdekit.errors import ConfigurationError, ValidationError

pytestmark = pytest.mark.unit


def test_defaults_are_safe() -> None:
    cfg = SerializationConfig()

    assert cfg.max_depth == 32
    assert cfg.enable_compression is False
    assert cfg.timeout_s == 300.0
    assert cfg.max_retries == 3
    assert cfg.retry_delay_s == 1.0
    assert cfg.max_input_length == 100 * 1024 * 1024
    assert cfg.culture is INVARIANT
    assert cfg.batch_size == 1000
    assert cfg == DEFAULT_CONFIG


def test_config_is_immutable() -> None:
    with pytest.raises(dataclasses.FrozenInstanceError):
        DEFAULT_CONFIG.max_retries = 10  # type: ignore[misc]


@pytest.mark.parametrize(
    ("overrides", "match"),
    [
        ({"max_depth": 0}, "max_depth"),
        ({"max_retries": -1}, "max_retries"),
        ({"retry_delay_s": -0.5}, "retry_delay_s"),
        ({"timeout_s": 0}, "timeout_s"),
        ({"max_input_length": 0}, "max_input_length"),
        ({"batch_size": 0}, "batch_size"),
    ],
)
def test_invalid_values_raise_configuration_error(
    overrides: dict[str, object], match: str
) -> None:
    with pytest.raises(ConfigurationError, match=match):
        SerializationConfig(**overrides)  # type: ignore[arg-type]


def test_timeout_can_be_disabled() -> None:
    assert SerializationConfig(timeout_s=None).timeout_s is None


@pytest.mark.parametrize("separator", ["", "..", "5"])
def test_culture_rejects_ambiguous_separators(separator: str) -> None:
    with pytest.raises(ConfigurationError) as exc:
        Culture("xx", decimal_separator=separator)
    assert exc.value.hint is not None


def test_from_env_reads_prefixed_variables() -> None:
    cfg = SerializationConfig.from_env(
        {
            "SERDEKIT_MAX_RETRIES": "5",
            "SERDEKIT_RETRY_DELAY_S": "0.25",
            "SERDEKIT_ENABLE_COMPRESSION": "yes",
            "SERDEKIT_TIMEOUT_S": "none",
            "SERDEKIT_CULTURE": "de-DE",
            "SERDEKIT_BATCH_SIZE": " ",
            "UNRELATED": "1",
        }
    )

    assert cfg.max_retries == 5
    assert cfg.retry_delay_s == 0.25
    assert cfg.enable_compression is True
    assert cfg.timeout_s is None
    assert cfg.culture is KNOWN_CULTURES["de-DE"]
    assert cfg.batch_size == 1000


def test_explicit_overrides_win_over_environment() -> None:
    cfg = SerializationConfig.from_env({"SERDEKIT_MAX_RETRIES": "5"}, max_retries=0)
    assert cfg.max_retries == 0


def test_from_env_uses_process_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("SERDEKIT_BATCH_SIZE", "50")

    assert SerializationConfig.from_env().batch_size == 50


def test_unknown_culture_lists_known_ones() -> None:
    with pytest.raises(ConfigurationError, match="SERDEKIT_CULTURE") as exc:
        SerializationConfig.from_env({"SERDEKIT_CULTURE": "xx-XX"})
    assert exc.value.hint is not None
    assert "de-DE" in exc.value.hint


def test_malformed_number_raises_configuration_error() -> None:
    with pytest.raises(ConfigurationError, match="SERDEKIT_MAX_RETRIES"):
        SerializationConfig.from_env({"SERDEKIT_MAX_RETRIES": "many"})


@pytest.mark.parametrize("text", [None, 42, "", "   \n"])
def test_validate_input_rejects_absent_or_empty(text: object) -> None:
    with pytest.raises(ValidationError):
        validate_input(text, DEFAULT_CONFIG)  # type: ignore[arg-type]


def test_validate_input_rejects_oversized_text() -> None:
    cfg = SerializationConfig(max_input_length=4)

    with pytest.raises(ValidationError, match="maximum length of 4"):
        validate_input("12345", cfg)

    assert validate_input("1234", cfg) == "1234"
