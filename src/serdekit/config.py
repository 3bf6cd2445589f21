"""Configuration: frozen SerializationConfig with safe defaults."""

from __future__ import annotations

from dataclasses import dataclass, field, fields
import os
from typing import Any

from dotenv import load_dotenv

from serdekit.errors import ConfigurationError, ValidationError

_MB = 1024 * 1024

ENV_PREFIX = "SERDEKIT_"


@dataclass(frozen=True)
class Culture:
    """Numeric formatting rules used by the culture-aware CSV path.

    Booleans are always rendered lowercase, whatever the culture says.
    """

    name: str
    decimal_separator: str = "."

    def __post_init__(self) -> None:
        """Reject separators that would make numbers ambiguous."""
        if len(self.decimal_separator) != 1 or self.decimal_separator.isdigit():
            raise ConfigurationError(
                f"Invalid decimal separator {self.decimal_separator!r} for culture {self.name!r}",
                hint="Use a single non-digit character such as '.' or ','.",
            )


INVARIANT = Culture("invariant")

#: Cultures resolvable by name from ``SERDEKIT_CULTURE``.
KNOWN_CULTURES: dict[str, Culture] = {
    "invariant": INVARIANT,
    "en-US": Culture("en-US"),
    "en-GB": Culture("en-GB"),
    "de-DE": Culture("de-DE", decimal_separator=","),
    "fr-FR": Culture("fr-FR", decimal_separator=","),
}


@dataclass(frozen=True)
class SerializationConfig:
    """Immutable options for a serialization call.

    Every field has a default, so callers can omit the config entirely.
    The pipeline never mutates a config it was handed.

    Example:
        config = SerializationConfig(enable_compression=True, batch_size=500)
        payload = await to_csv_async(rows, config)
    """

    max_depth: int = 32
    enable_compression: bool = False
    #: Overall deadline for async operations; *None* disables it.
    timeout_s: float | None = 300.0
    max_retries: int = 3
    #: Linear backoff unit: the n-th retry waits ``retry_delay_s * n``.
    retry_delay_s: float = 1.0
    max_input_length: int = 100 * _MB
    culture: Culture = field(default=INVARIANT)
    batch_size: int = 1000

    def __post_init__(self) -> None:
        """Validate numeric fields early for clear errors."""
        if self.max_depth < 1:
            raise ConfigurationError(
                f"max_depth must be ≥ 1, got {self.max_depth}",
                hint="This bounds the nesting depth of encoded object graphs.",
            )
        if self.max_retries < 0:
            raise ConfigurationError(
                f"max_retries must be ≥ 0, got {self.max_retries}",
                hint="Use 0 for a single attempt without retries.",
            )
        if self.retry_delay_s < 0:
            raise ConfigurationError(
                f"retry_delay_s must be ≥ 0, got {self.retry_delay_s}",
            )
        if self.timeout_s is not None and self.timeout_s <= 0:
            raise ConfigurationError(
                f"timeout_s must be > 0 or None, got {self.timeout_s}",
                hint="Pass timeout_s=None to disable the deadline.",
            )
        if self.max_input_length < 1:
            raise ConfigurationError(
                f"max_input_length must be ≥ 1, got {self.max_input_length}",
            )
        if self.batch_size < 1:
            raise ConfigurationError(
                f"batch_size must be ≥ 1, got {self.batch_size}",
                hint="This controls how many records are written per batch.",
            )

    @classmethod
    def from_env(
        cls, environ: dict[str, str] | None = None, **overrides: Any
    ) -> SerializationConfig:
        """Build a config from ``SERDEKIT_*`` environment variables.

        A project ``.env`` file is loaded first. Explicit *overrides* win over
        the environment; anything unset keeps its default.
        """
        if environ is None:
            load_dotenv()
            environ = dict(os.environ)

        values: dict[str, Any] = {}
        for f in fields(cls):
            raw = environ.get(ENV_PREFIX + f.name.upper())
            if raw is None or not raw.strip():
                continue
            values[f.name] = _parse_env_value(f.name, raw.strip())

        values.update(overrides)
        return cls(**values)


DEFAULT_CONFIG = SerializationConfig()


def validate_input(text: str | None, config: SerializationConfig) -> str:
    """Reject absent, empty or oversized input before any decoding starts."""
    if text is None or not isinstance(text, str):
        raise ValidationError(
            "Input must be a string",
            hint=f"Got {type(text).__name__}.",
        )
    if len(text) > config.max_input_length:
        raise ValidationError(
            f"Input exceeds maximum length of {config.max_input_length} characters",
            hint="Raise SerializationConfig.max_input_length for larger payloads.",
        )
    if not text.strip():
        raise ValidationError("Input is empty")
    return text


def _parse_env_value(name: str, raw: str) -> Any:
    try:
        if name == "enable_compression":
            lowered = raw.lower()
            if lowered in {"1", "true", "yes", "on"}:
                return True
            if lowered in {"0", "false", "no", "off"}:
                return False
            raise ValueError(raw)
        if name == "culture":
            return KNOWN_CULTURES[raw]
        if name == "timeout_s":
            return None if raw.lower() == "none" else float(raw)
        if name == "retry_delay_s":
            return float(raw)
        return int(raw)
    except (KeyError, ValueError) as exc:
        raise ConfigurationError(
            f"Invalid value for {ENV_PREFIX}{name.upper()}: {raw!r}",
            hint=(
                f"Known cultures: {', '.join(KNOWN_CULTURES)}"
                if name == "culture"
                else None
            ),
        ) from exc
