"""Culture-aware value formatting and text → declared-type conversion."""

from __future__ import annotations

import base64
from datetime import date, datetime, time
from decimal import Decimal
from enum import Enum
import types
import typing
from typing import Any, Literal
from uuid import UUID

from serdekit.config import INVARIANT, Culture

_TRUE = frozenset({"true", "1", "yes"})
_FALSE = frozenset({"false", "0", "no"})

_CSV_SPECIAL = (",", '"', "\n", "\r")

#: Values rendered as a single text field rather than reflected into properties.
SCALAR_TYPES: tuple[type, ...] = (
    str,
    bool,
    int,
    float,
    Decimal,
    Enum,
    datetime,
    date,
    time,
    UUID,
    bytes,
    bytearray,
)


def format_value(value: Any, culture: Culture = INVARIANT) -> str:
    """Render *value* as text independent of the process locale.

    ``None`` renders as an empty string and booleans are always lowercase.
    """
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, Enum):
        return value.name
    if isinstance(value, (float, Decimal)):
        text = str(value)
        if culture.decimal_separator != ".":
            text = text.replace(".", culture.decimal_separator)
        return text
    if isinstance(value, (datetime, date, time)):
        return value.isoformat()
    if isinstance(value, (bytes, bytearray)):
        return base64.b64encode(bytes(value)).decode("ascii")
    return str(value)


def escape_csv_value(text: str) -> str:
    """Quote *text* when it contains a comma, quote or line break."""
    if not text:
        return text
    if any(ch in text for ch in _CSV_SPECIAL):
        return '"' + text.replace('"', '""') + '"'
    return text


def format_display_value(value: Any) -> str:
    """Render *value* for ``name = value`` summaries."""
    if value is None:
        return "null"
    if isinstance(value, str):
        return '"' + value.replace('"', '\\"') + '"'
    return format_value(value)


def _union_args(tp: Any) -> tuple[Any, ...] | None:
    origin = typing.get_origin(tp)
    if origin is typing.Union or origin is types.UnionType:
        return typing.get_args(tp)
    return None


def parse_text(text: str, declared_type: Any, culture: Culture = INVARIANT) -> Any:
    """Convert a text field to *declared_type*.

    Raises:
        ValueError: If *text* cannot represent a value of the declared type.
        TypeError: If the declared type cannot be built from text.
    """
    union = _union_args(declared_type)
    if union is not None:
        if text == "" and type(None) in union:
            return None
        errors: list[Exception] = []
        for arg in union:
            if arg is type(None):
                continue
            try:
                return parse_text(text, arg, culture)
            except (TypeError, ValueError) as exc:
                errors.append(exc)
        raise ValueError(f"{text!r} does not match any of {declared_type!r}") from (
            errors[-1] if errors else None
        )

    if typing.get_origin(declared_type) is Literal:
        for choice in typing.get_args(declared_type):
            if format_value(choice, culture) == text:
                return choice
        raise ValueError(f"{text!r} is not one of {typing.get_args(declared_type)!r}")

    if declared_type in (Any, object, str):
        return text
    if declared_type is bool:
        lowered = text.strip().lower()
        if lowered in _TRUE:
            return True
        if lowered in _FALSE:
            return False
        raise ValueError(f"{text!r} is not a boolean")
    if declared_type is int:
        return int(text.strip())
    if declared_type in (float, Decimal):
        normalized = text.strip()
        if culture.decimal_separator != ".":
            normalized = normalized.replace(culture.decimal_separator, ".")
        try:
            return declared_type(normalized)
        except ArithmeticError as exc:
            raise ValueError(f"{text!r} is not a number") from exc
    if declared_type in (datetime, date, time):
        return declared_type.fromisoformat(text.strip())
    if declared_type is UUID:
        return UUID(text.strip())
    if declared_type is bytes:
        return base64.b64decode(text, validate=True)
    if isinstance(declared_type, type) and issubclass(declared_type, Enum):
        return _parse_enum(text, declared_type)
    if isinstance(declared_type, type):
        return declared_type(text)
    raise TypeError(f"Cannot convert text to {declared_type!r}")


def _parse_enum(text: str, enum_type: type[Enum]) -> Enum:
    key = text.strip()
    if key in enum_type.__members__:
        return enum_type[key]
    for member in enum_type:
        if format_value(member.value) == key:
            return member
    raise ValueError(f"{text!r} is not a member of {enum_type.__name__}")
