"""JSON codec built on pydantic's serializer and validators.

Types pydantic understands (dataclasses, models, containers, primitives) go
straight through it; anything else is encoded from its introspected public
properties and rebuilt through :func:`serdekit.introspect.build_instance`.
"""

from __future__ import annotations

import base64
from functools import lru_cache
import logging
from typing import TYPE_CHECKING, Any, TypeVar

from pydantic import PydanticSchemaGenerationError, TypeAdapter
from pydantic_core import from_json as _parse_json
from pydantic_core import to_json as _dump_json
from pydantic_core import to_jsonable_python

from serdekit import compression
from serdekit.config import DEFAULT_CONFIG, validate_input
from serdekit.errors import DecodeError, EncodeError, wrap_stage
from serdekit.introspect import build_instance, get_properties
from serdekit.retry import run_with_deadline

if TYPE_CHECKING:
    import asyncio

    from serdekit.config import SerializationConfig

T = TypeVar("T")

logger = logging.getLogger(__name__)


def _properties_as_dict(obj: Any) -> dict[str, Any]:
    """Fallback for objects pydantic cannot serialize natively."""
    properties = get_properties(type(obj))
    if not properties:
        raise TypeError(f"Object of type {type(obj).__name__} is not JSON serializable")
    return {p.name: p.get(obj) for p in properties}


def nesting_depth(value: Any) -> int:
    """Return the container nesting depth of a JSON-compatible value."""
    depth = 0
    stack: list[tuple[Any, int]] = [(value, 1)]
    while stack:
        current, level = stack.pop()
        if isinstance(current, dict):
            depth = max(depth, level)
            stack.extend((v, level + 1) for v in current.values())
        elif isinstance(current, list):
            depth = max(depth, level)
            stack.extend((v, level + 1) for v in current)
    return depth


@lru_cache(maxsize=256)
def _adapter(tp: Any) -> TypeAdapter[Any] | None:
    try:
        return TypeAdapter(tp)
    except PydanticSchemaGenerationError:
        logger.debug("No pydantic schema for %r; using property mapping", tp)
        return None


def _validate(value: Any, target_type: Any) -> Any:
    adapter = _adapter(target_type)
    if adapter is not None:
        return adapter.validate_python(value)

    if not isinstance(value, dict):
        raise TypeError(
            f"Expected a JSON object for {getattr(target_type, '__name__', target_type)}, "
            f"got {type(value).__name__}"
        )
    return build_instance(
        target_type,
        {
            p.name: _validate(value[p.name], p.declared_type)
            for p in get_properties(target_type)
            if p.name in value
        },
    )


def encode_json(obj: Any, *, indent: int | None = None, max_depth: int | None = None) -> str:
    """Serialize *obj* to JSON text, enforcing *max_depth* when given.

    Raises:
        EncodeError: If the object graph is unsupported, circular or too deep.
    """
    try:
        if max_depth is None:
            return _dump_json(obj, indent=indent, fallback=_properties_as_dict).decode(
                "utf-8"
            )
        plain = to_jsonable_python(obj, fallback=_properties_as_dict)
    except (TypeError, ValueError) as exc:
        raise EncodeError(
            f"Cannot serialize {type(obj).__name__} to JSON: {exc}"
        ) from exc

    depth = nesting_depth(plain)
    if depth > max_depth:
        raise EncodeError(
            f"Object graph depth {depth} exceeds max_depth {max_depth}",
            hint="Raise SerializationConfig.max_depth or flatten the object.",
        )
    return _dump_json(plain, indent=indent).decode("utf-8")


def decode_json(text: str | bytes, target_type: Any, *, max_depth: int | None = None) -> Any:
    """Parse JSON text and validate it into *target_type*.

    Raises:
        DecodeError: If the text is malformed, too deep, or does not fit the type.
    """
    try:
        value = _parse_json(text)
    except ValueError as exc:
        raise DecodeError(f"Malformed JSON: {exc}") from exc

    if max_depth is not None:
        depth = nesting_depth(value)
        if depth > max_depth:
            raise DecodeError(
                f"JSON depth {depth} exceeds max_depth {max_depth}",
                hint="Raise SerializationConfig.max_depth for deeply nested payloads.",
            )

    try:
        return _validate(value, target_type)
    except (TypeError, ValueError) as exc:
        raise DecodeError(
            f"JSON does not match {getattr(target_type, '__name__', target_type)}: {exc}"
        ) from exc


def to_json(obj: Any, *, indent: int | None = None) -> str:
    """Serialize *obj* to a JSON string."""
    with wrap_stage(EncodeError, "Error serializing to JSON."):
        return encode_json(obj, indent=indent)


def from_json(text: str, target_type: type[T]) -> T:
    """Deserialize a JSON string into *target_type*."""
    with wrap_stage(DecodeError, "Error deserializing JSON."):
        return decode_json(text, target_type)


async def to_json_async(
    obj: Any,
    config: SerializationConfig | None = None,
    *,
    cancel: asyncio.Event | None = None,
) -> str:
    """Serialize *obj* to indented JSON through the retry executor.

    With compression enabled the payload is
    ``base64(gzip(base64(utf8(json))))``, the layout stored payloads use.

    Raises:
        CancellationError: If *cancel* is set or the deadline expires.
        EncodeError: For every other failure, with the original as cause.
    """
    config = config or DEFAULT_CONFIG

    async def _attempt() -> str:
        text = encode_json(obj, indent=2, max_depth=config.max_depth)
        if config.enable_compression:
            inner = base64.b64encode(text.encode("utf-8")).decode("ascii")
            return compression.wrap(inner)
        return text

    with wrap_stage(EncodeError, "Error serializing to JSON."):
        return await run_with_deadline(
            _attempt, config, cancel=cancel, stage="JSON serialization"
        )


async def from_json_async(
    text: str,
    target_type: type[T],
    config: SerializationConfig | None = None,
    *,
    cancel: asyncio.Event | None = None,
) -> T:
    """Deserialize JSON produced by :func:`to_json_async` into *target_type*.

    Raises:
        ValidationError: If *text* is absent, empty or longer than
            ``config.max_input_length`` (checked before any attempt).
        CancellationError: If *cancel* is set or the deadline expires.
        DecodeError: For every other failure, with the original as cause.
    """
    config = config or DEFAULT_CONFIG
    validate_input(text, config)

    async def _attempt() -> T:
        working: str | bytes = text
        if config.enable_compression:
            working = compression.b64decode(compression.unwrap(text))
        return decode_json(working, target_type, max_depth=config.max_depth)

    with wrap_stage(DecodeError, "Error deserializing JSON."):
        return await run_with_deadline(
            _attempt, config, cancel=cancel, stage="JSON deserialization"
        )
