"""CSV codec: objects and collections to delimited text and back.

Rows are built from the Property Introspector's cached descriptors, so a
type is reflected once no matter how many records are written or read.
"""

from __future__ import annotations

import asyncio
from collections.abc import Iterable, Iterator, Mapping
import csv
import io
import logging
from typing import TYPE_CHECKING, Any, TypeVar

from pydantic import BaseModel

from serdekit import compression
from serdekit.config import DEFAULT_CONFIG, INVARIANT, Culture, validate_input
from serdekit.convert import escape_csv_value, format_value, parse_text
from serdekit.errors import DecodeError, EncodeError, ValidationError, wrap_stage
from serdekit.introspect import build_instance, get_properties
from serdekit.retry import raise_if_cancelled, run_with_deadline

if TYPE_CHECKING:
    from serdekit.config import SerializationConfig
    from serdekit.introspect import PropertyDescriptor

T = TypeVar("T")

logger = logging.getLogger(__name__)

_LINE_TERMINATOR = "\r\n"


def is_collection(obj: Any) -> bool:
    """Return True for iterables that hold records (not strings, mappings or models)."""
    return isinstance(obj, Iterable) and not isinstance(
        obj, (str, bytes, bytearray, Mapping, BaseModel)
    )


def resolve_item_type(items: Iterable[Any]) -> type | None:
    """Return the type of the first non-null item, or None when there is none."""
    for item in items:
        if item is not None:
            return type(item)
    return None


def _check_delimiter(delimiter: str) -> None:
    if not isinstance(delimiter, str) or len(delimiter) != 1:
        raise ValidationError(
            f"Delimiter must be a single character, got {delimiter!r}",
            hint="Common choices are ',', ';' and '\\t'.",
        )


class _RowRenderer:
    """Dispatches rows of one resolved element type to its property table."""

    def __init__(self, item_type: type, culture: Culture = INVARIANT) -> None:
        self.item_type = item_type
        self.culture = culture
        self.properties: tuple[PropertyDescriptor, ...] = get_properties(item_type)

    def header(self) -> list[str]:
        return [p.name for p in self.properties]

    def row(self, item: Any) -> list[str]:
        if item is None:
            return [""] * len(self.properties)
        if not isinstance(item, self.item_type):
            raise EncodeError(
                f"Cannot write {type(item).__name__} in a collection of "
                f"{self.item_type.__name__}",
                hint="CSV collections must hold items of a single type.",
            )
        return [format_value(p.get(item), self.culture) for p in self.properties]


def _new_writer(buffer: io.StringIO, delimiter: str) -> Any:
    return csv.writer(
        buffer,
        delimiter=delimiter,
        quoting=csv.QUOTE_MINIMAL,
        lineterminator=_LINE_TERMINATOR,
    )


# =============================================================================
# Encoding
# =============================================================================


def to_comma_separated(obj: Any) -> str:
    """Render the public properties of *obj* as a single comma-separated line."""
    if obj is None:
        return ""

    properties = get_properties(type(obj))
    if not properties:
        return ""

    values: list[str] = []
    for prop in properties:
        value = prop.get(obj)
        if isinstance(value, str):
            values.append(escape_csv_value(value))
        else:
            values.append(format_value(value))
    return ",".join(values)


def to_csv(obj: Any, delimiter: str = ",", include_header: bool = True) -> str:
    """Serialize an object or a collection of objects to CSV text.

    A single object is written as a one-row collection. The element type of a
    collection is resolved from its first non-null item; empty or all-null
    collections produce an empty string.
    """
    if obj is None:
        return ""
    _check_delimiter(delimiter)

    items = list(obj) if is_collection(obj) else [obj]
    item_type = resolve_item_type(items)
    if item_type is None:
        return ""

    renderer = _RowRenderer(item_type)
    if not renderer.properties:
        return ""

    buffer = io.StringIO()
    writer = _new_writer(buffer, delimiter)
    if include_header:
        writer.writerow(renderer.header())
    for item in items:
        writer.writerow(renderer.row(item))
    return buffer.getvalue()


def _peek_item_type(
    source: Iterator[Any], cancel: asyncio.Event | None
) -> tuple[type | None, Iterator[Any]]:
    """Resolve the element type without losing the items consumed to find it."""
    consumed: list[Any] = []
    for item in source:
        raise_if_cancelled(cancel, stage="CSV write")
        consumed.append(item)
        if item is not None:
            return type(item), _chain(consumed, source)
    return None, iter(consumed)


def _chain(head: list[Any], tail: Iterator[Any]) -> Iterator[Any]:
    yield from head
    yield from tail


def _fill_batch(
    batch: list[Any], source: Iterator[Any], size: int, cancel: asyncio.Event | None
) -> list[Any]:
    batch.clear()
    for _ in range(size):
        raise_if_cancelled(cancel, stage="CSV write")
        try:
            batch.append(next(source))
        except StopIteration:
            break
    return batch


async def to_csv_async(
    objects: Iterable[Any] | Any,
    config: SerializationConfig | None = None,
    *,
    cancel: asyncio.Event | None = None,
    delimiter: str = ",",
    include_header: bool = True,
    item_type: type | None = None,
) -> str:
    """Serialize a collection to CSV in batches of ``config.batch_size``.

    The header is written once, then records are pulled from *objects* one
    batch at a time until the source is exhausted. Each attempt iterates
    *objects* afresh, so pass a re-iterable collection when retries matter.

    Raises:
        ValidationError: If *objects* is None or the delimiter is invalid.
        CancellationError: If *cancel* is set or the deadline expires.
        EncodeError: For every other failure, with the original as cause.
    """
    config = config or DEFAULT_CONFIG
    if objects is None:
        raise ValidationError("Objects to serialize cannot be None")
    _check_delimiter(delimiter)

    async def _write_records() -> str:
        source = iter(objects) if is_collection(objects) else iter([objects])
        resolved = item_type
        if resolved is None:
            resolved, source = _peek_item_type(source, cancel)
        if resolved is None:
            return ""

        renderer = _RowRenderer(resolved, config.culture)
        if not renderer.properties:
            return ""

        buffer = io.StringIO()
        writer = _new_writer(buffer, delimiter)
        if include_header:
            writer.writerow(renderer.header())

        batch: list[Any] = []
        written = 0
        while _fill_batch(batch, source, config.batch_size, cancel):
            for item in batch:
                writer.writerow(renderer.row(item))
            written += len(batch)
            logger.debug("Flushed CSV batch of %d (%d total)", len(batch), written)
            await asyncio.sleep(0)
        return buffer.getvalue()

    async def _attempt() -> str:
        result = await _write_records()
        if config.enable_compression:
            return compression.wrap(result)
        return result

    with wrap_stage(EncodeError, "Error serializing to CSV."):
        return await run_with_deadline(
            _attempt, config, cancel=cancel, stage="CSV serialization"
        )


# =============================================================================
# Decoding
# =============================================================================


def _convert_fields(
    item_type: type,
    pairs: Iterable[tuple[PropertyDescriptor, str]],
    culture: Culture,
    record_num: int,
) -> Any:
    values: dict[str, Any] = {}
    for prop, raw in pairs:
        try:
            values[prop.name] = parse_text(raw, prop.declared_type, culture)
        except (TypeError, ValueError) as exc:
            raise DecodeError(
                f"Record {record_num}: cannot convert {raw!r} to "
                f"{getattr(prop.declared_type, '__name__', prop.declared_type)} "
                f"for property {prop.name!r}"
            ) from exc
    try:
        return build_instance(item_type, values)
    except (TypeError, ValueError) as exc:
        raise DecodeError(
            f"Record {record_num}: cannot build {item_type.__name__} from {values!r}"
        ) from exc


def iter_records(
    rows: Iterator[list[str]],
    item_type: type[T],
    *,
    has_header: bool = False,
    culture: Culture = INVARIANT,
    cancel: asyncio.Event | None = None,
) -> Iterator[T]:
    """Yield one *item_type* instance per non-blank CSV row.

    Without a header, fields are assigned positionally in property
    declaration order and the field count must match exactly. With a header,
    fields are mapped by column name and every property needs a column.
    Every data row must have as many fields as the header. Records are
    numbered from the first data row in error messages.
    """
    properties = get_properties(item_type)
    if not properties:
        raise DecodeError(f"{item_type.__name__} has no public properties to populate")

    columns: dict[str, int] | None = None
    width = len(properties)
    record_num = 0
    for row in rows:
        raise_if_cancelled(cancel, stage="CSV read")
        if not row:
            continue

        if has_header and columns is None:
            columns = {name: i for i, name in enumerate(row)}
            width = len(row)
            missing = [p.name for p in properties if p.name not in columns]
            if missing:
                raise DecodeError(
                    f"Header is missing columns for {', '.join(missing)}",
                    hint=f"Header was: {row!r}",
                )
            continue

        record_num += 1
        if len(row) != width:
            raise DecodeError(
                f"Record {record_num}: expected {width} fields, got {len(row)}",
                hint=(
                    None
                    if columns is not None
                    else "Pass has_header=True if the first line holds column names."
                ),
            )
        if columns is not None:
            pairs = [(p, row[columns[p.name]]) for p in properties]
        else:
            pairs = list(zip(properties, row, strict=True))

        yield _convert_fields(item_type, pairs, culture, record_num)


def _reader(text: str, delimiter: str) -> Iterator[list[str]]:
    return csv.reader(io.StringIO(text, newline=""), delimiter=delimiter, strict=True)


def from_csv(
    text: str, item_type: type[T], delimiter: str = ",", has_header: bool = False
) -> list[T]:
    """Deserialize CSV text into a list of *item_type* instances.

    CSV has no null marker: an empty field read into an optional property
    (``str | None``) becomes ``None``, so an empty string written by
    :func:`to_csv` does not survive the round trip.
    """
    if text is None:
        raise ValidationError("CSV input cannot be None")
    _check_delimiter(delimiter)
    try:
        return list(
            iter_records(_reader(text, delimiter), item_type, has_header=has_header)
        )
    except csv.Error as exc:
        raise DecodeError(f"Malformed CSV: {exc}") from exc


async def from_csv_async(
    text: str,
    item_type: type[T],
    config: SerializationConfig | None = None,
    *,
    cancel: asyncio.Event | None = None,
    delimiter: str = ",",
    has_header: bool = True,
) -> list[T]:
    """Deserialize CSV text produced by :func:`to_csv_async`.

    Input is validated before any work starts. Inside each attempt the
    compression envelope is removed (when enabled) and records are streamed
    with a cancellation check before each one.

    Raises:
        ValidationError: If *text* is absent, empty or longer than
            ``config.max_input_length``.
        CancellationError: If *cancel* is set or the deadline expires.
        DecodeError: For every other failure, with the original as cause.
    """
    config = config or DEFAULT_CONFIG
    validate_input(text, config)
    _check_delimiter(delimiter)

    async def _attempt() -> list[T]:
        working = compression.unwrap(text) if config.enable_compression else text
        records: list[T] = []
        try:
            for record in iter_records(
                _reader(working, delimiter),
                item_type,
                has_header=has_header,
                culture=config.culture,
                cancel=cancel,
            ):
                records.append(record)
                if len(records) % config.batch_size == 0:
                    await asyncio.sleep(0)
        except csv.Error as exc:
            raise DecodeError(f"Malformed CSV: {exc}") from exc
        return records

    with wrap_stage(DecodeError, "Error deserializing CSV."):
        return await run_with_deadline(
            _attempt, config, cancel=cancel, stage="CSV deserialization"
        )
