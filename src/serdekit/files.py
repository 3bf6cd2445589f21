"""File outputs: write encoded payloads as UTF-8 text, creating parent dirs.

Writes are not atomic; an interrupted write can leave a truncated file.
"""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import TYPE_CHECKING, Any

from serdekit.csv_codec import to_csv, to_csv_async
from serdekit.errors import ValidationError
from serdekit.json_codec import to_json, to_json_async
from serdekit.xml_codec import to_xml

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping
    import os

    from serdekit.config import SerializationConfig

logger = logging.getLogger(__name__)


def _prepare_path(obj: Any, path: str | os.PathLike[str]) -> Path:
    if obj is None:
        raise ValidationError("Object to write cannot be None")
    if path is None or not str(path).strip():
        raise ValidationError("Path is required", hint="Pass a file path to write to.")
    target = Path(path)
    target.parent.mkdir(parents=True, exist_ok=True)
    return target


def _write_text(target: Path, text: str) -> None:
    target.write_text(text, encoding="utf-8")
    logger.debug("Wrote %d characters to %s", len(text), target)


def write_csv_to_file(
    objects: Iterable[Any] | Any,
    path: str | os.PathLike[str],
    delimiter: str = ",",
    include_header: bool = True,
) -> Path:
    """Write *objects* as CSV to *path* and return the resolved path."""
    target = _prepare_path(objects, path)
    _write_text(target, to_csv(objects, delimiter, include_header))
    return target


async def write_csv_to_file_async(
    objects: Iterable[Any] | Any,
    path: str | os.PathLike[str],
    config: SerializationConfig | None = None,
    *,
    cancel: asyncio.Event | None = None,
) -> Path:
    """Write *objects* as CSV via :func:`to_csv_async` (retry, batching, compression)."""
    target = _prepare_path(objects, path)
    text = await to_csv_async(objects, config, cancel=cancel)
    await asyncio.to_thread(_write_text, target, text)
    return target


def write_json_to_file(
    obj: Any, path: str | os.PathLike[str], *, indent: int | None = None
) -> Path:
    """Write *obj* as JSON to *path*."""
    target = _prepare_path(obj, path)
    _write_text(target, to_json(obj, indent=indent))
    return target


async def write_json_to_file_async(
    obj: Any,
    path: str | os.PathLike[str],
    config: SerializationConfig | None = None,
    *,
    cancel: asyncio.Event | None = None,
) -> Path:
    """Write *obj* as JSON via :func:`to_json_async` (retry, compression)."""
    target = _prepare_path(obj, path)
    text = await to_json_async(obj, config, cancel=cancel)
    await asyncio.to_thread(_write_text, target, text)
    return target


def write_xml_to_file(
    obj: Any,
    path: str | os.PathLike[str],
    *,
    namespaces: Mapping[str, str] | None = None,
    root_element_name: str | None = None,
) -> Path:
    """Write *obj* as XML to *path*."""
    target = _prepare_path(obj, path)
    _write_text(
        target,
        to_xml(obj, namespaces=namespaces, root_element_name=root_element_name),
    )
    return target


async def write_xml_to_file_async(
    obj: Any,
    path: str | os.PathLike[str],
    *,
    namespaces: Mapping[str, str] | None = None,
    root_element_name: str | None = None,
) -> Path:
    """Encode *obj* as XML synchronously, then write it off the event loop."""
    target = _prepare_path(obj, path)
    text = to_xml(obj, namespaces=namespaces, root_element_name=root_element_name)
    await asyncio.to_thread(_write_text, target, text)
    return target
