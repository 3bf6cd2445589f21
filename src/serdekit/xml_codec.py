"""XML codec: synchronous, property-driven, built on ElementTree."""

from __future__ import annotations

from collections.abc import Mapping
import types
import typing
from typing import Any, TypeVar
import xml.etree.ElementTree as ET

from serdekit.config import DEFAULT_CONFIG
from serdekit.convert import SCALAR_TYPES, format_value, parse_text
from serdekit.csv_codec import is_collection
from serdekit.errors import DecodeError, EncodeError, ValidationError, wrap_stage
from serdekit.introspect import build_instance, get_properties

T = TypeVar("T")

XML_DECLARATION = '<?xml version="1.0" encoding="utf-8"?>'

_SEQUENCE_ORIGINS = (list, tuple, set, frozenset)

_XSI_NIL = "{http://www.w3.org/2001/XMLSchema-instance}nil"
_NIL_TAG = "null"


def _local_name(tag: str) -> str:
    return tag.rsplit("}", 1)[-1]


def _allows_none(tp: Any) -> bool:
    if tp is Any or tp is object or tp is type(None):
        return True
    origin = typing.get_origin(tp)
    return origin in (typing.Union, types.UnionType) and type(None) in typing.get_args(tp)


def _is_record_type(tp: Any) -> bool:
    return (
        isinstance(tp, type)
        and not issubclass(tp, SCALAR_TYPES)
        and bool(get_properties(tp))
    )


# =============================================================================
# Encoding
# =============================================================================


def _write_value(element: ET.Element, value: Any, depth: int, max_depth: int) -> None:
    if depth > max_depth:
        raise EncodeError(
            f"Object graph exceeds max_depth {max_depth}",
            hint="Circular references cannot be written as XML.",
        )

    if isinstance(value, SCALAR_TYPES):
        element.text = format_value(value)
        return

    if isinstance(value, Mapping):
        children = [(str(key), item) for key, item in value.items()]
    elif is_collection(value):
        # Sequence items are positional, so None keeps its slot as a nil element.
        for item in value:
            if item is None:
                ET.SubElement(element, _NIL_TAG, {_XSI_NIL: "true"})
            else:
                child = ET.SubElement(element, type(item).__name__)
                _write_value(child, item, depth + 1, max_depth)
        return
    elif _is_record_type(type(value)):
        children = [(p.name, p.get(value)) for p in get_properties(type(value))]
    else:
        element.text = format_value(value)
        return

    for tag, item in children:
        if item is not None:
            _write_value(ET.SubElement(element, tag), item, depth + 1, max_depth)


def to_xml(
    obj: Any,
    *,
    namespaces: Mapping[str, str] | None = None,
    root_element_name: str | None = None,
    max_depth: int = DEFAULT_CONFIG.max_depth,
) -> str:
    """Serialize *obj* to an XML document.

    The root element is named after the type unless *root_element_name* is
    given. *namespaces* maps prefixes to URIs and is declared on the root; an
    empty prefix declares the default namespace. Without it, no namespace
    declarations are emitted, except ``xmlns:xsi`` when a sequence holds
    ``None`` items (written as ``<null xsi:nil="true" />``).

    ``None`` properties are omitted and read back as ``None`` when the
    declared type is optional.

    Raises:
        ValidationError: If *obj* is None.
        EncodeError: If the object graph cannot be represented.
    """
    if obj is None:
        raise ValidationError("Object to serialize cannot be None")

    with wrap_stage(EncodeError, "Error serializing to XML."):
        root = ET.Element(root_element_name or type(obj).__name__)
        for prefix, uri in (namespaces or {}).items():
            root.set(f"xmlns:{prefix}" if prefix else "xmlns", uri)
        _write_value(root, obj, 0, max_depth)
        ET.indent(root, space="  ")
        return XML_DECLARATION + "\n" + ET.tostring(root, encoding="unicode")


# =============================================================================
# Decoding
# =============================================================================


def _read_value(element: ET.Element, declared_type: Any) -> Any:
    if element.get(_XSI_NIL) == "true":
        if not _allows_none(declared_type):
            raise DecodeError(
                f"<{_local_name(element.tag)}> is nil but {declared_type!r} is not optional"
            )
        return None

    origin = typing.get_origin(declared_type)
    args = typing.get_args(declared_type)

    if origin in (typing.Union, types.UnionType):
        non_null = [a for a in args if a is not type(None)]
        if len(non_null) == 1:
            return _read_value(element, non_null[0])
        return parse_text(element.text or "", declared_type)

    if origin in _SEQUENCE_ORIGINS:
        item_type = args[0] if args else Any
        items = [_read_value(child, item_type) for child in element]
        return items if origin is list else origin(items)

    if origin is dict:
        value_type = args[1] if len(args) == 2 else Any
        return {
            _local_name(child.tag): _read_value(child, value_type) for child in element
        }

    if _is_record_type(declared_type):
        return _read_record(element, declared_type)

    return parse_text(element.text or "", declared_type)


def _read_record(element: ET.Element, tp: type[T]) -> T:
    children = {_local_name(child.tag): child for child in element}
    values: dict[str, Any] = {}
    for prop in get_properties(tp):
        if prop.name in children:
            values[prop.name] = _read_value(children[prop.name], prop.declared_type)
        elif _allows_none(prop.declared_type):
            # None properties are omitted on write.
            values[prop.name] = None
    return build_instance(tp, values)


def from_xml(
    text: str, target_type: type[T], *, root_element_name: str | None = None
) -> T:
    """Deserialize an XML document into *target_type*.

    Raises:
        ValidationError: If *text* is None or empty.
        DecodeError: If the document is malformed, has an unexpected root
            element, or a value cannot be converted.
    """
    if not text:
        raise ValidationError("XML input cannot be empty")

    expected_root = root_element_name or target_type.__name__
    with wrap_stage(DecodeError, "Error deserializing XML."):
        root = ET.fromstring(text)
        if _local_name(root.tag) != expected_root:
            raise DecodeError(
                f"Expected root element <{expected_root}>, found <{_local_name(root.tag)}>",
                hint="Pass root_element_name= when the document uses a custom root.",
            )
        return _read_value(root, target_type)
