"""serdekit: resilient JSON, XML and CSV serialization.

Public API:
    - to_json() / from_json(), plus async variants with retry and compression
    - to_xml() / from_xml(): synchronous XML with custom roots and namespaces
    - to_csv() / from_csv(), plus batched async variants
    - write_*_to_file(): file outputs for every format
    - get_property_names() / auto_to_string(): diagnostics
    - SerializationConfig: per-call options with safe defaults
"""

from __future__ import annotations

import logging
from typing import Any

from serdekit.compression import compress, decompress
from serdekit.config import (
    DEFAULT_CONFIG,
    INVARIANT,
    Culture,
    SerializationConfig,
)
from serdekit.convert import format_display_value
from serdekit.csv_codec import (
    from_csv,
    from_csv_async,
    resolve_item_type,
    to_comma_separated,
    to_csv,
    to_csv_async,
)
from serdekit.errors import (
    CancellationError,
    ConfigurationError,
    DecodeError,
    EncodeError,
    ErrorKind,
    SerdeError,
    TransientError,
    ValidationError,
    classify_failure,
)
from serdekit.files import (
    write_csv_to_file,
    write_csv_to_file_async,
    write_json_to_file,
    write_json_to_file_async,
    write_xml_to_file,
    write_xml_to_file_async,
)
from serdekit.introspect import PropertyDescriptor, get_properties
from serdekit.json_codec import from_json, from_json_async, to_json, to_json_async
from serdekit.retry import execute_with_retry
from serdekit.xml_codec import from_xml, to_xml

try:
    from importlib.metadata import PackageNotFoundError, version

    __version__ = version("serdekit")
except PackageNotFoundError:
    __version__ = "0.0.0+unknown"

# Library-level NullHandler: stay silent unless the consumer configures logging.
logging.getLogger("serdekit").addHandler(logging.NullHandler())


def get_property_names(obj: Any) -> list[str]:
    """Return the public property names of *obj* in declaration order."""
    if obj is None:
        return []
    return [p.name for p in get_properties(type(obj))]


def auto_to_string(obj: Any) -> str:
    """Render ``name = value`` pairs for every public property of *obj*.

    Example:
        auto_to_string(Person(name='Ann "A"', active=True, age=None))
        # name = "Ann \\"A\\"", active = true, age = null
    """
    if obj is None:
        return ""
    return ", ".join(
        f"{p.name} = {format_display_value(p.get(obj))}"
        for p in get_properties(type(obj))
    )


__all__ = [
    "DEFAULT_CONFIG",
    "INVARIANT",
    "CancellationError",
    "ConfigurationError",
    "Culture",
    "DecodeError",
    "EncodeError",
    "ErrorKind",
    "PropertyDescriptor",
    "SerdeError",
    "SerializationConfig",
    "TransientError",
    "ValidationError",
    "auto_to_string",
    "classify_failure",
    "compress",
    "decompress",
    "execute_with_retry",
    "from_csv",
    "from_csv_async",
    "from_json",
    "from_json_async",
    "from_xml",
    "get_properties",
    "get_property_names",
    "resolve_item_type",
    "to_comma_separated",
    "to_csv",
    "to_csv_async",
    "to_json",
    "to_json_async",
    "to_xml",
    "write_csv_to_file",
    "write_csv_to_file_async",
    "write_json_to_file",
    "write_json_to_file_async",
    "write_xml_to_file",
    "write_xml_to_file_async",
]
