"""Compression envelope: gzip for bytes, base64 on top for text payloads."""

from __future__ import annotations

import base64
import binascii
import gzip
import zlib

from serdekit.errors import DecodeError


def compress(text: str) -> bytes:
    """Gzip the UTF-8 encoding of *text*."""
    return gzip.compress(text.encode("utf-8"))


def decompress(data: bytes) -> str:
    """Inverse of :func:`compress`.

    Raises:
        DecodeError: If *data* is not a gzip stream of UTF-8 text.
    """
    try:
        return gzip.decompress(data).decode("utf-8")
    except (OSError, EOFError, zlib.error, UnicodeDecodeError) as exc:
        raise DecodeError(
            "Compressed payload is malformed",
            hint="Was the payload produced with enable_compression=True?",
        ) from exc


def wrap(text: str) -> str:
    """Compress *text* and return it as a printable base64 string."""
    return base64.b64encode(compress(text)).decode("ascii")


def unwrap(payload: str) -> str:
    """Inverse of :func:`wrap`."""
    return decompress(b64decode(payload))


def b64decode(payload: str) -> bytes:
    """Strict base64 decode raising DecodeError on malformed input."""
    try:
        return base64.b64decode(payload.strip(), validate=True)
    except (binascii.Error, ValueError) as exc:
        raise DecodeError("Payload is not valid base64") from exc
