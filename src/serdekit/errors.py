"""Exception hierarchy and failure classification for serdekit."""

from __future__ import annotations

import asyncio
from contextlib import contextmanager
from enum import Enum
from typing import TYPE_CHECKING, ClassVar

if TYPE_CHECKING:
    from collections.abc import Iterator


class ErrorKind(Enum):
    """Classification of a failed attempt."""

    VALIDATION = "validation"
    DECODE = "decode"
    ENCODE = "encode"
    TRANSIENT = "transient"
    CANCELLED = "cancelled"

    @property
    def retryable(self) -> bool:
        """Only transient failures are eligible for another attempt."""
        return self is ErrorKind.TRANSIENT


class SerdeError(Exception):
    """Base exception for all serdekit errors."""

    kind: ClassVar[ErrorKind] = ErrorKind.TRANSIENT

    def __init__(self, message: str, *, hint: str | None = None) -> None:
        super().__init__(message)
        self.hint = hint


class ConfigurationError(SerdeError):
    """Configuration validation failed."""

    kind = ErrorKind.VALIDATION


class ValidationError(SerdeError):
    """Input rejected before any work was attempted (absent, empty, oversized)."""

    kind = ErrorKind.VALIDATION


class DecodeError(SerdeError):
    """Malformed JSON/XML/CSV structure or an unconvertible field."""

    kind = ErrorKind.DECODE


class EncodeError(SerdeError):
    """The object graph cannot be encoded (unsupported type, depth exceeded)."""

    kind = ErrorKind.ENCODE


class TransientError(SerdeError):
    """A failure worth retrying (stream hiccups and the like)."""

    kind = ErrorKind.TRANSIENT


class CancellationError(SerdeError):
    """Cooperative cancellation was observed; the operation did not complete."""

    kind = ErrorKind.CANCELLED


def classify_failure(exc: BaseException) -> ErrorKind:
    """Return the ErrorKind for an exception raised by an attempt.

    Contract:
    - serdekit errors report their own kind.
    - Cancellation (native or cooperative) is terminal.
    - Permission failures and invalid arguments (ValueError, TypeError) are
      terminal validation failures.
    - Everything else is transient.
    """
    if isinstance(exc, SerdeError):
        return exc.kind
    if isinstance(exc, asyncio.CancelledError):
        return ErrorKind.CANCELLED
    if isinstance(exc, (PermissionError, ValueError, TypeError)):
        return ErrorKind.VALIDATION
    return ErrorKind.TRANSIENT


def is_retryable(exc: BaseException) -> bool:
    """Return True when *exc* should trigger another attempt."""
    return classify_failure(exc).retryable


@contextmanager
def wrap_stage(error_cls: type[SerdeError], message: str) -> Iterator[None]:
    """Re-raise failures as *error_cls(message)*, keeping the original as cause.

    Validation and cancellation errors pass through unchanged so callers can
    still tell rejected input and aborted work apart from codec failures.
    """
    try:
        yield
    except (ValidationError, CancellationError):
        raise
    except Exception as exc:
        raise error_cls(message) from exc
