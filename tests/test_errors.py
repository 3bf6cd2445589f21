from __future__ import annotations

import asyncio

import pytest

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
    is_retryable,
    wrap_stage,
)

pytestmark = pytest.mark.unit


def test_serde_error_carries_hint() -> None:
    err = DecodeError("boom", hint="do this")

    assert str(err) == "boom"
    assert err.hint == "do this"
    assert err.kind is ErrorKind.DECODE


def test_hint_defaults_to_none() -> None:
    assert EncodeError("fail").hint is None


def test_subclass_hierarchy() -> None:
    """Every library error is catchable as SerdeError."""
    for cls in (
        ConfigurationError,
        ValidationError,
        DecodeError,
        EncodeError,
        TransientError,
        CancellationError,
    ):
        assert issubclass(cls, SerdeError)


@pytest.mark.parametrize(
    ("exc", "kind"),
    [
        (ValidationError("empty"), ErrorKind.VALIDATION),
        (ConfigurationError("bad"), ErrorKind.VALIDATION),
        (DecodeError("bad json"), ErrorKind.DECODE),
        (EncodeError("cycle"), ErrorKind.ENCODE),
        (CancellationError("stop"), ErrorKind.CANCELLED),
        (TransientError("blip"), ErrorKind.TRANSIENT),
        (asyncio.CancelledError(), ErrorKind.CANCELLED),
        (PermissionError("denied"), ErrorKind.VALIDATION),
        (ValueError("bad arg"), ErrorKind.VALIDATION),
        (TypeError("wrong type"), ErrorKind.VALIDATION),
        (OSError("disk hiccup"), ErrorKind.TRANSIENT),
        (TimeoutError(), ErrorKind.TRANSIENT),
        (RuntimeError("unknown"), ErrorKind.TRANSIENT),
    ],
)
def test_classify_failure(exc: BaseException, kind: ErrorKind) -> None:
    assert classify_failure(exc) is kind
    assert is_retryable(exc) is (kind is ErrorKind.TRANSIENT)


def test_wrap_stage_keeps_original_as_cause() -> None:
    with pytest.raises(EncodeError, match="Error serializing") as exc:
        with wrap_stage(EncodeError, "Error serializing."):
            raise OSError("disk full")

    assert isinstance(exc.value.__cause__, OSError)


@pytest.mark.parametrize("error", [ValidationError("empty"), CancellationError("stop")])
def test_wrap_stage_passes_validation_and_cancellation_through(
    error: SerdeError,
) -> None:
    with pytest.raises(type(error)) as exc:
        with wrap_stage(DecodeError, "Error deserializing."):
            raise error

    assert exc.value is error
