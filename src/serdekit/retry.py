"""Async retry with linear backoff and explicit failure classification.

Design goals:
- Small API surface
- Explicit state (config + attempt counter)
- Classification through ErrorKind, never through message matching
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, TypeVar

from serdekit.config import DEFAULT_CONFIG, SerializationConfig
from serdekit.errors import CancellationError, classify_failure, is_retryable

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

T = TypeVar("T")

logger = logging.getLogger(__name__)


def compute_backoff_delay(config: SerializationConfig, *, retry_index: int) -> float:
    """Return the wait before retry number *retry_index* (1-based), linearly scaled."""
    return max(0.0, config.retry_delay_s * retry_index)


def raise_if_cancelled(cancel: asyncio.Event | None, *, stage: str = "operation") -> None:
    """Raise CancellationError when the cooperative *cancel* signal is set."""
    if cancel is not None and cancel.is_set():
        raise CancellationError(f"{stage} was cancelled")


async def _wait_backoff(delay: float, cancel: asyncio.Event | None) -> None:
    """Sleep for *delay* seconds, aborting early if *cancel* is set."""
    if cancel is None:
        if delay > 0:
            await asyncio.sleep(delay)
        return

    raise_if_cancelled(cancel, stage="retry backoff")
    if delay <= 0:
        return
    try:
        await asyncio.wait_for(cancel.wait(), timeout=delay)
    except TimeoutError:
        return
    raise CancellationError("retry backoff was cancelled")


async def execute_with_retry(
    operation: Callable[[], Awaitable[T]],
    config: SerializationConfig | None = None,
    *,
    cancel: asyncio.Event | None = None,
    should_retry: Callable[[BaseException], bool] = is_retryable,
) -> T:
    """Run an async factory, retrying transient failures with linear backoff.

    Terminal failures (validation, decode, encode, cancellation) propagate on
    the attempt that raised them. Transient failures are retried up to
    ``config.max_retries`` times, waiting ``retry_delay_s * n`` before the
    n-th retry; once exhausted, the last failure propagates.
    """
    config = config or DEFAULT_CONFIG
    retries = 0

    while True:
        raise_if_cancelled(cancel)
        try:
            return await operation()
        except Exception as exc:
            if not should_retry(exc):
                raise
            if retries >= config.max_retries:
                if config.max_retries:
                    logger.warning(
                        "Giving up after %d retries: %s", retries, exc
                    )
                raise

            retries += 1
            delay = compute_backoff_delay(config, retry_index=retries)
            logger.debug(
                "Attempt %d failed (%s: %s); retrying in %.2fs",
                retries,
                classify_failure(exc).value,
                exc,
                delay,
            )
            await _wait_backoff(delay, cancel)


async def run_with_deadline(
    operation: Callable[[], Awaitable[T]],
    config: SerializationConfig | None = None,
    *,
    cancel: asyncio.Event | None = None,
    stage: str = "operation",
) -> T:
    """Run :func:`execute_with_retry` under ``config.timeout_s``.

    The deadline covers every attempt and backoff wait. Expiry is reported
    as CancellationError, the same way a caller-set *cancel* signal is.
    """
    config = config or DEFAULT_CONFIG
    if config.timeout_s is None:
        return await execute_with_retry(operation, config, cancel=cancel)

    deadline = asyncio.timeout(config.timeout_s)
    try:
        async with deadline:
            return await execute_with_retry(operation, config, cancel=cancel)
    except TimeoutError as exc:
        if not deadline.expired():
            raise
        raise CancellationError(
            f"{stage} timed out after {config.timeout_s}s",
            hint="Raise SerializationConfig.timeout_s or pass timeout_s=None.",
        ) from exc
