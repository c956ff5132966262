"""Retry helper with exponential backoff and deterministic jitter."""

import asyncio
import logging
import socket
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import TypeVar

import httpx

from create_pr.errors import PermanentProviderError, ProviderError, TransientProviderError

logger = logging.getLogger(__name__)

T = TypeVar("T")

RETRYABLE_STATUS_CODES = frozenset({429})


def is_retryable_error(error: BaseException) -> bool:
    """Classify an error as transient (worth retrying) or not.

    Transient: provider errors already classified as transient, transport
    timeouts, connection resets, DNS failures, HTTP 429 and 5xx.
    """
    if isinstance(error, TransientProviderError):
        return True
    if isinstance(error, PermanentProviderError):
        return False

    if isinstance(error, httpx.TimeoutException | httpx.NetworkError):
        return True
    if isinstance(error, ConnectionResetError | TimeoutError | socket.gaierror):
        return True

    status_code: int | None = None
    if isinstance(error, httpx.HTTPStatusError):
        status_code = error.response.status_code
    elif isinstance(error, ProviderError):
        status_code = error.status_code

    if status_code is not None:
        return status_code in RETRYABLE_STATUS_CODES or 500 <= status_code < 600

    return False


def _default_should_retry(error: BaseException, _attempt: int) -> bool:
    return is_retryable_error(error)


@dataclass
class RetryOptions:
    """Knobs for :func:`retry`. Delays are in seconds."""

    max_attempts: int = 3
    initial_delay: float = 1.0
    max_delay: float = 30.0
    backoff_multiplier: float = 2.0
    should_retry: Callable[[BaseException, int], bool] = _default_should_retry
    on_retry: Callable[[BaseException, int, float], None] | None = None
    sleep: Callable[[float], Awaitable[None]] = field(default=asyncio.sleep)


def jitter_factor(attempt: int) -> float:
    """Deterministic jitter in [0.9, 1.1], cycling with the attempt number."""
    return 0.9 + ((attempt * 7) % 21) * 0.01


def calculate_delay(attempt: int, options: RetryOptions) -> float:
    """Delay to wait after failed attempt ``attempt`` (1-based)."""
    exponential_delay = options.initial_delay * (
        options.backoff_multiplier ** (attempt - 1)
    )
    return min(options.max_delay, exponential_delay * jitter_factor(attempt))


async def retry(
    operation: Callable[[], Awaitable[T]],
    options: RetryOptions | None = None,
) -> T:
    """Run ``operation`` until it succeeds or the retry budget is exhausted.

    Args:
        operation: Zero-argument callable returning an awaitable
        options: Retry configuration (defaults to :class:`RetryOptions`)

    Returns:
        The operation's result

    Raises:
        The last error raised by the operation, unchanged
    """
    opts = options or RetryOptions()
    if opts.max_attempts < 1:
        raise ValueError("max_attempts must be at least 1")

    attempt = 1
    while True:
        try:
            return await operation()
        except Exception as error:
            if attempt >= opts.max_attempts:
                logger.debug(f"Retry budget exhausted after {attempt} attempt(s): {error}")
                raise
            if not opts.should_retry(error, attempt):
                logger.debug(f"Not retrying error on attempt {attempt}: {error}")
                raise

            delay = calculate_delay(attempt, opts)
            if opts.on_retry:
                try:
                    opts.on_retry(error, attempt, delay)
                except Exception as callback_error:
                    logger.warning(f"on_retry callback failed: {callback_error}")

            logger.info(
                f"Retrying in {delay:.2f} seconds (attempt {attempt}/{opts.max_attempts}): {error}"
            )
            await opts.sleep(delay)
            attempt += 1


def with_retry(
    operation: Callable[[], Awaitable[T]],
    options: RetryOptions | None = None,
) -> Callable[[], Awaitable[T]]:
    """Wrap ``operation`` so that every call goes through :func:`retry`."""

    async def wrapped() -> T:
        return await retry(operation, options)

    return wrapped
