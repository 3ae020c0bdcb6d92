from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import TypeVar

import httpx

from knowledge_sync.services.errors import RemoteCallError, RemoteStatusError

logger = logging.getLogger(__name__)

T = TypeVar("T")

_RETRYABLE_TRANSPORT_ERRORS: tuple[type[BaseException], ...] = (
    httpx.TimeoutException,
    httpx.NetworkError,
    httpx.RemoteProtocolError,
    TimeoutError,
    ConnectionError,
)


def is_retryable(exc: BaseException) -> bool:
    """Rate limits, 5xx answers and dropped or timed-out connections are worth another try."""

    if isinstance(exc, RemoteStatusError):
        return exc.retryable
    return isinstance(exc, _RETRYABLE_TRANSPORT_ERRORS)


class RetryExecutor:
    """Runs one remote call with exponential backoff between retryable failures."""

    def __init__(
        self,
        max_attempts: int = 3,
        initial_delay_seconds: float = 1.0,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self._max_attempts = max_attempts
        self._initial_delay_seconds = initial_delay_seconds
        self._sleep = sleep

    async def execute(
        self,
        operation: Callable[[], Awaitable[T]],
        *,
        max_attempts: int | None = None,
        initial_delay_seconds: float | None = None,
        description: str = "remote call",
    ) -> T:
        attempts_allowed = self._max_attempts if max_attempts is None else max_attempts
        if attempts_allowed < 1:
            raise ValueError("max_attempts must be at least 1")
        delay = self._initial_delay_seconds if initial_delay_seconds is None else initial_delay_seconds

        attempt = 0
        while True:
            attempt += 1
            try:
                return await operation()
            except Exception as exc:
                if not is_retryable(exc):
                    raise
                if attempt >= attempts_allowed:
                    logger.error(
                        "remote call exhausted retries",
                        extra={"operation": description, "attempts": attempt, "error": str(exc)},
                    )
                    raise RemoteCallError(attempts=attempt, cause=exc) from exc

                logger.warning(
                    "retrying remote call",
                    extra={
                        "operation": description,
                        "attempt": attempt,
                        "max_attempts": attempts_allowed,
                        "delay_seconds": delay,
                        "error": str(exc),
                    },
                )
                await self._sleep(delay)
                delay *= 2
