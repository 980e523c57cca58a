"""
Retry policy for upstream reads

One policy object wraps every Deribit call: a bounded number of attempts,
linear backoff between them and a deadline on each attempt.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, TypeVar

import aiohttp
from tenacity import (
    AsyncRetrying,
    before_sleep_log,
    retry_if_exception_type,
    stop_after_attempt,
    wait_incrementing,
)

from deribit_gex.exceptions import FetchError

logger = logging.getLogger(__name__)

T = TypeVar('T')

RETRYABLE_EXCEPTIONS = (aiohttp.ClientError, asyncio.TimeoutError)


@dataclass(frozen=True)
class RetryPolicy:
    """
    Args:
        max_retries: Retries after the first attempt (2 -> 3 attempts)
        backoff_seconds: Wait before retry n is n * backoff_seconds
        attempt_timeout: Deadline for a single attempt in seconds
    """
    max_retries: int = 2
    backoff_seconds: float = 1.0
    attempt_timeout: float = 15.0

    @property
    def max_attempts(self) -> int:
        return self.max_retries + 1

    def _retrying(self) -> AsyncRetrying:
        return AsyncRetrying(
            stop=stop_after_attempt(self.max_attempts),
            wait=wait_incrementing(start=self.backoff_seconds, increment=self.backoff_seconds),
            retry=retry_if_exception_type(RETRYABLE_EXCEPTIONS),
            before_sleep=before_sleep_log(logger, logging.WARNING),
            reraise=True
        )

    async def run(self, operation: Callable[[], Awaitable[T]], description: str = 'request') -> T:
        """
        Await operation() under this policy

        Transport errors and timeouts are retried. Anything else (including
        FetchError for upstream error payloads) propagates immediately.

        Raises:
            FetchError: when every attempt failed
        """
        try:
            async for attempt in self._retrying():
                with attempt:
                    n = attempt.retry_state.attempt_number
                    logger.debug(f"{description}: attempt {n}/{self.max_attempts}")
                    return await asyncio.wait_for(operation(), timeout=self.attempt_timeout)
        except asyncio.TimeoutError:
            message = f"timed out after {self.attempt_timeout:g}s"
        except aiohttp.ClientError as e:
            message = str(e) or e.__class__.__name__

        logger.error(f"{description} failed after {self.max_attempts} attempts: {message}")
        raise FetchError(
            f"Failed after {self.max_attempts} attempts: {message}",
            method=description
        )
