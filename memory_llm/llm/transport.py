"""
Retrying HTTP transport for provider calls.

``RetryTransport`` sits under the provider SDKs' ``httpx.AsyncClient`` so every
completion and embedding request gets the same policy:

- a request whose deadline has already passed is never sent
- HTTP 400 is returned at once; providers use it for context-length errors
  that no retry can fix
- network errors, 429 and 5xx (except 501) are retried with exponential
  backoff, honoring ``Retry-After``
- each attempt is bounded by ``per_attempt_timeout``; backoff sleeps are
  cancellable and never run past the request deadline
"""

import asyncio
import logging
from typing import Awaitable, Callable, Optional

import httpx

from memory_llm.llm.context import deadline_expired, remaining_time
from memory_llm.llm.interfaces.llm_provider_interface import (
    LLMCancellationError,
    LLMTransientError,
)
from memory_llm.llm.provider_config import MAX_OPENAI_API_REQUEST_ATTEMPTS, OPENAI_API_TIMEOUT

logger = logging.getLogger(__name__)

SleepFunc = Callable[[float], Awaitable[None]]

DEFAULT_MIN_BACKOFF = 1.0
DEFAULT_MAX_BACKOFF = 30.0


def is_retryable_status(status_code: int) -> bool:
    """Whether a response status warrants another attempt."""
    if status_code == 400:
        return False
    if status_code == 429:
        return True
    # 501 Not Implemented will not change between attempts
    return status_code >= 500 and status_code != 501


def _retry_after(response: Optional[httpx.Response]) -> Optional[float]:
    if response is None or response.status_code not in (429, 503):
        return None
    value = response.headers.get("Retry-After")
    if value is None:
        return None
    try:
        return max(0.0, float(value))
    except ValueError:
        return None


class RetryTransport(httpx.AsyncBaseTransport):
    """
    httpx transport wrapper with bounded retries and exponential backoff.

    Args:
        max_attempts: Total number of attempts, first one included
        per_attempt_timeout: Seconds each attempt may take
        transport: Transport that actually sends requests
        min_backoff: Delay before the first retry
        max_backoff: Cap on the exponential delay
        sleep: Sleep coroutine, injectable for tests
    """

    def __init__(
        self,
        max_attempts: int = MAX_OPENAI_API_REQUEST_ATTEMPTS,
        per_attempt_timeout: Optional[float] = OPENAI_API_TIMEOUT,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        min_backoff: float = DEFAULT_MIN_BACKOFF,
        max_backoff: float = DEFAULT_MAX_BACKOFF,
        sleep: Optional[SleepFunc] = None,
    ):
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")

        self.max_attempts = max_attempts
        self.per_attempt_timeout = per_attempt_timeout
        self.min_backoff = min_backoff
        self.max_backoff = max_backoff
        self._transport = transport or httpx.AsyncHTTPTransport()
        self._sleep = sleep or asyncio.sleep

    def backoff(self, attempt: int, response: Optional[httpx.Response] = None) -> float:
        """Delay before the retry following ``attempt`` (0-based)."""
        retry_after = _retry_after(response)
        if retry_after is not None:
            return retry_after
        return min(self.min_backoff * (2**attempt), self.max_backoff)

    def _attempt_timeout(self) -> Optional[float]:
        timeout = self.per_attempt_timeout
        remaining = remaining_time()
        if remaining is not None:
            timeout = remaining if timeout is None else min(timeout, remaining)
        return timeout

    def _check_deadline(self, request: httpx.Request) -> None:
        if deadline_expired():
            raise LLMCancellationError(
                f"request deadline exceeded before sending {request.method} {request.url}"
            )

    async def _wait(self, delay: float) -> None:
        remaining = remaining_time()
        if remaining is not None and delay >= remaining:
            # The retry could only start after the deadline
            raise LLMCancellationError(
                f"request deadline exceeded, {delay:.1f}s backoff left no time to retry"
            )
        await self._sleep(delay)

    async def handle_async_request(self, request: httpx.Request) -> httpx.Response:
        last_error: Optional[BaseException] = None
        response: Optional[httpx.Response] = None

        for attempt in range(self.max_attempts):
            self._check_deadline(request)
            response = None

            try:
                response = await asyncio.wait_for(
                    self._transport.handle_async_request(request),
                    timeout=self._attempt_timeout(),
                )
            except asyncio.TimeoutError as e:
                if deadline_expired():
                    raise LLMCancellationError("request deadline exceeded", original_error=e)
                last_error = e
                logger.warning(
                    f"{request.method} {request.url} timed out "
                    f"(attempt {attempt + 1}/{self.max_attempts})"
                )
            except httpx.TransportError as e:
                last_error = e
                logger.warning(
                    f"{request.method} {request.url} failed: {e} "
                    f"(attempt {attempt + 1}/{self.max_attempts})"
                )
            else:
                if not is_retryable_status(response.status_code):
                    return response
                logger.warning(
                    f"{request.method} {request.url} returned {response.status_code} "
                    f"(attempt {attempt + 1}/{self.max_attempts})"
                )

            if attempt == self.max_attempts - 1:
                break

            delay = self.backoff(attempt, response)
            if response is not None:
                await response.aclose()
            await self._wait(delay)

        logger.error(f"{request.method} {request.url} giving up after {self.max_attempts} attempts")
        if response is not None:
            # Let the SDK turn the final status into its own error
            return response
        raise LLMTransientError(
            f"giving up after {self.max_attempts} attempts", original_error=last_error
        )

    async def send(self, request: httpx.Request) -> httpx.Response:
        """Send request under the retry policy."""
        return await self.handle_async_request(request)

    async def aclose(self) -> None:
        await self._transport.aclose()
