"""
Request deadlines.

A deadline is an absolute event-loop time stored in a context variable, so it
follows the request through every ``await`` down to the HTTP transport without
being threaded through each call signature. Nested scopes keep the earlier
deadline.
"""

import asyncio
import contextvars
from contextlib import contextmanager
from typing import Iterator, Optional

request_deadline_context: contextvars.ContextVar[Optional[float]] = contextvars.ContextVar(
    "request_deadline", default=None
)


def _now() -> float:
    return asyncio.get_running_loop().time()


def remaining_time() -> Optional[float]:
    """Seconds left until the active deadline (may be negative), or None if unbounded."""
    deadline = request_deadline_context.get()
    if deadline is None:
        return None
    return deadline - _now()


def deadline_expired() -> bool:
    remaining = remaining_time()
    return remaining is not None and remaining <= 0


@contextmanager
def deadline_scope(timeout: Optional[float]) -> Iterator[Optional[float]]:
    """
    Bound the enclosed requests by ``timeout`` seconds from now.

    The effective deadline is the earlier of ``timeout`` and any deadline
    already in force. ``None`` leaves the current deadline untouched.

    Must be entered from a coroutine running on an event loop.
    """
    current = request_deadline_context.get()
    if timeout is None:
        yield current
        return

    deadline = _now() + timeout
    if current is not None:
        deadline = min(deadline, current)

    token = request_deadline_context.set(deadline)
    try:
        yield deadline
    finally:
        request_deadline_context.reset(token)
