"""
Unit tests for RetryTransport.

Responses are scripted through httpx.MockTransport; backoff sleeps are
replaced by an AsyncMock unless a test needs real timing.
"""

import asyncio
from unittest.mock import AsyncMock

import httpx
import pytest

from memory_llm.llm.context import deadline_scope
from memory_llm.llm.interfaces.llm_provider_interface import (
    LLMCancellationError,
    LLMTransientError,
)
from memory_llm.llm.transport import RetryTransport, is_retryable_status

URL = "https://api.example.com/v1/chat/completions"


class ScriptedHandler:
    """MockTransport handler answering from a list of statuses or exceptions."""

    def __init__(self, script, headers=None):
        self.script = list(script)
        self.headers = headers or {}
        self.calls = 0

    async def __call__(self, request):
        self.calls += 1
        step = self.script.pop(0) if len(self.script) > 1 else self.script[0]
        if isinstance(step, Exception):
            raise step
        return httpx.Response(step, headers=self.headers, json={"status": step})


def make_client(handler, **kwargs):
    kwargs.setdefault("sleep", AsyncMock())
    transport = RetryTransport(transport=httpx.MockTransport(handler), **kwargs)
    return httpx.AsyncClient(transport=transport), transport


class TestRetryPolicy:
    """Retry decisions by status code."""

    @pytest.mark.parametrize("status", [429, 500, 502, 503, 504])
    def test_transient_statuses_are_retryable(self, status):
        assert is_retryable_status(status)

    @pytest.mark.parametrize("status", [200, 201, 400, 401, 403, 404, 422, 501])
    def test_other_statuses_are_not_retryable(self, status):
        assert not is_retryable_status(status)

    def test_backoff_is_exponential_and_capped(self):
        transport = RetryTransport(min_backoff=1.0, max_backoff=5.0)
        assert transport.backoff(0) == 1.0
        assert transport.backoff(1) == 2.0
        assert transport.backoff(2) == 4.0
        assert transport.backoff(3) == 5.0
        assert transport.backoff(10) == 5.0

    def test_backoff_honors_retry_after(self):
        transport = RetryTransport(min_backoff=1.0)
        response = httpx.Response(429, headers={"Retry-After": "7"})
        assert transport.backoff(0, response) == 7.0

    def test_retry_after_ignored_for_other_statuses(self):
        transport = RetryTransport(min_backoff=1.0)
        response = httpx.Response(500, headers={"Retry-After": "7"})
        assert transport.backoff(0, response) == 1.0

    def test_invalid_max_attempts(self):
        with pytest.raises(ValueError):
            RetryTransport(max_attempts=0)


class TestRetryTransport:
    """Requests sent through the transport."""

    @pytest.mark.asyncio
    async def test_succeeds_after_two_server_errors(self):
        handler = ScriptedHandler([500, 500, 200])
        client, transport = make_client(handler, max_attempts=5, min_backoff=1.0)

        response = await client.post(URL, json={})

        assert response.status_code == 200
        assert handler.calls == 3
        assert [c.args[0] for c in transport._sleep.await_args_list] == [1.0, 2.0]

    @pytest.mark.asyncio
    async def test_bad_request_is_never_retried(self):
        handler = ScriptedHandler([400])
        client, transport = make_client(handler, max_attempts=5)

        response = await client.post(URL, json={})

        assert response.status_code == 400
        assert handler.calls == 1
        transport._sleep.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_not_implemented_is_not_retried(self):
        handler = ScriptedHandler([501])
        client, _ = make_client(handler)

        response = await client.get(URL)

        assert response.status_code == 501
        assert handler.calls == 1

    @pytest.mark.asyncio
    async def test_rate_limit_uses_retry_after(self):
        handler = ScriptedHandler([429, 200], headers={"Retry-After": "3"})
        client, transport = make_client(handler)

        response = await client.get(URL)

        assert response.status_code == 200
        transport._sleep.assert_awaited_once_with(3.0)

    @pytest.mark.asyncio
    async def test_returns_last_response_when_attempts_exhausted(self):
        handler = ScriptedHandler([503])
        client, transport = make_client(handler, max_attempts=3)

        response = await client.get(URL)

        assert response.status_code == 503
        assert handler.calls == 3
        assert transport._sleep.await_count == 2

    @pytest.mark.asyncio
    async def test_network_error_is_retried(self):
        handler = ScriptedHandler([httpx.ConnectError("connection refused"), 200])
        client, _ = make_client(handler)

        response = await client.get(URL)

        assert response.status_code == 200
        assert handler.calls == 2

    @pytest.mark.asyncio
    async def test_persistent_network_error_raises_transient_error(self):
        handler = ScriptedHandler([httpx.ConnectError("connection refused")])
        client, _ = make_client(handler, max_attempts=2)

        with pytest.raises(LLMTransientError) as exc_info:
            await client.get(URL)

        assert handler.calls == 2
        assert isinstance(exc_info.value.original_error, httpx.ConnectError)

    @pytest.mark.asyncio
    async def test_attempt_timeout_is_retried(self):
        calls = 0

        async def handler(request):
            nonlocal calls
            calls += 1
            if calls == 1:
                await asyncio.sleep(1)
            return httpx.Response(200)

        client, _ = make_client(handler, per_attempt_timeout=0.01)

        response = await client.get(URL)

        assert response.status_code == 200
        assert calls == 2

    @pytest.mark.asyncio
    async def test_expired_deadline_never_sends(self):
        handler = ScriptedHandler([200])
        client, _ = make_client(handler)

        with deadline_scope(0):
            with pytest.raises(LLMCancellationError):
                await client.get(URL)

        assert handler.calls == 0

    @pytest.mark.asyncio
    async def test_deadline_cuts_backoff_short(self):
        handler = ScriptedHandler([500])
        client, _ = make_client(handler, min_backoff=10.0, sleep=asyncio.sleep)

        loop = asyncio.get_running_loop()
        started = loop.time()
        with deadline_scope(0.05):
            with pytest.raises(LLMCancellationError):
                await client.get(URL)

        assert handler.calls == 1
        assert loop.time() - started < 5

    @pytest.mark.asyncio
    async def test_task_cancellation_aborts_backoff_sleep(self):
        handler = ScriptedHandler([500])
        client, _ = make_client(handler, min_backoff=10.0, sleep=asyncio.sleep)

        task = asyncio.create_task(client.get(URL))
        await asyncio.sleep(0.05)
        task.cancel()

        with pytest.raises(asyncio.CancelledError):
            await task
        assert handler.calls == 1
