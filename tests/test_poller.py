"""
Tests for periodic tasks, status mapping and the status poller
"""

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest

from qrconnect.exceptions import ApiError
from qrconnect.onboarding.poller import CONNECTED, DISCONNECTED, StatusPoller, map_instance_status
from qrconnect.utils.periodic import PeriodicTask
from tests.helpers import RecordingSleep, wait_until


class TestMapInstanceStatus:
    def test_connected_requires_both_flags(self):
        assert map_instance_status({"data": {"Connected": True, "LoggedIn": True}}) == CONNECTED
        assert map_instance_status({"data": {"Connected": True, "LoggedIn": False}}) == DISCONNECTED
        assert map_instance_status({"data": {"Connected": True}}) == DISCONNECTED

    def test_malformed_payloads_are_disconnected(self):
        assert map_instance_status({}) == DISCONNECTED
        assert map_instance_status({"data": None}) == DISCONNECTED
        assert map_instance_status(None) == DISCONNECTED
        assert map_instance_status("connected") == DISCONNECTED


class TestPeriodicTask:
    @pytest.mark.asyncio
    async def test_runs_until_cancelled(self):
        calls = []
        task = None

        async def tick():
            calls.append(len(calls))
            if len(calls) == 3:
                task.cancel()

        task = PeriodicTask(tick, 0.5, name="test", sleep=RecordingSleep()).start()
        await wait_until(lambda: len(calls) == 3)
        await task.aclose()

        assert calls == [0, 1, 2]
        assert task.cancelled
        assert not task.running

    @pytest.mark.asyncio
    async def test_first_tick_waits_when_not_immediate(self):
        sleep = RecordingSleep()
        seen = []

        async def tick():
            seen.append(len(sleep.delays))
            task.cancel()

        task = PeriodicTask(tick, 30.0, run_immediately=False, sleep=sleep).start()
        await wait_until(lambda: bool(seen))
        await task.aclose()

        assert seen == [1]
        assert sleep.delays[0] == 30.0

    @pytest.mark.asyncio
    async def test_failing_tick_does_not_stop_loop(self):
        calls = []

        async def tick():
            calls.append(1)
            if len(calls) == 1:
                raise RuntimeError("boom")
            task.cancel()

        task = PeriodicTask(tick, 0.01, sleep=RecordingSleep()).start()
        await wait_until(lambda: len(calls) == 2)
        await task.aclose()

        assert len(calls) == 2

    @pytest.mark.asyncio
    async def test_skip_predicate_suppresses_ticks(self):
        callback = AsyncMock()
        task = PeriodicTask(callback, 0.01, run_immediately=False, skip=lambda: True).start()
        await asyncio.sleep(0.05)
        await task.aclose()

        callback.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_cancel_is_idempotent(self):
        task = PeriodicTask(AsyncMock(), 10.0).start()
        task.cancel()
        task.cancel()
        await task.aclose()
        await task.aclose()
        assert task.cancelled


class TestStatusPoller:
    @pytest.mark.asyncio
    async def test_no_token_means_no_polling(self):
        api = MagicMock()
        api.get_instance_status = AsyncMock()
        poller = StatusPoller(api, "", interval=0.01)

        assert poller.start() is None
        assert poller.status is None
        api.get_instance_status.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_connected_is_sticky(self):
        api = MagicMock()
        api.get_instance_status = AsyncMock(side_effect=[DISCONNECTED, CONNECTED, DISCONNECTED])
        changes = []
        poller = StatusPoller(api, "tok", interval=0.01, on_change=changes.append)

        poller.start()
        await wait_until(lambda: poller.connected)
        await asyncio.sleep(0.05)
        await poller.aclose()

        assert changes == [DISCONNECTED, CONNECTED]
        assert api.get_instance_status.await_count == 2
        assert poller.status == CONNECTED

    @pytest.mark.asyncio
    async def test_error_is_recorded_and_cleared(self):
        api = MagicMock()
        api.get_instance_status = AsyncMock(side_effect=[ApiError(500), DISCONNECTED])
        poller = StatusPoller(api, "tok")

        await poller.poll()
        assert poller.error == "HTTP 500"
        assert poller.status is None

        await poller.poll()
        assert poller.error is None
        assert poller.status == DISCONNECTED
        assert poller.loading is False

    @pytest.mark.asyncio
    async def test_late_answer_after_stop_is_discarded(self):
        release = asyncio.Event()
        api = MagicMock()

        async def slow_status(token):
            await release.wait()
            return CONNECTED

        api.get_instance_status = slow_status
        on_change = MagicMock()
        poller = StatusPoller(api, "tok", on_change=on_change)

        pending = asyncio.create_task(poller.poll())
        await asyncio.sleep(0)
        poller.stop()
        release.set()
        await pending

        assert poller.status is None
        on_change.assert_not_called()
