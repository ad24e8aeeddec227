"""
Connection status polling.

Queries the instance status once right away and then on every tick. Once
"connected" has been observed, ticks are skipped: the poller stays quiet until
it is replaced by one for another token.
"""
import asyncio
import logging
from typing import Awaitable, Callable, Optional

from qrconnect.client.api import CONNECTED, DISCONNECTED, map_instance_status
from qrconnect.config import ONBOARDING_POLL_INTERVAL
from qrconnect.utils.periodic import PeriodicTask

logger = logging.getLogger(__name__)

__all__ = ["StatusPoller", "map_instance_status", "CONNECTED", "DISCONNECTED"]


class StatusPoller:
    """
    Poll an instance's connection status.

    Attributes:
        status: Last observed status, None before the first answer
        error: Message of the last failed query, cleared by a successful one
        loading: True while a query is in flight

    Usage:
        poller = StatusPoller(api, token, interval=1.0, on_change=handle)
        poller.start()
        ...
        await poller.aclose()
    """

    def __init__(
        self,
        api,
        token: Optional[str],
        interval: float = ONBOARDING_POLL_INTERVAL,
        on_change: Optional[Callable[[str], None]] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.api = api
        self.token = token or None
        self.interval = interval
        self.on_change = on_change
        self.status: Optional[str] = None
        self.error: Optional[str] = None
        self.loading = False
        self._sleep = sleep
        self._task: Optional[PeriodicTask] = None
        self._closed = False

    @property
    def connected(self) -> bool:
        return self.status == CONNECTED

    def start(self) -> Optional[PeriodicTask]:
        """Begin polling. Without a token nothing is scheduled."""
        if not self.token:
            self.status = None
            return None
        if self._task is None and not self._closed:
            self._task = PeriodicTask(
                self.poll,
                self.interval,
                name="status-poll",
                skip=lambda: self.connected,
                sleep=self._sleep,
            ).start()
        return self._task

    async def poll(self) -> None:
        """Run one status query and record the outcome."""
        if not self.token or self._closed:
            return
        self.loading = True
        try:
            status = await self.api.get_instance_status(self.token)
        except Exception as e:
            if not self._closed:
                self.error = str(e) or type(e).__name__
                logger.warning(f"[status-poll] query failed: {self.error}")
            return
        finally:
            self.loading = False

        if self._closed:
            return

        previous = self.status
        self.status = status
        self.error = None
        if status != previous:
            logger.info(f"[status-poll] {previous} -> {status}")
            if self.on_change is not None:
                self.on_change(status)

    def stop(self) -> None:
        """Cancel polling; late answers are discarded. Idempotent."""
        self._closed = True
        if self._task is not None:
            self._task.cancel()

    async def aclose(self) -> None:
        self._closed = True
        if self._task is not None:
            await self._task.aclose()
