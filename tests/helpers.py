"""
Test helpers shared across modules
"""

import asyncio
from typing import Callable, List

QR_PAYLOAD = "data:image/png;base64,iVBORw0KGgo="


async def wait_until(predicate: Callable[[], bool], timeout: float = 2.0, interval: float = 0.01):
    """Poll predicate until it holds, failing the test after timeout seconds"""
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            raise AssertionError("condition not met in time")
        await asyncio.sleep(interval)


class RecordingSleep:
    """Sleep stand-in that records requested delays and only yields"""

    def __init__(self):
        self.delays: List[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)
        await asyncio.sleep(0)
