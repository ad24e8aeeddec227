"""
User-facing notifications and navigation callbacks.

The wizard and the dashboard never render anything themselves; they report
through a Notifier and hand route changes to a navigate callback, which may
be a plain function or a coroutine function.
"""
import inspect
import logging
from typing import Any, Callable, Optional, Protocol

logger = logging.getLogger(__name__)

Navigate = Callable[[str], Any]


class Notifier(Protocol):
    def success(self, message: str) -> None: ...

    def error(self, message: str) -> None: ...


class LoggingNotifier:
    """Default notifier: transient messages go to the log."""

    def success(self, message: str) -> None:
        logger.info(message)

    def error(self, message: str) -> None:
        logger.error(message)


async def navigate_to(navigate: Optional[Navigate], route: str) -> None:
    if navigate is None:
        logger.info(f"Navigation to {route} requested, no navigator attached")
        return
    result = navigate(route)
    if inspect.isawaitable(result):
        await result


def describe_error(error: BaseException, fallback: str) -> str:
    """Message shown to the user for a failed remote call."""
    return str(error) or fallback
