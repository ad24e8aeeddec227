"""
Login and dashboard controller.

The dashboard shows the connection status of the session's instance and
offers disconnect, logout and a shortcut back into the wizard to pair again.
"""
import logging
from typing import Optional

from qrconnect.config import DASHBOARD_POLL_INTERVAL
from qrconnect.exceptions import ValidationError
from qrconnect.utils.logging_config import mask_token

from .constants import LOGIN_ROUTE, ONBOARDING_ROUTE
from .notifications import LoggingNotifier, Navigate, Notifier, describe_error, navigate_to
from .poller import StatusPoller
from .state import WizardEntry
from .store import SessionStore

logger = logging.getLogger(__name__)


async def login(api, session: SessionStore, token: str) -> str:
    """
    Validate an instance token and keep it as the session credential.

    The token is checked by querying the instance status; it is stored only
    if that call succeeds.

    Returns:
        The observed status

    Raises:
        ValidationError: Blank token
        ApiError / httpx.HTTPError: The proxy rejected the token
    """
    token = (token or "").strip()
    if not token:
        raise ValidationError("token", "Token is required")

    status = await api.get_instance_status(token)
    await session.set_token(token)
    logger.info(f"Logged in with token {mask_token(token)} (status={status})")
    return status


class DashboardController:
    """Status view and instance actions for the authenticated session."""

    def __init__(
        self,
        api,
        session: SessionStore,
        notifier: Optional[Notifier] = None,
        navigate: Optional[Navigate] = None,
        poll_interval: float = DASHBOARD_POLL_INTERVAL,
    ):
        self.api = api
        self.session = session
        self.notifier = notifier or LoggingNotifier()
        self.navigate = navigate
        self.poll_interval = poll_interval
        self.token: Optional[str] = None
        self.phone: Optional[str] = None
        self.poller: Optional[StatusPoller] = None

    async def __aenter__(self):
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.aclose()

    @property
    def status(self) -> Optional[str]:
        return self.poller.status if self.poller else None

    async def start(self) -> bool:
        """
        Load the session and start polling.

        Without a credential the user is sent back to the login route and
        False is returned.
        """
        self.token = await self.session.get_token()
        self.phone = await self.session.get_phone()
        if not self.token:
            logger.info("No session credential, redirecting to login")
            await navigate_to(self.navigate, LOGIN_ROUTE)
            return False

        if self.poller is None:
            self.poller = StatusPoller(self.api, self.token, interval=self.poll_interval)
            self.poller.start()
        return True

    async def disconnect(self) -> None:
        """Disconnect the WhatsApp session; the instance itself is kept."""
        try:
            await self.api.disconnect_instance(self.token)
        except Exception as e:
            self.notifier.error(describe_error(e, "Failed to disconnect"))
            raise
        self.notifier.success("Instance disconnected")
        if self.poller is not None:
            await self.poller.poll()

    async def logout(self, remote: bool = False) -> None:
        """
        Forget the session credential and return to the login route.

        With remote=True the instance is also logged out upstream first; a
        failure there is reported but does not keep the user logged in.
        """
        if remote and self.token:
            try:
                await self.api.logout_instance(self.token)
            except Exception as e:
                logger.warning(f"Remote logout failed: {e}")
                self.notifier.error(describe_error(e, "Failed to logout"))

        await self.aclose()
        await self.session.clear_token()
        self.token = None
        logger.info("Logged out")
        await navigate_to(self.navigate, LOGIN_ROUTE)

    def reconnect_entry(self) -> WizardEntry:
        """Credential and phone used to open the wizard for re-pairing."""
        return WizardEntry(token=self.token or "", phone=self.phone or "")

    async def reconnect(self) -> WizardEntry:
        entry = self.reconnect_entry()
        await navigate_to(self.navigate, ONBOARDING_ROUTE)
        return entry

    def masked_token(self) -> str:
        return mask_token(self.token)

    async def aclose(self) -> None:
        if self.poller is not None:
            await self.poller.aclose()
            self.poller = None
