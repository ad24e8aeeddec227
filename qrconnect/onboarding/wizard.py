"""
Onboarding Wizard - three-step pairing state machine.

NAMING_INSTANCE -> ENTERING_PHONE -> AWAITING_CONNECTION

1. The operator names the instance; creation issues the credential, which is
   stored both in the wizard record and in the session store.
2. The operator enters a phone number; the QR/pair refresh cycle runs and,
   once it completes, the wizard moves on.
3. The wizard polls the connection status every second and refreshes the QR
   and pairing code every 30 seconds until the instance reports connected.
   It then hands over to the dashboard after a short grace period, once.

Every change to the record is saved before the call that made it returns.
After aclose() no late result is written.
"""

import asyncio
import logging
import re
from dataclasses import dataclass
from typing import Optional, Set

from qrconnect.client.api import CONNECTED
from qrconnect.config import (
    AUTO_REFRESH_INTERVAL,
    CONNECTED_GRACE_PERIOD,
    ONBOARDING_POLL_INTERVAL,
    PAIR_MAX_RETRIES,
    PAIR_RETRY_DELAY,
    QR_SETTLE_DELAY,
)
from qrconnect.exceptions import InvalidTransitionError, QRConnectError, ValidationError
from qrconnect.utils.logging_config import mask_phone, mask_token
from qrconnect.utils.periodic import PeriodicTask

from .constants import DASHBOARD_ROUTE, VALID_TRANSITIONS, OnboardingStep
from .notifications import LoggingNotifier, Navigate, Notifier, describe_error, navigate_to
from .pairing import PairingRefreshCycle, PairingResult, PairingRetryEngine
from .phone import clamp_phone_input, is_valid_phone, normalize_phone
from .poller import StatusPoller
from .state import OnboardingState, WizardEntry
from .store import OnboardingStore, SessionStore

logger = logging.getLogger(__name__)


@dataclass
class WizardTimings:
    """Intervals and delays, in seconds."""
    poll_interval: float = ONBOARDING_POLL_INTERVAL
    auto_refresh_interval: float = AUTO_REFRESH_INTERVAL
    grace_period: float = CONNECTED_GRACE_PERIOD
    settle_delay: float = QR_SETTLE_DELAY
    retry_delay: float = PAIR_RETRY_DELAY
    max_pair_rounds: int = PAIR_MAX_RETRIES


def sanitize_instance_name(name: str) -> str:
    """Replace each whitespace run with a single dash."""
    return re.sub(r"\s+", "-", name or "")


class OnboardingWizard:
    """
    Drive instance creation and phone pairing.

    Usage:
        async with OnboardingWizard(api, store, session, navigate=go) as wizard:
            await wizard.set_instance_name("Clinic One")
            await wizard.create_instance()
            await wizard.set_phone("41999999999")
            await wizard.submit_phone()
            ...  # poller and auto-refresh run in the background
    """

    def __init__(
        self,
        api,
        store: OnboardingStore,
        session: SessionStore,
        notifier: Optional[Notifier] = None,
        navigate: Optional[Navigate] = None,
        timings: Optional[WizardTimings] = None,
        entry: Optional[WizardEntry] = None,
        sleep=asyncio.sleep,
    ):
        self.api = api
        self.store = store
        self.session = session
        self.notifier = notifier or LoggingNotifier()
        self.navigate = navigate
        self.timings = timings or WizardTimings()
        self.entry = entry

        engine = PairingRetryEngine(
            api,
            max_rounds=self.timings.max_pair_rounds,
            retry_delay=self.timings.retry_delay,
            sleep=sleep,
        )
        self.cycle = PairingRefreshCycle(
            api, engine, settle_delay=self.timings.settle_delay, sleep=sleep
        )

        self.state = OnboardingState()
        self.loading = False
        self._pair_phone = ""
        self._poller: Optional[StatusPoller] = None
        self._auto_refresh: Optional[PeriodicTask] = None
        self._grace_task: Optional[asyncio.Task] = None
        self._background: Set[asyncio.Task] = set()
        self._navigated = False
        self._started = False
        self._closed = False
        # Bumped by reset(); work started under an older value is stale
        self._generation = 0

    async def __aenter__(self):
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.aclose()

    # ------------------------------------------------------------------
    # Read-only views
    # ------------------------------------------------------------------

    @property
    def step(self) -> OnboardingStep:
        return self.state.step

    @property
    def status(self) -> Optional[str]:
        return self._poller.status if self._poller else None

    @property
    def sanitized_name(self) -> str:
        return sanitize_instance_name(self.state.instance_name)

    @property
    def navigated(self) -> bool:
        return self._navigated

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def start(self) -> OnboardingState:
        """
        Resolve the initial step and start background activity.

        An external entry with token and phone opens step 3, token only opens
        step 2; otherwise the saved record is resumed, or step 1 by default.
        """
        if self._started:
            return self.state
        self._started = True

        saved = await self.store.load()
        entry = self.entry if self.entry and self.entry.token else None

        if entry:
            step = (
                OnboardingStep.AWAITING_CONNECTION if entry.phone
                else OnboardingStep.ENTERING_PHONE
            )
        else:
            step = saved.step if saved else OnboardingStep.NAMING_INSTANCE

        base = saved or OnboardingState()
        self.state = OnboardingState(
            step=step,
            instance_name=base.instance_name,
            token=(entry.token if entry else "") or base.token,
            phone=(entry.phone if entry else "") or base.phone,
            qr_base64="" if entry else base.qr_base64,
            pairing_code="" if entry else base.pairing_code,
        )
        self._pair_phone = normalize_phone(self.state.phone)
        await self._persist()

        phone_label = mask_phone(self._pair_phone) if self._pair_phone else "-"
        logger.info(
            f"Onboarding started at step {int(step)} "
            f"(token={mask_token(self.state.token) or '-'}, phone={phone_label})"
        )

        if step == OnboardingStep.AWAITING_CONNECTION:
            self._start_connection_activities()
            if self.state.token and self._pair_phone:
                self._spawn(self._restore(), name="onboarding-restore")

        return self.state

    async def aclose(self) -> None:
        """Cancel every timer; late results are dropped."""
        if self._closed:
            return
        self._closed = True
        await self._stop_connection_activities()
        for task in list(self._background):
            task.cancel()
        if self._background:
            await asyncio.gather(*self._background, return_exceptions=True)
        self._background.clear()

    # ------------------------------------------------------------------
    # Field edits
    # ------------------------------------------------------------------

    async def set_instance_name(self, name: str) -> None:
        self.state.instance_name = name or ""
        await self._persist()

    async def set_phone(self, raw: str) -> None:
        """Keep digits only, at most 11."""
        self.state.phone = clamp_phone_input(raw)
        await self._persist()

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    async def create_instance(self) -> str:
        """
        Step 1 -> 2. Create the instance and keep its credential.

        Returns:
            The issued token

        Raises:
            InvalidTransitionError: Not on step 1
            ValidationError: Empty instance name
            ApiError / httpx.HTTPError: Creation failed (also notified)
        """
        self._require_step(OnboardingStep.NAMING_INSTANCE, "create an instance")
        name = self.sanitized_name
        if not self.state.instance_name.strip():
            raise ValidationError("instance_name", "Instance name is required")

        generation = self._generation
        self.loading = True
        try:
            result = await self.api.create_instance(name)
        except Exception as e:
            self.notifier.error(describe_error(e, "Failed to create instance"))
            raise
        finally:
            self.loading = False

        token = result.get("token") if isinstance(result, dict) else None
        if not token:
            self.notifier.error("Failed to create instance")
            raise QRConnectError("Instance created without a token")
        if not self._is_current(generation):
            return token

        logger.info(f"Instance {name} created (token={mask_token(token)})")
        self.state.token = token
        await self.session.set_token(token)
        await self._transition(OnboardingStep.ENTERING_PHONE)
        return token

    async def submit_phone(self) -> Optional[PairingResult]:
        """
        Step 2 -> 3. Fetch QR and pairing code for the entered number.

        A reset while the cycle runs discards its outcome; a failure is then
        neither notified nor raised and None is returned.

        Raises:
            InvalidTransitionError: Not on step 2
            ValidationError: Fewer than 10 digits
            ApiError / httpx.HTTPError: The refresh cycle failed (also notified)
        """
        self._require_step(OnboardingStep.ENTERING_PHONE, "submit a phone number")
        phone = normalize_phone(self.state.phone)
        if not is_valid_phone(phone):
            raise ValidationError("phone", "Enter area code and number (at least 10 digits)")

        self._pair_phone = phone
        await self.session.set_phone(phone)

        generation = self._generation
        self.loading = True
        try:
            result = await self._refresh(phone)
        except Exception as e:
            if not self._is_current(generation):
                logger.info(f"[submit-phone] discarded error after reset: {e}")
                return None
            logger.error(f"[submit-phone] error: {e}")
            self.notifier.error(describe_error(e, "Failed to connect"))
            raise
        finally:
            self.loading = False

        if not self._is_current(generation):
            logger.info("[submit-phone] discarded result after reset")
            return result

        await self._transition(OnboardingStep.AWAITING_CONNECTION)
        self._start_connection_activities()
        return result

    async def refresh_qr(self) -> Optional[PairingResult]:
        """Manual refresh while waiting for the connection."""
        self._require_step(OnboardingStep.AWAITING_CONNECTION, "refresh the QR code")
        generation = self._generation
        try:
            result = await self._refresh(self._pair_phone or normalize_phone(self.state.phone))
        except Exception as e:
            if not self._is_current(generation):
                return None
            logger.error(f"[refresh-qr] error: {e}")
            self.notifier.error(describe_error(e, "Failed to refresh"))
            raise
        if self._is_current(generation):
            self.notifier.success("QR code refreshed")
        return result

    async def reset(self) -> None:
        """
        Back to step 1 with an empty record.

        The session credential is left alone: reset only forgets progress.
        """
        self._generation += 1
        await self._stop_connection_activities()
        await self.store.clear()
        self.state = OnboardingState()
        self._pair_phone = ""
        self._navigated = False
        logger.info("Onboarding reset")

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _require_step(self, step: OnboardingStep, operation: str) -> None:
        if self.state.step != step:
            raise InvalidTransitionError(int(self.state.step), operation)

    async def _transition(self, target: OnboardingStep) -> None:
        current = self.state.step
        if target not in VALID_TRANSITIONS[current]:
            raise InvalidTransitionError(int(current), f"move to step {int(target)}")
        self.state.step = target
        await self._persist()
        logger.info(f"Onboarding step {int(current)} -> {int(target)}")

    def _is_current(self, generation: int) -> bool:
        return not self._closed and generation == self._generation

    async def _persist(self) -> None:
        if self._closed:
            return
        await self.store.save(self.state)

    async def _refresh(self, phone: str) -> PairingResult:
        generation = self._generation

        async def apply_qr(qr_base64: str) -> None:
            if self._is_current(generation):
                self.state.qr_base64 = qr_base64
                await self._persist()

        result = await self.cycle.run(self.state.token, phone, on_qr=apply_qr)
        if self._is_current(generation):
            self.state.pairing_code = result.pairing_code
            await self._persist()
        return result

    async def _restore(self) -> None:
        """Re-acquire QR and code after resuming straight into step 3."""
        try:
            logger.info("[restore] fetching fresh QR and pair code...")
            result = await self._refresh(self._pair_phone)
            logger.info(f"[restore] done, code {'received' if result.pairing_code else 'empty'}")
        except Exception as e:
            logger.warning(f"[restore] failed: {e}")

    async def _auto_refresh_tick(self) -> None:
        try:
            logger.info("[auto-refresh] refreshing QR and pair code...")
            await self._refresh(self._pair_phone)
        except Exception as e:
            logger.warning(f"[auto-refresh] failed: {e}")

    def _start_connection_activities(self) -> None:
        if self._closed:
            return
        if self._poller is None and self.state.token:
            self._poller = StatusPoller(
                self.api,
                self.state.token,
                interval=self.timings.poll_interval,
                on_change=self._on_status_change,
            )
            self._poller.start()
        if self._auto_refresh is None and self._pair_phone:
            self._auto_refresh = PeriodicTask(
                self._auto_refresh_tick,
                self.timings.auto_refresh_interval,
                name="auto-refresh",
                run_immediately=False,
                skip=lambda: self.status == CONNECTED,
            ).start()

    async def _stop_connection_activities(self) -> None:
        if self._poller is not None:
            await self._poller.aclose()
            self._poller = None
        if self._auto_refresh is not None:
            await self._auto_refresh.aclose()
            self._auto_refresh = None
        if self._grace_task is not None:
            self._grace_task.cancel()
            await asyncio.gather(self._grace_task, return_exceptions=True)
            self._grace_task = None

    def _on_status_change(self, status: str) -> None:
        if (
            status != CONNECTED
            or self.state.step != OnboardingStep.AWAITING_CONNECTION
            or self._navigated
            or self._closed
        ):
            return
        self._navigated = True
        self.notifier.success("WhatsApp connected successfully!")
        if self._auto_refresh is not None:
            self._auto_refresh.cancel()
        self._grace_task = asyncio.create_task(
            self._navigate_after_grace(), name="onboarding-grace"
        )

    async def _navigate_after_grace(self) -> None:
        await asyncio.sleep(self.timings.grace_period)
        if self._closed:
            return
        await navigate_to(self.navigate, DASHBOARD_ROUTE)

    def _spawn(self, coro, name: str) -> None:
        task = asyncio.create_task(coro, name=name)
        self._background.add(task)
        task.add_done_callback(self._background.discard)
