"""
Pairing acquisition: code extraction, retry engine and the QR/pair refresh cycle.

The gateway issues a QR payload first and only then accepts a pairing-code
request for the same session. Pairing often answers with an empty code for a
while, and may only succeed for one of the two spellings of a mobile number,
so the engine walks both candidates for a bounded number of rounds.
"""
import asyncio
import inspect
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, List, Mapping, Optional, Sequence, TypeVar

from qrconnect.config import PAIR_MAX_RETRIES, PAIR_RETRY_DELAY, QR_SETTLE_DELAY
from qrconnect.exceptions import UpstreamError
from .phone import alternate_phone
from qrconnect.utils.logging_config import mask_phone

logger = logging.getLogger(__name__)

T = TypeVar("T")
R = TypeVar("R")

PAIRING_CODE_KEYS = ("PairingCode", "pairingCode", "pairing_code", "code", "Code")
MAX_EXTRACT_DEPTH = 10

Sleep = Callable[[float], Awaitable[None]]


def extract_pairing_code(payload: Any, max_depth: int = MAX_EXTRACT_DEPTH) -> str:
    """
    Find a pairing code in an arbitrarily shaped response.

    Checks PAIRING_CODE_KEYS in order at the current level, then descends into
    a nested "data" mapping. Anything that is not a mapping yields "".

    Example:
        >>> extract_pairing_code({"data": {"data": {"Code": "789"}}})
        '789'
    """
    if not isinstance(payload, Mapping):
        return ""
    for key in PAIRING_CODE_KEYS:
        value = payload.get(key)
        if isinstance(value, str) and value:
            return value
    nested = payload.get("data")
    if max_depth > 0 and isinstance(nested, Mapping):
        return extract_pairing_code(nested, max_depth - 1)
    return ""


def extract_qr_payload(payload: Any) -> str:
    """QR image payload from a {data: {Qrcode}} answer, "" when absent."""
    data = payload.get("data") if isinstance(payload, Mapping) else None
    if isinstance(data, Mapping) and isinstance(data.get("Qrcode"), str):
        return data["Qrcode"]
    return ""


async def retry_candidates(
    candidates: Sequence[T],
    attempt: Callable[[T], Awaitable[R]],
    accept: Callable[[R], bool],
    *,
    rounds: int,
    delay: float,
    sleep: Sleep = asyncio.sleep,
    describe: Callable[[T], str] = str,
    label: str = "retry",
) -> Optional[R]:
    """
    Try every candidate in order, for a bounded number of rounds.

    The first accepted result is returned immediately. An exception from an
    attempt counts as a rejected result. Between rounds the loop waits
    `delay` seconds; it does not wait after the last round.

    Returns:
        The accepted result, or None when every round is exhausted.
    """
    for round_no in range(1, rounds + 1):
        for candidate in candidates:
            try:
                result = await attempt(candidate)
            except Exception as e:
                logger.warning(f"[{label}] round {round_no} failed with {describe(candidate)}: {e}")
                continue
            if accept(result):
                logger.info(f"[{label}] accepted on round {round_no} with {describe(candidate)}")
                return result
            logger.debug(f"[{label}] round {round_no} rejected for {describe(candidate)}")

        if round_no < rounds:
            logger.info(f"[{label}] nothing accepted, retrying in {delay}s...")
            await sleep(delay)

    return None


class PairingRetryEngine:
    """
    Obtain a non-empty pairing code for a phone number.

    Each round tries the number as entered, then its alternate spelling. After
    `max_rounds` rounds with nothing accepted, one last request is made with
    the number as entered and its answer is returned as-is; an exception from
    that request propagates.
    """

    def __init__(
        self,
        api,
        max_rounds: int = PAIR_MAX_RETRIES,
        retry_delay: float = PAIR_RETRY_DELAY,
        sleep: Sleep = asyncio.sleep,
    ):
        self.api = api
        self.max_rounds = max_rounds
        self.retry_delay = retry_delay
        self._sleep = sleep

    @staticmethod
    def candidates(phone: str) -> List[str]:
        return [phone, alternate_phone(phone)]

    async def pair(self, token: str, phone: str) -> Dict[str, Any]:
        async def attempt(number: str):
            return await self.api.pair_instance(token, number)

        result = await retry_candidates(
            self.candidates(phone),
            attempt,
            lambda r: bool(extract_pairing_code(r)),
            rounds=self.max_rounds,
            delay=self.retry_delay,
            sleep=self._sleep,
            describe=mask_phone,
            label="pair",
        )
        if result is not None:
            return result

        logger.warning("[pair] all retries exhausted, returning last attempt")
        return await self.api.pair_instance(token, phone)


@dataclass
class PairingResult:
    """Outcome of one QR/pair refresh."""
    qr_base64: str
    pairing_code: str


class PairingRefreshCycle:
    """
    Fetch QR, wait for the session to settle, then obtain a pairing code.

    Steps run strictly in order and any failure propagates to the caller.
    A QR answer without data.Qrcode aborts the cycle before pairing.
    """

    def __init__(
        self,
        api,
        engine: PairingRetryEngine = None,
        settle_delay: float = QR_SETTLE_DELAY,
        sleep: Sleep = asyncio.sleep,
    ):
        self.api = api
        self.engine = engine or PairingRetryEngine(api, sleep=sleep)
        self.settle_delay = settle_delay
        self._sleep = sleep

    async def run(
        self,
        token: str,
        phone: str,
        on_qr: Optional[Callable[[str], Any]] = None,
    ) -> PairingResult:
        """
        Args:
            token: Instance credential
            phone: Normalized national number
            on_qr: Called with the QR payload as soon as it arrives; may be
                a coroutine function

        Returns:
            PairingResult with the QR payload and the code (possibly "")

        Raises:
            UpstreamError: The QR answer has no data.Qrcode
        """
        qr_result = await self.api.get_instance_qr(token)
        qr_base64 = extract_qr_payload(qr_result)
        if not qr_base64:
            raise UpstreamError("GET /instance/qr", "Response carries no QR code")
        logger.info("[refresh] QR received")
        if on_qr is not None:
            outcome = on_qr(qr_base64)
            if inspect.isawaitable(outcome):
                await outcome

        await self._sleep(self.settle_delay)

        pair_result = await self.engine.pair(token, phone)
        code = extract_pairing_code(pair_result)
        logger.info(f"[refresh] pairing code {'received' if code else 'empty'}")
        return PairingResult(qr_base64=qr_base64, pairing_code=code)
