"""
Timeout configuration for external service calls.

Every HTTP call made by QR Connect carries one of these bounds, so a hung
gateway cannot stall a pairing sequence forever.

Usage:
    from qrconnect.services.external_timeouts import PROXY_TIMEOUT

    async with httpx.AsyncClient(timeout=PROXY_TIMEOUT) as client:
        response = await client.get(url)
"""
import aiohttp
import httpx

from qrconnect.config import EVOLUTION_HTTP_TIMEOUT

# Evolution gateway, called by the proxy
EVOLUTION_TIMEOUT = aiohttp.ClientTimeout(total=EVOLUTION_HTTP_TIMEOUT, connect=5.0)

# Local proxy, called by the onboarding client. Slightly longer than the
# upstream bound so the proxy can answer with its own 500 first.
PROXY_TIMEOUT = httpx.Timeout(EVOLUTION_HTTP_TIMEOUT + 5.0, connect=5.0)
