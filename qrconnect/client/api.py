"""
Proxy API Client
Talks to the local /api/instance/* surface on behalf of the onboarding wizard
and the dashboard. Instance tokens travel as bearer credentials; the proxy
turns them into upstream API keys.
"""
import logging
from typing import Any, Dict, Optional

import httpx

from qrconnect.config import QRCONNECT_API_URL
from qrconnect.exceptions import ApiError
from qrconnect.services.external_timeouts import PROXY_TIMEOUT

logger = logging.getLogger(__name__)

CONNECTED = "connected"
DISCONNECTED = "disconnected"


def map_instance_status(payload: Any) -> str:
    """
    Collapse the gateway status shape into "connected" or "disconnected".

    Connected only when both data.Connected and data.LoggedIn are truthy.
    Missing flags, a missing data object or a non-dict payload count as
    disconnected.
    """
    data = payload.get("data") if isinstance(payload, dict) else None
    if not isinstance(data, dict):
        return DISCONNECTED
    if data.get("Connected") and data.get("LoggedIn"):
        return CONNECTED
    return DISCONNECTED


class ProxyAPIClient:
    """Async client for the QR Connect proxy"""

    def __init__(
        self,
        base_url: str = None,
        timeout: httpx.Timeout = PROXY_TIMEOUT,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = (base_url or QRCONNECT_API_URL).rstrip("/")
        self.timeout = timeout
        self.transport = transport
        self.client: Optional[httpx.AsyncClient] = None

    async def __aenter__(self):
        await self.initialize()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    async def initialize(self):
        """Create the underlying HTTP client"""
        if not self.client:
            self.client = httpx.AsyncClient(
                base_url=self.base_url,
                timeout=self.timeout,
                transport=self.transport,
            )

    async def close(self):
        """Close the underlying HTTP client"""
        if self.client:
            await self.client.aclose()
            self.client = None

    async def _request(
        self,
        method: str,
        path: str,
        token: str = None,
        json: Dict[str, Any] = None,
    ) -> Any:
        """
        Call /api{path} and decode the JSON answer.

        Raises:
            ApiError: The proxy answered with a non-2xx status. The message is
                taken from the body's "message" or "error" field when present.
            httpx.HTTPError: Network failure or timeout talking to the proxy.
        """
        if not self.client:
            await self.initialize()

        headers = {"Content-Type": "application/json"}
        if token:
            headers["Authorization"] = f"Bearer {token}"

        response = await self.client.request(method, f"/api{path}", headers=headers, json=json)

        if not response.is_success:
            try:
                body = response.json()
            except ValueError:
                body = {"message": "Request failed"}
            message = None
            if isinstance(body, dict):
                message = body.get("message") or body.get("error")
            logger.warning(f"Proxy {method} {path} failed: HTTP {response.status_code}")
            raise ApiError(response.status_code, message)

        if response.status_code == 204 or not response.content:
            return None

        return response.json()

    async def create_instance(self, name: str) -> Dict[str, Any]:
        """Create an instance; the answer carries the issued token"""
        return await self._request("POST", "/instance/create", json={"name": name})

    async def get_instance_status(self, token: str) -> str:
        """Return "connected" or "disconnected" for the instance"""
        result = await self._request("GET", "/instance/status", token=token)
        return map_instance_status(result)

    async def get_instance_qr(self, token: str) -> Dict[str, Any]:
        """Fetch a fresh QR payload ({data: {Qrcode, Code}})"""
        return await self._request("GET", "/instance/qr", token=token)

    async def pair_instance(self, token: str, phone: str) -> Dict[str, Any]:
        """Request a pairing code for a phone number"""
        return await self._request("POST", "/instance/pair", token=token, json={"phone": phone})

    async def disconnect_instance(self, token: str) -> Any:
        return await self._request("POST", "/instance/disconnect", token=token)

    async def logout_instance(self, token: str) -> Any:
        return await self._request("DELETE", "/instance/logout", token=token)
