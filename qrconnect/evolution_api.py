"""
Evolution API Client for WhatsApp Integration
Forwards instance management calls to the Evolution gateway
"""

import asyncio
import json
import logging
import uuid
from typing import Any, Dict, Optional, Tuple

import aiohttp

from qrconnect.config import EVOLUTION_API_URL, MASTER_API_KEY
from qrconnect.exceptions import UpstreamError
from qrconnect.services.external_timeouts import EVOLUTION_TIMEOUT

logger = logging.getLogger(__name__)


class EvolutionAPIClient:
    """Client for the Evolution gateway, one shared HTTP session per process"""

    def __init__(
        self,
        base_url: str = None,
        master_key: str = None,
        timeout: aiohttp.ClientTimeout = EVOLUTION_TIMEOUT,
    ):
        self.base_url = (base_url or EVOLUTION_API_URL).rstrip("/")
        self.master_key = master_key if master_key is not None else MASTER_API_KEY
        self.timeout = timeout
        self.session: Optional[aiohttp.ClientSession] = None

    async def __aenter__(self):
        """Async context manager entry"""
        await self.initialize()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Async context manager exit"""
        await self.close()

    async def initialize(self):
        """Initialize the HTTP session"""
        if not self.session:
            self.session = aiohttp.ClientSession(
                timeout=self.timeout,
                headers={
                    "Content-Type": "application/json",
                    "Accept": "application/json",
                },
            )

    async def close(self):
        """Close the HTTP session"""
        if self.session:
            await self.session.close()
            self.session = None

    @staticmethod
    def generate_instance_token() -> str:
        """Generate the credential handed to a new instance"""
        return str(uuid.uuid4())

    async def proxy_request(
        self,
        method: str,
        path: str,
        api_key: str,
        body: Optional[Dict[str, Any]] = None,
    ) -> Tuple[int, Any]:
        """
        Forward one request to the gateway.

        Args:
            method: HTTP method
            path: Gateway path, e.g. "/instance/status"
            api_key: Value for the apikey header (master key or instance token)
            body: JSON body; omitted when empty

        Returns:
            (status, data) where data is the decoded JSON body. A body that is
            not JSON comes back as {"response": text}.

        Raises:
            UpstreamError: The gateway could not be reached or timed out
        """
        if not self.session:
            await self.initialize()

        url = f"{self.base_url}{path}"
        kwargs: Dict[str, Any] = {"headers": {"apikey": api_key}}
        if body:
            kwargs["json"] = body

        try:
            async with self.session.request(method, url, **kwargs) as response:
                response_text = await response.text()

                if response.status >= 400:
                    logger.warning(f"Evolution API error: {method} {path} -> {response.status}")

                try:
                    data = json.loads(response_text) if response_text else {}
                except json.JSONDecodeError:
                    data = {"response": response_text}

                return response.status, data

        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            logger.error(f"Network error calling Evolution API {method} {path}: {e!r}")
            raise UpstreamError(f"{method} {path}", str(e) or repr(e)) from e

    async def create_instance(self, name: str) -> Tuple[int, Any, str]:
        """
        Create a new instance using the master key.

        Returns:
            (status, data, token) with the freshly generated instance token
        """
        instance_token = self.generate_instance_token()
        status, data = await self.proxy_request(
            "POST",
            "/instance/create",
            self.master_key,
            {"name": name, "token": instance_token},
        )
        return status, data, instance_token

    async def get_status(self, token: str) -> Tuple[int, Any]:
        return await self.proxy_request("GET", "/instance/status", token)

    async def get_qr(self, token: str) -> Tuple[int, Any]:
        return await self.proxy_request("GET", "/instance/qr", token)

    async def pair(self, token: str, body: Optional[Dict[str, Any]]) -> Tuple[int, Any]:
        return await self.proxy_request("POST", "/instance/pair", token, body)

    async def disconnect(self, token: str) -> Tuple[int, Any]:
        return await self.proxy_request("POST", "/instance/disconnect", token)

    async def logout(self, token: str) -> Tuple[int, Any]:
        return await self.proxy_request("DELETE", "/instance/logout", token)
