"""
Tests for the proxy API client used by the wizard and dashboard
"""

import json

import httpx
import pytest

from qrconnect.client import ProxyAPIClient
from qrconnect.exceptions import ApiError


def make_client(handler):
    return ProxyAPIClient("http://proxy.test", transport=httpx.MockTransport(handler))


class TestProxyAPIClient:
    @pytest.mark.asyncio
    async def test_status_is_mapped_and_token_sent(self):
        seen = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json={"data": {"Connected": True, "LoggedIn": True}})

        async with make_client(handler) as client:
            status = await client.get_instance_status("tok-1")

        assert status == "connected"
        assert seen[0].url.path == "/api/instance/status"
        assert seen[0].headers["Authorization"] == "Bearer tok-1"

    @pytest.mark.asyncio
    async def test_create_and_pair_bodies(self):
        seen = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append((request.method, request.url.path, json.loads(request.content or b"null")))
            return httpx.Response(200, json={"token": "t"})

        async with make_client(handler) as client:
            created = await client.create_instance("Clinic-One")
            await client.pair_instance("t", "41999999999")

        assert created == {"token": "t"}
        assert seen == [
            ("POST", "/api/instance/create", {"name": "Clinic-One"}),
            ("POST", "/api/instance/pair", {"phone": "41999999999"}),
        ]

    @pytest.mark.asyncio
    async def test_disconnect_posts_and_logout_deletes(self):
        methods = []

        def handler(request: httpx.Request) -> httpx.Response:
            methods.append((request.method, request.url.path))
            return httpx.Response(204)

        async with make_client(handler) as client:
            assert await client.disconnect_instance("t") is None
            assert await client.logout_instance("t") is None

        assert methods == [("POST", "/api/instance/disconnect"), ("DELETE", "/api/instance/logout")]

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "response,expected",
        [
            (httpx.Response(401, json={"message": "Unauthorized"}), "Unauthorized"),
            (httpx.Response(500, json={"error": "Failed to get QR code"}), "Failed to get QR code"),
            (httpx.Response(502, json={}), "HTTP 502"),
            (httpx.Response(503, text="<html>down</html>"), "Request failed"),
        ],
    )
    async def test_error_message_contract(self, response, expected):
        async with make_client(lambda request: response) as client:
            with pytest.raises(ApiError) as exc_info:
                await client.get_instance_qr("t")

        assert exc_info.value.status_code == response.status_code
        assert str(exc_info.value) == expected
