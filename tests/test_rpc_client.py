# Copyright 2025 Vijaykumar Singh <singhvjd@gmail.com>
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""Tests for the HTTP RPC client."""

import json

import httpx
import pytest

from opsconsole.config import ConsoleSettings
from opsconsole.errors import TransportError
from opsconsole.rpc.client import HttpRpcClient

API_URL = "https://script.example.com/exec"


def make_client(handler, credentials=None, **settings):
    settings = ConsoleSettings(api_url=API_URL, **settings)
    return HttpRpcClient(
        settings=settings, credentials=credentials, transport=httpx.MockTransport(handler)
    )


class TestHttpRpcClient:
    """Tests for HttpRpcClient."""

    @pytest.mark.asyncio
    async def test_request_envelope(self):
        """Test the posted body and content type."""
        seen = {}

        def handler(request):
            seen["body"] = json.loads(request.content)
            seen["content_type"] = request.headers["content-type"]
            return httpx.Response(200, json={"success": True, "data": {"orders": []}})

        async with make_client(handler, credentials={"password": "secret"}) as client:
            response = await client.call("getDashboardData", {"page": 1})

        assert response.success
        assert response.data == {"orders": []}
        assert seen["body"] == {
            "action": "adminAction",
            "subAction": "getDashboardData",
            "password": "secret",
            "page": 1,
        }
        assert seen["content_type"].startswith("text/plain")

    @pytest.mark.asyncio
    async def test_rejection_is_returned(self):
        """Test that success=false comes back as a response, not an exception."""

        def handler(request):
            return httpx.Response(200, json={"success": False, "error": "bad password"})

        async with make_client(handler) as client:
            response = await client.call("updateOrdersBatch", {"updates": []})

        assert response.success is False
        assert response.error == "bad password"

    @pytest.mark.asyncio
    async def test_http_error_raises_transport_error(self):
        """Test that non-2xx statuses become transport errors."""

        def handler(request):
            return httpx.Response(502, text="bad gateway")

        async with make_client(handler) as client:
            with pytest.raises(TransportError):
                await client.call("getProductsAdmin")

    @pytest.mark.asyncio
    async def test_timeout_raises_transport_error(self):
        """Test that timeouts become transport errors."""

        def handler(request):
            raise httpx.ReadTimeout("timed out", request=request)

        async with make_client(handler, timeout=1.0) as client:
            with pytest.raises(TransportError) as exc_info:
                await client.call("updateProductsBatch", {"updates": []})

        assert "timed out" in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_unreadable_body_raises_transport_error(self):
        """Test that non-JSON responses become transport errors."""

        def handler(request):
            return httpx.Response(200, text="<html>login</html>")

        async with make_client(handler) as client:
            with pytest.raises(TransportError):
                await client.call("getProductsAdmin")

    @pytest.mark.asyncio
    async def test_missing_url(self):
        """Test that calls fail without a configured endpoint."""
        client = HttpRpcClient(settings=ConsoleSettings(api_url=""))

        with pytest.raises(TransportError):
            await client.call("getProductsAdmin")
