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

"""HTTP implementation of the RPC transport.

Every call is a POST of one JSON object to a single endpoint:
``{"action": <rpc_action>, "subAction": <name>, **credentials, **payload}``.
The body is sent as ``text/plain`` so script-hosted endpoints accept it
without a CORS preflight.
"""

import json
import logging
from typing import Any, Dict, Optional

import httpx
from pydantic import ValidationError

from opsconsole.config import ConsoleSettings, get_settings
from opsconsole.errors import TransportError
from opsconsole.rpc.protocol import RpcResponse, RpcTransport

logger = logging.getLogger(__name__)


class HttpRpcClient(RpcTransport):
    """RPC transport over ``httpx.AsyncClient``."""

    def __init__(
        self,
        settings: Optional[ConsoleSettings] = None,
        credentials: Optional[Dict[str, Any]] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """Initialize the client.

        Args:
            settings: Endpoint and timeout settings (global settings if not provided)
            credentials: Fields merged into every request (e.g. the session password)
            transport: Custom httpx transport, mainly for tests
        """
        self.settings = settings or get_settings()
        self.credentials = dict(credentials or {})
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            if not self.settings.api_url:
                raise TransportError("No api_url configured")
            self._client = httpx.AsyncClient(
                timeout=self.settings.timeout,
                transport=self._transport,
                follow_redirects=True,
            )
        return self._client

    async def call(self, sub_action: str, payload: Optional[Dict[str, Any]] = None) -> RpcResponse:
        body = {
            "action": self.settings.rpc_action,
            "subAction": sub_action,
            **self.credentials,
            **(payload or {}),
        }
        client = self._get_client()

        try:
            response = await client.post(
                self.settings.api_url,
                content=json.dumps(body),
                headers={"Content-Type": "text/plain;charset=utf-8"},
            )
            response.raise_for_status()
        except httpx.TimeoutException as e:
            logger.error(f"RPC {sub_action} timed out after {self.settings.timeout}s")
            raise TransportError(f"{sub_action} timed out") from e
        except httpx.HTTPError as e:
            logger.error(f"RPC {sub_action} failed: {e}")
            raise TransportError(f"{sub_action} failed: {e}") from e

        try:
            envelope = RpcResponse.model_validate(response.json())
        except (ValueError, ValidationError) as e:
            logger.error(f"RPC {sub_action} returned an unreadable response: {e}")
            raise TransportError(f"{sub_action} returned an unreadable response") from e

        if not envelope.success:
            logger.warning(f"RPC {sub_action} rejected: {envelope.error}")
        return envelope

    async def aclose(self) -> None:
        """Close the underlying HTTP client."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> "HttpRpcClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()
