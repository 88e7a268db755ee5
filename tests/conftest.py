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

"""Shared fakes for the remote collaborators."""

import copy
from typing import Any, Dict, List, Optional, Tuple

import pytest

from opsconsole.errors import AttachmentUploadError
from opsconsole.rpc.protocol import AttachmentUploader, RpcResponse, RpcTransport
from opsconsole.staging.protocol import LocalAttachment


class FakeTransport(RpcTransport):
    """Scripted RPC transport recording every call."""

    def __init__(self) -> None:
        self.calls: List[Tuple[str, Dict[str, Any]]] = []
        self._handlers: Dict[str, Any] = {}

    def on(self, sub_action: str, handler: Any) -> None:
        """Script a response, an exception, or a callable taking the payload."""
        self._handlers[sub_action] = handler

    def calls_to(self, sub_action: str) -> List[Dict[str, Any]]:
        return [payload for name, payload in self.calls if name == sub_action]

    async def call(self, sub_action: str, payload: Optional[Dict[str, Any]] = None) -> RpcResponse:
        payload = payload or {}
        self.calls.append((sub_action, copy.deepcopy(payload)))
        handler = self._handlers.get(sub_action)
        if handler is None:
            return RpcResponse(success=True, data={})
        if callable(handler):
            handler = handler(payload)
        if isinstance(handler, Exception):
            raise handler
        return handler


class FakeUploader(AttachmentUploader):
    """Uploader returning predictable URLs; selected file names fail."""

    def __init__(self, fail: Optional[set] = None) -> None:
        self.fail = set(fail or ())
        self.uploads: List[Tuple[str, str]] = []

    async def upload(self, attachment: LocalAttachment, group: str) -> str:
        self.uploads.append((attachment.file_name, group))
        if attachment.file_name in self.fail:
            raise AttachmentUploadError(attachment.file_name, "storage unavailable")
        return f"https://cdn.example.com/{group}/{attachment.file_name}"


ORDERS = [
    {"orderId": "A", "status": "pending", "customerName": "Lin", "customerPhone": "0911", "note": ""},
    {"orderId": "B", "status": "pending", "customerName": "Chen", "customerPhone": "0922", "note": ""},
    {"orderId": "C", "status": "shipped", "customerName": "Wang", "customerPhone": "0933", "note": ""},
]

PRODUCTS = [
    {
        "id": "P1",
        "name": "Tote bag",
        "category": "bags",
        "brand": "acme",
        "price": 100,
        "image": "https://cdn.example.com/acme/p1a.jpg,https://cdn.example.com/acme/p1b.jpg",
    },
    {"id": "P2", "name": "Cap", "category": "hats", "brand": "acme", "price": 50, "image": ""},
    {"id": "P3", "name": "Scarf", "category": "accessories", "brand": "", "price": 80, "image": ""},
]


@pytest.fixture
def transport():
    """Transport serving the sample orders and products."""
    fake = FakeTransport()
    fake.on(
        "getDashboardData",
        RpcResponse(success=True, data={"orders": copy.deepcopy(ORDERS), "stats": {}}),
    )
    fake.on("getProductsAdmin", RpcResponse(success=True, data={"products": copy.deepcopy(PRODUCTS)}))
    return fake


@pytest.fixture
def uploader():
    return FakeUploader()


@pytest.fixture
def orders():
    return copy.deepcopy(ORDERS)


@pytest.fixture
def products():
    return copy.deepcopy(PRODUCTS)


@pytest.fixture
def make_uploader():
    """Factory for uploaders failing on chosen file names."""
    return FakeUploader


@pytest.fixture
def make_transport():
    return FakeTransport
