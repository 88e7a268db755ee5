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

"""Remote collaborator interfaces.

The editing core talks to the remote store through two calls:
- a request/response RPC taking a sub-action name and a payload and
  returning a success/error envelope
- an attachment upload taking binary content and returning a URL

Both are abstract here; rpc.client provides the HTTP implementation.
"""

import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field

from opsconsole.errors import AttachmentUploadError, BatchRejectedError, TransportError
from opsconsole.staging.protocol import LocalAttachment

logger = logging.getLogger(__name__)

UPLOAD_SUB_ACTION = "uploadImageToGitHub"


class RpcResponse(BaseModel):
    """Success/error envelope returned by every remote call."""

    success: bool = Field(description="Whether the remote store accepted the request")
    data: Optional[Any] = Field(default=None, description="Action-specific result")
    error: Optional[str] = Field(default=None, description="Error message when success is false")

    def require(self, sub_action: str, phase: Optional[Any] = None) -> Any:
        """Get the data of a successful response.

        Args:
            sub_action: Action name used in the error message
            phase: Commit phase attached to the error

        Returns:
            Response data

        Raises:
            BatchRejectedError: If the remote store reported a failure
        """
        if not self.success:
            raise BatchRejectedError(sub_action, self.error, phase)
        return self.data


class RpcTransport(ABC):
    """Single-endpoint request/response call."""

    @abstractmethod
    async def call(self, sub_action: str, payload: Optional[Dict[str, Any]] = None) -> RpcResponse:
        """Invoke a remote action.

        Args:
            sub_action: Action name
            payload: Action-specific fields

        Returns:
            Response envelope (``success`` may be false)

        Raises:
            TransportError: If no usable response was received
        """
        pass


class AttachmentUploader(ABC):
    """Uploads one binary attachment and returns its stored URL."""

    @abstractmethod
    async def upload(self, attachment: LocalAttachment, group: str) -> str:
        """Upload an attachment.

        Args:
            attachment: Local payload
            group: Grouping key the remote store files it under

        Returns:
            URL of the stored resource

        Raises:
            AttachmentUploadError: If the upload failed
        """
        pass


class RpcAttachmentUploader(AttachmentUploader):
    """Uploader that goes through the RPC transport."""

    def __init__(self, transport: RpcTransport, sub_action: str = UPLOAD_SUB_ACTION):
        self.transport = transport
        self.sub_action = sub_action

    async def upload(self, attachment: LocalAttachment, group: str) -> str:
        try:
            response = await self.transport.call(
                self.sub_action, attachment.to_upload_payload(group)
            )
        except TransportError as e:
            raise AttachmentUploadError(attachment.file_name, str(e)) from e

        if not response.success:
            raise AttachmentUploadError(attachment.file_name, response.error or "upload rejected")

        url = response.data.get("url") if isinstance(response.data, dict) else None
        if not url:
            raise AttachmentUploadError(attachment.file_name, "response carried no url")
        return url
