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

"""Commit phases and results."""

from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


class CommitPhase(str, Enum):
    """State of a collection's batch commit."""

    IDLE = "idle"
    RESOLVING = "resolving"  # Uploading local attachments
    TRANSMITTING = "transmitting"  # Batch call in flight
    RECONCILING = "reconciling"  # Clearing staging and refetching
    FAILED = "failed"


class FailureKind(str, Enum):
    """Why a commit stopped."""

    RESOLUTION = "resolution"  # Unexpected error while resolving attachments
    TRANSPORT = "transport"  # Network failure or timeout, safe to retry
    SERVER_REJECTED = "server_rejected"  # Remote store answered success=false


class AttachmentFailureInfo(BaseModel):
    """Attachment dropped from a committed record."""

    record_id: Any = Field(description="Record the attachment belonged to")
    file_name: str = Field(description="Attachment file name")
    reason: str = Field(description="Upload error")


class CommitResult(BaseModel):
    """Outcome of one batch commit attempt."""

    collection: str = Field(description="Committed collection")
    success: bool = Field(description="Whether the batch was accepted")
    committed: int = Field(default=0, description="Number of records transmitted")
    failed_phase: Optional[CommitPhase] = Field(
        default=None, description="Phase in which the commit stopped"
    )
    failure_kind: Optional[FailureKind] = Field(default=None, description="Failure category")
    error: Optional[str] = Field(default=None, description="Error message")
    uploads: int = Field(default=0, description="Attachments uploaded during this attempt")
    reused_uploads: int = Field(
        default=0, description="Attachments already uploaded by an earlier attempt"
    )
    attachment_failures: List[AttachmentFailureInfo] = Field(
        default_factory=list, description="Attachments dropped because their upload failed"
    )
    refreshed: bool = Field(default=False, description="Whether the snapshot was refetched")
    batch: List[Dict[str, Any]] = Field(
        default_factory=list, description="Records sent to the remote store"
    )
    timestamp: datetime = Field(default_factory=datetime.now, description="Attempt time")

    @property
    def retry_redoes_uploads(self) -> bool:
        """Whether retrying would upload attachments that have not been uploaded yet."""
        return bool(self.attachment_failures) or self.failed_phase == CommitPhase.RESOLVING


class ReorderResult(BaseModel):
    """Outcome of committing a reorder permutation."""

    collection: str = Field(description="Reordered collection")
    success: bool = Field(description="Whether the ordering was accepted")
    ordered_ids: List[Any] = Field(default_factory=list, description="Ids sent, in order")
    failure_kind: Optional[FailureKind] = Field(default=None, description="Failure category")
    error: Optional[str] = Field(default=None, description="Error message")
