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


"""Staged-edit buffer and batch-reconciliation engine for an operations console.

Operators edit orders and catalog items locally, see the edits merged into
the displayed lists immediately, and commit each collection as a single
remote transaction. Catalog ordering is staged and committed separately.

Package Structure:
    config.py        - Runtime settings
    collections.py   - Collection definitions (staging shape, remote actions)
    errors.py        - Exception hierarchy
    validation.py    - Local validation before staging
    cache.py         - Persisted snapshot cache
    console.py       - OperationsConsole / CollectionEditor facade
    staging/         - Snapshot store, staging buffer, display merger, previews
    attachments/     - Attachment resolver
    commit/          - Batch commit protocol
    reorder/         - Reorder channel
    rpc/             - Remote collaborator interfaces and HTTP transport

Usage:
    from opsconsole import HttpRpcClient, OperationsConsole

    async with HttpRpcClient(credentials={"password": secret}) as client:
        console = OperationsConsole(client)
        await console.refresh_all()
        console.set_order_status("A1001", "shipped")
        result = await console.orders.commit()
"""

from opsconsole.cache import SnapshotCache
from opsconsole.collections import COLLECTIONS, CollectionConfig, get_collection_config
from opsconsole.commit import BatchCommitter, CommitPhase, CommitResult, ReorderResult
from opsconsole.config import ConsoleSettings, get_settings
from opsconsole.console import CollectionEditor, OperationsConsole
from opsconsole.errors import (
    AttachmentUploadError,
    BatchRejectedError,
    CommitInProgressError,
    ConsoleError,
    StagingLockedError,
    StagingValidationError,
    TransportError,
)
from opsconsole.reorder import ReorderChannel
from opsconsole.rpc import HttpRpcClient, RpcResponse, RpcTransport
from opsconsole.staging import (
    AttachmentRef,
    MergedRow,
    SnapshotStore,
    StagingBuffer,
    StagingShape,
    merge,
)

__all__ = [
    "AttachmentRef",
    "AttachmentUploadError",
    "BatchCommitter",
    "BatchRejectedError",
    "COLLECTIONS",
    "CollectionConfig",
    "CollectionEditor",
    "CommitInProgressError",
    "CommitPhase",
    "CommitResult",
    "ConsoleError",
    "ConsoleSettings",
    "HttpRpcClient",
    "MergedRow",
    "OperationsConsole",
    "ReorderChannel",
    "ReorderResult",
    "RpcResponse",
    "RpcTransport",
    "SnapshotCache",
    "SnapshotStore",
    "StagingBuffer",
    "StagingLockedError",
    "StagingShape",
    "StagingValidationError",
    "TransportError",
    "get_collection_config",
    "get_settings",
    "merge",
]
