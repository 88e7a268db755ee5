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

"""Batch commit protocol.

Commits everything staged for a collection as one remote call:

    IDLE -> RESOLVING -> TRANSMITTING -> RECONCILING -> IDLE   (accepted)
    IDLE -> RESOLVING -> TRANSMITTING -> FAILED -> IDLE        (failed)

The phase doubles as the in-flight flag: a commit cannot start unless
the committer is IDLE, and the staging buffer stays locked until the
batch call has returned. Staged edits are only cleared once the remote
store accepted the batch; any failure leaves them exactly as they were.
"""

import logging
from typing import Any, Awaitable, Callable, Dict, List, Mapping, Optional, Tuple

from opsconsole.attachments.resolver import AttachmentResolver, has_local_attachments
from opsconsole.collections import CollectionConfig
from opsconsole.commit.protocol import (
    AttachmentFailureInfo,
    CommitPhase,
    CommitResult,
    FailureKind,
)
from opsconsole.errors import (
    CommitInProgressError,
    ConsoleError,
    TransportError,
)
from opsconsole.rpc.protocol import RpcTransport
from opsconsole.staging.buffer import StagingBuffer
from opsconsole.staging.protocol import (
    Record,
    StagingShape,
    coerce_attachments,
    is_temp_id,
)
from opsconsole.staging.snapshot import SnapshotStore

logger = logging.getLogger(__name__)

PhaseCallback = Callable[[str, CommitPhase], None]


async def fetch_records(transport: RpcTransport, config: CollectionConfig) -> List[Dict[str, Any]]:
    """Fetch a whole collection from the remote store.

    Args:
        transport: RPC transport
        config: Collection to fetch

    Returns:
        Records in server order

    Raises:
        BatchRejectedError: If the remote store rejected the fetch
        TransportError: If the call failed or the data is malformed
    """
    response = await transport.call(config.fetch_action, {})
    data = response.require(config.fetch_action)
    records = data.get(config.data_key) if isinstance(data, dict) else data
    if not isinstance(records, list):
        raise TransportError(f"{config.fetch_action} returned no '{config.data_key}' list")
    return records


class BatchCommitter:
    """Drives the commit of one collection's staging buffer.

    Handles:
    - Mutual exclusion between commit attempts
    - Attachment resolution before transmission
    - Building and sending the single batch call
    - Reconciliation (clear staging, refetch snapshot) on success
    - Immediate single-entity deletes, which bypass staging
    """

    def __init__(
        self,
        config: CollectionConfig,
        staging: StagingBuffer,
        snapshot: SnapshotStore,
        transport: RpcTransport,
        resolver: Optional[AttachmentResolver] = None,
        refresh: Optional[Callable[[], Awaitable[Any]]] = None,
        on_phase: Optional[PhaseCallback] = None,
    ):
        """Initialize the committer.

        Args:
            config: Collection configuration
            staging: Buffer to commit
            snapshot: Snapshot refreshed after a successful commit
            transport: RPC transport
            resolver: Attachment resolver (required if records carry local attachments)
            refresh: Coroutine refetching the snapshot (defaults to a plain fetch)
            on_phase: Called on every phase transition
        """
        self.config = config
        self.staging = staging
        self.snapshot = snapshot
        self.transport = transport
        self.resolver = resolver
        self._refresh = refresh
        self.on_phase = on_phase
        self._phase = CommitPhase.IDLE
        self.last_result: Optional[CommitResult] = None

    @property
    def phase(self) -> CommitPhase:
        return self._phase

    @property
    def in_flight(self) -> bool:
        return self._phase != CommitPhase.IDLE

    def _transition(self, phase: CommitPhase) -> None:
        if phase == self._phase:
            return
        logger.debug(f"Commit {self.config.name}: {self._phase.value} -> {phase.value}")
        self._phase = phase
        if self.on_phase:
            self.on_phase(self.config.name, phase)

    def ensure_idle(self, operation: str) -> None:
        """Raise CommitInProgressError unless no commit is running."""
        if self._phase != CommitPhase.IDLE:
            raise CommitInProgressError(
                f"Cannot {operation} {self.config.name}: commit is {self._phase.value}",
                self._phase,
            )

    async def commit(self) -> CommitResult:
        """Commit every staged edit of the collection.

        Returns:
            Result describing the outcome and, on failure, the phase that failed

        Raises:
            CommitInProgressError: If a commit is already running
        """
        self.ensure_idle("commit")
        result = CommitResult(collection=self.config.name, success=False)

        if not self.staging.is_dirty():
            result.success = True
            self.last_result = result
            return result

        logger.info(f"Committing {len(self.staging)} staged {self.config.name} records")
        self._transition(CommitPhase.RESOLVING)
        try:
            with self.staging.commit_lock():
                entries = self.staging.entries()

                try:
                    await self._resolve_attachments(entries, result)
                except ConsoleError as e:
                    return self._fail(result, CommitPhase.RESOLVING, FailureKind.RESOLUTION, str(e))

                self._transition(CommitPhase.TRANSMITTING)
                result.batch = self.build_batch(entries)

                try:
                    response = await self.transport.call(
                        self.config.batch_action, {"updates": result.batch}
                    )
                except TransportError as e:
                    return self._fail(
                        result, CommitPhase.TRANSMITTING, FailureKind.TRANSPORT, str(e)
                    )
                except Exception as e:
                    logger.exception(f"Unexpected error sending {self.config.name} batch")
                    return self._fail(
                        result,
                        CommitPhase.TRANSMITTING,
                        FailureKind.TRANSPORT,
                        f"{type(e).__name__}: {e}",
                    )

                if not response.success:
                    return self._fail(
                        result,
                        CommitPhase.TRANSMITTING,
                        FailureKind.SERVER_REJECTED,
                        response.error or "batch rejected",
                    )

            self._transition(CommitPhase.RECONCILING)
            self.staging.clear()
            if self.resolver:
                self.resolver.forget()
            result.success = True
            result.committed = len(result.batch)
            logger.info(f"Committed {result.committed} {self.config.name} records")

            try:
                await self.refresh()
                result.refreshed = True
            except ConsoleError as e:
                logger.warning(f"Refresh of {self.config.name} after commit failed: {e}")

            self.last_result = result
            return result

        finally:
            self._transition(CommitPhase.IDLE)

    def _fail(
        self,
        result: CommitResult,
        phase: CommitPhase,
        kind: FailureKind,
        error: str,
    ) -> CommitResult:
        self._transition(CommitPhase.FAILED)
        result.success = False
        result.failed_phase = phase
        result.failure_kind = kind
        result.error = error
        logger.error(f"Commit of {self.config.name} failed while {phase.value}: {error}")
        self.last_result = result
        return result

    async def _resolve_attachments(
        self, entries: List[Tuple[Any, Record]], result: CommitResult
    ) -> None:
        field_name = self.config.attachment_field
        if not field_name:
            return

        for entity_id, record in entries:
            if not has_local_attachments(record, field_name):
                continue
            if self.resolver is None:
                raise ConsoleError(f"{entity_id} has local attachments but no uploader is set")

            group = None
            if self.config.group_field:
                group = str(record.get(self.config.group_field) or "").strip() or None
            report = await self.resolver.resolve(record, field_name, group, record_id=entity_id)

            result.uploads += len(report.uploaded)
            result.reused_uploads += report.reused
            for failure in report.failures:
                result.attachment_failures.append(
                    AttachmentFailureInfo(
                        record_id=entity_id, file_name=failure.file_name, reason=failure.reason
                    )
                )

    def build_batch(self, entries: List[Tuple[Any, Mapping[str, Any]]]) -> List[Dict[str, Any]]:
        """Build the outbound batch from staged entries.

        Patch entries become ``{id_field: id, **patch}``. Replace entries are
        sent whole, with temporary ids mapped to ``None`` and attachment lists
        reduced to a comma-joined string of their stored URLs.
        """
        id_field = self.config.id_field
        batch = []
        for entity_id, data in entries:
            if self.staging.shape == StagingShape.PATCH:
                batch.append({id_field: entity_id, **data})
                continue

            record = {k: v for k, v in data.items() if not str(k).startswith("_")}
            record[id_field] = None if is_temp_id(entity_id) else entity_id
            field_name = self.config.attachment_field
            if field_name and field_name in record:
                record[field_name] = ",".join(
                    ref.url for ref in coerce_attachments(record[field_name]) if not ref.is_local
                )
            batch.append(record)
        return batch

    async def refresh(self) -> None:
        """Refetch the snapshot wholesale."""
        if self._refresh is not None:
            await self._refresh()
            return
        records = await fetch_records(self.transport, self.config)
        self.snapshot.replace(records)

    async def delete(self, entity_id: Any) -> bool:
        """Delete one entity immediately, outside of staging.

        An entity that only exists as a staged temporary record is removed
        locally without any remote call.

        Args:
            entity_id: Entity to delete

        Returns:
            True if a remote delete was performed

        Raises:
            CommitInProgressError: If a commit is running
            BatchRejectedError: If the remote store rejected the delete
            TransportError: If the call failed
        """
        self.ensure_idle("delete from")

        if is_temp_id(entity_id):
            self.staging.discard(entity_id)
            logger.info(f"Dropped unsaved {self.config.name} record {entity_id}")
            return False

        if not self.config.delete_action:
            raise ConsoleError(f"{self.config.name} does not support deletes")

        response = await self.transport.call(
            self.config.delete_action, {self.config.id_field: entity_id}
        )
        response.require(self.config.delete_action)
        self.staging.discard(entity_id)
        logger.info(f"Deleted {self.config.name} record {entity_id}")

        try:
            await self.refresh()
        except ConsoleError as e:
            logger.warning(f"Refresh of {self.config.name} after delete failed: {e}")
        return True
