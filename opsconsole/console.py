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

"""Operations console facade.

Wires snapshot, staging, merger, resolver, committer and reorder channel
together per collection and exposes the operations the console UI calls.
"""

import asyncio
import logging
from typing import Any, Dict, Iterable, List, Mapping, Optional

from opsconsole.attachments.resolver import AttachmentResolver, ProgressCallback
from opsconsole.cache import SnapshotCache
from opsconsole.collections import COLLECTIONS, CollectionConfig, get_collection_config
from opsconsole.commit.manager import BatchCommitter, PhaseCallback, fetch_records
from opsconsole.commit.protocol import CommitResult, ReorderResult
from opsconsole.config import ConsoleSettings, get_settings
from opsconsole.errors import ConsoleError
from opsconsole.reorder.channel import ReorderChannel
from opsconsole.rpc.protocol import AttachmentUploader, RpcAttachmentUploader, RpcTransport
from opsconsole.staging.buffer import StagingBuffer
from opsconsole.staging.merger import filter_rows, merge
from opsconsole.staging.protocol import (
    AttachmentRef,
    MergedRow,
    Record,
    StagingShape,
    coerce_attachments,
    new_temp_id,
)
from opsconsole.staging.snapshot import SnapshotStore
from opsconsole.validation import parse_options, validate_manual_order

logger = logging.getLogger(__name__)


class CollectionEditor:
    """Editing session for one remote-backed collection."""

    def __init__(
        self,
        config: CollectionConfig,
        transport: RpcTransport,
        uploader: Optional[AttachmentUploader] = None,
        settings: Optional[ConsoleSettings] = None,
        cache: Optional[SnapshotCache] = None,
        on_phase: Optional[PhaseCallback] = None,
        progress: Optional[ProgressCallback] = None,
    ):
        """Initialize the editor.

        Args:
            config: Collection configuration
            transport: RPC transport
            uploader: Attachment uploader (RPC upload if not provided)
            settings: Console settings (global settings if not provided)
            cache: Persisted snapshot cache
            on_phase: Commit phase listener
            progress: Attachment upload progress listener
        """
        self.config = config
        self.transport = transport
        self.settings = settings or get_settings()
        self.cache = cache

        self.snapshot = SnapshotStore(id_field=config.id_field, name=config.name)
        self.staging = StagingBuffer(config.shape, id_field=config.id_field, name=config.name)

        self.resolver: Optional[AttachmentResolver] = None
        if config.attachment_field:
            self.resolver = AttachmentResolver(
                uploader or RpcAttachmentUploader(transport),
                default_group=self.settings.default_attachment_group,
                progress=progress,
            )

        self.committer = BatchCommitter(
            config,
            self.staging,
            self.snapshot,
            transport,
            resolver=self.resolver,
            refresh=self.refresh,
            on_phase=on_phase,
        )
        self.reorder_channel: Optional[ReorderChannel] = None
        if config.reorder_action:
            self.reorder_channel = ReorderChannel(config, transport)

    @property
    def name(self) -> str:
        return self.config.name

    def warm_start(self) -> bool:
        """Fill the snapshot from the local cache until the first fetch.

        Returns:
            True if cached records were loaded
        """
        if self.cache is None or self.snapshot.loaded:
            return False
        entry = self.cache.load(self.config.name)
        if entry is None:
            return False
        self.snapshot.replace(entry.records, stale=True)
        self._sync_order()
        logger.info(f"Loaded {len(entry.records)} cached {self.config.name} records")
        return True

    async def refresh(self) -> None:
        """Replace the snapshot with the remote collection.

        Staged edits are kept and stay overlaid on the new snapshot.
        """
        records = await fetch_records(self.transport, self.config)
        self.snapshot.replace(records)
        if self.cache is not None:
            self.cache.save(self.config.name, records)
        self._sync_order()
        logger.info(f"Fetched {len(records)} {self.config.name} records")

    def _sync_order(self) -> None:
        if self.reorder_channel is not None:
            self.reorder_channel.load(row.id for row in merge(self.snapshot, self.staging))

    def rows(self) -> List[MergedRow]:
        """Merged view in display order."""
        rows = merge(self.snapshot, self.staging)
        if self.reorder_channel is not None:
            rows = self.reorder_channel.apply(rows)
        return rows

    def view(self, query: str = "", **equals: Any) -> List[MergedRow]:
        """Merged view filtered by search text and exact field values."""
        return filter_rows(self.rows(), query, self.config.search_fields, **equals)

    def is_dirty(self) -> bool:
        return self.staging.is_dirty()

    def get(self, entity_id: Any) -> Optional[Record]:
        """Current value of a record: staged version first, then snapshot."""
        if self.staging.shape == StagingShape.REPLACE:
            staged = self.staging.get(entity_id)
            if staged is not None:
                return staged
        original = self.snapshot.get(entity_id)
        record = dict(original) if original is not None else None
        if self.staging.shape == StagingShape.PATCH:
            patch = self.staging.get(entity_id)
            if patch:
                record = {**(record or {}), **patch}
        return record

    # Patch-staged collections

    def set_field(self, entity_id: Any, field_name: str, value: Any) -> None:
        self.staging.record_patch(entity_id, field_name, value)

    def update_fields(self, entity_id: Any, fields: Mapping[str, Any]) -> None:
        self.staging.record_patch_fields(entity_id, fields)

    # Replace-staged collections

    def compose_replacement(
        self,
        entity_id: Optional[Any],
        form: Mapping[str, Any],
        new_attachments: Iterable[AttachmentRef] = (),
    ) -> Record:
        """Build a complete record from snapshot, staged record and form input.

        Option data is parsed before anything is staged, so invalid JSON is
        rejected here. New attachments are appended after the existing ones.

        Raises:
            StagingValidationError: If the option data is malformed
        """
        base: Record = {}
        if entity_id is not None:
            base = self.get(entity_id) or {}

        record = {**base, **form}
        if "options" in form:
            record["options"] = parse_options(form["options"])

        field_name = self.config.attachment_field
        if field_name:
            refs = coerce_attachments(record.get(field_name))
            refs.extend(new_attachments)
            record[field_name] = refs
        return record

    def stage_item(
        self,
        entity_id: Any,
        form: Mapping[str, Any],
        new_attachments: Iterable[AttachmentRef] = (),
    ) -> Any:
        """Stage an edit of an existing or unsaved record.

        Returns:
            The id the record is staged under
        """
        record = self.compose_replacement(entity_id, form, new_attachments)
        self.staging.record_replace(entity_id, record)
        self._sync_order()
        return entity_id

    def create_item(
        self, form: Mapping[str, Any], new_attachments: Iterable[AttachmentRef] = ()
    ) -> str:
        """Stage a new record under a temporary id.

        Returns:
            The temporary id
        """
        temp_id = new_temp_id(self.settings.temp_id_prefix)
        record = self.compose_replacement(None, form, new_attachments)
        self.staging.record_replace(temp_id, record)
        self._sync_order()
        return temp_id

    # Commits

    async def commit(self) -> CommitResult:
        return await self.committer.commit()

    async def delete(self, entity_id: Any) -> bool:
        deleted = await self.committer.delete(entity_id)
        self._sync_order()
        return deleted

    def reorder(self, from_index: int, to_index: int) -> None:
        """Move a row of the displayed view."""
        if self.reorder_channel is None:
            raise ConsoleError(f"{self.config.name} does not support reordering")
        self.reorder_channel.load(row.id for row in self.rows())
        self.reorder_channel.reorder(from_index, to_index)

    def is_order_dirty(self) -> bool:
        return self.reorder_channel is not None and self.reorder_channel.is_dirty()

    async def commit_order(self) -> ReorderResult:
        if self.reorder_channel is None:
            raise ConsoleError(f"{self.config.name} does not support reordering")
        result = await self.reorder_channel.commit_order()
        if result.success:
            try:
                await self.refresh()
            except ConsoleError as e:
                logger.warning(f"Refresh of {self.config.name} after reorder failed: {e}")
        return result


class OperationsConsole:
    """Editing core of the operations console: orders and catalog items."""

    def __init__(
        self,
        transport: RpcTransport,
        uploader: Optional[AttachmentUploader] = None,
        settings: Optional[ConsoleSettings] = None,
        cache: Optional[SnapshotCache] = None,
        on_phase: Optional[PhaseCallback] = None,
        progress: Optional[ProgressCallback] = None,
    ):
        self.transport = transport
        self.settings = settings or get_settings()
        if cache is None and self.settings.cache_dir is not None:
            cache = SnapshotCache(self.settings.cache_dir)

        self.editors: Dict[str, CollectionEditor] = {
            name: CollectionEditor(
                config,
                transport,
                uploader=uploader,
                settings=self.settings,
                cache=cache,
                on_phase=on_phase,
                progress=progress,
            )
            for name, config in COLLECTIONS.items()
        }

    @property
    def orders(self) -> CollectionEditor:
        return self.editors["orders"]

    @property
    def catalog(self) -> CollectionEditor:
        return self.editors["catalog"]

    def editor(self, name: str) -> CollectionEditor:
        get_collection_config(name)
        return self.editors[name]

    def warm_start(self) -> List[str]:
        """Load cached snapshots; returns the collections that had one."""
        return [name for name, editor in self.editors.items() if editor.warm_start()]

    async def refresh_all(self) -> None:
        """Fetch every collection."""
        await asyncio.gather(*(editor.refresh() for editor in self.editors.values()))

    def set_order_status(self, order_id: Any, status: str) -> None:
        """Stage a status change for one order."""
        self.orders.set_field(order_id, "status", status)

    async def create_order(self, order: Mapping[str, Any]) -> Any:
        """Create a manually entered order immediately.

        Returns:
            Id assigned by the remote store

        Raises:
            StagingValidationError: If required fields are missing
            CommitInProgressError: If an orders commit is running
            BatchRejectedError: If the remote store rejected the order
            TransportError: If the call failed
        """
        validate_manual_order(order)
        self.orders.committer.ensure_idle("create in")
        config = self.orders.config
        response = await self.transport.call(config.create_action, {"orderData": dict(order)})
        data = response.require(config.create_action) or {}
        order_id = data.get(config.id_field) if isinstance(data, dict) else None
        logger.info(f"Created order {order_id}")

        try:
            await self.orders.refresh()
        except ConsoleError as e:
            logger.warning(f"Refresh of orders after create failed: {e}")
        return order_id
