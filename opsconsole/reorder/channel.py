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

"""Reorder channel.

Holds the operator's ordering of a collection separately from field
edits. It has its own dirty flag and its own single-call commit, and
committing it never touches the staging buffer.
"""

import logging
from typing import Any, Iterable, List, Sequence

from opsconsole.collections import CollectionConfig
from opsconsole.commit.protocol import FailureKind, ReorderResult
from opsconsole.errors import CommitInProgressError, TransportError
from opsconsole.rpc.protocol import RpcTransport
from opsconsole.staging.protocol import MergedRow, is_temp_id

logger = logging.getLogger(__name__)


class ReorderChannel:
    """Independent ordering buffer for one collection."""

    def __init__(self, config: CollectionConfig, transport: RpcTransport):
        """Initialize the channel.

        Args:
            config: Collection configuration (must define reorder_action)
            transport: RPC transport
        """
        if not config.reorder_action:
            raise ValueError(f"{config.name} does not support reordering")
        self.config = config
        self.transport = transport
        self._order: List[Any] = []
        self._dirty = False
        self._in_flight = False

    @property
    def order(self) -> List[Any]:
        return list(self._order)

    @property
    def in_flight(self) -> bool:
        return self._in_flight

    def is_dirty(self) -> bool:
        return self._dirty

    def load(self, ids: Iterable[Any]) -> None:
        """Take the ordering from the currently displayed view.

        While the operator has an uncommitted ordering, ids that vanished
        are dropped and ids that appeared are appended instead of
        resetting the permutation.

        Args:
            ids: Ids of the merged view, in display order
        """
        ids = list(ids)
        if not self._dirty:
            self._order = ids
            return

        current = {str(i) for i in ids}
        kept = [i for i in self._order if str(i) in current]
        known = {str(i) for i in kept}
        self._order = kept + [i for i in ids if str(i) not in known]

    def reorder(self, from_index: int, to_index: int) -> None:
        """Move the id at ``from_index`` to ``to_index``.

        Raises:
            IndexError: If either index is out of range
        """
        size = len(self._order)
        if not (0 <= from_index < size and 0 <= to_index < size):
            raise IndexError(f"Cannot move {from_index} -> {to_index} in {size} rows")
        if from_index == to_index:
            return

        item = self._order.pop(from_index)
        self._order.insert(to_index, item)
        self._dirty = True
        logger.debug(f"Moved {self.config.name}:{item} from {from_index} to {to_index}")

    def apply(self, rows: Sequence[MergedRow]) -> List[MergedRow]:
        """Sort merged rows by the current ordering; unknown rows go last."""
        position = {str(entity_id): index for index, entity_id in enumerate(self._order)}
        tail = len(position)
        indexed = list(enumerate(rows))
        indexed.sort(key=lambda item: (position.get(str(item[1].id), tail), item[0]))
        return [row for _, row in indexed]

    async def commit_order(self) -> ReorderResult:
        """Send the full ordering in one call.

        Temporary ids are left out because the remote store does not know
        them yet. Success clears the reorder dirty flag unless the ordering
        was changed again while the call was in flight.

        Raises:
            CommitInProgressError: If a reorder commit is already running
        """
        if self._in_flight:
            raise CommitInProgressError(f"Reorder of {self.config.name} is already being saved")

        sent_order = list(self._order)
        ordered_ids = [i for i in sent_order if not is_temp_id(i)]
        result = ReorderResult(collection=self.config.name, success=False, ordered_ids=ordered_ids)

        self._in_flight = True
        try:
            response = await self.transport.call(
                self.config.reorder_action, {"orderedIds": ordered_ids}
            )
        except TransportError as e:
            logger.error(f"Saving order of {self.config.name} failed: {e}")
            result.failure_kind = FailureKind.TRANSPORT
            result.error = str(e)
            return result
        finally:
            self._in_flight = False

        if not response.success:
            logger.error(f"Saving order of {self.config.name} rejected: {response.error}")
            result.failure_kind = FailureKind.SERVER_REJECTED
            result.error = response.error or "reorder rejected"
            return result

        if self._order == sent_order:
            self._dirty = False
        else:
            logger.info(f"Order of {self.config.name} changed while saving, keeping it pending")
        result.success = True
        logger.info(f"Saved order of {len(ordered_ids)} {self.config.name} records")
        return result
