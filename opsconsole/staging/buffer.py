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

"""Staging buffer for uncommitted edits.

Two recording shapes coexist:
- Patch staging: sparse field edits keyed by entity id, merged field by
  field with last write winning per field (orders)
- Replace staging: complete records keyed by id or temporary id, each
  submission replacing the previous one wholesale (catalog items)

Both implement the same StagingStrategy interface; StagingBuffer picks
one per collection and adds the commit lock on top.
"""

import copy
import logging
from abc import ABC, abstractmethod
from contextlib import contextmanager
from typing import Any, Dict, Iterator, List, Mapping, Optional, Sequence, Tuple

from opsconsole.errors import StagingLockedError
from opsconsole.staging.protocol import MergedRow, Record, StagingShape, same_id

logger = logging.getLogger(__name__)


class StagingStrategy(ABC):
    """Common interface of the two staging shapes."""

    shape: StagingShape

    @abstractmethod
    def stage(self, entity_id: Any, data: Mapping[str, Any]) -> None:
        """Record an edit for one entity."""

    @abstractmethod
    def get(self, entity_id: Any) -> Optional[Record]:
        """Get a copy of the staged data for one entity."""

    @abstractmethod
    def discard(self, entity_id: Any) -> bool:
        """Drop the staged data for one entity.

        Returns:
            True if something was removed
        """

    @abstractmethod
    def entries(self) -> List[Tuple[Any, Record]]:
        """Get copies of all staged entries in staging order."""

    @abstractmethod
    def merge(self, snapshot: Sequence[Mapping[str, Any]], id_field: str) -> List[MergedRow]:
        """Overlay staged entries onto snapshot records without mutating either."""

    @abstractmethod
    def clear(self) -> None:
        """Drop every staged entry."""

    @abstractmethod
    def __len__(self) -> int:
        pass


class PatchStaging(StagingStrategy):
    """Sparse field patches merged additively per entity."""

    shape = StagingShape.PATCH

    def __init__(self) -> None:
        self._patches: Dict[str, Tuple[Any, Record]] = {}

    def stage(self, entity_id: Any, data: Mapping[str, Any]) -> None:
        key = str(entity_id)
        if key not in self._patches:
            self._patches[key] = (entity_id, {})
        patch = self._patches[key][1]
        for field_name, value in data.items():
            patch[field_name] = copy.deepcopy(value)

    def get(self, entity_id: Any) -> Optional[Record]:
        entry = self._patches.get(str(entity_id))
        return copy.deepcopy(entry[1]) if entry else None

    def discard(self, entity_id: Any) -> bool:
        return self._patches.pop(str(entity_id), None) is not None

    def entries(self) -> List[Tuple[Any, Record]]:
        return [(eid, copy.deepcopy(patch)) for eid, patch in self._patches.values()]

    def merge(self, snapshot: Sequence[Mapping[str, Any]], id_field: str) -> List[MergedRow]:
        rows = []
        for record in snapshot:
            entity_id = record.get(id_field)
            merged = copy.deepcopy(dict(record))
            entry = self._patches.get(str(entity_id))
            if entry is None:
                rows.append(MergedRow(id=entity_id, record=merged))
                continue
            merged.update(copy.deepcopy(entry[1]))
            rows.append(MergedRow(id=entity_id, record=merged, modified=True))
        return rows

    def clear(self) -> None:
        self._patches.clear()

    def __len__(self) -> int:
        return len(self._patches)


class ReplaceStaging(StagingStrategy):
    """Complete replacement records, ordered by last submission."""

    shape = StagingShape.REPLACE

    def __init__(self) -> None:
        self._records: List[Tuple[Any, Record]] = []

    def stage(self, entity_id: Any, data: Mapping[str, Any]) -> None:
        self.discard(entity_id)
        self._records.append((entity_id, copy.deepcopy(dict(data))))

    def get(self, entity_id: Any) -> Optional[Record]:
        for eid, record in self._records:
            if same_id(eid, entity_id):
                return copy.deepcopy(record)
        return None

    def discard(self, entity_id: Any) -> bool:
        before = len(self._records)
        self._records = [(eid, r) for eid, r in self._records if not same_id(eid, entity_id)]
        return len(self._records) != before

    def entries(self) -> List[Tuple[Any, Record]]:
        return [(eid, copy.deepcopy(record)) for eid, record in self._records]

    def merge(self, snapshot: Sequence[Mapping[str, Any]], id_field: str) -> List[MergedRow]:
        rows = []
        matched = set()
        for record in snapshot:
            entity_id = record.get(id_field)
            replacement = None
            for eid, staged in self._records:
                if same_id(eid, entity_id):
                    replacement = staged
                    matched.add(str(eid))
                    break
            if replacement is None:
                rows.append(MergedRow(id=entity_id, record=copy.deepcopy(dict(record))))
            else:
                rows.append(
                    MergedRow(id=entity_id, record=copy.deepcopy(replacement), modified=True)
                )

        # Staged records with no snapshot counterpart are not persisted yet
        for eid, staged in self._records:
            if str(eid) in matched:
                continue
            rows.append(MergedRow(id=eid, record=copy.deepcopy(staged), modified=True, new=True))
        return rows

    def clear(self) -> None:
        self._records = []

    def __len__(self) -> int:
        return len(self._records)


_STRATEGIES = {
    StagingShape.PATCH: PatchStaging,
    StagingShape.REPLACE: ReplaceStaging,
}


class StagingBuffer:
    """Pending edits for one collection.

    Features:
    - Shape-specific recording (patch or replace)
    - Local discard of unpersisted entities
    - Commit lock rejecting edits while a commit is in flight
    """

    def __init__(self, shape: StagingShape, id_field: str = "id", name: str = ""):
        """Initialize an empty buffer.

        Args:
            shape: Recording shape for this collection
            id_field: Field holding each record's identifier
            name: Collection name used in log messages
        """
        self.shape = StagingShape(shape)
        self.id_field = id_field
        self.name = name
        self._strategy: StagingStrategy = _STRATEGIES[self.shape]()
        self._locked = False

    @property
    def strategy(self) -> StagingStrategy:
        return self._strategy

    @property
    def locked(self) -> bool:
        return self._locked

    def record_patch(self, entity_id: Any, field_name: str, value: Any) -> None:
        """Set one field of an entity's patch, creating the patch if absent.

        Args:
            entity_id: Entity to patch
            field_name: Field to set
            value: New value (last write wins)
        """
        self.record_patch_fields(entity_id, {field_name: value})

    def record_patch_fields(self, entity_id: Any, fields: Mapping[str, Any]) -> None:
        """Set several fields of an entity's patch at once."""
        self._require_shape(StagingShape.PATCH, "record_patch")
        self._ensure_unlocked()
        self._strategy.stage(entity_id, fields)
        logger.debug(f"Staged patch for {self.name}:{entity_id} fields={sorted(fields)}")

    def record_replace(self, entity_id: Any, full_record: Mapping[str, Any]) -> None:
        """Install a complete replacement record, dropping any previous one.

        Args:
            entity_id: Persisted id or temporary id
            full_record: Complete record built by the caller
        """
        self._require_shape(StagingShape.REPLACE, "record_replace")
        self._ensure_unlocked()
        record = dict(full_record)
        record[self.id_field] = entity_id
        self._strategy.stage(entity_id, record)
        logger.debug(f"Staged replacement for {self.name}:{entity_id}")

    def discard(self, entity_id: Any) -> bool:
        """Drop the staged entry for one entity.

        Returns:
            True if an entry was removed
        """
        self._ensure_unlocked()
        removed = self._strategy.discard(entity_id)
        if removed:
            logger.debug(f"Discarded staged entry {self.name}:{entity_id}")
        return removed

    def get(self, entity_id: Any) -> Optional[Record]:
        return self._strategy.get(entity_id)

    def entries(self) -> List[Tuple[Any, Record]]:
        return self._strategy.entries()

    def state(self) -> List[Tuple[Any, Record]]:
        """Deep copy of the staged content, for comparisons and previews."""
        return self._strategy.entries()

    def merge(self, snapshot: Sequence[Mapping[str, Any]]) -> List[MergedRow]:
        return self._strategy.merge(snapshot, self.id_field)

    def clear(self) -> None:
        """Drop every staged entry (only after a confirmed commit)."""
        self._ensure_unlocked()
        count = len(self._strategy)
        self._strategy.clear()
        logger.debug(f"Cleared {count} staged entries for {self.name}")

    def is_dirty(self) -> bool:
        return len(self._strategy) > 0

    def __len__(self) -> int:
        return len(self._strategy)

    @contextmanager
    def commit_lock(self) -> Iterator["StagingBuffer"]:
        """Hold the buffer read-only for the duration of a commit."""
        self._locked = True
        try:
            yield self
        finally:
            self._locked = False

    def _ensure_unlocked(self) -> None:
        if self._locked:
            raise StagingLockedError(f"Staging for {self.name or 'collection'} is being committed")

    def _require_shape(self, shape: StagingShape, operation: str) -> None:
        if self.shape != shape:
            raise TypeError(f"{operation} is not supported by {self.shape.value} staging")
