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

"""Snapshot store holding the last authoritative copy of a collection."""

import copy
import logging
from datetime import datetime
from types import MappingProxyType
from typing import Any, Iterable, Iterator, Mapping, Optional, Tuple

from opsconsole.staging.protocol import same_id

logger = logging.getLogger(__name__)


class SnapshotStore:
    """Read-only, wholesale-replaced copy of a remote collection.

    Records are deep-copied on the way in and exposed as read-only
    mappings, so nothing downstream can edit the snapshot in place.
    """

    def __init__(self, id_field: str = "id", name: str = ""):
        """Initialize an empty snapshot.

        Args:
            id_field: Field holding each record's identifier
            name: Collection name used in log messages
        """
        self.id_field = id_field
        self.name = name
        self._records: Tuple[Mapping[str, Any], ...] = ()
        self._version = 0
        self._fetched_at: Optional[datetime] = None
        self._stale = False

    @property
    def records(self) -> Tuple[Mapping[str, Any], ...]:
        return self._records

    @property
    def version(self) -> int:
        """Incremented on every replacement."""
        return self._version

    @property
    def fetched_at(self) -> Optional[datetime]:
        return self._fetched_at

    @property
    def stale(self) -> bool:
        """True while the snapshot came from the local cache, not the server."""
        return self._stale

    @property
    def loaded(self) -> bool:
        return self._fetched_at is not None

    def replace(self, records: Iterable[Mapping[str, Any]], stale: bool = False) -> None:
        """Replace the whole snapshot.

        Args:
            records: Records as returned by the remote store
            stale: Mark the snapshot as coming from the local cache
        """
        self._records = tuple(MappingProxyType(copy.deepcopy(dict(r))) for r in records)
        self._version += 1
        self._fetched_at = datetime.now()
        self._stale = stale
        logger.debug(
            f"Snapshot {self.name or self.id_field} replaced: "
            f"{len(self._records)} records (version {self._version}, stale={stale})"
        )

    def get(self, entity_id: Any) -> Optional[Mapping[str, Any]]:
        for record in self._records:
            if same_id(record.get(self.id_field), entity_id):
                return record
        return None

    def ids(self) -> list:
        return [record.get(self.id_field) for record in self._records]

    def __contains__(self, entity_id: Any) -> bool:
        return self.get(entity_id) is not None

    def __iter__(self) -> Iterator[Mapping[str, Any]]:
        return iter(self._records)

    def __len__(self) -> int:
        return len(self._records)
