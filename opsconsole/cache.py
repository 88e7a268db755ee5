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

"""Persisted snapshot cache.

Keeps the last fetched snapshot of each collection on disk so the
console can paint something before the first fetch returns. The cache
is never authoritative: whatever it holds is replaced by the next fetch.
"""

import logging
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Sequence

from pydantic import BaseModel, Field, ValidationError

logger = logging.getLogger(__name__)


class SnapshotCacheEntry(BaseModel):
    """Cached snapshot of one collection."""

    collection: str = Field(description="Collection name")
    saved_at: datetime = Field(default_factory=datetime.now, description="When it was cached")
    records: List[Dict[str, Any]] = Field(default_factory=list, description="Snapshot records")


class SnapshotCache:
    """JSON file per collection under a cache directory."""

    def __init__(self, cache_dir: Path):
        """Initialize the cache.

        Args:
            cache_dir: Directory holding the cache files (created on first save)
        """
        self.cache_dir = Path(cache_dir)

    def _path(self, collection: str) -> Path:
        return self.cache_dir / f"{collection}.json"

    def save(self, collection: str, records: Sequence[Mapping[str, Any]]) -> None:
        """Store the latest authoritative snapshot of a collection."""
        entry = SnapshotCacheEntry(collection=collection, records=[dict(r) for r in records])
        try:
            self.cache_dir.mkdir(parents=True, exist_ok=True)
            self._path(collection).write_text(entry.model_dump_json(), encoding="utf-8")
        except OSError as e:
            logger.warning(f"Could not write snapshot cache for {collection}: {e}")

    def load(self, collection: str) -> Optional[SnapshotCacheEntry]:
        """Read the cached snapshot of a collection.

        Returns:
            Cached entry, or None if missing or unreadable
        """
        path = self._path(collection)
        if not path.exists():
            return None
        try:
            return SnapshotCacheEntry.model_validate_json(path.read_text(encoding="utf-8"))
        except (OSError, ValidationError) as e:
            logger.warning(f"Ignoring unreadable snapshot cache {path}: {e}")
            return None

    def invalidate(self, collection: str) -> None:
        path = self._path(collection)
        if path.exists():
            path.unlink()
