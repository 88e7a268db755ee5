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

"""Display merger.

Overlays the staging buffer onto the snapshot to produce the list the
console renders. Search and filtering run on this merged list, never on
the raw snapshot, so filtered views still show staged edits.
"""

from typing import Any, Iterable, List, Mapping, Sequence, Union

from opsconsole.staging.buffer import StagingBuffer
from opsconsole.staging.protocol import MergedRow
from opsconsole.staging.snapshot import SnapshotStore


def merge(
    snapshot: Union[SnapshotStore, Sequence[Mapping[str, Any]]],
    staging: StagingBuffer,
) -> List[MergedRow]:
    """Produce the render-ready view of a collection.

    Patch-staged collections overlay each patch onto its record. Replace-
    staged collections substitute staged records wholesale and append
    staged records unknown to the snapshot as new rows. Neither input is
    modified.

    Args:
        snapshot: Snapshot store or plain sequence of records
        staging: Staging buffer for the same collection

    Returns:
        Merged rows in snapshot order, new rows last
    """
    records = snapshot.records if isinstance(snapshot, SnapshotStore) else tuple(snapshot)
    return staging.merge(records)


def _matches_query(row: MergedRow, query: str, fields: Iterable[str]) -> bool:
    for field_name in fields:
        value = row.get(field_name)
        if value is None:
            continue
        if query in str(value).lower():
            return True
    return False


def filter_rows(
    rows: Iterable[MergedRow],
    query: str = "",
    fields: Sequence[str] = (),
    **equals: Any,
) -> List[MergedRow]:
    """Filter merged rows by free-text search and exact field matches.

    Args:
        rows: Output of merge()
        query: Case-insensitive substring searched in ``fields``
        fields: Fields the query is matched against
        **equals: Field values that must match exactly (empty values are ignored)

    Returns:
        Rows matching every criterion, in input order
    """
    query = (query or "").strip().lower()
    conditions = {name: value for name, value in equals.items() if value not in (None, "")}

    result = []
    for row in rows:
        if query and not _matches_query(row, query, fields):
            continue
        if any(row.get(name) != value for name, value in conditions.items()):
            continue
        result.append(row)
    return result
