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

"""Console previews of pending changes and commit outcomes."""

from typing import Any, Dict, List, Optional

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from opsconsole.commit.protocol import CommitResult
from opsconsole.staging.buffer import StagingBuffer
from opsconsole.staging.protocol import StagingShape, coerce_attachments, is_temp_id
from opsconsole.staging.snapshot import SnapshotStore


def _changed(original: Any, value: Any) -> bool:
    # Snapshot attachments arrive as comma-joined URLs, staged ones as lists
    if isinstance(original, str) and isinstance(value, list):
        return coerce_attachments(original) != coerce_attachments(value)
    return original != value


def describe_pending(staging: StagingBuffer, snapshot: SnapshotStore) -> List[Dict[str, Any]]:
    """List staged entries with the fields they change.

    Returns:
        One dict per entry with ``id``, ``change`` (create/modify) and ``fields``
    """
    rows = []
    for entity_id, data in staging.entries():
        original = snapshot.get(entity_id)
        if staging.shape == StagingShape.PATCH:
            fields = sorted(data)
        elif original is None:
            fields = sorted(k for k in data if k != staging.id_field)
        else:
            fields = sorted(k for k, v in data.items() if _changed(original.get(k), v))

        local = 0
        for value in data.values():
            if isinstance(value, list):
                local += sum(1 for ref in coerce_attachments(value) if ref.is_local)

        rows.append(
            {
                "id": entity_id,
                "change": "create" if is_temp_id(entity_id) or original is None else "modify",
                "fields": fields,
                "pending_uploads": local,
            }
        )
    return rows


def render_pending(
    staging: StagingBuffer,
    snapshot: SnapshotStore,
    console: Optional[Console] = None,
) -> None:
    """Print a table of the staged changes of one collection."""
    console = console or Console()
    pending = describe_pending(staging, snapshot)
    if not pending:
        console.print(f"[dim]No unsaved {staging.name or 'changes'}[/]")
        return

    table = Table(title=f"{len(pending)} unsaved {staging.name} change(s)")
    table.add_column("Id", style="cyan")
    table.add_column("Change")
    table.add_column("Fields")
    table.add_column("Uploads", justify="right")

    for row in pending:
        style = "green" if row["change"] == "create" else "yellow"
        table.add_row(
            str(row["id"]),
            f"[{style}]{row['change']}[/]",
            ", ".join(row["fields"]) or "-",
            str(row["pending_uploads"]),
        )
    console.print(table)


def summarize_commit(result: CommitResult, console: Optional[Console] = None) -> None:
    """Print the outcome of a commit attempt."""
    console = console or Console()

    if result.success:
        lines = [f"[green]Saved {result.committed} {result.collection} record(s)[/]"]
        if result.uploads:
            lines.append(f"Uploaded {result.uploads} attachment(s)")
        if not result.refreshed and result.committed:
            lines.append("[yellow]List could not be refreshed, reload to see server state[/]")
        border = "green"
    else:
        phase = result.failed_phase.value if result.failed_phase else "unknown"
        lines = [
            f"[red]Saving {result.collection} failed while {phase}[/]",
            f"{result.error}",
            "Unsaved changes were kept; you can retry.",
        ]
        if result.reused_uploads or result.uploads:
            lines.append("Attachments already uploaded will not be uploaded again.")
        border = "red"

    for failure in result.attachment_failures:
        lines.append(
            f"[yellow]Attachment {failure.file_name} of {failure.record_id} "
            f"was not uploaded: {failure.reason}[/]"
        )

    console.print(Panel("\n".join(lines), title="Commit", border_style=border))
