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

"""Staging data types.

Defines the value types shared by the snapshot store, the staging
buffer, the display merger and the attachment resolver.
"""

import base64
import hashlib
import itertools
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional, Union

from opsconsole.config import get_settings

Record = Dict[str, Any]

_temp_counter = itertools.count(1)


class StagingShape(str, Enum):
    """How pending edits for a collection are recorded."""

    PATCH = "patch"  # id -> partial field set, merged field by field
    REPLACE = "replace"  # id/temp-id -> complete record, replaced wholesale


class AttachmentKind(str, Enum):
    """Kind of attachment reference."""

    EXISTING = "existing"  # Already stored remotely, value is a URL
    LOCAL = "local"  # Held locally, value is a LocalAttachment awaiting upload


@dataclass(frozen=True)
class LocalAttachment:
    """Binary payload selected by the operator but not uploaded yet."""

    file_name: str
    content: bytes
    mime_type: str

    @property
    def size(self) -> int:
        return len(self.content)

    @property
    def digest(self) -> str:
        """SHA-256 of the content."""
        return hashlib.sha256(self.content).hexdigest()

    def to_upload_payload(self, group: str) -> Dict[str, str]:
        """Build the upload request payload.

        Args:
            group: Grouping key the remote store files the upload under

        Returns:
            Payload with base64-encoded content
        """
        return {
            "fileName": self.file_name,
            "content": base64.b64encode(self.content).decode("ascii"),
            "mimeType": self.mime_type,
            "brand": group,
        }


@dataclass(frozen=True)
class AttachmentRef:
    """Tagged reference to an attachment: a stored URL or a local payload."""

    kind: AttachmentKind
    value: Union[str, LocalAttachment]

    @classmethod
    def existing(cls, url: str) -> "AttachmentRef":
        return cls(kind=AttachmentKind.EXISTING, value=url)

    @classmethod
    def local(
        cls, file_name: str, content: bytes, mime_type: str = "application/octet-stream"
    ) -> "AttachmentRef":
        return cls(
            kind=AttachmentKind.LOCAL,
            value=LocalAttachment(file_name=file_name, content=content, mime_type=mime_type),
        )

    @property
    def is_local(self) -> bool:
        return self.kind == AttachmentKind.LOCAL

    @property
    def url(self) -> Optional[str]:
        if self.kind == AttachmentKind.EXISTING:
            return self.value  # type: ignore[return-value]
        return None


@dataclass(frozen=True)
class MergedRow:
    """One render-ready row: snapshot record overlaid with staged edits."""

    id: Any
    record: Record = field(default_factory=dict)
    modified: bool = False
    new: bool = False

    def get(self, key: str, default: Any = None) -> Any:
        return self.record.get(key, default)

    def __getitem__(self, key: str) -> Any:
        return self.record[key]


def new_temp_id(prefix: Optional[str] = None) -> str:
    """Generate a temporary identifier for an entity not yet persisted.

    Args:
        prefix: Tag prefix (defaults to the configured ``temp_id_prefix``)

    Returns:
        Identifier such as ``NEW_1735689600000_1``
    """
    prefix = get_settings().temp_id_prefix if prefix is None else prefix
    return f"{prefix}{int(time.time() * 1000)}_{next(_temp_counter)}"


def is_temp_id(value: Any, prefix: Optional[str] = None) -> bool:
    """Check whether an identifier was generated locally."""
    if value is None:
        return False
    prefix = get_settings().temp_id_prefix if prefix is None else prefix
    return str(value).startswith(prefix)


def same_id(left: Any, right: Any) -> bool:
    """Compare identifiers the way the remote store does (as strings)."""
    if left is None or right is None:
        return False
    return str(left) == str(right)


def coerce_attachments(value: Any) -> list:
    """Normalise an attachment field into a list of AttachmentRef.

    Snapshot records carry attachments either as a list of URLs or as a
    comma-separated string; staged records carry AttachmentRef lists.
    """
    if value is None or value == "":
        return []
    if isinstance(value, str):
        return [AttachmentRef.existing(part.strip()) for part in value.split(",") if part.strip()]
    refs = []
    for item in value:
        if isinstance(item, AttachmentRef):
            refs.append(item)
        elif isinstance(item, LocalAttachment):
            refs.append(AttachmentRef(kind=AttachmentKind.LOCAL, value=item))
        elif item:
            refs.append(AttachmentRef.existing(str(item)))
    return refs
