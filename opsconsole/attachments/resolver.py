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

"""Attachment resolver.

Turns local attachments held in staged records into stored URLs before a
commit. Uploads run one at a time in list order. A failed upload is
logged and skipped; the record keeps every attachment that did upload,
in its original relative position.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Tuple

from opsconsole.errors import AttachmentUploadError, ConsoleError
from opsconsole.rpc.protocol import AttachmentUploader
from opsconsole.staging.protocol import AttachmentRef, LocalAttachment, Record, coerce_attachments

logger = logging.getLogger(__name__)

# (file_name, position, total) for each upload about to start
ProgressCallback = Callable[[str, int, int], None]


@dataclass
class AttachmentFailure:
    """An attachment that could not be uploaded."""

    record_id: Any
    file_name: str
    position: int  # Index in the staged attachment list
    reason: str


@dataclass
class ResolutionReport:
    """Outcome of resolving the attachments of one record."""

    record_id: Any
    uploaded: List[str] = field(default_factory=list)
    reused: int = 0  # Uploads answered from earlier commit attempts
    failures: List[AttachmentFailure] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failures


def has_local_attachments(record: Record, attachment_field: str) -> bool:
    return any(ref.is_local for ref in coerce_attachments(record.get(attachment_field)))


class AttachmentResolver:
    """Uploads local attachments sequentially, best-effort.

    Successful uploads are remembered by content digest, file name and
    group, so retrying a failed commit does not upload the same file again.
    """

    def __init__(
        self,
        uploader: AttachmentUploader,
        default_group: str = "default",
        progress: Optional[ProgressCallback] = None,
    ):
        """Initialize the resolver.

        Args:
            uploader: Upload collaborator
            default_group: Group used when a record provides none
            progress: Called before each upload
        """
        self.uploader = uploader
        self.default_group = default_group
        self.progress = progress
        self._uploaded: Dict[Tuple[str, str, str], str] = {}

    def forget(self) -> None:
        """Drop remembered uploads (after a commit succeeded)."""
        self._uploaded.clear()

    async def resolve(
        self,
        record: Record,
        attachment_field: str,
        group: Optional[str] = None,
        record_id: Any = None,
    ) -> ResolutionReport:
        """Resolve the local attachments of one record in place.

        The attachment list of ``record`` is replaced by a list holding only
        existing references: local entries become their uploaded URL, local
        entries that failed to upload are dropped.

        Args:
            record: Working copy of a staged record (modified in place)
            attachment_field: Field holding the attachment list
            group: Upload grouping key
            record_id: Identifier used in logs and the report

        Returns:
            Report of uploads and failures
        """
        group = group or self.default_group
        refs = coerce_attachments(record.get(attachment_field))
        report = ResolutionReport(record_id=record_id)
        total = sum(1 for ref in refs if ref.is_local)
        resolved: List[AttachmentRef] = []
        done = 0

        for position, ref in enumerate(refs):
            if not ref.is_local:
                resolved.append(ref)
                continue

            attachment: LocalAttachment = ref.value  # type: ignore[assignment]
            done += 1
            if self.progress:
                self.progress(attachment.file_name, done, total)

            key = (attachment.digest, attachment.file_name, group)
            url = self._uploaded.get(key)
            if url is not None:
                report.reused += 1
                resolved.append(AttachmentRef.existing(url))
                continue

            try:
                url = await self.uploader.upload(attachment, group)
            except ConsoleError as e:
                reason = e.reason if isinstance(e, AttachmentUploadError) else str(e)
                logger.warning(f"Attachment {attachment.file_name} of {record_id} skipped: {reason}")
                report.failures.append(
                    AttachmentFailure(
                        record_id=record_id,
                        file_name=attachment.file_name,
                        position=position,
                        reason=reason,
                    )
                )
                continue

            self._uploaded[key] = url
            report.uploaded.append(url)
            resolved.append(AttachmentRef.existing(url))
            logger.debug(f"Uploaded {attachment.file_name} for {record_id} -> {url}")

        record[attachment_field] = resolved
        return report
