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


"""Snapshot store, staging buffer and display merger."""

from opsconsole.staging.buffer import (
    PatchStaging,
    ReplaceStaging,
    StagingBuffer,
    StagingStrategy,
)
from opsconsole.staging.merger import filter_rows, merge
from opsconsole.staging.protocol import (
    AttachmentKind,
    AttachmentRef,
    LocalAttachment,
    MergedRow,
    StagingShape,
    is_temp_id,
    new_temp_id,
)
from opsconsole.staging.snapshot import SnapshotStore

__all__ = [
    "AttachmentKind",
    "AttachmentRef",
    "LocalAttachment",
    "MergedRow",
    "PatchStaging",
    "ReplaceStaging",
    "SnapshotStore",
    "StagingBuffer",
    "StagingShape",
    "StagingStrategy",
    "filter_rows",
    "is_temp_id",
    "merge",
    "new_temp_id",
]
