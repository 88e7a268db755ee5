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

"""Exception hierarchy for the console editing core.

Failures fall into four groups:
- Local validation: input rejected before it reaches the staging buffer
- Attachment upload: per item, non-fatal, degrades a record
- Transport: the remote call itself failed, staged edits are kept
- Server rejection: the remote store answered ``success=false``

Guard violations (a second commit while one is running, editing a locked
buffer) have their own types so callers can tell them from remote failures.
"""

from typing import Any, Optional


class ConsoleError(Exception):
    """Base class for all console editing errors."""

    def __init__(self, message: str, phase: Optional[Any] = None):
        super().__init__(message)
        self.message = message
        self.phase = phase

    def __str__(self) -> str:
        if self.phase is not None:
            phase = getattr(self.phase, "value", self.phase)
            return f"[{phase}] {self.message}"
        return self.message


class StagingValidationError(ConsoleError):
    """Input was malformed and never entered the staging buffer."""

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(message)
        self.field = field


class AttachmentUploadError(ConsoleError):
    """A single attachment could not be uploaded."""

    def __init__(self, file_name: str, reason: str, phase: Optional[Any] = None):
        super().__init__(f"Upload of {file_name} failed: {reason}", phase)
        self.file_name = file_name
        self.reason = reason


class TransportError(ConsoleError):
    """The remote call did not produce a usable response."""


class BatchRejectedError(ConsoleError):
    """The remote store answered with ``success=false``."""

    def __init__(self, sub_action: str, error: Optional[str], phase: Optional[Any] = None):
        super().__init__(f"{sub_action} rejected: {error or 'unknown error'}", phase)
        self.sub_action = sub_action
        self.server_error = error


class CommitInProgressError(ConsoleError):
    """A commit was requested while another one is still running."""


class StagingLockedError(ConsoleError):
    """The staging buffer was mutated while its commit is in flight."""
