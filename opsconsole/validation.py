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

"""Local validation run before anything enters the staging buffer.

The staging buffer accepts whatever it is given, so malformed input has
to be rejected here, before record_patch/record_replace are called.
"""

import json
from typing import Any, Dict, Mapping, Optional, Union

from opsconsole.config import ConsoleSettings, get_settings
from opsconsole.errors import StagingValidationError
from opsconsole.staging.protocol import AttachmentRef


def parse_options(raw: Union[str, Mapping[str, Any], None]) -> Dict[str, Any]:
    """Parse structured option data entered as JSON text.

    Args:
        raw: JSON object text, an already-parsed mapping, or empty

    Returns:
        Parsed options (empty dict for empty input)

    Raises:
        StagingValidationError: If the text is not a JSON object
    """
    if raw is None:
        return {}
    if isinstance(raw, Mapping):
        return dict(raw)

    text = raw.strip()
    if not text:
        return {}
    try:
        options = json.loads(text)
    except json.JSONDecodeError as e:
        raise StagingValidationError(f"Options are not valid JSON: {e.msg}", field="options") from e
    if not isinstance(options, dict):
        raise StagingValidationError("Options must be a JSON object", field="options")
    return options


def validate_attachment(
    file_name: str,
    content: bytes,
    mime_type: str,
    settings: Optional[ConsoleSettings] = None,
) -> AttachmentRef:
    """Check a selected file and wrap it as a local attachment.

    Args:
        file_name: Original file name
        content: File bytes
        mime_type: Declared MIME type
        settings: Limits to apply (global settings if not provided)

    Returns:
        Local AttachmentRef ready to be staged

    Raises:
        StagingValidationError: If the type is not allowed or the file is too large
    """
    settings = settings or get_settings()
    if mime_type not in settings.allowed_mime_types:
        allowed = ", ".join(settings.allowed_mime_types)
        raise StagingValidationError(
            f"{file_name}: unsupported type {mime_type} (allowed: {allowed})", field="image"
        )
    if len(content) > settings.max_attachment_bytes:
        limit_mb = settings.max_attachment_bytes / (1024 * 1024)
        raise StagingValidationError(
            f"{file_name}: file is larger than {limit_mb:g} MB", field="image"
        )
    return AttachmentRef.local(file_name, content, mime_type)


def validate_manual_order(order: Mapping[str, Any]) -> None:
    """Check a manually entered order before it is sent.

    Raises:
        StagingValidationError: If items or customer contact fields are missing
    """
    if not order.get("items"):
        raise StagingValidationError("An order needs at least one item", field="items")

    customer = order.get("customer") or {}
    if not str(customer.get("name", "")).strip():
        raise StagingValidationError("Customer name is required", field="customer.name")
    if not str(customer.get("phone", "")).strip():
        raise StagingValidationError("Customer phone is required", field="customer.phone")
