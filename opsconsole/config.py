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

"""Runtime settings for the console editing core."""

import os
from pathlib import Path
from typing import List, Mapping, Optional

from pydantic import BaseModel, Field

ENV_PREFIX = "OPSCONSOLE_"


class ConsoleSettings(BaseModel):
    """Settings shared by the transport, staging and cache layers."""

    api_url: str = Field(default="", description="Single RPC endpoint URL")
    rpc_action: str = Field(
        default="adminAction", description="Top-level action sent with every RPC call"
    )
    timeout: float = Field(default=30.0, description="Transport timeout in seconds")
    temp_id_prefix: str = Field(
        default="NEW_", description="Prefix marking identifiers that were generated locally"
    )
    cache_dir: Optional[Path] = Field(
        default=None, description="Directory for the persisted snapshot cache (disabled if unset)"
    )
    max_attachment_bytes: int = Field(
        default=5 * 1024 * 1024, description="Largest attachment accepted for upload"
    )
    allowed_mime_types: List[str] = Field(
        default_factory=lambda: ["image/jpeg", "image/png", "image/webp"],
        description="Attachment MIME types accepted for upload",
    )
    default_attachment_group: str = Field(
        default="default", description="Upload group used when a record has no brand"
    )

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "ConsoleSettings":
        """Build settings from ``OPSCONSOLE_*`` environment variables.

        Args:
            environ: Mapping to read instead of ``os.environ``

        Returns:
            Settings with every recognised variable applied
        """
        environ = os.environ if environ is None else environ
        values = {}
        for name in cls.model_fields:
            raw = environ.get(f"{ENV_PREFIX}{name.upper()}")
            if raw is None:
                continue
            if name == "allowed_mime_types":
                values[name] = [part.strip() for part in raw.split(",") if part.strip()]
            else:
                values[name] = raw
        return cls(**values)


_settings: Optional[ConsoleSettings] = None


def get_settings() -> ConsoleSettings:
    """Get the process-wide settings, loading them from the environment once."""
    global _settings
    if _settings is None:
        _settings = ConsoleSettings.from_env()
    return _settings


def set_settings(settings: Optional[ConsoleSettings]) -> None:
    """Replace the process-wide settings (``None`` reloads on next access)."""
    global _settings
    _settings = settings
