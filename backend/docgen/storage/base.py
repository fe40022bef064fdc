"""Base store interface."""

from __future__ import annotations

import mimetypes
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

# Sentinel locators: returned instead of a real location when persistence is
# skipped (no store configured) or fails.
NOT_CONFIGURED_LOCATOR = "storage://not-configured"
FAILED_LOCATOR = "storage://failed"

SENTINEL_LOCATORS = frozenset({NOT_CONFIGURED_LOCATOR, FAILED_LOCATOR})


@dataclass(frozen=True)
class KeyParts:
    id: str
    kind: str
    version: str
    extension: str = "pdf"


def build_key(parts: KeyParts, *, now: Optional[datetime] = None) -> str:
    """
    applications/{id}/{kind}/{timestamp}-v{version}.{ext}
    """
    now = now or datetime.now(timezone.utc)
    timestamp = now.strftime("%Y-%m-%dT%H-%M-%S-%fZ")
    return f"applications/{parts.id}/{parts.kind}/{timestamp}-v{parts.version}.{parts.extension}"


def content_type_for(key: str) -> Optional[str]:
    content_type, _ = mimetypes.guess_type(key)
    return content_type


def is_sentinel(locator: Optional[str]) -> bool:
    return locator is None or locator in SENTINEL_LOCATORS


class Store(ABC):
    """Abstract base class for artifact stores."""

    name: str = "store"

    @abstractmethod
    def put(self, data: bytes, key_parts: KeyParts) -> str:
        """
        Persist an artifact.

        Args:
            data: Artifact bytes
            key_parts: Identity of the artifact (record id, document kind, template version)

        Returns:
            Locator of the stored artifact

        Raises:
            StorageError: If the artifact could not be stored
        """
        ...
