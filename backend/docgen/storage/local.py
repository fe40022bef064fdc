"""Local filesystem store."""

from __future__ import annotations

import logging
from datetime import datetime
from pathlib import Path
from typing import Callable, Optional

from ..core.errors import StorageError
from .base import KeyParts, Store, build_key

logger = logging.getLogger(__name__)


class LocalStore(Store):
    """
    Stores artifacts under a base directory with the key structure preserved.
    Locators are file:// URIs.
    """

    name = "local"

    def __init__(
        self,
        base_path: str | Path,
        *,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        self.base_path = Path(base_path).resolve()
        self._clock = clock

    def _resolve_path(self, key: str) -> Path:
        clean = Path(key).as_posix().lstrip("/")
        full_path = self.base_path / clean
        try:
            full_path.resolve().relative_to(self.base_path)
        except ValueError:
            raise StorageError(f"Invalid key: {key} (outside base directory)")
        return full_path

    def put(self, data: bytes, key_parts: KeyParts) -> str:
        key = build_key(key_parts, now=self._clock() if self._clock else None)
        full_path = self._resolve_path(key)
        try:
            full_path.parent.mkdir(parents=True, exist_ok=True)
            full_path.write_bytes(data)
        except OSError as e:
            raise StorageError(f"Local write failed for {key}: {e}") from e

        logger.info("Artifact stored locally: %s (%d bytes)", key, len(data))
        return full_path.as_uri()
