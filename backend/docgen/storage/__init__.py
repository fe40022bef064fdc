"""
Storage - best-effort persistence of generated artifacts.
"""

from __future__ import annotations

from typing import Optional

from ..core.config import Settings
from .base import (
    FAILED_LOCATOR,
    NOT_CONFIGURED_LOCATOR,
    KeyParts,
    Store,
    is_sentinel,
)
from .local import LocalStore


def build_store(settings: Settings) -> Optional[Store]:
    """Store for STORAGE_TYPE; None means persistence is not configured."""
    kind = settings.storage_type
    if kind in ("", "none"):
        return None
    if kind == "local":
        return LocalStore(settings.storage_local_path)
    if kind == "s3":
        from .s3 import S3Store

        return S3Store(
            settings.s3_bucket,
            endpoint_url=settings.s3_endpoint_url,
            region=settings.aws_region,
        )
    raise ValueError(f"Storage type not implemented: {kind}")


__all__ = [
    "FAILED_LOCATOR",
    "NOT_CONFIGURED_LOCATOR",
    "KeyParts",
    "LocalStore",
    "Store",
    "build_store",
    "is_sentinel",
]
