from __future__ import annotations

import logging
from typing import Optional

from ..core.config import Settings
from ..fetch.credentials import ClientCredentialsProvider, TokenCache
from .graph import GRAPH_SCOPE, GraphConverter, drive_root
from .libreoffice import DisabledConverter, LibreOfficeConverter

logger = logging.getLogger(__name__)


def _build_graph(settings: Settings, timeout_seconds: float):
    if not settings.graph_configured:
        logger.warning("PDF_CONVERSION_ENGINE=graph but Graph credentials or drive are missing; conversion disabled")
        return DisabledConverter("Microsoft Graph conversion is not configured")
    provider = ClientCredentialsProvider(
        settings.graph_tenant_id,
        settings.graph_client_id,
        settings.graph_client_secret,
        scope=GRAPH_SCOPE,
        timeout=settings.http_timeout_seconds,
    )
    root = drive_root(
        site_id=settings.graph_site_id,
        drive_id=settings.graph_drive_id,
        user_id=settings.graph_user_id,
    )
    return GraphConverter(TokenCache(provider), root, timeout_seconds=timeout_seconds)


def build_converter(
    engine: str,
    *,
    timeout_seconds: float = 60,
    settings: Optional[Settings] = None,
):
    if engine in ("", "none"):
        return DisabledConverter()
    if engine == "libreoffice":
        return LibreOfficeConverter(timeout_seconds=timeout_seconds)
    if engine == "graph":
        return _build_graph(settings or Settings.from_env(), timeout_seconds)
    raise ValueError(f"Unknown PDF conversion engine: {engine}")
