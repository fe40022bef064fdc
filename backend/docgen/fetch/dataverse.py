from __future__ import annotations

import logging
from typing import Any, Dict, Optional

import httpx

from ..core.config import Settings
from ..core.errors import NotFound, TransportError
from ..mapping.tables import MappingTables, load_mapping
from .credentials import ClientCredentialsProvider, TokenCache

logger = logging.getLogger(__name__)

ENTITY_SET = "dfsa_authorised_individuals"


def build_expand(tables: MappingTables) -> str:
    """
    $expand for every mapped collection, each with a nested $select of the
    item attributes mapping.yml declares.
    """
    parts = []
    for name, nav_key in tables.collections.items():
        attrs: list[str] = []
        for keys in tables.items.get(name, {}).values():
            for key in keys:
                if key not in attrs:
                    attrs.append(key)
        parts.append(f"{nav_key}($select={','.join(attrs)})" if attrs else nav_key)
    return ",".join(parts)


def _count(items: object) -> int:
    return len(items) if isinstance(items, list) else 0


class DataverseFetcher:
    """
    Reads one Authorised Individual record with its related collections.

    Scalar attributes are not $select-ed: legacy attribute names listed in
    mapping.yml do not exist on every environment.
    """

    def __init__(
        self,
        api_url: str,
        tokens: TokenCache,
        *,
        tables: Optional[MappingTables] = None,
        entity_set: str = ENTITY_SET,
        client: Optional[httpx.AsyncClient] = None,
        timeout: float = 30.0,
    ) -> None:
        self._api_url = api_url.rstrip("/")
        self._tokens = tokens
        self._tables = tables or load_mapping()
        self._entity_set = entity_set
        self._client = client
        self._timeout = timeout

    def record_url(self, record_id: str) -> str:
        return f"{self._api_url}/{self._entity_set}({record_id})"

    def query_params(self) -> Dict[str, str]:
        expand = build_expand(self._tables)
        return {"$expand": expand} if expand else {}

    @staticmethod
    def _headers(token: str) -> Dict[str, str]:
        return {
            "Authorization": f"Bearer {token}",
            "Accept": "application/json",
            "OData-Version": "4.0",
            "OData-MaxVersion": "4.0",
        }

    async def _get(self, url: str, **kwargs: Any) -> httpx.Response:
        if self._client is not None:
            return await self._client.get(url, **kwargs)
        async with httpx.AsyncClient(timeout=self._timeout) as client:
            return await client.get(url, **kwargs)

    async def fetch(self, record_id: str) -> Dict[str, Any]:
        token = await self._tokens.get_token()
        url = self.record_url(record_id)
        logger.info("Fetching Authorised Individual %s", record_id)

        try:
            resp = await self._get(url, params=self.query_params(), headers=self._headers(token))
        except httpx.HTTPError as e:
            raise TransportError(f"Dataverse request failed: {e}") from e

        if resp.status_code == 404:
            raise NotFound(f"Authorised Individual record not found: {record_id}")
        if resp.status_code == 401:
            # token revoked or rotated: next call acquires a fresh one
            self._tokens.invalidate()
        if not 200 <= resp.status_code < 300:
            raise TransportError(
                f"Dataverse API returned status {resp.status_code}: {resp.text[:300]}",
                status=resp.status_code,
            )

        try:
            record = resp.json()
        except ValueError as e:
            raise TransportError(f"Dataverse returned a non-JSON body: {e}") from e
        if not isinstance(record, dict):
            raise TransportError("Dataverse returned an unexpected payload")

        logger.info(
            "Record %s retrieved (%s)",
            record_id,
            ", ".join(f"{name}={_count(record.get(nav))}" for name, nav in self._tables.collections.items()),
        )
        return record


def build_fetcher(settings: Settings) -> Optional[DataverseFetcher]:
    """None when Dataverse credentials are not configured."""
    if not settings.dataverse_configured:
        return None
    provider = ClientCredentialsProvider(
        settings.azure_tenant_id,
        settings.azure_client_id,
        settings.azure_client_secret,
        scope=f"{settings.dataverse_url.rstrip('/')}/.default",
        timeout=settings.http_timeout_seconds,
    )
    return DataverseFetcher(
        settings.dataverse_api_url,
        TokenCache(provider),
        timeout=settings.http_timeout_seconds,
    )
