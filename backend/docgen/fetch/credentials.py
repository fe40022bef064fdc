from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Any, Callable, Optional, Protocol

import httpx

from ..core.errors import TransportError

logger = logging.getLogger(__name__)

AZURE_AUTHORITY = "https://login.microsoftonline.com"

# A cached token is used only while it has more than this left to live.
REFRESH_MARGIN_SECONDS = 300.0


@dataclass(frozen=True)
class AccessToken:
    token: str
    expires_at: float  # epoch seconds


class TokenProvider(Protocol):
    async def acquire(self) -> AccessToken: ...


class ClientCredentialsProvider:
    """OAuth2 client-credentials grant against Azure AD (v2.0 token endpoint)."""

    def __init__(
        self,
        tenant_id: str,
        client_id: str,
        client_secret: str,
        scope: str,
        *,
        authority: str = AZURE_AUTHORITY,
        client: Optional[httpx.AsyncClient] = None,
        timeout: float = 30.0,
        clock: Callable[[], float] = time.time,
    ) -> None:
        if not (tenant_id and client_id and client_secret):
            raise ValueError("AZURE_TENANT_ID, AZURE_CLIENT_ID and AZURE_CLIENT_SECRET are required")
        self._token_url = f"{authority.rstrip('/')}/{tenant_id}/oauth2/v2.0/token"
        self._form = {
            "grant_type": "client_credentials",
            "client_id": client_id,
            "client_secret": client_secret,
            "scope": scope,
        }
        self._client = client
        self._timeout = timeout
        self._clock = clock

    async def _post(self) -> httpx.Response:
        if self._client is not None:
            return await self._client.post(self._token_url, data=self._form)
        async with httpx.AsyncClient(timeout=self._timeout) as client:
            return await client.post(self._token_url, data=self._form)

    async def acquire(self) -> AccessToken:
        try:
            resp = await self._post()
        except httpx.HTTPError as e:
            raise TransportError(f"Token request failed: {e}") from e

        if resp.status_code != 200:
            raise TransportError(
                f"Token endpoint returned {resp.status_code}: {resp.text[:300]}",
                status=resp.status_code,
            )

        try:
            body: Any = resp.json()
            token = str(body["access_token"])
            expires_in = float(body.get("expires_in", 3600))
        except (ValueError, KeyError, TypeError) as e:
            raise TransportError(f"Unexpected token response: {e}") from e

        return AccessToken(token=token, expires_at=self._clock() + expires_in)


class TokenCache:
    """
    Process-wide bearer token. Concurrent callers that find it stale share a
    single refresh: the lock is taken and validity re-checked before acquiring.
    """

    def __init__(
        self,
        provider: TokenProvider,
        *,
        margin_seconds: float = REFRESH_MARGIN_SECONDS,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._provider = provider
        self._margin = margin_seconds
        self._clock = clock
        self._token: Optional[AccessToken] = None
        self._lock = asyncio.Lock()

    def _valid(self) -> bool:
        return self._token is not None and self._token.expires_at > self._clock() + self._margin

    async def get_token(self) -> str:
        if self._valid():
            logger.debug("Using cached token")
            return self._token.token  # type: ignore[union-attr]

        async with self._lock:
            if not self._valid():
                logger.debug("Acquiring new token")
                self._token = await self._provider.acquire()
                logger.info("Token acquired, expires at %s", time.strftime(
                    "%Y-%m-%dT%H:%M:%SZ", time.gmtime(self._token.expires_at)
                ))
            return self._token.token  # type: ignore[union-attr]

    def invalidate(self) -> None:
        self._token = None
