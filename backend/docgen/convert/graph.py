from __future__ import annotations

import logging
import uuid
from typing import Dict, Optional
from urllib.parse import quote

import httpx

from ..core.errors import ConversionError
from ..fetch.credentials import TokenCache
from ..render.xlsx_template import XLSX_CONTENT_TYPE
from .libreoffice import validate_pdf

logger = logging.getLogger(__name__)

GRAPH_API_URL = "https://graph.microsoft.com/v1.0"
GRAPH_SCOPE = "https://graph.microsoft.com/.default"


def drive_root(*, site_id: str = "", drive_id: str = "", user_id: str = "") -> str:
    """
    Graph path of the drive that receives the temporary upload.

    site + drive -> SharePoint document library
    drive only   -> any drive by id
    user only    -> the user's OneDrive
    """
    if site_id and drive_id:
        return f"/sites/{site_id}/drives/{drive_id}"
    if drive_id:
        return f"/drives/{drive_id}"
    if user_id:
        return f"/users/{user_id}/drive"
    raise ValueError("GRAPH_DRIVE_ID or GRAPH_USER_ID is required for Graph conversion")


class GraphConverter:
    """
    XLSX bytes -> PDF bytes using Microsoft Graph.

    The document is uploaded to a drive under a unique temporary name,
    downloaded again with ?format=pdf and the upload is deleted. A failed
    delete is logged and does not fail the conversion.
    """

    def __init__(
        self,
        tokens: TokenCache,
        root: str,
        *,
        api_url: str = GRAPH_API_URL,
        client: Optional[httpx.AsyncClient] = None,
        timeout_seconds: float = 60,
        folder: str = "docgen-tmp",
    ) -> None:
        self._tokens = tokens
        self._root = f"{api_url.rstrip('/')}{root}"
        self._client = client
        self.timeout_seconds = timeout_seconds
        self._folder = folder.strip("/")

    def item_url(self, name: str) -> str:
        path = quote(f"{self._folder}/{name}" if self._folder else name)
        return f"{self._root}/root:/{path}"

    @staticmethod
    def _headers(token: str) -> Dict[str, str]:
        return {"Authorization": f"Bearer {token}"}

    async def convert(self, data: bytes, *, source_suffix: str = ".xlsx") -> bytes:
        if self._client is not None:
            return await self._convert(self._client, data, source_suffix)
        async with httpx.AsyncClient(timeout=self.timeout_seconds) as client:
            return await self._convert(client, data, source_suffix)

    async def _convert(self, client: httpx.AsyncClient, data: bytes, source_suffix: str) -> bytes:
        token = await self._tokens.get_token()
        headers = self._headers(token)
        url = self.item_url(f"{uuid.uuid4().hex}{source_suffix}")

        logger.debug("Uploading %d bytes to Graph: %s", len(data), url)
        try:
            uploaded = await client.put(
                f"{url}:/content",
                content=data,
                headers={**headers, "Content-Type": XLSX_CONTENT_TYPE},
            )
        except httpx.HTTPError as e:
            raise ConversionError(f"Graph upload failed: {e}") from e
        self._check(uploaded, "upload")

        try:
            try:
                resp = await client.get(
                    f"{url}:/content",
                    params={"format": "pdf"},
                    headers=headers,
                    follow_redirects=True,
                )
            except httpx.HTTPError as e:
                raise ConversionError(f"Graph PDF download failed: {e}") from e
            self._check(resp, "PDF download")
            pdf = resp.content
        finally:
            await self._delete(client, url, headers)

        pages = validate_pdf(pdf)
        logger.info("Converted %d bytes to PDF via Graph (%d pages, %d bytes)", len(data), pages, len(pdf))
        return pdf

    def _check(self, resp: httpx.Response, step: str) -> None:
        if resp.status_code == 401:
            self._tokens.invalidate()
        if not 200 <= resp.status_code < 300:
            raise ConversionError(f"Graph {step} returned {resp.status_code}: {resp.text[:300]}")

    async def _delete(self, client: httpx.AsyncClient, url: str, headers: Dict[str, str]) -> None:
        try:
            resp = await client.delete(url, headers=headers)
        except httpx.HTTPError as e:
            logger.warning("Failed to delete temporary Graph upload %s: %s", url, e)
            return
        if resp.status_code not in (200, 204, 404):
            logger.warning("Failed to delete temporary Graph upload %s: HTTP %d", url, resp.status_code)
