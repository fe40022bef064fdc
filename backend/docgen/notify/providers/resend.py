from __future__ import annotations

import base64
import logging
from typing import Any, Optional

import httpx

from ...core.errors import NotificationChannelError
from ..base import ChannelResult, EmailPayload, email_subject, render_email_html

logger = logging.getLogger(__name__)

RESEND_API_URL = "https://api.resend.com"


class ResendChannel:
    name = "Resend"

    def __init__(
        self,
        api_key: str,
        from_email: str,
        *,
        client: Optional[httpx.AsyncClient] = None,
        timeout: float = 30.0,
    ) -> None:
        if not api_key:
            raise ValueError("RESEND_API_KEY is required")
        if not from_email:
            raise ValueError("EMAIL_FROM is required")
        self._api_key = api_key
        self._from_email = from_email
        self._client = client
        self._timeout = timeout

    async def _request(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        headers = {"Authorization": f"Bearer {self._api_key}"}
        if self._client is not None:
            return await self._client.request(method, f"{RESEND_API_URL}{path}", headers=headers, **kwargs)
        async with httpx.AsyncClient(timeout=self._timeout) as client:
            return await client.request(method, f"{RESEND_API_URL}{path}", headers=headers, **kwargs)

    async def send_email(self, payload: EmailPayload) -> ChannelResult:
        body: dict[str, Any] = {
            "from": self._from_email,
            "to": [payload.recipient_email],
            "subject": email_subject(payload),
            "html": render_email_html(payload),
            "attachments": [
                {
                    "filename": payload.attachment_filename,
                    "content": base64.b64encode(payload.attachment).decode("ascii"),
                }
            ],
        }
        if payload.cc_emails:
            body["cc"] = list(payload.cc_emails)

        logger.info("[Resend] Sending document to %s", payload.recipient_email)
        try:
            resp = await self._request("POST", "/emails", json=body)
        except httpx.HTTPError as e:
            raise NotificationChannelError(self.name, f"transport error: {e}") from e

        if resp.status_code >= 300:
            return ChannelResult(success=False, error=f"HTTP {resp.status_code}: {resp.text[:500]}")
        try:
            message_id = resp.json().get("id")
        except ValueError:
            message_id = None
        return ChannelResult(success=True, message_id=message_id)

    async def is_healthy(self) -> bool:
        try:
            resp = await self._request("GET", "/domains")
        except httpx.HTTPError:
            return False
        return resp.status_code == 200
