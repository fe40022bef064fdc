from __future__ import annotations

import base64
import logging
from typing import Any, Optional

import httpx

from ...core.errors import NotificationChannelError
from ..base import ChannelResult, EmailPayload, email_subject, render_email_html

logger = logging.getLogger(__name__)

SENDGRID_API_URL = "https://api.sendgrid.com"


class SendGridChannel:
    """SendGrid v3 Web API (mail/send) over httpx."""

    name = "SendGrid"

    def __init__(
        self,
        api_key: str,
        from_email: str,
        *,
        client: Optional[httpx.AsyncClient] = None,
        timeout: float = 30.0,
    ) -> None:
        if not api_key:
            raise ValueError("SENDGRID_API_KEY is required")
        if not from_email:
            raise ValueError("EMAIL_FROM is required")
        self._api_key = api_key
        self._from_email = from_email
        self._client = client
        self._timeout = timeout

    def _headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self._api_key}",
            "Content-Type": "application/json",
        }

    def _body(self, payload: EmailPayload) -> dict[str, Any]:
        personalization: dict[str, Any] = {"to": [{"email": payload.recipient_email}]}
        if payload.cc_emails:
            personalization["cc"] = [{"email": e} for e in payload.cc_emails]
        return {
            "personalizations": [personalization],
            "from": {"email": self._from_email},
            "subject": email_subject(payload),
            "content": [{"type": "text/html", "value": render_email_html(payload)}],
            "attachments": [
                {
                    "content": base64.b64encode(payload.attachment).decode("ascii"),
                    "filename": payload.attachment_filename,
                    "type": payload.attachment_content_type,
                    "disposition": "attachment",
                }
            ],
        }

    async def _request(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        if self._client is not None:
            return await self._client.request(method, f"{SENDGRID_API_URL}{path}", **kwargs)
        async with httpx.AsyncClient(timeout=self._timeout) as client:
            return await client.request(method, f"{SENDGRID_API_URL}{path}", **kwargs)

    async def send_email(self, payload: EmailPayload) -> ChannelResult:
        logger.info("[SendGrid] Sending document to %s", payload.recipient_email)
        try:
            resp = await self._request(
                "POST", "/v3/mail/send", headers=self._headers(), json=self._body(payload)
            )
        except httpx.HTTPError as e:
            raise NotificationChannelError(self.name, f"transport error: {e}") from e

        if resp.status_code >= 300:
            return ChannelResult(
                success=False, error=f"HTTP {resp.status_code}: {resp.text[:500]}"
            )
        return ChannelResult(success=True, message_id=resp.headers.get("X-Message-Id"))

    async def is_healthy(self) -> bool:
        try:
            resp = await self._request("GET", "/v3/scopes", headers=self._headers())
        except httpx.HTTPError:
            return False
        return resp.status_code == 200
