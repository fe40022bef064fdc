from __future__ import annotations

import asyncio
import logging
from email.mime.application import MIMEApplication
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from typing import Any, Optional

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from ...core.errors import NotificationChannelError
from ..base import ChannelResult, EmailPayload, email_subject, render_email_html

logger = logging.getLogger(__name__)


class SESChannel:
    """Amazon SES (send_raw_email, attachment as MIME part)."""

    name = "Amazon SES"

    def __init__(
        self,
        from_email: str,
        *,
        region: str = "us-east-1",
        access_key: Optional[str] = None,
        secret_key: Optional[str] = None,
        client: Any = None,
    ) -> None:
        if not from_email:
            raise ValueError("EMAIL_FROM is required")
        self._from_email = from_email

        if client is None:
            client_kwargs: dict[str, Any] = {"service_name": "ses", "region_name": region}
            if access_key and secret_key:
                client_kwargs["aws_access_key_id"] = access_key
                client_kwargs["aws_secret_access_key"] = secret_key
            client = boto3.client(**client_kwargs)
        self._client = client

    def _message(self, payload: EmailPayload) -> MIMEMultipart:
        msg = MIMEMultipart("mixed")
        msg["Subject"] = email_subject(payload)
        msg["From"] = self._from_email
        msg["To"] = payload.recipient_email
        if payload.cc_emails:
            msg["Cc"] = ", ".join(payload.cc_emails)

        msg.attach(MIMEText(render_email_html(payload), "html", "utf-8"))

        _, _, subtype = payload.attachment_content_type.partition("/")
        part = MIMEApplication(payload.attachment, _subtype=subtype or "octet-stream")
        part.add_header("Content-Disposition", "attachment", filename=payload.attachment_filename)
        msg.attach(part)
        return msg

    async def send_email(self, payload: EmailPayload) -> ChannelResult:
        msg = self._message(payload)
        destinations = [payload.recipient_email, *payload.cc_emails]

        logger.info("[SES] Sending document to %s", payload.recipient_email)
        try:
            resp = await asyncio.to_thread(
                self._client.send_raw_email,
                Source=self._from_email,
                Destinations=destinations,
                RawMessage={"Data": msg.as_bytes()},
            )
        except (BotoCoreError, ClientError) as e:
            raise NotificationChannelError(self.name, str(e)) from e

        return ChannelResult(success=True, message_id=resp.get("MessageId"))

    async def is_healthy(self) -> bool:
        try:
            quota = await asyncio.to_thread(self._client.get_send_quota)
        except (BotoCoreError, ClientError):
            return False
        return float(quota.get("Max24HourSend", 0)) > float(quota.get("SentLast24Hours", 0))
