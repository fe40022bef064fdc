from __future__ import annotations

import html
from dataclasses import dataclass, field
from typing import List, Optional, Protocol, Tuple, runtime_checkable

from ..core.errors import AllNotificationChannelsExhausted


@dataclass(frozen=True)
class EmailPayload:
    recipient_email: str
    applicant_name: str
    application_id: str
    attachment: bytes
    attachment_filename: str
    attachment_content_type: str = "application/pdf"
    cc_emails: List[str] = field(default_factory=list)
    document_url: Optional[str] = None


@dataclass(frozen=True)
class ChannelResult:
    success: bool
    message_id: Optional[str] = None
    error: Optional[str] = None


@dataclass(frozen=True)
class ChannelAttempt:
    channel: str
    success: bool
    message_id: Optional[str] = None
    error: Optional[str] = None
    skipped: bool = False


@dataclass
class DeliveryResult:
    success: bool
    channel: Optional[str] = None
    message_id: Optional[str] = None
    attempts: List[ChannelAttempt] = field(default_factory=list)

    @property
    def errors(self) -> List[Tuple[str, str]]:
        """(channel, error) per failed or skipped attempt, in attempt order."""
        return [(a.channel, a.error or "") for a in self.attempts if not a.success]

    def raise_for_exhaustion(self) -> None:
        if not self.success:
            raise AllNotificationChannelsExhausted(self.errors, delivery=self)


@runtime_checkable
class NotificationChannel(Protocol):
    """
    Capability shared by all e-mail providers.

    send_email returns ChannelResult(success=False) or raises
    NotificationChannelError on failure; both are treated the same by the
    router.
    """

    name: str

    async def send_email(self, payload: EmailPayload) -> ChannelResult:
        ...

    async def is_healthy(self) -> bool:
        ...


def render_email_html(payload: EmailPayload) -> str:
    name = html.escape(payload.applicant_name)
    reference = html.escape(payload.application_id)
    url = html.escape(payload.document_url) if payload.document_url else ""
    link = f'<p>The document is also available at <a href="{url}">{url}</a>.</p>' if url else ""
    return (
        "<html><body>"
        "<h2>Authorised Individual Application</h2>"
        f"<p>Please find attached the application document for <strong>{name}</strong>.</p>"
        f"<p>Application reference: {reference}</p>"
        f"{link}"
        "<p>This is an automated message, please do not reply.</p>"
        "</body></html>"
    )


def email_subject(payload: EmailPayload) -> str:
    return f"Authorised Individual Application - {payload.applicant_name}"
