"""
Tests for the e-mail channels and the channel factory.
"""

import base64
import email
import json
from dataclasses import replace

import httpx
import pytest
from botocore.exceptions import ClientError

from docgen.core.config import Settings
from docgen.core.errors import NotificationChannelError
from docgen.notify import EmailPayload
from docgen.notify.base import render_email_html
from docgen.notify.factory import build_channels, build_router
from docgen.notify.providers import ResendChannel, SendGridChannel, SESChannel


@pytest.fixture
def payload():
    return EmailPayload(
        recipient_email="requestor@example.com",
        applicant_name="Jane Candidate",
        application_id="0f8fad5b-d9cb-469f-a165-70867728950e",
        attachment=b"%PDF-1.7 test",
        attachment_filename="DFSA_Application_0f8fad5b-d9cb-469f-a165-70867728950e.pdf",
        cc_emails=["compliance@example.com"],
        document_url="s3://artifacts/applications/x.pdf",
    )


def _client(handler):
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


class TestEmailBody:
    def test_record_values_are_escaped(self, payload):
        payload = replace(
            payload,
            applicant_name="<script>alert(1)</script> & Co",
            application_id="id\"><b>",
            document_url='https://docs.example.com/x?a=1&b="2"',
        )

        body = render_email_html(payload)

        assert "<script>" not in body
        assert "&lt;script&gt;alert(1)&lt;/script&gt; &amp; Co" in body
        assert "id&quot;&gt;&lt;b&gt;" in body
        assert 'href="https://docs.example.com/x?a=1&amp;b=&quot;2&quot;"' in body

    def test_link_only_with_document_url(self, payload):
        assert "<a href" not in render_email_html(replace(payload, document_url=None))
        assert '<a href="s3://artifacts/applications/x.pdf">' in render_email_html(payload)


class TestSendGridChannel:
    @pytest.mark.asyncio
    async def test_send(self, payload):
        seen = {}

        def handler(request):
            seen["url"] = str(request.url)
            seen["auth"] = request.headers["Authorization"]
            seen["body"] = json.loads(request.content)
            return httpx.Response(202, headers={"X-Message-Id": "sg-123"})

        channel = SendGridChannel("SG.key", "noreply@example.com", client=_client(handler))
        result = await channel.send_email(payload)

        assert result.success
        assert result.message_id == "sg-123"
        assert seen["url"] == "https://api.sendgrid.com/v3/mail/send"
        assert seen["auth"] == "Bearer SG.key"
        body = seen["body"]
        assert body["personalizations"][0]["to"] == [{"email": "requestor@example.com"}]
        assert body["personalizations"][0]["cc"] == [{"email": "compliance@example.com"}]
        attachment = body["attachments"][0]
        assert base64.b64decode(attachment["content"]) == b"%PDF-1.7 test"
        assert attachment["type"] == "application/pdf"
        assert "s3://artifacts/applications/x.pdf" in body["content"][0]["value"]

    @pytest.mark.asyncio
    async def test_rejected(self, payload):
        channel = SendGridChannel(
            "SG.key", "noreply@example.com", client=_client(lambda r: httpx.Response(403, text="forbidden"))
        )
        result = await channel.send_email(payload)

        assert not result.success
        assert "403" in result.error

    @pytest.mark.asyncio
    async def test_transport_error_raises(self, payload):
        def handler(request):
            raise httpx.ConnectTimeout("timed out", request=request)

        channel = SendGridChannel("SG.key", "noreply@example.com", client=_client(handler))
        with pytest.raises(NotificationChannelError):
            await channel.send_email(payload)

    @pytest.mark.asyncio
    async def test_health(self):
        channel = SendGridChannel("SG.key", "noreply@example.com", client=_client(lambda r: httpx.Response(200)))
        assert await channel.is_healthy() is True


class TestResendChannel:
    @pytest.mark.asyncio
    async def test_send(self, payload):
        seen = {}

        def handler(request):
            seen["url"] = str(request.url)
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json={"id": "re-1"})

        result = await ResendChannel("re_key", "noreply@example.com", client=_client(handler)).send_email(payload)

        assert result.success
        assert result.message_id == "re-1"
        assert seen["url"] == "https://api.resend.com/emails"
        assert seen["body"]["to"] == ["requestor@example.com"]
        assert seen["body"]["cc"] == ["compliance@example.com"]
        assert seen["body"]["attachments"][0]["filename"] == payload.attachment_filename

    @pytest.mark.asyncio
    async def test_unhealthy(self):
        channel = ResendChannel("re_key", "noreply@example.com", client=_client(lambda r: httpx.Response(401)))
        assert await channel.is_healthy() is False

    def test_requires_sender(self):
        with pytest.raises(ValueError):
            ResendChannel("re_key", "")


class FakeSESClient:
    def __init__(self, error=None):
        self.error = error
        self.calls = []

    def send_raw_email(self, **kwargs):
        self.calls.append(kwargs)
        if self.error:
            raise self.error
        return {"MessageId": "ses-1"}

    def get_send_quota(self):
        return {"Max24HourSend": 200.0, "SentLast24Hours": 10.0}


class TestSESChannel:
    @pytest.mark.asyncio
    async def test_send_raw_message(self, payload):
        client = FakeSESClient()
        result = await SESChannel("noreply@example.com", client=client).send_email(payload)

        assert result.success
        assert result.message_id == "ses-1"
        call = client.calls[0]
        assert call["Destinations"] == ["requestor@example.com", "compliance@example.com"]

        msg = email.message_from_bytes(call["RawMessage"]["Data"])
        assert msg["To"] == "requestor@example.com"
        attachments = [p for p in msg.walk() if p.get_filename()]
        assert attachments[0].get_filename() == payload.attachment_filename
        assert attachments[0].get_payload(decode=True) == b"%PDF-1.7 test"

    @pytest.mark.asyncio
    async def test_client_error_raises(self, payload):
        error = ClientError({"Error": {"Code": "MessageRejected", "Message": "unverified"}}, "SendRawEmail")

        with pytest.raises(NotificationChannelError):
            await SESChannel("noreply@example.com", client=FakeSESClient(error=error)).send_email(payload)

    @pytest.mark.asyncio
    async def test_health_from_quota(self):
        assert await SESChannel("noreply@example.com", client=FakeSESClient()).is_healthy() is True


class TestChannelFactory:
    def test_only_configured_channels_in_declared_order(self):
        settings = replace(
            Settings(),
            notify_channels=["ses", "sendgrid", "resend"],
            email_from="noreply@example.com",
            sendgrid_api_key="SG.key",
            resend_api_key="re_key",
        )
        assert [c.name for c in build_channels(settings)] == ["SendGrid", "Resend"]

    def test_unknown_channel_is_left_out(self):
        settings = replace(
            Settings(), notify_channels=["pigeon", "resend"], email_from="noreply@example.com", resend_api_key="k"
        )
        assert [c.name for c in build_channels(settings)] == ["Resend"]

    def test_missing_sender_leaves_channel_out(self):
        settings = replace(Settings(), notify_channels=["sendgrid"], sendgrid_api_key="SG.key")
        assert build_channels(settings) == []

    def test_router(self):
        settings = replace(
            Settings(),
            notify_channels=["resend"],
            notify_skip_unhealthy=True,
            email_from="noreply@example.com",
            resend_api_key="k",
        )
        router = build_router(settings)

        assert router.channel_names == ["Resend"]
