from __future__ import annotations

import logging
from typing import List

from ..core.config import Settings
from .base import NotificationChannel
from .providers.resend import ResendChannel
from .providers.sendgrid import SendGridChannel
from .providers.ses import SESChannel
from .router import NotificationRouter

logger = logging.getLogger(__name__)


def _build_channel(kind: str, settings: Settings) -> NotificationChannel | None:
    if kind == "resend":
        if not settings.resend_api_key:
            return None
        return ResendChannel(
            settings.resend_api_key, settings.email_from, timeout=settings.http_timeout_seconds
        )
    if kind == "sendgrid":
        if not settings.sendgrid_api_key:
            return None
        return SendGridChannel(
            settings.sendgrid_api_key, settings.email_from, timeout=settings.http_timeout_seconds
        )
    if kind == "ses":
        if not (settings.aws_ses_access_key_id and settings.aws_ses_secret_access_key):
            return None
        return SESChannel(
            settings.email_from,
            region=settings.aws_ses_region,
            access_key=settings.aws_ses_access_key_id,
            secret_key=settings.aws_ses_secret_access_key,
        )
    raise ValueError(f"Unsupported notification channel: {kind}")


def build_channels(settings: Settings) -> List[NotificationChannel]:
    """
    Ordered channel list from NOTIFY_CHANNELS; channels without credentials
    are left out, a channel that fails to initialise is logged and left out.
    """
    channels: List[NotificationChannel] = []
    for kind in settings.notify_channels:
        try:
            channel = _build_channel(kind.lower(), settings)
        except ValueError as e:
            logger.warning("Failed to initialize %s provider: %s", kind, e)
            continue
        if channel is None:
            logger.debug("Channel %s not configured", kind)
            continue
        channels.append(channel)

    if channels:
        logger.info("Email channels (priority order): %s", ", ".join(c.name for c in channels))
    else:
        logger.info("No email channel configured, notification stage will be skipped")
    return channels


def build_router(settings: Settings) -> NotificationRouter:
    return NotificationRouter(build_channels(settings), skip_unhealthy=settings.notify_skip_unhealthy)
