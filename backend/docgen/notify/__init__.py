"""
Notify - e-mail delivery of the generated document.

Channels share one capability (send_email / is_healthy) and are tried in
priority order by NotificationRouter.
"""

from .base import ChannelAttempt, ChannelResult, DeliveryResult, EmailPayload, NotificationChannel
from .router import NotificationRouter

__all__ = [
    "ChannelAttempt",
    "ChannelResult",
    "DeliveryResult",
    "EmailPayload",
    "NotificationChannel",
    "NotificationRouter",
]
