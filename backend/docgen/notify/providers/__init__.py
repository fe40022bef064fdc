from .resend import ResendChannel
from .sendgrid import SendGridChannel
from .ses import SESChannel

__all__ = [
    "ResendChannel",
    "SendGridChannel",
    "SESChannel",
]
