from __future__ import annotations

import logging
from typing import List, Sequence

from ..core.errors import NotificationChannelError
from .base import ChannelAttempt, DeliveryResult, EmailPayload, NotificationChannel

logger = logging.getLogger(__name__)


class NotificationRouter:
    """
    Ordered primary/fallback delivery over interchangeable channels.

    Channels are tried in declared order; the first success wins. A failing
    channel (result or exception) is recorded and the next one is tried.
    Health checks are advisory: a channel is skipped on a negative check only
    when `skip_unhealthy` is set.
    """

    def __init__(
        self, channels: Sequence[NotificationChannel], *, skip_unhealthy: bool = False
    ) -> None:
        self._channels: List[NotificationChannel] = list(channels)
        self._skip_unhealthy = skip_unhealthy

    @property
    def channel_names(self) -> List[str]:
        return [c.name for c in self._channels]

    def __len__(self) -> int:
        return len(self._channels)

    async def send(self, payload: EmailPayload) -> DeliveryResult:
        result = DeliveryResult(success=False)

        for channel in self._channels:
            if self._skip_unhealthy and not await self._healthy(channel):
                logger.warning("Channel %s reported unhealthy, skipping", channel.name)
                result.attempts.append(
                    ChannelAttempt(channel=channel.name, success=False, error="unhealthy", skipped=True)
                )
                continue

            try:
                outcome = await channel.send_email(payload)
            except NotificationChannelError as e:
                error = str(e)
            except Exception as e:  # noqa: BLE001
                logger.exception("Channel %s raised unexpectedly", channel.name)
                error = f"{type(e).__name__}: {e}"
            else:
                if outcome.success:
                    result.attempts.append(
                        ChannelAttempt(channel=channel.name, success=True, message_id=outcome.message_id)
                    )
                    result.success = True
                    result.channel = channel.name
                    result.message_id = outcome.message_id
                    logger.info("Email sent successfully via %s", channel.name)
                    return result
                error = outcome.error or "unknown error"

            logger.warning("Channel %s failed: %s", channel.name, error)
            result.attempts.append(ChannelAttempt(channel=channel.name, success=False, error=error))

        logger.error(
            "Email delivery failed (all providers): %s",
            ", ".join(a.channel for a in result.attempts) or "no channels configured",
        )
        return result

    async def _healthy(self, channel: NotificationChannel) -> bool:
        try:
            return bool(await channel.is_healthy())
        except Exception as e:  # noqa: BLE001
            logger.warning("Health check for %s raised: %s", channel.name, e)
            return False
