# ===== booking_engine/services/notification/realtime_notifier.py =====
"""Fan-out of booking status changes to real-time subscribers over Redis pub/sub"""
import json
from datetime import datetime, timezone
from typing import Optional
from uuid import UUID

import redis.asyncio as redis
import logging

from booking_engine.config.redis import RedisChannels, get_redis
from booking_engine.config.settings import get_settings

logger = logging.getLogger(__name__)


class RealtimeNotifier:
    """
    Fire-and-forget publisher. Runs after the status change is committed, so a
    failure here is logged and never surfaces to the caller.
    """

    def __init__(self, client: Optional[redis.Redis] = None, enabled: Optional[bool] = None):
        self._client = client
        self.enabled = get_settings().REALTIME_ENABLED if enabled is None else enabled

    async def _get_client(self) -> redis.Redis:
        if self._client is None:
            self._client = await get_redis()
        return self._client

    async def publish(self, booking_id: UUID, status: str, business_id: Optional[UUID] = None) -> int:
        """Returns how many subscribers received the message (0 on failure)"""
        if not self.enabled:
            return 0

        message = json.dumps({
            "booking_id": str(booking_id),
            "status": status,
            "published_at": datetime.now(timezone.utc).isoformat(),
        })
        channels = [RedisChannels.BOOKING_STATUS.format(booking_id=booking_id)]
        if business_id is not None:
            channels.append(RedisChannels.BUSINESS_BOOKINGS.format(business_id=business_id))

        try:
            client = await self._get_client()
            receivers = 0
            for channel in channels:
                receivers += await client.publish(channel, message)
        except redis.RedisError as e:
            logger.error(f"Failed to publish status {status} for booking {booking_id}: {str(e)}")
            return 0

        logger.debug(f"Published booking {booking_id} -> {status} to {receivers} subscribers")
        return receivers
