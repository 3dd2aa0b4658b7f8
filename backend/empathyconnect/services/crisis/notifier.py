"""
Realtime fan-out of new crisis alerts over Redis pub/sub.

The therapist dashboard subscribes to ``ALERT_CHANNEL`` and receives every
newly inserted alert as a JSON message.
"""

import json
import logging
from typing import Any, Awaitable, Callable, Dict

import redis.asyncio as redis

from empathyconnect.core.redis import get_redis_cache

logger = logging.getLogger(__name__)

ALERT_CHANNEL = "crisis_alerts"


class AlertNotifier:
    """Publishes crisis alert snapshots to a Redis channel."""

    def __init__(
        self,
        redis_factory: Callable[[], Awaitable[redis.Redis]] = get_redis_cache,
        channel: str = ALERT_CHANNEL,
    ):
        self.redis_factory = redis_factory
        self.channel = channel

    async def publish(self, alert: Dict[str, Any]) -> int:
        """
        Publish an alert to subscribers.

        Args:
            alert: Alert snapshot as produced by ``CrisisAlert.to_dict``

        Returns:
            Number of subscribers that received the message
        """
        client = await self.redis_factory()
        receivers = await client.publish(self.channel, json.dumps(alert))
        logger.info(
            f"Published {alert.get('risk_level')} alert {alert.get('id')} "
            f"to {receivers} subscriber(s)"
        )
        return receivers
