"""Redis pub/sub event sink — production transport for staff notifications.

Events for a branch are published on the ``restaurant_{branch_id}`` channel as
JSON. Staff clients (or a socket gateway) subscribe per branch.
"""

import json

import redis
import structlog

from notifications.sink.port import EventSink

logger = structlog.get_logger(__name__)


class RedisEventSink(EventSink):
    def __init__(self, url: str = "redis://localhost:6379/0", client=None, channel_prefix: str = "restaurant_"):
        self._client = client if client is not None else redis.Redis.from_url(url)
        self._channel_prefix = channel_prefix

    def channel_for(self, branch_id) -> str:
        return f"{self._channel_prefix}{branch_id}"

    def emit(self, event_name: str, payload: dict) -> None:
        channel = self.channel_for(payload.get("branchId"))
        receivers = self._client.publish(channel, json.dumps(payload, default=str))
        logger.debug("Published order event", event_name=event_name, channel=channel, receivers=receivers)
