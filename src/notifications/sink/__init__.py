"""Event sink registry — pluggable transport for order events.

Uses the in-memory recording sink by default. Set ``EVENT_SINK=redis`` (and
``REDIS_URL``) to publish over Redis pub/sub.
"""

import os

_sink_instance = None


def get_event_sink():
    """Return the configured event sink (singleton)."""
    global _sink_instance
    if _sink_instance is None:
        adapter = os.environ.get("EVENT_SINK", "memory")
        if adapter == "memory":
            from notifications.sink.recording import RecordingEventSink

            _sink_instance = RecordingEventSink()
        elif adapter == "redis":
            from notifications.sink.redis_sink import RedisEventSink

            _sink_instance = RedisEventSink(url=os.environ.get("REDIS_URL", "redis://localhost:6379/0"))
        else:
            raise ValueError(f"Unknown event sink: {adapter}")
    return _sink_instance


def reset_event_sink():
    """Reset the sink singleton (useful for testing)."""
    global _sink_instance
    _sink_instance = None
