"""Recording event sink — keeps emitted events in memory for test assertions."""

from notifications.sink.port import EventSink


class RecordingEventSink(EventSink):
    def __init__(self):
        self.events: list[tuple[str, dict]] = []
        self.should_fail = False

    def configure(self, should_fail: bool = False):
        """Make ``emit`` raise, to exercise fire-and-forget handling."""
        self.should_fail = should_fail

    def emit(self, event_name: str, payload: dict) -> None:
        if self.should_fail:
            raise ConnectionError("Event sink unavailable")
        self.events.append((event_name, payload))

    def names(self) -> list[str]:
        return [name for name, _ in self.events]

    def of_type(self, event_name: str) -> list[dict]:
        return [payload for name, payload in self.events if name == event_name]

    def reset(self):
        self.events.clear()
        self.should_fail = False
