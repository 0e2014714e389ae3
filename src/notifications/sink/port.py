"""Event sink port — fire-and-forget delivery of domain events to staff clients."""

from abc import ABC, abstractmethod


class EventSink(ABC):
    """Abstract interface for event delivery adapters."""

    @abstractmethod
    def emit(self, event_name: str, payload: dict) -> None:
        """Publish an event. No acknowledgement is expected by the caller."""
        ...
