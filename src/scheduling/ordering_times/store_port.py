"""Schedule store port — per-branch ordering times."""

from abc import ABC, abstractmethod

from scheduling.ordering_times.ordering_times import OrderingTimes


class ScheduleStore(ABC):
    """Abstract interface for schedule lookups."""

    @abstractmethod
    def get_ordering_times(self, branch_id: str) -> OrderingTimes | None:
        """Return the branch's ordering times, or None if none are configured."""
        ...
