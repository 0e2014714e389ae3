"""In-memory schedule store for tests and local runs."""

from scheduling.ordering_times.ordering_times import OrderingTimes
from scheduling.ordering_times.store_port import ScheduleStore


class InMemoryScheduleStore(ScheduleStore):
    def __init__(self, schedules=None):
        self.schedules: dict[str, OrderingTimes] = {}
        for schedule in schedules or ():
            self.add(schedule)

    def add(self, ordering_times: OrderingTimes) -> OrderingTimes:
        self.schedules[str(ordering_times.branch_id)] = ordering_times
        return ordering_times

    def add_document(self, document: dict) -> OrderingTimes:
        return self.add(OrderingTimes.from_document(document))

    def get_ordering_times(self, branch_id: str) -> OrderingTimes | None:
        return self.schedules.get(str(branch_id))

    def reset(self):
        self.schedules.clear()
