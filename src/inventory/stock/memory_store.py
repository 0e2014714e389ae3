"""In-memory stock store — lock-guarded counters for tests and single-process runs."""

import threading
from dataclasses import replace
from datetime import UTC, datetime

from inventory.stock.store_port import StockRecord, StockStore


class InMemoryStockStore(StockStore):
    """Stock store backed by a dict. A single lock makes each mutation atomic."""

    def __init__(self, records=None):
        self._records: dict[str, StockRecord] = {}
        self._lock = threading.Lock()
        for record in records or ():
            self.put(record)

    def get(self, product_id: str) -> StockRecord | None:
        with self._lock:
            return self._records.get(str(product_id))

    def put(self, record: StockRecord) -> StockRecord:
        with self._lock:
            self._records[str(record.product_id)] = record
        return record

    def decrement(self, product_id: str, quantity: int) -> StockRecord | None:
        with self._lock:
            record = self._records.get(str(product_id))
            if record is None or record.quantity - quantity < 0:
                return None
            updated = replace(record, quantity=record.quantity - quantity, updated_at=datetime.now(UTC))
            self._records[str(product_id)] = updated
            return updated

    def increment(self, product_id: str, quantity: int) -> StockRecord | None:
        with self._lock:
            record = self._records.get(str(product_id))
            if record is None:
                return None
            updated = replace(record, quantity=record.quantity + quantity, updated_at=datetime.now(UTC))
            self._records[str(product_id)] = updated
            return updated

    def list_for_branch(self, branch_id: str) -> list[StockRecord]:
        with self._lock:
            return [r for r in self._records.values() if str(r.branch_id) == str(branch_id)]

    def reset(self):
        """Drop all records (useful between tests)."""
        with self._lock:
            self._records.clear()
