"""StockLedger — check, deduct and restore stock for a batch of order lines.

The three operations are independent and composable. None of them raises for
a business failure; each returns a result object listing what happened per
line so that callers can report (and compensate for) partial outcomes.

``check_availability`` is advisory. It reads quantities without a lock, so a
clean check does not guarantee a later ``deduct`` succeeds. ``deduct`` relies
on the store's atomic conditional decrement and reports a stock conflict for
any line whose decrement was refused.

Products without a stock record, or whose record is not managed, are not
tracked: they are always available and are skipped by deduct and restore.
"""

from collections import defaultdict
from dataclasses import dataclass, field

import structlog

from inventory.stock.store_port import StockRecord, StockStore

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class StockLine:
    product_id: str
    quantity: int
    product_name: str = ""


@dataclass(frozen=True)
class StockCheckResult:
    success: bool
    errors: list[dict] = field(default_factory=list)
    stock_info: list[dict] = field(default_factory=list)


@dataclass(frozen=True)
class StockDeductionResult:
    success: bool
    errors: list[dict] = field(default_factory=list)
    updated: list[dict] = field(default_factory=list)


@dataclass(frozen=True)
class StockRestorationResult:
    success: bool
    errors: list[dict] = field(default_factory=list)
    restored: list[dict] = field(default_factory=list)


def _is_tracked(record: StockRecord | None) -> bool:
    return record is not None and record.is_managed


class StockLedger:
    def __init__(self, store: StockStore):
        self.store = store

    def check_availability(self, lines) -> StockCheckResult:
        """Report whether every line's quantity is currently available. Read-only.

        Lines for the same product are checked against their combined quantity,
        and a shortfall is reported once per product.
        """
        errors = []
        stock_info = []
        requested = defaultdict(int)
        for line in lines:
            requested[str(line.product_id)] += line.quantity

        for line in lines:
            product_id = str(line.product_id)
            record = self.store.get(product_id)
            name = line.product_name or (record.product_name if record else "")
            info = {
                "product_id": product_id,
                "product_name": name,
                "is_managed": _is_tracked(record),
                "available_stock": record.quantity if record else 0,
                "requested_quantity": line.quantity,
            }

            if _is_tracked(record):
                info["is_low_stock"] = record.is_low_stock
                total = requested[product_id]
                reported = any(error["product_id"] == product_id for error in errors)
                if record.quantity < total and not reported:
                    errors.append(
                        {
                            "product_id": product_id,
                            "product_name": name,
                            "available": record.quantity,
                            "requested": total,
                            "error": f"Insufficient stock. Available: {record.quantity}, Requested: {total}",
                        }
                    )

            stock_info.append(info)

        return StockCheckResult(success=not errors, errors=errors, stock_info=stock_info)

    def deduct(self, lines) -> StockDeductionResult:
        """Decrement stock for each tracked line. Never drives a quantity below zero."""
        errors = []
        updated = []

        for line in lines:
            record = self.store.get(line.product_id)
            if not _is_tracked(record):
                continue

            new_record = self.store.decrement(line.product_id, line.quantity)
            if new_record is None:
                current = self.store.get(line.product_id)
                available = current.quantity if current else 0
                logger.warning(
                    "Stock conflict during deduction",
                    product_id=str(line.product_id),
                    requested=line.quantity,
                    available=available,
                )
                errors.append(
                    {
                        "product_id": str(line.product_id),
                        "product_name": line.product_name or record.product_name,
                        "available": available,
                        "requested": line.quantity,
                        "error": "Stock conflict: quantity changed before it could be reserved",
                    }
                )
                continue

            updated.append(
                {
                    "product_id": str(line.product_id),
                    "product_name": line.product_name or new_record.product_name,
                    "quantity_deducted": line.quantity,
                    "new_stock": new_record.quantity,
                    "is_low_stock": new_record.is_low_stock,
                }
            )
            if new_record.is_low_stock:
                logger.info(
                    "Low stock detected",
                    product_id=str(line.product_id),
                    new_stock=new_record.quantity,
                    threshold=new_record.low_stock_threshold,
                )

        return StockDeductionResult(success=not errors, errors=errors, updated=updated)

    def restore(self, lines) -> StockRestorationResult:
        """Return stock for each tracked line.

        Not idempotent on its own: callers must make sure a given reservation
        is restored only once.
        """
        errors = []
        restored = []

        for line in lines:
            record = self.store.get(line.product_id)
            if not _is_tracked(record):
                continue

            new_record = self.store.increment(line.product_id, line.quantity)
            if new_record is None:
                errors.append({"product_id": str(line.product_id), "error": "Stock record not found"})
                continue

            restored.append(
                {
                    "product_id": str(line.product_id),
                    "product_name": line.product_name or new_record.product_name,
                    "quantity_restored": line.quantity,
                    "new_stock": new_record.quantity,
                }
            )

        return StockRestorationResult(success=not errors, errors=errors, restored=restored)

    def low_stock(self, branch_id: str) -> list[dict]:
        """Managed records at or below their threshold, lowest stock first."""
        records = [r for r in self.store.list_for_branch(branch_id) if r.is_low_stock]
        return [
            {
                "product_id": r.product_id,
                "product_name": r.product_name,
                "current_stock": r.quantity,
                "threshold": r.low_stock_threshold,
                "deficit": r.low_stock_threshold - r.quantity,
            }
            for r in sorted(records, key=lambda r: r.quantity)
        ]
