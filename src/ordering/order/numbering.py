"""Human-readable order numbers: ``{BRANCHCODE}-{YYMMDD}-{NNNN}``.

The counter is per branch and per day. Issuing is atomic within the process;
each (branch code, day) counter is seeded once from the last number already
persisted so that restarts carry on where the previous process stopped.
"""

import threading
from datetime import date

import structlog

logger = structlog.get_logger(__name__)

DEFAULT_BRANCH_CODE = "BR"


def number_prefix(branch_code: str, on: date) -> str:
    return f"{branch_code}-{on:%y%m%d}"


def sequence_of(order_number: str | None, prefix: str) -> int:
    """The NNNN part of ``order_number`` if it was issued under ``prefix``, else 0."""
    if not order_number or not order_number.startswith(prefix + "-"):
        return 0
    try:
        return int(order_number[len(prefix) + 1 :])
    except ValueError:
        return 0


class OrderNumberSequence:
    def __init__(self, branch_codes: dict[str, str] | None = None, seed=None):
        """
        Args:
            branch_codes: Branch id -> short branch code. Unknown branches use ``BR``.
            seed: Optional ``seed(prefix) -> int`` returning the last
                  sequence number already issued under ``prefix``.
        """
        self._branch_codes = dict(branch_codes or {})
        self._seed = seed
        self._counters: dict[str, int] = {}
        self._lock = threading.Lock()

    def branch_code(self, branch_id: str) -> str:
        return self._branch_codes.get(str(branch_id), DEFAULT_BRANCH_CODE)

    def next_number(self, branch_id: str, on: date) -> str:
        prefix = number_prefix(self.branch_code(branch_id), on)
        with self._lock:
            if prefix not in self._counters:
                self._counters[prefix] = self._seed(prefix) if self._seed else 0
                logger.debug("Order number sequence seeded", prefix=prefix, last=self._counters[prefix])
            self._counters[prefix] += 1
            sequence = self._counters[prefix]
        return f"{prefix}-{sequence:04d}"

    def reset(self):
        with self._lock:
            self._counters.clear()
