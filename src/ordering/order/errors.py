"""Failures surfaced by the order pipeline.

Every error carries a machine-readable ``kind`` and a ``messages`` dict of
field -> list of human-readable strings, the same shape protean uses for
``ValidationError``. Callers can branch on the class (or ``kind``) without
parsing text.
"""


class OrderingError(Exception):
    kind = "ordering_error"

    def __init__(self, messages):
        if isinstance(messages, str):
            messages = {"order": [messages]}
        super().__init__(messages)
        self.messages = messages


class OrderValidationError(OrderingError):
    """Malformed input or a rule violation on the order itself."""

    kind = "validation_error"


class StockError(OrderingError):
    """One or more lines cannot be satisfied from current stock."""

    kind = "stock_error"

    def __init__(self, lines: list[dict]):
        super().__init__({"stock": [line["error"] for line in lines]})
        self.lines = lines


class CouponError(OrderingError):
    kind = "coupon_error"

    def __init__(self, reason: str, code: str | None = None):
        super().__init__({"coupon_code": [reason]})
        self.reason = reason
        self.code = code


class AuthorizationError(OrderingError):
    kind = "authorization_error"


class NotFoundError(OrderingError):
    kind = "not_found"
