"""Staff notifications for order lifecycle changes.

Payloads are pushed to the branch's staff room (``restaurant_{branchId}``)
through the injected event sink. Emission is fire-and-forget: a sink failure
is logged and never fails the order operation that triggered it.
"""

from datetime import UTC, datetime

import structlog

from notifications.sink.port import EventSink

logger = structlog.get_logger(__name__)

ORDER_CREATED = "order_created"
ORDER_UPDATED = "order_updated"
ORDER_CANCELLED = "order_cancelled"
ORDER_DELETED = "order_deleted"

_MESSAGES = {
    ORDER_CREATED: "New order received",
    ORDER_UPDATED: "Order updated",
    ORDER_CANCELLED: "Order cancelled",
    ORDER_DELETED: "Order deleted",
}


def build_payload(event_name: str, order, old_status=None, new_status=None, now=None) -> dict:
    payload = {
        "message": _MESSAGES[event_name],
        "type": event_name,
        "orderId": str(order.id),
        "orderNumber": order.order_number,
        "branchId": str(order.branch_id),
        "timestamp": (now or datetime.now(UTC)).isoformat(),
    }
    if old_status is not None:
        payload["oldStatus"] = old_status
    if new_status is not None:
        payload["newStatus"] = new_status
    return payload


class OrderEventNotifier:
    def __init__(self, sink: EventSink):
        self.sink = sink

    def _emit(self, event_name: str, payload: dict):
        try:
            self.sink.emit(event_name, payload)
        except Exception as exc:
            logger.error(
                "Failed to emit order event",
                event_name=event_name,
                order_id=payload.get("orderId"),
                branch_id=payload.get("branchId"),
                error=str(exc),
            )

    def order_created(self, order):
        self._emit(ORDER_CREATED, build_payload(ORDER_CREATED, order))

    def order_updated(self, order, old_status: str):
        self._emit(ORDER_UPDATED, build_payload(ORDER_UPDATED, order, old_status, order.status))

    def order_cancelled(self, order, old_status: str):
        self._emit(ORDER_CANCELLED, build_payload(ORDER_CANCELLED, order, old_status, order.status))

    def order_deleted(self, order):
        self._emit(ORDER_DELETED, build_payload(ORDER_DELETED, order))
