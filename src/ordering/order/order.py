"""Order aggregate — a priced, immutable-once-created restaurant order.

Lines, totals, the discount snapshot and the estimated completion time are
fixed at creation. After that only the status moves, and only along the
state machine below. Stock and staff notifications are side effects owned by
the OrderService, not by the aggregate.

State Machine:
    PENDING → CONFIRMED → PREPARING → READY → COMPLETED | DELIVERED
    CANCELLED (from any non-terminal state)
"""

from datetime import UTC, datetime
from enum import Enum

from protean import invariant
from protean.exceptions import ValidationError
from protean.fields import (
    DateTime,
    Float,
    HasMany,
    Identifier,
    Integer,
    String,
    Text,
    ValueObject,
)

from ordering.domain import ordering
from ordering.order.attributes import attributes_from_json, attributes_to_json
from shared.service_types import DeliveryMethod


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------
class OrderStatus(Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    PREPARING = "preparing"
    READY = "ready"
    COMPLETED = "completed"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"


# State machine transition map
_VALID_TRANSITIONS = {
    OrderStatus.PENDING: {OrderStatus.CONFIRMED, OrderStatus.CANCELLED},
    OrderStatus.CONFIRMED: {OrderStatus.PREPARING, OrderStatus.CANCELLED},
    OrderStatus.PREPARING: {OrderStatus.READY, OrderStatus.CANCELLED},
    OrderStatus.READY: {
        OrderStatus.COMPLETED,
        OrderStatus.DELIVERED,
        OrderStatus.CANCELLED,
    },
    OrderStatus.COMPLETED: set(),  # Terminal
    OrderStatus.DELIVERED: set(),  # Terminal
    OrderStatus.CANCELLED: set(),  # Terminal
}

TERMINAL_STATES = frozenset(status for status, targets in _VALID_TRANSITIONS.items() if not targets)


def parse_status(value) -> OrderStatus:
    if isinstance(value, OrderStatus):
        return value
    try:
        return OrderStatus(str(value).strip().lower())
    except ValueError as exc:
        raise ValidationError({"status": [f"Unknown order status: {value}"]}) from exc


def money(amount) -> float:
    return round(float(amount or 0.0), 2)


# ---------------------------------------------------------------------------
# Value Objects
# ---------------------------------------------------------------------------
@ordering.value_object(part_of="Order")
class DiscountSnapshot:
    """The coupon as it was applied when the order was placed.

    Later edits to the coupon (or its archival) do not change what the
    customer was charged.
    """

    coupon_id = Identifier()
    code = String(max_length=50)
    name = String(max_length=100)
    discount_type = String(max_length=20)
    discount_value = Float(default=0.0)
    discount_amount = Float(default=0.0, min_value=0.0)


@ordering.value_object(part_of="Order")
class DeliveryAddress:
    street = String(required=True, max_length=255)
    city = String(required=True, max_length=100)
    state = String(max_length=100)
    postal_code = String(required=True, max_length=20)
    country = String(max_length=100)
    notes = String(max_length=500)


# ---------------------------------------------------------------------------
# Entities
# ---------------------------------------------------------------------------
@ordering.entity(part_of="Order")
class OrderLine:
    """One product on the order, priced at the moment the order was placed.

    ``attributes`` holds the selected add-ons as JSON; ``attribute_unit_total``
    is their combined price for a single unit of the line.
    """

    product_id = Identifier(required=True)
    product_name = String(max_length=255)
    quantity = Integer(required=True, min_value=1)
    unit_price = Float(required=True, min_value=0.0)
    notes = Text()
    attributes = Text()
    attribute_unit_total = Float(default=0.0, min_value=0.0)
    line_total = Float(default=0.0, min_value=0.0)

    @property
    def selected_attributes(self):
        return attributes_from_json(self.attributes)


# ---------------------------------------------------------------------------
# Aggregate Root
# ---------------------------------------------------------------------------
@ordering.aggregate
class Order:
    order_number = String(required=True, max_length=50, unique=True)
    branch_id = Identifier(required=True)
    user_id = Identifier()
    lines = HasMany(OrderLine)
    delivery_method = String(
        choices=DeliveryMethod,
        default=DeliveryMethod.PICKUP.value,
    )
    status = String(
        choices=OrderStatus,
        default=OrderStatus.PENDING.value,
    )
    discount = ValueObject(DiscountSnapshot)
    total_amount = Float(default=0.0, min_value=0.0)
    final_total = Float(default=0.0, min_value=0.0)
    estimated_time_to_complete = Integer(min_value=0)
    delivery_address = ValueObject(DeliveryAddress)
    customer_notes = Text()
    created_at = DateTime()
    updated_at = DateTime()
    cancelled_at = DateTime()

    @invariant.post
    def final_total_is_total_less_discount(self):
        discount_amount = self.discount.discount_amount if self.discount else 0.0
        expected = money(max(0.0, (self.total_amount or 0.0) - (discount_amount or 0.0)))
        if abs((self.final_total or 0.0) - expected) > 0.005:
            raise ValidationError({"final_total": ["Final total must equal total amount less discount"]})

    @invariant.post
    def delivery_address_only_on_delivery_orders(self):
        if self.delivery_address and self.delivery_method != DeliveryMethod.DELIVERY.value:
            raise ValidationError({"delivery_address": ["Delivery address is only valid for delivery orders"]})

    # -------------------------------------------------------------------
    # Factory method
    # -------------------------------------------------------------------
    @classmethod
    def create(
        cls,
        order_number,
        branch_id,
        delivery_method,
        lines_data,
        total_amount,
        user_id=None,
        discount=None,
        estimated_time_to_complete=None,
        delivery_address=None,
        customer_notes=None,
    ):
        """Create a new order from already-priced lines.

        Args:
            order_number: Human-readable number, unique across orders.
            branch_id: Branch the order is placed with.
            delivery_method: ``pickup``, ``delivery`` or ``dine_in``.
            lines_data: List of dicts with product_id, product_name, quantity,
                        unit_price, notes, attributes (list of
                        SelectedAttribute), attribute_unit_total, line_total.
            total_amount: Sum of the line totals.
            user_id: Customer placing the order; ``None`` for guests.
            discount: Dict with coupon_id, code, name, discount_type,
                      discount_value, discount_amount; or ``None``.
            estimated_time_to_complete: Minutes until the order is ready.
            delivery_address: Dict with street, city, state, postal_code,
                              country, notes; delivery orders only.
        """
        now = datetime.now(UTC)
        total_amount = money(total_amount)
        discount_vo = DiscountSnapshot(**discount) if discount else None
        discount_amount = discount_vo.discount_amount if discount_vo else 0.0

        order = cls(
            order_number=order_number,
            branch_id=str(branch_id),
            user_id=str(user_id) if user_id else None,
            delivery_method=DeliveryMethod(delivery_method).value,
            status=OrderStatus.PENDING.value,
            discount=discount_vo,
            total_amount=total_amount,
            final_total=money(max(0.0, total_amount - discount_amount)),
            estimated_time_to_complete=estimated_time_to_complete,
            delivery_address=DeliveryAddress(**delivery_address) if delivery_address else None,
            customer_notes=customer_notes,
            created_at=now,
            updated_at=now,
        )

        for line in lines_data:
            order.add_lines(
                OrderLine(
                    product_id=str(line["product_id"]),
                    product_name=line.get("product_name", ""),
                    quantity=line["quantity"],
                    unit_price=line["unit_price"],
                    notes=line.get("notes"),
                    attributes=attributes_to_json(line.get("attributes") or ()),
                    attribute_unit_total=line.get("attribute_unit_total", 0.0),
                    line_total=line["line_total"],
                )
            )

        return order

    # -------------------------------------------------------------------
    # State transitions
    # -------------------------------------------------------------------
    @property
    def is_cancelled(self) -> bool:
        return self.status == OrderStatus.CANCELLED.value

    @property
    def is_terminal(self) -> bool:
        return OrderStatus(self.status) in TERMINAL_STATES

    def _assert_can_transition(self, target_status):
        """Validate that the current state allows transition to target."""
        current = OrderStatus(self.status)
        if target_status not in _VALID_TRANSITIONS.get(current, set()):
            raise ValidationError({"status": [f"Cannot transition from {current.value} to {target_status.value}"]})

    def change_status(self, new_status) -> bool:
        """Move the order to ``new_status``.

        Returns ``False`` when the order is already in that status (nothing
        changes), ``True`` when the status moved. Raises ``ValidationError``
        for an unknown status or an illegal transition.
        """
        target = parse_status(new_status)
        if OrderStatus(self.status) == target:
            return False

        self._assert_can_transition(target)

        now = datetime.now(UTC)
        self.status = target.value
        self.updated_at = now
        if target == OrderStatus.CANCELLED:
            self.cancelled_at = now
        return True

    def cancel(self) -> bool:
        return self.change_status(OrderStatus.CANCELLED)

    # -------------------------------------------------------------------
    # Read helpers
    # -------------------------------------------------------------------
    @property
    def discount_amount(self) -> float:
        return self.discount.discount_amount if self.discount else 0.0

    def stock_quantities(self) -> list[tuple[str, int, str]]:
        """(product_id, quantity, product_name) for every line, in order."""
        return [(str(line.product_id), line.quantity, line.product_name or "") for line in self.lines]
