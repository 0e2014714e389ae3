"""OrderAssembler — turns priced lines, a discount and a lead time into an Order.

Pure arithmetic plus the aggregate factory; no lookups and no side effects.
Totals follow two rules:

    line_total   = unit_price * quantity + attribute_unit_total * quantity
    total_amount = sum(line_total)

The final total is derived by the aggregate from ``total_amount`` and the
discount snapshot.
"""

from dataclasses import dataclass, field

from ordering.order.attributes import SelectedAttribute, attribute_unit_total
from ordering.order.order import Order, money


@dataclass(frozen=True)
class PricedLine:
    product_id: str
    product_name: str
    quantity: int
    unit_price: float
    notes: str | None = None
    attributes: tuple[SelectedAttribute, ...] = field(default_factory=tuple)

    @property
    def attribute_unit_total(self) -> float:
        return attribute_unit_total(self.attributes)

    @property
    def line_total(self) -> float:
        return calculate_line_total(self.unit_price, self.quantity, self.attribute_unit_total)

    def to_line_data(self) -> dict:
        return {
            "product_id": self.product_id,
            "product_name": self.product_name,
            "quantity": self.quantity,
            "unit_price": self.unit_price,
            "notes": self.notes,
            "attributes": self.attributes,
            "attribute_unit_total": self.attribute_unit_total,
            "line_total": self.line_total,
        }


def calculate_line_total(unit_price: float, quantity: int, attribute_unit_total: float = 0.0) -> float:
    return money(unit_price * quantity + attribute_unit_total * quantity)


def order_subtotal(lines) -> float:
    return money(sum(line.line_total for line in lines))


class OrderAssembler:
    def assemble(
        self,
        order_number,
        branch_id,
        delivery_method,
        lines,
        user_id=None,
        coupon=None,
        discount_application=None,
        estimated_time_to_complete=None,
        delivery_address=None,
        customer_notes=None,
    ) -> Order:
        discount = None
        if coupon is not None and discount_application is not None:
            discount = {
                "coupon_id": str(coupon.id),
                "code": coupon.code,
                "name": coupon.name,
                "discount_type": coupon.discount_type.value,
                "discount_value": coupon.discount_value,
                "discount_amount": discount_application.discount_amount,
            }

        return Order.create(
            order_number=order_number,
            branch_id=branch_id,
            delivery_method=delivery_method,
            lines_data=[line.to_line_data() for line in lines],
            total_amount=order_subtotal(lines),
            user_id=user_id,
            discount=discount,
            estimated_time_to_complete=estimated_time_to_complete,
            delivery_address=delivery_address,
            customer_notes=customer_notes,
        )
