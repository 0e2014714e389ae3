"""Order creation — command and handler."""

import json

from protean import handle
from protean.fields import Identifier, String, Text

from ordering.domain import ordering
from ordering.order.context import BranchContext
from ordering.order.order import Order
from ordering.order.wiring import get_order_service


@ordering.command(part_of="Order")
class CreateOrder:
    actor_role = String(max_length=20, default="guest")
    actor_user_id = Identifier()
    actor_branch_id = Identifier()
    branch_id = Identifier()
    customer_id = Identifier()
    lines = Text(required=True)  # JSON: list of line dicts
    delivery_method = String(max_length=20, default="pickup")
    coupon_code = String(max_length=50)
    delivery_address = Text()  # JSON: address dict
    customer_notes = Text()


@ordering.command_handler(part_of=Order)
class CreateOrderHandler:
    @handle(CreateOrder)
    def create_order(self, command):
        lines = json.loads(command.lines) if isinstance(command.lines, str) else command.lines
        delivery_address = (
            json.loads(command.delivery_address)
            if isinstance(command.delivery_address, str)
            else command.delivery_address
        )

        order = get_order_service().create_order(
            BranchContext.from_actor(command.actor_role, command.actor_user_id, command.actor_branch_id),
            lines,
            command.delivery_method,
            coupon_code=command.coupon_code,
            branch_id=command.branch_id,
            customer_id=command.customer_id,
            delivery_address=delivery_address,
            customer_notes=command.customer_notes,
        )
        return str(order.id)
