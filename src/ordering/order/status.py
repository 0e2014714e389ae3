"""Order status changes — command and handler."""

from protean import handle
from protean.fields import Identifier, String

from ordering.domain import ordering
from ordering.order.context import BranchContext
from ordering.order.order import Order
from ordering.order.wiring import get_order_service


@ordering.command(part_of="Order")
class UpdateOrderStatus:
    order_id = Identifier(required=True)
    status = String(required=True, max_length=20)
    actor_role = String(required=True, max_length=20)
    actor_user_id = Identifier()
    actor_branch_id = Identifier()


@ordering.command_handler(part_of=Order)
class UpdateOrderStatusHandler:
    @handle(UpdateOrderStatus)
    def update_status(self, command):
        order = get_order_service().update_order_status(
            command.order_id,
            BranchContext.from_actor(command.actor_role, command.actor_user_id, command.actor_branch_id),
            command.status,
        )
        return order.status
