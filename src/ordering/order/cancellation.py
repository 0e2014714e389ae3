"""Order cancellation — command and handler.

Cancelling restores the stock the order reserved; see OrderService.cancel_order.
"""

from protean import handle
from protean.fields import Identifier, String

from ordering.domain import ordering
from ordering.order.context import BranchContext
from ordering.order.order import Order
from ordering.order.wiring import get_order_service


@ordering.command(part_of="Order")
class CancelOrder:
    order_id = Identifier(required=True)
    actor_role = String(required=True, max_length=20)
    actor_user_id = Identifier()
    actor_branch_id = Identifier()


@ordering.command_handler(part_of=Order)
class CancelOrderHandler:
    @handle(CancelOrder)
    def cancel_order(self, command):
        order = get_order_service().cancel_order(
            command.order_id,
            BranchContext.from_actor(command.actor_role, command.actor_user_id, command.actor_branch_id),
        )
        return order.status
