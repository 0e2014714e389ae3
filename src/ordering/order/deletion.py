"""Order deletion — command and handler.

Deletion removes the record outright and, unlike cancellation, leaves stock
untouched.
"""

from protean import handle
from protean.fields import Identifier, String

from ordering.domain import ordering
from ordering.order.context import BranchContext
from ordering.order.order import Order
from ordering.order.wiring import get_order_service


@ordering.command(part_of="Order")
class DeleteOrder:
    order_id = Identifier(required=True)
    actor_role = String(required=True, max_length=20)
    actor_user_id = Identifier()
    actor_branch_id = Identifier()


@ordering.command_handler(part_of=Order)
class DeleteOrderHandler:
    @handle(DeleteOrder)
    def delete_order(self, command):
        get_order_service().delete_order(
            command.order_id,
            BranchContext.from_actor(command.actor_role, command.actor_user_id, command.actor_branch_id),
        )
