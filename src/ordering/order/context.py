"""Who is acting, and for which branch.

Authentication happens upstream; the pipeline receives an already-resolved
``BranchContext`` and only decides what that actor may do:

* admin, manager and staff are pinned to their assigned branch;
* superadmin, customers and guests must name the branch explicitly;
* status updates and cancellation need a management role, and the order must
  belong to the actor's branch (superadmin is exempt from the branch check);
* deletion is limited to superadmin, admin and manager.
"""

from dataclasses import dataclass
from enum import Enum

from ordering.order.errors import AuthorizationError, OrderValidationError


class Role(Enum):
    SUPERADMIN = "superadmin"
    ADMIN = "admin"
    MANAGER = "manager"
    STAFF = "staff"
    USER = "user"
    GUEST = "guest"


MANAGEMENT_ROLES = frozenset({Role.SUPERADMIN, Role.ADMIN, Role.MANAGER, Role.STAFF})
BRANCH_PINNED_ROLES = frozenset({Role.ADMIN, Role.MANAGER, Role.STAFF})
DELETE_ROLES = frozenset({Role.SUPERADMIN, Role.ADMIN, Role.MANAGER})


def parse_role(value) -> Role:
    if isinstance(value, Role):
        return value
    if not value:
        return Role.GUEST
    try:
        return Role(str(value).strip().lower())
    except ValueError as exc:
        raise OrderValidationError({"role": [f"Unknown role: {value}"]}) from exc


@dataclass(frozen=True)
class BranchContext:
    role: Role = Role.GUEST
    user_id: str | None = None
    branch_id: str | None = None  # assigned branch, for branch-pinned roles

    @classmethod
    def guest(cls) -> "BranchContext":
        return cls()

    @classmethod
    def customer(cls, user_id: str) -> "BranchContext":
        return cls(role=Role.USER, user_id=str(user_id))

    @classmethod
    def staff(cls, role, branch_id: str | None, user_id: str | None = None) -> "BranchContext":
        return cls(role=parse_role(role), user_id=user_id, branch_id=str(branch_id) if branch_id else None)

    @classmethod
    def from_actor(cls, role, user_id=None, branch_id=None) -> "BranchContext":
        return cls(
            role=parse_role(role),
            user_id=str(user_id) if user_id else None,
            branch_id=str(branch_id) if branch_id else None,
        )

    @property
    def is_management(self) -> bool:
        return self.role in MANAGEMENT_ROLES

    @property
    def is_branch_pinned(self) -> bool:
        return self.role in BRANCH_PINNED_ROLES

    @property
    def customer_id(self) -> str | None:
        """The id an order is placed under when this actor places it for themselves."""
        return self.user_id if self.role == Role.USER else None


def resolve_order_branch(context: BranchContext, requested_branch_id=None) -> str:
    """Branch a new order is placed with.

    Pinned roles always order for their own branch; a different requested
    branch is refused rather than silently replaced.
    """
    if context.is_branch_pinned:
        if not context.branch_id:
            raise OrderValidationError({"branch_id": ["Your account is not assigned to a branch"]})
        if requested_branch_id and str(requested_branch_id) != context.branch_id:
            raise AuthorizationError({"branch_id": ["You can only place orders for your assigned branch"]})
        return context.branch_id

    if not requested_branch_id:
        raise OrderValidationError({"branch_id": ["Branch ID is required"]})
    return str(requested_branch_id)


def assert_can_manage_orders(context: BranchContext):
    if not context.is_management:
        raise AuthorizationError({"role": [f"Role {context.role.value} is not authorized to update orders"]})


def assert_can_delete_orders(context: BranchContext):
    if context.role not in DELETE_ROLES:
        raise AuthorizationError({"role": [f"Role {context.role.value} is not authorized to delete orders"]})


def assert_owns_branch(context: BranchContext, branch_id):
    if context.role == Role.SUPERADMIN:
        return
    if context.branch_id is None or str(branch_id) != context.branch_id:
        raise AuthorizationError({"branch_id": ["Not authorized to access orders from this branch"]})
