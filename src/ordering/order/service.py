"""OrderService — the order creation and fulfilment pipeline.

Creation is all-or-nothing. Every check runs before anything is written:

    branch/role → delivery method → lines → products and prices → stock check
    → subtotal → coupon (rules, first-order, usage caps) → lead time

Only then is the order persisted, and stock is deducted only once that write
is committed, so a failed write can never leave a phantom deduction or a
stray notification. Inside a command handler the handler's unit of work is
committed at that point and reopened for the remaining steps. The stock
check is advisory; if the deduction itself loses a race, the partial
deduction is restored, the persisted order removed, the coupon usage released,
and a StockError raised.

Status changes follow the Order state machine. Moving into ``cancelled``
restores the original line quantities exactly once; setting the status an
order already has is a no-op. Deleting an order does not restore stock.

All collaborators are injected; see ``ordering.order.wiring`` for the
process-wide instance.
"""

import threading
from dataclasses import dataclass, field
from datetime import UTC, datetime

import structlog
from protean import current_domain
from protean.exceptions import ObjectNotFoundError, ValidationError
from protean.utils.globals import current_uow

from catalogue.product.catalog_port import CatalogPort
from catalogue.product.pricing import resolve_price
from inventory.stock.ledger import StockLedger, StockLine
from ordering.order.assembler import OrderAssembler, PricedLine, order_subtotal
from ordering.order.attributes import parse_attributes
from ordering.order.context import (
    BranchContext,
    assert_can_delete_orders,
    assert_can_manage_orders,
    assert_owns_branch,
    resolve_order_branch,
)
from ordering.order.errors import (
    CouponError,
    NotFoundError,
    OrderValidationError,
    StockError,
)
from ordering.order.notifier import OrderEventNotifier
from ordering.order.numbering import OrderNumberSequence, sequence_of
from ordering.order.order import Order, OrderStatus, parse_status
from promotions.discount.discount import normalize_code
from promotions.discount.engine import CouponOrderContext, DiscountEngine
from promotions.discount.store_port import CouponStore
from promotions.discount.usage import CouponUsageCounter
from scheduling.ordering_times.lead_time import DEFAULT_LEAD_TIME_MINUTES, estimate_lead_time
from scheduling.ordering_times.store_port import ScheduleStore
from shared.service_types import parse_delivery_method

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class OrderLineRequest:
    """One requested cart line, before pricing."""

    product_id: str
    quantity: int
    notes: str | None = None
    attributes: tuple = field(default_factory=tuple)


def parse_line_requests(lines) -> list[OrderLineRequest]:
    if not lines:
        raise OrderValidationError({"lines": ["Order must contain at least one item"]})

    requests = []
    for line in lines:
        if isinstance(line, OrderLineRequest):
            requests.append(line)
            continue

        product_id = line.get("product_id") if isinstance(line, dict) else None
        quantity = line.get("quantity") if isinstance(line, dict) else None
        if not product_id or not isinstance(quantity, int) or isinstance(quantity, bool) or quantity < 1:
            raise OrderValidationError({"lines": ["Product ID and a quantity of at least 1 are required for each item"]})

        try:
            attributes = parse_attributes(line.get("attributes"))
        except ValidationError as exc:
            raise OrderValidationError(exc.messages) from exc

        requests.append(
            OrderLineRequest(
                product_id=str(product_id),
                quantity=quantity,
                notes=line.get("notes"),
                attributes=attributes,
            )
        )
    return requests


def _utc_now() -> datetime:
    return datetime.now(UTC)


def _commit_staged_writes():
    """Commit the unit of work in progress, then reopen it for the caller.

    Outside a unit of work the repository has already written through and
    there is nothing to do. A failed commit raises before any side effect runs.
    """
    if not (current_uow and current_uow.in_progress):
        return
    uow = current_uow._get_current_object()
    uow.commit()
    uow.start()


class OrderService:
    def __init__(
        self,
        catalog: CatalogPort,
        stock_ledger: StockLedger,
        coupon_store: CouponStore,
        usage_counter: CouponUsageCounter,
        schedule_store: ScheduleStore,
        notifier: OrderEventNotifier,
        discount_engine: DiscountEngine | None = None,
        numbering: OrderNumberSequence | None = None,
        assembler: OrderAssembler | None = None,
        clock=None,
    ):
        self.catalog = catalog
        self.stock_ledger = stock_ledger
        self.coupon_store = coupon_store
        self.usage_counter = usage_counter
        self.schedule_store = schedule_store
        self.notifier = notifier
        self.discount_engine = discount_engine or DiscountEngine()
        self.numbering = numbering or OrderNumberSequence(seed=self._last_issued_sequence)
        self.assembler = assembler or OrderAssembler()
        self.clock = clock or _utc_now
        self._transition_lock = threading.Lock()

    # -------------------------------------------------------------------
    # Create
    # -------------------------------------------------------------------
    def create_order(
        self,
        context: BranchContext,
        lines,
        delivery_method,
        coupon_code: str | None = None,
        branch_id=None,
        customer_id=None,
        delivery_address: dict | None = None,
        customer_notes: str | None = None,
    ) -> Order:
        order_branch = resolve_order_branch(context, branch_id)

        method = parse_delivery_method(delivery_method)
        if method is None:
            raise OrderValidationError({"delivery_method": [f"Unknown delivery method: {delivery_method}"]})

        requests = parse_line_requests(lines)
        now = self.clock()
        user_id = str(customer_id) if customer_id and context.is_management else context.customer_id

        priced_lines = [self._price_line(request, order_branch, method) for request in requests]
        stock_lines = [StockLine(line.product_id, line.quantity, line.product_name) for line in priced_lines]

        check = self.stock_ledger.check_availability(stock_lines)
        if not check.success:
            logger.info("Order rejected for insufficient stock", branch_id=order_branch, errors=len(check.errors))
            raise StockError(check.errors)

        subtotal = order_subtotal(priced_lines)
        coupon, application = self._resolve_coupon(coupon_code, order_branch, method, subtotal, user_id, now)
        lead_time = self._lead_time(order_branch, method, now)

        if coupon is not None:
            refusal = self.usage_counter.try_redeem(coupon, user_id, now.date())
            if refusal:
                raise CouponError(refusal, coupon.code)

        try:
            order = self._assemble(
                order_number=self.numbering.next_number(order_branch, now.date()),
                branch_id=order_branch,
                delivery_method=method.value,
                lines=priced_lines,
                user_id=user_id,
                coupon=coupon,
                discount_application=application,
                estimated_time_to_complete=lead_time,
                delivery_address=delivery_address,
                customer_notes=customer_notes,
            )
            repo = current_domain.repository_for(Order)
            try:
                repo.add(order)
            except ValidationError as exc:
                raise OrderValidationError(exc.messages) from exc
            _commit_staged_writes()

            deduction = self.stock_ledger.deduct(stock_lines)
            if not deduction.success:
                self._undo_unreserved_order(repo, order, deduction)
                raise StockError(deduction.errors)
        except Exception:
            if coupon is not None:
                self.usage_counter.release(coupon, user_id, now.date())
            raise

        if coupon is not None:
            self._record_redemption(coupon, application.discount_amount, now)

        logger.info(
            "Order created",
            order_id=str(order.id),
            order_number=order.order_number,
            branch_id=order_branch,
            final_total=order.final_total,
        )
        self.notifier.order_created(order)
        return order

    def _price_line(self, request: OrderLineRequest, branch_id: str, method) -> PricedLine:
        product = self.catalog.get_product(request.product_id)
        if product is None:
            raise NotFoundError({"product_id": [f"Product not found with id of {request.product_id}"]})
        if str(product.branch_id) != branch_id:
            raise OrderValidationError({"product_id": [f"Product {product.name} does not belong to the specified branch"]})
        if not product.is_available:
            raise OrderValidationError({"product_id": [f"Product {product.name} is not available"]})
        if not product.offers(method):
            raise OrderValidationError({"product_id": [f"Product {product.name} is not available for {method.value}"]})

        return PricedLine(
            product_id=str(product.id),
            product_name=product.name,
            quantity=request.quantity,
            unit_price=resolve_price(product.price, product.price_changes),
            notes=request.notes,
            attributes=request.attributes,
        )

    def _resolve_coupon(self, coupon_code, branch_id, method, subtotal, user_id, now):
        if not coupon_code:
            return None, None

        code = normalize_code(coupon_code)
        coupon = self.coupon_store.find_active_coupon_by_code(branch_id, code)
        validation = self.discount_engine.validate(
            coupon,
            CouponOrderContext(order_total=subtotal, delivery_method=method.value),
            user_id,
            branch_id,
            now,
        )
        if not validation.valid:
            logger.info("Coupon rejected", code=code, branch_id=branch_id, reason=validation.reason)
            raise CouponError(validation.reason, code)

        if coupon.first_order_only:
            if not user_id:
                raise CouponError("Sign in to use a first order discount", code)
            if self._has_previous_orders(user_id):
                raise CouponError("Discount is only valid on your first order", code)

        return coupon, self.discount_engine.apply(coupon, subtotal)

    def _lead_time(self, branch_id, method, now) -> int:
        try:
            ordering_times = self.schedule_store.get_ordering_times(branch_id)
        except Exception as exc:
            logger.warning(
                "Could not load ordering schedule, using default lead time",
                branch_id=branch_id,
                error=str(exc),
            )
            return DEFAULT_LEAD_TIME_MINUTES
        return estimate_lead_time(ordering_times, method, now)

    def _assemble(self, **kwargs) -> Order:
        try:
            return self.assembler.assemble(**kwargs)
        except ValidationError as exc:
            raise OrderValidationError(exc.messages) from exc

    def _undo_unreserved_order(self, repo, order, deduction):
        """Compensate for a deduction that lost a race after the order was persisted."""
        reserved = [StockLine(u["product_id"], u["quantity_deducted"], u["product_name"]) for u in deduction.updated]
        if reserved:
            self.stock_ledger.restore(reserved)
        repo._dao.delete(order)
        # The StockError raised next rolls the handler's unit of work back, so the removal is committed first.
        _commit_staged_writes()
        logger.warning(
            "Stock conflict after order was persisted; order withdrawn",
            order_id=str(order.id),
            order_number=order.order_number,
            restored_lines=len(reserved),
        )

    def _record_redemption(self, coupon, discount_amount, now):
        try:
            self.coupon_store.record_redemption(coupon.id, discount_amount, now)
        except Exception as exc:
            logger.error("Failed to record coupon redemption", coupon_id=str(coupon.id), error=str(exc))

    def _has_previous_orders(self, user_id) -> bool:
        orders = current_domain.repository_for(Order)._dao.query.filter(user_id=str(user_id)).all().items
        return any(order.status != OrderStatus.CANCELLED.value for order in orders)

    def _last_issued_sequence(self, prefix: str) -> int:
        # Sequences widen past four digits, so the maximum is taken numerically rather than by text order.
        issued = (
            current_domain.repository_for(Order)
            ._dao.query.filter(order_number__startswith=prefix + "-")
            .limit(None)
            .all()
            .items
        )
        return max((sequence_of(order.order_number, prefix) for order in issued), default=0)

    # -------------------------------------------------------------------
    # Status changes
    # -------------------------------------------------------------------
    def update_order_status(self, order_id, context: BranchContext, new_status) -> Order:
        assert_can_manage_orders(context)
        try:
            target = parse_status(new_status)
        except ValidationError as exc:
            raise OrderValidationError(exc.messages) from exc

        if target == OrderStatus.CANCELLED:
            return self.cancel_order(order_id, context)

        with self._transition_lock:
            repo = current_domain.repository_for(Order)
            order = self._load(repo, order_id)
            assert_owns_branch(context, order.branch_id)

            previous = order.status
            try:
                changed = order.change_status(target)
            except ValidationError as exc:
                raise OrderValidationError(exc.messages) from exc
            if not changed:
                return order
            repo.add(order)
            _commit_staged_writes()

        logger.info("Order status updated", order_id=str(order.id), old_status=previous, new_status=order.status)
        self.notifier.order_updated(order, previous)
        return order

    def cancel_order(self, order_id, context: BranchContext) -> Order:
        assert_can_manage_orders(context)

        with self._transition_lock:
            repo = current_domain.repository_for(Order)
            order = self._load(repo, order_id)
            assert_owns_branch(context, order.branch_id)

            previous = order.status
            try:
                changed = order.cancel()
            except ValidationError as exc:
                raise OrderValidationError(exc.messages) from exc
            if not changed:
                logger.info("Order already cancelled", order_id=str(order.id))
                return order
            repo.add(order)
            _commit_staged_writes()

        restoration = self.stock_ledger.restore(
            [StockLine(product_id, quantity, name) for product_id, quantity, name in order.stock_quantities()]
        )
        if not restoration.success:
            logger.error(
                "Stock restoration incomplete after cancellation",
                order_id=str(order.id),
                errors=restoration.errors,
            )

        logger.info("Order cancelled", order_id=str(order.id), old_status=previous, restored=len(restoration.restored))
        self.notifier.order_cancelled(order, previous)
        return order

    # -------------------------------------------------------------------
    # Delete
    # -------------------------------------------------------------------
    def delete_order(self, order_id, context: BranchContext) -> None:
        assert_can_delete_orders(context)

        repo = current_domain.repository_for(Order)
        order = self._load(repo, order_id)
        assert_owns_branch(context, order.branch_id)

        repo._dao.delete(order)
        _commit_staged_writes()
        logger.info(
            "Order deleted",
            order_id=str(order.id),
            status=order.status,
            stock_restored=False,
        )
        self.notifier.order_deleted(order)

    def _load(self, repo, order_id) -> Order:
        try:
            return repo.get(str(order_id))
        except ObjectNotFoundError as exc:
            raise NotFoundError({"order_id": [f"Order not found with id of {order_id}"]}) from exc
