from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Tuple

from returns.result import Failure, Result, Success

from storefront_api.core.domain.model.cart import (
    AccountId,
    CartItemView,
    CartLine,
    CartRef,
)
from storefront_api.core.domain.model.errors import (
    CheckoutInProgress,
    StockConflictError,
    StorefrontError,
    ValidationError,
)
from storefront_api.core.domain.model.money import Money, line_total
from storefront_api.core.domain.model.order import (
    Order,
    OrderId,
    OrderLine,
    OrderStatus,
    compute_total,
    now_utc,
)
from storefront_api.core.domain.service.cart_ledger_service import CartLedgerService
from storefront_api.core.domain.service.validation import validate_contact
from storefront_api.core.ports.inbound.checkout import (
    CheckoutCommand,
    CheckoutReceipt,
    CheckoutUseCase,
    GuestCheckoutReceipt,
    OrderReceipt,
)
from storefront_api.core.ports.outbound.checkout_guard import CheckoutGuard
from storefront_api.core.ports.outbound.events import EventPublisher, OrderPlaced
from storefront_api.core.ports.outbound.orders import OrderRepository
from storefront_api.core.ports.outbound.payment import ChargeRequest, PaymentGateway
from storefront_api.utils.logging import get_logger

logger = get_logger(__name__)


class CheckoutState(str, Enum):
    IDLE = "idle"
    VALIDATING = "validating"
    COMMITTING = "committing"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


_TRANSITIONS = {
    CheckoutState.IDLE: {CheckoutState.VALIDATING},
    CheckoutState.VALIDATING: {CheckoutState.IDLE, CheckoutState.COMMITTING},
    CheckoutState.COMMITTING: {CheckoutState.SUCCEEDED, CheckoutState.FAILED},
    CheckoutState.SUCCEEDED: set(),
    CheckoutState.FAILED: set(),
}


@dataclass
class CheckoutAttempt:
    """One pass through the checkout state machine. Retrying means a new attempt."""

    cart_ref: CartRef
    state: CheckoutState = CheckoutState.IDLE
    history: List[CheckoutState] = field(default_factory=lambda: [CheckoutState.IDLE])
    outcome: Result[CheckoutReceipt, StorefrontError] | None = None

    def move(self, to: CheckoutState) -> None:
        if to not in _TRANSITIONS[self.state]:
            raise RuntimeError(f"illegal checkout transition {self.state.value} -> {to.value}")
        logger.info(
            "checkout.transition",
            cart=str(self.cart_ref),
            from_state=self.state.value,
            to_state=to.value,
        )
        self.state = to
        self.history.append(to)

    def finish(
        self, outcome: Result[CheckoutReceipt, StorefrontError]
    ) -> Result[CheckoutReceipt, StorefrontError]:
        self.outcome = outcome
        return outcome


@dataclass(frozen=True)
class CheckoutDeps:
    ledger: CartLedgerService
    orders: OrderRepository
    payment: PaymentGateway
    guard: CheckoutGuard
    events: EventPublisher


@dataclass(frozen=True)
class CheckoutPlan:
    """Everything validation established; commit works from this and nothing else."""

    cart_ref: CartRef
    items: Tuple[CartItemView, ...]
    version: int
    contact: str
    total: Money

    def cart_lines(self) -> Tuple[CartLine, ...]:
        return tuple(CartLine(it.product_id, it.quantity) for it in self.items)


@dataclass(frozen=True)
class CheckoutService(CheckoutUseCase):
    deps: CheckoutDeps

    def checkout(
        self, command: CheckoutCommand
    ) -> Result[CheckoutReceipt, StorefrontError]:
        return self._run(command, CheckoutAttempt(command.cart_ref))

    def attempt(self, command: CheckoutCommand) -> CheckoutAttempt:
        """Like ``checkout``, but hands back the attempt with its state history."""
        attempt = CheckoutAttempt(command.cart_ref)
        self._run(command, attempt)
        return attempt

    def _run(
        self, command: CheckoutCommand, attempt: CheckoutAttempt
    ) -> Result[CheckoutReceipt, StorefrontError]:
        if not self.deps.guard.try_acquire(command.cart_ref):
            logger.warning("checkout.rejected_in_flight", cart=str(command.cart_ref))
            return attempt.finish(
                Failure(
                    CheckoutInProgress(
                        message="another checkout for this cart is in progress",
                        cart=str(command.cart_ref),
                    )
                )
            )

        try:
            attempt.move(CheckoutState.VALIDATING)
            planned = self._validate(command)
            if isinstance(planned, Failure):
                logger.info(
                    "checkout.validation_failed",
                    cart=str(command.cart_ref),
                    error=str(planned.failure()),
                )
                attempt.move(CheckoutState.IDLE)
                return attempt.finish(planned)

            attempt.move(CheckoutState.COMMITTING)
            plan = planned.unwrap()
            if plan.cart_ref.is_guest:
                committed = self._commit_guest(plan)
            else:
                committed = self._commit_order(plan)

            attempt.move(
                CheckoutState.SUCCEEDED
                if isinstance(committed, Success)
                else CheckoutState.FAILED
            )
            return attempt.finish(committed)
        finally:
            self.deps.guard.release(command.cart_ref)

    # ---- validating ----------------------------------------------------------

    def _validate(self, command: CheckoutCommand) -> Result[CheckoutPlan, StorefrontError]:
        contact = validate_contact(command.contact)
        if isinstance(contact, Failure):
            return contact

        listed = self.deps.ledger.list_items(command.cart_ref)
        if isinstance(listed, Failure):
            return listed
        cart_items = listed.unwrap()
        items = tuple(cart_items)
        stale = cart_items.stale_product_ids()

        if not items and not stale:
            return Failure(ValidationError("cart is empty"))

        if stale:
            return Failure(
                StockConflictError(
                    message="product is no longer available",
                    product_id=stale[0].value,
                    requested=cart_items.quantity_of(stale[0]),
                    available=0,
                )
            )

        for it in items:
            if it.stock_quantity < it.quantity:
                return Failure(
                    StockConflictError(
                        message="insufficient stock",
                        product_id=it.product_id.value,
                        requested=it.quantity,
                        available=it.stock_quantity,
                    )
                )

        return Success(
            CheckoutPlan(
                cart_ref=command.cart_ref,
                items=items,
                version=cart_items.version,
                contact=contact.unwrap(),
                total=line_total(
                    (it.price_pair for it in items),
                    currency=items[0].unit_price.currency,
                ),
            )
        )

    # ---- committing ----------------------------------------------------------

    def _charge(self, plan: CheckoutPlan) -> Result[None, StorefrontError]:
        return self.deps.payment.charge(
            ChargeRequest(cart=str(plan.cart_ref), contact=plan.contact, amount=plan.total)
        )

    def _commit_guest(self, plan: CheckoutPlan) -> Result[CheckoutReceipt, StorefrontError]:
        charged = self._charge(plan)
        if isinstance(charged, Failure):
            return charged

        cleared = self.deps.ledger.clear(plan.cart_ref, expected_version=plan.version)
        if isinstance(cleared, Failure):
            return cleared

        logger.info("checkout.guest_succeeded", cart=str(plan.cart_ref), total=str(plan.total.amount))
        return Success(
            GuestCheckoutReceipt(
                session_id=plan.cart_ref.owner,
                line_count=len(plan.items),
                total=plan.total,
            )
        )

    def _commit_order(self, plan: CheckoutPlan) -> Result[CheckoutReceipt, StorefrontError]:
        charged = self._charge(plan)
        if isinstance(charged, Failure):
            return charged

        order = _build_order(plan)
        log = logger.bind(cart=str(plan.cart_ref), order_id=str(order.order_id.value))

        # (1) order row with frozen prices
        created = self.deps.orders.create(order.header())
        if isinstance(created, Failure):
            log.error("checkout.create_order_failed", error=str(created.failure()))
            return created

        # (2) one line per cart line
        lined = self.deps.orders.add_lines(order.order_id, order.lines)
        if isinstance(lined, Failure):
            return self._roll_back(order, lined.failure(), step="add_lines")

        # (3) empty the source cart, only if nobody touched it since validation
        cleared = self.deps.ledger.clear(plan.cart_ref, expected_version=plan.version)
        if isinstance(cleared, Failure):
            return self._roll_back(order, cleared.failure(), step="clear_cart")

        paid = self.deps.orders.mark_status(order.order_id, OrderStatus.PAID)
        if isinstance(paid, Failure):
            return self._roll_back(
                order, paid.failure(), step="mark_paid", restore=plan.cart_lines()
            )

        log.info("checkout.order_succeeded", total=str(order.total.amount), lines=len(order.lines))
        self._announce(order, log)
        return Success(
            OrderReceipt(
                order_id=order.order_id,
                account_id=order.account_id,
                lines=order.lines,
                total=order.total,
            )
        )

    def _roll_back(
        self,
        order: Order,
        cause: StorefrontError,
        step: str,
        restore: Tuple[CartLine, ...] = (),
    ) -> Result[CheckoutReceipt, StorefrontError]:
        log = logger.bind(order_id=str(order.order_id.value), step=step)
        log.error("checkout.commit_failed", error=str(cause))

        if restore:
            cart_ref = CartRef.account(order.account_id)
            restored = self.deps.ledger.restore(cart_ref, restore)
            if isinstance(restored, Failure):
                log.error("checkout.cart_restore_failed", error=str(restored.failure()))

        deleted = self.deps.orders.delete(order.order_id)
        if isinstance(deleted, Failure):
            marked = self.deps.orders.mark_status(order.order_id, OrderStatus.FAILED)
            log.error(
                "checkout.rollback_failed",
                error=str(deleted.failure()),
                retained_as_failed=isinstance(marked, Success),
            )
        else:
            log.info("checkout.rolled_back")

        return Failure(cause)

    def _announce(self, order: Order, log) -> None:
        published = self.deps.events.publish(
            OrderPlaced(order_id=order.order_id, account_id=order.account_id, total=order.total)
        )
        if isinstance(published, Failure):
            log.warning("checkout.publish_failed", error=str(published.failure()))


def _build_order(plan: CheckoutPlan) -> Order:
    lines = tuple(
        OrderLine(
            product_id=it.product_id,
            name=it.name,
            quantity=it.quantity,
            unit_price_at_purchase=it.unit_price,
        )
        for it in plan.items
    )
    return Order(
        order_id=OrderId.new(),
        account_id=AccountId(plan.cart_ref.owner),
        lines=lines,
        total=compute_total(lines, currency=plan.total.currency),
        contact=plan.contact,
        created_at=now_utc(),
    )

