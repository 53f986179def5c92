# Overview: Service-layer operations for the account ledger; encapsulates business logic and database work.

"""
Account Ledger

Checkout, debt settlement and balance top-up. These are the only code paths
that write User.balance_cents, User.outstanding_debt_cents, or decrement
Product.quantity.

LEDGER INVARIANTS:
- Each operation is one transaction: every write lands, or none does.
- Rows that are read and then written are locked first (user row, then
  product rows in id order). On SQLite the transaction starts as a writer.
- Balance never goes below zero. A checkout that costs more than the balance
  spends the balance down to zero and books the rest as outstanding debt;
  insufficient balance is not an error.
- Orders snapshot the unit price used to compute their total.
- Every money movement appends a petty cash entry in the same transaction.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from ..errors import (
    AuthorizationError,
    EmptyCartError,
    InsufficientStockError,
    NoDebtError,
    ProductNotFoundError,
    UserNotFoundError,
)
from ..extensions import db
from ..models import Cart, CartItem, Order, OrderItem, Product, User
from ..models.orders import ORDER_STATUS_COMPLETED, ORDER_STATUS_PENDING_PAYMENT
from ..models.petty_cash import PETTY_CASH_EXPENSE, PETTY_CASH_INCOME, PETTY_CASH_PENDING_INCOME
from ..validation import coerce_amount_cents, coerce_id
from kiosk.time_utils import utcnow
from .concurrency import begin_write_transaction, lock_for_update, run_with_retry
from .petty_cash_service import append_entry
from .session_service import CurrentUser

logger = logging.getLogger(__name__)


@dataclass
class CheckoutResult:
    order: Order
    has_pending_debt: bool
    remaining_debt_cents: int


@dataclass
class SettlementResult:
    user_id: int
    amount_settled_cents: int
    remaining_debt_cents: int
    completed_order_count: int


@dataclass
class TopUpResult:
    user_id: int
    amount_cents: int
    new_balance_cents: int
    message: str


def format_cents(cents: int) -> str:
    return f"${cents / 100:,.2f}"


def _require_admin(actor: CurrentUser) -> None:
    if not actor.is_admin:
        logger.warning("User %s with role %s attempted an admin ledger operation", actor.id, actor.role)
        raise AuthorizationError("Administrator role required")


def _locked_user(user_id: int) -> User:
    user = lock_for_update(db.session.query(User).filter_by(id=user_id)).first()
    if not user:
        raise UserNotFoundError(user_id)
    return user


# =============================================================================
# CHECKOUT
# =============================================================================

def _requested_quantities(items: list[CartItem]) -> dict[int, int]:
    requested: dict[int, int] = {}
    for item in items:
        requested[item.product_id] = requested.get(item.product_id, 0) + item.quantity
    return requested


def _validate_stock(requested: dict[int, int], products: dict[int, Product]) -> None:
    for product_id, qty in requested.items():
        product = products.get(product_id)
        if product is None:
            raise ProductNotFoundError(product_id)
        if product.quantity < qty:
            raise InsufficientStockError(
                product_id=product.id,
                product_name=product.name,
                requested_quantity=qty,
                available_quantity=product.quantity,
            )


def place_order(current_user: CurrentUser) -> CheckoutResult:
    """
    Turn the caller's cart into an order.

    Stock and prices are read from locked product rows inside the
    transaction, not from what the cart saw when items were added.

    Payment split:
        deduction      = min(balance, total)
        remaining_debt = total - deduction
    The order is PENDING_PAYMENT when remaining_debt > 0, else COMPLETED.

    Raises:
        EmptyCartError: no cart or no items (nothing is written)
        InsufficientStockError: a product has less stock than requested
    """
    def _op():
        begin_write_transaction()

        user = _locked_user(current_user.id)

        cart = db.session.query(Cart).filter_by(user_id=user.id).first()
        items = []
        if cart:
            items = db.session.query(CartItem).filter_by(cart_id=cart.id).order_by(CartItem.id).all()
        if not items:
            raise EmptyCartError()

        requested = _requested_quantities(items)
        products = {
            p.id: p
            for p in lock_for_update(
                db.session.query(Product)
                .filter(Product.id.in_(sorted(requested)))
                .order_by(Product.id)
            ).all()
        }
        _validate_stock(requested, products)

        total = sum(products[pid].price_cents * qty for pid, qty in requested.items())
        deduction = min(user.balance_cents, total)
        remaining_debt = total - deduction
        has_pending_debt = remaining_debt > 0

        order = Order(
            user_id=user.id,
            total_cents=total,
            status=ORDER_STATUS_PENDING_PAYMENT if has_pending_debt else ORDER_STATUS_COMPLETED,
            created_at=utcnow(),
        )
        for pid, qty in requested.items():
            order.items.append(OrderItem(product_id=pid, quantity=qty, price_cents=products[pid].price_cents))
        db.session.add(order)
        db.session.flush()  # assigns order.id for the journal entries

        for pid, qty in requested.items():
            products[pid].quantity -= qty

        user.balance_cents -= deduction
        user.outstanding_debt_cents += remaining_debt

        if deduction > 0:
            append_entry(
                amount_cents=deduction,
                description=f"Order {order.id} by {user.name}",
                type=PETTY_CASH_INCOME,
                related_order_id=order.id,
                related_user_id=user.id,
                created_by_user_id=user.id,
            )
        if has_pending_debt:
            append_entry(
                amount_cents=remaining_debt,
                description=f"Pending payment for order {order.id} by {user.name}",
                type=PETTY_CASH_PENDING_INCOME,
                related_order_id=order.id,
                related_user_id=user.id,
                created_by_user_id=user.id,
            )

        db.session.query(CartItem).filter_by(cart_id=cart.id).delete(synchronize_session=False)

        db.session.commit()

        logger.info(
            "Order %s placed by user %s: total=%s paid=%s debt=%s",
            order.id, user.id, total, deduction, remaining_debt,
        )
        return CheckoutResult(order=order, has_pending_debt=has_pending_debt, remaining_debt_cents=remaining_debt)

    return run_with_retry(_op)


# =============================================================================
# DEBT SETTLEMENT
# =============================================================================

def settle_debt(actor: CurrentUser, user_id, amount_cents) -> SettlementResult:
    """
    Apply an administrator-recorded payment against a user's debt.

    The amount is clamped to what is owed; any excess is discarded, not
    credited. When the debt reaches exactly zero, every PENDING_PAYMENT order
    of that user becomes COMPLETED.

    Raises:
        InvalidAmountError: amount is not a positive integer
        AuthorizationError: actor is not an administrator
        UserNotFoundError: target does not exist
        NoDebtError: target owes nothing
    """
    amount = coerce_amount_cents(amount_cents)
    _require_admin(actor)
    target_id = coerce_id(user_id, "user_id")

    def _op():
        begin_write_transaction()

        user = _locked_user(target_id)
        if user.outstanding_debt_cents <= 0:
            raise NoDebtError(user.id)

        amount_to_settle = min(user.outstanding_debt_cents, amount)
        new_debt = user.outstanding_debt_cents - amount_to_settle
        user.outstanding_debt_cents = new_debt

        append_entry(
            amount_cents=amount_to_settle,
            description=f"Debt settlement from {user.name}",
            type=PETTY_CASH_INCOME,
            related_user_id=user.id,
            created_by_user_id=actor.id,
        )

        completed = 0
        if new_debt == 0:
            completed = (
                db.session.query(Order)
                .filter(Order.user_id == user.id, Order.status == ORDER_STATUS_PENDING_PAYMENT)
                .update({Order.status: ORDER_STATUS_COMPLETED}, synchronize_session=False)
            )

        db.session.commit()

        logger.info(
            "Admin %s settled %s cents of user %s debt; remaining=%s, orders completed=%s",
            actor.id, amount_to_settle, user.id, new_debt, completed,
        )
        return SettlementResult(
            user_id=user.id,
            amount_settled_cents=amount_to_settle,
            remaining_debt_cents=new_debt,
            completed_order_count=completed,
        )

    return run_with_retry(_op)


# =============================================================================
# BALANCE TOP-UP
# =============================================================================

def add_balance(actor: CurrentUser, user_id, amount_cents) -> TopUpResult:
    """
    Credit a user's prepaid balance.

    Booked as a petty cash EXPENSE: cash leaves the till to fund the account.

    Raises:
        InvalidAmountError: amount is not a positive integer
        AuthorizationError: actor is not an administrator
        UserNotFoundError: target does not exist
    """
    amount = coerce_amount_cents(amount_cents)
    _require_admin(actor)
    target_id = coerce_id(user_id, "user_id")

    def _op():
        begin_write_transaction()

        user = _locked_user(target_id)
        user.balance_cents += amount

        append_entry(
            amount_cents=amount,
            description=f"Added balance for {user.name}",
            type=PETTY_CASH_EXPENSE,
            related_user_id=user.id,
            created_by_user_id=actor.id,
        )

        db.session.commit()

        logger.info("Admin %s added %s cents to user %s; balance=%s", actor.id, amount, user.id, user.balance_cents)
        return TopUpResult(
            user_id=user.id,
            amount_cents=amount,
            new_balance_cents=user.balance_cents,
            message=f"Successfully added {format_cents(amount)} to {user.name}'s balance",
        )

    return run_with_retry(_op)
