"""
Ledger tests: checkout, debt settlement, balance top-up.

Verifies:
- Balance is spent down to zero and the shortfall becomes debt
- Orders snapshot prices and drain the cart
- Every money movement lands in the petty cash journal
- Failed operations leave no writes behind
"""

import pytest

from kiosk.errors import (
    AuthorizationError,
    EmptyCartError,
    InsufficientStockError,
    InvalidAmountError,
    NoDebtError,
    UserNotFoundError,
)
from kiosk.extensions import db
from kiosk.models import CartItem, Order, PettyCashEntry, Product, User
from kiosk.models.orders import ORDER_STATUS_COMPLETED, ORDER_STATUS_PENDING_PAYMENT
from kiosk.models.petty_cash import PETTY_CASH_EXPENSE, PETTY_CASH_INCOME, PETTY_CASH_PENDING_INCOME
from kiosk.services import ledger_service
from kiosk.services.session_service import CurrentUser


def _journal():
    return db.session.query(PettyCashEntry).order_by(PettyCashEntry.id).all()


# =============================================================================
# CHECKOUT
# =============================================================================


class TestPlaceOrder:

    def test_balance_covers_total(self, db_session, make_user, make_product, fill_cart):
        user = make_user(balance_cents=1000)
        tea = make_product(price_cents=400, quantity=5)
        fill_cart(user, (tea, 2))

        result = ledger_service.place_order(CurrentUser.from_user(user))

        assert result.has_pending_debt is False
        assert result.remaining_debt_cents == 0
        assert result.order.status == ORDER_STATUS_COMPLETED
        assert result.order.total_cents == 800

        user = db.session.get(User, user.id)
        assert user.balance_cents == 200
        assert user.outstanding_debt_cents == 0
        assert db.session.get(Product, tea.id).quantity == 3

        journal = _journal()
        assert [(e.type, e.amount_cents) for e in journal] == [(PETTY_CASH_INCOME, 800)]
        assert journal[0].related_order_id == result.order.id

    def test_shortfall_becomes_debt(self, db_session, customer, make_product, fill_cart):
        """$5.00 balance, $8.00 cart: balance goes to zero and $3.00 is owed."""
        tea = make_product(price_cents=400, quantity=5)
        fill_cart(customer, (tea, 2))

        result = ledger_service.place_order(CurrentUser.from_user(customer))

        assert result.has_pending_debt is True
        assert result.remaining_debt_cents == 300
        assert result.order.status == ORDER_STATUS_PENDING_PAYMENT
        assert result.order.total_cents == 800

        user = db.session.get(User, customer.id)
        assert user.balance_cents == 0
        assert user.outstanding_debt_cents == 300

        journal = _journal()
        assert [(e.type, e.amount_cents) for e in journal] == [
            (PETTY_CASH_INCOME, 500),
            (PETTY_CASH_PENDING_INCOME, 300),
        ]
        assert all(e.related_order_id == result.order.id for e in journal)

    def test_zero_balance_books_whole_total_as_debt(self, db_session, make_user, make_product, fill_cart):
        user = make_user(balance_cents=0)
        tea = make_product(price_cents=250, quantity=5)
        fill_cart(user, (tea, 1))

        result = ledger_service.place_order(CurrentUser.from_user(user))

        assert result.remaining_debt_cents == 250
        assert [(e.type, e.amount_cents) for e in _journal()] == [(PETTY_CASH_PENDING_INCOME, 250)]

    def test_debt_accumulates_across_orders(self, db_session, make_user, make_product, fill_cart):
        user = make_user(balance_cents=0, outstanding_debt_cents=100)
        tea = make_product(price_cents=250, quantity=5)
        fill_cart(user, (tea, 2))

        ledger_service.place_order(CurrentUser.from_user(user))

        assert db.session.get(User, user.id).outstanding_debt_cents == 600

    def test_cart_is_emptied(self, db_session, customer, make_product, fill_cart):
        tea = make_product(price_cents=100, quantity=5)
        coffee = make_product(name="Coffee", price_cents=150, quantity=5)
        cart = fill_cart(customer, (tea, 1), (coffee, 2))

        ledger_service.place_order(CurrentUser.from_user(customer))

        assert db.session.query(CartItem).filter_by(cart_id=cart.id).count() == 0

    def test_order_items_snapshot_price(self, db_session, customer, make_product, fill_cart):
        tea = make_product(price_cents=120, quantity=5)
        fill_cart(customer, (tea, 3))

        order_id = ledger_service.place_order(CurrentUser.from_user(customer)).order.id

        product = db.session.get(Product, tea.id)
        product.price_cents = 999
        db.session.commit()

        order = db.session.get(Order, order_id)
        assert [(i.product_id, i.quantity, i.price_cents) for i in order.items] == [(tea.id, 3, 120)]
        assert order.total_cents == 360

    def test_empty_cart_rejected(self, db_session, customer):
        with pytest.raises(EmptyCartError):
            ledger_service.place_order(CurrentUser.from_user(customer))

        assert db.session.query(Order).count() == 0
        assert _journal() == []

    def test_stock_shortfall_writes_nothing(self, db_session, customer, make_product, fill_cart):
        tea = make_product(price_cents=100, quantity=5)
        coffee = make_product(name="Coffee", price_cents=100, quantity=1)
        cart = fill_cart(customer, (tea, 2), (coffee, 2))

        with pytest.raises(InsufficientStockError) as exc_info:
            ledger_service.place_order(CurrentUser.from_user(customer))

        assert exc_info.value.details["product_id"] == coffee.id
        assert exc_info.value.details["available_quantity"] == 1
        assert exc_info.value.details["requested_quantity"] == 2

        assert db.session.query(Order).count() == 0
        assert db.session.get(Product, tea.id).quantity == 5
        assert db.session.get(User, customer.id).balance_cents == 500
        assert db.session.query(CartItem).filter_by(cart_id=cart.id).count() == 2
        assert _journal() == []


# =============================================================================
# DEBT SETTLEMENT
# =============================================================================


class TestSettleDebt:

    def test_settling_full_debt_completes_pending_orders(self, db_session, customer, admin, make_product, fill_cart):
        tea = make_product(price_cents=400, quantity=5)
        fill_cart(customer, (tea, 2))
        order_id = ledger_service.place_order(CurrentUser.from_user(customer)).order.id

        result = ledger_service.settle_debt(CurrentUser.from_user(admin), customer.id, 300)

        assert result.amount_settled_cents == 300
        assert result.remaining_debt_cents == 0
        assert result.completed_order_count == 1
        assert db.session.get(User, customer.id).outstanding_debt_cents == 0
        assert db.session.get(Order, order_id).status == ORDER_STATUS_COMPLETED

        settlement = _journal()[-1]
        assert settlement.type == PETTY_CASH_INCOME
        assert settlement.amount_cents == 300
        assert settlement.related_user_id == customer.id
        assert settlement.created_by_user_id == admin.id

    def test_partial_settlement_keeps_orders_pending(self, db_session, make_user, admin, make_product, fill_cart):
        user = make_user(balance_cents=0)
        tea = make_product(price_cents=800, quantity=5)
        fill_cart(user, (tea, 1))
        order_id = ledger_service.place_order(CurrentUser.from_user(user)).order.id

        result = ledger_service.settle_debt(CurrentUser.from_user(admin), user.id, 300)

        assert result.remaining_debt_cents == 500
        assert result.completed_order_count == 0
        assert db.session.get(Order, order_id).status == ORDER_STATUS_PENDING_PAYMENT

    def test_overpayment_is_clamped_to_debt(self, db_session, make_user, admin):
        user = make_user(outstanding_debt_cents=300)

        result = ledger_service.settle_debt(CurrentUser.from_user(admin), user.id, 1000)

        assert result.amount_settled_cents == 300
        assert result.remaining_debt_cents == 0
        user = db.session.get(User, user.id)
        assert user.outstanding_debt_cents == 0
        assert user.balance_cents == 0
        assert _journal()[-1].amount_cents == 300

    def test_no_debt(self, db_session, make_user, admin):
        user = make_user(outstanding_debt_cents=0)
        with pytest.raises(NoDebtError):
            ledger_service.settle_debt(CurrentUser.from_user(admin), user.id, 100)
        assert _journal() == []

    def test_unknown_user(self, db_session, admin):
        with pytest.raises(UserNotFoundError):
            ledger_service.settle_debt(CurrentUser.from_user(admin), 99999, 100)

    @pytest.mark.parametrize("amount", [0, -100, "abc", 1.5, None, True])
    def test_invalid_amount(self, db_session, make_user, admin, amount):
        user = make_user(outstanding_debt_cents=300)
        with pytest.raises(InvalidAmountError):
            ledger_service.settle_debt(CurrentUser.from_user(admin), user.id, amount)
        assert db.session.get(User, user.id).outstanding_debt_cents == 300

    def test_invalid_amount_reported_before_role(self, db_session, customer):
        with pytest.raises(InvalidAmountError):
            ledger_service.settle_debt(CurrentUser.from_user(customer), customer.id, 0)

    def test_requires_admin(self, db_session, make_user):
        user = make_user(outstanding_debt_cents=300)
        with pytest.raises(AuthorizationError):
            ledger_service.settle_debt(CurrentUser.from_user(user), user.id, 300)
        assert db.session.get(User, user.id).outstanding_debt_cents == 300


# =============================================================================
# BALANCE TOP-UP
# =============================================================================


class TestAddBalance:

    def test_credits_balance_and_books_expense(self, db_session, customer, admin):
        result = ledger_service.add_balance(CurrentUser.from_user(admin), customer.id, 1500)

        assert result.new_balance_cents == 2000
        assert result.amount_cents == 1500
        assert "$15.00" in result.message
        assert db.session.get(User, customer.id).balance_cents == 2000

        entry = _journal()[-1]
        assert entry.type == PETTY_CASH_EXPENSE
        assert entry.amount_cents == 1500
        assert entry.description == f"Added balance for {customer.name}"

    def test_debt_is_untouched(self, db_session, make_user, admin):
        user = make_user(balance_cents=0, outstanding_debt_cents=400)
        ledger_service.add_balance(CurrentUser.from_user(admin), user.id, 1000)

        user = db.session.get(User, user.id)
        assert user.balance_cents == 1000
        assert user.outstanding_debt_cents == 400

    def test_accepts_digit_strings(self, db_session, customer, admin):
        result = ledger_service.add_balance(CurrentUser.from_user(admin), str(customer.id), "250")
        assert result.new_balance_cents == 750

    def test_requires_admin(self, db_session, customer):
        with pytest.raises(AuthorizationError):
            ledger_service.add_balance(CurrentUser.from_user(customer), customer.id, 1000)
        assert db.session.get(User, customer.id).balance_cents == 500

    def test_unknown_user(self, db_session, admin):
        with pytest.raises(UserNotFoundError):
            ledger_service.add_balance(CurrentUser.from_user(admin), 99999, 100)
        assert _journal() == []

    def test_invalid_amount(self, db_session, customer, admin):
        with pytest.raises(InvalidAmountError):
            ledger_service.add_balance(CurrentUser.from_user(admin), customer.id, -5)
