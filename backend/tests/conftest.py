"""
Pytest fixtures for kiosk backend tests.

Provides test database setup, account and product factories, and test client.
"""

import bcrypt
import pytest

from kiosk import create_app
from kiosk.extensions import db
from kiosk.models import Cart, CartItem, Product, User
from kiosk.models.users import ROLE_ADMIN, ROLE_USER
from kiosk.services import session_service

TEST_PASSWORD = "Password123"

# Low-cost hash computed once; production hashing uses cost factor 12.
TEST_PASSWORD_HASH = bcrypt.hashpw(TEST_PASSWORD.encode("utf-8"), bcrypt.gensalt(rounds=4)).decode("utf-8")


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'LOG_LEVEL': 'DEBUG',
    })

    with app.app_context():
        db.create_all()
        yield app
        db.drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def db_session(app):
    """Create fresh database for each test."""
    with app.app_context():
        # Clear all data but keep schema
        meta = db.metadata
        for table in reversed(meta.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()

        yield db.session

        # Cleanup after test
        db.session.rollback()


@pytest.fixture(scope='function')
def make_user(db_session):
    """Factory for accounts with a known password."""
    counter = {"n": 0}

    def _make(*, name=None, country="Iraq", role=ROLE_USER, balance_cents=0, outstanding_debt_cents=0):
        counter["n"] += 1
        user = User(
            name=name or f"User {counter['n']}",
            phone=f"0770000{counter['n']:04d}",
            password_hash=TEST_PASSWORD_HASH,
            country=country,
            role=role,
            balance_cents=balance_cents,
            outstanding_debt_cents=outstanding_debt_cents,
        )
        db_session.add(user)
        db_session.commit()
        return user

    return _make


@pytest.fixture(scope='function')
def make_product(db_session):
    def _make(*, name="Tea", price_cents=300, quantity=10, country="Iraq"):
        product = Product(name=name, price_cents=price_cents, quantity=quantity, country=country)
        db_session.add(product)
        db_session.commit()
        return product

    return _make


@pytest.fixture(scope='function')
def customer(make_user):
    """Iraq customer with a $5.00 balance."""
    return make_user(name="Layla", balance_cents=500)


@pytest.fixture(scope='function')
def admin(make_user):
    return make_user(name="Admin User", role=ROLE_ADMIN)


@pytest.fixture(scope='function')
def fill_cart(db_session):
    """Put (product, quantity) lines straight into a user's cart."""
    def _fill(user: User, *lines) -> Cart:
        cart = db_session.query(Cart).filter_by(user_id=user.id).first()
        if not cart:
            cart = Cart(user_id=user.id)
            db_session.add(cart)
            db_session.flush()
        for product, quantity in lines:
            db_session.add(CartItem(cart_id=cart.id, product_id=product.id, quantity=quantity))
        db_session.commit()
        return cart

    return _fill


@pytest.fixture(scope='function')
def headers_for(db_session):
    """Helper to create Authorization headers for a user."""
    def _headers(user: User) -> dict:
        _, token = session_service.create_session(user_id=user.id)
        return {'Authorization': f'Bearer {token}'}

    return _headers
