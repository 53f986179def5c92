# Overview: Service-layer operations for carts; encapsulates business logic and database work.

"""
Cart Service

One cart per user, created on first access. Every mutation is scoped to the
caller's own cart: an item id from someone else's cart is reported as not
found, so its existence is not revealed.

Stock checks here are advisory (stock can still move before checkout);
ledger_service.place_order re-validates against locked rows.
"""

from __future__ import annotations

from sqlalchemy.exc import IntegrityError

from ..errors import CartItemNotFoundError, InsufficientStockError, ProductNotFoundError
from ..extensions import db
from ..models import Cart, CartItem, Product
from ..validation import coerce_id, coerce_quantity
from .concurrency import lock_for_update, run_with_retry
from .session_service import CurrentUser


def get_or_create_cart(user_id: int) -> Cart:
    """Return the user's cart, creating it if needed. Flushes, does not commit."""
    cart = db.session.query(Cart).filter_by(user_id=user_id).first()
    if cart:
        return cart

    cart = Cart(user_id=user_id)
    db.session.add(cart)
    try:
        db.session.flush()
    except IntegrityError:
        # Another request created it first
        db.session.rollback()
        cart = db.session.query(Cart).filter_by(user_id=user_id).one()
    return cart


def get_cart(current_user: CurrentUser) -> Cart:
    cart = get_or_create_cart(current_user.id)
    db.session.commit()
    return cart


def _visible_product(current_user: CurrentUser, product_id: int) -> Product:
    product = db.session.get(Product, product_id)
    if not product or product.country != current_user.country:
        raise ProductNotFoundError(product_id)
    return product


def _owned_item(current_user: CurrentUser, cart_item_id) -> CartItem:
    item_id = coerce_id(cart_item_id, "cart_item_id")
    item = lock_for_update(
        db.session.query(CartItem)
        .join(Cart, Cart.id == CartItem.cart_id)
        .filter(CartItem.id == item_id, Cart.user_id == current_user.id)
    ).first()
    if not item:
        raise CartItemNotFoundError(item_id)
    return item


def _stock_error(product: Product, requested: int) -> InsufficientStockError:
    return InsufficientStockError(
        product_id=product.id,
        product_name=product.name,
        requested_quantity=requested,
        available_quantity=product.quantity,
    )


def add_item(current_user: CurrentUser, product_id, quantity=1) -> CartItem:
    """
    Add a product to the caller's cart.

    If the product is already in the cart the quantities accumulate, and the
    accumulated quantity must still fit in current stock.
    """
    pid = coerce_id(product_id, "product_id")
    qty = coerce_quantity(quantity)

    def _op():
        product = _visible_product(current_user, pid)
        if product.quantity < qty:
            raise _stock_error(product, qty)

        cart = get_or_create_cart(current_user.id)
        item = lock_for_update(
            db.session.query(CartItem).filter_by(cart_id=cart.id, product_id=product.id)
        ).first()

        new_quantity = (item.quantity if item else 0) + qty
        if new_quantity > product.quantity:
            raise _stock_error(product, new_quantity)

        if item:
            item.quantity = new_quantity
        else:
            item = CartItem(cart_id=cart.id, product_id=product.id, quantity=new_quantity)
            db.session.add(item)

        db.session.commit()
        return item

    return run_with_retry(_op)


def update_item_quantity(current_user: CurrentUser, cart_item_id, quantity) -> CartItem:
    """Set an item's quantity (>= 1) in the caller's cart, bounded by current stock."""
    qty = coerce_quantity(quantity)

    def _op():
        item = _owned_item(current_user, cart_item_id)
        if qty > item.product.quantity:
            raise _stock_error(item.product, qty)
        item.quantity = qty
        db.session.commit()
        return item

    return run_with_retry(_op)


def remove_item(current_user: CurrentUser, cart_item_id) -> None:
    def _op():
        item = _owned_item(current_user, cart_item_id)
        db.session.delete(item)
        db.session.commit()

    run_with_retry(_op)


def clear_cart(current_user: CurrentUser) -> int:
    """Delete every item in the caller's cart. Returns how many lines were removed."""
    def _op():
        cart = db.session.query(Cart).filter_by(user_id=current_user.id).first()
        if not cart:
            return 0
        removed = db.session.query(CartItem).filter_by(cart_id=cart.id).delete(synchronize_session=False)
        db.session.commit()
        return removed

    return run_with_retry(_op)
