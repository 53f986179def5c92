# backend/kiosk/services/catalog_service.py
"""
Catalog Service

Products are scoped to a country. Customers only see and buy products of
their own country; administrators manage all of them.

Stock is never written here except through restock_product(); checkout
decrements it in ledger_service.
"""
from __future__ import annotations

import logging

from ..errors import ConflictError, ProductNotFoundError, ValidationError
from ..extensions import db
from ..models import CartItem, OrderItem, Product
from ..models.catalog import DEFAULT_PRODUCT_IMAGE
from ..validation import MAX_QUANTITY, ModelValidationPolicy, coerce_quantity, enforce_rules_product, validate_country, validate_payload
from .concurrency import run_with_retry

logger = logging.getLogger(__name__)

PRODUCT_CREATE_POLICY = ModelValidationPolicy(
    writable_fields={"name", "description", "price_cents", "quantity", "country", "image"},
    required_on_create={"name", "price_cents", "quantity", "country"},
)

# quantity is deliberately absent: stock moves through checkout and restock only
PRODUCT_UPDATE_POLICY = ModelValidationPolicy(
    writable_fields={"name", "description", "price_cents", "country", "image"},
)


def list_products(country: str | None = None) -> list[Product]:
    query = db.session.query(Product)
    if country:
        validate_country(country)
        query = query.filter(Product.country == country)
    return query.order_by(Product.created_at.desc(), Product.id.desc()).all()


def get_product(product_id: int) -> Product:
    product = db.session.get(Product, product_id)
    if not product:
        raise ProductNotFoundError(product_id)
    return product


def create_product(payload: dict) -> Product:
    patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_CREATE_POLICY, partial=False)
    enforce_rules_product(patch)

    product = Product(
        name=patch["name"],
        description=patch.get("description") or "",
        price_cents=patch["price_cents"],
        quantity=patch["quantity"],
        country=patch["country"],
        image=patch.get("image") or DEFAULT_PRODUCT_IMAGE,
    )
    db.session.add(product)
    db.session.commit()

    logger.info("Created product %s (%s) with stock %s", product.id, product.country, product.quantity)
    return product


def update_product(product_id: int, payload: dict) -> Product:
    patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_UPDATE_POLICY, partial=True)
    enforce_rules_product(patch)

    product = get_product(product_id)
    for k, v in patch.items():
        if k == "image" and not v:
            v = DEFAULT_PRODUCT_IMAGE
        setattr(product, k, v)

    db.session.commit()
    return product


def restock_product(product_id: int, quantity) -> Product:
    """
    Add stock to a product.

    Plain increment without a row lock: concurrent restocks and checkouts
    can only make the count larger than a locked read would, never negative.
    """
    qty = coerce_quantity(quantity)

    def _op():
        product = get_product(product_id)
        if product.quantity + qty > MAX_QUANTITY:
            raise ValidationError(f"Stock cannot exceed {MAX_QUANTITY}")
        product.quantity = Product.quantity + qty
        db.session.commit()
        return product

    product = run_with_retry(_op)

    logger.info("Restocked product %s by %s", product.id, qty)
    return product


def delete_product(product_id: int) -> None:
    """
    Delete a product and any cart lines pointing at it.

    Products that appear on an order are kept: order items reference them.
    """
    product = get_product(product_id)

    ordered = db.session.query(OrderItem.id).filter_by(product_id=product.id).first()
    if ordered:
        raise ConflictError(
            "Product has been ordered and cannot be deleted",
            {"product_id": product.id},
        )

    db.session.query(CartItem).filter_by(product_id=product.id).delete(synchronize_session=False)
    db.session.delete(product)
    db.session.commit()

    logger.info("Deleted product %s", product_id)
