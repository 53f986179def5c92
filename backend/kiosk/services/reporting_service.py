# Overview: Service-layer operations for reporting; encapsulates business logic and database work.

from __future__ import annotations

from datetime import datetime, timedelta

from flask import current_app
from sqlalchemy import func

from ..errors import ValidationError
from ..extensions import db
from ..models import Order, OrderItem, PettyCashEntry, Product, User
from ..models.users import ROLE_USER, VALID_COUNTRIES
from kiosk.time_utils import to_utc_z, utcnow
from .petty_cash_service import summarize

VALID_TIMEFRAMES = ("today", "week", "month", "all")
TOP_PRODUCTS_LIMIT = 5


class ReportError(ValidationError):
    """Raised when report parameters are invalid."""


def timeframe_start(timeframe: str, *, now: datetime | None = None) -> datetime | None:
    """
    Lower bound for a report window, or None for "all".

    - today: midnight UTC of the current day
    - week: now minus 7 days
    - month: now minus 30 days
    """
    if timeframe not in VALID_TIMEFRAMES:
        raise ReportError(f"timeframe must be one of: {', '.join(VALID_TIMEFRAMES)}")
    now = now or utcnow()
    if timeframe == "today":
        return now.replace(hour=0, minute=0, second=0, microsecond=0)
    if timeframe == "week":
        return now - timedelta(days=7)
    if timeframe == "month":
        return now - timedelta(days=30)
    return None


def _sales(start_dt, end_dt) -> dict:
    query = db.session.query(
        func.count(Order.id).label("count"),
        func.coalesce(func.sum(Order.total_cents), 0).label("total_cents"),
    )
    if start_dt:
        query = query.filter(Order.created_at >= start_dt, Order.created_at <= end_dt)
    row = query.one()
    return {"total_cents": int(row.total_cents or 0), "count": int(row.count or 0)}


def _products(low_stock_threshold: int) -> dict:
    total = db.session.query(func.count(Product.id)).scalar() or 0
    low_stock = (
        db.session.query(func.count(Product.id))
        .filter(Product.quantity < low_stock_threshold)
        .scalar()
        or 0
    )
    by_country = {c: 0 for c in VALID_COUNTRIES}
    for country, count in db.session.query(Product.country, func.count(Product.id)).group_by(Product.country):
        by_country[country] = int(count)
    return {
        "total": int(total),
        "low_stock": int(low_stock),
        "low_stock_threshold": low_stock_threshold,
        "by_country": by_country,
    }


def _sales_by_country(start_dt, end_dt) -> list[dict]:
    query = (
        db.session.query(
            User.country.label("country"),
            func.count(Order.id).label("orders"),
            func.coalesce(func.sum(Order.total_cents), 0).label("sales_cents"),
        )
        .join(User, User.id == Order.user_id)
    )
    if start_dt:
        query = query.filter(Order.created_at >= start_dt, Order.created_at <= end_dt)

    found = {row.country: row for row in query.group_by(User.country).all()}
    return [
        {
            "country": country,
            "sales_cents": int(found[country].sales_cents) if country in found else 0,
            "orders": int(found[country].orders) if country in found else 0,
        }
        for country in VALID_COUNTRIES
    ]


def _sold_per_product(start_dt, end_dt):
    query = (
        db.session.query(
            OrderItem.product_id.label("product_id"),
            func.coalesce(func.sum(OrderItem.quantity), 0).label("quantity"),
            func.coalesce(func.sum(OrderItem.quantity * OrderItem.price_cents), 0).label("revenue_cents"),
        )
        .join(Order, Order.id == OrderItem.order_id)
    )
    if start_dt:
        query = query.filter(Order.created_at >= start_dt, Order.created_at <= end_dt)
    return query.group_by(OrderItem.product_id)


def _top_products(start_dt, end_dt) -> list[dict]:
    sold = _sold_per_product(start_dt, end_dt).subquery()
    rows = (
        db.session.query(Product, sold.c.quantity, sold.c.revenue_cents)
        .join(sold, sold.c.product_id == Product.id)
        .order_by(sold.c.revenue_cents.desc(), Product.id.asc())
        .limit(TOP_PRODUCTS_LIMIT)
        .all()
    )
    return [
        {
            "product_id": product.id,
            "product_name": product.name,
            "country": product.country,
            "quantity": int(qty),
            "revenue_cents": int(revenue),
        }
        for product, qty, revenue in rows
    ]


def _inventory_status(start_dt, end_dt) -> list[dict]:
    sold = {row.product_id: int(row.quantity) for row in _sold_per_product(start_dt, end_dt).all()}
    products = db.session.query(Product).order_by(Product.name.asc(), Product.id.asc()).all()
    return [
        {
            "product_id": p.id,
            "product_name": p.name,
            "country": p.country,
            "in_stock": p.quantity,
            "sold": sold.get(p.id, 0),
        }
        for p in products
    ]


def _petty_cash(start_dt, end_dt) -> dict:
    query = db.session.query(PettyCashEntry)
    if start_dt:
        query = query.filter(PettyCashEntry.created_at >= start_dt, PettyCashEntry.created_at <= end_dt)
    return summarize(query.all())


def summary_report(timeframe: str | None = "all") -> dict:
    """
    Dashboard report for administrators.

    Time-windowed: sales, sales by country, top products, units sold,
    petty cash. Point-in-time: product counts, low stock, customers,
    in-stock quantities.
    """
    timeframe = (timeframe or "all").strip().lower()
    end_dt = utcnow()
    start_dt = timeframe_start(timeframe, now=end_dt)
    threshold = int(current_app.config.get("LOW_STOCK_THRESHOLD", 10))

    customers = db.session.query(func.count(User.id)).filter(User.role == ROLE_USER).scalar() or 0

    return {
        "timeframe": timeframe,
        "start": to_utc_z(start_dt),
        "end": to_utc_z(end_dt),
        "sales": _sales(start_dt, end_dt),
        "products": _products(threshold),
        "users": {"total": int(customers)},
        "sales_by_country": _sales_by_country(start_dt, end_dt),
        "top_products": _top_products(start_dt, end_dt),
        "inventory_status": _inventory_status(start_dt, end_dt),
        "petty_cash_summary": _petty_cash(start_dt, end_dt),
    }
