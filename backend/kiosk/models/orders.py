from __future__ import annotations

from ..extensions import db
from kiosk.time_utils import to_utc_z, utcnow

ORDER_STATUS_COMPLETED = "COMPLETED"
ORDER_STATUS_PENDING_PAYMENT = "PENDING_PAYMENT"


class Order(db.Model):
    """
    Immutable snapshot of a checkout.

    total_cents == sum(item.price_cents * item.quantity), fixed at creation.
    The only later mutation is PENDING_PAYMENT -> COMPLETED once the owner's
    outstanding debt is settled to zero.
    """
    __tablename__ = "orders"
    __table_args__ = (
        db.Index("ix_orders_user_status", "user_id", "status"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)

    total_cents = db.Column(db.Integer, nullable=False)
    status = db.Column(db.String(24), nullable=False, default=ORDER_STATUS_COMPLETED, index=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, index=True)

    user = db.relationship("User", backref=db.backref("orders", lazy=True))
    items = db.relationship(
        "OrderItem",
        backref="order",
        lazy=True,
        cascade="all, delete-orphan",
        order_by="OrderItem.id",
    )

    def to_dict(self, include_user: bool = False) -> dict:
        data = {
            "id": self.id,
            "user_id": self.user_id,
            "total_cents": self.total_cents,
            "status": self.status,
            "created_at": to_utc_z(self.created_at),
            "items": [item.to_dict() for item in self.items],
        }
        if include_user and self.user is not None:
            data["user"] = {
                "id": self.user.id,
                "name": self.user.name,
                "phone": self.user.phone,
                "country": self.user.country,
            }
        return data


class OrderItem(db.Model):
    """Order line. price_cents is the unit price used at checkout, decoupled from the live product."""
    __tablename__ = "order_items"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    order_id = db.Column(db.Integer, db.ForeignKey("orders.id"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)

    quantity = db.Column(db.Integer, nullable=False)
    price_cents = db.Column(db.Integer, nullable=False)

    product = db.relationship("Product")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "order_id": self.order_id,
            "product_id": self.product_id,
            "product_name": self.product.name if self.product else None,
            "quantity": self.quantity,
            "price_cents": self.price_cents,
            "line_total_cents": self.price_cents * self.quantity,
        }
