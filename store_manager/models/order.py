"""SQLAlchemy models for restock orders and their line items."""

from __future__ import annotations

import enum

from sqlalchemy import CheckConstraint, Column, Float, ForeignKey, Integer, Text
from sqlalchemy.orm import relationship

from ..db.session import Base


class OrderStatus(str, enum.Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    SHIPPED = "shipped"
    CANCELLED = "cancelled"


# Goods count as received (and stock is added) when an order enters this status.
RECEIVED_STATUS = OrderStatus.SHIPPED

ALLOWED_TRANSITIONS: dict[OrderStatus, frozenset[OrderStatus]] = {
    OrderStatus.PENDING: frozenset({OrderStatus.CONFIRMED, OrderStatus.CANCELLED}),
    OrderStatus.CONFIRMED: frozenset({OrderStatus.SHIPPED}),
    OrderStatus.SHIPPED: frozenset(),
    OrderStatus.CANCELLED: frozenset(),
}


class RestockOrder(Base):
    __tablename__ = "orders"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=True, index=True)
    status = Column(Text, nullable=False, default=OrderStatus.PENDING.value, index=True)
    total = Column(Float, nullable=False, default=0.0)
    created_at = Column(Text, nullable=False)
    updated_at = Column(Text, nullable=False)

    items = relationship(
        "RestockOrderItem",
        back_populates="order",
        order_by="RestockOrderItem.id",
        cascade="all, delete-orphan",
    )
    user = relationship("User")

    @property
    def user_name(self) -> str | None:
        return self.user.username if self.user else None

    @property
    def is_terminal(self) -> bool:
        return not ALLOWED_TRANSITIONS[OrderStatus(self.status)]


class RestockOrderItem(Base):
    """A product line on a restock order.

    ``price_at_order`` is the unit cost agreed when the order was placed and is
    not refreshed from the catalog afterwards.
    """

    __tablename__ = "order_items"
    __table_args__ = (CheckConstraint("quantity > 0", name="ck_order_items_quantity_positive"),)

    id = Column(Integer, primary_key=True, index=True)
    order_id = Column(Integer, ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True)
    product_id = Column(Integer, ForeignKey("products.id"), nullable=False, index=True)
    quantity = Column(Integer, nullable=False)
    price_at_order = Column(Float, nullable=False)

    order = relationship("RestockOrder", back_populates="items")
    product = relationship("Product", lazy="joined")

    @property
    def product_name(self) -> str | None:
        return self.product.name if self.product else None

    @property
    def barcode(self) -> str | None:
        return self.product.barcode if self.product else None

    @property
    def subtotal(self) -> float:
        return self.quantity * self.price_at_order


__all__ = [
    "ALLOWED_TRANSITIONS",
    "OrderStatus",
    "RECEIVED_STATUS",
    "RestockOrder",
    "RestockOrderItem",
]
