"""SQLAlchemy model for the sales ledger."""

from __future__ import annotations

import enum

from sqlalchemy import CheckConstraint, Column, Float, ForeignKey, Integer, Text
from sqlalchemy.orm import relationship

from ..db.session import Base


class PaymentMethod(str, enum.Enum):
    CASH = "cash"
    CARD = "card"
    MOBILE = "mobile"


class Sale(Base):
    """One sold line. Rows are written once and never updated."""

    __tablename__ = "sales"
    __table_args__ = (CheckConstraint("quantity > 0", name="ck_sales_quantity_positive"),)

    id = Column(Integer, primary_key=True, index=True)
    product_id = Column(Integer, ForeignKey("products.id"), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=True, index=True)
    quantity = Column(Integer, nullable=False)
    total = Column(Float, nullable=False)
    payment_method = Column(Text, nullable=False)
    timestamp = Column(Text, nullable=False, index=True)

    product = relationship("Product", lazy="joined")

    @property
    def product_name(self) -> str | None:
        return self.product.name if self.product else None


__all__ = ["PaymentMethod", "Sale"]
