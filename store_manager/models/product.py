"""SQLAlchemy model for catalog products."""

from __future__ import annotations

from sqlalchemy import CheckConstraint, Column, Float, Integer, Text

from ..db.session import Base


class Product(Base):
    """A sellable item. ``quantity`` is the stock on hand."""

    __tablename__ = "products"
    __table_args__ = (
        CheckConstraint("quantity >= 0", name="ck_products_quantity_non_negative"),
        CheckConstraint("buy_price >= 0", name="ck_products_buy_price_non_negative"),
        CheckConstraint("sell_price >= 0", name="ck_products_sell_price_non_negative"),
    )

    id = Column(Integer, primary_key=True, index=True)
    name = Column(Text, nullable=False)
    category = Column(Text, nullable=False, index=True)
    buy_price = Column(Float, nullable=False, default=0.0)
    sell_price = Column(Float, nullable=False, default=0.0)
    quantity = Column(Integer, nullable=False, default=0)
    barcode = Column(Text, nullable=False, unique=True, index=True)
    description = Column(Text, nullable=False, default="")
    created_at = Column(Text, nullable=False)
    updated_at = Column(Text, nullable=False)


__all__ = ["Product"]
