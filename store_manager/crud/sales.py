"""Sales ledger writes and reads.

A sale and its stock decrement are one atomic unit: either both the ``sales``
row and the product's new quantity are committed, or neither is. The batch
path deliberately gives a weaker guarantee; each basket line is its own unit
so one out-of-stock line does not void the whole checkout.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Iterable

from sqlalchemy import desc, func, select, update
from sqlalchemy.orm import Session

from ..core.errors import InsufficientStock, NotFound, StoreError, ValidationError
from ..db.transactions import atomic, lock_for_update
from ..models.product import Product
from ..models.sale import PaymentMethod, Sale
from ..time_utils import utcnow_iso

logger = logging.getLogger(__name__)


def parse_payment_method(value: PaymentMethod | str) -> PaymentMethod:
    try:
        return PaymentMethod(value)
    except ValueError as exc:
        allowed = ", ".join(method.value for method in PaymentMethod)
        raise ValidationError(f"payment_method must be one of: {allowed}") from exc


def record_sale(
    db: Session,
    *,
    product_id: int,
    user_id: int | None,
    quantity: int,
    payment_method: PaymentMethod | str,
) -> Sale:
    """Sell ``quantity`` units of a product and decrement its stock.

    The total is priced from ``sell_price`` as read inside the transaction.
    Raises ``NotFound`` for an unknown product and ``InsufficientStock`` when
    stock on hand is lower than ``quantity``; in both cases nothing is written.
    """

    if quantity is None or quantity <= 0:
        raise ValidationError("quantity must be greater than zero")
    method = parse_payment_method(payment_method)

    with atomic(db, operation="record_sale"):
        product = db.execute(lock_for_update(select(Product).where(Product.id == product_id))).scalars().first()
        if product is None:
            raise NotFound(f"Product {product_id} not found")
        if product.quantity < quantity:
            raise _insufficient(product.id, quantity, product.quantity)

        total = quantity * product.sell_price
        now = utcnow_iso()
        # The WHERE guard makes the decrement safe against a concurrent sale
        # that committed after our read.
        result = db.execute(
            update(Product)
            .where(Product.id == product_id, Product.quantity >= quantity)
            .values(quantity=Product.quantity - quantity, updated_at=now)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            db.expire(product)
            raise _insufficient(product_id, quantity, None)

        sale = Sale(
            product_id=product_id,
            user_id=user_id,
            quantity=quantity,
            total=total,
            payment_method=method.value,
            timestamp=now,
        )
        db.add(sale)
        db.flush()

    db.refresh(sale)
    logger.info(
        "sale.recorded",
        extra={
            "extra_data": {
                "sale_id": sale.id,
                "product_id": product_id,
                "quantity": quantity,
                "total": sale.total,
            }
        },
    )
    return sale


def _insufficient(product_id: int, requested: int, available: int | None) -> InsufficientStock:
    details: dict[str, Any] = {"product_id": product_id, "requested_quantity": requested}
    if available is not None:
        details["available_quantity"] = available
    return InsufficientStock("Insufficient stock", details=details)


@dataclass
class BatchItemResult:
    product_id: int
    status: str
    sale: Sale | None = None
    code: str | None = None
    message: str | None = None


@dataclass
class BatchSaleResult:
    results: list[BatchItemResult] = field(default_factory=list)

    @property
    def succeeded(self) -> list[BatchItemResult]:
        return [item for item in self.results if item.status == "success"]

    @property
    def failed(self) -> list[BatchItemResult]:
        return [item for item in self.results if item.status == "error"]

    @property
    def outcome(self) -> str:
        if not self.failed:
            return "success"
        if not self.succeeded:
            return "failed"
        return "partial"


def record_sale_batch(
    db: Session,
    *,
    user_id: int | None,
    items: Iterable[dict],
    payment_method: PaymentMethod | str,
) -> BatchSaleResult:
    """Record each basket line through :func:`record_sale` independently.

    A failing line is reported in the result and the remaining lines are still
    attempted. Lines that succeeded stay committed regardless of later failures.
    """

    items = list(items)
    if not items:
        raise ValidationError("items must contain at least one line")
    parse_payment_method(payment_method)

    outcome = BatchSaleResult()
    for item in items:
        product_id = item.get("product_id")
        try:
            sale = record_sale(
                db,
                product_id=product_id,
                user_id=user_id,
                quantity=item.get("quantity"),
                payment_method=payment_method,
            )
        except StoreError as exc:
            logger.warning(
                "sale.batch_item_failed",
                extra={"extra_data": {"product_id": product_id, "code": exc.code}},
            )
            outcome.results.append(
                BatchItemResult(product_id=product_id, status="error", code=exc.code, message=exc.message)
            )
            continue
        outcome.results.append(BatchItemResult(product_id=product_id, status="success", sale=sale))
    return outcome


def get_sale(db: Session, sale_id: int) -> Sale | None:
    return db.get(Sale, sale_id)


def list_sales(db: Session, limit: int = 200, offset: int = 0) -> list[Sale]:
    stmt = select(Sale).order_by(desc(Sale.timestamp), desc(Sale.id)).limit(limit).offset(offset)
    return list(db.execute(stmt).scalars().all())


def list_sales_by_date_range(db: Session, start_date: str, end_date: str) -> list[Sale]:
    """Sales whose calendar day (UTC) falls within ``start_date``..``end_date``."""

    day = func.substr(Sale.timestamp, 1, 10)
    stmt = (
        select(Sale)
        .where(day >= start_date, day <= end_date)
        .order_by(desc(Sale.timestamp), desc(Sale.id))
    )
    return list(db.execute(stmt).scalars().all())


def list_sales_by_product(db: Session, product_id: int) -> list[Sale]:
    stmt = select(Sale).where(Sale.product_id == product_id).order_by(desc(Sale.timestamp), desc(Sale.id))
    return list(db.execute(stmt).scalars().all())


def daily_sales_summary(db: Session, date: str) -> dict:
    stmt = select(
        func.coalesce(func.sum(Sale.total), 0.0),
        func.count(Sale.id),
    ).where(func.substr(Sale.timestamp, 1, 10) == date)
    total_sales, transaction_count = db.execute(stmt).one()
    return {
        "date": date,
        "total_sales": float(total_sales or 0.0),
        "transaction_count": int(transaction_count or 0),
    }
