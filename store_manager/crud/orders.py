"""Restock order lifecycle.

Orders move through ``ALLOWED_TRANSITIONS``. Stock is added exactly once, on
the transition into ``RECEIVED_STATUS``; the status write is conditional on
the status we read so two concurrent "received" requests cannot both add it.
"""

from __future__ import annotations

import logging
from typing import Iterable

from sqlalchemy import delete, desc, select, update
from sqlalchemy.orm import Session, selectinload

from ..core.errors import InvalidState, InvalidStatus, NotFound, ValidationError
from ..db.transactions import atomic, lock_for_update
from ..models.order import (
    ALLOWED_TRANSITIONS,
    RECEIVED_STATUS,
    OrderStatus,
    RestockOrder,
    RestockOrderItem,
)
from ..models.product import Product
from ..time_utils import utcnow_iso

logger = logging.getLogger(__name__)


def parse_status(value: OrderStatus | str | None) -> OrderStatus:
    try:
        return OrderStatus(value)
    except ValueError as exc:
        allowed = ", ".join(status.value for status in OrderStatus)
        raise InvalidStatus(f"Invalid status {value!r}; expected one of: {allowed}") from exc


def _clean_items(items: Iterable[dict]) -> list[dict]:
    lines = []
    for index, item in enumerate(items):
        product_id = item.get("product_id")
        quantity = item.get("quantity")
        price = item.get("price")
        if not isinstance(product_id, int) or product_id <= 0:
            raise ValidationError("product_id is required", details={"item": index})
        if not isinstance(quantity, int) or quantity <= 0:
            raise ValidationError("quantity must be greater than zero", details={"item": index})
        if price is None or price < 0:
            raise ValidationError("price must be zero or greater", details={"item": index})
        lines.append({"product_id": product_id, "quantity": quantity, "price": float(price)})
    if not lines:
        raise ValidationError("items must contain at least one line")
    return lines


def list_orders(db: Session, status: OrderStatus | str | None = None, limit: int = 200, offset: int = 0) -> list[RestockOrder]:
    stmt = select(RestockOrder).order_by(desc(RestockOrder.created_at), desc(RestockOrder.id))
    if status is not None:
        stmt = stmt.where(RestockOrder.status == parse_status(status).value)
    stmt = stmt.limit(limit).offset(offset)
    return list(db.execute(stmt).unique().scalars().all())


def get_order(db: Session, order_id: int) -> RestockOrder | None:
    stmt = select(RestockOrder).options(selectinload(RestockOrder.items)).where(RestockOrder.id == order_id)
    return db.execute(stmt).unique().scalars().first()


def create_order(db: Session, *, user_id: int | None, items: Iterable[dict]) -> RestockOrder:
    """Create a pending order with one item row per line.

    Every referenced product must exist; otherwise ``NotFound`` is raised before
    anything is written. The order total is the sum of ``quantity * price``.
    """

    lines = _clean_items(items)
    product_ids = {line["product_id"] for line in lines}

    with atomic(db, operation="create_order"):
        found = set(db.execute(select(Product.id).where(Product.id.in_(product_ids))).scalars().all())
        missing = sorted(product_ids - found)
        if missing:
            raise NotFound("Products not found", details={"product_ids": missing})

        now = utcnow_iso()
        order = RestockOrder(
            user_id=user_id,
            status=OrderStatus.PENDING.value,
            total=sum(line["quantity"] * line["price"] for line in lines),
            created_at=now,
            updated_at=now,
        )
        order.items = [
            RestockOrderItem(
                product_id=line["product_id"],
                quantity=line["quantity"],
                price_at_order=line["price"],
            )
            for line in lines
        ]
        db.add(order)
        db.flush()
        order_id = order.id

    logger.info(
        "order.created",
        extra={"extra_data": {"order_id": order_id, "items": len(lines), "user_id": user_id}},
    )
    return get_order(db, order_id)


def update_order_status(db: Session, order_id: int, new_status: OrderStatus | str | None) -> tuple[RestockOrder, bool]:
    """Move an order to ``new_status``.

    Returns the refreshed order and whether anything changed. Asking for the
    status the order already has is a no-op, so repeating a "received" request
    never adds stock twice. Transitions outside ``ALLOWED_TRANSITIONS`` raise
    ``InvalidStatus``.
    """

    target = parse_status(new_status)
    changed = False

    with atomic(db, operation="update_order_status"):
        order = db.execute(lock_for_update(select(RestockOrder).where(RestockOrder.id == order_id))).scalars().first()
        if order is None:
            raise NotFound(f"Order {order_id} not found")
        current = OrderStatus(order.status)

        if current is not target:
            if target not in ALLOWED_TRANSITIONS[current]:
                raise InvalidStatus(
                    f"Cannot change order status from {current.value} to {target.value}",
                    details={
                        "from": current.value,
                        "to": target.value,
                        "allowed": sorted(status.value for status in ALLOWED_TRANSITIONS[current]),
                    },
                )
            now = utcnow_iso()
            result = db.execute(
                update(RestockOrder)
                .where(RestockOrder.id == order_id, RestockOrder.status == current.value)
                .values(status=target.value, updated_at=now)
                .execution_options(synchronize_session=False)
            )
            if result.rowcount == 1:
                changed = True
                if target is RECEIVED_STATUS:
                    _receive_items(db, order_id, now)
            else:
                latest = db.execute(select(RestockOrder.status).where(RestockOrder.id == order_id)).scalar()
                if latest != target.value:
                    raise InvalidStatus(
                        "Order status changed while updating; reload and retry",
                        details={"from": latest, "to": target.value},
                    )

    if changed:
        logger.info(
            "order.status_changed",
            extra={"extra_data": {"order_id": order_id, "from": current.value, "to": target.value}},
        )
    return get_order(db, order_id), changed


def _receive_items(db: Session, order_id: int, now: str) -> None:
    rows = db.execute(
        select(RestockOrderItem.product_id, RestockOrderItem.quantity).where(RestockOrderItem.order_id == order_id)
    ).all()
    for product_id, quantity in rows:
        db.execute(
            update(Product)
            .where(Product.id == product_id)
            .values(quantity=Product.quantity + quantity, updated_at=now)
            .execution_options(synchronize_session=False)
        )


def delete_order(db: Session, order_id: int) -> None:
    """Delete a pending order and its items. Product stock is never touched."""

    with atomic(db, operation="delete_order"):
        order = db.execute(lock_for_update(select(RestockOrder).where(RestockOrder.id == order_id))).scalars().first()
        if order is None:
            raise NotFound(f"Order {order_id} not found")
        if order.status != OrderStatus.PENDING.value:
            raise InvalidState(
                f"Only pending orders can be deleted (order is {order.status})",
                details={"status": order.status},
            )
        db.execute(delete(RestockOrderItem).where(RestockOrderItem.order_id == order_id))
        result = db.execute(
            delete(RestockOrder)
            .where(RestockOrder.id == order_id, RestockOrder.status == OrderStatus.PENDING.value)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            raise InvalidState("Order status changed while deleting; reload and retry")
        db.expunge(order)

    logger.info("order.deleted", extra={"extra_data": {"order_id": order_id}})
