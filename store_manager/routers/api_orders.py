from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.orm import Session

from ..core.errors import AuthorizationError, NotFound
from ..crud.activity import log_activity
from ..crud.orders import create_order, delete_order, get_order, list_orders, update_order_status
from ..db.session import get_db
from ..deps.auth import CurrentUser, client_ip, get_current_user
from ..models.order import RestockOrder
from ..models.user import ActionType
from ..schemas.order import OrderCreate, OrderDetail, OrderOut, OrderStatusUpdate

router = APIRouter(prefix="/api/v1/orders", tags=["orders"])


def _require_order(db: Session, order_id: int) -> RestockOrder:
    order = get_order(db, order_id)
    if order is None:
        raise NotFound(f"Order {order_id} not found")
    return order


def _ensure_can_manage(order: RestockOrder, current: CurrentUser) -> None:
    if not current.is_admin and order.user_id != current.id:
        raise AuthorizationError("Only the order's creator or an administrator can change it")


@router.get("", response_model=list[OrderOut], dependencies=[Depends(get_current_user)])
def api_list_orders(
    status: Optional[str] = None,
    limit: int = Query(default=200, ge=1, le=1000),
    offset: int = Query(default=0, ge=0),
    db: Session = Depends(get_db),
):
    return list_orders(db, status=status, limit=limit, offset=offset)


@router.get("/{order_id}", response_model=OrderDetail, dependencies=[Depends(get_current_user)])
def api_get_order(order_id: int, db: Session = Depends(get_db)):
    return _require_order(db, order_id)


@router.post("", response_model=OrderDetail, status_code=201)
def api_create_order(
    payload: OrderCreate,
    request: Request,
    current: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    order = create_order(db, user_id=current.id, items=[item.model_dump() for item in payload.items])
    log_activity(
        db,
        current.id,
        ActionType.ORDER_CREATE,
        f"Order {order.id}: {len(order.items)} items, total {order.total:.2f}",
        client_ip(request),
    )
    return order


@router.put("/{order_id}", response_model=OrderDetail)
def api_update_order_status(
    order_id: int,
    payload: OrderStatusUpdate,
    request: Request,
    current: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    order = _require_order(db, order_id)
    _ensure_can_manage(order, current)
    previous = order.status
    order, changed = update_order_status(db, order_id, payload.status)
    if changed:
        log_activity(
            db,
            current.id,
            ActionType.ORDER_STATUS_CHANGE,
            f"Order {order_id}: {previous} -> {order.status}",
            client_ip(request),
        )
    return order


@router.delete("/{order_id}")
def api_delete_order(
    order_id: int,
    request: Request,
    current: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    order = _require_order(db, order_id)
    _ensure_can_manage(order, current)
    delete_order(db, order_id)
    log_activity(db, current.id, ActionType.ORDER_DELETE, f"Deleted order {order_id}", client_ip(request))
    return {"status": "deleted"}
