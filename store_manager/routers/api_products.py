from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.orm import Session

from ..core.config import settings
from ..core.errors import NotFound
from ..crud.activity import log_activity
from ..crud.products import (
    create_product,
    delete_product,
    get_product_by_barcode,
    list_low_stock,
    list_products,
    require_product,
    update_product,
)
from ..db.session import get_db
from ..deps.auth import CurrentUser, client_ip, get_current_user, require_admin
from ..models.user import ActionType
from ..schemas.product import ProductCreate, ProductOut, ProductUpdate

router = APIRouter(prefix="/api/v1/products", tags=["products"], dependencies=[Depends(get_current_user)])


@router.get("", response_model=list[ProductOut])
def api_list_products(
    category: Optional[str] = None,
    search: Optional[str] = None,
    db: Session = Depends(get_db),
):
    return list_products(db, category=category, search=search)


@router.get("/low-stock", response_model=list[ProductOut])
def api_low_stock(threshold: Optional[int] = Query(default=None, ge=0), db: Session = Depends(get_db)):
    limit = settings.LOW_STOCK_THRESHOLD if threshold is None else threshold
    return list_low_stock(db, limit)


@router.get("/barcode/{barcode}", response_model=ProductOut)
def api_product_by_barcode(barcode: str, db: Session = Depends(get_db)):
    product = get_product_by_barcode(db, barcode)
    if product is None:
        raise NotFound(f"No product with barcode {barcode}")
    return product


@router.get("/{product_id}", response_model=ProductOut)
def api_get_product(product_id: int, db: Session = Depends(get_db)):
    return require_product(db, product_id)


@router.post("", response_model=ProductOut, status_code=201)
def api_create_product(
    payload: ProductCreate,
    request: Request,
    current: CurrentUser = Depends(require_admin),
    db: Session = Depends(get_db),
):
    product = create_product(db, payload.model_dump())
    log_activity(
        db,
        current.id,
        ActionType.PRODUCT_CREATE,
        f"Created product {product.name} ({product.barcode})",
        client_ip(request),
    )
    return product


@router.put("/{product_id}", response_model=ProductOut)
def api_update_product(
    product_id: int,
    payload: ProductUpdate,
    request: Request,
    current: CurrentUser = Depends(require_admin),
    db: Session = Depends(get_db),
):
    product = require_product(db, product_id)
    product = update_product(db, product, payload.model_dump(exclude_unset=True))
    log_activity(db, current.id, ActionType.PRODUCT_UPDATE, f"Updated product {product.id}", client_ip(request))
    return product


@router.delete("/{product_id}")
def api_delete_product(
    product_id: int,
    request: Request,
    current: CurrentUser = Depends(require_admin),
    db: Session = Depends(get_db),
):
    product = require_product(db, product_id)
    name = product.name
    delete_product(db, product)
    log_activity(db, current.id, ActionType.PRODUCT_DELETE, f"Deleted product {product_id} ({name})", client_ip(request))
    return {"status": "deleted"}
