from __future__ import annotations

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from ..core.errors import NotFound
from ..crud.activity import log_activity
from ..crud.sales import (
    daily_sales_summary,
    get_sale,
    list_sales,
    list_sales_by_date_range,
    list_sales_by_product,
    record_sale,
    record_sale_batch,
)
from ..db.session import get_db
from ..deps.auth import CurrentUser, client_ip, get_current_user
from ..models.user import ActionType
from ..schemas.sale import (
    DailySalesSummary,
    SaleBatchCreate,
    SaleBatchOut,
    SaleBatchResultItem,
    SaleCreate,
    SaleOut,
)
from ..services.reporting import parse_date

router = APIRouter(prefix="/api/v1/sales", tags=["sales"])


@router.post("", response_model=SaleOut, status_code=201)
def api_record_sale(
    payload: SaleCreate,
    request: Request,
    current: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    sale = record_sale(
        db,
        product_id=payload.product_id,
        user_id=current.id,
        quantity=payload.quantity,
        payment_method=payload.payment_method,
    )
    log_activity(
        db,
        current.id,
        ActionType.SALE_CREATE,
        f"Sale {sale.id}: {sale.quantity} x product {sale.product_id} for {sale.total:.2f}",
        client_ip(request),
    )
    return sale


@router.post(
    "/batch",
    response_model=SaleBatchOut,
    status_code=201,
    responses={207: {"model": SaleBatchOut, "description": "Some basket lines failed"}},
)
def api_record_sale_batch(
    payload: SaleBatchCreate,
    request: Request,
    current: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    result = record_sale_batch(
        db,
        user_id=current.id,
        items=[item.model_dump() for item in payload.items],
        payment_method=payload.payment_method,
    )
    if result.succeeded:
        log_activity(
            db,
            current.id,
            ActionType.SALE_CREATE,
            f"Batch sale: {len(result.succeeded)} of {len(result.results)} lines recorded",
            client_ip(request),
        )
    body = SaleBatchOut(
        outcome=result.outcome,
        results=[
            SaleBatchResultItem(
                product_id=item.product_id,
                status=item.status,
                sale_id=item.sale.id if item.sale is not None else None,
                code=item.code,
                message=item.message,
            )
            for item in result.results
        ],
    )
    status_code = 201 if result.outcome == "success" else 207
    return JSONResponse(body.model_dump(), status_code=status_code)


@router.get("", response_model=list[SaleOut], dependencies=[Depends(get_current_user)])
def api_list_sales(
    limit: int = Query(default=200, ge=1, le=1000),
    offset: int = Query(default=0, ge=0),
    db: Session = Depends(get_db),
):
    return list_sales(db, limit=limit, offset=offset)


@router.get("/date-range", response_model=list[SaleOut], dependencies=[Depends(get_current_user)])
def api_sales_by_date_range(start_date: str, end_date: str, db: Session = Depends(get_db)):
    start = parse_date(start_date, "start_date").isoformat()
    end = parse_date(end_date, "end_date").isoformat()
    return list_sales_by_date_range(db, start, end)


@router.get("/product/{product_id}", response_model=list[SaleOut], dependencies=[Depends(get_current_user)])
def api_sales_by_product(product_id: int, db: Session = Depends(get_db)):
    return list_sales_by_product(db, product_id)


@router.get("/summary/daily", response_model=DailySalesSummary, dependencies=[Depends(get_current_user)])
def api_daily_summary(date: str, db: Session = Depends(get_db)):
    return daily_sales_summary(db, parse_date(date).isoformat())


@router.get("/{sale_id}", response_model=SaleOut, dependencies=[Depends(get_current_user)])
def api_get_sale(sale_id: int, db: Session = Depends(get_db)):
    sale = get_sale(db, sale_id)
    if sale is None:
        raise NotFound(f"Sale {sale_id} not found")
    return sale
