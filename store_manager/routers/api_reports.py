from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ..db.session import get_db
from ..deps.auth import get_current_user
from ..schemas.report import DailyReport, DayTotal, InventoryCategory, ProfitReport, TopProduct
from ..services.reporting import (
    daily_report,
    inventory_report,
    monthly_report,
    profit_report,
    top_products,
    weekly_report,
)

router = APIRouter(prefix="/api/v1/reports", tags=["reports"], dependencies=[Depends(get_current_user)])


@router.get("/daily", response_model=DailyReport)
def api_daily_report(date: str, db: Session = Depends(get_db)):
    return daily_report(db, date)


@router.get("/weekly", response_model=list[DayTotal])
def api_weekly_report(start_date: str, end_date: str, db: Session = Depends(get_db)):
    return weekly_report(db, start_date, end_date)


@router.get("/monthly", response_model=list[DayTotal])
def api_monthly_report(year: int, month: int, db: Session = Depends(get_db)):
    return monthly_report(db, year, month)


@router.get("/top-products", response_model=list[TopProduct])
def api_top_products(limit: int = Query(default=10, ge=1, le=100), db: Session = Depends(get_db)):
    return top_products(db, limit)


@router.get("/profit", response_model=ProfitReport)
def api_profit_report(start_date: str, end_date: str, db: Session = Depends(get_db)):
    return profit_report(db, start_date, end_date)


@router.get("/inventory", response_model=list[InventoryCategory])
def api_inventory_report(db: Session = Depends(get_db)):
    return inventory_report(db)
