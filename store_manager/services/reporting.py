"""Read-only sales, profit and inventory aggregates."""

from __future__ import annotations

import calendar
from datetime import date, timedelta
from decimal import Decimal

from sqlalchemy import desc, func, select
from sqlalchemy.orm import Session

from ..core.errors import ValidationError
from ..core.money import money, to_decimal
from ..models.product import Product
from ..models.sale import Sale

MAX_RANGE_DAYS = 366


def parse_date(value: str, field: str = "date") -> date:
    try:
        return date.fromisoformat(value)
    except (TypeError, ValueError) as exc:
        raise ValidationError(f"{field} must be a YYYY-MM-DD date") from exc


def _date_range(start: str, end: str) -> tuple[date, date]:
    start_day = parse_date(start, "start_date")
    end_day = parse_date(end, "end_date")
    if end_day < start_day:
        raise ValidationError("end_date must not be before start_date")
    if (end_day - start_day).days >= MAX_RANGE_DAYS:
        raise ValidationError(f"date range is limited to {MAX_RANGE_DAYS} days")
    return start_day, end_day


def _sale_day():
    return func.substr(Sale.timestamp, 1, 10)


def _per_day(db: Session, start_day: date, end_day: date) -> list[dict]:
    day = _sale_day()
    stmt = (
        select(day.label("day"), func.sum(Sale.total), func.count(Sale.id))
        .where(day >= start_day.isoformat(), day <= end_day.isoformat())
        .group_by(day)
    )
    found = {row[0]: (row[1], row[2]) for row in db.execute(stmt).all()}
    rows = []
    current = start_day
    while current <= end_day:
        total, count = found.get(current.isoformat(), (0, 0))
        rows.append(
            {
                "date": current.isoformat(),
                "total_sales": money(total),
                "transaction_count": int(count or 0),
            }
        )
        current += timedelta(days=1)
    return rows


def daily_report(db: Session, day: str) -> dict:
    """Totals for one day, broken down by product category."""

    target = parse_date(day).isoformat()
    stmt = (
        select(
            Product.category,
            func.sum(Sale.total),
            func.count(Sale.id),
            func.sum(Sale.quantity),
        )
        .join(Product, Sale.product_id == Product.id)
        .where(_sale_day() == target)
        .group_by(Product.category)
        .order_by(desc(func.sum(Sale.total)))
    )
    categories = [
        {
            "category": category,
            "total_sales": money(total),
            "transaction_count": int(count or 0),
            "quantity": int(quantity or 0),
        }
        for category, total, count, quantity in db.execute(stmt).all()
    ]
    return {
        "date": target,
        "total_sales": money(sum(to_decimal(row["total_sales"]) for row in categories)),
        "transaction_count": sum(row["transaction_count"] for row in categories),
        "categories": categories,
    }


def weekly_report(db: Session, start_date: str, end_date: str) -> list[dict]:
    """Per-day totals between two dates inclusive; days without sales are zero."""

    start_day, end_day = _date_range(start_date, end_date)
    return _per_day(db, start_day, end_day)


def monthly_report(db: Session, year: int, month: int) -> list[dict]:
    if not 1 <= month <= 12:
        raise ValidationError("month must be between 1 and 12")
    if not 1970 <= year <= 9999:
        raise ValidationError("year is out of range")
    last_day = calendar.monthrange(year, month)[1]
    return _per_day(db, date(year, month, 1), date(year, month, last_day))


def top_products(db: Session, limit: int = 10) -> list[dict]:
    if limit <= 0:
        raise ValidationError("limit must be greater than zero")
    total_quantity = func.sum(Sale.quantity)
    stmt = (
        select(Product.id, Product.name, Product.category, total_quantity, func.sum(Sale.total))
        .join(Product, Sale.product_id == Product.id)
        .group_by(Product.id, Product.name, Product.category)
        .order_by(desc(total_quantity), Product.id)
        .limit(limit)
    )
    return [
        {
            "id": product_id,
            "name": name,
            "category": category,
            "total_quantity": int(quantity or 0),
            "total_sales": money(total),
        }
        for product_id, name, category, quantity, total in db.execute(stmt).all()
    ]


def profit_report(db: Session, start_date: str, end_date: str) -> dict:
    """Revenue against cost for a date range.

    Cost uses each product's current ``buy_price``; the ledger does not keep a
    historic cost per sale.
    """

    start_day, end_day = _date_range(start_date, end_date)
    day = _sale_day()
    stmt = (
        select(
            func.sum(Sale.total),
            func.sum(Sale.quantity * Product.buy_price),
            func.count(func.distinct(Sale.id)),
            func.count(func.distinct(Sale.product_id)),
        )
        .join(Product, Sale.product_id == Product.id)
        .where(day >= start_day.isoformat(), day <= end_day.isoformat())
    )
    total_sales, total_cost, transactions, products_sold = db.execute(stmt).one()
    stock_value = db.execute(select(func.sum(Product.buy_price * Product.quantity))).scalar()

    sales = to_decimal(total_sales)
    cost = to_decimal(total_cost)
    net = sales - cost
    margin = (net / sales * 100) if sales else Decimal("0")
    return {
        "start_date": start_day.isoformat(),
        "end_date": end_day.isoformat(),
        "total_sales": money(sales),
        "total_cost": money(cost),
        "net_profit": money(net),
        "profit_margin": money(margin),
        "transaction_count": int(transactions or 0),
        "products_sold": int(products_sold or 0),
        "stock_value": money(stock_value),
    }


def inventory_report(db: Session) -> list[dict]:
    """Stock on hand per category, valued at cost and at retail."""

    stmt = (
        select(
            Product.category,
            func.count(Product.id),
            func.sum(Product.quantity),
            func.sum(Product.buy_price * Product.quantity),
            func.sum(Product.sell_price * Product.quantity),
        )
        .group_by(Product.category)
        .order_by(Product.category)
    )
    return [
        {
            "category": category,
            "product_count": int(count or 0),
            "total_quantity": int(quantity or 0),
            "cost_value": money(cost_value),
            "retail_value": money(retail_value),
        }
        for category, count, quantity, cost_value, retail_value in db.execute(stmt).all()
    ]


__all__ = [
    "daily_report",
    "inventory_report",
    "monthly_report",
    "parse_date",
    "profit_report",
    "top_products",
    "weekly_report",
]
