"""Per-user performance figures computed from the ledger on demand."""

from __future__ import annotations

from datetime import date, timedelta
from decimal import Decimal
from typing import Iterable

from sqlalchemy import asc, func, select
from sqlalchemy.orm import Session

from ..core.errors import ValidationError
from ..core.money import money, to_decimal
from ..models.order import RestockOrder
from ..models.sale import Sale
from ..models.user import ActionType, User, UserActivityLog
from ..time_utils import utcnow

PERIOD_TYPES = ("daily", "weekly", "monthly", "yearly", "all_time")
RANKING_METRICS = ("sales_count", "sales_total", "avg_sale_value", "products_added", "orders_processed")

Bounds = tuple[date | None, date | None]


def _check_period(period: str) -> str:
    if period not in PERIOD_TYPES:
        raise ValidationError(f"period must be one of: {', '.join(PERIOD_TYPES)}")
    return period


def period_bounds(period: str, as_of: date | None = None) -> Bounds:
    """Return ``[start, end)`` for the period containing ``as_of``."""

    _check_period(period)
    today = as_of or utcnow().date()
    if period == "daily":
        return today, today + timedelta(days=1)
    if period == "weekly":
        start = today - timedelta(days=today.weekday())
        return start, start + timedelta(days=7)
    if period == "monthly":
        start = today.replace(day=1)
        return start, _add_months(start, 1)
    if period == "yearly":
        start = today.replace(month=1, day=1)
        return start, start.replace(year=start.year + 1)
    return None, None


def _add_months(start: date, months: int) -> date:
    index = start.year * 12 + (start.month - 1) + months
    return date(index // 12, index % 12 + 1, 1)


def _previous_bounds(period: str, bounds: Bounds) -> Bounds:
    start, _ = bounds
    previous_day = start - timedelta(days=1)
    return period_bounds(period, previous_day)


def _within(column, bounds: Bounds):
    start, end = bounds
    clauses = []
    if start is not None:
        clauses.append(column >= start.isoformat())
    if end is not None:
        clauses.append(column < end.isoformat())
    return clauses


def _empty_metrics() -> dict:
    return {
        "sales_count": 0,
        "sales_total": 0.0,
        "avg_sale_value": 0.0,
        "products_added": 0,
        "orders_processed": 0,
    }


def _collect(db: Session, bounds: Bounds, user_ids: Iterable[int] | None = None) -> dict[int, dict]:
    ids = list(user_ids) if user_ids is not None else None
    metrics: dict[int, dict] = {}

    def bucket(user_id: int) -> dict:
        return metrics.setdefault(user_id, _empty_metrics())

    sales_stmt = (
        select(Sale.user_id, func.count(Sale.id), func.sum(Sale.total))
        .where(Sale.user_id.is_not(None), *_within(Sale.timestamp, bounds))
        .group_by(Sale.user_id)
    )
    if ids is not None:
        sales_stmt = sales_stmt.where(Sale.user_id.in_(ids))
    for user_id, count, total in db.execute(sales_stmt).all():
        row = bucket(user_id)
        row["sales_count"] = int(count or 0)
        row["sales_total"] = money(total)
        row["avg_sale_value"] = money(to_decimal(total) / count) if count else 0.0

    added_stmt = (
        select(UserActivityLog.user_id, func.count(UserActivityLog.id))
        .where(
            UserActivityLog.action_type == ActionType.PRODUCT_CREATE.value,
            *_within(UserActivityLog.created_at, bounds),
        )
        .group_by(UserActivityLog.user_id)
    )
    if ids is not None:
        added_stmt = added_stmt.where(UserActivityLog.user_id.in_(ids))
    for user_id, count in db.execute(added_stmt).all():
        bucket(user_id)["products_added"] = int(count or 0)

    orders_stmt = (
        select(RestockOrder.user_id, func.count(RestockOrder.id))
        .where(RestockOrder.user_id.is_not(None), *_within(RestockOrder.created_at, bounds))
        .group_by(RestockOrder.user_id)
    )
    if ids is not None:
        orders_stmt = orders_stmt.where(RestockOrder.user_id.in_(ids))
    for user_id, count in db.execute(orders_stmt).all():
        bucket(user_id)["orders_processed"] = int(count or 0)

    return metrics


def _describe(bounds: Bounds, period: str) -> dict:
    start, end = bounds
    return {
        "period_type": period,
        "period_start": start.isoformat() if start else None,
        "period_end": (end - timedelta(days=1)).isoformat() if end else None,
    }


def user_performance(db: Session, user_id: int, period: str = "all_time", as_of: date | None = None) -> dict:
    bounds = period_bounds(period, as_of)
    metrics = _collect(db, bounds, [user_id]).get(user_id, _empty_metrics())
    return {"user_id": user_id, **metrics, **_describe(bounds, period)}


def all_users_performance(db: Session, period: str = "all_time", as_of: date | None = None) -> list[dict]:
    bounds = period_bounds(period, as_of)
    metrics = _collect(db, bounds)
    users = db.execute(select(User).order_by(asc(User.username))).scalars().all()
    rows = [
        {
            "user_id": user.id,
            "username": user.username,
            "first_name": user.first_name,
            "last_name": user.last_name,
            "role": user.role,
            **metrics.get(user.id, _empty_metrics()),
            **_describe(bounds, period),
        }
        for user in users
    ]
    rows.sort(key=lambda row: row["sales_total"], reverse=True)
    return rows


def performance_trend(
    db: Session,
    user_id: int,
    period: str = "monthly",
    limit: int = 6,
    as_of: date | None = None,
) -> list[dict]:
    """Consecutive periods ending with the current one, most recent first."""

    if _check_period(period) == "all_time":
        raise ValidationError("trend requires a bounded period")
    if not 1 <= limit <= 60:
        raise ValidationError("limit must be between 1 and 60")
    bounds = period_bounds(period, as_of)
    trend = []
    for _ in range(limit):
        metrics = _collect(db, bounds, [user_id]).get(user_id, _empty_metrics())
        trend.append({"user_id": user_id, **metrics, **_describe(bounds, period)})
        bounds = _previous_bounds(period, bounds)
    return trend


def ranking(
    db: Session,
    period: str = "monthly",
    metric: str = "sales_total",
    limit: int = 10,
    as_of: date | None = None,
) -> list[dict]:
    if metric not in RANKING_METRICS:
        raise ValidationError(f"metric must be one of: {', '.join(RANKING_METRICS)}")
    if limit <= 0:
        raise ValidationError("limit must be greater than zero")
    rows = all_users_performance(db, period, as_of)
    rows.sort(key=lambda row: (-row[metric], row["username"]))
    return rows[:limit]


def team_performance(db: Session, period: str = "monthly", as_of: date | None = None) -> dict:
    bounds = period_bounds(period, as_of)
    metrics = _collect(db, bounds)
    sales_count = sum(row["sales_count"] for row in metrics.values())
    sales_total = sum((to_decimal(row["sales_total"]) for row in metrics.values()), Decimal("0"))
    return {
        "user_count": sum(1 for row in metrics.values() if row["sales_count"] or row["orders_processed"] or row["products_added"]),
        "total_sales_count": sales_count,
        "total_sales_value": money(sales_total),
        "avg_sale_value": money(sales_total / sales_count) if sales_count else 0.0,
        "total_products_added": sum(row["products_added"] for row in metrics.values()),
        "total_orders_processed": sum(row["orders_processed"] for row in metrics.values()),
        **_describe(bounds, period),
    }


__all__ = [
    "PERIOD_TYPES",
    "RANKING_METRICS",
    "all_users_performance",
    "performance_trend",
    "period_bounds",
    "ranking",
    "team_performance",
    "user_performance",
]
