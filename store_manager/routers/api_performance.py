from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ..core.errors import AuthorizationError
from ..crud.users import require_user
from ..db.session import get_db
from ..deps.auth import CurrentUser, get_current_user, require_admin
from ..schemas.report import PerformanceOut, TeamPerformanceOut
from ..services.performance import (
    all_users_performance,
    performance_trend,
    ranking,
    team_performance,
    user_performance,
)

router = APIRouter(prefix="/api/v1/performance", tags=["performance"])


def _ensure_can_view(user_id: int, current: CurrentUser) -> None:
    if not current.is_admin and user_id != current.id:
        raise AuthorizationError("Employees can only view their own performance")


@router.get("/me", response_model=PerformanceOut)
def api_my_performance(
    period: str = "all_time",
    current: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return {"username": current.username, **user_performance(db, current.id, period)}


@router.get("/users", response_model=list[PerformanceOut], dependencies=[Depends(require_admin)])
def api_all_performance(period: str = "all_time", db: Session = Depends(get_db)):
    return all_users_performance(db, period)


@router.get("/team", response_model=TeamPerformanceOut, dependencies=[Depends(require_admin)])
def api_team_performance(period: str = "monthly", db: Session = Depends(get_db)):
    return team_performance(db, period)


@router.get("/ranking", response_model=list[PerformanceOut], dependencies=[Depends(require_admin)])
def api_ranking(
    period: str = "monthly",
    metric: str = "sales_total",
    limit: int = Query(default=10, ge=1, le=100),
    db: Session = Depends(get_db),
):
    return ranking(db, period, metric, limit)


@router.get("/users/{user_id}", response_model=PerformanceOut)
def api_user_performance(
    user_id: int,
    period: str = "all_time",
    current: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    _ensure_can_view(user_id, current)
    user = require_user(db, user_id)
    return {"username": user.username, **user_performance(db, user_id, period)}


@router.get("/users/{user_id}/trend", response_model=list[PerformanceOut])
def api_performance_trend(
    user_id: int,
    period: str = "monthly",
    limit: int = Query(default=6, ge=1, le=60),
    current: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    _ensure_can_view(user_id, current)
    require_user(db, user_id)
    return performance_trend(db, user_id, period, limit)
