from __future__ import annotations

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.orm import Session

from ..core.errors import InvalidState
from ..crud.activity import list_all_activity, list_user_activity, log_activity
from ..crud.users import (
    create_user,
    delete_user,
    list_users,
    require_user,
    set_user_status,
    update_user,
)
from ..db.session import get_db
from ..deps.auth import CurrentUser, client_ip, get_current_user, require_admin
from ..models.user import ActionType
from ..schemas.user import (
    ActivityLogIn,
    ActivityLogOut,
    UserCreate,
    UserOut,
    UserStatusUpdate,
    UserUpdate,
)

router = APIRouter(prefix="/api/v1/users", tags=["users"])


# Self-service routes are declared before "/{user_id}" so they are not shadowed.
@router.get("/me/profile", response_model=UserOut)
def api_my_profile(current: CurrentUser = Depends(get_current_user), db: Session = Depends(get_db)):
    return require_user(db, current.id)


@router.post("/activity/log", response_model=ActivityLogOut, status_code=201)
def api_log_activity(
    payload: ActivityLogIn,
    request: Request,
    current: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    entry = log_activity(db, current.id, payload.action_type, payload.action_details or None, client_ip(request))
    if entry is None:
        raise InvalidState("Activity could not be recorded")
    return entry


@router.get("/activity/all", response_model=list[ActivityLogOut], dependencies=[Depends(require_admin)])
def api_all_activity(
    limit: int = Query(default=100, ge=1, le=1000),
    offset: int = Query(default=0, ge=0),
    db: Session = Depends(get_db),
):
    return list_all_activity(db, limit=limit, offset=offset)


@router.get("", response_model=list[UserOut], dependencies=[Depends(require_admin)])
def api_list_users(db: Session = Depends(get_db)):
    return list_users(db)


@router.post("", response_model=UserOut, status_code=201)
def api_create_user(
    payload: UserCreate,
    request: Request,
    current: CurrentUser = Depends(require_admin),
    db: Session = Depends(get_db),
):
    user = create_user(db, payload.model_dump(mode="json"))
    log_activity(
        db,
        current.id,
        ActionType.USER_CREATE,
        f"Created user {user.username} ({user.role})",
        client_ip(request),
    )
    return user


@router.get("/{user_id}", response_model=UserOut, dependencies=[Depends(require_admin)])
def api_get_user(user_id: int, db: Session = Depends(get_db)):
    return require_user(db, user_id)


@router.put("/{user_id}", response_model=UserOut)
def api_update_user(
    user_id: int,
    payload: UserUpdate,
    request: Request,
    current: CurrentUser = Depends(require_admin),
    db: Session = Depends(get_db),
):
    user = require_user(db, user_id)
    data = payload.model_dump(mode="json", exclude_unset=True)
    for key in ("username", "password", "role", "status"):
        if data.get(key) is None:
            data.pop(key, None)
    if user.id == current.id and data.get("status") not in (None, user.status):
        raise InvalidState("You cannot change your own status")
    user = update_user(db, user, data)
    log_activity(db, current.id, ActionType.USER_UPDATE, f"Updated user {user.username}", client_ip(request))
    return user


@router.put("/{user_id}/status", response_model=UserOut)
def api_set_user_status(
    user_id: int,
    payload: UserStatusUpdate,
    request: Request,
    current: CurrentUser = Depends(require_admin),
    db: Session = Depends(get_db),
):
    if user_id == current.id:
        raise InvalidState("You cannot change your own status")
    user = set_user_status(db, require_user(db, user_id), payload.status)
    log_activity(
        db,
        current.id,
        ActionType.USER_STATUS_CHANGE,
        f"Set {user.username} to {user.status}",
        client_ip(request),
    )
    return user


@router.delete("/{user_id}")
def api_delete_user(
    user_id: int,
    request: Request,
    current: CurrentUser = Depends(require_admin),
    db: Session = Depends(get_db),
):
    if user_id == current.id:
        raise InvalidState("You cannot delete your own account")
    user = require_user(db, user_id)
    username = user.username
    delete_user(db, user)
    log_activity(db, current.id, ActionType.USER_DELETE, f"Deleted user {username}", client_ip(request))
    return {"status": "deleted"}


@router.get("/{user_id}/activity", response_model=list[ActivityLogOut], dependencies=[Depends(require_admin)])
def api_user_activity(
    user_id: int,
    limit: int = Query(default=100, ge=1, le=1000),
    offset: int = Query(default=0, ge=0),
    db: Session = Depends(get_db),
):
    require_user(db, user_id)
    return list_user_activity(db, user_id, limit=limit, offset=offset)
