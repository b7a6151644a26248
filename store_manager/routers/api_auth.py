from __future__ import annotations

from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from ..core.errors import AccountDisabled, AuthenticationError
from ..core.security import decode_token, issue_token_pair
from ..crud.activity import log_activity
from ..crud.users import authenticate, get_user
from ..db.session import get_db
from ..deps.auth import client_ip
from ..models.user import ActionType
from ..schemas.auth import LoginRequest, RefreshRequest, TokenResponse
from ..schemas.user import UserSummary

router = APIRouter(prefix="/api/v1/auth", tags=["auth"])


def _token_response(user) -> TokenResponse:
    pair = issue_token_pair(user.id, user.role)
    return TokenResponse(**pair.model_dump(), user=UserSummary.model_validate(user))


@router.post("/login", response_model=TokenResponse, summary="Exchange username and password for JWTs")
def login(payload: LoginRequest, request: Request, db: Session = Depends(get_db)):
    ip_address = client_ip(request)
    user, ok = authenticate(db, payload.username, payload.password)
    if not ok:
        if user is not None:
            log_activity(db, user.id, ActionType.LOGIN_FAILED, "Invalid password", ip_address)
        raise AuthenticationError("Invalid username or password")
    log_activity(db, user.id, ActionType.LOGIN, None, ip_address)
    return _token_response(user)


@router.post("/refresh", response_model=TokenResponse, summary="Refresh access token")
def refresh_token(payload: RefreshRequest, db: Session = Depends(get_db)):
    try:
        claims = decode_token(payload.refresh_token, verify_type="refresh")
    except ValueError as exc:
        raise AuthenticationError(str(exc)) from exc
    user = get_user(db, claims.user_id)
    if user is None:
        raise AuthenticationError("User no longer exists")
    if not user.is_active:
        raise AccountDisabled("Account is disabled; contact an administrator")
    return _token_response(user)
