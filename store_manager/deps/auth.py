from __future__ import annotations

from dataclasses import dataclass

from fastapi import Depends, Header, Request
from fastapi.security.utils import get_authorization_scheme_param
from sqlalchemy.orm import Session

from ..core.errors import AccountDisabled, AuthenticationError, AuthorizationError
from ..core.security import decode_token
from ..crud.users import get_user
from ..db.session import get_db
from ..middlewares import bind_staff
from ..models.user import Role


@dataclass(frozen=True)
class CurrentUser:
    id: int
    username: str
    role: str

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN.value


def _extract_token(authorization: str | None, legacy_token: str | None) -> str | None:
    if authorization:
        scheme, credentials = get_authorization_scheme_param(authorization)
        if scheme.lower() == "bearer" and credentials:
            return credentials
    if legacy_token and legacy_token.strip():
        return legacy_token.strip()
    return None


def get_current_user(
    request: Request,
    authorization: str | None = Header(default=None, alias="Authorization"),
    x_auth_token: str | None = Header(default=None, alias="X-Auth-Token"),
    db: Session = Depends(get_db),
) -> CurrentUser:
    """Resolve the signed-in staff member from an access token.

    The token is read from ``Authorization: Bearer`` first and falls back to
    the ``X-Auth-Token`` header older clients send. The user row is reloaded on
    every request so deactivation and role changes apply immediately.
    """

    token = _extract_token(authorization, x_auth_token)
    if not token:
        raise AuthenticationError("Authentication required")
    try:
        payload = decode_token(token, verify_type="access")
    except ValueError as exc:
        raise AuthenticationError(str(exc)) from exc

    user = get_user(db, payload.user_id)
    if user is None:
        raise AuthenticationError("User no longer exists")
    if not user.is_active:
        raise AccountDisabled("Account is disabled; contact an administrator")

    bind_staff(request, user.id, user.role)
    return CurrentUser(id=user.id, username=user.username, role=user.role)


def require_admin(current: CurrentUser = Depends(get_current_user)) -> CurrentUser:
    if not current.is_admin:
        raise AuthorizationError("Administrator access required")
    return current


def client_ip(request: Request) -> str | None:
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip() or None
    return request.client.host if request.client else None
