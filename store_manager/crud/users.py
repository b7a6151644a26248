from __future__ import annotations

import re

from sqlalchemy import asc, delete, exists, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..core.errors import AccountDisabled, Conflict, InvalidState, NotFound, ValidationError
from ..core.security import hash_password, verify_password
from ..models.order import RestockOrder
from ..models.sale import Sale
from ..models.user import Role, User, UserActivityLog, UserStatus
from ..time_utils import utcnow_iso

EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[A-Za-z]{2,}$")
PROFILE_FIELDS = ("username", "first_name", "last_name", "email", "phone", "role", "status")


def list_users(db: Session) -> list[User]:
    return list(db.execute(select(User).order_by(asc(User.username))).scalars().all())


def get_user(db: Session, user_id: int) -> User | None:
    return db.get(User, user_id)


def get_user_by_username(db: Session, username: str) -> User | None:
    return db.execute(select(User).where(User.username == username)).scalars().first()


def require_user(db: Session, user_id: int) -> User:
    user = get_user(db, user_id)
    if user is None:
        raise NotFound(f"User {user_id} not found")
    return user


def _clean_profile(data: dict) -> dict:
    cleaned = {key: value for key, value in data.items() if key in PROFILE_FIELDS}
    for key, value in list(cleaned.items()):
        if isinstance(value, str):
            cleaned[key] = value.strip() or None
    if "username" in cleaned and not cleaned["username"]:
        raise ValidationError("username is required")
    if "role" in cleaned and cleaned["role"] not in {role.value for role in Role}:
        raise ValidationError("role must be admin or employee")
    if "status" in cleaned:
        cleaned["status"] = cleaned["status"] or UserStatus.ACTIVE.value
        if cleaned["status"] not in {status.value for status in UserStatus}:
            raise ValidationError("status must be active or inactive")
    if cleaned.get("email") and not EMAIL_RE.match(cleaned["email"]):
        raise ValidationError("email is not a valid address")
    return cleaned


def _ensure_username_free(db: Session, username: str, exclude_id: int | None = None) -> None:
    stmt = select(User.id).where(User.username == username)
    if exclude_id is not None:
        stmt = stmt.where(User.id != exclude_id)
    if db.execute(stmt).first():
        raise Conflict(f"Username {username} already exists")


def create_user(db: Session, payload: dict) -> User:
    data = _clean_profile(payload)
    password = payload.get("password") or ""
    if not data.get("username") or not password or not data.get("role"):
        raise ValidationError("username, password and role are required")
    _ensure_username_free(db, data["username"])
    now = utcnow_iso()
    user = User(
        **data,
        password_hash=hash_password(password),
        created_at=now,
        updated_at=now,
    )
    user.status = user.status or UserStatus.ACTIVE.value
    db.add(user)
    _commit_unique(db, data["username"])
    db.refresh(user)
    return user


def update_user(db: Session, user: User, payload: dict) -> User:
    """Update profile fields; the password is re-hashed only when provided."""

    data = _clean_profile(payload)
    if "username" in data and data["username"] != user.username:
        _ensure_username_free(db, data["username"], exclude_id=user.id)
    for key, value in data.items():
        setattr(user, key, value)
    password = payload.get("password")
    if password:
        user.password_hash = hash_password(password)
    user.updated_at = utcnow_iso()
    _commit_unique(db, user.username)
    db.refresh(user)
    return user


def set_user_status(db: Session, user: User, status: UserStatus | str) -> User:
    value = status.value if isinstance(status, UserStatus) else status
    if value not in {item.value for item in UserStatus}:
        raise ValidationError("status must be active or inactive")
    user.status = value
    user.updated_at = utcnow_iso()
    db.commit()
    db.refresh(user)
    return user


def delete_user(db: Session, user: User) -> None:
    """Delete an account that has no sales or restock orders on record."""

    has_ledger = db.execute(
        select(
            or_(
                exists().where(Sale.user_id == user.id),
                exists().where(RestockOrder.user_id == user.id),
            )
        )
    ).scalar()
    if has_ledger:
        raise InvalidState("User has sales or orders on record; deactivate the account instead")
    db.execute(delete(UserActivityLog).where(UserActivityLog.user_id == user.id))
    db.delete(user)
    db.commit()


def authenticate(db: Session, username: str, password: str) -> tuple[User | None, bool]:
    """Check credentials.

    Returns ``(user, ok)``. ``user`` is set whenever the username exists so the
    caller can record a failed attempt against it. Inactive accounts raise
    ``AccountDisabled`` only once the password has matched, so a wrong
    password never reveals whether an account is disabled.
    """

    user = get_user_by_username(db, (username or "").strip())
    if user is None:
        return None, False
    if not verify_password(password, user.password_hash):
        return user, False
    if not user.is_active:
        raise AccountDisabled("Account is disabled; contact an administrator")
    user.last_login = utcnow_iso()
    db.commit()
    db.refresh(user)
    return user, True


def ensure_bootstrap_admin(db: Session, username: str, password: str) -> User | None:
    """Create the first admin account when the users table is empty."""

    if not password or db.execute(select(User.id).limit(1)).first():
        return None
    return create_user(
        db,
        {"username": username, "password": password, "role": Role.ADMIN.value},
    )


def _commit_unique(db: Session, username: str) -> None:
    try:
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        raise Conflict(f"Username {username} already exists") from exc
