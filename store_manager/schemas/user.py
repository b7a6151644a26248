from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, Field

from ..models.user import ActionType, Role, UserStatus


class UserCreate(BaseModel):
    username: str = Field(min_length=3, max_length=64)
    # bcrypt only looks at the first 72 bytes.
    password: str = Field(min_length=6, max_length=72)
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    role: Role
    status: UserStatus = UserStatus.ACTIVE


class UserUpdate(BaseModel):
    username: Optional[str] = Field(default=None, min_length=3, max_length=64)
    password: Optional[str] = Field(default=None, min_length=6, max_length=72)
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    role: Optional[Role] = None
    status: Optional[UserStatus] = None


class UserStatusUpdate(BaseModel):
    status: UserStatus


class UserOut(BaseModel):
    id: int
    username: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    role: str
    status: str
    last_login: Optional[str] = None
    created_at: str
    updated_at: str

    model_config = {"from_attributes": True}


class UserSummary(BaseModel):
    id: int
    username: str
    role: str

    model_config = {"from_attributes": True}


class ActivityLogIn(BaseModel):
    action_type: ActionType = Field(alias="actionType")
    action_details: str = Field(default="", alias="actionDetails", max_length=1000)

    model_config = {"populate_by_name": True}


class ActivityLogOut(BaseModel):
    id: int
    user_id: int
    username: Optional[str] = None
    action_type: str
    action_details: Optional[str] = None
    ip_address: Optional[str] = None
    created_at: str

    model_config = {"from_attributes": True}
