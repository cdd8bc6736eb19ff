from pydantic import BaseModel, EmailStr, Field
from typing import Optional, List
from datetime import datetime

from app.core.permissions import UserStatus


class UserCreate(BaseModel):
    email: EmailStr
    password: str = Field(min_length=6)
    full_name: Optional[str] = None
    status: UserStatus = UserStatus.ACTIVE
    group_ids: List[str] = []


class PasswordReset(BaseModel):
    new_password: str = Field(min_length=6)


class UserUpdate(BaseModel):
    full_name: Optional[str] = None
    avatar_url: Optional[str] = None
    status: Optional[UserStatus] = None


class UserResponse(BaseModel):
    id: str
    auth_user_id: Optional[str] = None
    email: str
    full_name: Optional[str] = None
    avatar_url: Optional[str] = None
    status: UserStatus
    is_superuser: bool = False
    created_by: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class UserWithPermissionsResponse(UserResponse):
    groups: List[dict]
    permissions: List[str]  # All permission keys (from groups + direct)
    direct_permissions: List[str]


class SetSuperUserRequest(BaseModel):
    is_superuser: bool = True


class UserGroupAdd(BaseModel):
    group_id: str


class UserGroupResponse(BaseModel):
    id: str
    group_id: str
    user_id: str
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True
