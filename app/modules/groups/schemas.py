from pydantic import BaseModel
from typing import Optional, List
from datetime import datetime

from app.modules.permissions.schemas import PermissionResponse


class GroupCreate(BaseModel):
    name: str
    description: Optional[str] = None
    color: Optional[str] = None


class GroupUpdate(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None
    color: Optional[str] = None


class GroupResponse(BaseModel):
    id: str
    name: str
    description: Optional[str] = None
    color: Optional[str] = None
    is_system: bool = False
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class GroupWithPermissionsResponse(GroupResponse):
    permissions: List[PermissionResponse]
    member_count: int = 0


class GroupMemberAdd(BaseModel):
    user_id: str


class GroupMemberResponse(BaseModel):
    id: str
    group_id: str
    user_id: str
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class GroupPermissionsUpdateResponse(BaseModel):
    group_id: str
    assigned_count: int
    permission_keys: List[str]
    message: str
