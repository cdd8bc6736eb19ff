from pydantic import BaseModel
from typing import Optional, List


class PermissionResponse(BaseModel):
    id: str
    app_key: str
    resource: str
    action: str
    key: str
    label: str
    description: Optional[str] = None

    class Config:
        from_attributes = True


class PermissionGroupResponse(BaseModel):
    app_key: str
    permissions: List[PermissionResponse]


class PermissionKeysUpdate(BaseModel):
    permission_keys: List[str]


class PermissionGrant(BaseModel):
    permission_key: str


class PermissionCheckResponse(BaseModel):
    permission_key: str
    granted: bool
