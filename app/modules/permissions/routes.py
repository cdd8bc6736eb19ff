from fastapi import APIRouter, Depends
from app.database.supabase_client import get_supabase
from app.modules.permissions.schemas import (
    PermissionResponse, PermissionGroupResponse, PermissionCheckResponse
)
from app.modules.permissions.service import PermissionService, parse_permission_key
from app.core.dependencies import require_session
from app.core.permissions import PermissionResolver
from supabase import Client
from typing import List, Optional

router = APIRouter(prefix="/permissions", tags=["permissions"])


def get_permission_service(supabase: Client = Depends(get_supabase)) -> PermissionService:
    return PermissionService(supabase)


@router.get("", response_model=List[PermissionResponse])
async def list_permissions(
    app_key: Optional[str] = None,
    resource: Optional[str] = None,
    resolver: PermissionResolver = Depends(require_session),
    service: PermissionService = Depends(get_permission_service)
):
    """List the permission catalog with display labels"""
    return service.list_permissions(app_key=app_key, resource=resource)


@router.get("/by-app", response_model=List[PermissionGroupResponse])
async def list_permissions_by_app(
    app_key: Optional[str] = None,
    resolver: PermissionResolver = Depends(require_session),
    service: PermissionService = Depends(get_permission_service)
):
    """Permission catalog grouped by app"""
    return service.list_permissions_by_app(app_key=app_key)


@router.get("/check/{permission_key}", response_model=PermissionCheckResponse)
async def check_permission(
    permission_key: str,
    resolver: PermissionResolver = Depends(require_session)
):
    """Whether the current session holds a permission"""
    parse_permission_key(permission_key)
    return PermissionCheckResponse(
        permission_key=permission_key,
        granted=resolver.has_permission(permission_key)
    )
