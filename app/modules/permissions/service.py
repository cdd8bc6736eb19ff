import logging
from supabase import Client
from app.config.permissions_config import (
    InvalidPermissionKey, PermissionKey, get_permission_display_name
)
from app.modules.permissions.schemas import PermissionResponse, PermissionGroupResponse
from typing import Any, Dict, List, Mapping, Optional
from fastapi import HTTPException

logger = logging.getLogger(__name__)


def to_permission_response(row: Mapping[str, Any]) -> PermissionResponse:
    permission = PermissionKey.from_row(row)
    return PermissionResponse(
        id=row["id"],
        app_key=permission.app_key,
        resource=permission.resource,
        action=permission.action,
        key=permission.key,
        label=get_permission_display_name(permission),
        description=row.get("description")
    )


def parse_permission_key(key: str) -> PermissionKey:
    try:
        return PermissionKey.parse(key)
    except InvalidPermissionKey as e:
        raise HTTPException(status_code=400, detail=str(e))


class PermissionService:
    """Read access to the u_permissions catalog. Catalog rows are never mutated here."""

    def __init__(self, supabase: Client):
        self.supabase = supabase

    def list_permissions(self, app_key: Optional[str] = None, resource: Optional[str] = None) -> List[PermissionResponse]:
        """List catalog permissions, optionally filtered by app and resource"""
        try:
            query = self.supabase.table("u_permissions").select("*")
            if app_key:
                query = query.eq("app_key", app_key)
            if resource:
                query = query.eq("resource", resource)
            result = query.order("app_key").order("resource").order("action").execute()
            return [to_permission_response(row) for row in result.data]
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def list_permissions_by_app(self, app_key: Optional[str] = None) -> List[PermissionGroupResponse]:
        """Catalog grouped by app_key, for the permission picker"""
        grouped: Dict[str, List[PermissionResponse]] = {}
        for permission in self.list_permissions(app_key=app_key):
            grouped.setdefault(permission.app_key, []).append(permission)
        return [
            PermissionGroupResponse(app_key=key, permissions=permissions)
            for key, permissions in sorted(grouped.items())
        ]

    def get_permission_by_key(self, key: str) -> PermissionResponse:
        """Look up a catalog entry by its app.resource.action key"""
        permission = parse_permission_key(key)
        try:
            result = self.supabase.table("u_permissions")\
                .select("*")\
                .eq("app_key", permission.app_key)\
                .eq("resource", permission.resource)\
                .eq("action", permission.action)\
                .limit(1)\
                .execute()

            if not result.data:
                raise HTTPException(status_code=404, detail=f"Permission not found: {key}")

            return to_permission_response(result.data[0])
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def get_permission_ids(self, keys: List[str]) -> Dict[str, str]:
        """key -> permission id for every key; 404 if any key is not in the catalog"""
        return {key: self.get_permission_by_key(key).id for key in dict.fromkeys(keys)}

    def get_permissions_by_ids(self, permission_ids: List[str]) -> List[PermissionResponse]:
        if not permission_ids:
            return []
        try:
            result = self.supabase.table("u_permissions")\
                .select("*")\
                .in_("id", permission_ids)\
                .execute()
            return sorted((to_permission_response(row) for row in result.data), key=lambda p: p.key)
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))
