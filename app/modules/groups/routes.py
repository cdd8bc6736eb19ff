from fastapi import APIRouter, Depends
from app.database.supabase_client import get_supabase
from app.modules.groups.schemas import (
    GroupCreate, GroupUpdate, GroupResponse, GroupWithPermissionsResponse,
    GroupMemberAdd, GroupMemberResponse, GroupPermissionsUpdateResponse
)
from app.modules.groups.service import GroupService
from app.modules.permissions.schemas import PermissionResponse, PermissionKeysUpdate, PermissionGrant
from app.core.dependencies import get_session_store, require_page_read, require_page_write
from app.core.permissions import PermissionResolver
from app.core.session import SessionStore
from supabase import Client
from typing import List

router = APIRouter(prefix="/groups", tags=["groups"])

GROUPS_PAGE = "users_groups"


def get_group_service(supabase: Client = Depends(get_supabase)) -> GroupService:
    return GroupService(supabase)


def invalidate_members(service: GroupService, store: SessionStore, group_id: str) -> None:
    """Members of a changed group see the change on their next request"""
    for user_id in service.get_member_user_ids(group_id):
        store.invalidate_user(user_id)


@router.post("", response_model=GroupResponse, status_code=201)
async def create_group(
    group_data: GroupCreate,
    resolver: PermissionResolver = Depends(require_page_write(GROUPS_PAGE)),
    service: GroupService = Depends(get_group_service)
):
    """Create a new group"""
    return service.create_group(group_data)


@router.get("", response_model=List[GroupResponse])
async def list_groups(
    limit: int = 100,
    offset: int = 0,
    resolver: PermissionResolver = Depends(require_page_read(GROUPS_PAGE)),
    service: GroupService = Depends(get_group_service)
):
    """List groups"""
    return service.list_groups(limit=limit, offset=offset)


@router.get("/{group_id}", response_model=GroupWithPermissionsResponse)
async def get_group(
    group_id: str,
    resolver: PermissionResolver = Depends(require_page_read(GROUPS_PAGE)),
    service: GroupService = Depends(get_group_service)
):
    """Get group with its permissions and member count"""
    return service.get_group_with_permissions(group_id)


@router.put("/{group_id}", response_model=GroupResponse)
async def update_group(
    group_id: str,
    group_data: GroupUpdate,
    resolver: PermissionResolver = Depends(require_page_write(GROUPS_PAGE)),
    service: GroupService = Depends(get_group_service),
    store: SessionStore = Depends(get_session_store)
):
    """Update group (system groups cannot be renamed)"""
    group = service.update_group(group_id, group_data)
    invalidate_members(service, store, group_id)
    return group


@router.delete("/{group_id}", status_code=204)
async def delete_group(
    group_id: str,
    resolver: PermissionResolver = Depends(require_page_write(GROUPS_PAGE)),
    service: GroupService = Depends(get_group_service),
    store: SessionStore = Depends(get_session_store)
):
    """Delete group (system groups cannot be deleted)"""
    for user_id in service.delete_group(group_id):
        store.invalidate_user(user_id)
    return None


@router.get("/{group_id}/members", response_model=List[GroupMemberResponse])
async def list_members(
    group_id: str,
    resolver: PermissionResolver = Depends(require_page_read(GROUPS_PAGE)),
    service: GroupService = Depends(get_group_service)
):
    """List group members"""
    return service.list_members(group_id)


@router.post("/{group_id}/members", response_model=GroupMemberResponse, status_code=201)
async def add_member(
    group_id: str,
    member_data: GroupMemberAdd,
    resolver: PermissionResolver = Depends(require_page_write(GROUPS_PAGE)),
    service: GroupService = Depends(get_group_service),
    store: SessionStore = Depends(get_session_store)
):
    """Add a member to the group"""
    member = service.add_member(group_id, member_data)
    store.invalidate_user(member_data.user_id)
    return member


@router.delete("/{group_id}/members/{user_id}", status_code=204)
async def remove_member(
    group_id: str,
    user_id: str,
    resolver: PermissionResolver = Depends(require_page_write(GROUPS_PAGE)),
    service: GroupService = Depends(get_group_service),
    store: SessionStore = Depends(get_session_store)
):
    """Remove a member from the group"""
    service.remove_member(group_id, user_id)
    store.invalidate_user(user_id)
    return None


@router.get("/{group_id}/permissions", response_model=List[PermissionResponse])
async def get_group_permissions(
    group_id: str,
    resolver: PermissionResolver = Depends(require_page_read(GROUPS_PAGE)),
    service: GroupService = Depends(get_group_service)
):
    """Permissions granted to a group"""
    service.get_group_by_id(group_id)
    return service.get_group_permissions(group_id)


@router.put("/{group_id}/permissions", response_model=GroupPermissionsUpdateResponse)
async def replace_group_permissions(
    group_id: str,
    body: PermissionKeysUpdate,
    resolver: PermissionResolver = Depends(require_page_write(GROUPS_PAGE)),
    service: GroupService = Depends(get_group_service),
    store: SessionStore = Depends(get_session_store)
):
    """Replace all permissions of a group"""
    result = service.replace_group_permissions(group_id, body.permission_keys)
    invalidate_members(service, store, group_id)
    return result


@router.post("/{group_id}/permissions", response_model=PermissionResponse, status_code=201)
async def add_group_permission(
    group_id: str,
    grant: PermissionGrant,
    resolver: PermissionResolver = Depends(require_page_write(GROUPS_PAGE)),
    service: GroupService = Depends(get_group_service),
    store: SessionStore = Depends(get_session_store)
):
    """Grant one permission to a group"""
    permission = service.add_group_permission(group_id, grant.permission_key)
    invalidate_members(service, store, group_id)
    return permission


@router.delete("/{group_id}/permissions/{permission_key}", status_code=204)
async def remove_group_permission(
    group_id: str,
    permission_key: str,
    resolver: PermissionResolver = Depends(require_page_write(GROUPS_PAGE)),
    service: GroupService = Depends(get_group_service),
    store: SessionStore = Depends(get_session_store)
):
    """Remove one permission from a group"""
    service.remove_group_permission(group_id, permission_key)
    invalidate_members(service, store, group_id)
    return None
