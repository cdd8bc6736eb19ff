from fastapi import APIRouter, Depends, HTTPException, status
from app.database.supabase_client import get_supabase
from app.modules.users.schemas import (
    UserCreate, PasswordReset, UserUpdate, UserResponse, UserWithPermissionsResponse,
    SetSuperUserRequest, UserGroupAdd, UserGroupResponse
)
from app.modules.users.service import UserService
from app.modules.permissions.schemas import PermissionResponse, PermissionGrant
from app.modules.audit.service import record_audit
from app.core.dependencies import (
    get_session_store, require_page_read, require_page_write, require_session, require_superuser
)
from app.core.permissions import PermissionResolver
from app.core.session import SessionStore
from supabase import Client
from typing import List, Optional

router = APIRouter(prefix="/users", tags=["users"])

USERS_PAGE = "users_groups"


def get_user_service(supabase: Client = Depends(get_supabase)) -> UserService:
    return UserService(supabase)


def check_user_access(resolver: PermissionResolver, user_id: str) -> None:
    """Users may always read themselves; anyone else needs the users page"""
    if resolver.user is not None and resolver.user.id == user_id:
        return
    if not resolver.can_read_page(USERS_PAGE):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="User not accessible")


@router.get("", response_model=List[UserResponse])
async def list_users(
    limit: int = 50,
    offset: int = 0,
    user_status: Optional[str] = None,
    resolver: PermissionResolver = Depends(require_page_read(USERS_PAGE)),
    service: UserService = Depends(get_user_service)
):
    """List users (requires read access to the users page)"""
    return service.list_users(limit=limit, offset=offset, status=user_status)


@router.post("", response_model=UserResponse, status_code=201)
async def create_user(
    user_data: UserCreate,
    resolver: PermissionResolver = Depends(require_page_write(USERS_PAGE)),
    service: UserService = Depends(get_user_service),
    supabase: Client = Depends(get_supabase)
):
    """Create a user with a password and optional group memberships"""
    user = service.create_user(user_data, created_by=resolver.user.id)
    record_audit(
        supabase,
        action="create",
        resource_type="user",
        resource_id=user.id,
        resource_name=user.email,
        actor_id=resolver.user.id,
        actor_email=resolver.user.email,
        new_values={
            "email": user.email,
            "full_name": user.full_name,
            "status": user.status.value,
            "group_ids": user_data.group_ids
        }
    )
    return user


@router.get("/{user_id}", response_model=UserResponse)
async def get_user(
    user_id: str,
    resolver: PermissionResolver = Depends(require_session),
    service: UserService = Depends(get_user_service)
):
    """Get user by ID"""
    check_user_access(resolver, user_id)
    return service.get_user_by_id(user_id)


@router.get("/{user_id}/with-permissions", response_model=UserWithPermissionsResponse)
async def get_user_with_permissions(
    user_id: str,
    resolver: PermissionResolver = Depends(require_session),
    service: UserService = Depends(get_user_service)
):
    """Get user with groups and effective permissions"""
    check_user_access(resolver, user_id)
    return service.get_user_with_permissions(user_id)


@router.put("/{user_id}", response_model=UserResponse)
async def update_user(
    user_id: str,
    user_data: UserUpdate,
    resolver: PermissionResolver = Depends(require_page_write(USERS_PAGE)),
    service: UserService = Depends(get_user_service),
    store: SessionStore = Depends(get_session_store)
):
    """Update profile or status (pending -> active approves a user)"""
    user = service.update_user(user_id, user_data)
    store.invalidate_user(user_id)
    return user


@router.post("/{user_id}/reset-password", status_code=204)
async def reset_password(
    user_id: str,
    body: PasswordReset,
    resolver: PermissionResolver = Depends(require_page_write(USERS_PAGE)),
    service: UserService = Depends(get_user_service),
    supabase: Client = Depends(get_supabase)
):
    """Set a new password for a user (superuser passwords need a superuser)"""
    if service.get_user_by_id(user_id).is_superuser and not resolver.is_superuser:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Cannot reset a superuser's password")
    user = service.reset_password(user_id, body.new_password)
    record_audit(
        supabase,
        action="password_reset",
        resource_type="user",
        resource_id=user.id,
        resource_name=user.email,
        actor_id=resolver.user.id,
        actor_email=resolver.user.email
    )
    return None


@router.put("/{user_id}/superuser", response_model=UserResponse)
async def set_superuser(
    user_id: str,
    body: SetSuperUserRequest,
    resolver: PermissionResolver = Depends(require_superuser),
    service: UserService = Depends(get_user_service),
    store: SessionStore = Depends(get_session_store)
):
    """Grant or revoke superuser (superusers only)"""
    user = service.set_superuser(user_id, body.is_superuser)
    store.invalidate_user(user_id)
    return user


@router.delete("/{user_id}", status_code=204)
async def delete_user(
    user_id: str,
    resolver: PermissionResolver = Depends(require_page_write(USERS_PAGE)),
    service: UserService = Depends(get_user_service),
    store: SessionStore = Depends(get_session_store),
    supabase: Client = Depends(get_supabase)
):
    """Delete user with memberships, direct grants and channel access"""
    if resolver.user.id == user_id:
        raise HTTPException(status_code=400, detail="You cannot delete your own account")
    target = service.get_user_by_id(user_id)
    if target.is_superuser and not resolver.is_superuser:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Only superusers can delete a superuser")
    service.delete_user(user_id)
    store.invalidate_user(user_id)
    record_audit(
        supabase,
        action="delete",
        resource_type="user",
        resource_id=user_id,
        resource_name=target.email,
        actor_id=resolver.user.id,
        actor_email=resolver.user.email,
        old_values={"email": target.email, "status": target.status.value}
    )
    return None


@router.get("/{user_id}/groups", response_model=List[dict])
async def get_user_groups(
    user_id: str,
    resolver: PermissionResolver = Depends(require_session),
    service: UserService = Depends(get_user_service)
):
    """Get all groups for a user"""
    check_user_access(resolver, user_id)
    return service.get_user_groups(user_id)


@router.post("/{user_id}/groups", response_model=UserGroupResponse, status_code=201)
async def add_user_to_group(
    user_id: str,
    group_data: UserGroupAdd,
    resolver: PermissionResolver = Depends(require_page_write(USERS_PAGE)),
    service: UserService = Depends(get_user_service),
    store: SessionStore = Depends(get_session_store)
):
    """Add user to a group"""
    membership = service.add_user_to_group(user_id, group_data)
    store.invalidate_user(user_id)
    return membership


@router.delete("/{user_id}/groups/{group_id}", status_code=204)
async def remove_user_from_group(
    user_id: str,
    group_id: str,
    resolver: PermissionResolver = Depends(require_page_write(USERS_PAGE)),
    service: UserService = Depends(get_user_service),
    store: SessionStore = Depends(get_session_store)
):
    """Remove user from a group"""
    service.remove_user_from_group(user_id, group_id)
    store.invalidate_user(user_id)
    return None


@router.get("/{user_id}/permissions", response_model=List[PermissionResponse])
async def list_direct_permissions(
    user_id: str,
    resolver: PermissionResolver = Depends(require_session),
    service: UserService = Depends(get_user_service)
):
    """Direct permission grants for a user"""
    check_user_access(resolver, user_id)
    return service.list_direct_permissions(user_id)


@router.post("/{user_id}/permissions", response_model=PermissionResponse, status_code=201)
async def grant_permission(
    user_id: str,
    grant: PermissionGrant,
    resolver: PermissionResolver = Depends(require_page_write(USERS_PAGE)),
    service: UserService = Depends(get_user_service),
    store: SessionStore = Depends(get_session_store)
):
    """Grant a permission directly to a user"""
    permission = service.grant_permission(user_id, grant.permission_key)
    store.invalidate_user(user_id)
    return permission


@router.delete("/{user_id}/permissions/{permission_key}", status_code=204)
async def revoke_permission(
    user_id: str,
    permission_key: str,
    resolver: PermissionResolver = Depends(require_page_write(USERS_PAGE)),
    service: UserService = Depends(get_user_service),
    store: SessionStore = Depends(get_session_store)
):
    """Revoke a direct permission grant"""
    service.revoke_permission(user_id, permission_key)
    store.invalidate_user(user_id)
    return None
