import logging
from datetime import datetime, timezone
from supabase import Client
from app.config.permissions_config import WILDCARD
from app.core.session import SessionLoader
from app.modules.users.schemas import (
    UserCreate, UserUpdate, UserResponse, UserWithPermissionsResponse,
    UserGroupAdd, UserGroupResponse
)
from app.modules.permissions.schemas import PermissionResponse
from app.modules.permissions.service import PermissionService
from typing import List, Optional
from fastapi import HTTPException

logger = logging.getLogger(__name__)

USER_TABLES = ("u_group_members", "u_user_permissions", "u_channel_access")


def delete_user_rows(supabase: Client, user_id: str) -> bool:
    """Delete a u_users row together with its memberships, direct grants and channel access"""
    for table in USER_TABLES:
        supabase.table(table)\
            .delete()\
            .eq("user_id", user_id)\
            .execute()

    result = supabase.table("u_users")\
        .delete()\
        .eq("id", user_id)\
        .execute()
    return len(result.data) > 0


class UserService:
    def __init__(self, supabase: Client):
        self.supabase = supabase

    def get_user_by_id(self, user_id: str) -> UserResponse:
        """Get user by ID"""
        try:
            result = self.supabase.table("u_users")\
                .select("*")\
                .eq("id", user_id)\
                .limit(1)\
                .execute()

            if not result.data:
                raise HTTPException(status_code=404, detail="User not found")

            return UserResponse(**result.data[0])
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def list_users(
        self,
        limit: int = 50,
        offset: int = 0,
        status: Optional[str] = None
    ) -> List[UserResponse]:
        """List users, newest first, optionally filtered by status"""
        try:
            query = self.supabase.table("u_users").select("*")
            if status:
                query = query.eq("status", status)
            result = query.order("created_at", desc=True)\
                .limit(limit)\
                .offset(offset)\
                .execute()
            return [UserResponse(**user) for user in result.data]
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def create_user(self, user_data: UserCreate, created_by: Optional[str] = None) -> UserResponse:
        """
        Create an auth identity and its u_users row, then add group memberships.
        The auth user is removed again if the row cannot be written.
        """
        email = str(user_data.email)
        try:
            existing = self.supabase.table("u_users")\
                .select("id")\
                .eq("email", email)\
                .execute()

            if existing.data:
                raise HTTPException(status_code=400, detail="A user with this email already exists")

            if user_data.group_ids:
                groups = self.supabase.table("u_groups")\
                    .select("id")\
                    .in_("id", user_data.group_ids)\
                    .execute()
                missing = set(user_data.group_ids) - {g["id"] for g in groups.data or []}
                if missing:
                    raise HTTPException(status_code=404, detail=f"Unknown groups: {', '.join(sorted(missing))}")
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

        try:
            auth_response = self.supabase.auth.admin.create_user({
                "email": email,
                "password": user_data.password,
                "email_confirm": True
            })
        except Exception as e:
            if "already" in str(e).lower():
                raise HTTPException(status_code=400, detail="A user with this email already exists")
            raise HTTPException(status_code=500, detail=f"Failed to create auth user: {e}")

        auth_user_id = auth_response.user.id
        try:
            result = self.supabase.table("u_users").insert({
                "auth_user_id": auth_user_id,
                "email": email,
                "full_name": user_data.full_name,
                "status": user_data.status.value,
                "is_superuser": False,
                "created_by": created_by
            }).execute()

            if not result.data:
                raise RuntimeError("insert returned no row")
        except Exception as e:
            logger.error(f"Failed to create u_users row for {email}, removing auth user: {e}")
            self.supabase.auth.admin.delete_user(auth_user_id)
            raise HTTPException(status_code=500, detail=f"Failed to create user record: {e}")

        user = UserResponse(**result.data[0])
        if user_data.group_ids:
            try:
                self.supabase.table("u_group_members").insert([
                    {"user_id": user.id, "group_id": group_id} for group_id in user_data.group_ids
                ]).execute()
            except Exception as e:
                # The user exists; memberships can be added afterwards
                logger.error(f"User {user.id} created but group memberships failed: {e}")

        logger.info(f"User {user.id} created ({email})")
        return user

    def reset_password(self, user_id: str, new_password: str) -> UserResponse:
        """Set a new password on the user's auth identity"""
        user = self.get_user_by_id(user_id)
        if not user.auth_user_id:
            raise HTTPException(status_code=400, detail="User has no auth identity")
        try:
            self.supabase.auth.admin.update_user_by_id(user.auth_user_id, {"password": new_password})
        except Exception as e:
            raise HTTPException(status_code=500, detail=f"Failed to reset password: {e}")
        logger.info(f"Password reset for user {user_id}")
        return user

    def update_user(self, user_id: str, user_data: UserUpdate) -> UserResponse:
        """Update profile fields and/or status"""
        try:
            update_data = {"updated_at": datetime.now(timezone.utc).isoformat()}
            if user_data.full_name is not None:
                update_data["full_name"] = user_data.full_name
            if user_data.avatar_url is not None:
                update_data["avatar_url"] = user_data.avatar_url
            if user_data.status is not None:
                update_data["status"] = user_data.status.value

            result = self.supabase.table("u_users")\
                .update(update_data)\
                .eq("id", user_id)\
                .execute()

            if not result.data:
                raise HTTPException(status_code=404, detail="User not found")

            return UserResponse(**result.data[0])
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def count_superusers(self) -> int:
        result = self.supabase.table("u_users")\
            .select("id")\
            .eq("is_superuser", True)\
            .execute()
        return len(result.data or [])

    def set_superuser(self, user_id: str, is_superuser: bool) -> UserResponse:
        """Set or clear the superuser flag. The last superuser cannot be demoted."""
        try:
            user = self.get_user_by_id(user_id)
            if user.is_superuser and not is_superuser and self.count_superusers() <= 1:
                raise HTTPException(
                    status_code=400,
                    detail="Cannot remove the last superuser; the system would lock"
                )

            result = self.supabase.table("u_users")\
                .update({
                    "is_superuser": is_superuser,
                    "updated_at": datetime.now(timezone.utc).isoformat()
                })\
                .eq("id", user_id)\
                .execute()

            if not result.data:
                raise HTTPException(status_code=404, detail="User not found")

            logger.info(f"User {user_id} superuser flag set to {is_superuser}")
            return UserResponse(**result.data[0])
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def delete_user(self, user_id: str) -> bool:
        """Hard delete the user row and everything hanging off it"""
        try:
            user = self.get_user_by_id(user_id)
            if user.is_superuser and self.count_superusers() <= 1:
                raise HTTPException(
                    status_code=400,
                    detail="Cannot delete the last superuser; the system would lock"
                )

            return delete_user_rows(self.supabase, user_id)
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def get_user_with_permissions(self, user_id: str) -> UserWithPermissionsResponse:
        """Get user with groups, effective permissions and direct grants"""
        user = self.get_user_by_id(user_id)
        try:
            loader = SessionLoader(self.supabase)
            groups = self.get_user_groups(user_id)
            if user.is_superuser:
                permissions = [WILDCARD]
                direct_permissions: List[str] = []
            else:
                direct_permissions = loader.get_permission_keys(loader.get_direct_permission_ids(user_id))
                group_permissions = loader.get_permission_keys(
                    loader.get_group_permission_ids([g["id"] for g in groups])
                )
                permissions = sorted(set(group_permissions) | set(direct_permissions))

            return UserWithPermissionsResponse(
                **user.model_dump(),
                groups=groups,
                permissions=permissions,
                direct_permissions=sorted(direct_permissions)
            )
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def get_user_groups(self, user_id: str) -> List[dict]:
        """Get all groups for a user"""
        try:
            members_result = self.supabase.table("u_group_members")\
                .select("group_id")\
                .eq("user_id", user_id)\
                .execute()
            group_ids = [m["group_id"] for m in members_result.data or []]
            if not group_ids:
                return []

            result = self.supabase.table("u_groups")\
                .select("*")\
                .in_("id", group_ids)\
                .order("name")\
                .execute()
            return result.data or []
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def add_user_to_group(self, user_id: str, group_data: UserGroupAdd) -> UserGroupResponse:
        """Add user to a group"""
        try:
            # Verify user exists
            self.get_user_by_id(user_id)

            # Verify group exists
            group_result = self.supabase.table("u_groups")\
                .select("id")\
                .eq("id", group_data.group_id)\
                .limit(1)\
                .execute()

            if not group_result.data:
                raise HTTPException(status_code=404, detail="Group not found")

            # Check if already a member
            existing = self.supabase.table("u_group_members")\
                .select("id")\
                .eq("user_id", user_id)\
                .eq("group_id", group_data.group_id)\
                .execute()

            if existing.data:
                raise HTTPException(status_code=400, detail="User already a member of this group")

            result = self.supabase.table("u_group_members").insert({
                "user_id": user_id,
                "group_id": group_data.group_id
            }).execute()

            if not result.data:
                raise HTTPException(status_code=500, detail="Failed to add user to group")

            return UserGroupResponse(**result.data[0])
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def remove_user_from_group(self, user_id: str, group_id: str) -> bool:
        """Remove user from a group"""
        try:
            result = self.supabase.table("u_group_members")\
                .delete()\
                .eq("user_id", user_id)\
                .eq("group_id", group_id)\
                .execute()

            return len(result.data) > 0
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def list_direct_permissions(self, user_id: str) -> List[PermissionResponse]:
        """Permissions granted directly to the user (not through groups)"""
        loader = SessionLoader(self.supabase)
        try:
            permission_ids = loader.get_direct_permission_ids(user_id)
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))
        return PermissionService(self.supabase).get_permissions_by_ids(permission_ids)

    def grant_permission(self, user_id: str, permission_key: str) -> PermissionResponse:
        """Grant a catalog permission directly to a user"""
        self.get_user_by_id(user_id)
        permission = PermissionService(self.supabase).get_permission_by_key(permission_key)
        try:
            existing = self.supabase.table("u_user_permissions")\
                .select("id")\
                .eq("user_id", user_id)\
                .eq("permission_id", permission.id)\
                .execute()

            if existing.data:
                raise HTTPException(status_code=400, detail="Permission already granted to user")

            self.supabase.table("u_user_permissions").insert({
                "user_id": user_id,
                "permission_id": permission.id
            }).execute()
            return permission
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def revoke_permission(self, user_id: str, permission_key: str) -> bool:
        """Revoke a direct grant"""
        permission = PermissionService(self.supabase).get_permission_by_key(permission_key)
        try:
            result = self.supabase.table("u_user_permissions")\
                .delete()\
                .eq("user_id", user_id)\
                .eq("permission_id", permission.id)\
                .execute()

            return len(result.data) > 0
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))
