import logging
from datetime import datetime, timezone
from supabase import Client
from app.modules.groups.schemas import (
    GroupCreate, GroupUpdate, GroupResponse, GroupWithPermissionsResponse,
    GroupMemberAdd, GroupMemberResponse, GroupPermissionsUpdateResponse
)
from app.modules.permissions.schemas import PermissionResponse
from app.modules.permissions.service import PermissionService
from typing import List
from fastapi import HTTPException

logger = logging.getLogger(__name__)


class GroupService:
    def __init__(self, supabase: Client):
        self.supabase = supabase

    def create_group(self, group_data: GroupCreate) -> GroupResponse:
        """Create a new (non-system) group"""
        try:
            existing = self.supabase.table("u_groups")\
                .select("id")\
                .eq("name", group_data.name)\
                .execute()

            if existing.data:
                raise HTTPException(status_code=400, detail="Group name already exists")

            result = self.supabase.table("u_groups").insert({
                "name": group_data.name,
                "description": group_data.description,
                "color": group_data.color,
                "is_system": False
            }).execute()

            if not result.data:
                raise HTTPException(status_code=500, detail="Failed to create group")

            return GroupResponse(**result.data[0])
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def get_group_by_id(self, group_id: str) -> GroupResponse:
        """Get group by ID"""
        try:
            result = self.supabase.table("u_groups")\
                .select("*")\
                .eq("id", group_id)\
                .limit(1)\
                .execute()

            if not result.data:
                raise HTTPException(status_code=404, detail="Group not found")

            return GroupResponse(**result.data[0])
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def update_group(self, group_id: str, group_data: GroupUpdate) -> GroupResponse:
        """Update group. System groups keep their name."""
        group = self.get_group_by_id(group_id)
        if group.is_system and group_data.name and group_data.name != group.name:
            raise HTTPException(status_code=400, detail="System groups cannot be renamed")

        try:
            update_data = {"updated_at": datetime.now(timezone.utc).isoformat()}
            if group_data.name and group_data.name != group.name:
                existing = self.supabase.table("u_groups")\
                    .select("id")\
                    .eq("name", group_data.name)\
                    .execute()

                if existing.data:
                    raise HTTPException(status_code=400, detail="Group name already exists")

                update_data["name"] = group_data.name
            if group_data.description is not None:
                update_data["description"] = group_data.description
            if group_data.color is not None:
                update_data["color"] = group_data.color

            result = self.supabase.table("u_groups")\
                .update(update_data)\
                .eq("id", group_id)\
                .execute()

            if not result.data:
                raise HTTPException(status_code=404, detail="Group not found")

            return GroupResponse(**result.data[0])
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def list_groups(self, limit: int = 100, offset: int = 0) -> List[GroupResponse]:
        """List groups by name"""
        try:
            result = self.supabase.table("u_groups")\
                .select("*")\
                .order("name")\
                .limit(limit)\
                .offset(offset)\
                .execute()
            return [GroupResponse(**group) for group in result.data]
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def delete_group(self, group_id: str) -> List[str]:
        """Delete a non-system group; returns the user ids that were members"""
        group = self.get_group_by_id(group_id)
        if group.is_system:
            raise HTTPException(status_code=400, detail="System groups cannot be deleted")

        try:
            member_ids = self.get_member_user_ids(group_id)

            self.supabase.table("u_group_members")\
                .delete()\
                .eq("group_id", group_id)\
                .execute()

            self.supabase.table("u_group_permissions")\
                .delete()\
                .eq("group_id", group_id)\
                .execute()

            self.supabase.table("u_groups")\
                .delete()\
                .eq("id", group_id)\
                .execute()

            logger.info(f"Deleted group {group.name} ({len(member_ids)} members)")
            return member_ids
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def get_member_user_ids(self, group_id: str) -> List[str]:
        result = self.supabase.table("u_group_members")\
            .select("user_id")\
            .eq("group_id", group_id)\
            .execute()
        return [m["user_id"] for m in result.data or []]

    def add_member(self, group_id: str, member_data: GroupMemberAdd) -> GroupMemberResponse:
        """Add a member to the group"""
        self.get_group_by_id(group_id)
        try:
            user_result = self.supabase.table("u_users")\
                .select("id")\
                .eq("id", member_data.user_id)\
                .limit(1)\
                .execute()

            if not user_result.data:
                raise HTTPException(status_code=404, detail="User not found")

            existing = self.supabase.table("u_group_members")\
                .select("id")\
                .eq("group_id", group_id)\
                .eq("user_id", member_data.user_id)\
                .execute()

            if existing.data:
                raise HTTPException(status_code=400, detail="User already a member of this group")

            result = self.supabase.table("u_group_members").insert({
                "group_id": group_id,
                "user_id": member_data.user_id
            }).execute()

            if not result.data:
                raise HTTPException(status_code=500, detail="Failed to add member")

            return GroupMemberResponse(**result.data[0])
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def remove_member(self, group_id: str, user_id: str) -> bool:
        """Remove a member from the group"""
        try:
            result = self.supabase.table("u_group_members")\
                .delete()\
                .eq("group_id", group_id)\
                .eq("user_id", user_id)\
                .execute()

            return len(result.data) > 0
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def list_members(self, group_id: str) -> List[GroupMemberResponse]:
        """List all members of a group"""
        self.get_group_by_id(group_id)
        try:
            result = self.supabase.table("u_group_members")\
                .select("*")\
                .eq("group_id", group_id)\
                .execute()

            return [GroupMemberResponse(**member) for member in result.data]
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def get_group_permissions(self, group_id: str) -> List[PermissionResponse]:
        """Catalog entries granted to a group"""
        try:
            result = self.supabase.table("u_group_permissions")\
                .select("permission_id")\
                .eq("group_id", group_id)\
                .execute()
            permission_ids = [r["permission_id"] for r in result.data or []]
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))
        return PermissionService(self.supabase).get_permissions_by_ids(permission_ids)

    def get_group_with_permissions(self, group_id: str) -> GroupWithPermissionsResponse:
        group = self.get_group_by_id(group_id)
        try:
            member_count = len(self.get_member_user_ids(group_id))
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))
        return GroupWithPermissionsResponse(
            **group.model_dump(),
            permissions=self.get_group_permissions(group_id),
            member_count=member_count
        )

    def replace_group_permissions(self, group_id: str, permission_keys: List[str]) -> GroupPermissionsUpdateResponse:
        """Replace every permission of a group with the given keys"""
        self.get_group_by_id(group_id)
        # Unknown keys fail with 404 before anything is deleted
        permission_ids = PermissionService(self.supabase).get_permission_ids(permission_keys)

        try:
            self.supabase.table("u_group_permissions")\
                .delete()\
                .eq("group_id", group_id)\
                .execute()

            if permission_ids:
                insert_data = [
                    {"group_id": group_id, "permission_id": pid}
                    for pid in permission_ids.values()
                ]
                self.supabase.table("u_group_permissions").insert(insert_data).execute()

            keys = sorted(permission_ids)
            return GroupPermissionsUpdateResponse(
                group_id=group_id,
                assigned_count=len(keys),
                permission_keys=keys,
                message=f"Updated group with {len(keys)} permissions"
            )
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def add_group_permission(self, group_id: str, permission_key: str) -> PermissionResponse:
        """Grant one permission to a group"""
        self.get_group_by_id(group_id)
        permission = PermissionService(self.supabase).get_permission_by_key(permission_key)
        try:
            existing = self.supabase.table("u_group_permissions")\
                .select("id")\
                .eq("group_id", group_id)\
                .eq("permission_id", permission.id)\
                .execute()

            if existing.data:
                raise HTTPException(status_code=400, detail="Permission already assigned to group")

            self.supabase.table("u_group_permissions").insert({
                "group_id": group_id,
                "permission_id": permission.id
            }).execute()
            return permission
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def remove_group_permission(self, group_id: str, permission_key: str) -> bool:
        """Remove one permission from a group"""
        permission = PermissionService(self.supabase).get_permission_by_key(permission_key)
        try:
            result = self.supabase.table("u_group_permissions")\
                .delete()\
                .eq("group_id", group_id)\
                .eq("permission_id", permission.id)\
                .execute()

            return len(result.data) > 0
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))
