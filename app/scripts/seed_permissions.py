"""
Seed Permissions Script
Populates u_permissions from the catalog in permissions_config, creates the
built-in Administrators group with every system permission, and adds the
default u_page_settings rows. Safe to re-run.
"""

import sys
from pathlib import Path

# Add project root to path
project_root = Path(__file__).parent.parent.parent
sys.path.insert(0, str(project_root))

from app.config.permissions_config import (
    ADMINISTRATORS_GROUP,
    DEFAULT_PAGES,
    get_administrator_permission_keys,
    get_permission_catalog,
)
from app.database.supabase_client import get_service_supabase
from supabase import Client
from typing import Dict, List
import logging

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


def seed_permissions(supabase: Client) -> Dict[str, str]:
    """Seed the catalog; returns key -> permission id"""
    logger.info("Seeding permissions...")

    created_count = 0
    updated_count = 0
    permission_ids: Dict[str, str] = {}

    for perm in get_permission_catalog():
        try:
            existing = supabase.table("u_permissions")\
                .select("id")\
                .eq("app_key", perm["app_key"])\
                .eq("resource", perm["resource"])\
                .eq("action", perm["action"])\
                .execute()

            if existing.data:
                # Only the description may change; the triple is immutable
                supabase.table("u_permissions")\
                    .update({"description": perm["description"]})\
                    .eq("id", existing.data[0]["id"])\
                    .execute()
                permission_ids[perm["key"]] = existing.data[0]["id"]
                updated_count += 1
                logger.debug(f"Updated permission: {perm['key']}")
            else:
                result = supabase.table("u_permissions").insert({
                    "app_key": perm["app_key"],
                    "resource": perm["resource"],
                    "action": perm["action"],
                    "description": perm["description"]
                }).execute()
                permission_ids[perm["key"]] = result.data[0]["id"]
                created_count += 1
                logger.debug(f"Created permission: {perm['key']}")
        except Exception as e:
            logger.error(f"Error processing permission {perm['key']}: {e}")

    logger.info(f"Permissions seeded: {created_count} created, {updated_count} updated")
    return permission_ids


def seed_administrators_group(supabase: Client, permission_ids: Dict[str, str]) -> str:
    """Create the Administrators system group and sync its permissions"""
    logger.info(f"Seeding {ADMINISTRATORS_GROUP} group...")

    existing = supabase.table("u_groups")\
        .select("id")\
        .eq("name", ADMINISTRATORS_GROUP)\
        .execute()

    if existing.data:
        group_id = existing.data[0]["id"]
        supabase.table("u_groups")\
            .update({"is_system": True})\
            .eq("id", group_id)\
            .execute()
    else:
        result = supabase.table("u_groups").insert({
            "name": ADMINISTRATORS_GROUP,
            "description": "Full access to system administration",
            "is_system": True
        }).execute()
        group_id = result.data[0]["id"]

    wanted = {
        permission_ids[key]
        for key in get_administrator_permission_keys()
        if key in permission_ids
    }
    assign_permissions_to_group(supabase, group_id, ADMINISTRATORS_GROUP, wanted)
    return group_id


def assign_permissions_to_group(supabase: Client, group_id: str, group_name: str, permission_ids: set):
    """Make the group's permissions match permission_ids exactly"""
    try:
        existing_result = supabase.table("u_group_permissions")\
            .select("permission_id")\
            .eq("group_id", group_id)\
            .execute()

        existing_permission_ids = {p["permission_id"] for p in existing_result.data} if existing_result.data else set()

        new_assignments = [
            {"group_id": group_id, "permission_id": pid}
            for pid in permission_ids
            if pid not in existing_permission_ids
        ]

        if new_assignments:
            supabase.table("u_group_permissions").insert(new_assignments).execute()
            logger.debug(f"Assigned {len(new_assignments)} permissions to group {group_name}")

        permissions_to_remove = existing_permission_ids - set(permission_ids)
        if permissions_to_remove:
            supabase.table("u_group_permissions")\
                .delete()\
                .eq("group_id", group_id)\
                .in_("permission_id", list(permissions_to_remove))\
                .execute()
            logger.debug(f"Removed {len(permissions_to_remove)} permissions from group {group_name}")

    except Exception as e:
        logger.error(f"Error assigning permissions to group {group_name}: {e}")


def seed_page_settings(supabase: Client) -> int:
    """Insert missing page settings rows; existing visibility is left alone"""
    logger.info("Seeding page settings...")

    created_count = 0
    for app_key, pages in DEFAULT_PAGES.items():
        try:
            existing = supabase.table("u_page_settings")\
                .select("page_key")\
                .eq("app_key", app_key)\
                .execute()
            known = {row["page_key"] for row in existing.data or []}

            rows: List[dict] = [
                {"app_key": app_key, "page_key": page_key, "page_name": page_name, "is_visible": True}
                for page_key, page_name in pages.items()
                if page_key not in known
            ]
            if rows:
                supabase.table("u_page_settings").insert(rows).execute()
                created_count += len(rows)
        except Exception as e:
            logger.error(f"Error seeding page settings for {app_key}: {e}")

    logger.info(f"Page settings seeded: {created_count} created")
    return created_count


def main():
    """Seed permissions, the Administrators group and page settings"""
    try:
        supabase = get_service_supabase()

        logger.info("Starting permissions seeding...")

        permission_ids = seed_permissions(supabase)
        seed_administrators_group(supabase, permission_ids)
        page_count = seed_page_settings(supabase)

        logger.info("Seeding completed successfully!")
        logger.info(f"Total: {len(permission_ids)} permissions, {page_count} new pages")

    except Exception as e:
        logger.error(f"Error during seeding: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
