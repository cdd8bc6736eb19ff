import logging
from datetime import datetime, timezone
from supabase import Client
from app.config.permissions_config import DEFAULT_PAGES
from app.modules.page_settings.schemas import PageSettingResponse
from typing import Dict, List, Optional
from fastapi import HTTPException

logger = logging.getLogger(__name__)


class PageSettingService:
    def __init__(self, supabase: Client):
        self.supabase = supabase

    def list_page_settings(self, app_key: str) -> List[PageSettingResponse]:
        """List page settings for an app"""
        try:
            result = self.supabase.table("u_page_settings")\
                .select("*")\
                .eq("app_key", app_key)\
                .order("page_key")\
                .execute()
            return [PageSettingResponse(**row) for row in result.data]
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def get_visibility(self, app_key: str) -> Dict[str, bool]:
        """page_key -> is_visible. On error every page defaults to visible."""
        try:
            result = self.supabase.table("u_page_settings")\
                .select("page_key, is_visible")\
                .eq("app_key", app_key)\
                .execute()
            return {row["page_key"]: bool(row["is_visible"]) for row in result.data or []}
        except Exception as e:
            logger.error(f"Error fetching page settings for {app_key}: {e}")
            return {}

    def is_page_visible(self, app_key: str, page_key: str, visibility: Optional[Dict[str, bool]] = None) -> bool:
        """Pages without a setting are visible"""
        if visibility is None:
            visibility = self.get_visibility(app_key)
        return visibility.get(page_key, True)

    def get_page_names(self, app_key: str) -> Dict[str, str]:
        """Known pages for an app: built-in defaults plus any extra rows in u_page_settings"""
        pages = dict(DEFAULT_PAGES.get(app_key, {}))
        try:
            result = self.supabase.table("u_page_settings")\
                .select("page_key, page_name")\
                .eq("app_key", app_key)\
                .execute()
            for row in result.data or []:
                pages[row["page_key"]] = row.get("page_name") or pages.get(row["page_key"], row["page_key"])
        except Exception as e:
            logger.error(f"Error fetching page names for {app_key}: {e}")
        return pages

    def update_page_visibility(self, app_key: str, page_key: str, is_visible: bool) -> PageSettingResponse:
        """Show or hide a page"""
        try:
            result = self.supabase.table("u_page_settings")\
                .update({
                    "is_visible": is_visible,
                    "updated_at": datetime.now(timezone.utc).isoformat()
                })\
                .eq("app_key", app_key)\
                .eq("page_key", page_key)\
                .execute()

            if not result.data:
                raise HTTPException(status_code=404, detail="Page setting not found")

            logger.info(f"Page {app_key}/{page_key} visibility set to {is_visible}")
            return PageSettingResponse(**result.data[0])
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))
