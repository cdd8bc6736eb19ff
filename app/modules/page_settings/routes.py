from fastapi import APIRouter, Depends, HTTPException, status
from app.database.supabase_client import get_supabase
from app.modules.page_settings.schemas import (
    PageSettingResponse, PageSettingUpdate, PageVisibilityResponse
)
from app.modules.page_settings.service import PageSettingService
from app.config.permissions_config import APP_KEYS, SYSTEM_PERMISSIONS
from app.config.settings import settings
from app.core.dependencies import require_session
from app.core.permissions import PermissionResolver
from supabase import Client
from typing import List, Optional

router = APIRouter(prefix="/page-settings", tags=["page-settings"])


def get_page_setting_service(supabase: Client = Depends(get_supabase)) -> PageSettingService:
    return PageSettingService(supabase)


def _check_app_key(app_key: str) -> str:
    if app_key not in APP_KEYS:
        raise HTTPException(status_code=400, detail=f"Unknown app_key '{app_key}'")
    return app_key


@router.get("", response_model=List[PageSettingResponse])
async def list_page_settings(
    app_key: Optional[str] = None,
    resolver: PermissionResolver = Depends(require_session),
    service: PageSettingService = Depends(get_page_setting_service)
):
    """List page visibility settings for an app"""
    return service.list_page_settings(_check_app_key(app_key or settings.default_app_key))


@router.get("/{app_key}/{page_key}", response_model=PageVisibilityResponse)
async def get_page_visibility(
    app_key: str,
    page_key: str,
    resolver: PermissionResolver = Depends(require_session),
    service: PageSettingService = Depends(get_page_setting_service)
):
    """Visibility of one page plus the caller's read/write access to it"""
    _check_app_key(app_key)
    return PageVisibilityResponse(
        app_key=app_key,
        page_key=page_key,
        is_visible=service.is_page_visible(app_key, page_key),
        can_read=resolver.can_read_page(page_key),
        can_write=resolver.can_write_page(page_key)
    )


@router.put("/{app_key}/{page_key}", response_model=PageSettingResponse)
async def update_page_visibility(
    app_key: str,
    page_key: str,
    update: PageSettingUpdate,
    resolver: PermissionResolver = Depends(require_session),
    service: PageSettingService = Depends(get_page_setting_service)
):
    """Show or hide a page (admin or system.page_visibility.admin)"""
    _check_app_key(app_key)
    if not resolver.can_manage(SYSTEM_PERMISSIONS["MANAGE_PAGE_VISIBILITY"]):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=f"Insufficient permissions. Required: {SYSTEM_PERMISSIONS['MANAGE_PAGE_VISIBILITY']}"
        )
    return service.update_page_visibility(app_key, page_key, update.is_visible)
