from fastapi import APIRouter, Depends, HTTPException, Security
from fastapi.security import HTTPAuthorizationCredentials
from app.database.supabase_client import get_supabase
from app.modules.auth.schemas import (
    LoginRequest, TokenResponse, SystemStatusResponse, NavigationResponse, NavigationPage
)
from app.modules.page_settings.service import PageSettingService
from app.config.settings import settings
from app.core.dependencies import (
    SYSTEM_LOCKED_DETAIL,
    get_auth_service,
    get_current_user_id,
    get_session_loader,
    get_session_store,
    require_session,
    require_unlocked,
    security,
    snapshot_summary,
)
from app.core.permissions import PermissionResolver
from app.core.session import SessionLoader, SessionStore
from app.modules.auth.service import AuthService
from supabase import Client
from typing import Dict, Optional

router = APIRouter(prefix="/auth", tags=["auth"])


def get_page_setting_service(supabase: Client = Depends(get_supabase)) -> PageSettingService:
    return PageSettingService(supabase)


@router.get("/status", response_model=SystemStatusResponse)
async def system_status(loader: SessionLoader = Depends(get_session_loader)):
    """Whether the system is locked (no superuser yet). Needs no token."""
    locked = loader.check_system_locked()
    return SystemStatusResponse(
        system_locked=locked,
        message=SYSTEM_LOCKED_DETAIL if locked else "ok"
    )


@router.post("/login", response_model=TokenResponse)
async def login(
    login_data: LoginRequest,
    _snapshot=Depends(require_unlocked),
    service: AuthService = Depends(get_auth_service)
):
    """Login and get access token"""
    return service.login(login_data)


@router.post("/logout", status_code=200)
async def logout(
    credentials: Optional[HTTPAuthorizationCredentials] = Security(security),
    current_user: Dict = Depends(get_current_user_id),
    service: AuthService = Depends(get_auth_service),
    store: SessionStore = Depends(get_session_store)
):
    """Logout and drop the cached session snapshot"""
    store.invalidate(current_user["id"])
    service.logout(credentials.credentials)
    return {"message": "Logged out successfully"}


@router.get("/me")
async def get_current_user(resolver: PermissionResolver = Depends(require_session)):
    """Current session snapshot: user, groups, effective permissions, channel access"""
    return snapshot_summary(resolver)


@router.post("/refresh")
async def refresh_session(
    current_user: Dict = Depends(get_current_user_id),
    _snapshot=Depends(require_unlocked),
    loader: SessionLoader = Depends(get_session_loader),
    store: SessionStore = Depends(get_session_store)
):
    """Reload the session snapshot (e.g. after permission changes)"""
    snapshot = store.refresh(current_user["id"], loader, check_lock=False)
    if not snapshot.is_authenticated:
        raise HTTPException(status_code=401, detail="Not authenticated")
    return snapshot_summary(PermissionResolver(snapshot))


@router.get("/navigation", response_model=NavigationResponse)
async def get_navigation(
    app_key: Optional[str] = None,
    resolver: PermissionResolver = Depends(require_session),
    service: PageSettingService = Depends(get_page_setting_service)
):
    """Menu pages for an app: visible per page settings and readable per permissions"""
    app_key = app_key or settings.default_app_key
    visibility = service.get_visibility(app_key)
    pages = []
    for page_key, page_name in service.get_page_names(app_key).items():
        if not service.is_page_visible(app_key, page_key, visibility):
            continue
        if not resolver.can_read_page(page_key):
            continue
        pages.append(NavigationPage(
            page_key=page_key,
            page_name=page_name,
            can_write=resolver.can_write_page(page_key)
        ))
    return NavigationResponse(app_key=app_key, pages=pages)
