"""
Core dependencies for route protection and permission checking
"""

from fastapi import Depends, HTTPException, Request, Security, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from app.database.supabase_client import get_supabase
from app.modules.auth.service import AuthService
from app.core.permissions import PermissionResolver, SessionSnapshot
from app.core.session import SessionLoader, SessionStore, session_store
from supabase import Client
from typing import Optional, Dict
import logging

logger = logging.getLogger(__name__)

security = HTTPBearer(auto_error=False)

SYSTEM_LOCKED_DETAIL = "System locked: no superuser has been provisioned"


def get_auth_service(supabase: Client = Depends(get_supabase)) -> AuthService:
    return AuthService(supabase)


def get_session_store() -> SessionStore:
    return session_store


def get_session_loader(supabase: Client = Depends(get_supabase)) -> SessionLoader:
    return SessionLoader(supabase)


def get_current_user_id(
    credentials: Optional[HTTPAuthorizationCredentials] = Security(security),
    auth_service: AuthService = Depends(get_auth_service)
) -> dict:
    """Extract current auth user info from JWT token"""
    if credentials is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated"
        )
    return auth_service.get_current_user(credentials.credentials)


def get_session_snapshot(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Security(security),
    auth_service: AuthService = Depends(get_auth_service),
    loader: SessionLoader = Depends(get_session_loader),
    store: SessionStore = Depends(get_session_store)
) -> SessionSnapshot:
    """Resolve the request's session snapshot. The system lock is checked before anything else."""
    cached = getattr(request.state, "session_snapshot", None)
    if cached is not None:
        return cached

    if loader.check_system_locked():
        snapshot = SessionSnapshot.system_locked()
    elif credentials is None:
        snapshot = SessionSnapshot.unauthenticated()
    else:
        user_data = auth_service.get_current_user(credentials.credentials)
        snapshot = store.get_or_load(user_data["id"], loader, check_lock=False)

    request.state.session_snapshot = snapshot
    return snapshot


def require_unlocked(snapshot: SessionSnapshot = Depends(get_session_snapshot)) -> SessionSnapshot:
    if snapshot.is_system_locked:
        raise HTTPException(status_code=status.HTTP_423_LOCKED, detail=SYSTEM_LOCKED_DETAIL)
    return snapshot


def require_session(snapshot: SessionSnapshot = Depends(require_unlocked)) -> PermissionResolver:
    """Dependency for any signed-in user; returns their resolver"""
    if not snapshot.is_authenticated:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated"
        )
    return PermissionResolver(snapshot)


def require_permission(required_permission: str):
    """Factory function to create permission check dependency"""
    def check_permission(resolver: PermissionResolver = Depends(require_session)) -> PermissionResolver:
        if not resolver.has_permission(required_permission):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Insufficient permissions. Required: {required_permission}"
            )
        return resolver
    return check_permission


def require_page_read(page_key: str):
    """Factory for a dependency that requires read access to a page"""
    def check_page_read(resolver: PermissionResolver = Depends(require_session)) -> PermissionResolver:
        if not resolver.can_read_page(page_key):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Access denied: cannot read page '{page_key}'"
            )
        return resolver
    return check_page_read


def require_page_write(page_key: str):
    """Factory for a dependency that requires write access to a page"""
    def check_page_write(resolver: PermissionResolver = Depends(require_session)) -> PermissionResolver:
        if not resolver.can_write_page(page_key):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Access denied: cannot write page '{page_key}'"
            )
        return resolver
    return check_page_write


def require_superuser(resolver: PermissionResolver = Depends(require_session)) -> PermissionResolver:
    if not resolver.is_superuser:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Only superusers can perform this action"
        )
    return resolver


def snapshot_summary(resolver: PermissionResolver) -> Dict:
    """Session view for the frontend (auth/me, auth/refresh)"""
    snapshot = resolver.snapshot
    user = resolver.user
    return {
        "state": snapshot.state.value,
        "user": None if user is None else {
            "id": user.id,
            "auth_user_id": user.auth_user_id,
            "email": user.email,
            "full_name": user.full_name,
            "status": user.status.value,
            "is_superuser": user.is_superuser,
        },
        "groups": [{"id": g.id, "name": g.name, "is_system": g.is_system} for g in snapshot.groups],
        "permissions": sorted(resolver.permissions),
        "direct_permissions": sorted(snapshot.direct_permissions),
        "channel_access": [
            {"channel_id": c.channel_id, "can_write": c.can_write} for c in snapshot.channel_access
        ],
        "is_superuser": resolver.is_superuser,
        "is_admin": resolver.is_admin,
        "is_pending": resolver.is_pending,
        "is_active": resolver.is_active,
        "system_locked": snapshot.is_system_locked,
        "loaded_at": snapshot.loaded_at.isoformat(),
    }
