from fastapi import APIRouter, Depends
from app.database.supabase_client import get_supabase
from app.modules.audit.schemas import AuditLogResponse
from app.modules.audit.service import AuditLogService
from app.config.permissions_config import SYSTEM_PERMISSIONS
from app.core.dependencies import require_permission
from app.core.permissions import PermissionResolver
from supabase import Client
from typing import List, Optional

router = APIRouter(prefix="/audit-log", tags=["audit-log"])


def get_audit_log_service(supabase: Client = Depends(get_supabase)) -> AuditLogService:
    return AuditLogService(supabase)


@router.get("", response_model=List[AuditLogResponse])
async def list_audit_log(
    limit: int = 100,
    offset: int = 0,
    resource_type: Optional[str] = None,
    action: Optional[str] = None,
    resolver: PermissionResolver = Depends(require_permission(SYSTEM_PERMISSIONS["VIEW_AUDIT_LOG"])),
    service: AuditLogService = Depends(get_audit_log_service)
):
    """Audit trail of user administration (system.audit_log.read)"""
    return service.list_entries(limit=limit, offset=offset, resource_type=resource_type, action=action)
