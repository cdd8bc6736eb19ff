import logging
from supabase import Client
from app.modules.audit.schemas import AuditLogResponse
from typing import Any, Dict, List, Optional
from fastapi import HTTPException

logger = logging.getLogger(__name__)


def record_audit(
    supabase: Client,
    action: str,
    resource_type: str,
    resource_id: Optional[str] = None,
    resource_name: Optional[str] = None,
    actor_id: Optional[str] = None,
    actor_email: Optional[str] = None,
    new_values: Optional[Dict[str, Any]] = None,
    old_values: Optional[Dict[str, Any]] = None,
    app_key: str = "system"
) -> bool:
    """
    Append an audit row. The audited action has already happened, so a
    failed insert is logged and reported as False instead of raised.
    """
    try:
        supabase.table("u_audit_log").insert({
            "user_id": actor_id,
            "user_email": actor_email,
            "app_key": app_key,
            "action": action,
            "resource_type": resource_type,
            "resource_id": resource_id,
            "resource_name": resource_name,
            "old_values": old_values,
            "new_values": new_values
        }).execute()
        return True
    except Exception as e:
        logger.error(f"Audit log insert failed for {action} {resource_type} {resource_id}: {e}")
        return False


class AuditLogService:
    def __init__(self, supabase: Client):
        self.supabase = supabase

    def list_entries(
        self,
        limit: int = 100,
        offset: int = 0,
        resource_type: Optional[str] = None,
        action: Optional[str] = None
    ) -> List[AuditLogResponse]:
        """Audit entries, newest first"""
        try:
            query = self.supabase.table("u_audit_log").select("*")
            if resource_type:
                query = query.eq("resource_type", resource_type)
            if action:
                query = query.eq("action", action)
            result = query.order("created_at", desc=True)\
                .limit(limit)\
                .offset(offset)\
                .execute()
            return [AuditLogResponse(**row) for row in result.data or []]
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))
