from fastapi import APIRouter, Depends
from app.database.supabase_client import get_supabase
from app.modules.channels.schemas import (
    ChannelAccessUpsert, ChannelAccessResponse, ChannelWriteCheckResponse
)
from app.modules.channels.service import ChannelAccessService
from app.core.dependencies import (
    get_session_store, require_page_read, require_page_write, require_session
)
from app.core.permissions import PermissionResolver
from app.core.session import SessionStore
from supabase import Client
from typing import List, Optional

router = APIRouter(prefix="/channels", tags=["channels"])

CHANNELS_PAGE = "channels"


def get_channel_access_service(supabase: Client = Depends(get_supabase)) -> ChannelAccessService:
    return ChannelAccessService(supabase)


@router.get("/access", response_model=List[ChannelAccessResponse])
async def list_channel_access(
    user_id: Optional[str] = None,
    channel_id: Optional[str] = None,
    resolver: PermissionResolver = Depends(require_page_read(CHANNELS_PAGE)),
    service: ChannelAccessService = Depends(get_channel_access_service)
):
    """List per-user channel access"""
    return service.list_access(user_id=user_id, channel_id=channel_id)


@router.put("/access", response_model=ChannelAccessResponse)
async def upsert_channel_access(
    access: ChannelAccessUpsert,
    resolver: PermissionResolver = Depends(require_page_write(CHANNELS_PAGE)),
    service: ChannelAccessService = Depends(get_channel_access_service),
    store: SessionStore = Depends(get_session_store)
):
    """Grant or change a user's access to a channel"""
    row = service.upsert_access(access)
    store.invalidate_user(access.user_id)
    return row


@router.delete("/access/{user_id}/{channel_id}", status_code=204)
async def delete_channel_access(
    user_id: str,
    channel_id: str,
    resolver: PermissionResolver = Depends(require_page_write(CHANNELS_PAGE)),
    service: ChannelAccessService = Depends(get_channel_access_service),
    store: SessionStore = Depends(get_session_store)
):
    """Remove a user's access to a channel"""
    service.delete_access(user_id, channel_id)
    store.invalidate_user(user_id)
    return None


@router.get("/{channel_id}/access", response_model=ChannelWriteCheckResponse)
async def check_channel_write(
    channel_id: str,
    resolver: PermissionResolver = Depends(require_session)
):
    """Whether the current session may write to a channel"""
    return ChannelWriteCheckResponse(
        channel_id=channel_id,
        can_write=resolver.can_write_channel(channel_id)
    )
