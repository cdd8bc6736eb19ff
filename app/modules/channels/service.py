import logging
from supabase import Client
from app.modules.channels.schemas import ChannelAccessUpsert, ChannelAccessResponse
from typing import List, Optional
from fastapi import HTTPException

logger = logging.getLogger(__name__)


class ChannelAccessService:
    def __init__(self, supabase: Client):
        self.supabase = supabase

    def list_access(
        self,
        user_id: Optional[str] = None,
        channel_id: Optional[str] = None
    ) -> List[ChannelAccessResponse]:
        """List channel access rows, optionally for one user or one channel"""
        try:
            query = self.supabase.table("u_channel_access").select("*")
            if user_id:
                query = query.eq("user_id", user_id)
            if channel_id:
                query = query.eq("channel_id", channel_id)
            result = query.order("channel_id").execute()
            return [ChannelAccessResponse(**row) for row in result.data]
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def upsert_access(self, access: ChannelAccessUpsert) -> ChannelAccessResponse:
        """Create or update the (user, channel) access row"""
        try:
            user_result = self.supabase.table("u_users")\
                .select("id")\
                .eq("id", access.user_id)\
                .limit(1)\
                .execute()

            if not user_result.data:
                raise HTTPException(status_code=404, detail="User not found")

            existing = self.supabase.table("u_channel_access")\
                .select("id")\
                .eq("user_id", access.user_id)\
                .eq("channel_id", access.channel_id)\
                .limit(1)\
                .execute()

            if existing.data:
                result = self.supabase.table("u_channel_access")\
                    .update({"can_write": access.can_write})\
                    .eq("id", existing.data[0]["id"])\
                    .execute()
            else:
                result = self.supabase.table("u_channel_access").insert({
                    "user_id": access.user_id,
                    "channel_id": access.channel_id,
                    "can_write": access.can_write
                }).execute()

            if not result.data:
                raise HTTPException(status_code=500, detail="Failed to save channel access")

            logger.info(
                f"Channel access for user {access.user_id} on {access.channel_id}: can_write={access.can_write}"
            )
            return ChannelAccessResponse(**result.data[0])
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def delete_access(self, user_id: str, channel_id: str) -> bool:
        """Remove a user's access row for a channel"""
        try:
            result = self.supabase.table("u_channel_access")\
                .delete()\
                .eq("user_id", user_id)\
                .eq("channel_id", channel_id)\
                .execute()

            return len(result.data) > 0
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))
