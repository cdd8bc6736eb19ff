from pydantic import BaseModel
from typing import Optional
from datetime import datetime


class ChannelAccessUpsert(BaseModel):
    user_id: str
    channel_id: str
    can_write: bool = False


class ChannelAccessResponse(BaseModel):
    id: str
    user_id: str
    channel_id: str
    can_write: bool = False
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class ChannelWriteCheckResponse(BaseModel):
    channel_id: str
    can_write: bool
