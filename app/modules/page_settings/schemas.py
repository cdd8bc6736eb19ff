from pydantic import BaseModel
from typing import Optional
from datetime import datetime


class PageSettingResponse(BaseModel):
    id: str
    app_key: str
    page_key: str
    page_name: str
    is_visible: bool
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class PageSettingUpdate(BaseModel):
    is_visible: bool


class PageVisibilityResponse(BaseModel):
    app_key: str
    page_key: str
    is_visible: bool
    can_read: bool
    can_write: bool
