from pydantic import BaseModel, EmailStr
from typing import Optional, List


class LoginRequest(BaseModel):
    email: EmailStr
    password: str


class TokenResponse(BaseModel):
    access_token: str
    refresh_token: Optional[str] = None
    token_type: str = "bearer"
    expires_at: Optional[int] = None
    user_id: str
    email: str


class SystemStatusResponse(BaseModel):
    system_locked: bool
    message: str


class NavigationPage(BaseModel):
    page_key: str
    page_name: str
    can_write: bool


class NavigationResponse(BaseModel):
    app_key: str
    pages: List[NavigationPage]
