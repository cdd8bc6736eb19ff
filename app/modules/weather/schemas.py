from pydantic import BaseModel, Field
from typing import Any, Optional
from datetime import datetime


class WeatherLocationCreate(BaseModel):
    # Bare string, or a tagged override object
    name: Any
    admin1: Optional[str] = None
    country: Optional[str] = None
    lat: float = Field(ge=-90, le=90)
    lon: float = Field(ge=-180, le=180)
    elevation_m: Optional[float] = None
    station_id: Optional[str] = None
    provider_id: Optional[str] = None
    channel_id: Optional[str] = None


class WeatherLocationNameUpdate(BaseModel):
    custom_name: Optional[str] = None
    reason: Optional[str] = None


class WeatherLocationResponse(BaseModel):
    id: str
    name: Any
    display_name: Optional[str] = None
    is_overridden: bool = False
    admin1: Optional[str] = None
    country: Optional[str] = None
    lat: Optional[float] = None
    lon: Optional[float] = None
    elevation_m: Optional[float] = None
    station_id: Optional[str] = None
    provider_id: Optional[str] = None
    channel_id: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
