from fastapi import APIRouter, Depends
from app.database.supabase_client import get_supabase
from app.modules.weather.schemas import (
    WeatherLocationCreate, WeatherLocationNameUpdate, WeatherLocationResponse
)
from app.modules.weather.service import WeatherLocationService
from app.core.dependencies import require_page_read, require_page_write
from app.core.permissions import PermissionResolver
from supabase import Client
from typing import List, Optional

router = APIRouter(prefix="/weather", tags=["weather"])

WEATHER_PAGE = "weather"


def get_weather_service(supabase: Client = Depends(get_supabase)) -> WeatherLocationService:
    return WeatherLocationService(supabase)


@router.get("/locations", response_model=List[WeatherLocationResponse])
async def list_locations(
    provider_id: Optional[str] = None,
    channel_id: Optional[str] = None,
    resolver: PermissionResolver = Depends(require_page_read(WEATHER_PAGE)),
    service: WeatherLocationService = Depends(get_weather_service)
):
    """List monitored locations"""
    return service.list_locations(provider_id=provider_id, channel_id=channel_id)


@router.get("/locations/{location_id}", response_model=WeatherLocationResponse)
async def get_location(
    location_id: str,
    resolver: PermissionResolver = Depends(require_page_read(WEATHER_PAGE)),
    service: WeatherLocationService = Depends(get_weather_service)
):
    return service.get_location(location_id)


@router.post("/locations", response_model=WeatherLocationResponse, status_code=201)
async def create_location(
    location: WeatherLocationCreate,
    resolver: PermissionResolver = Depends(require_page_write(WEATHER_PAGE)),
    service: WeatherLocationService = Depends(get_weather_service)
):
    """Add a monitored location"""
    return service.create_location(location, user_id=resolver.user.id)


@router.put("/locations/{location_id}", response_model=WeatherLocationResponse)
async def update_location_name(
    location_id: str,
    update: WeatherLocationNameUpdate,
    resolver: PermissionResolver = Depends(require_page_write(WEATHER_PAGE)),
    service: WeatherLocationService = Depends(get_weather_service)
):
    """Override the displayed name (null, empty or the provider name clears it)"""
    return service.update_location_name(location_id, update, user_id=resolver.user.id)


@router.post("/locations/{location_id}/revert", response_model=WeatherLocationResponse)
async def revert_location_name(
    location_id: str,
    resolver: PermissionResolver = Depends(require_page_write(WEATHER_PAGE)),
    service: WeatherLocationService = Depends(get_weather_service)
):
    """Restore the provider-sourced name"""
    return service.revert_location_name(location_id)


@router.delete("/locations/{location_id}", status_code=204)
async def delete_location(
    location_id: str,
    resolver: PermissionResolver = Depends(require_page_write(WEATHER_PAGE)),
    service: WeatherLocationService = Depends(get_weather_service)
):
    service.delete_location(location_id)
    return None
