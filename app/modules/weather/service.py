import logging
from datetime import datetime, timezone
from supabase import Client
from app.core.field_override import (
    FieldOverride, create_override, field_from_columns, get_field_value,
    get_original_value, is_overridden, parse_field, to_wire
)
from app.modules.weather.schemas import (
    WeatherLocationCreate, WeatherLocationNameUpdate, WeatherLocationResponse
)
from typing import Any, Dict, List, Mapping, Optional
from fastapi import HTTPException

logger = logging.getLogger(__name__)

_CLEARED_OVERRIDE = {
    "custom_name": None,
    "custom_name_reason": None,
    "custom_name_overridden_by": None,
    "custom_name_overridden_at": None,
}


def name_field(row: Mapping[str, Any]):
    """The overridable name of a location row"""
    return field_from_columns(
        row.get("name"),
        row.get("custom_name"),
        reason=row.get("custom_name_reason"),
        overridden_by=row.get("custom_name_overridden_by"),
        overridden_at=row.get("custom_name_overridden_at"),
    )


def to_location_response(row: Mapping[str, Any]) -> WeatherLocationResponse:
    field = name_field(row)
    return WeatherLocationResponse(
        id=row["id"],
        name=to_wire(field),
        display_name=get_field_value(field),
        is_overridden=is_overridden(field),
        admin1=row.get("admin1"),
        country=row.get("country"),
        lat=row.get("lat"),
        lon=row.get("lon"),
        elevation_m=row.get("elevation_m"),
        station_id=row.get("station_id"),
        provider_id=row.get("provider_id"),
        channel_id=row.get("channel_id"),
        created_at=row.get("created_at"),
        updated_at=row.get("updated_at"),
    )


def override_columns(field: FieldOverride) -> Dict[str, Any]:
    return {
        "custom_name": field.overridden_value,
        "custom_name_reason": field.reason,
        "custom_name_overridden_by": field.overridden_by,
        "custom_name_overridden_at": field.overridden_at.isoformat() if field.overridden_at else None,
    }


class WeatherLocationService:
    def __init__(self, supabase: Client):
        self.supabase = supabase

    def _get_row(self, location_id: str) -> Dict[str, Any]:
        result = self.supabase.table("weather_locations")\
            .select("*")\
            .eq("id", location_id)\
            .limit(1)\
            .execute()

        if not result.data:
            raise HTTPException(status_code=404, detail="Location not found")
        return result.data[0]

    def list_locations(
        self,
        provider_id: Optional[str] = None,
        channel_id: Optional[str] = None
    ) -> List[WeatherLocationResponse]:
        """List monitored locations with their name fields in wire form"""
        try:
            query = self.supabase.table("weather_locations").select("*")
            if provider_id:
                query = query.eq("provider_id", provider_id)
            if channel_id:
                query = query.eq("channel_id", channel_id)
            result = query.order("name").execute()
            return [to_location_response(row) for row in result.data]
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def get_location(self, location_id: str) -> WeatherLocationResponse:
        try:
            return to_location_response(self._get_row(location_id))
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def create_location(self, location: WeatherLocationCreate, user_id: Optional[str] = None) -> WeatherLocationResponse:
        """Add a location. A tagged name stores its original and override separately."""
        field = parse_field(location.name)
        original = get_original_value(field)
        if not isinstance(original, str) or not original.strip():
            raise HTTPException(status_code=400, detail="Location name is required")

        row = location.model_dump(exclude={"name"})
        row["name"] = original
        if isinstance(field, FieldOverride):
            override = create_override(
                original, field.overridden_value, reason=field.reason, overridden_by=user_id
            )
            row.update(override_columns(override))

        try:
            result = self.supabase.table("weather_locations").insert(row).execute()

            if not result.data:
                raise HTTPException(status_code=500, detail="Failed to add location")

            logger.info(f"Location added: {original}")
            return to_location_response(result.data[0])
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def update_location_name(
        self,
        location_id: str,
        update: WeatherLocationNameUpdate,
        user_id: Optional[str] = None
    ) -> WeatherLocationResponse:
        """Set the custom name. Null, empty or the provider name clears the override."""
        try:
            row = self._get_row(location_id)
            custom_name = (update.custom_name or "").strip()

            if not custom_name or custom_name == row.get("name"):
                update_data = dict(_CLEARED_OVERRIDE)
            else:
                override = create_override(
                    row.get("name"), custom_name, reason=update.reason, overridden_by=user_id
                )
                update_data = override_columns(override)
            update_data["updated_at"] = datetime.now(timezone.utc).isoformat()

            result = self.supabase.table("weather_locations")\
                .update(update_data)\
                .eq("id", location_id)\
                .execute()

            if not result.data:
                raise HTTPException(status_code=404, detail="Location not found")

            logger.info(f"Location {location_id} custom_name set to {update_data['custom_name']!r}")
            return to_location_response(result.data[0])
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def revert_location_name(self, location_id: str) -> WeatherLocationResponse:
        """Drop the override so the provider name is shown again"""
        return self.update_location_name(location_id, WeatherLocationNameUpdate(custom_name=None))

    def delete_location(self, location_id: str) -> bool:
        try:
            result = self.supabase.table("weather_locations")\
                .delete()\
                .eq("id", location_id)\
                .execute()

            if not result.data:
                raise HTTPException(status_code=404, detail="Location not found")

            logger.info(f"Location deleted: {location_id}")
            return True
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))
