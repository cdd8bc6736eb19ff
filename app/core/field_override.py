"""
Field override tracking for monitored entities.

A displayed field is either ``Plain`` (the provider value, never edited) or a
``FieldOverride`` carrying both the provider value and the user's value plus
audit metadata. On the wire a plain field is a bare scalar and an override is
an object tagged with ``isOverridden``; ``parse_field`` and ``to_wire`` are the
only places that deal with that shape.

Canonical form: a field that is not overridden is always ``Plain``. A wire
object with ``isOverridden: false`` collapses to ``Plain(originalValue)``.
"""

import logging
from datetime import date, datetime, timezone
from typing import Any, Dict, Generic, Mapping, Optional, TypeVar, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from app.config.settings import settings

logger = logging.getLogger(__name__)

T = TypeVar("T")

OVERRIDE_TAG = "isOverridden"

_SCALAR_TYPES = (str, int, float, bool, datetime, date)


class MalformedFieldError(ValueError):
    pass


class Plain(BaseModel, Generic[T]):
    model_config = ConfigDict(frozen=True)

    value: T


class FieldOverride(BaseModel, Generic[T]):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    original_value: T = Field(alias="originalValue")
    overridden_value: T = Field(alias="overriddenValue")
    is_overridden: bool = Field(default=True, alias=OVERRIDE_TAG)
    overridden_at: Optional[datetime] = Field(default=None, alias="overriddenAt")
    overridden_by: Optional[str] = Field(default=None, alias="overriddenBy")
    reason: Optional[str] = None


Overridable = Union[Plain[T], FieldOverride[T]]


def _malformed(raw: Any, cause: Optional[Exception] = None) -> Plain:
    if settings.debug:
        raise MalformedFieldError(f"Not a scalar or field override: {raw!r}") from cause
    logger.warning("Malformed field representation %r; treating it as a bare value", raw)
    return Plain(value=raw)


def parse_field(raw: Any) -> Overridable:
    """Read a field from its wire form (bare scalar or tagged object)"""
    if isinstance(raw, (Plain, FieldOverride)):
        return raw
    if raw is None or isinstance(raw, _SCALAR_TYPES):
        return Plain(value=raw)
    if isinstance(raw, Mapping) and OVERRIDE_TAG in raw:
        try:
            override = FieldOverride.model_validate(dict(raw))
        except ValidationError as e:
            return _malformed(raw, e)
        if not override.is_overridden:
            return Plain(value=override.original_value)
        return override
    return _malformed(raw)


def to_wire(field: Any) -> Any:
    """Write a field in its wire form; non-overridden fields become bare scalars"""
    parsed = parse_field(field)
    if isinstance(parsed, Plain):
        return parsed.value
    if not parsed.is_overridden:
        return parsed.original_value
    wire: Dict[str, Any] = {
        "originalValue": parsed.original_value,
        "overriddenValue": parsed.overridden_value,
        OVERRIDE_TAG: True,
    }
    if parsed.overridden_at is not None:
        wire["overriddenAt"] = parsed.overridden_at.isoformat()
    if parsed.overridden_by is not None:
        wire["overriddenBy"] = parsed.overridden_by
    if parsed.reason is not None:
        wire["reason"] = parsed.reason
    return wire


def is_overridden(field: Any) -> bool:
    parsed = parse_field(field)
    return isinstance(parsed, FieldOverride) and parsed.is_overridden


def get_field_value(field: Any) -> Any:
    """The value to display: the user's value when overridden, else the original"""
    parsed = parse_field(field)
    if isinstance(parsed, FieldOverride):
        return parsed.overridden_value if parsed.is_overridden else parsed.original_value
    return parsed.value


def get_original_value(field: Any) -> Any:
    """The provider-sourced value, ignoring any override"""
    parsed = parse_field(field)
    if isinstance(parsed, FieldOverride):
        return parsed.original_value
    return parsed.value


def create_override(
    original: Any,
    overridden: Any,
    reason: Optional[str] = None,
    overridden_by: Optional[str] = None,
) -> FieldOverride:
    """Build an override stamped with the current time. Persisting it is up to the caller."""
    return FieldOverride(
        original_value=get_original_value(original),
        overridden_value=overridden,
        is_overridden=True,
        overridden_at=datetime.now(timezone.utc),
        overridden_by=overridden_by,
        reason=reason,
    )


def revert_override(field: Any) -> Any:
    return get_original_value(field)


def collapse(field: Any) -> Plain:
    """Canonical representation of a field once its override is cleared"""
    return Plain(value=revert_override(field))


def field_from_columns(
    original: Any,
    override: Any = None,
    reason: Optional[str] = None,
    overridden_by: Optional[str] = None,
    overridden_at: Optional[Union[str, datetime]] = None,
) -> Overridable:
    """Build a field from an original column and a nullable override column"""
    if override is None or override == "" or override == original:
        return Plain(value=original)
    return FieldOverride(
        original_value=original,
        overridden_value=override,
        is_overridden=True,
        overridden_at=overridden_at,
        overridden_by=overridden_by,
        reason=reason,
    )
