"""Unit tests for field override tracking."""

import pytest

from app.config.settings import settings
from app.core.field_override import (
    FieldOverride,
    MalformedFieldError,
    Plain,
    collapse,
    create_override,
    field_from_columns,
    get_field_value,
    get_original_value,
    is_overridden,
    parse_field,
    revert_override,
    to_wire,
)


class TestOverrideLaws:
    @pytest.mark.parametrize("original,overridden", [("Newark", "Newark Intl"), (12.5, 13), (0, 1)])
    def test_create_override_exposes_both_values(self, original, overridden) -> None:
        field = create_override(original, overridden)
        assert get_field_value(field) == overridden
        assert get_original_value(field) == original
        assert is_overridden(field)
        assert field.overridden_at is not None

    @pytest.mark.parametrize("value", ["Newark", 42, 3.14, ""])
    def test_bare_scalar_is_its_own_value(self, value) -> None:
        assert get_field_value(value) == value
        assert get_original_value(value) == value
        assert not is_overridden(value)

    def test_revert_restores_original(self) -> None:
        field = create_override("Newark", "Newark Intl", reason="airport", overridden_by="u1")
        assert get_field_value(revert_override(field)) == "Newark"
        assert collapse(field) == Plain(value="Newark")

    def test_override_of_override_keeps_first_original(self) -> None:
        first = create_override("Newark", "Newark Intl")
        second = create_override(first, "EWR")
        assert get_original_value(second) == "Newark"
        assert get_field_value(second) == "EWR"


class TestWireForm:
    def test_tagged_object_parses_to_override(self) -> None:
        raw = {"originalValue": "Newark", "overriddenValue": "Newark Intl", "isOverridden": True}
        field = parse_field(raw)
        assert isinstance(field, FieldOverride)
        assert get_field_value(raw) == "Newark Intl"
        assert get_original_value(raw) == "Newark"

    def test_not_overridden_wrapper_collapses_to_plain(self) -> None:
        raw = {"originalValue": "Newark", "overriddenValue": "Newark", "isOverridden": False}
        assert parse_field(raw) == Plain(value="Newark")
        assert to_wire(raw) == "Newark"

    def test_plain_serializes_as_bare_scalar(self) -> None:
        assert to_wire(Plain(value="Newark")) == "Newark"
        assert to_wire("Newark") == "Newark"
        assert to_wire(None) is None

    def test_override_serializes_with_tag_and_metadata(self) -> None:
        field = create_override("Newark", "Newark Intl", reason="airport", overridden_by="u1")
        wire = to_wire(field)
        assert wire["originalValue"] == "Newark"
        assert wire["overriddenValue"] == "Newark Intl"
        assert wire["isOverridden"] is True
        assert wire["overriddenBy"] == "u1"
        assert wire["reason"] == "airport"
        assert "overriddenAt" in wire
        assert parse_field(wire) == field


class TestMalformed:
    def test_malformed_raises_in_debug(self, monkeypatch) -> None:
        monkeypatch.setattr(settings, "debug", True)
        with pytest.raises(MalformedFieldError):
            parse_field({"isOverridden": True})
        with pytest.raises(MalformedFieldError):
            parse_field(["not", "a", "field"])

    def test_malformed_degrades_to_plain_otherwise(self, monkeypatch, caplog) -> None:
        monkeypatch.setattr(settings, "debug", False)
        raw = {"isOverridden": True}
        with caplog.at_level("WARNING"):
            field = parse_field(raw)
        assert isinstance(field, Plain)
        assert field.value == raw
        assert "Malformed field" in caplog.text


class TestColumns:
    def test_null_override_is_plain(self) -> None:
        assert field_from_columns("Newark", None) == Plain(value="Newark")

    @pytest.mark.parametrize("override", ["", "Newark"])
    def test_empty_or_equal_override_is_plain(self, override) -> None:
        assert field_from_columns("Newark", override) == Plain(value="Newark")

    def test_override_column_builds_override(self) -> None:
        field = field_from_columns(
            "Newark",
            "Newark Intl",
            reason="airport",
            overridden_by="u1",
            overridden_at="2026-01-02T03:04:05+00:00",
        )
        assert isinstance(field, FieldOverride)
        assert get_field_value(field) == "Newark Intl"
        assert field.overridden_at.year == 2026
