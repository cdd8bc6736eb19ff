"""Tests for the seed and superuser provisioning scripts."""

import pytest

from app.config.permissions_config import ADMINISTRATORS_GROUP, DEFAULT_PAGES, get_permission_catalog
from app.core.session import SessionLoader
from app.scripts.create_superuser import ProvisioningError, check_password, provision_superuser
from app.scripts.seed_permissions import seed_administrators_group, seed_page_settings, seed_permissions


class TestSeed:
    def test_seed_is_idempotent(self, supabase) -> None:
        first = seed_permissions(supabase)
        second = seed_permissions(supabase)
        catalog_keys = {p["key"] for p in get_permission_catalog()}
        assert set(first) == catalog_keys
        assert first == second
        assert len(supabase.tables["u_permissions"]) == len(catalog_keys)

    def test_administrators_group(self, supabase) -> None:
        permission_ids = seed_permissions(supabase)
        group_id = seed_administrators_group(supabase, permission_ids)
        seed_administrators_group(supabase, permission_ids)

        groups = supabase.tables["u_groups"]
        assert [(g["name"], g["is_system"]) for g in groups] == [(ADMINISTRATORS_GROUP, True)]
        granted = {r["permission_id"] for r in supabase.tables["u_group_permissions"] if r["group_id"] == group_id}
        system_ids = {pid for key, pid in permission_ids.items() if key.startswith("system.")}
        assert granted == system_ids

    def test_page_settings_keep_existing_visibility(self, supabase) -> None:
        supabase.table("u_page_settings").insert({
            "app_key": "nova", "page_key": "weather", "page_name": "Weather", "is_visible": False
        }).execute()
        created = seed_page_settings(supabase)
        assert created == sum(len(pages) for pages in DEFAULT_PAGES.values()) - 1
        assert seed_page_settings(supabase) == 0
        weather = [r for r in supabase.tables["u_page_settings"] if r["page_key"] == "weather" and r["app_key"] == "nova"]
        assert [r["is_visible"] for r in weather] == [False]


class TestCreateSuperuser:
    def test_password_rules(self) -> None:
        assert check_password("short") is not None
        assert check_password("long enough") is None

    def test_provisioning_unlocks_the_system(self, supabase) -> None:
        loader = SessionLoader(supabase)
        assert loader.check_system_locked()

        row = provision_superuser(supabase, "root@example.com", "secret123")
        assert row["is_superuser"] is True
        assert row["full_name"] == "root"
        assert not loader.check_system_locked()
        assert loader.load(row["auth_user_id"]).is_superuser

    def test_replaces_existing_superuser(self, supabase) -> None:
        old = provision_superuser(supabase, "old@example.com", "secret123")
        new = provision_superuser(supabase, "new@example.com", "secret456", full_name="New Root")

        superusers = [r for r in supabase.tables["u_users"] if r["is_superuser"]]
        assert [r["email"] for r in superusers] == ["new@example.com"]
        assert new["full_name"] == "New Root"
        assert old["auth_user_id"] not in supabase.auth.users

    def test_reuses_existing_auth_identity(self, supabase, data) -> None:
        existing = data.user("me@example.com")
        row = provision_superuser(supabase, "me@example.com", "secret123")
        assert row["auth_user_id"] == existing["auth_user_id"]
        rows = [r for r in supabase.tables["u_users"] if r["auth_user_id"] == existing["auth_user_id"]]
        assert len(rows) == 1
        assert supabase.auth.passwords[existing["auth_user_id"]] == "secret123"

    @pytest.mark.parametrize("email", ["a@example.com", "A@Example.com"])
    def test_same_email_keeps_auth_user(self, supabase, email) -> None:
        first = provision_superuser(supabase, "a@example.com", "secret123")
        provision_superuser(supabase, email, "secret456")
        assert first["auth_user_id"] in supabase.auth.users

    def test_failed_auth_creation_keeps_current_superuser(self, supabase, data, monkeypatch) -> None:
        old = provision_superuser(supabase, "old@example.com", "secret123")
        data.group("Ops", members=[old])

        def refuse(attributes):
            raise RuntimeError("auth service unavailable")

        monkeypatch.setattr(supabase.auth.admin, "create_user", refuse)
        with pytest.raises(ProvisioningError):
            provision_superuser(supabase, "new@example.com", "secret456")

        assert not SessionLoader(supabase).check_system_locked()
        assert [r["email"] for r in supabase.tables["u_users"] if r["is_superuser"]] == ["old@example.com"]
        assert [r["user_id"] for r in supabase.tables["u_group_members"]] == [old["id"]]

    def test_replacement_removes_related_rows(self, supabase, data) -> None:
        old = provision_superuser(supabase, "old@example.com", "secret123")
        data.group("Ops", members=[old])
        data.grant(old, "nova.weather.read")
        data.channel(old, "C1", can_write=True)

        provision_superuser(supabase, "new@example.com", "secret456")

        for table in ("u_group_members", "u_user_permissions", "u_channel_access"):
            assert [r for r in supabase.tables[table] if r["user_id"] == old["id"]] == []

    def test_provisioning_is_audited(self, supabase) -> None:
        row = provision_superuser(supabase, "root@example.com", "secret123", full_name="Root")
        entries = supabase.tables["u_audit_log"]
        assert [(e["action"], e["resource_type"], e["resource_id"]) for e in entries] == [
            ("create", "superuser", row["auth_user_id"])
        ]
        assert entries[0]["new_values"]["is_superuser"] is True
