"""Unit tests for permission keys and the resolver."""

import pytest

from app.config.permissions_config import (
    InvalidPermissionKey,
    MODULES,
    PermissionKey,
    SYSTEM_PERMISSIONS,
    get_permission_catalog,
    get_permission_display_name,
)
from app.core.permissions import (
    ChannelAccessEntry,
    GroupRef,
    PermissionResolver,
    SessionSnapshot,
    SessionState,
    SessionUser,
    UserStatus,
    is_write_key,
)


def make_resolver(
    permissions=(),
    status=UserStatus.ACTIVE,
    is_superuser=False,
    groups=(),
    channel_access=(),
) -> PermissionResolver:
    user = SessionUser(
        id="u1",
        auth_user_id="auth-u1",
        email="u1@example.com",
        status=status,
        is_superuser=is_superuser,
    )
    snapshot = SessionSnapshot(
        state=SessionState.AUTHENTICATED,
        user=user,
        groups=tuple(groups),
        permissions=frozenset(permissions),
        channel_access=tuple(channel_access),
    )
    return PermissionResolver(snapshot)


class TestPermissionKey:
    def test_key_joins_triple(self) -> None:
        assert PermissionKey("nova", "weather", "write").key == "nova.weather.write"
        assert str(PermissionKey("nova", "weather", "read")) == "nova.weather.read"

    def test_parse_round_trips(self) -> None:
        key = PermissionKey.parse("pulsar.channel_playlists.write")
        assert key == PermissionKey("pulsar", "channel_playlists", "write")
        assert key.is_write

    @pytest.mark.parametrize("text", ["nova.weather", "nova..read", "a.b.c.read", "nova.weather.delete", ""])
    def test_parse_rejects_malformed(self, text: str) -> None:
        with pytest.raises(InvalidPermissionKey):
            PermissionKey.parse(text)

    def test_from_row(self) -> None:
        row = {"id": "p1", "app_key": "system", "resource": "users", "action": "admin"}
        assert PermissionKey.from_row(row).key == SYSTEM_PERMISSIONS["MANAGE_USERS"]

    def test_display_name(self) -> None:
        assert get_permission_display_name("nova.school_closings.write") == "School Closings Write"
        assert get_permission_display_name({"app_key": "nova", "resource": "weather", "action": "read"}) == "Weather Read"

    def test_catalog_keys_are_unique_and_parse(self) -> None:
        catalog = get_permission_catalog()
        keys = [p["key"] for p in catalog]
        assert len(keys) == len(set(keys))
        assert len(keys) == len(SYSTEM_PERMISSIONS) + 2 * sum(len(resources) for resources in MODULES.values())
        for key in keys:
            PermissionKey.parse(key)

    def test_write_class_uses_structured_action(self) -> None:
        assert is_write_key("nova.weather.write")
        assert is_write_key("system.users.admin")
        assert not is_write_key("nova.weather.read")
        # Unparseable keys fall back to the suffix
        assert is_write_key("legacy.write")
        assert not is_write_key("legacy.view")


class TestHasPermission:
    def test_active_user_membership(self) -> None:
        resolver = make_resolver({"nova.weather.read", "nova.sports.write"})
        assert resolver.has_permission("nova.weather.read")
        assert resolver.has_permission("nova.sports.write")
        assert not resolver.has_permission("nova.weather.write")
        assert resolver.has_permission(PermissionKey("nova", "weather", "read"))

    def test_wildcard_grants_everything(self) -> None:
        resolver = make_resolver({"*"})
        assert resolver.has_permission("pulsar.graphics.write")

    def test_superuser_has_every_key(self) -> None:
        resolver = make_resolver(is_superuser=True)
        for key in (p["key"] for p in get_permission_catalog()):
            assert resolver.has_permission(key)
        assert resolver.has_permission("made.up.read")

    def test_pending_user_loses_write_class_keys(self) -> None:
        granted = {"nova.weather.read", "nova.weather.write", "system.users.admin"}
        resolver = make_resolver(granted, status=UserStatus.PENDING)
        assert resolver.has_permission("nova.weather.read")
        assert not resolver.has_permission("nova.weather.write")
        assert not resolver.has_permission("system.users.admin")
        assert not resolver.can_write_page("weather")

    def test_pending_user_with_wildcard_is_still_read_only(self) -> None:
        resolver = make_resolver({"*"}, status=UserStatus.PENDING)
        assert resolver.has_permission("nova.finance.read")
        assert not resolver.has_permission("nova.finance.write")

    def test_inactive_user_has_nothing(self) -> None:
        resolver = make_resolver({"nova.weather.read"}, status=UserStatus.INACTIVE)
        assert not resolver.has_permission("nova.weather.read")

    def test_no_session_has_nothing(self) -> None:
        for snapshot in (SessionSnapshot.unauthenticated(), SessionSnapshot.system_locked(), None):
            resolver = PermissionResolver(snapshot)
            assert not resolver.has_permission("nova.weather.read")
            assert not resolver.is_admin
            assert not resolver.can_write_channel("C1")

    def test_any_and_all(self) -> None:
        resolver = make_resolver({"nova.weather.read"})
        keys = ["nova.weather.read", "nova.sports.read"]
        assert resolver.has_permission(keys)
        assert not resolver.has_permission(keys, require_all=True)
        assert resolver.has_any_permission(keys)
        assert not resolver.has_all_permissions(keys)
        assert not resolver.has_any_permission([])
        assert resolver.has_all_permissions([])

    @pytest.mark.parametrize("key", [None, 42, object()])
    def test_absent_or_odd_keys_are_denied(self, key) -> None:
        for resolver in (make_resolver({"*"}), PermissionResolver(SessionSnapshot.unauthenticated())):
            assert resolver.has_permission(key) is False
        assert make_resolver().has_any_permission(None) is False
        assert make_resolver().has_all_permissions(None) is False

    def test_group_aggregation(self) -> None:
        groups = [GroupRef("g1", "G1"), GroupRef("g2", "G2")]
        resolver = make_resolver({"a.b.read", "a.b.write"}, groups=groups)
        assert resolver.has_permission("a.b.read")
        assert resolver.has_permission("a.b.write")
        assert not resolver.has_permission("a.c.read")


class TestPages:
    def test_generic_pages_use_tables(self) -> None:
        resolver = make_resolver({"nova.weather.read"})
        assert resolver.can_read_page("weather")
        assert not resolver.can_write_page("weather")
        assert not resolver.can_read_page("finance")

    def test_undeclared_page_is_readable(self) -> None:
        resolver = make_resolver()
        assert resolver.can_read_page("some_new_page")
        assert resolver.can_write_page("some_new_page")

    def test_system_pages_ignore_generic_table(self) -> None:
        # "channels" is both a system page and nothing in the generic tables would grant it
        resolver = make_resolver({"nova.weather.read", "nova.weather.write", "pulsar.settings.write"})
        assert not resolver.can_read_page("users_groups")
        assert not resolver.can_read_page("channels")
        assert not resolver.can_write_page("channels")
        assert not resolver.can_read_page("dashboard_config")

    def test_view_all_data_reads_system_pages(self) -> None:
        resolver = make_resolver({SYSTEM_PERMISSIONS["VIEW_ALL_DATA"]})
        assert resolver.can_read_page("users_groups")
        assert not resolver.can_write_page("users_groups")

    def test_administrators_group_is_admin(self) -> None:
        resolver = make_resolver(groups=[GroupRef("g", "Administrators", is_system=True)])
        assert resolver.is_admin
        assert resolver.can_read_page("users_groups")
        assert resolver.can_write_page("users_groups")
        assert resolver.can_write_page("ai_connections")

    def test_manage_key_grants_single_system_page(self) -> None:
        resolver = make_resolver({SYSTEM_PERMISSIONS["MANAGE_CHANNELS"]})
        assert resolver.can_write_page("channels")
        assert not resolver.can_write_page("users_groups")

    def test_dashboard_config(self) -> None:
        resolver = make_resolver({SYSTEM_PERMISSIONS["MANAGE_DASHBOARD_CONFIG"]})
        assert resolver.can_read_page("dashboard_config")
        assert resolver.can_write_page("dashboard_config")

    def test_pending_admin_cannot_manage(self) -> None:
        resolver = make_resolver({SYSTEM_PERMISSIONS["MANAGE_USERS"]}, status=UserStatus.PENDING)
        assert resolver.can_read_page("users_groups")
        assert not resolver.can_write_page("users_groups")
        assert not resolver.can_manage(SYSTEM_PERMISSIONS["MANAGE_PAGE_VISIBILITY"])

    def test_inactive_admin_is_not_admin(self) -> None:
        groups = [GroupRef("g", "Administrators", is_system=True)]
        resolver = make_resolver({SYSTEM_PERMISSIONS["MANAGE_USERS"]}, status=UserStatus.INACTIVE, groups=groups)
        assert not resolver.is_admin
        assert not resolver.can_read_page("users_groups")
        assert not resolver.can_write_page("users_groups")

    def test_superuser_reads_and_writes_every_page(self) -> None:
        resolver = make_resolver(is_superuser=True)
        for page in ("users_groups", "channels", "dashboard_config", "weather", "unknown"):
            assert resolver.can_read_page(page)
            assert resolver.can_write_page(page)


class TestChannels:
    def test_channel_gate(self) -> None:
        resolver = make_resolver(channel_access=[ChannelAccessEntry("C1", can_write=True)])
        assert resolver.can_write_channel("C1")
        assert not resolver.can_write_channel("C2")
        assert resolver.get_channel_access("C2") is None

    def test_read_only_entry(self) -> None:
        resolver = make_resolver(channel_access=[ChannelAccessEntry("C1", can_write=False)])
        assert resolver.get_channel_access("C1") is not None
        assert not resolver.can_write_channel("C1")

    def test_superuser_bypasses_channel_access(self) -> None:
        resolver = make_resolver(is_superuser=True)
        assert resolver.can_write_channel("anything")

    def test_pending_user_cannot_write_channels(self) -> None:
        resolver = make_resolver(
            status=UserStatus.PENDING,
            channel_access=[ChannelAccessEntry("C1", can_write=True)],
        )
        assert not resolver.can_write_channel("C1")
