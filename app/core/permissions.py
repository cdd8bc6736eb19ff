"""
Permission resolution over an immutable session snapshot.

Every check here is a pure, total function of the snapshot: no network
calls and no exceptions. Missing data resolves to the most restrictive
answer, except page reads, which default to visible for pages that have no
rule.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Iterable, Optional, Tuple, FrozenSet, Union

from app.config.permissions_config import (
    ADMINISTRATORS_GROUP,
    DASHBOARD_CONFIG_PAGE,
    InvalidPermissionKey,
    PAGE_READ_PERMISSIONS,
    PAGE_WRITE_PERMISSIONS,
    PermissionKey,
    SYSTEM_PAGES,
    SYSTEM_PAGE_WRITE_PERMISSIONS,
    SYSTEM_PERMISSIONS,
    WILDCARD,
    WRITE_ACTIONS,
)

KeyLike = Union[str, PermissionKey]


class SessionState(str, Enum):
    UNINITIALIZED = "uninitialized"
    LOADING = "loading"
    AUTHENTICATED = "authenticated"
    UNAUTHENTICATED = "unauthenticated"
    SYSTEM_LOCKED = "system_locked"


class UserStatus(str, Enum):
    ACTIVE = "active"
    PENDING = "pending"
    INACTIVE = "inactive"


@dataclass(frozen=True)
class SessionUser:
    id: str
    auth_user_id: str
    email: str
    status: UserStatus = UserStatus.ACTIVE
    is_superuser: bool = False
    full_name: Optional[str] = None


@dataclass(frozen=True)
class GroupRef:
    id: str
    name: str
    is_system: bool = False


@dataclass(frozen=True)
class ChannelAccessEntry:
    channel_id: str
    can_write: bool = False


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class SessionSnapshot:
    state: SessionState = SessionState.UNINITIALIZED
    user: Optional[SessionUser] = None
    groups: Tuple[GroupRef, ...] = ()
    permissions: FrozenSet[str] = frozenset()
    direct_permissions: FrozenSet[str] = frozenset()
    channel_access: Tuple[ChannelAccessEntry, ...] = ()
    loaded_at: datetime = field(default_factory=_utcnow)

    @classmethod
    def uninitialized(cls) -> "SessionSnapshot":
        return cls(state=SessionState.UNINITIALIZED)

    @classmethod
    def loading(cls) -> "SessionSnapshot":
        return cls(state=SessionState.LOADING)

    @classmethod
    def unauthenticated(cls) -> "SessionSnapshot":
        return cls(state=SessionState.UNAUTHENTICATED)

    @classmethod
    def system_locked(cls) -> "SessionSnapshot":
        return cls(state=SessionState.SYSTEM_LOCKED)

    @property
    def is_system_locked(self) -> bool:
        return self.state == SessionState.SYSTEM_LOCKED

    @property
    def is_authenticated(self) -> bool:
        return self.state == SessionState.AUTHENTICATED and self.user is not None

    @property
    def is_superuser(self) -> bool:
        return self.is_authenticated and self.user.is_superuser

    @property
    def is_pending(self) -> bool:
        return self.is_authenticated and self.user.status == UserStatus.PENDING

    @property
    def is_inactive(self) -> bool:
        return self.is_authenticated and self.user.status == UserStatus.INACTIVE


def _key_text(key: KeyLike) -> str:
    return key.key if isinstance(key, PermissionKey) else key


def is_write_key(key: KeyLike) -> bool:
    """True when the key names a write-class action.

    The parsed action decides; keys that do not parse fall back to a suffix
    match on the action names.
    """
    if isinstance(key, PermissionKey):
        return key.is_write
    try:
        return PermissionKey.parse(key).is_write
    except InvalidPermissionKey:
        text = key if isinstance(key, str) else ""
        return any(text.endswith("." + action) for action in WRITE_ACTIONS)


class PermissionResolver:
    """Answers authorization questions for one session snapshot."""

    def __init__(self, snapshot: Optional[SessionSnapshot] = None):
        self.snapshot = snapshot or SessionSnapshot.uninitialized()

    @property
    def user(self) -> Optional[SessionUser]:
        return self.snapshot.user if self.snapshot.is_authenticated else None

    @property
    def is_superuser(self) -> bool:
        return self.snapshot.is_superuser

    @property
    def is_pending(self) -> bool:
        return self.snapshot.is_pending

    @property
    def is_active(self) -> bool:
        return self.user is not None and self.user.status == UserStatus.ACTIVE

    @property
    def is_admin(self) -> bool:
        if self.is_superuser:
            return True
        if self.user is None or self.user.status == UserStatus.INACTIVE:
            return False
        if SYSTEM_PERMISSIONS["MANAGE_USERS"] in self.snapshot.permissions:
            return True
        return any(g.name == ADMINISTRATORS_GROUP for g in self.snapshot.groups)

    @property
    def permissions(self) -> FrozenSet[str]:
        return self.snapshot.permissions if self.user is not None else frozenset()

    def has_permission(self, key: Union[KeyLike, Iterable[KeyLike]], require_all: bool = False) -> bool:
        if key is None:
            return False
        if not isinstance(key, (str, PermissionKey)):
            if not isinstance(key, (list, tuple, set, frozenset)):
                return False
            keys = list(key)
            return self.has_all_permissions(keys) if require_all else self.has_any_permission(keys)

        if self.is_superuser:
            return True

        user = self.user
        if user is None or user.status == UserStatus.INACTIVE:
            return False

        # Pending users are read-only whatever they were granted
        if user.status == UserStatus.PENDING and is_write_key(key):
            return False

        granted = self.snapshot.permissions
        if WILDCARD in granted:
            return True
        return _key_text(key) in granted

    def has_any_permission(self, keys: Iterable[KeyLike]) -> bool:
        if keys is None:
            return False
        if self.is_superuser:
            return True
        return any(self.has_permission(k) for k in keys)

    def has_all_permissions(self, keys: Iterable[KeyLike]) -> bool:
        if keys is None:
            return False
        if self.is_superuser:
            return True
        return all(self.has_permission(k) for k in keys)

    def can_read_page(self, page_key: str) -> bool:
        if self.is_superuser:
            return True

        if page_key in SYSTEM_PAGES:
            return self.is_admin or self.has_permission(SYSTEM_PERMISSIONS["VIEW_ALL_DATA"])

        if page_key == DASHBOARD_CONFIG_PAGE:
            return self.is_admin or self.has_permission(SYSTEM_PERMISSIONS["MANAGE_DASHBOARD_CONFIG"])

        required = PAGE_READ_PERMISSIONS.get(page_key)
        if required is None:
            # Undeclared pages stay visible
            return True
        return self.has_permission(required)

    def can_write_page(self, page_key: str) -> bool:
        if self.is_superuser:
            return True

        user = self.user
        if user is not None and user.status in (UserStatus.PENDING, UserStatus.INACTIVE):
            return False

        if page_key in SYSTEM_PAGE_WRITE_PERMISSIONS:
            return self.can_manage(SYSTEM_PAGE_WRITE_PERMISSIONS[page_key])

        required = PAGE_WRITE_PERMISSIONS.get(page_key)
        if required is None:
            return user is not None
        return self.has_permission(required)

    def can_manage(self, permission_key: KeyLike) -> bool:
        """Admin-level mutation: admins or holders of the key, active users only"""
        if self.is_superuser:
            return True
        if not self.is_active:
            return False
        return self.is_admin or self.has_permission(permission_key)

    def get_channel_access(self, channel_id: str) -> Optional[ChannelAccessEntry]:
        for entry in self.snapshot.channel_access:
            if entry.channel_id == channel_id:
                return entry
        return None

    def can_write_channel(self, channel_id: str) -> bool:
        if self.is_superuser:
            return True

        user = self.user
        if user is None or user.status != UserStatus.ACTIVE:
            return False

        entry = self.get_channel_access(channel_id)
        return entry.can_write if entry is not None else False
