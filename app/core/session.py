"""
Session snapshot loading and caching.

SessionLoader reads the u_* tables once per refresh and produces an
immutable SessionSnapshot. SessionStore keeps the latest snapshot per auth
user and replaces it wholesale; listeners subscribe to replacements.
"""

import logging
import time
from typing import Callable, Dict, List, Optional, Tuple

from supabase import Client

from app.config.permissions_config import PermissionKey, WILDCARD
from app.config.settings import settings
from app.core.permissions import (
    ChannelAccessEntry,
    GroupRef,
    SessionSnapshot,
    SessionState,
    SessionUser,
    UserStatus,
)

logger = logging.getLogger(__name__)

SnapshotListener = Callable[[str, SessionSnapshot], None]


class SessionLoader:
    def __init__(self, supabase: Client):
        self.supabase = supabase

    def check_system_locked(self) -> bool:
        """True when no superuser exists. Errors count as locked."""
        try:
            result = self.supabase.table("u_users")\
                .select("id")\
                .eq("is_superuser", True)\
                .limit(1)\
                .execute()
            return not result.data
        except Exception as e:
            logger.error(f"Error checking system lock: {e}")
            return True

    def load(self, auth_user_id: Optional[str], check_lock: bool = True) -> SessionSnapshot:
        """Build the snapshot for an authenticated identity (or none)"""
        if check_lock and self.check_system_locked():
            logger.warning("System locked: no superuser has been provisioned")
            return SessionSnapshot.system_locked()

        if not auth_user_id:
            return SessionSnapshot.unauthenticated()

        try:
            return self._load_user(auth_user_id)
        except Exception as e:
            logger.error(f"Error loading session for {auth_user_id}: {e}")
            return SessionSnapshot.unauthenticated()

    def _load_user(self, auth_user_id: str) -> SessionSnapshot:
        result = self.supabase.table("u_users")\
            .select("*")\
            .eq("auth_user_id", auth_user_id)\
            .limit(1)\
            .execute()

        if not result.data:
            # Exists in auth but has no u_users row
            logger.warning(f"No u_users row for auth user {auth_user_id}")
            return SessionSnapshot.unauthenticated()

        row = result.data[0]
        user = SessionUser(
            id=row["id"],
            auth_user_id=row.get("auth_user_id") or auth_user_id,
            email=row.get("email") or "",
            status=UserStatus(row.get("status") or UserStatus.ACTIVE.value),
            is_superuser=bool(row.get("is_superuser")),
            full_name=row.get("full_name"),
        )

        if user.is_superuser:
            return SessionSnapshot(
                state=SessionState.AUTHENTICATED,
                user=user,
                permissions=frozenset({WILDCARD}),
            )

        groups = self.get_groups(user.id)
        group_permissions = self.get_permission_keys(
            self.get_group_permission_ids([g.id for g in groups])
        )
        direct_permissions = self.get_permission_keys(self.get_direct_permission_ids(user.id))

        return SessionSnapshot(
            state=SessionState.AUTHENTICATED,
            user=user,
            groups=tuple(groups),
            permissions=frozenset(group_permissions) | frozenset(direct_permissions),
            direct_permissions=frozenset(direct_permissions),
            channel_access=self.get_channel_access(user.id),
        )

    def get_groups(self, user_id: str) -> List[GroupRef]:
        members_result = self.supabase.table("u_group_members")\
            .select("group_id")\
            .eq("user_id", user_id)\
            .execute()
        group_ids = list({m["group_id"] for m in members_result.data or []})
        if not group_ids:
            return []
        groups_result = self.supabase.table("u_groups")\
            .select("id, name, is_system")\
            .in_("id", group_ids)\
            .execute()
        return [
            GroupRef(id=g["id"], name=g["name"], is_system=bool(g.get("is_system")))
            for g in groups_result.data or []
        ]

    def get_group_permission_ids(self, group_ids: List[str]) -> List[str]:
        if not group_ids:
            return []
        result = self.supabase.table("u_group_permissions")\
            .select("permission_id")\
            .in_("group_id", group_ids)\
            .execute()
        return list({r["permission_id"] for r in result.data or []})

    def get_direct_permission_ids(self, user_id: str) -> List[str]:
        result = self.supabase.table("u_user_permissions")\
            .select("permission_id")\
            .eq("user_id", user_id)\
            .execute()
        return list({r["permission_id"] for r in result.data or []})

    def get_permission_keys(self, permission_ids: List[str]) -> List[str]:
        if not permission_ids:
            return []
        result = self.supabase.table("u_permissions")\
            .select("id, app_key, resource, action")\
            .in_("id", permission_ids)\
            .execute()
        return [PermissionKey.from_row(p).key for p in result.data or []]

    def get_channel_access(self, user_id: str) -> Tuple[ChannelAccessEntry, ...]:
        result = self.supabase.table("u_channel_access")\
            .select("channel_id, can_write")\
            .eq("user_id", user_id)\
            .execute()
        return tuple(
            ChannelAccessEntry(channel_id=r["channel_id"], can_write=bool(r.get("can_write")))
            for r in result.data or []
        )


class SessionStore:
    """Latest snapshot per auth user, with a short TTL like the auth user cache."""

    def __init__(self, ttl_sec: Optional[int] = None, max_size: int = 500):
        self.ttl_sec = settings.session_cache_ttl_sec if ttl_sec is None else ttl_sec
        self.max_size = max_size
        self._snapshots: Dict[str, Tuple[SessionSnapshot, float]] = {}
        self._listeners: List[SnapshotListener] = []

    def get(self, auth_user_id: str) -> Optional[SessionSnapshot]:
        entry = self._snapshots.get(auth_user_id)
        if entry is None:
            return None
        snapshot, expiry = entry
        if time.monotonic() >= expiry:
            del self._snapshots[auth_user_id]
            return None
        return snapshot

    def publish(self, auth_user_id: str, snapshot: SessionSnapshot) -> SessionSnapshot:
        """Replace the stored snapshot and notify listeners"""
        now = time.monotonic()
        if auth_user_id not in self._snapshots and len(self._snapshots) >= self.max_size:
            self._evict(now)
        self._snapshots[auth_user_id] = (snapshot, now + self.ttl_sec)
        for listener in list(self._listeners):
            try:
                listener(auth_user_id, snapshot)
            except Exception:
                logger.exception("Session listener failed")
        return snapshot

    def _evict(self, now: float) -> None:
        for key, (_, expiry) in list(self._snapshots.items()):
            if now >= expiry:
                del self._snapshots[key]
        # Still full: drop the entry closest to expiring
        while len(self._snapshots) >= self.max_size:
            oldest = min(self._snapshots, key=lambda k: self._snapshots[k][1])
            del self._snapshots[oldest]

    def subscribe(self, listener: SnapshotListener) -> Callable[[], None]:
        """Register a listener; returns a function that unsubscribes it"""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def invalidate(self, auth_user_id: str) -> None:
        self._snapshots.pop(auth_user_id, None)

    def invalidate_user(self, user_id: str) -> None:
        """Drop cached snapshots belonging to a u_users id"""
        for auth_user_id, (snapshot, _) in list(self._snapshots.items()):
            if snapshot.user is not None and snapshot.user.id == user_id:
                self._snapshots.pop(auth_user_id, None)

    def clear(self) -> None:
        self._snapshots.clear()

    def get_or_load(self, auth_user_id: str, loader: SessionLoader, check_lock: bool = True) -> SessionSnapshot:
        snapshot = self.get(auth_user_id)
        if snapshot is not None:
            return snapshot
        snapshot = loader.load(auth_user_id, check_lock=check_lock)
        # Locked or failed loads are not cached so the next request re-checks
        if snapshot.state == SessionState.AUTHENTICATED:
            self.publish(auth_user_id, snapshot)
        return snapshot

    def refresh(self, auth_user_id: str, loader: SessionLoader, check_lock: bool = True) -> SessionSnapshot:
        snapshot = loader.load(auth_user_id, check_lock=check_lock)
        if snapshot.state == SessionState.AUTHENTICATED:
            return self.publish(auth_user_id, snapshot)
        self.invalidate(auth_user_id)
        return snapshot


session_store = SessionStore()
