"""Pytest fixtures: an in-memory Supabase client and an app wired to it."""

import uuid
from datetime import datetime, timezone
from types import SimpleNamespace
from typing import Any, Dict, Iterable, List, Optional

import pytest
from fastapi.testclient import TestClient

from app.config.permissions_config import get_permission_catalog
from app.core.dependencies import get_session_store
from app.core.session import SessionStore
from app.database.supabase_client import get_supabase
from app.modules.auth.service import clear_auth_cache


# --- Fake Supabase ---


class FakeQuery:
    """Chainable query over one in-memory table, mirroring the postgrest builder calls we use."""

    def __init__(self, db: "FakeSupabase", table: str) -> None:
        self._db = db
        self._table = table
        self._op = "select"
        self._payload: Any = None
        self._filters: List = []
        self._orders: List = []
        self._limit: Optional[int] = None
        self._offset = 0
        self._single = False

    def select(self, columns: str = "*") -> "FakeQuery":
        self._op = "select"
        return self

    def insert(self, payload: Any) -> "FakeQuery":
        self._op = "insert"
        self._payload = payload
        return self

    def update(self, payload: Dict[str, Any]) -> "FakeQuery":
        self._op = "update"
        self._payload = payload
        return self

    def delete(self) -> "FakeQuery":
        self._op = "delete"
        return self

    def eq(self, column: str, value: Any) -> "FakeQuery":
        self._filters.append(lambda row: row.get(column) == value)
        return self

    def in_(self, column: str, values: Iterable[Any]) -> "FakeQuery":
        allowed = list(values)
        self._filters.append(lambda row: row.get(column) in allowed)
        return self

    def order(self, column: str, desc: bool = False) -> "FakeQuery":
        self._orders.append((column, desc))
        return self

    def limit(self, count: int) -> "FakeQuery":
        self._limit = count
        return self

    def offset(self, count: int) -> "FakeQuery":
        self._offset = count
        return self

    def single(self) -> "FakeQuery":
        self._single = True
        return self

    def _matching(self) -> List[Dict[str, Any]]:
        rows = self._db.tables.setdefault(self._table, [])
        return [row for row in rows if all(f(row) for f in self._filters)]

    def execute(self) -> SimpleNamespace:
        self._db.calls.append((self._table, self._op))
        if self._table in self._db.failing_tables:
            raise RuntimeError(f"relation {self._table} is unavailable")

        rows = self._db.tables.setdefault(self._table, [])

        if self._op == "insert":
            payload = self._payload if isinstance(self._payload, list) else [self._payload]
            inserted = []
            for item in payload:
                row = {"id": str(uuid.uuid4()), "created_at": _now(), **item}
                rows.append(row)
                inserted.append(dict(row))
            return SimpleNamespace(data=inserted)

        matched = self._matching()

        if self._op == "update":
            for row in matched:
                row.update(self._payload)
            return SimpleNamespace(data=[dict(row) for row in matched])

        if self._op == "delete":
            self._db.tables[self._table] = [row for row in rows if not any(row is m for m in matched)]
            return SimpleNamespace(data=[dict(row) for row in matched])

        result = list(matched)
        for column, desc in reversed(self._orders):
            result.sort(key=lambda row: (row.get(column) is None, row.get(column) or ""), reverse=desc)
        result = result[self._offset:]
        if self._limit is not None:
            result = result[:self._limit]
        data = [dict(row) for row in result]
        if self._single:
            return SimpleNamespace(data=data[0] if data else None)
        return SimpleNamespace(data=data)


class FakeAdminAuth:
    def __init__(self, auth: "FakeAuth") -> None:
        self._auth = auth

    def create_user(self, attributes: Dict[str, Any]) -> SimpleNamespace:
        email = attributes["email"]
        if any(u.email.lower() == email.lower() for u in self._auth.users.values()):
            raise RuntimeError("A user with this email address has already been registered")
        user = self._auth.register(email, attributes.get("password"))
        return SimpleNamespace(user=user)

    def list_users(self) -> List[SimpleNamespace]:
        return list(self._auth.users.values())

    def update_user_by_id(self, uid: str, attributes: Dict[str, Any]) -> SimpleNamespace:
        user = self._auth.users[uid]
        if "password" in attributes:
            self._auth.passwords[uid] = attributes["password"]
        return SimpleNamespace(user=user)

    def delete_user(self, uid: str) -> None:
        self._auth.users.pop(uid, None)


class FakeAuth:
    def __init__(self) -> None:
        self.users: Dict[str, SimpleNamespace] = {}
        self.passwords: Dict[str, str] = {}
        self.tokens: Dict[str, str] = {}
        self.sign_outs = 0
        self.admin = FakeAdminAuth(self)

    def register(self, email: str, password: Optional[str] = None, token: Optional[str] = None) -> SimpleNamespace:
        user = SimpleNamespace(id=str(uuid.uuid4()), email=email, user_metadata={}, app_metadata={})
        self.users[user.id] = user
        if password is not None:
            self.passwords[user.id] = password
        if token is not None:
            self.tokens[token] = user.id
        return user

    def get_user(self, jwt: str) -> SimpleNamespace:
        if jwt not in self.tokens:
            raise RuntimeError("invalid JWT: unable to parse or verify signature")
        return SimpleNamespace(user=self.users[self.tokens[jwt]])

    def sign_in_with_password(self, credentials: Dict[str, str]) -> SimpleNamespace:
        for uid, user in self.users.items():
            if user.email == credentials["email"] and self.passwords.get(uid) == credentials["password"]:
                token = f"token-{uid}"
                self.tokens[token] = uid
                session = SimpleNamespace(access_token=token, refresh_token="refresh", expires_at=1700000000)
                return SimpleNamespace(user=user, session=session)
        raise RuntimeError("Invalid login credentials")

    def sign_out(self) -> None:
        self.sign_outs += 1


class FakeSupabase:
    def __init__(self) -> None:
        self.tables: Dict[str, List[Dict[str, Any]]] = {}
        self.calls: List = []
        self.failing_tables: set = set()
        self.auth = FakeAuth()

    def table(self, name: str) -> FakeQuery:
        return FakeQuery(self, name)


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


# --- Data helpers ---


class DataBuilder:
    """Seeds u_* rows into a FakeSupabase"""

    def __init__(self, supabase: FakeSupabase) -> None:
        self.supabase = supabase
        self.permission_ids: Dict[str, str] = {}

    def catalog(self) -> Dict[str, str]:
        for perm in get_permission_catalog():
            row = {k: perm[k] for k in ("app_key", "resource", "action", "description")}
            inserted = self.supabase.table("u_permissions").insert(row).execute().data[0]
            self.permission_ids[perm["key"]] = inserted["id"]
        return self.permission_ids

    def permission(self, key: str) -> str:
        if key not in self.permission_ids:
            app_key, resource, action = key.split(".")
            inserted = self.supabase.table("u_permissions").insert({
                "app_key": app_key, "resource": resource, "action": action, "description": None
            }).execute().data[0]
            self.permission_ids[key] = inserted["id"]
        return self.permission_ids[key]

    def user(
        self,
        email: str,
        token: Optional[str] = None,
        status: str = "active",
        is_superuser: bool = False,
        password: Optional[str] = None,
    ) -> Dict[str, Any]:
        auth_user = self.supabase.auth.register(email, password=password, token=token or f"tok-{email}")
        return self.supabase.table("u_users").insert({
            "auth_user_id": auth_user.id,
            "email": email,
            "full_name": email.split("@")[0],
            "status": status,
            "is_superuser": is_superuser,
        }).execute().data[0]

    def group(self, name: str, keys: Iterable[str] = (), members: Iterable[Dict] = (), is_system: bool = False) -> Dict:
        group = self.supabase.table("u_groups").insert({
            "name": name, "description": None, "color": None, "is_system": is_system
        }).execute().data[0]
        for key in keys:
            self.supabase.table("u_group_permissions").insert({
                "group_id": group["id"], "permission_id": self.permission(key)
            }).execute()
        for member in members:
            self.supabase.table("u_group_members").insert({
                "group_id": group["id"], "user_id": member["id"]
            }).execute()
        return group

    def grant(self, user: Dict, key: str) -> None:
        self.supabase.table("u_user_permissions").insert({
            "user_id": user["id"], "permission_id": self.permission(key)
        }).execute()

    def channel(self, user: Dict, channel_id: str, can_write: bool) -> None:
        self.supabase.table("u_channel_access").insert({
            "user_id": user["id"], "channel_id": channel_id, "can_write": can_write
        }).execute()


def auth_headers(email: str) -> Dict[str, str]:
    return {"Authorization": f"Bearer tok-{email}"}


# --- Fixtures ---


@pytest.fixture
def supabase() -> FakeSupabase:
    return FakeSupabase()


@pytest.fixture
def data(supabase: FakeSupabase) -> DataBuilder:
    return DataBuilder(supabase)


@pytest.fixture
def store() -> SessionStore:
    return SessionStore(ttl_sec=60)


@pytest.fixture
def superuser(data: DataBuilder) -> Dict[str, Any]:
    return data.user("root@example.com", is_superuser=True)


@pytest.fixture
def client(supabase: FakeSupabase, store: SessionStore):
    from app.main import app

    clear_auth_cache()
    app.dependency_overrides[get_supabase] = lambda: supabase
    app.dependency_overrides[get_session_store] = lambda: store
    yield TestClient(app)
    app.dependency_overrides.clear()
    clear_auth_cache()
