"""
Permissions and Page Configuration
This config defines the permission catalog for the system, Nova and Pulsar apps,
the page -> required permission tables used for page gating, and the default
page list used to seed page visibility settings.
Used by the permission resolver, the seed script and the catalog routes.
"""

from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Union

APP_KEYS = ("system", "nova", "pulsar")
ACTIONS = ("read", "write", "admin")

# Actions that mutate state; suppressed for pending users
WRITE_ACTIONS = frozenset({"write", "admin"})

WILDCARD = "*"

ADMINISTRATORS_GROUP = "Administrators"


class InvalidPermissionKey(ValueError):
    pass


def is_write_action(action: str) -> bool:
    return action in WRITE_ACTIONS


@dataclass(frozen=True)
class PermissionKey:
    """A grantable capability: the (app_key, resource, action) triple.

    The dot-joined string form ("nova.weather.write") is only ever built by
    ``key`` and only ever read back by ``parse``.
    """

    app_key: str
    resource: str
    action: str

    @property
    def key(self) -> str:
        return f"{self.app_key}.{self.resource}.{self.action}"

    @property
    def is_write(self) -> bool:
        return is_write_action(self.action)

    def __str__(self) -> str:
        return self.key

    @classmethod
    def parse(cls, text: str) -> "PermissionKey":
        if not isinstance(text, str):
            raise InvalidPermissionKey(f"Permission key must be a string, got {type(text).__name__}")
        parts = text.split(".")
        if len(parts) != 3 or not all(parts):
            raise InvalidPermissionKey(f"Permission key must be 'app.resource.action': {text!r}")
        app_key, resource, action = parts
        if action not in ACTIONS:
            raise InvalidPermissionKey(f"Unknown permission action {action!r} in {text!r}")
        return cls(app_key, resource, action)

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "PermissionKey":
        """Build from a u_permissions row (or any mapping with app_key/resource/action)"""
        return cls(row["app_key"], row["resource"], row["action"])


def get_permission_display_name(permission: Union[PermissionKey, Mapping[str, Any], str]) -> str:
    """Human label for a permission, e.g. "School Closings Write" """
    if isinstance(permission, str):
        permission = PermissionKey.parse(permission)
    elif not isinstance(permission, PermissionKey):
        permission = PermissionKey.from_row(permission)
    resource_title = permission.resource.replace("_", " ").title()
    return f"{resource_title} {permission.action.capitalize()}"


def _perm(app_key: str, resource: str, action: str) -> str:
    return PermissionKey(app_key, resource, action).key


# System-level permissions
SYSTEM_PERMISSIONS = {
    "MANAGE_USERS": _perm("system", "users", "admin"),
    "MANAGE_GROUPS": _perm("system", "groups", "admin"),
    "MANAGE_PERMISSIONS": _perm("system", "permissions", "admin"),
    "VIEW_AUDIT_LOG": _perm("system", "audit_log", "read"),
    "MANAGE_APPS": _perm("system", "apps", "admin"),
    "MANAGE_CHANNELS": _perm("system", "channels", "admin"),
    "MANAGE_AI_CONNECTIONS": _perm("system", "ai_connections", "admin"),
    "MANAGE_PAGE_VISIBILITY": _perm("system", "page_visibility", "admin"),
    "MANAGE_DASHBOARD_CONFIG": _perm("system", "dashboard_config", "admin"),
    "VIEW_ALL_DATA": _perm("system", "all_data", "read"),
}

SYSTEM_PERMISSION_DESCRIPTIONS = {
    "MANAGE_USERS": "Create, edit and remove users",
    "MANAGE_GROUPS": "Create, edit and remove groups",
    "MANAGE_PERMISSIONS": "Grant and revoke permissions",
    "VIEW_AUDIT_LOG": "View the audit log",
    "MANAGE_APPS": "Manage application settings",
    "MANAGE_CHANNELS": "Manage channels and channel access",
    "MANAGE_AI_CONNECTIONS": "Manage AI provider connections",
    "MANAGE_PAGE_VISIBILITY": "Show or hide pages in the menu",
    "MANAGE_DASHBOARD_CONFIG": "Configure dashboard cards",
    "VIEW_ALL_DATA": "Read access to all system pages",
}

# Per-app resources that carry a read/write pair
MODULES = {
    "nova": {
        "election": "Election results",
        "finance": "Finance data",
        "sports": "Sports data",
        "weather": "Weather monitoring",
        "news": "News feeds",
        "agents": "AI agents",
        "media": "Media library",
        "school_closings": "School closings",
        "feeds": "Data feeds and providers",
        "api_endpoints": "API endpoints",
    },
    "pulsar": {
        "channel_playlists": "Channel playlists",
        "graphics": "Graphics",
        "tickers": "Tickers",
        "banners": "Banners",
        "alerts": "Alerts",
        "rundowns": "Rundowns",
        "templates": "Templates",
        "outputs": "Outputs",
        "preview": "Preview",
        "settings": "Settings",
    },
}

# Pages gated by admin rights instead of the generic page tables
SYSTEM_PAGES = frozenset({"users_groups", "ai_connections", "channels"})
DASHBOARD_CONFIG_PAGE = "dashboard_config"

SYSTEM_PAGE_WRITE_PERMISSIONS = {
    "users_groups": SYSTEM_PERMISSIONS["MANAGE_USERS"],
    "ai_connections": SYSTEM_PERMISSIONS["MANAGE_AI_CONNECTIONS"],
    "channels": SYSTEM_PERMISSIONS["MANAGE_CHANNELS"],
    DASHBOARD_CONFIG_PAGE: SYSTEM_PERMISSIONS["MANAGE_DASHBOARD_CONFIG"],
}

# Page key -> required permission. Page keys match u_page_settings.page_key
PAGE_READ_PERMISSIONS = {
    resource: _perm(app_key, resource, "read")
    for app_key, resources in MODULES.items()
    for resource in resources
}

PAGE_WRITE_PERMISSIONS = {
    resource: _perm(app_key, resource, "write")
    for app_key, resources in MODULES.items()
    for resource in resources
}

# Default page list per app, used to seed u_page_settings
DEFAULT_PAGES: Dict[str, Dict[str, str]] = {
    "nova": {
        **{resource: description for resource, description in MODULES["nova"].items()},
        "users_groups": "Users & Groups",
        "ai_connections": "AI Connections",
        "channels": "Channels",
        DASHBOARD_CONFIG_PAGE: "Dashboard Config",
    },
    "pulsar": {
        **{resource: description for resource, description in MODULES["pulsar"].items()},
        "users_groups": "Users & Groups",
        "channels": "Channels",
    },
}


def get_permission_catalog() -> List[Dict[str, Any]]:
    """
    Returns every catalog permission as a u_permissions row
    Format: [
        {"app_key": "nova", "resource": "weather", "action": "read",
         "key": "nova.weather.read", "description": "..."},
        ...
    ]
    """
    catalog = []
    for const, key in SYSTEM_PERMISSIONS.items():
        permission = PermissionKey.parse(key)
        catalog.append({
            "app_key": permission.app_key,
            "resource": permission.resource,
            "action": permission.action,
            "key": permission.key,
            "description": SYSTEM_PERMISSION_DESCRIPTIONS[const],
        })
    for app_key, resources in MODULES.items():
        for resource, description in resources.items():
            for action in ("read", "write"):
                catalog.append({
                    "app_key": app_key,
                    "resource": resource,
                    "action": action,
                    "key": _perm(app_key, resource, action),
                    "description": f"{action.capitalize()} access to {description.lower()}",
                })
    return catalog


def get_administrator_permission_keys() -> List[str]:
    """Permissions granted to the built-in Administrators group"""
    return sorted(key for key in SYSTEM_PERMISSIONS.values())
