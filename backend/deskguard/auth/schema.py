"""Permission schema: every (module, action) pair known to DeskGuard.

Design:
  - Modules are functional areas of the dashboard (devices, tickets, ...).
  - Each module declares its own ordered action list; modules do not share
    a global action set (`tickets.assign` exists, `devices.assign` doesn't).
  - Adding a module means adding a `Module` member, an entry in
    `PERMISSION_SCHEMA` and a row per role in `deskguard.auth.policy`;
    the evaluator never needs to change.

Module ids are the JSON keys of a stored override document, so they keep
the dashboard's camelCase spelling (`aiChat`, `adjustStock`).
"""

from __future__ import annotations

import enum
from typing import Iterator


class Role(str, enum.Enum):
    PORTAL = "portal"
    USER = "user"
    ADMIN = "admin"
    SUPERUSER = "superuser"


class Module(str, enum.Enum):
    DEVICES = "devices"
    ASSETS = "assets"
    INVENTORY = "inventory"
    USERS = "users"
    TICKETS = "tickets"
    MAINTENANCE = "maintenance"
    REPORTS = "reports"
    SETTINGS = "settings"
    DEVELOPMENT = "development"
    CONTACTS = "contacts"
    CALENDAR = "calendar"
    TASKS = "tasks"
    AI_CHAT = "aiChat"
    PROJECTS = "projects"


_CRUD = ("view", "create", "edit", "delete")
_CRUD_EXPORT = _CRUD + ("export",)


# ── Module → actions ────────────────────────────────────────

PERMISSION_SCHEMA: dict[Module, tuple[str, ...]] = {
    Module.DEVICES: _CRUD_EXPORT,
    Module.ASSETS: _CRUD_EXPORT,
    Module.INVENTORY: _CRUD_EXPORT + (
        "adjustStock",
        "viewTransactions",
        "manageAlerts",
    ),
    Module.USERS: _CRUD + ("manageRoles",),
    Module.TICKETS: _CRUD + ("assign", "close"),
    Module.MAINTENANCE: _CRUD + ("schedule",),
    Module.REPORTS: _CRUD_EXPORT,
    Module.SETTINGS: ("view", "edit", "system", "backup"),
    Module.DEVELOPMENT: (
        "apiAccess",
        "systemLogs",
        "databaseAccess",
        "debugging",
        "systemMonitoring",
    ),
    Module.CONTACTS: _CRUD,
    Module.CALENDAR: _CRUD,
    Module.TASKS: _CRUD,
    Module.AI_CHAT: _CRUD + ("configure",),
    Module.PROJECTS: _CRUD + ("manage",),
}


# ── Lookups ─────────────────────────────────────────────────

def parse_module(value: Module | str) -> Module | None:
    """Return the `Module` for an id, or None if the id is not in the schema."""
    if isinstance(value, Module):
        return value
    try:
        return Module(value)
    except ValueError:
        return None


def parse_role(value: Role | str | None) -> Role | None:
    if isinstance(value, Role):
        return value
    try:
        return Role(value)
    except ValueError:
        return None


def list_modules() -> list[Module]:
    return list(PERMISSION_SCHEMA)


def list_actions(module: Module | str) -> tuple[str, ...]:
    """Ordered actions declared by a module (empty for unknown modules)."""
    parsed = parse_module(module)
    if parsed is None:
        return ()
    return PERMISSION_SCHEMA[parsed]


def is_known(module: Module | str, action: str) -> bool:
    return action in list_actions(module)


def all_pairs() -> Iterator[tuple[Module, str]]:
    """Yield every (module, action) cell in schema order."""
    for module, actions in PERMISSION_SCHEMA.items():
        for action in actions:
            yield module, action
