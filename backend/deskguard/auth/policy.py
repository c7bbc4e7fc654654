"""Default policy table: role → complete permission set.

Every (role, module, action) cell is spelled out explicitly. A cell that is
missing here is a defect, not an implicit deny; `missing_defaults()` reports
such cells and the test suite / `python -m deskguard.cli check-defaults`
fail on them.

The superuser row is all-true for documentation and export only. The
evaluator grants superusers everything without reading this table.
"""

from __future__ import annotations

import copy

from deskguard.auth.schema import Role, all_pairs, is_known

# module id → action → allowed
PermissionSet = dict[str, dict[str, bool]]


# ── Role → default permissions ──────────────────────────────

ROLE_DEFAULTS: dict[Role, PermissionSet] = {
    # Self-service ticket portal
    Role.PORTAL: {
        "devices": {"view": False, "create": False, "edit": False, "delete": False, "export": False},
        "assets": {"view": False, "create": False, "edit": False, "delete": False, "export": False},
        "inventory": {
            "view": False, "create": False, "edit": False, "delete": False, "export": False,
            "adjustStock": False, "viewTransactions": False, "manageAlerts": False,
        },
        "users": {"view": False, "create": False, "edit": False, "delete": False, "manageRoles": False},
        "tickets": {"view": True, "create": True, "edit": True, "delete": False, "assign": False, "close": False},
        "maintenance": {"view": False, "create": False, "edit": False, "delete": False, "schedule": False},
        "reports": {"view": False, "create": False, "edit": False, "delete": False, "export": False},
        "settings": {"view": True, "edit": False, "system": False, "backup": False},
        "development": {
            "apiAccess": False, "systemLogs": False, "databaseAccess": False,
            "debugging": False, "systemMonitoring": False,
        },
        "contacts": {"view": True, "create": False, "edit": False, "delete": False},
        "calendar": {"view": True, "create": False, "edit": False, "delete": False},
        "tasks": {"view": True, "create": False, "edit": False, "delete": False},
        "aiChat": {"view": True, "create": True, "edit": False, "delete": False, "configure": False},
        "projects": {"view": False, "create": False, "edit": False, "delete": False, "manage": False},
    },

    # Regular staff: read-mostly
    Role.USER: {
        "devices": {"view": True, "create": False, "edit": False, "delete": False, "export": False},
        "assets": {"view": True, "create": False, "edit": False, "delete": False, "export": False},
        "inventory": {
            "view": True, "create": False, "edit": False, "delete": False, "export": False,
            "adjustStock": False, "viewTransactions": False, "manageAlerts": False,
        },
        "users": {"view": False, "create": False, "edit": False, "delete": False, "manageRoles": False},
        "tickets": {"view": True, "create": True, "edit": False, "delete": False, "assign": False, "close": False},
        "maintenance": {"view": True, "create": False, "edit": False, "delete": False, "schedule": False},
        "reports": {"view": True, "create": False, "edit": False, "delete": False, "export": False},
        "settings": {"view": False, "edit": False, "system": False, "backup": False},
        "development": {
            "apiAccess": False, "systemLogs": False, "databaseAccess": False,
            "debugging": False, "systemMonitoring": False,
        },
        "contacts": {"view": True, "create": False, "edit": False, "delete": False},
        "calendar": {"view": True, "create": False, "edit": False, "delete": False},
        "tasks": {"view": True, "create": False, "edit": False, "delete": False},
        "aiChat": {"view": True, "create": True, "edit": False, "delete": False, "configure": False},
        "projects": {"view": False, "create": False, "edit": False, "delete": False, "manage": False},
    },

    # Admins cannot delete user accounts or touch system-level settings
    Role.ADMIN: {
        "devices": {"view": True, "create": True, "edit": True, "delete": True, "export": True},
        "assets": {"view": True, "create": True, "edit": True, "delete": True, "export": True},
        "inventory": {
            "view": True, "create": True, "edit": True, "delete": True, "export": True,
            "adjustStock": True, "viewTransactions": True, "manageAlerts": True,
        },
        "users": {"view": True, "create": True, "edit": True, "delete": False, "manageRoles": True},
        "tickets": {"view": True, "create": True, "edit": True, "delete": True, "assign": True, "close": True},
        "maintenance": {"view": True, "create": True, "edit": True, "delete": True, "schedule": True},
        "reports": {"view": True, "create": True, "edit": True, "delete": False, "export": True},
        "settings": {"view": True, "edit": True, "system": False, "backup": True},
        "development": {
            "apiAccess": False, "systemLogs": True, "databaseAccess": False,
            "debugging": False, "systemMonitoring": True,
        },
        "contacts": {"view": True, "create": True, "edit": True, "delete": True},
        "calendar": {"view": True, "create": True, "edit": True, "delete": True},
        "tasks": {"view": True, "create": True, "edit": True, "delete": True},
        "aiChat": {"view": True, "create": True, "edit": True, "delete": True, "configure": True},
        "projects": {"view": True, "create": True, "edit": True, "delete": True, "manage": True},
    },

    # Documentation / export only, see module docstring
    Role.SUPERUSER: {
        "devices": {"view": True, "create": True, "edit": True, "delete": True, "export": True},
        "assets": {"view": True, "create": True, "edit": True, "delete": True, "export": True},
        "inventory": {
            "view": True, "create": True, "edit": True, "delete": True, "export": True,
            "adjustStock": True, "viewTransactions": True, "manageAlerts": True,
        },
        "users": {"view": True, "create": True, "edit": True, "delete": True, "manageRoles": True},
        "tickets": {"view": True, "create": True, "edit": True, "delete": True, "assign": True, "close": True},
        "maintenance": {"view": True, "create": True, "edit": True, "delete": True, "schedule": True},
        "reports": {"view": True, "create": True, "edit": True, "delete": True, "export": True},
        "settings": {"view": True, "edit": True, "system": True, "backup": True},
        "development": {
            "apiAccess": True, "systemLogs": True, "databaseAccess": True,
            "debugging": True, "systemMonitoring": True,
        },
        "contacts": {"view": True, "create": True, "edit": True, "delete": True},
        "calendar": {"view": True, "create": True, "edit": True, "delete": True},
        "tasks": {"view": True, "create": True, "edit": True, "delete": True},
        "aiChat": {"view": True, "create": True, "edit": True, "delete": True, "configure": True},
        "projects": {"view": True, "create": True, "edit": True, "delete": True, "manage": True},
    },
}


def default_permissions(role: Role) -> PermissionSet:
    """Return a deep copy of a role's default row (callers may mutate it)."""
    return copy.deepcopy(ROLE_DEFAULTS[role])


def uniform_permissions(granted: bool) -> PermissionSet:
    """Build a schema-complete set with every cell set to `granted`."""
    result: PermissionSet = {}
    for module, action in all_pairs():
        result.setdefault(module.value, {})[action] = granted
    return result


# ── Consistency checks ──────────────────────────────────────

def missing_defaults() -> list[tuple[Role, str, str]]:
    """Cells the schema declares but the table does not define."""
    missing = []
    for role in Role:
        row = ROLE_DEFAULTS.get(role, {})
        for module, action in all_pairs():
            value = row.get(module.value, {}).get(action)
            if not isinstance(value, bool):
                missing.append((role, module.value, action))
    return missing


def stray_defaults() -> list[tuple[Role, str, str]]:
    """Cells defined in the table that the schema does not know."""
    stray = []
    for role, row in ROLE_DEFAULTS.items():
        for module, actions in row.items():
            for action in actions:
                if not is_known(module, action):
                    stray.append((role, module, action))
    return stray
