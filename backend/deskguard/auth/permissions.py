"""Granular permission resolution for DeskGuard RBAC.

Design:
  - Each role has a DEFAULT permission set (`deskguard.auth.policy`).
  - Admins can grant/revoke individual cells per user via
    `User.custom_permissions`, a JSON document shaped like a permission set
    ({"devices": {"delete": true}, ...}). It may be partial.
  - `resolve_permissions(role, custom_permissions)` computes the effective
    set cell by cell: override value if present, role default otherwise.
  - Unknown modules/actions in a stored document are dropped, so data saved
    before an action was removed keeps working.
"""

from __future__ import annotations

import logging
from typing import Any, Mapping

from deskguard.auth.policy import PermissionSet, ROLE_DEFAULTS, uniform_permissions
from deskguard.auth.schema import Module, Role, all_pairs, is_known, parse_role

logger = logging.getLogger(__name__)


# ── Override sanitizing ─────────────────────────────────────

def normalize_override(raw: Any) -> PermissionSet:
    """Keep only the known, boolean-valued cells of a stored override."""
    clean: PermissionSet = {}
    if not raw:
        return clean
    if not isinstance(raw, Mapping):
        logger.debug(f"Dropping override of type {type(raw).__name__}: not a mapping")
        return clean

    for module, actions in raw.items():
        module_id = module.value if isinstance(module, Module) else module
        if not isinstance(actions, Mapping):
            logger.debug(f"Dropping override for {module_id!r}: not a mapping")
            continue
        for action, granted in actions.items():
            if not is_known(module_id, action) or not isinstance(granted, bool):
                logger.debug(f"Dropping unknown override cell {module_id}.{action}")
                continue
            clean.setdefault(module_id, {})[action] = granted
    return clean


def unknown_override_keys(raw: Mapping[str, Any] | None) -> list[str]:
    """Dotted keys (`module.action`) that `normalize_override` would drop."""
    unknown = []
    for module, actions in (raw or {}).items():
        module_id = module.value if isinstance(module, Module) else module
        if not isinstance(actions, Mapping):
            unknown.append(str(module_id))
            continue
        for action, granted in actions.items():
            if not is_known(module_id, action) or not isinstance(granted, bool):
                unknown.append(f"{module_id}.{action}")
    return unknown


# ── Resolution ──────────────────────────────────────────────

def resolve_permissions(
    role: Role | str,
    custom_overrides: Mapping[str, Any] | None = None,
) -> PermissionSet:
    """Compute effective permissions for a user.

    1. Start with the role's defaults, laid out in schema order.
    2. Apply custom_overrides cell by cell; cells the override doesn't
       mention keep the default.
    3. Return a fresh dict (equal inputs give equal, identically ordered output).

    An unrecognized role gets an all-false set and its overrides are ignored.
    """
    parsed = parse_role(role)
    if parsed is None:
        return uniform_permissions(False)
    defaults = ROLE_DEFAULTS[parsed]

    effective: PermissionSet = {}
    for module, action in all_pairs():
        granted = defaults.get(module.value, {}).get(action, False)
        effective.setdefault(module.value, {})[action] = granted

    for module, actions in normalize_override(custom_overrides).items():
        effective[module].update(actions)

    return effective


def has_permission(
    permissions: Mapping[str, Mapping[str, bool]],
    module: Module | str,
    action: str,
) -> bool:
    """Fail-closed cell lookup: absent modules/actions are denied."""
    module_id = module.value if isinstance(module, Module) else module
    return permissions.get(module_id, {}).get(action, False) is True
