"""Access evaluator: the one entry point guards and routers should call.

    evaluator = AccessEvaluator(store, on_denied=log_denial)
    await evaluator.can_access(user, "devices", "delete")
    await evaluator.can_access_view(user, "access-rights")
    await evaluator.get_effective_permissions(user)

Rules:
  - Superusers are allowed everything, whatever their stored override says.
    This is checked here; the superuser row of the default table is never read.
  - Unknown modules, actions and views are denied (fail-closed).
  - If the store can't be read, the role defaults are used.
  - Checks never raise; a denial is `False` plus an `on_denied` callback.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, Optional, Protocol

from deskguard.auth.permissions import has_permission, resolve_permissions
from deskguard.auth.policy import PermissionSet, uniform_permissions
from deskguard.auth.schema import Module, Role, is_known, parse_role
from deskguard.auth.store import PermissionStore
from deskguard.auth.views import VIEW_RULES, get_view_rule
from deskguard.middleware.exceptions import StoreUnavailableError

logger = logging.getLogger(__name__)


class UserRef(Protocol):
    id: Any
    role: Any


@dataclass(frozen=True)
class AccessDenial:
    user_id: str
    role: str
    module: str | None = None
    action: str | None = None
    view_id: str | None = None


DenialCallback = Callable[[AccessDenial], None]


def _role_value(role: Any) -> str:
    return role.value if isinstance(role, Role) else str(role)


class AccessEvaluator:
    def __init__(
        self,
        store: PermissionStore,
        on_denied: Optional[DenialCallback] = None,
    ):
        self.store = store
        self.on_denied = on_denied

    # ── Public API ──────────────────────────────────────────

    async def can_access(self, user: UserRef, module: Module | str, action: str) -> bool:
        role = parse_role(user.role)
        if role is Role.SUPERUSER:
            return True

        allowed = await self._check(user, role, module, action)
        if not allowed:
            module_id = module.value if isinstance(module, Module) else str(module)
            self._deny(AccessDenial(
                user_id=str(user.id),
                role=_role_value(user.role),
                module=module_id,
                action=action,
            ))
        return allowed

    async def can_access_view(self, user: UserRef, view_id: str) -> bool:
        role = parse_role(user.role)
        if role is Role.SUPERUSER:
            return True

        allowed = await self._check_view(user, role, view_id)
        if not allowed:
            self._deny(AccessDenial(
                user_id=str(user.id),
                role=_role_value(user.role),
                view_id=view_id,
            ))
        return allowed

    async def get_effective_permissions(self, user: UserRef) -> PermissionSet:
        role = parse_role(user.role)
        if role is Role.SUPERUSER:
            return uniform_permissions(True)
        return await self._effective(user, role)

    async def visible_views(self, user: UserRef) -> dict[str, bool]:
        """Allowed flag per catalog view, for navigation menus (no callbacks)."""
        role = parse_role(user.role)
        if role is Role.SUPERUSER:
            return {view_id: True for view_id in VIEW_RULES}

        permissions = await self._effective(user, role)
        return {
            view_id: self._view_allowed(role, view_id, permissions)
            for view_id in VIEW_RULES
        }

    # ── Internals ───────────────────────────────────────────

    async def _effective(self, user: UserRef, role: Role | None) -> PermissionSet:
        if role is None:
            # Overrides can't grant anything to an unrecognized role
            logger.warning(f"Unrecognized role {user.role!r} for user {user.id}")
            return uniform_permissions(False)
        try:
            override = await self.store.load(str(user.id))
        except StoreUnavailableError as e:
            logger.warning(
                f"Permission store unavailable for user {user.id}, "
                f"using {role.value} defaults: {e.message}"
            )
            override = None
        return resolve_permissions(role, override)

    async def _check(
        self, user: UserRef, role: Role | None, module: Module | str, action: str
    ) -> bool:
        if not is_known(module, action):
            logger.debug(f"Unknown permission {module}.{action} requested")
            return False
        permissions = await self._effective(user, role)
        return has_permission(permissions, module, action)

    async def _check_view(self, user: UserRef, role: Role | None, view_id: str) -> bool:
        rule = get_view_rule(view_id)
        if rule is None:
            logger.debug(f"Unknown view {view_id!r} requested")
            return False
        if not rule.any_of:
            # Open or role-gated only: no store read needed
            return rule.roles is None or role in rule.roles
        permissions = await self._effective(user, role)
        return self._view_allowed(role, view_id, permissions)

    @staticmethod
    def _view_allowed(role: Role | None, view_id: str, permissions: PermissionSet) -> bool:
        rule = VIEW_RULES[view_id]
        if rule.roles is not None and role not in rule.roles:
            return False
        if not rule.any_of:
            return True
        return any(has_permission(permissions, module, action) for module, action in rule.any_of)

    def _deny(self, denial: AccessDenial) -> None:
        if self.on_denied is None:
            return
        try:
            self.on_denied(denial)
        except Exception:
            logger.exception("Denial callback failed")
