"""View catalog: what each dashboard view requires.

A view may require:
  - `any_of`: at least one of these (module, action) permissions
  - `roles`:  the user's role must be in this set
Both must hold when both are given. A view with neither is open to every
authenticated user. Superusers are let through before any rule is read.
"""

from __future__ import annotations

from dataclasses import dataclass

from deskguard.auth.schema import Module, Role


@dataclass(frozen=True)
class ViewRule:
    any_of: tuple[tuple[Module, str], ...] = ()
    roles: frozenset[Role] | None = None


def _needs(module: Module, action: str = "view") -> ViewRule:
    return ViewRule(any_of=((module, action),))


_ADMINS = frozenset({Role.ADMIN, Role.SUPERUSER})
_SUPERUSER_ONLY = frozenset({Role.SUPERUSER})


VIEW_RULES: dict[str, ViewRule] = {
    "analytics": ViewRule(any_of=(
        (Module.DEVICES, "view"),
        (Module.ASSETS, "view"),
        (Module.INVENTORY, "view"),
    )),
    "devices": _needs(Module.DEVICES),
    "assets": _needs(Module.ASSETS),
    "inventory": _needs(Module.INVENTORY),
    # Projects and their materials are inventory-backed screens
    "projects": _needs(Module.INVENTORY),
    "project-materials": _needs(Module.INVENTORY),
    "users": _needs(Module.USERS),
    "maintenance": _needs(Module.MAINTENANCE),
    "tickets": _needs(Module.TICKETS),
    "contacts": ViewRule(),
    "calendar": ViewRule(),
    "tasks": ViewRule(),
    "ai-chat": _needs(Module.AI_CHAT),
    "ai-models": _needs(Module.AI_CHAT, "configure"),
    "access-rights": ViewRule(roles=_ADMINS),
    "audit": ViewRule(roles=_ADMINS),
    "development": ViewRule(roles=_SUPERUSER_ONLY),
    "god-mode": ViewRule(roles=_SUPERUSER_ONLY),
    "settings": _needs(Module.SETTINGS),
    "reports": _needs(Module.REPORTS),
}


def get_view_rule(view_id: str) -> ViewRule | None:
    return VIEW_RULES.get(view_id)
