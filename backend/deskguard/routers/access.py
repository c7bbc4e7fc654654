"""Access-rights router.

Endpoints:
    GET  /api/access/schema            Module → actions catalog
    GET  /api/access/defaults/{role}   Default permission row for a role
    GET  /api/access/me                Caller's effective permissions
    GET  /api/access/me/views          Caller's allowed views (navigation)
    POST /api/access/check             Evaluate one (module, action)
    GET  /api/access/users             Users with their override status
    GET  /api/access/users/{user_id}   Effective + stored rights (editor seed)
    PUT  /api/access/users/{user_id}   Overwrite a user's override
"""

import logging

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from deskguard.auth.deps import (
    get_current_user,
    get_evaluator,
    get_permission_store,
    require_access,
    require_view,
)
from deskguard.auth.evaluator import AccessEvaluator
from deskguard.auth.permissions import resolve_permissions, unknown_override_keys
from deskguard.auth.policy import default_permissions
from deskguard.auth.schema import Module, Role, list_actions, list_modules, parse_role
from deskguard.auth.store import PermissionStore
from deskguard.database import get_db
from deskguard.middleware.exceptions import BusinessLogicError, ResourceNotFoundError
from deskguard.models.user import User
from deskguard.schemas.access import (
    AccessCheckRequest,
    AccessCheckResult,
    EffectivePermissions,
    ModuleActions,
    OverrideUpdate,
    RoleDefaults,
    UserAccessRights,
    UserSummary,
    ViewAccess,
)

logger = logging.getLogger(__name__)

router = APIRouter()


async def _get_user(db: AsyncSession, user_id: str) -> User:
    result = await db.execute(select(User).where(User.id == user_id))
    user = result.scalar_one_or_none()
    if not user:
        raise ResourceNotFoundError("User", user_id)
    return user


def _access_rights(user: User, permissions: dict) -> UserAccessRights:
    return UserAccessRights(
        user_id=user.id,
        username=user.username,
        role=user.role.value,
        editable=user.role != Role.SUPERUSER,
        permissions=permissions,
        stored_override=(
            user.custom_permissions if isinstance(user.custom_permissions, dict) else None
        ),
    )


# ── Catalog ───────────────────────────────────────────────────

@router.get("/schema", response_model=list[ModuleActions])
async def get_schema(_user: User = Depends(get_current_user)):
    return [
        ModuleActions(module=module.value, actions=list(list_actions(module)))
        for module in list_modules()
    ]


@router.get("/defaults/{role}", response_model=RoleDefaults)
async def get_role_defaults(role: str, _user: User = Depends(get_current_user)):
    parsed = parse_role(role)
    if parsed is None:
        raise ResourceNotFoundError("Role", role)
    return RoleDefaults(role=parsed.value, permissions=default_permissions(parsed))


# ── Caller's own access ───────────────────────────────────────

@router.get("/me", response_model=EffectivePermissions)
async def get_my_permissions(
    user: User = Depends(get_current_user),
    evaluator: AccessEvaluator = Depends(get_evaluator),
):
    return EffectivePermissions(
        user_id=user.id,
        role=user.role.value,
        is_superuser=user.role == Role.SUPERUSER,
        permissions=await evaluator.get_effective_permissions(user),
    )


@router.get("/me/views", response_model=list[ViewAccess])
async def get_my_views(
    user: User = Depends(get_current_user),
    evaluator: AccessEvaluator = Depends(get_evaluator),
):
    views = await evaluator.visible_views(user)
    return [ViewAccess(view_id=view_id, allowed=allowed) for view_id, allowed in views.items()]


@router.post("/check", response_model=AccessCheckResult)
async def check_access(
    payload: AccessCheckRequest,
    user: User = Depends(get_current_user),
    evaluator: AccessEvaluator = Depends(get_evaluator),
):
    allowed = await evaluator.can_access(user, payload.module, payload.action)
    return AccessCheckResult(module=payload.module, action=payload.action, allowed=allowed)


# ── Access Rights editor ──────────────────────────────────────

@router.get("/users", response_model=list[UserSummary])
async def list_users(
    db: AsyncSession = Depends(get_db),
    _user: User = Depends(require_access(Module.USERS, "view")),
):
    result = await db.execute(select(User).order_by(User.username))
    return [
        UserSummary(
            id=u.id,
            username=u.username,
            full_name=u.full_name,
            role=u.role.value,
            is_active=u.is_active,
            has_override=u.custom_permissions is not None,
            created_at=u.created_at,
        )
        for u in result.scalars().all()
    ]


@router.get("/users/{user_id}", response_model=UserAccessRights)
async def get_user_access_rights(
    user_id: str,
    db: AsyncSession = Depends(get_db),
    evaluator: AccessEvaluator = Depends(get_evaluator),
    _editor: User = Depends(require_view("access-rights")),
):
    target = await _get_user(db, user_id)
    return _access_rights(target, await evaluator.get_effective_permissions(target))


@router.put("/users/{user_id}", response_model=UserAccessRights)
async def update_user_access_rights(
    user_id: str,
    payload: OverrideUpdate,
    db: AsyncSession = Depends(get_db),
    store: PermissionStore = Depends(get_permission_store),
    editor: User = Depends(require_view("access-rights")),
    _manager: User = Depends(require_access(Module.USERS, "manageRoles")),
):
    """Overwrite a user's stored override with the submitted document.

    The store commits before it drops the cached copy; the response is
    resolved from the saved document, not read back through the cache.
    """
    target = await _get_user(db, user_id)

    if target.role == Role.SUPERUSER:
        raise HTTPException(
            status_code=400,
            detail="Superuser access rights cannot be modified",
        )

    unknown = unknown_override_keys(payload.permissions)
    if unknown:
        raise BusinessLogicError(
            "Override references unknown permissions",
            error_code="UNKNOWN_PERMISSION",
            details={"unknown": unknown},
        )

    await store.save(target.id, payload.permissions)
    await db.refresh(target)

    logger.info(
        f"Access rights for {target.username} updated by {editor.username}",
        extra={"target_id": target.id, "editor_id": editor.id},
    )
    return _access_rights(
        target, resolve_permissions(target.role, target.custom_permissions)
    )
