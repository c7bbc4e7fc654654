"""FastAPI dependencies for authentication and authorization.

Dependencies:
  get_current_user          → decode bearer token, load active User
  get_permission_store      → SQL store (behind the Redis cache if enabled)
  get_evaluator             → AccessEvaluator wired to the audit sink
  require_role(...)         → restrict to specific roles
  require_access(m, a)      → restrict to users allowed (module, action)
  require_view(view_id)     → restrict to users allowed to open a view
"""

from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from deskguard.auth.evaluator import AccessEvaluator
from deskguard.auth.jwt import decode_token
from deskguard.auth.schema import Module, Role
from deskguard.auth.store import CachedPermissionStore, PermissionStore, SqlPermissionStore
from deskguard.config import settings
from deskguard.database import get_db
from deskguard.models.user import User
from deskguard.utils.activity import log_denial
from deskguard.utils.cache import get_redis

# Tokens come from the external login service
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/auth/login")


# ── Core user dependency ────────────────────────────────────

async def get_current_user(
    token: str = Depends(oauth2_scheme),
    db: AsyncSession = Depends(get_db),
) -> User:
    """Decode the bearer token and load the user it names."""
    payload = decode_token(token)
    user_id: str | None = payload.get("sub")
    if not user_id or payload.get("type") != "access":
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
            headers={"WWW-Authenticate": "Bearer"},
        )

    result = await db.execute(select(User).where(User.id == user_id))
    user = result.scalar_one_or_none()
    if not user or not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User not found or inactive",
        )
    return user


# ── Engine wiring ───────────────────────────────────────────

async def get_permission_store(
    db: AsyncSession = Depends(get_db),
) -> PermissionStore:
    store = SqlPermissionStore(db)
    if settings.permission_cache_enabled:
        return CachedPermissionStore(
            store, get_redis, ttl=settings.permission_cache_ttl
        )
    return store


async def get_evaluator(
    store: PermissionStore = Depends(get_permission_store),
) -> AccessEvaluator:
    return AccessEvaluator(store, on_denied=log_denial)


# ── Role-based access control ───────────────────────────────

def require_role(*roles: Role):
    """Dependency factory — restrict to one or more roles.

    Usage:
        @router.get("/admin-only")
        async def admin_view(user: User = Depends(require_role(Role.ADMIN))):
            ...
    """
    async def _check(user: User = Depends(get_current_user)) -> User:
        if user.role not in roles:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Requires role: {', '.join(r.value for r in roles)}",
            )
        return user

    return _check


# ── Permission-based access control ─────────────────────────

def require_access(module: Module, action: str):
    """Dependency factory — restrict to users allowed `module.action`.

    Usage:
        @router.delete("/devices/{device_id}")
        async def delete_device(
            user: User = Depends(require_access(Module.DEVICES, "delete")),
        ):
            ...
    """
    async def _check(
        user: User = Depends(get_current_user),
        evaluator: AccessEvaluator = Depends(get_evaluator),
    ) -> User:
        if not await evaluator.can_access(user, module, action):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Missing permission: {module.value}.{action}",
            )
        return user

    return _check


def require_view(view_id: str):
    """Dependency factory — restrict to users allowed to open `view_id`."""
    async def _check(
        user: User = Depends(get_current_user),
        evaluator: AccessEvaluator = Depends(get_evaluator),
    ) -> User:
        if not await evaluator.can_access_view(user, view_id):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Access denied to view: {view_id}",
            )
        return user

    return _check
