"""Pydantic schemas for the access-rights API."""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field

# module id → action → allowed
PermissionMap = dict[str, dict[str, bool]]


# ── Schema / defaults ────────────────────────────────────────

class ModuleActions(BaseModel):
    module: str
    actions: list[str]


class RoleDefaults(BaseModel):
    role: str
    permissions: PermissionMap


# ── Evaluation ───────────────────────────────────────────────

class AccessCheckRequest(BaseModel):
    module: str = Field(min_length=1)
    action: str = Field(min_length=1)


class AccessCheckResult(BaseModel):
    module: str
    action: str
    allowed: bool


class EffectivePermissions(BaseModel):
    user_id: str
    role: str
    is_superuser: bool
    permissions: PermissionMap


class ViewAccess(BaseModel):
    view_id: str
    allowed: bool


# ── Access Rights editor ─────────────────────────────────────

class UserSummary(BaseModel):
    id: str
    username: str
    full_name: str
    role: str
    is_active: bool
    has_override: bool
    created_at: datetime


class UserAccessRights(BaseModel):
    """Seed for the editor: the resolved set plus what is actually stored."""

    user_id: str
    username: str
    role: str
    editable: bool
    permissions: PermissionMap
    stored_override: dict[str, Any] | None = None


class OverrideUpdate(BaseModel):
    permissions: PermissionMap
