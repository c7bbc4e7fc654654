"""Tests for the access-rights HTTP API."""

import json
from datetime import timedelta

import pytest
from httpx import AsyncClient
from sqlalchemy.exc import IntegrityError, OperationalError

from deskguard.auth.jwt import create_access_token
from deskguard.auth.schema import Role
from deskguard.auth.store import CachedPermissionStore
from deskguard.config import settings
from deskguard.main import app
from deskguard.models.user import User


@pytest.mark.api
@pytest.mark.asyncio
class TestAuthentication:
    async def test_missing_token(self, client: AsyncClient):
        response = await client.get("/api/access/me")
        assert response.status_code == 401
        assert response.json()["error"]["code"] == "HTTP_401"

    async def test_garbage_token(self, client: AsyncClient, users):
        response = await client.get(
            "/api/access/me", headers={"Authorization": "Bearer not-a-jwt"}
        )
        assert response.status_code == 401
        assert response.headers["www-authenticate"] == "Bearer"

    async def test_expired_token(self, client: AsyncClient, users):
        token = create_access_token(
            user_id=users["admin"].id, role="admin", expires_delta=timedelta(minutes=-5)
        )
        response = await client.get(
            "/api/access/me", headers={"Authorization": f"Bearer {token}"}
        )
        assert response.status_code == 401

    async def test_unknown_user(self, client: AsyncClient, users):
        token = create_access_token(user_id="no-such-user", role="admin")
        response = await client.get(
            "/api/access/me", headers={"Authorization": f"Bearer {token}"}
        )
        assert response.status_code == 401

    async def test_inactive_user(self, client: AsyncClient, users, auth_headers):
        response = await client.get("/api/access/me", headers=auth_headers(users["inactive"]))
        assert response.status_code == 401


@pytest.mark.api
@pytest.mark.asyncio
class TestCallerAccess:
    async def test_my_permissions(self, client: AsyncClient, users, auth_headers):
        """A regular user gets the user role defaults."""
        response = await client.get("/api/access/me", headers=auth_headers(users["user"]))

        assert response.status_code == 200
        data = response.json()
        assert data["role"] == "user"
        assert data["is_superuser"] is False
        assert data["permissions"]["devices"]["view"] is True
        assert data["permissions"]["devices"]["delete"] is False

    async def test_superuser_permissions_all_true(
        self, client: AsyncClient, users, auth_headers
    ):
        response = await client.get("/api/access/me", headers=auth_headers(users["superuser"]))

        data = response.json()
        assert data["is_superuser"] is True
        assert all(
            allowed
            for actions in data["permissions"].values()
            for allowed in actions.values()
        )

    async def test_my_views(self, client: AsyncClient, users, auth_headers):
        response = await client.get("/api/access/me/views", headers=auth_headers(users["portal"]))

        assert response.status_code == 200
        views = {v["view_id"]: v["allowed"] for v in response.json()}
        assert views["tickets"] is True
        assert views["calendar"] is True
        assert views["devices"] is False
        assert views["god-mode"] is False

    async def test_check(self, client: AsyncClient, users, auth_headers):
        headers = auth_headers(users["admin"])

        denied = await client.post(
            "/api/access/check", json={"module": "users", "action": "delete"}, headers=headers
        )
        allowed = await client.post(
            "/api/access/check",
            json={"module": "users", "action": "manageRoles"},
            headers=headers,
        )
        unknown = await client.post(
            "/api/access/check",
            json={"module": "spaceships", "action": "view"},
            headers=headers,
        )

        assert denied.json() == {"module": "users", "action": "delete", "allowed": False}
        assert allowed.json()["allowed"] is True
        assert unknown.status_code == 200
        assert unknown.json()["allowed"] is False

    async def test_check_rejects_empty_action(self, client: AsyncClient, users, auth_headers):
        response = await client.post(
            "/api/access/check",
            json={"module": "users", "action": ""},
            headers=auth_headers(users["admin"]),
        )
        assert response.status_code == 422
        assert response.json()["error"]["code"] == "VALIDATION_ERROR"


@pytest.mark.api
@pytest.mark.asyncio
class TestCatalog:
    async def test_schema(self, client: AsyncClient, users, auth_headers):
        response = await client.get("/api/access/schema", headers=auth_headers(users["portal"]))

        assert response.status_code == 200
        modules = {m["module"]: m["actions"] for m in response.json()}
        assert len(modules) == 14
        assert modules["tickets"] == ["view", "create", "edit", "delete", "assign", "close"]

    async def test_role_defaults(self, client: AsyncClient, users, auth_headers):
        response = await client.get(
            "/api/access/defaults/portal", headers=auth_headers(users["user"])
        )

        assert response.status_code == 200
        data = response.json()
        assert data["role"] == "portal"
        assert data["permissions"]["tickets"]["create"] is True
        assert data["permissions"]["devices"]["view"] is False

    async def test_unknown_role_defaults(self, client: AsyncClient, users, auth_headers):
        response = await client.get(
            "/api/access/defaults/auditor", headers=auth_headers(users["user"])
        )

        assert response.status_code == 404
        assert response.json()["error"]["code"] == "RESOURCE_NOT_FOUND"


@pytest.mark.api
@pytest.mark.asyncio
class TestAccessRightsEditor:
    async def test_list_users_as_admin(self, client: AsyncClient, users, auth_headers):
        response = await client.get("/api/access/users", headers=auth_headers(users["admin"]))

        assert response.status_code == 200
        listed = {u["username"]: u for u in response.json()}
        assert set(listed) == {"portal1", "user1", "admin1", "root", "admin2", "gone"}
        assert listed["admin2"]["has_override"] is True
        assert listed["user1"]["has_override"] is False

    async def test_list_users_forbidden_for_user(
        self, client: AsyncClient, users, auth_headers
    ):
        response = await client.get("/api/access/users", headers=auth_headers(users["user"]))

        assert response.status_code == 403
        assert "users.view" in response.json()["error"]["message"]

    async def test_get_user_rights(self, client: AsyncClient, users, auth_headers):
        target = users["restricted_admin"]
        response = await client.get(
            f"/api/access/users/{target.id}", headers=auth_headers(users["admin"])
        )

        assert response.status_code == 200
        data = response.json()
        assert data["editable"] is True
        assert data["permissions"]["users"]["manageRoles"] is False
        assert data["stored_override"] == {"users": {"manageRoles": False}}

    async def test_legacy_stored_document(
        self, client: AsyncClient, users, auth_headers, session_factory
    ):
        """A non-mapping stored document reads as no override."""
        legacy = User(username="legacy", role=Role.USER, custom_permissions=["devices.delete"])
        async with session_factory() as session:
            session.add(legacy)
            await session.commit()

        response = await client.get(
            f"/api/access/users/{legacy.id}", headers=auth_headers(users["admin"])
        )

        assert response.status_code == 200
        data = response.json()
        assert data["stored_override"] is None
        assert data["permissions"]["devices"]["delete"] is False

    async def test_superuser_rights_not_editable(
        self, client: AsyncClient, users, auth_headers
    ):
        target = users["superuser"]
        response = await client.get(
            f"/api/access/users/{target.id}", headers=auth_headers(users["admin"])
        )
        assert response.json()["editable"] is False

    async def test_get_user_rights_forbidden_for_user(
        self, client: AsyncClient, users, auth_headers
    ):
        target = users["portal"]
        response = await client.get(
            f"/api/access/users/{target.id}", headers=auth_headers(users["user"])
        )

        assert response.status_code == 403
        assert "access-rights" in response.json()["error"]["message"]

    async def test_get_missing_user(self, client: AsyncClient, users, auth_headers):
        response = await client.get(
            "/api/access/users/no-such-user", headers=auth_headers(users["admin"])
        )
        assert response.status_code == 404

    async def test_update_grants_permission(self, client: AsyncClient, users, auth_headers):
        """Saving an override takes effect on the target's next check."""
        portal = users["portal"]
        response = await client.put(
            f"/api/access/users/{portal.id}",
            json={"permissions": {"tickets": {"close": True}}},
            headers=auth_headers(users["admin"]),
        )

        assert response.status_code == 200
        data = response.json()
        assert data["stored_override"] == {"tickets": {"close": True}}
        assert data["permissions"]["tickets"]["close"] is True
        assert data["permissions"]["tickets"]["delete"] is False

        check = await client.post(
            "/api/access/check",
            json={"module": "tickets", "action": "close"},
            headers=auth_headers(portal),
        )
        assert check.json()["allowed"] is True

    async def test_update_overwrites_previous_override(
        self, client: AsyncClient, users, auth_headers
    ):
        target = users["restricted_admin"]
        response = await client.put(
            f"/api/access/users/{target.id}",
            json={"permissions": {"reports": {"delete": True}}},
            headers=auth_headers(users["admin"]),
        )

        data = response.json()
        assert data["stored_override"] == {"reports": {"delete": True}}
        # manageRoles falls back to the admin default
        assert data["permissions"]["users"]["manageRoles"] is True

    async def test_update_superuser_rejected(self, client: AsyncClient, users, auth_headers):
        response = await client.put(
            f"/api/access/users/{users['superuser'].id}",
            json={"permissions": {"devices": {"view": False}}},
            headers=auth_headers(users["admin"]),
        )

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "HTTP_400"

    async def test_update_unknown_permission_rejected(
        self, client: AsyncClient, users, auth_headers
    ):
        response = await client.put(
            f"/api/access/users/{users['user'].id}",
            json={"permissions": {"devices": {"teleport": True}, "spaceships": {"view": True}}},
            headers=auth_headers(users["admin"]),
        )

        assert response.status_code == 422
        error = response.json()["error"]
        assert error["code"] == "UNKNOWN_PERMISSION"
        assert error["details"] == {"unknown": ["devices.teleport", "spaceships.view"]}

    async def test_update_requires_manage_roles(
        self, client: AsyncClient, users, auth_headers
    ):
        """An admin whose manageRoles was revoked can no longer edit rights."""
        response = await client.put(
            f"/api/access/users/{users['user'].id}",
            json={"permissions": {"devices": {"edit": True}}},
            headers=auth_headers(users["restricted_admin"]),
        )

        assert response.status_code == 403
        assert "users.manageRoles" in response.json()["error"]["message"]

    async def test_superuser_can_edit(self, client: AsyncClient, users, auth_headers):
        response = await client.put(
            f"/api/access/users/{users['user'].id}",
            json={"permissions": {"devices": {"edit": True}}},
            headers=auth_headers(users["superuser"]),
        )
        assert response.status_code == 200
        assert response.json()["permissions"]["devices"]["edit"] is True


class DictRedis:
    """Dict-backed stand-in for the few redis commands the cache uses."""

    def __init__(self):
        self.data: dict[str, str] = {}

    async def get(self, key):
        return self.data.get(key)

    async def setex(self, key, ttl, value):
        self.data[key] = value

    async def delete(self, key):
        self.data.pop(key, None)


@pytest.mark.api
@pytest.mark.asyncio
class TestCachedAccessRights:
    @pytest.fixture
    def fake_redis(self, client, monkeypatch):
        fake = DictRedis()

        async def factory():
            return fake

        monkeypatch.setattr(settings, "permission_cache_enabled", True)
        monkeypatch.setattr("deskguard.auth.deps.get_redis", factory)
        return fake

    async def test_update_does_not_cache_the_target(
        self, client: AsyncClient, users, auth_headers, fake_redis
    ):
        portal = users["portal"]
        key = CachedPermissionStore.cache_key(portal.id)
        fake_redis.data[key] = "null"

        response = await client.put(
            f"/api/access/users/{portal.id}",
            json={"permissions": {"tickets": {"close": True}}},
            headers=auth_headers(users["admin"]),
        )

        assert response.status_code == 200
        assert response.json()["permissions"]["tickets"]["close"] is True
        assert key not in fake_redis.data

        check = await client.post(
            "/api/access/check",
            json={"module": "tickets", "action": "close"},
            headers=auth_headers(portal),
        )
        assert check.json()["allowed"] is True
        assert json.loads(fake_redis.data[key]) == {"tickets": {"close": True}}

    async def test_revocation_takes_effect_through_cache(
        self, client: AsyncClient, users, auth_headers, fake_redis
    ):
        target = users["user"]
        headers = auth_headers(users["admin"])
        check_body = {"module": "devices", "action": "edit"}

        await client.put(
            f"/api/access/users/{target.id}",
            json={"permissions": {"devices": {"edit": True}}},
            headers=headers,
        )
        granted = await client.post("/api/access/check", json=check_body, headers=auth_headers(target))
        await client.put(
            f"/api/access/users/{target.id}",
            json={"permissions": {"devices": {"edit": False}}},
            headers=headers,
        )
        revoked = await client.post("/api/access/check", json=check_body, headers=auth_headers(target))

        assert granted.json()["allowed"] is True
        assert revoked.json()["allowed"] is False


@pytest.mark.unit
def test_only_reachable_database_errors_have_handlers():
    assert OperationalError in app.exception_handlers
    assert IntegrityError not in app.exception_handlers


@pytest.mark.api
@pytest.mark.asyncio
class TestHealth:
    async def test_health(self, client: AsyncClient):
        response = await client.get("/health")

        assert response.status_code == 200
        assert response.json()["status"] == "ok"

    async def test_ready(self, client: AsyncClient, test_engine, monkeypatch):
        monkeypatch.setattr("deskguard.routers.health.engine", test_engine)

        response = await client.get("/health/ready")

        assert response.status_code == 200
        data = response.json()
        assert data["checks"]["database"] == "ok"
        assert data["checks"]["redis"] == "disabled"
