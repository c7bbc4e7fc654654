"""Bearer token creation and decoding.

DeskGuard does not log users in. The external login service issues an
access token signed with the shared `secret_key`; DeskGuard only verifies
it and trusts `sub` as the authenticated user id.

Token claims:
  - sub:   user ID
  - role:  user role string (informational; the DB row is authoritative)
  - type:  "access"
  - exp:   expiry timestamp
"""

from datetime import datetime, timedelta, timezone

from jose import JWTError, jwt

from deskguard.config import settings

ALGORITHM = settings.jwt_algorithm


def create_access_token(
    user_id: str,
    role: str,
    expires_delta: timedelta | None = None,
) -> str:
    expire = datetime.now(timezone.utc) + (
        expires_delta or timedelta(minutes=settings.access_token_expire_minutes)
    )
    payload = {
        "sub": user_id,
        "role": role,
        "type": "access",
        "exp": expire,
    }
    return jwt.encode(payload, settings.secret_key, algorithm=ALGORITHM)


def decode_token(token: str) -> dict:
    """Decode and validate a JWT. Returns empty dict on failure."""
    try:
        return jwt.decode(token, settings.secret_key, algorithms=[ALGORITHM])
    except JWTError:
        return {}
