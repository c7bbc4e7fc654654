import uuid
from datetime import datetime

from sqlalchemy import Boolean, DateTime, Enum as SAEnum, JSON, String
from sqlalchemy.orm import Mapped, mapped_column

from deskguard.auth.schema import Role
from deskguard.database import Base


class User(Base):
    __tablename__ = "users"

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    username: Mapped[str] = mapped_column(
        String(100), unique=True, nullable=False, index=True
    )
    email: Mapped[str | None] = mapped_column(String(255))
    full_name: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    role: Mapped[Role] = mapped_column(SAEnum(Role), default=Role.USER)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)

    # Granular RBAC: sparse per-user patch over the role defaults.
    # JSON document {"module": {"action": true/false}}.
    # null = role defaults only. Removed together with the user row.
    custom_permissions: Mapped[dict | None] = mapped_column(JSON, default=None)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, onupdate=datetime.utcnow
    )
