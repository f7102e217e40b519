"""User model.

Only the fields the access layer reads: identity and system role.
Credentials and profile data live with the authentication service.
"""

from __future__ import annotations

from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql.sqltypes import Enum as SAEnum

from app.core.base import Base, CreatedAtMixin, UUIDPrimaryKeyMixin
from app.security.roles import SystemRole


class User(UUIDPrimaryKeyMixin, CreatedAtMixin, Base):
    __tablename__ = "users"

    email: Mapped[str] = mapped_column(String(320), nullable=False, unique=True)
    display_name: Mapped[str] = mapped_column(String(200), nullable=False)
    system_role: Mapped[SystemRole] = mapped_column(
        SAEnum(SystemRole, name="system_role"),
        nullable=False,
        default=SystemRole.CONTRIBUTOR,
    )
