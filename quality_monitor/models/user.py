# quality_monitor/models/user.py

from __future__ import annotations

import enum

from flask_login import UserMixin
from sqlalchemy import Enum, ForeignKey
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import BaseModel, db


class UserRole(str, enum.Enum):
    """Roles recognised by the dashboard and sync endpoints."""

    ADMIN = "admin"
    TEAM_LEAD = "team_lead"
    CC = "cc"


class User(UserMixin, BaseModel):
    """Contact-centre staff member, team lead, or administrator."""

    __tablename__ = "users"

    id: Mapped[int] = mapped_column(primary_key=True)
    email: Mapped[str] = mapped_column(db.String(255), unique=True, nullable=False, index=True)
    full_name: Mapped[str] = mapped_column(db.String(255), nullable=False)
    team: Mapped[str | None] = mapped_column(db.String(100), nullable=True)
    role: Mapped[UserRole] = mapped_column(
        Enum(UserRole, name="user_role_enum"),
        nullable=False,
        default=UserRole.CC,
    )
    team_lead_id: Mapped[int | None] = mapped_column(
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
    )
    cc_abbreviation: Mapped[str | None] = mapped_column(db.String(32), nullable=True, index=True)
    is_active: Mapped[bool] = mapped_column(db.Boolean, nullable=False, default=True)

    team_lead = relationship("User", remote_side="User.id", foreign_keys="User.team_lead_id")

    def __repr__(self):
        return f"<User {self.email}>"

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN

    @staticmethod
    def find_by_email(email):
        """Case-insensitive lookup by email address."""
        if not email:
            return None
        return User.query.filter(db.func.lower(User.email) == email.strip().lower()).first()
