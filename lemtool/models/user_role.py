"""
models/user_role.py — SQLAlchemy ORM model for analysis entitlements.

Table: user_roles
The billing platform owns these counters; LEMtool only reads them and
consumes one analysis per created project.
"""
import uuid
from datetime import datetime, timezone

from sqlalchemy import DateTime, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from lemtool.database import Base


class UserRoleORM(Base):
    __tablename__ = "user_roles"

    id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        default=lambda: str(uuid.uuid4()),
    )
    user_id: Mapped[str] = mapped_column(
        String(64),
        nullable=False,
        unique=True,
        index=True,
    )
    role: Mapped[str] = mapped_column(
        String(10),
        nullable=False,
        default="free",
        comment="'free', 'premium' or 'admin'",
    )
    monthly_analyses_used: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    monthly_analyses_limit: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    pack_analyses_remaining: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
        nullable=False,
    )
