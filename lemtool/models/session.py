"""
models/session.py — SQLAlchemy ORM model for human test sessions.

Table: test_sessions
One row per participant submission. All markers of a session live in a single
JSON column so a session is either fully persisted or not at all.
"""
from datetime import datetime, timezone

from sqlalchemy import DateTime, String
from sqlalchemy.orm import Mapped, mapped_column

from lemtool.database import Base, JSONDocument


class TestSessionORM(Base):
    """ORM model for one participant's immutable set of markers on a project."""
    __tablename__ = "test_sessions"

    id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        comment="Server-allocated UUID4 — also stamped on every marker as session_id",
    )
    project_id: Mapped[str] = mapped_column(
        String(36),
        nullable=False,
        index=True,
        comment="References projects.id — many sessions per project",
    )
    participant_name: Mapped[str] = mapped_column(String(120), nullable=False)
    markers_data: Mapped[list] = mapped_column(
        JSONDocument,
        nullable=False,
        comment="Human marker collection serialized as JSON",
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
    )
