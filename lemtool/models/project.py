"""
models/project.py — SQLAlchemy ORM model for analysed projects.

Table: projects
Storage strategy: the AI report and the AI marker collection are JSON blobs.
Markers have no identity outside their parent row — they are always read and
written together with the project.
"""
import uuid
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import Boolean, DateTime, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from lemtool.database import Base, JSONDocument


class ProjectORM(Base):
    """
    ORM model for one analysed target URL owned by a user.

    report_data:  Full AnalysisReport serialized as JSON.
    markers_data: List of AI-sourced Marker dicts.
    screenshot:   Base64 PNG of the full page, or NULL when capture failed.
    """
    __tablename__ = "projects"

    id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        default=lambda: str(uuid.uuid4()),
    )
    user_id: Mapped[str] = mapped_column(
        String(64),
        nullable=False,
        index=True,
        comment="Owner id supplied by the auth platform",
    )
    url: Mapped[str] = mapped_column(Text, nullable=False)
    report_data: Mapped[dict] = mapped_column(
        JSONDocument,
        nullable=False,
        comment="Full AnalysisReport serialized as JSON",
    )
    markers_data: Mapped[list] = mapped_column(
        JSONDocument,
        nullable=False,
        default=list,
        comment="AI marker collection serialized as JSON",
    )
    screenshot: Mapped[Optional[str]] = mapped_column(
        Text,
        nullable=True,
        comment="Base64-encoded full-page PNG",
    )
    demo_mode: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=False,
        comment="True when the report is placeholder content from the fallback generator",
    )
    archived: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=False,
        index=True,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
    )
