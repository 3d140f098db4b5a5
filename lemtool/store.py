"""
store.py — Data access facade for LEMtool.

Provides a consistent, high-level API for persisting and retrieving domain objects.
Routes use these functions — nothing else touches SQLAlchemy directly.

Design principles:
  - All functions are async and accept an AsyncSession parameter
  - No raw SQL: ORM-only queries
  - flush() only — the get_db() dependency commits or rolls back the request
  - Logs only ids and counts — never participant names, comments or screenshots
  - Returns domain Pydantic objects (not ORM instances)
  - Ownership is NOT checked here; routes compare project.user_id first
"""
import logging
from typing import List, Optional

from sqlalchemy import delete, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from lemtool.analysis.schemas import AnalysisResult
from lemtool.config import settings
from lemtool.markers.schemas import Marker
from lemtool.models.project import ProjectORM
from lemtool.models.session import TestSessionORM
from lemtool.models.user_role import UserRoleORM
from lemtool.projects.schemas import Entitlement, Project, ProjectSummary
from lemtool.report.schemas import AnalysisReport
from lemtool.sessions.schemas import TestSession

logger = logging.getLogger(__name__)


class NoAnalysesRemaining(Exception):
    """consume_analysis found neither monthly allowance nor pack credits."""


def _dump_markers(markers: List[Marker]) -> list[dict]:
    return [m.model_dump(mode="json") for m in markers]


def _project_from_orm(orm: ProjectORM) -> Project:
    return Project(
        id=orm.id,
        user_id=orm.user_id,
        url=orm.url,
        report=AnalysisReport.model_validate(orm.report_data),
        markers=[Marker.model_validate(m) for m in orm.markers_data or []],
        screenshot=orm.screenshot,
        demo_mode=orm.demo_mode,
        archived=orm.archived,
        created_at=orm.created_at,
    )


def _session_from_orm(orm: TestSessionORM) -> TestSession:
    return TestSession(
        id=orm.id,
        project_id=orm.project_id,
        participant_name=orm.participant_name,
        markers=[Marker.model_validate(m) for m in orm.markers_data or []],
        created_at=orm.created_at,
    )


# ---------------------------------------------------------------------------
# Project operations
# ---------------------------------------------------------------------------

async def save_project(
    db: AsyncSession,
    user_id: str,
    url: str,
    analysis: AnalysisResult,
) -> Project:
    """Persist a new project with its report and AI markers in one row."""
    orm = ProjectORM(
        user_id=user_id,
        url=url,
        report_data=analysis.report.model_dump(mode="json", by_alias=True),
        markers_data=_dump_markers(analysis.markers),
        screenshot=analysis.screenshot,
        demo_mode=analysis.demo_mode,
        archived=False,
    )
    db.add(orm)
    await db.flush()
    logger.info(
        "Saved project project_id=%s markers=%d demo_mode=%s",
        orm.id, len(analysis.markers), analysis.demo_mode,
    )
    return _project_from_orm(orm)


async def _get_project_orm(db: AsyncSession, project_id: str) -> Optional[ProjectORM]:
    result = await db.execute(select(ProjectORM).where(ProjectORM.id == project_id))
    return result.scalar_one_or_none()


async def get_project(db: AsyncSession, project_id: str) -> Optional[Project]:
    """Returns None if no project found (caller raises 404)."""
    orm = await _get_project_orm(db, project_id)
    if orm is None:
        return None
    return _project_from_orm(orm)


async def list_projects(
    db: AsyncSession,
    user_id: str,
    include_archived: bool = False,
) -> List[ProjectSummary]:
    """Dashboard listing, newest first. Archived projects are hidden by default."""
    query = select(ProjectORM).where(ProjectORM.user_id == user_id)
    if not include_archived:
        query = query.where(ProjectORM.archived.is_(False))
    result = await db.execute(query.order_by(ProjectORM.created_at.desc()))
    return [
        ProjectSummary(
            id=row.id,
            url=row.url,
            overall_score=AnalysisReport.model_validate(row.report_data).overall_score,
            marker_count=len(row.markers_data or []),
            demo_mode=row.demo_mode,
            archived=row.archived,
            created_at=row.created_at,
        )
        for row in result.scalars().all()
    ]


async def set_archived(db: AsyncSession, project_id: str, archived: bool) -> Optional[Project]:
    orm = await _get_project_orm(db, project_id)
    if orm is None:
        return None
    orm.archived = archived
    await db.flush()
    logger.info("Project archive flag set project_id=%s archived=%s", project_id, archived)
    return _project_from_orm(orm)


async def delete_project(db: AsyncSession, project_id: str) -> bool:
    """Hard delete a project and every test session recorded against it."""
    orm = await _get_project_orm(db, project_id)
    if orm is None:
        return False
    result = await db.execute(
        delete(TestSessionORM).where(TestSessionORM.project_id == project_id)
    )
    await db.delete(orm)
    await db.flush()
    logger.info("Deleted project project_id=%s sessions=%d", project_id, result.rowcount or 0)
    return True


# ---------------------------------------------------------------------------
# Test session operations
# ---------------------------------------------------------------------------

async def save_session(db: AsyncSession, session: TestSession) -> TestSession:
    """Write a whole session (all markers) as one row."""
    orm = TestSessionORM(
        id=session.id,
        project_id=session.project_id,
        participant_name=session.participant_name,
        markers_data=_dump_markers(session.markers),
    )
    db.add(orm)
    await db.flush()
    logger.info(
        "Saved test session session_id=%s project_id=%s markers=%d",
        session.id, session.project_id, len(session.markers),
    )
    return _session_from_orm(orm)


async def list_sessions(db: AsyncSession, project_id: str) -> List[TestSession]:
    """All sessions of a project, oldest first."""
    result = await db.execute(
        select(TestSessionORM)
        .where(TestSessionORM.project_id == project_id)
        .order_by(TestSessionORM.created_at.asc())
    )
    return [_session_from_orm(row) for row in result.scalars().all()]


# ---------------------------------------------------------------------------
# Entitlement operations (read-only view of billing state + consumption)
# ---------------------------------------------------------------------------

async def get_or_create_user_role(db: AsyncSession, user_id: str) -> UserRoleORM:
    """First access creates a free-tier row with the configured monthly limit."""
    result = await db.execute(select(UserRoleORM).where(UserRoleORM.user_id == user_id))
    orm = result.scalar_one_or_none()
    if orm is None:
        orm = UserRoleORM(
            user_id=user_id,
            role="free",
            monthly_analyses_used=0,
            monthly_analyses_limit=settings.free_monthly_analyses,
            pack_analyses_remaining=0,
        )
        db.add(orm)
        await db.flush()
        logger.info("Created free-tier entitlement user_id=%s", user_id)
    return orm


def remaining_monthly(orm: UserRoleORM) -> int:
    return max(0, orm.monthly_analyses_limit - orm.monthly_analyses_used)


def can_create_analysis(orm: UserRoleORM) -> bool:
    return orm.monthly_analyses_used < orm.monthly_analyses_limit or orm.pack_analyses_remaining > 0


async def get_entitlement(db: AsyncSession, user_id: str) -> Entitlement:
    orm = await get_or_create_user_role(db, user_id)
    return Entitlement(
        monthly=remaining_monthly(orm),
        pack=orm.pack_analyses_remaining,
        monthly_limit=orm.monthly_analyses_limit,
    )


async def consume_analysis(db: AsyncSession, user_id: str) -> Entitlement:
    """
    Use one analysis: monthly allowance first, then pack credits.

    Each counter changes through one conditional UPDATE; a request that
    finds the counter already spent matches no row.
    Raises NoAnalysesRemaining when nothing is left.
    """
    await get_or_create_user_role(db, user_id)

    monthly = await db.execute(
        update(UserRoleORM)
        .where(
            UserRoleORM.user_id == user_id,
            UserRoleORM.monthly_analyses_used < UserRoleORM.monthly_analyses_limit,
        )
        .values(monthly_analyses_used=UserRoleORM.monthly_analyses_used + 1)
        .execution_options(synchronize_session=False)
    )
    if monthly.rowcount == 0:
        pack = await db.execute(
            update(UserRoleORM)
            .where(
                UserRoleORM.user_id == user_id,
                UserRoleORM.pack_analyses_remaining > 0,
            )
            .values(pack_analyses_remaining=UserRoleORM.pack_analyses_remaining - 1)
            .execution_options(synchronize_session=False)
        )
        if pack.rowcount == 0:
            logger.warning("No analyses remaining user_id=%s", user_id)
            raise NoAnalysesRemaining(f"No analyses remaining for user {user_id}")

    result = await db.execute(
        select(UserRoleORM)
        .where(UserRoleORM.user_id == user_id)
        .execution_options(populate_existing=True)
    )
    orm = result.scalar_one()
    logger.info(
        "Consumed analysis user_id=%s monthly_remaining=%d pack=%d",
        user_id, remaining_monthly(orm), orm.pack_analyses_remaining,
    )
    return Entitlement(
        monthly=remaining_monthly(orm),
        pack=orm.pack_analyses_remaining,
        monthly_limit=orm.monthly_analyses_limit,
    )
