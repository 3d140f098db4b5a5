"""
Project HTTP routes (owner only).

  POST   /api/projects                       run an analysis and store the project
  GET    /api/projects                       dashboard listing
  GET    /api/projects/{project_id}          one project with report + AI markers
  PATCH  /api/projects/{project_id}/archive  archive / unarchive
  DELETE /api/projects/{project_id}          hard delete (sessions included)
  GET    /api/projects/{project_id}/sessions participant sessions
  GET    /api/entitlement                    remaining analyses

Every project route checks ownership before touching anything: a project that
exists but belongs to someone else is a 403.
"""
from __future__ import annotations

import logging
from typing import List

from fastapi import APIRouter, Depends, HTTPException, Request, Response
from sqlalchemy.ext.asyncio import AsyncSession

from lemtool.analysis.service import run_analysis
from lemtool.auth import UserContext, get_current_user
from lemtool.database import get_db
from lemtool.projects.schemas import (
    ArchiveRequest,
    Entitlement,
    Project,
    ProjectCreateRequest,
    ProjectCreateResponse,
    ProjectSummary,
)
from lemtool.sessions.schemas import TestSession
from lemtool import store

router = APIRouter(prefix="/api", tags=["projects"])
logger = logging.getLogger(__name__)

NO_ANALYSES_DETAIL = "No analyses remaining this month. Upgrade or buy an analysis pack."


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

async def load_owned_project(db: AsyncSession, project_id: str, user: UserContext) -> Project:
    """404 if the project does not exist, 403 if the caller does not own it."""
    project = await store.get_project(db, project_id)
    if project is None:
        raise HTTPException(status_code=404, detail=f"Project {project_id} not found")
    if project.user_id != user.user_id:
        logger.warning("Ownership check failed project_id=%s user_id=%s", project_id, user.user_id)
        raise HTTPException(status_code=403, detail="You do not have access to this project")
    return project


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------

@router.post("/projects", response_model=ProjectCreateResponse, status_code=201)
async def create_project(
    payload: ProjectCreateRequest,
    request: Request,
    user: UserContext = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> ProjectCreateResponse:
    """
    Analyse a URL and store the resulting project.

    Returns:
        201: {project, demo_mode, notice}. demo_mode=True means the analysis
             fell back to placeholder content (notice explains why).
        402: No monthly analyses or pack credits left, checked before the
             analysis runs and again when the credit is consumed.
    """
    role = await store.get_or_create_user_role(db, user.user_id)
    if not store.can_create_analysis(role):
        raise HTTPException(status_code=402, detail=NO_ANALYSES_DETAIL)

    url = str(payload.url)
    analysis = await run_analysis(
        url,
        client=request.app.state.mistral,
        semaphore=request.app.state.analysis_semaphore,
    )

    try:
        await store.consume_analysis(db, user.user_id)
    except store.NoAnalysesRemaining:
        raise HTTPException(status_code=402, detail=NO_ANALYSES_DETAIL)

    project = await store.save_project(db, user.user_id, url, analysis)

    return ProjectCreateResponse(
        project=project,
        demo_mode=analysis.demo_mode,
        notice=analysis.notice,
    )


@router.get("/projects", response_model=List[ProjectSummary])
async def list_projects(
    include_archived: bool = False,
    user: UserContext = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> List[ProjectSummary]:
    return await store.list_projects(db, user.user_id, include_archived=include_archived)


@router.get("/projects/{project_id}", response_model=Project)
async def get_project(
    project_id: str,
    user: UserContext = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> Project:
    return await load_owned_project(db, project_id, user)


@router.patch("/projects/{project_id}/archive", response_model=Project)
async def archive_project(
    project_id: str,
    payload: ArchiveRequest,
    user: UserContext = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> Project:
    await load_owned_project(db, project_id, user)
    return await store.set_archived(db, project_id, payload.archived)


@router.delete("/projects/{project_id}", status_code=204)
async def delete_project(
    project_id: str,
    user: UserContext = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> Response:
    await load_owned_project(db, project_id, user)
    await store.delete_project(db, project_id)
    return Response(status_code=204)


@router.get("/projects/{project_id}/sessions", response_model=List[TestSession])
async def list_project_sessions(
    project_id: str,
    user: UserContext = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> List[TestSession]:
    await load_owned_project(db, project_id, user)
    return await store.list_sessions(db, project_id)


@router.get("/entitlement", response_model=Entitlement)
async def get_entitlement(
    user: UserContext = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> Entitlement:
    return await store.get_entitlement(db, user.user_id)
