"""
Participant HTTP routes — no login required.

  GET  /api/participate/{project_id}                     public test view
  POST /api/participate/{project_id}/drafts              start a draft
  GET  /api/participate/{project_id}/drafts/{draft_id}   resume a draft
  PUT  /api/participate/{project_id}/drafts/{draft_id}   save progress
  POST /api/participate/{project_id}/sessions            submit a finished test

Participants never see the report, the AI markers or other sessions.
"""
from __future__ import annotations

import logging
import uuid

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from lemtool.cache import DRAFT_TTL, delete_draft, get_draft, set_draft
from lemtool.config import settings
from lemtool.database import get_db
from lemtool.errors import make_validation_error_response
from lemtool.projects.schemas import Project
from lemtool.sessions.schemas import (
    DraftSaved,
    DraftState,
    ParticipantProjectView,
    SessionReceipt,
    SessionSubmission,
)
from lemtool.sessions.validator import build_session, validate_submission
from lemtool.store import get_project, save_session

router = APIRouter(prefix="/api/participate", tags=["participant"])
logger = logging.getLogger(__name__)


async def _open_project(db: AsyncSession, project_id: str) -> Project:
    """Archived projects no longer accept participants."""
    project = await get_project(db, project_id)
    if project is None or project.archived:
        raise HTTPException(status_code=404, detail=f"Project {project_id} not found")
    return project


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------

@router.get("/{project_id}", response_model=ParticipantProjectView)
async def participant_view(
    project_id: str,
    db: AsyncSession = Depends(get_db),
) -> ParticipantProjectView:
    project = await _open_project(db, project_id)
    return ParticipantProjectView(
        project_id=project.id,
        url=project.url,
        screenshot=project.screenshot,
        min_markers=settings.min_session_markers,
    )


@router.post("/{project_id}/drafts", response_model=DraftSaved, status_code=201)
async def start_draft(
    project_id: str,
    draft: DraftState,
    request: Request,
    db: AsyncSession = Depends(get_db),
) -> DraftSaved:
    await _open_project(db, project_id)
    draft_id = str(uuid.uuid4())
    await set_draft(request.app.state.redis, project_id, draft_id, draft.model_dump(mode="json"))
    return DraftSaved(draft_id=draft_id, expires_in=DRAFT_TTL)


@router.get("/{project_id}/drafts/{draft_id}", response_model=DraftState)
async def load_draft(project_id: str, draft_id: str, request: Request) -> DraftState:
    data = await get_draft(request.app.state.redis, project_id, draft_id)
    if data is None:
        raise HTTPException(status_code=404, detail="Draft not found or expired")
    return DraftState.model_validate(data)


@router.put("/{project_id}/drafts/{draft_id}", response_model=DraftSaved)
async def save_draft(
    project_id: str,
    draft_id: str,
    draft: DraftState,
    request: Request,
    db: AsyncSession = Depends(get_db),
) -> DraftSaved:
    await _open_project(db, project_id)
    await set_draft(request.app.state.redis, project_id, draft_id, draft.model_dump(mode="json"))
    return DraftSaved(draft_id=draft_id, expires_in=DRAFT_TTL)


@router.post("/{project_id}/sessions", status_code=201, response_model=SessionReceipt)
async def submit_session(
    project_id: str,
    submission: SessionSubmission,
    request: Request,
    db: AsyncSession = Depends(get_db),
):
    """
    Validate and store one participant's session as a single row.

    Returns:
        201: {session_id, marker_count}
        404: Project missing or archived
        422: Standard envelope naming every violation (e.g. the marker shortfall)
    """
    await _open_project(db, project_id)

    try:
        validate_submission(submission, settings.min_session_markers)
    except ValueError as exc:
        return make_validation_error_response(str(exc), "Session validation failed")

    session = await save_session(db, build_session(project_id, submission))

    if submission.draft_id:
        await delete_draft(request.app.state.redis, project_id, submission.draft_id)

    return SessionReceipt(session_id=session.id, marker_count=len(session.markers))
