"""
Report HTTP routes (owner only).

  GET /api/projects/{project_id}/markers  filtered + classified markers for the canvas
  GET /api/projects/{project_id}/report   ReportStats for the live report panel
  GET /api/projects/{project_id}/export   downloadable PDF report

All three share the same view parameters (layer, shape, source, participant,
show_ai, show_human) so the canvas, the panel and the export always agree.
"""
from __future__ import annotations

import datetime
import logging
from typing import List, Optional
from urllib.parse import urlparse

from fastapi import APIRouter, Depends, Query
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import StreamingResponse
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from lemtool.auth import UserContext, get_current_user
from lemtool.config import settings
from lemtool.database import get_db
from lemtool.errors import make_error_response
from lemtool.markers.aggregator import aggregate_markers
from lemtool.markers.classifier import (
    ALL_PARTICIPANTS,
    ClassifiedMarker,
    MarkerView,
    ShapeMode,
    SourceFilter,
    classify_markers,
    count_by_layer,
    filter_markers,
)
from lemtool.markers.schemas import Layer
from lemtool.projects.routes import load_owned_project
from lemtool.report.aggregation import build_report_stats
from lemtool.report.pdf_generator import generate_project_report
from lemtool.report.schemas import ReportStats
from lemtool.store import list_sessions

router = APIRouter(prefix="/api/projects", tags=["report"])
logger = logging.getLogger(__name__)


class MarkerListResponse(BaseModel):
    markers: List[ClassifiedMarker]
    layer_counts: dict[str, int]
    total: int


class ViewParams(BaseModel):
    view: MarkerView
    show_ai: bool = True
    show_human: bool = True


def view_params(
    layer: Optional[Layer] = Query(default=None),
    shape: Optional[ShapeMode] = Query(default=None),
    source: SourceFilter = Query(default=SourceFilter.all),
    participant: str = Query(default=ALL_PARTICIPANTS, description="'all', 'ai' or a session id"),
    show_ai: bool = Query(default=True),
    show_human: bool = Query(default=True),
) -> ViewParams:
    return ViewParams(
        view=MarkerView(layer=layer, shape=shape, source=source, participant=participant),
        show_ai=show_ai,
        show_human=show_human,
    )


def export_filename(url: str, today: Optional[datetime.date] = None) -> str:
    """LEM-Report-{hostname}-{YYYY-MM-DD}.pdf"""
    hostname = urlparse(url).hostname or "website"
    today = today or datetime.date.today()
    return f"LEM-Report-{hostname}-{today.isoformat()}.pdf"


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------

@router.get("/{project_id}/markers", response_model=MarkerListResponse)
async def project_markers(
    project_id: str,
    params: ViewParams = Depends(view_params),
    user: UserContext = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> MarkerListResponse:
    """
    Layer counts are taken before the view filters so the layer toggle
    badges keep showing what each layer holds.
    """
    project = await load_owned_project(db, project_id, user)
    sessions = await list_sessions(db, project_id)
    combined = aggregate_markers(project.markers, sessions, params.show_ai, params.show_human)
    classified = classify_markers(combined, params.view)
    return MarkerListResponse(
        markers=classified,
        layer_counts=count_by_layer(combined),
        total=len(classified),
    )


@router.get("/{project_id}/report", response_model=ReportStats)
async def project_report(
    project_id: str,
    params: ViewParams = Depends(view_params),
    user: UserContext = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> ReportStats:
    project = await load_owned_project(db, project_id, user)
    sessions = await list_sessions(db, project_id)
    combined = aggregate_markers(project.markers, sessions, params.show_ai, params.show_human)
    visible = filter_markers(combined, params.view)
    return build_report_stats(visible, sessions, top_n=settings.top_emotions)


@router.get("/{project_id}/export")
async def export_report(
    project_id: str,
    params: ViewParams = Depends(view_params),
    user: UserContext = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """
    Stream the PDF report for the current view.

    Returns:
        200: application/pdf attachment named LEM-Report-{hostname}-{date}.pdf
        500: EXPORT_FAILED envelope; the client shows a dismissable error
    """
    project = await load_owned_project(db, project_id, user)
    sessions = await list_sessions(db, project_id)
    combined = aggregate_markers(project.markers, sessions, params.show_ai, params.show_human)
    visible = filter_markers(combined, params.view)
    stats = build_report_stats(visible, sessions, top_n=settings.top_emotions)

    try:
        pdf_buffer = await run_in_threadpool(
            generate_project_report, project, sessions, stats, markers=visible
        )
    except Exception as exc:
        logger.error("PDF export failed project_id=%s: %s", project_id, exc, exc_info=True)
        return make_error_response(
            code="EXPORT_FAILED",
            message="The report could not be exported. Please try again.",
            status_code=500,
        )

    filename = export_filename(project.url)
    return StreamingResponse(
        pdf_buffer,
        media_type="application/pdf",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )
