"""
schemas.py — Project Pydantic v2 data contracts.

Defines:
  - Project               (one analysed URL with its report and AI markers)
  - ProjectSummary        (dashboard listing row — no markers, no screenshot)
  - ProjectCreateRequest, ArchiveRequest
  - ProjectCreateResponse (project + demo-mode notice)
  - Entitlement           (remaining analysis counters read from billing state)
"""
from datetime import datetime
from typing import List, Optional

from pydantic import AnyHttpUrl, BaseModel, ConfigDict, Field

from lemtool.markers.schemas import Marker
from lemtool.report.schemas import AnalysisReport


class Project(BaseModel):
    id: str
    user_id: str
    url: str
    report: AnalysisReport
    markers: List[Marker] = Field(default_factory=list)
    screenshot: Optional[str] = None
    demo_mode: bool = False
    archived: bool = False
    created_at: Optional[datetime] = None


class ProjectSummary(BaseModel):
    id: str
    url: str
    overall_score: float
    marker_count: int
    demo_mode: bool
    archived: bool
    created_at: Optional[datetime] = None


class ProjectCreateRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    url: AnyHttpUrl


class ProjectCreateResponse(BaseModel):
    project: Project
    demo_mode: bool
    notice: Optional[str] = None     # Non-blocking message shown when demo content was used


class ArchiveRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    archived: bool = True


class Entitlement(BaseModel):
    monthly: int          # Remaining monthly analyses
    pack: int             # Remaining pack credits
    monthly_limit: int


__all__ = [
    "Project",
    "ProjectSummary",
    "ProjectCreateRequest",
    "ProjectCreateResponse",
    "ArchiveRequest",
    "Entitlement",
]
