"""
schemas.py — Participant test-session Pydantic v2 data contracts.

Defines:
  - TestSession        (one participant's immutable contribution to a Project)
  - MarkerDraft        (a marker as placed by a participant, before ingestion)
  - SessionSubmission  (request body for submitting a finished test)
  - DraftState         (in-progress participant state kept in Redis)
  - ParticipantProjectView (what a participant may see of a project)
  - DraftSaved         (id + TTL of a stored draft)
  - SessionReceipt     (submission acknowledgement)
"""
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from lemtool.markers.schemas import (
    Appraisal,
    BriefType,
    EmotionType,
    Layer,
    Marker,
    NeedType,
)


class TestSession(BaseModel):
    """Stored human session — markers all carry source=HUMAN and this session's id."""
    __test__ = False

    id: str
    project_id: str
    participant_name: str
    markers: List[Marker] = Field(default_factory=list)
    created_at: Optional[datetime] = None


class MarkerDraft(BaseModel):
    """
    A participant-placed marker. Strictly validated: the value field matching
    `layer` is required and the other two must be absent.
    Server-side fields (id, source, session_id) cannot be supplied.
    """
    model_config = ConfigDict(extra="forbid")

    x: float
    y: float
    is_area: bool = False
    width: Optional[float] = Field(default=None, gt=0, le=100)
    height: Optional[float] = Field(default=None, gt=0, le=100)
    layer: Layer = Layer.emotions
    emotion: Optional[EmotionType] = None
    need: Optional[NeedType] = None
    brief_type: Optional[BriefType] = None
    comment: str = Field(default="", max_length=2000)
    appraisal: Optional[Appraisal] = None

    @model_validator(mode="after")
    def validate_layer_value(self) -> "MarkerDraft":
        """Exactly one of emotion / need / brief_type, and it must match the layer."""
        expected = {
            Layer.emotions: "emotion",
            Layer.needs: "need",
            Layer.strategy: "brief_type",
        }[self.layer]
        for name in ("emotion", "need", "brief_type"):
            value = getattr(self, name)
            if name == expected and value is None:
                raise ValueError(f"'{name}' is required for layer '{self.layer.value}'")
            if name != expected and value is not None:
                raise ValueError(f"'{name}' is not allowed for layer '{self.layer.value}'")
        if self.is_area and (self.width is None or self.height is None):
            raise ValueError("Area markers need both width and height")
        return self


class SessionSubmission(BaseModel):
    """Request body for POST /api/participate/{project_id}/sessions."""
    model_config = ConfigDict(extra="forbid")

    participant_name: str = Field(..., min_length=1, max_length=120)
    markers: List[MarkerDraft] = Field(default_factory=list)
    draft_id: Optional[str] = Field(
        default=None,
        description="Draft to discard from the cache once the session is stored.",
    )


class DraftState(BaseModel):
    """Participant progress saved between page loads (TTL 24h in Redis)."""
    model_config = ConfigDict(extra="forbid")

    participant_name: str = ""
    markers: List[MarkerDraft] = Field(default_factory=list)


class DraftSaved(BaseModel):
    draft_id: str
    expires_in: int      # Seconds until the draft is dropped from the cache


class SessionReceipt(BaseModel):
    """Returned to the participant after a successful submission."""
    session_id: str
    marker_count: int


class ParticipantProjectView(BaseModel):
    """Public test view — no report, no AI markers, no owner data."""
    project_id: str
    url: str
    screenshot: Optional[str] = None
    min_markers: int


__all__ = [
    "TestSession",
    "MarkerDraft",
    "SessionSubmission",
    "DraftState",
    "DraftSaved",
    "SessionReceipt",
    "ParticipantProjectView",
]
