"""
Participant session validator and builder.

Runs AFTER Pydantic structural validation of SessionSubmission (each
MarkerDraft already carries exactly the value matching its layer). Collects
every violation in a single pass and raises ValueError with a JSON-encoded
list of {field, issue} dicts so the route can build the standard envelope.

Rules enforced:
  1. participant_name is not blank
  2. at least `min_markers` markers — the message names the shortfall

build_session() then turns a valid submission into a TestSession: one
server-allocated UUID4 for the session, stamped on every marker together with
source=HUMAN and clamped coordinates.
"""
from __future__ import annotations

import json
import logging
import uuid
from typing import Any

from lemtool.analysis.ingestion import clamp_position
from lemtool.markers.schemas import Marker, MarkerSource
from lemtool.sessions.schemas import MarkerDraft, SessionSubmission, TestSession

logger = logging.getLogger(__name__)


def shortfall_message(count: int, min_markers: int) -> str:
    missing = min_markers - count
    return f"Add at least {min_markers} markers — {missing} more needed"


def validate_submission(submission: SessionSubmission, min_markers: int) -> None:
    """
    Raises:
        ValueError: JSON list of {"field", "issue"} dicts when any rule fails.
    """
    violations: list[dict[str, Any]] = []

    if not submission.participant_name.strip():
        violations.append({
            "field": "participant_name",
            "issue": "Participant name is required",
        })

    count = len(submission.markers)
    if count < min_markers:
        violations.append({
            "field": "markers",
            "issue": shortfall_message(count, min_markers),
        })

    if violations:
        logger.info(
            "Session submission rejected markers=%d violations=%d", count, len(violations)
        )
        raise ValueError(json.dumps(violations))


def draft_to_marker(draft: MarkerDraft, session_id: str) -> Marker:
    x, y = clamp_position(draft.x, draft.y)
    return Marker.model_validate({
        "x": x,
        "y": y,
        "is_area": draft.is_area,
        "width": draft.width,
        "height": draft.height,
        "layer": draft.layer.value,
        "emotion": draft.emotion,
        "need": draft.need,
        "brief_type": draft.brief_type,
        "source": MarkerSource.human,
        "session_id": session_id,
        "comment": draft.comment,
        "appraisal": draft.appraisal,
    })


def build_session(project_id: str, submission: SessionSubmission) -> TestSession:
    """New TestSession with a fresh UUID4; never reuses a client-supplied id."""
    session_id = str(uuid.uuid4())
    return TestSession(
        id=session_id,
        project_id=project_id,
        participant_name=submission.participant_name.strip(),
        markers=[draft_to_marker(d, session_id) for d in submission.markers],
    )
