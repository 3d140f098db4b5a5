"""
aggregator.py — combine AI and human markers into one collection.

Pure function module — no FastAPI or database dependencies.

Output order: every project (AI) marker in stored order, then each session's
markers in the order the sessions are given. Human markers are stamped with
their session's id; stored source values are left as they are.
"""
from __future__ import annotations

from typing import Iterable, Sequence

from lemtool.markers.schemas import Marker, MarkerSource
from lemtool.sessions.schemas import TestSession


def aggregate_markers(
    project_markers: Sequence[Marker],
    sessions: Iterable[TestSession],
    show_ai: bool = True,
    show_human: bool = True,
) -> list[Marker]:
    """
    Build the unified "everything annotated on this project" collection.

    show_ai / show_human drop the whole category from the result; the
    stored project and session objects are never modified.
    """
    combined: list[Marker] = []

    if show_ai:
        combined.extend(
            marker.model_copy(update={"source": MarkerSource.ai, "session_id": None})
            for marker in project_markers
        )

    if show_human:
        for session in sessions:
            combined.extend(
                marker.model_copy(update={"session_id": session.id})
                for marker in session.markers
            )

    return combined
