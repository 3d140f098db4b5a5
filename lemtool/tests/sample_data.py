"""
Sample marker / session fixtures for LEMtool tests.

The "scenario" set is the reference end-to-end case:
  Project P: 2 AI markers (Joy, Sadness — both emotions layer)
  Session S: 1 human marker (Desire, source=HUMAN)
Aggregated: 3 markers, breakdown Joy/Sadness/Desire at 33% each,
positive ratio 2/3 → "overwhelmingly positive".
"""
from __future__ import annotations

import base64
from io import BytesIO
from typing import Any, Optional

from PIL import Image

from lemtool.markers.schemas import Marker
from lemtool.projects.schemas import Project
from lemtool.report.schemas import AnalysisReport
from lemtool.sessions.schemas import TestSession

SCENARIO_SESSION_ID = "5f0c3a52-8d1e-4c6b-9a57-2e1f0d3c4b5a"

MINIMAL_REPORT: dict[str, Any] = dict(
    overallScore=72,
    summary="Clear hero, weak pricing section",
    targetAudience="Small business owners",
    sdtScores={
        "autonomy": {"score": 7, "justification": "Clear navigation"},
        "competence": {"score": 6, "justification": "Pricing is confusing"},
        "relatedness": {"score": 5, "justification": "Few testimonials"},
    },
    keyFindings=[
        {"title": "Hero", "description": "Strong headline", "type": "positive"},
        {"title": "Pricing", "description": "Too many tiers", "type": "negative"},
    ],
    suggestions=["Simplify pricing"],
)


def marker(
    emotion: Optional[str] = None,
    *,
    layer: str = "emotions",
    x: float = 50.0,
    y: float = 50.0,
    source: str = "AI",
    session_id: Optional[str] = None,
    **extra: Any,
) -> Marker:
    """Build a Marker from the flat wire shape."""
    data: dict[str, Any] = dict(x=x, y=y, layer=layer, source=source, session_id=session_id, **extra)
    if emotion is not None:
        data["emotion"] = emotion
    return Marker.model_validate(data)


def scenario_project(screenshot: Optional[str] = None) -> Project:
    return Project(
        id="project-p",
        user_id="owner-1",
        url="https://example.com/landing",
        report=AnalysisReport.model_validate(MINIMAL_REPORT),
        markers=[
            marker("Joy", x=20, y=10),
            marker("Sadness", x=70, y=40),
        ],
        screenshot=screenshot,
    )


def scenario_session() -> TestSession:
    return TestSession(
        id=SCENARIO_SESSION_ID,
        project_id="project-p",
        participant_name="Participant A",
        markers=[marker("Desire", x=40, y=60, source="HUMAN")],
    )


def png_bytes(width: int = 1200, height: int = 2000, color: str = "white") -> bytes:
    buffer = BytesIO()
    Image.new("RGB", (width, height), color).save(buffer, format="PNG")
    return buffer.getvalue()


def png_base64(width: int = 1200, height: int = 2000) -> str:
    return base64.b64encode(png_bytes(width, height)).decode("ascii")


def participant_markers(count: int) -> list[dict[str, Any]]:
    """`count` valid MarkerDraft payloads cycling through the three layers."""
    layers = [
        {"layer": "emotions", "emotion": "Joy"},
        {"layer": "needs", "need": "Autonomy"},
        {"layer": "strategy", "brief_type": "Pain Point"},
    ]
    return [
        {"x": 10 + i * 7, "y": 5 + i * 9, "comment": f"note {i}", **layers[i % 3]}
        for i in range(count)
    ]


class FakeRedis:
    """Just enough of redis.asyncio.Redis for the draft helpers."""

    def __init__(self) -> None:
        self.data: dict[str, str] = {}
        self.ttls: dict[str, int] = {}

    async def get(self, key: str):
        return self.data.get(key)

    async def setex(self, key: str, ttl: int, value: str) -> None:
        self.data[key] = value
        self.ttls[key] = ttl

    async def delete(self, *keys: str) -> int:
        removed = 0
        for key in keys:
            if self.data.pop(key, None) is not None:
                removed += 1
            self.ttls.pop(key, None)
        return removed

    async def ping(self) -> bool:
        return True

    async def aclose(self) -> None:
        return None
