"""
classifier.py — marker filtering and visual encoding.

Pure function module — no FastAPI dependencies.

Filters (all optional, combined with AND):
  layer        keep markers whose layer matches (the layer, not the payload, decides)
  shape        points → is_area is False
               areas  → is_area is True AND width and height are present
  source       all | ai | human
  participant  all | ai | <session id>

Visual encoding per layer:
  emotions  Positive → green, Negative → red, anything else → neutral blue
  needs     Autonomy → blue, Competence → green, Relatedness → pink
  strategy  Opportunity → green, Pain Point → red, Insight → blue
Missing or unrecognised values fall through to the neutral encoding — such
markers are still returned so inconsistent data stays visible.
"""
from __future__ import annotations

from enum import Enum
from typing import Iterable, Optional

from pydantic import BaseModel, ConfigDict

from lemtool.markers.schemas import (
    BriefType,
    EmotionCategory,
    EmotionType,
    Layer,
    Marker,
    MarkerSource,
    NeedType,
)

# ---------------------------------------------------------------------------
# Palette
# ---------------------------------------------------------------------------

GREEN = "#10B981"
RED = "#EF4444"
BLUE = "#3B82F6"
PINK = "#EC4899"

NEUTRAL_COLOR = BLUE
DEFAULT_ICON = "circle-dashed"

ALL_PARTICIPANTS = "all"
AI_ONLY = "ai"

_CATEGORY_COLORS: dict[EmotionCategory, str] = {
    EmotionCategory.positive: GREEN,
    EmotionCategory.negative: RED,
    EmotionCategory.neutral: NEUTRAL_COLOR,
}

_EMOTION_ICONS: dict[EmotionType, str] = {
    EmotionType.JOY: "smile",
    EmotionType.DESIRE: "heart",
    EmotionType.FASCINATION: "zap",
    EmotionType.SATISFACTION: "thumbs-up",
    EmotionType.NEUTRAL: "circle-dashed",
    EmotionType.SADNESS: "frown",
    EmotionType.DISGUST: "alert-triangle",
    EmotionType.BOREDOM: "meh",
    EmotionType.DISSATISFACTION: "thumbs-down",
}

_NEED_ENCODING: dict[NeedType, tuple[str, str]] = {
    NeedType.autonomy: (BLUE, "mouse-pointer-2"),
    NeedType.competence: (GREEN, "zap"),
    NeedType.relatedness: (PINK, "heart"),
}

_BRIEF_ENCODING: dict[BriefType, tuple[str, str]] = {
    BriefType.opportunity: (GREEN, "lightbulb"),
    BriefType.pain_point: (RED, "alert-triangle"),
    BriefType.insight: (BLUE, "info"),
}


# ---------------------------------------------------------------------------
# View parameters
# ---------------------------------------------------------------------------

class ShapeMode(str, Enum):
    points = "points"
    areas = "areas"


class SourceFilter(str, Enum):
    all = "all"
    ai = "ai"
    human = "human"


class MarkerView(BaseModel):
    """View parameters for the canvas and the report panel."""
    model_config = ConfigDict(extra="forbid")

    layer: Optional[Layer] = None
    shape: Optional[ShapeMode] = None
    source: SourceFilter = SourceFilter.all
    participant: str = ALL_PARTICIPANTS


class ClassifiedMarker(BaseModel):
    marker: Marker
    color: str
    icon: str
    category: Optional[EmotionCategory] = None     # emotions layer only


# ---------------------------------------------------------------------------
# Filtering
# ---------------------------------------------------------------------------

def matches_view(marker: Marker, view: MarkerView) -> bool:
    """True if the marker passes every filter in the view."""
    if view.layer is not None and marker.layer != view.layer:
        return False

    if view.shape is ShapeMode.points and marker.is_area:
        return False
    if view.shape is ShapeMode.areas and not marker.has_area:
        return False

    if view.source is SourceFilter.ai and marker.source != MarkerSource.ai:
        return False
    if view.source is SourceFilter.human and marker.source != MarkerSource.human:
        return False

    if view.participant == AI_ONLY:
        if marker.source != MarkerSource.ai:
            return False
    elif view.participant != ALL_PARTICIPANTS:
        # A specific session — AI markers never carry a session_id
        if marker.session_id != view.participant:
            return False

    return True


def filter_markers(markers: Iterable[Marker], view: MarkerView) -> list[Marker]:
    return [m for m in markers if matches_view(m, view)]


# ---------------------------------------------------------------------------
# Visual encoding
# ---------------------------------------------------------------------------

def encode_marker(marker: Marker) -> tuple[str, str]:
    """Return (color, icon) for a marker based on its layer-specific value."""
    layer = marker.layer

    if layer is Layer.emotions:
        category = marker.category
        color = _CATEGORY_COLORS.get(category, NEUTRAL_COLOR) if category else NEUTRAL_COLOR
        try:
            icon = _EMOTION_ICONS[EmotionType(marker.emotion)]
        except ValueError:
            icon = DEFAULT_ICON
        return color, icon

    if layer is Layer.needs:
        try:
            return _NEED_ENCODING[NeedType(marker.need)]
        except ValueError:
            return NEUTRAL_COLOR, "brain"

    try:
        return _BRIEF_ENCODING[BriefType(marker.brief_type)]
    except ValueError:
        return NEUTRAL_COLOR, "lightbulb"


def classify_markers(markers: Iterable[Marker], view: MarkerView) -> list[ClassifiedMarker]:
    """Filter markers by the view and attach their colour and icon."""
    classified = []
    for marker in filter_markers(markers, view):
        color, icon = encode_marker(marker)
        classified.append(
            ClassifiedMarker(marker=marker, color=color, icon=icon, category=marker.category)
        )
    return classified


def count_by_layer(markers: Iterable[Marker]) -> dict[str, int]:
    """Per-layer marker counts for the layer toggle badges."""
    counts = {layer.value: 0 for layer in Layer}
    for marker in markers:
        counts[marker.layer.value] += 1
    return counts
