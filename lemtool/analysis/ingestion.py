"""
ingestion.py — trust boundary between the AI service and the data model.

Pure function module — no FastAPI dependencies.

Everything the AI returns is untrusted:
  - coordinates are clamped (x → [1, 99], y → [0, 100]); missing or
    non-numeric values become 50
  - emotion names are normalised (Interest → Fascination, Aversion → Disgust,
    anything unknown → Neutral)
  - the layer is inferred when the model sets the wrong one
  - slice-local y percentages are stitched into page-global percentages
  - markers closer than DECLUSTER_THRESHOLD are pushed apart
  - report fields get defaults so AnalysisReport always validates
"""
import logging
import math
from typing import Any, Iterable, List, Optional, Sequence

from pydantic import ValidationError

from lemtool.analysis.llm_service import AnalysisError
from lemtool.analysis.schemas import ScreenshotSlice, SliceMarkers
from lemtool.markers.schemas import (
    BriefType,
    EmotionType,
    Layer,
    Marker,
    MarkerSource,
    NeedType,
)
from lemtool.report.schemas import AnalysisReport

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Bounds
# ---------------------------------------------------------------------------

X_MIN, X_MAX = 1.0, 99.0
Y_MIN, Y_MAX = 0.0, 100.0
DEFAULT_POSITION = 50.0

DECLUSTER_THRESHOLD = 3.0
DECLUSTER_ITERATIONS = 5
DECLUSTER_X_BOUNDS = (2.0, 98.0)
DECLUSTER_Y_BOUNDS = (0.5, 99.5)

_EMOTION_ALIASES = {
    "INTEREST": EmotionType.FASCINATION,
    "AVERSION": EmotionType.DISGUST,
}
_EMOTIONS_BY_NAME = {e.value.upper(): e for e in EmotionType}


# ---------------------------------------------------------------------------
# Coordinates
# ---------------------------------------------------------------------------

def _as_number(value: Any) -> Optional[float]:
    if isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if math.isnan(number) or math.isinf(number):
        return None
    return number


def _clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


def clamp_position(x: Any, y: Any) -> tuple[float, float]:
    """Clamp raw coordinates into the stored range. Never raises."""
    nx = _as_number(x)
    ny = _as_number(y)
    return (
        _clamp(DEFAULT_POSITION if nx is None else nx, X_MIN, X_MAX),
        _clamp(DEFAULT_POSITION if ny is None else ny, Y_MIN, Y_MAX),
    )


def stitch_y(local_y: float, slice_top: float, slice_height: float, total_height: float) -> float:
    """Convert a slice-local y percentage into a page-global y percentage."""
    if total_height <= 0:
        return local_y
    global_px = slice_top + local_y / 100 * slice_height
    return global_px / total_height * 100


# ---------------------------------------------------------------------------
# Layer values
# ---------------------------------------------------------------------------

def normalize_emotion(value: Any) -> EmotionType:
    if not isinstance(value, str):
        return EmotionType.NEUTRAL
    key = value.strip().upper()
    return _EMOTION_ALIASES.get(key) or _EMOTIONS_BY_NAME.get(key, EmotionType.NEUTRAL)


def _match_enum(enum_cls, value: Any):
    if not isinstance(value, str):
        return None
    wanted = value.strip().lower()
    for member in enum_cls:
        if member.value.lower() == wanted:
            return member
    return None


def infer_layer(raw: dict[str, Any]) -> Layer:
    """
    The model's own `layer` unless the payload contradicts it:
    a need without an emotion is a needs marker, a brief_type without
    either is a strategy marker. Unknown layers default to emotions.
    """
    emotion, need, brief = raw.get("emotion"), raw.get("need"), raw.get("brief_type")
    if need and not emotion:
        return Layer.needs
    if brief and not emotion and not need:
        return Layer.strategy
    try:
        return Layer(raw.get("layer") or Layer.emotions.value)
    except ValueError:
        return Layer.emotions


def candidate_to_marker(raw: dict[str, Any], y: Optional[float] = None) -> Marker:
    """
    Build an AI Marker from one raw candidate. `y` overrides the candidate's
    own y (used after stitching). Coordinates are clamped here.
    """
    x, clamped_y = clamp_position(raw.get("x"), raw.get("y") if y is None else y)
    layer = infer_layer(raw)
    fields: dict[str, Any] = {
        "x": x,
        "y": clamped_y,
        "layer": layer.value,
        "source": MarkerSource.ai,
        "comment": raw.get("comment") if isinstance(raw.get("comment"), str) else "",
    }
    if layer is Layer.emotions:
        fields["emotion"] = normalize_emotion(raw.get("emotion"))
    elif layer is Layer.needs:
        fields["need"] = _match_enum(NeedType, raw.get("need"))
    else:
        fields["brief_type"] = _match_enum(BriefType, raw.get("brief_type"))
    return Marker.model_validate(fields)


# ---------------------------------------------------------------------------
# De-clustering
# ---------------------------------------------------------------------------

def decluster(markers: Sequence[Marker]) -> List[Marker]:
    """
    Push apart markers closer than DECLUSTER_THRESHOLD (percentage units).

    Each close pair moves half the overlap away from each other along the
    line joining them; exactly coincident pairs are left alone. After
    DECLUSTER_ITERATIONS passes every marker is clamped to the inner bounds.
    """
    points = [[m.x, m.y] for m in markers]

    for _ in range(DECLUSTER_ITERATIONS):
        for j in range(len(points)):
            for k in range(j + 1, len(points)):
                p1, p2 = points[j], points[k]
                dx = p1[0] - p2[0]
                dy = p1[1] - p2[1]
                dist = math.hypot(dx, dy)
                if 0.01 < dist < DECLUSTER_THRESHOLD:
                    overlap = DECLUSTER_THRESHOLD - dist
                    move_x = dx / dist * overlap * 0.5
                    move_y = dy / dist * overlap * 0.5
                    p1[0] += move_x
                    p1[1] += move_y
                    p2[0] -= move_x
                    p2[1] -= move_y

    return [
        marker.model_copy(update={
            "x": _clamp(x, *DECLUSTER_X_BOUNDS),
            "y": _clamp(y, *DECLUSTER_Y_BOUNDS),
        })
        for marker, (x, y) in zip(markers, points)
    ]


def ingest_ai_markers(
    per_slice: Iterable[SliceMarkers],
    slices: Sequence[ScreenshotSlice],
    total_height: int,
) -> List[Marker]:
    """
    Turn every slice's raw candidates into page-global, clamped, de-clustered
    AI markers, in slice order.
    """
    by_index = {s.index: s for s in slices}
    markers: List[Marker] = []
    for result in per_slice:
        image_slice = by_index.get(result.slice_index)
        if image_slice is None:
            continue
        for raw in result.candidates:
            _, local_y = clamp_position(raw.get("x"), raw.get("y"))
            global_y = stitch_y(local_y, image_slice.top, image_slice.height, total_height)
            markers.append(candidate_to_marker(raw, y=global_y))

    if markers:
        markers = decluster(markers)
    logger.info("Ingested AI markers count=%d", len(markers))
    return markers


# ---------------------------------------------------------------------------
# Report
# ---------------------------------------------------------------------------

_SDT_DEFAULT_JUSTIFICATIONS = {
    "autonomy": "User control and choice",
    "competence": "User capability support",
    "relatedness": "Social connection",
}
_DEFAULT_AUDIENCE_SPLIT = [
    {"label": "Primary", "percentage": 60},
    {"label": "Secondary", "percentage": 30},
    {"label": "Tertiary", "percentage": 10},
]
_DEFAULT_LAYOUT = [{"type": "unknown", "estimatedHeight": 3000, "backgroundColorHint": "light"}]
_LAYOUT_TYPES = {
    "hero", "features", "testimonials", "pricing", "footer",
    "cta", "unknown", "social_proof", "faq",
}
_VALENCES = {"positive", "negative", "neutral"}
_TECH_LITERACY = {"Low", "Mid", "High"}


def _text(value: Any, default: str = "") -> str:
    return value if isinstance(value, str) and value.strip() else default


def _str_list(value: Any) -> List[str]:
    if not isinstance(value, list):
        return []
    return [str(v) for v in value if isinstance(v, (str, int, float)) and str(v).strip()]


def _dict_list(value: Any) -> List[dict]:
    if not isinstance(value, list):
        return []
    return [v for v in value if isinstance(v, dict)]


def _sdt_score(raw: Any, name: str) -> dict[str, Any]:
    default_justification = _SDT_DEFAULT_JUSTIFICATIONS[name]
    if isinstance(raw, dict):
        score = _as_number(raw.get("score"))
        justification = _text(raw.get("justification"), default_justification)
    else:
        score = _as_number(raw)
        justification = default_justification
    if not score:
        score = 5.0
    return {"score": _clamp(score, 0, 10), "justification": justification}


def _persona(raw: dict) -> dict[str, Any]:
    role = _text(raw.get("role"), "Unknown Role")
    literacy = raw.get("techLiteracy", raw.get("tech_literacy"))
    return {
        "name": _text(raw.get("name"), "Unknown Persona"),
        "role": role,
        "bio": _text(raw.get("bio"), f"A {role} seeking solutions based on their core values."),
        "quote": _text(raw.get("quote"), "I'm hoping this website solves my problem quickly."),
        "goals": _text(raw.get("goals"), "Evaluate the product/service and decide if it's a good fit."),
        "tech_literacy": literacy if literacy in _TECH_LITERACY else "Mid",
        "psychographics": _text(raw.get("psychographics")),
        "values": _str_list(raw.get("values")),
        "frustrations": _str_list(raw.get("frustrations")),
        "demographics": _text(raw.get("demographics")),
    }


def _recommendation_items(raw: Any) -> List[dict[str, Any]]:
    items = []
    for item in _dict_list(raw):
        recommendation = _text(item.get("recommendation"))
        if not recommendation:
            continue
        priority = _text(item.get("priority"), "medium").lower()
        items.append({
            "priority": priority if priority in ("high", "medium", "low") else "medium",
            "current_state": _text(item.get("currentState", item.get("current_state"))),
            "recommendation": recommendation,
            "rationale": _text(item.get("rationale")),
            "example": _text(item.get("example")) or None,
        })
    return items


def normalize_report(raw: dict[str, Any]) -> AnalysisReport:
    """
    Build an AnalysisReport from the master JSON, filling a default for every
    missing or malformed field. Raises AnalysisError only if the result still
    fails validation.
    """
    score = _as_number(raw.get("overallScore"))
    sdt = raw.get("sdtScores") if isinstance(raw.get("sdtScores"), dict) else {}

    audience_split = [
        {"label": _text(s.get("label"), "Segment"), "percentage": _as_number(s.get("percentage")) or 0}
        for s in _dict_list(raw.get("audienceSplit"))
    ] or _DEFAULT_AUDIENCE_SPLIT

    layout = [
        {
            "type": s.get("type") if s.get("type") in _LAYOUT_TYPES else "unknown",
            "estimated_height": _as_number(s.get("estimatedHeight")) or 0,
            "background_color_hint": _text(s.get("backgroundColorHint"), "light"),
        }
        for s in _dict_list(raw.get("layoutStructure"))
    ] or _DEFAULT_LAYOUT

    brief = raw.get("creativeBrief")
    creative_brief = None
    if isinstance(brief, dict):
        creative_brief = {
            "problem_statement": _text(brief.get("problemStatement"), "N/A"),
            "target_emotion": _text(brief.get("targetEmotion"), "N/A"),
            "how_might_we": _text(brief.get("howMightWe"), "N/A"),
            "strategic_direction": _text(brief.get("strategicDirection"), "N/A"),
            "actionable_steps": _str_list(brief.get("actionableSteps")),
            "benchmarks": [
                {"name": _text(b.get("name"), "Benchmark"), "reason": _text(b.get("reason"))}
                for b in _dict_list(brief.get("benchmarks"))
            ],
        }

    recs = raw.get("recommendations")
    recommendations = None
    if isinstance(recs, dict):
        recommendations = {
            "design": _recommendation_items(recs.get("design")),
            "copy": _recommendation_items(recs.get("copy")),
            "ux": _recommendation_items(recs.get("ux")),
        }

    data = {
        "overall_score": _clamp(score, 0, 100) if score else 70,
        "summary": _text(raw.get("summary"), "Analysis complete"),
        "target_audience": _text(raw.get("targetAudience"), "General web users"),
        "sdt_scores": {name: _sdt_score(sdt.get(name), name) for name in _SDT_DEFAULT_JUSTIFICATIONS},
        "key_findings": [
            {
                "title": _text(f.get("title"), "Insight"),
                "description": _text(f.get("description")),
                "type": f.get("type") if f.get("type") in _VALENCES else "neutral",
            }
            for f in _dict_list(raw.get("keyFindings"))
        ],
        "suggestions": _str_list(raw.get("suggestions")),
        "recommendations": recommendations,
        "personas": [_persona(p) for p in _dict_list(raw.get("personas"))],
        "audience_split": audience_split,
        "brand_values": _str_list(raw.get("brandValues")),
        "layout_structure": layout,
        "creative_brief": creative_brief or {},
    }

    try:
        return AnalysisReport.model_validate(data)
    except ValidationError as exc:
        raise AnalysisError(f"AI report failed validation: {exc.error_count()} errors") from exc
