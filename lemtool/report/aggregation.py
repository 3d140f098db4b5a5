"""
aggregation.py — rollup statistics over a marker set.

Pure function module — no FastAPI dependencies. Used by both the live report
panel (GET /api/projects/{id}/report) and the PDF export.

Rules:
  - Emotion distribution counts markers with a non-null emotion, grouped by
    value, sorted by count descending; equal counts keep first-seen order.
  - Percentage = count / markers-with-an-emotion × 100, rounded half-up.
  - Positive ratio = Positive-category / any-category × 100.
  - Sentiment bands: ≥60 overwhelmingly positive, ≥40 mixed, else concerns
    expressed. Empty input short-circuits to 0 / "no data".
"""
import math
from collections import Counter
from typing import Iterable, List, Optional, Sequence

from lemtool.markers.schemas import EmotionCategory, Marker, MarkerSource
from lemtool.report.schemas import (
    EmotionShare,
    ReportStats,
    SentimentBand,
    SessionBreakdown,
)
from lemtool.sessions.schemas import TestSession

DEFAULT_TOP_N = 5

POSITIVE_THRESHOLD = 60.0
MIXED_THRESHOLD = 40.0


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def _emotion_key(marker: Marker) -> Optional[str]:
    emotion = marker.emotion
    if emotion is None:
        return None
    return emotion.value if hasattr(emotion, "value") else str(emotion)


# ---------------------------------------------------------------------------
# Emotion distribution
# ---------------------------------------------------------------------------

def emotion_distribution(markers: Iterable[Marker], top_n: int = DEFAULT_TOP_N) -> List[EmotionShare]:
    """Top-N emotions by count. Percentages need not sum to 100 after truncation."""
    counts: Counter = Counter()
    for marker in markers:
        key = _emotion_key(marker)
        if key is not None:
            counts[key] += 1

    total = sum(counts.values())
    if total == 0:
        return []

    # Counter preserves insertion order and sorted() is stable → first-seen tie-break
    ranked = sorted(counts.items(), key=lambda item: item[1], reverse=True)
    return [
        EmotionShare(
            emotion=emotion,
            count=count,
            percentage=_round_half_up(count / total * 100),
        )
        for emotion, count in ranked[:top_n]
    ]


# ---------------------------------------------------------------------------
# Sentiment
# ---------------------------------------------------------------------------

def positive_ratio(markers: Iterable[Marker]) -> Optional[float]:
    """
    Share of categorised emotion markers that are Positive, in percent.
    Returns None when no marker has a categorised emotion.
    """
    categorised = 0
    positive = 0
    for marker in markers:
        category = marker.category
        if category is None:
            continue
        categorised += 1
        if category is EmotionCategory.positive:
            positive += 1

    if categorised == 0:
        return None
    return positive / categorised * 100


def sentiment_band(ratio: Optional[float]) -> SentimentBand:
    if ratio is None:
        return "no data"
    if ratio >= POSITIVE_THRESHOLD:
        return "overwhelmingly positive"
    if ratio >= MIXED_THRESHOLD:
        return "mixed"
    return "concerns expressed"


# ---------------------------------------------------------------------------
# Per-session breakdown
# ---------------------------------------------------------------------------

def session_breakdown(sessions: Iterable[TestSession]) -> List[SessionBreakdown]:
    rows = []
    for session in sessions:
        categories = [m.category for m in session.markers]
        rows.append(
            SessionBreakdown(
                session_id=session.id,
                participant_name=session.participant_name,
                total=len(session.markers),
                positive=categories.count(EmotionCategory.positive),
                negative=categories.count(EmotionCategory.negative),
            )
        )
    return rows


# ---------------------------------------------------------------------------
# Bundle
# ---------------------------------------------------------------------------

def build_report_stats(
    markers: Sequence[Marker],
    sessions: Sequence[TestSession],
    top_n: int = DEFAULT_TOP_N,
) -> ReportStats:
    """
    Everything the report panel and the PDF show, computed over `markers`
    (normally the aggregated, possibly filtered, collection) and `sessions`.
    """
    ratio = positive_ratio(markers)
    return ReportStats(
        total_markers=len(markers),
        ai_markers=sum(1 for m in markers if m.source == MarkerSource.ai),
        human_markers=sum(1 for m in markers if m.source == MarkerSource.human),
        participants=len(sessions),
        emotion_breakdown=emotion_distribution(markers, top_n=top_n),
        positive_ratio=round(ratio, 1) if ratio is not None else 0.0,
        sentiment=sentiment_band(ratio),
        sessions=session_breakdown(sessions),
    )
