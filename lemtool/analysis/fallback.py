"""
fallback.py — demo-mode analysis used whenever the real analysis cannot run.

build_fallback_analysis() is the single place placeholder content is built.
Every failure path (no screenshot, service not configured, unparseable answer,
timeout, upstream error) goes through it, so all of them produce the same
content for the same URL.

Positions, emotions and the score are drawn from a random.Random seeded with
the URL's SHA-256. Marker ids are fresh UUID4s on every call.
"""
import hashlib
import logging
import random
import uuid
from typing import Optional

from lemtool.analysis.ingestion import clamp_position
from lemtool.analysis.schemas import AnalysisResult
from lemtool.markers.schemas import EmotionType, Layer, Marker, MarkerSource
from lemtool.report.schemas import AnalysisReport

logger = logging.getLogger(__name__)

FALLBACK_MARKER_COUNT = 8

FALLBACK_EMOTIONS = [
    EmotionType.JOY,
    EmotionType.DESIRE,
    EmotionType.FASCINATION,
    EmotionType.SATISFACTION,
    EmotionType.SADNESS,
    EmotionType.DISGUST,
]

DEMO_NOTICE = (
    "The AI analysis could not be completed, so this project shows demo data. "
    "Run the analysis again later for real results."
)

_DEMO_REPORT = {
    "summary": (
        "Analysis is running in demo mode. The website shows emotional engagement "
        "through design elements. Run the analysis again for full results."
    ),
    "targetAudience": "General web users",
    "audienceSplit": [
        {"label": "Early Adopters", "percentage": 45},
        {"label": "Mainstream Users", "percentage": 35},
        {"label": "Late Adopters", "percentage": 20},
    ],
    "personas": [
        {
            "name": "Demo User",
            "role": "Web Visitor",
            "bio": "Regular internet user exploring the website",
            "goals": "Find relevant information quickly",
            "quote": "I want websites that are easy to understand",
            "techLiteracy": "Mid",
            "psychographics": "Values simplicity and clarity",
            "values": ["Efficiency", "Clarity", "Trust"],
            "frustrations": ["Complex navigation", "Slow loading"],
        }
    ],
    "brandValues": ["User-Friendly", "Professional", "Trustworthy"],
    "keyFindings": [
        {
            "title": "Visual Design",
            "description": "The layout provides clear visual hierarchy",
            "type": "positive",
        },
        {
            "title": "User Flow",
            "description": "Navigation could be simplified",
            "type": "negative",
        },
    ],
    "suggestions": [
        "Enhance visual consistency",
        "Optimize loading speed",
        "Improve mobile responsiveness",
        "Add more trust signals",
    ],
    "layoutStructure": [
        {"type": "hero", "estimatedHeight": 600, "backgroundColorHint": "light"},
        {"type": "features", "estimatedHeight": 800, "backgroundColorHint": "light"},
        {"type": "cta", "estimatedHeight": 400, "backgroundColorHint": "light"},
    ],
    "sdtScores": {
        "autonomy": {"score": 7, "justification": "Users have reasonable control over their experience"},
        "competence": {"score": 7, "justification": "Interface provides adequate feedback"},
        "relatedness": {"score": 6, "justification": "Social elements could be enhanced"},
    },
    "creativeBrief": {
        "problemStatement": "Users need clearer pathways to key information",
        "targetEmotion": "Confidence and Clarity",
        "howMightWe": "How might we simplify navigation while maintaining depth?",
        "strategicDirection": "Focus on progressive disclosure and intuitive flows",
        "actionableSteps": [
            "Redesign primary navigation",
            "Add contextual help",
            "Improve visual hierarchy",
        ],
        "benchmarks": [{"name": "Apple.com", "reason": "Clean, minimal design approach"}],
    },
}


def _seeded_random(url: str) -> random.Random:
    digest = hashlib.sha256(url.encode("utf-8")).hexdigest()
    return random.Random(int(digest, 16))


def build_fallback_analysis(
    url: str,
    reason: str,
    screenshot: Optional[str] = None,
) -> AnalysisResult:
    """
    Deterministic placeholder analysis for `url`.

    `reason` is logged only; the user sees DEMO_NOTICE.
    """
    rng = _seeded_random(url)

    markers = []
    for _ in range(FALLBACK_MARKER_COUNT):
        x, y = clamp_position(20 + rng.random() * 60, 15 + rng.random() * 70)
        markers.append(
            Marker(
                id=str(uuid.uuid4()),
                x=x,
                y=y,
                layer=Layer.emotions.value,
                emotion=rng.choice(FALLBACK_EMOTIONS),
                comment="AI-detected emotional trigger point (demo mode)",
                source=MarkerSource.ai,
            )
        )

    report = AnalysisReport.model_validate(
        {**_DEMO_REPORT, "overallScore": 65 + rng.randrange(25)}
    )

    logger.warning("Using fallback analysis reason=%s markers=%d", reason, len(markers))
    return AnalysisResult(
        markers=markers,
        report=report,
        screenshot=screenshot,
        demo_mode=True,
        notice=DEMO_NOTICE,
    )
