"""
schemas.py — Report Pydantic v2 data contracts.

Defines:
  - AnalysisReport and its parts (SDT scores, findings, recommendations,
    personas, creative brief) — produced once by the AI analysis and embedded
    1:1 in a Project
  - EmotionShare, SessionBreakdown, ReportStats — derived rollups computed
    from marker sets for the live report panel and the PDF export

The AI service answers in camelCase JSON; every report model accepts both
camelCase aliases and snake_case field names. API responses serialize
the report by alias (camelCase), the shape the front-end reads.
"""
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class _ReportModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )


# ---------------------------------------------------------------------------
# AnalysisReport parts
# ---------------------------------------------------------------------------

class SDTScore(_ReportModel):
    score: float = Field(..., ge=0, le=10)
    justification: str = ""


class SDTScores(_ReportModel):
    """Self-Determination Theory needs, each scored 0–10."""
    autonomy: SDTScore
    competence: SDTScore
    relatedness: SDTScore


class KeyFinding(_ReportModel):
    title: str
    description: str = ""
    type: Literal["positive", "negative", "neutral"] = "neutral"


class RecommendationItem(_ReportModel):
    priority: str = "medium"           # high | medium | low
    current_state: str = ""
    recommendation: str
    rationale: str = ""
    example: Optional[str] = None


class Recommendations(_ReportModel):
    design: List[RecommendationItem] = Field(default_factory=list)
    copywriting: List[RecommendationItem] = Field(default_factory=list, alias="copy")
    ux: List[RecommendationItem] = Field(default_factory=list)


class Persona(_ReportModel):
    name: str
    role: str
    bio: str = ""
    goals: str = ""
    quote: str = ""
    tech_literacy: Literal["Low", "Mid", "High"] = "Mid"
    psychographics: str = ""
    values: List[str] = Field(default_factory=list)
    frustrations: List[str] = Field(default_factory=list)
    demographics: str = ""


class AudienceSegment(_ReportModel):
    label: str
    percentage: float


class LayoutSection(_ReportModel):
    type: Literal[
        "hero", "features", "testimonials", "pricing", "footer",
        "cta", "unknown", "social_proof", "faq",
    ] = "unknown"
    estimated_height: float = 0
    background_color_hint: str = "light"


class Benchmark(_ReportModel):
    name: str
    reason: str = ""


class CreativeBrief(_ReportModel):
    problem_statement: str = "N/A"
    target_emotion: str = "N/A"
    how_might_we: str = "N/A"
    strategic_direction: str = "N/A"
    actionable_steps: List[str] = Field(default_factory=list)
    benchmarks: List[Benchmark] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# AnalysisReport — AI-produced summary attached 1:1 to a Project
# ---------------------------------------------------------------------------

class AnalysisReport(_ReportModel):
    overall_score: float = Field(..., ge=0, le=100)
    summary: str
    target_audience: str
    sdt_scores: SDTScores
    key_findings: List[KeyFinding] = Field(default_factory=list)
    suggestions: List[str] = Field(default_factory=list)
    recommendations: Optional[Recommendations] = None
    personas: Optional[List[Persona]] = None
    audience_split: List[AudienceSegment] = Field(default_factory=list)
    brand_values: List[str] = Field(default_factory=list)
    layout_structure: List[LayoutSection] = Field(default_factory=list)
    creative_brief: Optional[CreativeBrief] = None


# ---------------------------------------------------------------------------
# Derived statistics
# ---------------------------------------------------------------------------

SentimentBand = Literal["overwhelmingly positive", "mixed", "concerns expressed", "no data"]


class EmotionShare(BaseModel):
    """One row of the emotion breakdown."""
    model_config = ConfigDict(extra="forbid")

    emotion: str
    count: int
    percentage: int      # Rounded half-up; top-N rows need not sum to 100


class SessionBreakdown(BaseModel):
    model_config = ConfigDict(extra="forbid")

    session_id: str
    participant_name: str
    total: int
    positive: int
    negative: int


class ReportStats(BaseModel):
    """Rollup over a marker set — shared by the live panel and the PDF."""
    model_config = ConfigDict(extra="forbid")

    total_markers: int
    ai_markers: int
    human_markers: int
    participants: int
    emotion_breakdown: List[EmotionShare]
    positive_ratio: float              # 0–100, 0 when no emotion data
    sentiment: SentimentBand
    sessions: List[SessionBreakdown] = Field(default_factory=list)


__all__ = [
    "SDTScore",
    "SDTScores",
    "KeyFinding",
    "RecommendationItem",
    "Recommendations",
    "Persona",
    "AudienceSegment",
    "LayoutSection",
    "Benchmark",
    "CreativeBrief",
    "AnalysisReport",
    "SentimentBand",
    "EmotionShare",
    "SessionBreakdown",
    "ReportStats",
]
