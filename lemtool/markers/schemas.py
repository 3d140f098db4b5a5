"""
schemas.py — Marker Pydantic v2 data contracts.

Defines:
  - EmotionType, EmotionCategory enums and the EMOTION_CATEGORIES table
  - Layer, NeedType, BriefType, MarkerSource, AppraisalType enums
  - EmotionPayload / NeedPayload / StrategyPayload  (tagged union on `layer`)
  - Appraisal  (structured rationale captured from human participants)
  - Marker     (the central data contract — every view and report consumes this)

Wire format is FLAT, matching what the front-end and the stored JSON use:
    {"id": ..., "x": 40.0, "y": 12.5, "layer": "emotions", "emotion": "Joy", ...}
In memory the layer-specific value lives in `Marker.payload`, so a marker can
only ever carry the one field that matches its layer.
"""
import uuid
from enum import Enum
from typing import Annotated, Any, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, model_serializer, model_validator


# ---------------------------------------------------------------------------
# Emotions
# ---------------------------------------------------------------------------

class EmotionType(str, Enum):
    # Positive
    JOY = "Joy"
    DESIRE = "Desire"
    FASCINATION = "Fascination"
    SATISFACTION = "Satisfaction"
    # Neutral
    NEUTRAL = "Neutral"
    # Negative
    SADNESS = "Sadness"
    DISGUST = "Disgust"
    BOREDOM = "Boredom"
    DISSATISFACTION = "Dissatisfaction"


class EmotionCategory(str, Enum):
    positive = "Positive"
    neutral = "Neutral"
    negative = "Negative"


EMOTION_CATEGORIES: dict[EmotionType, EmotionCategory] = {
    EmotionType.JOY: EmotionCategory.positive,
    EmotionType.DESIRE: EmotionCategory.positive,
    EmotionType.FASCINATION: EmotionCategory.positive,
    EmotionType.SATISFACTION: EmotionCategory.positive,
    EmotionType.NEUTRAL: EmotionCategory.neutral,
    EmotionType.SADNESS: EmotionCategory.negative,
    EmotionType.DISGUST: EmotionCategory.negative,
    EmotionType.BOREDOM: EmotionCategory.negative,
    EmotionType.DISSATISFACTION: EmotionCategory.negative,
}


def emotion_category(value: Optional[str]) -> Optional[EmotionCategory]:
    """Category of an emotion value, or None for missing / unrecognised values."""
    if value is None:
        return None
    try:
        return EMOTION_CATEGORIES[EmotionType(value)]
    except ValueError:
        return None


# ---------------------------------------------------------------------------
# Layers and layer-specific values
# ---------------------------------------------------------------------------

class Layer(str, Enum):
    emotions = "emotions"
    needs = "needs"
    strategy = "strategy"


class NeedType(str, Enum):
    autonomy = "Autonomy"
    competence = "Competence"
    relatedness = "Relatedness"


class BriefType(str, Enum):
    opportunity = "Opportunity"
    pain_point = "Pain Point"
    insight = "Insight"


class MarkerSource(str, Enum):
    ai = "AI"
    human = "HUMAN"


class AppraisalType(str, Enum):
    goal = "Goal"
    attitude = "Attitude"
    norm = "Norm"
    standard = "Standard"


# Stored values are tried against the enum first; anything unrecognised is kept
# verbatim so malformed data still renders (with the neutral encoding).

class EmotionPayload(BaseModel):
    model_config = ConfigDict(extra="forbid")

    layer: Literal["emotions"] = "emotions"
    emotion: Optional[Union[EmotionType, str]] = Field(default=None, union_mode="left_to_right")


class NeedPayload(BaseModel):
    model_config = ConfigDict(extra="forbid")

    layer: Literal["needs"] = "needs"
    need: Optional[Union[NeedType, str]] = Field(default=None, union_mode="left_to_right")


class StrategyPayload(BaseModel):
    model_config = ConfigDict(extra="forbid")

    layer: Literal["strategy"] = "strategy"
    brief_type: Optional[Union[BriefType, str]] = Field(default=None, union_mode="left_to_right")


LayerPayload = Annotated[
    Union[EmotionPayload, NeedPayload, StrategyPayload],
    Field(discriminator="layer"),
]

_PAYLOAD_VALUE_FIELDS = ("emotion", "need", "brief_type")


# ---------------------------------------------------------------------------
# Appraisal — human-only structured rationale
# ---------------------------------------------------------------------------

class Appraisal(BaseModel):
    """Appraisal-theory statement, e.g. type=Goal, prefix='I want to', content='find pricing'."""
    model_config = ConfigDict(extra="forbid")

    type: AppraisalType
    prefix: str = Field(..., max_length=80)
    content: str = Field(..., max_length=1000)


# ---------------------------------------------------------------------------
# Marker
# ---------------------------------------------------------------------------

class Marker(BaseModel):
    """
    A single annotation on the analysed page.

    Coordinates are percentages of page width/height. For area markers
    (is_area=True) x/y is the top-left corner and width/height the extent.
    session_id is only ever set on HUMAN markers that belong to a TestSession.
    """
    model_config = ConfigDict(extra="ignore")

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    x: float
    y: float
    width: Optional[float] = None
    height: Optional[float] = None
    is_area: bool = False
    payload: LayerPayload = Field(default_factory=EmotionPayload)
    source: MarkerSource = MarkerSource.ai
    session_id: Optional[str] = None
    comment: str = ""
    appraisal: Optional[Appraisal] = None

    @model_validator(mode="before")
    @classmethod
    def fold_flat_layer_fields(cls, data: Any) -> Any:
        """Accept the flat wire shape: `layer` plus one of emotion / need / brief_type."""
        if not isinstance(data, dict) or "payload" in data:
            return data

        data = dict(data)
        layer = data.pop("layer", None)
        values = {name: data.pop(name, None) for name in _PAYLOAD_VALUE_FIELDS}
        if isinstance(data.get("isArea"), bool) and "is_area" not in data:
            data["is_area"] = data.pop("isArea")
        if "sessionId" in data and "session_id" not in data:
            data["session_id"] = data.pop("sessionId")

        layer = layer.value if isinstance(layer, Layer) else layer
        if layer == Layer.needs.value:
            data["payload"] = {"layer": "needs", "need": values["need"]}
        elif layer == Layer.strategy.value:
            data["payload"] = {"layer": "strategy", "brief_type": values["brief_type"]}
        else:
            # Missing or unknown layers are treated as emotions
            data["payload"] = {"layer": "emotions", "emotion": values["emotion"]}
        return data

    @model_serializer(mode="wrap")
    def flatten_payload(self, handler) -> dict[str, Any]:
        data = handler(self)
        payload = data.pop("payload", None) or {}
        data.update(payload)
        return data

    # ---- Read-only accessors -------------------------------------------------

    @property
    def layer(self) -> Layer:
        return Layer(self.payload.layer)

    @property
    def emotion(self) -> Optional[str]:
        return self.payload.emotion if isinstance(self.payload, EmotionPayload) else None

    @property
    def need(self) -> Optional[str]:
        return self.payload.need if isinstance(self.payload, NeedPayload) else None

    @property
    def brief_type(self) -> Optional[str]:
        return self.payload.brief_type if isinstance(self.payload, StrategyPayload) else None

    @property
    def category(self) -> Optional[EmotionCategory]:
        return emotion_category(self.emotion)

    @property
    def has_area(self) -> bool:
        """True only for area markers that actually carry a width and a height."""
        return self.is_area and self.width is not None and self.height is not None


__all__ = [
    "EmotionType",
    "EmotionCategory",
    "EMOTION_CATEGORIES",
    "emotion_category",
    "Layer",
    "NeedType",
    "BriefType",
    "MarkerSource",
    "AppraisalType",
    "EmotionPayload",
    "NeedPayload",
    "StrategyPayload",
    "LayerPayload",
    "Appraisal",
    "Marker",
]
