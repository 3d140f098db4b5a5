"""
llm_service.py — Mistral vision calls for website emotion analysis.

Components:
  MASTER_PROMPT        — hero slice: markers + the full strategic report
  MARKER_ONLY_PROMPT   — body slices: markers only, slice-local coordinates
  clean_json_text()    — repairs the usual model JSON mistakes before parsing
  parse_model_json()   — clean + json.loads, raises AnalysisError
  analyze_slices()     — hero call, then all body slices concurrently

No module-level asyncio.Semaphore — the semaphore is created in main.py
lifespan and passed as a parameter.

No HTTPException anywhere — the analysis service turns every failure here into
the fallback result.
"""
import asyncio
import json
import logging
import re
from typing import Any

from mistralai import Mistral

from lemtool.analysis.schemas import ScreenshotSlice, SliceMarkers
from lemtool.analysis.screenshot import encode_png
from lemtool.config import settings

logger = logging.getLogger(__name__)


class AnalysisError(Exception):
    """The AI service answered, but not with something usable."""


# ---------------------------------------------------------------------------
# Mistral API constants
# ---------------------------------------------------------------------------

MISTRAL_TEMPERATURE = 0.7
MASTER_MAX_TOKENS = 4096
BODY_MAX_TOKENS = 2048


# ---------------------------------------------------------------------------
# Prompts
# ---------------------------------------------------------------------------

_MARKER_SCHEMA = """  "markers": [
    {
      "x": number (0-100),
      "y": number (0-100),
      "layer": "emotions" | "needs" | "strategy",
      "comment": "Start with: 'The element [Name/Text]...' then explain.",
      "emotion": "Joy" | "Desire" | "Interest" | "Satisfaction" | "Neutral" | "Sadness" | "Aversion" | "Boredom" | "Dissatisfaction",
      "need": "Autonomy" | "Competence" | "Relatedness",
      "brief_type": "Opportunity" | "Pain Point" | "Insight"
    }
  ]"""

MASTER_PROMPT = """You are a senior UX researcher analysing the HERO SECTION (top part) of a website.
Target URL: {url}

TASK:
1. Find emotional markers, Self-Determination Theory needs and strategic insights in this screenshot.
2. Write the strategic report for the page based on this primary visual context.

PERSONAS: generate 4 to 5 distinct personas covering a spectrum of users
(for example the sceptic, the power user, the novice, the decision maker).

CREATIVE BRIEF: every actionable step is one appraisal statement:
  "GOAL: [user wants X]. FIX: [UI change]. RESULT: evokes [emotion]."
  "ATTITUDE: [user thinks X]. FIX: [UI change]. RESULT: evokes [emotion]."
  "NORM: [user believes X]. FIX: [UI change]. RESULT: evokes [emotion]."
Give 3-5 steps and real-world benchmarks.

PLACEMENT: x=0 is the left edge, x=100 the right edge, y=0 the top, y=100 the bottom.
Place each marker on the visual centre of the element it discusses, never on empty
margins, and do not stack several markers on one spot.

Return ONLY valid JSON, no trailing commas:
{{
{markers},
  "overallScore": number (0-100),
  "summary": string,
  "targetAudience": string,
  "audienceSplit": [{{ "label": string, "percentage": number }}],
  "brandValues": [string],
  "personas": [{{ "name": string, "role": string, "bio": string, "goals": string, "quote": string,
                 "techLiteracy": "Low" | "Mid" | "High", "psychographics": string,
                 "values": [string], "frustrations": [string] }}],
  "layoutStructure": [{{ "type": "hero" | "features" | "testimonials" | "pricing" | "footer" | "cta" | "unknown" | "social_proof" | "faq",
                        "estimatedHeight": number, "backgroundColorHint": "light" | "dark" | "colorful" }}],
  "sdtScores": {{ "autonomy": {{ "score": number, "justification": string }},
                  "competence": {{ "score": number, "justification": string }},
                  "relatedness": {{ "score": number, "justification": string }} }},
  "creativeBrief": {{ "problemStatement": string, "targetEmotion": string, "howMightWe": string,
                     "strategicDirection": string, "actionableSteps": [string],
                     "benchmarks": [{{ "name": string, "reason": string }}] }},
  "keyFindings": [{{ "title": string, "description": string, "type": "positive" | "negative" | "neutral" }}],
  "suggestions": [string],
  "recommendations": {{ "design": [REC], "copy": [REC], "ux": [REC] }}
}}
where REC is {{ "priority": "high" | "medium" | "low", "currentState": string,
               "recommendation": string, "rationale": string, "example": string }}
"""

MARKER_ONLY_PROMPT = """You are analysing a LOWER SCROLL SECTION (body or footer) of a website.
Target URL: {url}

TASK: identify the UI elements in this slice that trigger emotions, fulfil psychological
needs or represent strategic opportunities.

COORDINATES: the image is a slice of a larger page. x=0, y=0 is the top-left of THIS
image and x=100, y=100 its bottom-right. Pinpoint the exact element; avoid 50,50 and 0,0.

Return ONLY valid JSON, no trailing commas:
{{
{markers}
}}
"""


def build_master_prompt(url: str) -> str:
    return MASTER_PROMPT.format(url=url, markers=_MARKER_SCHEMA)


def build_marker_prompt(url: str) -> str:
    return MARKER_ONLY_PROMPT.format(url=url, markers=_MARKER_SCHEMA)


# ---------------------------------------------------------------------------
# JSON repair
# ---------------------------------------------------------------------------

_FENCE_REGEX = re.compile(r"```(?:json)?\s*([\s\S]*?)\s*```", re.IGNORECASE)
_TRAILING_COMMA_REGEX = re.compile(r",(\s*[}\]])")
_CONTROL_CHARS_REGEX = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f\x7f]")


def clean_json_text(text: str) -> str:
    """
    Best-effort repair of a model's JSON answer.

    Strips markdown fences, keeps the outermost {...}, removes trailing commas
    and control characters, and closes unbalanced brackets / braces.
    Returns "{}" when no object can be found.
    """
    if not text:
        return "{}"

    fenced = _FENCE_REGEX.search(text)
    if fenced and fenced.group(1):
        text = fenced.group(1)

    first = text.find("{")
    last = text.rfind("}")
    if first == -1 or last == -1 or last < first:
        logger.warning("AI response contains no JSON object")
        return "{}"

    body = text[first:last + 1].strip()
    body = _TRAILING_COMMA_REGEX.sub(r"\1", body)
    body = _CONTROL_CHARS_REGEX.sub("", body)

    missing_brackets = body.count("[") - body.count("]")
    missing_braces = body.count("{") - body.count("}")
    if missing_brackets > 0:
        body += "]" * missing_brackets
    if missing_braces > 0:
        body += "}" * missing_braces
    return body


def parse_model_json(text: str) -> dict[str, Any]:
    cleaned = clean_json_text(text)
    try:
        data = json.loads(cleaned)
    except json.JSONDecodeError as exc:
        logger.warning("AI JSON parse failed at pos=%d len=%d", exc.pos, len(cleaned))
        raise AnalysisError(f"Unparseable AI response: {exc.msg}") from exc
    if not isinstance(data, dict):
        raise AnalysisError("AI response is not a JSON object")
    return data


def _marker_candidates(data: dict[str, Any]) -> list[dict[str, Any]]:
    markers = data.get("markers")
    if not isinstance(markers, list):
        return []
    return [m for m in markers if isinstance(m, dict)]


# ---------------------------------------------------------------------------
# Mistral calls
# ---------------------------------------------------------------------------

def _response_text(response: Any) -> str:
    if response is None or not response.choices:
        return ""
    content = response.choices[0].message.content
    if isinstance(content, str):
        return content
    # Chunked content: keep the text parts
    return "".join(getattr(chunk, "text", "") or "" for chunk in content or [])


async def _complete_with_image(
    client: Mistral,
    prompt: str,
    image: ScreenshotSlice,
    semaphore: asyncio.Semaphore,
    max_tokens: int,
) -> str:
    messages = [
        {
            "role": "user",
            "content": [
                {"type": "text", "text": prompt},
                {"type": "image_url", "image_url": f"data:image/png;base64,{encode_png(image.png)}"},
            ],
        }
    ]
    async with semaphore:
        response = await client.chat.complete_async(
            model=settings.mistral_model,
            messages=messages,
            temperature=MISTRAL_TEMPERATURE,
            max_tokens=max_tokens,
        )
    return _response_text(response)


async def analyze_hero(
    client: Mistral,
    url: str,
    hero: ScreenshotSlice,
    semaphore: asyncio.Semaphore,
) -> dict[str, Any]:
    """
    Master call on the first slice. Returns the parsed JSON object (markers
    plus report fields). Raises AnalysisError on an empty or unparseable answer.
    """
    logger.info("Calling Mistral master prompt model=%s slice=%d", settings.mistral_model, hero.index)
    text = await _complete_with_image(client, build_master_prompt(url), hero, semaphore, MASTER_MAX_TOKENS)
    if not text.strip():
        raise AnalysisError("Empty response from AI service")
    data = parse_model_json(text)
    logger.info("Master analysis parsed markers=%d", len(_marker_candidates(data)))
    return data


async def analyze_body_slice(
    client: Mistral,
    url: str,
    body: ScreenshotSlice,
    semaphore: asyncio.Semaphore,
) -> SliceMarkers:
    """Marker-only call on one body slice. Any failure contributes no markers."""
    try:
        text = await _complete_with_image(
            client, build_marker_prompt(url), body, semaphore, BODY_MAX_TOKENS
        )
        candidates = _marker_candidates(parse_model_json(text))
    except Exception as exc:
        logger.warning("Body slice analysis failed slice=%d: %s", body.index, exc)
        candidates = []
    return SliceMarkers(slice_index=body.index, candidates=candidates)


async def analyze_slices(
    client: Mistral,
    url: str,
    slices: list[ScreenshotSlice],
    semaphore: asyncio.Semaphore,
) -> tuple[dict[str, Any], list[SliceMarkers]]:
    """
    Hero slice first (its failure aborts the analysis), then every body slice
    concurrently, bounded by `semaphore`.

    Returns (master JSON, per-slice marker candidates in slice order).
    """
    if not slices:
        raise AnalysisError("No screenshot slices to analyse")

    master = await analyze_hero(client, url, slices[0], semaphore)
    body_results = await asyncio.gather(
        *(analyze_body_slice(client, url, s, semaphore) for s in slices[1:])
    )

    per_slice = [SliceMarkers(slice_index=slices[0].index, candidates=_marker_candidates(master))]
    per_slice.extend(body_results)
    logger.info(
        "Slice analysis complete slices=%d candidates=%d",
        len(slices),
        sum(len(s.candidates) for s in per_slice),
    )
    return master, per_slice
