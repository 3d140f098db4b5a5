"""
service.py — orchestrates one website analysis.

    screenshot → slices → Mistral (hero + body) → ingestion → AnalysisResult

One attempt, no retries, bounded by settings.analysis_timeout_s. Every
failure ends in build_fallback_analysis(), so callers always get a result
and never an upstream error.
"""
import asyncio
import logging
from typing import Optional

import httpx
from mistralai import Mistral

from lemtool.analysis.fallback import build_fallback_analysis
from lemtool.analysis.ingestion import ingest_ai_markers, normalize_report
from lemtool.analysis.llm_service import AnalysisError, analyze_slices
from lemtool.analysis.schemas import AnalysisResult
from lemtool.analysis.screenshot import encode_png, fetch_screenshot, slice_screenshot
from lemtool.config import settings

logger = logging.getLogger(__name__)


async def _analyse_screenshot(
    client: Mistral,
    url: str,
    png: bytes,
    semaphore: asyncio.Semaphore,
) -> AnalysisResult:
    slices, total_height = slice_screenshot(png)
    master, per_slice = await analyze_slices(client, url, slices, semaphore)
    return AnalysisResult(
        markers=ingest_ai_markers(per_slice, slices, total_height),
        report=normalize_report(master),
        screenshot=encode_png(png),
    )


async def run_analysis(
    url: str,
    client: Optional[Mistral],
    semaphore: asyncio.Semaphore,
    http_client: Optional[httpx.AsyncClient] = None,
    timeout_s: Optional[float] = None,
) -> AnalysisResult:
    """
    Analyse `url` and return markers + report.

    client=None means the AI service is not configured; the fallback is used
    directly (the screenshot is still captured for the canvas).
    """
    png = await fetch_screenshot(url, client=http_client)
    if png is None:
        return build_fallback_analysis(url, reason="screenshot unavailable")

    screenshot = encode_png(png)
    if client is None:
        return build_fallback_analysis(url, reason="analysis service not configured", screenshot=screenshot)

    timeout = settings.analysis_timeout_s if timeout_s is None else timeout_s
    try:
        result = await asyncio.wait_for(
            _analyse_screenshot(client, url, png, semaphore), timeout=timeout
        )
    except asyncio.TimeoutError:
        logger.warning("Analysis timed out after %.0fs", timeout)
        return build_fallback_analysis(url, reason="timeout", screenshot=screenshot)
    except (AnalysisError, ValueError) as exc:
        logger.warning("Analysis response unusable: %s", exc)
        return build_fallback_analysis(url, reason="unparseable response", screenshot=screenshot)
    except Exception as exc:
        logger.error("Analysis service call failed: %s", exc, exc_info=True)
        return build_fallback_analysis(url, reason="service unreachable", screenshot=screenshot)

    logger.info(
        "Analysis complete markers=%d score=%.0f",
        len(result.markers),
        result.report.overall_score,
    )
    return result
