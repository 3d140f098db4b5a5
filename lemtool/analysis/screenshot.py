"""
screenshot.py — full-page screenshot capture and slicing.

fetch_screenshot() asks the external screenshot service for a full-page PNG.
It never raises: any network or HTTP failure returns None and the caller
switches to the fallback analysis.

slice_screenshot() cuts the page into 16:9 chunks (slice height = width × 9/16)
so each vision call sees roughly one viewport. The last slice is shorter.
"""
from __future__ import annotations

import base64
import logging
from io import BytesIO
from typing import Optional
from urllib.parse import urlparse

import httpx
from PIL import Image, UnidentifiedImageError

from lemtool.analysis.schemas import ScreenshotSlice
from lemtool.config import settings

logger = logging.getLogger(__name__)

SLICE_ASPECT = 9 / 16


async def fetch_screenshot(
    url: str,
    client: Optional[httpx.AsyncClient] = None,
) -> Optional[bytes]:
    """Return PNG bytes for the full page at `url`, or None on any failure."""
    service_url = settings.screenshot_service_url.format(url=url)
    host = urlparse(url).hostname
    logger.info("Capturing screenshot host=%s", host)

    try:
        if client is None:
            async with httpx.AsyncClient(timeout=settings.screenshot_timeout_s) as own_client:
                response = await own_client.get(service_url, follow_redirects=True)
        else:
            response = await client.get(service_url, follow_redirects=True)
        response.raise_for_status()
    except httpx.HTTPError as exc:
        logger.warning("Screenshot capture failed host=%s: %s", host, exc)
        return None

    if not response.content:
        logger.warning("Screenshot service returned an empty body host=%s", host)
        return None
    return response.content


def slice_screenshot(png: bytes) -> tuple[list[ScreenshotSlice], int]:
    """
    Split a screenshot into 16:9 slices.

    Returns (slices, total_height). Raises ValueError if the bytes are not an
    image.
    """
    try:
        image = Image.open(BytesIO(png))
        image.load()
    except (UnidentifiedImageError, OSError) as exc:
        raise ValueError(f"Screenshot is not a readable image: {exc}") from exc

    image = image.convert("RGB")
    width, total_height = image.size
    slice_height = max(1, round(width * SLICE_ASPECT))

    slices = []
    top = 0
    while top < total_height:
        height = min(slice_height, total_height - top)
        buffer = BytesIO()
        image.crop((0, top, width, top + height)).save(buffer, format="PNG")
        slices.append(
            ScreenshotSlice(index=len(slices), top=top, height=height, png=buffer.getvalue())
        )
        top += height

    logger.info(
        "Screenshot sliced width=%d height=%d slices=%d", width, total_height, len(slices)
    )
    return slices, total_height


def encode_png(png: bytes) -> str:
    return base64.b64encode(png).decode("ascii")
