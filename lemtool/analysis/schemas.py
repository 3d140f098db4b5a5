"""
schemas.py — AI analysis pipeline data contracts.

Defines:
  - ScreenshotSlice  (one 16:9 chunk of the full-page screenshot)
  - SliceMarkers     (raw marker candidates returned for one slice)
  - AnalysisResult   (markers + report handed to the projects layer)
"""
from typing import Any, List, Optional

from pydantic import BaseModel, Field

from lemtool.markers.schemas import Marker
from lemtool.report.schemas import AnalysisReport


class ScreenshotSlice(BaseModel):
    index: int
    top: int          # Pixel offset of this slice within the full page
    height: int       # Pixel height of this slice (last slice may be shorter)
    png: bytes


class SliceMarkers(BaseModel):
    """Untrusted marker candidates for one slice; coordinates are slice-local percentages."""
    slice_index: int
    candidates: List[dict[str, Any]] = Field(default_factory=list)


class AnalysisResult(BaseModel):
    markers: List[Marker]
    report: AnalysisReport
    screenshot: Optional[str] = None     # base64 PNG
    demo_mode: bool = False
    notice: Optional[str] = None         # Non-blocking message for the user when demo_mode


__all__ = ["ScreenshotSlice", "SliceMarkers", "AnalysisResult"]
