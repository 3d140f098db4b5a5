"""
pdf_generator.py — LEMtool PDF report generator.

Builds the downloadable project report using reportlab PLATYPUS.
Output is a BytesIO buffer (no temp file on disk).

Entry point:
    generate_project_report(project, sessions, stats, markers=None) -> BytesIO

CRITICAL: buffer.seek(0) is called after doc.build(story) — reportlab leaves
the buffer position at the end after writing.

PDF sections:
  1. Header (URL, date, demo-mode flag)
  2. Overall score callout + summary
  3. Totals (participants, AI / human markers)
  4. Emotion breakdown table + sentiment band
  5. SDT scores table
  6. Key findings, suggestions, recommendations, personas (when present)
  7. Per-session breakdown
  8. Annotated screenshot, sliced into pages by report.pagination.paginate

Colour palette mirrors the canvas (see markers.classifier).
"""
from __future__ import annotations

import base64
import binascii
import datetime
import logging
from io import BytesIO
from typing import Optional, Sequence
from xml.sax.saxutils import escape

from PIL import Image as PILImage
from PIL import ImageDraw
from reportlab.lib.colors import HexColor, black
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.lib.units import mm
from reportlab.platypus import (
    Image,
    KeepTogether,
    PageBreak,
    Paragraph,
    SimpleDocTemplate,
    Spacer,
    Table,
    TableStyle,
)

from lemtool.markers.aggregator import aggregate_markers
from lemtool.markers.classifier import MarkerView, classify_markers
from lemtool.markers.schemas import Marker
from lemtool.projects.schemas import Project
from lemtool.report.pagination import paginate
from lemtool.report.schemas import AnalysisReport, ReportStats
from lemtool.sessions.schemas import TestSession

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Colour constants
# ---------------------------------------------------------------------------

GREEN_LIGHT = HexColor("#D1FAE5")   # Score callout, positive rows
RED_LIGHT   = HexColor("#FEE2E2")   # Negative findings
GREY_LIGHT  = HexColor("#F2F2F2")   # Table headers

_VALENCE_BACKGROUND = {
    "positive": GREEN_LIGHT,
    "negative": RED_LIGHT,
    "neutral": GREY_LIGHT,
}

# Platypus frames pad 6pt on every side; 1pt slack keeps an exact-fit image
# from being pushed to the next page.
_FRAME_PADDING = 6
_FIT_SLACK = 1

POINT_RADIUS_PX = 10


# ---------------------------------------------------------------------------
# Screenshot annotation
# ---------------------------------------------------------------------------

def decode_screenshot(screenshot: Optional[str]) -> Optional[bytes]:
    """Stored screenshots are base64, optionally as a data: URI."""
    if not screenshot:
        return None
    if screenshot.startswith("data:"):
        _, _, screenshot = screenshot.partition(",")
    try:
        return base64.b64decode(screenshot, validate=True)
    except (binascii.Error, ValueError):
        logger.warning("Stored screenshot is not valid base64 — skipped")
        return None


def annotate_screenshot(png: bytes, markers: Sequence[Marker]) -> PILImage.Image:
    """
    Draw every marker on the screenshot with the canvas colours.

    Points become filled circles, areas become outlined rectangles.
    Marker coordinates are percentages of the image size.
    """
    image = PILImage.open(BytesIO(png)).convert("RGB")
    draw = ImageDraw.Draw(image)
    width, height = image.size

    for item in classify_markers(markers, MarkerView()):
        marker = item.marker
        cx = marker.x / 100 * width
        cy = marker.y / 100 * height
        if marker.has_area:
            box = (cx, cy, cx + marker.width / 100 * width, cy + marker.height / 100 * height)
            draw.rectangle(box, outline=item.color, width=3)
        else:
            box = (
                cx - POINT_RADIUS_PX, cy - POINT_RADIUS_PX,
                cx + POINT_RADIUS_PX, cy + POINT_RADIUS_PX,
            )
            draw.ellipse(box, fill=item.color, outline="white", width=2)
    return image


def _screenshot_pages(image: PILImage.Image, frame_width: float, frame_height: float) -> list:
    """
    Scale the annotated image to the frame width and cut it into page-sized
    Image flowables, one per PageSlice.
    """
    usable_width = frame_width - 2 * _FRAME_PADDING - _FIT_SLACK
    usable_height = frame_height - 2 * _FRAME_PADDING - _FIT_SLACK
    scale = usable_width / image.width              # points per pixel
    page_height_px = usable_height / scale

    flowables = []
    for page in paginate(image.height, page_height_px):
        top, bottom = round(page.top), round(page.bottom)
        if bottom <= top:
            continue
        crop = image.crop((0, top, image.width, bottom))
        png = BytesIO()
        crop.save(png, format="PNG")
        png.seek(0)
        if flowables:
            flowables.append(PageBreak())
        flowables.append(Image(png, width=usable_width, height=crop.height * scale))
    return flowables


# ---------------------------------------------------------------------------
# Private section builders
# ---------------------------------------------------------------------------

def _p(text: str, style: ParagraphStyle) -> Paragraph:
    return Paragraph(escape(text or ""), style)


def _header_table(data: list, col_widths: list) -> Table:
    t = Table(data, colWidths=col_widths, repeatRows=1)
    t.setStyle(TableStyle([
        ("BACKGROUND", (0, 0), (-1, 0), GREY_LIGHT),
        ("FONTNAME", (0, 0), (-1, 0), "Helvetica-Bold"),
        ("GRID", (0, 0), (-1, -1), 0.5, black),
        ("VALIGN", (0, 0), (-1, -1), "TOP"),
        ("TOPPADDING", (0, 0), (-1, -1), 4),
        ("BOTTOMPADDING", (0, 0), (-1, -1), 4),
    ]))
    return t


def _build_emotion_table(stats: ReportStats, styles: dict) -> list:
    heading = Paragraph("Emotion Breakdown", styles["Heading2"])
    if not stats.emotion_breakdown:
        return [heading, _p("No emotion markers yet.", styles["Normal"])]

    data = [["Emotion", "Markers", "Share"]] + [
        [row.emotion, str(row.count), f"{row.percentage}%"]
        for row in stats.emotion_breakdown
    ]
    table = _header_table(data, [80 * mm, 40 * mm, 40 * mm])
    band = _p(
        f"Overall sentiment: {stats.sentiment} ({stats.positive_ratio:.0f}% positive)",
        styles["Normal"],
    )
    return [KeepTogether([heading, Spacer(1, 2 * mm), table, Spacer(1, 2 * mm), band])]


def _build_sdt_table(report: AnalysisReport, styles: dict) -> list:
    cell = styles["BodyText"]
    sdt = report.sdt_scores
    data = [["Need", "Score", "Justification"]] + [
        [name, f"{score.score:.0f}/10", _p(score.justification, cell)]
        for name, score in (
            ("Autonomy", sdt.autonomy),
            ("Competence", sdt.competence),
            ("Relatedness", sdt.relatedness),
        )
    ]
    table = _header_table(data, [35 * mm, 20 * mm, 115 * mm])
    return [KeepTogether([Paragraph("Self-Determination Scores", styles["Heading2"]),
                          Spacer(1, 2 * mm), table])]


def _build_findings(report: AnalysisReport, styles: dict) -> list:
    if not report.key_findings:
        return []
    cell = styles["BodyText"]
    data = [["Finding", "Detail"]] + [
        [_p(f.title, cell), _p(f.description, cell)] for f in report.key_findings
    ]
    table = _header_table(data, [55 * mm, 115 * mm])
    for row, finding in enumerate(report.key_findings, start=1):
        table.setStyle(TableStyle([
            ("BACKGROUND", (0, row), (0, row), _VALENCE_BACKGROUND[finding.type]),
        ]))
    return [Paragraph("Key Findings", styles["Heading2"]), Spacer(1, 2 * mm), table]


def _build_recommendations(report: AnalysisReport, styles: dict) -> list:
    flowables = []
    if report.suggestions:
        flowables.append(Paragraph("Suggestions", styles["Heading2"]))
        for suggestion in report.suggestions:
            flowables.append(_p(f"• {suggestion}", styles["Normal"]))

    recs = report.recommendations
    if recs is None:
        return flowables

    for title, items in (("Design", recs.design), ("Copy", recs.copywriting), ("UX", recs.ux)):
        if not items:
            continue
        flowables.append(Paragraph(f"{title} Recommendations", styles["Heading3"]))
        for item in items:
            line = f"[{item.priority.upper()}] {item.recommendation}"
            if item.rationale:
                line += f" — {item.rationale}"
            flowables.append(_p(line, styles["Normal"]))
    return flowables


def _build_personas(report: AnalysisReport, styles: dict) -> list:
    if not report.personas:
        return []
    flowables = [Paragraph("Personas", styles["Heading2"])]
    for persona in report.personas:
        block = [
            Paragraph(f"<b>{escape(persona.name)}</b> — {escape(persona.role)}", styles["Normal"]),
            _p(persona.bio, styles["Normal"]),
        ]
        if persona.quote:
            block.append(_p(f'"{persona.quote}"', styles["Italic"]))
        block.append(Spacer(1, 3 * mm))
        flowables.append(KeepTogether(block))
    return flowables


def _build_session_table(stats: ReportStats, styles: dict) -> list:
    if not stats.sessions:
        return []
    cell = styles["BodyText"]
    data = [["Participant", "Markers", "Positive", "Negative"]] + [
        [_p(s.participant_name, cell), str(s.total), str(s.positive), str(s.negative)]
        for s in stats.sessions
    ]
    table = _header_table(data, [80 * mm, 30 * mm, 30 * mm, 30 * mm])
    return [Paragraph("Participants", styles["Heading2"]), Spacer(1, 2 * mm), table]


# ---------------------------------------------------------------------------
# Public entry point
# ---------------------------------------------------------------------------

def generate_project_report(
    project: Project,
    sessions: Sequence[TestSession],
    stats: ReportStats,
    markers: Optional[Sequence[Marker]] = None,
) -> BytesIO:
    """
    Generate the complete LEMtool PDF report for a project.

    Args:
        project: the Project (report, AI markers, screenshot).
        sessions: its TestSessions, oldest first.
        stats: ReportStats from build_report_stats().
        markers: markers to draw on the screenshot. Defaults to every AI
            and human marker of the project.

    Returns:
        BytesIO buffer at position 0, ready for StreamingResponse.
    """
    if markers is None:
        markers = aggregate_markers(project.markers, sessions)

    buffer = BytesIO()
    doc = SimpleDocTemplate(
        buffer,
        pagesize=A4,
        leftMargin=20 * mm,
        rightMargin=20 * mm,
        topMargin=20 * mm,
        bottomMargin=20 * mm,
        title=f"LEM Report — {project.url}",
    )

    styles = getSampleStyleSheet()
    report = project.report
    story = []

    # -----------------------------------------------------------------------
    # 1. Header block
    # -----------------------------------------------------------------------

    title_style = ParagraphStyle(
        "report_title",
        parent=styles["Heading1"],
        fontSize=18,
        fontName="Helvetica-Bold",
    )
    story.append(Paragraph("LEMtool — UX Emotion Report", title_style))
    story.append(Spacer(1, 2 * mm))
    story.append(_p(f"Website: {project.url}", styles["Normal"]))
    story.append(
        _p(f"Report generated: {datetime.date.today().strftime('%d %B %Y')}", styles["Normal"])
    )
    if project.demo_mode:
        story.append(_p("Demo mode: this project uses preview analysis data.", styles["Normal"]))
    story.append(Spacer(1, 6 * mm))

    # -----------------------------------------------------------------------
    # 2. Score callout + summary
    # -----------------------------------------------------------------------

    callout_style = ParagraphStyle(
        "callout",
        parent=styles["Normal"],
        fontSize=14,
        fontName="Helvetica-Bold",
    )
    callout_table = Table(
        [[Paragraph(f"Overall score: {report.overall_score:.0f} / 100", callout_style)]],
        colWidths=[170 * mm],
    )
    callout_table.setStyle(
        TableStyle([
            ("BACKGROUND", (0, 0), (-1, -1), GREEN_LIGHT),
            ("BOX", (0, 0), (-1, -1), 1, black),
            ("TOPPADDING", (0, 0), (-1, -1), 10),
            ("BOTTOMPADDING", (0, 0), (-1, -1), 10),
            ("LEFTPADDING", (0, 0), (-1, -1), 12),
        ])
    )
    story.append(callout_table)
    story.append(Spacer(1, 4 * mm))
    story.append(_p(report.summary, styles["Normal"]))
    story.append(_p(f"Target audience: {report.target_audience}", styles["Normal"]))
    story.append(Spacer(1, 6 * mm))

    # -----------------------------------------------------------------------
    # 3. Totals
    # -----------------------------------------------------------------------

    story.append(
        _p(
            f"Participants: {stats.participants}  ·  Markers: {stats.total_markers} "
            f"({stats.ai_markers} AI, {stats.human_markers} human)",
            styles["Normal"],
        )
    )
    story.append(Spacer(1, 6 * mm))

    # -----------------------------------------------------------------------
    # 4–7. Analysis sections
    # -----------------------------------------------------------------------

    for section in (
        _build_emotion_table(stats, styles),
        _build_sdt_table(report, styles),
        _build_findings(report, styles),
        _build_recommendations(report, styles),
        _build_personas(report, styles),
        _build_session_table(stats, styles),
    ):
        if section:
            story.extend(section)
            story.append(Spacer(1, 6 * mm))

    # -----------------------------------------------------------------------
    # 8. Annotated screenshot
    # -----------------------------------------------------------------------

    png = decode_screenshot(project.screenshot)
    if png is not None:
        image = annotate_screenshot(png, markers)
        story.append(PageBreak())
        story.extend(_screenshot_pages(image, doc.width, doc.height))

    # -----------------------------------------------------------------------
    # Build document — CRITICAL: buffer.seek(0) after build
    # -----------------------------------------------------------------------

    doc.build(story)
    buffer.seek(0)

    logger.info(
        "PDF report generated project_id=%s markers=%d sessions=%d",
        project.id,
        len(markers),
        len(sessions),
    )

    return buffer
