"""
Unit tests for report statistics, screenshot pagination and the PDF export.

Run with: pytest lemtool/tests/test_report.py -v
"""
import datetime

import pytest
from PIL import Image
from reportlab.lib.pagesizes import A4
from reportlab.lib.units import inch
from reportlab.platypus import Image as RLImage
from reportlab.platypus import PageBreak

from lemtool.markers.aggregator import aggregate_markers
from lemtool.report.aggregation import (
    build_report_stats,
    emotion_distribution,
    positive_ratio,
    sentiment_band,
    session_breakdown,
)
from lemtool.report.pagination import page_count, paginate, scaled_height
from lemtool.report.pdf_generator import (
    _screenshot_pages,
    annotate_screenshot,
    decode_screenshot,
    generate_project_report,
)
from lemtool.report.routes import export_filename
from lemtool.tests.sample_data import (
    marker,
    png_base64,
    png_bytes,
    scenario_project,
    scenario_session,
)


# ===========================================================================
# TEST GROUP 1: Reference scenario (2 AI + 1 human marker)
# ===========================================================================

class TestScenario:

    def setup_method(self):
        self.project = scenario_project()
        self.sessions = [scenario_session()]
        self.markers = aggregate_markers(self.project.markers, self.sessions)
        self.stats = build_report_stats(self.markers, self.sessions)

    def test_totals(self):
        assert self.stats.total_markers == 3
        assert self.stats.ai_markers == 2
        assert self.stats.human_markers == 1
        assert self.stats.participants == 1

    def test_breakdown_is_a_third_each_in_first_seen_order(self):
        rows = [(r.emotion, r.count, r.percentage) for r in self.stats.emotion_breakdown]
        assert rows == [("Joy", 1, 33), ("Sadness", 1, 33), ("Desire", 1, 33)]

    def test_positive_ratio_and_band(self):
        assert self.stats.positive_ratio == 66.7
        assert self.stats.sentiment == "overwhelmingly positive"

    def test_session_rows(self):
        assert len(self.stats.sessions) == 1
        row = self.stats.sessions[0]
        assert row.participant_name == "Participant A"
        assert (row.total, row.positive, row.negative) == (1, 1, 0)


# ===========================================================================
# TEST GROUP 2: Emotion distribution
# ===========================================================================

class TestEmotionDistribution:

    def test_sorted_by_count_descending(self):
        markers = [marker("Sadness"), marker("Joy"), marker("Joy"), marker("Joy"), marker("Sadness")]
        rows = emotion_distribution(markers)
        assert [(r.emotion, r.count, r.percentage) for r in rows] == [("Joy", 3, 60), ("Sadness", 2, 40)]

    def test_markers_without_emotion_are_ignored(self):
        markers = [marker("Joy"), marker(layer="needs", need="Autonomy"), marker(layer="emotions")]
        rows = emotion_distribution(markers)
        assert len(rows) == 1
        assert rows[0].percentage == 100

    def test_percentages_round_half_up(self):
        # 1 of 8 = 12.5% → 13
        markers = [marker("Joy")] + [marker("Sadness")] * 7
        rows = emotion_distribution(markers)
        assert rows[-1].emotion == "Joy"
        assert rows[-1].percentage == 13

    def test_top_n_truncation_does_not_renormalise(self):
        emotions = ["Joy", "Desire", "Fascination", "Satisfaction", "Neutral", "Sadness"]
        markers = [marker(e) for e in emotions]
        rows = emotion_distribution(markers, top_n=5)
        assert len(rows) == 5
        assert sum(r.percentage for r in rows) < 100
        assert "Sadness" not in [r.emotion for r in rows]

    def test_no_emotions_yields_empty_list(self):
        assert emotion_distribution([]) == []
        assert emotion_distribution([marker(layer="needs", need="Autonomy")]) == []


# ===========================================================================
# TEST GROUP 3: Sentiment bands
# ===========================================================================

class TestSentiment:

    @pytest.mark.parametrize("ratio,band", [
        (100.0, "overwhelmingly positive"),
        (60.0, "overwhelmingly positive"),
        (59.999, "mixed"),
        (40.0, "mixed"),
        (39.9, "concerns expressed"),
        (0.0, "concerns expressed"),
        (None, "no data"),
    ])
    def test_band_boundaries(self, ratio, band):
        assert sentiment_band(ratio) == band

    def test_ratio_counts_only_categorised_emotions(self):
        markers = [marker("Joy"), marker("Neutral"), marker("Euphoria"), marker(layer="needs", need="Autonomy")]
        assert positive_ratio(markers) == 50.0

    def test_ratio_none_without_categorised_emotions(self):
        assert positive_ratio([marker("Euphoria")]) is None

    def test_empty_stats(self):
        stats = build_report_stats([], [])
        assert stats.total_markers == 0
        assert stats.emotion_breakdown == []
        assert stats.positive_ratio == 0.0
        assert stats.sentiment == "no data"

    def test_session_breakdown_empty(self):
        assert session_breakdown([]) == []


# ===========================================================================
# TEST GROUP 4: Pagination
# ===========================================================================

class TestPagination:

    def test_exact_multiple(self):
        pages = paginate(3000, 1000)
        assert len(pages) == 3
        assert (pages[2].top, pages[2].bottom) == (2000, 3000)

    def test_partial_last_page_shows_the_tail(self):
        pages = paginate(2500, 1000)
        assert len(pages) == 3
        assert (pages[2].top, pages[2].bottom) == (2000, 2500)
        assert pages[2].height == 500

    def test_pages_tile_without_gap_or_overlap(self):
        pages = paginate(4321.5, 700)
        assert pages[0].top == 0
        for previous, current in zip(pages, pages[1:]):
            assert current.top == previous.bottom
        assert pages[-1].bottom == 4321.5

    def test_short_image_is_one_page(self):
        pages = paginate(300, 1000)
        assert len(pages) == 1
        assert pages[0].bottom == 300

    def test_remainder_within_margin_is_dropped(self):
        assert page_count(2050, 1000, margin=60) == 2
        assert page_count(2050, 1000) == 3

    def test_subpixel_remainder_does_not_add_a_page(self):
        assert page_count(3000.0000001, 1000) == 3

    def test_empty_image_has_no_pages(self):
        assert paginate(0, 1000) == []

    def test_invalid_page_height(self):
        with pytest.raises(ValueError):
            page_count(1000, 0)

    def test_scaled_height(self):
        assert scaled_height(1200, 3600, 400) == 1200


# ===========================================================================
# TEST GROUP 5: PDF export
# ===========================================================================

class TestPdfExport:

    def test_pdf_without_screenshot(self):
        project = scenario_project()
        sessions = [scenario_session()]
        stats = build_report_stats(aggregate_markers(project.markers, sessions), sessions)

        buffer = generate_project_report(project, sessions, stats)

        assert buffer.tell() == 0
        assert buffer.read(4) == b"%PDF"

    def test_pdf_with_tall_screenshot(self):
        project = scenario_project(screenshot=png_base64(800, 4000))
        stats = build_report_stats(project.markers, [])

        pdf = generate_project_report(project, [], stats).getvalue()

        assert pdf.startswith(b"%PDF")

    def test_screenshot_split_into_page_images(self):
        # Frame sized so the usable area is exactly 1000 x 1000 at scale 1
        image = Image.new("RGB", (1000, 2500), "white")
        flowables = _screenshot_pages(image, frame_width=1013, frame_height=1013)

        images = [f for f in flowables if isinstance(f, RLImage)]
        breaks = [f for f in flowables if isinstance(f, PageBreak)]
        assert len(images) == 3
        assert len(breaks) == 2
        assert images[-1].drawHeight == 500

    def test_screenshot_pages_tile_without_overlap(self, monkeypatch):
        boxes = []
        original_crop = Image.Image.crop

        def recording_crop(self, box=None):
            boxes.append(box)
            return original_crop(self, box)

        monkeypatch.setattr(Image.Image, "crop", recording_crop)

        # A4 with 1 inch margins gives a fractional page height in pixels
        image = Image.new("RGB", (1000, 4000), "white")
        _screenshot_pages(image, frame_width=A4[0] - 2 * inch, frame_height=A4[1] - 2 * inch)

        assert len(boxes) > 1
        assert boxes[0][1] == 0
        assert boxes[-1][3] == image.height
        for previous, current in zip(boxes, boxes[1:]):
            assert current[1] == previous[3]
        assert sum(bottom - top for _, top, _, bottom in boxes) == image.height

    def test_pdf_with_empty_stats(self):
        project = scenario_project()
        project.markers = []
        stats = build_report_stats([], [])
        assert generate_project_report(project, [], stats).read(4) == b"%PDF"

    def test_decode_screenshot_accepts_data_uri(self):
        raw = png_bytes(10, 10)
        encoded = png_base64(10, 10)
        assert decode_screenshot(encoded) == raw
        assert decode_screenshot(f"data:image/png;base64,{encoded}") == raw

    def test_decode_screenshot_rejects_garbage(self):
        assert decode_screenshot(None) is None
        assert decode_screenshot("not base64 !!") is None

    def test_annotation_draws_marker_colours(self):
        png = png_bytes(200, 200)
        image = annotate_screenshot(png, [marker("Joy", x=50, y=50)])
        assert isinstance(image, Image.Image)
        assert image.getpixel((100, 100)) == (16, 185, 129)     # GREEN #10B981

    def test_export_filename(self):
        name = export_filename("https://www.example.com/pricing?x=1", today=datetime.date(2026, 3, 14))
        assert name == "LEM-Report-www.example.com-2026-03-14.pdf"
