"""
Unit tests for the marker data contract, aggregation and classification.

Run with: pytest lemtool/tests/test_markers.py -v
"""
import pytest
from pydantic import ValidationError

from lemtool.markers.aggregator import aggregate_markers
from lemtool.markers.classifier import (
    BLUE,
    DEFAULT_ICON,
    GREEN,
    PINK,
    RED,
    MarkerView,
    ShapeMode,
    SourceFilter,
    classify_markers,
    count_by_layer,
    encode_marker,
    filter_markers,
)
from lemtool.markers.schemas import (
    EmotionCategory,
    EmotionPayload,
    EmotionType,
    Layer,
    Marker,
    MarkerSource,
    NeedPayload,
    StrategyPayload,
    emotion_category,
)
from lemtool.tests.sample_data import (
    SCENARIO_SESSION_ID,
    marker,
    scenario_project,
    scenario_session,
)


# ===========================================================================
# TEST GROUP 1: Marker wire format
# ===========================================================================

class TestMarkerSchema:

    def test_flat_emotion_marker_parses_into_payload(self):
        m = Marker.model_validate({"x": 40, "y": 12.5, "layer": "emotions", "emotion": "Joy"})
        assert isinstance(m.payload, EmotionPayload)
        assert m.layer is Layer.emotions
        assert m.emotion == EmotionType.JOY
        assert m.need is None
        assert m.brief_type is None

    def test_need_marker_drops_foreign_fields(self):
        m = Marker.model_validate({"x": 1, "y": 2, "layer": "needs", "need": "Autonomy", "emotion": "Joy"})
        assert isinstance(m.payload, NeedPayload)
        assert m.need == "Autonomy"
        assert m.emotion is None

    def test_strategy_marker(self):
        m = Marker.model_validate({"x": 1, "y": 2, "layer": "strategy", "brief_type": "Pain Point"})
        assert isinstance(m.payload, StrategyPayload)
        assert m.brief_type == "Pain Point"

    def test_missing_layer_defaults_to_emotions(self):
        m = Marker.model_validate({"x": 10, "y": 10})
        assert m.layer is Layer.emotions
        assert m.emotion is None
        assert m.source is MarkerSource.ai

    def test_unknown_emotion_is_kept_without_category(self):
        m = Marker.model_validate({"x": 10, "y": 10, "emotion": "Euphoria"})
        assert m.emotion == "Euphoria"
        assert m.category is None

    def test_serialization_is_flat(self):
        m = marker("Sadness", x=70, y=40)
        data = m.model_dump(mode="json")
        assert "payload" not in data
        assert data["layer"] == "emotions"
        assert data["emotion"] == "Sadness"
        assert data["x"] == 70

    def test_stored_shape_reloads_identically(self):
        m = marker(layer="needs", need="Relatedness", x=33, y=44, comment="team photo")
        reloaded = Marker.model_validate(m.model_dump(mode="json"))
        assert reloaded == m

    def test_camel_case_fields_accepted(self):
        m = Marker.model_validate({"x": 5, "y": 5, "isArea": True, "width": 10, "height": 4, "sessionId": "s1"})
        assert m.is_area is True
        assert m.session_id == "s1"
        assert m.has_area is True

    def test_area_without_height_has_no_area(self):
        m = Marker.model_validate({"x": 5, "y": 5, "is_area": True, "width": 10})
        assert m.has_area is False

    def test_missing_coordinates_rejected(self):
        with pytest.raises(ValidationError):
            Marker.model_validate({"layer": "emotions", "emotion": "Joy"})

    @pytest.mark.parametrize("value,expected", [
        ("Joy", EmotionCategory.positive),
        ("Satisfaction", EmotionCategory.positive),
        ("Neutral", EmotionCategory.neutral),
        ("Boredom", EmotionCategory.negative),
        ("Interest", None),
        (None, None),
    ])
    def test_emotion_category_table(self, value, expected):
        assert emotion_category(value) == expected


# ===========================================================================
# TEST GROUP 2: Aggregation of AI and human markers
# ===========================================================================

class TestAggregator:

    def test_scenario_combines_ai_then_human(self):
        project = scenario_project()
        combined = aggregate_markers(project.markers, [scenario_session()])

        assert [m.emotion for m in combined] == ["Joy", "Sadness", "Desire"]
        assert [m.source for m in combined] == [MarkerSource.ai, MarkerSource.ai, MarkerSource.human]
        assert combined[2].session_id == SCENARIO_SESSION_ID
        assert combined[0].session_id is None

    def test_no_sessions_returns_project_markers(self):
        project = scenario_project()
        combined = aggregate_markers(project.markers, [])
        assert len(combined) == 2
        assert all(m.source is MarkerSource.ai for m in combined)

    def test_show_flags_drop_whole_categories(self):
        project = scenario_project()
        sessions = [scenario_session()]
        assert len(aggregate_markers(project.markers, sessions, show_ai=False)) == 1
        assert len(aggregate_markers(project.markers, sessions, show_human=False)) == 2
        assert aggregate_markers(project.markers, sessions, show_ai=False, show_human=False) == []

    def test_session_markers_are_stamped_with_session_id(self):
        session = scenario_session()
        session.markers = [marker("Joy", source="HUMAN", session_id=None)]
        combined = aggregate_markers([], [session])
        assert combined[0].session_id == session.id

    def test_stored_objects_are_not_modified(self):
        project = scenario_project()
        session = scenario_session()
        session.markers = [marker("Joy", source="HUMAN")]
        aggregate_markers(project.markers, [session])
        assert session.markers[0].session_id is None


# ===========================================================================
# TEST GROUP 3: Filtering and visual encoding
# ===========================================================================

@pytest.fixture
def mixed_markers():
    return [
        marker("Joy", x=10, y=10),                                               # AI emotion point
        marker(layer="needs", need="Competence", x=20, y=20),                    # AI need point
        marker(layer="strategy", brief_type="Opportunity", x=30, y=30,
               is_area=True, width=10, height=5),                                 # AI strategy area
        marker("Sadness", x=40, y=40, source="HUMAN", session_id="s-1"),         # human emotion
        marker("Desire", x=50, y=50, source="HUMAN", session_id="s-2",
               is_area=True, width=8),                                           # malformed area
    ]


class TestClassifier:

    def test_empty_view_keeps_everything(self, mixed_markers):
        assert len(filter_markers(mixed_markers, MarkerView())) == 5

    def test_layer_filter(self, mixed_markers):
        result = filter_markers(mixed_markers, MarkerView(layer=Layer.emotions))
        assert [m.emotion for m in result] == ["Joy", "Sadness", "Desire"]

    def test_points_mode_excludes_all_areas(self, mixed_markers):
        result = filter_markers(mixed_markers, MarkerView(shape=ShapeMode.points))
        assert len(result) == 3
        assert not any(m.is_area for m in result)

    def test_areas_mode_requires_width_and_height(self, mixed_markers):
        result = filter_markers(mixed_markers, MarkerView(shape=ShapeMode.areas))
        assert len(result) == 1
        assert result[0].brief_type == "Opportunity"

    def test_source_filter(self, mixed_markers):
        human = filter_markers(mixed_markers, MarkerView(source=SourceFilter.human))
        ai = filter_markers(mixed_markers, MarkerView(source=SourceFilter.ai))
        assert len(human) == 2
        assert len(ai) == 3

    def test_participant_filter_by_session(self, mixed_markers):
        result = filter_markers(mixed_markers, MarkerView(participant="s-1"))
        assert [m.emotion for m in result] == ["Sadness"]

    def test_participant_ai_only(self, mixed_markers):
        result = filter_markers(mixed_markers, MarkerView(participant="ai"))
        assert all(m.source is MarkerSource.ai for m in result)
        assert len(result) == 3

    def test_filters_compose_with_and(self, mixed_markers):
        view = MarkerView(layer=Layer.emotions, source=SourceFilter.human, shape=ShapeMode.points)
        result = filter_markers(mixed_markers, view)
        assert [m.emotion for m in result] == ["Sadness"]

    @pytest.mark.parametrize("layer", list(Layer))
    def test_points_view_is_layer_view_without_areas(self, layer):
        markers = [
            marker("Joy", x=10, y=10),
            marker("Sadness", x=12, y=12, source="HUMAN", session_id="s-1", is_area=True, width=5, height=5),
            marker("Desire", x=14, y=14, source="HUMAN", session_id="s-2", is_area=True, width=8),
            marker(layer="needs", need="Autonomy", x=20, y=20),
            marker(layer="needs", need="Relatedness", x=22, y=22, is_area=True, width=4, height=4),
            marker(layer="strategy", brief_type="Insight", x=30, y=30, source="HUMAN", session_id="s-1"),
            marker(layer="strategy", brief_type="Pain Point", x=32, y=32, is_area=True, height=6),
        ]
        points = filter_markers(
            markers, MarkerView(layer=layer, shape=ShapeMode.points, source=SourceFilter.all)
        )
        by_layer = filter_markers(markers, MarkerView(layer=layer))

        assert points == [m for m in by_layer if not m.is_area]
        assert len(points) == 1

    def test_unknown_session_yields_nothing(self, mixed_markers):
        assert filter_markers(mixed_markers, MarkerView(participant="missing")) == []

    @pytest.mark.parametrize("m,color", [
        (marker("Joy"), GREEN),
        (marker("Disgust"), RED),
        (marker("Neutral"), BLUE),
        (marker(layer="needs", need="Autonomy"), BLUE),
        (marker(layer="needs", need="Competence"), GREEN),
        (marker(layer="needs", need="Relatedness"), PINK),
        (marker(layer="strategy", brief_type="Opportunity"), GREEN),
        (marker(layer="strategy", brief_type="Pain Point"), RED),
        (marker(layer="strategy", brief_type="Insight"), BLUE),
    ])
    def test_colour_encoding(self, m, color):
        assert encode_marker(m)[0] == color

    def test_malformed_markers_use_neutral_encoding(self):
        emotion_less = marker(layer="emotions")
        need_less = marker(layer="needs")
        unknown = marker("Euphoria")
        assert encode_marker(emotion_less) == (BLUE, DEFAULT_ICON)
        assert encode_marker(need_less) == (BLUE, "brain")
        assert encode_marker(unknown) == (BLUE, DEFAULT_ICON)

    def test_malformed_markers_still_pass_layer_filter(self):
        markers = [marker(layer="needs"), marker(layer="needs", need="Autonomy")]
        classified = classify_markers(markers, MarkerView(layer=Layer.needs))
        assert len(classified) == 2

    def test_classified_marker_carries_category(self):
        classified = classify_markers([marker("Joy"), marker(layer="needs", need="Autonomy")], MarkerView())
        assert classified[0].category is EmotionCategory.positive
        assert classified[1].category is None

    def test_layer_counts_include_empty_layers(self):
        counts = count_by_layer([marker("Joy"), marker("Sadness")])
        assert counts == {"emotions": 2, "needs": 0, "strategy": 0}
