"""Tests for signal aggregation."""

from brandlens.aggregator import aggregate, collect_assets, signal_from_observation
from brandlens.models import (
    AnalysisConfig, ColorCount, ColorRole, ColorUsage, DocumentKind, DocumentObservation,
    MediaAsset, ThemeColor, ThemeFonts, TypographyFlags
)


def deck(source: str, **fields) -> DocumentObservation:
    return DocumentObservation(source=source, kind=DocumentKind.PRESENTATION, slide_count=1, **fields)


class TestSignalFromObservation:
    """Tests for the per-document partial aggregate."""

    def test_color_weights(self):
        observation = deck(
            "a.pptx",
            theme_colors=[
                ThemeColor(slot_name="accent1", role=ColorRole.ACCENT, hex="#ff0000"),
                ThemeColor(slot_name="dk1", role=ColorRole.DARK, hex="#000000"),
            ],
            slide_color_usage={
                "#ff0000": ColorUsage(frequency=3, contexts=["background"]),
                "#00ff00": ColorUsage(frequency=1, contexts=["text"]),
            },
        )

        signal = signal_from_observation(observation)

        assert signal.color_frequency == {"#ff0000": 13, "#00ff00": 1}
        assert "#000000" not in signal.color_sources
        red_sources = signal.color_sources["#ff0000"]
        assert [(s.location, s.role) for s in red_sources] == [("theme", "accent"), ("slides", None)]
        assert red_sources[1].contexts == ["background"]

    def test_configured_theme_weight(self):
        observation = deck("a.pptx", theme_colors=[
            ThemeColor(slot_name="accent1", role=ColorRole.ACCENT, hex="#ff0000"),
        ])

        signal = signal_from_observation(observation, AnalysisConfig(theme_color_weight=3))

        assert signal.color_frequency == {"#ff0000": 3}

    def test_logo_colors_weigh_five_each(self):
        observation = DocumentObservation(
            source="logo.png",
            kind=DocumentKind.IMAGE,
            logo_colors=[ColorCount(hex="#1a73e8", count=900), ColorCount(hex="#fbbc05", count=20)],
        )

        signal = signal_from_observation(observation)

        assert signal.color_frequency == {"#1a73e8": 5, "#fbbc05": 5}
        assert signal.color_sources["#1a73e8"][0].location == "logo"
        assert signal.presentation_count == 0

    def test_fonts_vote_once_per_document(self):
        observation = deck("a.pptx", theme_fonts=ThemeFonts(major="Montserrat", minor="Montserrat"))

        signal = signal_from_observation(observation)

        assert signal.font_usage == {"major": {"Montserrat": 1}, "minor": {"Montserrat": 1}}
        assert signal.font_sources["major"]["Montserrat"] == ["a.pptx"]

    def test_typography_flags_and_media(self):
        observation = deck(
            "a.pptx",
            typography_flags=TypographyFlags(uses_bold=True, uses_uppercase=True),
            media_assets=[
                MediaAsset(filename="logo.png", is_logo=True, logo_confidence=0.9),
                MediaAsset(filename="photo.jpg", is_logo=False, logo_confidence=0.3),
            ],
        )

        signal = signal_from_observation(observation)

        assert signal.presentation_count == 1
        assert signal.uppercase_sources == ["a.pptx"]
        assert "bold_sources" not in signal.model_dump()
        assert [a.filename for a in signal.logos] == ["logo.png"]
        assert [a.filename for a in signal.images] == ["photo.jpg"]


class TestAggregate:
    """Tests for aggregate."""

    def test_pools_across_documents(self):
        observations = [
            deck("a.pptx", theme_fonts=ThemeFonts(major="Montserrat"), coordinate_samples=[8, 16]),
            deck("b.pptx", theme_fonts=ThemeFonts(major="Montserrat"), coordinate_samples=[8, 24]),
            deck("c.pptx", theme_fonts=ThemeFonts(major="Arial")),
        ]

        signal = aggregate(observations)

        assert signal.font_usage["major"] == {"Montserrat": 2, "Arial": 1}
        assert signal.coordinate_frequency == {8: 2, 16: 1, 24: 1}
        assert signal.coordinate_sources == ["a.pptx", "b.pptx"]
        assert signal.presentation_count == 3

    def test_empty_input(self):
        signal = aggregate([])

        assert signal.color_frequency == {}
        assert signal.coordinate_total == 0

    def test_merge_is_associative(self):
        observations = [
            deck("a.pptx", slide_color_usage={"#ff0000": ColorUsage(frequency=2)}, coordinate_samples=[8]),
            deck("b.pptx", slide_color_usage={"#00ff00": ColorUsage(frequency=1)}, coordinate_samples=[16]),
            deck("c.pptx", slide_color_usage={"#ff0000": ColorUsage(frequency=4)}, coordinate_samples=[8]),
        ]
        a, b, c = (signal_from_observation(o) for o in observations)

        left = a.merge(b).merge(c)
        right = a.merge(b.merge(c))

        assert left.model_dump() == right.model_dump()
        assert left.model_dump() == aggregate(observations).model_dump()
        assert left.color_frequency == {"#ff0000": 6, "#00ff00": 1}

    def test_extremes_never_reach_frequency_table(self):
        observations = [
            deck("a.pptx", theme_colors=[
                ThemeColor(slot_name="lt1", role=ColorRole.LIGHT, hex="#ffffff"),
                ThemeColor(slot_name="lt2", role=ColorRole.LIGHT, hex="#f2f2f2"),
            ]),
            DocumentObservation(
                source="logo.svg", kind=DocumentKind.IMAGE,
                logo_colors=[ColorCount(hex="#050505", count=3)],
            ),
        ]

        assert aggregate(observations).color_frequency == {}


class TestCollectAssets:
    """Tests for collect_assets."""

    def test_logos_sorted_by_confidence(self):
        observations = [
            deck("a.pptx", media_assets=[MediaAsset(filename="icon.png", is_logo=True, logo_confidence=0.6)]),
            deck("b.pptx", media_assets=[
                MediaAsset(filename="logo.png", is_logo=True, logo_confidence=1.0),
                MediaAsset(filename="photo.jpg", logo_confidence=0.3),
            ]),
        ]

        assets = collect_assets(aggregate(observations))

        assert [a.filename for a in assets.logos] == ["logo.png", "icon.png"]
        assert [a.filename for a in assets.images] == ["photo.jpg"]
