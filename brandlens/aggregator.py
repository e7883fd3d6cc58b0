"""Pools observations from many documents into weighted frequency tables."""

import logging
from functools import reduce
from typing import Iterable, Optional

from .color_utils import is_near_white_or_black
from .models import (
    AggregatedSignal, AnalysisConfig, DocumentKind, DocumentObservation,
    ExtractedAssets, Provenance
)

logger = logging.getLogger(__name__)

CONTENT_LOCATIONS = {
    DocumentKind.PRESENTATION: "slides",
    DocumentKind.PDF: "pages",
    DocumentKind.IMAGE: "image",
}


def _add_color(signal: AggregatedSignal, hex_color: str, weight: int, provenance: Provenance) -> None:
    if is_near_white_or_black(hex_color):
        return
    signal.color_frequency[hex_color] = signal.color_frequency.get(hex_color, 0) + weight
    signal.color_sources.setdefault(hex_color, []).append(provenance)


def signal_from_observation(
    observation: DocumentObservation,
    config: Optional[AnalysisConfig] = None
) -> AggregatedSignal:
    """
    Build the partial aggregate contributed by a single document.

    Theme colors weigh ``theme_color_weight`` per declaration, content colors
    weigh their frequency, and logo colors weigh ``logo_color_weight`` each.
    """
    config = config or AnalysisConfig()
    source = observation.source
    signal = AggregatedSignal()

    for theme_color in observation.theme_colors:
        _add_color(
            signal, theme_color.hex, config.theme_color_weight,
            Provenance(file=source, location="theme", role=theme_color.role.value),
        )

    location = CONTENT_LOCATIONS[observation.kind]
    for hex_color, usage in observation.slide_color_usage.items():
        _add_color(
            signal, hex_color, usage.frequency,
            Provenance(file=source, location=location, contexts=list(usage.contexts)),
        )

    for color in observation.logo_colors:
        _add_color(signal, color.hex, config.logo_color_weight, Provenance(file=source, location="logo"))

    fonts = observation.theme_fonts
    if fonts is not None:
        for role, font in (("major", fonts.major), ("minor", fonts.minor)):
            if font:
                signal.font_usage[role][font] = 1
                signal.font_sources[role][font] = [source]

    for sample in observation.coordinate_samples:
        signal.coordinate_frequency[sample] = signal.coordinate_frequency.get(sample, 0) + 1
    if observation.coordinate_samples:
        signal.coordinate_sources.append(source)

    if observation.kind == DocumentKind.PRESENTATION:
        signal.presentation_count = 1
        if observation.typography_flags.uses_uppercase:
            signal.uppercase_sources.append(source)

    for asset in observation.media_assets:
        if asset.is_logo:
            signal.logos.append(asset)
        else:
            signal.images.append(asset)

    return signal


def aggregate(
    observations: Iterable[DocumentObservation],
    config: Optional[AnalysisConfig] = None
) -> AggregatedSignal:
    """
    Fold observations into one AggregatedSignal.

    Each observation is turned into a partial aggregate and the partials are
    merged left to right, so the result depends only on the input order.
    """
    partials = [signal_from_observation(observation, config) for observation in observations]
    signal = reduce(AggregatedSignal.merge, partials, AggregatedSignal())

    logger.info(
        f"Aggregated {len(partials)} documents: {len(signal.color_frequency)} colors, "
        f"{len(signal.font_usage['major'])} heading fonts, {len(signal.font_usage['minor'])} body fonts, "
        f"{signal.coordinate_total} coordinate samples"
    )
    return signal


def collect_assets(signal: AggregatedSignal) -> ExtractedAssets:
    """Extracted logos (most confident first) and other images of a run."""
    logos = sorted(signal.logos, key=lambda asset: -asset.logo_confidence)
    return ExtractedAssets(logos=logos, images=list(signal.images))
