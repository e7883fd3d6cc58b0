"""Turns aggregated signals into ranked, confidence-scored brand rules."""

import hashlib
import logging
from typing import Dict, List, NamedTuple, Optional, Sequence

from .color_utils import hue_distance
from .models import (
    AggregatedSignal, AnalysisConfig, BrandRule, ColorRuleValue, ComponentRuleValue,
    Provenance, SpacingRuleValue, TypographyRuleValue
)

logger = logging.getLogger(__name__)

SECONDARY_SCALE = 0.9
ACCENT_SCALE = 0.8
LOGO_SCALE = 0.8
MIN_ACCENT_HUE_DISTANCE = 30
ACCENT_CANDIDATE_RANKS = (2, 6)  # 3rd through 6th ranked colors

LAYOUT_ASSET_TYPES = ["website", "presentation", "flyer"]

MESSAGES: Dict[str, Dict[str, str]] = {
    "en": {
        "primary_name": "Primary color",
        "primary_desc": "{color} is used as the main brand color{usage}",
        "secondary_name": "Secondary color",
        "secondary_desc": "{color} is used as the second brand color",
        "accent_name": "Accent color",
        "accent_desc": "{color} is used as accent color for CTAs and highlights",
        "heading_name": "Heading font",
        "heading_desc": "{font} is used for headings",
        "body_name": "Body font",
        "body_desc": "{font} is used for body text",
        "heading_style_name": "Heading style",
        "heading_style_desc": "Headings are set in uppercase",
        "grid_name": "Grid system",
        "grid_desc": "{base}px base grid - all spacing in multiples of {base}",
        "logo_name": "Logo",
        "logo_desc": "{asset} is the most likely logo asset",
    },
    "de": {
        "primary_name": "Primärfarbe",
        "primary_desc": "{color} wird als Hauptfarbe verwendet{usage}",
        "secondary_name": "Sekundärfarbe",
        "secondary_desc": "{color} wird als zweite Markenfarbe verwendet",
        "accent_name": "Akzentfarbe",
        "accent_desc": "{color} wird als Akzentfarbe für CTAs und Highlights verwendet",
        "heading_name": "Headline-Schrift",
        "heading_desc": "{font} wird für Überschriften verwendet",
        "body_name": "Body-Schrift",
        "body_desc": "{font} wird für Fließtext verwendet",
        "heading_style_name": "Headline-Stil",
        "heading_style_desc": "Headlines werden in Großbuchstaben gesetzt",
        "grid_name": "Grid-System",
        "grid_desc": "{base}px Grundraster - alle Abstände als Vielfache von {base}",
        "logo_name": "Logo",
        "logo_desc": "{asset} ist das wahrscheinlichste Logo",
    },
}


class GridDetection(NamedTuple):
    base_unit: int
    tally: int
    total: int

    @property
    def ratio(self) -> float:
        return self.tally / self.total if self.total else 0.0


def color_confidence(frequency: int, source_count: int) -> float:
    """
    Confidence of a color rule.

    Any surviving color starts at 0.4; raw frequency adds up to 0.4 and
    corroboration by independent sources adds up to 0.2.
    """
    frequency_score = min(frequency / 5, 1)
    source_score = min(source_count / 2, 1)
    return round(0.4 + frequency_score * 0.4 + source_score * 0.2, 2)


def font_confidence(count: int) -> float:
    return round(min(0.95, 0.7 + count * 0.1), 2)


def detect_color_usage(sources: Sequence[Provenance]) -> List[str]:
    """Usage tags implied by a color's provenance, in first-seen order."""
    usage: List[str] = []

    def add(tag: str) -> None:
        if tag not in usage:
            usage.append(tag)

    for source in sources:
        if source.role == "accent":
            add("accent")
        for context in source.contexts:
            add(context)
        if source.location == "logo":
            add("logo")
    return usage


def detect_grid(
    coordinate_frequency: Dict[int, int],
    base_units: Sequence[int] = (4, 8, 10, 12, 16)
) -> Optional[GridDetection]:
    """
    Find the grid base unit that divides the most coordinate samples.

    Ties on the tally go to the larger base unit.

    Returns:
        GridDetection, or None if no sample is divisible by any base unit
    """
    total = sum(coordinate_frequency.values())
    if total == 0:
        return None

    tallies = {
        base: sum(count for value, count in coordinate_frequency.items() if value % base == 0)
        for base in base_units
    }
    best = max(tallies, key=lambda base: (tallies[base], base))
    if tallies[best] == 0:
        return None
    return GridDetection(base_unit=best, tally=tallies[best], total=total)


def rule_id(category: str, kind: str) -> str:
    """Deterministic id: one rule per category/kind pair exists in a run."""
    digest = hashlib.sha1(f"{category}:{kind}".encode("utf-8")).hexdigest()
    return f"rule-{digest[:10]}"


class RuleSynthesizer:
    """Derives color, typography, spacing and component rules from an AggregatedSignal."""

    def __init__(self, config: Optional[AnalysisConfig] = None):
        """
        Initialize the rule synthesizer.

        Args:
            config: Analysis configuration (weights, thresholds, locale)
        """
        self.config = config or AnalysisConfig()
        self.messages = MESSAGES[self.config.locale]

    def synthesize(self, signal: AggregatedSignal) -> List[BrandRule]:
        """
        Produce the ranked rule list for a run.

        Args:
            signal: Aggregated signal of all analyzed documents

        Returns:
            Rules ordered color, typography, spacing, component
        """
        rules: List[BrandRule] = []
        rules.extend(self.detect_color_rules(signal))
        rules.extend(self.detect_typography_rules(signal))
        rules.extend(self.detect_spacing_rules(signal))
        rules.extend(self.detect_component_rules(signal))

        logger.info(f"Synthesized {len(rules)} rules: {[r.name for r in rules]}")
        return rules

    def detect_color_rules(self, signal: AggregatedSignal) -> List[BrandRule]:
        rules = []
        ranked = signal.ranked_colors()

        if len(ranked) > 0:
            hex_color, frequency = ranked[0]
            sources = signal.color_sources[hex_color]
            usage = detect_color_usage(sources)
            usage_text = f" ({', '.join(usage)})" if usage else ""
            rules.append(self._color_rule(
                "primary", hex_color, sources,
                color_confidence(frequency, len(sources)),
                self.messages["primary_desc"].format(color=hex_color, usage=usage_text),
                usage,
            ))

        if len(ranked) > 1:
            hex_color, frequency = ranked[1]
            sources = signal.color_sources[hex_color]
            rules.append(self._color_rule(
                "secondary", hex_color, sources,
                round(color_confidence(frequency, len(sources)) * SECONDARY_SCALE, 2),
                self.messages["secondary_desc"].format(color=hex_color),
                [],
            ))

        if len(ranked) > 2:
            primary_hex = ranked[0][0]
            start, stop = ACCENT_CANDIDATE_RANKS
            for hex_color, frequency in ranked[start:stop]:
                if hue_distance(primary_hex, hex_color) > MIN_ACCENT_HUE_DISTANCE:
                    sources = signal.color_sources[hex_color]
                    rules.append(self._color_rule(
                        "accent", hex_color, sources,
                        round(color_confidence(frequency, len(sources)) * ACCENT_SCALE, 2),
                        self.messages["accent_desc"].format(color=hex_color),
                        ["cta", "highlight"],
                    ))
                    break
            else:
                logger.debug(f"No accent candidate differs in hue from primary {primary_hex}")

        return rules

    def _color_rule(
        self,
        color_type: str,
        hex_color: str,
        sources: List[Provenance],
        confidence: float,
        description: str,
        usage: List[str]
    ) -> BrandRule:
        return BrandRule(
            id=rule_id("color", color_type),
            category="color",
            name=self.messages[f"{color_type}_name"],
            description=description,
            confidence=confidence,
            sources=sources,
            value=ColorRuleValue(type=color_type, color=hex_color, usage=usage),
            applicable_to=["all"],
        )

    def detect_typography_rules(self, signal: AggregatedSignal) -> List[BrandRule]:
        rules = []

        for role, font_type in (("major", "heading"), ("minor", "body")):
            usage = signal.font_usage.get(role, {})
            if not usage:
                continue
            font, count = sorted(usage.items(), key=lambda item: -item[1])[0]
            files = signal.font_sources[role][font]
            rules.append(BrandRule(
                id=rule_id("typography", font_type),
                category="typography",
                name=self.messages[f"{font_type}_name"],
                description=self.messages[f"{font_type}_desc"].format(font=font),
                confidence=font_confidence(count),
                sources=[Provenance(file=f, location="theme") for f in files],
                value=TypographyRuleValue(type=font_type, font_family=font),
                applicable_to=["all"],
            ))

        if signal.presentation_count and signal.uppercase_sources:
            fraction = len(signal.uppercase_sources) / signal.presentation_count
            if fraction >= self.config.uppercase_min_fraction:
                rules.append(BrandRule(
                    id=rule_id("typography", "heading_style"),
                    category="typography",
                    name=self.messages["heading_style_name"],
                    description=self.messages["heading_style_desc"],
                    confidence=round(fraction, 2),
                    sources=[Provenance(file=f, location="slideMaster") for f in signal.uppercase_sources],
                    value=TypographyRuleValue(type="heading_style", text_transform="uppercase"),
                    applicable_to=list(LAYOUT_ASSET_TYPES),
                ))

        return rules

    def detect_spacing_rules(self, signal: AggregatedSignal) -> List[BrandRule]:
        grid = detect_grid(signal.coordinate_frequency, self.config.grid_base_units)
        if grid is None:
            return []

        raw_confidence = min(self.config.max_grid_confidence, grid.ratio)
        logger.debug(
            f"Grid candidate {grid.base_unit}px: {grid.tally}/{grid.total} samples, "
            f"confidence {raw_confidence:.4f}"
        )
        # Threshold applies to the unrounded value
        if raw_confidence < self.config.min_grid_confidence:
            return []
        confidence = round(raw_confidence, 2)

        base = grid.base_unit
        return [BrandRule(
            id=rule_id("spacing", "grid"),
            category="spacing",
            name=self.messages["grid_name"],
            description=self.messages["grid_desc"].format(base=base),
            confidence=confidence,
            sources=[Provenance(file=f, location="slides") for f in signal.coordinate_sources],
            value=SpacingRuleValue(
                base_unit=base,
                scale=[base * m for m in self.config.grid_scale_multipliers],
            ),
            applicable_to=list(LAYOUT_ASSET_TYPES),
        )]

    def detect_component_rules(self, signal: AggregatedSignal) -> List[BrandRule]:
        """The most confident logo candidate becomes the brand's logo component."""
        if not signal.logos:
            return []

        logo = max(signal.logos, key=lambda asset: asset.logo_confidence)
        return [BrandRule(
            id=rule_id("component", "logo"),
            category="component",
            name=self.messages["logo_name"],
            description=self.messages["logo_desc"].format(asset=logo.filename),
            confidence=round(logo.logo_confidence * LOGO_SCALE, 2),
            sources=[Provenance(file=logo.source or logo.filename, location="media")],
            value=ComponentRuleValue(component="logo", asset=logo.filename),
            applicable_to=["all"],
        )]
