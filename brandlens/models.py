"""Domain models for the BrandLens brand inference pipeline."""

from __future__ import annotations

import os
from enum import Enum
from typing import Dict, List, Literal, Optional, Union

from pydantic import BaseModel, Field, field_validator, model_validator

from .color_utils import is_near_white_or_black


class ColorRole(str, Enum):
    """Role of a theme color slot."""

    DARK = "dark"
    LIGHT = "light"
    ACCENT = "accent"
    LINK = "link"


class DocumentKind(str, Enum):
    """Analyzer family that produced an observation."""

    PRESENTATION = "presentation"
    PDF = "pdf"
    IMAGE = "image"


class AnalysisStatus(str, Enum):
    """Lifecycle of a brand's rule set in the rule store."""

    NONE = "none"
    ANALYZING = "analyzing"
    REVIEW = "review"
    COMPLETE = "complete"


class ThemeColor(BaseModel):
    """A color declared in a theme color scheme."""

    slot_name: str = Field(..., description="Theme slot (dk1, accent1, ...) or 'extracted'")
    role: ColorRole = Field(..., description="Semantic role of the slot")
    hex: str = Field(..., description="Color in lowercase #rrggbb format")


class ThemeFonts(BaseModel):
    """Heading (major) and body (minor) font families."""

    major: Optional[str] = Field(None, description="Heading font family")
    minor: Optional[str] = Field(None, description="Body font family")
    major_confidence: Optional[float] = Field(None, description="Confidence of the major font")
    minor_confidence: Optional[float] = Field(None, description="Confidence of the minor font")


class ColorUsage(BaseModel):
    """How often a color occurs in slide content and in which contexts."""

    frequency: int = Field(default=0, ge=0, description="Number of occurrences")
    contexts: List[Literal["background", "text"]] = Field(
        default_factory=list, description="Distinct contexts the color was seen in"
    )
    confidence: float = Field(default=0.0, ge=0.0, le=1.0, description="Per-document frequency confidence")


class TypographyFlags(BaseModel):
    """Formatting habits detected in slide masters."""

    uses_bold: bool = Field(default=False, description="Master styles repeatedly use bold runs")
    uses_uppercase: bool = Field(default=False, description="Master styles use all-caps runs")


class MediaAsset(BaseModel):
    """An embedded or standalone image, classified for logo likelihood."""

    filename: str = Field(..., description="Base filename of the asset")
    source: Optional[str] = Field(None, description="Document the asset came from")
    size: int = Field(default=0, ge=0, description="Size in bytes")
    is_logo: bool = Field(default=False, description="Whether the asset looks like a logo")
    logo_confidence: float = Field(default=0.0, ge=0.0, le=1.0, description="Logo likelihood")
    data: bytes = Field(default=b"", exclude=True, repr=False, description="Raw asset bytes")


class ColorCount(BaseModel):
    """A color and its occurrence count, as reported by any analyzer."""

    hex: str = Field(..., description="Color in #rrggbb format")
    count: int = Field(default=1, ge=0, description="Occurrence count or weight")


class AnalyzerOutput(BaseModel):
    """Normalized output shape of the PDF and image analyzers."""

    source: str = Field(..., description="Document filename")
    kind: DocumentKind = Field(..., description="Analyzer family")
    colors: List[ColorCount] = Field(default_factory=list, description="Dominant colors")
    fonts: List[str] = Field(default_factory=list, description="Font families referenced")
    logos: List[MediaAsset] = Field(default_factory=list, description="Logo candidates")
    is_likely_logo: bool = Field(default=False, description="The document itself looks like a logo")

    class Config:
        """Pydantic configuration."""

        json_schema_extra = {
            "example": {
                "source": "logo.png",
                "kind": "image",
                "colors": [{"hex": "#1a73e8", "count": 812}],
                "fonts": [],
                "logos": [],
                "is_likely_logo": True
            }
        }


class DocumentObservation(BaseModel):
    """Everything extracted from one document in one analysis run."""

    source: str = Field(..., description="Document identifier (filename)")
    kind: DocumentKind = Field(default=DocumentKind.PRESENTATION, description="Analyzer family")
    slide_count: int = Field(default=0, ge=0, description="Number of slides or pages analyzed")
    theme_colors: List[ThemeColor] = Field(default_factory=list, description="Theme-declared colors")
    theme_fonts: Optional[ThemeFonts] = Field(None, description="Theme fonts; None without a theme")
    slide_color_usage: Dict[str, ColorUsage] = Field(
        default_factory=dict, description="Content colors keyed by hex"
    )
    coordinate_samples: List[int] = Field(
        default_factory=list, description="Spacing-sized positional values in pixels"
    )
    typography_flags: TypographyFlags = Field(default_factory=TypographyFlags)
    media_assets: List[MediaAsset] = Field(default_factory=list, description="Embedded images")
    logo_colors: List[ColorCount] = Field(
        default_factory=list, description="Dominant colors of a document that is itself a logo"
    )

    @field_validator("slide_color_usage")
    @classmethod
    def _no_extreme_colors(cls, value: Dict[str, ColorUsage]) -> Dict[str, ColorUsage]:
        for hex_color in value:
            if is_near_white_or_black(hex_color):
                raise ValueError(f"Near white/black color in slide usage: {hex_color}")
        return value


class Provenance(BaseModel):
    """Where a piece of evidence was found."""

    file: str = Field(..., description="Source document")
    location: str = Field(..., description="Part of the document (theme, slides, pages, logo, ...)")
    role: Optional[str] = Field(None, description="Theme role when sourced from a theme slot")
    contexts: List[str] = Field(default_factory=list, description="Usage contexts seen")


def _merge_counts(left: Dict, right: Dict) -> Dict:
    merged = dict(left)
    for key, count in right.items():
        merged[key] = merged.get(key, 0) + count
    return merged


def _merge_lists(left: Dict, right: Dict) -> Dict:
    merged = {key: list(values) for key, values in left.items()}
    for key, values in right.items():
        merged.setdefault(key, []).extend(values)
    return merged


class AggregatedSignal(BaseModel):
    """Frequency tables pooled across all observations of one run."""

    color_frequency: Dict[str, int] = Field(default_factory=dict, description="Weighted color counts")
    color_sources: Dict[str, List[Provenance]] = Field(default_factory=dict)
    font_usage: Dict[str, Dict[str, int]] = Field(
        default_factory=lambda: {"major": {}, "minor": {}},
        description="Document votes per font, by role"
    )
    font_sources: Dict[str, Dict[str, List[str]]] = Field(
        default_factory=lambda: {"major": {}, "minor": {}},
        description="Documents voting for each font, by role"
    )
    coordinate_frequency: Dict[int, int] = Field(default_factory=dict, description="Pixel value counts")
    coordinate_sources: List[str] = Field(default_factory=list)
    presentation_count: int = Field(default=0, ge=0)
    uppercase_sources: List[str] = Field(default_factory=list)
    logos: List[MediaAsset] = Field(default_factory=list)
    images: List[MediaAsset] = Field(default_factory=list)

    @property
    def coordinate_total(self) -> int:
        return sum(self.coordinate_frequency.values())

    def ranked_colors(self) -> List[tuple]:
        """Colors by weight, highest first; ties keep first-seen order."""
        return sorted(self.color_frequency.items(), key=lambda item: -item[1])

    def merge(self, other: "AggregatedSignal") -> "AggregatedSignal":
        """
        Combine two partial aggregates into a new one.

        Counts are summed and provenance lists concatenated, so merging is
        associative and the left operand's keys keep their order.
        """
        return AggregatedSignal(
            color_frequency=_merge_counts(self.color_frequency, other.color_frequency),
            color_sources=_merge_lists(self.color_sources, other.color_sources),
            font_usage={
                role: _merge_counts(self.font_usage.get(role, {}), other.font_usage.get(role, {}))
                for role in ("major", "minor")
            },
            font_sources={
                role: _merge_lists(self.font_sources.get(role, {}), other.font_sources.get(role, {}))
                for role in ("major", "minor")
            },
            coordinate_frequency=_merge_counts(self.coordinate_frequency, other.coordinate_frequency),
            coordinate_sources=self.coordinate_sources + other.coordinate_sources,
            presentation_count=self.presentation_count + other.presentation_count,
            uppercase_sources=self.uppercase_sources + other.uppercase_sources,
            logos=self.logos + other.logos,
            images=self.images + other.images,
        )


class ColorRuleValue(BaseModel):
    """Payload of a color rule."""

    kind: Literal["color"] = "color"
    type: Literal["primary", "secondary", "accent"] = Field(..., description="Color role in the brand")
    color: str = Field(..., description="Color in #rrggbb format")
    usage: List[str] = Field(default_factory=list, description="Usage tags (background, text, cta, ...)")


class TypographyRuleValue(BaseModel):
    """Payload of a typography rule."""

    kind: Literal["typography"] = "typography"
    type: Literal["heading", "body", "heading_style"] = Field(..., description="Typographic role")
    font_family: Optional[str] = Field(None, description="Font family name")
    text_transform: Optional[str] = Field(None, description="CSS-style text transform")


class SpacingRuleValue(BaseModel):
    """Payload of a spacing/grid rule."""

    kind: Literal["spacing"] = "spacing"
    base_unit: int = Field(..., gt=0, description="Grid base unit in pixels")
    scale: List[int] = Field(default_factory=list, description="Spacing scale derived from the base")


class ComponentRuleValue(BaseModel):
    """Payload of a component rule."""

    kind: Literal["component"] = "component"
    component: str = Field(..., description="Component name (logo, button, card, ...)")
    asset: Optional[str] = Field(None, description="Asset filename backing the component")


RuleValue = Union[ColorRuleValue, TypographyRuleValue, SpacingRuleValue, ComponentRuleValue]

RuleCategory = Literal["color", "typography", "spacing", "component"]


class BrandRule(BaseModel):
    """A single confidence-scored inference about a brand's visual identity."""

    id: str = Field(..., description="Rule identifier, stable within a run")
    category: RuleCategory = Field(..., description="Rule category")
    name: str = Field(..., description="Short human-readable name")
    description: str = Field(..., description="Human-readable summary")
    confidence: float = Field(..., ge=0.0, le=1.0, description="Confidence score")
    sources: List[Provenance] = Field(..., min_length=1, description="Provenance records")
    value: RuleValue = Field(..., discriminator="kind", description="Category-specific payload")
    applicable_to: List[str] = Field(
        default_factory=lambda: ["all"], description="Asset types the rule applies to"
    )
    confirmed: bool = Field(default=False, description="Set by explicit reviewer action")

    @model_validator(mode="after")
    def _category_matches_value(self) -> "BrandRule":
        if self.value.kind != self.category:
            raise ValueError(
                f"Rule category '{self.category}' does not match value kind '{self.value.kind}'"
            )
        return self

    def applies_to(self, asset_type: str) -> bool:
        return "all" in self.applicable_to or asset_type in self.applicable_to

    class Config:
        """Pydantic configuration."""

        frozen = True
        json_schema_extra = {
            "example": {
                "id": "rule-3f2a9c1b0d",
                "category": "color",
                "name": "Primary color",
                "description": "#1a73e8 is used as the main brand color (background, text)",
                "confidence": 0.92,
                "sources": [{"file": "deck.pptx", "location": "theme", "role": "accent"}],
                "value": {"kind": "color", "type": "primary", "color": "#1a73e8", "usage": ["accent"]},
                "applicable_to": ["all"],
                "confirmed": False
            }
        }


class ReviewPartition(BaseModel):
    """Synthesized rules split by confidence."""

    confirmed: List[BrandRule] = Field(default_factory=list)
    needs_review: List[BrandRule] = Field(default_factory=list)
    dropped: List[BrandRule] = Field(default_factory=list)


class ExtractedAssets(BaseModel):
    """Media assets collected across a run."""

    logos: List[MediaAsset] = Field(default_factory=list)
    images: List[MediaAsset] = Field(default_factory=list)


class FileError(BaseModel):
    """A document that could not be analyzed."""

    filename: str = Field(..., description="Name of the failed document")
    error_type: str = Field(..., description="Exception class name")
    message: str = Field(..., description="Error message")


class AnalysisResult(BaseModel):
    """Output of one analysis run."""

    rules: List[BrandRule] = Field(default_factory=list, description="Confirmed-confidence rules")
    needs_review: List[BrandRule] = Field(default_factory=list, description="Rules pending review")
    extracted_assets: ExtractedAssets = Field(default_factory=ExtractedAssets)
    errors: List[FileError] = Field(default_factory=list, description="Per-document failures")
    skipped: List[str] = Field(default_factory=list, description="Files with unsupported extensions")
    cancelled: List[str] = Field(default_factory=list, description="Files not analyzed due to cancellation")

    @property
    def all_rules(self) -> List[BrandRule]:
        return self.rules + self.needs_review


class RuleSummary(BaseModel):
    """Counts over a brand's rule set."""

    total: int = 0
    confirmed: int = 0
    by_category: Dict[str, int] = Field(
        default_factory=lambda: {"color": 0, "typography": 0, "spacing": 0, "component": 0}
    )


class AnalysisConfig(BaseModel):
    """Tunables for extraction, aggregation, synthesis and review."""

    theme_color_weight: int = Field(default=10, description="Weight of each theme color declaration")
    logo_color_weight: int = Field(default=5, description="Weight of each logo color")
    confirm_threshold: float = Field(default=0.6, ge=0.0, le=1.0, description="Auto-accept threshold")
    review_threshold: float = Field(default=0.3, ge=0.0, le=1.0, description="Needs-review threshold")
    grid_base_units: List[int] = Field(
        default_factory=lambda: [4, 8, 10, 12, 16], description="Candidate grid base units in px"
    )
    grid_scale_multipliers: List[int] = Field(
        default_factory=lambda: [1, 2, 3, 4, 6, 8], description="Multipliers forming the spacing scale"
    )
    min_grid_confidence: float = Field(default=0.5, description="Minimum confidence to emit a grid rule")
    max_grid_confidence: float = Field(default=0.9, description="Cap on grid rule confidence")
    uppercase_min_fraction: float = Field(
        default=0.5, description="Fraction of decks using all-caps needed for a heading style rule"
    )
    max_workers: int = Field(default=4, ge=1, description="Upper bound on extraction threads")
    locale: Literal["en", "de"] = Field(default="en", description="Language of rule names and descriptions")

    @model_validator(mode="after")
    def _thresholds_ordered(self) -> "AnalysisConfig":
        if self.review_threshold > self.confirm_threshold:
            raise ValueError("review_threshold must not exceed confirm_threshold")
        return self

    @classmethod
    def from_env(cls, **overrides) -> "AnalysisConfig":
        """Build a config from BRANDLENS_* environment variables."""
        values = {}
        if os.getenv("BRANDLENS_LOCALE"):
            values["locale"] = os.getenv("BRANDLENS_LOCALE")
        if os.getenv("BRANDLENS_MAX_WORKERS"):
            values["max_workers"] = int(os.getenv("BRANDLENS_MAX_WORKERS"))
        if os.getenv("BRANDLENS_CONFIRM_THRESHOLD"):
            values["confirm_threshold"] = float(os.getenv("BRANDLENS_CONFIRM_THRESHOLD"))
        if os.getenv("BRANDLENS_REVIEW_THRESHOLD"):
            values["review_threshold"] = float(os.getenv("BRANDLENS_REVIEW_THRESHOLD"))
        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**values)

    class Config:
        """Pydantic configuration."""

        json_schema_extra = {
            "example": {
                "theme_color_weight": 10,
                "logo_color_weight": 5,
                "confirm_threshold": 0.6,
                "review_threshold": 0.3,
                "grid_base_units": [4, 8, 10, 12, 16],
                "max_workers": 4,
                "locale": "en"
            }
        }
