"""Analyzers for standalone images and the contract for PDF analyzers.

Non-presentation analyzers report the normalized ``AnalyzerOutput`` shape
(colors with counts, fonts, logo candidates). ``observation_from_output``
turns that shape into a ``DocumentObservation`` so the aggregator can treat
every document the same way.
"""

import io
import logging
import re
import xml.etree.ElementTree as ET
from typing import Dict, List, Protocol

from PIL import Image, UnidentifiedImageError

from .asset_classifier import classify
from .color_utils import is_near_white_or_black, normalize_hex, rgb_to_hex
from .exceptions import DecodeError
from .models import AnalyzerOutput, ColorCount, ColorUsage, DocumentKind, DocumentObservation, MediaAsset

logger = logging.getLogger(__name__)

THUMBNAIL_SIZE = (128, 128)
PALETTE_SIZE = 8
MAX_DOMINANT_COLORS = 5
MIN_PIXEL_SHARE = 0.02

SVG_COLOR_ATTRIBUTES = ('fill', 'stroke', 'stop-color', 'color')
_STYLE_COLOR_RE = re.compile(r"(?:fill|stroke|stop-color|color)\s*:\s*(#[0-9a-fA-F]{3,6})\b")


class DocumentAnalyzer(Protocol):
    """Anything that turns document bytes into the normalized analyzer shape."""

    def analyze(self, filename: str, data: bytes) -> AnalyzerOutput:
        ...


class ImageAnalyzer:
    """Finds dominant colors of raster and SVG images and flags likely logos."""

    def __init__(self, max_colors: int = MAX_DOMINANT_COLORS):
        self.max_colors = max_colors

    def analyze(self, filename: str, data: bytes) -> AnalyzerOutput:
        """
        Analyze a standalone image file.

        Args:
            filename: Image filename; the extension selects raster or SVG handling
            data: Raw image bytes

        Returns:
            AnalyzerOutput with dominant colors and, for logo-like images, the asset itself

        Raises:
            DecodeError: If the image cannot be read
        """
        if filename.lower().endswith('.svg'):
            colors = self._svg_colors(filename, data)
        else:
            colors = self._raster_colors(filename, data)

        result = classify(filename, len(data))
        logos = []
        if result.is_logo:
            logos.append(MediaAsset(
                filename=filename.rsplit('/', 1)[-1],
                source=filename,
                size=len(data),
                is_logo=True,
                logo_confidence=result.confidence,
                data=data,
            ))

        logger.debug(f"{filename}: dominant colors {[c.hex for c in colors]}, logo={result.is_logo}")
        return AnalyzerOutput(
            source=filename,
            kind=DocumentKind.IMAGE,
            colors=colors,
            logos=logos,
            is_likely_logo=result.is_logo,
        )

    def _raster_colors(self, filename: str, data: bytes) -> List[ColorCount]:
        """Quantize a downscaled copy of the image and rank palette entries by pixel count."""
        try:
            with Image.open(io.BytesIO(data)) as img:
                img.load()
                rgb = self._flatten(img)
        except (UnidentifiedImageError, OSError, ValueError) as e:
            raise DecodeError(f"Unreadable image: {e}", entry_name=filename)

        rgb.thumbnail(THUMBNAIL_SIZE)
        quantized = rgb.quantize(colors=PALETTE_SIZE, method=Image.Quantize.MEDIANCUT)
        palette = quantized.getpalette() or []
        counts = quantized.getcolors() or []
        total = sum(count for count, _ in counts) or 1

        colors: Dict[str, int] = {}
        for count, index in sorted(counts, key=lambda item: -item[0]):
            if count / total < MIN_PIXEL_SHARE:
                continue
            hex_color = rgb_to_hex(tuple(palette[index * 3:index * 3 + 3]))
            colors[hex_color] = colors.get(hex_color, 0) + count

        return [ColorCount(hex=h, count=c) for h, c in list(colors.items())[:self.max_colors]]

    def _flatten(self, img: Image.Image) -> Image.Image:
        """Composite transparent images onto white so empty areas read as background."""
        if img.mode in ('RGBA', 'LA') or (img.mode == 'P' and 'transparency' in img.info):
            rgba = img.convert('RGBA')
            background = Image.new('RGB', rgba.size, (255, 255, 255))
            background.paste(rgba, mask=rgba.getchannel('A'))
            return background
        return img.convert('RGB')

    def _svg_colors(self, filename: str, data: bytes) -> List[ColorCount]:
        """Count literal colors in SVG paint attributes and inline styles."""
        try:
            root = ET.fromstring(data)
        except ET.ParseError as e:
            raise DecodeError(f"Malformed SVG: {e}", entry_name=filename)

        colors: Dict[str, int] = {}
        for elem in root.iter():
            values = [elem.get(attr) for attr in SVG_COLOR_ATTRIBUTES]
            values.extend(_STYLE_COLOR_RE.findall(elem.get('style', '')))
            for value in values:
                hex_color = normalize_hex(value) if value and value.startswith('#') else None
                if hex_color:
                    colors[hex_color] = colors.get(hex_color, 0) + 1

        ranked = sorted(colors.items(), key=lambda item: -item[1])
        return [ColorCount(hex=h, count=c) for h, c in ranked[:self.max_colors]]


def observation_from_output(output: AnalyzerOutput) -> DocumentObservation:
    """
    Normalize a PDF or image analyzer result into a DocumentObservation.

    PDF colors become content color usage weighted by their count. Image colors
    only count when the image itself looks like a logo. Near-white and
    near-black colors are dropped here.
    """
    colors = []
    for color in output.colors:
        hex_color = normalize_hex(color.hex)
        if hex_color and color.count > 0 and not is_near_white_or_black(hex_color):
            colors.append(ColorCount(hex=hex_color, count=color.count))

    usage: Dict[str, ColorUsage] = {}
    logo_colors: List[ColorCount] = []

    if output.kind == DocumentKind.IMAGE:
        if output.is_likely_logo:
            logo_colors = colors
    else:
        for color in colors:
            frequency = usage[color.hex].frequency + color.count if color.hex in usage else color.count
            usage[color.hex] = ColorUsage(frequency=frequency)

    return DocumentObservation(
        source=output.source,
        kind=output.kind,
        slide_color_usage=usage,
        media_assets=[asset.model_copy(update={'source': asset.source or output.source}) for asset in output.logos],
        logo_colors=logo_colors,
    )
