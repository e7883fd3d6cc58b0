"""Extracts brand signals from PowerPoint (OOXML) packages.

The extractor walks the theme, slide master, slide and media parts of a
presentation and reports low-level observations: theme colors and fonts,
color occurrences in slide content, spacing-sized coordinates and logo
candidates. It does not render anything.
"""

import logging
import math
import xml.etree.ElementTree as ET
from typing import Dict, List, Optional, Set, Tuple

from .asset_classifier import classify, is_image_filename
from .color_utils import is_hex6, is_near_white_or_black, normalize_hex
from .container import Container, Entry, open_container
from .exceptions import DecodeError
from .models import (
    ColorRole, ColorUsage, DocumentKind, DocumentObservation, MediaAsset,
    ThemeColor, ThemeFonts, TypographyFlags
)

logger = logging.getLogger(__name__)

NAMESPACES = {
    'a': 'http://schemas.openxmlformats.org/drawingml/2006/main',
    'p': 'http://schemas.openxmlformats.org/presentationml/2006/main',
}

THEME_PATTERN = r"ppt/theme/theme\d+\.xml"
MASTER_PATTERN = r"ppt/slideMasters/slideMaster\d+\.xml"
SLIDE_PATTERN = r"ppt/slides/slide\d+\.xml"
MEDIA_PATTERN = r"ppt/media/.+"

# The twelve color slots of a DrawingML color scheme, in declaration order.
THEME_SLOTS: Tuple[Tuple[str, ColorRole], ...] = (
    ('dk1', ColorRole.DARK),
    ('lt1', ColorRole.LIGHT),
    ('dk2', ColorRole.DARK),
    ('lt2', ColorRole.LIGHT),
    ('accent1', ColorRole.ACCENT),
    ('accent2', ColorRole.ACCENT),
    ('accent3', ColorRole.ACCENT),
    ('accent4', ColorRole.ACCENT),
    ('accent5', ColorRole.ACCENT),
    ('accent6', ColorRole.ACCENT),
    ('hlink', ColorRole.LINK),
    ('folHlink', ColorRole.LINK),
)

PRESET_COLORS = {
    'black': '#000000',
    'white': '#ffffff',
    'red': '#ff0000',
    'green': '#008000',
    'blue': '#0000ff',
    'yellow': '#ffff00',
    'cyan': '#00ffff',
    'magenta': '#ff00ff',
    'gray': '#808080',
    'darkBlue': '#000080',
    'darkGreen': '#006400',
    'darkRed': '#800000',
}

RUN_PROPERTY_TAGS = {'rPr', 'defRPr', 'endParaRPr'}
POSITION_ATTRIBUTES = ('x', 'y', 'cx', 'cy')

EMU_PER_INCH = 914400
PIXELS_PER_INCH = 96
MAX_SPACING_PX = 200

THEME_FONT_CONFIDENCE = 0.95
BOLD_RUN_THRESHOLD = 2
UPPERCASE_RUN_THRESHOLD = 0


def _local_name(tag: str) -> str:
    """Strip the ``{namespace}`` prefix from an element tag."""
    return tag.rsplit('}', 1)[-1] if isinstance(tag, str) else ''


def emu_to_px(emu: int) -> int:
    """Convert English Metric Units to whole pixels at 96 dpi, rounding half up."""
    return math.floor(emu / EMU_PER_INCH * PIXELS_PER_INCH + 0.5)


def _is_font_name(typeface: Optional[str]) -> bool:
    """Theme indirections such as '+mj-lt' are not real font names."""
    return bool(typeface) and not typeface.startswith('+')


class _DocumentState:
    """Working state for one document while its parts are parsed."""

    def __init__(self, source: str):
        self.source = source
        self.slide_count = 0
        self.has_theme = False
        self.theme_colors: List[ThemeColor] = []
        self.major_font: Optional[str] = None
        self.minor_font: Optional[str] = None
        self.major_from_theme = False
        self.minor_from_theme = False
        self.color_frequency: Dict[str, int] = {}
        self.color_contexts: Dict[str, List[str]] = {}
        self.coordinate_samples: List[int] = []
        self.uses_bold = False
        self.uses_uppercase = False
        self.media_assets: List[MediaAsset] = []

    def record_color(self, hex_color: str, context: Optional[str]) -> None:
        self.color_frequency[hex_color] = self.color_frequency.get(hex_color, 0) + 1
        contexts = self.color_contexts.setdefault(hex_color, [])
        if context and context not in contexts:
            contexts.append(context)


class OOXMLExtractor:
    """Parses presentation packages into DocumentObservation objects."""

    def extract(self, data: bytes, source: str) -> DocumentObservation:
        """
        Extract brand signals from a presentation package.

        Args:
            data: Raw .pptx/.potx bytes
            source: Document filename, used for provenance

        Returns:
            DocumentObservation for the document

        Raises:
            InvalidContainer: If the bytes are not a ZIP package
        """
        logger.info(f"Extracting brand signals from {source}")

        with open_container(data, source=source) as container:
            return self.extract_container(container, source)

    def extract_container(self, container: Container, source: str) -> DocumentObservation:
        """Extract brand signals from an already opened container."""
        state = _DocumentState(source)

        # 1. Theme colors and fonts
        themes = container.find_entries(THEME_PATTERN)
        if themes:
            root = self._parse_entry(themes[0])
            if root is not None:
                state.has_theme = True
                self._parse_theme(root, state)
        else:
            logger.debug(f"{source}: no theme part found")

        # 2. Slide masters for typography habits and font backfill
        for entry in container.find_entries(MASTER_PATTERN):
            root = self._parse_entry(entry)
            if root is not None:
                self._parse_master(root, state)

        # 3. Slides for color usage and spacing
        slides = container.find_entries(SLIDE_PATTERN)
        state.slide_count = len(slides)
        for entry in slides:
            root = self._parse_entry(entry)
            if root is not None:
                self._parse_slide(root, state)

        # 4. Embedded media
        for entry in container.find_entries(MEDIA_PATTERN):
            self._extract_media(entry, state)

        observation = self._build_observation(state)
        logger.info(
            f"{source}: {len(observation.theme_colors)} theme colors, "
            f"{len(observation.slide_color_usage)} slide colors, "
            f"{len(observation.coordinate_samples)} coordinate samples, "
            f"{len(observation.media_assets)} media assets"
        )
        return observation

    def _parse_entry(self, entry: Entry) -> Optional[ET.Element]:
        """Decode and parse an XML part; undecodable or malformed parts yield None."""
        try:
            return ET.fromstring(entry.read_text())
        except DecodeError as e:
            logger.warning(f"Skipping undecodable part: {e}")
        except ET.ParseError as e:
            logger.warning(f"Skipping malformed XML part {entry.name}: {e}")
        return None

    def _parse_theme(self, root: ET.Element, state: _DocumentState) -> None:
        """Collect the color scheme slots, other theme colors and theme fonts."""
        captured: Set[str] = set()
        scheme = root.find('.//a:clrScheme', NAMESPACES)

        if scheme is not None:
            for slot_name, role in THEME_SLOTS:
                slot = scheme.find(f'a:{slot_name}', NAMESPACES)
                if slot is None:
                    continue
                hex_color = self._slot_color(slot)
                if hex_color:
                    state.theme_colors.append(ThemeColor(slot_name=slot_name, role=role, hex=hex_color))
                    captured.add(hex_color)
        else:
            logger.debug(f"{state.source}: theme has no color scheme")

        # Any other literal colors in the theme body (format scheme, extra lists)
        for elem in root.iter():
            for hex_color in self._element_colors(elem):
                if hex_color in captured or is_near_white_or_black(hex_color):
                    continue
                captured.add(hex_color)
                state.theme_colors.append(
                    ThemeColor(slot_name='extracted', role=ColorRole.ACCENT, hex=hex_color)
                )

        major = root.find('.//a:fontScheme/a:majorFont/a:latin', NAMESPACES)
        minor = root.find('.//a:fontScheme/a:minorFont/a:latin', NAMESPACES)
        if major is not None and _is_font_name(major.get('typeface')):
            state.major_font = major.get('typeface')
            state.major_from_theme = True
        if minor is not None and _is_font_name(minor.get('typeface')):
            state.minor_font = minor.get('typeface')
            state.minor_from_theme = True

        if not state.major_font:
            for elem in root.iter():
                if _is_font_name(elem.get('typeface')):
                    state.major_font = elem.get('typeface')
                    state.major_from_theme = True
                    break

    def _slot_color(self, slot: ET.Element) -> Optional[str]:
        """
        Resolve a theme slot to a hex color.

        Precedence: explicit ``srgbClr``, then the ``lastClr`` of a ``sysClr``,
        then a named ``prstClr``.
        """
        srgb = slot.find('a:srgbClr', NAMESPACES)
        if srgb is not None and is_hex6(srgb.get('val')):
            return normalize_hex(srgb.get('val'))

        sys_color = slot.find('a:sysClr', NAMESPACES)
        if sys_color is not None and is_hex6(sys_color.get('lastClr')):
            return normalize_hex(sys_color.get('lastClr'))

        preset = slot.find('a:prstClr', NAMESPACES)
        if preset is not None:
            return PRESET_COLORS.get(preset.get('val'))

        return None

    def _element_colors(self, elem: ET.Element) -> List[str]:
        """
        Literal hex colors carried by an element.

        A six-digit ``val`` counts only on color elements (``srgbClr`` and
        friends), so numeric values such as ``spcPct val="800000"`` are not
        mistaken for colors. ``lastClr`` is the cached RGB of a system color.
        """
        colors = []
        if _local_name(elem.tag).endswith('Clr') and is_hex6(elem.get('val')):
            colors.append(normalize_hex(elem.get('val')))
        if is_hex6(elem.get('lastClr')):
            colors.append(normalize_hex(elem.get('lastClr')))
        return colors

    def _parse_master(self, root: ET.Element, state: _DocumentState) -> None:
        """Collect master fonts and bold/uppercase habits."""
        fonts: List[str] = []
        bold_runs = 0
        caps_runs = 0

        for elem in root.iter():
            typeface = elem.get('typeface')
            if _is_font_name(typeface) and len(typeface) > 1 and typeface not in fonts:
                fonts.append(typeface)

            if _local_name(elem.tag) in RUN_PROPERTY_TAGS:
                if elem.get('b') == '1':
                    bold_runs += 1
                if elem.get('cap') == 'all':
                    caps_runs += 1

        if bold_runs > BOLD_RUN_THRESHOLD:
            state.uses_bold = True
        if caps_runs > UPPERCASE_RUN_THRESHOLD:
            state.uses_uppercase = True

        if not state.major_font and len(fonts) > 0:
            state.major_font = fonts[0]
        if not state.minor_font and len(fonts) > 1:
            state.minor_font = fonts[1]

        logger.debug(
            f"{state.source}: master fonts {fonts}, bold runs {bold_runs}, caps runs {caps_runs}"
        )

    def _parse_slide(self, root: ET.Element, state: _DocumentState) -> None:
        """Count content colors with their context and collect spacing samples."""
        parents = {child: parent for parent in root.iter() for child in parent}
        spacings: Dict[int, None] = {}

        for elem in root.iter():
            colors = [c for c in self._element_colors(elem) if not is_near_white_or_black(c)]
            if colors:
                context = self._color_context(elem, parents)
                for hex_color in colors:
                    state.record_color(hex_color, context)

            for attr in POSITION_ATTRIBUTES:
                value = elem.get(attr)
                if value and value.isdecimal():
                    px = emu_to_px(int(value))
                    if 0 < px < MAX_SPACING_PX:
                        spacings[px] = None

        state.coordinate_samples.extend(spacings)

    def _color_context(self, elem: ET.Element, parents: Dict[ET.Element, ET.Element]) -> Optional[str]:
        """Classify a color occurrence as background or text from its ancestors."""
        ancestors = set()
        node = parents.get(elem)
        while node is not None:
            ancestors.add(_local_name(node.tag))
            node = parents.get(node)

        if 'solidFill' in ancestors and ('spPr' in ancestors or 'bgPr' in ancestors):
            return 'background'
        if ancestors & RUN_PROPERTY_TAGS:
            return 'text'
        return None

    def _extract_media(self, entry: Entry, state: _DocumentState) -> None:
        """Classify an embedded image as logo or plain image."""
        filename = entry.basename
        if not is_image_filename(filename):
            return

        try:
            data = entry.read_bytes()
        except DecodeError as e:
            logger.warning(f"Skipping media entry: {e}")
            return

        result = classify(filename, len(data))
        state.media_assets.append(MediaAsset(
            filename=filename,
            source=state.source,
            size=len(data),
            is_logo=result.is_logo,
            logo_confidence=result.confidence,
            data=data,
        ))

    def _build_observation(self, state: _DocumentState) -> DocumentObservation:
        """Attach confidence annotations and freeze the state."""
        total_slides = state.slide_count or 1
        usage = {
            hex_color: ColorUsage(
                frequency=frequency,
                contexts=state.color_contexts.get(hex_color, []),
                confidence=min(frequency / (total_slides * 2), 1.0),
            )
            for hex_color, frequency in state.color_frequency.items()
        }

        theme_fonts = None
        if state.has_theme or state.major_font or state.minor_font:
            theme_fonts = ThemeFonts(
                major=state.major_font,
                minor=state.minor_font,
                major_confidence=THEME_FONT_CONFIDENCE if state.major_from_theme else None,
                minor_confidence=THEME_FONT_CONFIDENCE if state.minor_from_theme else None,
            )

        return DocumentObservation(
            source=state.source,
            kind=DocumentKind.PRESENTATION,
            slide_count=state.slide_count,
            theme_colors=state.theme_colors,
            theme_fonts=theme_fonts,
            slide_color_usage=usage,
            coordinate_samples=state.coordinate_samples,
            typography_flags=TypographyFlags(
                uses_bold=state.uses_bold,
                uses_uppercase=state.uses_uppercase,
            ),
            media_assets=state.media_assets,
        )
