"""Color helpers shared by the extractors, aggregator and synthesizer."""

import re
from typing import Optional, Tuple

# Perceived luminance bounds on a 0-255 scale; colors outside are near black/white.
MIN_LUMINANCE = 30
MAX_LUMINANCE = 225

_HEX6_RE = re.compile(r"^#?([0-9a-fA-F]{6})$")
_HEX3_RE = re.compile(r"^#?([0-9a-fA-F]{3})$")


def normalize_hex(value: str) -> Optional[str]:
    """
    Normalize a hex color literal to lowercase ``#rrggbb``.

    Accepts six-digit and three-digit forms, with or without a leading ``#``.

    Returns:
        Normalized hex string, or None if the value is not a hex color
    """
    if not value:
        return None
    value = value.strip()
    match = _HEX6_RE.match(value)
    if match:
        return "#" + match.group(1).lower()
    match = _HEX3_RE.match(value)
    if match:
        return "#" + "".join(c * 2 for c in match.group(1).lower())
    return None


def is_hex6(value: Optional[str]) -> bool:
    """Return True if value is exactly six hex digits (no ``#``)."""
    return bool(value) and len(value) == 6 and _HEX6_RE.match(value) is not None


def hex_to_rgb(hex_color: str) -> Tuple[int, int, int]:
    """Convert hex color string to RGB tuple."""
    normalized = normalize_hex(hex_color)
    if normalized is None:
        raise ValueError(f"Invalid hex color format: {hex_color}")
    return tuple(int(normalized[i:i + 2], 16) for i in (1, 3, 5))


def rgb_to_hex(rgb: Tuple[int, int, int]) -> str:
    r, g, b = (max(0, min(255, int(c))) for c in rgb[:3])
    return f"#{r:02x}{g:02x}{b:02x}"


def perceived_luminance(hex_color: str) -> float:
    """Rec. 601 luma on a 0-255 scale."""
    r, g, b = hex_to_rgb(hex_color)
    return 0.299 * r + 0.587 * g + 0.114 * b


def is_near_white_or_black(hex_color: str) -> bool:
    """
    Check whether a color is too close to white or black to be a brand color.

    Unparseable values count as near white/black so they are always filtered.
    """
    try:
        luminance = perceived_luminance(hex_color)
    except ValueError:
        return True
    return luminance < MIN_LUMINANCE or luminance > MAX_LUMINANCE


def hue_degrees(hex_color: str) -> int:
    """HSL hue in whole degrees; achromatic colors have hue 0."""
    r, g, b = (c / 255.0 for c in hex_to_rgb(hex_color))
    high = max(r, g, b)
    low = min(r, g, b)
    if high == low:
        return 0

    d = high - low
    if high == r:
        h = ((g - b) / d + (6 if g < b else 0)) / 6
    elif high == g:
        h = ((b - r) / d + 2) / 6
    else:
        h = ((r - g) / d + 4) / 6
    return round(h * 360) % 360


def hue_distance(first: str, second: str) -> int:
    """Circular distance between two hues, in degrees (0-180)."""
    diff = abs(hue_degrees(first) - hue_degrees(second)) % 360
    return min(diff, 360 - diff)
