"""Filename and size heuristics for spotting logo assets."""

import logging
from typing import NamedTuple

logger = logging.getLogger(__name__)

IMAGE_EXTENSIONS = ("png", "jpg", "jpeg", "gif", "svg", "webp")

LOGO_KEYWORDS = ("logo", "brand", "icon", "mark")

# Keyword -> confidence bonus. "mark" flags a logo but adds no confidence.
KEYWORD_BONUS = {
    "logo": 0.3,
    "brand": 0.2,
    "icon": 0.1,
}

BASE_CONFIDENCE = 0.5
NON_LOGO_CONFIDENCE = 0.3

SMALL_ASSET_BYTES = 100_000
COMPACT_ASSET_BYTES = 50_000
TINY_ASSET_BYTES = 20_000


class AssetClassification(NamedTuple):
    is_logo: bool
    confidence: float


def is_image_filename(filename: str) -> bool:
    if "." not in filename:
        return False
    return filename.rsplit(".", 1)[-1].lower() in IMAGE_EXTENSIONS


def detect_logo(filename: str, byte_size: int) -> bool:
    """Small files and files named like marks are treated as logo candidates."""
    name = filename.lower()
    if any(keyword in name for keyword in LOGO_KEYWORDS):
        return True
    return byte_size < SMALL_ASSET_BYTES


def logo_confidence(filename: str, byte_size: int) -> float:
    name = filename.lower()
    confidence = BASE_CONFIDENCE

    for keyword, bonus in KEYWORD_BONUS.items():
        if keyword in name:
            confidence += bonus
    if byte_size < COMPACT_ASSET_BYTES:
        confidence += 0.1
    if byte_size < TINY_ASSET_BYTES:
        confidence += 0.1

    return round(min(confidence, 1.0), 2)


def classify(filename: str, byte_size: int) -> AssetClassification:
    """
    Decide whether an image asset is likely a logo.

    This errs toward recall; false positives are left for the reviewer.

    Args:
        filename: Asset filename (path components are ignored)
        byte_size: Asset size in bytes

    Returns:
        AssetClassification with the logo flag and its confidence
    """
    basename = filename.rsplit("/", 1)[-1]
    if detect_logo(basename, byte_size):
        result = AssetClassification(True, logo_confidence(basename, byte_size))
    else:
        result = AssetClassification(False, NON_LOGO_CONFIDENCE)

    logger.debug(f"Classified {basename} ({byte_size} bytes): {result}")
    return result
