#!/usr/bin/env python3
"""
Demo script showing brand rule inference from a PowerPoint deck.

Builds a small presentation with python-pptx, runs the BrandLens pipeline
on it and walks through the review step with an in-memory rule store.
"""

import io
import sys
from pathlib import Path

# Add the parent directory to the path so we can import brandlens
sys.path.insert(0, str(Path(__file__).parent.parent))

try:
    from pptx import Presentation
    from pptx.dml.color import RGBColor
    from pptx.enum.shapes import MSO_SHAPE
    from pptx.util import Emu, Pt

    from brandlens import BrandAnalyzer, InMemoryRuleRepository, InputDocument
except ImportError as e:
    print(f"Required dependencies not available: {e}")
    print("Please install brandlens with the test extra to run this demo.")
    sys.exit(1)


BRAND_RED = RGBColor(0xE3, 0x06, 0x13)
BRAND_BLUE = RGBColor(0x1A, 0x73, 0xE8)


def px(value: int) -> Emu:
    """Pixels at 96 dpi in English Metric Units."""
    return Emu(value * 9525)


def create_branded_deck() -> bytes:
    """
    Create a deck that uses two brand colors on an 8px grid.

    Returns:
        The .pptx bytes
    """
    prs = Presentation()
    layout = prs.slide_layouts[6]

    for index in range(3):
        slide = prs.slides.add_slide(layout)

        banner = slide.shapes.add_shape(MSO_SHAPE.RECTANGLE, px(16), px(16), px(640), px(96))
        banner.fill.solid()
        banner.fill.fore_color.rgb = BRAND_RED

        box = slide.shapes.add_textbox(px(32), px(128), px(400), px(48))
        run = box.text_frame.paragraphs[0].add_run()
        run.text = f"Slide {index + 1}"
        run.font.size = Pt(24)
        run.font.color.rgb = BRAND_BLUE

    buffer = io.BytesIO()
    prs.save(buffer)
    return buffer.getvalue()


def demonstrate_brand_analysis():
    """Run the pipeline and print the rules it proposes."""
    print("Brand Analysis Demo")
    print("=" * 40)

    repository = InMemoryRuleRepository()
    analyzer = BrandAnalyzer()

    def on_progress(percent: int) -> None:
        print(f"  progress: {percent}%")

    result = analyzer.analyze_into_repository(
        repository,
        "demo-brand",
        [InputDocument("branded_deck.pptx", create_branded_deck())],
        on_progress=on_progress,
    )

    print("\nConfirmed rules:")
    for rule in result.rules:
        print(f"  {rule.name:<16} {rule.confidence:.2f}  {rule.description}")

    print("\nRules needing review:")
    for rule in result.needs_review:
        print(f"  {rule.name:<16} {rule.confidence:.2f}  {rule.description}")

    print("\nConfirming everything...")
    repository.confirm_all("demo-brand")
    summary = repository.summary("demo-brand")
    print(f"Status: {repository.get_status('demo-brand').value}, "
          f"{summary.confirmed}/{summary.total} rules confirmed")


if __name__ == "__main__":
    demonstrate_brand_analysis()
