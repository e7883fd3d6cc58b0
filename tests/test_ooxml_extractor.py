"""Tests for presentation signal extraction."""

import pytest

from brandlens.exceptions import InvalidContainer
from brandlens.models import ColorRole
from brandlens.ooxml_extractor import OOXMLExtractor, emu_to_px

from conftest import (
    build_package, filled_shape, master_xml, rewrite_central_record, slide_xml, text_shape, theme_xml
)

OFFICE_COLORS = '''
    <a:dk1><a:sysClr val="windowText" lastClr="000000"/></a:dk1>
    <a:lt1><a:sysClr val="window" lastClr="FFFFFF"/></a:lt1>
    <a:dk2><a:srgbClr val="44546A"/></a:dk2>
    <a:lt2><a:srgbClr val="E7E6E6"/></a:lt2>
    <a:accent1><a:srgbClr val="5B9BD5"/></a:accent1>
    <a:accent2><a:srgbClr val="ED7D31"/></a:accent2>
    <a:accent3><a:srgbClr val="A5A5A5"/></a:accent3>
    <a:accent4><a:srgbClr val="FFC000"/></a:accent4>
    <a:accent5><a:srgbClr val="4472C4"/></a:accent5>
    <a:accent6><a:srgbClr val="70AD47"/></a:accent6>
    <a:hlink><a:srgbClr val="0563C1"/></a:hlink>
    <a:folHlink><a:srgbClr val="954F72"/></a:folHlink>
'''

FONTS = '''
    <a:majorFont><a:latin typeface="Montserrat"/></a:majorFont>
    <a:minorFont><a:latin typeface="Open Sans"/></a:minorFont>
'''


class TestThemeExtraction:
    """Tests for theme colors and fonts."""

    def setup_method(self):
        self.extractor = OOXMLExtractor()

    def test_all_theme_slots(self):
        data = build_package(theme=theme_xml(OFFICE_COLORS, FONTS))

        observation = self.extractor.extract(data, "office.pptx")
        colors = {c.slot_name: (c.role, c.hex) for c in observation.theme_colors}

        assert colors["dk1"] == (ColorRole.DARK, "#000000")
        assert colors["lt1"] == (ColorRole.LIGHT, "#ffffff")
        assert colors["accent1"] == (ColorRole.ACCENT, "#5b9bd5")
        assert colors["hlink"] == (ColorRole.LINK, "#0563c1")
        assert len(observation.theme_colors) == 12
        assert [c.slot_name for c in observation.theme_colors][:4] == ["dk1", "lt1", "dk2", "lt2"]

    def test_srgb_takes_precedence_over_system_color(self):
        scheme = '''
            <a:accent1>
                <a:sysClr val="windowText" lastClr="112233"/>
                <a:srgbClr val="C00000"/>
            </a:accent1>
        '''
        data = build_package(theme=theme_xml(scheme))

        observation = self.extractor.extract(data, "deck.pptx")
        accent1 = [c for c in observation.theme_colors if c.slot_name == "accent1"]

        assert accent1[0].hex == "#c00000"

    def test_system_color_falls_back_to_last_color(self):
        data = build_package(theme=theme_xml('<a:dk2><a:sysClr val="windowText" lastClr="1F3864"/></a:dk2>'))

        observation = self.extractor.extract(data, "deck.pptx")

        assert observation.theme_colors[0].slot_name == "dk2"
        assert observation.theme_colors[0].hex == "#1f3864"

    def test_preset_color(self):
        data = build_package(theme=theme_xml('<a:accent2><a:prstClr val="darkBlue"/></a:accent2>'))

        observation = self.extractor.extract(data, "deck.pptx")

        assert observation.theme_colors[0].hex == "#000080"

    def test_extra_theme_colors_are_collected_once(self):
        extra = '''
            <a:extraClrSchemeLst>
                <a:srgbClr val="E30613"/>
                <a:srgbClr val="E30613"/>
                <a:srgbClr val="FAFAFA"/>
            </a:extraClrSchemeLst>
        '''
        data = build_package(theme=theme_xml('<a:accent1><a:srgbClr val="5B9BD5"/></a:accent1>', extra=extra))

        observation = self.extractor.extract(data, "deck.pptx")
        extracted = [c.hex for c in observation.theme_colors if c.slot_name == "extracted"]

        assert extracted == ["#e30613"]

    def test_theme_fonts(self):
        data = build_package(theme=theme_xml(font_scheme=FONTS))

        fonts = self.extractor.extract(data, "deck.pptx").theme_fonts

        assert fonts.major == "Montserrat"
        assert fonts.minor == "Open Sans"
        assert fonts.major_confidence == 0.95
        assert fonts.minor_confidence == 0.95

    def test_indirect_font_reference_is_skipped(self):
        font_scheme = '''
            <a:majorFont><a:latin typeface="+mn-lt"/></a:majorFont>
            <a:minorFont><a:latin typeface="Lato"/></a:minorFont>
        '''
        data = build_package(theme=theme_xml(font_scheme=font_scheme))

        fonts = self.extractor.extract(data, "deck.pptx").theme_fonts

        assert fonts.major == "Lato"
        assert fonts.minor == "Lato"

    def test_master_fonts_backfill_missing_theme_fonts(self):
        master = master_xml('''
            <p:titleStyle><a:lvl1pPr><a:defRPr><a:latin typeface="Georgia"/></a:defRPr></a:lvl1pPr></p:titleStyle>
            <p:bodyStyle><a:lvl1pPr><a:defRPr><a:latin typeface="Verdana"/></a:defRPr></a:lvl1pPr></p:bodyStyle>
        ''')
        data = build_package(theme=theme_xml(), masters=[master])

        fonts = self.extractor.extract(data, "deck.pptx").theme_fonts

        assert fonts.major == "Georgia"
        assert fonts.minor == "Verdana"
        assert fonts.major_confidence is None

    def test_no_theme_and_no_fonts(self):
        data = build_package(slides=[slide_xml(filled_shape("1A73E8"))])

        observation = self.extractor.extract(data, "deck.pptx")

        assert observation.theme_colors == []
        assert observation.theme_fonts is None

    def test_malformed_theme_is_not_fatal(self):
        data = build_package(
            theme="<a:theme><a:clrScheme>",
            slides=[slide_xml(filled_shape("1A73E8"))],
        )

        observation = self.extractor.extract(data, "deck.pptx")

        assert observation.theme_colors == []
        assert "#1a73e8" in observation.slide_color_usage

    def test_encrypted_theme_is_not_fatal(self):
        data = build_package(
            theme=theme_xml('<a:accent1><a:srgbClr val="FF0000"/></a:accent1>'),
            slides=[slide_xml(filled_shape("1A73E8", 8, 16))],
        )
        data = rewrite_central_record(data, "ppt/theme/theme1.xml", flag_bits=0x1)

        observation = self.extractor.extract(data, "deck.pptx")

        assert observation.theme_colors == []
        assert observation.slide_color_usage["#1a73e8"].frequency == 1
        assert observation.coordinate_samples == [8, 16]


class TestMasterTypography:
    """Tests for bold and uppercase detection in slide masters."""

    def setup_method(self):
        self.extractor = OOXMLExtractor()

    def test_bold_needs_more_than_two_runs(self):
        two = master_xml('<a:defRPr b="1"/><a:defRPr b="1"/>')
        three = master_xml('<a:defRPr b="1"/><a:rPr b="1"/><a:endParaRPr b="1"/>')

        assert not self.extractor.extract(build_package(masters=[two]), "a.pptx").typography_flags.uses_bold
        assert self.extractor.extract(build_package(masters=[three]), "b.pptx").typography_flags.uses_bold

    def test_single_caps_run_sets_uppercase(self):
        master = master_xml('<p:titleStyle><a:lvl1pPr><a:defRPr cap="all"/></a:lvl1pPr></p:titleStyle>')

        observation = self.extractor.extract(build_package(masters=[master]), "deck.pptx")

        assert observation.typography_flags.uses_uppercase
        assert not observation.typography_flags.uses_bold

    def test_paragraph_level_run_properties_count(self):
        bold_ends = master_xml('<a:endParaRPr b="1"/>' * 3)
        caps_default = master_xml('<a:defRPr cap="all"/>')
        caps_end = master_xml('<a:endParaRPr cap="all"/>')

        bold_flags = self.extractor.extract(build_package(masters=[bold_ends]), "a.pptx").typography_flags
        default_flags = self.extractor.extract(build_package(masters=[caps_default]), "b.pptx").typography_flags
        end_flags = self.extractor.extract(build_package(masters=[caps_end]), "c.pptx").typography_flags

        assert bold_flags.uses_bold
        assert default_flags.uses_uppercase
        assert end_flags.uses_uppercase

    def test_other_elements_are_not_runs(self):
        master = master_xml('<a:lvl1pPr b="1" cap="all"/>' * 3)

        flags = self.extractor.extract(build_package(masters=[master]), "deck.pptx").typography_flags

        assert not flags.uses_bold
        assert not flags.uses_uppercase


class TestSlideExtraction:
    """Tests for slide color usage and coordinate samples."""

    def setup_method(self):
        self.extractor = OOXMLExtractor()

    def test_color_frequency_and_contexts(self, red_green_deck):
        observation = self.extractor.extract(red_green_deck, "deck.pptx")
        usage = observation.slide_color_usage

        assert observation.slide_count == 2
        assert usage["#ff0000"].frequency == 3
        assert usage["#ff0000"].contexts == ["background", "text"]
        assert usage["#ff0000"].confidence == 0.75
        assert usage["#00ff00"].frequency == 1
        assert usage["#00ff00"].contexts == ["text"]

    def test_near_white_and_black_are_filtered(self):
        shapes = filled_shape("FFFFFF") + filled_shape("000000") + text_shape("0A0A0A") + text_shape("F5F5F5")
        data = build_package(slides=[slide_xml(shapes + filled_shape("336699"))])

        usage = self.extractor.extract(data, "deck.pptx").slide_color_usage

        assert list(usage) == ["#336699"]

    def test_numeric_val_attributes_are_not_colors(self):
        shape = '''<p:sp><p:txBody><a:p><a:pPr>
            <a:lnSpc><a:spcPct val="800000"/></a:lnSpc>
        </a:pPr></a:p></p:txBody></p:sp>'''
        data = build_package(slides=[slide_xml(shape)])

        assert self.extractor.extract(data, "deck.pptx").slide_color_usage == {}

    def test_system_color_in_slide(self):
        shape = '''<p:sp><p:spPr><a:solidFill>
            <a:sysClr val="highlight" lastClr="3399FF"/>
        </a:solidFill></p:spPr></p:sp>'''
        data = build_package(slides=[slide_xml(shape)])

        usage = self.extractor.extract(data, "deck.pptx").slide_color_usage

        assert usage["#3399ff"].frequency == 1
        assert usage["#3399ff"].contexts == ["background"]

    def test_coordinate_samples(self, red_green_deck):
        observation = self.extractor.extract(red_green_deck, "deck.pptx")

        assert observation.coordinate_samples == [8, 16, 24, 32]

    def test_coordinates_deduplicated_per_slide(self):
        slide = slide_xml(filled_shape("336699", 8, 8) + filled_shape("336699", 8, 300))
        data = build_package(slides=[slide, slide])

        observation = self.extractor.extract(data, "deck.pptx")

        assert observation.coordinate_samples == [8, 8]

    def test_non_ascii_digit_attribute_is_ignored(self):
        shape = '''<p:sp><p:spPr>
            <a:xfrm><a:off x="\u00b2" y="76200"/></a:xfrm>
        </p:spPr></p:sp>'''
        data = build_package(slides=[slide_xml(shape)])

        observation = self.extractor.extract(data, "deck.pptx")

        assert observation.slide_count == 1
        assert observation.coordinate_samples == [8]

    def test_emu_to_px(self):
        assert emu_to_px(914400) == 96
        assert emu_to_px(76200) == 8
        assert emu_to_px(4762) == 0
        assert emu_to_px(4763) == 1


class TestMediaExtraction:
    """Tests for embedded media classification."""

    def test_logo_and_photo(self):
        data = build_package(media={
            "logo.png": b"\x89PNG" + b"0" * 1000,
            "image1.jpeg": b"0" * 150_000,
            "media1.mp4": b"0" * 10,
        })

        observation = OOXMLExtractor().extract(data, "deck.pptx")
        assets = {asset.filename: asset for asset in observation.media_assets}

        assert set(assets) == {"logo.png", "image1.jpeg"}
        assert assets["logo.png"].is_logo
        assert assets["logo.png"].logo_confidence == 1.0
        assert assets["logo.png"].source == "deck.pptx"
        assert not assets["image1.jpeg"].is_logo
        assert assets["image1.jpeg"].logo_confidence == 0.3
        assert assets["image1.jpeg"].size == 150_000


class TestInvalidInput:
    """Tests for invalid packages."""

    def test_not_a_zip(self):
        with pytest.raises(InvalidContainer):
            OOXMLExtractor().extract(b"PK but not really", "broken.pptx")

    def test_empty_package(self):
        observation = OOXMLExtractor().extract(build_package(), "empty.pptx")

        assert observation.slide_count == 0
        assert observation.slide_color_usage == {}
        assert observation.coordinate_samples == []
