"""Shared fixtures for building synthetic presentation packages."""

import io
import struct
import zipfile
from typing import Dict, Optional, Sequence

import pytest

A_NS = "http://schemas.openxmlformats.org/drawingml/2006/main"
P_NS = "http://schemas.openxmlformats.org/presentationml/2006/main"

EMU_PER_PX = 9525


def theme_xml(color_scheme: str = "", font_scheme: str = "", extra: str = "") -> str:
    """Wrap color and font scheme fragments in a theme part."""
    return f'''<?xml version="1.0" encoding="UTF-8" standalone="yes"?>
<a:theme xmlns:a="{A_NS}" name="Test Theme">
    <a:themeElements>
        <a:clrScheme name="Test">{color_scheme}</a:clrScheme>
        <a:fontScheme name="Test">{font_scheme}</a:fontScheme>
        {extra}
    </a:themeElements>
</a:theme>'''


def master_xml(body: str) -> str:
    return f'''<?xml version="1.0" encoding="UTF-8" standalone="yes"?>
<p:sldMaster xmlns:a="{A_NS}" xmlns:p="{P_NS}">
    <p:txStyles>{body}</p:txStyles>
</p:sldMaster>'''


def slide_xml(shapes: str) -> str:
    return f'''<?xml version="1.0" encoding="UTF-8" standalone="yes"?>
<p:sld xmlns:a="{A_NS}" xmlns:p="{P_NS}">
    <p:cSld><p:spTree>{shapes}</p:spTree></p:cSld>
</p:sld>'''


def filled_shape(fill: str, x_px: int = 0, y_px: int = 0) -> str:
    """A shape with a solid background fill at the given pixel offset."""
    return f'''<p:sp>
    <p:spPr>
        <a:xfrm><a:off x="{x_px * EMU_PER_PX}" y="{y_px * EMU_PER_PX}"/></a:xfrm>
        <a:solidFill><a:srgbClr val="{fill}"/></a:solidFill>
    </p:spPr>
</p:sp>'''


def text_shape(color: str, text: str = "Text") -> str:
    """A shape whose single run is colored."""
    return f'''<p:sp>
    <p:txBody><a:p><a:r>
        <a:rPr lang="en-US"><a:solidFill><a:srgbClr val="{color}"/></a:solidFill></a:rPr>
        <a:t>{text}</a:t>
    </a:r></a:p></p:txBody>
</p:sp>'''


def build_package(
    theme: Optional[str] = None,
    masters: Sequence[str] = (),
    slides: Sequence[str] = (),
    media: Optional[Dict[str, bytes]] = None
) -> bytes:
    """Zip parts into an in-memory presentation package."""
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w", zipfile.ZIP_DEFLATED) as zf:
        zf.writestr("[Content_Types].xml", "<Types/>")
        if theme is not None:
            zf.writestr("ppt/theme/theme1.xml", theme)
        for index, master in enumerate(masters, start=1):
            zf.writestr(f"ppt/slideMasters/slideMaster{index}.xml", master)
        for index, slide in enumerate(slides, start=1):
            zf.writestr(f"ppt/slides/slide{index}.xml", slide)
        for name, data in (media or {}).items():
            zf.writestr(f"ppt/media/{name}", data)
    return buffer.getvalue()


CENTRAL_HEADER = b"PK\x01\x02"


def rewrite_central_record(
    package: bytes,
    name: str,
    flag_bits: int = 0,
    compress_type: Optional[int] = None
) -> bytes:
    """
    Patch the central directory record of one entry.

    Lets tests produce encrypted or oddly compressed members that
    zipfile itself refuses to write.
    """
    data = bytearray(package)
    encoded = name.encode("ascii")
    offset = data.find(CENTRAL_HEADER)
    while offset != -1:
        name_length = struct.unpack_from("<H", data, offset + 28)[0]
        if bytes(data[offset + 46:offset + 46 + name_length]) == encoded:
            flags = struct.unpack_from("<H", data, offset + 8)[0]
            struct.pack_into("<H", data, offset + 8, flags | flag_bits)
            if compress_type is not None:
                struct.pack_into("<H", data, offset + 10, compress_type)
            return bytes(data)
        offset = data.find(CENTRAL_HEADER, offset + 4)
    raise KeyError(name)


@pytest.fixture
def red_green_deck() -> bytes:
    """Theme declares accent1 red; slides use red three times and green once."""
    theme = theme_xml('<a:accent1><a:srgbClr val="FF0000"/></a:accent1>')
    slides = [
        slide_xml(filled_shape("FF0000", 8, 16) + text_shape("FF0000")),
        slide_xml(filled_shape("FF0000", 24, 32) + text_shape("00FF00")),
    ]
    return build_package(theme=theme, slides=slides)
