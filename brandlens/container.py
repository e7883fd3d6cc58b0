"""ZIP container access for OOXML document packages."""

import codecs
import io
import logging
import lzma
import re
import zipfile
import zlib
from typing import List, Optional, Pattern, Union

from .exceptions import DecodeError, InvalidContainer

logger = logging.getLogger(__name__)

_DIGITS_RE = re.compile(r"(\d+)")


def _natural_key(path: str) -> List[Union[int, str]]:
    """Sort key that orders 'slide2.xml' before 'slide10.xml'."""
    return [int(part) if part.isdecimal() else part.lower() for part in _DIGITS_RE.split(path)]


class Entry:
    """A single member of a container."""

    def __init__(self, archive: zipfile.ZipFile, info: zipfile.ZipInfo):
        self._archive = archive
        self._info = info

    @property
    def name(self) -> str:
        return self._info.filename

    @property
    def basename(self) -> str:
        return self._info.filename.rsplit("/", 1)[-1]

    @property
    def size(self) -> int:
        return self._info.file_size

    def read_bytes(self) -> bytes:
        """
        Read the raw entry bytes.

        Raises:
            DecodeError: If the member is damaged, encrypted or uses an
                unsupported compression method
        """
        try:
            return self._archive.read(self._info)
        except (zipfile.BadZipFile, zlib.error, lzma.LZMAError, EOFError, OSError) as e:
            raise DecodeError(f"Could not decompress entry: {e}", entry_name=self.name)
        except (RuntimeError, NotImplementedError) as e:
            # Encrypted members and unknown compression methods
            raise DecodeError(f"Could not read entry: {e}", entry_name=self.name)

    def read_text(self) -> str:
        """
        Decode the entry as text.

        UTF-8 is assumed unless the entry starts with a UTF-16 byte order mark.

        Raises:
            DecodeError: If the bytes are not valid in the detected encoding
        """
        data = self.read_bytes()
        if data.startswith((codecs.BOM_UTF16_LE, codecs.BOM_UTF16_BE)):
            encoding = "utf-16"
        else:
            encoding = "utf-8-sig"

        try:
            return data.decode(encoding)
        except UnicodeDecodeError as e:
            raise DecodeError(f"Entry is not valid {encoding}: {e}", entry_name=self.name)

    def __repr__(self) -> str:
        return f"Entry({self.name!r}, size={self.size})"


class Container:
    """An opened ZIP package with path and pattern based entry lookup."""

    def __init__(self, archive: zipfile.ZipFile, source: Optional[str] = None):
        self._archive = archive
        self.source = source

    @property
    def names(self) -> List[str]:
        return [info.filename for info in self._archive.infolist() if not info.is_dir()]

    def get_entry(self, path: str) -> Optional[Entry]:
        """Return the entry at an exact internal path, or None."""
        try:
            info = self._archive.getinfo(path)
        except KeyError:
            return None
        return Entry(self._archive, info)

    def find_entries(self, pattern: Union[str, Pattern]) -> List[Entry]:
        """
        Find entries whose full internal path matches a regular expression.

        Args:
            pattern: Regex matched against the whole path, e.g. ``ppt/slides/slide\\d+\\.xml``

        Returns:
            Matching entries in natural order, so slide2 precedes slide10
        """
        regex = re.compile(pattern) if isinstance(pattern, str) else pattern
        infos = [
            info for info in self._archive.infolist()
            if not info.is_dir() and regex.fullmatch(info.filename)
        ]
        infos.sort(key=lambda info: _natural_key(info.filename))
        return [Entry(self._archive, info) for info in infos]

    def close(self) -> None:
        self._archive.close()

    def __enter__(self) -> "Container":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


def open_container(data: bytes, source: Optional[str] = None) -> Container:
    """
    Open a ZIP-based document package from memory.

    Args:
        data: Raw document bytes
        source: Document name used in error messages

    Returns:
        Container over the package

    Raises:
        InvalidContainer: If the bytes are not a valid ZIP archive
    """
    if not data:
        raise InvalidContainer("Document is empty", source=source)

    try:
        archive = zipfile.ZipFile(io.BytesIO(data))
    except (zipfile.BadZipFile, zipfile.LargeZipFile, ValueError, EOFError) as e:
        raise InvalidContainer(f"Not a valid ZIP container: {e}", source=source)

    logger.debug(f"Opened container {source or '<memory>'} with {len(archive.namelist())} entries")
    return Container(archive, source=source)
