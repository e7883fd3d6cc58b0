"""Exceptions for the BrandLens brand inference pipeline."""

from typing import List, Optional


class BrandLensError(Exception):
    """Base class for all BrandLens errors."""
    pass


class InvalidContainer(BrandLensError):
    """Raised when document bytes are not a readable ZIP container."""

    def __init__(self, message: str, source: Optional[str] = None):
        """
        Initialize InvalidContainer.

        Args:
            message: Human-readable error message
            source: Filename of the offending document, if known
        """
        super().__init__(message)
        self.source = source

    def __str__(self) -> str:
        """Return formatted error message."""
        msg = super().__str__()
        if self.source:
            msg = f"{self.source}: {msg}"
        return msg


class DecodeError(BrandLensError):
    """Raised when a container entry cannot be decoded as text."""

    def __init__(self, message: str, entry_name: Optional[str] = None):
        super().__init__(message)
        self.entry_name = entry_name

    def __str__(self) -> str:
        msg = super().__str__()
        if self.entry_name:
            msg = f"{msg} (entry: {self.entry_name})"
        return msg


class NoAnalyzableFiles(BrandLensError):
    """Raised when a batch contains no file with a supported extension."""

    def __init__(self, filenames: Optional[List[str]] = None):
        """
        Initialize NoAnalyzableFiles.

        Args:
            filenames: Names of the files that were rejected
        """
        self.filenames = filenames or []
        if self.filenames:
            message = f"No analyzable files found among: {', '.join(self.filenames)}"
        else:
            message = "No analyzable files found"
        super().__init__(message)


class UnsupportedDocument(BrandLensError):
    """Raised when no analyzer is registered for a document's type."""
    pass
