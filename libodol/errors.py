"""libodol.errors

Every failure the decoder can report. All of them derive from OdolReadError so
callers embedding the decoder can catch a single type; the subclass names are
the error kinds surfaced by the CLI.
"""

from __future__ import annotations

from typing import Optional


class OdolReadError(RuntimeError):
    """Base class for all ODOL decode failures."""

    def __init__(self, message: str, offset: Optional[int] = None):
        if offset is not None:
            message = f"{message} (at offset 0x{offset:X})"
        super().__init__(message)
        self.offset = offset

    @property
    def kind(self) -> str:
        return type(self).__name__


class BadMagic(OdolReadError):
    pass


class UnsupportedVersion(OdolReadError):
    pass


class Truncated(OdolReadError):
    pass


class InvalidText(OdolReadError):
    pass


class AmbiguousLength(OdolReadError):
    pass


class UnsupportedCompression(OdolReadError):
    pass


class CorruptData(OdolReadError):
    """The LZO decoder rejected a block for a reason other than its length."""


class VertexIndexOutOfRange(OdolReadError):
    pass


class SelectionIndexOutOfRange(OdolReadError):
    pass


class StructuralAssertionFailed(OdolReadError):
    pass
