"""libodol.cursor

Random-access little-endian reader over a seekable binary stream.

ODOL is not read front to back: the header points at LOD blocks scattered
through the file, so the cursor wraps the open file object directly instead of
slurping it, and every read is bounds-checked so a short file surfaces as
Truncated rather than as a struct.error somewhere deep in a decoder.
"""

from __future__ import annotations

import io
import struct
from typing import BinaryIO, Tuple

from .errors import InvalidText, Truncated

_U16 = struct.Struct("<H")
_I16 = struct.Struct("<h")
_U32 = struct.Struct("<I")
_I32 = struct.Struct("<i")
_F32 = struct.Struct("<f")
_VEC3 = struct.Struct("<3f")

_STRZ_CHUNK = 64


class Cursor:
    __slots__ = ("f", "size")

    def __init__(self, f: BinaryIO):
        self.f = f
        pos = f.tell()
        self.size = f.seek(0, io.SEEK_END)
        f.seek(pos, io.SEEK_SET)

    @classmethod
    def from_bytes(cls, data: bytes) -> "Cursor":
        return cls(io.BytesIO(data))

    def tell(self) -> int:
        return self.f.tell()

    def seek(self, ofs: int) -> None:
        if ofs < 0:
            raise Truncated(f"Seek before start of stream: {ofs}")
        self.f.seek(ofs, io.SEEK_SET)

    def skip(self, n: int) -> None:
        # Relative seeks may land past EOF; the next read reports it.
        self.seek(self.tell() + n)

    def remaining(self) -> int:
        return max(0, self.size - self.tell())

    def read(self, n: int) -> bytes:
        ofs = self.tell()
        # counts come from the file; never ask the stream for more than it holds
        if n > self.size - ofs:
            raise Truncated(f"Unexpected EOF, need {n} bytes, got {self.remaining()}", ofs)
        b = self.f.read(n)
        if len(b) != n:
            raise Truncated(f"Unexpected EOF, need {n} bytes, got {len(b)}", ofs)
        return b

    def u8(self) -> int:
        return self.read(1)[0]

    def u16(self) -> int:
        return _U16.unpack(self.read(2))[0]

    def i16(self) -> int:
        return _I16.unpack(self.read(2))[0]

    def u32(self) -> int:
        return _U32.unpack(self.read(4))[0]

    def i32(self) -> int:
        return _I32.unpack(self.read(4))[0]

    def f32(self) -> float:
        return _F32.unpack(self.read(4))[0]

    def vec3(self) -> Tuple[float, float, float]:
        return _VEC3.unpack(self.read(12))

    def strz(self) -> str:
        start = self.tell()
        parts = []
        while True:
            chunk = self.f.read(_STRZ_CHUNK)
            if not chunk:
                raise Truncated("Unterminated string", start)
            end = chunk.find(b"\x00")
            if end >= 0:
                parts.append(chunk[:end])
                # leave the stream just past the terminator
                self.f.seek(end + 1 - len(chunk), io.SEEK_CUR)
                break
            parts.append(chunk)

        raw = b"".join(parts)
        try:
            return raw.decode("utf-8")
        except UnicodeDecodeError as e:
            raise InvalidText(f"String is not valid UTF-8: {raw[:32]!r}", start) from e
