"""libodol.compression

Compressed arrays inside ODOL LOD blocks.

Layout:
  u8   marker      0 = stored, 2 = LZO1X
  ...  payload     stored: exactly output_size bytes
                   LZO1X: a raw (headerless) LZO1X stream

The compressed length of an LZO1X block is not written anywhere. We recover it
by bisection: feed the decoder a candidate prefix of the block and let its
complaint decide the direction. A too-short prefix makes the decoder run out of
input, a too-long one leaves input unconsumed after the end-of-stream marker,
and those two answers are monotone in the candidate length.
"""

from __future__ import annotations

import logging
import re
from typing import Callable, Optional

import lzo

from .cursor import Cursor
from .errors import AmbiguousLength, CorruptData, Truncated, UnsupportedCompression

logger = logging.getLogger(__name__)

MARKER_STORED = 0
MARKER_LZO1X = 2

# liblzo2 status codes, as reported in python-lzo's error message.
LZO_E_INPUT_OVERRUN = -4
LZO_E_EOF_NOT_FOUND = -7
LZO_E_INPUT_NOT_CONSUMED = -8

_LZO_CODE_RE = re.compile(r"(-?\d+)\s*$")

# A long match costs one input byte per 255 output bytes, so no LZO1X stream
# expands further than this.
LZO1X_MAX_EXPANSION = 256


class InputOverrun(Exception):
    """The decoder needs more input than it was given."""


class InputNotConsumed(Exception):
    """The decoder reached end-of-stream with input left over."""


Decoder = Callable[[bytes, int], bytes]


def lzo1x_max_compressed_size(output_size: int) -> int:
    # worst-case expansion of incompressible data under LZO1X
    return output_size + output_size // 16 + 64 + 3


def _lzo_status(err: Exception) -> Optional[int]:
    m = _LZO_CODE_RE.search(str(err))
    return int(m.group(1)) if m else None


def lzo1x_decompress(buf: bytes, output_size: int) -> bytes:
    """Decode a headerless LZO1X stream into at most output_size bytes."""
    try:
        return lzo.decompress(buf, False, output_size)
    except lzo.error as e:
        status = _lzo_status(e)
        if status in (LZO_E_INPUT_OVERRUN, LZO_E_EOF_NOT_FOUND):
            raise InputOverrun(str(e)) from e
        if status == LZO_E_INPUT_NOT_CONSUMED:
            raise InputNotConsumed(str(e)) from e
        raise CorruptData(f"LZO1X decode failed: {e}") from e


def read_compressed_array(
    cur: Cursor,
    output_size: int,
    decoder: Decoder = lzo1x_decompress,
    log: Optional[logging.Logger] = None,
) -> bytes:
    """Read one compressed array and return exactly output_size bytes.

    On return the cursor sits just past the block, whatever its encoding.
    """
    log = log or logger
    marker_ofs = cur.tell()
    marker = cur.u8()

    if marker == MARKER_STORED:
        return cur.read(output_size)

    if marker != MARKER_LZO1X:
        raise UnsupportedCompression(f"Unknown compression marker {marker}", marker_ofs)

    start = cur.tell()
    if output_size > cur.remaining() * LZO1X_MAX_EXPANSION:
        raise Truncated(
            f"LZO1X block for {output_size} bytes cannot fit in the {cur.remaining()} bytes left", start
        )

    low = 0
    high = lzo1x_max_compressed_size(output_size) + 1

    while high - low > 1:
        size = low + (high - low) // 2
        log.debug("    guessing LZO size: %d (%d - %d)", size, low, high)

        cur.seek(start)
        try:
            buf = cur.read(size)
        except Truncated:
            high = size
            continue

        try:
            out = decoder(buf, output_size)
        except InputOverrun:
            low = size
            continue
        except InputNotConsumed:
            high = size
            continue

        if len(out) != output_size:
            raise CorruptData(
                f"LZO1X block decoded to {len(out)} bytes, expected {output_size}", start
            )
        return out

    raise AmbiguousLength(
        f"Could not determine LZO1X block length for {output_size} output bytes", start
    )
