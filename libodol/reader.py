"""libodol.reader

Entry point for decoding an ODOL file.

  header    once, from the start of the file
  LODs      one block per directory entry, each at its own absolute offset
  assembly  decoded streams -> Mesh

Decoding is all-or-nothing: the first OdolReadError propagates and no partial
Mesh is returned. The input file stays open only for the duration of the call.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import BinaryIO, List, Optional

from .assemble import assemble_lod, assemble_mesh
from .cursor import Cursor
from .header import parse_header
from .lod import parse_lod
from .model import LodData, Mesh, OdolHeader
from .profiles import profile_for

logger = logging.getLogger(__name__)


@dataclass
class DecodeOptions:
    # Add the model-info bounding center to every point. Off by default: the
    # stored coordinates are already in model space.
    translate_points: bool = False


@dataclass
class OdolFile:
    header: OdolHeader
    lods: List[LodData]


def decode_odol(f: BinaryIO, log: Optional[logging.Logger] = None) -> OdolFile:
    """Decode the header and every LOD block without assembling a mesh."""
    log = log or logger
    cur = Cursor(f)
    header = parse_header(cur, log)
    profile = profile_for(header.version)

    lods: List[LodData] = []
    for resolution, offset in zip(header.resolutions, header.lod_offsets):
        cur.seek(offset)
        lods.append(parse_lod(cur, profile, resolution, log))

    return OdolFile(header=header, lods=lods)


def build_mesh(odol: OdolFile, options: Optional[DecodeOptions] = None, log: Optional[logging.Logger] = None) -> Mesh:
    options = options or DecodeOptions()
    translate = odol.header.model_info.bounding_center if options.translate_points else None
    return assemble_mesh(assemble_lod(lod, translate, log) for lod in odol.lods)


def read_odol(path: str, options: Optional[DecodeOptions] = None, log: Optional[logging.Logger] = None) -> Mesh:
    with open(path, "rb") as f:
        odol = decode_odol(f, log)
    return build_mesh(odol, options, log)
