from __future__ import annotations

import logging
import os
from typing import List, Optional

from .model import LodSummary, OdolSummary
from .reader import decode_odol


def summarize_odol(path: str, log: Optional[logging.Logger] = None) -> OdolSummary:
    size = os.path.getsize(path)
    with open(path, "rb") as f:
        odol = decode_odol(f, log)

    header = odol.header
    lods: List[LodSummary] = []
    for lod, offset in zip(odol.lods, header.lod_offsets):
        lods.append(
            LodSummary(
                resolution=lod.resolution,
                offset=offset,
                points=len(lod.points),
                faces=len(lod.faces),
                textures=list(lod.textures),
                materials=[m.path for m in lod.materials],
                selections=[s.name for s in lod.selections],
            )
        )

    return OdolSummary(
        path=path,
        file_size=size,
        version=header.version,
        app_id=header.app_id,
        skeleton_name=header.skeleton_name,
        bone_count=len(header.bones),
        animation_count=len(header.animations.animations) if header.animations else 0,
        lods=lods,
    )
