"""libodol.profiles

On-disk revisions of ODOL that this decoder understands.

The two revisions share every sub-decoder and differ only in a handful of
fields, so each one is a small record of switches rather than a separate
decode routine. Anything not listed here is rejected with UnsupportedVersion.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict

from .errors import UnsupportedVersion


@dataclass(frozen=True)
class FormatProfile:
    version: int
    # ModelInfo carries the ai_covers byte
    has_ai_covers: bool
    # LOD blocks carry a UV-set count followed by the extra sets
    has_uv_set_count: bool

    @property
    def model_info_size(self) -> int:
        return 216 if self.has_ai_covers else 215


PROFILES: Dict[int, FormatProfile] = {
    72: FormatProfile(version=72, has_ai_covers=False, has_uv_set_count=False),
    73: FormatProfile(version=73, has_ai_covers=True, has_uv_set_count=True),
}


def profile_for(version: int) -> FormatProfile:
    try:
        return PROFILES[version]
    except KeyError:
        known = ", ".join(str(v) for v in sorted(PROFILES))
        raise UnsupportedVersion(f"ODOL version {version} is not supported (known: {known})") from None
