"""Synthesized ODOL fixtures.

OdolBuilder writes the same byte layout the decoder reads. Compressed arrays
can be emitted either stored (marker 0) or as a real LZO1X stream built from a
single literal run, which liblzo decodes without needing a compressor.
"""

from __future__ import annotations

import struct
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Tuple

import pytest

LZO_EOF = b"\x11\x00\x00"


def lzo_literal_stream(data: bytes) -> bytes:
    """Encode data as one LZO1X literal run followed by the end-of-stream marker."""
    n = len(data)
    assert n >= 1
    if n <= 238:
        return bytes([17 + n]) + data + LZO_EOF
    # long run: 0, zero bytes adding 255 each, then the remainder (run = 18 + total)
    r = n - 18
    k = (r - 1) // 255
    return b"\x00" + b"\x00" * k + bytes([r - 255 * k]) + data + LZO_EOF


class Bytes:
    def __init__(self):
        self.buf = bytearray()

    def tell(self) -> int:
        return len(self.buf)

    def raw(self, b: bytes) -> "Bytes":
        self.buf += b
        return self

    def u8(self, v: int) -> "Bytes":
        return self.raw(struct.pack("<B", v))

    def u16(self, v: int) -> "Bytes":
        return self.raw(struct.pack("<H", v))

    def i16(self, v: int) -> "Bytes":
        return self.raw(struct.pack("<h", v))

    def u32(self, v: int) -> "Bytes":
        return self.raw(struct.pack("<I", v))

    def i32(self, v: int) -> "Bytes":
        return self.raw(struct.pack("<i", v))

    def f32(self, v: float) -> "Bytes":
        return self.raw(struct.pack("<f", v))

    def vec3(self, v: Sequence[float]) -> "Bytes":
        return self.raw(struct.pack("<3f", *v))

    def strz(self, s: str) -> "Bytes":
        return self.raw(s.encode("utf-8") + b"\x00")

    def zeros(self, n: int) -> "Bytes":
        return self.raw(b"\x00" * n)

    def carr(self, payload: bytes, lzo: bool = False) -> "Bytes":
        if lzo:
            return self.u8(2).raw(lzo_literal_stream(payload))
        return self.u8(0).raw(payload)

    def bytes(self) -> bytes:
        return bytes(self.buf)


@dataclass
class SectionSpec:
    face_from: int
    face_to: int
    texture: int = 0
    material: int = -1
    collision: bool = False


@dataclass
class SelectionSpec:
    name: str
    faces: List[int] = field(default_factory=list)
    sections: List[int] = field(default_factory=list)
    vertices: List[int] = field(default_factory=list)
    weights: bytes = b""


@dataclass
class LodSpec:
    resolution: float = 1.0
    points: List[Tuple[float, float, float]] = field(default_factory=list)
    faces: List[List[int]] = field(default_factory=list)
    textures: List[str] = field(default_factory=list)
    materials: List[str] = field(default_factory=list)
    sections: List[SectionSpec] = field(default_factory=list)
    selections: List[SelectionSpec] = field(default_factory=list)
    properties: Dict[str, str] = field(default_factory=dict)
    proxies: List[str] = field(default_factory=list)
    uv_rect: Tuple[float, float, float, float] = (0.0, 0.0, 1.0, 1.0)
    # raw quantized (u, v) pairs; None means one entry per point at the rect minimum
    uvs: Optional[List[Tuple[int, int]]] = None
    shared_uv: Optional[Tuple[int, int]] = None
    extra_uv_sets: int = 0
    num_frames: int = 0
    point_count_override: Optional[int] = None
    lzo: bool = False


def model_info(version: int, bounding_center=(0.0, 0.0, 0.0)) -> bytes:
    b = Bytes()
    b.u32(0).f32(2.0).f32(2.0)
    b.u32(0).u32(0).u32(0)
    b.vec3((0, 0, 0))
    b.u32(0xFFFFFFFF).u32(0xFF0000FF)
    b.f32(0.0)
    b.vec3((-1, -1, -1)).vec3((1, 1, 1))
    b.f32(1.0).f32(1.0)
    b.vec3((-1, -1, -1)).vec3((1, 1, 1))
    b.vec3(bounding_center)
    b.vec3((0, 0, 0))
    b.vec3((0, 0, 0))
    for _ in range(9):
        b.f32(0.0)
    b.u8(1).u8(0).u8(0).u8(1)
    if version >= 73:
        b.u8(0)
    for _ in range(6):
        b.f32(0.0)
    b.u8(0).i32(-1).u8(0).f32(0.0).u8(0)
    return b.bytes()


def build_lod(spec: LodSpec, version: int = 73) -> bytes:
    b = Bytes()

    b.u32(len(spec.proxies))
    for name in spec.proxies:
        b.strz(name).zeros(64)

    b.u32(2).u32(0).u32(1)          # subskeleton
    b.u32(1).u32(2).u32(0).u32(1)   # one bone with two links

    num_points = len(spec.points)
    b.u32(num_points)
    b.zeros(52)

    b.u32(len(spec.textures))
    for t in spec.textures:
        b.strz(t)

    b.u32(len(spec.materials))
    for m in spec.materials:
        b.strz(m).zeros(120)
        b.strz("surface")
        b.u32(0).u32(0)
        b.u32(1).u32(1)                                  # one stage, one transform
        b.u32(0).strz("stage0.paa").u32(0).u8(0)
        b.u32(0).zeros(48)
        b.u32(0).strz("").u32(0).u8(0)

    b.u32(2).u16(0).u16(1)
    b.u32(0)

    b.u32(len(spec.faces))
    b.u32(sum(len(f) * 4 + 1 for f in spec.faces)).u16(0)
    for f in spec.faces:
        b.u8(len(f))
        for p in f:
            b.u32(p)

    b.u32(len(spec.sections))
    for s in spec.sections:
        b.u32(s.face_from).u32(s.face_to)
        b.zeros(12)
        b.u16(s.texture)
        b.u32(0)
        b.i32(s.material)
        if s.material == -1:
            b.u8(0)
        b.u32(1).u32(0)
        if s.collision:
            b.u32(1).zeros(44)
        else:
            b.u32(0)

    b.u32(len(spec.selections))
    for sel in spec.selections:
        b.strz(sel.name)
        b.u32(len(sel.faces))
        if sel.faces:
            b.carr(struct.pack(f"<{len(sel.faces)}I", *sel.faces), spec.lzo)
        b.u32(0).u8(0)
        b.u32(len(sel.sections))
        if sel.sections:
            b.carr(struct.pack(f"<{len(sel.sections)}I", *sel.sections), spec.lzo)
        b.u32(len(sel.vertices))
        if sel.vertices:
            b.carr(struct.pack(f"<{len(sel.vertices)}I", *sel.vertices), spec.lzo)
        b.u32(len(sel.weights))
        if sel.weights:
            b.carr(sel.weights, spec.lzo)

    b.u32(len(spec.properties))
    for k, v in spec.properties.items():
        b.strz(k).strz(v)

    b.u32(spec.num_frames)
    b.zeros(3 * 4 + 1 + 4)

    b.u32(num_points).u8(1).u32(0)   # point flags, shared

    _uv_set(b, spec, num_points)
    if version >= 73:
        b.u32(1 + spec.extra_uv_sets)
        for _ in range(spec.extra_uv_sets):
            _uv_set(b, spec, num_points)

    b.u32(num_points if spec.point_count_override is None else spec.point_count_override)
    if num_points:
        flat = [c for p in spec.points for c in p]
        b.carr(struct.pack(f"<{len(flat)}f", *flat), spec.lzo)

    return b.bytes()


def _uv_set(b: Bytes, spec: LodSpec, num_points: int) -> None:
    for c in spec.uv_rect:
        b.f32(c)
    if spec.shared_uv is not None:
        b.u32(num_points)
        if num_points:
            b.u8(1).i16(spec.shared_uv[0]).i16(spec.shared_uv[1])
        return
    uvs = spec.uvs if spec.uvs is not None else [(-0x7FFF, -0x7FFF)] * num_points
    b.u32(len(uvs))
    if uvs:
        flat = [c for uv in uvs for c in uv]
        b.u8(0).carr(struct.pack(f"<{len(flat)}h", *flat), spec.lzo)


def build_odol(
    lods: Sequence[LodSpec],
    version: int = 73,
    magic: bytes = b"ODOL",
    skeleton: Optional[List[Tuple[str, str]]] = None,
    animations: Optional[bytes] = None,
    bounding_center=(0.0, 0.0, 0.0),
) -> bytes:
    """Assemble a full ODOL file; LOD blocks follow the header in order."""
    bodies = [build_lod(spec, version) for spec in lods]

    def header(offsets: List[int]) -> bytes:
        b = Bytes()
        b.raw(magic).u32(version).u32(42).strz("muzzle")
        b.u32(len(lods))
        for spec in lods:
            b.f32(spec.resolution)
        b.raw(model_info(version, bounding_center))
        if skeleton:
            b.strz("OFP2_ManSkeleton").u8(1).u32(len(skeleton))
            for name, parent in skeleton:
                b.strz(name).strz(parent)
            b.u8(0)
        else:
            b.strz("")
        b.u8(0)
        b.u32(2).f32(0.5).f32(0.25)
        b.f32(10.0).f32(0.1).f32(200.0).f32(0.005)
        b.raw(bytes(range(14)))
        b.u32(5).u8(1).u8(0).u8(2).u8(0)   # min shadow, blend, class, destruct, frequent
        b.u32(0).u32(0)
        for i in range(len(lods)):
            b.u32(i).u32(i + 1).u32(7)
        if animations is None:
            b.u8(0)
        else:
            b.u8(1).raw(animations)
        for o in offsets:
            b.u32(o)
        return b.bytes()

    size = len(header([0] * len(lods)))
    offsets = []
    for body in bodies:
        offsets.append(size)
        size += len(body)
    return header(offsets) + b"".join(bodies)


def quad_lod(**kw) -> LodSpec:
    """Two quads over eight points with one texture section each."""
    spec = LodSpec(
        points=[(float(i), float(i) * 2, float(i) * 3) for i in range(8)],
        faces=[[0, 1, 2, 3], [4, 5, 6, 7]],
        textures=["a.paa", "b.paa"],
        materials=["a.rvmat"],
        sections=[SectionSpec(0, 17, texture=0, material=0), SectionSpec(17, 34, texture=1)],
        selections=[SelectionSpec("top", faces=[0])],
        uvs=[(-0x7FFF, 0x7FFF)] * 8,
    )
    for k, v in kw.items():
        setattr(spec, k, v)
    return spec


@pytest.fixture
def odol_file(tmp_path):
    def write(data: bytes, name: str = "model.p3d"):
        p = tmp_path / name
        p.write_bytes(data)
        return str(p)

    return write
