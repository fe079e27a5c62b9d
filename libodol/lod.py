"""libodol.lod

Per-LOD geometry block. The reader seeks to the offset recorded in the header
and calls parse_lod; everything after that is strictly sequential.

Most of the block is engine data we do not reconstruct (proxy transforms, bone
links, edge lists, collision info). Those are skipped by exact size so the
cursor stays aligned for the parts we do keep: textures, materials, faces,
sections, named selections, UVs and points.
"""

from __future__ import annotations

import logging
import struct
from typing import Dict, List, Optional, Tuple

from .compression import read_compressed_array
from .cursor import Cursor
from .errors import SelectionIndexOutOfRange, StructuralAssertionFailed
from .model import UV, LodData, Material, Section, Selection, Vec3
from .profiles import FormatProfile

logger = logging.getLogger(__name__)

FILL_LITERAL = 0
FILL_SHARED = 1

PROXY_TRANSFORM_SIZE = 12 * 4 + 4 * 4     # 4x3 matrix + sequence/selection/bone/section ids
LOD_AGGREGATE_SIZE = 3 * 4 + 3 * 12 + 4   # face area, hints, bbox min/max/center, radius
MATERIAL_PARAMS_SIZE = 4 + 6 * 16 + 5 * 4  # type, 6 RGBA colors, power + shader/light/fog ids
MATERIAL_TRANSFORM_SIZE = 4 + 3 * 4 * 4   # uv source + 4x3 matrix
SECTION_COLLISION_SIZE = 2 * 12 + 4 + 12 + 4

UV_SCALE = 2 * 0x7FFF


def _u32_array(data: bytes) -> List[int]:
    return list(struct.unpack(f"<{len(data) // 4}I", data))


# -----------------------------
# Skipped engine tables
# -----------------------------

def parse_proxies(cur: Cursor, log: logging.Logger) -> List[str]:
    num_proxies = cur.u32()
    log.debug("  num proxies: %d", num_proxies)
    names = []
    for _ in range(num_proxies):
        name = cur.strz()
        log.debug("    - %s", name)
        cur.skip(PROXY_TRANSFORM_SIZE)
        names.append(name)
    return names


def skip_bone_tables(cur: Cursor, log: logging.Logger) -> None:
    num_subskeleton = cur.u32()
    log.debug("  num bones subskeleton: %d", num_subskeleton)
    cur.skip(4 * num_subskeleton)

    num_skeleton = cur.u32()
    log.debug("  num bones skeleton: %d", num_skeleton)
    for _ in range(num_skeleton):
        num_links = cur.u32()
        cur.skip(4 * num_links)


def skip_edges(cur: Cursor, log: logging.Logger) -> None:
    for n in (1, 2):
        num_edges = cur.u32()
        log.debug("  num edges %d: %d", n, num_edges)
        cur.skip(2 * num_edges)


def skip_point_flags(cur: Cursor, log: logging.Logger) -> None:
    num_flags = cur.u32()
    log.debug("  num pointflags: %d", num_flags)
    ofs = cur.tell()
    fill = cur.u8()
    if fill == FILL_SHARED:
        cur.skip(4)
    elif fill == FILL_LITERAL:
        cur.skip(4 * num_flags)
    else:
        raise StructuralAssertionFailed(f"Bad point flag fill mode {fill}", ofs)


# -----------------------------
# Textures and materials
# -----------------------------

def parse_textures(cur: Cursor, log: logging.Logger) -> List[str]:
    num_textures = cur.u32()
    log.debug("  num textures: %d", num_textures)
    textures = []
    for _ in range(num_textures):
        texture = cur.strz()
        log.debug("    - %s", texture)
        textures.append(texture)
    return textures


def parse_material(cur: Cursor, log: logging.Logger) -> Material:
    path = cur.strz()
    log.debug("    - %s", path)
    cur.skip(MATERIAL_PARAMS_SIZE)

    surface = cur.strz()
    log.debug('      surface: "%s"', surface)

    cur.skip(2 * 4)  # render flags
    num_stages = cur.u32()
    num_transforms = cur.u32()
    log.debug("      num stages: %d", num_stages)
    log.debug("      num transforms: %d", num_transforms)

    stage_textures = []
    for _ in range(num_stages):
        cur.skip(4)  # filter
        texture = cur.strz()
        log.debug("        - %s", texture)
        cur.skip(4 + 1)  # transform index, use world env map
        stage_textures.append(texture)

    cur.skip(num_transforms * MATERIAL_TRANSFORM_SIZE)

    # trailing TI stage
    cur.skip(4)
    cur.strz()
    cur.skip(4 + 1)

    return Material(path=path, surface=surface, stage_textures=stage_textures)


def parse_materials(cur: Cursor, log: logging.Logger) -> List[Material]:
    num_materials = cur.u32()
    log.debug("  num materials: %d", num_materials)
    return [parse_material(cur, log) for _ in range(num_materials)]


# -----------------------------
# Faces and sections
# -----------------------------

def parse_faces(cur: Cursor, log: logging.Logger) -> List[List[int]]:
    num_faces = cur.u32()
    log.debug("  num faces: %d", num_faces)
    cur.skip(4 + 2)  # offsets size, reserved

    faces: List[List[int]] = []
    for _ in range(num_faces):
        count = cur.u8()
        faces.append([cur.u32() for _ in range(count)])
    return faces


def parse_section(cur: Cursor, log: logging.Logger) -> Section:
    face_from = cur.u32()
    face_to = cur.u32()
    log.debug("    - %d - %d", face_from, face_to)

    cur.skip(3 * 4)  # min bone, bone count, material dummy
    texture_index = cur.u16()
    log.debug("    texture index: %d", texture_index)
    cur.skip(4)  # special flags

    material_index = cur.i32()
    log.debug("    material index: %d", material_index)
    if material_index == -1:
        cur.skip(1)

    num_stages = cur.u32()
    cur.skip(4 * num_stages)

    coll_info = cur.u32()
    if coll_info > 0:
        cur.skip(SECTION_COLLISION_SIZE)

    return Section(
        face_from=face_from,
        face_to=face_to,
        texture_index=texture_index,
        material_index=material_index,
    )


def parse_sections(cur: Cursor, log: logging.Logger) -> List[Section]:
    num_sections = cur.u32()
    log.debug("  num sections: %d", num_sections)
    return [parse_section(cur, log) for _ in range(num_sections)]


def assign_sections(faces: List[List[int]], sections: List[Section]) -> List[Tuple[int, int]]:
    """Texture/material index pair per face.

    Section ranges are byte offsets into the face block, where each face takes
    one count byte plus four bytes per point index. A face belongs to a section
    when its offset falls in [face_from, face_to). Later sections win.
    """
    assignments = [(-1, -1)] * len(faces)
    for s in sections:
        offset = 0
        for i, face in enumerate(faces):
            if offset >= s.face_to:
                break
            if offset >= s.face_from:
                assignments[i] = (s.texture_index, s.material_index)
            offset += len(face) * 4 + 1
    return assignments


# -----------------------------
# Named selections and properties
# -----------------------------

def _read_index_array(cur: Cursor, count: int, log: logging.Logger) -> List[int]:
    if count == 0:
        return []
    return _u32_array(read_compressed_array(cur, 4 * count, log=log))


def _check_range(kind: str, name: str, indices: List[int], limit: int) -> None:
    for i in indices:
        if i >= limit:
            raise SelectionIndexOutOfRange(
                f"Selection '{name}' references {kind} {i}, only {limit} exist"
            )


def parse_selection(
    cur: Cursor, num_points: int, num_faces: int, num_sections: int, log: logging.Logger
) -> Selection:
    name = cur.strz()
    log.debug("    - %s", name)

    faces = _read_index_array(cur, cur.u32(), log)
    cur.skip(4 + 1)  # always zero, is sectional
    sections = _read_index_array(cur, cur.u32(), log)
    vertices = _read_index_array(cur, cur.u32(), log)

    ofs = cur.tell()
    num_weights = cur.u32()
    if num_weights == 0:
        weights = bytes([1]) * len(vertices)
    elif num_weights == len(vertices):
        weights = read_compressed_array(cur, num_weights, log=log)
    else:
        raise StructuralAssertionFailed(
            f"Selection '{name}' has {num_weights} weights for {len(vertices)} vertices", ofs
        )

    _check_range("face", name, faces, num_faces)
    _check_range("section", name, sections, num_sections)
    _check_range("point", name, vertices, num_points)

    return Selection(name=name, faces=faces, sections=sections, vertices=vertices, weights=weights)


def parse_properties(cur: Cursor, log: logging.Logger) -> Dict[str, str]:
    num_properties = cur.u32()
    log.debug("  num properties: %d", num_properties)
    properties: Dict[str, str] = {}
    for _ in range(num_properties):
        key = cur.strz()
        value = cur.strz()
        log.debug('    - %s = "%s"', key, value)
        properties[key] = value
    return properties


# -----------------------------
# UVs and points
# -----------------------------

def dequantize_uv(raw: int, lo: float, hi: float) -> float:
    return ((raw + 0x7FFF) / UV_SCALE) * (hi - lo) + lo


def parse_uv_set(cur: Cursor, log: logging.Logger) -> List[UV]:
    min_u, min_v, max_u, max_v = (cur.f32() for _ in range(4))
    log.debug("  uv scale: (%g, %g, %g, %g)", min_u, min_v, max_u, max_v)

    num_uvs = cur.u32()
    log.debug("  num uvs: %d", num_uvs)
    if num_uvs == 0:
        return []

    ofs = cur.tell()
    fill = cur.u8()
    if fill == FILL_SHARED:
        uv = (dequantize_uv(cur.i16(), min_u, max_u), dequantize_uv(cur.i16(), min_v, max_v))
        return [uv] * num_uvs
    if fill != FILL_LITERAL:
        raise StructuralAssertionFailed(f"Bad UV fill mode {fill}", ofs)

    data = read_compressed_array(cur, 4 * num_uvs, log=log)
    raw = struct.unpack(f"<{2 * num_uvs}h", data)
    return [
        (dequantize_uv(raw[i], min_u, max_u), dequantize_uv(raw[i + 1], min_v, max_v))
        for i in range(0, len(raw), 2)
    ]


def parse_points(cur: Cursor, declared: int, log: logging.Logger) -> List[Vec3]:
    ofs = cur.tell()
    num_points = cur.u32()
    if num_points != declared:
        raise StructuralAssertionFailed(
            f"Point array holds {num_points} points, LOD declared {declared}", ofs
        )
    log.debug("  num points: %d", num_points)
    if num_points == 0:
        return []

    data = read_compressed_array(cur, 12 * num_points, log=log)
    flat = struct.unpack(f"<{3 * num_points}f", data)
    return [tuple(flat[i:i + 3]) for i in range(0, len(flat), 3)]


# -----------------------------
# Whole block
# -----------------------------

def parse_lod(
    cur: Cursor,
    profile: FormatProfile,
    resolution: float,
    log: Optional[logging.Logger] = None,
) -> LodData:
    log = log or logger
    log.debug("LOD %g at 0x%X", resolution, cur.tell())

    proxies = parse_proxies(cur, log)
    skip_bone_tables(cur, log)

    num_points = cur.u32()
    log.debug("  num points: %d", num_points)
    cur.skip(LOD_AGGREGATE_SIZE)

    textures = parse_textures(cur, log)
    materials = parse_materials(cur, log)
    skip_edges(cur, log)

    faces = parse_faces(cur, log)
    sections = parse_sections(cur, log)
    face_assignments = assign_sections(faces, sections)

    num_selections = cur.u32()
    log.debug("  num selections: %d", num_selections)
    selections = [
        parse_selection(cur, num_points, len(faces), len(sections), log)
        for _ in range(num_selections)
    ]

    properties = parse_properties(cur, log)

    ofs = cur.tell()
    num_frames = cur.u32()
    if num_frames != 0:
        raise StructuralAssertionFailed(f"Animated LODs are not supported ({num_frames} frames)", ofs)

    cur.skip(3 * 4 + 1 + 4)  # colors, special, bone ref mode, rest size
    skip_point_flags(cur, log)

    uvs = parse_uv_set(cur, log)
    if profile.has_uv_set_count:
        num_uv_sets = cur.u32()
        for _ in range(1, num_uv_sets):
            # only the first UV layer is kept
            parse_uv_set(cur, log)

    points = parse_points(cur, num_points, log)

    log.info(
        "LOD %g: %d points, %d faces, %d sections, %d selections",
        resolution, len(points), len(faces), len(sections), len(selections),
    )

    return LodData(
        resolution=resolution,
        num_points=num_points,
        proxies=proxies,
        textures=textures,
        materials=materials,
        faces=faces,
        face_assignments=face_assignments,
        sections=sections,
        selections=selections,
        properties=properties,
        uvs=uvs,
        points=points,
    )
