from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

Vec3 = Tuple[float, float, float]
UV = Tuple[float, float]


# -----------------------------
# Output mesh (MLOD-shaped), handed to the writer
#
# Built once by the assembler and never modified afterwards.
# -----------------------------

MLOD_VERSION = 257
LOD_VERSION_MAJOR = 28
LOD_VERSION_MINOR = 256


@dataclass(frozen=True)
class Point:
    coords: Vec3
    flags: int = 0


@dataclass(frozen=True)
class Vertex:
    point_index: int
    normal_index: int
    uv: UV


@dataclass(frozen=True)
class Face:
    vertices: Tuple[Vertex, ...]
    flags: int = 0
    texture: str = ""
    material: str = ""


@dataclass(frozen=True)
class Lod:
    resolution: float
    points: Tuple[Point, ...]
    normals: Tuple[Vec3, ...]
    faces: Tuple[Face, ...]
    taggs: Dict[str, bytes]
    version_major: int = LOD_VERSION_MAJOR
    version_minor: int = LOD_VERSION_MINOR


@dataclass(frozen=True)
class Mesh:
    lods: Tuple[Lod, ...]
    version: int = MLOD_VERSION


# -----------------------------
# Header-level records (diagnostics; not part of the output mesh)
# -----------------------------

@dataclass
class Bone:
    name: str
    parent: str


@dataclass
class ModelInfo:
    special: int
    bounding_sphere: float
    geometry_sphere: float
    remarks: int
    and_hints: int
    or_hints: int
    aiming_center: Vec3
    map_icon_color: int
    map_selected_color: int
    view_density: float
    bbox_min: Vec3
    bbox_max: Vec3
    lod_density_coef: float
    draw_importance: float
    bbox_visual_min: Vec3
    bbox_visual_max: Vec3
    bounding_center: Vec3
    geometry_center: Vec3
    center_of_mass: Vec3
    inv_inertia: Tuple[float, ...]
    auto_center: bool
    lock_auto_center: bool
    can_occlude: bool
    can_be_occluded: bool
    ai_covers: Optional[bool]  # version 73 only
    ht_min: float
    ht_max: float
    af_max: float
    mf_max: float
    m_fact: float
    t_body: float
    force_not_alpha: bool
    sb_source: int
    prefer_shadow_volume: bool
    shadow_offset: float
    animated: bool


@dataclass
class Animation:
    """One model animation. `params` holds the type-specific payload."""

    type: int
    name: str
    source: str
    min_value: float
    max_value: float
    min_phase: float
    max_phase: float
    source_address: int
    params: Tuple[float, ...]


@dataclass
class AnimationBlock:
    animations: List[Animation]
    # per LOD: per bone: animation indices driving that bone
    bone_animations: List[List[List[int]]]
    # per LOD: per animation: bone index or -1
    animation_bones: List[List[int]]


@dataclass
class OdolHeader:
    version: int
    app_id: int
    muzzle_flash: str
    resolutions: List[float]
    model_info: ModelInfo
    skeleton_name: str
    bones: List[Bone]
    unknown_flag: int
    scalars: List[float]
    mass: float
    inv_mass: float
    armor: float
    inv_armor: float
    role_indices: bytes
    min_shadow: int
    can_blend: bool
    class_type: int
    destruct_type: int
    property_frequent: bool
    reserved: Tuple[int, int]
    # per LOD: three shadow-related u32 values, kept raw
    lod_shadow: List[Tuple[int, int, int]]
    animations: Optional[AnimationBlock]
    lod_offsets: List[int]


# -----------------------------
# Decoded LOD streams, before assembly
# -----------------------------

@dataclass
class Material:
    path: str
    surface: str
    stage_textures: List[str] = field(default_factory=list)


@dataclass
class Section:
    """One draw section of a LOD.

    face_from/face_to are read two ways. Texture and material assignment treats
    them as byte offsets into the face block (see lod.assign_sections). A
    selection that lists the section treats them as face indices, clamped to
    the face count (see assemble.build_selection_tag).
    """

    face_from: int
    face_to: int
    texture_index: int
    material_index: int  # -1 = none


@dataclass
class Selection:
    name: str
    faces: List[int]
    sections: List[int]
    vertices: List[int]
    weights: bytes  # one byte per entry of `vertices`


@dataclass
class LodData:
    resolution: float
    num_points: int
    proxies: List[str]
    textures: List[str]
    materials: List[Material]
    # per face: point indices in file order
    faces: List[List[int]]
    # per face: (texture index, material index); -1 when no section covers it
    face_assignments: List[Tuple[int, int]]
    sections: List[Section]
    selections: List[Selection]
    properties: Dict[str, str]
    uvs: List[UV]
    points: List[Vec3]


# -----------------------------
# Summary DTOs used by summarize_odol
# -----------------------------

@dataclass
class LodSummary:
    resolution: float
    offset: int
    points: int
    faces: int
    textures: List[str]
    materials: List[str]
    selections: List[str]


@dataclass
class OdolSummary:
    path: str
    file_size: int
    version: int
    app_id: int
    skeleton_name: str
    bone_count: int
    animation_count: int
    lods: List[LodSummary]
