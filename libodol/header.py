"""libodol.header

Global ODOL header: signature, revision, LOD directory, model info, skeleton
and animations, up to and including the table of absolute LOD offsets.
"""

from __future__ import annotations

import logging
import struct
from typing import List, Optional

from .cursor import Cursor
from .errors import BadMagic, StructuralAssertionFailed
from .model import Animation, AnimationBlock, Bone, ModelInfo, OdolHeader
from .profiles import FormatProfile, profile_for

logger = logging.getLogger(__name__)

MAGIC = b"ODOL"
NUM_ROLE_INDICES = 14

ANIM_ROTATION = (0, 1, 2, 3)
ANIM_TRANSLATION = (4, 5, 6, 7)
ANIM_DIRECT = 8
ANIM_HIDE = 9

# type -> number of f32 in the type-specific payload
_ANIM_PAYLOAD = {t: 2 for t in ANIM_ROTATION + ANIM_TRANSLATION}
_ANIM_PAYLOAD[ANIM_DIRECT] = 4
_ANIM_PAYLOAD[ANIM_HIDE] = 2


def _flag(cur: Cursor) -> bool:
    return cur.u8() != 0


def parse_model_info(cur: Cursor, profile: FormatProfile) -> ModelInfo:
    start = cur.tell()
    special = cur.u32()
    bounding_sphere = cur.f32()
    geometry_sphere = cur.f32()
    remarks = cur.u32()
    and_hints = cur.u32()
    or_hints = cur.u32()
    aiming_center = cur.vec3()
    map_icon_color = cur.u32()
    map_selected_color = cur.u32()
    view_density = cur.f32()
    bbox_min = cur.vec3()
    bbox_max = cur.vec3()
    lod_density_coef = cur.f32()
    draw_importance = cur.f32()
    bbox_visual_min = cur.vec3()
    bbox_visual_max = cur.vec3()
    bounding_center = cur.vec3()
    geometry_center = cur.vec3()
    center_of_mass = cur.vec3()
    inv_inertia = tuple(cur.f32() for _ in range(9))
    auto_center = _flag(cur)
    lock_auto_center = _flag(cur)
    can_occlude = _flag(cur)
    can_be_occluded = _flag(cur)
    ai_covers = _flag(cur) if profile.has_ai_covers else None
    ht_min = cur.f32()
    ht_max = cur.f32()
    af_max = cur.f32()
    mf_max = cur.f32()
    m_fact = cur.f32()
    t_body = cur.f32()
    force_not_alpha = _flag(cur)
    sb_source = cur.i32()
    prefer_shadow_volume = _flag(cur)
    shadow_offset = cur.f32()
    animated = _flag(cur)

    if cur.tell() - start != profile.model_info_size:
        raise StructuralAssertionFailed(
            f"Model info is {cur.tell() - start} bytes, expected {profile.model_info_size}", start
        )

    return ModelInfo(
        special=special,
        bounding_sphere=bounding_sphere,
        geometry_sphere=geometry_sphere,
        remarks=remarks,
        and_hints=and_hints,
        or_hints=or_hints,
        aiming_center=aiming_center,
        map_icon_color=map_icon_color,
        map_selected_color=map_selected_color,
        view_density=view_density,
        bbox_min=bbox_min,
        bbox_max=bbox_max,
        lod_density_coef=lod_density_coef,
        draw_importance=draw_importance,
        bbox_visual_min=bbox_visual_min,
        bbox_visual_max=bbox_visual_max,
        bounding_center=bounding_center,
        geometry_center=geometry_center,
        center_of_mass=center_of_mass,
        inv_inertia=inv_inertia,
        auto_center=auto_center,
        lock_auto_center=lock_auto_center,
        can_occlude=can_occlude,
        can_be_occluded=can_be_occluded,
        ai_covers=ai_covers,
        ht_min=ht_min,
        ht_max=ht_max,
        af_max=af_max,
        mf_max=mf_max,
        m_fact=m_fact,
        t_body=t_body,
        force_not_alpha=force_not_alpha,
        sb_source=sb_source,
        prefer_shadow_volume=prefer_shadow_volume,
        shadow_offset=shadow_offset,
        animated=animated,
    )


def parse_skeleton(cur: Cursor, log: logging.Logger) -> List[Bone]:
    """Bone list following a non-empty skeleton name."""
    _is_discrete = cur.u8()
    num_bones = cur.u32()
    log.debug("num bones: %d", num_bones)

    bones: List[Bone] = []
    for _ in range(num_bones):
        name = cur.strz()
        parent = cur.strz()
        log.debug("  - %s -> %s", name, parent)
        bones.append(Bone(name=name, parent=parent))

    ofs = cur.tell()
    terminator = cur.u8()
    if terminator != 0:
        raise StructuralAssertionFailed(f"Skeleton not terminated by a zero byte (got {terminator})", ofs)

    names = {b.name for b in bones}
    for b in bones:
        if b.parent and b.parent not in names:
            raise StructuralAssertionFailed(f"Bone '{b.name}' has unknown parent '{b.parent}'")

    return bones


def parse_animation(cur: Cursor) -> Animation:
    ofs = cur.tell()
    anim_type = cur.u32()
    if anim_type not in _ANIM_PAYLOAD:
        raise StructuralAssertionFailed(f"Unknown animation type {anim_type}", ofs)

    name = cur.strz()
    source = cur.strz()
    min_value = cur.f32()
    max_value = cur.f32()
    min_phase = cur.f32()
    max_phase = cur.f32()
    source_address = cur.u32()
    params = tuple(cur.f32() for _ in range(_ANIM_PAYLOAD[anim_type]))

    return Animation(
        type=anim_type,
        name=name,
        source=source,
        min_value=min_value,
        max_value=max_value,
        min_phase=min_phase,
        max_phase=max_phase,
        source_address=source_address,
        params=params,
    )


def parse_animations(cur: Cursor, num_lods: int, num_bones: int, log: logging.Logger) -> AnimationBlock:
    num_animations = cur.u32()
    log.debug("num animations: %d", num_animations)
    animations = [parse_animation(cur) for _ in range(num_animations)]
    for a in animations:
        log.debug("  - %s (type %d, source '%s')", a.name, a.type, a.source)

    bone_animations: List[List[List[int]]] = []
    for _ in range(num_lods):
        ofs = cur.tell()
        lod_bones = cur.u32()
        if lod_bones != num_bones:
            raise StructuralAssertionFailed(
                f"Animation table lists {lod_bones} bones, skeleton has {num_bones}", ofs
            )
        per_bone: List[List[int]] = []
        for _ in range(lod_bones):
            count = cur.u32()
            indices = [cur.u32() for _ in range(count)]
            for i in indices:
                if i >= num_animations:
                    raise StructuralAssertionFailed(f"Animation index {i} out of range ({num_animations})")
            per_bone.append(indices)
        bone_animations.append(per_bone)

    animation_bones: List[List[int]] = []
    for _ in range(num_lods):
        per_anim: List[int] = []
        for _ in range(num_animations):
            ofs = cur.tell()
            bone = cur.i32()
            if bone < -1 or bone >= num_bones:
                raise StructuralAssertionFailed(f"Animation bone index {bone} out of range ({num_bones})", ofs)
            if bone != -1:
                cur.skip(2 * 12)  # axis position + direction
            per_anim.append(bone)
        animation_bones.append(per_anim)

    return AnimationBlock(
        animations=animations,
        bone_animations=bone_animations,
        animation_bones=animation_bones,
    )


def parse_header(cur: Cursor, log: Optional[logging.Logger] = None) -> OdolHeader:
    log = log or logger

    magic = cur.read(4)
    if magic != MAGIC:
        raise BadMagic(f"Not an ODOL file (magic {magic!r})", 0)

    version = cur.u32()
    log.debug("version: %d", version)
    profile = profile_for(version)

    app_id = cur.u32()
    log.debug("appid: %d", app_id)

    muzzle_flash = cur.strz()
    log.debug('muzzleflash: "%s"', muzzle_flash)

    num_lods = cur.u32()
    log.debug("num lods: %d", num_lods)
    resolutions = [cur.f32() for _ in range(num_lods)]
    for r in resolutions:
        log.debug("  - %g", r)

    model_info = parse_model_info(cur, profile)

    skeleton_name = cur.strz()
    log.debug('skeleton name: "%s"', skeleton_name)
    bones = parse_skeleton(cur, log) if skeleton_name else []

    unknown_flag = cur.u8()

    num_scalars = cur.u32()
    log.debug("num scalars: %d", num_scalars)
    data = cur.read(4 * num_scalars)
    scalars = list(struct.unpack(f"<{num_scalars}f", data))
    mass = cur.f32()
    inv_mass = cur.f32()
    armor = cur.f32()
    inv_armor = cur.f32()
    log.debug("mass: %g, armor: %g", mass, armor)

    role_indices = cur.read(NUM_ROLE_INDICES)

    min_shadow = cur.u32()
    can_blend = _flag(cur)
    class_type = cur.u8()
    destruct_type = cur.u8()
    property_frequent = _flag(cur)
    reserved = (cur.u32(), cur.u32())
    lod_shadow = [(cur.u32(), cur.u32(), cur.u32()) for _ in range(num_lods)]
    log.debug("min shadow: %d", min_shadow)

    ofs = cur.tell()
    has_animations = cur.u8()
    if has_animations not in (0, 1):
        raise StructuralAssertionFailed(f"Bad animation flag {has_animations}", ofs)
    animations = parse_animations(cur, num_lods, len(bones), log) if has_animations else None

    lod_offsets = [cur.u32() for _ in range(num_lods)]
    log.debug("lod offsets: %s", lod_offsets)

    return OdolHeader(
        version=version,
        app_id=app_id,
        muzzle_flash=muzzle_flash,
        resolutions=resolutions,
        model_info=model_info,
        skeleton_name=skeleton_name,
        bones=bones,
        unknown_flag=unknown_flag,
        scalars=scalars,
        mass=mass,
        inv_mass=inv_mass,
        armor=armor,
        inv_armor=inv_armor,
        role_indices=role_indices,
        min_shadow=min_shadow,
        can_blend=can_blend,
        class_type=class_type,
        destruct_type=destruct_type,
        property_frequent=property_frequent,
        reserved=reserved,
        lod_shadow=lod_shadow,
        animations=animations,
        lod_offsets=lod_offsets,
    )
