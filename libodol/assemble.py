"""libodol.assemble

Turn the decoded LOD streams into the MLOD-shaped Mesh.

Faces come out with their vertex order reversed (MLOD winds the other way),
every vertex takes the UV of its point, and each named selection is expanded
into a tag of one byte per point followed by one byte per face.
"""

from __future__ import annotations

import logging
from typing import Iterable, List, Optional, Sequence

from .errors import VertexIndexOutOfRange
from .model import Face, Lod, LodData, Mesh, Point, Section, Selection, Vec3, Vertex

logger = logging.getLogger(__name__)

ZERO_NORMAL: Vec3 = (0.0, 0.0, 0.0)


def _lookup(names: Sequence[str], index: int) -> str:
    return names[index] if 0 <= index < len(names) else ""


def build_selection_tag(
    sel: Selection,
    faces: Sequence[Sequence[int]],
    sections: Sequence[Section],
    num_points: int,
) -> bytes:
    """Expand a selection into num_points + len(faces) weight bytes.

    Directly listed vertices take their own weight. Points of selected faces
    (listed directly or through a section's face range) are marked with 1
    unless a weight was already given.
    """
    tag = bytearray(num_points + len(faces))

    for v, w in zip(sel.vertices, sel.weights):
        tag[v] = w

    selected = set(sel.faces)
    for s in sel.sections:
        sec = sections[s]
        selected.update(range(sec.face_from, min(sec.face_to, len(faces))))

    for f in sorted(selected):
        tag[num_points + f] = 1
        for p in faces[f]:
            if p >= num_points:
                raise VertexIndexOutOfRange(
                    f"Face {f} of selection '{sel.name}' references point {p}, only {num_points} exist"
                )
            if tag[p] == 0:
                tag[p] = 1

    return bytes(tag)


def assemble_lod(data: LodData, translate: Optional[Vec3] = None, log: Optional[logging.Logger] = None) -> Lod:
    log = log or logger

    if translate is None:
        points = tuple(Point(coords=p) for p in data.points)
    else:
        dx, dy, dz = translate
        points = tuple(Point(coords=(x + dx, y + dy, z + dz)) for x, y, z in data.points)

    normals = tuple(ZERO_NORMAL for _ in points)

    material_paths = [mat.path for mat in data.materials]

    num_points = len(points)
    if not data.uvs and any(data.faces):
        raise VertexIndexOutOfRange(
            f"LOD {data.resolution:g} has faces but no UVs ({num_points} points)"
        )

    faces: List[Face] = []
    unresolved = 0
    for i, (indices, (t, m)) in enumerate(zip(data.faces, data.face_assignments)):
        vertices = []
        for p in reversed(indices):
            if p >= num_points or p >= len(data.uvs):
                raise VertexIndexOutOfRange(
                    f"Face {i} references point {p} ({num_points} points, {len(data.uvs)} UVs)"
                )
            vertices.append(Vertex(point_index=p, normal_index=p, uv=data.uvs[p]))

        texture = _lookup(data.textures, t)
        material = _lookup(material_paths, m)
        if t >= 0 and not texture:
            unresolved += 1
        faces.append(Face(vertices=tuple(vertices), texture=texture, material=material))

    if unresolved:
        log.warning("LOD %g: %d faces reference a missing texture", data.resolution, unresolved)

    taggs = {}
    for sel in data.selections:
        taggs[sel.name] = build_selection_tag(sel, data.faces, data.sections, num_points)

    return Lod(
        resolution=data.resolution,
        points=points,
        normals=normals,
        faces=tuple(faces),
        taggs=taggs,
    )


def assemble_mesh(lods: Iterable[Lod]) -> Mesh:
    return Mesh(lods=tuple(lods))
