"""libodol.writer

MLOD (editable P3D) writer for an assembled Mesh.

Each face is written with four vertex slots regardless of its arity; unused
slots are zero-filled. Faces with more than four vertices have no MLOD
representation and are rejected.
"""

from __future__ import annotations

import struct

from .model import Face, Lod, Mesh

MAX_FACE_SIDES = 4
END_OF_FILE_TAGG = "#EndOfFile#"

_EMPTY_SLOT = struct.pack("<IIff", 0, 0, 0.0, 0.0)


class MlodWriteError(RuntimeError):
    pass


def _strz(s: str) -> bytes:
    return s.encode("utf-8") + b"\x00"


def _face(face: Face) -> bytes:
    n = len(face.vertices)
    if n > MAX_FACE_SIDES:
        raise MlodWriteError(f"Face with {n} vertices cannot be written to MLOD (max {MAX_FACE_SIDES})")

    out = [struct.pack("<I", n)]
    for v in face.vertices:
        out.append(struct.pack("<IIff", v.point_index, v.normal_index, v.uv[0], v.uv[1]))
    out.append(_EMPTY_SLOT * (MAX_FACE_SIDES - n))
    out.append(struct.pack("<I", face.flags))
    out.append(_strz(face.texture))
    out.append(_strz(face.material))
    return b"".join(out)


def _tagg(name: str, data: bytes) -> bytes:
    return b"\x01" + _strz(name) + struct.pack("<I", len(data)) + data


def _lod(lod: Lod) -> bytes:
    out = [
        b"P3DM",
        struct.pack("<II", lod.version_major, lod.version_minor),
        struct.pack("<IIII", len(lod.points), len(lod.normals), len(lod.faces), 0),
    ]
    for p in lod.points:
        out.append(struct.pack("<3fI", *p.coords, p.flags))
    for n in lod.normals:
        out.append(struct.pack("<3f", *n))
    for f in lod.faces:
        out.append(_face(f))

    out.append(b"TAGG")
    for name, data in lod.taggs.items():
        out.append(_tagg(name, data))
    out.append(_tagg(END_OF_FILE_TAGG, b""))

    out.append(struct.pack("<f", lod.resolution))
    return b"".join(out)


def encode_mlod(mesh: Mesh) -> bytes:
    out = [b"MLOD", struct.pack("<II", mesh.version, len(mesh.lods))]
    out.extend(_lod(lod) for lod in mesh.lods)
    return b"".join(out)


def write_mlod(mesh: Mesh, out_path: str) -> None:
    """Write a Mesh to disk as MLOD.

    The whole file is encoded before the output is opened, so a face that
    cannot be represented leaves no half-written file behind.
    """
    data = encode_mlod(mesh)
    with open(out_path, "wb") as f:
        f.write(data)
