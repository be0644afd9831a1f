"""Greedy meshing of a chunk into merged, axis-aligned quads.

Every visible voxel face is collected slice by slice for each of the six
face directions. Coplanar faces of the same material are then merged into
rectangles. Each quad is emitted as four vertices. Callers build indices
with the pattern ``(0, 1, 2, 2, 3, 0)`` per group of four.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from functools import lru_cache
from typing import Optional

from ferrite_voxel.chunk import AIR, CHUNK_SIZE, CHUNK_VOLUME, Chunk, morton_decode

_CS = CHUNK_SIZE
_STRIDES = (1, _CS, _CS * _CS)
# For each depth axis, the (u, v) axes spanning the face plane.
_PLANE_AXES = {0: (1, 2), 1: (0, 2), 2: (0, 1)}


class Face(Enum):
    """The six axis-aligned face directions, as (axis, sign)."""

    POS_X = (0, 1)
    NEG_X = (0, -1)
    POS_Y = (1, 1)
    NEG_Y = (1, -1)
    POS_Z = (2, 1)
    NEG_Z = (2, -1)

    @property
    def axis(self) -> int:
        """Axis the normal points along: 0 for x, 1 for y, 2 for z."""
        return self.value[0]

    @property
    def positive(self) -> bool:
        """True if the normal points in the positive axis direction."""
        return self.value[1] > 0

    @property
    def normal(self) -> tuple[int, int, int]:
        """The unit normal as an integer triple."""
        n = [0, 0, 0]
        n[self.axis] = self.value[1]
        return (n[0], n[1], n[2])

    def step(self, x: int, y: int, z: int) -> Optional[tuple[int, int, int]]:
        """Neighbour of ``(x, y, z)`` in this direction, or None outside the chunk."""
        coords = [x, y, z]
        coords[self.axis] += self.value[1]
        if not 0 <= coords[self.axis] < _CS:
            return None
        return (coords[0], coords[1], coords[2])


@dataclass(frozen=True)
class QuadVertex:
    """One corner of a meshed quad."""

    position: tuple[float, float, float]
    normal: tuple[int, int, int]
    material_index: int


@dataclass
class ChunkNeighbors:
    """The six face-adjacent chunks; a missing one leaves its boundary exposed."""

    pos_x: Optional[Chunk] = None
    neg_x: Optional[Chunk] = None
    pos_y: Optional[Chunk] = None
    neg_y: Optional[Chunk] = None
    pos_z: Optional[Chunk] = None
    neg_z: Optional[Chunk] = None

    @classmethod
    def none(cls) -> "ChunkNeighbors":
        """Neighbours with no chunk loaded on any side."""
        return cls()

    def get(self, face: Face) -> Optional[Chunk]:
        """The chunk adjacent across ``face``, if any."""
        return getattr(self, face.name.lower())


@lru_cache(maxsize=1)
def _morton_to_linear() -> tuple[int, ...]:
    table = []
    for index in range(CHUNK_VOLUME):
        x, y, z = morton_decode(index)
        table.append(x + _CS * (y + _CS * z))
    return tuple(table)


def _dense(chunk: Chunk) -> list[int]:
    """Voxel values indexed by ``x + 32 * (y + 32 * z)``."""
    grid = [AIR] * CHUNK_VOLUME
    for linear, voxel in zip(_morton_to_linear(), chunk.to_flat()):
        grid[linear] = voxel
    return grid


def greedy_mesh(chunk: Chunk, neighbors: Optional[ChunkNeighbors] = None) -> list[QuadVertex]:
    """Mesh ``chunk`` into quads, four vertices per quad."""
    if chunk.is_empty():
        return []
    if neighbors is None:
        neighbors = ChunkNeighbors.none()
    grid = _dense(chunk)
    quads: list[QuadVertex] = []
    for face in Face:
        _mesh_face(grid, neighbors.get(face), face, quads)
    return quads


def _mesh_face(
    grid: list[int], neighbor: Optional[Chunk], face: Face, quads: list[QuadVertex]
) -> None:
    axis = face.axis
    u_axis, v_axis = _PLANE_AXES[axis]
    d_stride, u_stride, v_stride = _STRIDES[axis], _STRIDES[u_axis], _STRIDES[v_axis]
    step = d_stride if face.positive else -d_stride
    boundary = _CS - 1 if face.positive else 0
    neighbor_grid: Optional[list[int]] = None

    for depth in range(_CS):
        on_boundary = depth == boundary
        if on_boundary and neighbor is not None and neighbor_grid is None:
            neighbor_grid = _dense(neighbor)
        # Depth of the touching slice inside the neighbouring chunk.
        far_base = (0 if face.positive else _CS - 1) * d_stride
        mask = [0] * (_CS * _CS)
        base = depth * d_stride
        for v in range(_CS):
            row = base + v * v_stride
            for u in range(_CS):
                idx = row + u * u_stride
                voxel = grid[idx]
                if voxel == AIR:
                    continue
                if not on_boundary:
                    exposed = grid[idx + step] == AIR
                elif neighbor_grid is None:
                    exposed = True
                else:
                    exposed = neighbor_grid[far_base + u * u_stride + v * v_stride] == AIR
                if exposed:
                    mask[v * _CS + u] = voxel
        _greedy_merge(mask, depth, face, quads)


def _greedy_merge(mask: list[int], depth: int, face: Face, quads: list[QuadVertex]) -> None:
    """Merge equal-material cells of a slice mask into rectangles."""
    for v in range(_CS):
        u = 0
        while u < _CS:
            mat = mask[v * _CS + u]
            if mat == 0:
                u += 1
                continue
            width = 1
            while u + width < _CS and mask[v * _CS + u + width] == mat:
                width += 1
            height = 1
            while v + height < _CS and all(
                cell == mat
                for cell in mask[(v + height) * _CS + u:(v + height) * _CS + u + width]
            ):
                height += 1
            for dv in range(height):
                start = (v + dv) * _CS + u
                mask[start:start + width] = [0] * width
            _emit_quad(depth, u, v, width, height, face, mat, quads)
            u += width


def _emit_quad(
    depth: int,
    u: int,
    v: int,
    width: int,
    height: int,
    face: Face,
    material: int,
    quads: list[QuadVertex],
) -> None:
    axis = face.axis
    u_axis, v_axis = _PLANE_AXES[axis]
    d = float(depth + 1 if face.positive else depth)
    u0, v0 = float(u), float(v)
    u1, v1 = float(u + width), float(v + height)
    if face.positive:
        corners = ((u0, v0), (u1, v0), (u1, v1), (u0, v1))
    else:
        corners = ((u0, v0), (u0, v1), (u1, v1), (u1, v0))
    normal = face.normal
    for cu, cv in corners:
        pos = [0.0, 0.0, 0.0]
        pos[axis] = d
        pos[u_axis] = cu
        pos[v_axis] = cv
        quads.append(QuadVertex((pos[0], pos[1], pos[2]), normal, material))