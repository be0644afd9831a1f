"""Sparse voxel octree built from a chunk and flattened for GPU upload.

Each node is one 32-bit word:

* leaf (bit 31 set): bits 0..15 hold the voxel material;
* interior (bit 31 clear): bits 0..7 hold the child mask (which of the
  eight octants are populated) and bits 8..30 hold the offset from the
  node to its first child in the flat array.

Octant ``i`` covers the half-size cube offset by ``half`` along x when
bit 0 of ``i`` is set, along y for bit 1 and along z for bit 2.
"""

from __future__ import annotations

from typing import Iterable, Optional, Union

from ferrite_voxel.chunk import AIR, CHUNK_VOLUME, Chunk

LEAF_FLAG = 1 << 31
_OFFSET_MASK = 0x7F_FFFF

# A built subtree: an int is a solid leaf, a list holds eight optional children.
_Tree = Union[int, list]


def _build_node(flat: list[int], start: int, length: int) -> Optional[_Tree]:
    """Build the subtree for a cube occupying ``flat[start:start + length]``.

    In Morton order a cube's voxels are contiguous and its eight octants
    follow one another in octant order, so the recursion works on ranges.
    Returns ``None`` when the cube holds only air.
    """
    if length == 1:
        voxel = flat[start]
        return None if voxel == AIR else voxel
    values = set(flat[start:start + length])
    if len(values) == 1:
        (voxel,) = values
        return None if voxel == AIR else voxel
    eighth = length // 8
    return [_build_node(flat, start + octant * eighth, eighth) for octant in range(8)]


def _linearize(node: _Tree, out: list[int]) -> None:
    """Append ``node`` and its subtree to ``out`` depth-first."""
    if isinstance(node, int):
        out.append(LEAF_FLAG | node)
        return
    self_index = len(out)
    out.append(0)
    first_child = len(out)
    mask = 0
    for octant, child in enumerate(node):
        if child is not None:
            mask |= 1 << octant
            _linearize(child, out)
    out[self_index] = ((first_child - self_index) << 8) | mask


class Svo:
    """A linearized sparse voxel octree."""

    def __init__(self, nodes: Iterable[int] = ()) -> None:
        self._nodes = tuple(nodes)

    def __repr__(self) -> str:
        return f"Svo(node_count={len(self._nodes)})"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Svo):
            return NotImplemented
        return self._nodes == other._nodes

    @classmethod
    def build(cls, chunk: Chunk) -> "Svo":
        """Build the octree of ``chunk``; an all-air chunk yields no nodes."""
        if chunk.is_empty():
            return cls()
        root = _build_node(chunk.to_flat(), 0, CHUNK_VOLUME)
        if root is None:
            return cls()
        nodes: list[int] = []
        _linearize(root, nodes)
        return cls(nodes)

    def nodes(self) -> tuple[int, ...]:
        """The node words in depth-first order."""
        return self._nodes

    def node_count(self) -> int:
        """Number of nodes in the flat array."""
        return len(self._nodes)

    def is_empty(self) -> bool:
        """True if the octree has no nodes."""
        return not self._nodes


def is_leaf(node: int) -> bool:
    """True if the node word is a leaf."""
    return bool(node & LEAF_FLAG)


def leaf_material(node: int) -> int:
    """Material stored in a leaf node."""
    if not is_leaf(node):
        raise ValueError(f"node {node:#010x} is not a leaf")
    return node & 0xFFFF


def child_mask(node: int) -> int:
    """Octant mask of an interior node."""
    if is_leaf(node):
        raise ValueError(f"node {node:#010x} is not an interior node")
    return node & 0xFF


def child_offset(node: int) -> int:
    """Offset from an interior node to its first child."""
    if is_leaf(node):
        raise ValueError(f"node {node:#010x} is not an interior node")
    return (node >> 8) & _OFFSET_MASK