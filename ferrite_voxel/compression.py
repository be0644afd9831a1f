"""Chunk persistence: snapshot, binary encoding and LZ4 block compression.

The pipeline is ``Chunk -> ChunkSnapshot -> bytes -> LZ4`` and back. A
snapshot holds every voxel id in Morton order. Its encoding is a
little-endian ``u32`` count followed by one little-endian ``u16`` per
voxel. Such a stream is dominated by a handful of values and compresses
very well.

Compressed blobs carry the uncompressed size as a little-endian ``u32``
header in front of a raw LZ4 block.
"""

from __future__ import annotations

import struct
from dataclasses import dataclass
from typing import Iterable

import lz4.block

from ferrite_voxel.chunk import AIR, MAX_VOXEL, Chunk, morton_decode

_SIZE_HEADER = struct.Struct("<I")
# LZ4 cannot expand data by more than about 255x; anything beyond that
# in a size header means the blob is corrupt.
_MAX_LZ4_RATIO = 255
_EMPTY_BLOCK = b"\x00"


class CompressionError(Exception):
    """Raised when a compressed chunk cannot be restored."""


class Lz4Error(CompressionError):
    """LZ4 decompression failed: the data is corrupt or truncated."""

    def __init__(self, detail: str) -> None:
        super().__init__(f"LZ4 decompression error: {detail}")
        self.detail = detail


class DecodeError(CompressionError):
    """Snapshot decoding failed: the bytes do not hold a valid snapshot."""

    def __init__(self, detail: str) -> None:
        super().__init__(f"snapshot decoding error: {detail}")
        self.detail = detail


@dataclass(frozen=True)
class ChunkSnapshot:
    """Every voxel id of a chunk, in Morton order."""

    voxels: tuple[int, ...]

    def __post_init__(self) -> None:
        voxels = tuple(self.voxels)
        for voxel in voxels:
            if not 0 <= voxel <= MAX_VOXEL:
                raise ValueError(f"voxel id {voxel} outside 0..{MAX_VOXEL}")
        object.__setattr__(self, "voxels", voxels)

    @classmethod
    def from_chunk(cls, chunk: Chunk) -> "ChunkSnapshot":
        """Capture the voxels of ``chunk``."""
        return cls(tuple(voxel & 0xFFFF for voxel in chunk.to_flat()))

    def to_chunk(self) -> Chunk:
        """Rebuild a chunk holding these voxels, with its dirty flag clear."""
        chunk = Chunk()
        for index, voxel in enumerate(self.voxels):
            if voxel != AIR:
                x, y, z = morton_decode(index)
                chunk.set(x, y, z, voxel)
        chunk.clear_dirty()
        return chunk


def lz4_compress(data: bytes) -> bytes:
    """Compress ``data`` into an LZ4 block prefixed with its original size."""
    data = bytes(data)
    header = _SIZE_HEADER.pack(len(data))
    if not data:
        return header + _EMPTY_BLOCK
    return header + lz4.block.compress(data, store_size=False)


def lz4_decompress(data: bytes) -> bytes:
    """Restore bytes produced by :func:`lz4_compress`.

    Raises :class:`Lz4Error` if the data is corrupt or truncated.
    """
    data = bytes(data)
    if len(data) < _SIZE_HEADER.size:
        raise Lz4Error("input is shorter than the size header")
    (size,) = _SIZE_HEADER.unpack_from(data)
    payload = data[_SIZE_HEADER.size:]
    if size == 0:
        if payload != _EMPTY_BLOCK:
            raise Lz4Error("unexpected data after an empty block")
        return b""
    if not payload:
        raise Lz4Error("missing compressed block")
    if size > len(payload) * _MAX_LZ4_RATIO + 16:
        raise Lz4Error(f"declared size {size} is impossible for {len(payload)} bytes of input")
    try:
        out = lz4.block.decompress(payload, uncompressed_size=size)
    except lz4.block.LZ4BlockError as exc:
        raise Lz4Error(str(exc)) from exc
    if len(out) != size:
        raise Lz4Error(f"expected {size} bytes, got {len(out)}")
    return out


def serialize_chunk(snapshot: ChunkSnapshot) -> bytes:
    """Encode a snapshot as bytes."""
    voxels = snapshot.voxels
    return struct.pack(f"<I{len(voxels)}H", len(voxels), *voxels)


def deserialize_chunk(data: bytes) -> ChunkSnapshot:
    """Decode a snapshot written by :func:`serialize_chunk`.

    Raises :class:`DecodeError` if the bytes are malformed.
    """
    data = bytes(data)
    if len(data) < _SIZE_HEADER.size:
        raise DecodeError("input is shorter than the length header")
    (count,) = _SIZE_HEADER.unpack_from(data)
    expected = _SIZE_HEADER.size + 2 * count
    if len(data) != expected:
        raise DecodeError(f"expected {expected} bytes for {count} voxels, got {len(data)}")
    return ChunkSnapshot(struct.unpack_from(f"<{count}H", data, _SIZE_HEADER.size))


def compress_chunk(chunk: Chunk) -> bytes:
    """Snapshot, encode and compress ``chunk``."""
    return lz4_compress(serialize_chunk(ChunkSnapshot.from_chunk(chunk)))


def decompress_chunk(data: bytes) -> ChunkSnapshot:
    """Decompress and decode a blob from :func:`compress_chunk`.

    Call :meth:`ChunkSnapshot.to_chunk` on the result to get the chunk back.
    """
    return deserialize_chunk(lz4_decompress(data))


def _snapshot_of(voxels: Iterable[int]) -> ChunkSnapshot:
    return ChunkSnapshot(tuple(voxels))