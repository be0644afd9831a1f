"""Palette-compressed 32x32x32 voxel chunk stored in Morton order."""

from __future__ import annotations

CHUNK_SIZE = 32
CHUNK_VOLUME = CHUNK_SIZE**3
AIR = 0
MAX_VOXEL = 0xFFFF

_AXIS_BITS = 5


def _spread(value: int) -> int:
    out = 0
    for bit in range(_AXIS_BITS):
        out |= ((value >> bit) & 1) << (3 * bit)
    return out


def _compact(value: int) -> int:
    out = 0
    for bit in range(_AXIS_BITS):
        out |= ((value >> (3 * bit)) & 1) << bit
    return out


_SPREAD = tuple(_spread(v) for v in range(CHUNK_SIZE))


def _check_coord(value: int) -> None:
    if not 0 <= value < CHUNK_SIZE:
        raise IndexError(f"local coordinate {value} outside 0..{CHUNK_SIZE - 1}")


def morton_encode(x: int, y: int, z: int) -> int:
    """Interleave three 5-bit local coordinates into a 15-bit Morton index."""
    for value in (x, y, z):
        _check_coord(value)
    return _SPREAD[x] | (_SPREAD[y] << 1) | (_SPREAD[z] << 2)


def morton_decode(index: int) -> tuple[int, int, int]:
    """Split a 15-bit Morton index back into local (x, y, z)."""
    if not 0 <= index < CHUNK_VOLUME:
        raise IndexError(f"Morton index {index} outside 0..{CHUNK_VOLUME - 1}")
    return _compact(index), _compact(index >> 1), _compact(index >> 2)


def bits_needed(count: int) -> int:
    """Minimum bits to address ``count`` palette entries, at least 1."""
    if count <= 1:
        return 1
    return max((count - 1).bit_length(), 1)


def _data_len(bits: int) -> int:
    return (CHUNK_VOLUME * bits + 7) // 8


def _read_bits(data: bytearray, slot: int, bits: int) -> int:
    bit_offset = slot * bits
    start = bit_offset >> 3
    shift = bit_offset & 7
    span = (shift + bits + 7) >> 3
    raw = int.from_bytes(data[start:start + span], "little")
    return (raw >> shift) & ((1 << bits) - 1)


def _write_bits(data: bytearray, slot: int, bits: int, value: int) -> None:
    bit_offset = slot * bits
    start = bit_offset >> 3
    shift = bit_offset & 7
    mask = (1 << bits) - 1
    end = min(start + ((shift + bits + 7) >> 3), len(data))
    raw = int.from_bytes(data[start:end], "little")
    raw = (raw & ~(mask << shift)) | ((value & mask) << shift)
    data[start:end] = (raw & ((1 << (8 * (end - start))) - 1)).to_bytes(
        end - start, "little"
    )


def _pack(indices, bits: int) -> bytearray:
    data = bytearray(_data_len(bits))
    for slot, value in enumerate(indices):
        if value:
            _write_bits(data, slot, bits, value)
    return data


class Chunk:
    """A 32^3 voxel chunk with a local palette and variable-bit indices.

    Voxels are integers in 0..65535, where 0 is air. Indices into the
    palette are bit-packed in Morton order.
    """

    def __init__(self) -> None:
        self._reset_air()
        self._dirty = False

    def _reset_air(self) -> None:
        self._palette: list[int] = [AIR]
        self._bits = 1
        self._data = bytearray(_data_len(1))

    def __repr__(self) -> str:
        return (
            f"Chunk(palette_len={len(self._palette)}, "
            f"bits_per_entry={self._bits}, dirty={self._dirty})"
        )

    def get(self, x: int, y: int, z: int) -> int:
        """Return the voxel at a local position."""
        slot = morton_encode(x, y, z)
        return self._palette[_read_bits(self._data, slot, self._bits)]

    def set(self, x: int, y: int, z: int, voxel: int) -> None:
        """Store a voxel, growing the palette and widening storage if needed."""
        slot = morton_encode(x, y, z)
        index = self._palette_index(voxel)
        _write_bits(self._data, slot, self._bits, index)
        self._dirty = True

    def fill(self, voxel: int) -> None:
        """Set every voxel to one value with a single-entry palette."""
        _check_voxel(voxel)
        if voxel == AIR:
            self._reset_air()
        else:
            self._palette = [voxel]
            self._bits = 1
            self._data = bytearray(_data_len(1))
        self._dirty = True

    def is_empty(self) -> bool:
        """True if the chunk holds only air."""
        return len(self._palette) == 1 and self._palette[0] == AIR

    def is_uniform(self) -> bool:
        """True if the palette has exactly one entry."""
        return len(self._palette) == 1

    def palette_len(self) -> int:
        """Number of entries in the palette."""
        return len(self._palette)

    def bits_per_entry(self) -> int:
        """Bits used per packed palette index."""
        return self._bits

    def is_dirty(self) -> bool:
        """Whether the chunk changed since the last clear."""
        return self._dirty

    def clear_dirty(self) -> None:
        """Reset the modification flag."""
        self._dirty = False

    def compact_palette(self) -> None:
        """Drop unused palette entries and repack with the fewest bits."""
        indices = self._indices()
        used = set(indices)
        new_palette = [v for i, v in enumerate(self._palette) if i in used]
        remap = {
            old: new
            for new, old in enumerate(i for i in range(len(self._palette)) if i in used)
        }
        if not new_palette:
            new_palette = [AIR]
        new_bits = bits_needed(len(new_palette))
        self._data = _pack((remap.get(i, 0) for i in indices), new_bits)
        self._palette = new_palette
        self._bits = new_bits

    def to_flat(self) -> list[int]:
        """Voxel values for every slot, in Morton order."""
        palette = self._palette
        return [palette[i] for i in self._indices()]

    def palette(self) -> tuple[int, ...]:
        """The current palette entries."""
        return tuple(self._palette)

    def _indices(self) -> list[int]:
        data, bits = self._data, self._bits
        return [_read_bits(data, slot, bits) for slot in range(CHUNK_VOLUME)]

    def _palette_index(self, voxel: int) -> int:
        _check_voxel(voxel)
        try:
            return self._palette.index(voxel)
        except ValueError:
            pass
        self._palette.append(voxel)
        new_bits = bits_needed(len(self._palette))
        if new_bits > self._bits:
            self._data = _pack(self._indices(), new_bits)
            self._bits = new_bits
        return len(self._palette) - 1


def _check_voxel(voxel: int) -> None:
    if not 0 <= voxel <= MAX_VOXEL:
        raise ValueError(f"voxel id {voxel} outside 0..{MAX_VOXEL}")