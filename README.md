# ferrite_voxel

Voxel data structures for 32³ chunks. Voxel values are integers in `0..65535`, and `0` is air.

## Modules

### `ferrite_voxel.chunk`

`Chunk()` creates an all-air chunk. It stores voxels as bit-packed palette indices in Morton order. The palette grows when new materials arrive, and storage widens when the palette needs more bits.

- `get(x, y, z)` and `set(x, y, z, voxel)` read and write one voxel. Coordinates outside `0..31` raise `IndexError`. Voxel ids outside `0..65535` raise `ValueError`.
- `fill(voxel)` sets the whole chunk to one value and resets it to a single-entry, 1-bit palette.
- `compact_palette()` removes palette entries that are no longer used and repacks the data with the fewest bits.
- `to_flat()` returns the voxel value of every slot in Morton order. `palette()` returns the palette entries.
- `is_empty()`, `is_uniform()`, `palette_len()` and `bits_per_entry()` describe the current storage.
- `is_dirty()` and `clear_dirty()` track changes. Any `set` or `fill` marks the chunk dirty.

`morton_encode(x, y, z)` and `morton_decode(index)` convert between local coordinates and 15-bit Morton slots. `bits_needed(count)` gives the index width for a palette of `count` entries, with a minimum of 1.

### `ferrite_voxel.greedy_mesh`

`greedy_mesh(chunk, neighbors)` collects exposed voxel faces for each of the six `Face` directions. It merges coplanar faces of the same material into rectangles and returns a list of `QuadVertex` (`position`, `normal`, `material_index`), four vertices per quad. An all-air chunk yields no vertices.

`ChunkNeighbors` holds the six adjacent chunks (`pos_x`, `neg_x`, `pos_y`, `neg_y`, `pos_z`, `neg_z`). A boundary face is hidden only when the adjacent chunk has a solid voxel across from it. A missing neighbour leaves that boundary exposed, and `ChunkNeighbors.none()` leaves every boundary exposed. `Face.step(x, y, z)` gives the in-chunk neighbour in a direction, or `None` at the edge.

### `ferrite_voxel.svo`

`Svo.build(chunk)` builds a sparse voxel octree. Air regions are dropped, and octants that are uniformly one material collapse into a single leaf. The tree is flattened depth-first into 32-bit words:

- In a leaf, bit 31 is set and bits 0–15 hold the material.
- In an interior node, bits 0–7 hold the child mask and bits 8–30 hold the offset to the first child.

Use `nodes()`, `node_count()` and `is_empty()` to inspect the result. Decode the words with `is_leaf`, `leaf_material`, `child_mask` and `child_offset`. The decoders raise `ValueError` when given the wrong kind of node.

### `ferrite_voxel.compression`

The pipeline is `Chunk -> ChunkSnapshot -> bytes -> LZ4`, and back again.

- `ChunkSnapshot.from_chunk(chunk)` captures every voxel id in Morton order. `to_chunk()` rebuilds the chunk with its dirty flag clear.
- `serialize_chunk` and `deserialize_chunk` encode a snapshot as a little-endian `u32` count followed by one `u16` per voxel.
- `lz4_compress` and `lz4_decompress` wrap a raw LZ4 block behind a little-endian `u32` header that holds the uncompressed size.
- `compress_chunk(chunk)` runs the whole pipeline. `decompress_chunk(data)` returns a `ChunkSnapshot`.

Corrupt input raises `Lz4Error` or `DecodeError`, and both are subclasses of `CompressionError`.

## Installation

```
pip install .
```

## Example

```python
from ferrite_voxel.chunk import Chunk
from ferrite_voxel.greedy_mesh import ChunkNeighbors, greedy_mesh
from ferrite_voxel.svo import Svo
from ferrite_voxel.compression import compress_chunk, decompress_chunk

chunk = Chunk()
chunk.set(0, 0, 0, 1)
chunk.set(1, 0, 0, 1)

vertices = greedy_mesh(chunk, ChunkNeighbors.none())
print(len(vertices) // 4, "quads")      # 6 quads

svo = Svo.build(chunk)
print(svo.node_count(), "octree nodes")

blob = compress_chunk(chunk)
restored = decompress_chunk(blob).to_chunk()
assert restored.get(1, 0, 0) == 1
```

Every group of four vertices from `greedy_mesh` forms one quad. To index a quad starting at `base`, use `(base, base+1, base+2, base+2, base+3, base)`.

## What it does not do

This package works on single chunks. It does not include:

- terrain generation;
- management of a world made of many chunks;
- rendering, or any upload to a GPU.

It produces the vertex lists and octree words that such code would consume.

## Tests

```
pip install .[test]
pytest
```