import itertools

import pytest

from ferrite_voxel.chunk import CHUNK_SIZE, CHUNK_VOLUME, Chunk
from ferrite_voxel.compression import (
    ChunkSnapshot,
    CompressionError,
    DecodeError,
    Lz4Error,
    compress_chunk,
    decompress_chunk,
    deserialize_chunk,
    lz4_compress,
    lz4_decompress,
    serialize_chunk,
)


def _linear_pos(index):
    x = index % CHUNK_SIZE
    y = (index // CHUNK_SIZE) % CHUNK_SIZE
    z = index // (CHUNK_SIZE * CHUNK_SIZE)
    return x, y, z


def test_lz4_roundtrip():
    original = bytes(itertools.islice(itertools.cycle(range(256)), 4096))
    compressed = lz4_compress(original)
    assert lz4_decompress(compressed) == original


def test_lz4_roundtrip_empty():
    compressed = lz4_compress(b"")
    assert lz4_decompress(compressed) == b""


def test_lz4_roundtrip_single_byte():
    original = bytes([42])
    assert lz4_decompress(lz4_compress(original)) == original


def test_lz4_size_header_is_little_endian_length():
    original = b"abc" * 100
    compressed = lz4_compress(original)
    assert compressed[:4] == (300).to_bytes(4, "little")


def test_snapshot_roundtrip():
    chunk = Chunk()
    materials = list(range(1, 11))
    for z in range(CHUNK_SIZE):
        for y in range(4):
            for x in range(CHUNK_SIZE):
                chunk.set(x, y, z, materials[(x + y + z) % len(materials)])

    snapshot = ChunkSnapshot.from_chunk(chunk)
    encoded = serialize_chunk(snapshot)
    decoded = deserialize_chunk(encoded)
    assert decoded == snapshot

    reconstructed = decoded.to_chunk()
    assert reconstructed.to_flat() == chunk.to_flat()
    assert reconstructed.get(3, 2, 7) == materials[(3 + 2 + 7) % 10]
    assert reconstructed.get(3, 10, 7) == 0
    assert not reconstructed.is_dirty()


def test_full_pipeline_roundtrip():
    chunk = Chunk()
    for z in range(CHUNK_SIZE):
        for y in range(16):
            for x in range(CHUNK_SIZE):
                chunk.set(x, y, z, (x + z) % 5 + 1)

    snapshot = decompress_chunk(compress_chunk(chunk))
    reconstructed = snapshot.to_chunk()
    assert reconstructed.to_flat() == chunk.to_flat()
    assert reconstructed.get(4, 15, 3) == (4 + 3) % 5 + 1
    assert reconstructed.get(4, 16, 3) == 0


def test_full_pipeline_roundtrip_all_air():
    chunk = Chunk()
    snapshot = decompress_chunk(compress_chunk(chunk))
    reconstructed = snapshot.to_chunk()
    assert reconstructed.is_empty()
    assert set(reconstructed.to_flat()) == {0}


def test_snapshot_holds_every_voxel():
    chunk = Chunk()
    chunk.set(0, 0, 0, 9)
    snapshot = ChunkSnapshot.from_chunk(chunk)
    assert len(snapshot.voxels) == CHUNK_VOLUME
    assert snapshot.voxels[0] == 9
    assert sum(snapshot.voxels) == 9


def test_compression_ratio():
    chunk = Chunk()
    for i in range(100):
        chunk.set(*_linear_pos(i * 100), 1)

    uncompressed = serialize_chunk(ChunkSnapshot.from_chunk(chunk))
    compressed = compress_chunk(chunk)
    assert len(compressed) / len(uncompressed) < 0.5


def test_compression_error_display():
    with pytest.raises(Lz4Error) as excinfo:
        decompress_chunk(b"not valid lz4")
    assert "LZ4" in str(excinfo.value)
    assert isinstance(excinfo.value, CompressionError)


@pytest.mark.parametrize("blob", [b"", b"\x01", b"\x05\x00\x00\x00", b"\x00\x00\x00\x00\x07"])
def test_lz4_rejects_malformed(blob):
    with pytest.raises(Lz4Error):
        lz4_decompress(blob)


def test_lz4_rejects_truncated_block():
    compressed = lz4_compress(bytes(range(200)) * 3)
    with pytest.raises(Lz4Error):
        lz4_decompress(compressed[:-10])


@pytest.mark.parametrize("blob", [b"", b"\x02\x00", b"\x02\x00\x00\x00\x01\x00"])
def test_deserialize_rejects_malformed(blob):
    with pytest.raises(DecodeError):
        deserialize_chunk(blob)


def test_decompress_valid_lz4_with_bad_payload_raises_decode_error():
    with pytest.raises(DecodeError) as excinfo:
        decompress_chunk(lz4_compress(b"\x09\x00\x00\x00\x01"))
    assert isinstance(excinfo.value, CompressionError)


def test_serialize_layout():
    encoded = serialize_chunk(ChunkSnapshot((1, 0x0203)))
    assert encoded == b"\x02\x00\x00\x00\x01\x00\x03\x02"


def test_snapshot_rejects_out_of_range_voxel():
    with pytest.raises(ValueError):
        ChunkSnapshot((1, 0x10000))