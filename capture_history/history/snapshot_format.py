"""Versioned machine-snapshot blob with an embedded thumbnail.

Layout (big-endian):
    magic     6s   b"VASNAP"
    version   3B   major, minor, subminor
    width     H    thumbnail width
    height    H    thumbnail height
    timestamp q    thumbnail creation time (unix seconds)
    pixels         4 * width * height bytes of RGBA8
    state          opaque machine state, to the end of the blob
"""

from __future__ import annotations

import struct
import time
from dataclasses import dataclass

from capture_history.core.errors import DecodeFailure, UnsupportedFormat
from capture_history.imaging.color import BYTES_PER_PIXEL, allocate_buffer
from capture_history.imaging.pixels import PixelRegion, PixelSource

SNAPSHOT_MAGIC = b"VASNAP"
SNAPSHOT_VERSION = (1, 0, 0)
_HEADER = struct.Struct(">6sBBBHHq")
MAX_THUMBNAIL_SIDE = 0xFFFF


@dataclass(frozen=True)
class Thumbnail:
    width: int
    height: int
    pixels: bytes
    timestamp: int

    @classmethod
    def empty(cls) -> "Thumbnail":
        return cls(width=0, height=0, pixels=b"", timestamp=int(time.time()))

    @classmethod
    def take(
        cls,
        source: PixelSource,
        *,
        region: PixelRegion | None = None,
        dx: int = 2,
        dy: int = 1,
    ) -> "Thumbnail":
        """Subsample a frame, keeping every `dx`-th column and `dy`-th row."""
        dx = max(1, int(dx))
        dy = max(1, int(dy))
        region = region or PixelRegion.full(source.width, source.height)
        frame = source.read_region(region)
        width = min(MAX_THUMBNAIL_SIDE, region.width // dx)
        height = min(MAX_THUMBNAIL_SIDE, region.height // dy)
        out = allocate_buffer(BYTES_PER_PIXEL * width * height)
        stride = BYTES_PER_PIXEL * region.width
        pos = 0
        for y in range(height):
            row = y * dy * stride
            for x in range(width):
                src = row + x * dx * BYTES_PER_PIXEL
                out[pos : pos + BYTES_PER_PIXEL] = frame[src : src + BYTES_PER_PIXEL]
                pos += BYTES_PER_PIXEL
        return cls(width=width, height=height, pixels=bytes(out), timestamp=int(time.time()))


@dataclass(frozen=True)
class SnapshotContents:
    version: tuple[int, int, int]
    thumbnail: Thumbnail
    state: bytes


def build_snapshot_blob(
    state: bytes,
    thumbnail: Thumbnail | None = None,
    *,
    version: tuple[int, int, int] = SNAPSHOT_VERSION,
) -> bytes:
    thumbnail = thumbnail or Thumbnail.empty()
    if len(thumbnail.pixels) != BYTES_PER_PIXEL * thumbnail.width * thumbnail.height:
        raise ValueError("thumbnail pixel data does not match its size")
    header = _HEADER.pack(
        SNAPSHOT_MAGIC,
        version[0],
        version[1],
        version[2],
        thumbnail.width,
        thumbnail.height,
        int(thumbnail.timestamp),
    )
    return header + thumbnail.pixels + bytes(state)


def is_snapshot(blob: bytes) -> bool:
    return len(blob) >= _HEADER.size and blob[: len(SNAPSHOT_MAGIC)] == SNAPSHOT_MAGIC


def snapshot_version(blob: bytes) -> tuple[int, int, int]:
    if not is_snapshot(blob):
        raise DecodeFailure("not a snapshot blob")
    _magic, major, minor, subminor, _w, _h, _ts = _HEADER.unpack_from(blob)
    return major, minor, subminor


def is_supported_snapshot(blob: bytes) -> bool:
    return is_snapshot(blob) and snapshot_version(blob) == SNAPSHOT_VERSION


def parse_snapshot_blob(blob: bytes) -> SnapshotContents:
    if not is_snapshot(blob):
        raise DecodeFailure("not a snapshot blob")
    _magic, major, minor, subminor, width, height, timestamp = _HEADER.unpack_from(blob)
    version = (major, minor, subminor)
    if version != SNAPSHOT_VERSION:
        raise UnsupportedFormat(
            "snapshot version {}.{}.{} is not supported".format(*version)
        )
    start = _HEADER.size
    end = start + BYTES_PER_PIXEL * width * height
    if len(blob) < end:
        raise DecodeFailure("snapshot thumbnail is truncated")
    thumbnail = Thumbnail(width=width, height=height, pixels=bytes(blob[start:end]), timestamp=timestamp)
    return SnapshotContents(version=version, thumbnail=thumbnail, state=bytes(blob[end:]))
