"""Hardware color conversion and RGBA8 buffer helpers.

Packed colors carry 4 bits per channel laid out as 0x0RGB. Frame buffers are
tightly packed RGBA8 rows (4 bytes per pixel, red first).
"""

from __future__ import annotations

from typing import Any, TYPE_CHECKING

from capture_history.core.errors import AllocationFailure

if TYPE_CHECKING:
    from PIL import Image as PILImage
else:
    PILImage = Any

BYTES_PER_PIXEL = 4
DEFAULT_MAX_BUFFER_BYTES = 256 * 1024 * 1024

# 8-bit value of each of the 16 hardware levels.
HARDWARE_LEVELS = tuple(level * 17 for level in range(16))


def _check_channel(name: str, value: int) -> int:
    value = int(value)
    if value < 0 or value > 255:
        raise ValueError(f"{name} channel out of range: {value}")
    return value


def to_packed(r: int, g: int, b: int) -> int:
    r4 = _check_channel("red", r) * 15 // 255
    g4 = _check_channel("green", g) * 15 // 255
    b4 = _check_channel("blue", b) * 15 // 255
    return (r4 << 8) | (g4 << 4) | b4


def from_packed(value: int) -> tuple[int, int, int]:
    value = int(value)
    r = (value >> 8) & 0xF
    g = (value >> 4) & 0xF
    b = value & 0xF
    return r * 17, g * 17, b * 17


def to_rgba32(r: int, g: int, b: int, a: int = 255) -> int:
    return (
        _check_channel("red", r)
        | (_check_channel("green", g) << 8)
        | (_check_channel("blue", b) << 16)
        | (_check_channel("alpha", a) << 24)
    )


def from_rgba32(word: int) -> tuple[int, int, int]:
    word = int(word)
    return word & 0xFF, (word >> 8) & 0xFF, (word >> 16) & 0xFF


def allocate_buffer(size: int, *, max_bytes: int = DEFAULT_MAX_BUFFER_BYTES) -> bytearray:
    """Return a zeroed buffer of exactly `size` bytes or raise AllocationFailure."""
    size = int(size)
    if size < 0:
        raise AllocationFailure(f"negative buffer size: {size}")
    if max_bytes > 0 and size > max_bytes:
        raise AllocationFailure(f"buffer of {size} bytes exceeds limit of {max_bytes}")
    try:
        return bytearray(size)
    except (MemoryError, OverflowError) as exc:
        raise AllocationFailure(f"unable to allocate {size} bytes") from exc


def _source_height(buffer: bytes | bytearray | memoryview, source_width: int) -> int:
    stride = BYTES_PER_PIXEL * source_width
    if stride <= 0:
        raise ValueError("source width must be positive")
    if len(buffer) % stride:
        raise ValueError(f"buffer length {len(buffer)} is not a multiple of row size {stride}")
    return len(buffer) // stride


def pack_bytes(
    buffer: bytes | bytearray | memoryview,
    *,
    source_width: int,
    x: int,
    y: int,
    width: int,
    height: int,
    max_bytes: int = DEFAULT_MAX_BUFFER_BYTES,
) -> bytes:
    """Copy a rectangular window of a larger RGBA8 buffer into a new packed buffer."""
    source_width = int(source_width)
    source_height = _source_height(buffer, source_width)
    if width < 0 or height < 0:
        raise ValueError(f"negative window size: {width}x{height}")
    if x < 0 or y < 0 or x + width > source_width or y + height > source_height:
        raise ValueError(
            f"window ({x}, {y}, {width}, {height}) outside {source_width}x{source_height} source"
        )
    row_bytes = BYTES_PER_PIXEL * width
    stride = BYTES_PER_PIXEL * source_width
    out = allocate_buffer(row_bytes * height, max_bytes=max_bytes)
    view = memoryview(buffer)
    for row in range(height):
        start = (y + row) * stride + BYTES_PER_PIXEL * x
        out[row * row_bytes : (row + 1) * row_bytes] = view[start : start + row_bytes]
    return bytes(out)


def flip_vertical(
    buffer: bytes | bytearray | memoryview,
    width: int,
    height: int,
    *,
    max_bytes: int = DEFAULT_MAX_BUFFER_BYTES,
) -> bytes:
    """Return a copy of an RGBA8 buffer with its row order reversed."""
    row_bytes = BYTES_PER_PIXEL * int(width)
    if len(buffer) != row_bytes * int(height):
        raise ValueError(f"buffer length {len(buffer)} does not match {width}x{height} RGBA8")
    out = allocate_buffer(len(buffer), max_bytes=max_bytes)
    view = memoryview(buffer)
    for row in range(height):
        src = (height - 1 - row) * row_bytes
        out[row * row_bytes : (row + 1) * row_bytes] = view[src : src + row_bytes]
    return bytes(out)


def _quantize_channel(value: int) -> int:
    return (value * 15 // 255) * 17


def quantize_image(image: PILImage) -> PILImage:
    """Reduce an image to the 16 hardware levels per channel (RGB result)."""
    rgb = image.convert("RGB")
    table = [_quantize_channel(v) for v in range(256)] * 3
    return rgb.point(table)
