"""Pixel sources: synchronous read-back of rendered RGBA8 regions."""

from __future__ import annotations

import threading
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Iterator, Protocol

from capture_history.core.errors import SourceUnreadable

from .color import BYTES_PER_PIXEL, DEFAULT_MAX_BUFFER_BYTES, allocate_buffer, pack_bytes


@dataclass(frozen=True)
class PixelRegion:
    """Rectangle in source-pixel units; (x, y) is the upper left corner."""

    x: int
    y: int
    width: int
    height: int

    @classmethod
    def full(cls, width: int, height: int) -> "PixelRegion":
        return cls(0, 0, int(width), int(height))

    @classmethod
    def from_normalized(
        cls,
        rect: tuple[float, float, float, float],
        source_width: int,
        source_height: int,
    ) -> "PixelRegion":
        # Truncates like the renderer's texture-rect math.
        min_x, min_y, rect_w, rect_h = rect
        return cls(
            int(source_width * min_x),
            int(source_height * min_y),
            int(source_width * rect_w),
            int(source_height * rect_h),
        )

    @property
    def is_empty(self) -> bool:
        return self.width <= 0 or self.height <= 0

    def fits(self, width: int, height: int) -> bool:
        return (
            self.x >= 0
            and self.y >= 0
            and self.width >= 0
            and self.height >= 0
            and self.x + self.width <= width
            and self.y + self.height <= height
        )


class PixelSource(Protocol):
    width: int
    height: int

    def read_region(self, region: PixelRegion) -> bytes:
        """Block until pending writes drain, then copy `region` as RGBA8."""


class Texture:
    """In-memory RGBA8 texture.

    Renderers write through `producing()`; readers block in `read_region` until
    every in-flight producer has finished, which is the read-back fence.
    """

    pixel_format = "rgba8"
    mipmapped = False

    def __init__(self, width: int, height: int, *, max_bytes: int = DEFAULT_MAX_BUFFER_BYTES) -> None:
        if width <= 0 or height <= 0:
            raise ValueError(f"texture size must be positive: {width}x{height}")
        self.width = int(width)
        self.height = int(height)
        self._max_bytes = int(max_bytes)
        self._pixels = allocate_buffer(BYTES_PER_PIXEL * self.width * self.height, max_bytes=self._max_bytes)
        self._cond = threading.Condition()
        self._producers = 0
        self._released = False

    @classmethod
    def from_pixels(cls, pixels: bytes, width: int, height: int, **kwargs) -> "Texture":
        texture = cls(width, height, **kwargs)
        texture.replace(PixelRegion.full(width, height), pixels)
        return texture

    @property
    def released(self) -> bool:
        return self._released

    @contextmanager
    def producing(self) -> Iterator["Texture"]:
        with self._cond:
            if self._released:
                raise SourceUnreadable("texture has been released")
            self._producers += 1
        try:
            yield self
        finally:
            with self._cond:
                self._producers -= 1
                self._cond.notify_all()

    def replace(self, region: PixelRegion, data: bytes, bytes_per_row: int | None = None) -> None:
        if not region.fits(self.width, self.height):
            raise SourceUnreadable(f"region {region} outside {self.width}x{self.height} texture")
        row_bytes = BYTES_PER_PIXEL * region.width
        stride = int(bytes_per_row) if bytes_per_row is not None else row_bytes
        if stride < row_bytes:
            raise ValueError(f"bytes_per_row {stride} smaller than row size {row_bytes}")
        if region.height and len(data) < stride * (region.height - 1) + row_bytes:
            raise ValueError("pixel data shorter than region")
        view = memoryview(data)
        texture_stride = BYTES_PER_PIXEL * self.width
        with self.producing():
            for row in range(region.height):
                dst = (region.y + row) * texture_stride + BYTES_PER_PIXEL * region.x
                src = row * stride
                self._pixels[dst : dst + row_bytes] = view[src : src + row_bytes]

    def read_region(self, region: PixelRegion) -> bytes:
        with self._cond:
            self._cond.wait_for(lambda: self._producers == 0 or self._released)
            if self._released:
                raise SourceUnreadable("texture has been released")
            if not region.fits(self.width, self.height):
                raise SourceUnreadable(f"region {region} outside {self.width}x{self.height} texture")
            return pack_bytes(
                self._pixels,
                source_width=self.width,
                x=region.x,
                y=region.y,
                width=region.width,
                height=region.height,
                max_bytes=self._max_bytes,
            )

    def release(self) -> None:
        with self._cond:
            self._released = True
            self._pixels = bytearray()
            self._cond.notify_all()
