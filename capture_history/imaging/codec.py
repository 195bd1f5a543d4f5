"""Still-image encoding of captured frames (Pillow)."""

from __future__ import annotations

import struct
from dataclasses import dataclass
from io import BytesIO
from typing import Any, TYPE_CHECKING

from capture_history.core.errors import DecodeFailure, EncodeFailure, UnsupportedFormat

from .color import BYTES_PER_PIXEL, DEFAULT_MAX_BUFFER_BYTES, flip_vertical
from .pixels import PixelRegion, PixelSource, Texture

if TYPE_CHECKING:
    from PIL import Image as PILImage
else:
    PILImage = Any

# Pillow format name and file extension per supported format.
IMAGE_FORMATS: dict[str, tuple[str, str]] = {
    "png": ("PNG", "png"),
    "tiff": ("TIFF", "tiff"),
    "jpeg": ("JPEG", "jpg"),
    "bmp": ("BMP", "bmp"),
}
_ALIASES = {"jpg": "jpeg", "tif": "tiff"}
_PIL_TO_FORMAT = {pil: name for name, (pil, _ext) in IMAGE_FORMATS.items()}


def normalize_format(name: str) -> str:
    key = str(name or "").strip().lower()
    key = _ALIASES.get(key, key)
    if key not in IMAGE_FORMATS:
        raise UnsupportedFormat(f"unsupported image format: {name!r}")
    return key


def format_extension(name: str) -> str:
    return IMAGE_FORMATS[normalize_format(name)][1]


def format_for_extension(ext: str) -> str:
    ext = str(ext or "").lstrip(".").lower()
    for name, (_pil, known) in IMAGE_FORMATS.items():
        if ext == known:
            return name
    return normalize_format(ext)


@dataclass(frozen=True)
class EncodedImage:
    data: bytes
    image_format: str
    width: int
    height: int
    channels: int

    @property
    def extension(self) -> str:
        return format_extension(self.image_format)


def _pil():
    try:
        from PIL import Image as _Image
    except ImportError as exc:  # pragma: no cover - dependency missing
        raise RuntimeError("Pillow is required for capture encoding") from exc
    return _Image


class CaptureCodec:
    """Turns pixel source regions into portable images and back."""

    def __init__(
        self,
        *,
        image_format: str = "png",
        flip_vertical: bool = False,
        png_compress_level: int = 3,
        jpeg_quality: int = 90,
        max_bytes: int = DEFAULT_MAX_BUFFER_BYTES,
    ) -> None:
        self.image_format = normalize_format(image_format)
        self.flip_vertical = bool(flip_vertical)
        self.png_compress_level = min(9, max(0, int(png_compress_level)))
        self.jpeg_quality = min(95, max(1, int(jpeg_quality)))
        self.max_bytes = int(max_bytes)

    def encode(self, source: PixelSource, region: PixelRegion) -> EncodedImage:
        if region.is_empty:
            raise EncodeFailure(f"cannot encode empty region {region.width}x{region.height}")
        pixels = source.read_region(region)
        return self.encode_pixels(pixels, region.width, region.height)

    def encode_pixels(self, pixels: bytes, width: int, height: int) -> EncodedImage:
        if width <= 0 or height <= 0:
            raise EncodeFailure(f"cannot encode empty region {width}x{height}")
        if len(pixels) != BYTES_PER_PIXEL * width * height:
            raise EncodeFailure(f"pixel buffer of {len(pixels)} bytes does not match {width}x{height} RGBA8")
        if self.flip_vertical:
            pixels = flip_vertical(pixels, width, height, max_bytes=self.max_bytes)
        Image = _pil()
        try:
            # Stored without alpha.
            image = Image.frombytes("RGBA", (width, height), bytes(pixels)).convert("RGB")
            buffer = BytesIO()
            self._save(image, buffer)
        except (OSError, ValueError) as exc:
            raise EncodeFailure(f"unable to encode {self.image_format}: {exc}") from exc
        return EncodedImage(
            data=buffer.getvalue(),
            image_format=self.image_format,
            width=int(width),
            height=int(height),
            channels=3,
        )

    def _save(self, image: PILImage, buffer: BytesIO) -> None:
        pil_format = IMAGE_FORMATS[self.image_format][0]
        if self.image_format == "png":
            image.save(buffer, format=pil_format, compress_level=self.png_compress_level, optimize=False)
        elif self.image_format == "jpeg":
            image.save(buffer, format=pil_format, quality=self.jpeg_quality)
        else:
            image.save(buffer, format=pil_format)

    def decode(self, encoded: EncodedImage | bytes) -> PILImage:
        data = encoded.data if isinstance(encoded, EncodedImage) else encoded
        if not data:
            raise DecodeFailure("missing image bytes")
        Image = _pil()
        try:
            image = Image.open(BytesIO(data))
            image.load()
        except (OSError, ValueError, SyntaxError, struct.error, Image.DecompressionBombError) as exc:
            raise DecodeFailure(f"unable to decode image bytes: {exc}") from exc
        if image.format not in _PIL_TO_FORMAT:
            raise UnsupportedFormat(f"unsupported image format: {image.format!r}")
        width, height = image.size
        if width <= 0 or height <= 0:
            raise DecodeFailure("invalid image dimensions")
        if image.mode != "RGBA":
            image = image.convert("RGBA")
        return image

    def describe(self, data: bytes) -> EncodedImage:
        """Validate stored image bytes and return their metadata record."""
        image = self.decode(data)
        Image = _pil()
        with Image.open(BytesIO(data)) as raw:
            pil_format = raw.format
            channels = len(raw.getbands())
        width, height = image.size
        return EncodedImage(
            data=bytes(data),
            image_format=_PIL_TO_FORMAT[pil_format],
            width=int(width),
            height=int(height),
            channels=int(channels),
        )

    def upload_to_renderable(self, image: PILImage) -> Texture:
        """Copy a decoded image into a new rgba8 texture without mipmaps.

        Rows are flipped exactly when `encode` flips them, so uploading a
        decoded capture reproduces the source texture.
        """
        width, height = image.size
        if width <= 0 or height <= 0:
            raise DecodeFailure("invalid image dimensions")
        pixels = image.convert("RGBA").tobytes()
        if self.flip_vertical:
            pixels = flip_vertical(pixels, width, height, max_bytes=self.max_bytes)
        return Texture.from_pixels(pixels, width, height, max_bytes=self.max_bytes)
