"""Pixel read-back, hardware color conversion and still-image codecs."""

from .codec import IMAGE_FORMATS, CaptureCodec, EncodedImage, normalize_format
from .color import flip_vertical, from_packed, pack_bytes, quantize_image, to_packed
from .pixels import PixelRegion, PixelSource, Texture

__all__ = [
    "IMAGE_FORMATS",
    "CaptureCodec",
    "EncodedImage",
    "PixelRegion",
    "PixelSource",
    "Texture",
    "flip_vertical",
    "from_packed",
    "normalize_format",
    "pack_bytes",
    "quantize_image",
    "to_packed",
]
