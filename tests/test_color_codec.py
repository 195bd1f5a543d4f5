import unittest

try:
    from PIL import Image
except Exception:  # pragma: no cover - optional dependency guard
    Image = None

from capture_history.core.errors import AllocationFailure
from capture_history.imaging.color import (
    HARDWARE_LEVELS,
    allocate_buffer,
    flip_vertical,
    from_packed,
    from_rgba32,
    pack_bytes,
    quantize_image,
    to_packed,
    to_rgba32,
)


def _indexed_buffer(width: int, height: int) -> bytes:
    out = bytearray()
    for y in range(height):
        for x in range(width):
            out += bytes((x, y, x + y, 255))
    return bytes(out)


class PackedColorTests(unittest.TestCase):
    def test_to_packed_truncates_each_channel(self) -> None:
        self.assertEqual(to_packed(0, 0, 0), 0x000)
        self.assertEqual(to_packed(255, 255, 255), 0xFFF)
        self.assertEqual(to_packed(16, 17, 34), 0x012)
        self.assertEqual(to_packed(254, 0, 0), 0xE00)

    def test_to_packed_rejects_out_of_range_channels(self) -> None:
        with self.assertRaises(ValueError):
            to_packed(256, 0, 0)
        with self.assertRaises(ValueError):
            to_packed(0, -1, 0)

    def test_from_packed_scales_nibbles(self) -> None:
        self.assertEqual(from_packed(0xF80), (255, 136, 0))
        self.assertEqual(from_packed(0x000), (0, 0, 0))
        self.assertEqual(from_packed(0xF123), from_packed(0x123))

    def test_round_trip_is_a_fixed_point(self) -> None:
        for value in range(256):
            for triple in ((value, 0, 0), (0, value, 0), (0, 0, value), (value, value, value)):
                packed = to_packed(*triple)
                decoded = from_packed(packed)
                for channel in decoded:
                    self.assertIn(channel, HARDWARE_LEVELS)
                self.assertEqual(to_packed(*decoded), packed)

    def test_every_packed_value_survives_decode_encode(self) -> None:
        for packed in range(0x1000):
            self.assertEqual(to_packed(*from_packed(packed)), packed)

    def test_rgba32_words_store_red_in_low_byte(self) -> None:
        word = to_rgba32(0x11, 0x22, 0x33)
        self.assertEqual(word, 0xFF332211)
        self.assertEqual(from_rgba32(word), (0x11, 0x22, 0x33))


class BufferTests(unittest.TestCase):
    def test_pack_bytes_copies_window(self) -> None:
        source = _indexed_buffer(4, 3)
        window = pack_bytes(source, source_width=4, x=1, y=1, width=2, height=2)
        self.assertEqual(len(window), 4 * 2 * 2)
        self.assertEqual(window[0:4], bytes((1, 1, 2, 255)))
        self.assertEqual(window[4:8], bytes((2, 1, 3, 255)))
        self.assertEqual(window[8:12], bytes((1, 2, 3, 255)))
        self.assertEqual(window[12:16], bytes((2, 2, 4, 255)))

    def test_pack_bytes_rejects_window_outside_source(self) -> None:
        source = _indexed_buffer(4, 3)
        with self.assertRaises(ValueError):
            pack_bytes(source, source_width=4, x=3, y=0, width=2, height=1)
        with self.assertRaises(ValueError):
            pack_bytes(source, source_width=4, x=0, y=2, width=1, height=2)

    def test_flip_vertical_reverses_rows(self) -> None:
        source = _indexed_buffer(2, 3)
        flipped = flip_vertical(source, 2, 3)
        row = 4 * 2
        self.assertEqual(flipped[0:row], source[2 * row : 3 * row])
        self.assertEqual(flipped[2 * row : 3 * row], source[0:row])
        self.assertEqual(flip_vertical(flipped, 2, 3), source)

    def test_flip_vertical_rejects_mismatched_length(self) -> None:
        with self.assertRaises(ValueError):
            flip_vertical(b"\x00" * 10, 2, 2)

    def test_allocation_over_limit_fails_explicitly(self) -> None:
        with self.assertRaises(AllocationFailure):
            allocate_buffer(1024, max_bytes=512)
        with self.assertRaises(AllocationFailure):
            allocate_buffer(-1)
        with self.assertRaises(AllocationFailure):
            flip_vertical(_indexed_buffer(4, 4), 4, 4, max_bytes=16)


@unittest.skipIf(Image is None, "Pillow is required for quantization tests")
class QuantizeImageTests(unittest.TestCase):
    def test_quantize_maps_channels_to_hardware_levels(self) -> None:
        assert Image is not None
        image = Image.new("RGBA", (2, 1), (16, 100, 255, 128))
        quantized = quantize_image(image)
        self.assertEqual(quantized.mode, "RGB")
        self.assertEqual(quantized.getpixel((0, 0)), (0, 85, 255))


if __name__ == "__main__":
    unittest.main()
