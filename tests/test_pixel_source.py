import threading
import unittest

from capture_history.core.errors import SourceUnreadable
from capture_history.imaging.pixels import PixelRegion, Texture


def _solid(width: int, height: int, rgba: tuple[int, int, int, int]) -> bytes:
    return bytes(rgba) * (width * height)


class PixelRegionTests(unittest.TestCase):
    def test_from_normalized_truncates_to_source_pixels(self) -> None:
        region = PixelRegion.from_normalized((0.25, 0.5, 0.5, 0.5), 8, 5)
        self.assertEqual(region, PixelRegion(2, 2, 4, 2))

    def test_fits_checks_bounds(self) -> None:
        self.assertTrue(PixelRegion(0, 0, 4, 4).fits(4, 4))
        self.assertFalse(PixelRegion(1, 0, 4, 4).fits(4, 4))
        self.assertFalse(PixelRegion(-1, 0, 1, 1).fits(4, 4))
        self.assertTrue(PixelRegion(0, 0, 0, 3).is_empty)


class TextureTests(unittest.TestCase):
    def test_read_region_returns_owned_copy(self) -> None:
        texture = Texture.from_pixels(_solid(4, 4, (1, 2, 3, 255)), 4, 4)
        data = texture.read_region(PixelRegion(1, 1, 2, 3))
        self.assertIsInstance(data, bytes)
        self.assertEqual(data, _solid(2, 3, (1, 2, 3, 255)))
        texture.replace(PixelRegion.full(4, 4), _solid(4, 4, (9, 9, 9, 255)))
        self.assertEqual(data, _solid(2, 3, (1, 2, 3, 255)))

    def test_replace_honours_bytes_per_row(self) -> None:
        texture = Texture(2, 2)
        padded = bytes((1, 1, 1, 1)) + bytes(4) + bytes(8) + bytes((2, 2, 2, 2)) + bytes(12)
        texture.replace(PixelRegion(0, 0, 1, 2), padded, bytes_per_row=16)
        full = texture.read_region(PixelRegion.full(2, 2))
        self.assertEqual(full[0:4], bytes((1, 1, 1, 1)))
        self.assertEqual(full[8:12], bytes((2, 2, 2, 2)))

    def test_region_outside_source_is_unreadable(self) -> None:
        texture = Texture(4, 4)
        with self.assertRaises(SourceUnreadable):
            texture.read_region(PixelRegion(2, 2, 4, 4))

    def test_released_texture_is_unreadable(self) -> None:
        texture = Texture(4, 4)
        texture.release()
        self.assertTrue(texture.released)
        with self.assertRaises(SourceUnreadable):
            texture.read_region(PixelRegion.full(4, 4))
        with self.assertRaises(SourceUnreadable):
            with texture.producing():
                pass

    def test_read_waits_for_in_flight_producer(self) -> None:
        texture = Texture.from_pixels(_solid(2, 2, (0, 0, 0, 255)), 2, 2)
        started = threading.Event()
        result: list[bytes] = []

        def _reader() -> None:
            started.set()
            result.append(texture.read_region(PixelRegion.full(2, 2)))

        with texture.producing():
            reader = threading.Thread(target=_reader, daemon=True)
            reader.start()
            started.wait(timeout=5)
            reader.join(timeout=0.2)
            self.assertTrue(reader.is_alive())
            texture.replace(PixelRegion.full(2, 2), _solid(2, 2, (7, 7, 7, 255)))
        reader.join(timeout=5)
        self.assertFalse(reader.is_alive())
        self.assertEqual(result, [_solid(2, 2, (7, 7, 7, 255))])

    def test_texture_reports_rgba8_without_mipmaps(self) -> None:
        texture = Texture(3, 2)
        self.assertEqual(texture.pixel_format, "rgba8")
        self.assertFalse(texture.mipmapped)
        with self.assertRaises(ValueError):
            Texture(0, 2)


if __name__ == "__main__":
    unittest.main()
