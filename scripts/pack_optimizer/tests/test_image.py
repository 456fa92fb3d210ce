"""
Tests for lossless PNG recompression.
"""

import shutil
import struct
import tempfile
import threading
import unittest
import zlib
from dataclasses import replace
from pathlib import Path
from unittest.mock import patch

from PIL import Image

from ..errors import CodecError
from ..processing.base import run_stage
from ..processing.image import PngRecompressor, make_png_stage, png_bit_depth
from ..utils.executor import StageExecutor


def create_test_png(path: Path, size=(32, 32), mode="RGBA", compress_level=0) -> Image.Image:
    """Write a patterned PNG with weak compression so that recompression can shrink it."""
    image = Image.new(mode, size, (0, 0, 0, 0) if mode == "RGBA" else 0)
    pixels = image.load()
    for x in range(size[0]):
        for y in range(size[1]):
            if (x + y) % 4 == 0:
                pixels[x, y] = (200, 30, 30, 255) if mode == "RGBA" else 1
    image.save(path, format="PNG", compress_level=compress_level)
    return image


def _png_chunk(kind: bytes, payload: bytes) -> bytes:
    return struct.pack(">I", len(payload)) + kind + payload + struct.pack(">I", zlib.crc32(kind + payload))


def build_wide_png(size=(64, 64), color_type=2) -> bytes:
    """Hand-assemble an uncompressed 16-bit PNG (colour type 2 is RGB, 4 is grey-alpha)."""
    width, height = size
    channels = {2: 3, 4: 2, 6: 4}[color_type]
    rows = b"".join(
        b"\x00" + b"".join(struct.pack(">H", (x * 1031 + y * 257 + c * 4099) % 65536)
                          for x in range(width) for c in range(channels))
        for y in range(height)
    )
    header = struct.pack(">IIBBBBB", width, height, 16, color_type, 0, 0, 0)
    return (b"\x89PNG\r\n\x1a\n" + _png_chunk(b"IHDR", header)
            + _png_chunk(b"IDAT", zlib.compress(rows, 0)) + _png_chunk(b"IEND", b""))


class TestPngRecompressor(unittest.TestCase):
    """Test cases for PngRecompressor."""

    def setUp(self):
        self.temp_dir = Path(tempfile.mkdtemp())
        self.recompressor = PngRecompressor()

    def tearDown(self):
        shutil.rmtree(self.temp_dir, ignore_errors=True)

    def test_recompressed_file_is_smaller_and_pixel_identical(self):
        path = self.temp_dir / "stone.png"
        original = create_test_png(path)
        original_size = path.stat().st_size

        self.recompressor(path, path)

        self.assertLess(path.stat().st_size, original_size)
        with Image.open(path) as result:
            self.assertEqual(result.mode, original.mode)
            self.assertEqual(result.size, original.size)
            self.assertEqual(list(result.getdata()), list(original.getdata()))
        self.assertEqual(self.recompressor.files_rewritten, 1)
        self.assertEqual(self.recompressor.bytes_saved, original_size - path.stat().st_size)

    def test_palette_transparency_preserved(self):
        path = self.temp_dir / "palette.png"
        image = Image.new("P", (16, 16), 0)
        image.putpalette([0, 0, 0, 255, 0, 0] + [0] * (256 * 3 - 6))
        image.info["transparency"] = 0
        image.save(path, format="PNG", compress_level=0, transparency=0)

        self.recompressor(path, path)

        with Image.open(path) as result:
            self.assertEqual(result.mode, "P")
            self.assertEqual(result.info.get("transparency"), 0)

    def test_already_optimal_file_left_unchanged(self):
        path = self.temp_dir / "tiny.png"
        create_test_png(path, size=(1, 1), compress_level=9)
        before = path.read_bytes()

        with patch.object(PngRecompressor, "encode", side_effect=lambda data, path: data):
            self.recompressor(path, path)

        self.assertEqual(path.read_bytes(), before)
        self.assertEqual(self.recompressor.files_rewritten, 0)
        self.assertEqual(self.recompressor.bytes_saved, 0)

    def test_writes_to_separate_destination(self):
        source = self.temp_dir / "in" / "a.png"
        source.parent.mkdir()
        create_test_png(source)
        destination = self.temp_dir / "out" / "nested" / "a.png"

        self.recompressor(source, destination)

        self.assertTrue(destination.exists())
        with Image.open(destination) as image:
            self.assertEqual(image.format, "PNG")

    def test_invalid_data_raises_codec_error(self):
        path = self.temp_dir / "broken.png"
        path.write_bytes(b"definitely not a png")

        with self.assertRaises(CodecError) as context:
            self.recompressor(path, path)

        self.assertEqual(context.exception.path, path)

    def test_truncated_png_raises_codec_error(self):
        path = self.temp_dir / "truncated.png"
        create_test_png(path, size=(64, 64))
        path.write_bytes(path.read_bytes()[:60])

        with self.assertRaises(CodecError):
            self.recompressor(path, path)

    def test_non_png_image_raises_codec_error(self):
        path = self.temp_dir / "really_a_gif.png"
        Image.new("P", (4, 4)).save(path, format="GIF")

        with self.assertRaises(CodecError):
            self.recompressor(path, path)

    def test_wide_rgb_png_kept_unchanged(self):
        data = build_wide_png(color_type=2)
        self.assertEqual(png_bit_depth(data), 16)

        result = self.recompressor.encode(data, Path("wide.png"))

        self.assertIs(result, data)

    def test_wide_grey_alpha_png_kept_unchanged(self):
        path = self.temp_dir / "wide_la.png"
        data = build_wide_png(size=(16, 16), color_type=4)
        path.write_bytes(data)

        self.recompressor(path, path)

        self.assertEqual(path.read_bytes(), data)
        self.assertEqual(self.recompressor.files_rewritten, 0)

    def test_wide_grayscale_png_keeps_depth_and_samples(self):
        path = self.temp_dir / "height.png"
        samples = b"".join(struct.pack("<H", (i // 32) * 2000 + 300) for i in range(32 * 32))
        original = Image.frombytes("I;16", (32, 32), samples)
        original.save(path, format="PNG", compress_level=0)
        original_size = path.stat().st_size

        self.recompressor(path, path)

        self.assertLess(path.stat().st_size, original_size)
        self.assertEqual(png_bit_depth(path.read_bytes()), 16)
        with Image.open(path) as result:
            self.assertEqual(list(result.getdata()), list(original.getdata()))

    def test_bit_depth_of_eight_bit_png(self):
        path = self.temp_dir / "plain.png"
        create_test_png(path)
        self.assertEqual(png_bit_depth(path.read_bytes()), 8)
        self.assertEqual(png_bit_depth(b"short"), 0)

    def test_decompression_bomb_is_codec_error(self):
        path = self.temp_dir / "large.png"
        create_test_png(path)

        with patch.object(Image, "MAX_IMAGE_PIXELS", 100):
            with self.assertRaises(CodecError):
                self.recompressor(path, path)

    def test_invalid_compress_level(self):
        with self.assertRaises(ValueError):
            PngRecompressor(compress_level=12)


class TestPngStage(unittest.TestCase):
    """Test cases for the PNG stage descriptor."""

    def setUp(self):
        self.temp_dir = Path(tempfile.mkdtemp())

    def tearDown(self):
        shutil.rmtree(self.temp_dir, ignore_errors=True)

    def test_stage_is_sequential_by_default(self):
        stage = make_png_stage(PngRecompressor())
        self.assertTrue(stage.sequential)
        self.assertFalse(make_png_stage(PngRecompressor(), sequential=False).sequential)

    def test_stage_runs_on_calling_thread_only(self):
        for index in range(4):
            create_test_png(self.temp_dir / f"img_{index}.png")

        recompressor = PngRecompressor()
        thread_ids = set()

        def tracking_call(source, destination):
            thread_ids.add(threading.get_ident())
            PngRecompressor.__call__(recompressor, source, destination)

        stage = make_png_stage(recompressor)
        stage = replace(stage, transform=tracking_call)

        report = run_stage(stage, self.temp_dir, self.temp_dir, StageExecutor(max_workers=8))

        self.assertEqual(report.processed, 4)
        self.assertTrue(report.sequential)
        self.assertEqual(thread_ids, {threading.get_ident()})
        self.assertEqual(recompressor.files_rewritten, 4)

    def test_stage_failure_is_fatal(self):
        create_test_png(self.temp_dir / "good.png")
        (self.temp_dir / "bad.png").write_bytes(b"garbage")

        with self.assertRaises(CodecError):
            run_stage(make_png_stage(PngRecompressor()), self.temp_dir, self.temp_dir)


if __name__ == "__main__":
    unittest.main()
