"""
Lossless PNG recompression using Pillow.
"""

import io
import logging
import threading
from pathlib import Path

from PIL import Image

from ..errors import CodecError
from ..utils.filesystem import ensure_parent
from .base import StageSpec, suffix_predicate

logger = logging.getLogger(__name__)

PNG_SUFFIXES = (".png",)
MAX_COMPRESS_LEVEL = 9

# Modes Pillow writes back at 16 bits per sample
WIDE_MODES = ("I", "I;16", "I;16B")


def png_bit_depth(data: bytes) -> int:
    """Bits per sample declared in the IHDR chunk, or 0 when there is no IHDR header."""
    if len(data) < 25 or data[12:16] != b"IHDR":
        return 0
    return data[24]


class PngRecompressor:
    """
    Re-encodes PNG files with the strongest settings Pillow offers.

    Pixel data, mode, transparency and ICC profile are carried over
    unchanged. The new encoding is only kept when it is smaller than the
    original. Files are left untouched when a re-encode could not reproduce
    them: animated PNGs, since only their first frame would survive, and
    16-bit colour or grey-alpha PNGs, which Pillow decodes at 8 bits.

    Pillow's decompression bomb guard stays active, so an image larger than
    twice ``Image.MAX_IMAGE_PIXELS`` fails with a CodecError.
    """

    def __init__(self, compress_level: int = MAX_COMPRESS_LEVEL):
        if not 0 <= compress_level <= MAX_COMPRESS_LEVEL:
            raise ValueError(f"compress_level must be between 0 and 9, got {compress_level}")
        self.compress_level = compress_level
        self.bytes_saved = 0
        self.files_rewritten = 0
        self._lock = threading.Lock()

    def encode(self, data: bytes, path: Path) -> bytes:
        """
        Re-encode PNG bytes, returning whichever encoding is smaller.

        Raises:
            CodecError: If the data cannot be decoded or re-encoded as PNG
        """
        try:
            with Image.open(io.BytesIO(data)) as image:
                if image.format != "PNG":
                    raise CodecError(path, f"expected PNG data, found {image.format}")
                if getattr(image, "is_animated", False):
                    logger.debug(f"Keeping animated PNG as-is: {path}")
                    return data

                if png_bit_depth(data) > 8 and image.mode not in WIDE_MODES:
                    logger.debug(f"Keeping {image.mode} PNG with 16-bit samples as-is: {path}")
                    return data

                image.load()
                buffer = io.BytesIO()
                image.save(
                    buffer,
                    format="PNG",
                    optimize=self.compress_level == MAX_COMPRESS_LEVEL,
                    compress_level=self.compress_level,
                )
        except CodecError:
            raise
        except (OSError, SyntaxError, ValueError, Image.DecompressionBombError) as e:
            raise CodecError(path, str(e))

        optimized = buffer.getvalue()
        return optimized if len(optimized) < len(data) else data

    def __call__(self, source: Path, destination: Path) -> None:
        original = source.read_bytes()
        optimized = self.encode(original, source)

        if optimized is original and source == destination:
            return

        ensure_parent(destination)
        destination.write_bytes(optimized)

        if optimized is not original:
            with self._lock:
                self.bytes_saved += len(original) - len(optimized)
                self.files_rewritten += 1


def make_png_stage(recompressor: PngRecompressor, sequential: bool = True) -> StageSpec:
    """
    Build the PNG stage around a recompressor.

    The stage runs one file at a time by default so that encoder work never
    piles up across threads.
    """
    return StageSpec(
        name="compress_png",
        prompt="Compress all .png files",
        predicate=suffix_predicate(*PNG_SUFFIXES),
        transform=recompressor,
        label="png-like",
        verb="Compressed",
        sequential=sequential,
    )
