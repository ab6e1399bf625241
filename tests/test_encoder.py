"""
Tests for the Pillow backed GIF encoder.
"""

import io

import numpy as np
import pytest
from PIL import Image

from gifit.core.encoder import GifEncoder
from gifit.core.errors import EncodingError

PALETTE = [(0, 0, 0), (255, 0, 0), (0, 0, 255)]


def indices(width, height, value):
    return np.full(width * height, value, dtype=np.uint8)


class TestGifEncoder:
    def test_writes_an_animated_gif(self):
        encoder = GifEncoder()
        encoder.write_frame(indices(4, 2, 1), 4, 2, PALETTE, 100)
        encoder.write_frame(indices(4, 2, 2), 4, 2, PALETTE, 100)
        encoder.finish()

        data = encoder.getvalue()

        assert data.startswith(b"GIF89a")
        with Image.open(io.BytesIO(data)) as gif:
            assert gif.size == (4, 2)
            assert gif.n_frames == 2
            assert gif.info["duration"] == 100
            assert gif.info["loop"] == 0
            assert gif.convert("RGB").getpixel((0, 0)) == (255, 0, 0)
            gif.seek(1)
            assert gif.convert("RGB").getpixel((0, 0)) == (0, 0, 255)

    def test_frame_count(self):
        encoder = GifEncoder()
        encoder.write_frame(indices(1, 1, 0), 1, 1, PALETTE, 50)
        assert encoder.frame_count == 1

    def test_finish_is_idempotent(self):
        encoder = GifEncoder()
        encoder.write_frame(indices(2, 2, 0), 2, 2, PALETTE, 100)
        encoder.finish()
        first = encoder.getvalue()
        encoder.finish()
        assert encoder.getvalue() == first

    def test_getvalue_before_finish_fails(self):
        with pytest.raises(EncodingError, match="not been finished"):
            GifEncoder().getvalue()

    def test_finish_without_frames_fails(self):
        with pytest.raises(EncodingError, match="No frames"):
            GifEncoder().finish()

    def test_rejects_wrong_index_count(self):
        with pytest.raises(EncodingError, match="Expected 6 indices"):
            GifEncoder().write_frame(indices(2, 2, 0), 3, 2, PALETTE, 100)

    def test_rejects_indices_outside_the_palette(self):
        with pytest.raises(EncodingError, match="outside its palette"):
            GifEncoder().write_frame(indices(2, 2, 3), 2, 2, PALETTE, 100)

    def test_rejects_oversized_palettes(self):
        palette = [(i % 256, i // 256, 0) for i in range(257)]
        with pytest.raises(EncodingError, match="at most 256"):
            GifEncoder().write_frame(indices(1, 1, 0), 1, 1, palette, 100)

    def test_rejects_frames_after_finish(self):
        encoder = GifEncoder()
        encoder.write_frame(indices(1, 1, 0), 1, 1, PALETTE, 100)
        encoder.finish()
        with pytest.raises(EncodingError, match="finished GIF"):
            encoder.write_frame(indices(1, 1, 0), 1, 1, PALETTE, 100)
