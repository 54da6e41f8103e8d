"""
Tests for surfaces and the image/matrix bridge.
"""

import numpy as np
import pytest
from PIL import Image

from imagetools import (
    TRANSPARENT,
    DimensionError,
    Encoding,
    Matrix,
    PackedSurface,
    PalettedSurface,
    Rect,
    SubsampleRatio,
    UniformSurface,
    Why,
    YCbCrSurface,
    clone,
    convolve,
    crop,
    dimensions,
    from_pil,
    gray_to_matrix,
    matrices_to_rgb,
    matrices_to_rgba,
    matrix_to_gray,
    reduce,
    rgba_to_matrices,
    to_pil,
    to_rgba,
)

WHITE = (0xFFFF, 0xFFFF, 0xFFFF, 0xFFFF)
BLACK = (0, 0, 0, 0xFFFF)


def make_rgba(width=4, height=3, seed=0):
    """Random opaque RGBA surface."""
    rng = np.random.default_rng(seed)
    samples = rng.integers(0, 256, size=(height, width, 4), dtype=np.uint8)
    samples[..., 3] = 255
    return PackedSurface.from_array(Encoding.RGBA, samples)


class TestRect:
    def test_geometry(self):
        r = Rect(1, 2, 4, 6)
        assert (r.dx(), r.dy()) == (3, 4)
        assert r.contains(1, 2) and not r.contains(4, 2)
        assert r.at_origin() == Rect(0, 0, 3, 4)
        assert Rect(2, 2, 2, 5).empty()

    def test_intersect(self):
        assert Rect(0, 0, 4, 4).intersect(Rect(2, 1, 6, 3)) == Rect(2, 1, 4, 3)
        assert Rect(0, 0, 2, 2).intersect(Rect(3, 3, 5, 5)) == Rect(0, 0, 0, 0)

    @pytest.mark.parametrize(
        "ratio,expected",
        [
            (SubsampleRatio.R444, (5, 3)),
            (SubsampleRatio.R422, (3, 3)),
            (SubsampleRatio.R420, (3, 2)),
            (SubsampleRatio.R440, (5, 2)),
            (SubsampleRatio.R411, (2, 3)),
            (SubsampleRatio.R410, (2, 2)),
        ],
    )
    def test_chroma_size(self, ratio, expected):
        assert ratio.chroma_size(5, 3) == expected


class TestReduce:
    def test_drops_padding(self):
        pix = np.arange(12, dtype=np.uint8)
        reduced = reduce(pix, 4, Rect(0, 0, 2, 3), 1)
        assert reduced.stride == 2
        assert reduced.rect == Rect(0, 0, 2, 3)
        np.testing.assert_array_equal(reduced.pix, [0, 1, 4, 5, 8, 9])

    def test_moves_to_origin(self):
        reduced = reduce(np.arange(8, dtype=np.uint8), 4, Rect(3, 5, 5, 6), 2)
        assert reduced.rect == Rect(0, 0, 2, 1)
        assert reduced.stride == 4

    def test_empty(self):
        reduced = reduce(np.arange(8, dtype=np.uint8), 4, Rect(2, 2, 2, 4), 1)
        assert reduced.pix.size == 0
        assert reduced.stride == 0
        assert reduced.rect == Rect(0, 0, 0, 0)


class TestColorModels:
    """16-bit premultiplied readout of each encoding."""

    def test_nrgba_premultiplies(self):
        s = PackedSurface.from_array(Encoding.NRGBA, np.array([[[255, 0, 0, 128]]], dtype=np.uint8))
        assert s.rgba64_at(0, 0) == (32896, 0, 0, 32896)
        np.testing.assert_array_equal(to_rgba(s).samples()[0, 0], [128, 0, 0, 128])

    def test_gray_and_alpha(self):
        gray = PackedSurface.from_array(Encoding.GRAY, np.array([[7]], dtype=np.uint8))
        alpha = PackedSurface.from_array(Encoding.ALPHA, np.array([[7]], dtype=np.uint8))
        assert gray.rgba64_at(0, 0) == (7 * 257, 7 * 257, 7 * 257, 0xFFFF)
        assert alpha.rgba64_at(0, 0) == (7 * 257,) * 4

    def test_sixteen_bit_samples_are_big_endian(self):
        s = PackedSurface.from_array(Encoding.GRAY16, np.array([[[0x12, 0x34]]], dtype=np.uint8))
        assert s.rgba64_at(0, 0) == (0x1234, 0x1234, 0x1234, 0xFFFF)

    def test_cmyk(self):
        s = PackedSurface.from_array(Encoding.CMYK, np.array([[[0, 0, 0, 0], [0, 0, 0, 255]]], dtype=np.uint8))
        assert s.rgba64_at(0, 0) == WHITE
        assert s.rgba64_at(1, 0) == BLACK

    def test_ycbcr(self):
        s = YCbCrSurface.new(2, 1)
        s.y[:] = [255, 0]
        assert s.rgba64_at(0, 0) == WHITE
        assert s.rgba64_at(1, 0) == BLACK
        assert s.encoding == Encoding.YCBCR

    def test_outside_bounds_is_transparent(self):
        assert make_rgba().rgba64_at(10, 10) == TRANSPARENT

    def test_paletted_out_of_range_index(self):
        s = PalettedSurface(np.array([0, 1], dtype=np.uint8), 2, Rect(0, 0, 2, 1), (WHITE,))
        assert s.rgba64_at(0, 0) == WHITE
        assert s.rgba64_at(1, 0) == TRANSPARENT


class TestClone:
    def test_sub_image_is_canonicalized(self):
        s = PackedSurface.from_array(Encoding.GRAY, np.arange(16, dtype=np.uint8).reshape(4, 4))
        sub = s.sub_image(Rect(1, 1, 3, 3))
        assert sub.bounds == Rect(1, 1, 3, 3)
        assert sub.rgba64_at(1, 1)[0] == 5 * 257

        c = clone(sub)
        assert c.encoding == Encoding.GRAY
        assert c.rect == Rect(0, 0, 2, 2)
        assert c.stride == 2
        np.testing.assert_array_equal(c.samples()[..., 0], [[5, 6], [9, 10]])

    def test_clone_does_not_share_buffer(self):
        s = make_rgba()
        c = clone(s)
        c.pix[:] = 0
        assert s.samples().any()

    def test_palette_is_capped(self):
        palette = tuple((i, i, i, 0xFFFF) for i in range(300))
        s = PalettedSurface(np.zeros(4, dtype=np.uint8), 2, Rect(0, 0, 2, 2), palette)
        assert len(clone(s).palette) == 256

    def test_ycbcr_subsampled(self):
        s = YCbCrSurface.new(5, 3, SubsampleRatio.R420)
        c = clone(s.sub_image(Rect(2, 0, 5, 3)))
        assert c.rect == Rect(0, 0, 3, 3)
        assert c.ratio == SubsampleRatio.R420
        assert c.c_stride == 2

    def test_ycbcr_unaligned_origin_keeps_colors(self):
        s = YCbCrSurface.new(4, 2, SubsampleRatio.R420)
        s.cb[:] = [0, 255]
        s.cr[:] = [0, 255]
        sub = s.sub_image(Rect(1, 0, 3, 2))

        c = clone(sub)
        assert c.rect == Rect(0, 0, 2, 2)
        assert c.ratio == SubsampleRatio.R444
        np.testing.assert_array_equal(c.rgba64_pixels(), sub.rgba64_pixels())

    @pytest.mark.parametrize("ratio", list(SubsampleRatio))
    @pytest.mark.parametrize(
        "rect", [Rect(1, 1, 4, 3), Rect(3, 0, 7, 3), Rect(0, 1, 7, 2), Rect(2, 2, 6, 4)]
    )
    def test_ycbcr_crop_matches_source(self, ratio, rect):
        rng = np.random.default_rng(6)
        s = YCbCrSurface.new(7, 4, ratio, alpha=True)
        for plane in (s.y, s.cb, s.cr, s.a):
            plane[:] = rng.integers(0, 256, size=plane.size)

        c = crop(s, rect)
        assert c.rect == rect.at_origin()
        np.testing.assert_array_equal(
            c.rgba64_pixels(), s.rgba64_pixels()[rect.y0 : rect.y1, rect.x0 : rect.x1]
        )

    def test_uniform(self):
        u = UniformSurface((1, 2, 3, 4))
        assert clone(u).color == (1, 2, 3, 4)
        assert clone(None) is None


class TestDimensions:
    def test_rgba_planes(self):
        s = make_rgba()
        planes = dimensions(s)
        assert list(planes) == ["R", "G", "B", "A"]
        for i, key in enumerate("RGBA"):
            np.testing.assert_array_equal(planes[key].samples()[..., 0], s.samples()[..., i])

    def test_sixteen_bit_keeps_high_byte(self):
        samples = np.zeros((1, 1, 8), dtype=np.uint8)
        samples[0, 0] = [0xAB, 0x01, 0, 0, 0, 0, 0xFF, 0xFF]
        planes = dimensions(PackedSurface.from_array(Encoding.RGBA64, samples))
        assert planes["R"].samples()[0, 0, 0] == 0xAB

    def test_gray_and_alpha(self):
        assert list(dimensions(PackedSurface.new(Encoding.GRAY, 2, 2))) == ["Gray"]
        assert list(dimensions(PackedSurface.new(Encoding.ALPHA16, 2, 2))) == ["Alpha"]

    def test_ycbcr_planes(self):
        planes = dimensions(YCbCrSurface.new(4, 4, SubsampleRatio.R420))
        assert set(planes) == {"Y", "Cb", "Cr"}
        assert planes["Y"].rect == Rect(0, 0, 4, 4)
        assert planes["Cb"].rect == Rect(0, 0, 2, 2)

    def test_nycbcra_blends_luma(self):
        s = YCbCrSurface.new(1, 1, alpha=True)
        s.y[:] = 200
        s.a[:] = 128
        assert s.encoding == Encoding.NYCBCRA
        planes = dimensions(s)
        assert planes["Y"].samples()[0, 0, 0] == 100
        assert planes["A"].samples()[0, 0, 0] == 128

    def test_unsupported(self):
        assert dimensions(UniformSurface((0, 0, 0, 0))) == {}
        assert dimensions(PackedSurface.new(Encoding.CMYK, 1, 1)) == {}


class TestMatrices:
    def test_round_trip(self):
        s = make_rgba()
        ms = rgba_to_matrices(s)
        assert len(ms) == 4
        assert ms[0].dims() == (4, 3)
        assert ms[0].dtype == np.uint8
        np.testing.assert_array_equal(matrices_to_rgba(ms).samples(), s.samples())

    def test_rgb_is_opaque(self):
        ms = [Matrix.uniform(2, 2, np.uint8(9)) for _ in range(3)]
        out = matrices_to_rgb(ms).samples()
        assert (out[..., 3] == 255).all()
        assert (out[..., :3] == 9).all()

    def test_mismatched_planes(self):
        ms = [Matrix.zeros(2, 2, np.uint8)] * 3 + [Matrix.zeros(3, 2, np.uint8)]
        with pytest.raises(DimensionError) as exc_info:
            matrices_to_rgba(ms)
        assert exc_info.value.why is Why.DIMENSIONS
        with pytest.raises(ValueError):
            matrices_to_rgb(ms[:2])

    def test_empty_surface(self):
        ms = rgba_to_matrices(PackedSurface.new(Encoding.RGBA, 0, 0))
        assert all(m.empty() for m in ms)

    def test_gray(self):
        m = Matrix.new(2, 1, 3, 250, dtype=np.uint8)
        gray = matrix_to_gray(m)
        assert gray.encoding == Encoding.GRAY
        assert gray_to_matrix(gray) == m
        with pytest.raises(ValueError):
            gray_to_matrix(make_rgba())


class TestConvolve:
    def test_identity_kernel(self):
        s = make_rgba()
        out = convolve(s, Matrix.new(1, 1, 1))
        np.testing.assert_array_equal(out.samples(), s.samples())

    def test_saturates_and_shrinks(self):
        s = PackedSurface.from_array(Encoding.RGBA, np.full((5, 5, 4), 200, dtype=np.uint8))
        out = convolve(s, Matrix.uniform(3, 3, 1))
        assert out.rect == Rect(0, 0, 3, 3)
        assert (out.samples()[..., :3] == 255).all()
        assert (out.samples()[..., 3] == 255).all()


class TestPillow:
    def test_rgba_round_trip(self):
        arr = np.random.default_rng(1).integers(0, 256, size=(3, 4, 4), dtype=np.uint8)
        s = from_pil(Image.fromarray(arr))
        assert s.encoding == Encoding.NRGBA
        np.testing.assert_array_equal(np.asarray(to_pil(s)), arr)

    def test_grayscale(self):
        img = Image.new("L", (3, 2), 77)
        s = from_pil(img)
        assert s.encoding == Encoding.GRAY
        assert s.rgba64_at(2, 1) == (77 * 257, 77 * 257, 77 * 257, 0xFFFF)
        assert to_pil(s).mode == "L"

    def test_paletted(self):
        img = Image.new("P", (2, 2), 0)
        img.putpalette([255, 0, 0, 0, 255, 0])
        s = from_pil(img)
        assert isinstance(s, PalettedSurface)
        assert s.rgba64_at(1, 1) == (0xFFFF, 0, 0, 0xFFFF)

    def test_premultiplied_to_straight_alpha(self):
        s = PackedSurface.from_array(Encoding.RGBA, np.array([[[128, 0, 0, 128]]], dtype=np.uint8))
        img = to_pil(s)
        assert img.mode == "RGBA"
        assert img.getpixel((0, 0)) == (255, 0, 0, 128)
