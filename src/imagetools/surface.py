"""
Raster surfaces: the pixel layouts understood by the image bridge.

Three families of buffer-backed surfaces are supported:

* ``PackedSurface``: interleaved samples in a single byte buffer (RGBA,
  RGBA64, NRGBA, NRGBA64, GRAY, GRAY16, ALPHA, ALPHA16, CMYK). Multi-byte
  samples are big-endian.
* ``YCbCrSurface``: a luma plane and two chroma planes subsampled by a
  ``SubsampleRatio``, with an optional non-premultiplied alpha plane.
* ``PalettedSurface``: one index byte per pixel into a palette of at most
  256 colours.

``UniformSurface`` is a single colour over an unbounded rectangle and
``CroppedSurface`` restricts any surface to a rectangle without copying.

Colours are 4-tuples of alpha-premultiplied 16-bit channels. Every surface
reads out as such colours through ``rgba64_at`` and ``rgba64_pixels``; the
conversions reproduce the usual fixed-point colour models bit for bit.
"""

from dataclasses import dataclass
from enum import Enum
from typing import NamedTuple

import numpy as np

Color = tuple[int, int, int, int]

TRANSPARENT: Color = (0, 0, 0, 0)
OPAQUE = 0xFFFF


class Rect(NamedTuple):
    """Half-open rectangle [x0, x1) x [y0, y1)."""

    x0: int
    y0: int
    x1: int
    y1: int

    def dx(self) -> int:
        return self.x1 - self.x0

    def dy(self) -> int:
        return self.y1 - self.y0

    def empty(self) -> bool:
        return self.x0 >= self.x1 or self.y0 >= self.y1

    def contains(self, x: int, y: int) -> bool:
        return self.x0 <= x < self.x1 and self.y0 <= y < self.y1

    def intersect(self, other: "Rect") -> "Rect":
        r = Rect(
            max(self.x0, other.x0),
            max(self.y0, other.y0),
            min(self.x1, other.x1),
            min(self.y1, other.y1),
        )
        return ZERO_RECT if r.empty() else r

    def at_origin(self) -> "Rect":
        """Same size, translated so that the top-left corner is (0, 0)."""
        return Rect(0, 0, self.x1 - self.x0, self.y1 - self.y0)

    def __str__(self):
        return f"({self.x0},{self.y0})-({self.x1},{self.y1})"


ZERO_RECT = Rect(0, 0, 0, 0)
UNBOUNDED = Rect(-(10**9), -(10**9), 10**9, 10**9)


class Encoding(Enum):
    """Pixel layout of a surface."""

    RGBA = "rgba"
    RGBA64 = "rgba64"
    NRGBA = "nrgba"
    NRGBA64 = "nrgba64"
    GRAY = "gray"
    GRAY16 = "gray16"
    ALPHA = "alpha"
    ALPHA16 = "alpha16"
    CMYK = "cmyk"
    YCBCR = "ycbcr"
    NYCBCRA = "nycbcra"
    PALETTED = "paletted"
    UNIFORM = "uniform"

    @property
    def bytes_per_pixel(self) -> int:
        """Bytes per pixel of a packed encoding, 0 for planar ones."""
        return _PIXEL_BYTES.get(self, 0)


_PIXEL_BYTES = {
    Encoding.RGBA: 4,
    Encoding.RGBA64: 8,
    Encoding.NRGBA: 4,
    Encoding.NRGBA64: 8,
    Encoding.GRAY: 1,
    Encoding.GRAY16: 2,
    Encoding.ALPHA: 1,
    Encoding.ALPHA16: 2,
    Encoding.CMYK: 4,
}


class SubsampleRatio(Enum):
    """Chroma subsampling of a YCbCr surface."""

    R444 = 444
    R422 = 422
    R420 = 420
    R440 = 440
    R411 = 411
    R410 = 410

    @property
    def factors(self) -> tuple[int, int]:
        """Horizontal and vertical subsampling factors."""
        return _CHROMA_FACTORS[self]

    def chroma_size(self, w: int, h: int) -> tuple[int, int]:
        """Chroma plane (width, height) for a w x h luma plane."""
        fx, fy = self.factors
        return -(-w // fx), -(-h // fy)

    def chroma_offset(self, x, y, origin_x: int, origin_y: int, c_stride: int):
        """Index into a chroma plane whose rect starts at (origin_x, origin_y)."""
        fx, fy = self.factors
        return (y // fy - origin_y // fy) * c_stride + (x // fx - origin_x // fx)


_CHROMA_FACTORS = {
    SubsampleRatio.R444: (1, 1),
    SubsampleRatio.R422: (2, 1),
    SubsampleRatio.R420: (2, 2),
    SubsampleRatio.R440: (1, 2),
    SubsampleRatio.R411: (4, 1),
    SubsampleRatio.R410: (4, 2),
}


def buffer_rows(pix: np.ndarray, stride: int, width: int, height: int) -> np.ndarray:
    """
    Gather ``height`` rows of ``width`` bytes, each starting ``stride``
    bytes after the previous one, as a (height, width) array copy.
    Rows running past the end of the buffer are zero-filled.
    """
    out = np.zeros((max(height, 0), max(width, 0)), dtype=np.uint8)
    for i in range(out.shape[0]):
        chunk = pix[i * stride : i * stride + width]
        out[i, : chunk.size] = chunk
    return out


# --- colour models ---


def _be16(samples: np.ndarray, i: int) -> np.ndarray:
    return samples[..., 2 * i] << 8 | samples[..., 2 * i + 1]


def _stack(*channels) -> np.ndarray:
    shape = np.broadcast_shapes(*(np.shape(c) for c in channels))
    return np.stack([np.broadcast_to(c, shape) for c in channels], axis=-1)


def _rgba(s):
    return s * 0x101


def _rgba64(s):
    return _stack(*(_be16(s, i) for i in range(4)))


def _nrgba(s):
    a = s[..., 3] * 0x101
    return _stack(*(s[..., i] * 0x101 * a // 0xFFFF for i in range(3)), a)


def _nrgba64(s):
    a = _be16(s, 3)
    return _stack(*(_be16(s, i) * a // 0xFFFF for i in range(3)), a)


def _gray(s):
    v = s[..., 0] * 0x101
    return _stack(v, v, v, OPAQUE)


def _gray16(s):
    v = _be16(s, 0)
    return _stack(v, v, v, OPAQUE)


def _alpha(s):
    v = s[..., 0] * 0x101
    return _stack(v, v, v, v)


def _alpha16(s):
    v = _be16(s, 0)
    return _stack(v, v, v, v)


def _cmyk(s):
    w = 0xFFFF - s[..., 3] * 0x101
    return _stack(*((0xFFFF - s[..., i] * 0x101) * w // 0xFFFF for i in range(3)), OPAQUE)


_PACKED_MODELS = {
    Encoding.RGBA: _rgba,
    Encoding.RGBA64: _rgba64,
    Encoding.NRGBA: _nrgba,
    Encoding.NRGBA64: _nrgba64,
    Encoding.GRAY: _gray,
    Encoding.GRAY16: _gray16,
    Encoding.ALPHA: _alpha,
    Encoding.ALPHA16: _alpha16,
    Encoding.CMYK: _cmyk,
}


def _clamp_fixed(v: np.ndarray) -> np.ndarray:
    # 16.8 fixed point back to 16 bits, saturating at both ends
    return np.where((v & 0xFF000000) == 0, v >> 8, np.where(v < 0, 0, 0xFFFF))


def ycbcr_to_rgba64(y, cb, cr) -> np.ndarray:
    """Fixed-point YCbCr to opaque 16-bit RGBA, on arrays of any shape."""
    y = np.asarray(y, dtype=np.int64)
    cb = np.asarray(cb, dtype=np.int64) - 128
    cr = np.asarray(cr, dtype=np.int64) - 128
    yy = y * 0x10101
    r = _clamp_fixed(yy + 91881 * cr)
    g = _clamp_fixed(yy - 22554 * cb - 46802 * cr)
    b = _clamp_fixed(yy + 116130 * cb)
    return _stack(r, g, b, OPAQUE)


def _transparent_pixels(r: Rect) -> np.ndarray:
    return np.zeros((max(r.dy(), 0), max(r.dx(), 0), 4), dtype=np.uint16)


class _Readout:
    """Per-pixel access shared by the buffer-backed surfaces."""

    @property
    def bounds(self) -> Rect:
        return self.rect

    def rgba64_at(self, x: int, y: int) -> Color:
        if not self.rect.contains(x, y):
            return TRANSPARENT
        pixel = self.sub_image(Rect(x, y, x + 1, y + 1)).rgba64_pixels()[0, 0]
        return tuple(int(c) for c in pixel)


@dataclass(frozen=True, eq=False)
class PackedSurface(_Readout):
    """Interleaved samples with ``encoding.bytes_per_pixel`` bytes per pixel."""

    encoding: Encoding
    pix: np.ndarray
    stride: int
    rect: Rect

    @classmethod
    def new(cls, encoding: Encoding, width: int, height: int) -> "PackedSurface":
        n = encoding.bytes_per_pixel
        if n == 0:
            raise ValueError(f"{encoding.name} is not a packed encoding")
        width, height = max(width, 0), max(height, 0)
        return cls(encoding, np.zeros(width * height * n, dtype=np.uint8), width * n, Rect(0, 0, width, height))

    @classmethod
    def from_array(cls, encoding: Encoding, array: np.ndarray) -> "PackedSurface":
        """Wrap a (height, width, bytes) or (height, width) uint8 array."""
        array = np.asarray(array, dtype=np.uint8)
        n = encoding.bytes_per_pixel
        if n == 0:
            raise ValueError(f"{encoding.name} is not a packed encoding")
        if array.ndim == 2:
            array = array[:, :, None]
        if array.ndim != 3 or array.shape[2] != n:
            raise ValueError(f"{encoding.name} needs arrays of shape (h, w, {n}), got {array.shape}")
        h, w = array.shape[:2]
        return cls(encoding, array.reshape(-1).copy(), w * n, Rect(0, 0, w, h))

    def pix_offset(self, x: int, y: int) -> int:
        return (y - self.rect.y0) * self.stride + (x - self.rect.x0) * self.encoding.bytes_per_pixel

    def sub_image(self, r: Rect) -> "PackedSurface":
        r = r.intersect(self.rect)
        if r.empty():
            return PackedSurface(self.encoding, np.zeros(0, dtype=np.uint8), 0, r)
        return PackedSurface(self.encoding, self.pix[self.pix_offset(r.x0, r.y0) :], self.stride, r)

    def samples(self) -> np.ndarray:
        """Raw samples as a (height, width, bytes_per_pixel) uint8 array."""
        n = self.encoding.bytes_per_pixel
        h, w = max(self.rect.dy(), 0), max(self.rect.dx(), 0)
        return buffer_rows(self.pix, self.stride, w * n, h).reshape(h, w, n)

    def rgba64_pixels(self) -> np.ndarray:
        s = self.samples().astype(np.int64)
        return _PACKED_MODELS[self.encoding](s).astype(np.uint16)


@dataclass(frozen=True, eq=False)
class YCbCrSurface(_Readout):
    """
    Planar luma/chroma surface. With an alpha plane it is the
    non-premultiplied NYCbCrA encoding.
    """

    y: np.ndarray
    y_stride: int
    cb: np.ndarray
    cr: np.ndarray
    c_stride: int
    ratio: SubsampleRatio
    rect: Rect
    a: np.ndarray | None = None
    a_stride: int = 0

    @property
    def encoding(self) -> Encoding:
        return Encoding.YCBCR if self.a is None else Encoding.NYCBCRA

    @classmethod
    def new(
        cls, width: int, height: int, ratio: SubsampleRatio = SubsampleRatio.R444, alpha: bool = False
    ) -> "YCbCrSurface":
        width, height = max(width, 0), max(height, 0)
        cw, ch = ratio.chroma_size(width, height)
        a = np.zeros(width * height, dtype=np.uint8) if alpha else None
        return cls(
            np.zeros(width * height, dtype=np.uint8),
            width,
            np.full(cw * ch, 128, dtype=np.uint8),
            np.full(cw * ch, 128, dtype=np.uint8),
            cw,
            ratio,
            Rect(0, 0, width, height),
            a,
            width if alpha else 0,
        )

    def y_offset(self, x: int, y: int) -> int:
        return (y - self.rect.y0) * self.y_stride + (x - self.rect.x0)

    def c_offset(self, x: int, y: int) -> int:
        return self.ratio.chroma_offset(x, y, self.rect.x0, self.rect.y0, self.c_stride)

    def a_offset(self, x: int, y: int) -> int:
        return (y - self.rect.y0) * self.a_stride + (x - self.rect.x0)

    def sub_image(self, r: Rect) -> "YCbCrSurface":
        r = r.intersect(self.rect)
        if r.empty():
            none = np.zeros(0, dtype=np.uint8)
            return YCbCrSurface(none, 0, none, none, 0, self.ratio, r, None if self.a is None else none, 0)
        yi, ci = self.y_offset(r.x0, r.y0), self.c_offset(r.x0, r.y0)
        a = None if self.a is None else self.a[self.a_offset(r.x0, r.y0) :]
        return YCbCrSurface(
            self.y[yi:], self.y_stride, self.cb[ci:], self.cr[ci:], self.c_stride, self.ratio, r, a, self.a_stride
        )

    def rgba64_pixels(self) -> np.ndarray:
        r = self.rect
        if r.empty():
            return _transparent_pixels(r)
        xs = np.arange(r.x0, r.x1)
        ys = np.arange(r.y0, r.y1)
        luma = self.y[(ys - r.y0)[:, None] * self.y_stride + (xs - r.x0)[None, :]]
        ci = self.ratio.chroma_offset(xs[None, :], ys[:, None], r.x0, r.y0, self.c_stride)
        out = ycbcr_to_rgba64(luma, self.cb[ci], self.cr[ci])
        if self.a is not None:
            a = self.a[(ys - r.y0)[:, None] * self.a_stride + (xs - r.x0)[None, :]].astype(np.int64) * 0x101
            out = _stack(*(out[..., i] * a // 0xFFFF for i in range(3)), a)
        return out.astype(np.uint16)


@dataclass(frozen=True, eq=False)
class PalettedSurface(_Readout):
    """Index bytes into ``palette``; indices past its end read as transparent."""

    pix: np.ndarray
    stride: int
    rect: Rect
    palette: tuple[Color, ...]

    encoding = Encoding.PALETTED

    def pix_offset(self, x: int, y: int) -> int:
        return (y - self.rect.y0) * self.stride + (x - self.rect.x0)

    def sub_image(self, r: Rect) -> "PalettedSurface":
        r = r.intersect(self.rect)
        if r.empty():
            return PalettedSurface(np.zeros(0, dtype=np.uint8), 0, r, self.palette)
        return PalettedSurface(self.pix[self.pix_offset(r.x0, r.y0) :], self.stride, r, self.palette)

    def indices(self) -> np.ndarray:
        h, w = max(self.rect.dy(), 0), max(self.rect.dx(), 0)
        return buffer_rows(self.pix, self.stride, w, h)

    def rgba64_pixels(self) -> np.ndarray:
        lookup = np.zeros((256, 4), dtype=np.uint16)
        if self.palette:
            lookup[: len(self.palette)] = np.asarray(self.palette[:256], dtype=np.uint16)
        return lookup[self.indices()]


@dataclass(frozen=True, eq=False)
class UniformSurface:
    """A single colour everywhere."""

    color: Color
    rect: Rect = UNBOUNDED

    encoding = Encoding.UNIFORM

    @property
    def bounds(self) -> Rect:
        return self.rect

    def rgba64_at(self, x: int, y: int) -> Color:
        return tuple(self.color)


@dataclass(frozen=True, eq=False)
class CroppedSurface:
    """View of ``source`` restricted to ``rect``; transparent outside it."""

    source: object
    rect: Rect

    @property
    def bounds(self) -> Rect:
        return self.rect

    def rgba64_at(self, x: int, y: int) -> Color:
        if self.rect.contains(x, y):
            return tuple(self.source.rgba64_at(x, y))
        return TRANSPARENT
