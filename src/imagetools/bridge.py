"""
Image/matrix bridge.

Canonicalizes surfaces (origin-anchored, minimal buffers), splits them into
per-channel 8-bit planes, turns planes into ``uint8`` matrices and back, and
adapts Pillow images to and from surfaces.
"""

import logging
from typing import NamedTuple

import numpy as np
from PIL import Image

from .errors import DimensionError, Why
from .matrix import Matrix
from .surface import (
    ZERO_RECT,
    Encoding,
    PackedSurface,
    PalettedSurface,
    Rect,
    SubsampleRatio,
    UniformSurface,
    YCbCrSurface,
    buffer_rows,
)
from .transforms import shrink_u8

logger = logging.getLogger(__name__)

MAX_PALETTE = 256


class Reduced(NamedTuple):
    """Minimal origin-anchored buffer."""

    pix: np.ndarray
    stride: int
    rect: Rect


def reduce(pix: np.ndarray, stride: int, rect: Rect, n: int) -> Reduced:
    """
    Copy the pixels of ``rect`` into a buffer with no padding.

    Args:
        pix: Source buffer, starting at the top-left pixel of ``rect``
        stride: Bytes between vertically adjacent pixels of the source
        rect: Region covered by the source
        n: Bytes per pixel

    Returns:
        ``(pix, stride, rect)`` with ``stride == rect.dx() * n`` and ``rect``
        translated to the origin
    """
    if rect.empty():
        return Reduced(np.zeros(0, dtype=np.uint8), 0, ZERO_RECT)
    width = rect.dx() * n
    rows = buffer_rows(pix, stride, width, rect.dy())
    return Reduced(rows.reshape(-1), width, rect.at_origin())


def _resample_ycc(s: YCbCrSurface) -> YCbCrSurface:
    # One chroma sample per pixel, read where the source pixel reads it
    r = s.rect
    xs = np.arange(r.x0, r.x1)
    ys = np.arange(r.y0, r.y1)
    ci = s.ratio.chroma_offset(xs[None, :], ys[:, None], r.x0, r.y0, s.c_stride)
    luma = reduce(s.y, s.y_stride, r, 1)
    a, a_stride = None, 0
    if s.a is not None:
        alpha = reduce(s.a, s.a_stride, r, 1)
        a, a_stride = alpha.pix, alpha.stride
    logger.debug(f"Resampling {s.ratio.name} chroma at unaligned origin ({r.x0},{r.y0}) to R444")
    return YCbCrSurface(
        luma.pix,
        luma.stride,
        s.cb[ci].reshape(-1),
        s.cr[ci].reshape(-1),
        r.dx(),
        SubsampleRatio.R444,
        r.at_origin(),
        a,
        a_stride,
    )


def _clone_ycc(s: YCbCrSurface) -> YCbCrSurface:
    fx, fy = s.ratio.factors
    if not s.rect.empty() and (s.rect.x0 % fx or s.rect.y0 % fy):
        return _resample_ycc(s)
    rect = s.rect.at_origin() if not s.rect.empty() else ZERO_RECT
    luma = reduce(s.y, s.y_stride, s.rect, 1)
    cw, ch = s.ratio.chroma_size(rect.dx(), rect.dy())
    cb = buffer_rows(s.cb, s.c_stride, cw, ch).reshape(-1)
    cr = buffer_rows(s.cr, s.c_stride, cw, ch).reshape(-1)
    a, a_stride = None, 0
    if s.a is not None:
        alpha = reduce(s.a, s.a_stride, s.rect, 1)
        a, a_stride = alpha.pix, alpha.stride
    return YCbCrSurface(luma.pix, luma.stride, cb, cr, cw, s.ratio, rect, a, a_stride)


def clone(surface):
    """
    Canonical copy of a surface that keeps its encoding.

    Buffer-backed surfaces are reduced to minimal origin-anchored buffers
    (subsampled chroma at an unaligned origin is resampled to 4:4:4),
    palettes are capped at 256 entries and uniform surfaces copy their
    colour. Any other object exposing ``bounds`` and ``rgba64_at`` is read
    out pixel by pixel into an RGBA surface.
    """
    if surface is None:
        return None
    if isinstance(surface, PackedSurface):
        r = reduce(surface.pix, surface.stride, surface.rect, surface.encoding.bytes_per_pixel)
        return PackedSurface(surface.encoding, r.pix, r.stride, r.rect)
    if isinstance(surface, YCbCrSurface):
        return _clone_ycc(surface)
    if isinstance(surface, PalettedSurface):
        r = reduce(surface.pix, surface.stride, surface.rect, 1)
        return PalettedSurface(r.pix, r.stride, r.rect, tuple(surface.palette[:MAX_PALETTE]))
    if isinstance(surface, UniformSurface):
        return UniformSurface(tuple(surface.color), surface.rect)
    return to_rgba(surface)


def rgba64_pixels(surface) -> np.ndarray:
    """Premultiplied 16-bit colours of a surface as a (height, width, 4) array."""
    if hasattr(surface, "rgba64_pixels"):
        return surface.rgba64_pixels()
    b = surface.bounds
    h, w = max(b.dy(), 0), max(b.dx(), 0)
    logger.debug(f"Generic per-pixel readout of {type(surface).__name__} ({w}x{h})")
    out = np.zeros((h, w, 4), dtype=np.uint16)
    for j in range(h):
        for i in range(w):
            out[j, i] = surface.rgba64_at(b.x0 + i, b.y0 + j)
    return out


def _gray(plane: np.ndarray) -> PackedSurface:
    return PackedSurface.from_array(Encoding.GRAY, plane)


def dimensions(surface) -> dict[str, PackedSurface]:
    """
    Split a surface into labelled 8-bit GRAY planes.

    RGBA-like encodings give R, G, B and A; YCbCr gives Y, Cb and Cr at
    their own (subsampled) sizes, plus A for NYCbCrA where Y is blended by
    alpha; gray and alpha encodings give a single Gray or Alpha plane.
    16-bit samples keep their most significant byte. Unsupported surfaces
    give an empty mapping.
    """
    c = clone(surface)
    enc = getattr(c, "encoding", None)
    if isinstance(c, PackedSurface):
        s = c.samples()
        if enc in (Encoding.RGBA, Encoding.NRGBA):
            return {k: _gray(s[..., i]) for i, k in enumerate("RGBA")}
        if enc in (Encoding.RGBA64, Encoding.NRGBA64):
            return {k: _gray(s[..., 2 * i]) for i, k in enumerate("RGBA")}
        if enc == Encoding.GRAY:
            return {"Gray": _gray(s[..., 0])}
        if enc == Encoding.GRAY16:
            return {"Gray": _gray(s[..., 0])}
        if enc == Encoding.ALPHA:
            return {"Alpha": _gray(s[..., 0])}
        if enc == Encoding.ALPHA16:
            return {"Alpha": _gray(s[..., 0])}
        return {}
    if isinstance(c, YCbCrSurface):
        h, w = c.rect.dy(), c.rect.dx()
        ch = c.cb.size // c.c_stride if c.c_stride else 0
        luma = c.y[: w * h].reshape(h, w)
        planes = {
            "Cb": _gray(c.cb[: c.c_stride * ch].reshape(ch, c.c_stride)),
            "Cr": _gray(c.cr[: c.c_stride * ch].reshape(ch, c.c_stride)),
        }
        if c.a is None:
            planes["Y"] = _gray(luma)
        else:
            a = c.a[: w * h].reshape(h, w)
            planes["Y"] = _gray((luma.astype(np.uint32) * a // 255).astype(np.uint8))
            planes["A"] = _gray(a)
        return planes
    return {}


def to_rgba(surface) -> PackedSurface | None:
    """
    Regularize any surface into an origin-anchored 8-bit RGBA surface.

    RGBA is copied, RGBA64 keeps the high byte, NRGBA is premultiplied as
    ``p * a // 255``, GRAY becomes ``(v, v, v, 255)`` and ALPHA
    ``(v, v, v, v)``. Everything else goes through the 16-bit readout
    truncated to 8 bits.
    """
    if surface is None:
        return None
    enc = getattr(surface, "encoding", None)
    if isinstance(surface, PackedSurface):
        s = surface.samples()
        if enc == Encoding.RGBA:
            return PackedSurface.from_array(Encoding.RGBA, s)
        if enc == Encoding.RGBA64:
            return PackedSurface.from_array(Encoding.RGBA, s[..., ::2])
        if enc == Encoding.NRGBA:
            w = s.astype(np.uint16)
            out = s.copy()
            out[..., :3] = (w[..., :3] * w[..., 3:] // 255).astype(np.uint8)
            return PackedSurface.from_array(Encoding.RGBA, out)
        if enc == Encoding.GRAY:
            v = s[..., 0]
            return PackedSurface.from_array(Encoding.RGBA, np.stack([v, v, v, np.full_like(v, 255)], axis=-1))
        if enc == Encoding.ALPHA:
            return PackedSurface.from_array(Encoding.RGBA, np.repeat(s, 4, axis=-1))
    bounds = surface.bounds
    if bounds.empty():
        return PackedSurface.new(Encoding.RGBA, 0, 0)
    pixels = rgba64_pixels(surface)
    return PackedSurface.from_array(Encoding.RGBA, (pixels >> 8).astype(np.uint8))


def rgba_to_matrices(surface) -> list[Matrix]:
    """Four ``uint8`` matrices holding the R, G, B and A planes."""
    rgba = to_rgba(surface)
    if rgba is None or rgba.rect.empty():
        return [Matrix(dtype=np.uint8) for _ in range(4)]
    s = rgba.samples()
    return [Matrix.from_array(s[..., i]) for i in range(4)]


def _stack_planes(ms, count: int, op: str) -> np.ndarray:
    if len(ms) < count:
        raise ValueError(f"{op} needs at least {count} planes, got {len(ms)}")
    planes = ms[:count]
    for m in planes[1:]:
        if m.dims() != planes[0].dims():
            raise DimensionError(op, [p.dims() for p in planes], Why.DIMENSIONS)
    return np.stack([m.to_array().astype(np.uint8) for m in planes], axis=-1)


def matrices_to_rgba(ms) -> PackedSurface:
    """Interleave four equally sized 8-bit planes into an RGBA surface."""
    return PackedSurface.from_array(Encoding.RGBA, _stack_planes(ms, 4, "matrices_to_rgba"))


def matrices_to_rgb(ms) -> PackedSurface:
    """Like ``matrices_to_rgba`` on the first three planes, fully opaque."""
    rgb = _stack_planes(ms, 3, "matrices_to_rgb")
    alpha = np.full(rgb.shape[:2] + (1,), 255, dtype=np.uint8)
    return PackedSurface.from_array(Encoding.RGBA, np.concatenate([rgb, alpha], axis=-1))


def gray_to_matrix(surface: PackedSurface | None) -> Matrix:
    if surface is None or surface.rect.empty():
        return Matrix(dtype=np.uint8)
    if surface.encoding != Encoding.GRAY:
        raise ValueError(f"Expected a GRAY surface, got {surface.encoding.name}")
    return Matrix.from_array(surface.samples()[..., 0])


def matrix_to_gray(m: Matrix) -> PackedSurface:
    if m.empty():
        return PackedSurface.new(Encoding.GRAY, 0, 0)
    return _gray(m.to_array().astype(np.uint8))


def convolve(surface, kernel: Matrix, dx: int = 1, dy: int = 1) -> PackedSurface:
    """
    Convolve the colour channels of a surface with an integer kernel.

    Each of R, G and B is convolved in ``int64`` and saturated back to 8
    bits; the result is opaque.
    """
    channels = rgba_to_matrices(surface)[:3]
    out = [shrink_u8(c.convert(np.int64).conv(kernel.convert(np.int64), dx, dy)) for c in channels]
    if out[0].empty():
        return PackedSurface.new(Encoding.RGBA, 0, 0)
    return matrices_to_rgb(out)


# --- Pillow adapters ---


def _pil_palette(img: Image.Image) -> tuple:
    flat = img.getpalette() or []
    count = len(flat) // 3
    alphas = [255] * count
    transparency = img.info.get("transparency")
    if isinstance(transparency, int) and transparency < count:
        alphas[transparency] = 0
    elif isinstance(transparency, (bytes, bytearray)):
        for i, a in enumerate(transparency[:count]):
            alphas[i] = a
    palette = []
    for i in range(min(count, MAX_PALETTE)):
        a = alphas[i] * 0x101
        rgb = (flat[3 * i + k] * 0x101 * a // 0xFFFF for k in range(3))
        palette.append((*rgb, a))
    return tuple(palette)


def from_pil(img: Image.Image):
    """
    Convert a Pillow image into the closest surface encoding.

    RGBA maps to NRGBA, L to GRAY, I;16 to GRAY16, P to PALETTED, YCbCr to
    4:4:4 YCbCr and CMYK to CMYK. Other modes are converted to RGBA first.
    """
    mode = img.mode
    if mode == "L":
        return PackedSurface.from_array(Encoding.GRAY, np.asarray(img, dtype=np.uint8))
    if mode in ("I;16", "I;16B", "I;16L"):
        values = np.asarray(img).astype(">u2")
        h, w = values.shape
        return PackedSurface.from_array(Encoding.GRAY16, values.view(np.uint8).reshape(h, w, 2))
    if mode == "P":
        idx = np.asarray(img, dtype=np.uint8)
        h, w = idx.shape
        return PalettedSurface(idx.reshape(-1).copy(), w, Rect(0, 0, w, h), _pil_palette(img))
    if mode == "YCbCr":
        arr = np.asarray(img, dtype=np.uint8)
        h, w = arr.shape[:2]
        planes = [arr[..., i].reshape(-1).copy() for i in range(3)]
        return YCbCrSurface(planes[0], w, planes[1], planes[2], w, SubsampleRatio.R444, Rect(0, 0, w, h))
    if mode == "CMYK":
        return PackedSurface.from_array(Encoding.CMYK, np.asarray(img, dtype=np.uint8))
    if mode != "RGBA":
        logger.debug(f"Converting Pillow mode {mode} to RGBA")
        img = img.convert("RGBA")
    return PackedSurface.from_array(Encoding.NRGBA, np.asarray(img, dtype=np.uint8))


def to_pil(surface) -> Image.Image:
    """
    Convert a surface into a Pillow image.

    GRAY surfaces become mode L, NRGBA surfaces are passed through and
    everything else is un-premultiplied into mode RGBA.
    """
    if isinstance(surface, PackedSurface) and surface.encoding == Encoding.GRAY:
        return Image.fromarray(surface.samples()[..., 0])
    if isinstance(surface, PackedSurface) and surface.encoding == Encoding.NRGBA:
        return Image.fromarray(surface.samples())
    p = rgba64_pixels(surface).astype(np.int64)
    a = p[..., 3:]
    rgb = np.where(a > 0, np.minimum(p[..., :3] * 0xFFFF // np.maximum(a, 1), 0xFFFF), 0)
    out = np.concatenate([rgb, a], axis=-1) >> 8
    return Image.fromarray(out.astype(np.uint8))
