"""
Colour and palette helpers on 16-bit premultiplied RGBA tuples.
"""

import numpy as np

from .surface import TRANSPARENT, Color

__all__ = [
    "TRANSPARENT",
    "color_diff",
    "palette_diff",
    "same_palettes",
    "compare_colors",
    "random_rgba64",
    "random_rgba",
]


def color_diff(a: Color, b: Color) -> int:
    """Squared Euclidean distance between two colours."""
    return sum((int(x) - int(y)) ** 2 for x, y in zip(a, b))


def palette_diff(p, q) -> int:
    """
    Sum of the pairwise colour differences.

    Palettes of different lengths are infinitely far apart and give
    ``2**64 - 1``.
    """
    if len(p) != len(q):
        return 2**64 - 1
    return sum(color_diff(a, b) for a, b in zip(p, q))


def same_palettes(p, q) -> bool:
    """Order-sensitive, element-wise palette equality."""
    return len(p) == len(q) and all(tuple(a) == tuple(b) for a, b in zip(p, q))


def _pack(c: Color) -> int:
    r, g, b, a = (int(v) & 0xFFFF for v in c)
    return r << 48 | g << 32 | b << 16 | a


def compare_colors(a: Color, b: Color) -> int:
    """Three-way comparison of colours packed as R, G, B, A (most significant first)."""
    x, y = _pack(a), _pack(b)
    return (x > y) - (x < y)


def random_rgba64(rng=None) -> Color:
    """Four independent uniformly random 16-bit channels."""
    rng = np.random.default_rng(rng)
    return tuple(int(v) for v in rng.integers(0, 0x10000, size=4))


def random_rgba(rng=None) -> tuple[int, int, int, int]:
    """Four independent uniformly random 8-bit channels."""
    rng = np.random.default_rng(rng)
    return tuple(int(v) for v in rng.integers(0, 0x100, size=4))
