"""
Cropping and tiling of surfaces.
"""

import math

from .bridge import clone
from .surface import CroppedSurface, Rect


def crop(surface, rect):
    """
    Restrict a surface to ``rect``.

    Buffer-backed surfaces are cut natively and canonicalized; anything
    else is wrapped in a view that is transparent outside ``rect``.
    """
    rect = Rect(*rect)
    if hasattr(surface, "sub_image"):
        return clone(surface.sub_image(rect))
    return CroppedSurface(surface, rect)


def range_qr(a: int, b: int, n: int):
    """
    Boundaries of ``[a, b)`` split into ``n`` nearly equal steps.

    Yields ``(q, r)`` pairs where ``q`` is a boundary and ``r`` the
    remainder carried so far. Step sizes differ by at most one and no
    intermediate value exceeds ``b``.
    """
    if n <= 0:
        raise ValueError(f"Number of steps must be positive, got {n}")
    d, e = divmod(b - a, n) if b >= a else (0, 0)

    def walk():
        q, r = a, 0
        while q < b:
            yield q, r
            r += e
            q += d + r // n
            r %= n

    return walk()


def _boundaries(a: int, b: int, n: int) -> list[int]:
    return [q for q, _ in range_qr(a, b, n)] + [b]


def split_n(surface, x: int, y: int) -> list[list]:
    """
    Split a surface into ``y`` rows of ``x`` cells.

    Cell sizes differ by at most one pixel, the larger cells coming where
    the remainder carry overflows. Degenerate requests give ``[[]]``.
    """
    if x <= 0 or y <= 0 or surface is None:
        return [[]]
    if x == 1 and y == 1:
        return [[clone(surface)]]
    b = surface.bounds
    if b.empty():
        return [[]]
    xs = _boundaries(b.x0, b.x1, x)
    ys = _boundaries(b.y0, b.y1, y)
    return [
        [crop(surface, Rect(xs[i], ys[j], xs[i + 1], ys[j + 1])) for i in range(x)]
        for j in range(y)
    ]


def split2(surface, vertical: bool = False) -> tuple:
    """
    Split a surface into two halves, left/right or top/bottom when
    ``vertical``. The first half ends at the floor of the midpoint.
    """
    b = surface.bounds
    if vertical:
        mid = (b.y0 + b.y1) // 2
        first, second = Rect(b.x0, b.y0, b.x1, mid), Rect(b.x0, mid, b.x1, b.y1)
    else:
        mid = (b.x0 + b.x1) // 2
        first, second = Rect(b.x0, b.y0, mid, b.y1), Rect(mid, b.y0, b.x1, b.y1)
    return crop(surface, first), crop(surface, second)


def gcd(x: int, y: int) -> int:
    return math.gcd(x, y)


def lcm(x: int, y: int) -> int:
    if x == 0 or y == 0:
        return 0
    return x // gcd(x, y) * y
