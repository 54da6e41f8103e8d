"""
Whole-matrix transforms: Fourier, Gaussian kernels, histogram
equalization and the conversions that bring arbitrary matrices back to
displayable 8-bit planes.
"""

import math

import numpy as np

from .errors import DimensionError, Why
from .matrix import Matrix


def fourier(n: int) -> Matrix:
    """
    Fourier matrix of order n, ``F[r, c] = exp(2*pi*i * r*c / n)``.

    Returns an empty matrix for non-positive n.
    """
    if n <= 0:
        return Matrix(dtype=np.complex128)
    # Reduce the exponent modulo n first so large orders keep full precision.
    k = np.outer(np.arange(n), np.arange(n)) % n
    return Matrix.from_array(np.exp(2j * np.pi * k / n))


def make_complex(m: Matrix) -> Matrix:
    return m.convert(np.float64).convert(np.complex128)


def make_imag(m: Matrix) -> Matrix:
    return make_complex(m).mul(1j)


def get_real(m: Matrix) -> Matrix:
    return Matrix._wrap(np.real(m.values()).astype(np.float64), m.x, m.y)


def get_imag(m: Matrix) -> Matrix:
    return Matrix._wrap(np.imag(m.values()).astype(np.float64), m.x, m.y)


def get_phase(m: Matrix) -> Matrix:
    return Matrix._wrap(np.angle(m.values()).astype(np.float64), m.x, m.y)


def get_abs(m: Matrix) -> Matrix:
    return Matrix._wrap(np.abs(m.values()).astype(np.float64), m.x, m.y)


def dft(m: Matrix) -> Matrix:
    """Two-dimensional discrete Fourier transform ``F(y) x m x F(x)``."""
    if m.empty():
        return Matrix(dtype=np.complex128)
    return fourier(m.y).mul_mat(make_complex(m)).mul_mat(fourier(m.x))


def gauss(x: float) -> float:
    """Unnormalized Gaussian ``exp(-x**2 / 2)``."""
    return math.exp(-x / 2 * x)


def laplace_gauss(n: int, s: float) -> Matrix:
    """
    Laplacian-of-Gaussian kernel of size n x n and scale s.

    Element (i, j) is ``(x**2 + y**2 - 2) / s**2 * gauss(x) * gauss(y)``
    with x and y the distances from the kernel centre divided by s.
    """
    if n <= 0:
        return Matrix()
    centre = (n - 1) / 2
    d = (np.arange(n) - centre) / s
    x, y = np.meshgrid(d, d)
    g = np.exp(-d / 2 * d)
    gx, gy = np.meshgrid(g, g)
    return Matrix.from_array((x * x + y * y - 2) / s / s * gx * gy)


def equalize(plane: Matrix) -> Matrix:
    """
    Histogram-equalize an 8-bit plane.

    Value ``i`` maps to ``(before_i * 255 + count_i * i) / total`` rounded
    half up, where ``before_i`` counts the pixels darker than ``i``.

    Raises:
        DimensionError: EMPTY_MATRIX when the plane has no pixels
    """
    if plane.empty():
        raise DimensionError("equalize", [plane.dims()], Why.EMPTY_MATRIX)
    values = plane.values().astype(np.uint8)
    counts = np.bincount(values, minlength=256).astype(np.int64)
    before = np.concatenate(([0], np.cumsum(counts)[:-1]))
    total = int(values.size)
    h = before * 255 + counts * np.arange(256, dtype=np.int64)
    lookup = h // total + ((h % total) * 2 >= total)
    return Matrix._wrap(lookup.astype(np.uint8)[values], plane.x, plane.y)


def _scale_to_u8(values: np.ndarray, top: float, x: int, y: int) -> Matrix:
    if top == 0 or not np.isfinite(top):
        return Matrix._wrap(np.zeros(values.size, dtype=np.uint8), x, y)
    return Matrix._wrap((values * 255 / top).astype(np.uint8), x, y)


def normalize(m: Matrix) -> Matrix:
    """Stretch ``[min, max]`` linearly onto ``[0, 255]``."""
    values = m.values().astype(np.float64)
    if values.size == 0:
        return Matrix(dtype=np.uint8)
    low = values.min()
    return _scale_to_u8(values - low, values.max() - low, m.x, m.y)


def absolutize(m: Matrix) -> Matrix:
    """Scale ``|v|`` so the largest magnitude becomes 255."""
    values = np.abs(m.values().astype(np.float64))
    if values.size == 0:
        return Matrix(dtype=np.uint8)
    return _scale_to_u8(values, values.max(), m.x, m.y)


def log_absolutize(m: Matrix) -> Matrix:
    """Like ``absolutize`` on ``log1p(|v|)``, compressing the dynamic range."""
    values = np.log1p(np.abs(m.values().astype(np.float64)))
    if values.size == 0:
        return Matrix(dtype=np.uint8)
    return _scale_to_u8(values, values.max(), m.x, m.y)


def shrink_u8(m: Matrix) -> Matrix:
    """Saturate to ``uint8``: negatives become 0, values of 255 or more 255."""
    values = np.clip(m.values().astype(np.float64), 0, 255)
    return Matrix._wrap(values.astype(np.uint8), m.x, m.y)


def shrink_8(m: Matrix) -> Matrix:
    """Saturate to ``int8``."""
    values = np.clip(m.values().astype(np.float64), -128, 127)
    return Matrix._wrap(values.astype(np.int8), m.x, m.y)
