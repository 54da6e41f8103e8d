"""
Named integer convolution kernels for edge detection.

Roberts, Sobel and Prewitt are families of directional kernels; the three
Laplace kernels are single isotropic operators.
"""

import numpy as np

from .matrix import Matrix


def _kernel(n: int, *values: int) -> Matrix:
    return Matrix.new(n, n, *values, dtype=np.int64)


ROBERTS = (
    _kernel(2, 1, 0, 0, -1),
    _kernel(2, 0, 1, -1, 0),
)

SOBEL = (
    _kernel(3, -1, -2, -1, 0, 0, 0, 1, 2, 1),
    _kernel(3, -2, -1, 0, -1, 0, 1, 0, 1, 2),
    _kernel(3, -1, 0, 1, -2, 0, 2, -1, 0, 1),
    _kernel(3, 0, 1, 2, -1, 0, 1, -2, -1, 0),
)

PREWITT = (
    _kernel(3, -1, -1, -1, 0, 0, 0, 1, 1, 1),
    _kernel(3, -1, -1, 0, -1, 0, 1, 0, 1, 1),
    _kernel(3, -1, 0, 1, -1, 0, 1, -1, 0, 1),
    _kernel(3, 0, 1, 1, -1, 0, 1, -1, -1, 0),
)

LAPLACE = _kernel(3, 0, -1, 0, -1, 4, -1, 0, -1, 0)
LAPLACE8 = _kernel(3, -1, -1, -1, -1, 8, -1, -1, -1, -1)
LAPLACE12 = _kernel(3, -1, -2, -1, -2, 12, -2, -1, -2, -1)

KERNELS = {
    "roberts": ROBERTS,
    "sobel": SOBEL,
    "prewitt": PREWITT,
    "laplace": (LAPLACE,),
    "laplace8": (LAPLACE8,),
    "laplace12": (LAPLACE12,),
}


def get_kernels(name: str) -> tuple[Matrix, ...]:
    """
    Look up a kernel family by name (case-insensitive).

    Raises:
        ValueError: If the name is unknown
    """
    try:
        return KERNELS[name.lower()]
    except KeyError:
        raise ValueError(
            f"Unknown kernel '{name}'. Available: {', '.join(KERNELS)}"
        ) from None
