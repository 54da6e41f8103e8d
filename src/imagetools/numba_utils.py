"""
Numba-optimized kernels for the palette quantizer.
"""
import numpy as np
from numba import njit


@njit(cache=True)
def assign_clusters(pixels, palette):
    """
    Assign every colour to its nearest palette entry.

    Distances are squared Euclidean over the four 16-bit channels; ties go
    to the lowest index.

    Args:
        pixels: int64 array of shape (n, 4)
        palette: int64 array of shape (k, 4), k <= 256

    Returns:
        labels (uint8, n), per-entry channel sums (int64, k x 4) and
        per-entry counts (int64, k)
    """
    n = pixels.shape[0]
    k = palette.shape[0]
    labels = np.zeros(n, dtype=np.uint8)
    sums = np.zeros((k, 4), dtype=np.int64)
    counts = np.zeros(k, dtype=np.int64)

    for i in range(n):
        best = 0
        best_sum = -1
        for j in range(k):
            d = 0
            for c in range(4):
                diff = pixels[i, c] - palette[j, c]
                d += diff * diff
            if best_sum < 0 or d < best_sum:
                best = j
                best_sum = d
                if d == 0:
                    break
        labels[i] = best
        counts[best] += 1
        for c in range(4):
            sums[best, c] += pixels[i, c]

    return labels, sums, counts
