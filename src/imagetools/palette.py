"""
Palette quantization by iterated nearest-colour clustering.

Starting from random 16-bit colours, every pixel is assigned to its nearest
palette entry and each entry is replaced by the integer mean of its
pixels. Entries left without pixels become transparent. The loop stops as
soon as an update leaves the palette unchanged, or after
``max_iterations`` passes.
"""

import logging

import numpy as np

from .bridge import rgba64_pixels
from .colors import random_rgba64
from .numba_utils import assign_clusters
from .surface import ZERO_RECT, PalettedSurface

logger = logging.getLogger(__name__)

MAX_COLORS = 256


class QuantizationResult:
    """Result of a quantization run."""

    def __init__(
        self,
        surface: PalettedSurface,
        palette: tuple,
        iterations: int,
        converged: bool,
    ):
        self.surface = surface
        self.palette = palette
        self.iterations = iterations
        self.converged = converged

    def __repr__(self):
        return (
            f"QuantizationResult(colors={len(self.palette)}, "
            f"iterations={self.iterations}, converged={self.converged})"
        )


class PaletteQuantizer:
    """Reduce a surface to at most 256 colours."""

    def __init__(self, max_iterations: int = 256, rng=None):
        if max_iterations < 1:
            raise ValueError("max_iterations must be at least 1")
        self.max_iterations = max_iterations
        self._rng = np.random.default_rng(rng)

    def process(self, surface, n: int) -> QuantizationResult:
        """
        Quantize ``surface`` into ``n`` colours.

        Args:
            surface: Any surface exposing ``bounds`` and ``rgba64_at``
            n: Palette size, 1 to 256

        Returns:
            QuantizationResult holding the paletted surface (same bounds as
            the input) and the final palette
        """
        if not 1 <= n <= MAX_COLORS:
            raise ValueError(f"Palette size must be between 1 and {MAX_COLORS}, got {n}")

        bounds = surface.bounds
        if bounds.empty():
            empty = PalettedSurface(np.zeros(0, dtype=np.uint8), 0, ZERO_RECT, ())
            return QuantizationResult(empty, (), 0, True)

        pixels = rgba64_pixels(surface).reshape(-1, 4).astype(np.int64)
        palette = np.array([random_rgba64(self._rng) for _ in range(n)], dtype=np.int64)
        logger.debug(f"Quantizing {pixels.shape[0]} pixels into {n} colors")

        converged = False
        iterations = 0
        labels = None
        while iterations < self.max_iterations:
            iterations += 1
            labels, sums, counts = assign_clusters(pixels, palette)
            updated = np.zeros_like(palette)
            used = counts > 0
            updated[used] = sums[used] // counts[used, None]
            if np.array_equal(updated, palette):
                converged = True
                break
            palette = updated
            logger.debug(f"Iteration {iterations}: {int(used.sum())}/{n} entries in use")

        if not converged:
            logger.warning(
                f"Palette did not converge after {self.max_iterations} iterations"
            )
            labels, _, _ = assign_clusters(pixels, palette)

        colors = tuple(tuple(int(c) for c in entry) for entry in palette)
        result = PalettedSurface(labels.copy(), bounds.dx(), bounds, colors)
        return QuantizationResult(result, colors, iterations, converged)


def palletize(surface, n: int, rng=None) -> PalettedSurface:
    """Quantize ``surface`` into ``n`` colours with the default settings."""
    return PaletteQuantizer(rng=rng).process(surface, n).surface
