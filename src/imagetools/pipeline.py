"""
Analysis pipeline
=================

Chains surface processors from a list of ``{"type": ..., "params": {...}}``
steps, and hosts the stereo workflows built on top of the bridge: the
left/right windowed covariance and the split-and-analyze pass used by the
command line tool.
"""

import logging
from typing import Any

import numpy as np

from .bridge import rgba_to_matrices
from .geometry import split2
from .matrix import Matrix
from .processors import ProcessingResult, ProcessorFactory, ProcessorType
from .stats import covariance

logger = logging.getLogger(__name__)

HALF_NAMES = ("L", "R")


class AnalysisPipeline:
    """Apply processors in sequence, each one to the output of the previous."""

    def __init__(self):
        self.processors = ProcessorFactory.create_all_processors()
        self._last_results: list[ProcessingResult] = []

    def process(self, image, steps: list[dict[str, Any]]) -> tuple[Any, list[ProcessingResult]]:
        """
        Run a list of steps.

        Args:
            image: Input surface
            steps: Step configurations, see ``create_analysis_config``

        Returns:
            Tuple of (final_surface, processing_results)
        """
        if image is None or image.bounds.empty():
            raise ValueError("Invalid input image")

        current_image = image
        results = []
        logger.info(f"Starting analysis pipeline with {len(steps)} steps")

        for step_config in steps:
            step_type = step_config.get("type")
            params = step_config.get("params", {})
            try:
                processor_type = ProcessorType(step_type)
            except ValueError:
                raise ValueError(f"Unknown analysis step: {step_type}") from None

            logger.info(f"Applying {step_type} processor")
            result = self.processors[processor_type].process(current_image, **params)
            current_image = result.image
            results.append(result)

        self._last_results = results
        logger.info(f"Analysis pipeline completed with {len(results)} steps applied")
        return current_image, results

    def get_last_results(self) -> list[ProcessingResult]:
        return self._last_results.copy()

    def get_available_steps(self) -> dict[str, str]:
        return {
            processor_type.value: (processor.__doc__ or "").strip().splitlines()[0]
            for processor_type, processor in self.processors.items()
        }


def create_analysis_config(
    equalize: bool = False,
    edge: bool = False,
    convolve: bool = False,
    quantize: bool = False,
    **kwargs,
) -> list[dict[str, Any]]:
    """
    Create analysis configuration from boolean flags.

    Args:
        equalize: Apply histogram equalization
        edge: Apply edge detection
        convolve: Apply a convolution
        quantize: Apply palette quantization
        **kwargs: ``<step>_params`` dictionaries with processor parameters

    Returns:
        List of analysis step configurations
    """
    steps = []

    if equalize:
        steps.append({"type": "equalize", "params": kwargs.get("equalize_params", {})})

    if convolve:
        steps.append({"type": "convolve", "params": kwargs.get("convolve_params", {})})

    if edge:
        steps.append({"type": "edge", "params": kwargs.get("edge_params", {})})

    if quantize:
        steps.append({"type": "quantize", "params": kwargs.get("quantize_params", {})})

    return steps


def stereo_covariance(image, window: tuple[int, int], dx: int = 1, dy: int = 1) -> list[Matrix]:
    """
    Windowed covariance between the left and right halves of a surface.

    For each of the R, G, B and A planes, a ``window`` of (width, height)
    slides over both halves in steps of (dx, dy) and the population
    covariance of the two aligned windows is recorded.

    Returns:
        Four float64 matrices, one cell per window position; empty when the
        window does not fit in a half
    """
    w, h = window
    if w < 1 or h < 1:
        raise ValueError("Window dimensions must be positive")
    if dx < 1 or dy < 1:
        raise ValueError("Strides must be positive integers")
    if image.bounds.empty():
        return [Matrix() for _ in range(4)]

    left, right = split2(image, vertical=False)
    lefts, rights = rgba_to_matrices(left), rgba_to_matrices(right)
    covs = []
    for lm, rm in zip(lefts, rights):
        x, y = min(lm.x, rm.x), min(lm.y, rm.y)
        if x < w or y < h:
            covs.append(Matrix())
            continue
        out = np.zeros(((y - h) // dy + 1, (x - w) // dx + 1))
        for k, lw in lm.sub_matrix(0, 0, x, y).windows(dx, dy, w, h):
            rw = rm.sub_matrix(k.x, k.y, k.x + w, k.y + h)
            out[k.y // dy, k.x // dx] = covariance(False, lw.values(), rw.values())
        covs.append(Matrix.from_array(out))
    return covs


def split_and_analyze(image, kernel: str = "laplace12", vertical: bool = False) -> dict[str, Any]:
    """
    Split a surface in two halves and analyze each one.

    Returns:
        Surfaces keyed ``L``/``R`` (the halves), ``LH``/``RH`` (equalized)
        and ``LE``/``RE`` (edge maps)
    """
    pipeline = AnalysisPipeline()
    outputs = {}
    for name, half in zip(HALF_NAMES, split2(image, vertical)):
        outputs[name] = half
        equalized, _ = pipeline.process(half, create_analysis_config(equalize=True))
        edges, _ = pipeline.process(
            half, create_analysis_config(edge=True, edge_params={"kernel": kernel})
        )
        outputs[name + "H"] = equalized
        outputs[name + "E"] = edges
    return outputs
