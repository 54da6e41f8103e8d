"""
Surface processors
==================

Self-contained analysis steps that take a surface and return a
``ProcessingResult``. They are the building blocks of ``AnalysisPipeline``:

- Equalize: per-channel histogram equalization
- Edge: named edge-detection kernels, absolutized into a displayable map
- Convolve: arbitrary integer kernel, saturated to 8 bits
- Quantize: palette reduction by nearest-colour clustering
"""

import logging
from abc import ABC, abstractmethod
from enum import Enum
from typing import Any

import numpy as np

from .bridge import convolve, matrices_to_rgb, rgba_to_matrices
from .kernels import get_kernels
from .matrix import Matrix
from .palette import PaletteQuantizer
from .transforms import absolutize, equalize, log_absolutize

logger = logging.getLogger(__name__)


class ProcessorType(Enum):
    """Types of processors available."""

    EQUALIZE = "equalize"
    EDGE = "edge"
    CONVOLVE = "convolve"
    QUANTIZE = "quantize"


class ProcessingResult:
    """Result object for processing operations."""

    def __init__(
        self,
        image,
        processor_type: str,
        parameters: dict[str, Any],
        statistics: dict | None = None,
    ):
        self.image = image
        self.processor_type = processor_type
        self.parameters = parameters
        self.statistics = statistics or {}

    def __repr__(self):
        b = self.image.bounds
        return f"ProcessingResult({self.processor_type}, size={b.dx()}x{b.dy()})"


class BaseProcessor(ABC):
    """Abstract base class for all surface processors."""

    def __init__(self, name: str):
        self.name = name
        self._last_result = None

    def get_last_result(self) -> ProcessingResult | None:
        """Get the result of the last processing operation."""
        return self._last_result

    @abstractmethod
    def process(self, image, **kwargs) -> ProcessingResult:
        """Process the input surface and return a ProcessingResult."""
        pass

    @staticmethod
    def _validate_image(image) -> None:
        """Validate input surface."""
        if image is None:
            raise ValueError("Image cannot be None")

        if not hasattr(image, "bounds") or not hasattr(image, "rgba64_at"):
            raise ValueError("Image must be a surface exposing bounds and rgba64_at")

        if image.bounds.empty():
            raise ValueError("Image cannot be empty")


class EqualizeProcessor(BaseProcessor):
    """
    Histogram equalization of the R, G and B planes.
    The output is opaque.
    """

    def __init__(self):
        super().__init__("Equalize")

    def process(self, image, **kwargs) -> ProcessingResult:
        self._validate_image(image)

        channels = rgba_to_matrices(image)[:3]
        equalized = [equalize(c) for c in channels]

        result = ProcessingResult(
            image=matrices_to_rgb(equalized),
            processor_type="equalize",
            parameters={},
            statistics={
                "input_range": [tuple(int(v) for v in c.min_max()) for c in channels],
                "output_range": [tuple(int(v) for v in c.min_max()) for c in equalized],
            },
        )
        self._last_result = result
        return result


class EdgeProcessor(BaseProcessor):
    """
    Edge map from a named kernel family.

    Every colour plane is convolved with each kernel of the family; the
    absolute responses are summed and scaled so the strongest edge is 255.
    The map is smaller than the input by the kernel size minus one.
    """

    def __init__(self):
        super().__init__("Edge")

    def process(
        self, image, kernel: str = "laplace12", log_scale: bool = False, **kwargs
    ) -> ProcessingResult:
        """
        Detect edges.

        Args:
            image: Input surface
            kernel: Kernel family name (roberts, sobel, prewitt, laplace,
                laplace8, laplace12)
            log_scale: Compress the response with log1p before scaling

        Returns:
            ProcessingResult with an opaque RGBA edge map
        """
        self._validate_image(image)
        family = get_kernels(kernel)

        planes = []
        for channel in rgba_to_matrices(image)[:3]:
            c = channel.convert(np.int64)
            response = None
            for k in family:
                magnitude = Matrix.from_array(np.abs(c.conv(k).to_array()))
                response = magnitude if response is None else response.add_elem(magnitude)
            planes.append(response)

        scale = log_absolutize if log_scale else absolutize
        edges = [scale(p) for p in planes]
        logger.debug(f"Edge map with {len(family)} {kernel} kernel(s): {edges[0].x}x{edges[0].y}")

        result = ProcessingResult(
            image=matrices_to_rgb(edges),
            processor_type="edge",
            parameters={"kernel": kernel, "log_scale": log_scale},
            statistics={
                "kernel_count": len(family),
                "max_response": [int(p.max()) for p in planes],
            },
        )
        self._last_result = result
        return result


class ConvolveProcessor(BaseProcessor):
    """Convolution with an integer kernel, saturated back to 8 bits."""

    def __init__(self):
        super().__init__("Convolve")

    def process(
        self, image, kernel: Matrix | str = "laplace", dx: int = 1, dy: int = 1, **kwargs
    ) -> ProcessingResult:
        self._validate_image(image)
        if dx < 1 or dy < 1:
            raise ValueError("Strides must be positive integers")

        name = kernel if isinstance(kernel, str) else None
        k = get_kernels(kernel)[0] if name else kernel
        if not isinstance(k, Matrix) or k.empty():
            raise ValueError("Kernel must be a kernel name or a non-empty Matrix")

        result = ProcessingResult(
            image=convolve(image, k, dx, dy),
            processor_type="convolve",
            parameters={"kernel": name or str(k), "dx": dx, "dy": dy},
        )
        self._last_result = result
        return result


class QuantizeProcessor(BaseProcessor):
    """Palette reduction to a fixed number of colours."""

    def __init__(self, max_iterations: int = 256, rng=None):
        super().__init__("Quantize")
        self.quantizer = PaletteQuantizer(max_iterations=max_iterations, rng=rng)

    def process(self, image, colors: int = 16, **kwargs) -> ProcessingResult:
        self._validate_image(image)

        quantized = self.quantizer.process(image, colors)
        result = ProcessingResult(
            image=quantized.surface,
            processor_type="quantize",
            parameters={"colors": colors},
            statistics={
                "iterations": quantized.iterations,
                "converged": quantized.converged,
                "palette": list(quantized.palette),
            },
        )
        self._last_result = result
        return result


class ProcessorFactory:
    """Factory class for creating processor instances."""

    _processors = {
        ProcessorType.EQUALIZE: EqualizeProcessor,
        ProcessorType.EDGE: EdgeProcessor,
        ProcessorType.CONVOLVE: ConvolveProcessor,
        ProcessorType.QUANTIZE: QuantizeProcessor,
    }

    @classmethod
    def create_processor(cls, processor_type: ProcessorType | str) -> BaseProcessor:
        """Create a processor instance by type or type name."""
        if isinstance(processor_type, str):
            try:
                processor_type = ProcessorType(processor_type)
            except ValueError:
                raise ValueError(f"Unknown processor type: {processor_type}") from None
        if processor_type not in cls._processors:
            raise ValueError(f"Unknown processor type: {processor_type}")

        return cls._processors[processor_type]()

    @classmethod
    def get_available_processors(cls) -> list[ProcessorType]:
        """Get list of available processor types."""
        return list(cls._processors.keys())

    @classmethod
    def create_all_processors(cls) -> dict[ProcessorType, BaseProcessor]:
        """Create instances of all available processors."""
        return {
            processor_type: cls.create_processor(processor_type)
            for processor_type in cls._processors.keys()
        }
