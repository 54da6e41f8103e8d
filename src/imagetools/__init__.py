"""
imagetools - dense matrices, image planes and tiling

A generic numeric matrix engine, a transform and statistics library built
on it, a bridge between raster surfaces and per-channel matrices, and
cropping/tiling utilities.
"""

__version__ = "0.1.0"

# Matrix engine
from .errors import DimensionError as DimensionError
from .errors import MatrixError as MatrixError
from .errors import Why as Why
from .matrix import Index2 as Index2
from .matrix import Matrix as Matrix

# Transforms, statistics, kernels
from .transforms import (
    absolutize as absolutize,
    dft as dft,
    equalize as equalize,
    fourier as fourier,
    gauss as gauss,
    get_abs as get_abs,
    get_imag as get_imag,
    get_phase as get_phase,
    get_real as get_real,
    laplace_gauss as laplace_gauss,
    log_absolutize as log_absolutize,
    make_complex as make_complex,
    make_imag as make_imag,
    normalize as normalize,
    shrink_8 as shrink_8,
    shrink_u8 as shrink_u8,
)
from .stats import (
    covariance as covariance,
    mean as mean,
    median as median,
    mode as mode,
    variance as variance,
)
from .kernels import KERNELS as KERNELS
from .kernels import get_kernels as get_kernels
from .activations import mish as mish
from .activations import relu as relu
from .activations import sigmoid as sigmoid
from .activations import softplus as softplus

# Surfaces and the image bridge
from .surface import (
    TRANSPARENT as TRANSPARENT,
    CroppedSurface as CroppedSurface,
    Encoding as Encoding,
    PackedSurface as PackedSurface,
    PalettedSurface as PalettedSurface,
    Rect as Rect,
    SubsampleRatio as SubsampleRatio,
    UniformSurface as UniformSurface,
    YCbCrSurface as YCbCrSurface,
)
from .bridge import (
    clone as clone,
    convolve as convolve,
    dimensions as dimensions,
    from_pil as from_pil,
    gray_to_matrix as gray_to_matrix,
    matrices_to_rgb as matrices_to_rgb,
    matrices_to_rgba as matrices_to_rgba,
    matrix_to_gray as matrix_to_gray,
    reduce as reduce,
    rgba64_pixels as rgba64_pixels,
    rgba_to_matrices as rgba_to_matrices,
    to_pil as to_pil,
    to_rgba as to_rgba,
)
from .colors import (
    color_diff as color_diff,
    compare_colors as compare_colors,
    palette_diff as palette_diff,
    random_rgba as random_rgba,
    random_rgba64 as random_rgba64,
    same_palettes as same_palettes,
)
from .palette import PaletteQuantizer as PaletteQuantizer
from .palette import QuantizationResult as QuantizationResult
from .palette import palletize as palletize

# Geometry
from .geometry import (
    crop as crop,
    gcd as gcd,
    lcm as lcm,
    range_qr as range_qr,
    split2 as split2,
    split_n as split_n,
)

# Processing and I/O
from .processors import (
    BaseProcessor as BaseProcessor,
    ConvolveProcessor as ConvolveProcessor,
    EdgeProcessor as EdgeProcessor,
    EqualizeProcessor as EqualizeProcessor,
    ProcessingResult as ProcessingResult,
    ProcessorFactory as ProcessorFactory,
    ProcessorType as ProcessorType,
    QuantizeProcessor as QuantizeProcessor,
)
from .pipeline import (
    AnalysisPipeline as AnalysisPipeline,
    create_analysis_config as create_analysis_config,
    split_and_analyze as split_and_analyze,
    stereo_covariance as stereo_covariance,
)
from .io_utils import load_surface as load_surface
from .io_utils import save_surface as save_surface


def get_available_processors() -> dict[str, str]:
    """Get information about available processors."""
    return AnalysisPipeline().get_available_steps()


__all__ = [
    # Matrix engine
    "Matrix",
    "Index2",
    "Why",
    "MatrixError",
    "DimensionError",
    # Transforms and statistics
    "fourier",
    "dft",
    "make_complex",
    "make_imag",
    "get_real",
    "get_imag",
    "get_phase",
    "get_abs",
    "gauss",
    "laplace_gauss",
    "equalize",
    "normalize",
    "absolutize",
    "log_absolutize",
    "shrink_u8",
    "shrink_8",
    "mean",
    "median",
    "mode",
    "variance",
    "covariance",
    "KERNELS",
    "get_kernels",
    "relu",
    "sigmoid",
    "softplus",
    "mish",
    # Surfaces and bridge
    "Encoding",
    "SubsampleRatio",
    "Rect",
    "PackedSurface",
    "YCbCrSurface",
    "PalettedSurface",
    "UniformSurface",
    "CroppedSurface",
    "TRANSPARENT",
    "reduce",
    "clone",
    "rgba64_pixels",
    "dimensions",
    "to_rgba",
    "rgba_to_matrices",
    "matrices_to_rgba",
    "matrices_to_rgb",
    "gray_to_matrix",
    "matrix_to_gray",
    "convolve",
    "from_pil",
    "to_pil",
    "color_diff",
    "palette_diff",
    "same_palettes",
    "compare_colors",
    "random_rgba64",
    "random_rgba",
    "PaletteQuantizer",
    "QuantizationResult",
    "palletize",
    # Geometry
    "crop",
    "split_n",
    "split2",
    "range_qr",
    "gcd",
    "lcm",
    # Processing and I/O
    "BaseProcessor",
    "EqualizeProcessor",
    "EdgeProcessor",
    "ConvolveProcessor",
    "QuantizeProcessor",
    "ProcessingResult",
    "ProcessorFactory",
    "ProcessorType",
    "AnalysisPipeline",
    "create_analysis_config",
    "stereo_covariance",
    "split_and_analyze",
    "load_surface",
    "save_surface",
    "get_available_processors",
]
