"""
Error types for the matrix engine and the image bridge.

Every failure carries a ``Why`` cause. Failures that concern the shape of
one or more operands are raised as ``DimensionError``, which also records
the name of the operation and the offending (x, y) pairs.
"""

from enum import Enum


class Why(Enum):
    """Underlying cause of a matrix failure."""

    DIMENSIONS = "inconsistent dimensions"
    EMPTY_MATRIX = "empty matrix"
    NOT_SQUARE = "not square matrix"
    OUT_OF_BOUNDS = "out of bounds"
    DIVIDE_BY_0 = "division by zero"
    LARGE_KERNEL = "the kernel is too large"
    INVALID_STEP = "the step is not a positive integer"
    IRREVERSIBLE = "irreversible"

    def __str__(self):
        return self.value


class MatrixError(ValueError):
    """Base failure of the engine, always wrapping a ``Why``."""

    def __init__(self, why: Why):
        super().__init__(str(why))
        self._why = why

    @property
    def why(self) -> Why:
        return self._why


class DimensionError(MatrixError):
    """Failure describing an operation and the dimensions it rejected."""

    def __init__(self, op: str, dims, why: Why):
        self._op = op
        self._dims = tuple(tuple(int(v) for v in d) for d in dims)
        super().__init__(why)
        self.args = (str(self),)

    @property
    def op(self) -> str:
        return self._op

    @property
    def dims(self) -> tuple:
        return self._dims

    def __str__(self):
        pairs = ",".join(f"({x},{y})" for x, y in self._dims)
        return f"matrix dimension error: {self._op}({pairs}) {self._why}"
