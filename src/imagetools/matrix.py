"""
Dense row-major matrix engine.

A ``Matrix`` is a rectangular grid of width ``x`` and height ``y`` backed by a
single contiguous numpy array of length ``x*y``. The numpy dtype plays the
role of the element type: integer, unsigned, floating point and complex
matrices all share the same operations, and integer arithmetic keeps the
wrap-around behaviour of fixed-width integers.

A matrix with a non-positive dimension is the canonical empty value. Every
operation returning a matrix returns one that owns its storage; the three
elementary transforms and ``assign`` mutate the receiver in place, copying
first when the receiver wraps a caller-owned array.
"""

from collections.abc import Callable, Iterator
from typing import Any, NamedTuple

import numpy as np
from scipy import ndimage

from .errors import DimensionError, MatrixError, Why


class Index2(NamedTuple):
    """Ordered (x, y) pair used for coordinates and dimensions."""

    x: int
    y: int

    def __str__(self):
        return f"({self.x},{self.y})"


class _Restartable:
    """Iterable that runs a fresh generator on every ``iter()`` call."""

    def __init__(self, factory: Callable[[], Iterator]):
        self._factory = factory

    def __iter__(self):
        return self._factory()


def _is_integer(dtype) -> bool:
    return np.issubdtype(dtype, np.integer)


def _divide(a: np.ndarray, b) -> np.ndarray:
    """Divide with truncation toward zero for integer dtypes."""
    if _is_integer(np.result_type(a, b)):
        quotient = np.floor_divide(a, b)
        fix = (np.remainder(a, b) != 0) & ((np.asarray(a) < 0) != (np.asarray(b) < 0))
        return quotient + fix.astype(quotient.dtype)
    return np.true_divide(a, b)


def _truncated_quotient(a: int, b: int) -> int:
    q = abs(a) // abs(b)
    return -q if (a < 0) != (b < 0) else q


def _wrap_int(value: int, dtype: np.dtype):
    info = np.iinfo(dtype)
    span = int(info.max) - int(info.min) + 1
    return dtype.type((value - int(info.min)) % span + int(info.min))


def _format_number(v, precision: int) -> str:
    if isinstance(v, (bool, np.bool_)):
        return str(bool(v))
    if isinstance(v, (int, np.integer)):
        return str(int(v))
    if isinstance(v, (complex, np.complexfloating)):
        return f"({v.real:.{precision}f}{v.imag:+.{precision}f}i)"
    return f"{float(v):.{precision}f}"


class Matrix:
    """Rectangular matrix over a numpy dtype."""

    __hash__ = None

    def __init__(self, x: int = 0, y: int = 0, dtype=np.float64):
        if x <= 0 or y <= 0:
            x = y = 0
        self._x = int(x)
        self._y = int(y)
        self._val = np.zeros(self._x * self._y, dtype=dtype)
        self._shared = False

    @classmethod
    def _wrap(cls, val: np.ndarray, x: int, y: int, shared: bool = False) -> "Matrix":
        m = cls.__new__(cls)
        if x <= 0 or y <= 0:
            m._x = m._y = 0
            m._val = np.zeros(0, dtype=val.dtype)
        else:
            m._x, m._y = int(x), int(y)
            m._val = val
        m._shared = shared
        return m

    # --- constructors ---

    @classmethod
    def new(cls, x: int, y: int, *values, dtype=None) -> "Matrix":
        """
        Create an x-by-y matrix, zero-filled, then copy ``values`` into it
        in row-major order. Extra values are ignored.
        """
        if dtype is None:
            dtype = np.asarray(values).dtype if values else np.float64
        m = cls(x, y, dtype=dtype)
        if values and not m.empty():
            count = min(len(values), m._val.size)
            m._val[:count] = np.asarray(values[:count]).astype(dtype)
        return m

    @classmethod
    def zeros(cls, x: int, y: int, dtype=np.float64) -> "Matrix":
        return cls(x, y, dtype=dtype)

    @classmethod
    def identity(cls, n: int, dtype=np.float64) -> "Matrix":
        m = cls(n, n, dtype=dtype)
        if not m.empty():
            m._val[:: n + 1] = 1
        return m

    @classmethod
    def uniform(cls, x: int, y: int, t, dtype=None) -> "Matrix":
        """Create an x-by-y matrix filled with ``t``."""
        if dtype is None:
            dtype = np.asarray(t).dtype
        m = cls(x, y, dtype=dtype)
        m._val[:] = t
        return m

    @classmethod
    def rand_int(cls, x: int, y: int, n: int, rng=None) -> "Matrix":
        """
        Random integers in ``[0, n)``, or any non-negative int64 when ``n <= 0``.

        Args:
            rng: seed or ``numpy.random.Generator``
        """
        rng = np.random.default_rng(rng)
        high = n if n > 0 else np.iinfo(np.int64).max
        m = cls(x, y, dtype=np.int64)
        m._val[:] = rng.integers(0, high, size=m._val.size, dtype=np.int64)
        return m

    @classmethod
    def rand_float(cls, x: int, y: int, rng=None) -> "Matrix":
        rng = np.random.default_rng(rng)
        m = cls(x, y)
        m._val[:] = rng.random(m._val.size)
        return m

    @classmethod
    def rand_exp(cls, x: int, y: int, rng=None) -> "Matrix":
        rng = np.random.default_rng(rng)
        m = cls(x, y)
        m._val[:] = rng.standard_exponential(m._val.size)
        return m

    @classmethod
    def rand_norm(cls, x: int, y: int, rng=None) -> "Matrix":
        rng = np.random.default_rng(rng)
        m = cls(x, y)
        m._val[:] = rng.standard_normal(m._val.size)
        return m

    @classmethod
    def from_array(cls, array: np.ndarray, copy: bool = True) -> "Matrix":
        """
        Wrap a 2-D array of shape (y, x).

        Args:
            array: Source array, rows first
            copy: When False the matrix shares the array until its first
                in-place mutation

        Returns:
            Matrix with the array's dtype
        """
        array = np.asarray(array)
        if array.ndim != 2:
            raise ValueError("Matrix source must be a 2-D array")
        y, x = array.shape
        if copy:
            val = array.reshape(-1).copy()
        else:
            val = np.ascontiguousarray(array).reshape(-1)
        return cls._wrap(val, x, y, shared=not copy)

    # --- properties ---

    @property
    def x(self) -> int:
        return self._x

    @property
    def y(self) -> int:
        return self._y

    @property
    def dtype(self) -> np.dtype:
        return self._val.dtype

    def dims(self) -> Index2:
        return Index2(self._x, self._y)

    def empty(self) -> bool:
        return self._x <= 0 or self._y <= 0

    def to_array(self) -> np.ndarray:
        """Copy of the matrix as a (y, x) array."""
        return self._grid().copy()

    def values(self) -> np.ndarray:
        """Copy of the row-major backing array."""
        return self._val.copy()

    def clone(self) -> "Matrix":
        return Matrix._wrap(self._val.copy(), self._x, self._y)

    def _grid(self) -> np.ndarray:
        return self._val.reshape(self._y, self._x)

    def _reval(self):
        if self._shared:
            self._val = self._val.copy()
            self._shared = False

    def _scalar(self, t):
        return np.asarray(t).astype(self.dtype)[()]

    def _check_index(self, x: int, y: int, op: str):
        if x < 0 or x >= self._x or y < 0 or y >= self._y:
            raise DimensionError(op, [(x, y)], Why.OUT_OF_BOUNDS)

    # --- access ---

    def at(self, x: int, y: int):
        """Element at column x, row y."""
        self._check_index(x, y, "at")
        return self._val[y * self._x + x]

    def assign(self, x: int, y: int, t) -> None:
        """Set the element at (x, y) in place."""
        self._check_index(x, y, "assign")
        self._reval()
        self._val[y * self._x + x] = t

    def row(self, y: int) -> np.ndarray:
        if y < 0 or y >= self._y:
            raise DimensionError("row", [(0, y)], Why.OUT_OF_BOUNDS)
        return self._grid()[y].copy()

    def column(self, x: int) -> np.ndarray:
        if x < 0 or x >= self._x:
            raise DimensionError("column", [(x, 0)], Why.OUT_OF_BOUNDS)
        return self._grid()[:, x].copy()

    # --- iteration and structure ---

    @staticmethod
    def _check_step(dx: int, dy: int, op: str):
        if dx <= 0 or dy <= 0:
            raise DimensionError(op, [(dx, dy)], Why.INVALID_STEP)

    def elements(self, dx: int = 1, dy: int = 1) -> _Restartable:
        """Iterate ``(Index2, value)`` every dx columns and dy rows."""
        self._check_step(dx, dy, "elements")
        snapshot = self.clone()

        def walk():
            grid = snapshot._grid()
            for y in range(0, snapshot.y, dy):
                for x in range(0, snapshot.x, dx):
                    yield Index2(x, y), grid[y, x]

        return _Restartable(walk)

    def step(self, dx: int, dy: int) -> "Matrix":
        """Keep every dx-th column of every dy-th row."""
        self._check_step(dx, dy, "step")
        if self.empty():
            return Matrix(dtype=self.dtype)
        stepped = self._grid()[::dy, ::dx].copy()
        return Matrix._wrap(stepped.reshape(-1), stepped.shape[1], stepped.shape[0])

    def sub_matrix(self, x0: int, y0: int, x1: int, y1: int) -> "Matrix":
        """
        Extract the half-open region [x0, x1) x [y0, y1).

        Raises:
            DimensionError: OUT_OF_BOUNDS when the region is inverted, empty
                or exceeds the matrix
        """
        if x0 < 0 or x0 >= x1 or x1 > self._x or y0 < 0 or y0 >= y1 or y1 > self._y:
            raise DimensionError("sub_matrix", [(x0, y0), (x1, y1)], Why.OUT_OF_BOUNDS)
        region = self._grid()[y0:y1, x0:x1].copy()
        return Matrix._wrap(region.reshape(-1), x1 - x0, y1 - y0)

    def windows(self, dx: int, dy: int, w: int, h: int) -> _Restartable:
        """
        Iterate the w-by-h sub-matrices whose top-left corner advances by
        (dx, dy), yielding ``(Index2, Matrix)`` pairs for every window lying
        fully inside the matrix. The result can be iterated more than once.
        """
        self._check_step(dx, dy, "windows")
        if w <= 0 or h <= 0:
            raise DimensionError("windows", [(w, h)], Why.OUT_OF_BOUNDS)
        snapshot = self.clone()

        def walk():
            for y in range(0, snapshot.y - h + 1, dy):
                for x in range(0, snapshot.x - w + 1, dx):
                    yield Index2(x, y), snapshot.sub_matrix(x, y, x + w, y + h)

        return _Restartable(walk)

    def expand(self, x: int, y: int, direction: int = 0) -> "Matrix":
        """
        Resize to x-by-y, zero-filling or cropping around an anchor.

        ``direction`` picks the anchor::

            0 1 2
            3 4 5
            6 7 8
        """
        if direction < 0 or direction >= 9:
            direction = 0
        r = Matrix(x, y, dtype=self.dtype)
        if r.empty() or self.empty():
            return r
        oy = (0, int((y - self._y) / 2), y - self._y)[direction // 3]
        ox = (0, int((x - self._x) / 2), x - self._x)[direction % 3]
        src = self._grid()
        dst = r._grid()
        sy0, sx0 = max(0, -oy), max(0, -ox)
        sy1, sx1 = min(self._y, y - oy), min(self._x, x - ox)
        if sy0 < sy1 and sx0 < sx1:
            dst[sy0 + oy : sy1 + oy, sx0 + ox : sx1 + ox] = src[sy0:sy1, sx0:sx1]
        return r

    # --- scalar arithmetic ---

    def add(self, t) -> "Matrix":
        return Matrix._wrap(self._val + self._scalar(t), self._x, self._y)

    def sub(self, t) -> "Matrix":
        return Matrix._wrap(self._val - self._scalar(t), self._x, self._y)

    def mul(self, t) -> "Matrix":
        return Matrix._wrap(self._val * self._scalar(t), self._x, self._y)

    def div(self, t) -> "Matrix":
        s = self._scalar(t)
        if s == 0:
            raise MatrixError(Why.DIVIDE_BY_0)
        return Matrix._wrap(_divide(self._val, s).astype(self.dtype), self._x, self._y)

    # --- elementwise arithmetic ---

    def _elementwise(self, n: "Matrix", op: str, func) -> "Matrix":
        # An empty operand absorbs: the other operand comes back unchanged.
        if self.empty():
            return n.clone()
        if n.empty():
            return self.clone()
        if self._x != n._x or self._y != n._y:
            raise DimensionError(op, [self.dims(), n.dims()], Why.DIMENSIONS)
        return Matrix._wrap(func(self._val, n._val), self._x, self._y)

    def add_elem(self, n: "Matrix") -> "Matrix":
        return self._elementwise(n, "add_elem", np.add)

    def sub_elem(self, n: "Matrix") -> "Matrix":
        return self._elementwise(n, "sub_elem", np.subtract)

    def mul_elem(self, n: "Matrix") -> "Matrix":
        return self._elementwise(n, "mul_elem", np.multiply)

    def div_elem(self, n: "Matrix") -> "Matrix":
        """
        Elementwise division.

        Raises:
            DimensionError: DIVIDE_BY_0 with the coordinate of the first zero
                divisor in row-major order
        """
        if not self.empty() and not n.empty() and self.dims() == n.dims():
            zeros = np.flatnonzero(n._val == 0)
            if zeros.size:
                i = int(zeros[0])
                raise DimensionError("div_elem", [(i % n.x, i // n.x)], Why.DIVIDE_BY_0)
        return self._elementwise(n, "div_elem", _divide)

    def mul_mat(self, n: "Matrix") -> "Matrix":
        """
        Matrix product ``self * n`` of shape (n.x, self.y).

        The inner index is accumulated in order for every output cell, so
        floating point results do not depend on a BLAS blocking strategy.
        """
        if self._x != n._y:
            raise DimensionError("mul_mat", [self.dims(), n.dims()], Why.DIMENSIONS)
        a, b = self._grid(), n._grid()
        r = np.zeros((self._y, n._x), dtype=np.result_type(a, b))
        for j in range(self._x):
            r += np.multiply.outer(a[:, j], b[j, :])
        return Matrix._wrap(r.reshape(-1), n._x, self._y)

    def trans(self) -> "Matrix":
        return Matrix._wrap(self._grid().T.copy().reshape(-1), self._y, self._x)

    # --- elementary transforms ---

    def _check_line(self, col: bool, *lines: int):
        limit = self._x if col else self._y
        for line in lines:
            if line < 0 or line >= limit:
                raise MatrixError(Why.OUT_OF_BOUNDS)

    def _lines(self, col: bool) -> np.ndarray:
        grid = self._grid()
        return grid.T if col else grid

    def elem1(self, col: bool, a: int, b: int) -> "Matrix":
        """Swap rows (or columns) a and b in place."""
        self._check_line(col, a, b)
        self._reval()
        if a != b:
            lines = self._lines(col)
            lines[[a, b]] = lines[[b, a]]
        return self

    def elem2(self, col: bool, a: int, t) -> "Matrix":
        """Multiply row (or column) a by the non-zero scalar t in place."""
        s = self._scalar(t)
        if s == 0:
            raise MatrixError(Why.OUT_OF_BOUNDS)
        self._check_line(col, a)
        self._reval()
        self._lines(col)[a] *= s
        return self

    def elem3(self, col: bool, a: int, b: int, t) -> "Matrix":
        """Add t times row (or column) b to row (or column) a in place."""
        self._check_line(col, a, b)
        s = self._scalar(t)
        if s == 0:
            return self
        self._reval()
        lines = self._lines(col)
        lines[a] += s * lines[b]
        return self

    # --- linear algebra ---

    def _check_square(self, op: str):
        if self._x != self._y:
            raise DimensionError(op, [self.dims()], Why.NOT_SQUARE)

    def det(self):
        """
        Determinant.

        Singular matrices give zero rather than an error; only a non-square
        receiver raises. Integer matrices are reduced exactly with a
        Euclidean row reduction so no precision is lost.
        """
        self._check_square("det")
        v = self._val
        if self._x == 0:
            return self.dtype.type(0)
        if self._x == 1:
            return v[0]
        if self._x == 2:
            return v[0] * v[3] - v[1] * v[2]
        if _is_integer(self.dtype):
            return _wrap_int(self._det_integer(), self.dtype)
        return self._det_field()

    def _det_field(self):
        m = self.clone()
        g = m._grid()
        n = m.x
        sign = 1
        for i in range(n):
            if g[i, i] == 0:
                below = np.flatnonzero(g[i + 1 :, i] != 0)
                if below.size == 0:
                    return self.dtype.type(0)
                m.elem1(False, i, i + 1 + int(below[0]))
                sign = -sign
            for j in range(i + 1, n):
                if g[j, i] != 0:
                    m.elem3(False, j, i, -g[j, i] / g[i, i])
                    g[j, i] = 0
        return self.dtype.type(sign * np.prod(np.diagonal(g)))

    def _det_integer(self) -> int:
        rows = [[int(v) for v in row] for row in self._grid()]
        n = len(rows)
        sign = 1
        for i in range(n):
            if rows[i][i] == 0:
                for j in range(i + 1, n):
                    if rows[j][i] != 0:
                        rows[i], rows[j] = rows[j], rows[i]
                        sign = -sign
                        break
                else:
                    return 0
            for j in range(i + 1, n):
                while rows[j][i] != 0:
                    q = _truncated_quotient(rows[j][i], rows[i][i])
                    rows[j] = [a - q * b for a, b in zip(rows[j], rows[i])]
                    if rows[j][i] != 0:
                        rows[i], rows[j] = rows[j], rows[i]
                        sign = -sign
        result = sign
        for i in range(n):
            result *= rows[i][i]
        return result

    def inv(self) -> "Matrix":
        """
        Inverse by Gauss-Jordan elimination.

        Integer matrices are inverted in float64.

        Raises:
            DimensionError: NOT_SQUARE for a non-square receiver
            MatrixError: IRREVERSIBLE when no non-zero pivot can be found
        """
        self._check_square("inv")
        if self.empty():
            return self.clone()
        src = self if np.issubdtype(self.dtype, np.inexact) else self.convert(np.float64)
        v = src._val
        if src.x == 1:
            if v[0] == 0:
                raise MatrixError(Why.IRREVERSIBLE)
            return Matrix._wrap(np.ones(1, dtype=src.dtype) / v, 1, 1)
        if src.x == 2:
            d = src.det()
            if d == 0:
                raise MatrixError(Why.IRREVERSIBLE)
            return Matrix.new(2, 2, v[3], -v[1], -v[2], v[0], dtype=src.dtype).div(d)

        n = src.x
        m = src.clone()
        r = Matrix.identity(n, dtype=src.dtype)
        g = m._grid()
        for i in range(n):
            if g[i, i] == 0:
                below = np.flatnonzero(g[i + 1 :, i] != 0)
                if below.size == 0:
                    raise MatrixError(Why.IRREVERSIBLE)
                j = i + 1 + int(below[0])
                m.elem1(False, i, j)
                r.elem1(False, i, j)
            scale = 1 / g[i, i]
            m.elem2(False, i, scale)
            r.elem2(False, i, scale)
            g[i, i] = 1
            for j in range(n):
                if j != i and g[j, i] != 0:
                    f = -g[j, i]
                    m.elem3(False, j, i, f)
                    r.elem3(False, j, i, f)
                    g[j, i] = 0
        return r

    # --- convolution ---

    def conv(self, kernel: "Matrix", dx: int = 1, dy: int = 1) -> "Matrix":
        """
        Strided valid convolution (correlation form, kernel not flipped).

        Args:
            kernel: Kernel that must fit inside the matrix
            dx: Horizontal stride
            dy: Vertical stride

        Returns:
            Matrix of shape ((x-kx)//dx+1, (y-ky)//dy+1); a clone of the
            receiver when either operand is empty

        Raises:
            DimensionError: INVALID_STEP or LARGE_KERNEL
        """
        if self.empty() or kernel.empty():
            return self.clone()
        self._check_step(dx, dy, "conv")
        if self._x < kernel.x or self._y < kernel.y:
            raise DimensionError("conv", [self.dims(), kernel.dims()], Why.LARGE_KERNEL)
        rx = (self._x - kernel.x) // dx + 1
        ry = (self._y - kernel.y) // dy + 1
        a, k = self._grid(), kernel._grid()
        r = np.zeros((ry, rx), dtype=np.result_type(a, k))
        for ky in range(kernel.y):
            for kx in range(kernel.x):
                window = a[ky : ky + (ry - 1) * dy + 1 : dy, kx : kx + (rx - 1) * dx + 1 : dx]
                r += k[ky, kx] * window
        return Matrix._wrap(r.reshape(-1), rx, ry)

    def deconv(self, kernel: "Matrix", dx: int = 1, dy: int = 1) -> "Matrix":
        """Adjoint of ``conv``: scatter every element times the kernel."""
        if self.empty() or kernel.empty():
            return self.clone()
        self._check_step(dx, dy, "deconv")
        rx = (self._x - 1) * dx + kernel.x
        ry = (self._y - 1) * dy + kernel.y
        a, k = self._grid(), kernel._grid()
        r = np.zeros((ry, rx), dtype=np.result_type(a, k))
        for ky in range(kernel.y):
            for kx in range(kernel.x):
                r[ky : ky + (self._y - 1) * dy + 1 : dy, kx : kx + (self._x - 1) * dx + 1 : dx] += k[ky, kx] * a
        return Matrix._wrap(r.reshape(-1), rx, ry)

    def filter(self, kernel: "Matrix") -> "Matrix":
        """Same-size correlation with a centred kernel and zero padding."""
        if self.empty() or kernel.empty():
            return self.clone()
        if self._x < kernel.x or self._y < kernel.y:
            raise DimensionError("filter", [self.dims(), kernel.dims()], Why.LARGE_KERNEL)
        dtype = np.result_type(self._val, kernel._val)
        r = ndimage.correlate(
            self._grid().astype(dtype), kernel._grid().astype(dtype), mode="constant", cval=0
        )
        return Matrix._wrap(r.reshape(-1), self._x, self._y)

    # --- reductions and conversions ---

    def min(self):
        return self._val.min() if self._val.size else self.dtype.type(0)

    def max(self):
        return self._val.max() if self._val.size else self.dtype.type(0)

    def min_max(self) -> tuple[Any, Any]:
        return self.min(), self.max()

    def convert(self, dtype) -> "Matrix":
        """Same matrix with elements cast to ``dtype`` (C-style truncation)."""
        return Matrix._wrap(self._val.astype(dtype), self._x, self._y)

    def map(self, func: Callable, dtype=None) -> "Matrix":
        """Apply ``func`` to every element."""
        if self.empty():
            return Matrix(dtype=dtype or self.dtype)
        mapped = np.vectorize(func, otypes=[dtype] if dtype is not None else None)(self._val)
        return Matrix._wrap(np.asarray(mapped), self._x, self._y)

    def equal(self, n: "Matrix") -> bool:
        return self.dims() == n.dims() and bool(np.array_equal(self._val, n._val))

    def __eq__(self, other):
        if not isinstance(other, Matrix):
            return NotImplemented
        return self.equal(other)

    # --- formatting ---

    def to_string(self, precision: int = 6, width: int = 0) -> str:
        """
        Render the matrix as text.

        Args:
            precision: Digits after the decimal point for inexact dtypes
            width: When positive, one row per line wrapped every ``width``
                elements with columns aligned; otherwise a single line
                ``[a,b;c,d]``
        """
        if self.empty():
            return "[]"
        cells = [[_format_number(v, precision) for v in row] for row in self._grid()]
        if width <= 0:
            return "[" + ";".join(",".join(row) for row in cells) + "]"
        widths = [max(len(row[j]) for row in cells) for j in range(self._x)]
        lines = []
        for i, row in enumerate(cells):
            padded = [c.rjust(widths[j]) for j, c in enumerate(row)]
            chunks = [",".join(padded[s : s + width]) for s in range(0, len(padded), width)]
            if i < len(cells) - 1:
                chunks[-1] += ";"
            lines.extend("\t" + chunk for chunk in chunks)
        return "[\n" + "\n".join(lines) + "\n]"

    def __str__(self):
        return self.to_string()

    def __repr__(self):
        return f"Matrix[{self.dtype}]({self._x},{self._y})"
