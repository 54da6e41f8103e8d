"""Scalar activation functions, usable with ``Matrix.map``."""

import math
from collections.abc import Callable


def relu(a: float = 0.0) -> Callable[[float], float]:
    """Leaky rectifier with slope ``a`` below zero."""

    def f(x: float) -> float:
        return x if x >= 0 else a * x

    return f


def sigmoid(x: float) -> float:
    return 1 / (1 + math.exp(-x))


def softplus(x: float) -> float:
    return math.log1p(math.exp(x))


def mish(x: float) -> float:
    y = math.exp(x) + 1
    return x * (1 - 2 / (y * y + 1))
