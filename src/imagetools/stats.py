"""
Descriptive statistics over sequences of real numbers.
"""

import math

import numpy as np


def mean(p: float, xs) -> float:
    """
    Power mean of order p, ``(sum(x**p) / n) ** (1 / p)``.

    ``p = inf`` gives the maximum, ``p = -inf`` the minimum and ``p = 0``
    the geometric mean. An empty sequence gives 0.

    Args:
        p: Order of the mean
        xs: Sequence of real numbers

    Returns:
        The p-power mean
    """
    values = np.asarray(xs, dtype=np.float64).ravel()
    n = values.size
    if n == 0:
        return 0.0
    if math.isinf(p):
        return float(values.max() if p > 0 else values.min())
    if p == 0:
        return float(np.prod(np.power(values, 1 / n)))
    return float(np.sum(np.power(values, p) / n) ** (1 / p))


def median(xs):
    """Upper middle element of the sorted sequence."""
    values = np.sort(np.asarray(xs).ravel())
    if values.size == 0:
        return 0
    return values[values.size // 2]


def mode(xs):
    """Most frequent value; the smallest one among ties."""
    values = np.asarray(xs).ravel()
    if values.size == 0:
        return 0
    unique, counts = np.unique(values, return_counts=True)
    return unique[np.argmax(counts)]


def variance(sample: bool, xs) -> float:
    """Population variance, or the unbiased sample variance when ``sample``."""
    return covariance(sample, xs, xs)


def covariance(sample: bool, x, y) -> float:
    """
    Covariance of two sequences, truncated to the shorter one.

    Sequences of fewer than two elements have a sample covariance of 0.
    """
    a = np.asarray(x, dtype=np.float64).ravel()
    b = np.asarray(y, dtype=np.float64).ravel()
    n = min(a.size, b.size)
    if n == 0 or (sample and n < 2):
        return 0.0
    a, b = a[:n], b[:n]
    s = float(np.sum(a / n * b) - np.sum(a / n) * np.sum(b / n))
    if sample:
        s /= 1 - 1 / n
    return s
