"""Monotone piecewise-cubic interpolation (Fritsch–Carlson).

An unconstrained cubic spline through a staircase-like CDF overshoots
and can dip between samples.  Here the Hermite slopes are limited so
that each cubic piece stays monotone:

1. secant slopes ``δ_k = (y_{k+1} − y_k) / h_k``
2. interior slopes ``m_k = (δ_{k−1} + δ_k) / 2``, zero at local extrema
   or where either neighbouring secant is flat; one-sided at the ends
3. on every interval with ``α = m_k/δ_k``, ``β = m_{k+1}/δ_k`` and
   ``α² + β² > 9``, both slopes are scaled by ``3 / sqrt(α² + β²)``

The Hermite form is then evaluated by
:class:`scipy.interpolate.CubicHermiteSpline`.  Outside the sample range
the interpolant is held constant at the end values, and results are
clipped to ``[lower, upper]`` against rounding.

References
----------
F. N. Fritsch and R. E. Carlson. Monotone piecewise cubic interpolation.
SIAM J. Numer. Anal., 17(2):238-246, 1980.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional, Tuple, Union

import numpy as np
from scipy.interpolate import CubicHermiteSpline

from .errors import InvariantViolationError

__all__ = [
    "check_monotone_samples",
    "fritsch_carlson_slopes",
    "MonotoneCubicInterpolator",
]

ArrayLike = Union[float, np.ndarray]


def check_monotone_samples(x: np.ndarray, y: np.ndarray) -> None:
    """Raise :class:`InvariantViolationError` unless x increases and y does not decrease."""
    if x.ndim != 1 or y.shape != x.shape:
        raise InvariantViolationError(
            f"samples must be 1-D and of equal length, got {x.shape} and {y.shape}")
    if len(x) < 2:
        raise InvariantViolationError("at least two samples are required")
    if not (np.all(np.isfinite(x)) and np.all(np.isfinite(y))):
        raise InvariantViolationError("samples contain NaN or Inf")
    dx = np.diff(x)
    if np.any(dx <= 0):
        k = int(np.argmax(dx <= 0))
        raise InvariantViolationError(
            f"sample abscissae must be strictly increasing; "
            f"x[{k}]={x[k]} >= x[{k + 1}]={x[k + 1]}")
    dy = np.diff(y)
    if np.any(dy < 0):
        k = int(np.argmax(dy < 0))
        raise InvariantViolationError(
            f"sample values must be non-decreasing; "
            f"y[{k}]={y[k]} > y[{k + 1}]={y[k + 1]}")


def fritsch_carlson_slopes(x: np.ndarray, y: np.ndarray) -> np.ndarray:
    """Monotonicity-preserving Hermite slopes for non-decreasing samples."""
    x = np.asarray(x, dtype=float)
    y = np.asarray(y, dtype=float)
    h = np.diff(x)
    delta = np.diff(y) / h
    n = len(x)

    m = np.empty(n)
    m[0] = delta[0]
    m[-1] = delta[-1]
    if n > 2:
        m[1:-1] = 0.5 * (delta[:-1] + delta[1:])
        extremum = delta[:-1] * delta[1:] <= 0
        m[1:-1][extremum] = 0.0

    for k in range(n - 1):
        if delta[k] == 0.0:
            m[k] = 0.0
            m[k + 1] = 0.0
            continue
        alpha = m[k] / delta[k]
        beta = m[k + 1] / delta[k]
        if alpha < 0:
            m[k] = 0.0
            alpha = 0.0
        if beta < 0:
            m[k + 1] = 0.0
            beta = 0.0
        tau = alpha * alpha + beta * beta
        if tau > 9.0:
            t = 3.0 / np.sqrt(tau)
            m[k] = t * alpha * delta[k]
            m[k + 1] = t * beta * delta[k]
    return m


@dataclass(frozen=True, eq=False)
class MonotoneCubicInterpolator:
    """Monotone cubic through ``(x, y)`` samples, callable on scalars or arrays.

    Parameters
    ----------
    x : (n,) array
        Strictly increasing abscissae.
    y : (n,) array
        Non-decreasing values.
    bounds : (float, float), optional
        Clip outputs to this range; ``None`` disables clipping.

    Raises
    ------
    InvariantViolationError
        If the samples are not ordered as required.
    """

    x: np.ndarray
    y: np.ndarray
    bounds: Optional[Tuple[float, float]] = (0.0, 1.0)
    slopes: np.ndarray = field(init=False, repr=False)
    _spline: CubicHermiteSpline = field(init=False, repr=False, compare=False)

    def __post_init__(self):
        x = np.array(self.x, dtype=float)
        y = np.array(self.y, dtype=float)
        check_monotone_samples(x, y)
        slopes = fritsch_carlson_slopes(x, y)
        for arr in (x, y, slopes):
            arr.flags.writeable = False
        object.__setattr__(self, "x", x)
        object.__setattr__(self, "y", y)
        object.__setattr__(self, "slopes", slopes)
        object.__setattr__(
            self, "_spline", CubicHermiteSpline(x, y, slopes, extrapolate=False))

    def evaluate(self, s: ArrayLike) -> ArrayLike:
        """Interpolated value(s) at *s*; a scalar in gives a float out."""
        s_arr = np.asarray(s, dtype=float)
        out = self._spline(s_arr)
        out = np.where(s_arr <= self.x[0], self.y[0], out)
        out = np.where(s_arr >= self.x[-1], self.y[-1], out)
        # exact knot values
        idx = np.searchsorted(self.x, s_arr)
        idx = np.clip(idx, 0, len(self.x) - 1)
        out = np.where(self.x[idx] == s_arr, self.y[idx], out)
        if self.bounds is not None:
            out = np.clip(out, self.bounds[0], self.bounds[1])
        if np.ndim(s) == 0:
            return float(out)
        return out

    __call__ = evaluate

    @property
    def domain(self) -> Tuple[float, float]:
        return float(self.x[0]), float(self.x[-1])
