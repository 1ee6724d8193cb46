"""Evenly spaced shift points on ``[0, lmax]``."""

from __future__ import annotations

import numpy as np

from .errors import ConfigurationError

__all__ = ["shift_grid", "interior_shifts"]


def shift_grid(lmax: float, num_pts: int = 25) -> np.ndarray:
    """Return ``num_pts`` shifts ``i * lmax / (num_pts - 1)``.

    The first element is exactly ``0.0`` and the last exactly ``lmax``.

    Raises
    ------
    ConfigurationError
        If ``num_pts < 3`` or ``lmax`` is not a positive finite number.
    """
    if num_pts < 3:
        raise ConfigurationError(
            f"num_pts must be >= 3, got {num_pts}")
    lmax = float(lmax)
    if not np.isfinite(lmax) or lmax <= 0:
        raise ConfigurationError(f"lmax must be positive and finite, got {lmax}")
    grid = np.arange(num_pts, dtype=float) * lmax / (num_pts - 1)
    grid[-1] = lmax
    return grid


def interior_shifts(grid: np.ndarray) -> np.ndarray:
    """Grid points whose counts must be computed (both ends excluded)."""
    return np.asarray(grid)[1:-1]
