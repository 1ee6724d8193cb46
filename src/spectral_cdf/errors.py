"""Exception hierarchy for spectral CDF estimation.

Every error raised on purpose by this package derives from
:class:`SpectralCDFError`, so callers can catch the whole family with a
single ``except`` clause while still distinguishing the cases:

* :class:`ConfigurationError` — bad options or inputs, raised before any
  factorization runs.
* :class:`FactorizationError` — an LDLᵀ factorization broke down at a
  particular shift.  The orchestrator fills in :attr:`shift_index` and
  :attr:`shift` before letting it propagate.
* :class:`UnstablePivotError` — a pivot vanished or the multipliers grew
  too large for elimination without pivoting.  The no-pivot backends
  catch it and switch to threshold pivoting for that shift.
* :class:`NonFinitePivotError` — a NaN/Inf pivot appeared, which means the
  Laplacian itself carries non-finite values.  Never retried.
* :class:`InvariantViolationError` — the count table handed to the
  interpolator is not non-decreasing.  Signals an upstream bug.
"""

from __future__ import annotations

from typing import Optional

__all__ = [
    "SpectralCDFError",
    "ConfigurationError",
    "FactorizationError",
    "UnstablePivotError",
    "NonFinitePivotError",
    "InvariantViolationError",
]


class SpectralCDFError(Exception):
    """Base class for all spectral_cdf errors."""


class ConfigurationError(SpectralCDFError, ValueError):
    """Invalid option value or unusable input matrix."""


class FactorizationError(SpectralCDFError, RuntimeError):
    """Symmetric indefinite factorization failed at one shift.

    Parameters
    ----------
    message : str
        Human-readable description.
    shift_index : int, optional
        Position of the shift in the grid (set by the orchestrator).
    shift : float, optional
        The shift value itself.
    """

    def __init__(self, message: str, *, shift_index: Optional[int] = None,
                 shift: Optional[float] = None):
        super().__init__(message)
        self.shift_index = shift_index
        self.shift = shift

    def __str__(self) -> str:
        base = super().__str__()
        if self.shift_index is None:
            return base
        return f"{base} (shift index {self.shift_index}, shift={self.shift!r})"


class UnstablePivotError(FactorizationError):
    """A zero pivot or excessive multiplier growth without pivoting."""


class NonFinitePivotError(FactorizationError):
    """A pivot evaluated to NaN or ±Inf."""


class InvariantViolationError(SpectralCDFError, RuntimeError):
    """Interpolation samples violate the non-decreasing invariant."""
