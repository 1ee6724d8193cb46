"""SpectrumCDFParams — every option of the CDF approximation in one place.

The options are held in a frozen dataclass that can be:

* **built** — ``SpectrumCDFParams(num_pts=50)`` or
  ``SpectrumCDFParams.from_dict({"num_pts": 50})``
* **overridden** — ``params.replace(use_permutation=False)``
* **resolved** — ``params.resolve()`` turns availability-probed options
  (``None``) into concrete booleans, exactly once, at the boundary of
  :func:`~spectral_cdf.cdf.spectrum_cdf_approx`.

Validation happens at construction, so an invalid ``num_pts`` or
``ldl_thresh`` raises :class:`~spectral_cdf.errors.ConfigurationError`
before any factorization is attempted.

Usage
-----
>>> from spectral_cdf.params import SpectrumCDFParams, DEFAULT_PARAMS
>>> DEFAULT_PARAMS.num_pts                  # 25
>>> fine = DEFAULT_PARAMS.replace(num_pts=101)
>>> fine.resolve().use_speedup              # True when symbolic reuse is available
"""

from __future__ import annotations

import os
from dataclasses import asdict, dataclass, fields, replace as _dc_replace
from typing import Any, Dict, Mapping, Optional

from .errors import ConfigurationError

__all__ = [
    "SpectrumCDFParams",
    "ResolvedParams",
    "DEFAULT_PARAMS",
]


# ═══════════════════════════════════════════════════════════════════
# SpectrumCDFParams — user-facing options
# ═══════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class SpectrumCDFParams:
    """Options for :func:`~spectral_cdf.cdf.spectrum_cdf_approx`.

    Parameters
    ----------
    num_pts : int
        Number of grid points on ``[0, lmax]``, both ends included.
    use_speedup : bool or None
        Run the symbolic analysis once and reuse it for every shift.
        ``None`` means "yes if the symbolic-reuse backend is available".
    use_permutation : bool
        Apply a reverse Cuthill–McKee symmetric permutation before
        factoring.  It narrows the profile, which bounds the fill to the
        envelope, but is not a minimum-degree ordering and can leave much
        more fill than one on irregular graphs.
    use_ldl_package : bool or None
        Without speedup, choose the sparse LDLᵀ package (``True``) over
        the threshold-pivoting factorization (``False``).  ``None`` means
        "the package if available".
    ldl_thresh : float
        Pivoting threshold of the threshold-pivoting factorization,
        in ``[0, 0.5]``.
    n_jobs : int
        Worker threads for the per-shift map.  ``-1`` uses all CPUs.
        The in-tree factorizations are pure Python and hold the GIL, so
        more threads rarely reduce wall-clock time.
    retry_nudge : float
        Relative shift perturbation (× lmax) for the single retry after
        a failed factorization.
    pivot_tol : float
        Relative magnitude under which a pivot counts as zero.
    """

    num_pts: int = 25
    use_speedup: Optional[bool] = None
    use_permutation: bool = True
    use_ldl_package: Optional[bool] = None
    ldl_thresh: float = 0.001
    n_jobs: int = 1
    retry_nudge: float = 1e-8
    pivot_tol: float = 1e-12

    def __post_init__(self):
        if isinstance(self.num_pts, bool) or not isinstance(self.num_pts, int):
            raise ConfigurationError(
                f"num_pts must be an integer, got {self.num_pts!r}")
        if self.num_pts < 3:
            raise ConfigurationError(
                f"num_pts must be >= 3 (two boundary points and at least "
                f"one interior sample), got {self.num_pts}")
        if not 0.0 <= self.ldl_thresh <= 0.5:
            raise ConfigurationError(
                f"ldl_thresh must lie in [0, 0.5], got {self.ldl_thresh}")
        if isinstance(self.n_jobs, bool) or not isinstance(self.n_jobs, int):
            raise ConfigurationError(
                f"n_jobs must be an integer, got {self.n_jobs!r}")
        if self.n_jobs == 0 or self.n_jobs < -1:
            raise ConfigurationError(
                f"n_jobs must be positive or -1, got {self.n_jobs}")
        if not self.retry_nudge > 0:
            raise ConfigurationError(
                f"retry_nudge must be positive, got {self.retry_nudge}")
        if not self.pivot_tol > 0:
            raise ConfigurationError(
                f"pivot_tol must be positive, got {self.pivot_tol}")

    # ── construction ────────────────────────────────────────────

    @classmethod
    def from_dict(cls, data: Optional[Mapping[str, Any]]) -> "SpectrumCDFParams":
        """Build from a plain mapping; absent keys take their defaults.

        Raises
        ------
        ConfigurationError
            If *data* contains a key that is not an option.
        """
        if not data:
            return cls()
        valid = {f.name for f in fields(cls)}
        for k in data:
            if k not in valid:
                raise ConfigurationError(
                    f"Unknown option {k!r}. Valid options: {sorted(valid)}")
        return cls(**dict(data))

    def replace(self, **overrides: Any) -> "SpectrumCDFParams":
        """Return a new params object with selected options overridden."""
        valid = {f.name for f in fields(self)}
        for k in overrides:
            if k not in valid:
                raise ConfigurationError(
                    f"Unknown option {k!r}. Valid options: {sorted(valid)}")
        return _dc_replace(self, **overrides)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    # ── resolution ──────────────────────────────────────────────

    def resolve(self) -> "ResolvedParams":
        """Replace availability-probed options with concrete values."""
        # Lazy import to avoid circular dependency
        from .backends import available_backends

        available = available_backends()
        use_speedup = self.use_speedup
        if use_speedup is None:
            use_speedup = available.get("symbolic_reuse", False)
        use_ldl_package = self.use_ldl_package
        if use_ldl_package is None:
            use_ldl_package = available.get("sparse_ldl", False)
        n_jobs = self.n_jobs if self.n_jobs > 0 else (os.cpu_count() or 1)
        return ResolvedParams(
            num_pts=self.num_pts,
            use_speedup=bool(use_speedup),
            use_permutation=bool(self.use_permutation),
            use_ldl_package=bool(use_ldl_package),
            ldl_thresh=float(self.ldl_thresh),
            n_jobs=n_jobs,
            retry_nudge=float(self.retry_nudge),
            pivot_tol=float(self.pivot_tol),
        )


# ═══════════════════════════════════════════════════════════════════
# ResolvedParams — concrete options seen by the algorithm body
# ═══════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class ResolvedParams:
    """Fully resolved options; no field is ``None``."""

    num_pts: int
    use_speedup: bool
    use_permutation: bool
    use_ldl_package: bool
    ldl_thresh: float
    n_jobs: int
    retry_nudge: float
    pivot_tol: float

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


DEFAULT_PARAMS: SpectrumCDFParams = SpectrumCDFParams()
"""Options used when the caller passes none."""
