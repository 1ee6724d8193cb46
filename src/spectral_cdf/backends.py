"""Factorization backends — one strategy per way of factoring ``L − s·I``.

Every backend is bound to one Laplacian at construction time, validates
it, does whatever shift-independent preparation it can, and then answers
``factor(shift) -> BlockDiagonal`` for as many shifts as needed.  The
preparation (permutation, symbolic analysis) is read-only afterwards, so
one backend instance can serve several threads.

=====================  ===============================================
Backend                What it does per shift
=====================  ===============================================
SymbolicReuseBackend   numeric LDLᵀ only; symbolic analysis done once
SparseLDLBackend       symbolic + numeric LDLᵀ from scratch
ThresholdLDLBackend    threshold-pivoted elimination (1×1 / 2×2)
=====================  ===============================================

The two unpivoted backends refuse to perturb a zero pivot or accept
large multipliers: when a shift lands on an eigenvalue of a leading
block they factor that shift with threshold pivoting instead, so every
backend yields the same inertia.

:func:`select_backend` maps resolved options to a backend class;
:func:`available_backends` reports which backends can run here.
"""

from __future__ import annotations

import abc
import logging
from typing import Dict, Optional, Type

import numpy as np
import scipy.sparse as sp

from .errors import FactorizationError, UnstablePivotError
from .inertia import BlockDiagonal
from .ldl import GROWTH_LIMIT, SymbolicFactorization, ldl_numeric, ldl_symbolic
from .ordering import fill_reducing_permutation
from .params import ResolvedParams
from .threshold_ldl import threshold_ldl

logger = logging.getLogger(__name__)

__all__ = [
    "FactorizationBackend",
    "SymbolicReuseBackend",
    "SparseLDLBackend",
    "ThresholdLDLBackend",
    "BACKENDS",
    "available_backends",
    "select_backend",
    "check_symmetric",
]


def check_symmetric(L, rtol: float = 1e-10) -> sp.csc_matrix:
    """Return *L* as CSC after checking it is square and symmetric.

    Raises
    ------
    FactorizationError
        If *L* is not square or ``max|L − Lᵀ| > rtol · max|L|``.
    """
    L = sp.csc_matrix(L, dtype=float, copy=True)
    if L.shape[0] != L.shape[1]:
        raise FactorizationError(f"matrix must be square, got shape {L.shape}")
    asym = abs(L - L.T)
    amax = float(abs(L).max()) if L.nnz else 0.0
    if asym.nnz and float(asym.max()) > rtol * max(amax, 1.0):
        raise FactorizationError(
            f"matrix is not symmetric (max |L - L^T| = {float(asym.max()):.3g})")
    L.sum_duplicates()
    return L


# ═══════════════════════════════════════════════════════════════════
# Strategy interface
# ═══════════════════════════════════════════════════════════════════

class FactorizationBackend(abc.ABC):
    """Base class: bind to a Laplacian, then factor shifted copies.

    Parameters
    ----------
    L : sparse matrix
        Symmetric matrix; read, never modified.
    use_permutation : bool
        Apply the reverse Cuthill–McKee ordering before factoring.
    pivot_tol : float
        Relative zero-pivot tolerance.
    thresh : float
        Threshold of the pivoted elimination, used by
        :class:`ThresholdLDLBackend` and as the fallback of the
        unpivoted backends.
    """

    name: str = "abstract"

    def __init__(self, L, *, use_permutation: bool = True,
                 pivot_tol: float = 1e-12, thresh: float = 0.001):
        self.L = check_symmetric(L)
        self.pivot_tol = pivot_tol
        self.thresh = thresh
        self.perm: Optional[np.ndarray] = None
        if use_permutation:
            perm = fill_reducing_permutation(self.L)
            perm.flags.writeable = False
            self.perm = perm

    @property
    def n(self) -> int:
        return self.L.shape[0]

    @classmethod
    def is_available(cls) -> bool:
        """Whether this backend can run in the current environment."""
        return True

    @abc.abstractmethod
    def factor(self, shift: float) -> BlockDiagonal:
        """Block-diagonal factor of ``L − shift·I`` (permuted)."""

    @classmethod
    def from_params(cls, L, params: ResolvedParams) -> "FactorizationBackend":
        return cls(L, use_permutation=params.use_permutation,
                   pivot_tol=params.pivot_tol, thresh=params.ldl_thresh)

    def _pivoted(self, shift: float) -> BlockDiagonal:
        return threshold_ldl(self.L, shift, self.thresh, self.perm,
                             pivot_tol=self.pivot_tol)

    def _unpivoted(self, symbolic: SymbolicFactorization,
                   shift: float) -> BlockDiagonal:
        """LDLᵀ without pivoting, or the pivoted factor when that is unstable."""
        try:
            fac = ldl_numeric(self.L, symbolic, shift, pivot_tol=self.pivot_tol,
                              perturb=False, growth_limit=GROWTH_LIMIT)
        except UnstablePivotError as exc:
            logger.debug(f"{self.name}: {exc}; using threshold pivoting")
            return self._pivoted(shift)
        return BlockDiagonal(diagonal=fac.d)

    def __repr__(self) -> str:
        return (f"{type(self).__name__}(n={self.n}, "
                f"permuted={self.perm is not None})")


# ═══════════════════════════════════════════════════════════════════
# Concrete backends
# ═══════════════════════════════════════════════════════════════════

class SymbolicReuseBackend(FactorizationBackend):
    """Symbolic analysis once, numeric LDLᵀ per shift."""

    name = "symbolic_reuse"

    def __init__(self, L, *, use_permutation: bool = True,
                 pivot_tol: float = 1e-12, thresh: float = 0.001):
        super().__init__(L, use_permutation=use_permutation,
                         pivot_tol=pivot_tol, thresh=thresh)
        self.symbolic: SymbolicFactorization = ldl_symbolic(self.L, self.perm)
        logger.debug(f"{self!r}: nnz(L_factor)={self.symbolic.nnz}")

    def factor(self, shift: float) -> BlockDiagonal:
        return self._unpivoted(self.symbolic, shift)


class SparseLDLBackend(FactorizationBackend):
    """Full symbolic + numeric LDLᵀ for every shift."""

    name = "sparse_ldl"

    def factor(self, shift: float) -> BlockDiagonal:
        return self._unpivoted(ldl_symbolic(self.L, self.perm), shift)


class ThresholdLDLBackend(FactorizationBackend):
    """Threshold-pivoted symmetric indefinite elimination per shift."""

    name = "threshold_ldl"

    def factor(self, shift: float) -> BlockDiagonal:
        return self._pivoted(shift)


BACKENDS: Dict[str, Type[FactorizationBackend]] = {
    cls.name: cls
    for cls in (SymbolicReuseBackend, SparseLDLBackend, ThresholdLDLBackend)
}


def available_backends() -> Dict[str, bool]:
    """Return ``{backend_name: is_available}``."""
    return {name: cls.is_available() for name, cls in BACKENDS.items()}


def select_backend(params: ResolvedParams) -> Type[FactorizationBackend]:
    """Pick the backend class for resolved options.

    Speedup wins; otherwise the sparse LDLᵀ package when requested,
    falling back to threshold pivoting.
    """
    if params.use_speedup:
        cls: Type[FactorizationBackend] = SymbolicReuseBackend
    elif params.use_ldl_package:
        cls = SparseLDLBackend
    else:
        cls = ThresholdLDLBackend
    if not cls.is_available():
        raise FactorizationError(f"backend {cls.name!r} is not available")
    return cls
