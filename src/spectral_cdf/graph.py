"""Graph record and the λ_max collaborator.

:class:`SpectralGraph` is the immutable input/output record of
:func:`~spectral_cdf.cdf.spectrum_cdf_approx`: it carries the Laplacian,
an optional upper bound ``lmax`` on its spectrum, and, once computed,
the :class:`~spectral_cdf.cdf.SpectralWarp`.

Helpers
-------
laplacian_from_adjacency   combinatorial Laplacian ``D − W``
path_graph_laplacian       Laplacian of the path graph P_n
rough_lmax                 cheap upper bound on the largest eigenvalue
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from typing import TYPE_CHECKING, Any, Optional

import numpy as np
import scipy.sparse as sp
from scipy.sparse.csgraph import laplacian as _csgraph_laplacian
from scipy.sparse.linalg import ArpackError, ArpackNoConvergence, eigsh

if TYPE_CHECKING:
    from .cdf import SpectralWarp

logger = logging.getLogger(__name__)

__all__ = [
    "SpectralGraph",
    "laplacian_from_adjacency",
    "path_graph_laplacian",
    "path_graph_eigenvalues",
    "gershgorin_bound",
    "rough_lmax",
]


# ═══════════════════════════════════════════════════════════════════
# SpectralGraph
# ═══════════════════════════════════════════════════════════════════

@dataclass(frozen=True, eq=False)
class SpectralGraph:
    """A graph reduced to what spectrum slicing needs.

    Parameters
    ----------
    L : sparse matrix
        Symmetric positive semi-definite Laplacian (stored as CSR).
    lmax : float, optional
        Upper bound on the largest eigenvalue of ``L``.
    spectral_warp_fn : SpectralWarp, optional
        Approximate spectral CDF, set by ``spectrum_cdf_approx``.
    name : str
        Free-form label used in log messages.
    """

    L: Any
    lmax: Optional[float] = None
    spectral_warp_fn: Optional["SpectralWarp"] = None
    name: str = "graph"

    def __post_init__(self):
        object.__setattr__(self, "L", sp.csr_matrix(self.L, dtype=float))
        if self.lmax is not None:
            object.__setattr__(self, "lmax", float(self.lmax))

    @property
    def N(self) -> int:
        """Number of vertices."""
        return int(self.L.shape[0])

    @classmethod
    def from_adjacency(cls, W, *, name: str = "graph",
                       lmax: Optional[float] = None) -> "SpectralGraph":
        return cls(L=laplacian_from_adjacency(W), lmax=lmax, name=name)

    def with_lmax(self, lmax: Optional[float] = None) -> "SpectralGraph":
        """Return a copy with ``lmax`` set (estimated when not given)."""
        if lmax is None:
            lmax = rough_lmax(self.L)
        return replace(self, lmax=float(lmax))

    def with_warp(self, warp: "SpectralWarp") -> "SpectralGraph":
        return replace(self, spectral_warp_fn=warp)

    def __repr__(self) -> str:
        has_warp = self.spectral_warp_fn is not None
        return (f"SpectralGraph({self.name!r}, N={self.N}, "
                f"lmax={self.lmax}, warp={has_warp})")


# ═══════════════════════════════════════════════════════════════════
# Laplacians
# ═══════════════════════════════════════════════════════════════════

def laplacian_from_adjacency(W) -> sp.csr_matrix:
    """Combinatorial Laplacian ``D − W`` of a symmetric weight matrix."""
    W = sp.csr_matrix(W, dtype=float)
    if W.shape[0] != W.shape[1]:
        raise ValueError(f"adjacency must be square, got shape {W.shape}")
    return sp.csr_matrix(_csgraph_laplacian(W, normed=False))


def path_graph_laplacian(n: int) -> sp.csr_matrix:
    """Laplacian of the unweighted path on *n* vertices."""
    if n < 2:
        raise ValueError(f"path graph needs at least 2 vertices, got {n}")
    main = np.full(n, 2.0)
    main[0] = main[-1] = 1.0
    off = -np.ones(n - 1)
    return sp.diags([off, main, off], [-1, 0, 1], format="csr")


def path_graph_eigenvalues(n: int) -> np.ndarray:
    """Closed-form spectrum of the path Laplacian: ``2 − 2cos(πk/n)``."""
    k = np.arange(n, dtype=float)
    return 2.0 - 2.0 * np.cos(np.pi * k / n)


# ═══════════════════════════════════════════════════════════════════
# λ_max
# ═══════════════════════════════════════════════════════════════════

def gershgorin_bound(L) -> float:
    """Largest Gershgorin disc edge ``max_i Σ_j |L_ij|``."""
    L = sp.csr_matrix(L)
    return float(np.max(np.asarray(abs(L).sum(axis=1)).ravel()))


def rough_lmax(L, *, tol: float = 5e-3, margin: float = 1.01) -> float:
    """Cheap upper bound on the largest eigenvalue of symmetric *L*.

    A loose ARPACK (Lanczos) run gives an estimate that is inflated by
    *margin*.  If ARPACK fails the Gershgorin bound is returned.
    """
    L = sp.csr_matrix(L, dtype=float)
    n = L.shape[0]
    if n < 3:
        return gershgorin_bound(L)
    try:
        vals = eigsh(L, k=1, which="LA", tol=tol, return_eigenvectors=False)
        lmax = float(vals[0]) * margin
    except (ArpackNoConvergence, ArpackError) as exc:
        lmax = gershgorin_bound(L)
        logger.warning(
            f"rough_lmax: ARPACK failed ({exc}); using Gershgorin bound {lmax:.4g}")
        return lmax
    logger.debug(f"rough_lmax: n={n}, lmax={lmax:.6g}")
    return lmax
