"""Sparse LDLᵀ factorization split into symbolic and numeric phases.

This is the up-looking algorithm of T. A. Davis' LDL package: row *k* of
``L`` is obtained by a sparse triangular solve whose pattern is the set
of elimination-tree paths from the nonzeros of column *k* of ``A``.

The two phases
--------------
``ldl_symbolic(A, perm)``
    Walks the pattern of the strictly upper part of ``PAPᵀ`` and builds
    the elimination tree, the per-column nonzero counts of ``L`` and the
    column pointers.  Diagonal entries never enter, so the result is the
    same for every ``A − s·I``; it is computed once and shared read-only.

``ldl_numeric(A, symbolic, shift)``
    Computes ``L`` and ``D`` of ``P(A − shift·I)Pᵀ``.  The shift is
    applied to the diagonal while scattering, so the shifted matrix is
    never materialised.

No pivoting is done, so a shift lying on an eigenvalue of a leading block
gives a pivot that is zero to working precision.  Perturbing such a
pivot makes the following multipliers explode and the signs of all later
pivots meaningless, so callers that need exact inertia pass
``perturb=False`` and a ``growth_limit``: the factorization then raises
:class:`~spectral_cdf.errors.UnstablePivotError` and the shift is handed
to the threshold-pivoting factorization instead.

Usage
-----
>>> sym = ldl_symbolic(L, perm)
>>> for s in shifts:
...     fac = ldl_numeric(L, sym, shift=s, perturb=False,
...                       growth_limit=GROWTH_LIMIT)
...     n_below = int((fac.d < 0).sum())

References
----------
T. A. Davis. Algorithm 849: A concise sparse Cholesky factorization
package. ACM Trans. Math. Software, 31(4):587-591, 2005.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

import numpy as np
import scipy.sparse as sp

from .errors import FactorizationError, NonFinitePivotError, UnstablePivotError
from .ordering import inverse_permutation

logger = logging.getLogger(__name__)

__all__ = [
    "SymbolicFactorization",
    "LDLFactor",
    "ldl_symbolic",
    "ldl_numeric",
    "matrix_scale",
    "GROWTH_LIMIT",
]

# Largest |l_ij| accepted before the unpivoted factor is abandoned; the
# growth threshold pivoting allows at its default threshold.
GROWTH_LIMIT = 1e3


# ═══════════════════════════════════════════════════════════════════
# Data containers
# ═══════════════════════════════════════════════════════════════════

@dataclass(frozen=True, eq=False)
class SymbolicFactorization:
    """Pattern-only analysis shared by every shift.

    All arrays are read-only; the numeric phase copies what it updates.

    Attributes
    ----------
    n : int
        Matrix order.
    parent : (n,) int array
        Elimination tree, ``-1`` for roots.
    lnz : (n,) int array
        Nonzeros per column of ``L`` (diagonal excluded).
    lp : (n+1,) int array
        Column pointers of ``L``.
    perm, pinv : (n,) int array or None
        Symmetric permutation and its inverse.
    """

    n: int
    parent: np.ndarray
    lnz: np.ndarray
    lp: np.ndarray
    perm: Optional[np.ndarray] = None
    pinv: Optional[np.ndarray] = None

    @property
    def nnz(self) -> int:
        """Nonzeros of ``L`` below the diagonal."""
        return int(self.lp[-1])


@dataclass(frozen=True, eq=False)
class LDLFactor:
    """Numeric result ``P(A − shift·I)Pᵀ = L D Lᵀ`` (``L`` unit lower)."""

    d: np.ndarray
    lp: np.ndarray
    li: np.ndarray
    lx: np.ndarray
    shift: float = 0.0
    n_perturbed: int = 0

    @property
    def n_negative(self) -> int:
        return int(np.count_nonzero(self.d < 0))

    def to_sparse(self) -> sp.csc_matrix:
        """Return the strictly lower part of ``L`` as a CSC matrix."""
        n = len(self.d)
        return sp.csc_matrix((self.lx, self.li, self.lp), shape=(n, n))


def _frozen(arr: np.ndarray) -> np.ndarray:
    arr = np.array(arr, copy=True)
    arr.flags.writeable = False
    return arr


def matrix_scale(A: sp.csc_matrix, shift: float = 0.0) -> float:
    """Largest finite ``|a_ij|`` plus ``|shift|``, the reference size for zero pivots."""
    finite = A.data[np.isfinite(A.data)]
    amax = float(np.max(np.abs(finite))) if finite.size else 0.0
    return amax + abs(float(shift)) or 1.0


# ═══════════════════════════════════════════════════════════════════
# Symbolic phase
# ═══════════════════════════════════════════════════════════════════

def ldl_symbolic(A, perm: Optional[np.ndarray] = None) -> SymbolicFactorization:
    """Elimination tree and column counts of ``L`` for symmetric *A*.

    Parameters
    ----------
    A : sparse matrix
        Symmetric, both triangles stored.
    perm : (n,) int array, optional
        Fill-reducing permutation; the factored matrix is ``A[perm][:, perm]``.
    """
    A = sp.csc_matrix(A)
    n = A.shape[0]
    Ap = A.indptr.tolist()
    Ai = A.indices.tolist()
    P = None if perm is None else np.asarray(perm, dtype=np.intp).tolist()
    Pinv = None if perm is None else inverse_permutation(perm).tolist()

    parent = [-1] * n
    lnz = [0] * n
    flag = [-1] * n
    for k in range(n):
        flag[k] = k
        kk = P[k] if P is not None else k
        for p in range(Ap[kk], Ap[kk + 1]):
            i = Pinv[Ai[p]] if Pinv is not None else Ai[p]
            if i < k:
                # follow the path from i to the root of the current subtree
                while flag[i] != k:
                    if parent[i] == -1:
                        parent[i] = k
                    lnz[i] += 1
                    flag[i] = k
                    i = parent[i]

    lp = np.zeros(n + 1, dtype=np.intp)
    lp[1:] = np.cumsum(lnz)
    logger.debug(f"ldl_symbolic: n={n}, nnz(A)={A.nnz}, nnz(L)={int(lp[-1])}")
    return SymbolicFactorization(
        n=n,
        parent=_frozen(np.asarray(parent, dtype=np.intp)),
        lnz=_frozen(np.asarray(lnz, dtype=np.intp)),
        lp=_frozen(lp),
        perm=None if perm is None else _frozen(np.asarray(perm, dtype=np.intp)),
        pinv=None if perm is None else _frozen(np.asarray(Pinv, dtype=np.intp)),
    )


# ═══════════════════════════════════════════════════════════════════
# Numeric phase
# ═══════════════════════════════════════════════════════════════════

def ldl_numeric(
    A,
    symbolic: SymbolicFactorization,
    shift: float = 0.0,
    *,
    pivot_tol: float = 1e-12,
    perturb: bool = True,
    growth_limit: Optional[float] = None,
) -> LDLFactor:
    """Numeric LDLᵀ of ``P(A − shift·I)Pᵀ`` using a symbolic analysis.

    Parameters
    ----------
    A : sparse matrix
        Same pattern as the matrix given to :func:`ldl_symbolic`.
    symbolic : SymbolicFactorization
        Output of :func:`ldl_symbolic`; not modified.
    shift : float
        Subtracted from every diagonal entry.
    pivot_tol : float
        Pivots with ``|d| <= pivot_tol * matrix_scale(A, shift)`` are zero.
    perturb : bool
        Replace zero pivots by ``+pivot_tol * scale``.  If False a zero
        pivot raises :class:`UnstablePivotError`.
    growth_limit : float, optional
        Raise :class:`UnstablePivotError` as soon as a multiplier exceeds
        this magnitude.  ``None`` disables the check.

    Raises
    ------
    UnstablePivotError
        Zero pivot with ``perturb=False``, or multiplier growth beyond
        *growth_limit*.
    FactorizationError
        The matrix does not match the symbolic analysis.
    NonFinitePivotError
        A pivot is NaN or infinite.
    """
    A = sp.csc_matrix(A)
    n = symbolic.n
    if A.shape != (n, n):
        raise FactorizationError(
            f"matrix shape {A.shape} does not match symbolic analysis (n={n})")
    Ap = A.indptr.tolist()
    Ai = A.indices.tolist()
    Ax = A.data.tolist()
    P = None if symbolic.perm is None else symbolic.perm.tolist()
    Pinv = None if symbolic.pinv is None else symbolic.pinv.tolist()
    parent = symbolic.parent.tolist()
    Lp = symbolic.lp.tolist()
    shift = float(shift)
    tiny = pivot_tol * matrix_scale(A, shift)

    Li = [0] * symbolic.nnz
    Lx = [0.0] * symbolic.nnz
    Lnz = [0] * n
    D = [0.0] * n
    Y = [0.0] * n
    flag = [-1] * n
    pattern = [0] * n
    n_perturbed = 0

    for k in range(n):
        # nonzero pattern of row k of L, in topological order
        Y[k] = -shift
        top = n
        flag[k] = k
        kk = P[k] if P is not None else k
        for p in range(Ap[kk], Ap[kk + 1]):
            i = Pinv[Ai[p]] if Pinv is not None else Ai[p]
            if i <= k:
                Y[i] += Ax[p]
                length = 0
                while i != -1 and flag[i] != k:
                    pattern[length] = i
                    length += 1
                    flag[i] = k
                    i = parent[i]
                while length > 0:
                    top -= 1
                    length -= 1
                    pattern[top] = pattern[length]

        # sparse triangular solve for row k
        dk = Y[k]
        Y[k] = 0.0
        while top < n:
            i = pattern[top]
            top += 1
            yi = Y[i]
            Y[i] = 0.0
            p2 = Lp[i] + Lnz[i]
            for p in range(Lp[i], p2):
                Y[Li[p]] -= Lx[p] * yi
            l_ki = yi / D[i]
            if growth_limit is not None and abs(l_ki) > growth_limit:
                raise UnstablePivotError(
                    f"multiplier L[{k},{i}]={l_ki:.3g} exceeds growth limit "
                    f"{growth_limit:g} at shift {shift}", shift=shift)
            dk -= l_ki * yi
            if p2 >= Lp[i + 1]:
                raise FactorizationError(
                    f"pattern of column {i} exceeds its symbolic count; "
                    f"the matrix pattern differs from the analysed one")
            Li[p2] = k
            Lx[p2] = l_ki
            Lnz[i] += 1

        if not np.isfinite(dk):
            raise NonFinitePivotError(
                f"non-finite pivot D[{k}]={dk} at shift {shift}", shift=shift)
        if abs(dk) <= tiny:
            if not perturb:
                raise UnstablePivotError(
                    f"zero pivot D[{k}] at shift {shift}", shift=shift)
            dk = tiny
            n_perturbed += 1
        D[k] = dk

    if n_perturbed:
        logger.debug(
            f"ldl_numeric: perturbed {n_perturbed} zero pivot(s) at shift {shift}")
    return LDLFactor(
        d=np.asarray(D, dtype=float),
        lp=np.asarray(Lp, dtype=np.intp),
        li=np.asarray(Li, dtype=np.intp),
        lx=np.asarray(Lx, dtype=float),
        shift=shift,
        n_perturbed=n_perturbed,
    )
