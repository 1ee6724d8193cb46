"""Sparse symmetric indefinite factorization with threshold pivoting.

Right-looking elimination of ``P(A − s·I)Pᵀ`` on a dict-of-rows store.
At step *k* the candidate pivot is the diagonal entry ``a_kk`` of the
next uneliminated index, tested against the largest off-diagonal
magnitude ``colmax = |a_rk|`` of its row (Bunch–Kaufman with the
constant α replaced by the user threshold):

1. ``|a_kk| >= thresh · colmax``                → 1×1 pivot ``k``
2. ``|a_kk| · colmax_r >= thresh · colmax²``    → 1×1 pivot ``k``
3. ``|a_rr| >= thresh · colmax_r``              → 1×1 pivot ``r`` (swap)
4. otherwise                                   → 2×2 pivot ``(k, r)``

A row whose off-diagonal part has vanished is eliminated on its own;
if its diagonal is zero too it is a genuine zero eigenvalue of the
Schur complement and is recorded as a zero 1×1 pivot without any
perturbation.

Only the block-diagonal factor is kept: its inertia is all the spectrum
slicing needs.  Smaller thresholds favour the natural order (less
fill), larger ones favour stability.
"""

from __future__ import annotations

import logging
from typing import Dict, List, Optional, Tuple

import numpy as np
import scipy.sparse as sp

from .errors import FactorizationError, NonFinitePivotError
from .inertia import BlockDiagonal
from .ldl import matrix_scale
from .ordering import permute_symmetric

logger = logging.getLogger(__name__)

__all__ = ["threshold_ldl"]

Row = Dict[int, float]


def _build_rows(A: sp.csr_matrix, shift: float) -> List[Row]:
    n = A.shape[0]
    rows: List[Row] = [{} for _ in range(n)]
    coo = A.tocoo()
    for i, j, v in zip(coo.row.tolist(), coo.col.tolist(), coo.data.tolist()):
        rows[i][j] = rows[i].get(j, 0.0) + v
    for i in range(n):
        rows[i][i] = rows[i].get(i, 0.0) - shift
    return rows


def _offdiag_max(row: Row, k: int) -> Tuple[int, float]:
    """Index and magnitude of the largest off-diagonal entry of *row*."""
    best, best_val = -1, 0.0
    for j, v in row.items():
        if j != k and abs(v) > best_val:
            best, best_val = j, abs(v)
    return best, best_val


def _eliminate_1x1(rows: List[Row], p: int, d: float) -> None:
    nbrs = [(j, v) for j, v in rows[p].items() if j != p]
    for i, vi in nbrs:
        ri = rows[i]
        ri.pop(p, None)
        if d == 0.0:
            continue
        f = vi / d
        for j, vj in nbrs:
            ri[j] = ri.get(j, 0.0) - f * vj
    rows[p] = {}


def _eliminate_2x2(rows: List[Row], k: int, r: int,
                   block: np.ndarray, det: float) -> None:
    a, b, c = block[0, 0], block[0, 1], block[1, 1]
    row_k, row_r = rows[k], rows[r]
    nbrs = (set(row_k) | set(row_r)) - {k, r}
    coupling = {i: (row_k.get(i, 0.0), row_r.get(i, 0.0)) for i in nbrs}
    for i, (ui, wi) in coupling.items():
        ri = rows[i]
        ri.pop(k, None)
        ri.pop(r, None)
        # [ui wi] · E⁻¹ with E⁻¹ = [[c, -b], [-b, a]] / det
        ci1 = (ui * c - wi * b) / det
        ci2 = (wi * a - ui * b) / det
        for j, (uj, wj) in coupling.items():
            ri[j] = ri.get(j, 0.0) - (ci1 * uj + ci2 * wj)
    rows[k] = {}
    rows[r] = {}


def threshold_ldl(
    A,
    shift: float = 0.0,
    thresh: float = 0.001,
    perm: Optional[np.ndarray] = None,
    *,
    pivot_tol: float = 1e-12,
) -> BlockDiagonal:
    """Block-diagonal factor of ``P(A − shift·I)Pᵀ`` under threshold pivoting.

    Parameters
    ----------
    A : sparse matrix
        Symmetric, both triangles stored.
    shift : float
        Subtracted from the diagonal.
    thresh : float
        Pivoting threshold in ``[0, 0.5]``.
    perm : (n,) int array, optional
        Symmetric permutation applied before elimination.
    pivot_tol : float
        Relative magnitude under which entries count as zero.

    Returns
    -------
    BlockDiagonal
        1×1 pivots and 2×2 blocks.

    Raises
    ------
    FactorizationError
        A 2×2 pivot is singular to working precision.
    NonFinitePivotError
        A pivot is NaN or infinite.
    """
    A = sp.csr_matrix(A)
    if perm is not None:
        A = permute_symmetric(A, perm)
    n = A.shape[0]
    shift = float(shift)
    scale = matrix_scale(A, shift)
    tiny = pivot_tol * scale
    rows = _build_rows(A, shift)
    eliminated = [False] * n

    singles: List[float] = []
    blocks: List[np.ndarray] = []

    def pivot_1x1(p: int) -> None:
        d = rows[p].get(p, 0.0)
        if not np.isfinite(d):
            raise NonFinitePivotError(
                f"non-finite pivot at row {p}, shift {shift}", shift=shift)
        singles.append(d)
        _eliminate_1x1(rows, p, d)
        eliminated[p] = True

    for k in range(n):
        while not eliminated[k]:
            akk = rows[k].get(k, 0.0)
            r, colmax = _offdiag_max(rows[k], k)
            if colmax <= tiny:
                if abs(akk) <= tiny:
                    rows[k][k] = 0.0
                pivot_1x1(k)
                break
            if abs(akk) > tiny and abs(akk) >= thresh * colmax:
                pivot_1x1(k)
                break
            arr = rows[r].get(r, 0.0)
            _, colmax_r = _offdiag_max(rows[r], r)
            if abs(akk) > tiny and abs(akk) * colmax_r >= thresh * colmax ** 2:
                pivot_1x1(k)
                break
            if abs(arr) > tiny and abs(arr) >= thresh * colmax_r:
                pivot_1x1(r)
                continue
            akr = rows[k][r]
            block = np.array([[akk, akr], [akr, arr]], dtype=float)
            if not np.all(np.isfinite(block)):
                raise NonFinitePivotError(
                    f"non-finite 2x2 pivot at rows ({k}, {r}), shift {shift}",
                    shift=shift)
            det = akk * arr - akr * akr
            if abs(det) <= tiny * tiny:
                raise FactorizationError(
                    f"singular 2x2 pivot at rows ({k}, {r}), shift {shift}",
                    shift=shift)
            blocks.append(block)
            _eliminate_2x2(rows, k, r, block, det)
            eliminated[k] = True
            eliminated[r] = True

    logger.debug(
        f"threshold_ldl: n={n}, shift={shift}, {len(singles)} 1x1 and "
        f"{len(blocks)} 2x2 pivots")
    return BlockDiagonal(
        diagonal=np.asarray(singles, dtype=float),
        blocks=np.asarray(blocks, dtype=float).reshape(-1, 2, 2),
    )
