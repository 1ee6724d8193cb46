"""Inertia of a (block-)diagonal LDLᵀ factor.

By Sylvester's law of inertia, ``M = L_q Δ_q L_qᵀ`` and ``Δ_q`` have the
same numbers of positive, negative and zero eigenvalues.  With
``M = L − s·I`` the negative count of ``Δ_q`` is the number of
eigenvalues of ``L`` strictly below ``s``.

``Δ_q`` is diagonal for plain LDLᵀ, and block diagonal with 1×1 and 2×2
blocks under threshold pivoting.  A 2×2 block contributes the signs of
its own two eigenvalues, which are read off its determinant and trace
rather than its entries: a block like ``[[0, 1], [1, 0]]`` has no
negative diagonal entry yet one negative eigenvalue.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import NamedTuple, Union

import numpy as np

__all__ = [
    "BlockDiagonal",
    "Inertia",
    "block_inertia",
    "inertia",
    "count_negative",
]


class Inertia(NamedTuple):
    """``(positive, negative, zero)`` eigenvalue counts."""

    positive: int
    negative: int
    zero: int


@dataclass(frozen=True, eq=False)
class BlockDiagonal:
    """Block-diagonal factor ``Δ`` of a symmetric indefinite factorization.

    Parameters
    ----------
    diagonal : (m,) array
        The 1×1 pivots.
    blocks : (k, 2, 2) array
        The symmetric 2×2 pivots.  Empty for plain LDLᵀ.
    """

    diagonal: np.ndarray
    blocks: np.ndarray = field(default_factory=lambda: np.zeros((0, 2, 2)))

    @property
    def size(self) -> int:
        """Order of the factored matrix."""
        return int(len(self.diagonal) + 2 * len(self.blocks))

    @property
    def n_blocks(self) -> int:
        return int(len(self.blocks))

    def is_finite(self) -> bool:
        return bool(np.all(np.isfinite(self.diagonal))
                    and np.all(np.isfinite(self.blocks)))


def block_inertia(block: np.ndarray) -> Inertia:
    """Inertia of one symmetric 2×2 block ``[[a, b], [b, c]]``.

    ``det < 0`` means one eigenvalue of each sign; ``det > 0`` means two
    of the same sign, that of the trace; ``det == 0`` means one zero and
    one eigenvalue with the sign of the trace.
    """
    block = np.asarray(block, dtype=float)
    a, b, c = block[0, 0], 0.5 * (block[0, 1] + block[1, 0]), block[1, 1]
    det = a * c - b * b
    trace = a + c
    if det < 0:
        return Inertia(1, 1, 0)
    if det > 0:
        return Inertia(2, 0, 0) if trace > 0 else Inertia(0, 2, 0)
    if trace > 0:
        return Inertia(1, 0, 1)
    if trace < 0:
        return Inertia(0, 1, 1)
    return Inertia(0, 0, 2)


def inertia(factor: Union[BlockDiagonal, np.ndarray]) -> Inertia:
    """Inertia of a block-diagonal factor (or a plain diagonal vector)."""
    if not isinstance(factor, BlockDiagonal):
        factor = BlockDiagonal(diagonal=np.ravel(np.asarray(factor, dtype=float)))
    d = np.asarray(factor.diagonal, dtype=float)
    pos = int(np.count_nonzero(d > 0))
    neg = int(np.count_nonzero(d < 0))
    zero = int(len(d) - pos - neg)
    for block in factor.blocks:
        p, n, z = block_inertia(block)
        pos += p
        neg += n
        zero += z
    return Inertia(pos, neg, zero)


def count_negative(factor: Union[BlockDiagonal, np.ndarray]) -> int:
    """Number of negative eigenvalues of the factor."""
    return inertia(factor).negative
