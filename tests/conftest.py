"""Shared fixtures: small Laplacians with known or generic spectra."""

import numpy as np
import pytest
import scipy.sparse as sp

from spectral_cdf.graph import laplacian_from_adjacency, path_graph_laplacian


def random_weighted_adjacency(n: int = 30, density: float = 0.15,
                              seed: int = 0) -> sp.csr_matrix:
    """Symmetric sparse weight matrix with weights in [0.5, 2]."""
    rng = np.random.default_rng(seed)
    rows, cols = np.triu_indices(n, k=1)
    keep = rng.random(len(rows)) < density
    rows, cols = rows[keep], cols[keep]
    w = rng.uniform(0.5, 2.0, size=len(rows))
    W = sp.coo_matrix((w, (rows, cols)), shape=(n, n))
    return (W + W.T).tocsr()


def eigen_count_below(A, shift: float, atol: float = 0.0) -> int:
    """Reference count from a dense eigensolver.

    Eigenvalues within *atol* of *shift* are not counted, which makes the
    count exact for matrices whose eigenvalues are known to sit on a shift.
    """
    dense = A.toarray() if sp.issparse(A) else np.asarray(A)
    return int(np.sum(np.linalg.eigvalsh(dense) < shift - atol))


def cycle_graph_laplacian(n: int) -> sp.csr_matrix:
    """Laplacian of the cycle on *n* vertices."""
    L = path_graph_laplacian(n).tolil()
    L[0, 0] = L[n - 1, n - 1] = 2.0
    L[0, n - 1] = L[n - 1, 0] = -1.0
    return L.tocsr()


def lattice_laplacian(m: int, n: int, periodic: bool = False) -> sp.csr_matrix:
    """Laplacian of the m×n grid graph, or the torus when *periodic*.

    All eigenvalues are sums ``2 − 2cos(·) + 2 − 2cos(·)``, so integer
    shifts routinely land exactly on one of them.
    """
    factor = cycle_graph_laplacian if periodic else path_graph_laplacian
    Lm, Ln = factor(m), factor(n)
    return (sp.kron(Lm, sp.eye(n)) + sp.kron(sp.eye(m), Ln)).tocsr()


@pytest.fixture
def random_laplacian():
    """Combinatorial Laplacian of a random weighted graph (N=30)."""
    return laplacian_from_adjacency(random_weighted_adjacency(30, 0.15, seed=7))


@pytest.fixture
def path10():
    """Laplacian of the path graph on 10 vertices."""
    return path_graph_laplacian(10)
