#!/usr/bin/env python3
"""Slice one random graph with every backend/ordering combination and
check that the count tables agree.

Usage:
    python scripts/compare_backends.py [N] [num_pts]
"""
import sys

import numpy as np
import scipy.sparse as sp

from spectral_cdf import (
    SpectrumCDFParams,
    laplacian_from_adjacency,
    rough_lmax,
    spectrum_count_table,
)

CONFIGS = [
    # (label, overrides)
    ("symbolic_reuse + rcm", dict(use_speedup=True, use_permutation=True)),
    ("symbolic_reuse",       dict(use_speedup=True, use_permutation=False)),
    ("sparse_ldl + rcm",     dict(use_speedup=False, use_ldl_package=True, use_permutation=True)),
    ("sparse_ldl",           dict(use_speedup=False, use_ldl_package=True, use_permutation=False)),
    ("threshold_ldl + rcm",  dict(use_speedup=False, use_ldl_package=False, use_permutation=True)),
    ("threshold_ldl",        dict(use_speedup=False, use_ldl_package=False, use_permutation=False)),
]


def random_laplacian(n: int, avg_degree: float = 6.0, seed: int = 0):
    rng = np.random.default_rng(seed)
    W = sp.random(n, n, density=avg_degree / (2 * n), random_state=rng,
                  data_rvs=lambda k: rng.uniform(0.5, 2.0, size=k))
    W = sp.triu(W, k=1)
    return laplacian_from_adjacency(W + W.T)


def main():
    n = int(sys.argv[1]) if len(sys.argv) > 1 else 400
    num_pts = int(sys.argv[2]) if len(sys.argv) > 2 else 25

    L = random_laplacian(n)
    lmax = rough_lmax(L)
    print(f"Random graph: N={n}, nnz(L)={L.nnz}, lmax≈{lmax:.4f}, num_pts={num_pts}")
    print("=" * 70)

    reference = None
    mismatches = []
    for label, overrides in CONFIGS:
        params = SpectrumCDFParams(num_pts=num_pts, **overrides)
        table = spectrum_count_table(L, lmax, params)
        if reference is None:
            reference = table
        same = table.allclose(reference)
        marker = "✓" if same else "✗"
        print(f"  {marker} {label:24s} {table.elapsed_s:8.3f}s")
        if not same:
            mismatches.append((label, table))

    print()
    print("=" * 70)
    print("counts:", " ".join(str(c) for c in reference.counts))
    if mismatches:
        print()
        print("MISMATCHED configurations:")
        for label, table in mismatches:
            diff = np.flatnonzero(table.counts != reference.counts)
            print(f"  {label} → differs at shift index {diff.tolist()}")
        sys.exit(1)
    print(f"All {len(CONFIGS)} configurations agree.")


if __name__ == "__main__":
    main()
