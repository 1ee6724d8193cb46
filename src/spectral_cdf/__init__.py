"""spectral_cdf: Spectrum slicing for sparse graph Laplacians.

Estimates the cumulative distribution of the eigenvalues of a large
sparse symmetric positive semi-definite matrix without an
eigendecomposition: the inertia of ``L − s·I`` at a grid of shifts gives
exact eigenvalue counts, and a monotone cubic through the normalised
counts gives a smooth warping function ``[0, lmax] → [0, 1]`` for
building spectrum-adapted graph filters.
"""
from .errors import (
    SpectralCDFError, ConfigurationError, FactorizationError,
    UnstablePivotError, NonFinitePivotError, InvariantViolationError,
)
from .params import SpectrumCDFParams, ResolvedParams, DEFAULT_PARAMS
from .grid import shift_grid, interior_shifts
from .ordering import fill_reducing_permutation, inverse_permutation, permute_symmetric
from .inertia import BlockDiagonal, Inertia, block_inertia, inertia, count_negative
from .ldl import SymbolicFactorization, LDLFactor, ldl_symbolic, ldl_numeric
from .threshold_ldl import threshold_ldl
from .backends import (
    FactorizationBackend, SymbolicReuseBackend, SparseLDLBackend,
    ThresholdLDLBackend, BACKENDS, available_backends, select_backend,
)
from .interpolate import fritsch_carlson_slopes, MonotoneCubicInterpolator
from .graph import (
    SpectralGraph, laplacian_from_adjacency, path_graph_laplacian,
    path_graph_eigenvalues, gershgorin_bound, rough_lmax,
)
from .cdf import (
    CountTable, SpectralWarp, count_at_shift, spectrum_count_table,
    estimate_spectral_cdf, spectrum_cdf_approx,
)
from .cache import CountTableCache, laplacian_digest, table_to_dict, table_from_dict

__version__ = "0.1.0"

__all__ = [
    # Errors
    "SpectralCDFError", "ConfigurationError", "FactorizationError",
    "UnstablePivotError", "NonFinitePivotError", "InvariantViolationError",
    # Options
    "SpectrumCDFParams", "ResolvedParams", "DEFAULT_PARAMS",
    # Shift grid
    "shift_grid", "interior_shifts",
    # Factorization engine
    "fill_reducing_permutation", "inverse_permutation", "permute_symmetric",
    "SymbolicFactorization", "LDLFactor", "ldl_symbolic", "ldl_numeric",
    "threshold_ldl",
    "FactorizationBackend", "SymbolicReuseBackend", "SparseLDLBackend",
    "ThresholdLDLBackend", "BACKENDS", "available_backends", "select_backend",
    # Inertia counter
    "BlockDiagonal", "Inertia", "block_inertia", "inertia", "count_negative",
    # Monotone interpolator
    "fritsch_carlson_slopes", "MonotoneCubicInterpolator",
    # Graph record
    "SpectralGraph", "laplacian_from_adjacency", "path_graph_laplacian",
    "path_graph_eigenvalues", "gershgorin_bound", "rough_lmax",
    # Orchestrator
    "CountTable", "SpectralWarp", "count_at_shift", "spectrum_count_table",
    "estimate_spectral_cdf", "spectrum_cdf_approx",
    # Caching
    "CountTableCache", "laplacian_digest", "table_to_dict", "table_from_dict",
]
