"""Spectrum slicing — approximate the CDF of Laplacian eigenvalues.

The algorithm
-------------
Step 1: take ``num_pts`` evenly spaced shifts ``s_q = q·lmax/(num_pts−1)``
on ``[0, lmax]``.

Step 2: for every interior shift factor ``L − s_q·I = L_q Δ_q L_qᵀ``.  By
Sylvester's law of inertia the number ``μ_q`` of negative eigenvalues of
``Δ_q`` equals the number of eigenvalues of ``L`` below ``s_q``.  The two
end counts are fixed analytically: ``μ = 0`` at ``s = 0`` and
``μ = N − 1`` at ``s = lmax``.

Step 3: interpolate ``{(s_q, μ_q/(N−1))}`` with a monotone cubic.  The
resulting :class:`SpectralWarp` maps ``[0, lmax]`` onto ``[0, 1]``.

The factorizations of step 2 are independent of one another; with
``n_jobs != 1`` they are mapped over a thread pool and merged by index.
The in-tree factorizations are pure-Python loops that hold the GIL, so
the pool keeps shifts independent but gives little wall-clock speedup.

Usage
-----
>>> from spectral_cdf import SpectralGraph, spectrum_cdf_approx, path_graph_laplacian
>>> G = SpectralGraph(path_graph_laplacian(100))
>>> G = spectrum_cdf_approx(G, num_pts=40)
>>> G.spectral_warp_fn(G.lmax / 2)          # ≈ 0.5 for the path graph
>>> G.spectral_warp_fn.table.counts         # raw eigenvalue counts

References
----------
B. N. Parlett. The Symmetric Eigenvalue Problem. SIAM, 1998.
"""

from __future__ import annotations

import logging
import time
import warnings
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Dict, List, Mapping, Optional, Tuple, Union

import numpy as np

from .backends import FactorizationBackend, select_backend
from .errors import ConfigurationError, FactorizationError, NonFinitePivotError
from .graph import SpectralGraph, rough_lmax
from .grid import shift_grid
from .inertia import count_negative
from .interpolate import ArrayLike, MonotoneCubicInterpolator
from .params import DEFAULT_PARAMS, ResolvedParams, SpectrumCDFParams

if TYPE_CHECKING:
    from .cache import CountTableCache

logger = logging.getLogger(__name__)

__all__ = [
    "CountTable",
    "SpectralWarp",
    "count_at_shift",
    "spectrum_count_table",
    "estimate_spectral_cdf",
    "spectrum_cdf_approx",
]


# ═══════════════════════════════════════════════════════════════════
# CountTable — the (shift, count) samples
# ═══════════════════════════════════════════════════════════════════

@dataclass(frozen=True, eq=False)
class CountTable:
    """Eigenvalue counts at the grid shifts.

    ``counts[q]`` is the number of eigenvalues of ``L`` below
    ``shifts[q]``; the end values are fixed to ``0`` and ``N − 1``.
    """

    shifts: np.ndarray
    counts: np.ndarray
    n_vertices: int
    backend: str = ""
    elapsed_s: float = 0.0

    def __post_init__(self):
        shifts = np.array(self.shifts, dtype=float)
        counts = np.array(self.counts, dtype=np.int64)
        if shifts.shape != counts.shape:
            raise ConfigurationError(
                f"shifts and counts differ in shape: {shifts.shape} vs {counts.shape}")
        shifts.flags.writeable = False
        counts.flags.writeable = False
        object.__setattr__(self, "shifts", shifts)
        object.__setattr__(self, "counts", counts)

    @property
    def lmax(self) -> float:
        return float(self.shifts[-1])

    @property
    def num_pts(self) -> int:
        return int(len(self.shifts))

    @property
    def normalized(self) -> np.ndarray:
        """Counts divided by ``N − 1``."""
        return self.counts / float(self.n_vertices - 1)

    def pairs(self) -> List[Tuple[float, float]]:
        """``[(shift, normalized_count), ...]`` in grid order."""
        return list(zip(self.shifts.tolist(), self.normalized.tolist()))

    def allclose(self, other: "CountTable", atol: float = 1e-12) -> bool:
        """Same grid (within *atol*) and identical counts."""
        return (self.n_vertices == other.n_vertices
                and self.shifts.shape == other.shifts.shape
                and bool(np.allclose(self.shifts, other.shifts, rtol=0, atol=atol))
                and bool(np.array_equal(self.counts, other.counts)))

    def __repr__(self) -> str:
        return (f"CountTable(N={self.n_vertices}, num_pts={self.num_pts}, "
                f"lmax={self.lmax:.6g}, backend={self.backend!r})")


# ═══════════════════════════════════════════════════════════════════
# SpectralWarp — the immutable evaluator
# ═══════════════════════════════════════════════════════════════════

@dataclass(frozen=True, eq=False)
class SpectralWarp:
    """Approximate spectral CDF ``[0, lmax] → [0, 1]``.

    Monotone non-decreasing, ``warp(0) == 0`` and ``warp(lmax) == 1``.
    Arguments below 0 map to 0, above ``lmax`` to 1.
    """

    table: CountTable
    interpolator: MonotoneCubicInterpolator = field(init=False, repr=False)

    def __post_init__(self):
        object.__setattr__(
            self, "interpolator",
            MonotoneCubicInterpolator(self.table.shifts, self.table.normalized,
                                      bounds=(0.0, 1.0)))

    @property
    def lmax(self) -> float:
        return self.table.lmax

    def evaluate(self, x: ArrayLike) -> ArrayLike:
        """CDF approximation at scalar or array *x*."""
        return self.interpolator.evaluate(x)

    def __call__(self, x: ArrayLike) -> ArrayLike:
        return self.evaluate(x)

    def __repr__(self) -> str:
        return f"SpectralWarp({self.table!r})"


# ═══════════════════════════════════════════════════════════════════
# Per-shift work
# ═══════════════════════════════════════════════════════════════════

def count_at_shift(
    backend: FactorizationBackend,
    index: int,
    shift: float,
    nudge: float,
) -> int:
    """Negative count of ``L − shift·I`` with one retry at ``shift - nudge``.

    The retry moves down so that an eigenvalue lying on *shift* is still
    not counted.

    Raises
    ------
    FactorizationError
        Both attempts failed; ``shift_index`` and ``shift`` are set.
    """
    try:
        factor = backend.factor(shift)
    except NonFinitePivotError as exc:
        exc.shift_index, exc.shift = index, shift
        raise
    except FactorizationError as exc:
        logger.warning(
            f"factorization failed at shift index {index} (s={shift:.6g}): "
            f"{exc}; retrying at s={shift - nudge:.6g}")
        try:
            factor = backend.factor(shift - nudge)
        except FactorizationError as exc2:
            exc2.shift_index, exc2.shift = index, shift - nudge
            raise
    if not factor.is_finite():
        raise NonFinitePivotError(
            "non-finite entries in block-diagonal factor",
            shift_index=index, shift=shift)
    count = count_negative(factor)
    logger.debug(
        f"shift {index}: s={shift:.6g}, count={count}, "
        f"2x2 blocks={factor.n_blocks}")
    return count


def spectrum_count_table(
    L,
    lmax: float,
    params: Union[SpectrumCDFParams, ResolvedParams, None] = None,
) -> CountTable:
    """Eigenvalue counts of *L* on the shift grid over ``[0, lmax]``.

    Parameters
    ----------
    L : sparse matrix
        Symmetric positive semi-definite, ``N >= 2``.
    lmax : float
        Right end of the grid.
    params : SpectrumCDFParams or ResolvedParams, optional
        Options; resolved here when not already resolved.
    """
    if params is None:
        params = DEFAULT_PARAMS
    if isinstance(params, SpectrumCDFParams):
        params = params.resolve()
    n = int(L.shape[0])
    if n < 2:
        raise ConfigurationError(f"need at least 2 vertices, got N={n}")

    t0 = time.perf_counter()
    grid = shift_grid(lmax, params.num_pts)
    backend_cls = select_backend(params)
    backend = backend_cls.from_params(L, params)
    nudge = params.retry_nudge * float(lmax)
    logger.info(
        f"spectrum slicing: N={n}, num_pts={params.num_pts}, "
        f"lmax={float(lmax):.6g}, backend={backend_cls.name}, "
        f"permutation={params.use_permutation}, n_jobs={params.n_jobs}")

    interior = list(enumerate(grid[1:-1].tolist(), start=1))

    def task(item: Tuple[int, float]) -> int:
        index, shift = item
        return count_at_shift(backend, index, shift, nudge)

    if params.n_jobs == 1 or len(interior) <= 1:
        interior_counts = [task(item) for item in interior]
    else:
        with ThreadPoolExecutor(max_workers=params.n_jobs) as pool:
            interior_counts = list(pool.map(task, interior))

    counts = np.zeros(params.num_pts, dtype=np.int64)
    counts[1:-1] = interior_counts
    counts[-1] = n - 1
    over = counts > n - 1
    if np.any(over):
        logger.debug(
            f"clipping {int(over.sum())} count(s) above N-1={n - 1}; "
            f"lmax exceeds the largest eigenvalue")
        counts[over] = n - 1

    elapsed = time.perf_counter() - t0
    logger.info(f"spectrum slicing done in {elapsed:.3f}s")
    return CountTable(shifts=grid, counts=counts, n_vertices=n,
                      backend=backend_cls.name, elapsed_s=round(elapsed, 6))


# ═══════════════════════════════════════════════════════════════════
# Entry points
# ═══════════════════════════════════════════════════════════════════

def _coerce_params(
    params: Union[SpectrumCDFParams, Mapping[str, Any], None],
    overrides: Dict[str, Any],
) -> SpectrumCDFParams:
    if params is None:
        params = DEFAULT_PARAMS
    elif not isinstance(params, SpectrumCDFParams):
        params = SpectrumCDFParams.from_dict(params)
    if overrides:
        params = params.replace(**overrides)
    return params


def estimate_spectral_cdf(
    L,
    lmax: Optional[float] = None,
    params: Union[SpectrumCDFParams, Mapping[str, Any], None] = None,
    *,
    cache: Optional["CountTableCache"] = None,
    **overrides: Any,
) -> SpectralWarp:
    """Approximate spectral CDF of *L* as a :class:`SpectralWarp`.

    *lmax* defaults to :func:`~spectral_cdf.graph.rough_lmax`.  Keyword
    overrides are applied on top of *params*.
    """
    resolved = _coerce_params(params, overrides).resolve()
    if L.shape[0] < 2:
        raise ConfigurationError(f"need at least 2 vertices, got N={L.shape[0]}")
    if lmax is None:
        lmax = rough_lmax(L)
    lmax = float(lmax)
    if not np.isfinite(lmax) or lmax <= 0:
        raise ConfigurationError(f"lmax must be positive and finite, got {lmax}")

    table: Optional[CountTable] = None
    if cache is not None and cache.has(L, lmax, resolved.num_pts):
        table = cache.load(L, lmax, resolved.num_pts)
        logger.info(f"count table loaded from cache: {table!r}")
    if table is None:
        table = spectrum_count_table(L, lmax, resolved)
        if cache is not None:
            cache.save(L, table)
    return SpectralWarp(table)


def spectrum_cdf_approx(
    G: Union[SpectralGraph, Any],
    params: Union[SpectrumCDFParams, Mapping[str, Any], None] = None,
    *,
    cache: Optional["CountTableCache"] = None,
    **overrides: Any,
) -> SpectralGraph:
    """Return a copy of *G* carrying ``spectral_warp_fn``.

    Parameters
    ----------
    G : SpectralGraph or matrix
        A bare matrix is wrapped in a :class:`SpectralGraph`.
    params : SpectrumCDFParams or dict, optional
        Options (see :class:`~spectral_cdf.params.SpectrumCDFParams`).
    cache : CountTableCache, optional
        Reuse count tables across runs.
    **overrides
        Individual options, e.g. ``num_pts=50``.

    Returns
    -------
    SpectralGraph
        New record with ``lmax`` and ``spectral_warp_fn`` set; *G* itself
        is not modified.

    Warns
    -----
    UserWarning
        If *G* already has a ``spectral_warp_fn``.
    """
    if not isinstance(G, SpectralGraph):
        G = SpectralGraph(G)
    if G.spectral_warp_fn is not None:
        warnings.warn("Overwriting spectral warping function", UserWarning,
                      stacklevel=2)
        logger.warning(f"{G.name}: overwriting spectral warping function")
    params = _coerce_params(params, overrides)
    if G.N < 2:
        raise ConfigurationError(f"need at least 2 vertices, got N={G.N}")
    if G.lmax is None:
        G = G.with_lmax()
    warp = estimate_spectral_cdf(G.L, G.lmax, params, cache=cache)
    return G.with_warp(warp)
