"""Count-table caching — skip re-slicing a Laplacian seen before.

The expensive part of :func:`~spectral_cdf.cdf.estimate_spectral_cdf`
is one sparse factorization per interior shift.  The resulting
:class:`~spectral_cdf.cdf.CountTable` is small, so it is worth keeping
when the same graph is warped repeatedly (filter-bank sweeps, notebooks,
benchmarks).

Tables are stored as one JSON file each, keyed by a SHA-256 digest of
the Laplacian (shape, structure and values) together with ``lmax`` and
``num_pts``.

Workflow
--------
>>> cache = CountTableCache("~/.spectral_cdf_cache")
>>> warp = estimate_spectral_cdf(L, lmax, cache=cache)   # computes, saves
>>> warp = estimate_spectral_cdf(L, lmax, cache=cache)   # loads, no factorization
"""

from __future__ import annotations

import hashlib
import json
from pathlib import Path
from typing import Any, Dict, List, Optional

import numpy as np
import scipy.sparse as sp

from .cdf import CountTable

__all__ = [
    "CountTableCache",
    "laplacian_digest",
    "table_to_dict",
    "table_from_dict",
    "table_to_json",
    "table_from_json",
]


# ═══════════════════════════════════════════════════════════════════
# Serialisation helpers
# ═══════════════════════════════════════════════════════════════════

def laplacian_digest(L) -> str:
    """SHA-256 hex digest of a sparse matrix in canonical CSR form."""
    A = sp.csr_matrix(L, dtype=float, copy=True)
    A.sum_duplicates()
    A.sort_indices()
    h = hashlib.sha256()
    h.update(np.asarray(A.shape, dtype=np.int64).tobytes())
    h.update(A.indptr.astype(np.int64).tobytes())
    h.update(A.indices.astype(np.int64).tobytes())
    h.update(A.data.astype(np.float64).tobytes())
    return h.hexdigest()


def table_to_dict(table: CountTable) -> Dict[str, Any]:
    """Convert a CountTable to a JSON-serialisable dict."""
    return {
        "shifts": [float(s) for s in table.shifts],
        "counts": [int(c) for c in table.counts],
        "n_vertices": int(table.n_vertices),
        "backend": table.backend,
        "elapsed_s": float(table.elapsed_s),
    }


def table_from_dict(d: Dict[str, Any]) -> CountTable:
    """Reconstruct a CountTable from a dict."""
    return CountTable(**d)


def table_to_json(table: CountTable,
                  metadata: Optional[Dict[str, Any]] = None) -> str:
    payload = {
        "version": 1,
        "table": table_to_dict(table),
    }
    if metadata:
        payload["metadata"] = metadata
    return json.dumps(payload, indent=2)


def table_from_json(text: str) -> CountTable:
    payload = json.loads(text)
    return table_from_dict(payload["table"])


# ═══════════════════════════════════════════════════════════════════
# CountTableCache — disk-backed cache keyed by Laplacian digest
# ═══════════════════════════════════════════════════════════════════

class CountTableCache:
    """Disk cache for count tables.

    Parameters
    ----------
    cache_dir : str or Path
        Directory for cached tables.  Created on first write.
    """

    def __init__(self, cache_dir: str | Path = "~/.spectral_cdf_cache"):
        self.cache_dir = Path(cache_dir).expanduser()

    def _key(self, L, lmax: float, num_pts: int) -> str:
        return f"{laplacian_digest(L)[:32]}_{float(lmax)!r}_{int(num_pts)}"

    def _path(self, L, lmax: float, num_pts: int) -> Path:
        return self.cache_dir / f"{self._key(L, lmax, num_pts)}.json"

    def has(self, L, lmax: float, num_pts: int) -> bool:
        """Check whether a table is cached for this matrix and grid."""
        return self._path(L, lmax, num_pts).exists()

    def save(self, L, table: CountTable) -> Path:
        """Save *table* (computed from *L*).  Returns the file path."""
        self.cache_dir.mkdir(parents=True, exist_ok=True)
        path = self._path(L, table.lmax, table.num_pts)
        text = table_to_json(table, {"n_vertices": table.n_vertices})
        path.write_text(text, encoding="utf-8")
        return path

    def load(self, L, lmax: float, num_pts: int) -> CountTable:
        """Load the table for *L* on the given grid.

        Raises
        ------
        FileNotFoundError
            If nothing is cached under this key.
        """
        path = self._path(L, lmax, num_pts)
        if not path.exists():
            raise FileNotFoundError(
                f"No cached count table for lmax={lmax}, num_pts={num_pts} "
                f"at {path}")
        return table_from_json(path.read_text(encoding="utf-8"))

    def list_cached(self) -> List[Path]:
        """Return the paths of all cached tables."""
        if not self.cache_dir.exists():
            return []
        return sorted(self.cache_dir.glob("*.json"))

    def clear(self) -> int:
        """Remove all cached tables.  Returns count of files removed."""
        count = 0
        for p in self.list_cached():
            p.unlink()
            count += 1
        return count

    def __repr__(self) -> str:
        return f"CountTableCache({self.cache_dir!s}, {len(self.list_cached())} tables)"
