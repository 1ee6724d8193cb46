"""Tests for count-table caching (spectral_cdf.cache)."""

import json

import numpy as np
import pytest
import scipy.sparse as sp

import spectral_cdf.cdf as cdf_module
from spectral_cdf.cache import (
    CountTableCache,
    laplacian_digest,
    table_from_json,
    table_to_json,
)
from spectral_cdf.cdf import CountTable, estimate_spectral_cdf, spectrum_count_table
from spectral_cdf.params import SpectrumCDFParams


@pytest.fixture
def cache(tmp_path):
    return CountTableCache(tmp_path / "tables")


@pytest.fixture
def table(path10):
    return spectrum_count_table(path10, 4.0, SpectrumCDFParams(num_pts=9))


# ═══════════════════════════════════════════════════════════════════
# Digest and JSON
# ═══════════════════════════════════════════════════════════════════

class TestDigest:

    def test_independent_of_storage_format(self, random_laplacian):
        a = laplacian_digest(random_laplacian)
        assert a == laplacian_digest(random_laplacian.tocsc())
        assert a == laplacian_digest(random_laplacian.tocoo())

    def test_sensitive_to_values(self, path10):
        L = path10.tolil()
        L[0, 0] = 1.5
        assert laplacian_digest(path10) != laplacian_digest(L.tocsr())

    def test_sensitive_to_size(self):
        from spectral_cdf.graph import path_graph_laplacian
        assert laplacian_digest(path_graph_laplacian(5)) != \
            laplacian_digest(path_graph_laplacian(6))


class TestJSON:

    def test_round_trip(self, table):
        back = table_from_json(table_to_json(table))
        assert back.allclose(table)
        assert back.n_vertices == table.n_vertices
        assert back.backend == table.backend

    def test_payload_layout(self, table):
        payload = json.loads(table_to_json(table, {"source": "path10"}))
        assert payload["version"] == 1
        assert payload["metadata"] == {"source": "path10"}
        assert payload["table"]["counts"][-1] == 9


# ═══════════════════════════════════════════════════════════════════
# CountTableCache
# ═══════════════════════════════════════════════════════════════════

class TestCountTableCache:

    def test_save_and_load(self, cache, path10, table):
        assert not cache.has(path10, 4.0, 9)
        path = cache.save(path10, table)
        assert path.exists()
        assert cache.has(path10, 4.0, 9)
        loaded = cache.load(path10, 4.0, 9)
        assert isinstance(loaded, CountTable)
        assert loaded.allclose(table)

    def test_key_includes_grid(self, cache, path10, table):
        cache.save(path10, table)
        assert not cache.has(path10, 4.0, 10)
        assert not cache.has(path10, 4.5, 9)

    def test_load_missing(self, cache, path10):
        with pytest.raises(FileNotFoundError):
            cache.load(path10, 4.0, 9)

    def test_list_and_clear(self, cache, path10):
        assert cache.list_cached() == []
        for n in (5, 9, 13):
            cache.save(path10, spectrum_count_table(path10, 4.0, SpectrumCDFParams(num_pts=n)))
        assert len(cache.list_cached()) == 3
        assert "3 tables" in repr(cache)
        assert cache.clear() == 3
        assert cache.list_cached() == []

    def test_estimate_reuses_cached_table(self, cache, random_laplacian, monkeypatch):
        first = estimate_spectral_cdf(random_laplacian, 9.0, num_pts=15, cache=cache)
        assert len(cache.list_cached()) == 1

        def fail(*args, **kwargs):
            raise AssertionError("count table recomputed")

        monkeypatch.setattr(cdf_module, "spectrum_count_table", fail)
        second = estimate_spectral_cdf(random_laplacian, 9.0, num_pts=15, cache=cache)
        assert second.table.allclose(first.table)
        x = np.linspace(0.0, 9.0, 101)
        np.testing.assert_array_equal(second(x), first(x))

    def test_different_matrix_misses(self, cache, path10, random_laplacian):
        estimate_spectral_cdf(path10, 4.0, num_pts=9, cache=cache)
        assert not cache.has(random_laplacian, 4.0, 9)
        assert not cache.has(sp.csr_matrix(path10 * 2.0), 4.0, 9)
