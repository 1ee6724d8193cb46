"""Tests for factorization backends (spectral_cdf.backends)."""

import numpy as np
import pytest
import scipy.sparse as sp

import spectral_cdf.backends as backends_module
from spectral_cdf.backends import (
    BACKENDS,
    SparseLDLBackend,
    SymbolicReuseBackend,
    ThresholdLDLBackend,
    available_backends,
    check_symmetric,
    select_backend,
)
from spectral_cdf.errors import FactorizationError
from spectral_cdf.inertia import count_negative, inertia
from spectral_cdf.params import SpectrumCDFParams

from conftest import eigen_count_below, lattice_laplacian

ALL_BACKENDS = [SymbolicReuseBackend, SparseLDLBackend, ThresholdLDLBackend]


# ═══════════════════════════════════════════════════════════════════
# Selection
# ═══════════════════════════════════════════════════════════════════

class TestSelection:

    def test_registry(self):
        assert set(BACKENDS) == {"symbolic_reuse", "sparse_ldl", "threshold_ldl"}
        assert all(available_backends().values())

    def test_speedup_wins(self):
        r = SpectrumCDFParams(use_speedup=True, use_ldl_package=False).resolve()
        assert select_backend(r) is SymbolicReuseBackend

    def test_ldl_package(self):
        r = SpectrumCDFParams(use_speedup=False, use_ldl_package=True).resolve()
        assert select_backend(r) is SparseLDLBackend

    def test_threshold_fallback(self):
        r = SpectrumCDFParams(use_speedup=False, use_ldl_package=False).resolve()
        assert select_backend(r) is ThresholdLDLBackend

    def test_unavailable_backend(self, monkeypatch):
        monkeypatch.setattr(SymbolicReuseBackend, "is_available",
                            classmethod(lambda cls: False))
        r = SpectrumCDFParams(use_speedup=True).resolve()
        with pytest.raises(FactorizationError, match="not available"):
            select_backend(r)

    def test_resolve_follows_availability(self, monkeypatch):
        monkeypatch.setattr(SymbolicReuseBackend, "is_available",
                            classmethod(lambda cls: False))
        assert SpectrumCDFParams().resolve().use_speedup is False

    def test_from_params_passes_threshold(self, path10):
        r = SpectrumCDFParams(use_speedup=False, use_ldl_package=False,
                              ldl_thresh=0.25, use_permutation=False).resolve()
        backend = select_backend(r).from_params(path10, r)
        assert backend.thresh == 0.25
        assert backend.perm is None


# ═══════════════════════════════════════════════════════════════════
# Input validation
# ═══════════════════════════════════════════════════════════════════

class TestValidation:

    def test_non_square(self):
        with pytest.raises(FactorizationError, match="square"):
            check_symmetric(sp.csr_matrix(np.ones((2, 3))))

    def test_non_symmetric(self):
        A = sp.csr_matrix(np.array([[2.0, -1.0], [0.0, 2.0]]))
        for cls in ALL_BACKENDS:
            with pytest.raises(FactorizationError, match="not symmetric"):
                cls(A)

    def test_dense_input_accepted(self):
        A = np.array([[1.0, -1.0], [-1.0, 1.0]])
        backend = SymbolicReuseBackend(A)
        assert backend.n == 2
        assert count_negative(backend.factor(1.5)) == 1


# ═══════════════════════════════════════════════════════════════════
# Agreement
# ═══════════════════════════════════════════════════════════════════

class TestAgreement:

    @pytest.mark.parametrize("cls", ALL_BACKENDS)
    @pytest.mark.parametrize("use_permutation", [False, True])
    def test_counts_match_eigensolver(self, random_laplacian, cls, use_permutation):
        backend = cls(random_laplacian, use_permutation=use_permutation)
        for shift in (0.31, 1.45, 2.9, 5.05, 8.8):
            assert count_negative(backend.factor(shift)) == \
                eigen_count_below(random_laplacian, shift)

    def test_permutation_is_read_only(self, random_laplacian):
        backend = SymbolicReuseBackend(random_laplacian)
        assert not backend.perm.flags.writeable
        assert sorted(backend.perm.tolist()) == list(range(random_laplacian.shape[0]))

    def test_input_not_modified(self, random_laplacian):
        before = random_laplacian.copy()
        for cls in ALL_BACKENDS:
            cls(random_laplacian).factor(1.0)
        assert abs(random_laplacian - before).max() == 0

    def test_csc_input_with_duplicates_not_modified(self):
        # path-3 Laplacian with each end diagonal stored as two halves
        indptr = np.array([0, 3, 6, 9])
        indices = np.array([0, 0, 1, 0, 1, 2, 1, 2, 2])
        data = np.array([0.5, 0.5, -1.0, -1.0, 2.0, -1.0, -1.0, 0.5, 0.5])
        A = sp.csc_matrix((data, indices, indptr), shape=(3, 3))
        for cls in ALL_BACKENDS:
            backend = cls(A)
            assert count_negative(backend.factor(1.5)) == 2
        assert A.nnz == 9
        np.testing.assert_array_equal(A.data, data)
        np.testing.assert_array_equal(A.indices, indices)


# ═══════════════════════════════════════════════════════════════════
# Shifts on eigenvalues
# ═══════════════════════════════════════════════════════════════════

class TestShiftOnEigenvalue:

    @pytest.mark.parametrize("cls", ALL_BACKENDS)
    @pytest.mark.parametrize("use_permutation", [False, True])
    @pytest.mark.parametrize("periodic", [False, True])
    def test_lattice_integer_shifts(self, cls, use_permutation, periodic):
        L = lattice_laplacian(4, 4, periodic=periodic)
        backend = cls(L, use_permutation=use_permutation)
        for shift in (1.0, 2.0, 3.0, 4.0, 5.0, 6.0):
            assert count_negative(backend.factor(shift)) == \
                eigen_count_below(L, shift, atol=1e-8)

    @pytest.mark.parametrize("cls", [SymbolicReuseBackend, SparseLDLBackend])
    def test_zero_pivot_switches_to_threshold_pivoting(self, cls, monkeypatch):
        calls = []
        original = backends_module.threshold_ldl

        def recording(*args, **kwargs):
            calls.append(args[1])
            return original(*args, **kwargs)

        monkeypatch.setattr(backends_module, "threshold_ldl", recording)
        backend = cls(sp.diags([1.0, 2.0, 3.0]), use_permutation=False)
        assert inertia(backend.factor(2.0)) == (1, 1, 1)
        assert calls == [2.0]
        assert count_negative(backend.factor(2.5)) == 2
        assert calls == [2.0]

    def test_multiplier_growth_switches_to_threshold_pivoting(self):
        A = np.array([[1e-9, 1.0], [1.0, 1.0]])
        backend = SymbolicReuseBackend(A, use_permutation=False)
        assert count_negative(backend.factor(0.0)) == 1
