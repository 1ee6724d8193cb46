"""Tests for SpectrumCDFParams (spectral_cdf.params).

Covers:
1. Defaults and validation at construction
2. from_dict / replace / to_dict
3. resolve() — availability-probed options become concrete
"""

import dataclasses

import pytest

from spectral_cdf.errors import ConfigurationError
from spectral_cdf.params import DEFAULT_PARAMS, ResolvedParams, SpectrumCDFParams


# ═══════════════════════════════════════════════════════════════════
# 1. Defaults and validation
# ═══════════════════════════════════════════════════════════════════

class TestDefaults:

    def test_documented_defaults(self):
        p = SpectrumCDFParams()
        assert p.num_pts == 25
        assert p.use_speedup is None
        assert p.use_permutation is True
        assert p.use_ldl_package is None
        assert p.ldl_thresh == 0.001
        assert p.n_jobs == 1

    def test_default_params_is_default(self):
        assert DEFAULT_PARAMS.to_dict() == SpectrumCDFParams().to_dict()

    def test_frozen(self):
        with pytest.raises(dataclasses.FrozenInstanceError):
            DEFAULT_PARAMS.num_pts = 10


class TestValidation:

    @pytest.mark.parametrize("num_pts", [-1, 0, 1, 2])
    def test_num_pts_too_small(self, num_pts):
        with pytest.raises(ConfigurationError, match="num_pts"):
            SpectrumCDFParams(num_pts=num_pts)

    def test_num_pts_three_is_enough(self):
        assert SpectrumCDFParams(num_pts=3).num_pts == 3

    @pytest.mark.parametrize("num_pts", [10.0, "25", True])
    def test_num_pts_must_be_int(self, num_pts):
        with pytest.raises(ConfigurationError):
            SpectrumCDFParams(num_pts=num_pts)

    @pytest.mark.parametrize("thresh", [-0.1, 0.6, 1.0, float("nan")])
    def test_ldl_thresh_range(self, thresh):
        with pytest.raises(ConfigurationError, match="ldl_thresh"):
            SpectrumCDFParams(ldl_thresh=thresh)

    @pytest.mark.parametrize("thresh", [0.0, 0.5])
    def test_ldl_thresh_bounds_inclusive(self, thresh):
        assert SpectrumCDFParams(ldl_thresh=thresh).ldl_thresh == thresh

    @pytest.mark.parametrize("n_jobs", [0, -2])
    def test_n_jobs(self, n_jobs):
        with pytest.raises(ConfigurationError, match="n_jobs"):
            SpectrumCDFParams(n_jobs=n_jobs)

    def test_retry_nudge_positive(self):
        with pytest.raises(ConfigurationError):
            SpectrumCDFParams(retry_nudge=0.0)

    def test_pivot_tol_positive(self):
        with pytest.raises(ConfigurationError):
            SpectrumCDFParams(pivot_tol=-1e-12)

    def test_configuration_error_is_value_error(self):
        with pytest.raises(ValueError):
            SpectrumCDFParams(num_pts=1)


# ═══════════════════════════════════════════════════════════════════
# 2. Construction paths
# ═══════════════════════════════════════════════════════════════════

class TestFromDictAndReplace:

    def test_from_dict_partial(self):
        p = SpectrumCDFParams.from_dict({"num_pts": 40})
        assert p.num_pts == 40
        assert p.use_permutation is True

    def test_from_dict_none_and_empty(self):
        assert SpectrumCDFParams.from_dict(None).num_pts == 25
        assert SpectrumCDFParams.from_dict({}).num_pts == 25

    def test_from_dict_unknown_key(self):
        with pytest.raises(ConfigurationError, match="Unknown option"):
            SpectrumCDFParams.from_dict({"num_points": 40})

    def test_from_dict_validates(self):
        with pytest.raises(ConfigurationError):
            SpectrumCDFParams.from_dict({"num_pts": 2})

    def test_replace_returns_new(self):
        p = SpectrumCDFParams()
        q = p.replace(use_permutation=False)
        assert q.use_permutation is False
        assert p.use_permutation is True

    def test_replace_unknown_key(self):
        with pytest.raises(ConfigurationError, match="Unknown option"):
            SpectrumCDFParams().replace(speedup=True)

    def test_replace_validates(self):
        with pytest.raises(ConfigurationError):
            SpectrumCDFParams().replace(num_pts=2)

    def test_to_dict_roundtrip(self):
        p = SpectrumCDFParams(num_pts=13, use_speedup=False, ldl_thresh=0.01)
        assert SpectrumCDFParams.from_dict(p.to_dict()).to_dict() == p.to_dict()


# ═══════════════════════════════════════════════════════════════════
# 3. Resolution
# ═══════════════════════════════════════════════════════════════════

class TestResolve:

    def test_unset_defaults_become_bools(self):
        r = SpectrumCDFParams().resolve()
        assert isinstance(r, ResolvedParams)
        assert isinstance(r.use_speedup, bool)
        assert isinstance(r.use_ldl_package, bool)

    def test_in_tree_backends_resolve_available(self):
        r = SpectrumCDFParams().resolve()
        assert r.use_speedup is True
        assert r.use_ldl_package is True

    def test_explicit_values_win(self):
        r = SpectrumCDFParams(use_speedup=False, use_ldl_package=False).resolve()
        assert r.use_speedup is False
        assert r.use_ldl_package is False

    def test_n_jobs_all_cpus(self):
        r = SpectrumCDFParams(n_jobs=-1).resolve()
        assert r.n_jobs >= 1

    def test_resolved_carries_everything(self):
        p = SpectrumCDFParams(num_pts=7, ldl_thresh=0.1, retry_nudge=1e-6)
        r = p.resolve()
        assert r.num_pts == 7
        assert r.ldl_thresh == 0.1
        assert r.retry_nudge == 1e-6
        assert None not in r.to_dict().values()
