"""Tests for the shift grid (spectral_cdf.grid)."""

import numpy as np
import pytest

from spectral_cdf.errors import ConfigurationError
from spectral_cdf.grid import interior_shifts, shift_grid


class TestShiftGrid:

    def test_endpoints_exact(self):
        g = shift_grid(3.7, 25)
        assert g[0] == 0.0
        assert g[-1] == 3.7
        assert len(g) == 25

    def test_even_spacing(self):
        g = shift_grid(2.0, 5)
        np.testing.assert_allclose(g, [0.0, 0.5, 1.0, 1.5, 2.0])

    def test_strictly_increasing(self):
        g = shift_grid(1e-3, 101)
        assert np.all(np.diff(g) > 0)

    def test_matches_formula(self):
        lmax, n = 5.3, 17
        g = shift_grid(lmax, n)
        np.testing.assert_allclose(g, np.arange(n) * lmax / (n - 1))

    @pytest.mark.parametrize("num_pts", [0, 1, 2])
    def test_too_few_points(self, num_pts):
        with pytest.raises(ConfigurationError):
            shift_grid(1.0, num_pts)

    @pytest.mark.parametrize("lmax", [0.0, -1.0, float("inf"), float("nan")])
    def test_bad_lmax(self, lmax):
        with pytest.raises(ConfigurationError):
            shift_grid(lmax, 10)

    def test_interior(self):
        g = shift_grid(1.0, 5)
        np.testing.assert_allclose(interior_shifts(g), [0.25, 0.5, 0.75])
