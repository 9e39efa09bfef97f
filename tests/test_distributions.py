"""
Test distribution approximations against scipy.stats.

scipy is only a test dependency: it provides the reference values the
hand-written approximations must stay close to.
"""

import math

import pytest
import numpy as np
from scipy import stats

from pyols._core.distributions import (
    inverse_normal_cdf,
    normal_cdf_approx,
    log_gamma,
    regularized_incomplete_beta,
    t_distribution_cdf,
    p_value_two_sided,
    chi_square_cdf,
    f_distribution_cdf,
    t_distribution_ppf,
)


class TestNormal:
    """Inverse normal CDF and logistic CDF approximation."""

    @pytest.mark.parametrize("p", [1e-6, 0.001, 0.02, 0.025, 0.1, 0.3, 0.5, 0.7, 0.975, 0.99, 0.999999])
    def test_inverse_normal_cdf(self, p):
        assert inverse_normal_cdf(p) == pytest.approx(stats.norm.ppf(p), abs=1e-8)

    def test_inverse_normal_edges(self):
        assert inverse_normal_cdf(0.0) == -math.inf
        assert inverse_normal_cdf(1.0) == math.inf
        assert inverse_normal_cdf(0.5) == pytest.approx(0.0, abs=1e-12)
        assert math.isnan(inverse_normal_cdf(math.nan))

    def test_normal_cdf_approx_error_bound(self):
        z = np.linspace(-6, 6, 241)
        approx = np.array([normal_cdf_approx(v) for v in z])
        assert np.max(np.abs(approx - stats.norm.cdf(z))) < 2e-4

    def test_normal_cdf_extremes(self):
        """No overflow for huge |z|."""
        assert normal_cdf_approx(100.0) == 1.0
        assert normal_cdf_approx(-100.0) == 0.0
        assert normal_cdf_approx(math.inf) == 1.0
        assert normal_cdf_approx(-math.inf) == 0.0


class TestSpecialFunctions:
    """log-gamma and the regularized incomplete beta."""

    @pytest.mark.parametrize("z", [0.1, 0.5, 1.0, 2.5, 7.0, 30.0, 250.0])
    def test_log_gamma(self, z):
        assert log_gamma(z) == pytest.approx(math.lgamma(z), abs=1e-9)

    def test_log_gamma_domain(self):
        with pytest.raises(ValueError):
            log_gamma(0.0)

    @pytest.mark.parametrize("x,a,b", [(0.1, 2, 3), (0.5, 0.5, 0.5), (0.9, 10, 1.5), (0.3, 15, 0.5)])
    def test_incomplete_beta(self, x, a, b):
        expected = stats.beta.cdf(x, a, b)
        assert regularized_incomplete_beta(x, a, b) == pytest.approx(expected, abs=1e-9)

    def test_incomplete_beta_bounds(self):
        assert regularized_incomplete_beta(0.0, 2, 3) == 0.0
        assert regularized_incomplete_beta(1.0, 2, 3) == 1.0


class TestStudentT:
    """t CDF, two-sided p-values and the quantile function."""

    @pytest.mark.parametrize("df", [1, 2, 5, 10, 30])
    @pytest.mark.parametrize("t", [-4.0, -1.5, -0.2, 0.0, 0.7, 2.0, 3.5])
    def test_cdf_small_df(self, t, df):
        """Incomplete-beta path is essentially exact."""
        assert t_distribution_cdf(t, df) == pytest.approx(stats.t.cdf(t, df), abs=1e-7)

    @pytest.mark.parametrize("df", [31, 50, 200, 5000])
    @pytest.mark.parametrize("t", [-3.0, -1.0, 0.5, 2.0])
    def test_cdf_large_df(self, t, df):
        """Normal approximation for df > 30."""
        assert t_distribution_cdf(t, df) == pytest.approx(stats.t.cdf(t, df), abs=2e-3)

    def test_cdf_degenerate_df(self):
        assert t_distribution_cdf(1.3, 0) == 0.5
        assert t_distribution_cdf(1.3, -2) == 0.5

    def test_cdf_infinite_t(self):
        assert t_distribution_cdf(math.inf, 5) == 1.0
        assert t_distribution_cdf(-math.inf, 5) == 0.0

    def test_cdf_symmetry(self):
        for t in [0.3, 1.1, 2.7]:
            assert t_distribution_cdf(-t, 8) == pytest.approx(1 - t_distribution_cdf(t, 8), abs=1e-12)

    @pytest.mark.parametrize("t,df", [(2.0, 10), (-1.0, 4), (0.0, 20), (5.0, 3), (2.5, 100)])
    def test_p_value_two_sided(self, t, df):
        expected = 2 * stats.t.sf(abs(t), df)
        assert p_value_two_sided(t, df) == pytest.approx(expected, abs=4e-3)

    def test_p_value_in_unit_interval(self):
        for t in [-50.0, -1.0, 0.0, 1e-9, 50.0, math.inf]:
            p = p_value_two_sided(t, 7)
            assert 0.0 <= p <= 1.0
        assert p_value_two_sided(0.0, 7) == pytest.approx(1.0)
        assert math.isnan(p_value_two_sided(math.nan, 7))

    @pytest.mark.parametrize("q", [0.9, 0.95, 0.975, 0.995, 0.025])
    @pytest.mark.parametrize("df", [1, 3, 10, 25])
    def test_ppf(self, q, df):
        assert t_distribution_ppf(q, df) == pytest.approx(stats.t.ppf(q, df), rel=1e-6, abs=1e-6)

    def test_ppf_edges(self):
        assert t_distribution_ppf(0.5, 4) == 0.0
        assert t_distribution_ppf(0.0, 4) == -math.inf
        assert t_distribution_ppf(1.0, 4) == math.inf


class TestChiSquareAndF:
    """chi-square and F CDFs."""

    @pytest.mark.parametrize("df", [1, 2, 5, 12, 30])
    @pytest.mark.parametrize("x", [0.05, 0.5, 1.0, 3.84, 10.0, 40.0])
    def test_chi_square_small_df(self, x, df):
        assert chi_square_cdf(x, df) == pytest.approx(stats.chi2.cdf(x, df), abs=1e-7)

    @pytest.mark.parametrize("df", [31, 60, 200])
    def test_chi_square_large_df(self, df):
        """Wilson-Hilferty approximation."""
        for q in [0.05, 0.5, 0.95]:
            x = stats.chi2.ppf(q, df)
            assert chi_square_cdf(x, df) == pytest.approx(q, abs=2e-3)

    def test_chi_square_edges(self):
        assert chi_square_cdf(0.0, 3) == 0.0
        assert chi_square_cdf(-1.0, 3) == 0.0
        assert chi_square_cdf(2.0, 0) == 0.0
        assert chi_square_cdf(math.inf, 3) == 1.0

    @pytest.mark.parametrize("f,d1,d2", [(0.5, 1, 10), (2.3, 3, 20), (10.0, 2, 5), (1.0, 30, 100)])
    def test_f_cdf(self, f, d1, d2):
        assert f_distribution_cdf(f, d1, d2) == pytest.approx(stats.f.cdf(f, d1, d2), abs=1e-8)

    def test_f_cdf_edges(self):
        assert f_distribution_cdf(0.0, 2, 5) == 0.0
        assert f_distribution_cdf(math.inf, 2, 5) == 1.0
        assert math.isnan(f_distribution_cdf(math.nan, 2, 5))
