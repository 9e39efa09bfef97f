"""
Test the OLS solver: coefficients, inference and the error taxonomy.

Reference values come from numpy.linalg.lstsq and scipy.stats.
"""

import pytest
import numpy as np
from scipy import stats

from pyols._core.lm_solver import fit_linear_model, fit_design, RegressionResult
from pyols._config import EngineConfig
from pyols.dataset import Dataset
from pyols.exceptions import (
    DegenerateDesign,
    DegenerateResponse,
    InsufficientData,
    RegressionError,
)


def with_intercept(x):
    x = np.asarray(x, dtype=float)
    if x.ndim == 1:
        x = x[:, np.newaxis]
    return np.column_stack([np.ones(len(x)), x])


@pytest.fixture
def noisy_data():
    np.random.seed(42)
    n = 60
    X = np.random.randn(n, 3)
    y = 1.0 + X @ np.array([0.8, -1.2, 0.3]) + 0.5 * np.random.randn(n)
    return with_intercept(X), y


class TestExactFit:
    """y = 2x: the fit is exact."""

    def test_perfect_line(self):
        X = with_intercept([1, 2, 3, 4, 5])
        y = np.array([2.0, 4.0, 6.0, 8.0, 10.0])
        result = fit_linear_model(X, y)

        np.testing.assert_allclose(result.coefficients, [0.0, 2.0], atol=1e-9)
        assert result.r_squared == pytest.approx(1.0, abs=1e-9)
        np.testing.assert_allclose(result.residuals, 0.0, atol=1e-9)
        assert result.mse == pytest.approx(0.0, abs=1e-12)
        assert result.df_residual == 3

    def test_perfect_line_general_backend(self):
        X = with_intercept([1, 2, 3, 4, 5])
        y = np.array([2.0, 4.0, 6.0, 8.0, 10.0])
        result = fit_linear_model(X, y, backend='normal_equations')
        np.testing.assert_allclose(result.coefficients, [0.0, 2.0], atol=1e-9)
        assert result.backend == 'normal_equations'


class TestInference:
    """Standard errors, t, p, R² and F against reference formulas."""

    def test_coefficients_match_lstsq(self, noisy_data):
        X, y = noisy_data
        result = fit_linear_model(X, y)
        expected, *_ = np.linalg.lstsq(X, y, rcond=None)
        np.testing.assert_allclose(result.coefficients, expected, atol=1e-9)

    def test_standard_errors(self, noisy_data):
        X, y = noisy_data
        result = fit_linear_model(X, y)
        n, p = X.shape
        resid = y - X @ result.coefficients
        sigma2 = resid @ resid / (n - p)
        expected_se = np.sqrt(sigma2 * np.diag(np.linalg.inv(X.T @ X)))
        np.testing.assert_allclose(result.std_errors, expected_se, rtol=1e-9)
        np.testing.assert_allclose(result.t_values, result.coefficients / expected_se, rtol=1e-9)

    def test_p_values_close_to_scipy(self, noisy_data):
        X, y = noisy_data
        result = fit_linear_model(X, y)
        expected = 2 * stats.t.sf(np.abs(result.t_values), result.df_residual)
        # df = 56 takes the normal-approximation path
        np.testing.assert_allclose(result.p_values, expected, atol=4e-3)

    def test_f_statistic(self, noisy_data):
        X, y = noisy_data
        result = fit_linear_model(X, y)
        n, p = X.shape
        r2 = result.r_squared
        expected_f = (r2 / (p - 1)) / ((1 - r2) / (n - p))
        assert result.f_statistic == pytest.approx(expected_f, rel=1e-9)
        assert result.f_pvalue == pytest.approx(stats.f.sf(expected_f, p - 1, n - p), abs=1e-8)

    def test_adjusted_r_squared(self, noisy_data):
        X, y = noisy_data
        result = fit_linear_model(X, y)
        n, p = X.shape
        expected = 1 - (1 - result.r_squared) * (n - 1) / (n - p)
        assert result.adj_r_squared == pytest.approx(expected)
        assert result.adj_r_squared <= result.r_squared

    def test_intercept_only_has_no_f(self):
        y = np.array([1.0, 3.0, 2.0, 5.0])
        result = fit_linear_model(np.ones((4, 1)), y)
        assert np.isnan(result.f_statistic)
        assert result.coefficients[0] == pytest.approx(y.mean())


class TestInvariants:
    """Properties every fit with an intercept must satisfy."""

    def test_residuals_sum_to_zero(self, noisy_data):
        X, y = noisy_data
        result = fit_linear_model(X, y)
        assert abs(result.residuals.sum()) < 1e-9 * max(1.0, np.abs(y).sum())

    def test_predictions_plus_residuals(self, noisy_data):
        X, y = noisy_data
        result = fit_linear_model(X, y)
        np.testing.assert_allclose(result.predictions + result.residuals, y, atol=1e-12)

    def test_r_squared_bounds(self, noisy_data):
        X, y = noisy_data
        result = fit_linear_model(X, y)
        assert 0.0 <= result.r_squared <= 1.0
        assert result.ss_residual <= result.ss_total

    def test_refit_is_identical(self, noisy_data):
        X, y = noisy_data
        first = fit_linear_model(X, y)
        second = fit_linear_model(X, y)
        np.testing.assert_array_equal(first.coefficients, second.coefficients)
        np.testing.assert_array_equal(first.p_values, second.p_values)

    def test_arrays_read_only(self, noisy_data):
        X, y = noisy_data
        result = fit_linear_model(X, y)
        with pytest.raises(ValueError):
            result.coefficients[0] = 99.0

    def test_backends_agree(self):
        np.random.seed(0)
        x = np.random.randn(25)
        y = 2 + 3 * x + np.random.randn(25)
        X = with_intercept(x)
        closed = fit_linear_model(X, y, backend='closed_form')
        general = fit_linear_model(X, y, backend='normal_equations')
        np.testing.assert_allclose(closed.coefficients, general.coefficients, atol=1e-9)
        np.testing.assert_allclose(closed.std_errors, general.std_errors, atol=1e-9)
        assert closed.r_squared == pytest.approx(general.r_squared, abs=1e-12)


class TestErrors:
    """Each failure surfaces as exactly one RegressionError kind."""

    def test_collinear(self):
        x1 = np.array([1, 2, 3, 4, 5, 6], dtype=float)
        X = with_intercept(np.column_stack([x1, 2 * x1]))
        y = np.array([1.0, 3.0, 2.0, 5.0, 4.0, 7.0])
        with pytest.raises(DegenerateDesign) as info:
            fit_linear_model(X, y)
        assert info.value.kind == 'degenerate_design'

    def test_insufficient_data_checked_first(self):
        """3 rows and 3 regressors: too few rows even though X'X is singular too."""
        X = with_intercept(np.array([[1, 2, 3], [4, 5, 6], [7, 8, 10]], dtype=float))
        with pytest.raises(InsufficientData):
            fit_linear_model(X, np.array([1.0, 2.0, 3.0]))

    def test_exactly_saturated(self):
        X = with_intercept([1.0, 2.0])
        with pytest.raises(InsufficientData):
            fit_linear_model(X, np.array([1.0, 3.0]))

    @pytest.mark.parametrize("value", [5.0, 0.0, 0.1, 1.1, 2.7])
    def test_constant_response(self, value):
        """Constant y raises even when the value is not exactly representable."""
        X = with_intercept(np.arange(1.0, 8.0))
        with pytest.raises(DegenerateResponse):
            fit_linear_model(X, np.full(7, value))

    def test_constant_response_general_backend(self):
        X = with_intercept(np.column_stack([np.arange(1.0, 8.0), [1, 0, 2, 5, 3, 1, 4]]))
        with pytest.raises(DegenerateResponse):
            fit_linear_model(X, np.full(7, 0.1), backend='normal_equations')

    def test_errors_share_base(self):
        for exc in (DegenerateDesign, DegenerateResponse, InsufficientData):
            assert issubclass(exc, RegressionError)
            assert issubclass(exc, ValueError)

    def test_error_message_format(self):
        err = InsufficientData("need more rows")
        assert str(err) == "insufficient_data: need more rows"
        assert err.message == "need more rows"

    def test_shape_mismatch(self):
        with pytest.raises(ValueError, match="rows"):
            fit_linear_model(with_intercept([1, 2, 3]), np.array([1.0, 2.0]))

    def test_nan_rejected(self):
        with pytest.raises(ValueError, match="NaN"):
            fit_linear_model(with_intercept([1, 2, np.nan]), np.array([1.0, 2.0, 3.0]))


class TestFitDesign:
    """Fitting a DesignMatrix with a config."""

    def test_fit_design(self):
        ds = Dataset({'x': [1, 2, 3, 4, 5], 'y': [2.1, 3.9, 6.2, 7.8, 10.1]})
        result = fit_design(ds.design('y', ['x']))
        assert isinstance(result, RegressionResult)
        assert result.n_obs == 5
        assert result.coefficients[1] == pytest.approx(1.99, abs=1e-9)

    def test_config_tolerance(self):
        """A huge tolerance turns a healthy design singular."""
        ds = Dataset({'x': [1, 2, 3, 4, 5], 'y': [2.1, 3.9, 6.2, 7.8, 10.1]})
        config = EngineConfig(singular_tol=1e6)
        with pytest.raises(DegenerateDesign):
            fit_design(ds.design('y', ['x']), config=config)
