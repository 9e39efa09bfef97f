"""
Linear model solver.

Runs a backend to get the least-squares solution, then derives the
inferential statistics (standard errors, t, p, R², F) from it. This is
the only place in the package where a regression is fitted; diagnostics
that need auxiliary regressions call back into :func:`fit_design`.
"""

import logging
from dataclasses import dataclass
from typing import Union

import numpy as np

from .distributions import f_distribution_cdf, p_value_two_sided
from .matrix import SINGULAR_TOL
from .._utils import check_array, check_vector, readonly
from ..exceptions import DegenerateResponse, InsufficientData

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RegressionResult:
    """
    Complete OLS fit. Arrays are read-only.

    Coefficient-level arrays have length p (intercept first);
    observation-level arrays have length n.
    """
    coefficients: np.ndarray
    std_errors: np.ndarray
    t_values: np.ndarray
    p_values: np.ndarray
    residuals: np.ndarray
    predictions: np.ndarray
    r_squared: float
    adj_r_squared: float
    mse: float
    f_statistic: float
    f_pvalue: float
    n_obs: int
    n_params: int
    df_residual: int
    ss_residual: float
    ss_total: float
    xtx_inverse: np.ndarray
    backend: str

    @property
    def sigma(self) -> float:
        """Residual standard error."""
        return float(np.sqrt(self.mse))

    def __repr__(self):
        return (f"RegressionResult(n={self.n_obs}, p={self.n_params}, "
                f"R²={self.r_squared:.4f}, backend='{self.backend}')")


def fit_linear_model(
    X: np.ndarray,
    y: np.ndarray,
    backend: Union[str, object] = 'auto',
    tol: float = SINGULAR_TOL,
) -> RegressionResult:
    """
    Ordinary least squares with classical inference.

    Parameters
    ----------
    X : ndarray, shape (n, p)
        Design matrix INCLUDING the intercept column
    y : ndarray, shape (n,)
        Response vector
    backend : str or BackendBase
        'auto', 'normal_equations', 'closed_form' or a backend instance
    tol : float
        Singularity tolerance for X'X

    Returns
    -------
    RegressionResult

    Raises
    ------
    InsufficientData
        If n - p <= 0
    DegenerateDesign
        If X'X is singular
    DegenerateResponse
        If y has zero total variance
    """
    X = check_array(X, name='X')
    y = check_vector(y, name='y')
    n, p = X.shape
    if len(y) != n:
        raise ValueError(f"X has {n} rows but y has {len(y)} values")
    if p < 1:
        raise ValueError("X must have at least one column")

    df = n - p
    if df <= 0:
        raise InsufficientData(
            f"{n} observations are not enough for {p} coefficients "
            f"(need at least {p + 1})"
        )

    if isinstance(backend, str):
        from .._backends import get_backend
        backend = get_backend(backend, n_params=p)

    solution = backend.fit_linear_model(X, y, tol=tol)

    # Compare values, not the sum of squares: mean() of a constant
    # non-dyadic y (e.g. 0.1) is off in the last bit
    ss_tot = float(np.sum((y - y.mean())**2))
    if np.ptp(y) == 0:
        raise DegenerateResponse(
            "The dependent variable is constant; R² is undefined"
        )

    residuals = solution.residuals
    ss_res = float(np.sum(residuals**2))
    r_squared = 1.0 - ss_res / ss_tot
    adj_r_squared = 1.0 - (1.0 - r_squared) * (n - 1) / df
    mse = ss_res / df

    with np.errstate(divide='ignore', invalid='ignore'):
        # Var(beta) = MSE (X'X)^-1
        std_errors = np.sqrt(mse * np.diag(solution.xtx_inverse))
        t_values = solution.coef / std_errors

        if p > 1:
            f_statistic = float(np.float64(r_squared / (p - 1)) / ((1 - r_squared) / df))
        else:
            f_statistic = float("nan")

    p_values = np.array([p_value_two_sided(float(t), df) for t in t_values])
    f_pvalue = 1.0 - f_distribution_cdf(f_statistic, p - 1, df)

    logger.debug("Fitted n=%d p=%d with %s: R²=%.6f", n, p, backend.name, r_squared)

    return RegressionResult(
        coefficients=readonly(solution.coef),
        std_errors=readonly(std_errors),
        t_values=readonly(t_values),
        p_values=readonly(p_values),
        residuals=readonly(residuals),
        predictions=readonly(solution.fitted_values),
        r_squared=float(r_squared),
        adj_r_squared=float(adj_r_squared),
        mse=float(mse),
        f_statistic=f_statistic,
        f_pvalue=float(f_pvalue),
        n_obs=n,
        n_params=p,
        df_residual=df,
        ss_residual=ss_res,
        ss_total=ss_tot,
        xtx_inverse=readonly(solution.xtx_inverse),
        backend=backend.name,
    )


def fit_design(design, backend='auto', config=None) -> RegressionResult:
    """
    Fit a :class:`~pyols.dataset.DesignMatrix`.

    Parameters
    ----------
    design : DesignMatrix
    backend : str or BackendBase
    config : EngineConfig, optional
        Supplies the singularity tolerance
    """
    tol = config.singular_tol if config is not None else SINGULAR_TOL
    return fit_linear_model(design.X, design.y, backend=backend, tol=tol)
