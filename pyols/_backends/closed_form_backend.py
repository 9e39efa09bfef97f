"""
Single-regressor backend.

For y = b0 + b1 x the normal equations have a closed form, so no
elimination is needed:

    b1 = Sxy / Sxx,  b0 = mean(y) - b1 mean(x)

and (X'X)^-1 = [[sum x^2, -sum x], [-sum x, n]] / (n Sxx).
"""

import numpy as np

from .base import BackendBase, LeastSquaresSolution
from ..exceptions import DegenerateDesign


class ClosedFormBackend(BackendBase):
    """Closed-form simple linear regression (p = 2)."""

    name = "closed_form"

    def fit_linear_model(self, X, y, tol):
        n, p = X.shape
        if p != 2:
            raise ValueError(
                f"closed_form backend needs exactly one regressor, got {p - 1}"
            )

        x = X[:, 1]
        x_mean = x.mean()
        y_mean = y.mean()
        dx = x - x_mean
        sxx = float(np.dot(dx, dx))
        sxy = float(np.dot(dx, y - y_mean))

        # det(X'X) = n * Sxx
        if abs(n * sxx) < tol:
            raise DegenerateDesign(
                "The independent variable is constant; slope is not identifiable"
            )

        slope = sxy / sxx
        intercept = y_mean - slope * x_mean
        coef = np.array([intercept, slope])

        sum_x = float(np.sum(x))
        sum_x2 = float(np.dot(x, x))
        XtX_inv = np.array([[sum_x2, -sum_x], [-sum_x, n]]) / (n * sxx)

        fitted = intercept + slope * x
        residuals = y - fitted

        return LeastSquaresSolution(
            coef=coef,
            residuals=residuals,
            fitted_values=fitted,
            xtx_inverse=XtX_inv,
            df_residual=n - p,
        )
