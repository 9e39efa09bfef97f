"""
General backend: normal equations with Gauss-Jordan inversion.

beta = (X'X)^-1 X'y, with the singularity decision taken from the
determinant of X'X before any inversion is attempted.
"""

import numpy as np

from .base import BackendBase, LeastSquaresSolution
from .._core.matrix import determinant, invert, multiply
from ..exceptions import DegenerateDesign, SingularMatrixError


class NormalEquationsBackend(BackendBase):
    """
    Solve any full-rank design through (X'X)^-1.

    Works for any number of regressors; the intercept must already be
    part of X.
    """

    name = "normal_equations"

    def fit_linear_model(self, X, y, tol):
        n, p = X.shape
        Xt = X.T

        XtX = multiply(Xt, X)
        Xty = multiply(Xt, y)

        det = determinant(XtX, tol=tol)
        if abs(det) < tol:
            raise DegenerateDesign(
                "X'X is singular (determinant "
                f"{det:.3e}); the independent variables are perfectly collinear"
            )

        try:
            XtX_inv = invert(XtX, tol=tol)
        except SingularMatrixError as exc:
            raise DegenerateDesign(f"X'X could not be inverted: {exc}") from exc

        coef = multiply(XtX_inv, Xty)[:, 0]
        fitted = multiply(X, coef)[:, 0]
        residuals = y - fitted

        return LeastSquaresSolution(
            coef=coef,
            residuals=residuals,
            fitted_values=fitted,
            xtx_inverse=XtX_inv,
            df_residual=n - p,
        )
