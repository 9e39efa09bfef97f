"""
Abstract base classes for backends.

Defines the interface all least-squares solvers implement.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass

import numpy as np


@dataclass
class LeastSquaresSolution:
    """Raw least-squares output, before any inference."""
    coef: np.ndarray
    residuals: np.ndarray
    fitted_values: np.ndarray
    xtx_inverse: np.ndarray
    df_residual: int


class BackendBase(ABC):
    """Abstract base class for all backends."""

    name = "base"

    @abstractmethod
    def fit_linear_model(
        self,
        X: np.ndarray,
        y: np.ndarray,
        tol: float,
    ) -> LeastSquaresSolution:
        """
        Solve the normal equations for one design.

        Parameters
        ----------
        X : ndarray, shape (n, p)
            Design matrix (WITH intercept column)
        y : ndarray, shape (n,)
            Response vector
        tol : float
            Singularity tolerance for X'X

        Returns
        -------
        LeastSquaresSolution

        Raises
        ------
        DegenerateDesign
            If X'X is singular within `tol`.
        """
        pass

    def get_device_info(self) -> dict:
        """Get backend information."""
        return {
            'backend': self.name,
            'precision': 'fp64',
            'library': f'NumPy {np.__version__}',
        }

    def __repr__(self):
        return f"{type(self).__name__}(name='{self.name}')"
