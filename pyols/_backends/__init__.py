"""
Backend selection and management.

Provides a unified interface over the least-squares solvers:

- 'normal_equations': Gauss-Jordan inversion of X'X (any number of regressors)
- 'closed_form': slope/intercept formulas (exactly one regressor)
"""

import logging
from typing import Optional

from .base import BackendBase, LeastSquaresSolution
from .closed_form_backend import ClosedFormBackend
from .normal_equations_backend import NormalEquationsBackend

logger = logging.getLogger(__name__)

_BACKENDS = {
    'normal_equations': NormalEquationsBackend,
    'closed_form': ClosedFormBackend,
}


def get_backend(backend: str = 'auto', n_params: Optional[int] = None) -> BackendBase:
    """
    Get computational backend.

    Parameters
    ----------
    backend : str
        Backend selection:
        - 'auto': closed form for a single regressor, otherwise normal equations
        - 'normal_equations': general matrix path
        - 'closed_form': single-regressor formulas
    n_params : int, optional
        Number of coefficients including the intercept (used by 'auto')

    Returns
    -------
    BackendBase
        Backend instance

    Examples
    --------
    >>> get_backend('auto', n_params=2).name
    'closed_form'
    >>> get_backend('auto', n_params=4).name
    'normal_equations'
    """
    if backend == 'auto':
        chosen = 'closed_form' if n_params == 2 else 'normal_equations'
        logger.debug("Auto-selected backend '%s' for %s parameters", chosen, n_params)
        return _BACKENDS[chosen]()

    if backend in _BACKENDS:
        return _BACKENDS[backend]()

    raise ValueError(
        f"Unknown backend: '{backend}'\n"
        f"Valid options: 'auto', " + ", ".join(f"'{name}'" for name in _BACKENDS)
    )


def list_available_backends() -> list:
    """List names of available backends."""
    return list(_BACKENDS)


__all__ = [
    'get_backend',
    'list_available_backends',
    'BackendBase',
    'LeastSquaresSolution',
    'ClosedFormBackend',
    'NormalEquationsBackend',
]
