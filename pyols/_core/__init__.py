"""
Core algorithms (backend-agnostic).
"""

from .matrix import determinant, invert, multiply, SINGULAR_TOL
from .lm_solver import fit_linear_model, fit_design, RegressionResult
from .shapiro import shapiro_wilk, ShapiroWilkResult

__all__ = [
    "determinant",
    "invert",
    "multiply",
    "SINGULAR_TOL",
    "fit_linear_model",
    "fit_design",
    "RegressionResult",
    "shapiro_wilk",
    "ShapiroWilkResult",
]
