"""
PyOLS: ordinary least squares regression with assumption diagnostics.

Copyright (C) 2024 SGCX
Licensed under GPL-3.0
"""

__version__ = "1.0.0"

# Import main user-facing API
from .lm import lm, LinearModel
from .dataset import Dataset, DesignMatrix
from .preprocessing import PreprocessingOptions, preprocess
from .diagnostics import diagnose, DiagnosticReport
from ._config import EngineConfig, DEFAULT_CONFIG
from .exceptions import (
    RegressionError,
    InsufficientData,
    DegenerateDesign,
    DegenerateResponse,
    InvalidSelection,
    DatasetError,
)

# Core solver and backend utilities (for advanced users)
from ._core import fit_linear_model, fit_design, RegressionResult
from ._backends import get_backend, list_available_backends

__all__ = [
    'lm',
    'LinearModel',
    'Dataset',
    'DesignMatrix',
    'PreprocessingOptions',
    'preprocess',
    'diagnose',
    'DiagnosticReport',
    'EngineConfig',
    'DEFAULT_CONFIG',
    'RegressionError',
    'InsufficientData',
    'DegenerateDesign',
    'DegenerateResponse',
    'InvalidSelection',
    'DatasetError',
    'fit_linear_model',
    'fit_design',
    'RegressionResult',
    'get_backend',
    'list_available_backends',
]
