"""
Utility functions.
"""

import numpy as np


def check_array(X, name='X', dtype=np.float64):
    """Validate matrix input."""
    X = np.asarray(X, dtype=dtype)
    if X.ndim != 2:
        raise ValueError(f"{name} must be 2-dimensional")
    if not np.all(np.isfinite(X)):
        raise ValueError(f"{name} contains NaN or Inf")
    return X


def check_square(M, name='M', dtype=np.float64):
    """Validate square matrix input."""
    M = check_array(M, name=name, dtype=dtype)
    if M.shape[0] != M.shape[1]:
        raise ValueError(f"{name} must be square, got shape {M.shape}")
    return M


def check_vector(y, name='y', dtype=np.float64):
    """Validate vector input."""
    y = np.asarray(y, dtype=dtype)
    if y.ndim != 1:
        raise ValueError(f"{name} must be 1-dimensional")
    if not np.all(np.isfinite(y)):
        raise ValueError(f"{name} contains NaN or Inf")
    return y


def correlation(a: np.ndarray, b: np.ndarray) -> float:
    """Pearson correlation; 0.0 when either series has no variance."""
    a = np.asarray(a, dtype=np.float64)
    b = np.asarray(b, dtype=np.float64)
    da = a - a.mean()
    db = b - b.mean()
    denom = np.sqrt(np.sum(da**2) * np.sum(db**2))
    if denom == 0 or not np.isfinite(denom):
        return 0.0
    return float(np.sum(da * db) / denom)


def readonly(arr: np.ndarray) -> np.ndarray:
    """Return a read-only float64 copy."""
    out = np.array(arr, dtype=np.float64, copy=True)
    out.setflags(write=False)
    return out
