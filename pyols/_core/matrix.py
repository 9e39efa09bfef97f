"""
Dense matrix algebra for the normal equations.

Determinant and inversion are written out explicitly (partial pivoting,
fixed singularity tolerance) so that the decision "X'X is singular" is
made by one rule everywhere in the package.
"""

import numpy as np

from .._utils import check_array, check_square
from ..exceptions import SingularMatrixError

SINGULAR_TOL = 1e-10


def determinant(M, tol: float = SINGULAR_TOL) -> float:
    """
    Determinant of a square matrix.

    Sizes 1-3 use the closed-form expansions. Larger matrices use
    Gaussian elimination with partial pivoting; each row swap flips the
    sign.

    Parameters
    ----------
    M : array-like, shape (k, k)
        Square matrix (not modified)
    tol : float
        Pivot magnitude below which the matrix is treated as singular

    Returns
    -------
    float
        The determinant, or exactly 0.0 if a pivot falls below `tol`
        during elimination
    """
    M = check_square(M, name='M')
    k = M.shape[0]

    if k == 0:
        return 1.0
    if k == 1:
        return float(M[0, 0])
    if k == 2:
        return float(M[0, 0] * M[1, 1] - M[0, 1] * M[1, 0])
    if k == 3:
        return float(
            M[0, 0] * (M[1, 1] * M[2, 2] - M[1, 2] * M[2, 1])
            - M[0, 1] * (M[1, 0] * M[2, 2] - M[1, 2] * M[2, 0])
            + M[0, 2] * (M[1, 0] * M[2, 1] - M[1, 1] * M[2, 0])
        )

    work = M.copy()
    det = 1.0
    for i in range(k):
        pivot_row = i + int(np.argmax(np.abs(work[i:, i])))
        if pivot_row != i:
            work[[i, pivot_row]] = work[[pivot_row, i]]
            det = -det

        if abs(work[i, i]) < tol:
            return 0.0

        det *= work[i, i]

        # Eliminate below the pivot
        factors = work[i + 1:, i] / work[i, i]
        work[i + 1:, i:] -= np.outer(factors, work[i, i:])

    return float(det)


def invert(M, tol: float = SINGULAR_TOL) -> np.ndarray:
    """
    Inverse via Gauss-Jordan elimination on the augmented [M | I].

    Parameters
    ----------
    M : array-like, shape (k, k)
        Square matrix (not modified)
    tol : float
        Pivot magnitude below which the matrix is singular

    Returns
    -------
    ndarray, shape (k, k)

    Raises
    ------
    SingularMatrixError
        If any pivot (after row swapping) is smaller than `tol`.
    """
    M = check_square(M, name='M')
    k = M.shape[0]
    augmented = np.hstack([M, np.eye(k)])

    for i in range(k):
        pivot_row = i + int(np.argmax(np.abs(augmented[i:, i])))
        if pivot_row != i:
            augmented[[i, pivot_row]] = augmented[[pivot_row, i]]

        pivot = augmented[i, i]
        if abs(pivot) < tol:
            raise SingularMatrixError(
                f"Matrix is singular: pivot {pivot:.3e} in column {i} below {tol:g}"
            )

        augmented[i] /= pivot

        # Clear column i from every other row
        for r in range(k):
            if r != i:
                factor = augmented[r, i]
                if factor != 0.0:
                    augmented[r] -= factor * augmented[i]

    return augmented[:, k:].copy()


def multiply(A, B) -> np.ndarray:
    """
    Matrix product A @ B.

    Vectors are promoted to column matrices. Mismatched inner dimensions
    are a caller error.
    """
    A = np.asarray(A, dtype=np.float64)
    B = np.asarray(B, dtype=np.float64)
    if A.ndim == 1:
        A = A[:, np.newaxis]
    if B.ndim == 1:
        B = B[:, np.newaxis]
    A = check_array(A, name='A')
    B = check_array(B, name='B')
    if A.shape[1] != B.shape[0]:
        raise ValueError(
            f"Cannot multiply {A.shape[0]}x{A.shape[1]} by {B.shape[0]}x{B.shape[1]}"
        )
    return A @ B
