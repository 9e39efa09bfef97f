"""
Error taxonomy.

Every failure of a fit surfaces as exactly one of these. The diagnostic
suite catches them locally and substitutes neutral values.
"""


class RegressionError(ValueError):
    """Base class for all fitting failures."""

    kind = "regression_error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def __str__(self):
        return f"{self.kind}: {self.message}"


class InsufficientData(RegressionError):
    """Fewer observations than parameters (n - p <= 0)."""

    kind = "insufficient_data"


class DegenerateDesign(RegressionError):
    """X'X is singular (perfect multicollinearity)."""

    kind = "degenerate_design"


class DegenerateResponse(RegressionError):
    """Dependent variable has zero total variance, so R² is undefined."""

    kind = "degenerate_response"


class InvalidSelection(RegressionError):
    """No dependent variable, no independent variables, or unknown columns."""

    kind = "invalid_selection"


class DatasetError(RegressionError):
    """Malformed dataset: bad column names, ragged rows or lengths."""

    kind = "invalid_dataset"


class SingularMatrixError(ArithmeticError):
    """Raised by matrix inversion when a pivot falls below tolerance."""


__all__ = [
    "RegressionError",
    "InsufficientData",
    "DegenerateDesign",
    "DegenerateResponse",
    "InvalidSelection",
    "DatasetError",
    "SingularMatrixError",
]
