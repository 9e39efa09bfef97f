"""
Typed columnar datasets and design matrices.

A :class:`Dataset` is an ordered set of named float64 columns of equal
length; missing values are NaN. Column names and lengths are validated
when the dataset is built, so later code can index columns freely.
"""

import logging
import math
import numbers
from dataclasses import dataclass
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

import numpy as np
import pandas as pd

from ._utils import readonly
from .exceptions import DatasetError, InvalidSelection

logger = logging.getLogger(__name__)


def _to_float(value) -> float:
    """Coerce a cell to float; anything non-numeric becomes NaN."""
    if value is None or isinstance(value, bool):
        return math.nan
    if isinstance(value, numbers.Real):
        return float(value)
    if isinstance(value, str):
        try:
            return float(value.strip())
        except ValueError:
            return math.nan
    return math.nan


class Dataset:
    """
    Immutable columnar table of numeric data.

    Parameters
    ----------
    columns : mapping of str -> array-like
        Column name to values. Values that cannot be read as numbers
        (None, empty strings, text) are stored as NaN ("missing").

    Examples
    --------
    >>> ds = Dataset({'x': [1, 2, 3, 4, 5], 'y': [2, 4, 6, 8, 10]})
    >>> ds.n_rows
    5
    >>> design = ds.design('y', ['x'])
    """

    def __init__(self, columns: Mapping[str, Iterable]):
        if not isinstance(columns, Mapping):
            raise DatasetError("columns must be a mapping of name -> values")

        data: Dict[str, np.ndarray] = {}
        length = None
        for name, values in columns.items():
            if not isinstance(name, str) or not name.strip():
                raise DatasetError(f"Column names must be non-empty strings, got {name!r}")
            if name in data:
                raise DatasetError(f"Duplicate column name '{name}'")

            arr = self._coerce_column(values)
            if length is None:
                length = len(arr)
            elif len(arr) != length:
                raise DatasetError(
                    f"Column '{name}' has {len(arr)} values, expected {length}"
                )
            data[name] = readonly(arr)

        self._columns = data
        self._n_rows = 0 if length is None else length

    @staticmethod
    def _coerce_column(values) -> np.ndarray:
        if isinstance(values, (pd.Series, pd.Index)) and values.dtype != bool:
            values = pd.to_numeric(values, errors='coerce').to_numpy(dtype=np.float64)
        arr = np.asarray(values)
        if arr.ndim != 1:
            raise DatasetError("Each column must be 1-dimensional")
        if arr.dtype.kind in 'iuf':
            return arr.astype(np.float64)
        return np.array([_to_float(v) for v in arr], dtype=np.float64)

    # ------------------------------------------------------------------
    # Constructors
    # ------------------------------------------------------------------

    @classmethod
    def from_rows(cls, rows: Sequence[Mapping[str, object]]) -> "Dataset":
        """
        Build from a sequence of row mappings.

        Every row must have the same column set as the first row.
        """
        rows = list(rows)
        if not rows:
            return cls({})

        names = list(rows[0].keys())
        expected = set(names)
        for i, row in enumerate(rows):
            keys = set(row.keys())
            if keys != expected:
                missing = sorted(expected - keys)
                extra = sorted(keys - expected)
                raise DatasetError(
                    f"Row {i} has mismatched columns (missing={missing}, extra={extra})"
                )

        return cls({name: [row[name] for row in rows] for name in names})

    @classmethod
    def from_frame(cls, frame: pd.DataFrame) -> "Dataset":
        """Build from a pandas DataFrame (column labels become names)."""
        if not isinstance(frame, pd.DataFrame):
            raise DatasetError("from_frame expects a pandas DataFrame")
        return cls({str(col): frame[col] for col in frame.columns})

    # ------------------------------------------------------------------
    # Access
    # ------------------------------------------------------------------

    @property
    def columns(self) -> List[str]:
        return list(self._columns)

    @property
    def n_rows(self) -> int:
        return self._n_rows

    def __len__(self):
        return self._n_rows

    def __contains__(self, name):
        return name in self._columns

    def __getitem__(self, name: str) -> np.ndarray:
        try:
            return self._columns[name]
        except KeyError:
            raise InvalidSelection(f"Unknown column '{name}'") from None

    def __eq__(self, other):
        if not isinstance(other, Dataset):
            return NotImplemented
        if self.columns != other.columns:
            return False
        return all(
            np.array_equal(self[c], other[c], equal_nan=True) for c in self.columns
        )

    def __repr__(self):
        return f"Dataset(n_rows={self.n_rows}, columns={self.columns})"

    def to_frame(self) -> pd.DataFrame:
        """Export as a pandas DataFrame."""
        return pd.DataFrame({name: np.array(col) for name, col in self._columns.items()})

    def with_columns(self, updates: Mapping[str, np.ndarray]) -> "Dataset":
        """New dataset with some columns replaced (same row count)."""
        merged = dict(self._columns)
        for name, values in updates.items():
            if name not in merged:
                raise InvalidSelection(f"Unknown column '{name}'")
            merged[name] = values
        return Dataset(merged)

    def select_rows(self, mask) -> "Dataset":
        """New dataset holding only the rows where `mask` is True."""
        mask = np.asarray(mask, dtype=bool)
        if mask.shape != (self._n_rows,):
            raise ValueError(f"Row mask must have shape ({self._n_rows},)")
        return Dataset({name: col[mask] for name, col in self._columns.items()})

    def resolve_columns(self, columns: Optional[Iterable[str]]) -> List[str]:
        """Validate a column subset (None means all columns)."""
        if columns is None:
            return self.columns
        names = list(columns)
        for name in names:
            if name not in self._columns:
                raise InvalidSelection(f"Unknown column '{name}'")
        return names

    # ------------------------------------------------------------------
    # Design matrix
    # ------------------------------------------------------------------

    def design(self, dependent: str, independents: Sequence[str]) -> "DesignMatrix":
        """
        Build the design matrix for regressing `dependent` on `independents`.

        A constant intercept column is prepended and any row with a
        missing or non-finite value in a selected column is dropped.

        Raises
        ------
        InvalidSelection
            Empty dependent, no independents, unknown or repeated columns.
        """
        if not dependent:
            raise InvalidSelection("No dependent variable selected")
        independents = list(independents or [])
        if not independents:
            raise InvalidSelection("At least one independent variable is required")
        if dependent in independents:
            raise InvalidSelection(
                f"'{dependent}' cannot be both dependent and independent"
            )
        if len(set(independents)) != len(independents):
            raise InvalidSelection("Independent variables must be unique")
        self.resolve_columns([dependent] + independents)

        y_all = self._columns[dependent]
        X_all = np.column_stack([self._columns[name] for name in independents])

        complete = np.isfinite(y_all) & np.all(np.isfinite(X_all), axis=1)
        n_dropped = int(self._n_rows - complete.sum())
        if n_dropped:
            logger.debug(
                "Dropped %d of %d rows with missing values in %s",
                n_dropped, self._n_rows, [dependent] + independents
            )

        X = np.column_stack([np.ones(int(complete.sum())), X_all[complete]])
        row_index = np.flatnonzero(complete)
        row_index.setflags(write=False)
        return DesignMatrix(
            X=readonly(X),
            y=readonly(y_all[complete]),
            dependent=dependent,
            independents=tuple(independents),
            row_index=row_index,
        )


@dataclass(frozen=True)
class DesignMatrix:
    """
    Regression inputs after the completeness filter.

    Attributes
    ----------
    X : ndarray, shape (n, p)
        Design matrix; column 0 is the intercept
    y : ndarray, shape (n,)
        Response
    dependent : str
        Response column name
    independents : tuple of str
        Regressor names, in column order (excluding intercept)
    row_index : ndarray of int
        Positions of the kept rows in the source dataset
    """
    X: np.ndarray
    y: np.ndarray
    dependent: str
    independents: Tuple[str, ...]
    row_index: np.ndarray

    @property
    def n_obs(self) -> int:
        return self.X.shape[0]

    @property
    def n_params(self) -> int:
        return self.X.shape[1]

    @property
    def names(self) -> List[str]:
        """Coefficient names, intercept first."""
        return ['Intercept'] + list(self.independents)

    def column(self, name: str) -> np.ndarray:
        """Values of one regressor."""
        try:
            j = self.independents.index(name)
        except ValueError:
            raise InvalidSelection(f"'{name}' is not an independent variable") from None
        return self.X[:, j + 1]

    def drop(self, name: str) -> "DesignMatrix":
        """
        Nested design regressing `name` on the remaining regressors.

        Used for variance inflation factors.
        """
        j = self.independents.index(name) + 1
        keep = [c for c in range(self.n_params) if c != j]
        return DesignMatrix(
            X=readonly(self.X[:, keep]),
            y=readonly(self.X[:, j]),
            dependent=name,
            independents=tuple(v for v in self.independents if v != name),
            row_index=self.row_index,
        )
