"""
Column preprocessing applied before fitting.

Each transform maps a Dataset to a new Dataset and leaves missing values
(NaN) untouched. When several are enabled they run in the order
outlier removal -> standardize -> normalize.
"""

import logging
from dataclasses import dataclass
from typing import Iterable, Optional

import numpy as np

from .dataset import Dataset

logger = logging.getLogger(__name__)

IQR_MULTIPLIER = 1.5


@dataclass(frozen=True)
class PreprocessingOptions:
    """Which transforms to apply."""
    remove_outliers: bool = False
    standardize: bool = False
    normalize: bool = False

    @property
    def any_enabled(self) -> bool:
        return self.remove_outliers or self.standardize or self.normalize


def _present(values: np.ndarray) -> np.ndarray:
    return values[~np.isnan(values)]


def iqr_bounds(values: np.ndarray):
    """
    Tukey fences [Q1 - 1.5 IQR, Q3 + 1.5 IQR].

    Quartiles are read off a sorted copy at positions floor(0.25 m) and
    floor(0.75 m), where m is the number of present values.
    """
    ordered = np.sort(_present(values))
    m = len(ordered)
    q1 = ordered[int(np.floor(m * 0.25))]
    q3 = ordered[int(np.floor(m * 0.75))]
    iqr = q3 - q1
    return q1 - IQR_MULTIPLIER * iqr, q3 + IQR_MULTIPLIER * iqr


def remove_outliers(dataset: Dataset, columns: Optional[Iterable[str]] = None) -> Dataset:
    """
    Drop rows whose value in any of `columns` lies outside the IQR fences.

    Columns are processed in order and each column's fences are computed
    from the rows that survived the previous columns.
    """
    current = dataset
    for name in dataset.resolve_columns(columns):
        values = current[name]
        if not len(_present(values)):
            continue
        lower, upper = iqr_bounds(values)
        with np.errstate(invalid='ignore'):
            outside = (values < lower) | (values > upper)
        if outside.any():
            logger.debug("Column '%s': dropping %d outlier rows", name, int(outside.sum()))
            current = current.select_rows(~outside)
    return current


def standardize(dataset: Dataset, columns: Optional[Iterable[str]] = None) -> Dataset:
    """(x - mean) / sd with the sample standard deviation; constant columns are left alone."""
    updates = {}
    for name in dataset.resolve_columns(columns):
        values = dataset[name]
        present = _present(values)
        if len(present) < 2:
            continue
        sd = float(np.std(present, ddof=1))
        if sd == 0:
            continue
        updates[name] = (values - present.mean()) / sd
    return dataset.with_columns(updates) if updates else dataset


def normalize(dataset: Dataset, columns: Optional[Iterable[str]] = None) -> Dataset:
    """Min-max scale to [0, 1]; constant columns are left alone."""
    updates = {}
    for name in dataset.resolve_columns(columns):
        values = dataset[name]
        present = _present(values)
        if not len(present):
            continue
        lo, hi = float(present.min()), float(present.max())
        if hi == lo:
            continue
        updates[name] = (values - lo) / (hi - lo)
    return dataset.with_columns(updates) if updates else dataset


def preprocess(
    dataset: Dataset,
    options: Optional[PreprocessingOptions] = None,
    columns: Optional[Iterable[str]] = None,
) -> Dataset:
    """
    Apply the enabled transforms in their fixed order.

    Parameters
    ----------
    dataset : Dataset
    options : PreprocessingOptions, optional
        None applies nothing
    columns : iterable of str, optional
        Columns to transform (default: all)
    """
    if options is None or not options.any_enabled:
        return dataset

    columns = dataset.resolve_columns(columns)
    result = dataset
    if options.remove_outliers:
        result = remove_outliers(result, columns)
    if options.standardize:
        result = standardize(result, columns)
    if options.normalize:
        result = normalize(result, columns)

    logger.debug("Preprocessed %d -> %d rows with %s", dataset.n_rows, result.n_rows, options)
    return result
