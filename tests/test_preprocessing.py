"""
Test outlier removal, standardization and normalization.
"""

import pytest
import numpy as np

from pyols.dataset import Dataset
from pyols.preprocessing import (
    PreprocessingOptions,
    iqr_bounds,
    normalize,
    preprocess,
    remove_outliers,
    standardize,
)


class TestOutliers:

    def test_iqr_bounds(self):
        values = np.arange(1.0, 9.0)  # 8 values: Q1 = x[2] = 3, Q3 = x[6] = 7
        lower, upper = iqr_bounds(values)
        assert lower == pytest.approx(3 - 1.5 * 4)
        assert upper == pytest.approx(7 + 1.5 * 4)

    def test_bounds_ignore_missing(self):
        values = np.array([np.nan, 1.0, 2.0, 3.0, 4.0])
        assert iqr_bounds(values) == iqr_bounds(values[1:])

    def test_drops_outlier_rows(self):
        ds = Dataset({'x': [1, 2, 3, 4, 5, 6, 7, 100], 'y': [1, 2, 3, 4, 5, 6, 7, 8]})
        out = remove_outliers(ds)
        assert out.n_rows == 7
        assert 100.0 not in out['x']

    def test_missing_never_dropped(self):
        ds = Dataset({'x': [1, 2, None, 3, 4, 5]})
        out = remove_outliers(ds)
        assert out.n_rows == 6

    def test_sequential_columns(self):
        """The second column's fences come from rows the first column kept."""
        ds = Dataset({
            'a': [1, 2, 3, 4, 5, 6, 7, 1000],
            'b': [1, 2, 3, 4, 5, 6, 7, 1000],
        })
        out = remove_outliers(ds, ['a', 'b'])
        assert out.n_rows == 7

    def test_subset_of_columns(self):
        ds = Dataset({'a': [1, 2, 3, 4, 5, 6, 7, 1000], 'b': [1, 2, 3, 4, 5, 6, 7, 8]})
        assert remove_outliers(ds, ['b']).n_rows == 8

    def test_all_missing_column(self):
        ds = Dataset({'x': [None, None, None]})
        assert remove_outliers(ds).n_rows == 3


class TestScaling:

    def test_standardize(self):
        ds = Dataset({'x': [2.0, 4.0, 6.0, 8.0]})
        x = standardize(ds)['x']
        assert x.mean() == pytest.approx(0.0, abs=1e-12)
        assert np.std(x, ddof=1) == pytest.approx(1.0)

    def test_standardize_keeps_missing(self):
        ds = Dataset({'x': [1.0, None, 3.0, 5.0]})
        x = standardize(ds)['x']
        assert np.isnan(x[1])
        assert np.nanmean(x) == pytest.approx(0.0, abs=1e-12)

    def test_standardize_constant_column_unchanged(self):
        ds = Dataset({'x': [3.0, 3.0, 3.0]})
        np.testing.assert_array_equal(standardize(ds)['x'], [3.0, 3.0, 3.0])

    def test_standardize_single_value_unchanged(self):
        ds = Dataset({'x': [3.0, None]})
        assert standardize(ds)['x'][0] == 3.0

    def test_normalize(self):
        ds = Dataset({'x': [10.0, 15.0, 20.0]})
        np.testing.assert_allclose(normalize(ds)['x'], [0.0, 0.5, 1.0])

    def test_normalize_constant_column_unchanged(self):
        ds = Dataset({'x': [2.0, 2.0]})
        np.testing.assert_array_equal(normalize(ds)['x'], [2.0, 2.0])


class TestPreprocess:

    def test_no_options_is_identity(self):
        ds = Dataset({'x': [1, 2, 3]})
        assert preprocess(ds) is ds
        assert preprocess(ds, PreprocessingOptions()) is ds

    def test_order_outliers_then_scale(self):
        """Normalizing after outlier removal: the outlier does not set the max."""
        ds = Dataset({'x': [1, 2, 3, 4, 5, 6, 7, 1000]})
        out = preprocess(ds, PreprocessingOptions(remove_outliers=True, normalize=True))
        assert out.n_rows == 7
        assert out['x'].max() == pytest.approx(1.0)
        assert out['x'][5] == pytest.approx(5 / 6)

    def test_standardize_then_normalize(self):
        ds = Dataset({'x': [1.0, 5.0, 9.0]})
        out = preprocess(ds, PreprocessingOptions(standardize=True, normalize=True))
        np.testing.assert_allclose(out['x'], [0.0, 0.5, 1.0])

    def test_only_selected_columns(self):
        ds = Dataset({'x': [1.0, 2.0, 3.0], 'untouched': [10.0, 20.0, 30.0]})
        out = preprocess(ds, PreprocessingOptions(normalize=True), columns=['x'])
        np.testing.assert_allclose(out['x'], [0.0, 0.5, 1.0])
        np.testing.assert_array_equal(out['untouched'], [10.0, 20.0, 30.0])

    def test_any_enabled(self):
        assert not PreprocessingOptions().any_enabled
        assert PreprocessingOptions(standardize=True).any_enabled
