"""
Linear regression with R-style interface and output.

This is the user-facing API: pick a dependent column and a list of
independent columns, get back a fitted model with inference, a printable
summary and on-demand diagnostics.
"""

import logging
from typing import List, Mapping, Optional, Union

import numpy as np
import pandas as pd

from ._config import DEFAULT_CONFIG, EngineConfig
from ._core.distributions import t_distribution_ppf
from ._core.lm_solver import RegressionResult, fit_design
from .dataset import Dataset, DesignMatrix
from .diagnostics import DiagnosticReport, diagnose, hat_diagonal
from .exceptions import InvalidSelection
from .preprocessing import PreprocessingOptions, preprocess

logger = logging.getLogger(__name__)

DataLike = Union[Dataset, pd.DataFrame, Mapping[str, object]]


def as_dataset(data: DataLike) -> Dataset:
    """Coerce a DataFrame, column mapping or Dataset to a Dataset."""
    if isinstance(data, Dataset):
        return data
    if isinstance(data, pd.DataFrame):
        return Dataset.from_frame(data)
    if isinstance(data, Mapping):
        return Dataset(data)
    if isinstance(data, (list, tuple)):
        return Dataset.from_rows(data)
    raise TypeError(f"Unsupported data type: {type(data).__name__}")


class LinearModel:
    """
    Fit linear regression model (like R's lm()).

    Examples
    --------
    >>> from pyols import lm
    >>>
    >>> data = {'x': [1, 2, 3, 4, 5], 'y': [2.1, 3.9, 6.2, 7.8, 10.1]}
    >>> model = lm(y='y', X=['x'], data=data)
    >>>
    >>> model.summary()        # Prints table like R
    >>> model.coef             # Named coefficients
    >>> model.pvalues          # P-values for each coefficient
    >>> model.conf_int()       # Confidence intervals
    >>> model.diagnose()       # Assumption checks, VIF, influence
    """

    def __init__(
        self,
        y: Union[str, np.ndarray],
        X: Union[List[str], np.ndarray],
        data: Optional[DataLike] = None,
        preprocessing: Optional[PreprocessingOptions] = None,
        backend: str = 'auto',
        config: Optional[EngineConfig] = None,
    ):
        """
        Fit linear regression model.

        Parameters
        ----------
        y : str or array
            Response variable (outcome)
            - If string: column name in data
            - If array: numeric values
        X : list of str or array
            Predictor variables (covariates)
            - If list of strings: column names in data
            - If array: numeric matrix (n × k)
        data : Dataset, DataFrame or mapping, optional
            Dataset containing y and X variables
        preprocessing : PreprocessingOptions, optional
            Outlier removal / standardization / normalization applied to
            the selected columns before fitting
        backend : str
            Least-squares backend: 'auto', 'normal_equations', 'closed_form'
        config : EngineConfig, optional
            Tolerances and diagnostic thresholds

        Raises
        ------
        InvalidSelection
            No dependent variable or no independent variables
        InsufficientData, DegenerateDesign, DegenerateResponse
            If the fit is not possible
        """
        self.config = config or DEFAULT_CONFIG

        if y is None or (isinstance(y, str) and not y.strip()):
            raise InvalidSelection("No dependent variable selected")

        if isinstance(y, str):
            if data is None:
                raise ValueError("Must provide data when y is a string")
            if isinstance(X, str) or not all(isinstance(x, str) for x in X):
                raise ValueError("X must be a list of column names when y is a string")
            dataset = as_dataset(data)
            self.y_name = y
            self.X_names = list(X)
        else:
            y_values = np.asarray(y, dtype=np.float64)
            X_values = np.asarray(X, dtype=np.float64)
            if X_values.ndim == 1:
                X_values = X_values[:, np.newaxis]
            if X_values.shape[1] == 0:
                raise InvalidSelection("At least one independent variable is required")
            self.y_name = 'y'
            self.X_names = [f'x{i}' for i in range(X_values.shape[1])]
            columns = {self.y_name: y_values}
            columns.update({name: X_values[:, i] for i, name in enumerate(self.X_names)})
            dataset = Dataset(columns)

        if not self.X_names:
            raise InvalidSelection("At least one independent variable is required")
        selected = [self.y_name] + self.X_names
        dataset.resolve_columns(selected)

        self.preprocessing = preprocessing
        self.data = preprocess(dataset, preprocessing, columns=selected)
        self.design: DesignMatrix = self.data.design(self.y_name, self.X_names)

        # Metadata
        self.n_obs = self.design.n_obs
        self.n_coef = self.design.n_params
        self.var_names = self.design.names

        self.result: RegressionResult = fit_design(self.design, backend=backend, config=self.config)
        self._unpack(self.result)
        self._diagnostics: Optional[DiagnosticReport] = None

    def _unpack(self, result: RegressionResult):
        """Expose result fields under the familiar attribute names."""
        self.coefficients = result.coefficients
        self.std_errors = result.std_errors
        self.t_values = result.t_values
        self.pvalues = result.p_values
        self.residuals = result.residuals
        self.fitted_values = result.predictions
        self.df_residual = result.df_residual
        self.sigma = result.sigma
        self.mse = result.mse
        self.r_squared = result.r_squared
        self.adj_r_squared = result.adj_r_squared
        self.f_statistic = result.f_statistic
        self.f_pvalue = result.f_pvalue
        self.backend_name = result.backend

    @property
    def coef(self) -> pd.Series:
        """Named coefficients (pandas Series)."""
        return pd.Series(self.coefficients, index=self.var_names)

    def conf_int(self, alpha: float = 0.05) -> pd.DataFrame:
        """
        Confidence intervals for coefficients.

        Parameters
        ----------
        alpha : float
            Significance level (default: 0.05 for 95% CI)

        Returns
        -------
        DataFrame
            Confidence intervals with columns 'lower' and 'upper'
        """
        if not 0 < alpha < 1:
            raise ValueError(f"alpha must be in (0, 1), got {alpha}")
        t_crit = t_distribution_ppf(1 - alpha / 2, self.df_residual)
        lower = self.coefficients - t_crit * self.std_errors
        upper = self.coefficients + t_crit * self.std_errors

        return pd.DataFrame({
            'lower': lower,
            'upper': upper
        }, index=self.var_names)

    def coef_table(self) -> pd.DataFrame:
        """Estimate, standard error, t and p per coefficient (for export)."""
        return pd.DataFrame({
            'estimate': self.coefficients,
            'std_error': self.std_errors,
            't_value': self.t_values,
            'p_value': self.pvalues,
        }, index=self.var_names)

    def equation(self, digits: int = 3) -> str:
        """Fitted equation, e.g. ``y = 1.000 + 2.000 × x``."""
        text = f"{self.y_name} = {self.coefficients[0]:.{digits}f}"
        for name, coef in zip(self.X_names, self.coefficients[1:]):
            sign = ' + ' if coef >= 0 else ' - '
            text += f"{sign}{abs(coef):.{digits}f} × {name}"
        return text

    def information_criteria(self) -> dict:
        """
        Likelihood-based fit measures.

        Returns
        -------
        dict
            log_likelihood, aic, bic, mallows_cp, press, rmse, mae
        """
        n, p = self.n_obs, self.n_coef
        rss = self.result.ss_residual
        mse = self.mse

        with np.errstate(divide='ignore', invalid='ignore'):
            log_lik = -(n / 2) * np.log(2 * np.pi * mse) - rss / (2 * mse)
            h = hat_diagonal(self.design, self.result)
            press = float(np.sum((self.residuals / (1 - h))**2))
            cp = rss / mse - n + 2 * p

        return {
            'log_likelihood': float(log_lik),
            'aic': float(2 * p - 2 * log_lik),
            'bic': float(np.log(n) * p - 2 * log_lik),
            'mallows_cp': float(cp),
            'press': press,
            'rmse': float(np.sqrt(rss / n)),
            'mae': float(np.mean(np.abs(self.residuals))),
        }

    def feature_importance(self) -> pd.DataFrame:
        """
        Rank independent variables by |t|.

        Returns
        -------
        DataFrame
            coefficient, std_error, importance (|t|) and relative share
            in percent, sorted by importance
        """
        coef = self.coefficients[1:]
        se = self.std_errors[1:]
        with np.errstate(divide='ignore', invalid='ignore'):
            importance = np.abs(coef / se)
            total = importance.sum()
            relative = 100.0 * importance / total if np.isfinite(total) and total > 0 \
                else np.full(len(coef), np.nan)

        table = pd.DataFrame({
            'coefficient': coef,
            'std_error': se,
            'importance': importance,
            'relative_importance': relative,
        }, index=self.X_names)
        return table.sort_values('importance', ascending=False)

    def diagnose(self) -> DiagnosticReport:
        """Assumption checks, VIF and influence for this fit (cached)."""
        if self._diagnostics is None:
            self._diagnostics = diagnose(self.result, self.design, self.config)
        return self._diagnostics

    def summary(self) -> str:
        """
        Print summary of regression results (like R's summary.lm).

        Returns
        -------
        str
            The printed text, for export
        """
        lines = []
        lines.append("=" * 80)
        lines.append("LINEAR REGRESSION RESULTS")
        lines.append("=" * 80)
        lines.append("")

        # Model info
        lines.append(f"Dependent variable: {self.y_name}")
        lines.append(f"Number of observations: {self.n_obs}")
        lines.append(f"Degrees of freedom: {self.df_residual} (residual), {self.n_coef - 1} (model)")
        lines.append("")

        # Residuals
        lines.append("Residuals:")
        residual_summary = pd.Series(self.residuals).describe()
        lines.append(f"  Min:    {residual_summary['min']:>10.4f}")
        lines.append(f"  1Q:     {residual_summary['25%']:>10.4f}")
        lines.append(f"  Median: {residual_summary['50%']:>10.4f}")
        lines.append(f"  3Q:     {residual_summary['75%']:>10.4f}")
        lines.append(f"  Max:    {residual_summary['max']:>10.4f}")
        lines.append("")

        # Coefficients table
        lines.append("Coefficients:")
        lines.append("-" * 80)
        lines.append(f"{'Variable':<20} {'Estimate':>12} {'Std. Error':>12} {'t value':>10} {'Pr(>|t|)':>12}")
        lines.append("-" * 80)

        for i, name in enumerate(self.var_names):
            lines.append(
                f"{name:<20} {self.coefficients[i]:>12.4f} {self.std_errors[i]:>12.4f} "
                f"{self.t_values[i]:>10.3f} {_format_p(self.pvalues[i]):>12}{_stars(self.pvalues[i])}"
            )

        lines.append("-" * 80)
        lines.append("Signif. codes:  0 '***' 0.001 '**' 0.01 '*' 0.05 '.' 0.1 ' ' 1")
        lines.append("")

        # Model fit statistics
        lines.append(f"Residual standard error: {self.sigma:.4f} on {self.df_residual} degrees of freedom")
        lines.append(f"Multiple R-squared:      {self.r_squared:.4f}")
        lines.append(f"Adjusted R-squared:      {self.adj_r_squared:.4f}")
        if not np.isnan(self.f_statistic):
            f_pval_str = f"{self.f_pvalue:.4e}" if self.f_pvalue >= 0.0001 else "< 1e-04"
            lines.append(
                f"F-statistic:             {self.f_statistic:.2f} on {self.n_coef - 1} "
                f"and {self.df_residual} DF, p-value: {f_pval_str}"
            )
        lines.append("")
        lines.append(f"Equation: {self.equation()}")
        lines.append(f"Backend: {self.backend_name}")
        lines.append("=" * 80)

        text = "\n".join(lines)
        print()
        print(text)
        print()
        return text

    def predict(self, newdata: Union[DataLike, np.ndarray]) -> np.ndarray:
        """
        Predict response for new data.

        Parameters
        ----------
        newdata : Dataset, DataFrame, mapping or array
            New predictor values
            - If tabular: must have columns matching self.X_names
            - If array: must have same number of columns as X

        Returns
        -------
        array
            Predicted values
        """
        if isinstance(newdata, np.ndarray):
            X_new = np.asarray(newdata, dtype=np.float64)
            if X_new.ndim == 1:
                X_new = X_new[:, np.newaxis]
        else:
            table = as_dataset(newdata)
            table.resolve_columns(self.X_names)
            X_new = np.column_stack([table[name] for name in self.X_names])

        if X_new.shape[1] != len(self.X_names):
            raise ValueError(
                f"Expected {len(self.X_names)} predictor columns, got {X_new.shape[1]}"
            )

        # Add intercept
        X_new_full = np.column_stack([np.ones(len(X_new)), X_new])
        return X_new_full @ self.coefficients

    def __repr__(self):
        return f"LinearModel(n={self.n_obs}, p={self.n_coef - 1}, R²={self.r_squared:.3f})"


def _stars(p: float) -> str:
    if np.isnan(p):
        return ''
    if p < 0.001:
        return ' ***'
    if p < 0.01:
        return ' **'
    if p < 0.05:
        return ' *'
    if p < 0.1:
        return ' .'
    return ''


def _format_p(p: float) -> str:
    if np.isnan(p):
        return 'NA'
    return f"{p:.4f}" if p >= 0.0001 else "<.0001"


def lm(y, X, data=None, **kwargs):
    """
    Fit linear regression model (convenience function).

    Parameters
    ----------
    y : str or array
        Response variable
    X : list of str or array
        Predictor variables
    data : Dataset, DataFrame or mapping, optional
        Dataset
    **kwargs
        Additional arguments passed to LinearModel

    Returns
    -------
    LinearModel
        Fitted model object

    Examples
    --------
    >>> model = lm(y='mpg', X=['wt', 'hp'], data=mtcars)
    >>> model.summary()
    >>> model.diagnose().vif
    >>> model.predict(pd.DataFrame({'wt': [3.0, 3.5], 'hp': [110, 150]}))
    """
    return LinearModel(y=y, X=X, data=data, **kwargs)
