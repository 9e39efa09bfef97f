"""Regression diagnostics for OLS fits.

Provides checks of the classical linear-model assumptions plus
collinearity and influence measures:

* **Linearity**: Pearson correlation between residuals and fitted
  values.  A well-specified model leaves no linear structure in the
  residuals, so |r| should be small (< 0.3).
* **Normality**: Shapiro–Wilk test on the residuals.
* **Homoscedasticity**: Breusch–Pagan style LM test: n · corr(e², ŷ)²
  compared against a χ²(1) distribution.
* **Independence**: Durbin–Watson statistic
  DW = Σ(eᵢ − eᵢ₋₁)² / Σeᵢ².  Values near 2 indicate no first-order
  autocorrelation; < 1.5 suggests positive and > 2.5 negative
  autocorrelation.
* **Variance Inflation Factor (VIF)**: VIF_j = 1 / (1 − R²_j) where
  R²_j comes from regressing X_j on the other predictors.  VIF ≥ 5 is
  suspect; VIF ≥ 10 is a problem.
* **Cook's distance**: combined leverage and residual size per
  observation; observations above 4/n (or a fixed cut-off) are flagged.
* **Residual plots**: normal Q-Q pairs and standardized residuals for
  the scale-location view.

Every function here is pure.  :func:`diagnose` runs them all and never
aborts: a check that fails on an ill-conditioned sub-problem is logged
and replaced by a neutral record.
"""

import logging
import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Dict, Optional

import numpy as np
import pandas as pd

from ._config import DEFAULT_CONFIG, EngineConfig
from ._core.distributions import chi_square_cdf, inverse_normal_cdf
from ._core.lm_solver import RegressionResult, fit_design
from ._core.shapiro import ShapiroWilkResult, shapiro_wilk
from ._utils import correlation, readonly
from .dataset import DesignMatrix
from .exceptions import RegressionError

logger = logging.getLogger(__name__)

# Leverage this close to 1 leaves Cook's distance undefined
LEVERAGE_ONE_TOL = 1e-10


class Status(str, Enum):
    """Outcome of one assumption check."""
    GOOD = "good"
    WARNING = "warning"


class VIFFlag(str, Enum):
    """Collinearity classification of one regressor."""
    OK = "ok"
    SUSPECT = "suspect"
    PROBLEM = "problem"


@dataclass(frozen=True)
class AssumptionCheck:
    """
    Result of one assumption test.

    ``score`` is in [0, 1], higher meaning better support for the
    assumption (a p-value where the test has one).
    """
    name: str
    statistic: float
    p_value: Optional[float]
    score: float
    status: Status
    message: str

    @property
    def passed(self) -> bool:
        return self.status is Status.GOOD


@dataclass(frozen=True)
class InfluenceMeasures:
    """Per-observation leverage and Cook's distance."""
    leverage: np.ndarray
    cooks_distance: np.ndarray
    threshold: float
    high_influence: np.ndarray
    method: str

    @property
    def n_high_influence(self) -> int:
        return int(np.sum(self.high_influence))

    @property
    def influence_percentage(self) -> float:
        n = len(self.cooks_distance)
        return 100.0 * self.n_high_influence / n if n else 0.0


@dataclass(frozen=True)
class DiagnosticReport:
    """All diagnostics for one fit."""
    linearity: AssumptionCheck
    normality: AssumptionCheck
    homoscedasticity: AssumptionCheck
    independence: AssumptionCheck
    vif: Dict[str, float]
    vif_flags: Dict[str, VIFFlag]
    influence: InfluenceMeasures
    autocorrelation: float
    qq: pd.DataFrame = field(repr=False)
    standardized_residuals: np.ndarray = field(repr=False)
    shapiro: ShapiroWilkResult = field(repr=False)

    @property
    def checks(self) -> Dict[str, AssumptionCheck]:
        return {
            'linearity': self.linearity,
            'normality': self.normality,
            'homoscedasticity': self.homoscedasticity,
            'independence': self.independence,
        }

    @property
    def scale_location(self) -> np.ndarray:
        """|standardized residuals|, plotted against the fitted values."""
        return np.abs(self.standardized_residuals)

    @property
    def all_good(self) -> bool:
        return all(check.passed for check in self.checks.values())

    def to_frame(self) -> pd.DataFrame:
        """Assumption checks as a table (for text / CSV export)."""
        return pd.DataFrame(
            [
                {
                    'test': key,
                    'statistic': check.statistic,
                    'p_value': check.p_value,
                    'score': check.score,
                    'status': check.status.value,
                    'message': check.message,
                }
                for key, check in self.checks.items()
            ]
        ).set_index('test')

    def vif_frame(self) -> pd.DataFrame:
        return pd.DataFrame(
            {
                'vif': pd.Series(self.vif),
                'flag': pd.Series({k: v.value for k, v in self.vif_flags.items()}),
            }
        )


# ---------------------------------------------------------------------------
# Individual checks
# ---------------------------------------------------------------------------


def _status(ok: bool) -> Status:
    return Status.GOOD if ok else Status.WARNING


def linearity_check(
    result: RegressionResult, config: EngineConfig = DEFAULT_CONFIG
) -> AssumptionCheck:
    """|corr(residuals, fitted)| below the linearity limit."""
    r = abs(correlation(result.residuals, result.predictions))
    ok = r < config.linearity_limit
    return AssumptionCheck(
        name='linearity',
        statistic=r,
        p_value=None,
        score=1.0 - r,
        status=_status(ok),
        message=(
            f"Linear relationship adequate (|r| = {r:.4f})" if ok
            else f"Residuals correlate with fitted values (|r| = {r:.4f})"
        ),
    )


def normality_check(
    result: RegressionResult,
    config: EngineConfig = DEFAULT_CONFIG,
    shapiro: Optional[ShapiroWilkResult] = None,
) -> AssumptionCheck:
    """Shapiro-Wilk on the residuals; good iff p > alpha."""
    sw = shapiro if shapiro is not None else shapiro_wilk(result.residuals)
    ok = sw.p_value > config.alpha
    if sw.method == 'skipped':
        message = f"Shapiro-Wilk skipped (n = {sw.n})"
    elif ok:
        message = f"Residuals consistent with normality (W = {sw.statistic:.4f}, p = {sw.p_value:.4f})"
    else:
        message = f"Residuals deviate from normality (W = {sw.statistic:.4f}, p = {sw.p_value:.4f})"
    return AssumptionCheck(
        name='normality',
        statistic=sw.statistic,
        p_value=sw.p_value,
        score=sw.p_value,
        status=_status(ok),
        message=message,
    )


def breusch_pagan(residuals, predictions):
    """
    LM statistic n · corr(e², ŷ)² and its χ²(1) p-value.

    Returns
    -------
    (float, float)
        (LM, p-value)
    """
    residuals = np.asarray(residuals, dtype=np.float64)
    n = len(residuals)
    r = correlation(residuals**2, predictions)
    lm = n * r * r
    return lm, 1.0 - chi_square_cdf(lm, 1)


def homoscedasticity_check(
    result: RegressionResult, config: EngineConfig = DEFAULT_CONFIG
) -> AssumptionCheck:
    lm, p = breusch_pagan(result.residuals, result.predictions)
    ok = p > config.alpha
    return AssumptionCheck(
        name='homoscedasticity',
        statistic=lm,
        p_value=p,
        score=p,
        status=_status(ok),
        message=(
            f"Constant error variance (LM = {lm:.4f}, p = {p:.4f})" if ok
            else f"Heteroscedasticity detected (LM = {lm:.4f}, p = {p:.4f})"
        ),
    )


def durbin_watson(residuals) -> float:
    """Σ(eᵢ − eᵢ₋₁)² / Σeᵢ²; 2.0 when undefined."""
    e = np.asarray(residuals, dtype=np.float64)
    denominator = float(np.sum(e**2))
    if len(e) < 2 or denominator == 0:
        return 2.0
    return float(np.sum(np.diff(e)**2) / denominator)


def lag1_autocorrelation(residuals) -> float:
    """First-order autocorrelation of the residual series."""
    e = np.asarray(residuals, dtype=np.float64)
    n = len(e)
    if n < 2:
        return 0.0
    d = e - e.mean()
    variance = float(np.sum(d**2)) / n
    if variance == 0:
        return 0.0
    return float(np.sum(d[1:] * d[:-1]) / ((n - 1) * variance))


def independence_check(
    result: RegressionResult, config: EngineConfig = DEFAULT_CONFIG
) -> AssumptionCheck:
    dw = durbin_watson(result.residuals)
    if dw < config.dw_lower:
        message = f"Positive autocorrelation suspected (DW = {dw:.4f})"
    elif dw > config.dw_upper:
        message = f"Negative autocorrelation suspected (DW = {dw:.4f})"
    else:
        message = f"No autocorrelation (DW = {dw:.4f})"
    return AssumptionCheck(
        name='independence',
        statistic=dw,
        p_value=None,
        score=max(0.0, 1.0 - abs(dw - 2.0) / 2.0),
        status=_status(config.dw_lower <= dw <= config.dw_upper),
        message=message,
    )


# ---------------------------------------------------------------------------
# Collinearity
# ---------------------------------------------------------------------------


def classify_vif(vif: float, config: EngineConfig = DEFAULT_CONFIG) -> VIFFlag:
    if vif >= config.vif_problem:
        return VIFFlag.PROBLEM
    if vif >= config.vif_suspect:
        return VIFFlag.SUSPECT
    return VIFFlag.OK


def variance_inflation_factors(
    design: DesignMatrix, config: EngineConfig = DEFAULT_CONFIG
) -> Dict[str, float]:
    """
    VIF for every independent variable.

    Each VIF comes from an auxiliary fit of that regressor on the others
    through the package's single OLS solver. A failing auxiliary fit
    yields the neutral value 1.0.

    Returns
    -------
    dict
        Variable name -> VIF (>= 1, ``inf`` under perfect collinearity)
    """
    names = list(design.independents)
    if len(names) < 2:
        return {name: 1.0 for name in names}

    vifs = {}
    for name in names:
        try:
            r_squared = fit_design(design.drop(name), config=config).r_squared
        except RegressionError as exc:
            logger.debug("VIF auxiliary regression for '%s' failed: %s", name, exc)
            vifs[name] = 1.0
            continue
        # VIF is infinite when R² = 1: the coefficient is not identifiable
        vif = 1.0 / (1.0 - r_squared) if r_squared < 1.0 else math.inf
        vifs[name] = max(1.0, vif)
    return vifs


# ---------------------------------------------------------------------------
# Influence
# ---------------------------------------------------------------------------


def hat_diagonal(design: DesignMatrix, result: RegressionResult) -> np.ndarray:
    """hᵢᵢ = xᵢᵀ (XᵀX)⁻¹ xᵢ."""
    X = design.X
    return np.einsum('ij,jk,ik->i', X, result.xtx_inverse, X)


def influence_measures(
    result: RegressionResult,
    design: Optional[DesignMatrix] = None,
    config: EngineConfig = DEFAULT_CONFIG,
) -> InfluenceMeasures:
    """
    Leverage and Cook's distance for every observation.

    With ``config.leverage == 'exact'`` the hat-matrix diagonal is used
    and D = e² / (p MSE) · h / (1 − h)². With ``'uniform'`` every
    observation gets leverage p/n and D = e² h / (p MSE). D is nan, and
    the observation is not flagged, where h is 1.

    Raises
    ------
    ValueError
        If exact leverage is requested without the design matrix.
    """
    n, p = result.n_obs, result.n_params
    e2 = np.asarray(result.residuals)**2

    if config.leverage == 'exact':
        if design is None:
            raise ValueError("Exact leverage needs the design matrix")
        leverage = hat_diagonal(design, result)
    else:
        leverage = np.full(n, p / n)

    if result.mse > 0:
        with np.errstate(divide='ignore', invalid='ignore'):
            if config.leverage == 'exact':
                cooks = e2 / (p * result.mse) * leverage / (1.0 - leverage)**2
            else:
                cooks = e2 * leverage / (p * result.mse)
    else:
        cooks = np.zeros(n)

    # D is undefined where h = 1 (the point is fitted exactly by its own
    # parameter); report nan and never flag it
    undefined = leverage >= 1.0 - LEVERAGE_ONE_TOL
    if undefined.any():
        cooks = np.where(undefined, np.nan, cooks)
        logger.debug("Cook's distance undefined for %d observations with leverage 1",
                     int(undefined.sum()))

    threshold = config.cooks_threshold(n)
    return InfluenceMeasures(
        leverage=readonly(leverage),
        cooks_distance=readonly(cooks),
        threshold=threshold,
        high_influence=np.asarray(~np.isnan(cooks) & (np.nan_to_num(cooks) > threshold)),
        method=config.leverage,
    )


# ---------------------------------------------------------------------------
# Residual plot series
# ---------------------------------------------------------------------------


def qq_points(residuals) -> pd.DataFrame:
    """
    Normal Q-Q series for the residuals.

    The i-th smallest residual (0-based) is paired with the standard
    normal quantile at (i + 0.5) / n.

    Returns
    -------
    DataFrame
        Columns ``theoretical`` and ``sample``, one row per residual,
        sorted by ``sample``
    """
    e = np.sort(np.asarray(residuals, dtype=np.float64))
    n = len(e)
    theoretical = np.array([inverse_normal_cdf((i + 0.5) / n) for i in range(n)])
    return pd.DataFrame({'theoretical': theoretical, 'sample': e})


def standardized_residuals(residuals) -> np.ndarray:
    """(e − ē) / s with the n − 1 standard deviation; zeros when s = 0."""
    e = np.asarray(residuals, dtype=np.float64)
    if len(e) < 2:
        return readonly(np.zeros(len(e)))
    sd = float(np.std(e, ddof=1))
    if sd == 0:
        return readonly(np.zeros(len(e)))
    return readonly((e - e.mean()) / sd)


# ---------------------------------------------------------------------------
# Full report
# ---------------------------------------------------------------------------


def _neutral_check(name: str, reason: str) -> AssumptionCheck:
    return AssumptionCheck(
        name=name,
        statistic=math.nan,
        p_value=None,
        score=1.0,
        status=Status.GOOD,
        message=f"{name} check not computed: {reason}",
    )


def _guarded(label: str, compute: Callable, fallback: Callable):
    """Run one diagnostic; on numeric failure log it and use the fallback."""
    try:
        return compute()
    except (RegressionError, ArithmeticError, ValueError) as exc:
        logger.debug("%s diagnostics failed: %s", label, exc)
        return fallback(str(exc))


def diagnose(
    result: RegressionResult,
    design: DesignMatrix,
    config: Optional[EngineConfig] = None,
) -> DiagnosticReport:
    """
    Run every diagnostic against one fit.

    Parameters
    ----------
    result : RegressionResult
        The fit to examine
    design : DesignMatrix
        The design it was fitted on (for VIF and exact leverage)
    config : EngineConfig, optional
        Thresholds; defaults to :data:`DEFAULT_CONFIG`

    Returns
    -------
    DiagnosticReport
    """
    config = config or DEFAULT_CONFIG
    n = result.n_obs

    sw = _guarded(
        "Shapiro-Wilk",
        lambda: shapiro_wilk(result.residuals),
        lambda reason: ShapiroWilkResult(statistic=math.nan, p_value=1.0, n=n, method='skipped'),
    )

    def neutral_influence(reason):
        return InfluenceMeasures(
            leverage=readonly(np.full(n, result.n_params / n)),
            cooks_distance=readonly(np.zeros(n)),
            threshold=config.cooks_threshold(n),
            high_influence=np.zeros(n, dtype=bool),
            method='uniform',
        )

    vif = _guarded(
        "VIF",
        lambda: variance_inflation_factors(design, config),
        lambda reason: {name: 1.0 for name in design.independents},
    )

    return DiagnosticReport(
        linearity=_guarded(
            "Linearity", lambda: linearity_check(result, config),
            lambda reason: _neutral_check('linearity', reason),
        ),
        normality=_guarded(
            "Normality", lambda: normality_check(result, config, shapiro=sw),
            lambda reason: _neutral_check('normality', reason),
        ),
        homoscedasticity=_guarded(
            "Breusch-Pagan", lambda: homoscedasticity_check(result, config),
            lambda reason: _neutral_check('homoscedasticity', reason),
        ),
        independence=_guarded(
            "Durbin-Watson", lambda: independence_check(result, config),
            lambda reason: _neutral_check('independence', reason),
        ),
        vif=vif,
        vif_flags={name: classify_vif(value, config) for name, value in vif.items()},
        influence=_guarded(
            "Cook's distance", lambda: influence_measures(result, design, config),
            neutral_influence,
        ),
        autocorrelation=lag1_autocorrelation(result.residuals),
        qq=qq_points(result.residuals),
        standardized_residuals=standardized_residuals(result.residuals),
        shapiro=sw,
    )
