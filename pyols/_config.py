"""
Engine configuration.

All tolerances and decision thresholds live in one immutable
:class:`EngineConfig`. Nothing here is global: callers build a config
(or take the default) and pass it explicitly.

Resolution order for :meth:`EngineConfig.from_env` (first match wins):
    1. Keyword overrides passed to ``from_env``.
    2. ``PYOLS_*`` environment variables.
    3. Field defaults.

Examples
--------
Loosen the singular-matrix tolerance from the shell::

    export PYOLS_SINGULAR_TOL=1e-12

Use the uniform leverage approximation::

    config = EngineConfig(leverage="uniform")
"""

import os
from dataclasses import dataclass, replace as _replace
from typing import Union

_VALID_LEVERAGE = {"exact", "uniform"}

# Environment variable -> (field name, parser)
_ENV_FIELDS = {
    "PYOLS_SINGULAR_TOL": ("singular_tol", float),
    "PYOLS_ALPHA": ("alpha", float),
    "PYOLS_LEVERAGE": ("leverage", str),
    "PYOLS_INFLUENCE_THRESHOLD": ("influence_threshold", str),
}


@dataclass(frozen=True)
class EngineConfig:
    """
    Tolerances and thresholds for fitting and diagnostics.

    Attributes
    ----------
    singular_tol : float
        Pivot / determinant magnitude below which X'X is singular.
    alpha : float
        Significance level for the normality and homoscedasticity checks.
    linearity_limit : float
        Largest |corr(residuals, fitted)| still classified as linear.
    dw_lower, dw_upper : float
        Durbin-Watson acceptance band.
    vif_suspect, vif_problem : float
        VIF levels flagged as suspect / problem.
    leverage : str
        'exact' (hat-matrix diagonal) or 'uniform' (p/n).
    influence_threshold : str or float
        '4/n' or a fixed Cook's distance cut-off (e.g. 0.5).
    """
    singular_tol: float = 1e-10
    alpha: float = 0.05
    linearity_limit: float = 0.3
    dw_lower: float = 1.5
    dw_upper: float = 2.5
    vif_suspect: float = 5.0
    vif_problem: float = 10.0
    leverage: str = "exact"
    influence_threshold: Union[str, float] = "4/n"

    def __post_init__(self):
        if not self.singular_tol > 0:
            raise ValueError(f"singular_tol must be positive, got {self.singular_tol}")
        if not 0 < self.alpha < 1:
            raise ValueError(f"alpha must be in (0, 1), got {self.alpha}")
        if self.dw_lower > self.dw_upper:
            raise ValueError("dw_lower must not exceed dw_upper")
        if self.vif_suspect > self.vif_problem:
            raise ValueError("vif_suspect must not exceed vif_problem")
        if self.leverage not in _VALID_LEVERAGE:
            raise ValueError(
                f"Unknown leverage method '{self.leverage}'. "
                f"Choose from: {sorted(_VALID_LEVERAGE)}"
            )
        # Normalise numeric strings ("0.5") to floats
        threshold = self.influence_threshold
        if isinstance(threshold, str) and threshold.strip() == "4/n":
            object.__setattr__(self, "influence_threshold", "4/n")
        else:
            if isinstance(threshold, str):
                try:
                    threshold = float(threshold)
                except ValueError:
                    raise ValueError(
                        f"influence_threshold must be '4/n' or a number, got '{threshold}'"
                    ) from None
                object.__setattr__(self, "influence_threshold", threshold)
            if not threshold > 0:
                raise ValueError(f"influence_threshold must be positive, got {threshold}")

    @classmethod
    def from_env(cls, **overrides) -> "EngineConfig":
        """Build a config from ``PYOLS_*`` environment variables."""
        values = {}
        for env_name, (field, parse) in _ENV_FIELDS.items():
            raw = os.environ.get(env_name, "").strip()
            if not raw:
                continue
            try:
                values[field] = parse(raw.lower() if parse is str else raw)
            except ValueError:
                raise ValueError(f"Invalid value for {env_name}: '{raw}'") from None
        values.update(overrides)
        return cls(**values)

    def replace(self, **changes) -> "EngineConfig":
        """Return a copy with some fields changed."""
        return _replace(self, **changes)

    def cooks_threshold(self, n: int) -> float:
        """Cook's distance cut-off for a sample of size n."""
        if self.influence_threshold == "4/n":
            return 4.0 / n
        return float(self.influence_threshold)


DEFAULT_CONFIG = EngineConfig()
