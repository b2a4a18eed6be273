"""
Pearson correlation between two indicators.

Only years where both indicators have a value are used (pairwise-complete
observations). Coefficient, two-sided p-value and Fisher-z confidence
interval come from scipy.stats.pearsonr.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass

import numpy as np
import polars as pl
from scipy import stats

from .errors import DegenerateInputError, InsufficientDataError
from .series import Series


MIN_PAIRED_OBSERVATIONS = 3


@dataclass(frozen=True)
class CorrelationResult:
    """Pearson correlation with significance test and confidence interval."""

    indicator_x: str
    indicator_y: str
    coefficient: float
    p_value: float
    ci_low: float
    ci_high: float
    n_obs: int
    confidence_level: float = 0.95

    def to_dict(self) -> dict:
        return asdict(self)


def paired_observations(series: Series, x: str, y: str) -> pl.DataFrame:
    """Years where both indicators are present, as [year, x, y]."""
    series._check_indicator(x)
    series._check_indicator(y)
    return (
        series.frame
        .select("year", x, y)
        .filter(pl.col(x).is_not_null() & pl.col(y).is_not_null())
    )


def pearson_correlation(
    x: np.ndarray,
    y: np.ndarray,
    confidence_level: float = 0.95,
    names: tuple[str, str] = ("x", "y"),
) -> CorrelationResult:
    """
    Pearson r, p-value and Fisher-z confidence interval of two aligned arrays.

    Raises:
        InsufficientDataError: If fewer than 3 pairs are given
        DegenerateInputError: If either array has zero variance
    """
    if not 0 < confidence_level < 1:
        raise ValueError(f"confidence_level must be in (0, 1), got {confidence_level}")

    x = np.asarray(x, dtype=np.float64)
    y = np.asarray(y, dtype=np.float64)
    if x.shape != y.shape:
        raise ValueError(f"Sequences are not aligned: {x.shape} vs {y.shape}")

    indicator = f"{names[0]}~{names[1]}"
    n = x.size
    if n < MIN_PAIRED_OBSERVATIONS:
        raise InsufficientDataError(
            f"Correlation needs at least {MIN_PAIRED_OBSERVATIONS} paired observations, found {n}",
            stage="correlation",
            indicator=indicator,
            n_obs=n,
            required=MIN_PAIRED_OBSERVATIONS,
        )

    # pearsonr returns nan (with a warning) for constant input
    constant = [name for name, values in zip(names, (x, y)) if np.ptp(values) == 0.0]
    if constant:
        raise DegenerateInputError(
            f"Zero variance in {constant} across {n} paired observations",
            indicator=indicator,
        )

    result = stats.pearsonr(x, y)
    r = float(result.statistic)

    if abs(r) == 1.0:
        p_value = 0.0
        ci_low = ci_high = r
    else:
        p_value = float(result.pvalue)
        # [-1, 1] when n == 3 (infinite standard error on the z scale)
        interval = result.confidence_interval(confidence_level=confidence_level)
        ci_low, ci_high = float(interval.low), float(interval.high)

    return CorrelationResult(
        indicator_x=names[0],
        indicator_y=names[1],
        coefficient=r,
        p_value=p_value,
        ci_low=ci_low,
        ci_high=ci_high,
        n_obs=n,
        confidence_level=confidence_level,
    )


class CorrelationAnalyzer:
    """Correlation of two indicators of a Series."""

    def __init__(self, confidence_level: float = 0.95):
        self.confidence_level = confidence_level

    def analyze(self, series: Series, x: str = "inflation", y: str = "gdp_growth") -> CorrelationResult:
        pairs = paired_observations(series, x, y)
        return pearson_correlation(
            pairs[x].to_numpy(),
            pairs[y].to_numpy(),
            confidence_level=self.confidence_level,
            names=(x, y),
        )
