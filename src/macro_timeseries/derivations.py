"""
Derived series: interannual changes, trailing moving averages and a
linear trend / residual decomposition.

All derivations look up neighbouring observations by calendar year rather
than by row position, so a gap in the yearly sequence yields an undefined
(null) value instead of silently pairing non-adjacent years. Each indicator
is derived from its own missing-value pattern only.

Annual data has no seasonal cycle to decompose, so the decomposition is
an OLS trend on the year plus the residual around it.
"""

from __future__ import annotations

import operator
from dataclasses import dataclass, field
from functools import reduce

import numpy as np
import polars as pl

from .data import get_indicator_info
from .errors import InsufficientDataError, PipelineIssue
from .series import Series


DERIVED_KINDS = ("yoy_delta", "ma", "trend", "residual")


def derived_column(indicator: str, kind: str, window: int = 3) -> str:
    """
    Name of a derived column, e.g. ("gdp_growth", "ma", 3) -> "gdp_ma3".
    """
    prefix = get_indicator_info(indicator).prefix
    if kind == "ma":
        return f"{prefix}_ma{window}"
    if kind not in DERIVED_KINDS:
        raise ValueError(f"Unknown derivation kind: {kind}")
    return f"{prefix}_{kind}"


def _lagged(series: Series, indicator: str, lag: int) -> pl.DataFrame:
    """Values of `indicator` keyed by the year `lag` years later."""
    return series.frame.select(
        (pl.col("year") + lag).alias("year"),
        pl.col(indicator).alias(f"_lag{lag}"),
    )


def compute_yoy_delta(series: Series, indicator: str) -> pl.DataFrame:
    """
    Interannual change value(t) - value(t-1).

    Null when year t-1 is absent from the series or either value is missing.

    Returns:
        DataFrame with columns [year, yoy_delta], one row per series year
    """
    series._check_indicator(indicator)
    return (
        series.frame
        .select("year", indicator)
        .join(_lagged(series, indicator, 1), on="year", how="left")
        .select(
            "year",
            (pl.col(indicator) - pl.col("_lag1")).alias("yoy_delta"),
        )
        .sort("year")
    )


def compute_trailing_mean(series: Series, indicator: str, window: int = 3) -> pl.DataFrame:
    """
    Right-aligned moving average over calendar years t-window+1 .. t.

    Defined only when every year of the window is present with a value.

    Returns:
        DataFrame with columns [year, ma], one row per series year
    """
    if window < 1:
        raise ValueError(f"Window must be a positive integer, got {window}")
    series._check_indicator(indicator)

    df = series.frame.select("year", pl.col(indicator).alias("_lag0"))
    for lag in range(1, window):
        df = df.join(_lagged(series, indicator, lag), on="year", how="left")

    # Oldest year first: (v(t-2) + v(t-1) + v(t)) / 3 for window 3
    terms = [pl.col(f"_lag{lag}") for lag in reversed(range(window))]
    window_sum = reduce(operator.add, terms)

    return df.select("year", (window_sum / window).alias("ma")).sort("year")


@dataclass(frozen=True)
class TrendFit:
    """OLS fit of value on year."""

    indicator: str
    slope: float
    intercept: float
    n_obs: int

    def predict(self, year: int | float) -> float:
        return self.intercept + self.slope * year


def fit_linear_trend(series: Series, indicator: str) -> TrendFit:
    """
    Closed-form OLS fit over the non-missing observations.

    slope = cov(year, value) / var(year)
    intercept = mean(value) - slope * mean(year)

    Raises:
        InsufficientDataError: If fewer than 2 values are present
    """
    df = series.values(indicator)
    n = df.height
    if n < 2:
        raise InsufficientDataError(
            f"Linear trend needs at least 2 observations, found {n}",
            stage="trend",
            indicator=indicator,
            n_obs=n,
            required=2,
        )

    x = df["year"].to_numpy().astype(np.float64)
    y = df["value"].to_numpy().astype(np.float64)

    x_mean = x.mean()
    y_mean = y.mean()
    dx = x - x_mean

    slope = float(np.dot(dx, y - y_mean) / np.dot(dx, dx))
    intercept = float(y_mean - slope * x_mean)

    return TrendFit(indicator=indicator, slope=slope, intercept=intercept, n_obs=n)


def compute_trend_decomposition(series: Series, indicator: str) -> tuple[pl.DataFrame, TrendFit]:
    """
    Trend and residual for every year with a value.

    Returns:
        ([year, trend, residual] DataFrame, fitted TrendFit)
    """
    fit = fit_linear_trend(series, indicator)
    trend = pl.lit(fit.intercept) + pl.lit(fit.slope) * pl.col("year").cast(pl.Float64)

    df = series.frame.select(
        "year",
        pl.when(pl.col(indicator).is_not_null()).then(trend).alias("trend"),
        (pl.col(indicator) - trend).alias("residual"),
    )

    return df, fit


@dataclass(frozen=True, eq=False)
class DerivedSeries:
    """
    Series with all derived columns attached.

    Column order: year, indicators, <prefix>_yoy_delta..., <prefix>_ma<k>...,
    then <prefix>_trend / <prefix>_residual per indicator.
    """

    series: Series
    frame: pl.DataFrame
    ma_window: int = 3
    trends: dict[str, TrendFit] = field(default_factory=dict)
    issues: tuple[PipelineIssue, ...] = ()

    @property
    def indicators(self) -> tuple[str, ...]:
        return self.series.indicators

    def column(self, indicator: str, kind: str) -> str:
        return derived_column(indicator, kind, self.ma_window)

    def get(self, indicator: str, kind: str) -> dict[int, float | None]:
        """Map year -> derived value (None where undefined)."""
        col = self.column(indicator, kind)
        return dict(zip(self.frame["year"].to_list(), self.frame[col].to_list()))


class DerivationEngine:
    """
    Compute every derivation for every indicator of a Series.

    A derivation that lacks data (only the trend fit can) is recorded as a
    PipelineIssue and its columns are left null. With strict=True the
    InsufficientDataError propagates instead.
    """

    def __init__(self, ma_window: int = 3, strict: bool = False):
        if ma_window < 1:
            raise ValueError(f"ma_window must be a positive integer, got {ma_window}")
        self.ma_window = ma_window
        self.strict = strict

    def derive(self, series: Series) -> DerivedSeries:
        frame = series.frame
        issues: list[PipelineIssue] = []
        trends: dict[str, TrendFit] = {}

        yoy_cols = []
        ma_cols = []
        trend_cols = []

        for indicator in series.indicators:
            yoy = compute_yoy_delta(series, indicator)
            yoy_cols.append(yoy["yoy_delta"].alias(derived_column(indicator, "yoy_delta")))

            ma = compute_trailing_mean(series, indicator, self.ma_window)
            ma_cols.append(ma["ma"].alias(derived_column(indicator, "ma", self.ma_window)))

            trend_name = derived_column(indicator, "trend")
            residual_name = derived_column(indicator, "residual")
            try:
                decomposition, fit = compute_trend_decomposition(series, indicator)
                trends[indicator] = fit
                trend_cols.append(decomposition["trend"].alias(trend_name))
                trend_cols.append(decomposition["residual"].alias(residual_name))
            except InsufficientDataError as e:
                if self.strict:
                    raise
                issues.append(PipelineIssue.from_error(e))
                trend_cols.append(pl.Series(trend_name, [None] * frame.height, dtype=pl.Float64))
                trend_cols.append(pl.Series(residual_name, [None] * frame.height, dtype=pl.Float64))

        # Every helper returns rows in the series' year order
        derived = frame.with_columns(yoy_cols + ma_cols + trend_cols)

        return DerivedSeries(
            series=series,
            frame=derived,
            ma_window=self.ma_window,
            trends=trends,
            issues=tuple(issues),
        )
