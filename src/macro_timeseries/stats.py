"""
Descriptive statistics per indicator.

Computed at full precision over non-missing values; rounding is left to
the report layer.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass

import polars as pl

from .errors import InsufficientDataError, PipelineIssue
from .series import Series


# Sample standard deviation needs two points
MIN_OBSERVATIONS = 2

SUMMARY_COLUMNS = ["indicator", "mean", "median", "std_dev", "min", "max"]


@dataclass(frozen=True)
class SummaryStats:
    """Summary statistics of one indicator."""

    indicator: str
    mean: float
    median: float
    std_dev: float  # sample (n - 1)
    min: float
    max: float
    n_obs: int

    def to_dict(self) -> dict:
        return asdict(self)


def summarize_values(values: pl.Series, indicator: str) -> SummaryStats:
    """
    Summary statistics of a column, ignoring nulls and NaN.

    Raises:
        InsufficientDataError: If fewer than 2 values are present
    """
    values = values.cast(pl.Float64).drop_nulls().drop_nans()
    n = values.len()
    if n < MIN_OBSERVATIONS:
        raise InsufficientDataError(
            f"Descriptive statistics need at least {MIN_OBSERVATIONS} observations, found {n}",
            stage="summary_stats",
            indicator=indicator,
            n_obs=n,
            required=MIN_OBSERVATIONS,
        )

    return SummaryStats(
        indicator=indicator,
        mean=float(values.mean()),
        median=float(values.median()),
        std_dev=float(values.std(ddof=1)),
        min=float(values.min()),
        max=float(values.max()),
        n_obs=n,
    )


def compute_summary_stats(series: Series, indicator: str) -> SummaryStats:
    """Summary statistics of one indicator of a Series."""
    return summarize_values(series.values(indicator)["value"], indicator)


def compute_all_summary_stats(
    series: Series,
    strict: bool = False,
) -> tuple[list[SummaryStats], list[PipelineIssue]]:
    """
    Summary statistics for every indicator.

    Indicators without enough data are reported as issues (or raised when
    strict) so the others are still summarised.
    """
    results = []
    issues = []
    for indicator in series.indicators:
        try:
            results.append(compute_summary_stats(series, indicator))
        except InsufficientDataError as e:
            if strict:
                raise
            issues.append(PipelineIssue.from_error(e))
    return results, issues


def summary_table(stats: list[SummaryStats]) -> pl.DataFrame:
    """Row-per-indicator table with columns indicator, mean, median, std_dev, min, max."""
    return pl.DataFrame(
        [{col: getattr(s, col) for col in SUMMARY_COLUMNS} for s in stats],
        schema={
            "indicator": pl.String,
            **{col: pl.Float64 for col in SUMMARY_COLUMNS[1:]},
        },
    )
