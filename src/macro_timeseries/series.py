"""
Year-indexed series of indicator observations.

build_series() turns the raw records of a data source into a cleaned
Series: sorted ascending by year, one row per year, and no row where every
indicator is missing. Rows with only some indicators present are kept.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, Mapping, Optional, Sequence

import polars as pl

from .core.utils import find_year_gaps
from .data import DEFAULT_INDICATORS, get_indicator_info
from .errors import DuplicateYearError, EmptyDatasetError, SourceUnavailableError


@dataclass(frozen=True)
class Observation:
    """One year of data. Missing values are None."""

    year: int
    inflation: Optional[float] = None
    gdp_growth: Optional[float] = None


@dataclass(frozen=True, eq=False)
class Series:
    """
    Cleaned, immutable series.

    The frame has an Int64 `year` column followed by one Float64 column per
    indicator. Polars operations never modify it in place; derivations build
    new frames from it.
    """

    frame: pl.DataFrame
    indicators: tuple[str, ...] = DEFAULT_INDICATORS

    def __len__(self) -> int:
        return self.frame.height

    @property
    def years(self) -> list[int]:
        return self.frame["year"].to_list()

    @property
    def min_year(self) -> int:
        return self.frame["year"].min()

    @property
    def max_year(self) -> int:
        return self.frame["year"].max()

    def values(self, indicator: str) -> pl.DataFrame:
        """Non-missing [year, value] pairs of one indicator."""
        self._check_indicator(indicator)
        return (
            self.frame
            .select("year", pl.col(indicator).alias("value"))
            .filter(pl.col("value").is_not_null())
        )

    def value_map(self, indicator: str) -> dict[int, float]:
        """Map year -> value for the non-missing values of an indicator."""
        df = self.values(indicator)
        return dict(zip(df["year"].to_list(), df["value"].to_list()))

    def missing_years(self) -> list[int]:
        """Calendar years between min_year and max_year absent from the series."""
        return find_year_gaps(self.years)

    def observations(self) -> list[Observation]:
        return [
            Observation(**{k: v for k, v in row.items() if k in Observation.__dataclass_fields__})
            for row in self.frame.to_dicts()
        ]

    def _check_indicator(self, indicator: str):
        if indicator not in self.indicators:
            raise KeyError(
                f"Indicator '{indicator}' not in series (has {list(self.indicators)})"
            )


def _to_year(record: Mapping[str, Any]) -> int:
    if "year" not in record or record["year"] is None:
        raise SourceUnavailableError(f"Record without a year: {dict(record)}", stage="clean")

    year = record["year"]
    try:
        as_float = float(year)
    except (TypeError, ValueError) as e:
        raise SourceUnavailableError(f"Invalid year {year!r}", stage="clean") from e

    if not as_float.is_integer():
        raise SourceUnavailableError(f"Invalid year {year!r}", stage="clean")
    return int(as_float)


def _to_value(record: Mapping[str, Any], indicator: str) -> Optional[float]:
    value = record.get(indicator)
    if value is None:
        return None
    try:
        value = float(value)
    except (TypeError, ValueError) as e:
        raise SourceUnavailableError(
            f"Non-numeric value {value!r} for year {record.get('year')}",
            stage="clean",
            indicator=indicator,
        ) from e
    if math.isnan(value):
        return None
    if math.isinf(value):
        raise SourceUnavailableError(
            f"Infinite value {value!r} for year {record.get('year')}",
            stage="clean",
            indicator=indicator,
        )
    return value


def build_series(
    raw: Sequence[Mapping[str, Any]] | pl.DataFrame,
    indicators: tuple[str, ...] | list[str] = DEFAULT_INDICATORS,
) -> Series:
    """
    Clean raw records into a Series.

    Args:
        raw: Records with a `year` key and one key per indicator, or a
            DataFrame with the same columns. Missing or NaN values mean
            "no observation".
        indicators: Indicator columns to keep

    Returns:
        Series sorted ascending by year

    Raises:
        EmptyDatasetError: If raw is empty or no row has any indicator value
        DuplicateYearError: If a year appears more than once
        SourceUnavailableError: If a record has no usable year, or a non-numeric
            or infinite value
    """
    indicators = tuple(indicators)
    for indicator in indicators:
        get_indicator_info(indicator)

    records = raw.to_dicts() if isinstance(raw, pl.DataFrame) else list(raw)
    if not records:
        raise EmptyDatasetError("Data source returned no records")

    columns: dict[str, list] = {"year": [_to_year(r) for r in records]}
    for indicator in indicators:
        columns[indicator] = [_to_value(r, indicator) for r in records]

    df = pl.DataFrame(
        columns,
        schema={"year": pl.Int64, **{i: pl.Float64 for i in indicators}},
    )

    duplicated = df.filter(pl.col("year").is_duplicated())["year"].unique().sort().to_list()
    if duplicated:
        raise DuplicateYearError(f"Years appear more than once: {duplicated}")

    df = (
        df
        .sort("year")
        .filter(pl.any_horizontal([pl.col(i).is_not_null() for i in indicators]))
    )

    if df.height == 0:
        raise EmptyDatasetError(
            f"No year has a value for any of {list(indicators)} after cleaning"
        )

    return Series(frame=df, indicators=indicators)
