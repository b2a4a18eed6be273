"""
Tests for cleaning raw records into a Series.

Run with: pytest tests/test_series.py -v
"""

from __future__ import annotations

import math

import polars as pl
import pytest

from macro_timeseries.core.utils import check_data_coverage, format_delta, format_number
from macro_timeseries.errors import (
    DuplicateYearError,
    EmptyDatasetError,
    SourceUnavailableError,
)
from macro_timeseries.series import Observation, build_series


class TestBuildSeries:
    """Test sorting, filtering and validation of raw records."""

    def test_sorted_ascending(self, sample_series):
        """Rows come out in ascending year order regardless of input order."""
        years = sample_series.years
        assert years == sorted(years)
        assert sample_series.min_year == 2000
        assert sample_series.max_year == 2012

    def test_drops_rows_with_every_value_missing(self):
        """A year with no indicator value is removed."""
        series = build_series([
            {"year": 2001, "inflation": 1.0, "gdp_growth": 2.0},
            {"year": 2002, "inflation": None, "gdp_growth": None},
            {"year": 2003, "inflation": 3.0, "gdp_growth": 4.0},
        ])

        assert series.years == [2001, 2003]
        assert series.missing_years() == [2002]

    def test_keeps_partial_rows(self):
        """A row with only inflation present is kept, gdp_growth left missing."""
        series = build_series([
            {"year": 2001, "inflation": 1.0, "gdp_growth": None},
            {"year": 2002, "inflation": 2.0, "gdp_growth": 3.0},
        ])

        assert series.years == [2001, 2002]
        assert series.frame["gdp_growth"].to_list() == [None, 3.0]

    def test_nan_is_missing(self):
        """NaN values are normalized to missing."""
        series = build_series([
            {"year": 2001, "inflation": float("nan"), "gdp_growth": 1.0},
            {"year": 2002, "inflation": float("nan"), "gdp_growth": float("nan")},
        ])

        assert series.years == [2001]
        assert series.frame["inflation"].to_list() == [None]

    def test_missing_key_is_missing_value(self):
        """A record without an indicator key counts as missing for that indicator."""
        series = build_series([{"year": 2001, "inflation": 1.5}])
        assert series.frame["gdp_growth"].to_list() == [None]

    def test_accepts_dataframe(self):
        """A polars DataFrame with the same columns is accepted."""
        df = pl.DataFrame({
            "year": [2002, 2001],
            "inflation": [2.0, 1.0],
            "gdp_growth": [None, 4.0],
        })
        series = build_series(df)
        assert series.years == [2001, 2002]

    def test_empty_input_raises(self):
        """An empty source result is an EmptyDatasetError."""
        with pytest.raises(EmptyDatasetError) as excinfo:
            build_series([])

        assert excinfo.value.stage == "clean"

    def test_all_missing_raises(self):
        """No row left after cleaning is an EmptyDatasetError."""
        with pytest.raises(EmptyDatasetError):
            build_series([
                {"year": 2001, "inflation": None, "gdp_growth": None},
                {"year": 2002, "inflation": None, "gdp_growth": None},
            ])

    def test_duplicate_years_raise(self):
        """Years are unique keys."""
        with pytest.raises(DuplicateYearError) as excinfo:
            build_series([
                {"year": 2001, "inflation": 1.0, "gdp_growth": 2.0},
                {"year": 2001, "inflation": 1.5, "gdp_growth": 2.5},
            ])

        assert "2001" in str(excinfo.value)

    def test_invalid_year_raises(self):
        """Records with unusable years are malformed source data."""
        with pytest.raises(SourceUnavailableError):
            build_series([{"inflation": 1.0}])

        with pytest.raises(SourceUnavailableError):
            build_series([{"year": 2001.5, "inflation": 1.0}])

    def test_non_numeric_value_raises(self):
        """A non-numeric indicator value names the indicator."""
        with pytest.raises(SourceUnavailableError) as excinfo:
            build_series([{"year": 2001, "inflation": "high", "gdp_growth": 1.0}])

        assert excinfo.value.indicator == "inflation"

    def test_infinite_value_raises(self):
        """Infinite values are rejected, not carried into trends and statistics."""
        for bad in (float("inf"), float("-inf"), "inf"):
            with pytest.raises(SourceUnavailableError) as excinfo:
                build_series([
                    {"year": 2001, "inflation": 1.0, "gdp_growth": 2.0},
                    {"year": 2002, "inflation": bad, "gdp_growth": 2.5},
                    {"year": 2003, "inflation": 3.0, "gdp_growth": 3.0},
                ])

            assert excinfo.value.stage == "clean"
            assert excinfo.value.indicator == "inflation"

    def test_unknown_indicator_raises(self):
        with pytest.raises(KeyError):
            build_series([{"year": 2001, "unemployment": 5.0}], indicators=["unemployment"])


class TestSeriesAccessors:
    """Test read-only views of a Series."""

    def test_values_skip_missing(self, sample_series):
        """values() returns only non-missing observations."""
        gdp = sample_series.values("gdp_growth")

        assert 2008 not in gdp["year"].to_list()
        assert gdp["value"].null_count() == 0

    def test_value_map(self, sample_series):
        values = sample_series.value_map("inflation")

        assert values[2005] == pytest.approx(13.80)
        assert 2010 not in values

    def test_observations(self, example_series):
        observations = example_series.observations()

        assert observations[0] == Observation(year=2020, inflation=5.0, gdp_growth=2.0)
        assert len(observations) == 3

    def test_missing_years(self, sample_series):
        assert sample_series.missing_years() == [2004]

    def test_frame_not_modified_by_views(self, sample_series):
        """Views return new frames; the stored frame is unchanged."""
        before = sample_series.frame.clone()
        sample_series.values("inflation")
        sample_series.value_map("gdp_growth")

        assert sample_series.frame.equals(before)
        assert not any(
            v is not None and math.isnan(v)
            for v in sample_series.frame["inflation"].to_list()
        )


class TestCoverage:
    """Test coverage checks and number formatting helpers."""

    def test_reports_gaps_and_sparse_columns(self):
        series = build_series([
            {"year": 2001, "inflation": 1.0, "gdp_growth": None},
            {"year": 2002, "inflation": 2.0, "gdp_growth": None},
            {"year": 2004, "inflation": 3.0, "gdp_growth": 1.0},
        ])
        coverage = check_data_coverage(series.frame, ["inflation", "gdp_growth"])

        assert coverage["valid"]
        assert coverage["year_gaps"] == [2003]
        assert coverage["null_counts"] == {"inflation": 0, "gdp_growth": 2}
        assert any("gdp_growth" in issue for issue in coverage["issues"])

    def test_too_few_rows(self):
        df = pl.DataFrame({"year": [2001], "inflation": [1.0]})
        coverage = check_data_coverage(df, ["inflation"])

        assert not coverage["valid"]

    def test_formatting(self):
        assert format_number(0.000012345, 4) == "0.0000"
        assert format_number(None) == "N/A"
        assert format_number(float("nan")) == "N/A"
        assert format_delta(0.25) == "+0.25"
        assert format_delta(-1.5, 1) == "-1.5"
