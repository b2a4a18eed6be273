"""
Tests for descriptive statistics and the inflation / GDP growth correlation.

Run with: pytest tests/test_statistics.py -v
"""

from __future__ import annotations

import math

import numpy as np
import polars as pl
import pytest
from scipy import stats as sps

from macro_timeseries.correlation import (
    CorrelationAnalyzer,
    paired_observations,
    pearson_correlation,
)
from macro_timeseries.errors import DegenerateInputError, InsufficientDataError
from macro_timeseries.series import build_series
from macro_timeseries.stats import (
    compute_all_summary_stats,
    compute_summary_stats,
    summarize_values,
    summary_table,
)


class TestSummaryStats:
    """Test per-indicator descriptive statistics."""

    def test_known_values(self):
        stats = summarize_values(pl.Series([4.0, 1.0, 3.0, 2.0]), "inflation")

        assert stats.mean == pytest.approx(2.5)
        assert stats.median == pytest.approx(2.5)
        assert stats.std_dev == pytest.approx(math.sqrt(5.0 / 3.0))
        assert stats.min == 1.0
        assert stats.max == 4.0
        assert stats.n_obs == 4

    def test_sample_standard_deviation(self, sample_series):
        """std_dev uses the n - 1 denominator."""
        values = list(sample_series.value_map("gdp_growth").values())
        stats = compute_summary_stats(sample_series, "gdp_growth")

        assert stats.std_dev == pytest.approx(float(np.std(values, ddof=1)))
        assert stats.n_obs == len(values)

    def test_ignores_missing(self):
        stats = summarize_values(pl.Series([1.0, None, 3.0, float("nan")]), "gdp_growth")

        assert stats.n_obs == 2
        assert stats.mean == pytest.approx(2.0)

    def test_single_value_raises(self):
        """One observation has no sample standard deviation."""
        series = build_series([{"year": 2020, "inflation": 3.0, "gdp_growth": None}])

        with pytest.raises(InsufficientDataError) as excinfo:
            compute_summary_stats(series, "inflation")

        assert excinfo.value.stage == "summary_stats"
        assert excinfo.value.required == 2

    def test_all_indicators_collect_issues(self):
        series = build_series([
            {"year": 2020, "inflation": 3.0, "gdp_growth": None},
            {"year": 2021, "inflation": 4.0, "gdp_growth": 1.0},
        ])
        results, issues = compute_all_summary_stats(series)

        assert [s.indicator for s in results] == ["inflation"]
        assert len(issues) == 1
        assert issues[0].indicator == "gdp_growth"

        with pytest.raises(InsufficientDataError):
            compute_all_summary_stats(series, strict=True)

    def test_summary_table(self, sample_series):
        results, _ = compute_all_summary_stats(sample_series)
        table = summary_table(results)

        assert table.columns == ["indicator", "mean", "median", "std_dev", "min", "max"]
        assert table["indicator"].to_list() == ["inflation", "gdp_growth"]


class TestPearsonCorrelation:
    """Test coefficient, p-value and confidence interval."""

    def test_perfect_linear_relation(self):
        """B = 2A + 1 gives r = 1 and a vanishing p-value."""
        a = np.array([1.0, 2.0, 3.0, 4.0, 5.0])
        result = pearson_correlation(a, 2 * a + 1)

        assert result.coefficient == pytest.approx(1.0)
        assert result.p_value < 1e-6
        assert result.ci_low > 0.99
        assert result.ci_high == pytest.approx(1.0)
        assert result.n_obs == 5

    def test_matches_scipy(self, sample_series):
        pairs = paired_observations(sample_series, "inflation", "gdp_growth")
        x = pairs["inflation"].to_numpy()
        y = pairs["gdp_growth"].to_numpy()

        result = pearson_correlation(x, y, confidence_level=0.95)
        expected = sps.pearsonr(x, y)
        interval = expected.confidence_interval(confidence_level=0.95)

        assert result.coefficient == pytest.approx(expected.statistic, rel=1e-9)
        assert result.p_value == pytest.approx(expected.pvalue, rel=1e-6)
        assert result.ci_low == pytest.approx(interval.low, rel=1e-9)
        assert result.ci_high == pytest.approx(interval.high, rel=1e-9)

    def test_symmetric(self, sample_series):
        analyzer = CorrelationAnalyzer()
        xy = analyzer.analyze(sample_series, "inflation", "gdp_growth")
        yx = analyzer.analyze(sample_series, "gdp_growth", "inflation")

        assert xy.coefficient == pytest.approx(yx.coefficient)
        assert xy.p_value == pytest.approx(yx.p_value)

    def test_bounds(self):
        x = np.array([3.0, 1.0, 4.0, 1.0, 5.0, 9.0, 2.0, 6.0])
        y = np.array([2.0, 7.0, 1.0, 8.0, 2.0, 8.0, 1.0, 8.0])
        result = pearson_correlation(x, y)

        assert -1.0 <= result.ci_low <= result.coefficient <= result.ci_high <= 1.0
        assert 0.0 <= result.p_value <= 1.0

    def test_wider_interval_at_higher_confidence(self):
        x = np.array([3.0, 1.0, 4.0, 1.0, 5.0, 9.0, 2.0, 6.0])
        y = np.array([2.0, 1.0, 3.0, 2.0, 6.0, 8.0, 1.0, 5.0])
        narrow = pearson_correlation(x, y, confidence_level=0.90)
        wide = pearson_correlation(x, y, confidence_level=0.99)

        assert wide.ci_low < narrow.ci_low
        assert wide.ci_high > narrow.ci_high

    def test_three_pairs_full_interval(self):
        result = pearson_correlation([1.0, 2.0, 3.0], [2.0, 1.0, 4.0])

        assert (result.ci_low, result.ci_high) == (-1.0, 1.0)

    def test_too_few_pairs(self):
        with pytest.raises(InsufficientDataError) as excinfo:
            pearson_correlation([1.0, 2.0], [3.0, 4.0])

        assert excinfo.value.stage == "correlation"
        assert excinfo.value.n_obs == 2

    def test_zero_variance(self):
        with pytest.raises(DegenerateInputError):
            pearson_correlation([1.0, 2.0, 3.0, 4.0], [0.1, 0.1, 0.1, 0.1])

    def test_misaligned(self):
        with pytest.raises(ValueError):
            pearson_correlation([1.0, 2.0, 3.0], [1.0, 2.0])


class TestCorrelationAnalyzer:
    """Test pairing of the two indicators of a Series."""

    def test_pairwise_complete(self, sample_series):
        """Years missing either indicator are excluded."""
        pairs = paired_observations(sample_series, "inflation", "gdp_growth")
        result = CorrelationAnalyzer().analyze(sample_series)

        assert 2008 not in pairs["year"].to_list()
        assert 2010 not in pairs["year"].to_list()
        assert result.n_obs == pairs.height == len(sample_series) - 2

    def test_names(self, sample_series):
        result = CorrelationAnalyzer(confidence_level=0.9).analyze(sample_series)

        assert result.indicator_x == "inflation"
        assert result.indicator_y == "gdp_growth"
        assert result.confidence_level == 0.9
        assert set(result.to_dict()) >= {"coefficient", "p_value", "ci_low", "ci_high", "n_obs"}

    def test_insufficient_pairs(self):
        series = build_series([
            {"year": 2020, "inflation": 1.0, "gdp_growth": None},
            {"year": 2021, "inflation": 2.0, "gdp_growth": 3.0},
            {"year": 2022, "inflation": None, "gdp_growth": 4.0},
            {"year": 2023, "inflation": 5.0, "gdp_growth": 6.0},
        ])

        with pytest.raises(InsufficientDataError) as excinfo:
            CorrelationAnalyzer().analyze(series)

        assert excinfo.value.indicator == "inflation~gdp_growth"
