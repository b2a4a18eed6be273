"""
End-to-end tests of the analysis pipeline, charts and report.

Run with: pytest tests/test_pipeline.py -v
"""

from __future__ import annotations

import pytest

from macro_timeseries.core.config import AnalysisConfig
from macro_timeseries.data import BaseDataSource
from macro_timeseries.errors import (
    EmptyDatasetError,
    InsufficientDataError,
    SourceUnavailableError,
)
from macro_timeseries.pipeline import AnalysisPipeline, run_analysis
from macro_timeseries.report import generate_markdown_report
from macro_timeseries.viz import chart_yoy_histogram, save_charts


class UnreachableSource(BaseDataSource):
    kind = "unreachable"

    def fetch_frame(self):
        raise SourceUnavailableError("connection refused")


def _write_csv(path, records):
    lines = ["date,inflation,gdp_growth"]
    for r in records:
        cells = ["NA" if r[k] is None else str(r[k]) for k in ("inflation", "gdp_growth")]
        lines.append(f"{r['year']}-01-01," + ",".join(cells))
    path.write_text("\n".join(lines) + "\n")
    return path


class TestAnalysisPipeline:
    """Test a full run over an in-memory source."""

    def test_run(self, sample_records):
        result = AnalysisPipeline(lambda: sample_records, verbose=False).run()

        assert result.ok
        assert len(result.series) == len(sample_records)
        assert [s.indicator for s in result.summary] == ["inflation", "gdp_growth"]
        assert result.correlation is not None
        assert result.correlation.n_obs == len(sample_records) - 2
        assert result.stats_for("gdp_growth").n_obs == len(sample_records) - 1

    def test_fetch_failure_propagates(self):
        with pytest.raises(SourceUnavailableError):
            AnalysisPipeline(UnreachableSource(), verbose=False).run()

    def test_empty_source(self):
        with pytest.raises(EmptyDatasetError):
            AnalysisPipeline(lambda: [], verbose=False).run()

    def test_sparse_indicator_reported(self):
        """GDP with one value: inflation results survive, GDP failures become issues."""
        records = [
            {"year": 2020, "inflation": 0.72, "gdp_growth": None},
            {"year": 2021, "inflation": 1.73, "gdp_growth": 7.94},
            {"year": 2022, "inflation": 8.27, "gdp_growth": None},
        ]
        result = AnalysisPipeline(lambda: records, verbose=False).run()

        assert not result.ok
        assert result.stats_for("inflation") is not None
        assert result.stats_for("gdp_growth") is None
        assert result.correlation is None

        stages = {(i.stage, i.indicator) for i in result.issues}
        assert ("trend", "gdp_growth") in stages
        assert ("summary_stats", "gdp_growth") in stages
        assert ("correlation", "inflation~gdp_growth") in stages

    def test_strict_raises(self):
        records = [
            {"year": 2020, "inflation": 0.72, "gdp_growth": None},
            {"year": 2021, "inflation": 1.73, "gdp_growth": 7.94},
        ]

        with pytest.raises(InsufficientDataError):
            AnalysisPipeline(lambda: records, strict=True, verbose=False).run()

    def test_verbose_prints_gaps(self, sample_records, capsys):
        AnalysisPipeline(lambda: sample_records, verbose=True).run()

        out = capsys.readouterr().out
        assert "Warning: Years absent from the series: [2004]" in out

    def test_requires_two_indicators(self, sample_records):
        with pytest.raises(ValueError):
            AnalysisPipeline(lambda: sample_records, indicators=["inflation"])


class TestRunAnalysis:
    """Test the configured run that writes every output."""

    def test_csv_run_writes_outputs(self, sample_records, tmp_path):
        csv_path = _write_csv(tmp_path / "datos.csv", sample_records)
        config = AnalysisConfig(
            country="CR",
            country_name="Costa Rica",
            source="csv",
            source_params={"path": str(csv_path)},
            output_dir=str(tmp_path / "results"),
            charts=True,
            chart_format="html",
        )

        result, files = run_analysis(config, verbose=False)

        names = {p.name for p in files}
        assert {
            "processed_data.csv",
            "descriptive_stats.csv",
            "correlation.json",
            "comparison_chart.html",
            "yoy_histogram.html",
            "decomposition_chart.html",
            "residuals_chart.html",
            "decomposition_panel.html",
            "report.md",
        } <= names
        assert all(p.exists() for p in files)
        assert result.source.startswith("CSV file")

    def test_infinite_csv_value_aborts(self, tmp_path):
        """An 'inf' cell in the CSV stops the run before anything is written."""
        csv_path = tmp_path / "datos.csv"
        csv_path.write_text(
            "date,inflation,gdp_growth\n"
            "2020-01-01,1.0,2.0\n"
            "2021-01-01,inf,2.5\n"
            "2022-01-01,3.0,3.0\n"
        )
        config = AnalysisConfig(
            source="csv",
            source_params={"path": str(csv_path)},
            charts=False,
        )

        with pytest.raises(SourceUnavailableError):
            run_analysis(config, output_dir=tmp_path / "out", verbose=False)

        assert not (tmp_path / "out" / "processed_data.csv").exists()

    def test_without_charts(self, sample_records, tmp_path):
        csv_path = _write_csv(tmp_path / "datos.csv", sample_records)
        config = AnalysisConfig(
            source="csv",
            source_params={"path": str(csv_path)},
            charts=False,
        )

        _, files = run_analysis(config, output_dir=tmp_path / "out", verbose=False)

        assert not any(p.suffix == ".html" for p in files)
        assert (tmp_path / "out" / "report.md").exists()


class TestChartsAndReport:
    """Test chart building and the Markdown report."""

    def test_histogram_needs_changes(self):
        records = [
            {"year": 2020, "inflation": 0.72, "gdp_growth": 1.0},
            {"year": 2022, "inflation": 8.27, "gdp_growth": 2.0},
        ]
        derived = AnalysisPipeline(lambda: records, verbose=False).run().derived

        with pytest.raises(ValueError):
            chart_yoy_histogram(derived, "inflation")

    def test_skips_charts_without_trend(self, tmp_path, capsys):
        records = [
            {"year": 2020, "inflation": 0.72, "gdp_growth": 1.0},
            {"year": 2021, "inflation": None, "gdp_growth": 2.0},
            {"year": 2022, "inflation": None, "gdp_growth": 3.0},
        ]
        derived = AnalysisPipeline(lambda: records, verbose=False).run().derived

        paths = save_charts(derived, tmp_path, indicator="inflation")

        assert [p.name for p in paths] == ["comparison_chart.html"]
        assert "Warning" in capsys.readouterr().out

    def test_markdown_report(self, sample_records):
        result = AnalysisPipeline(lambda: sample_records, verbose=False).run()
        report = generate_markdown_report(result)

        assert report.startswith("# Inflation and GDP Growth Analysis")
        assert "## Descriptive Statistics" in report
        assert "| Inflation |" in report
        assert "Years absent from the data: 2004" in report
        assert "Warnings" not in report
