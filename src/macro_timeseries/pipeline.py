"""
End-to-end analysis pipeline.

DataSource -> build_series -> DerivationEngine -> descriptive statistics /
correlation -> Exporter (+ charts and report).

Fetch and cleaning errors abort the run: nothing downstream would be
trustworthy. Failures of individual derivations are collected as
PipelineIssue records, since each indicator's results are independent;
with strict=True they are raised instead.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Mapping, Optional, Sequence

from .core.config import AnalysisConfig
from .core.utils import check_data_coverage
from .correlation import CorrelationAnalyzer, CorrelationResult
from .data import DEFAULT_INDICATORS, BaseDataSource, create_source
from .derivations import DerivationEngine, DerivedSeries
from .errors import DegenerateInputError, InsufficientDataError, PipelineIssue
from .export import ExportFormat, Exporter
from .series import Series, build_series
from .stats import SummaryStats, compute_all_summary_stats


RawSource = Callable[[], Sequence[Mapping[str, Any]]]


@dataclass(frozen=True, eq=False)
class PipelineResult:
    """Everything computed by one pipeline run."""

    source: str
    series: Series
    derived: DerivedSeries
    summary: list[SummaryStats]
    correlation: Optional[CorrelationResult]
    issues: list[PipelineIssue] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        """True when every derivation succeeded."""
        return not self.issues

    def stats_for(self, indicator: str) -> Optional[SummaryStats]:
        return next((s for s in self.summary if s.indicator == indicator), None)


class AnalysisPipeline:
    """
    Run the derivations and statistics over one data source.

    Usage:
        source = create_source("world_bank", country="CR")
        result = AnalysisPipeline(source).run()
        print(result.correlation)
    """

    def __init__(
        self,
        source: BaseDataSource | RawSource,
        indicators: tuple[str, ...] | list[str] = DEFAULT_INDICATORS,
        ma_window: int = 3,
        confidence_level: float = 0.95,
        strict: bool = False,
        verbose: bool = True,
    ):
        """
        Initialize the pipeline.

        Args:
            source: Data source, or any callable returning raw records
            indicators: The two indicators to analyse (correlation uses both)
            ma_window: Trailing moving-average window in years
            confidence_level: Confidence level of the correlation interval
            strict: Raise derivation errors instead of reporting them
            verbose: Print progress messages
        """
        if len(indicators) != 2:
            raise ValueError(f"Exactly two indicators are required, got {list(indicators)}")
        self.source = source
        self.indicators = tuple(indicators)
        self.engine = DerivationEngine(ma_window=ma_window, strict=strict)
        self.analyzer = CorrelationAnalyzer(confidence_level=confidence_level)
        self.strict = strict
        self.verbose = verbose

    @classmethod
    def from_config(cls, config: AnalysisConfig, verbose: bool = True) -> "AnalysisPipeline":
        source = create_source(config.source, **config.source_kwargs())
        return cls(
            source,
            indicators=config.indicators,
            ma_window=config.ma_window,
            confidence_level=config.confidence_level,
            strict=config.strict,
            verbose=verbose,
        )

    def _log(self, message: str):
        if self.verbose:
            print(message)

    def _describe_source(self) -> str:
        if isinstance(self.source, BaseDataSource):
            return self.source.describe()
        return getattr(self.source, "__name__", type(self.source).__name__)

    def run(self) -> PipelineResult:
        """
        Execute the pipeline.

        Raises:
            SourceUnavailableError: If the data cannot be fetched
            EmptyDatasetError: If no usable rows remain after cleaning
            InsufficientDataError, DegenerateInputError: Only when strict
        """
        source_name = self._describe_source()

        self._log(f"Fetching data from {source_name}...")
        raw = self.source()
        self._log(f"Fetched {len(raw)} records")

        self._log("Cleaning data...")
        series = build_series(raw, self.indicators)
        self._log(
            f"Series covers {series.min_year}-{series.max_year} "
            f"({len(series)} years)"
        )
        coverage = check_data_coverage(series.frame, list(self.indicators))
        for problem in coverage["issues"]:
            self._log(f"Warning: {problem}")

        self._log("Computing derivations and statistics...")
        derived = self.engine.derive(series)
        issues = list(derived.issues)

        summary, stat_issues = compute_all_summary_stats(series, strict=self.strict)
        issues.extend(stat_issues)

        correlation = None
        try:
            correlation = self.analyzer.analyze(series, *self.indicators)
        except (InsufficientDataError, DegenerateInputError) as e:
            if self.strict:
                raise
            issues.append(PipelineIssue.from_error(e))

        for issue in issues:
            self._log(f"Warning: {issue}")

        return PipelineResult(
            source=source_name,
            series=series,
            derived=derived,
            summary=summary,
            correlation=correlation,
            issues=issues,
        )


def run_analysis(
    config: AnalysisConfig,
    output_dir: Optional[str | Path] = None,
    verbose: bool = True,
) -> tuple[PipelineResult, list[Path]]:
    """
    Run the pipeline and write tables, charts and the report.

    Args:
        config: Run configuration
        output_dir: Overrides config.output_dir
        verbose: Print progress and the console report

    Returns:
        (pipeline result, list of written files)
    """
    from .report import print_report, write_markdown_report
    from .viz import save_charts

    output_dir = Path(output_dir or config.output_dir)

    result = AnalysisPipeline.from_config(config, verbose=verbose).run()

    if verbose:
        print("Exporting results...")
    exporter = Exporter(output_dir, ExportFormat.from_dict(config.export_format))
    files = exporter.export_all(
        result.derived, result.summary, result.correlation, result.issues
    )

    if config.charts:
        if verbose:
            print("Saving charts...")
        files.extend(
            save_charts(
                result.derived,
                output_dir,
                country=config.country_name or config.country,
                indicator=config.chart_indicator,
                fmt=config.chart_format,
            )
        )

    files.append(write_markdown_report(result, output_dir / "report.md", files))

    if verbose:
        print_report(result, files)

    return result, files
