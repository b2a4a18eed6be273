"""
Console and Markdown reports of a pipeline run.

Rounding happens here only: statistics to 2 decimals, correlation
figures to 4.
"""

from __future__ import annotations

from datetime import datetime
from pathlib import Path
from typing import TYPE_CHECKING, Optional

from .core.utils import format_delta, format_number
from .data import INDICATOR_SERIES

if TYPE_CHECKING:
    from .pipeline import PipelineResult


STATS_DECIMALS = 2
CORRELATION_DECIMALS = 4


def format_stats_table(result: "PipelineResult", decimals: int = STATS_DECIMALS) -> list[str]:
    """Fixed-width rows of the descriptive statistics."""
    header = f"{'Indicator':<14}{'Mean':>10}{'Median':>10}{'Std Dev':>10}{'Min':>10}{'Max':>10}"
    lines = [header]
    for s in result.summary:
        label = INDICATOR_SERIES[s.indicator].label
        values = [s.mean, s.median, s.std_dev, s.min, s.max]
        lines.append(
            f"{label:<14}" + "".join(f"{format_number(v, decimals):>10}" for v in values)
        )
    return lines


def format_correlation(result: "PipelineResult", decimals: int = CORRELATION_DECIMALS) -> list[str]:
    c = result.correlation
    if c is None:
        return ["Correlation not available (see warnings)"]

    x = INDICATOR_SERIES[c.indicator_x].label
    y = INDICATOR_SERIES[c.indicator_y].label
    level = int(round(c.confidence_level * 100))
    return [
        f"Correlation between {x} and {y}: {format_number(c.coefficient, decimals)}",
        f"p-value: {format_number(c.p_value, decimals)}",
        f"{level}% confidence interval: "
        f"[{format_number(c.ci_low, decimals)}, {format_number(c.ci_high, decimals)}]",
        f"Paired observations: {c.n_obs}",
    ]


def print_report(result: "PipelineResult", files: Optional[list[Path]] = None):
    """Print statistics, correlation and run summary to stdout."""
    print("\n=== DESCRIPTIVE STATISTICS ===")
    for line in format_stats_table(result):
        print(line)

    print("\n=== CORRELATION ANALYSIS ===")
    for line in format_correlation(result):
        print(line)

    if result.issues:
        print("\n=== WARNINGS ===")
        for issue in result.issues:
            print(f"  - {issue}")

    print("\n" + "=" * 60)
    print("ANALYSIS COMPLETE")
    print("=" * 60)
    print(f"Total observations: {len(result.series)}")
    print(f"Period analysed: {result.series.min_year}-{result.series.max_year}")

    if files:
        print("\nGenerated files:")
        for path in files:
            print(f"  - {path}")
    print("=" * 60)


def generate_markdown_report(result: "PipelineResult", files: Optional[list[Path]] = None) -> str:
    """
    Markdown summary of a pipeline run.

    Returns:
        Markdown formatted report
    """
    report = []
    report.append("# Inflation and GDP Growth Analysis")
    report.append(f"\nGenerated: {datetime.now().strftime('%Y-%m-%d %H:%M')}\n")
    report.append(f"Source: {result.source}\n")
    report.append(
        f"Period: {result.series.min_year}-{result.series.max_year} "
        f"({len(result.series)} observations)\n"
    )

    gaps = result.series.missing_years()
    if gaps:
        report.append(f"Years absent from the data: {', '.join(map(str, gaps))}\n")

    report.append("## Descriptive Statistics\n")
    report.append("| Indicator | Mean | Median | Std Dev | Min | Max | N |")
    report.append("|-----------|------|--------|---------|-----|-----|---|")
    for s in result.summary:
        cells = " | ".join(
            format_number(v, STATS_DECIMALS) for v in (s.mean, s.median, s.std_dev, s.min, s.max)
        )
        report.append(f"| {INDICATOR_SERIES[s.indicator].label} | {cells} | {s.n_obs} |")

    report.append("\n## Linear Trends\n")
    report.append("| Indicator | Slope (pp/year) | Intercept | N |")
    report.append("|-----------|-----------------|-----------|---|")
    for indicator, fit in result.derived.trends.items():
        report.append(
            f"| {INDICATOR_SERIES[indicator].label} | "
            f"{format_delta(fit.slope, CORRELATION_DECIMALS)} | "
            f"{format_number(fit.intercept, STATS_DECIMALS)} | {fit.n_obs} |"
        )

    report.append("\n## Correlation\n")
    for line in format_correlation(result):
        report.append(f"- {line}")

    if result.issues:
        report.append("\n## Warnings\n")
        for issue in result.issues:
            report.append(f"- {issue}")

    if files:
        report.append("\n## Files\n")
        for path in files:
            report.append(f"- `{Path(path).name}`")

    return "\n".join(report) + "\n"


def write_markdown_report(
    result: "PipelineResult",
    path: str | Path,
    files: Optional[list[Path]] = None,
) -> Path:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w") as f:
        f.write(generate_markdown_report(result, files))
    return path
