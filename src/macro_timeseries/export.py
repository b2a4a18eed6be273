"""
Export of the processed table, descriptive statistics and correlation.

Outputs (in the chosen directory):
- processed_data.csv: one row per year with the observed and derived columns
- descriptive_stats.csv: one row per indicator
- correlation.json: correlation result plus any non-fatal pipeline issues

Undefined values are written as an explicit null marker ("NA" by default),
never as 0 or an empty field.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Optional

import polars as pl

from .correlation import CorrelationResult
from .derivations import DerivedSeries, derived_column
from .errors import PipelineIssue
from .stats import SUMMARY_COLUMNS, SummaryStats, summary_table


PROCESSED_FILENAME = "processed_data.csv"
STATS_FILENAME = "descriptive_stats.csv"
CORRELATION_FILENAME = "correlation.json"


@dataclass(frozen=True)
class ExportFormat:
    """
    Presentation settings for exported tables.

    Attributes:
        null_marker: Text written for undefined values
        float_precision: Decimal places, or None for full precision
        scientific: Allow scientific notation for floats
    """

    null_marker: str = "NA"
    float_precision: Optional[int] = None
    scientific: bool = False

    def __post_init__(self):
        if self.null_marker in ("", "0"):
            raise ValueError("null_marker must not be empty or '0'")

    @classmethod
    def from_dict(cls, data: dict) -> "ExportFormat":
        return cls(**{k: v for k, v in data.items() if k in cls.__dataclass_fields__})


def processed_columns(indicators: tuple[str, ...], ma_window: int = 3) -> list[str]:
    """
    Column order of the row-per-year table.

    For the default indicators: year, inflation, gdp_growth,
    inflation_yoy_delta, gdp_yoy_delta, inflation_ma3, gdp_ma3,
    inflation_trend, inflation_residual, gdp_trend, gdp_residual.
    """
    columns = ["year", *indicators]
    columns += [derived_column(i, "yoy_delta") for i in indicators]
    columns += [derived_column(i, "ma", ma_window) for i in indicators]
    for indicator in indicators:
        columns += [derived_column(indicator, "trend"), derived_column(indicator, "residual")]
    return columns


def processed_table(derived: DerivedSeries) -> pl.DataFrame:
    """The row-per-year table in export column order."""
    return derived.frame.select(processed_columns(derived.indicators, derived.ma_window))


def read_processed_table(path: str | Path, null_marker: str = "NA") -> pl.DataFrame:
    """Read a processed table written by Exporter back into a DataFrame."""
    df = pl.read_csv(path, null_values=[null_marker], infer_schema_length=0)
    return df.with_columns(
        pl.col("year").cast(pl.Int64),
        *[pl.col(c).cast(pl.Float64) for c in df.columns if c != "year"],
    )


class Exporter:
    """Write pipeline results to an output directory."""

    def __init__(self, output_dir: str | Path, fmt: Optional[ExportFormat] = None):
        self.output_dir = Path(output_dir)
        self.fmt = fmt or ExportFormat()

    def _write_csv(self, df: pl.DataFrame, path: Path):
        df.write_csv(
            path,
            null_value=self.fmt.null_marker,
            float_precision=self.fmt.float_precision,
            float_scientific=self.fmt.scientific,
        )

    def export_processed(self, derived: DerivedSeries) -> Path:
        self.output_dir.mkdir(parents=True, exist_ok=True)
        path = self.output_dir / PROCESSED_FILENAME
        self._write_csv(processed_table(derived), path)
        return path

    def export_stats(self, stats: list[SummaryStats]) -> Path:
        self.output_dir.mkdir(parents=True, exist_ok=True)
        path = self.output_dir / STATS_FILENAME
        self._write_csv(summary_table(stats).select(SUMMARY_COLUMNS), path)
        return path

    def export_correlation(
        self,
        correlation: Optional[CorrelationResult],
        issues: Optional[list[PipelineIssue]] = None,
    ) -> Path:
        self.output_dir.mkdir(parents=True, exist_ok=True)
        path = self.output_dir / CORRELATION_FILENAME

        payload = {
            "run_date": datetime.now().isoformat(),
            "correlation": correlation.to_dict() if correlation else None,
            "issues": [
                {
                    "stage": i.stage,
                    "indicator": i.indicator,
                    "error_type": i.error_type,
                    "message": i.message,
                }
                for i in (issues or [])
            ],
        }
        with open(path, "w") as f:
            json.dump(payload, f, indent=2, default=str)
        return path

    def export_all(
        self,
        derived: DerivedSeries,
        stats: list[SummaryStats],
        correlation: Optional[CorrelationResult] = None,
        issues: Optional[list[PipelineIssue]] = None,
    ) -> list[Path]:
        return [
            self.export_processed(derived),
            self.export_stats(stats),
            self.export_correlation(correlation, issues),
        ]
