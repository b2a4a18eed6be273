"""
Macro Time Series Analysis
==========================

Inflation and GDP growth of a single country: download from the World Bank
(or read a local CSV), clean, derive interannual changes, trailing moving
averages and a linear trend decomposition, summarise, test the correlation
between both indicators and export tables and charts.

Usage:
    from macro_timeseries import AnalysisConfig, run_analysis

    result, files = run_analysis(AnalysisConfig(country="CR"))
"""

from .core.config import AnalysisConfig, load_analysis_config
from .data import (
    INDICATOR_SERIES,
    BaseDataSource,
    CsvFileSource,
    WorldBankSource,
    create_source,
)
from .cache import CachedWorldBankSource, WorldBankCache
from .series import Observation, Series, build_series
from .derivations import (
    DerivationEngine,
    DerivedSeries,
    TrendFit,
    compute_trailing_mean,
    compute_trend_decomposition,
    compute_yoy_delta,
    fit_linear_trend,
)
from .stats import SummaryStats, compute_summary_stats
from .correlation import CorrelationAnalyzer, CorrelationResult, pearson_correlation
from .export import ExportFormat, Exporter, read_processed_table
from .errors import (
    DegenerateInputError,
    DuplicateYearError,
    EmptyDatasetError,
    InsufficientDataError,
    PipelineError,
    PipelineIssue,
    SourceUnavailableError,
)
from .pipeline import AnalysisPipeline, PipelineResult, run_analysis

__version__ = "0.1.0"
__all__ = [
    # Config
    "AnalysisConfig",
    "load_analysis_config",
    # Data sources
    "INDICATOR_SERIES",
    "BaseDataSource",
    "WorldBankSource",
    "CachedWorldBankSource",
    "WorldBankCache",
    "CsvFileSource",
    "create_source",
    # Series
    "Observation",
    "Series",
    "build_series",
    # Derivations
    "DerivationEngine",
    "DerivedSeries",
    "TrendFit",
    "compute_yoy_delta",
    "compute_trailing_mean",
    "compute_trend_decomposition",
    "fit_linear_trend",
    # Statistics
    "SummaryStats",
    "compute_summary_stats",
    "CorrelationAnalyzer",
    "CorrelationResult",
    "pearson_correlation",
    # Export
    "ExportFormat",
    "Exporter",
    "read_processed_table",
    # Errors
    "PipelineError",
    "PipelineIssue",
    "SourceUnavailableError",
    "EmptyDatasetError",
    "DuplicateYearError",
    "InsufficientDataError",
    "DegenerateInputError",
    # Pipeline
    "AnalysisPipeline",
    "PipelineResult",
    "run_analysis",
]
