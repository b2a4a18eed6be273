"""
Core infrastructure for the analysis pipeline.

Provides:
- Configuration loading and validation
- Generic registry pattern
- Common utilities
"""

from .config import (
    AnalysisConfig,
    ConfigLoader,
    ConfigSchema,
    load_analysis_config,
    validate_config,
)
from .registry import Registry, data_source_registry
from .utils import (
    check_data_coverage,
    find_year_gaps,
    format_delta,
    format_number,
)

__all__ = [
    "AnalysisConfig",
    "ConfigLoader",
    "ConfigSchema",
    "load_analysis_config",
    "validate_config",
    "Registry",
    "data_source_registry",
    "check_data_coverage",
    "find_year_gaps",
    "format_delta",
    "format_number",
]
