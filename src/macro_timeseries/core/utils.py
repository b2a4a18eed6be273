"""
Common Utilities

Shared helpers for:
- Formatting numbers for console output and reports
- Checking data coverage of a year-indexed frame
"""

from __future__ import annotations

import math
from typing import Optional, Union

import polars as pl


# =============================================================================
# Formatting Utilities
# =============================================================================

def _is_missing(value: Optional[float]) -> bool:
    return value is None or (isinstance(value, float) and math.isnan(value))


def format_number(value: Optional[float], decimals: int = 2, missing: str = "N/A") -> str:
    """Format a value with fixed decimals (never scientific notation)."""
    if _is_missing(value):
        return missing
    return f"{value:.{decimals}f}"


def format_delta(value: Optional[float], decimals: int = 2) -> str:
    """Format a change value with +/- sign."""
    if _is_missing(value):
        return "N/A"
    sign = "+" if value >= 0 else ""
    return f"{sign}{value:.{decimals}f}"


# =============================================================================
# Data Validation Utilities
# =============================================================================

def find_year_gaps(years: list[int]) -> list[int]:
    """Calendar years missing between the first and last year given."""
    if not years:
        return []
    present = set(years)
    return [y for y in range(min(present), max(present) + 1) if y not in present]


def check_data_coverage(
    df: pl.DataFrame,
    value_cols: list[str],
    min_rows: int = 3,
    year_col: str = "year",
) -> dict[str, Union[bool, str, int, list]]:
    """
    Check data coverage and completeness of a year-indexed frame.

    Returns:
        Dictionary with coverage stats and a list of human-readable issues
    """
    result = {
        "valid": True,
        "issues": [],
        "row_count": df.height,
        "year_gaps": [],
        "null_counts": {},
    }

    if df.height < min_rows:
        result["valid"] = False
        result["issues"].append(f"Insufficient rows: {df.height} < {min_rows}")

    missing_cols = [c for c in [year_col, *value_cols] if c not in df.columns]
    if missing_cols:
        result["valid"] = False
        result["issues"].append(f"Missing columns: {missing_cols}")
        return result

    gaps = find_year_gaps(df[year_col].to_list())
    result["year_gaps"] = gaps
    if gaps:
        result["issues"].append(f"Years absent from the series: {gaps}")

    for col in value_cols:
        nulls = df[col].null_count()
        result["null_counts"][col] = nulls
        if df.height and nulls / df.height > 0.5:
            result["issues"].append(f"High null rate for {col}: {nulls / df.height:.1%}")

    return result
