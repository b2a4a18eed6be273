"""Shared fixtures for the analysis tests."""

from __future__ import annotations

import pytest

from macro_timeseries.series import build_series


# Costa Rica, World Bank WDI (rounded); 2004 is left out to exercise a gap
SAMPLE_RECORDS = [
    {"year": 2000, "inflation": 10.99, "gdp_growth": 1.79},
    {"year": 2001, "inflation": 11.26, "gdp_growth": 1.08},
    {"year": 2002, "inflation": 9.16, "gdp_growth": 2.93},
    {"year": 2003, "inflation": 9.45, "gdp_growth": 6.43},
    {"year": 2005, "inflation": 13.80, "gdp_growth": 5.90},
    {"year": 2006, "inflation": 11.47, "gdp_growth": 8.78},
    {"year": 2007, "inflation": 9.04, "gdp_growth": 7.95},
    {"year": 2008, "inflation": 13.42, "gdp_growth": None},
    {"year": 2009, "inflation": 7.84, "gdp_growth": -0.97},
    {"year": 2010, "inflation": None, "gdp_growth": 5.03},
    {"year": 2011, "inflation": 4.88, "gdp_growth": 4.34},
    {"year": 2012, "inflation": 4.50, "gdp_growth": 4.80},
]


@pytest.fixture
def sample_records():
    # Shuffled to check that order does not matter
    return list(reversed(SAMPLE_RECORDS))


@pytest.fixture
def sample_series(sample_records):
    return build_series(sample_records)


@pytest.fixture
def example_series():
    """Three contiguous years, both indicators rising linearly."""
    return build_series([
        {"year": 2020, "inflation": 5.0, "gdp_growth": 2.0},
        {"year": 2021, "inflation": 7.0, "gdp_growth": 3.0},
        {"year": 2022, "inflation": 9.0, "gdp_growth": 4.0},
    ])
