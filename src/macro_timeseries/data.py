"""
Data sources for the inflation / GDP growth analysis.

Two interchangeable variants supply raw (year, inflation, gdp_growth) records:
- WorldBankSource: World Development Indicators API (JSON, paginated)
- CsvFileSource: local CSV with columns date (ISO 8601), inflation, gdp_growth

Variants are registered by name in `data_source_registry` and created with
`create_source()`, so the pipeline never branches on where the data came from.
Any failure to reach or parse the source raises SourceUnavailableError.
"""

from __future__ import annotations

import inspect
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional

import polars as pl
import requests

from .core.registry import data_source_registry
from .errors import SourceUnavailableError


WORLD_BANK_BASE_URL = "https://api.worldbank.org/v2"


@dataclass(frozen=True)
class IndicatorInfo:
    """Metadata for an analysed indicator."""

    name: str
    prefix: str  # prefix of the derived columns (e.g. "gdp" -> gdp_ma3)
    code: str  # World Bank indicator code
    description: str
    label: str


INDICATOR_SERIES = {
    # Inflation, consumer prices (annual %)
    "inflation": IndicatorInfo(
        name="inflation",
        prefix="inflation",
        code="FP.CPI.TOTL.ZG",
        description="Inflation, consumer prices (annual %)",
        label="Inflation",
    ),
    # GDP growth (annual %)
    "gdp_growth": IndicatorInfo(
        name="gdp_growth",
        prefix="gdp",
        code="NY.GDP.MKTP.KD.ZG",
        description="GDP growth (annual %)",
        label="GDP growth",
    ),
}

DEFAULT_INDICATORS = ("inflation", "gdp_growth")


def get_indicator_info(indicator: str) -> IndicatorInfo:
    """Look up indicator metadata, raising KeyError for unknown names."""
    if indicator not in INDICATOR_SERIES:
        available = ", ".join(sorted(INDICATOR_SERIES))
        raise KeyError(f"Unknown indicator: {indicator}. Available: {available}")
    return INDICATOR_SERIES[indicator]


def join_indicator_frames(frames: dict[str, pl.DataFrame]) -> pl.DataFrame:
    """
    Full outer join of per-indicator [year, value] frames on year.

    Returns:
        DataFrame with a year column and one column per indicator
    """
    result: Optional[pl.DataFrame] = None
    for indicator, df in frames.items():
        df = df.select("year", pl.col("value").alias(indicator))
        if result is None:
            result = df
        else:
            result = result.join(df, on="year", how="full", coalesce=True)

    if result is None:
        return pl.DataFrame(schema={"year": pl.Int64})

    return result.sort("year")


class BaseDataSource(ABC):
    """
    Supplies raw observations for a fixed country and year range.

    Subclasses implement fetch_frame(); fetch() returns the records as
    plain dicts and calling the source is the same as fetch().
    """

    kind = "base"

    def __init__(self, indicators: tuple[str, ...] | list[str] = DEFAULT_INDICATORS):
        for indicator in indicators:
            get_indicator_info(indicator)
        self.indicators = tuple(indicators)

    @abstractmethod
    def fetch_frame(self) -> pl.DataFrame:
        """
        Acquire the complete dataset.

        Returns:
            Polars DataFrame with columns [year, <indicator>...]

        Raises:
            SourceUnavailableError: If the data cannot be fetched or parsed
        """
        pass

    def fetch(self) -> list[dict[str, Any]]:
        """Fetch raw records of the form {year, <indicator>: value | None}."""
        return self.fetch_frame().to_dicts()

    def __call__(self) -> list[dict[str, Any]]:
        return self.fetch()

    def describe(self) -> str:
        return self.kind


@data_source_registry.register("world_bank", aliases=["remote", "wdi"])
class WorldBankSource(BaseDataSource):
    """
    Fetch annual indicators from the World Bank API (v2).

    Each indicator is requested separately and all pages are read before the
    frames are joined. A failure on any request aborts the whole fetch.
    """

    kind = "world_bank"

    def __init__(
        self,
        country: str = "CR",
        indicators: tuple[str, ...] | list[str] = DEFAULT_INDICATORS,
        start_year: int = 1994,
        end_year: int = 2024,
        timeout: float = 30,
        per_page: int = 1000,
        base_url: str = WORLD_BANK_BASE_URL,
    ):
        """
        Initialize the World Bank source.

        Args:
            country: ISO country code (2 or 3 letters)
            indicators: Indicator names from INDICATOR_SERIES
            start_year: First year requested (inclusive)
            end_year: Last year requested (inclusive)
            timeout: Per-request timeout in seconds
            per_page: Page size for the paginated API
            base_url: API root URL
        """
        super().__init__(indicators)
        if start_year > end_year:
            raise ValueError(f"start_year {start_year} is after end_year {end_year}")
        self.country = country
        self.start_year = start_year
        self.end_year = end_year
        self.timeout = timeout
        self.per_page = per_page
        self.base_url = base_url.rstrip("/")

    def describe(self) -> str:
        return f"World Bank API ({self.country}, {self.start_year}-{self.end_year})"

    def _indicator_url(self, code: str) -> str:
        return f"{self.base_url}/country/{self.country}/indicator/{code}"

    def _get_page(self, indicator: str, page: int) -> tuple[dict, list]:
        """Request one page and return its (metadata, rows) pair."""
        code = get_indicator_info(indicator).code
        params = {
            "format": "json",
            "date": f"{self.start_year}:{self.end_year}",
            "per_page": self.per_page,
            "page": page,
        }

        try:
            response = requests.get(
                self._indicator_url(code), params=params, timeout=self.timeout
            )
            response.raise_for_status()
            payload = response.json()
        except requests.RequestException as e:
            raise SourceUnavailableError(
                f"World Bank request for {code} failed: {e}", indicator=indicator
            ) from e
        except ValueError as e:
            raise SourceUnavailableError(
                f"World Bank response for {code} is not valid JSON: {e}",
                indicator=indicator,
            ) from e

        # Errors come back as a single-element list with a "message" entry
        if not isinstance(payload, list) or len(payload) != 2:
            detail = payload
            if isinstance(payload, list) and payload and isinstance(payload[0], dict):
                detail = payload[0].get("message", payload)
            raise SourceUnavailableError(
                f"Unexpected World Bank payload for {code}: {detail}",
                indicator=indicator,
            )

        metadata, rows = payload
        return metadata or {}, rows or []

    def _parse_rows(self, indicator: str, rows: list[dict]) -> list[tuple[int, Optional[float]]]:
        parsed = []
        for entry in rows:
            try:
                year = int(entry["date"])
                value = entry.get("value")
                parsed.append((year, None if value is None else float(value)))
            except (KeyError, TypeError, ValueError) as e:
                raise SourceUnavailableError(
                    f"Malformed World Bank row {entry!r}: {e}", indicator=indicator
                ) from e
        return parsed

    def fetch_indicator(self, indicator: str) -> pl.DataFrame:
        """
        Fetch every page of a single indicator.

        Returns:
            Polars DataFrame with columns [year, value]
        """
        records: list[tuple[int, Optional[float]]] = []
        page = 1
        total_pages = None

        while total_pages is None or page <= total_pages:
            metadata, rows = self._get_page(indicator, page)
            if total_pages is None:
                total_pages = int(metadata.get("pages") or 1)
            records.extend(self._parse_rows(indicator, rows))
            page += 1

        return pl.DataFrame(
            records,
            schema={"year": pl.Int64, "value": pl.Float64},
            orient="row",
        )

    def fetch_frame(self) -> pl.DataFrame:
        frames = {
            indicator: self.fetch_indicator(indicator)
            for indicator in self.indicators
        }
        return join_indicator_frames(frames)


@data_source_registry.register("csv", aliases=["file"])
class CsvFileSource(BaseDataSource):
    """
    Read observations from a local CSV file.

    Expected columns: date (ISO 8601), inflation, gdp_growth. The date is
    reduced to its calendar year. Column names can be remapped, e.g.
    {"date": "fecha", "inflation": "inflacion", "gdp_growth": "pib_crecimiento"}.
    """

    kind = "csv"

    def __init__(
        self,
        path: str | Path,
        columns: Optional[dict[str, str]] = None,
        date_format: str = "%Y-%m-%d",
        indicators: tuple[str, ...] | list[str] = DEFAULT_INDICATORS,
        null_values: tuple[str, ...] | list[str] = ("", "NA"),
    ):
        super().__init__(indicators)
        self.path = Path(path)
        self.columns = {"date": "date", **{i: i for i in self.indicators}}
        self.columns.update(columns or {})
        self.date_format = date_format
        self.null_values = list(null_values)

    def describe(self) -> str:
        return f"CSV file {self.path}"

    def fetch_frame(self) -> pl.DataFrame:
        if not self.path.exists():
            raise SourceUnavailableError(f"CSV file not found: {self.path}")

        try:
            raw = pl.read_csv(
                self.path,
                infer_schema_length=0,  # read everything as strings
                null_values=self.null_values,
            )
        except (OSError, pl.exceptions.PolarsError) as e:
            raise SourceUnavailableError(f"Cannot read {self.path}: {e}") from e

        missing = [c for c in self.columns.values() if c not in raw.columns]
        if missing:
            raise SourceUnavailableError(
                f"{self.path} is missing columns {missing} (found {raw.columns})"
            )

        date_col = self.columns["date"]
        try:
            df = raw.select(
                pl.col(date_col)
                .str.strip_chars()
                .str.to_date(self.date_format)
                .dt.year()
                .cast(pl.Int64)
                .alias("year"),
                *[
                    pl.col(self.columns[i]).str.strip_chars().cast(pl.Float64).alias(i)
                    for i in self.indicators
                ],
            )
        except pl.exceptions.PolarsError as e:
            raise SourceUnavailableError(f"Cannot parse {self.path}: {e}") from e

        if df["year"].null_count() > 0:
            raise SourceUnavailableError(f"{self.path} has rows without a date")

        return df


def create_source(kind: str, **params) -> BaseDataSource:
    """
    Create a data source variant by registered name.

    Args:
        kind: "world_bank", "cached_world_bank" or "csv" (or an alias)
        **params: Constructor arguments of the variant

    Returns:
        Configured data source

    Raises:
        KeyError: If kind is not registered
        ValueError: If params include arguments the variant does not take
    """
    # Cached variant registers itself on import
    from . import cache  # noqa: F401

    cls = data_source_registry.get(kind)
    accepted = inspect.signature(cls).parameters
    unknown = sorted(set(params) - set(accepted))
    if unknown:
        raise ValueError(
            f"Source '{kind}' does not accept {unknown} (accepts {list(accepted)})"
        )
    return data_source_registry.create(kind, **params)
