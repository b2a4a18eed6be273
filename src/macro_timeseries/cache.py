"""
Local file cache for World Bank indicator data.

Avoids re-downloading the same country/indicator/year-range on every run.
Cache files are stored as Parquet next to a JSON metadata index used for
expiry.
"""

from __future__ import annotations

import hashlib
import json
import os
from datetime import datetime, timedelta
from pathlib import Path
from typing import Optional

import polars as pl

from .core.registry import data_source_registry
from .data import DEFAULT_INDICATORS, WORLD_BANK_BASE_URL, WorldBankSource


def get_default_cache_dir() -> Path:
    """Get the default cache directory."""
    # Use XDG_CACHE_HOME if available, otherwise ~/.cache
    cache_home = os.environ.get("XDG_CACHE_HOME", os.path.expanduser("~/.cache"))
    cache_dir = Path(cache_home) / "macro_timeseries" / "world_bank_cache"
    cache_dir.mkdir(parents=True, exist_ok=True)
    return cache_dir


class WorldBankCache:
    """
    Local file cache for World Bank indicator frames.

    Entries are keyed by (country, indicator, start_year, end_year).
    """

    def __init__(
        self,
        cache_dir: Optional[str | Path] = None,
        max_age_hours: int = 24,
    ):
        """
        Initialize the cache.

        Args:
            cache_dir: Directory to store cache files. Defaults to ~/.cache/macro_timeseries/world_bank_cache
            max_age_hours: Maximum age of cached data in hours before refresh.
                Annual WDI figures are revised rarely, so a day is plenty.
        """
        self.cache_dir = Path(cache_dir) if cache_dir else get_default_cache_dir()
        self.cache_dir.mkdir(parents=True, exist_ok=True)
        self.max_age_hours = max_age_hours
        self.metadata_file = self.cache_dir / "cache_metadata.json"
        self._metadata = self._load_metadata()

    def _load_metadata(self) -> dict:
        """Load cache metadata from disk."""
        if self.metadata_file.exists():
            try:
                with open(self.metadata_file, "r") as f:
                    return json.load(f)
            except (json.JSONDecodeError, IOError):
                return {}
        return {}

    def _save_metadata(self):
        """Save cache metadata to disk."""
        with open(self.metadata_file, "w") as f:
            json.dump(self._metadata, f, indent=2, default=str)

    def _get_cache_key(self, country: str, indicator: str, start_year: int, end_year: int) -> str:
        """Generate a unique cache key for a query."""
        key_str = f"{country}_{indicator}_{start_year}_{end_year}"
        return hashlib.md5(key_str.encode()).hexdigest()[:16]

    def _get_cache_path(self, cache_key: str) -> Path:
        """Get the file path for a cache key."""
        return self.cache_dir / f"{cache_key}.parquet"

    def is_valid(self, country: str, indicator: str, start_year: int, end_year: int) -> bool:
        """Check if cached data exists and has not expired."""
        cache_key = self._get_cache_key(country, indicator, start_year, end_year)

        if cache_key not in self._metadata:
            return False

        meta = self._metadata[cache_key]
        cached_time = datetime.fromisoformat(meta["cached_at"])
        age = datetime.now() - cached_time

        if age > timedelta(hours=self.max_age_hours):
            return False

        return self._get_cache_path(cache_key).exists()

    def load(
        self,
        country: str,
        indicator: str,
        start_year: int,
        end_year: int,
    ) -> Optional[pl.DataFrame]:
        """
        Load data from cache if valid.

        Returns:
            Cached [year, value] DataFrame or None if missing, expired or unreadable
        """
        if not self.is_valid(country, indicator, start_year, end_year):
            return None

        cache_key = self._get_cache_key(country, indicator, start_year, end_year)
        cache_path = self._get_cache_path(cache_key)

        try:
            return pl.read_parquet(cache_path)
        except (OSError, pl.exceptions.PolarsError) as e:
            print(f"Warning: Failed to read cache file {cache_path}: {e}")
            return None

    def save(
        self,
        country: str,
        indicator: str,
        data: pl.DataFrame,
        start_year: int,
        end_year: int,
    ):
        """Save an indicator frame to the cache."""
        cache_key = self._get_cache_key(country, indicator, start_year, end_year)
        cache_path = self._get_cache_path(cache_key)

        try:
            data.write_parquet(cache_path)
        except (OSError, pl.exceptions.PolarsError) as e:
            print(f"Warning: Failed to save cache file {cache_path}: {e}")
            return

        self._metadata[cache_key] = {
            "country": country,
            "indicator": indicator,
            "start_year": start_year,
            "end_year": end_year,
            "cached_at": datetime.now().isoformat(),
            "rows": data.height,
        }
        self._save_metadata()

    def clear(self, indicator: Optional[str] = None):
        """
        Clear cache entries.

        Args:
            indicator: If provided, clear only entries for this indicator.
                       If None, clear all cache entries.
        """
        if indicator is None:
            keys_to_remove = list(self._metadata.keys())
        else:
            keys_to_remove = [
                key for key, meta in self._metadata.items()
                if meta.get("indicator") == indicator
            ]

        for key in keys_to_remove:
            cache_path = self._get_cache_path(key)
            if cache_path.exists():
                cache_path.unlink()
            del self._metadata[key]

        self._save_metadata()

    def get_stats(self) -> dict:
        """Get cache statistics."""
        total_size = sum(
            self._get_cache_path(key).stat().st_size
            for key in self._metadata
            if self._get_cache_path(key).exists()
        )

        return {
            "cache_dir": str(self.cache_dir),
            "total_entries": len(self._metadata),
            "total_size_mb": total_size / (1024 * 1024),
            "max_age_hours": self.max_age_hours,
        }


@data_source_registry.register("cached_world_bank", aliases=["cached"])
class CachedWorldBankSource(WorldBankSource):
    """
    World Bank source with local file caching.

    Only complete indicator frames are cached, so a cache hit never mixes
    fresh and stale pages.
    """

    kind = "cached_world_bank"

    def __init__(
        self,
        country: str = "CR",
        indicators: tuple[str, ...] | list[str] = DEFAULT_INDICATORS,
        start_year: int = 1994,
        end_year: int = 2024,
        timeout: float = 30,
        per_page: int = 1000,
        base_url: str = WORLD_BANK_BASE_URL,
        cache_dir: Optional[str | Path] = None,
        max_age_hours: int = 24,
    ):
        super().__init__(
            country=country,
            indicators=indicators,
            start_year=start_year,
            end_year=end_year,
            timeout=timeout,
            per_page=per_page,
            base_url=base_url,
        )
        self.cache = WorldBankCache(cache_dir=cache_dir, max_age_hours=max_age_hours)

    def describe(self) -> str:
        return super().describe() + f" [cache: {self.cache.cache_dir}]"

    def fetch_indicator(self, indicator: str) -> pl.DataFrame:
        cached = self.cache.load(self.country, indicator, self.start_year, self.end_year)
        if cached is not None:
            return cached

        df = super().fetch_indicator(indicator)

        if df.height > 0:
            self.cache.save(self.country, indicator, df, self.start_year, self.end_year)

        return df

    def get_cache_stats(self) -> dict:
        return self.cache.get_stats()

    def clear_cache(self, indicator: Optional[str] = None):
        self.cache.clear(indicator)
