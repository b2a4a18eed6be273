"""
Configuration Loading and Validation

Run settings live in JSON files under config/ (see config/analysis.json):
- Schema validation with defaults for optional fields
- Environment variable interpolation (${VAR_NAME})
- AnalysisConfig: typed view of a validated run config
"""

from __future__ import annotations

import copy
import json
import os
import re
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any, Callable, Optional


DEFAULT_CONFIG_NAME = "analysis.json"


def get_project_root() -> Path:
    """Get the project root directory."""
    # Walk up from this file to find pyproject.toml
    current = Path(__file__).resolve().parent
    while current != current.parent:
        if (current / "pyproject.toml").exists():
            return current
        current = current.parent
    return Path.cwd()


def get_config_dir() -> Path:
    """Get the config directory."""
    return get_project_root() / "config"


@dataclass
class ConfigSchema:
    """
    Schema definition for config validation.

    Usage:
        schema = ConfigSchema(
            required=["country"],
            optional={"start_year": 1994},
            types={"country": str, "start_year": int},
            validators={"ma_window": lambda k: k >= 1},
        )
        errors = schema.validate(config_dict)
    """

    required: list[str] = field(default_factory=list)
    optional: dict[str, Any] = field(default_factory=dict)
    types: dict[str, type | tuple[type, ...]] = field(default_factory=dict)
    validators: dict[str, Callable[[Any], bool]] = field(default_factory=dict)

    def validate(self, config: dict[str, Any]) -> list[str]:
        """
        Validate a config against this schema.

        Returns:
            List of validation error messages (empty if valid)
        """
        errors = [
            f"Missing required field: {name}"
            for name in self.required
            if name not in config
        ]

        for name, expected_type in self.types.items():
            if name not in config:
                continue
            value = config[name]
            # bool is an int subclass; don't let True pass as a year
            if isinstance(value, bool) and expected_type is not bool:
                errors.append(f"Field '{name}' expected {_type_name(expected_type)}, got bool")
            elif not isinstance(value, expected_type):
                errors.append(
                    f"Field '{name}' expected {_type_name(expected_type)}, "
                    f"got {type(value).__name__}"
                )

        for name, validator in self.validators.items():
            if name not in config:
                continue
            try:
                if not validator(config[name]):
                    errors.append(f"Validation failed for field: {name}")
            except Exception as e:
                errors.append(f"Validator error for '{name}': {e}")

        return errors

    def apply_defaults(self, config: dict[str, Any]) -> dict[str, Any]:
        """Apply default values for missing optional fields."""
        result = config.copy()
        for name, default_value in self.optional.items():
            if name not in result:
                result[name] = copy.deepcopy(default_value)
        return result


def _type_name(expected: type | tuple[type, ...]) -> str:
    if isinstance(expected, tuple):
        return " or ".join(t.__name__ for t in expected)
    return expected.__name__


class ConfigLoader:
    """
    Load and validate JSON configuration files.

    Relative paths are resolved against base_dir (the project config/ dir
    by default). Loaded configs are cached per path.
    """

    def __init__(self, base_dir: Optional[Path] = None):
        self.base_dir = Path(base_dir) if base_dir else get_config_dir()
        self._cache: dict[str, dict] = {}

    def load(
        self,
        path: str | Path,
        schema: Optional[ConfigSchema] = None,
        use_cache: bool = True,
    ) -> dict[str, Any]:
        """
        Load a config file.

        Args:
            path: Path to config file (absolute or relative to base_dir)
            schema: Optional schema for validation
            use_cache: Whether to use cached config

        Returns:
            Loaded and validated config dict

        Raises:
            FileNotFoundError: If config file not found
            ValueError: If the file is not valid JSON or validation fails
        """
        path = Path(path)
        if not path.is_absolute():
            path = self.base_dir / path

        cache_key = str(path)
        if use_cache and cache_key in self._cache:
            return self._cache[cache_key]

        if not path.exists():
            raise FileNotFoundError(f"Config file not found: {path}")

        with open(path, "r") as f:
            try:
                config = json.load(f)
            except json.JSONDecodeError as e:
                raise ValueError(f"Invalid JSON in config file {path}: {e}") from e

        config = self._interpolate_env_vars(config)

        if schema:
            config = validate_config(config, schema, source=str(path))

        if use_cache:
            self._cache[cache_key] = config

        return config

    def _interpolate_env_vars(self, obj: Any) -> Any:
        """Recursively replace ${VAR} patterns with environment variables."""
        if isinstance(obj, str):
            return re.sub(
                r"\$\{([^}]+)\}",
                lambda match: os.environ.get(match.group(1), match.group(0)),
                obj,
            )
        elif isinstance(obj, dict):
            return {k: self._interpolate_env_vars(v) for k, v in obj.items()}
        elif isinstance(obj, list):
            return [self._interpolate_env_vars(item) for item in obj]
        return obj

    def clear_cache(self):
        """Clear the config cache."""
        self._cache.clear()


def validate_config(
    config: dict[str, Any],
    schema: ConfigSchema,
    source: str = "",
) -> dict[str, Any]:
    """
    Validate and apply defaults to a config dict.

    Raises:
        ValueError: Listing every validation error
    """
    errors = schema.validate(config)
    if errors:
        where = f" for {source}" if source else ""
        raise ValueError(
            f"Config validation failed{where}:\n" +
            "\n".join(f"  - {e}" for e in errors)
        )
    return schema.apply_defaults(config)


SOURCE_KINDS = ("world_bank", "cached_world_bank", "csv")
CHART_FORMATS = ("html", "png", "svg")

ANALYSIS_CONFIG_SCHEMA = ConfigSchema(
    required=["country"],
    optional={
        "country_name": "",
        "source": "world_bank",
        "source_params": {},
        "indicators": ["inflation", "gdp_growth"],
        "start_year": 1994,
        "end_year": 2024,
        "timeout": 30,
        "ma_window": 3,
        "confidence_level": 0.95,
        "output_dir": "results",
        "charts": True,
        "chart_format": "html",
        "chart_indicator": "inflation",
        "export_format": {},
        "strict": False,
    },
    types={
        "country": str,
        "country_name": str,
        "source": str,
        "source_params": dict,
        "indicators": list,
        "start_year": int,
        "end_year": int,
        "timeout": (int, float),
        "ma_window": int,
        "confidence_level": float,
        "output_dir": str,
        "charts": bool,
        "chart_format": str,
        "chart_indicator": str,
        "export_format": dict,
        "strict": bool,
    },
    validators={
        "source": lambda s: s in SOURCE_KINDS,
        "indicators": lambda xs: len(xs) == 2 and len(set(xs)) == 2,
        "ma_window": lambda k: k >= 1,
        "confidence_level": lambda c: 0 < c < 1,
        "timeout": lambda t: t > 0,
        "chart_format": lambda f: f in CHART_FORMATS,
    },
)


@dataclass
class AnalysisConfig:
    """
    Settings of one analysis run.

    Can be loaded from JSON for easy experimentation.
    """

    country: str = "CR"
    country_name: str = ""

    # Data source ("world_bank", "cached_world_bank" or "csv") and extra
    # constructor arguments, e.g. {"path": "datos_bccr.csv"} for csv
    source: str = "world_bank"
    source_params: dict[str, Any] = field(default_factory=dict)

    indicators: list[str] = field(default_factory=lambda: ["inflation", "gdp_growth"])
    start_year: int = 1994
    end_year: int = 2024
    timeout: float = 30

    # Derivations
    ma_window: int = 3
    confidence_level: float = 0.95

    # Output
    output_dir: str = "results"
    charts: bool = True
    chart_format: str = "html"
    chart_indicator: str = "inflation"
    export_format: dict[str, Any] = field(default_factory=dict)

    # Raise on the first failed derivation instead of reporting it
    strict: bool = False

    def __post_init__(self):
        if self.start_year > self.end_year:
            raise ValueError(
                f"start_year {self.start_year} is after end_year {self.end_year}"
            )
        if self.chart_indicator not in self.indicators:
            raise ValueError(
                f"chart_indicator '{self.chart_indicator}' is not one of {self.indicators}"
            )

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "AnalysisConfig":
        """Validate a raw config dict and build the config."""
        config = validate_config(data, ANALYSIS_CONFIG_SCHEMA)
        unknown = sorted(set(config) - set(cls.__dataclass_fields__))
        if unknown:
            raise ValueError(f"Unknown config fields: {unknown}")
        return cls(**config)

    @classmethod
    def from_json(cls, path: str | Path, loader: Optional[ConfigLoader] = None) -> "AnalysisConfig":
        """Load config from a JSON file (with ${VAR} interpolation)."""
        loader = loader or ConfigLoader()
        return cls.from_dict(loader.load(path, use_cache=False))

    def to_json(self, path: str | Path):
        """Save config to JSON file."""
        with open(path, "w") as f:
            json.dump(asdict(self), f, indent=2)

    def source_kwargs(self) -> dict[str, Any]:
        """Constructor arguments for the configured data source."""
        if self.source == "csv":
            kwargs: dict[str, Any] = {"indicators": tuple(self.indicators)}
        else:
            kwargs = {
                "country": self.country,
                "indicators": tuple(self.indicators),
                "start_year": self.start_year,
                "end_year": self.end_year,
                "timeout": self.timeout,
            }
        kwargs.update(self.source_params)
        return kwargs


def load_analysis_config(path: Optional[str | Path] = None) -> AnalysisConfig:
    """
    Load the run config, defaulting to config/analysis.json.

    Falls back to built-in defaults when no path is given and the default
    file does not exist.
    """
    if path is None:
        default_path = get_config_dir() / DEFAULT_CONFIG_NAME
        if not default_path.exists():
            return AnalysisConfig()
        path = default_path
    return AnalysisConfig.from_json(path)
