#!/usr/bin/env python3
"""
Inflation / GDP Growth Analysis Script

Downloads (or reads) the data, runs the derivations and statistics, and
writes tables, charts and a report to the output directory.

Usage:
    python scripts/run_analysis.py
    python scripts/run_analysis.py --country CR --start-year 1994 --end-year 2024 --output resultados/
    python scripts/run_analysis.py --source csv --csv datos_bccr.csv --csv-columns fecha,inflacion,pib_crecimiento
"""

from __future__ import annotations

import argparse
import sys
from dataclasses import asdict

from macro_timeseries.core.config import SOURCE_KINDS, AnalysisConfig, load_analysis_config
from macro_timeseries.errors import PipelineError
from macro_timeseries.pipeline import run_analysis


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Analyse inflation and GDP growth of a country")
    parser.add_argument(
        "--config",
        type=str,
        default=None,
        help="Path to a JSON run config (default: config/analysis.json)",
    )
    parser.add_argument(
        "--source",
        choices=SOURCE_KINDS,
        default=None,
        help="Data source variant",
    )
    parser.add_argument(
        "--csv",
        type=str,
        default=None,
        help="CSV file with columns date, inflation, gdp_growth (implies --source csv)",
    )
    parser.add_argument(
        "--csv-columns",
        type=str,
        default=None,
        help="Comma-separated names of the date, inflation and GDP growth columns",
    )
    parser.add_argument("--country", type=str, default=None, help="ISO country code")
    parser.add_argument("--start-year", type=int, default=None, help="First year (inclusive)")
    parser.add_argument("--end-year", type=int, default=None, help="Last year (inclusive)")
    parser.add_argument("--output", type=str, default=None, help="Output directory")
    parser.add_argument("--no-charts", action="store_true", help="Skip chart generation")
    parser.add_argument(
        "--strict",
        action="store_true",
        help="Abort on the first failed derivation instead of reporting it",
    )
    return parser


def config_from_args(args: argparse.Namespace) -> AnalysisConfig:
    """Apply command-line overrides on top of the JSON config."""
    config = asdict(load_analysis_config(args.config))

    # Params of one source variant are not valid for another
    if args.source and args.source != config["source"]:
        config["source_params"] = {}

    overrides = {
        "country": args.country,
        "start_year": args.start_year,
        "end_year": args.end_year,
        "output_dir": args.output,
        "source": args.source,
    }
    config.update({k: v for k, v in overrides.items() if v is not None})

    if args.csv:
        config["source"] = "csv"
        config["source_params"] = {"path": args.csv}
        if args.csv_columns:
            names = [c.strip() for c in args.csv_columns.split(",")]
            if len(names) != 3:
                raise ValueError("--csv-columns needs exactly three names")
            config["source_params"]["columns"] = dict(
                zip(["date", *config["indicators"]], names)
            )
    elif config["source"] == "csv" and "path" not in config["source_params"]:
        raise ValueError("--source csv requires --csv PATH")

    if args.no_charts:
        config["charts"] = False
    if args.strict:
        config["strict"] = True

    return AnalysisConfig.from_dict(config)


def main():
    parser = build_parser()
    args = parser.parse_args()

    try:
        config = config_from_args(args)
    except ValueError as e:
        parser.error(str(e))

    print("=" * 60)
    print("Inflation and GDP Growth Analysis")
    print("=" * 60)

    try:
        run_analysis(config)
    except (PipelineError, ValueError) as e:
        print(f"Error: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
