"""
Visualization module using Vega-Altair.

Charts of the processed series:
- comparison of inflation, GDP growth and the inflation moving average
- distribution of interannual changes in inflation
- observed series vs. linear trend, and the residuals around it
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import altair as alt
import polars as pl

from .data import INDICATOR_SERIES
from .derivations import DerivedSeries


alt.data_transformers.disable_max_rows()

CHART_COLORS = {
    "inflation": "#E74C3C",
    "gdp_growth": "#3498DB",
    "moving_average": "#E67E22",
    "observed": "#95A5A6",
    "trend": "#E74C3C",
    "residual": "#3498DB",
    "mean": "#2C3E50",
}

SOURCE_CAPTION = "Source: World Bank (World Development Indicators)"


def _period(derived: DerivedSeries) -> str:
    return f"{derived.series.min_year}-{derived.series.max_year}"


def _zero_rule(color: str = "gray", dash: Optional[list[int]] = None) -> alt.Chart:
    return alt.Chart(pl.DataFrame({"y": [0.0]}).to_pandas()).mark_rule(
        color=color, strokeDash=dash or [2, 2]
    ).encode(y="y:Q")


def chart_comparison(
    derived: DerivedSeries,
    country: str = "",
    ma_indicator: str = "inflation",
) -> alt.LayerChart:
    """
    Line chart of both indicators plus the trailing moving average of one.

    Args:
        derived: Derived series
        country: Country name for the title
        ma_indicator: Indicator whose moving average is drawn (dashed)

    Returns:
        Altair LayerChart
    """
    ma_col = derived.column(ma_indicator, "ma")
    ma_label = f"{INDICATOR_SERIES[ma_indicator].label} (MA-{derived.ma_window})"

    labels = {i: INDICATOR_SERIES[i].label for i in derived.indicators}
    labels[ma_col] = ma_label

    df_long = derived.frame.select(["year", *derived.indicators, ma_col]).unpivot(
        index="year",
        variable_name="series",
        value_name="value",
    ).with_columns(
        pl.col("series").replace_strict(labels).alias("series")
    )

    domain = [labels[i] for i in derived.indicators] + [ma_label]
    colors = [CHART_COLORS.get(i, "#7F8C8D") for i in derived.indicators]
    colors.append(CHART_COLORS["moving_average"])

    lines = alt.Chart(df_long.to_pandas()).mark_line(strokeWidth=2).encode(
        x=alt.X("year:Q", title="Year", axis=alt.Axis(format="d", tickMinStep=5)),
        y=alt.Y("value:Q", title="Percent (%)"),
        color=alt.Color(
            "series:N",
            title="Indicator",
            scale=alt.Scale(domain=domain, range=colors),
            legend=alt.Legend(orient="bottom"),
        ),
        strokeDash=alt.condition(
            alt.datum.series == ma_label,
            alt.value([6, 4]),
            alt.value([1, 0]),
        ),
        tooltip=[
            alt.Tooltip("year:Q", title="Year", format="d"),
            alt.Tooltip("series:N", title="Series"),
            alt.Tooltip("value:Q", title="Value", format=".2f"),
        ],
    )

    title = "Inflation and GDP Growth" + (f" in {country}" if country else "")
    return alt.layer(lines, _zero_rule()).properties(
        width=700,
        height=400,
        title=alt.TitleParams(title, subtitle=[f"Period {_period(derived)}", SOURCE_CAPTION]),
    )


def chart_yoy_histogram(
    derived: DerivedSeries,
    indicator: str = "inflation",
    bins: int = 15,
) -> alt.LayerChart:
    """
    Histogram (as density) of interannual changes with a density curve and
    a rule at the mean change.
    """
    col = derived.column(indicator, "yoy_delta")
    df = derived.frame.select(pl.col(col).alias("delta")).drop_nulls()

    if df.height == 0:
        raise ValueError(f"No interannual changes available for {indicator}")

    mean_delta = df["delta"].mean()
    color = CHART_COLORS.get(indicator, "#7F8C8D")
    base = alt.Chart(df.to_pandas())

    bars = base.transform_bin(
        "bin_start", "delta", bin=alt.Bin(maxbins=bins)
    ).transform_joinaggregate(
        total="count()"
    ).transform_aggregate(
        count="count()", total="max(total)", groupby=["bin_start", "bin_start_end"]
    ).transform_calculate(
        density="datum.count / (datum.total * (datum.bin_start_end - datum.bin_start))"
    ).mark_bar(color=color, opacity=0.7, stroke="white").encode(
        x=alt.X("bin_start:Q", title="Interannual change (percentage points)"),
        x2="bin_start_end:Q",
        y=alt.Y("density:Q", title="Density"),
    )

    density = base.transform_density(
        "delta", as_=["delta", "density"]
    ).mark_line(color="#C0392B", strokeWidth=2).encode(
        x="delta:Q",
        y="density:Q",
    )

    mean_rule = alt.Chart(pl.DataFrame({"mean": [mean_delta]}).to_pandas()).mark_rule(
        color=CHART_COLORS["mean"], strokeDash=[6, 4], strokeWidth=2
    ).encode(x="mean:Q")

    label = INDICATOR_SERIES[indicator].label
    return alt.layer(bars, density, mean_rule).properties(
        width=600,
        height=350,
        title=alt.TitleParams(
            f"Distribution of Interannual Changes: {label}",
            subtitle=["Year-on-year changes", "Vertical line: mean change"],
        ),
    )


def chart_decomposition(derived: DerivedSeries, indicator: str = "inflation") -> alt.Chart:
    """Observed series against its fitted linear trend."""
    trend_col = derived.column(indicator, "trend")
    label = INDICATOR_SERIES[indicator].label

    df_long = derived.frame.select(
        "year",
        pl.col(indicator).alias("Observed"),
        pl.col(trend_col).alias("Trend"),
    ).unpivot(index="year", variable_name="component", value_name="value")

    return alt.Chart(df_long.to_pandas()).mark_line().encode(
        x=alt.X("year:Q", title="Year", axis=alt.Axis(format="d")),
        y=alt.Y("value:Q", title=f"{label} (%)"),
        color=alt.Color(
            "component:N",
            title=None,
            scale=alt.Scale(
                domain=["Observed", "Trend"],
                range=[CHART_COLORS["observed"], CHART_COLORS["trend"]],
            ),
            legend=alt.Legend(orient="bottom"),
        ),
        size=alt.condition(alt.datum.component == "Trend", alt.value(3), alt.value(1.5)),
        tooltip=[
            alt.Tooltip("year:Q", title="Year", format="d"),
            alt.Tooltip("component:N"),
            alt.Tooltip("value:Q", format=".2f"),
        ],
    ).properties(
        width=700,
        height=300,
        title=alt.TitleParams(
            f"Time Series Decomposition: {label}",
            subtitle="Observed series and linear trend",
        ),
    )


def chart_residuals(derived: DerivedSeries, indicator: str = "inflation") -> alt.LayerChart:
    """Bar chart of deviations from the linear trend."""
    residual_col = derived.column(indicator, "residual")
    label = INDICATOR_SERIES[indicator].label

    df = derived.frame.select("year", pl.col(residual_col).alias("residual")).drop_nulls()

    bars = alt.Chart(df.to_pandas()).mark_bar(
        color=CHART_COLORS["residual"], opacity=0.7
    ).encode(
        x=alt.X("year:O", title="Year"),
        y=alt.Y("residual:Q", title="Residual (%)"),
        tooltip=[
            alt.Tooltip("year:O", title="Year"),
            alt.Tooltip("residual:Q", title="Residual", format=".2f"),
        ],
    )

    return alt.layer(bars, _zero_rule("black", [1, 0])).properties(
        width=700,
        height=250,
        title=alt.TitleParams(
            f"Linear Trend Residuals: {label}",
            subtitle="Deviations from the trend",
        ),
    )


def chart_decomposition_panel(derived: DerivedSeries, indicator: str = "inflation") -> alt.VConcatChart:
    """Decomposition chart stacked above its residuals."""
    return alt.vconcat(
        chart_decomposition(derived, indicator),
        chart_residuals(derived, indicator),
    ).resolve_scale(color="independent")


def save_charts(
    derived: DerivedSeries,
    output_dir: str | Path,
    country: str = "",
    indicator: str = "inflation",
    fmt: str = "html",
) -> list[Path]:
    """
    Build and save every chart.

    Charts that cannot be drawn for lack of data are skipped with a warning.

    Args:
        derived: Derived series
        output_dir: Directory for chart files
        country: Country name for titles
        indicator: Indicator used for histogram / decomposition charts
        fmt: "html", or "png"/"svg" (require the vl-convert-python package)

    Returns:
        Paths of the saved chart files
    """
    output_dir = Path(output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)

    builders = {
        "comparison_chart": lambda: chart_comparison(derived, country, indicator),
        "yoy_histogram": lambda: chart_yoy_histogram(derived, indicator),
        "decomposition_chart": lambda: chart_decomposition(derived, indicator),
        "residuals_chart": lambda: chart_residuals(derived, indicator),
        "decomposition_panel": lambda: chart_decomposition_panel(derived, indicator),
    }

    if indicator not in derived.trends:
        print(f"Warning: no trend fitted for {indicator}; skipping decomposition charts")
        for name in ("decomposition_chart", "residuals_chart", "decomposition_panel"):
            builders.pop(name)

    paths = []
    for name, build in builders.items():
        try:
            chart = build()
        except ValueError as e:
            print(f"Warning: skipping {name}: {e}")
            continue
        path = output_dir / f"{name}.{fmt}"
        chart.save(str(path))
        paths.append(path)

    return paths
