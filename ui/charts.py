"""Series, table and CSV shaping for the dashboard charts."""

from __future__ import annotations

import logging
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

import pandas as pd

from .schemas import (
    CategoryChart,
    CategorySeries,
    ChartPoint,
    CycleData,
    HorizonData,
    OverviewPoint,
    SeriesPayload,
    SeriesPoint,
    SeriesResponse,
)

LOGGER = logging.getLogger(__name__)

PALETTE = [
    "#F9A900",
    "#0062ff",
    "#8a3ffc",
    "#24a148",
    "#d12771",
    "#009d9a",
    "#ff832b",
    "#a56eff",
    "#fa4d56",
    "#1192e8",
    "#198038",
    "#6929c4",
]
READINGS_COLOR = "#393939"


def _frame(points: Sequence[ChartPoint]) -> pd.DataFrame:
    frame = pd.DataFrame([point.model_dump() for point in points], columns=["date", "value", "series", "unit"])
    frame["ts"] = pd.to_datetime(frame["date"], utc=True, errors="coerce")
    dropped = frame["ts"].isna().sum()
    if dropped:
        LOGGER.warning("Dropping %d chart points with unparsable dates", dropped)
    return frame.dropna(subset=["ts"])


def series_order(points: Iterable[ChartPoint]) -> List[str]:
    names: List[str] = []
    for point in points:
        if point.series not in names:
            names.append(point.series)
    return names


def build_series(
    points: Sequence[ChartPoint],
    *,
    dashed: Iterable[str] = (),
    colors: Optional[Dict[str, str]] = None,
    meta: Optional[dict] = None,
) -> SeriesResponse:
    """Group long-format points into one time-sorted series per name."""
    if not points:
        return SeriesResponse(series=[], meta={**(meta or {}), "rows": 0})
    frame = _frame(points)
    dashed_names = set(dashed)
    colors = colors or {}
    payloads: List[SeriesPayload] = []
    for idx, name in enumerate(series_order(points)):
        subset = frame[frame["series"] == name].sort_values("ts")
        data = [
            SeriesPoint(timestamp=int(ts.timestamp() * 1000), value=(None if pd.isna(val) else float(val)))
            for ts, val in zip(subset["ts"], subset["value"])
        ]
        unit = subset["unit"].iloc[0] if not subset.empty else ""
        payloads.append(
            SeriesPayload(
                name=name,
                unit=unit,
                color=colors.get(name, PALETTE[idx % len(PALETTE)]),
                dashed=name in dashed_names,
                data=data,
            )
        )
    return SeriesResponse(series=payloads, meta={**(meta or {}), "rows": len(frame)})


def pivot_table(points: Sequence[ChartPoint]) -> Tuple[List[str], List[Dict[str, object]]]:
    """Return ``(series names, rows)`` with one row per distinct date, oldest first."""
    if not points:
        return [], []
    names = series_order(points)
    frame = _frame(points)
    frame["value"] = pd.to_numeric(frame["value"], errors="coerce")
    # one row per instant even when the same instant is spelled differently
    wide = frame.pivot_table(index="ts", columns="series", values="value", aggfunc="last", dropna=False)
    wide = wide.reindex(columns=names).sort_index()
    dates = frame.drop_duplicates("ts").set_index("ts")["date"]
    rows: List[Dict[str, object]] = []
    for ts, values in wide.iterrows():
        row: Dict[str, object] = {"date": dates.loc[ts], "timestamp": int(ts.timestamp() * 1000)}
        for name in names:
            value = values.get(name)
            row[name] = None if value is None or pd.isna(value) else float(value)
        rows.append(row)
    return names, rows


def to_csv(points: Sequence[ChartPoint]) -> str:
    """CSV with a ``Date`` column followed by one column per series."""
    names, rows = pivot_table(points)
    if not rows:
        return ""
    frame = pd.DataFrame(
        [[row["date"], *(row[name] for name in names)] for row in rows],
        columns=["Date", *names],
    )
    return frame.to_csv(index=False, na_rep="", lineterminator="\n")


def overview_points(points: Iterable[OverviewPoint]) -> List[ChartPoint]:
    return [
        ChartPoint(
            date=point.date,
            value=point.value,
            series=f"{point.plant} ({point.type})",
            unit=point.measurement_unit,
        )
        for point in points
    ]


def overview_chart(points: Sequence[OverviewPoint]) -> SeriesResponse:
    """Production vs forecast per plant; forecast lines are dashed."""
    chart_points = overview_points(points)
    dashed = {p.series for p, raw in zip(chart_points, points) if raw.type == "forecast"}
    return build_series(chart_points, dashed=dashed)


def _as_float(value: object) -> Optional[float]:
    try:
        number = float(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return None
    return None if pd.isna(number) else number


def horizon_chart(rows: Iterable[HorizonData]) -> CategoryChart:
    """Metric value per forecast horizon (hours), one series per metric type."""
    frame = pd.DataFrame(
        [
            {"horizon": _as_float(row.horizon), "value": _as_float(row.value), "metric_type": row.metric_type}
            for row in rows
        ],
        columns=["horizon", "value", "metric_type"],
    ).dropna(subset=["horizon", "value"])
    if frame.empty:
        return CategoryChart()
    categories = sorted(frame["horizon"].unique().tolist())
    series: List[CategorySeries] = []
    for idx, name in enumerate(dict.fromkeys(frame["metric_type"])):
        by_horizon = frame[frame["metric_type"] == name].groupby("horizon")["value"].last()
        values = [float(by_horizon[c]) if c in by_horizon.index else None for c in categories]
        series.append(CategorySeries(name=name, color=PALETTE[idx % len(PALETTE)], values=values))
    return CategoryChart(categories=[float(c) for c in categories], series=series)


def cycle_points(rows: Iterable[CycleData]) -> List[ChartPoint]:
    """Metric value per time of forecast; non-numeric values are skipped."""
    points: List[ChartPoint] = []
    for row in rows:
        value = _as_float(row.value)
        if value is None:
            continue
        points.append(ChartPoint(date=row.time_of_forecast, value=value, series=row.metric_type, unit=""))
    return points
