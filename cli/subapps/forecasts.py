from __future__ import annotations

from pathlib import Path
from typing import Optional

import typer

from ui import charts, data_access

from ..common import build_provider, console, ensure_dir, handle_errors
from ..i18n import t

forecasts_app = typer.Typer(help="Forecast exports")


@forecasts_app.command("export")
@handle_errors
def export(
    plant_id: int = typer.Argument(...),
    start: Optional[str] = typer.Option(None, help="ISO start (defaults to now)"),
    end: Optional[str] = typer.Option(None, help="ISO end (defaults to now + 72h)"),
    readings: bool = typer.Option(False, "--readings/--no-readings", help="Add measured readings"),
    out: Path = typer.Option(Path("reports/forecast_data.csv")),
) -> None:
    """Write every model forecast of a plant as a wide CSV."""
    provider = build_provider()
    try:
        result = data_access.plant_forecasts(provider, plant_id, start, end, include_readings=readings)
    except ValueError as exc:
        raise typer.BadParameter(str(exc)) from exc
    body = charts.to_csv(result.all_points)
    if not body:
        console().print(t("msgs.empty"))
        raise typer.Exit(code=1)
    ensure_dir(out)
    out.write_text(body, encoding="utf-8")
    rows = body.count("\n") - 1
    console().print(t("forecasts.saved", path=str(out), rows=rows, start=result.start, end=result.end))
