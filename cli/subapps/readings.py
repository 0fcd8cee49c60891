from __future__ import annotations

from pathlib import Path

import typer

from ui import data_access

from ..common import build_provider, console, handle_errors
from ..i18n import t

readings_app = typer.Typer(help="Plant readings")


@readings_app.command("upload")
@handle_errors
def upload(
    plant_id: int = typer.Argument(...),
    path: Path = typer.Argument(..., exists=True, dir_okay=False, readable=True),
) -> None:
    """Upload a CSV of measured production for a plant."""
    provider = build_provider()
    try:
        result = data_access.upload_readings(provider, plant_id, (path.name, path.read_bytes(), "text/csv"))
    except ValueError as exc:
        raise typer.BadParameter(str(exc)) from exc
    style = "green" if result.success else "red"
    console().print(f"[{style}]{result.message or t('readings.uploaded')}[/]")
    for item in result.validation_errors:
        console().print(f"  - {item}")
    if not result.success:
        raise typer.Exit(code=1)
