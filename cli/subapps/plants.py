from __future__ import annotations

from typing import Optional

import typer

from ui import data_access

from ..common import build_provider, console, handle_errors, print_table
from ..i18n import t

plants_app = typer.Typer(help="Power plant commands")


@plants_app.command("list")
@handle_errors
def list_plants(
    page: int = typer.Option(1, min=1),
    size: int = typer.Option(20, min=1, max=100),
    q: Optional[str] = typer.Option(None, "--q", help="Full-text filter"),
) -> None:
    provider = build_provider()
    result = data_access.list_plants(provider, page, size, q=q)
    print_table(
        t("plants.title", total=result.total),
        ["ID", t("fields.name"), t("fields.latitude"), t("fields.longitude"), t("fields.capacity")],
        ([p.get("id"), p.get("name"), p.get("latitude"), p.get("longitude"), p.get("capacity")] for p in result.data),
    )


@plants_app.command("show")
@handle_errors
def show_plant(plant_id: int = typer.Argument(...)) -> None:
    provider = build_provider()
    plant = data_access.get_plant(provider, plant_id)
    console().print(f"[bold]{plant.name}[/] ({plant.latitude}, {plant.longitude}) {plant.capacity} W")
    models = data_access.plant_models(provider, plant_id)
    print_table(
        t("models.title", total=len(models)),
        ["ID", t("fields.name"), t("fields.type"), t("fields.version"), t("fields.active")],
        ([m.id, m.name, m.type, m.version, "yes" if m.is_active else ""] for m in models),
    )
