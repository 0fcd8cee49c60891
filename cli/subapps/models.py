from __future__ import annotations

from typing import Optional

import typer

from ui import data_access

from ..common import build_provider, console, handle_errors, print_table
from ..i18n import t

models_app = typer.Typer(help="Forecast model commands")


@models_app.command("list")
@handle_errors
def list_models(
    page: int = typer.Option(1, min=1),
    size: int = typer.Option(20, min=1, max=100),
    q: Optional[str] = typer.Option(None, "--q"),
) -> None:
    provider = build_provider()
    result = data_access.list_models(provider, page, size, q=q)
    print_table(
        t("models.title", total=result.total),
        ["ID", t("fields.name"), t("fields.type"), t("fields.version"), t("fields.plant"), t("fields.active")],
        (
            [m.get("id"), m.get("name"), m.get("type"), m.get("version"), m.get("plant_name"), "yes" if m.get("is_active") else ""]
            for m in result.data
        ),
    )


@models_app.command("show")
@handle_errors
def show_model(
    model_id: int = typer.Argument(...),
    metrics: bool = typer.Option(False, "--metrics/--no-metrics", help="Include error by forecast horizon"),
) -> None:
    provider = build_provider()
    model = data_access.get_model(provider, model_id)
    console().print(f"[bold]{model.name}[/] {model.type} v{model.version} ({model.plant_name})")
    console().print(t("models.features", features=", ".join(model.features) or "-"))
    if not metrics:
        return
    chart = data_access.horizon_metrics(provider, model_id)
    print_table(
        t("models.horizon"),
        ["h", *(series.name for series in chart.series)],
        (
            [f"{horizon:g}", *(series.values[idx] for series in chart.series)]
            for idx, horizon in enumerate(chart.categories)
        ),
    )


@models_app.command("features")
@handle_errors
def list_features() -> None:
    """Weather features a model can be trained on."""
    provider = build_provider()
    result = provider.get_list("features")
    print_table(
        t("models.features_title", total=result.total),
        ["#", t("fields.name")],
        ([item.get("id"), item.get("name")] for item in result.data),
    )
