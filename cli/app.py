from __future__ import annotations

import typer

from . import RC_FILE
from .common import console, configure_logging
from .i18n import SUPPORTED, get_lang, set_lang, t
from .menu import render_menu
from .subapps.admin import permissions_app, roles_app, users_app
from .subapps.forecasts import forecasts_app
from .subapps.models import models_app
from .subapps.plants import plants_app
from .subapps.readings import readings_app
from .subapps.ui import ui_app

app = typer.Typer(help="Solar Forecast console command line interface")
app.add_typer(ui_app, name="ui")
app.add_typer(plants_app, name="plants")
app.add_typer(models_app, name="models")
app.add_typer(users_app, name="users")
app.add_typer(roles_app, name="roles")
app.add_typer(permissions_app, name="permissions")
app.add_typer(readings_app, name="readings")
app.add_typer(forecasts_app, name="forecasts")

_COMMANDS = {
    "ui": ["solarforecast ui start --port 8090", "solarforecast ui start --no-open"],
    "plants": ["solarforecast plants list --q <text>", "solarforecast plants show <id>"],
    "models": ["solarforecast models list", "solarforecast models show <id> --metrics", "solarforecast models features"],
    "admin": [
        "solarforecast users list",
        "solarforecast users create --email <email> --role <role-id>",
        "solarforecast users delete <id>",
        "solarforecast roles list",
        "solarforecast permissions list",
    ],
    "data": [
        "solarforecast readings upload <plant-id> <file.csv>",
        "solarforecast forecasts export <plant-id> --readings --out reports/forecast.csv",
    ],
    "help": ["solarforecast --help", "solarforecast <group> --help"],
}


@app.callback(invoke_without_command=True)
def main(ctx: typer.Context) -> None:
    configure_logging("cli")
    if not RC_FILE.exists():
        choice = typer.prompt(t("prompts.choose_lang"), default="en")
        lang = choice if choice in SUPPORTED else "en"
        set_lang(lang)
        console().print(t("msgs.selected_lang", lang=lang))
    else:
        get_lang()

    if ctx.invoked_subcommand is None:
        menu_options = [(key, t(f"menu.options.{key}")) for key in _COMMANDS]
        render_menu(menu_options)
        choice = typer.prompt(t("prompts.menu_choice"), default="").strip().lower()
        if not choice:
            return
        key_map = {str(idx): key for idx, (key, _) in enumerate(menu_options, start=1)}
        key_map.update({key: key for key in _COMMANDS})
        selected = key_map.get(choice)
        if not selected:
            console().print(t("msgs.error", error=t("msgs.invalid_option")))
            return
        _show_commands(selected)


def _show_commands(selection: str) -> None:
    console().print(t("msgs.menu_hints"))
    for cmd in _COMMANDS.get(selection, []):
        console().print(f"  • [cyan]{cmd}[/]")


if __name__ == "__main__":
    app()
