from __future__ import annotations

from typing import Optional

import typer

from app import settings

from ..common import console
from ..i18n import t

ui_app = typer.Typer(help="Launch the web console")


@ui_app.command("start")
def start_ui(
    host: Optional[str] = typer.Option(None, "--host", "-h", help="Bind address (defaults to config.yaml ui.host)"),
    port: Optional[int] = typer.Option(None, "--port", "-p", help="Port (defaults to config.yaml ui.port)"),
    open_browser: bool = typer.Option(True, "--open/--no-open", help="Open browser automatically"),
) -> None:
    """Start the FastAPI console."""
    from ui.server import start_ui as run_server

    config = settings.load_console_config()
    host = host or config.ui.host
    port = port or config.ui.port
    console().print(t("msgs.starting", task=f"UI server on http://{host}:{port}"))

    try:
        run_server(host, port, open_browser=open_browser)
    except KeyboardInterrupt:
        console().print(t("msgs.shutdown"))
