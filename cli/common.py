from __future__ import annotations

import functools
import logging
from pathlib import Path
from typing import Any, Callable, Iterable, Optional, Sequence

import typer
from rich.console import Console
from rich.table import Table

from app import settings
from app.api_client import HttpError
from app.auth import AuthProvider
from app.providers import RoutedDataProvider, create_data_provider

from . import APP_ROOT
from .i18n import t

_CONSOLE = Console()
LOG_DIR = APP_ROOT / "logs" / "cli"


def console() -> Console:
    return _CONSOLE


def ensure_dir(path: Path) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    return path


def configure_logging(name: str) -> None:
    LOG_DIR.mkdir(parents=True, exist_ok=True)
    log_path = LOG_DIR / f"{name}.log"
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        handlers=[
            logging.FileHandler(log_path, encoding="utf-8"),
            logging.StreamHandler(),
        ],
    )


def build_provider(config_path: Optional[Path] = None) -> RoutedDataProvider:
    """Routed data provider authenticated with the static or client-credentials token."""
    config = settings.load_console_config(config_path)
    auth = AuthProvider(config.auth)
    return create_data_provider(config.api.url, auth, session=auth.session, timeout=config.api.timeout_s)


def handle_errors(func: Callable[..., Any]) -> Callable[..., Any]:
    """Print backend failures and exit with status 1."""

    @functools.wraps(func)
    def wrapper(*args: Any, **kwargs: Any) -> Any:
        try:
            return func(*args, **kwargs)
        except HttpError as exc:
            logging.getLogger(func.__module__).error("%s failed: %s (%s)", func.__name__, exc.message, exc.status_code)
            console().print(t("msgs.error", error=f"{exc.message} ({exc.status_code})"))
            if exc.errors:
                console().print(exc.errors)
            raise typer.Exit(code=1) from exc

    return wrapper


def print_table(title: str, columns: Sequence[str], rows: Iterable[Sequence[Any]]) -> None:
    table = Table(title=title)
    for column in columns:
        table.add_column(column)
    count = 0
    for row in rows:
        table.add_row(*("" if value is None else str(value) for value in row))
        count += 1
    if count:
        console().print(table)
    else:
        console().print(t("msgs.empty"))
