"""Centralised settings for the solar forecast admin console."""
from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any, Dict, Iterable, Optional

import yaml
from dotenv import load_dotenv

BASE_DIR = Path(__file__).resolve().parents[1]
LOG_DIR = BASE_DIR / "logs"
LOG_FILE = LOG_DIR / "console.log"
CONFIG_FILE = BASE_DIR / "config.yaml"

API_URL = "http://127.0.0.1:5000"
REQUEST_TIMEOUT_S = 30
TOKEN_COOKIE = "sf_token"
LANG_COOKIE = "lang"


class ConfigurationError(RuntimeError):
    """Raised when ``config.yaml`` cannot be parsed."""


@dataclass
class ApiConfig:
    url: str = API_URL
    timeout_s: float = REQUEST_TIMEOUT_S


@dataclass
class AuthConfig:
    token: Optional[str] = None
    domain: Optional[str] = None
    client_id: Optional[str] = None
    client_secret: Optional[str] = None
    audience: Optional[str] = None

    @property
    def client_credentials(self) -> bool:
        return bool(self.domain and self.client_id and self.client_secret)


@dataclass
class UIConfig:
    host: str = "127.0.0.1"
    port: int = 8090
    default_lang: str = "en"
    secure_cookies: bool = False


@dataclass
class ConsoleConfig:
    api: ApiConfig = field(default_factory=ApiConfig)
    auth: AuthConfig = field(default_factory=AuthConfig)
    ui: UIConfig = field(default_factory=UIConfig)


def _ensure_directories(paths: Iterable[Path]) -> None:
    for path in paths:
        path.mkdir(parents=True, exist_ok=True)


def setup_logging(level: int = logging.INFO) -> None:
    """Configure a rotating file logger plus console echo."""
    _ensure_directories((LOG_DIR,))

    handler = RotatingFileHandler(
        LOG_FILE,
        maxBytes=1_000_000,
        backupCount=3,
        encoding="utf-8",
    )
    console_handler = logging.StreamHandler()
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
        handlers=[handler, console_handler],
        force=True,
    )


def _read_yaml(path: Path) -> Dict[str, Any]:
    if not path.exists():
        return {}
    try:
        with path.open("r", encoding="utf-8") as handle:
            data = yaml.safe_load(handle) or {}
    except yaml.YAMLError as exc:
        raise ConfigurationError(f"Invalid configuration file {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigurationError(f"Configuration file {path} must contain a mapping")
    return data


def load_console_config(path: Optional[Path | str] = None) -> ConsoleConfig:
    """Load ``config.yaml`` and overlay ``SOLAR_*`` environment variables."""
    load_dotenv()
    raw = _read_yaml(Path(path) if path else CONFIG_FILE)
    api_raw = raw.get("api", {}) or {}
    auth_raw = raw.get("auth", {}) or {}
    ui_raw = raw.get("ui", {}) or {}

    api = ApiConfig(
        url=str(os.getenv("SOLAR_API_URL") or api_raw.get("url") or API_URL).rstrip("/"),
        timeout_s=float(api_raw.get("timeout_s", REQUEST_TIMEOUT_S)),
    )
    auth = AuthConfig(
        token=os.getenv("SOLAR_API_TOKEN") or auth_raw.get("token"),
        domain=os.getenv("SOLAR_AUTH_DOMAIN") or auth_raw.get("domain"),
        client_id=os.getenv("SOLAR_AUTH_CLIENT_ID") or auth_raw.get("client_id"),
        client_secret=os.getenv("SOLAR_AUTH_CLIENT_SECRET") or auth_raw.get("client_secret"),
        audience=os.getenv("SOLAR_AUTH_AUDIENCE") or auth_raw.get("audience"),
    )
    ui = UIConfig(
        host=str(ui_raw.get("host", "127.0.0.1")),
        port=int(ui_raw.get("port", 8090)),
        default_lang=str(ui_raw.get("default_lang", "en")),
        secure_cookies=bool(ui_raw.get("secure_cookies", False)),
    )
    return ConsoleConfig(api=api, auth=auth, ui=ui)
