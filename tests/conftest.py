"""Shared pytest configuration and fixtures for the solar forecast console."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Dict, Iterable, Iterator

import pytest

from tests.helpers import FakeSession, admin_token

LOGS_ROOT = Path(__file__).resolve().parents[1] / "logs" / "tests"
SESSION_LOG = LOGS_ROOT / "pytest.session.log"
API_URL = "http://api.test"
_MODULE_HANDLERS: Dict[str, logging.Handler] = {}


def _initialise_logging() -> None:
    LOGS_ROOT.mkdir(parents=True, exist_ok=True)
    (LOGS_ROOT / ".gitkeep").touch(exist_ok=True)

    handler = logging.FileHandler(SESSION_LOG, mode="w", encoding="utf-8")
    formatter = logging.Formatter("%(asctime)s %(levelname)s %(name)s %(message)s")
    handler.setFormatter(formatter)

    root = logging.getLogger()
    root.setLevel(logging.INFO)
    for existing in list(root.handlers):
        root.removeHandler(existing)
    root.addHandler(handler)


def get_test_logger(module_name: str) -> logging.Logger:
    """Return a logger writing into ``logs/tests/<module>.log``."""
    normalised = module_name.replace("tests.", "")
    logger = logging.getLogger(f"tests.{normalised}")
    logger.setLevel(logging.INFO)
    if normalised not in _MODULE_HANDLERS:
        LOGS_ROOT.mkdir(parents=True, exist_ok=True)
        log_path = LOGS_ROOT / f"{normalised}.log"
        handler = logging.FileHandler(log_path, mode="a", encoding="utf-8")
        handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(message)s"))
        logger.addHandler(handler)
        _MODULE_HANDLERS[normalised] = handler
    return logger


@pytest.hookimpl(tryfirst=True)
def pytest_configure(config: pytest.Config) -> None:  # noqa: D401 - pytest hook
    _initialise_logging()


@pytest.hookimpl(hookwrapper=True)
def pytest_runtest_makereport(item: pytest.Item, call: pytest.CallInfo[None]) -> Iterable[pytest.TestReport]:
    outcome = yield
    report = outcome.get_result()
    if report.outcome != "failed":
        return
    module = getattr(item, "module", None)
    module_name = getattr(module, "__name__", "tests")
    target = LOGS_ROOT / f"{module_name.split('.')[-1]}.log"
    target.parent.mkdir(parents=True, exist_ok=True)
    with target.open("a", encoding="utf-8") as handle:
        handle.write("\n=== TEST FAILURE ===\n")
        handle.write(f"nodeid: {item.nodeid}\n")
        handle.write(f"phase: {report.when}\n")
        handle.write(str(report.longrepr))
        handle.write("\n")


@pytest.fixture(scope="session")
def project_root() -> Path:
    return Path(__file__).resolve().parents[1]


@pytest.fixture(autouse=True)
def clear_solar_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for key in (
        "SOLAR_API_URL",
        "SOLAR_API_TOKEN",
        "SOLAR_AUTH_DOMAIN",
        "SOLAR_AUTH_CLIENT_ID",
        "SOLAR_AUTH_CLIENT_SECRET",
        "SOLAR_AUTH_AUDIENCE",
    ):
        monkeypatch.delenv(key, raising=False)
    monkeypatch.setattr("app.settings.load_dotenv", lambda *_, **__: False)


@pytest.fixture
def fake_session() -> FakeSession:
    return FakeSession()


@pytest.fixture
def provider(fake_session: FakeSession):
    from app.auth import AuthProvider
    from app.providers import create_data_provider
    from app.settings import AuthConfig

    auth = AuthProvider(AuthConfig(token="static-token"), session=fake_session)
    return create_data_provider(API_URL, auth, session=fake_session)


@pytest.fixture
def operator_token() -> str:
    return admin_token()


def _console_state(fake_session: FakeSession, token: str | None):
    from app.auth import AuthProvider
    from app.settings import ApiConfig, AuthConfig, ConsoleConfig
    from ui.server import ConsoleState

    config = ConsoleConfig(api=ApiConfig(url=API_URL), auth=AuthConfig(token=token))
    return ConsoleState(config=config, auth=AuthProvider(config.auth, session=fake_session), session=fake_session)


@pytest.fixture
def console_client(fake_session: FakeSession, operator_token: str) -> Iterator:
    """TestClient whose backend calls go to ``fake_session`` with an operator cookie set."""
    from fastapi.testclient import TestClient

    from app import settings
    from ui.server import app, get_console_state

    state = _console_state(fake_session, None)
    app.dependency_overrides[get_console_state] = lambda: state
    client = TestClient(app)
    client.cookies.set(settings.TOKEN_COOKIE, operator_token)
    try:
        yield client
    finally:
        app.dependency_overrides.clear()


@pytest.fixture
def anonymous_client(fake_session: FakeSession) -> Iterator:
    from fastapi.testclient import TestClient

    from ui.server import app, get_console_state

    state = _console_state(fake_session, None)
    app.dependency_overrides[get_console_state] = lambda: state
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


@pytest.fixture(autouse=True)
def reset_cli_language() -> Iterator[None]:
    from cli import i18n

    i18n.reset_lang()
    yield
    i18n.reset_lang()


__all__ = [
    "API_URL",
    "get_test_logger",
]
