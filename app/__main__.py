"""Command line entry for serving the console and checking backend access."""
from __future__ import annotations

import argparse
import json
import logging
import sys
from typing import Dict

from dotenv import load_dotenv

from . import settings
from .api_client import HttpError
from .auth import AuthProvider, decode_claims
from .providers import ListParams, Pagination, create_data_provider

load_dotenv()

LOGGER = logging.getLogger(__name__)


def _configure_logging() -> None:
    settings.setup_logging()


def _print_json(payload: Dict[str, object]) -> None:
    json.dump(payload, sys.stdout, indent=2, sort_keys=True, default=str)
    sys.stdout.write("\n")


def _token_status(config: settings.ConsoleConfig) -> Dict[str, object]:
    auth = AuthProvider(config.auth)
    if config.auth.token:
        source = "static"
    elif config.auth.client_credentials:
        source = "client_credentials"
    else:
        source = "none"
    token = auth.get_access_token()
    claims = decode_claims(token)
    return {
        "source": source,
        "has_token": bool(token),
        "subject": claims.get("sub"),
        "expires_at": claims.get("exp"),
        "permissions": auth.get_permissions(),
    }


def _ping(config: settings.ConsoleConfig) -> Dict[str, object]:
    auth = AuthProvider(config.auth)
    provider = create_data_provider(config.api.url, auth, session=auth.session, timeout=config.api.timeout_s)
    result = provider.get_list("power_plant", ListParams(pagination=Pagination(current=1, page_size=1)))
    return {"api_url": provider.get_api_url(), "reachable": True, "power_plants": result.total}


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(prog="python -m app")
    parser.add_argument("--config", default=None, help="Path to config.yaml")
    subparsers = parser.add_subparsers(dest="command", required=True)

    serve_parser = subparsers.add_parser("serve")
    serve_parser.add_argument("--host", default=None)
    serve_parser.add_argument("--port", type=int, default=None)
    serve_parser.add_argument("--open", action="store_true", help="Open a browser tab")

    subparsers.add_parser("token-status")
    subparsers.add_parser("ping")

    args = parser.parse_args(argv)
    _configure_logging()

    try:
        config = settings.load_console_config(args.config)
        if args.command == "serve":
            from ui.server import start_ui

            start_ui(args.host or config.ui.host, args.port or config.ui.port, open_browser=args.open)
        elif args.command == "token-status":
            _print_json(_token_status(config))
        elif args.command == "ping":
            _print_json(_ping(config))
        else:  # pragma: no cover
            parser.error(f"Unknown command {args.command}")
    except (HttpError, settings.ConfigurationError) as exc:
        LOGGER.error("Command failed: %s", exc)
        sys.stderr.write(f"Error: {exc}\n")
        return 1
    return 0


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
