"""Translation catalogues for the web console."""

from __future__ import annotations

from typing import Callable, Optional

from app.i18n import Catalogs

from . import LOCALES_DIR

SUPPORTED = ("en", "hr")
CATALOGS = Catalogs(LOCALES_DIR)


def resolve_lang(requested: Optional[str], default: str = "en") -> str:
    if requested in SUPPORTED:
        return requested  # type: ignore[return-value]
    return default if default in SUPPORTED else "en"


def translate(lang: str, key: str, default: Optional[str] = None, **fmt) -> str:
    return CATALOGS.translate(lang, key, default, **fmt)


def translator(lang: str) -> Callable[..., str]:
    def _t(key: str, default: Optional[str] = None, **fmt) -> str:
        return translate(lang, key, default, **fmt)

    return _t
