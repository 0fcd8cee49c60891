from __future__ import annotations

import json
from typing import Optional

from app.i18n import Catalogs

from . import LOCALES_DIR, RC_FILE

SUPPORTED = ("en", "hr")
CATALOGS = Catalogs(LOCALES_DIR)

_LANG: Optional[str] = None


def get_lang(default: str = "en") -> str:
    global _LANG  # noqa: PLW0603
    if _LANG:
        return _LANG
    if RC_FILE.exists():
        try:
            with RC_FILE.open("r", encoding="utf-8") as handle:
                data = json.load(handle)
            lang = data.get("lang") if isinstance(data, dict) else None
            if lang in SUPPORTED:
                _LANG = lang
                return lang
        except json.JSONDecodeError:
            pass
    _LANG = default
    return _LANG


def set_lang(lang: str) -> None:
    global _LANG  # noqa: PLW0603
    _LANG = lang
    RC_FILE.write_text(json.dumps({"lang": lang}, indent=2), encoding="utf-8")


def reset_lang() -> None:
    global _LANG  # noqa: PLW0603
    _LANG = None


def t(key: str, **fmt) -> str:
    return CATALOGS.translate(get_lang(), key, **fmt)
