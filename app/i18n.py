"""JSON translation catalogues shared by the CLI and the web console."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Dict, Optional

FALLBACK_LANG = "en"


class Catalogs:
    """Lazily loaded ``<lang>.json`` catalogues from one locales directory.

    A language without a catalogue file falls back to ``fallback``; a key missing
    from a language is looked up in the fallback catalogue.
    """

    def __init__(self, locales_dir: Path, fallback: str = FALLBACK_LANG) -> None:
        self.locales_dir = Path(locales_dir)
        self.fallback = fallback
        self._cache: Dict[str, Dict[str, str]] = {}

    def load(self, lang: str) -> Dict[str, str]:
        if lang in self._cache:
            return self._cache[lang]
        path = self.locales_dir / f"{lang}.json"
        if not path.exists():
            return self.load(self.fallback) if lang != self.fallback else {}
        with path.open("r", encoding="utf-8-sig") as handle:
            data = json.load(handle)
        self._cache[lang] = data
        return data

    def lookup(self, lang: str, key: str) -> Optional[str]:
        value = self.load(lang).get(key)
        if value is None and lang != self.fallback:
            value = self.load(self.fallback).get(key)
        return value

    def translate(self, lang: str, key: str, default: Optional[str] = None, **fmt) -> str:
        value = self.lookup(lang, key)
        if value is None:
            value = default if default is not None else key
        return format_message(value, **fmt)


def format_message(value: str, **fmt) -> str:
    """``str.format`` that leaves the message untouched on bad placeholders."""
    if not fmt:
        return value
    try:
        return value.format(**fmt)
    except (KeyError, IndexError, ValueError):
        return value
