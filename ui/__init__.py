"""Web console for the solar forecast platform."""

from __future__ import annotations

from pathlib import Path

APP_ROOT = Path(__file__).resolve().parents[1]
TEMPLATES_DIR = Path(__file__).resolve().parent / "templates"
STATIC_DIR = Path(__file__).resolve().parent / "static"
LOCALES_DIR = Path(__file__).resolve().parent / "locales"

__all__ = ["APP_ROOT", "LOCALES_DIR", "STATIC_DIR", "TEMPLATES_DIR"]
