"""Shared helper utilities for the test-suite."""

from .data import (
    ADMIN_PERMISSIONS,
    admin_token,
    build_forecast,
    build_model,
    build_plant,
    build_readings,
    build_role,
    build_user,
    make_jwt,
    page,
)
from .mocks import FakeHttpResponse, FakeSession, RecordedCall

__all__ = [
    "ADMIN_PERMISSIONS",
    "admin_token",
    "build_forecast",
    "build_model",
    "build_plant",
    "build_readings",
    "build_role",
    "build_user",
    "make_jwt",
    "page",
    "FakeHttpResponse",
    "FakeSession",
    "RecordedCall",
]
