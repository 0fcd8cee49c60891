"""Synthetic backend payloads for tests."""

from __future__ import annotations

import base64
import json
from typing import Any, Dict, Iterable, List, Optional

ADMIN_PERMISSIONS = [
    "user:read",
    "user:create",
    "user:update",
    "user:delete",
    "role:read",
    "role:create",
    "role:update",
    "role:delete",
    "permission:read",
    "permission:update",
]


def _b64(data: bytes) -> str:
    return base64.urlsafe_b64encode(data).decode("ascii").rstrip("=")


def make_jwt(claims: Dict[str, Any]) -> str:
    """Unsigned JWT carrying ``claims``; only the payload segment matters here."""
    header = _b64(json.dumps({"alg": "none", "typ": "JWT"}).encode("utf-8"))
    payload = _b64(json.dumps(claims).encode("utf-8"))
    return f"{header}.{payload}.signature"


def admin_token(permissions: Optional[Iterable[str]] = None, **claims: Any) -> str:
    body = {
        "sub": "auth0|operator",
        "name": "Operator",
        "picture": "https://example.test/avatar.png",
        "permissions": list(ADMIN_PERMISSIONS if permissions is None else permissions),
    }
    body.update(claims)
    return make_jwt(body)


def build_plant(plant_id: int = 1, name: str = "Solana Split", **extra: Any) -> Dict[str, Any]:
    plant = {
        "id": plant_id,
        "name": name,
        "latitude": 43.51,
        "longitude": 16.44,
        "capacity": 250000.0,
        "model_count": 2,
    }
    plant.update(extra)
    return plant


def build_model(model_id: int = 10, name: str = "xgb-v1", **extra: Any) -> Dict[str, Any]:
    model = {
        "id": model_id,
        "name": name,
        "type": "xgboost",
        "version": 1.0,
        "features": ["temperature", "cloud_cover"],
        "plant_name": "Solana Split",
        "is_active": True,
        "file_type": "pkl",
    }
    model.update(extra)
    return model


def build_forecast(times: Iterable[str], start: float = 100.0, step: float = 10.0) -> List[Dict[str, Any]]:
    return [
        {"prediction_time": ts, "power_output": start + idx * step}
        for idx, ts in enumerate(times)
    ]


def build_readings(times: Iterable[str], start: float = 90.0, step: float = 5.0) -> List[Dict[str, Any]]:
    return [{"timestamp": ts, "power_w": start + idx * step} for idx, ts in enumerate(times)]


def build_user(user_id: str = "auth0|1", **extra: Any) -> Dict[str, Any]:
    user = {
        "id": user_id,
        "email": "ana@example.test",
        "name": "Ana",
        "picture": "",
        "lastLogin": "Tue Mar 04 10:15:30 UTC 2025",
        "roles": [{"id": "rol_admin", "name": "Admin"}],
    }
    user.update(extra)
    return user


def build_role(role_id: str = "rol_admin", **extra: Any) -> Dict[str, Any]:
    role = {
        "id": role_id,
        "name": "Admin",
        "description": "Full access",
        "permissions": ["user:read", "role:read"],
    }
    role.update(extra)
    return role


def page(content: List[Dict[str, Any]], total: Optional[int] = None) -> Dict[str, Any]:
    return {"content": content, "totalElements": len(content) if total is None else total}
