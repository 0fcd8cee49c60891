"""Permission gating for admin resources."""
from __future__ import annotations

from typing import Dict, Iterable, Optional

PERMISSION_MAP: Dict[str, Dict[str, str]] = {
    "users": {
        "list": "user:read",
        "show": "user:read",
        "create": "user:create",
        "edit": "user:update",
        "delete": "user:delete",
    },
    "roles": {
        "list": "role:read",
        "show": "role:read",
        "create": "role:create",
        "edit": "role:update",
        "delete": "role:delete",
    },
    "permissions": {
        "list": "permission:read",
        "show": "permission:read",
        "update": "permission:update",
    },
}


def required_permission(resource: Optional[str], action: Optional[str]) -> Optional[str]:
    return PERMISSION_MAP.get(resource or "", {}).get(action or "")


def can(resource: Optional[str], action: Optional[str], permissions: Iterable[str]) -> bool:
    """Return whether ``permissions`` allow ``action`` on ``resource``.

    Resources and actions absent from :data:`PERMISSION_MAP` are open.
    """
    needed = required_permission(resource, action)
    if needed is None:
        return True
    return needed in set(permissions)
