"""Provider for the ``/permissions`` resource.

The backend exposes the permission catalogue as a single document: it is
listed in one call and replaced wholesale on update.
"""
from __future__ import annotations

from typing import Any, Dict, Optional

from app.providers.base import DataProvider, ListParams, ListResult
from app.providers.users import content_page

RESOURCE = "permissions"


class PermissionProvider(DataProvider):
    name = "permissions"

    def get_list(self, resource: str, params: Optional[ListParams] = None) -> ListResult:
        return content_page(self.client.get(RESOURCE))

    def update(self, resource: str, id: Any, variables: Dict[str, Any]) -> Dict[str, Any]:
        self.client.put(RESOURCE, json=variables)
        return {"id": "permissions"}
