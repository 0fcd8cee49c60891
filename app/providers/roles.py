"""Provider for the ``/roles`` resource."""
from __future__ import annotations

from typing import Any, Dict, Optional

from app.providers.base import DataProvider, ListParams, ListResult
from app.providers.users import content_page, spring_page

RESOURCE = "roles"


class RoleProvider(DataProvider):
    name = "roles"

    def get_list(self, resource: str, params: Optional[ListParams] = None) -> ListResult:
        params = params or ListParams()
        query: Dict[str, Any] = spring_page(params)
        if params.sorters:
            query["sort"] = ",".join(f"{s.field},{s.order}" for s in params.sorters)
        for item in params.filters:
            if item.value is None or item.value == "":
                continue
            query[item.field] = item.value
        return content_page(self.client.get(RESOURCE, params=query))

    def get_one(self, resource: str, id: Any) -> Dict[str, Any]:
        return self.client.get(f"{RESOURCE}/{id}") or {}

    def create(self, resource: str, variables: Dict[str, Any]) -> Dict[str, Any]:
        body = {"name": variables.get("name"), "description": variables.get("description")}
        return self.client.post(RESOURCE, json=body) or {}

    def update(self, resource: str, id: Any, variables: Dict[str, Any]) -> Dict[str, Any]:
        return self.client.put(f"{RESOURCE}/{id}", json=variables) or {}

    def delete_one(self, resource: str, id: Any, variables: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        self.client.delete(f"{RESOURCE}/{id}", json=variables)
        return {"id": id}
