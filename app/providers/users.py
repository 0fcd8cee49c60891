"""Provider for the ``/users`` resource (identity provider accounts)."""
from __future__ import annotations

from typing import Any, Dict, Optional

from app.api_client import as_list
from app.providers.base import DataProvider, ListParams, ListResult, envelope_total

RESOURCE = "users"


def spring_page(params: Optional[ListParams]) -> Dict[str, Any]:
    """Zero-based ``page``/``size`` query used by the admin endpoints."""
    params = params or ListParams()
    current = params.pagination.current or 1
    size = params.pagination.page_size or 10
    return {"page": current - 1, "size": size}


def content_page(payload: Any) -> ListResult:
    if not isinstance(payload, dict):
        data = as_list(payload)
        return ListResult(data=data, total=len(data))
    data = list(payload.get("content") or [])
    return ListResult(data=data, total=envelope_total(payload.get("totalElements"), data))


class UserProvider(DataProvider):
    name = "users"

    def get_list(self, resource: str, params: Optional[ListParams] = None) -> ListResult:
        return content_page(self.client.get(RESOURCE, params=spring_page(params)))

    def get_one(self, resource: str, id: Any) -> Dict[str, Any]:
        return self.client.get(f"{RESOURCE}/{id}") or {}

    def create(self, resource: str, variables: Dict[str, Any]) -> Dict[str, Any]:
        """Create an account; the backend answers with a password ``ticketUrl``."""
        return self.client.post(RESOURCE, json=variables) or {}

    def update(self, resource: str, id: Any, variables: Dict[str, Any]) -> Dict[str, Any]:
        body = {"roleIds": list(variables.get("roleIds") or [])}
        return self.client.put(f"{RESOURCE}/{id}", json=body) or {}

    def delete_one(self, resource: str, id: Any, variables: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        self.client.delete(f"{RESOURCE}/{id}", json=variables)
        return {"id": id}
