"""Provider for forecasting ``/models`` (multipart uploads, page envelopes)."""
from __future__ import annotations

import json
from typing import Any, Dict, Optional, Tuple

from app.api_client import as_list
from app.providers.base import DataProvider, ListParams, ListResult, envelope_total

RESOURCE = "models"

# (filename, content, content type)
UploadedFile = Tuple[str, bytes, str]


class ModelProvider(DataProvider):
    name = "models"

    def get_list(self, resource: str, params: Optional[ListParams] = None) -> ListResult:
        params = params or ListParams()
        query: Dict[str, Any] = {}
        if params.pagination.enabled:
            query["page"] = params.pagination.current
            query["page_size"] = params.pagination.page_size
        for item in params.filters:
            if item.operator == "eq" and item.value:
                query[item.field] = item.value
        if params.sorters:
            query["sort_by"] = params.sorters[0].field
            query["sort_order"] = params.sorters[0].order
        payload = self.client.get(RESOURCE, params=query) or {}
        if not isinstance(payload, dict):
            models = as_list(payload)
            return ListResult(data=models, total=len(models))
        models = list(payload.get("models") or [])
        return ListResult(data=models, total=envelope_total(payload.get("total_count"), models))

    def get_one(self, resource: str, id: Any) -> Dict[str, Any]:
        return self.client.get(f"{RESOURCE}/{id}") or {}

    def create(self, resource: str, variables: Dict[str, Any]) -> Dict[str, Any]:
        """Upload a model file.

        ``file`` is sent as the multipart file part, ``parameters`` is
        JSON-encoded into the ``features`` field, the rest are plain fields.
        """
        form: Dict[str, str] = {}
        files: Dict[str, UploadedFile] = {}
        for key, value in variables.items():
            if key == "file":
                if value:
                    files["file"] = value
            elif key == "parameters":
                form["features"] = json.dumps(list(value or []))
            elif value is not None:
                form[key] = str(value)
        return self.client.post(RESOURCE, data=form, files=files or None) or {}

    def update(self, resource: str, id: Any, variables: Dict[str, Any]) -> Dict[str, Any]:
        body = {
            "features": list(variables.get("features") or []),
            "is_active": bool(variables.get("is_active", False)),
        }
        return self.client.put(f"{RESOURCE}/{id}", json=body) or {}

    def delete_one(self, resource: str, id: Any, variables: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        self.client.delete(f"{RESOURCE}/{id}")
        return {"id": id}
