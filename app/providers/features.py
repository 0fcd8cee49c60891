"""Provider exposing the backend feature catalogue as a selectable list."""
from __future__ import annotations

from typing import Optional

from app.providers.base import DataProvider, ListParams, ListResult


class FeaturesProvider(DataProvider):
    name = "features"

    def get_list(self, resource: str, params: Optional[ListParams] = None) -> ListResult:
        payload = self.client.get("features") or {}
        features = list(payload.get("features") or [])
        data = [{"id": idx, "name": name, "value": name} for idx, name in enumerate(features, start=1)]
        return ListResult(data=data, total=len(features))
