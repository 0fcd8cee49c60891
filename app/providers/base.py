"""Core abstractions for the data-provider layer."""
from __future__ import annotations

import logging
from abc import ABC
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

from app.api_client import ApiClient, as_list

LOGGER = logging.getLogger(__name__)

OPERATOR_SUFFIX = {
    "eq": "",
    "ne": "_ne",
    "gte": "_gte",
    "lte": "_lte",
    "contains": "_like",
}


class UnsupportedOperation(NotImplementedError):
    """Raised when a provider does not implement an operation."""


@dataclass
class Pagination:
    current: int = 1
    page_size: int = 10
    mode: str = "server"

    @property
    def enabled(self) -> bool:
        return self.mode != "off"


@dataclass
class Sorter:
    field: str
    order: str = "asc"


@dataclass
class Filter:
    field: str
    value: Any
    operator: str = "eq"


@dataclass
class ListParams:
    pagination: Pagination = field(default_factory=Pagination)
    sorters: List[Sorter] = field(default_factory=list)
    filters: List[Filter] = field(default_factory=list)


@dataclass
class ListResult:
    data: List[Dict[str, Any]]
    total: int


class DataProvider(ABC):
    """Generic resource operations.

    Subclasses override only the operations their backend resource supports;
    everything else raises :class:`UnsupportedOperation`.
    """

    name = "base"

    def __init__(self, client: ApiClient) -> None:
        self.client = client

    def get_api_url(self) -> str:
        return self.client.api_url

    def _unsupported(self, operation: str) -> UnsupportedOperation:
        return UnsupportedOperation(f"{operation} not implemented by {self.name} data provider.")

    def get_list(self, resource: str, params: Optional[ListParams] = None) -> ListResult:
        raise self._unsupported("get_list")

    def get_one(self, resource: str, id: Any) -> Dict[str, Any]:
        raise self._unsupported("get_one")

    def get_many(self, resource: str, ids: Sequence[Any]) -> List[Dict[str, Any]]:
        raise self._unsupported("get_many")

    def create(self, resource: str, variables: Dict[str, Any]) -> Dict[str, Any]:
        raise self._unsupported("create")

    def create_many(self, resource: str, variables: Sequence[Dict[str, Any]]) -> List[Dict[str, Any]]:
        raise self._unsupported("create_many")

    def update(self, resource: str, id: Any, variables: Dict[str, Any]) -> Dict[str, Any]:
        raise self._unsupported("update")

    def update_many(self, resource: str, ids: Sequence[Any], variables: Dict[str, Any]) -> List[Dict[str, Any]]:
        raise self._unsupported("update_many")

    def delete_one(self, resource: str, id: Any, variables: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        raise self._unsupported("delete_one")

    def delete_many(self, resource: str, ids: Sequence[Any]) -> List[Dict[str, Any]]:
        raise self._unsupported("delete_many")

    def custom(
        self,
        url: str,
        method: str = "get",
        *,
        query: Optional[Dict[str, Any]] = None,
        payload: Optional[Any] = None,
        headers: Optional[Dict[str, str]] = None,
        authenticated: bool = True,
    ) -> Any:
        raise self._unsupported("custom")


def envelope_total(value: Any, data: Sequence[Any]) -> int:
    """Total from a page envelope, or the row count when it is missing or null."""
    try:
        return int(value)
    except (TypeError, ValueError):
        return len(data)


def _filter_params(filters: Iterable[Filter]) -> List[Tuple[str, Any]]:
    query: List[Tuple[str, Any]] = []
    for item in filters:
        if item.field == "q":
            query.append(("q", item.value))
            continue
        suffix = OPERATOR_SUFFIX.get(item.operator)
        if suffix is None:
            LOGGER.warning("Ignoring unsupported filter operator %s on %s", item.operator, item.field)
            continue
        query.append((f"{item.field}{suffix}", item.value))
    return query


class SimpleRestProvider(DataProvider):
    """json-server style REST conventions used by generic resources."""

    name = "simple-rest"

    def get_list(self, resource: str, params: Optional[ListParams] = None) -> ListResult:
        params = params or ListParams()
        query: List[Tuple[str, Any]] = []
        if params.pagination.enabled:
            current = params.pagination.current
            size = params.pagination.page_size
            query.append(("_start", (current - 1) * size))
            query.append(("_end", current * size))
        if params.sorters:
            query.append(("_sort", ",".join(s.field for s in params.sorters)))
            query.append(("_order", ",".join(s.order for s in params.sorters)))
        query.extend(_filter_params(params.filters))

        response = self.client.request("get", resource, params=query)
        data = as_list(self.client.decode(response))
        header_total = response.headers.get("x-total-count")
        total = int(header_total) if header_total and header_total.isdigit() else len(data)
        return ListResult(data=data, total=total)

    def get_one(self, resource: str, id: Any) -> Dict[str, Any]:
        return self.client.get(f"{resource}/{id}") or {}

    def get_many(self, resource: str, ids: Sequence[Any]) -> List[Dict[str, Any]]:
        return as_list(self.client.get(resource, params=[("id", value) for value in ids]))

    def create(self, resource: str, variables: Dict[str, Any]) -> Dict[str, Any]:
        return self.client.post(resource, json=variables) or {}

    def update(self, resource: str, id: Any, variables: Dict[str, Any]) -> Dict[str, Any]:
        return self.client.patch(f"{resource}/{id}", json=variables) or {}

    def delete_one(self, resource: str, id: Any, variables: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        return self.client.delete(f"{resource}/{id}", json=variables) or {"id": id}

    def custom(
        self,
        url: str,
        method: str = "get",
        *,
        query: Optional[Dict[str, Any]] = None,
        payload: Optional[Any] = None,
        headers: Optional[Dict[str, str]] = None,
        authenticated: bool = True,
    ) -> Any:
        verb = method.lower()
        body = payload if verb in {"post", "put", "patch", "delete"} else None
        response = self.client.request(
            verb,
            url,
            params=query,
            json=body,
            headers=headers,
            authenticated=authenticated,
        )
        return self.client.decode(response)
