"""Resource-aware data provider dispatching to specialised providers."""
from __future__ import annotations

import logging
from functools import partial
from typing import Any, Dict, List, Optional, Sequence

import requests

from app import settings
from app.api_client import ApiClient
from app.auth import AuthProvider
from app.providers.base import DataProvider, ListParams, ListResult, SimpleRestProvider
from app.providers.features import FeaturesProvider
from app.providers.models import ModelProvider
from app.providers.permissions import PermissionProvider
from app.providers.roles import RoleProvider
from app.providers.users import UserProvider

LOGGER = logging.getLogger(__name__)

# resource -> operations routed to the specialised provider
ROUTES: Dict[str, Sequence[str]] = {
    "users": ("get_list", "get_one", "create", "update", "delete_one"),
    "roles": ("get_list", "get_one", "create", "update", "delete_one"),
    "permissions": ("get_list", "update"),
    "models": ("get_list", "get_one", "create", "update", "delete_one"),
    "features": ("get_list",),
}


class RoutedDataProvider(DataProvider):
    name = "routed"

    def __init__(self, client: ApiClient) -> None:
        super().__init__(client)
        self.base = SimpleRestProvider(client)
        self.specialised: Dict[str, DataProvider] = {
            "users": UserProvider(client),
            "roles": RoleProvider(client),
            "permissions": PermissionProvider(client),
            "models": ModelProvider(client),
            "features": FeaturesProvider(client),
        }

    def provider_for(self, resource: str, operation: str) -> DataProvider:
        if operation in ROUTES.get(resource, ()):
            return self.specialised[resource]
        LOGGER.warning(
            "%s: No specific provider for resource '%s'. Using base provider.",
            operation,
            resource,
        )
        return self.base

    def get_list(self, resource: str, params: Optional[ListParams] = None) -> ListResult:
        return self.provider_for(resource, "get_list").get_list(resource, params)

    def get_one(self, resource: str, id: Any) -> Dict[str, Any]:
        return self.provider_for(resource, "get_one").get_one(resource, id)

    def get_many(self, resource: str, ids: Sequence[Any]) -> List[Dict[str, Any]]:
        return self.base.get_many(resource, ids)

    def create(self, resource: str, variables: Dict[str, Any]) -> Dict[str, Any]:
        return self.provider_for(resource, "create").create(resource, variables)

    def create_many(self, resource: str, variables: Sequence[Dict[str, Any]]) -> List[Dict[str, Any]]:
        return self.base.create_many(resource, variables)

    def update(self, resource: str, id: Any, variables: Dict[str, Any]) -> Dict[str, Any]:
        return self.provider_for(resource, "update").update(resource, id, variables)

    def update_many(self, resource: str, ids: Sequence[Any], variables: Dict[str, Any]) -> List[Dict[str, Any]]:
        return self.base.update_many(resource, ids, variables)

    def delete_one(self, resource: str, id: Any, variables: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        return self.provider_for(resource, "delete_one").delete_one(resource, id, variables)

    def delete_many(self, resource: str, ids: Sequence[Any]) -> List[Dict[str, Any]]:
        return self.base.delete_many(resource, ids)

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
        return self.base.custom(
            url,
            method,
            query=query,
            payload=payload,
            headers=headers,
            authenticated=authenticated,
        )


def create_data_provider(
    api_url: str = settings.API_URL,
    auth: Optional[AuthProvider] = None,
    *,
    request_token: Optional[str] = None,
    session: Optional[requests.Session] = None,
    timeout: float = settings.REQUEST_TIMEOUT_S,
    anonymous: bool = False,
) -> RoutedDataProvider:
    """Build the routed provider with bearer tokens resolved through ``auth``.

    An ``anonymous`` provider never sends an ``Authorization`` header, whatever
    token the request or the configuration carries.
    """
    token_provider = None
    if not anonymous:
        token_provider = partial((auth or AuthProvider()).get_access_token, request_token)
    client = ApiClient(
        api_url,
        token_provider=token_provider,
        session=session,
        timeout=timeout,
    )
    return RoutedDataProvider(client)
