"""Authenticated HTTP transport towards the forecasting backend."""
from __future__ import annotations

import logging
from typing import Any, Callable, Dict, List, Optional

import requests

from app import settings

LOGGER = logging.getLogger(__name__)

TokenProvider = Callable[[], Optional[str]]


class HttpError(Exception):
    """Backend failure normalised to message, status code and field errors."""

    def __init__(
        self,
        message: str,
        status_code: int = 500,
        errors: Optional[Any] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.errors = errors

    def to_dict(self) -> Dict[str, Any]:
        return {"message": self.message, "statusCode": self.status_code, "errors": self.errors}


def _response_json(response: Optional[requests.Response]) -> Dict[str, Any]:
    if response is None:
        return {}
    try:
        payload = response.json()
    except ValueError:
        return {}
    return payload if isinstance(payload, dict) else {}


def format_error(exc: Exception, fallback: str = "Unknown error") -> HttpError:
    """Convert a ``requests`` failure into :class:`HttpError`."""
    if isinstance(exc, HttpError):
        return exc
    response = getattr(exc, "response", None)
    body = _response_json(response)
    message = body.get("message") or str(exc) or fallback
    status_code = getattr(response, "status_code", None) or 500
    return HttpError(message=message, status_code=int(status_code), errors=body.get("errors"))


class ApiClient:
    """Thin wrapper around :class:`requests.Session` adding bearer auth."""

    def __init__(
        self,
        api_url: str = settings.API_URL,
        token_provider: Optional[TokenProvider] = None,
        session: Optional[requests.Session] = None,
        timeout: float = settings.REQUEST_TIMEOUT_S,
    ) -> None:
        self.api_url = api_url.rstrip("/")
        self.token_provider = token_provider
        self.session = session or requests.Session()
        self.timeout = timeout

    def url_for(self, path: str) -> str:
        if path.startswith("http://") or path.startswith("https://"):
            return path
        return f"{self.api_url}/{path.lstrip('/')}"

    def _auth_headers(self) -> Dict[str, str]:
        if self.token_provider is None:
            return {}
        token = self.token_provider()
        if not token:
            return {}
        return {"Authorization": f"Bearer {token}"}

    def request(
        self,
        method: str,
        path: str,
        *,
        params: Optional[Any] = None,
        json: Optional[Any] = None,
        data: Optional[Any] = None,
        files: Optional[Any] = None,
        headers: Optional[Dict[str, str]] = None,
        authenticated: bool = True,
    ) -> requests.Response:
        url = self.url_for(path)
        merged: Dict[str, str] = {}
        if authenticated:
            merged.update(self._auth_headers())
        if headers:
            merged.update(headers)
        LOGGER.debug("%s %s params=%s", method.upper(), url, params)
        try:
            response = self.session.request(
                method.upper(),
                url,
                params=params,
                json=json,
                data=data,
                files=files,
                headers=merged,
                timeout=self.timeout,
            )
            response.raise_for_status()
        except requests.RequestException as exc:
            error = format_error(exc, f"{method.upper()} {url} failed")
            LOGGER.warning("%s %s -> %s %s", method.upper(), url, error.status_code, error.message)
            raise error from exc
        return response

    @staticmethod
    def decode(response: requests.Response) -> Any:
        if response.status_code == 204 or not response.content:
            return None
        try:
            return response.json()
        except ValueError as exc:
            raise HttpError(f"Invalid JSON from {response.url}", response.status_code) from exc

    def get(self, path: str, **kwargs: Any) -> Any:
        return self.decode(self.request("get", path, **kwargs))

    def post(self, path: str, **kwargs: Any) -> Any:
        return self.decode(self.request("post", path, **kwargs))

    def put(self, path: str, **kwargs: Any) -> Any:
        return self.decode(self.request("put", path, **kwargs))

    def patch(self, path: str, **kwargs: Any) -> Any:
        return self.decode(self.request("patch", path, **kwargs))

    def delete(self, path: str, **kwargs: Any) -> Any:
        return self.decode(self.request("delete", path, **kwargs))


def as_list(payload: Any) -> List[Any]:
    """Return ``payload`` when it is a JSON array, else an empty list."""
    return payload if isinstance(payload, list) else []
