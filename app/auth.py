"""Access-token bootstrap for the console.

Tokens are issued by the external identity provider. The console only
resolves which token to send: the operator's own token (kept in a browser
cookie after ``/login``), a static service token, or a client-credentials
token fetched from the identity provider and cached until shortly before it
expires.
"""
from __future__ import annotations

import base64
import binascii
import json
import logging
import time
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import requests

from app.settings import AuthConfig

LOGGER = logging.getLogger(__name__)

PUBLIC_PREFIXES = ("/forecast",)
EXPIRY_MARGIN_S = 60


@dataclass
class CheckResult:
    authenticated: bool
    redirect_to: Optional[str] = None
    logout: bool = False
    error: Optional[str] = None


@dataclass
class _CachedToken:
    value: str
    expires_at: float


def decode_claims(token: Optional[str]) -> Dict[str, Any]:
    """Decode the JWT payload segment without verifying the signature."""
    if not token:
        return {}
    parts = token.split(".")
    if len(parts) < 2 or not parts[1]:
        return {}
    segment = parts[1] + "=" * (-len(parts[1]) % 4)
    try:
        decoded = base64.urlsafe_b64decode(segment.encode("ascii"))
        claims = json.loads(decoded.decode("utf-8"))
    except (binascii.Error, UnicodeError, ValueError) as exc:
        LOGGER.warning("Unable to decode access token payload: %s", exc)
        return {}
    return claims if isinstance(claims, dict) else {}


@dataclass
class AuthProvider:
    config: AuthConfig = field(default_factory=AuthConfig)
    session: Optional[requests.Session] = None
    _cached: Optional[_CachedToken] = field(default=None, init=False, repr=False)

    def __post_init__(self) -> None:
        if self.session is None:
            self.session = requests.Session()

    def get_access_token(self, request_token: Optional[str] = None) -> Optional[str]:
        if request_token:
            return request_token
        if self.config.token:
            return self.config.token
        if not self.config.client_credentials:
            return None
        try:
            return self._client_credentials_token()
        except requests.RequestException as exc:
            LOGGER.error("Error getting access token: %s", exc)
            return None

    def _client_credentials_token(self) -> str:
        now = time.time()
        if self._cached and self._cached.expires_at - EXPIRY_MARGIN_S > now:
            return self._cached.value
        payload = {
            "grant_type": "client_credentials",
            "client_id": self.config.client_id,
            "client_secret": self.config.client_secret,
        }
        if self.config.audience:
            payload["audience"] = self.config.audience
        url = f"https://{self.config.domain}/oauth/token"
        response = self.session.post(url, json=payload, timeout=10)
        response.raise_for_status()
        body = response.json()
        token = body.get("access_token")
        if not token:
            raise requests.RequestException(f"Token endpoint {url} returned no access_token")
        expires_in = float(body.get("expires_in", 3600))
        self._cached = _CachedToken(value=token, expires_at=now + expires_in)
        LOGGER.info("Fetched client-credentials token valid for %.0fs", expires_in)
        return token

    def check(self, path: str, request_token: Optional[str] = None) -> CheckResult:
        if path.startswith(PUBLIC_PREFIXES):
            return CheckResult(authenticated=True)
        token = self.get_access_token(request_token)
        if token:
            return CheckResult(authenticated=True)
        return CheckResult(
            authenticated=False,
            redirect_to="/login",
            logout=True,
            error="User not authenticated",
        )

    def get_permissions(self, request_token: Optional[str] = None) -> List[str]:
        claims = decode_claims(self.get_access_token(request_token))
        permissions = claims.get("permissions") or []
        if not isinstance(permissions, list):
            return []
        return [str(item) for item in permissions]

    def get_identity(self, request_token: Optional[str] = None) -> Optional[Dict[str, Any]]:
        token = self.get_access_token(request_token)
        claims = decode_claims(token)
        if not claims:
            return None
        return {
            **claims,
            "id": claims.get("sub"),
            "name": claims.get("name") or claims.get("email") or claims.get("sub"),
            "avatar": claims.get("picture"),
            "permissions": self.get_permissions(token),
        }
