"""Credential login against the Identity service.

The helper keeps the token response in memory for its own lifetime; the
provisioning scripts are short-lived so no background refresh is done.
"""
from __future__ import annotations
import os
from typing import Any, Dict, Optional

import jwt
import requests

from .client import IdentityClient, REQUEST_TIMEOUT, json_or_empty
from .exceptions import IdentityAPIError, IdentityError, LoginFailedError, NotAuthenticatedError

DEFAULT_IDENTITY_API_URL = "http://localhost:5002"

# AuthMethod.UsernamePassword on the Identity service
USERNAME_PASSWORD_METHOD = 0

TENANT_CLAIM_KEYS = ("tenantId", "tenant_id", "tid")


class AuthHelper:
    """Login helper for the Identity API.

    Usage:
        auth = AuthHelper("http://localhost:5002")
        auth.login_via_api("superuser", "secret")
        client = auth.create_authenticated_client("http://localhost:5002")
    """

    def __init__(self, base_url: Optional[str] = None, timeout: float = REQUEST_TIMEOUT):
        """Initialize the helper.

        Args:
            base_url: Identity service URL (defaults to IDENTITY_API_URL env var)
            timeout: Per-request timeout in seconds
        """
        self.base_url = (base_url or os.environ.get("IDENTITY_API_URL") or DEFAULT_IDENTITY_API_URL).rstrip("/")
        self.timeout = timeout
        self._tokens: Optional[Dict[str, Any]] = None

    def login_via_api(self, username: str, password: str, tenant_id: Optional[str] = None) -> Dict[str, Any]:
        """Login with username and password and cache the token response.

        Returns:
            Token response (accessToken, refreshToken, userInfo, ...)

        Raises:
            LoginFailedError: If the response carries no access token
            IdentityAPIError: On HTTP error
        """
        data = self._post("/auth/login", {
            "method": USERNAME_PASSWORD_METHOD,
            "username": username,
            "password": password,
            "tenantId": tenant_id,
        })
        if not data.get("accessToken"):
            raise LoginFailedError(f"Login failed: {data.get('errorMessage') or 'Unknown error'}")
        self._tokens = data
        return data

    def refresh_tokens(self) -> Dict[str, Any]:
        """Exchange the cached refresh token for a new token pair."""
        refresh_token = self.get_refresh_token()
        if not refresh_token:
            raise NotAuthenticatedError("No refresh token available")

        data = self._post("/auth/refresh", {"refreshToken": refresh_token})
        if not data.get("accessToken"):
            raise LoginFailedError(f"Token refresh failed: {data.get('errorMessage') or 'Unknown error'}")
        self._tokens = data
        return data

    def logout(self) -> Dict[str, Any]:
        """Revoke the cached access token and forget it."""
        access_token = self.get_access_token()
        if not access_token:
            return {"success": True}

        data = self._post("/auth/logout", {"token": access_token})
        self._tokens = None
        return data

    def get_access_token(self) -> Optional[str]:
        return (self._tokens or {}).get("accessToken") or None

    def get_refresh_token(self) -> Optional[str]:
        return (self._tokens or {}).get("refreshToken") or None

    def get_tokens(self) -> Optional[Dict[str, Any]]:
        return self._tokens

    def require_access_token(self) -> str:
        """Return the cached access token.

        Raises:
            NotAuthenticatedError: If no login succeeded yet
        """
        token = self.get_access_token()
        if not isinstance(token, str) or not token:
            raise NotAuthenticatedError("Not authenticated - call login_via_api first")
        return token

    def create_authenticated_client(self, base_url: Optional[str] = None) -> IdentityClient:
        """Build an admin API client carrying the cached bearer token."""
        return IdentityClient(base_url or self.base_url, self.require_access_token(), timeout=self.timeout)

    def token_claims(self) -> Dict[str, Any]:
        """Decode the access token payload. The signature is not verified."""
        return decode_token_claims(self.require_access_token())

    def _post(self, path: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        url = f"{self.base_url}{path}"
        try:
            resp = requests.post(
                url,
                json=payload,
                headers={"Content-Type": "application/json"},
                timeout=self.timeout,
            )
        except requests.RequestException as exc:
            raise IdentityAPIError(0, str(exc), url) from exc
        if resp.status_code >= 400:
            raise IdentityAPIError(resp.status_code, resp.text, url)
        return json_or_empty(resp)


def decode_token_claims(token: str) -> Dict[str, Any]:
    """Return the JWT payload without verifying signature or expiry."""
    try:
        return jwt.decode(token, options={"verify_signature": False})
    except jwt.PyJWTError as exc:
        raise IdentityError(f"Access token is not a decodable JWT: {exc}") from exc


def tenant_id_claim(claims: Dict[str, Any]) -> Optional[str]:
    """Return the first non-blank tenant claim (tenantId, tenant_id, tid)."""
    for key in TENANT_CLAIM_KEYS:
        value = claims.get(key)
        if isinstance(value, str) and value.strip():
            return value
    return None


def login_super_user(
    identity_api_url: str, username: str, password: str, timeout: float = REQUEST_TIMEOUT
) -> str:
    """Login as the privileged provisioning user and return its access token."""
    auth = AuthHelper(identity_api_url, timeout=timeout)
    auth.login_via_api(username, password)
    token = auth.get_access_token()
    if not isinstance(token, str) or not token:
        raise NotAuthenticatedError("Failed to acquire access token")
    return token
