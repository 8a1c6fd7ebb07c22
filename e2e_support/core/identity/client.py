"""Low-level HTTP client for the Identity service admin API.

Handles bearer authentication, base URL resolution and error translation.
"""
from __future__ import annotations
from typing import Optional, Dict, Any
from urllib.parse import urljoin

import requests

from .exceptions import IdentityAPIError, BODY_PREVIEW_LIMIT

REQUEST_TIMEOUT = 30


def normalize_identity_api_base(identity_api_url: str) -> str:
    """Return the API root with a trailing slash so relative paths resolve under /api/."""
    if identity_api_url.endswith("/api/"):
        return identity_api_url
    if identity_api_url.endswith("/api"):
        return f"{identity_api_url}/"
    return f"{identity_api_url.rstrip('/')}/api/"


def json_or_empty(resp: requests.Response) -> Any:
    """Decode a JSON body, treating empty or non-JSON bodies as an empty object."""
    if not resp.content:
        return {}
    try:
        return resp.json()
    except ValueError:
        return {}


def describe_http_failure(error: Exception, limit: int = BODY_PREVIEW_LIMIT) -> str:
    """Render ``status N: <body preview>`` for an API error, or the error text otherwise."""
    if isinstance(error, IdentityAPIError) and error.status_code:
        details = f"status {error.status_code}"
        body = (error.message or "")[:limit]
        return f"{details}: {body}" if body else details
    return str(error)


class IdentityClient:
    """HTTP client for the Identity admin API bound to one bearer token.

    The client never sets a default ``Content-Type``: the Identity service
    answers 400 to GET/DELETE requests that carry one with an empty body.
    JSON bodies (and therefore the header) are only sent on POST and PUT.

    Usage:
        client = IdentityClient("http://localhost:5002", token)
        tenants = client.get("tenants").json()
    """

    def __init__(self, base_url: str, access_token: str, timeout: float = REQUEST_TIMEOUT):
        """Initialize the client.

        Args:
            base_url: Identity service URL, with or without the /api suffix
            access_token: Bearer token of the privileged test user
            timeout: Per-request timeout in seconds
        """
        self.base_url = normalize_identity_api_base(base_url)
        self.timeout = timeout
        self._session = requests.Session()
        self._session.headers["Authorization"] = f"Bearer {access_token}"

    def url_for(self, path: str) -> str:
        return urljoin(self.base_url, path.lstrip("/"))

    def get(self, path: str, params: Optional[Dict[str, Any]] = None) -> requests.Response:
        """Execute GET request.

        Raises:
            IdentityAPIError: On HTTP or transport error
        """
        return self._request("GET", path, params=params)

    def post(self, path: str, json: Optional[Any] = None) -> requests.Response:
        """Execute POST request with a JSON payload."""
        return self._request("POST", path, json=json if json is not None else {})

    def put(self, path: str, json: Optional[Any] = None) -> requests.Response:
        """Execute PUT request with a JSON payload."""
        return self._request("PUT", path, json=json if json is not None else {})

    def delete(self, path: str) -> requests.Response:
        """Execute DELETE request without a body."""
        return self._request("DELETE", path)

    def close(self) -> None:
        self._session.close()

    def _request(self, method: str, path: str, **kwargs) -> requests.Response:
        url = self.url_for(path)
        try:
            resp = self._session.request(method, url, timeout=self.timeout, **kwargs)
        except requests.RequestException as exc:
            raise IdentityAPIError(0, str(exc), url) from exc
        self._handle_error(resp)
        return resp

    def _handle_error(self, resp: requests.Response) -> None:
        """Centralized error handling for HTTP responses.

        Raises:
            IdentityAPIError: If response status indicates error
        """
        if resp.status_code >= 400:
            raise IdentityAPIError(resp.status_code, resp.text, resp.url)
