"""Pytest shared fixtures for the provisioning tests."""
import json
import pathlib
import sys
import threading
import time
from typing import Any, Dict, List, Optional, Tuple
from urllib.parse import urlsplit

# Add project root to Python path
ROOT = pathlib.Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

import pytest
import requests

from e2e_support.config.settings import E2EConfig

pytest_plugins = ["pytester"]


# ─────────────────────────────────────────────────────────────────────────────
# Network Guard Rails
# ─────────────────────────────────────────────────────────────────────────────
@pytest.fixture(autouse=True)
def _block_network(monkeypatch, request):
    """
    Prevent unit tests from reaching a live Identity service.

    Integration tests are explicitly marked with @pytest.mark.integration and
    are allowed to perform real HTTP calls by skipping this fixture.
    """
    if request.node.get_closest_marker("integration"):
        return

    def _refuse(*args, **kwargs):
        raise RuntimeError(f"Unexpected network access in unit test: {args} {kwargs.get('url', '')}")

    monkeypatch.setattr(requests, "get", _refuse)
    monkeypatch.setattr(requests, "post", _refuse)
    monkeypatch.setattr(requests.Session, "request", _refuse)


# ─────────────────────────────────────────────────────────────────────────────
# In-memory Identity API
# ─────────────────────────────────────────────────────────────────────────────
class FakeResponse:
    def __init__(self, status_code: int = 200, payload: Any = None, url: str = ""):
        self.status_code = status_code
        self.url = url
        if payload is None:
            self.text = ""
        elif isinstance(payload, str):
            self.text = payload
        else:
            self.text = json.dumps(payload)
        self.content = self.text.encode("utf-8")

    @property
    def ok(self) -> bool:
        return self.status_code < 400

    def json(self):
        return json.loads(self.text)


class FakeIdentityAPI:
    """Just enough of the Identity admin API to run reconciliation and teardown.

    Failure injection:
        fail[(method, path)] = status      persistent failure of one route
        create_failures[username] = [..]   statuses returned by successive user creates
        persist_failed_creates             failed creates still store the user
        create_tenants_disabled            new tenants come back with status 0

    Concurrency tracking:
        latency                            seconds each admin call stays in flight
        peak[(method, resource)]           most calls of one kind in flight at once
    """

    def __init__(self):
        self.tenants: Dict[str, Dict[str, Any]] = {}
        self.users: Dict[str, Dict[str, Any]] = {}
        self.calls: List[Tuple[str, str, Dict[str, Any]]] = []
        self.logins: List[Dict[str, Any]] = []
        self.fail: Dict[Tuple[str, str], int] = {}
        self.create_failures: Dict[str, List[int]] = {}
        self.persist_failed_creates = False
        self.create_tenants_disabled = False
        self.credentials = {"superuser": "super-secret"}
        self.access_token = "test-access-token"
        self.latency = 0.0
        self.peak: Dict[Tuple[str, str], int] = {}
        self._in_flight: Dict[Tuple[str, str], int] = {}
        self._next_id = 0
        self._lock = threading.Lock()

    # ── seeding ──────────────────────────────────────────────────────────
    def _new_id(self, prefix: str) -> str:
        self._next_id += 1
        return f"{prefix}-{self._next_id}"

    def add_tenant(self, name: str, status: int = 1, **fields) -> str:
        tenant_id = self._new_id("tenant")
        self.tenants[tenant_id] = {"tenantId": tenant_id, "name": name, "tenantStatus": status, **fields}
        return tenant_id

    def add_user(self, username: str, tenant_id: Optional[str], roles=("user",), enabled: bool = True) -> str:
        user_id = self._new_id("user")
        self.users[user_id] = {
            "id": user_id,
            "username": username,
            "tenantId": tenant_id,
            "enabled": enabled,
            "roles": list(roles),
        }
        return user_id

    def tenant_by_name(self, name: str) -> Optional[Dict[str, Any]]:
        return next((t for t in self.tenants.values() if t["name"].lower() == name.lower()), None)

    def users_named(self, username: str) -> List[Dict[str, Any]]:
        return [u for u in self.users.values() if u["username"].lower() == username.lower()]

    def calls_for(self, method: str, prefix: str = "") -> List[Tuple[str, str, Dict[str, Any]]]:
        return [c for c in self.calls if c[0] == method and c[1].startswith(prefix)]

    # ── transport hooks ──────────────────────────────────────────────────
    def install(self, monkeypatch) -> "FakeIdentityAPI":
        api = self

        def _session_request(session, method, url, **kwargs):
            kwargs["session_headers"] = dict(session.headers)
            return api._timed(method, url, **kwargs)

        def _post(url, json=None, **kwargs):
            return api.login_route(url, json or {})

        monkeypatch.setattr(requests.Session, "request", _session_request)
        monkeypatch.setattr(requests, "post", _post)
        return self

    def login_route(self, url: str, payload: Dict[str, Any]) -> FakeResponse:
        path = urlsplit(url).path
        self.logins.append({"path": path, **payload})
        if path.endswith("/auth/login"):
            if self.credentials.get(payload.get("username")) == payload.get("password"):
                return FakeResponse(200, {"accessToken": self.access_token, "refreshToken": "refresh"}, url)
            return FakeResponse(200, {"accessToken": None, "errorMessage": "Invalid credentials"}, url)
        return FakeResponse(404, "not found", url)

    def _timed(self, method: str, url: str, **kwargs) -> FakeResponse:
        resource = urlsplit(url).path.split("/api/", 1)[-1].strip("/").split("/")[0]
        key = (method, resource)
        with self._lock:
            self._in_flight[key] = self._in_flight.get(key, 0) + 1
            self.peak[key] = max(self.peak.get(key, 0), self._in_flight[key])
        try:
            if self.latency:
                time.sleep(self.latency)
            return self.handle(method, url, **kwargs)
        finally:
            with self._lock:
                self._in_flight[key] -= 1

    def handle(self, method: str, url: str, **kwargs) -> FakeResponse:
        path = urlsplit(url).path.split("/api/", 1)[-1]
        with self._lock:
            self.calls.append((method, path, kwargs))
            status = self.fail.get((method, path))
            if status:
                return FakeResponse(status, {"error": f"injected {status}"}, url)
            return self._route(method, path, kwargs, url)

    def _route(self, method, path, kwargs, url) -> FakeResponse:
        parts = path.strip("/").split("/")
        body = kwargs.get("json") or {}
        params = kwargs.get("params") or {}

        if parts == ["tenants"] and method == "GET":
            summary = [
                {"tenantId": t["tenantId"], "name": t["name"], "tenantStatus": t["tenantStatus"]}
                for t in self.tenants.values()
            ]
            return FakeResponse(200, {"tenants": summary}, url)
        if parts == ["tenants"] and method == "POST":
            status = 0 if self.create_tenants_disabled else body.get("tenantStatus", 0)
            return FakeResponse(201, {"tenantId": self.add_tenant(body["name"], status)}, url)
        if parts == ["tenants"] and method == "PUT":
            if body.get("tenantId") not in self.tenants:
                return FakeResponse(404, "tenant not found", url)
            self.tenants[body["tenantId"]] = dict(body)
            return FakeResponse(204, None, url)
        if len(parts) == 2 and parts[0] == "tenants":
            tenant = self.tenants.get(parts[1])
            if tenant is None:
                return FakeResponse(404, "tenant not found", url)
            if method == "GET":
                return FakeResponse(200, dict(tenant), url)
            if method == "DELETE":
                del self.tenants[parts[1]]
                return FakeResponse(204, None, url)

        if parts == ["users"] and method == "GET":
            users = [
                dict(u) for u in self.users.values()
                if not params.get("tenantId") or u["tenantId"] == params["tenantId"]
            ]
            return FakeResponse(200, {"users": users}, url)
        if parts == ["users"] and method == "POST":
            return self._create_user(body, url)
        if len(parts) == 2 and parts[0] == "users" and method == "DELETE":
            if parts[1] not in self.users:
                return FakeResponse(404, "user not found", url)
            del self.users[parts[1]]
            return FakeResponse(204, None, url)

        return FakeResponse(404, f"no route {method} {path}", url)

    def _create_user(self, body, url) -> FakeResponse:
        username = body["username"]
        queued = self.create_failures.get(username)
        if queued:
            status = queued.pop(0)
            if self.persist_failed_creates:
                self.add_user(username, body.get("tenantId"), body.get("roles", []), body.get("enabled", True))
            return FakeResponse(status, {"error": "identity provider unavailable"}, url)
        if self.users_named(username):
            return FakeResponse(409, {"error": "duplicate username"}, url)
        user_id = self.add_user(username, body.get("tenantId"), body.get("roles", []), body.get("enabled", True))
        return FakeResponse(201, {"userId": user_id, "success": True}, url)


@pytest.fixture()
def identity_api(monkeypatch):
    """In-memory Identity API wired into requests."""
    return FakeIdentityAPI().install(monkeypatch)


@pytest.fixture()
def e2e_config(tmp_path):
    return E2EConfig(
        identity_api_url="http://identity.test",
        username="superuser",
        password="super-secret",
        auth_dir=tmp_path / ".auth",
    )


# ─────────────────────────────────────────────────────────────────────────────
# Pytest Configuration
# ─────────────────────────────────────────────────────────────────────────────
def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers", "integration: marks tests as integration tests (requires running Identity service)"
    )
