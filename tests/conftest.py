"""Pytest shared fixtures for the Keycloak user administration client."""
import json
import pathlib
import sys
import threading
import time
from typing import Optional

# Add project root to Python path
ROOT = pathlib.Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

import pytest
import requests
from requests.structures import CaseInsensitiveDict

from keycloak_user_admin.core import KeycloakClient, StaticToken, UserManager


BASE_URL = "http://keycloak.test"
USERS_PATH = "/admin/realms/demo/users"


# ─────────────────────────────────────────────────────────────────────────────
# Network Guard Rails
# ─────────────────────────────────────────────────────────────────────────────
@pytest.fixture(autouse=True)
def _block_network(monkeypatch, request):
    """
    Prevent unit tests from hitting a live Keycloak.

    Integration tests are explicitly marked with @pytest.mark.integration and
    are allowed to perform real HTTP calls by skipping this fixture.
    """
    if request.node.get_closest_marker("integration"):
        return

    def _stub_post(url, *args, **kwargs):
        raise RuntimeError(f"Unexpected HTTP POST in unit test: {url}")

    def _stub_session_request(self, method, url, *args, **kwargs):
        raise RuntimeError(f"Unexpected HTTP {method} in unit test: {url}")

    monkeypatch.setattr(requests, "post", _stub_post)
    monkeypatch.setattr(requests.Session, "request", _stub_session_request)


# ─────────────────────────────────────────────────────────────────────────────
# Fake Transport
# ─────────────────────────────────────────────────────────────────────────────
class StubResponse:
    """Minimal requests.Response stand-in."""

    def __init__(self, payload=None, status_code: int = 200, headers: Optional[dict] = None):
        self._payload = payload
        self.status_code = status_code
        self.headers = CaseInsensitiveDict(headers or {})
        self.text = "" if payload is None else json.dumps(payload)

    def json(self):
        if self._payload is None:
            raise ValueError("No JSON body")
        return self._payload


class FakeTransport:
    """Records requests and answers them from a (method, path) route table.

    A route value is a StubResponse, an exception instance to raise, or a
    callable returning either. ``delays`` holds per-route sleep times to
    shuffle completion order in concurrent tests.
    """

    def __init__(self):
        self.routes = {}
        self.delays = {}
        self.calls = []
        self._lock = threading.Lock()

    def add(self, method: str, path: str, response, delay: float = 0.0):
        self.routes[(method, path)] = response
        if delay:
            self.delays[(method, path)] = delay
        return self

    def request(self, method, url, headers=None, **kwargs):
        path = url[len(BASE_URL):]
        with self._lock:
            self.calls.append({"method": method, "path": path, "headers": headers, **kwargs})
        key = (method, path)
        if key not in self.routes:
            raise RuntimeError(f"Unexpected {method} {path}")
        if key in self.delays:
            time.sleep(self.delays[key])
        response = self.routes[key]
        if callable(response) and not isinstance(response, StubResponse):
            response = response()
        if isinstance(response, BaseException):
            raise response
        return response

    def calls_to(self, method: str, path: str):
        return [call for call in self.calls if call["method"] == method and call["path"] == path]


@pytest.fixture()
def transport():
    return FakeTransport()


@pytest.fixture()
def kc_client(transport):
    return KeycloakClient(BASE_URL, http=transport)


@pytest.fixture()
def manager(kc_client):
    return UserManager(kc_client, StaticToken("test-token"), realm="demo")


# ─────────────────────────────────────────────────────────────────────────────
# Pytest Configuration
# ─────────────────────────────────────────────────────────────────────────────
def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers", "integration: marks tests as integration tests (requires running stack)"
    )
