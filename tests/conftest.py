"""
Pytest configuration file for the DialysisLive test suite.

This file defines shared fixtures and helpers used across different test files.
It includes:
- `FakeSession`, a stand-in for `requests.Session` that answers requests from
  canned responses registered per method and path, and records every call.
- Fixtures for creating isolated instances of the `DialysisLiveService` that talk
  to a `FakeSession` instead of the network.
- Builders for the API payloads the tests use repeatedly.
"""
import pytest

from dialysislive.config import DEFAULT_API_URL, Settings
from dialysislive.encryption import TokenStore
from dialysislive.models import User
from dialysislive.service import DialysisLiveService


class FakeResponse:
    """A minimal `requests.Response` with a status code and a JSON body."""
    def __init__(self, status_code=200, body=None):
        self.status_code = status_code
        self._body = body

    def json(self):
        if self._body is None:
            raise ValueError("No JSON body")
        return self._body


class FakeSession:
    """
    Replays canned responses for `ApiClient`.

    Responses are registered with `add(method, path, ...)`. When several are
    registered for the same route they are returned in order, and the last one is
    repeated. An exception registered as the body is raised instead. Unknown routes
    answer 404.

    Attributes:
        calls (list): One dict per request with `method`, `path`, `json`, `params`
            and `headers`.
    """
    def __init__(self, base_url=DEFAULT_API_URL):
        self.base_url = base_url
        self.routes = {}
        self.calls = []

    def add(self, method, path, body=None, status=200):
        self.routes.setdefault((method, path), []).append((status, body))
        return self

    def ok(self, method, path, data=None, status=200):
        """Registers a successful `{"success": true, "data": ...}` response."""
        return self.add(method, path, {"success": True, "data": data if data is not None else {}}, status)

    def fail(self, method, path, status, message, code=None, details=None):
        body = {"success": False, "message": message}
        if code is not None:
            body["error"] = {"code": code, "message": message, "details": details or {}}
        return self.add(method, path, body, status)

    def request(self, method, url, json=None, params=None, headers=None, timeout=None):
        path = url[len(self.base_url):]
        self.calls.append({"method": method, "path": path, "json": json, "params": params, "headers": headers or {}})
        responses = self.routes.get((method, path))
        if not responses:
            return FakeResponse(404, {"success": False, "message": f"No route for {method} {path}"})
        status, body = responses.pop(0) if len(responses) > 1 else responses[0]
        if isinstance(body, Exception):
            raise body
        return FakeResponse(status, body)

    def calls_to(self, method, path):
        return [c for c in self.calls if c["method"] == method and c["path"] == path]


def user_payload(email="sam@example.com", full_name="Sam Rivera", units="metric"):
    return {
        "user": {"_id": "u1", "email": email, "status": "active", "onboardingCompleted": True},
        "profile": {"fullName": full_name, "units": units, "timezone": "Europe/London"},
    }


def session_payload(session_id="s1", status="started", **fields):
    payload = {
        "_id": session_id,
        "mode": "home",
        "type": "home_hd",
        "status": status,
        "startedAt": "2025-03-01T08:00:00Z",
        "plannedDurationMin": 240,
    }
    payload.update(fields)
    return payload


def profile_payload(profile_id="p1", display_name="KidneyWarrior", **fields):
    payload = {"_id": profile_id, "displayName": display_name, "displayNameSlug": display_name.lower()}
    payload.update(fields)
    return payload


@pytest.fixture
def fake_http():
    """Provides an empty `FakeSession`."""
    return FakeSession()


@pytest.fixture
def settings():
    return Settings()


@pytest.fixture
def service(settings, fake_http):
    """A signed-out `DialysisLiveService` backed by `fake_http`."""
    return DialysisLiveService(settings, TokenStore(), session=fake_http)


@pytest.fixture
def auth_service(service):
    """
    Provides a service that already holds a token pair and a current user.

    This fixture builds on the `service` fixture, so `service` and `auth_service`
    are the same object within a test.
    """
    service.client.tokens.set_tokens("access-1", "refresh-1")
    service.auth.current_user = User.from_api(user_payload())
    return service

