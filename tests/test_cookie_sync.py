"""Tests for the cookie sync client."""

import json

import httpx
import pytest

from app.client import SessionExpiredError, StorySparksClient
from app.client.cookie_sync import (
    ISSUE_DUPLICATE,
    ISSUE_MISSING,
    cleanup_duplicate_cookies,
    detect_cookie_sync_issue,
    force_cookie_sync,
    session_cookies_by_name,
)

BASE_URL = "http://api.test"


class FakeServer:
    """MockTransport handler that records every request it sees."""

    def __init__(self, stories_status=(401, 200), session_sets_cookie=True):
        self.stories_status = list(stories_status)
        self.session_sets_cookie = session_sets_cookie
        self.calls = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.calls.append((request.method, request.url.path, request.headers.get("X-Retry-Auth")))

        if request.url.path == "/api/auth/session":
            if not self.session_sets_cookie:
                return httpx.Response(200, json={"authenticated": False})
            return httpx.Response(
                200,
                json={"authenticated": True},
                headers={"Set-Cookie": "session_token=fresh; Path=/; HttpOnly; SameSite=lax"},
            )

        if request.url.path == "/api/auth/login":
            return httpx.Response(
                200,
                json={"success": True},
                headers={"Set-Cookie": "session_token=fresh; Path=/; HttpOnly; SameSite=lax"},
            )

        status_code = self.stories_status.pop(0) if len(self.stories_status) > 1 else self.stories_status[0]
        return httpx.Response(status_code, json={"success": status_code == 200})

    def paths(self):
        return [path for _, path, _ in self.calls]


def make_client(server, **kwargs):
    http = httpx.Client(base_url=BASE_URL, transport=httpx.MockTransport(server))
    return StorySparksClient(client=http, sync_delay=0, **kwargs)


class TestCookieJarHelpers:

    def test_missing(self):
        assert detect_cookie_sync_issue(httpx.Cookies()) == ISSUE_MISSING

    def test_single_cookie_is_fine(self):
        cookies = httpx.Cookies()
        cookies.set("session_token", "abc", domain="api.test")

        assert detect_cookie_sync_issue(cookies) is None

    def test_exact_name_matching(self):
        """Cookies that merely contain the name are not session cookies."""
        cookies = httpx.Cookies()
        cookies.set("session_token", "abc", domain="api.test")
        cookies.set("old_session_token_backup", "zzz", domain="api.test")

        assert list(session_cookies_by_name(cookies)) == ["session_token"]
        assert detect_cookie_sync_issue(cookies) is None

    def test_duplicates_across_domains(self):
        cookies = httpx.Cookies()
        cookies.set("session_token", "a", domain="api.test")
        cookies.set("session_token", "b", domain=".api.test")

        assert detect_cookie_sync_issue(cookies) == ISSUE_DUPLICATE

    def test_secure_and_plain_names_count_together(self):
        cookies = httpx.Cookies()
        cookies.set("session_token", "a", domain="api.test")
        cookies.set("__Secure-session_token", "b", domain="api.test")

        assert detect_cookie_sync_issue(cookies) == ISSUE_DUPLICATE

    def test_cleanup_removes_all_duplicates(self):
        cookies = httpx.Cookies()
        cookies.set("session_token", "a", domain="api.test")
        cookies.set("session_token", "b", domain=".api.test")
        cookies.set("theme", "dark", domain="api.test")

        assert cleanup_duplicate_cookies(cookies) == 2
        assert session_cookies_by_name(cookies) == {}
        assert cookies.get("theme") == "dark"

    def test_cleanup_is_idempotent(self):
        cookies = httpx.Cookies()
        cookies.set("session_token", "a", domain="api.test")

        assert cleanup_duplicate_cookies(cookies) == 0
        assert cleanup_duplicate_cookies(cookies) == 0
        assert cookies.get("session_token") == "a"

    def test_force_sync_stores_cookie(self):
        server = FakeServer()
        http = httpx.Client(base_url=BASE_URL, transport=httpx.MockTransport(server))

        assert force_cookie_sync(http) is True
        assert http.cookies.get("session_token") == "fresh"

    def test_force_sync_without_session(self):
        server = FakeServer(session_sets_cookie=False)
        http = httpx.Client(base_url=BASE_URL, transport=httpx.MockTransport(server))

        assert force_cookie_sync(http) is False


class TestStorySparksClient:

    def test_login_syncs_cookie(self):
        server = FakeServer()
        client = make_client(server)

        response = client.login("reader@example.com", "Password1!")

        assert response.status_code == 200
        assert server.paths() == ["/api/auth/login", "/api/auth/session"]

    def test_success_needs_no_sync(self):
        server = FakeServer(stories_status=(200,))
        client = make_client(server)

        response = client.get("/api/stories")

        assert response.status_code == 200
        assert server.paths() == ["/api/stories"]

    def test_401_triggers_single_retry(self):
        server = FakeServer(stories_status=(401, 200))
        client = make_client(server)

        response = client.get("/api/stories")

        assert response.status_code == 200
        assert server.paths() == ["/api/stories", "/api/auth/session", "/api/stories"]
        # Only the retry carries the marker
        assert [marker for _, path, marker in server.calls if path == "/api/stories"] == [None, "true"]

    def test_persistent_401_raises_after_one_retry(self):
        server = FakeServer(stories_status=(401,))
        client = make_client(server)

        with pytest.raises(SessionExpiredError) as exc_info:
            client.get("/api/stories")

        assert exc_info.value.response.status_code == 401
        assert server.paths().count("/api/stories") == 2

    def test_failed_sync_does_not_retry(self):
        server = FakeServer(stories_status=(401,), session_sets_cookie=False)
        client = make_client(server)

        with pytest.raises(SessionExpiredError):
            client.get("/api/stories")

        assert server.paths() == ["/api/stories", "/api/auth/session"]

    def test_marked_request_is_not_retried(self):
        server = FakeServer(stories_status=(401,))
        client = make_client(server)

        with pytest.raises(SessionExpiredError):
            client.get("/api/stories", headers={"X-Retry-Auth": "true"})

        assert server.paths() == ["/api/stories"]

    def test_duplicate_cookies_cleaned_before_sync(self):
        server = FakeServer(stories_status=(401, 200))
        client = make_client(server)
        client.client.cookies.set("session_token", "stale", domain="api.test")
        client.client.cookies.set("session_token", "older", domain=".api.test")

        response = client.get("/api/stories")

        assert response.status_code == 200
        assert detect_cookie_sync_issue(client.client.cookies) is None
        assert client.client.cookies.get("session_token") == "fresh"

    def test_post_sends_json(self):
        seen = {}

        def handler(request):
            seen["body"] = request.content
            return httpx.Response(201, json={"success": True})

        http = httpx.Client(base_url=BASE_URL, transport=httpx.MockTransport(handler))
        client = StorySparksClient(client=http, sync_delay=0)

        response = client.post("/api/stories", {"title": "Luna"})

        assert response.status_code == 201
        assert json.loads(seen["body"]) == {"title": "Luna"}


class TestAgainstApp:
    """The client driven through the real application."""

    def test_login_then_fetch(self, client, verified_user):
        api = StorySparksClient(client=client, sync_delay=0)

        assert api.login("reader@example.com", "Password1!").status_code == 200
        assert api.get("/api/stories").status_code == 200

    def test_after_logout_requests_fail_for_good(self, client, verified_user):
        api = StorySparksClient(client=client, sync_delay=0)
        api.login("reader@example.com", "Password1!")

        assert api.logout().status_code == 200
        with pytest.raises(SessionExpiredError):
            api.get("/api/users/me")
