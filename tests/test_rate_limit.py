"""Tests for the keyed attempt limiter."""

from unittest.mock import patch

from starlette.requests import Request

from app.core import rate_limit
from app.core.rate_limit import (
    AttemptLimiter,
    InMemoryRateLimitStore,
    get_client_ip,
    login_limiter,
)


class FakeClock:
    def __init__(self, now=1000.0):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


class TestInMemoryRateLimitStore:
    """Fixed-window counters."""

    def test_limit_then_deny(self):
        store = InMemoryRateLimitStore(clock=FakeClock())

        results = [store.allow("ip:1.2.3.4", 5, 60) for _ in range(6)]

        assert results == [True, True, True, True, True, False]

    def test_window_reset(self):
        clock = FakeClock()
        store = InMemoryRateLimitStore(clock=clock)
        for _ in range(5):
            store.allow("k", 5, 60)
        assert store.allow("k", 5, 60) is False

        clock.advance(59)
        assert store.allow("k", 5, 60) is False

        clock.advance(1)
        assert store.allow("k", 5, 60) is True
        # Fresh window: four more allowed, then denied again
        assert [store.allow("k", 5, 60) for _ in range(5)] == [True, True, True, True, False]

    def test_keys_are_independent(self):
        store = InMemoryRateLimitStore(clock=FakeClock())
        for _ in range(5):
            store.allow("a", 5, 60)

        assert store.allow("a", 5, 60) is False
        assert store.allow("b", 5, 60) is True

    def test_sweep_removes_only_stale_entries(self):
        clock = FakeClock()
        store = InMemoryRateLimitStore(clock=clock)
        store.allow("old", 5, 60)
        clock.advance(301)
        store.allow("new", 5, 60)

        removed = store.sweep(300)

        assert removed == 1
        assert len(store) == 1
        assert store.allow("new", 1, 60) is False

    def test_sweep_on_empty_store(self):
        assert InMemoryRateLimitStore().sweep(300) == 0


class TestAttemptLimiter:
    """IP and email keyspaces are counted separately."""

    def test_ip_and_email_keyspaces(self):
        store = InMemoryRateLimitStore(clock=FakeClock())
        limiter = AttemptLimiter("login", store, limit=2, window_seconds=60)

        assert limiter.allow_ip("1.1.1.1")
        assert limiter.allow_ip("1.1.1.1")
        assert not limiter.allow_ip("1.1.1.1")

        # The email keyspace has its own budget
        assert limiter.allow_email("a@example.com")

    def test_email_key_is_case_insensitive(self):
        store = InMemoryRateLimitStore(clock=FakeClock())
        limiter = AttemptLimiter("login", store, limit=1, window_seconds=60)

        assert limiter.allow_email("A@Example.com")
        assert not limiter.allow_email("a@example.com")

    def test_scopes_do_not_share_counters(self):
        store = InMemoryRateLimitStore(clock=FakeClock())
        login = AttemptLimiter("login", store, limit=1, window_seconds=60)
        register = AttemptLimiter("register", store, limit=1, window_seconds=60)

        assert login.allow_ip("1.1.1.1")
        assert register.allow_ip("1.1.1.1")

    def test_login_limiter_uses_settings(self):
        limiter = login_limiter(InMemoryRateLimitStore())

        assert limiter.limit == 5
        assert limiter.window_seconds == 60


def test_scheduled_sweep_uses_process_store():
    clock = FakeClock()
    store = InMemoryRateLimitStore(clock=clock)
    store.allow("stale", 5, 60)
    clock.advance(1000)

    with patch.object(rate_limit, "attempt_store", store):
        assert rate_limit.sweep_attempt_store() == 1

    assert len(store) == 0


def make_request(peer, headers=None):
    raw_headers = [
        (name.lower().encode(), value.encode()) for name, value in (headers or {}).items()
    ]
    return Request({"type": "http", "headers": raw_headers, "client": (peer, 12345)})


class TestClientIp:
    """Forwarding headers count only when they come from a trusted proxy."""

    def test_untrusted_peer_ignores_forwarded_headers(self):
        request = make_request(
            "203.0.113.7", {"X-Forwarded-For": "10.0.0.1", "X-Real-IP": "10.0.0.2"}
        )

        with patch.object(rate_limit.settings, "TRUSTED_PROXY_IPS", ""):
            assert get_client_ip(request) == "203.0.113.7"

    def test_trusted_proxy_forwards_client_address(self):
        request = make_request("10.1.1.1", {"X-Forwarded-For": "198.51.100.4, 10.1.1.1"})

        with patch.object(rate_limit.settings, "TRUSTED_PROXY_IPS", "10.1.1.1"):
            assert get_client_ip(request) == "198.51.100.4"

    def test_trusted_proxy_with_garbage_header_falls_back_to_peer(self):
        request = make_request("10.1.1.1", {"X-Forwarded-For": "not-an-ip"})

        with patch.object(rate_limit.settings, "TRUSTED_PROXY_IPS", "10.1.1.1"):
            assert get_client_ip(request) == "10.1.1.1"

    def test_trusted_proxy_real_ip_header(self):
        request = make_request("10.1.1.1", {"X-Real-IP": "198.51.100.9"})

        with patch.object(rate_limit.settings, "TRUSTED_PROXY_IPS", "10.1.1.1"):
            assert get_client_ip(request) == "198.51.100.9"
