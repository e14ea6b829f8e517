"""Rate limiting: slowapi route limits plus keyed attempt counters."""

import ipaddress
import logging
import threading
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Callable

from slowapi import Limiter
from slowapi.util import get_remote_address
from fastapi import Request

from app.core.config import settings

logger = logging.getLogger(__name__)


def _is_valid_ip(value: str) -> bool:
    try:
        ipaddress.ip_address(value)
        return True
    except ValueError:
        return False


def get_client_ip(request: Request) -> str:
    """
    Get the client IP address.

    Forwarding headers are client-controlled, so they are read only when the
    socket peer is one of settings.TRUSTED_PROXY_IPS. Otherwise the peer
    address itself is the key.
    """
    direct_ip = get_remote_address(request)

    if direct_ip and direct_ip in settings.trusted_proxy_ips:
        forwarded = request.headers.get("x-forwarded-for")
        if forwarded:
            client_ip = forwarded.split(",")[0].strip()
            if _is_valid_ip(client_ip):
                return client_ip
            logger.warning(f"Invalid IP in X-Forwarded-For header: {client_ip}")

        real_ip = request.headers.get("x-real-ip", "").strip()
        if real_ip and _is_valid_ip(real_ip):
            return real_ip

    return direct_ip or "unknown"


# Route-level limiter for public endpoints that send email
public_limiter = Limiter(
    key_func=get_client_ip,
    default_limits=["100/minute"],
)


def rate_limit_email(limit: str = "5/minute"):
    """Rate limit for routes that trigger outbound email."""
    return public_limiter.limit(limit)


@dataclass
class AttemptEntry:
    """Attempt counter for one key within its current window."""
    count: int
    window_start: float


class RateLimitStore(ABC):
    """Keyed fixed-window attempt counter."""

    @abstractmethod
    def allow(self, key: str, limit: int, window_seconds: float) -> bool:
        """Record an attempt for key. Returns False once limit is reached."""
        ...

    @abstractmethod
    def sweep(self, retention_seconds: float) -> int:
        """Evict entries whose window started more than retention_seconds ago."""
        ...


class InMemoryRateLimitStore(RateLimitStore):
    """
    Process-local attempt counters.

    FastAPI runs sync endpoints in a threadpool, so each read-modify-write
    happens under a lock. Sweeping holds the lock only per key.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self._entries: dict[str, AttemptEntry] = {}
        self._lock = threading.Lock()
        self._clock = clock

    def allow(self, key: str, limit: int, window_seconds: float) -> bool:
        now = self._clock()
        with self._lock:
            entry = self._entries.get(key)

            if entry is None or now - entry.window_start >= window_seconds:
                self._entries[key] = AttemptEntry(count=1, window_start=now)
                return True

            if entry.count < limit:
                entry.count += 1
                return True

            return False

    def sweep(self, retention_seconds: float) -> int:
        cutoff = self._clock() - retention_seconds
        removed = 0
        for key in list(self._entries.keys()):
            with self._lock:
                entry = self._entries.get(key)
                if entry is not None and entry.window_start < cutoff:
                    del self._entries[key]
                    removed += 1
        return removed

    def __len__(self) -> int:
        return len(self._entries)


class AttemptLimiter:
    """
    Applies one limit to two independent keyspaces: client IP and email.
    Spreading attempts over many emails from one IP is throttled by the IP
    keyspace, and many IPs against one email by the email keyspace.
    """

    def __init__(self, scope: str, store: RateLimitStore, limit: int, window_seconds: float):
        self.scope = scope
        self.store = store
        self.limit = limit
        self.window_seconds = window_seconds

    def allow_ip(self, ip: str) -> bool:
        return self.store.allow(f"{self.scope}:ip:{ip}", self.limit, self.window_seconds)

    def allow_email(self, email: str) -> bool:
        return self.store.allow(
            f"{self.scope}:email:{email.lower()}", self.limit, self.window_seconds
        )


attempt_store: RateLimitStore = InMemoryRateLimitStore()


def get_attempt_store() -> RateLimitStore:
    """Dependency returning the process-wide attempt store."""
    return attempt_store


def login_limiter(store: RateLimitStore) -> AttemptLimiter:
    return AttemptLimiter(
        "login", store, settings.LOGIN_RATE_LIMIT, settings.RATE_LIMIT_WINDOW_SECONDS
    )


def register_limiter(store: RateLimitStore) -> AttemptLimiter:
    return AttemptLimiter(
        "register", store, settings.REGISTER_RATE_LIMIT, settings.RATE_LIMIT_WINDOW_SECONDS
    )


def sweep_attempt_store() -> int:
    """Scheduled job: bound the memory used by attempt counters."""
    removed = attempt_store.sweep(settings.RATE_LIMIT_RETENTION_SECONDS)
    if removed:
        logger.info(f"Rate limit sweep removed {removed} stale entries")
    return removed
