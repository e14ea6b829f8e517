import logging
import time
from typing import Any, Optional

import httpx

from app.client.cookie_sync import (
    ISSUE_DUPLICATE,
    SESSION_PATH,
    cleanup_duplicate_cookies,
    detect_cookie_sync_issue,
    force_cookie_sync,
)

logger = logging.getLogger(__name__)

RETRY_HEADER = "X-Retry-Auth"


class SessionExpiredError(Exception):
    """A request was still unauthorized after the session was resynchronised."""

    def __init__(self, response: httpx.Response):
        self.response = response
        super().__init__(f"Session expired or invalid ({response.request.method} {response.request.url})")


class StorySparksClient:
    """
    Cookie-authenticated client for the Story Sparks API.

    A 401 on a request that is not itself a retry triggers one cookie sync
    followed by exactly one retry carrying the X-Retry-Auth header.
    """

    def __init__(
        self,
        base_url: str = "http://localhost:8000",
        client: Optional[httpx.Client] = None,
        sync_delay: float = 0.5,
        session_path: str = SESSION_PATH,
    ):
        self.client = client or httpx.Client(base_url=base_url, timeout=30)
        self.sync_delay = sync_delay
        self.session_path = session_path

    def __enter__(self) -> "StorySparksClient":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def close(self) -> None:
        self.client.close()

    def login(self, email: str, password: str) -> httpx.Response:
        """Sign in, then make sure the session cookie has landed before returning."""
        response = self.client.post(
            "/api/auth/login",
            json={"email": email, "password": password},
        )
        if response.status_code != 200:
            logger.warning(f"Sign-in failed with status {response.status_code}")
            return response

        if not force_cookie_sync(self.client, self.session_path):
            logger.warning("Session cookie not confirmed after sign-in")
        if self.sync_delay:
            time.sleep(self.sync_delay)
        return response

    def logout(self) -> httpx.Response:
        return self.client.post("/api/auth/revoke-token")

    def request(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        """
        Send a request. Raises SessionExpiredError if it is still
        unauthorized after the single resync-and-retry.
        """
        headers = dict(kwargs.pop("headers", None) or {})
        headers.setdefault("Cache-Control", "no-cache")

        response = self.client.request(method, url, headers=headers, **kwargs)
        if response.status_code != 401:
            return response

        if headers.get(RETRY_HEADER):
            logger.warning(f"Skipping cookie sync for {method} {url}: already retried")
            raise SessionExpiredError(response)

        logger.warning(f"Received 401 for {method} {url}, attempting cookie sync")
        if detect_cookie_sync_issue(self.client.cookies) == ISSUE_DUPLICATE:
            cleanup_duplicate_cookies(self.client.cookies)

        if not force_cookie_sync(self.client, self.session_path):
            raise SessionExpiredError(response)

        headers[RETRY_HEADER] = "true"
        retry = self.client.request(method, url, headers=headers, **kwargs)
        if retry.status_code == 401:
            logger.error(f"Persistent 401 after cookie sync for {method} {url}")
            raise SessionExpiredError(retry)
        return retry

    def get(self, url: str, **kwargs: Any) -> httpx.Response:
        return self.request("GET", url, **kwargs)

    def post(self, url: str, data: Any = None, **kwargs: Any) -> httpx.Response:
        return self.request("POST", url, json=data, **kwargs)

    def put(self, url: str, data: Any = None, **kwargs: Any) -> httpx.Response:
        return self.request("PUT", url, json=data, **kwargs)

    def delete(self, url: str, **kwargs: Any) -> httpx.Response:
        return self.request("DELETE", url, **kwargs)
