"""
Session cookie repair for API clients.

Right after sign-in a client can send its next request before the session
cookie is stored, and gets a spurious 401. These helpers inspect the cookie
jar, drop duplicate session cookies and ask the server to set the cookie
again.
"""

import logging
from http.cookiejar import Cookie
from typing import Optional

import httpx

logger = logging.getLogger(__name__)

SESSION_COOKIE_NAMES = ("session_token", "__Secure-session_token")
SESSION_PATH = "/api/auth/session"

ISSUE_MISSING = "missing"
ISSUE_DUPLICATE = "duplicate"


def session_cookies_by_name(cookies: httpx.Cookies) -> dict[str, list[Cookie]]:
    """Session cookies in the jar, grouped by exact cookie name."""
    found: dict[str, list[Cookie]] = {}
    for cookie in cookies.jar:
        if cookie.name in SESSION_COOKIE_NAMES:
            found.setdefault(cookie.name, []).append(cookie)
    return found


def detect_cookie_sync_issue(cookies: httpx.Cookies) -> Optional[str]:
    """Return ISSUE_MISSING, ISSUE_DUPLICATE or None when exactly one session cookie is held."""
    total = sum(len(entries) for entries in session_cookies_by_name(cookies).values())
    if total == 0:
        logger.warning("No session cookie held")
        return ISSUE_MISSING
    if total > 1:
        logger.warning(f"{total} session cookies held")
        return ISSUE_DUPLICATE
    return None


def cleanup_duplicate_cookies(cookies: httpx.Cookies) -> int:
    """
    Delete every session cookie when more than one is held, so the next sync
    sets a single canonical one. Returns number of cookies removed.
    """
    held = [c for entries in session_cookies_by_name(cookies).values() for c in entries]
    if len(held) <= 1:
        return 0

    for cookie in held:
        cookies.jar.clear(cookie.domain, cookie.path, cookie.name)
    logger.info(f"Removed {len(held)} duplicate session cookies")
    return len(held)


def force_cookie_sync(client: httpx.Client, session_path: str = SESSION_PATH) -> bool:
    """
    Ask the server to write the session cookie again.
    Returns True if the client holds a session cookie afterwards.
    """
    try:
        response = client.get(session_path, headers={"Cache-Control": "no-cache"})
    except httpx.HTTPError as e:
        logger.error(f"Cookie sync request failed: {e}")
        return False

    if response.status_code != 200:
        logger.warning(f"Cookie sync got status {response.status_code}")
        return False

    if not session_cookies_by_name(client.cookies):
        logger.warning("No session cookie after sync")
        return False

    return True
