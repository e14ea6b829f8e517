"""Input sanitization and validation utilities."""

import re
import html
import bleach


# Maximum lengths for different field types
MAX_LENGTHS = {
    "name": 100,
    "email": 254,
    "password": 128,
    "search": 100,
    "default": 255,
}

# Allowed characters patterns
PATTERNS = {
    "email": re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$"),
    "audio_filename": re.compile(r"^[A-Za-z0-9_-]+\.(wav|mp3)$"),
}


def sanitize_string(
    value: str,
    max_length: int = MAX_LENGTHS["default"],
    strip_html: bool = True,
    allow_newlines: bool = False,
) -> str:
    """
    Sanitize a string input.

    - Strips leading/trailing whitespace
    - Removes HTML tags, returning plain text (entities decoded)
    - Truncates to max length
    - Optionally removes newlines
    """
    if not value:
        return ""

    # Strip whitespace
    value = value.strip()

    # Remove HTML tags if requested
    if strip_html:
        value = bleach.clean(value, tags=[], strip=True)
        # bleach escapes what it keeps; stored values are plain text
        value = html.unescape(value)

    # Remove or normalize newlines
    if not allow_newlines:
        value = " ".join(value.split())

    # Truncate to max length
    if len(value) > max_length:
        value = value[:max_length]

    return value


def sanitize_name(value: str) -> str:
    """Sanitize a person name."""
    return sanitize_string(value, max_length=MAX_LENGTHS["name"])


def normalize_email(value: str) -> str:
    """Trim and lowercase an email. Does not truncate, so oversize input stays invalid."""
    return (value or "").strip().lower()


def validate_email(value: str) -> bool:
    """Validate basic local@domain.tld email format."""
    if not value or len(value) > MAX_LENGTHS["email"]:
        return False
    return bool(PATTERNS["email"].match(value))


def sanitize_search(value: str) -> str:
    """Sanitize a story search query."""
    return sanitize_string(value, max_length=MAX_LENGTHS["search"])


def validate_audio_filename(value: str) -> bool:
    """Reject anything that could escape the audio cache directory."""
    return bool(value) and bool(PATTERNS["audio_filename"].match(value))


def escape_for_display(value: str) -> str:
    """Escape a string for safe display in HTML context."""
    return html.escape(value)
