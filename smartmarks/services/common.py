import re
from urllib.parse import quote, urlsplit

from smartmarks.errors import (
    INVALID_URL,
    MISSING_TITLE,
    MISSING_URL,
    ValidationError,
)


DEFAULT_SCHEME = "https"
WEB_SCHEMES = ("http", "https")

_WEB_SCHEME_RE = re.compile(r"^https?://", re.IGNORECASE)
_ANY_SCHEME_RE = re.compile(r"^[a-z][a-z0-9+.\-]*://", re.IGNORECASE)
_HOST_RE = re.compile(r"^[^\s/?#@<>\"{}|\\^`]+$")


def normalize_url(url: str) -> str:
    if not url:
        return ""
    value = url.strip()
    if not value:
        return ""
    if not _WEB_SCHEME_RE.match(value):
        return f"{DEFAULT_SCHEME}://{value}"
    return value


def has_foreign_scheme(url: str) -> bool:
    value = (url or "").strip()
    return bool(_ANY_SCHEME_RE.match(value)) and not _WEB_SCHEME_RE.match(value)


def is_absolute_url(url: str) -> bool:
    if not url:
        return False
    try:
        parsed = urlsplit(url)
        # raises ValueError for a non-numeric or out of range port
        parsed.port
    except ValueError:
        return False
    if parsed.scheme.lower() not in WEB_SCHEMES or not parsed.netloc:
        return False
    if any(ch.isspace() for ch in parsed.netloc):
        return False
    host = parsed.hostname or ""
    return bool(host) and bool(_HOST_RE.match(host))


def validate_bookmark_input(title: str | None, raw_url: str | None) -> tuple[str, str]:
    clean_title = (title or "").strip()
    if not clean_title:
        raise ValidationError(MISSING_TITLE)
    url = normalize_url(raw_url or "")
    if not url:
        raise ValidationError(MISSING_URL)
    # only web links are stored; ftp://, javascript:// and friends are refused
    if has_foreign_scheme(raw_url) or not is_absolute_url(url):
        raise ValidationError(INVALID_URL)
    return clean_title, url


def display_host(url: str) -> str:
    try:
        host = urlsplit(url).hostname or ""
    except ValueError:
        return ""
    return host.removeprefix("www.")


def favicon_url(url: str, size: int = 64) -> str | None:
    host = display_host(url)
    if not host:
        return None
    return f"https://www.google.com/s2/favicons?domain={quote(host)}&sz={size}"
