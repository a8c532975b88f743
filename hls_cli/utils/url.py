"""
Utilities for resolving playlist URIs and deriving output filenames.
"""

import re
import time
from urllib.parse import quote, urljoin, urlsplit

_UNSAFE_NAME_CHARS = re.compile(r"[^a-zA-Z0-9_-]")


def resolve_url(base_url: str, relative_url: str) -> str:
    """
    Resolves a URI found in a playlist against the playlist's own URL.

    Absolute http(s) URIs are returned untouched. Relative ones are joined onto
    the directory of `base_url`, so its file name and query string are dropped.
    """
    if relative_url.startswith(("http://", "https://")):
        return relative_url
    return urljoin(base_url, relative_url)


def is_valid_url(url: str) -> bool:
    """True for absolute URLs with a scheme and a host."""
    try:
        parts = urlsplit(url)
    except ValueError:
        return False
    return bool(parts.scheme and parts.netloc)


def proxied_url(url: str, proxy_template: str) -> str:
    """Rewrites `url` so the request is relayed through an address-rewriting proxy."""
    return proxy_template.format(url=quote(url, safe=""))


def filename_from_url(url: str, ext: str) -> str:
    """
    Generates a command-line safe filename from the last path component of a URL.

    Falls back to a timestamped 'video_<seconds>' name when nothing usable is left.
    """
    fallback = f"video_{int(time.time())}.{ext}"
    try:
        path = urlsplit(url).path
    except ValueError:
        return fallback

    name = path[path.rfind("/") + 1 :].split(".")[0]
    name = _UNSAFE_NAME_CHARS.sub("_", name)
    if not name or name == "video":
        return fallback
    return f"{name}.{ext}"
