"""
Scans web pages for embedded HLS playlist (.m3u8) links.

This is best-effort text scraping: it finds URLs that appear literally in the
page source, not ones assembled at runtime by scripts.
"""

import logging
import re
from urllib.parse import unquote

from bs4 import BeautifulSoup

from hls_cli.exceptions import ScanError
from hls_cli.net.transport import TRANSPORT_ERRORS, HttpTransport
from hls_cli.utils.url import is_valid_url, resolve_url

log = logging.getLogger(__name__)

# Pre-compiled regex for performance
_ABSOLUTE_REGEX = re.compile(
    r"https?://[a-zA-Z0-9\-._~:/?#\[\]@!$&'()*+,;=%]+\.m3u8[^\"'\s<>]*",
    re.IGNORECASE,
)
_QUOTED_REGEX = re.compile(r"[\"']([^\"'\r\n\\]*?\.m3u8[^\"'\r\n\\]*?)[\"']", re.IGNORECASE)
_PROTOCOL_RELATIVE_REGEX = re.compile(
    r"[\"'](//[a-zA-Z0-9\-._~:/?#\[\]@!$&'()*+,;=%]+\.m3u8[^\"']*)[\"']",
    re.IGNORECASE,
)
_ESCAPED_JSON_REGEX = re.compile(r"https?:\\/\\/[^\"'\s<>]+?\.m3u8[^\"'\s<>]*", re.IGNORECASE)
_SCANNED_ATTRIBUTES = ("src", "href", "data-src", "data-url", "data-hls", "content")


def clean_candidate(raw: str, page_url: str) -> str | None:
    """
    Normalizes one scraped string into an absolute playlist URL.

    Handles JSON-escaped slashes, percent-encoding and stray quotes. Returns
    None when the string is not a usable .m3u8 URL.
    """
    if not raw:
        return None

    clean = raw
    if "\\/" in clean:
        clean = clean.replace("\\/", "/")
    if "%3A" in clean or "%2F" in clean:
        clean = unquote(clean)
    clean = clean.strip().strip("\"'").strip()

    if ".m3u8" not in clean.lower():
        return None
    if is_valid_url(clean) and clean.lower().startswith(("http://", "https://")):
        return clean

    resolved = resolve_url(page_url, clean)
    return resolved if is_valid_url(resolved) else None


def find_stream_urls(page_text: str, page_url: str) -> list[str]:
    """Extracts unique playlist URLs from page source, in discovery order."""
    candidates: dict[str, None] = {}

    def add(raw: str) -> None:
        if url := clean_candidate(raw, page_url):
            candidates.setdefault(url, None)

    for regex in (_ABSOLUTE_REGEX, _ESCAPED_JSON_REGEX):
        for match in regex.finditer(page_text):
            add(match.group(0))
    for regex in (_QUOTED_REGEX, _PROTOCOL_RELATIVE_REGEX):
        for match in regex.finditer(page_text):
            add(match.group(1))

    soup = BeautifulSoup(page_text, "html.parser")
    for tag in soup.find_all(True):
        for attr in _SCANNED_ATTRIBUTES:
            value = tag.get(attr)
            if isinstance(value, str) and ".m3u8" in value.lower():
                add(value)

    return list(candidates)


async def scan_for_streams(page_url: str, transport: HttpTransport) -> list[str]:
    """
    Fetches a web page and returns the playlist URLs found in it.

    Raises:
        ScanError: If the page cannot be fetched.
    """
    log.debug(f"Scanning {page_url} for playlists")
    try:
        page_text = await transport.fetch_text(page_url)
    except TRANSPORT_ERRORS as e:
        raise ScanError(
            f"Scan failed: {e}. The site might be blocking the request"
            f"{' or the proxy' if transport.use_proxy else ''}."
        ) from e

    urls = find_stream_urls(page_text, page_url)
    log.debug(f"Found {len(urls)} candidate playlists on {page_url}")
    return urls
