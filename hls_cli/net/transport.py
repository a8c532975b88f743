"""
Handles the low-level HTTP retrieval of playlists, keys, and segments over a
shared aiohttp connection pool, with optional relay through a rewriting proxy.
"""

import asyncio
import logging

import aiohttp

from hls_cli.models.config import DownloadConfig
from hls_cli.utils.url import proxied_url

log = logging.getLogger(__name__)


class HttpTransport:
    """
    Thin async wrapper around one aiohttp ClientSession.

    Every request goes through `_request_url`, so turning on the proxy reroutes
    manifests, keys, segments, and page scans alike. Errors are the raw
    aiohttp/asyncio ones; callers translate them into domain exceptions.
    """

    def __init__(
        self,
        use_proxy: bool = False,
        proxy_template: str = "https://corsproxy.io/?{url}",
        user_agent: str | None = None,
        connect_timeout: float = 15.0,
        read_timeout: float = 90.0,
        max_connections: int = 8,
    ):
        self.use_proxy = use_proxy
        self.proxy_template = proxy_template
        self.user_agent = user_agent
        self.connect_timeout = connect_timeout
        self.read_timeout = read_timeout
        self.max_connections = max_connections
        self._session: aiohttp.ClientSession | None = None
        self._session_lock = asyncio.Lock()

    @classmethod
    def from_config(cls, config: DownloadConfig) -> "HttpTransport":
        return cls(
            use_proxy=config.use_proxy,
            proxy_template=config.proxy_template,
            user_agent=config.user_agent,
            connect_timeout=config.connect_timeout,
            read_timeout=config.read_timeout,
            max_connections=config.batch_size * 2,
        )

    async def _get_session(self) -> aiohttp.ClientSession:
        """Gets or creates the pooled session on first use."""
        async with self._session_lock:
            if self._session and not self._session.closed:
                return self._session

            connector = aiohttp.TCPConnector(
                limit=self.max_connections,
                ttl_dns_cache=600,  # 10 minutes
                keepalive_timeout=30,
                enable_cleanup_closed=True,
            )
            timeout = aiohttp.ClientTimeout(
                total=None,
                sock_connect=self.connect_timeout,
                sock_read=self.read_timeout,
            )
            headers = {"Accept-Encoding": "gzip, deflate, br"}
            if self.user_agent:
                headers["User-Agent"] = self.user_agent
            self._session = aiohttp.ClientSession(
                connector=connector, timeout=timeout, headers=headers
            )
            log.debug(f"Created HTTP pool with limit={self.max_connections}")
        return self._session

    def _request_url(self, url: str) -> str:
        if self.use_proxy:
            return proxied_url(url, self.proxy_template)
        return url

    async def fetch_bytes(self, url: str) -> bytes:
        """GETs `url` and returns the body; raises on transport errors or non-2xx."""
        session = await self._get_session()
        async with session.get(self._request_url(url), allow_redirects=True) as r:
            r.raise_for_status()
            return await r.read()

    async def fetch_text(self, url: str) -> str:
        """GETs `url` and returns the body decoded as text."""
        session = await self._get_session()
        async with session.get(self._request_url(url), allow_redirects=True) as r:
            r.raise_for_status()
            return await r.text(errors="replace")

    async def close(self) -> None:
        """Gracefully closes the pooled session."""
        async with self._session_lock:
            if self._session and not self._session.closed:
                await self._session.close()
                log.debug("HTTP pool closed.")
            self._session = None

    async def __aenter__(self) -> "HttpTransport":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()


#: Errors a transport call may raise for an unreachable or failing resource.
TRANSPORT_ERRORS = (aiohttp.ClientError, asyncio.TimeoutError)
