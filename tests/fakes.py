import asyncio

import aiohttp
from Crypto.Cipher import AES
from Crypto.Util.Padding import pad


class FakeTransport:
    """
    In-memory stand-in for HttpTransport.

    `responses` maps URLs to bytes, str, or an exception instance to raise.
    Unknown URLs raise aiohttp.ClientError like a 404 would.
    """

    def __init__(self, responses=None, delay: float = 0.0, use_proxy: bool = False):
        self.responses = dict(responses or {})
        self.delay = delay
        self.use_proxy = use_proxy
        self.requests: list[str] = []

    async def _get(self, url: str):
        self.requests.append(url)
        if self.delay:
            await asyncio.sleep(self.delay)
        if url not in self.responses:
            raise aiohttp.ClientError(f"404 Not Found: {url}")
        value = self.responses[url]
        if isinstance(value, BaseException):
            raise value
        return value

    async def fetch_bytes(self, url: str) -> bytes:
        value = await self._get(url)
        return value.encode() if isinstance(value, str) else value

    async def fetch_text(self, url: str) -> str:
        value = await self._get(url)
        return value.decode() if isinstance(value, bytes) else value

    async def close(self) -> None:
        pass

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    def count(self, url: str) -> int:
        return self.requests.count(url)


def encrypt(data: bytes, key: bytes, iv: bytes) -> bytes:
    return AES.new(key, AES.MODE_CBC, iv=iv).encrypt(pad(data, AES.block_size))


