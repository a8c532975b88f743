"""
AES-128 support for HLS segments: key retrieval with caching, IV derivation,
and CBC decryption.
"""

import asyncio
import logging
from typing import Protocol

from Crypto.Cipher import AES
from Crypto.Util.Padding import unpad

from hls_cli.exceptions import DecryptionFailed, KeyFetchFailed
from hls_cli.models.segment import EncryptionMethod, SegmentDescriptor
from hls_cli.net.transport import TRANSPORT_ERRORS

log = logging.getLogger(__name__)

IV_SIZE = 16
_VALID_KEY_SIZES = (16, 24, 32)


class ByteFetcher(Protocol):
    async def fetch_bytes(self, url: str) -> bytes: ...


def derive_iv(sequence_id: int) -> bytes:
    """
    Builds the implicit IV for a segment: its media sequence number as a
    big-endian integer in the low 8 bytes of a zeroed 16-byte block.
    """
    if not 0 <= sequence_id < 2**64:
        raise ValueError(f"Sequence number out of range for an IV: {sequence_id}")
    return bytes(8) + sequence_id.to_bytes(8, "big")


def iv_for_segment(segment: SegmentDescriptor) -> bytes:
    """The explicit IV from the playlist if there is one, else the derived IV."""
    if segment.encryption and segment.encryption.iv is not None:
        return segment.encryption.iv
    return derive_iv(segment.sequence_id)


def decrypt_segment(
    data: bytes,
    key: bytes,
    iv: bytes,
    method: str = EncryptionMethod.AES_128.value,
) -> bytes:
    """
    Decrypts one AES-128-CBC segment and strips its PKCS#7 padding.

    Raises:
        DecryptionFailed: For unsupported methods, truncated ciphertext, or
            padding that does not check out (usually a wrong key or IV).
    """
    if method != EncryptionMethod.AES_128.value:
        raise DecryptionFailed(
            f"Decryption failed: encryption method {method} is not supported."
        )
    if not data or len(data) % AES.block_size:
        raise DecryptionFailed(
            f"Decryption failed: ciphertext length {len(data)} is not a multiple "
            f"of {AES.block_size}."
        )
    try:
        cipher = AES.new(key, AES.MODE_CBC, iv=iv)
        return unpad(cipher.decrypt(data), AES.block_size)
    except ValueError as e:
        raise DecryptionFailed(
            "Decryption failed. Check key validity or IV."
        ) from e


class KeyResolver:
    """
    Resolves key URIs to raw AES keys, fetching each URI at most once.

    The cache lives as long as this object; the downloader clears it at the
    start of every download session.
    """

    def __init__(self, fetcher: ByteFetcher):
        self._fetcher = fetcher
        self._cache: dict[str, bytes] = {}
        self._lock = asyncio.Lock()

    def __len__(self) -> int:
        return len(self._cache)

    def clear(self) -> None:
        self._cache.clear()

    async def resolve_key(self, key_uri: str) -> bytes:
        """
        Returns the key for `key_uri`, fetching it on a cache miss.

        Raises:
            KeyFetchFailed: If the key cannot be fetched or is not a valid AES key.
        """
        # First check (outside lock) for the common cached case
        if (key := self._cache.get(key_uri)) is not None:
            return key

        async with self._lock:
            # Second check (inside lock) in case a sibling task fetched it
            if (key := self._cache.get(key_uri)) is not None:
                return key

            log.debug(f"Fetching key from {key_uri}")
            try:
                key = await self._fetcher.fetch_bytes(key_uri)
            except TRANSPORT_ERRORS as e:
                raise KeyFetchFailed(f"Failed to fetch key from {key_uri}: {e}") from e

            if len(key) not in _VALID_KEY_SIZES:
                raise KeyFetchFailed(
                    f"Key from {key_uri} is {len(key)} bytes; expected 16, 24 or 32."
                )
            self._cache[key_uri] = key
            return key

    async def decrypt(self, segment: SegmentDescriptor, data: bytes) -> bytes:
        """Decrypts a segment's bytes using the key directive attached to it."""
        encryption = segment.encryption
        if encryption is None or encryption.method == EncryptionMethod.NONE.value:
            return data
        if not encryption.is_supported:
            raise DecryptionFailed(
                f"Decryption failed for segment {segment.index}: encryption method "
                f"{encryption.method} is not supported."
            )
        if not encryption.key_uri:
            raise KeyFetchFailed(
                f"Segment {segment.index} is encrypted ({encryption.method}) "
                "but its key directive has no URI."
            )
        key = await self.resolve_key(encryption.key_uri)
        try:
            iv = iv_for_segment(segment)
        except ValueError as e:
            raise DecryptionFailed(str(e)) from e
        return decrypt_segment(data, key, iv, encryption.method)
