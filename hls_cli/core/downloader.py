"""
The HLS retrieval pipeline: playlist → segments → one transport stream.
"""

import logging
from collections.abc import Sequence

from hls_cli.core.cancellation import CancelToken
from hls_cli.core.segment_fetcher import (
    DEFAULT_BATCH_SIZE,
    ProgressCallback,
    SegmentFetcher,
)
from hls_cli.exceptions import DownloadInProgress, ManifestFetchFailed
from hls_cli.hls.crypto import KeyResolver
from hls_cli.hls.manifest import parse_manifest
from hls_cli.hls.stitcher import stitch
from hls_cli.models.segment import SegmentDescriptor, StreamMetadata
from hls_cli.net.transport import TRANSPORT_ERRORS, HttpTransport

log = logging.getLogger(__name__)


class HLSDownloader:
    """
    Sequences manifest parsing, segment fetching, and stitching.

    One instance handles one download at a time. It owns the key cache and
    the cancellation token of the download in flight; both are replaced at
    the start of every `download_segments` call.
    """

    def __init__(self, transport: HttpTransport, batch_size: int = DEFAULT_BATCH_SIZE):
        self.transport = transport
        self._key_resolver = KeyResolver(transport)
        self._segment_fetcher = SegmentFetcher(transport, self._key_resolver, batch_size)
        self._cancel_token: CancelToken | None = None
        self._busy = False

    @property
    def is_downloading(self) -> bool:
        return self._busy

    async def fetch_manifest(
        self, url: str
    ) -> tuple[list[SegmentDescriptor], StreamMetadata]:
        """
        Retrieves and parses a variant playlist.

        Raises:
            ManifestFetchFailed: If the playlist cannot be retrieved.
            NotVariantPlaylist, NoSegmentsFound, ManifestParseError: From parsing.
        """
        log.debug(f"Fetching manifest from {url}")
        try:
            text = await self.transport.fetch_text(url)
        except TRANSPORT_ERRORS as e:
            raise ManifestFetchFailed(f"Failed to fetch manifest: {e}") from e
        return parse_manifest(text, url)

    async def download_segments(
        self,
        segments: Sequence[SegmentDescriptor],
        on_progress: ProgressCallback | None = None,
    ) -> list[bytes | None]:
        """
        Downloads every segment with a fresh key cache and cancellation token.

        Raises:
            DownloadInProgress: If another download on this instance is running.
            Aborted: If `abort()` was called.
            SegmentFetchFailed, KeyFetchFailed, DecryptionFailed: On failure.
        """
        if self._busy:
            raise DownloadInProgress("A download is already running on this downloader.")

        self._busy = True
        self._key_resolver.clear()
        self._cancel_token = CancelToken()
        try:
            return await self._segment_fetcher.fetch_all(
                segments, on_progress, self._cancel_token
            )
        finally:
            self._busy = False

    def stitch_segments(self, buffers: Sequence[bytes | None]) -> bytes:
        return stitch(buffers)

    def abort(self) -> None:
        """Cancels the download in flight, if any."""
        if self._cancel_token is not None:
            self._cancel_token.cancel()
