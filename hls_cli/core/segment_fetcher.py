"""
Downloads and decrypts playlist segments in bounded concurrent batches.
"""

import asyncio
import logging
from collections.abc import Callable, Sequence

from hls_cli.core.cancellation import CancelToken
from hls_cli.exceptions import Aborted, SegmentFetchFailed
from hls_cli.hls.crypto import ByteFetcher, KeyResolver
from hls_cli.models.segment import SegmentDescriptor
from hls_cli.net.transport import TRANSPORT_ERRORS

log = logging.getLogger(__name__)

DEFAULT_BATCH_SIZE = 5

ProgressCallback = Callable[[int, int], None]


class SegmentFetcher:
    """
    Fetches segments `batch_size` at a time.

    Within a batch every segment is requested concurrently; the next batch only
    starts once the current one has fully settled. Results are stored by
    segment index, never by completion order.
    """

    def __init__(
        self,
        fetcher: ByteFetcher,
        key_resolver: KeyResolver,
        batch_size: int = DEFAULT_BATCH_SIZE,
    ):
        if batch_size < 1:
            raise ValueError("batch_size must be at least 1")
        self._fetcher = fetcher
        self._key_resolver = key_resolver
        self.batch_size = batch_size

    async def fetch_all(
        self,
        segments: Sequence[SegmentDescriptor],
        on_progress: ProgressCallback | None,
        cancel_token: CancelToken,
    ) -> list[bytes | None]:
        """
        Downloads (and decrypts where needed) every segment.

        Returns:
            A list where position `i` holds the bytes of the segment whose
            index is `i`.

        Raises:
            Aborted: If `cancel_token` was cancelled before or during a batch.
            SegmentFetchFailed, KeyFetchFailed, DecryptionFailed: The first
                failure of any segment; no partial result is returned.
        """
        total = len(segments)
        results: list[bytes | None] = [None] * total
        completed = 0

        async def process(segment: SegmentDescriptor) -> None:
            nonlocal completed
            try:
                data = await self._fetch_segment(segment)
                if segment.is_encrypted:
                    data = await self._key_resolver.decrypt(segment, data)
            except Exception as e:
                if cancel_token.cancelled:
                    log.debug(
                        f"Ignoring failure of segment {segment.index} after abort: {e}"
                    )
                    return
                log.debug(f"Error processing segment {segment.index}: {e}")
                raise

            results[segment.index] = data
            completed += 1
            if on_progress:
                on_progress(completed, total)

        for start in range(0, total, self.batch_size):
            if cancel_token.cancelled:
                raise Aborted()

            batch = segments[start : start + self.batch_size]
            log.debug(
                f"Fetching batch of segments {start}-{start + len(batch) - 1} "
                f"of {total}"
            )
            await self._run_batch([process(segment) for segment in batch], cancel_token)

            if cancel_token.cancelled:
                raise Aborted()

        return results

    async def _fetch_segment(self, segment: SegmentDescriptor) -> bytes:
        try:
            return await self._fetcher.fetch_bytes(segment.url)
        except TRANSPORT_ERRORS as e:
            raise SegmentFetchFailed(
                f"Failed to fetch segment {segment.index}: {e}"
            ) from e

    @staticmethod
    async def _run_batch(coroutines: list, cancel_token: CancelToken) -> None:
        """
        Runs one batch to completion. The first task to fail wins: its
        siblings are cancelled and awaited before its exception is re-raised.
        """
        tasks = [cancel_token.register(asyncio.create_task(c)) for c in coroutines]
        try:
            done, pending = await asyncio.wait(
                tasks, return_when=asyncio.FIRST_EXCEPTION
            )
        except asyncio.CancelledError:
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            raise

        first_error: BaseException | None = None
        for task in tasks:
            if task in done and not task.cancelled() and task.exception():
                first_error = task.exception()
                break

        if pending:
            for task in pending:
                task.cancel()
            await asyncio.gather(*pending, return_exceptions=True)

        if first_error is not None:
            raise first_error
