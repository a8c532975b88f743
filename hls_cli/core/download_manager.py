"""
The main orchestrator for one download session: fetch the playlist, download
the segments, stitch them, save the stream, and optionally convert it to MP4.
"""

import asyncio
import logging
import time
from dataclasses import dataclass, replace
from pathlib import Path

import aiofiles
from pathvalidate import sanitize_filename

from hls_cli.core.downloader import HLSDownloader
from hls_cli.exceptions import Aborted, ConversionError, HlsCliError
from hls_cli.media.converter import FFmpegConverter, manual_command
from hls_cli.models.config import DownloadConfig
from hls_cli.models.progress import (
    DownloadProgress,
    EventListener,
    LogMessage,
    LogType,
    Phase,
)
from hls_cli.models.segment import EncryptionMethod, StreamMetadata
from hls_cli.utils.formatting import format_duration, format_size
from hls_cli.utils.url import filename_from_url

log = logging.getLogger(__name__)


@dataclass
class SessionResult:
    """What a finished session produced."""

    metadata: StreamMetadata | None = None
    ts_path: Path | None = None
    mp4_path: Path | None = None
    total_bytes: int = 0
    duration_s: float = 0.0
    aborted: bool = False
    conversion_failed: bool = False


class DownloadManager:
    """
    Runs a download session and reports it to an EventListener.

    The listener sees every phase transition, the segment counter, and
    free-text log lines; it never influences the pipeline.
    """

    def __init__(
        self,
        config: DownloadConfig,
        downloader: HLSDownloader,
        listener: EventListener | None = None,
        converter: FFmpegConverter | None = None,
    ):
        self.config = config
        self.downloader = downloader
        self.listener = listener
        self.converter = converter or FFmpegConverter(config.ffmpeg_path)
        self.progress = DownloadProgress()

    def _set_progress(self, **changes) -> None:
        self.progress = replace(self.progress, **changes)
        if self.listener:
            self.listener.on_progress(self.progress)

    def _log(self, message: str, level: LogType = LogType.INFO) -> None:
        if self.listener:
            self.listener.on_log(LogMessage(type=level, message=message))
        else:
            log_level = {
                LogType.WARNING: logging.WARNING,
                LogType.ERROR: logging.ERROR,
            }.get(level, logging.INFO)
            log.log(log_level, message)

    def abort(self) -> None:
        """Requests cancellation of the segment download in progress."""
        self.downloader.abort()

    def _output_path(self, url: str, name: str | None) -> Path:
        filename = sanitize_filename(name) if name else ""
        if not filename:
            filename = filename_from_url(url, "ts")
        elif not filename.lower().endswith(".ts"):
            filename += ".ts"
        return Path(self.config.output_dir) / filename

    async def run(self, url: str, name: str | None = None) -> SessionResult:
        """
        Executes a full session for one playlist URL.

        `Aborted` is reported as a warning and the phase returns to idle; any
        other pipeline error moves the phase to error and is re-raised.
        """
        result = SessionResult()
        start_time = time.monotonic()
        self._set_progress(
            phase=Phase.FETCHING_MANIFEST,
            percent=0.0,
            total_segments=0,
            downloaded_segments=0,
        )
        self._log(f"Fetching manifest from: {url}")

        try:
            stitched = await self._download(url, result)
            result.ts_path = self._output_path(url, name)
            await self._save(result.ts_path, stitched)

            if self.config.convert:
                result.mp4_path = await self._convert(result.ts_path, stitched, result)

            if not result.conversion_failed:
                self._set_progress(phase=Phase.DONE, percent=100.0)
        except Aborted:
            result.aborted = True
            self._log("Download aborted by user.", LogType.WARNING)
            self._set_progress(phase=Phase.IDLE, percent=0.0)
        except (HlsCliError, OSError) as e:
            self._log(str(e) or type(e).__name__, LogType.ERROR)
            self._set_progress(phase=Phase.ERROR)
            raise
        finally:
            result.duration_s = time.monotonic() - start_time

        return result

    async def _download(self, url: str, result: SessionResult) -> bytes:
        segments, metadata = await self.downloader.fetch_manifest(url)
        result.metadata = metadata

        self._log(
            f"Manifest parsed. Found {metadata.segment_count} segments. "
            f"Duration: ~{format_duration(metadata.estimated_duration)}",
            LogType.SUCCESS,
        )
        if metadata.is_encrypted:
            methods = ", ".join(sorted(metadata.encryption_methods))
            self._log(
                f"Stream is encrypted ({methods}). Decrypting on the fly...",
                LogType.WARNING,
            )
            unsupported = metadata.encryption_methods - {EncryptionMethod.AES_128.value}
            if unsupported:
                self._log(
                    f"Encryption method {', '.join(sorted(unsupported))} is not "
                    "supported; affected segments will fail to decrypt.",
                    LogType.WARNING,
                )

        self._set_progress(phase=Phase.DOWNLOADING, total_segments=len(segments))

        def on_segment(downloaded: int, total: int) -> None:
            self._set_progress(
                downloaded_segments=downloaded, percent=downloaded / total * 100
            )

        buffers = await self.downloader.download_segments(segments, on_segment)

        self._log("All segments downloaded. Stitching...")
        self._set_progress(phase=Phase.STITCHING, percent=100.0)
        # Yield so observers can render the phase change before the join
        await asyncio.sleep(0)

        stitched = self.downloader.stitch_segments(buffers)
        result.total_bytes = len(stitched)
        self._log(
            f"Stitching complete. Total size: {format_size(len(stitched))}",
            LogType.SUCCESS,
        )
        return stitched

    async def _save(self, path: Path, data: bytes) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        async with aiofiles.open(path, "wb") as f:
            await f.write(data)
        self._log(f"Saved transport stream to {path}", LogType.SUCCESS)

    async def _convert(
        self, ts_path: Path, stitched: bytes, result: SessionResult
    ) -> Path | None:
        """Converts to MP4. A conversion failure keeps the .ts file and is not fatal."""
        mp4_path = ts_path.with_suffix(".mp4")
        self._set_progress(phase=Phase.CONVERTING, percent=0.0)
        self._log("Starting conversion with timestamp correction...")

        duration_hint = result.metadata.estimated_duration if result.metadata else None
        try:
            mp4_data = await self.converter.convert_ts_to_mp4(
                stitched,
                on_progress=lambda percent: self._set_progress(percent=percent),
                duration_hint=duration_hint or None,
            )
        except ConversionError as e:
            result.conversion_failed = True
            self._log(f"Conversion failed: {e}", LogType.ERROR)
            self._set_progress(phase=Phase.ERROR)
            self._log(
                "You can convert the saved file manually with:\n"
                f"  {manual_command(str(ts_path), str(mp4_path))}",
                LogType.INFO,
            )
            return None

        async with aiofiles.open(mp4_path, "wb") as f:
            await f.write(mp4_data)
        self._log(f"Conversion complete! Saved {mp4_path}", LogType.SUCCESS)

        if not self.config.keep_ts:
            ts_path.unlink(missing_ok=True)
            result.ts_path = None
        return mp4_path
