"""
Converts a stitched MPEG-TS stream into an MP4 container with ffmpeg.

Streams are copied, never re-encoded; timestamps are shifted to start at
zero so players report the real duration.
"""

import asyncio
import logging
import shutil
import tempfile
from collections.abc import Callable
from pathlib import Path

import aiofiles

from hls_cli.exceptions import ConversionError

log = logging.getLogger(__name__)

ConversionProgress = Callable[[float], None]

_COPY_ARGS = [
    "-c", "copy",
    "-bsf:a", "aac_adtstoasc",
    "-avoid_negative_ts", "make_zero",
]  # fmt: skip


def manual_command(ts_name: str, mp4_name: str | None = None) -> str:
    """The ffmpeg command a user can run by hand to do the same conversion."""
    mp4_name = mp4_name or str(Path(ts_name).with_suffix(".mp4"))
    return f'ffmpeg -i "{ts_name}" {" ".join(_COPY_ARGS)} "{mp4_name}"'


class _MonotonicProgress:
    """Reports progress that only ever moves forward."""

    def __init__(self, callback: ConversionProgress | None):
        self._callback = callback
        self.value = 0.0

    def report(self, percent: float) -> None:
        if self._callback and percent > self.value:
            self.value = percent
            self._callback(percent)


class FFmpegConverter:
    """Drives an ffmpeg executable as an asyncio subprocess."""

    def __init__(self, ffmpeg_path: str = "ffmpeg"):
        self.ffmpeg_path = ffmpeg_path

    def is_available(self) -> bool:
        return shutil.which(self.ffmpeg_path) is not None

    def _build_args(self, input_path: Path, output_path: Path) -> list[str]:
        return [
            "-y",
            "-hide_banner",
            "-i", str(input_path),
            *_COPY_ARGS,
            "-progress", "pipe:1",
            "-nostats",
            str(output_path),
        ]  # fmt: skip

    async def convert_ts_to_mp4(
        self,
        ts_data: bytes,
        on_progress: ConversionProgress | None = None,
        duration_hint: float | None = None,
    ) -> bytes:
        """
        Converts TS bytes to MP4 bytes.

        Progress starts at 5%, follows ffmpeg's reported position between 5% and
        90% when `duration_hint` (seconds) is known, then 95% once ffmpeg exits
        and 100% once the output has been read back.

        Raises:
            ConversionError: If ffmpeg is missing, fails, or produces no output.
        """
        if not ts_data:
            raise ConversionError("Nothing to convert: the input stream is empty.")

        progress = _MonotonicProgress(on_progress)
        progress.report(5)

        with tempfile.TemporaryDirectory(prefix="hls-cli-") as tmp:
            input_path = Path(tmp) / "input.ts"
            output_path = Path(tmp) / "output.mp4"

            async with aiofiles.open(input_path, "wb") as f:
                await f.write(ts_data)
            progress.report(10)

            await self._run(input_path, output_path, progress, duration_hint)
            progress.report(95)

            if not output_path.is_file():
                raise ConversionError("ffmpeg finished without producing an output file.")
            async with aiofiles.open(output_path, "rb") as f:
                mp4_data = await f.read()

        if not mp4_data:
            raise ConversionError("ffmpeg produced an empty output file.")
        progress.report(100)
        return mp4_data

    async def convert_file(
        self,
        input_path: Path,
        output_path: Path,
        on_progress: ConversionProgress | None = None,
        duration_hint: float | None = None,
    ) -> None:
        """Converts a TS file on disk into an MP4 file on disk."""
        async with aiofiles.open(input_path, "rb") as f:
            ts_data = await f.read()
        mp4_data = await self.convert_ts_to_mp4(ts_data, on_progress, duration_hint)
        async with aiofiles.open(output_path, "wb") as f:
            await f.write(mp4_data)

    async def _run(
        self,
        input_path: Path,
        output_path: Path,
        progress: _MonotonicProgress,
        duration_hint: float | None,
    ) -> None:
        args = self._build_args(input_path, output_path)
        log.debug(f"Running {self.ffmpeg_path} {' '.join(args)}")
        try:
            process = await asyncio.create_subprocess_exec(
                self.ffmpeg_path,
                *args,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except FileNotFoundError as e:
            raise ConversionError(
                f"ffmpeg executable '{self.ffmpeg_path}' was not found."
            ) from e
        except OSError as e:
            raise ConversionError(
                f"ffmpeg executable '{self.ffmpeg_path}' could not be started: {e}"
            ) from e

        stderr_task = asyncio.create_task(process.stderr.read())
        try:
            async for raw_line in process.stdout:
                position = parse_progress_line(raw_line.decode(errors="replace"))
                if position is not None and duration_hint:
                    ratio = min(1.0, position / duration_hint)
                    progress.report(min(90.0, max(5.0, 5 + ratio * 85)))
            returncode = await process.wait()
        except asyncio.CancelledError:
            process.kill()
            await process.wait()
            raise
        finally:
            stderr = await stderr_task

        if returncode != 0:
            tail = stderr.decode(errors="replace").strip().splitlines()[-5:]
            for line in tail:
                log.debug(f"[ffmpeg] {line}")
            raise ConversionError(
                f"ffmpeg exited with status {returncode}: "
                f"{tail[-1] if tail else 'no error output'}"
            )


def parse_progress_line(line: str) -> float | None:
    """
    Extracts the output position in seconds from one `-progress` line.

    ffmpeg reports `out_time_us` (and, despite the name, `out_time_ms`) in
    microseconds.
    """
    key, _, value = line.strip().partition("=")
    if key not in ("out_time_us", "out_time_ms"):
        return None
    try:
        return int(value) / 1_000_000
    except ValueError:
        return None
