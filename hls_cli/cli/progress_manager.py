"""
Manages a Rich Live display for a download session. It is a passive observer:
it renders the phase, segment counter and log lines the pipeline emits.
"""

import asyncio
import logging
from datetime import datetime

from rich.console import Console, Group
from rich.live import Live
from rich.markup import escape
from rich.panel import Panel
from rich.progress import (
    BarColumn,
    MofNCompleteColumn,
    Progress,
    SpinnerColumn,
    TaskID,
    TextColumn,
    TimeElapsedColumn,
    TimeRemainingColumn,
)
from rich.text import Text

from hls_cli.models.progress import DownloadProgress, LogMessage, LogType, Phase

log = logging.getLogger("hls_cli")

_PHASE_STYLES = {
    Phase.IDLE: ("Idle", "dim"),
    Phase.FETCHING_MANIFEST: ("Fetching manifest", "cyan"),
    Phase.DOWNLOADING: ("Downloading segments", "blue"),
    Phase.STITCHING: ("Stitching", "magenta"),
    Phase.CONVERTING: ("Converting to MP4", "yellow"),
    Phase.DONE: ("Done", "green"),
    Phase.ERROR: ("Error", "red"),
}

_LOG_STYLES = {
    LogType.INFO: "",
    LogType.SUCCESS: "green",
    LogType.WARNING: "yellow",
    LogType.ERROR: "red",
}


class ProgressManager:
    """Renders DownloadProgress updates and LogMessages for one session."""

    def __init__(self, console: Console):
        self.console = console

        self.segment_progress = Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            BarColumn(bar_width=40),
            "[progress.percentage]{task.percentage:>3.0f}%",
            "•",
            MofNCompleteColumn(),
            "•",
            TimeRemainingColumn(),
            console=console,
        )
        self.conversion_progress = Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            BarColumn(bar_width=40),
            "[progress.percentage]{task.percentage:>3.0f}%",
            "•",
            TimeElapsedColumn(),
            console=console,
        )

        self._live: Live | None = None
        self._segment_task: TaskID | None = None
        self._conversion_task: TaskID | None = None
        self._phase = Phase.IDLE
        self._started_at: datetime | None = None
        self.messages: list[LogMessage] = []

    def on_log(self, message: LogMessage) -> None:
        """Prints a log line above the live display."""
        self.messages.append(message)
        style = _LOG_STYLES.get(message.type, "")
        body = escape(message.message)
        text = f"[{style}]{body}[/{style}]" if style else body
        if message.type == LogType.ERROR:
            log.error(text)
        elif message.type == LogType.WARNING:
            log.warning(text)
        else:
            log.info(text)

    def on_progress(self, progress: DownloadProgress) -> None:
        if progress.phase != self._phase:
            self._on_phase_change(progress)
            self._phase = progress.phase

        if progress.phase == Phase.DOWNLOADING and self._segment_task is not None:
            self.segment_progress.update(
                self._segment_task,
                total=progress.total_segments or None,
                completed=progress.downloaded_segments,
            )
        elif progress.phase == Phase.CONVERTING and self._conversion_task is not None:
            self.conversion_progress.update(
                self._conversion_task, completed=progress.percent
            )
        self._refresh()

    def _on_phase_change(self, progress: DownloadProgress) -> None:
        if progress.phase == Phase.FETCHING_MANIFEST:
            self._started_at = datetime.now()
        elif progress.phase == Phase.DOWNLOADING and self._segment_task is None:
            self._segment_task = self.segment_progress.add_task(
                "Segments", total=progress.total_segments or None
            )
        elif progress.phase == Phase.CONVERTING:
            self.start_conversion()
        elif progress.phase == Phase.STITCHING and self._segment_task is not None:
            self.segment_progress.update(self._segment_task, description="Stitched")

    def start_conversion(self) -> None:
        """Shows the conversion bar (also used when converting a saved file)."""
        if self._conversion_task is None:
            self._conversion_task = self.conversion_progress.add_task(
                "Converting", total=100
            )
            self._refresh()

    def update_conversion(self, percent: float) -> None:
        if self._conversion_task is not None:
            self.conversion_progress.update(self._conversion_task, completed=percent)
            self._refresh()

    def _generate_header(self) -> Panel:
        label, style = _PHASE_STYLES.get(self._phase, ("", ""))
        header_text = Text()
        header_text.append("📼 HLS Downloader ", style="bold cyan")
        header_text.append("│ ", style="dim")
        header_text.append(label, style=style)
        if self._started_at:
            elapsed = int((datetime.now() - self._started_at).total_seconds())
            header_text.append(" │ ", style="dim")
            header_text.append(
                f"{elapsed // 3600:02d}:{(elapsed % 3600) // 60:02d}:{elapsed % 60:02d}",
                style="yellow",
            )
        return Panel(header_text, border_style="cyan")

    def _render(self) -> Group:
        parts = [self._generate_header()]
        if self._segment_task is not None:
            parts.append(self.segment_progress)
        if self._conversion_task is not None:
            parts.append(self.conversion_progress)
        return Group(*parts)

    def _refresh(self) -> None:
        if self._live:
            self._live.update(self._render())

    async def __aenter__(self):
        self._live = Live(
            self._render(),
            console=self.console,
            refresh_per_second=12,
            vertical_overflow="visible",
        )
        self._live.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        if self._live:
            await asyncio.sleep(0.2)
            self._live.stop()
            self._live = None
