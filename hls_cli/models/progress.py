"""
Progress and log events emitted by the download pipeline for presentation layers.
"""

import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Protocol


class Phase(str, Enum):
    """States of a download session."""

    IDLE = "idle"
    FETCHING_MANIFEST = "fetching_manifest"
    DOWNLOADING = "downloading"
    STITCHING = "stitching"
    CONVERTING = "converting"
    DONE = "done"
    ERROR = "error"


class LogType(str, Enum):
    INFO = "info"
    SUCCESS = "success"
    WARNING = "warning"
    ERROR = "error"


@dataclass
class LogMessage:
    type: LogType
    message: str
    timestamp: float = field(default_factory=time.time)


@dataclass
class DownloadProgress:
    """
    Snapshot of a session's progress.

    `percent` tracks segments while downloading and is reused for the
    converter's progress while converting.
    """

    phase: Phase = Phase.IDLE
    total_segments: int = 0
    downloaded_segments: int = 0
    percent: float = 0.0


class EventListener(Protocol):
    """Anything that wants to observe a download session."""

    def on_progress(self, progress: DownloadProgress) -> None: ...

    def on_log(self, message: LogMessage) -> None: ...
