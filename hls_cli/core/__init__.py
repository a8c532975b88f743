"""
Core application engine for orchestrating the download process.

`DownloadManager` coordinates a whole session and reports it to a listener,
`HLSDownloader` owns the fetch/abort state, and `SegmentFetcher` runs the
batched, cancellable segment downloads.
"""

from .cancellation import CancelToken
from .download_manager import DownloadManager, SessionResult
from .downloader import HLSDownloader
from .segment_fetcher import SegmentFetcher

__all__ = [
    "CancelToken",
    "DownloadManager",
    "HLSDownloader",
    "SegmentFetcher",
    "SessionResult",
]
