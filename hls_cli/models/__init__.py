"""
Data Models Layer.

This package contains the data structures shared across the application:
configuration, playlist segments, and progress events.
"""

from .config import DownloadConfig
from .progress import DownloadProgress, EventListener, LogMessage, LogType, Phase
from .segment import EncryptionInfo, EncryptionMethod, SegmentDescriptor, StreamMetadata

__all__ = [
    "DownloadConfig",
    "DownloadProgress",
    "EncryptionInfo",
    "EncryptionMethod",
    "EventListener",
    "LogMessage",
    "LogType",
    "Phase",
    "SegmentDescriptor",
    "StreamMetadata",
]
