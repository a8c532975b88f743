"""
Defines custom exceptions for the application to allow for more specific error handling.
"""


class HlsCliError(Exception):
    """Base exception for all application-specific errors."""


class ManifestError(HlsCliError):
    """Base class for failures while retrieving or parsing a playlist."""


class ManifestFetchFailed(ManifestError):
    """Raised when the playlist text itself cannot be retrieved."""


class NotVariantPlaylist(ManifestError):
    """Raised when a master (multi-rendition) playlist is supplied."""

    def __init__(self, message: str | None = None):
        super().__init__(
            message
            or "This is a Master Playlist. Please use a Variant Playlist URL "
            "(one of the .m3u8 URLs listed inside this file)."
        )


class NoSegmentsFound(ManifestError):
    """Raised when a playlist yields no segments."""

    def __init__(self, message: str | None = None):
        super().__init__(message or "No segments found.")


class ManifestParseError(ManifestError):
    """Raised when a directive value the pipeline depends on is malformed."""


class KeyFetchFailed(HlsCliError):
    """Raised when an encryption key cannot be fetched or is not a valid AES key."""


class DecryptionFailed(HlsCliError):
    """Raised when a segment cannot be decrypted with the resolved key and IV."""


class SegmentFetchFailed(HlsCliError):
    """Raised when a media segment cannot be downloaded."""


class Aborted(HlsCliError):
    """Raised when a download was cancelled by the user."""

    def __init__(self, message: str = "Download aborted"):
        super().__init__(message)


class DownloadInProgress(HlsCliError):
    """Raised when a second download is started on a busy downloader."""


class ConversionError(HlsCliError):
    """Raised when the external converter fails or is unavailable."""


class ScanError(HlsCliError):
    """Raised when a web page cannot be scanned for playlist URLs."""


class ConfigurationError(HlsCliError):
    """Raised for issues related to configuration loading or validation."""
