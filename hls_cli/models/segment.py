"""
Value types produced by the playlist parser and consumed by the download pipeline.
"""

from dataclasses import dataclass, field
from enum import Enum


class EncryptionMethod(str, Enum):
    """Values of the METHOD attribute of an #EXT-X-KEY directive."""

    NONE = "NONE"
    AES_128 = "AES-128"
    SAMPLE_AES = "SAMPLE-AES"


@dataclass(frozen=True)
class EncryptionInfo:
    """The #EXT-X-KEY directive in effect for a segment."""

    method: str
    key_uri: str | None = None
    iv: bytes | None = None

    @property
    def is_supported(self) -> bool:
        return self.method == EncryptionMethod.AES_128.value


@dataclass(frozen=True)
class SegmentDescriptor:
    """One fetchable piece of the stream. `index` is the reassembly order."""

    index: int
    url: str
    sequence_id: int
    is_init_segment: bool = False
    encryption: EncryptionInfo | None = None

    @property
    def is_encrypted(self) -> bool:
        return (
            self.encryption is not None
            and self.encryption.method != EncryptionMethod.NONE.value
        )


@dataclass(frozen=True)
class StreamMetadata:
    """Summary of a parsed variant playlist."""

    segment_count: int
    target_duration: float
    is_encrypted: bool
    encryption_methods: frozenset[str] = field(default_factory=frozenset)

    @property
    def estimated_duration(self) -> float:
        """Approximate length in seconds (segment count times target duration)."""
        return self.segment_count * self.target_duration
