"""
HLS Protocol Layer.

Playlist parsing, segment decryption, and reassembly. Nothing here performs
network I/O directly except through an injected fetcher.
"""

from .crypto import KeyResolver, decrypt_segment, derive_iv, iv_for_segment
from .manifest import parse_manifest
from .stitcher import stitch

__all__ = [
    "KeyResolver",
    "decrypt_segment",
    "derive_iv",
    "iv_for_segment",
    "parse_manifest",
    "stitch",
]
