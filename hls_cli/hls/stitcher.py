"""
Reassembles downloaded segments into one transport stream.
"""

from collections.abc import Sequence


def stitch(buffers: Sequence[bytes | None]) -> bytes:
    """
    Concatenates segment buffers in index order, skipping missing or empty ones.

    `buffers[i]` must hold the bytes of the segment with index `i`; the order in
    which they were fetched plays no part.
    """
    return b"".join(buffer for buffer in buffers if buffer)
