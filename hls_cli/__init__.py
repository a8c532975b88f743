"""
hls-cli: download HLS streams, decrypt AES-128 segments and stitch them into a
single transport stream, with optional MP4 conversion through ffmpeg.
"""

__version__ = "0.1.0"
