"""
Media Processing Layer.

Remuxes stitched transport streams into MP4 with an external ffmpeg binary.
"""

from .converter import FFmpegConverter, manual_command

__all__ = ["FFmpegConverter", "manual_command"]
