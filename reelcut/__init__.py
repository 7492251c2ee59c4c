"""Compile a trimmed, captioned, music-mixed clip into a single ffmpeg export."""

__version__ = "0.1.0"
