"""
Tests for ffprobe-based media probing.

Test cases:
1. Get media duration in milliseconds
2. Missing duration / ffprobe failure
3. Detect audio streams
"""

import json
from unittest.mock import MagicMock, patch

import pytest

from reelcut.utils.media_info import get_media_duration, has_audio_track


def _completed(payload: dict | None = None, returncode: int = 0, stderr: str = "") -> MagicMock:
    result = MagicMock()
    result.returncode = returncode
    result.stdout = json.dumps(payload) if payload is not None else "not json"
    result.stderr = stderr
    return result


class TestMediaInfo:
    """Test media info extraction using ffprobe."""

    def test_get_media_duration(self):
        """Duration is returned in milliseconds."""
        with patch("reelcut.utils.media_info.subprocess.run",
                   return_value=_completed({"format": {"duration": "12.345"}})) as run:
            assert get_media_duration("clip.mp4") == 12345

        cmd = run.call_args[0][0]
        assert "-show_format" in cmd
        assert cmd[-1] == "clip.mp4"

    def test_duration_missing(self):
        with patch("reelcut.utils.media_info.subprocess.run",
                   return_value=_completed({"format": {}})):
            with pytest.raises(RuntimeError, match="Duration not found"):
                get_media_duration("clip.mp4")

    def test_ffprobe_failure(self):
        with patch("reelcut.utils.media_info.subprocess.run",
                   return_value=_completed({}, returncode=1, stderr="Invalid data")):
            with pytest.raises(RuntimeError, match="Invalid data"):
                get_media_duration("broken.mp4")

    def test_unparseable_output(self):
        with patch("reelcut.utils.media_info.subprocess.run", return_value=_completed()):
            with pytest.raises(RuntimeError, match="Failed to parse"):
                get_media_duration("clip.mp4")

    def test_has_audio_track_true(self):
        payload = {"streams": [{"codec_type": "audio", "codec_name": "aac"}]}
        with patch("reelcut.utils.media_info.subprocess.run", return_value=_completed(payload)):
            assert has_audio_track("clip.mp4") is True

    def test_has_audio_track_false(self):
        with patch("reelcut.utils.media_info.subprocess.run",
                   return_value=_completed({"streams": []})):
            assert has_audio_track("silent.mp4") is False

    def test_has_audio_track_probe_error(self):
        """A file ffprobe cannot read is treated as silent."""
        with patch("reelcut.utils.media_info.subprocess.run",
                   return_value=_completed({}, returncode=1)):
            assert has_audio_track("broken.mp4") is False
