"""Tests for error types and the error code table."""

import pytest

from reelcut.constants.error_codes import ERROR_CODES, get_error_spec, is_retryable
from reelcut.exceptions import (
    EngineInvocationError,
    EngineLoadError,
    ExportInProgressError,
    ExportValidationError,
    InvalidMediaTypeError,
    InvalidOverlayError,
    OverlayNotFoundError,
    OverlayRasterError,
    ReelcutError,
)


class TestErrorCodes:
    """Tests for the error code table."""

    def test_every_error_class_has_a_code(self):
        classes = [
            ExportValidationError, ExportInProgressError, InvalidMediaTypeError,
            OverlayNotFoundError, InvalidOverlayError, OverlayRasterError, EngineLoadError,
            EngineInvocationError,
        ]
        for cls in classes:
            assert cls.code in ERROR_CODES, cls.__name__

    def test_unknown_code(self):
        assert get_error_spec("NOPE") == {"retryable": False}
        assert not is_retryable("NOPE")

    @pytest.mark.parametrize("code,retryable", [
        ("EXPORT_VALIDATION_FAILED", False),
        ("EXPORT_IN_PROGRESS", True),
        ("ENGINE_INVOCATION_FAILED", True),
        ("OVERLAY_RASTER_FAILED", False),
    ])
    def test_retryable(self, code, retryable):
        assert is_retryable(code) is retryable


class TestExceptions:
    """Tests for exception messages and serialization."""

    def test_validation_message(self):
        error = ExportValidationError("no video loaded")
        assert error.message == "Cannot export: no video loaded"
        assert str(error) == error.message

    def test_to_dict(self):
        data = ExportInProgressError().to_dict()
        assert data["code"] == "EXPORT_IN_PROGRESS"
        assert data["retryable"] is True
        assert data["suggested_fix"]

    def test_suggested_fix_override(self):
        error = ReelcutError("custom", code="ENGINE_LOAD_FAILED", suggested_fix="Install ffmpeg")
        assert error.to_dict() == {
            "code": "ENGINE_LOAD_FAILED",
            "message": "custom",
            "retryable": True,
            "suggested_fix": "Install ffmpeg",
        }

    def test_raster_error_message(self):
        error = OverlayRasterError("abc", "bad color")
        assert error.message == "Failed to create overlay asset for overlay abc: bad color"

    def test_invocation_error_message(self):
        error = EngineInvocationError(1, "Invalid filter graph")
        assert error.message == "FFmpeg failed (exit code 1): Invalid filter graph"
        assert error.returncode == 1

    def test_invalid_overlay_message(self):
        error = InvalidOverlayError("no trimmed clip to place it in")
        assert error.message == "Invalid overlay: no trimmed clip to place it in"
        assert error.to_dict()["code"] == "INVALID_OVERLAY"

    def test_invalid_media_type(self):
        error = InvalidMediaTypeError("video", "image/png")
        assert "image/png" in error.message
