"""Custom exceptions for reelcut.

Errors fall into three groups:
- validation errors refuse an export before any job work starts
- asset errors (a single overlay failing to rasterize) are recovered locally
- engine errors are fatal to the current export job only
"""

from typing import Any

from reelcut.constants.error_codes import get_error_spec


class ReelcutError(Exception):
    """Base exception for all reelcut errors."""

    code: str = "INTERNAL_ERROR"
    message: str = "An unexpected error occurred"

    def __init__(
        self,
        message: str | None = None,
        *,
        code: str | None = None,
        suggested_fix: str | None = None,
    ):
        self.message = message or self.__class__.message
        if code:
            self.code = code
        self.suggested_fix = suggested_fix
        super().__init__(self.message)

    def to_dict(self) -> dict[str, Any]:
        """Serialize to a dictionary for the caller's error surface."""
        spec = get_error_spec(self.code)
        return {
            "code": self.code,
            "message": self.message,
            "retryable": spec.get("retryable", False),
            "suggested_fix": self.suggested_fix or spec.get("suggested_fix"),
        }


# =============================================================================
# Validation Errors
# =============================================================================


class ValidationError(ReelcutError):
    """Base class for validation errors."""

    code = "EXPORT_VALIDATION_FAILED"
    message = "Export is not allowed in the current state"


class ExportValidationError(ValidationError):
    """Export guard refused to start a job."""

    def __init__(self, reason: str | None = None):
        message = f"Cannot export: {reason}" if reason else self.message
        super().__init__(message)


class ExportInProgressError(ValidationError):
    """An export job is already loading."""

    code = "EXPORT_IN_PROGRESS"
    message = "An export is already in progress"


class InvalidMediaTypeError(ValidationError):
    """Uploaded file has the wrong media type."""

    code = "INVALID_MEDIA_TYPE"
    message = "Unsupported media type"

    def __init__(self, expected: str, content_type: str | None = None):
        message = f"Expected a {expected} file, got: {content_type or 'unknown'}"
        super().__init__(message)


class OverlayNotFoundError(ValidationError):
    """Overlay not found in the timeline."""

    code = "OVERLAY_NOT_FOUND"
    message = "Overlay not found"

    def __init__(self, overlay_id: str | None = None):
        message = f"Overlay not found: {overlay_id}" if overlay_id else self.message
        super().__init__(message)


class InvalidOverlayError(ValidationError):
    """An overlay cannot be placed or updated as requested."""

    code = "INVALID_OVERLAY"
    message = "Invalid overlay"

    def __init__(self, reason: str | None = None, overlay_id: str | None = None):
        message = self.message
        if overlay_id:
            message = f"{message} {overlay_id}"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)


# =============================================================================
# Asset Errors
# =============================================================================


class OverlayRasterError(ReelcutError):
    """An overlay could not be drawn or encoded."""

    code = "OVERLAY_RASTER_FAILED"
    message = "Failed to create overlay asset"

    def __init__(self, overlay_id: str | None = None, reason: str | None = None):
        message = self.message
        if overlay_id:
            message = f"{message} for overlay {overlay_id}"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)


# =============================================================================
# Engine Errors
# =============================================================================


class EngineError(ReelcutError):
    """Base class for transcoding engine failures."""

    code = "ENGINE_INVOCATION_FAILED"
    message = "Transcoding engine failed"


class EngineLoadError(EngineError):
    """The engine could not be initialized."""

    code = "ENGINE_LOAD_FAILED"
    message = "Failed to initialize the transcoding engine"


class EngineStagingError(EngineError):
    """Writing an input into working storage failed."""

    code = "ENGINE_STAGING_FAILED"
    message = "Failed to stage input file"


class EngineInvocationError(EngineError):
    """The engine exited with an error."""

    code = "ENGINE_INVOCATION_FAILED"
    message = "FFmpeg failed"

    def __init__(self, returncode: int | None = None, stderr: str | None = None):
        message = self.message
        if returncode is not None:
            message = f"{message} (exit code {returncode})"
        if stderr:
            message = f"{message}: {stderr}"
        super().__init__(message)
        self.returncode = returncode
        self.stderr = stderr


class EngineOutputError(EngineError):
    """The produced output could not be read back."""

    code = "ENGINE_OUTPUT_MISSING"
    message = "Export output not found"
