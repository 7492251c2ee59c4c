"""Error codes dictionary for export failures.

Single source of truth for every error code raised by the package, whether
the caller may simply retry, and a short hint shown next to the error.
"""

from typing import TypedDict


class ErrorCodeSpec(TypedDict, total=False):
    """Specification for an error code."""

    retryable: bool
    suggested_fix: str


ERROR_CODES: dict[str, ErrorCodeSpec] = {
    # ==========================================================================
    # Validation errors (export refused, no job created)
    # ==========================================================================
    "EXPORT_VALIDATION_FAILED": {
        "retryable": False,
        "suggested_fix": "Load a video and keep the trimmed clip longer than half a second",
    },
    "EXPORT_IN_PROGRESS": {
        "retryable": True,
        "suggested_fix": "Wait for the running export to finish before starting another",
    },
    "INVALID_MEDIA_TYPE": {
        "retryable": False,
        "suggested_fix": "Select a video file (MP4, MOV, WebM) or an audio file (MP3, WAV, AAC)",
    },
    "OVERLAY_NOT_FOUND": {
        "retryable": False,
        "suggested_fix": "Refresh the overlay list; the caption may have been removed",
    },
    "INVALID_OVERLAY": {
        "retryable": False,
        "suggested_fix": "Load a video first and keep caption timing inside the trimmed clip",
    },
    # ==========================================================================
    # Asset errors (recovered locally)
    # ==========================================================================
    "OVERLAY_RASTER_FAILED": {
        "retryable": False,
        "suggested_fix": "Check the caption text and colors",
    },
    # ==========================================================================
    # Engine errors (fatal to the current job, retry allowed)
    # ==========================================================================
    "ENGINE_LOAD_FAILED": {
        "retryable": True,
        "suggested_fix": "Make sure ffmpeg is installed and REELCUT_FFMPEG_PATH points to it",
    },
    "ENGINE_STAGING_FAILED": {
        "retryable": True,
    },
    "ENGINE_INVOCATION_FAILED": {
        "retryable": True,
        "suggested_fix": "Inspect the ffmpeg output in the error detail",
    },
    "ENGINE_OUTPUT_MISSING": {
        "retryable": True,
    },
    "INTERNAL_ERROR": {
        "retryable": False,
    },
}


def get_error_spec(code: str) -> ErrorCodeSpec:
    """Get error specification by code.

    Args:
        code: The error code

    Returns:
        ErrorCodeSpec with retryable flag and suggested fix
    """
    return ERROR_CODES.get(code, {"retryable": False})


def is_retryable(code: str) -> bool:
    """Check if an error code is retryable."""
    return get_error_spec(code).get("retryable", False)
