from reelcut.schemas.timeline import (
    ASPECT_PRESETS,
    AudioAsset,
    AudioMix,
    ColorGrade,
    EditSession,
    Overlay,
    SourceVideo,
    TargetGeometry,
    Timeline,
)

__all__ = [
    "ASPECT_PRESETS",
    "AudioAsset",
    "AudioMix",
    "ColorGrade",
    "EditSession",
    "Overlay",
    "SourceVideo",
    "TargetGeometry",
    "Timeline",
]
