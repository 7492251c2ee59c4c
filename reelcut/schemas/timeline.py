import logging
import math
import mimetypes
import uuid
from decimal import ROUND_HALF_UP, Decimal
from pathlib import Path
from typing import Any, Callable, Literal

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic import ValidationError as PydanticValidationError

from reelcut.config import get_settings
from reelcut.exceptions import InvalidMediaTypeError, InvalidOverlayError, OverlayNotFoundError

logger = logging.getLogger(__name__)


# =============================================================================
# Target geometry
# =============================================================================

AspectRatioKey = Literal["9:16", "1:1", "16:9"]


class TargetGeometry(BaseModel):
    model_config = ConfigDict(frozen=True)

    width: int
    height: int
    label: str

    @property
    def is_vertical(self) -> bool:
        return self.height > self.width


ASPECT_PRESETS: dict[str, TargetGeometry] = {
    "9:16": TargetGeometry(width=1080, height=1920, label="Vertical Reel (9:16)"),
    "1:1": TargetGeometry(width=1080, height=1080, label="Square (1:1)"),
    "16:9": TargetGeometry(width=1920, height=1080, label="Landscape (16:9)"),
}


# =============================================================================
# Timeline entities
# =============================================================================


class ColorGrade(BaseModel):
    brightness: float = Field(default=0.0, ge=-0.5, le=0.5)
    contrast: float = Field(default=1.0, ge=0.5, le=1.8)
    saturation: float = Field(default=1.2, ge=0.2, le=2.0)


class Overlay(BaseModel):
    """A timed caption drawn over the clip."""
    model_config = ConfigDict(validate_assignment=True)

    id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    text: str = "New caption"
    start: float = Field(ge=0)
    end: float = Field(ge=0)
    color: str = "#ffffff"
    font_size: int = Field(default=64, ge=24, le=180)  # reference units, see overlay_reference_width
    weight: Literal["regular", "bold"] = "bold"
    x: float = Field(default=50, ge=0, le=100)  # percentage anchor
    y: float = Field(default=80, ge=0, le=100)
    background_opacity: float = Field(default=0.35, ge=0, le=1)
    background_color: str = "#000000"

    @model_validator(mode="after")
    def _check_window(self) -> "Overlay":
        if self.end <= self.start:
            raise ValueError(f"overlay end ({self.end}) must be after start ({self.start})")
        return self


class AudioAsset(BaseModel):
    """Uploaded background music. The extension picks the engine's demuxer."""
    data: bytes = Field(repr=False)
    extension: str = "mp3"

    @classmethod
    def from_upload(cls, filename: str, data: bytes, content_type: str | None = None) -> "AudioAsset":
        if content_type is not None and not content_type.startswith("audio"):
            raise InvalidMediaTypeError("audio", content_type)
        extension = filename.rsplit(".", 1)[-1].lower() if "." in filename else ""
        return cls(data=data, extension=extension or "mp3")

    @property
    def filename(self) -> str:
        return f"bgm.{self.extension}"


class AudioMix(BaseModel):
    use_original_audio: bool = True
    video_volume: float = Field(default=0.8, ge=0, le=1.5)
    music: AudioAsset | None = None
    music_volume: float = Field(default=0.6, ge=0, le=1.5)


class SourceVideo(BaseModel):
    """Primary footage bytes as loaded by the caller."""
    data: bytes = Field(repr=False)
    filename: str = "input.mp4"
    content_type: str = "video/mp4"


class Timeline(BaseModel):
    trim_start: float = Field(default=0.0, ge=0)
    trim_end: float = Field(default=0.0, ge=0)
    source_duration: float = Field(default=0.0, ge=0)
    aspect_ratio: AspectRatioKey = "9:16"
    color_grade: ColorGrade = Field(default_factory=ColorGrade)
    overlays: list[Overlay] = Field(default_factory=list)
    audio_mix: AudioMix = Field(default_factory=AudioMix)

    @model_validator(mode="after")
    def _check_trim(self) -> "Timeline":
        if self.trim_end < self.trim_start:
            raise ValueError(f"trim_end ({self.trim_end}) is before trim_start ({self.trim_start})")
        return self

    @property
    def geometry(self) -> TargetGeometry:
        return ASPECT_PRESETS[self.aspect_ratio]

    @property
    def clip_duration(self) -> float:
        """Trimmed clip length, rounded to the engine's timestamp granularity."""
        return round_seconds(self.trim_end - self.trim_start)


# =============================================================================
# Edit session
# =============================================================================


def _clamp(value: float, low: float, high: float) -> float:
    return min(max(value, low), high)


def round_seconds(value: float) -> float:
    """Round to centiseconds, ties away from zero like JavaScript's toFixed(2)."""
    if not math.isfinite(value):
        return value
    quantized = Decimal(value).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
    # + 0.0 folds -0.0 into 0.0
    return float(quantized) + 0.0


def format_seconds(value: float) -> str:
    """Format seconds as MM:SS for trim labels."""
    if not math.isfinite(value):
        return "0:00"
    total = max(0, math.floor(value))
    return f"{total // 60:02d}:{total % 60:02d}"


class EditSession:
    """Mutable editing state owned by the UI layer.

    The export side only ever reads a snapshot of ``timeline`` (see
    :meth:`snapshot`). Listeners registered with :meth:`on_source_change` are
    called whenever a new primary video replaces the current one.
    """

    def __init__(self, timeline: Timeline | None = None):
        self.settings = get_settings()
        self.timeline = timeline or Timeline()
        self.source: SourceVideo | None = None
        self.preview_time: float = 0.0
        self._source_listeners: list[Callable[[], Any]] = []

    def on_source_change(self, callback: Callable[[], Any]) -> None:
        """Register a callback for source video replacement."""
        self._source_listeners.append(callback)

    def snapshot(self) -> Timeline:
        return self.timeline.model_copy(deep=True)

    # ------------------------------------------------------------------
    # Media
    # ------------------------------------------------------------------

    def load_video(self, source: SourceVideo, duration: float) -> None:
        """Replace the primary footage and reset the edit."""
        if not source.content_type.startswith("video"):
            raise InvalidMediaTypeError("video", source.content_type)

        duration = duration if math.isfinite(duration) and duration > 0 else 0.0
        self.source = source
        self.preview_time = 0.0
        self.timeline.overlays = []
        self.timeline.source_duration = duration
        self.timeline.trim_start = 0.0
        self.timeline.trim_end = duration
        logger.info(f"[SESSION] Loaded video {source.filename} ({duration:.2f}s)")

        for callback in self._source_listeners:
            callback()

    def load_video_file(self, path: str | Path) -> None:
        """Load the primary footage from disk, probing its duration with ffprobe."""
        from reelcut.utils.media_info import get_media_duration, has_audio_track

        path = Path(path)
        content_type = mimetypes.guess_type(path.name)[0] or "application/octet-stream"
        if not content_type.startswith("video"):
            raise InvalidMediaTypeError("video", content_type)

        duration_s = get_media_duration(str(path)) / 1000
        source = SourceVideo(data=path.read_bytes(), filename=path.name, content_type=content_type)
        self.load_video(source, duration_s)

        # [0:a] does not exist for silent footage
        if not has_audio_track(str(path)):
            logger.info(f"[SESSION] {path.name} has no audio track, original audio disabled")
            self.timeline.audio_mix.use_original_audio = False

    def load_music(self, filename: str, data: bytes, content_type: str | None = None) -> AudioAsset:
        asset = AudioAsset.from_upload(filename, data, content_type)
        self.timeline.audio_mix.music = asset
        return asset

    def remove_music(self) -> None:
        self.timeline.audio_mix.music = None

    # ------------------------------------------------------------------
    # Trim window
    # ------------------------------------------------------------------

    def set_trim_start(self, value: float) -> float:
        min_len = self.settings.min_clip_duration_s
        clamped = _clamp(value, 0, self.timeline.trim_end - min_len)
        self.timeline.trim_start = round_seconds(max(clamped, 0.0))
        self.preview_time = self.timeline.trim_start
        return self.timeline.trim_start

    def set_trim_end(self, value: float) -> float:
        min_len = self.settings.min_clip_duration_s
        clamped = _clamp(value, self.timeline.trim_start + min_len, self.timeline.source_duration)
        self.timeline.trim_end = round_seconds(clamped)
        return self.timeline.trim_end

    # ------------------------------------------------------------------
    # Overlays
    # ------------------------------------------------------------------

    def add_overlay(self) -> Overlay:
        """Add a 3-second caption at the preview position."""
        tl = self.timeline
        if self.source is None or tl.trim_end <= tl.trim_start:
            raise InvalidOverlayError("no trimmed clip to place it in")
        start = max(_clamp(self.preview_time, tl.trim_start, tl.trim_end - 1), 0.0)
        end = _clamp(start + 3, tl.trim_start, tl.trim_end)
        overlay = Overlay(start=start, end=end)
        tl.overlays.append(overlay)
        return overlay

    def get_overlay(self, overlay_id: str) -> Overlay:
        for overlay in self.timeline.overlays:
            if overlay.id == overlay_id:
                return overlay
        raise OverlayNotFoundError(overlay_id)

    def update_overlay(self, overlay_id: str, **patch: Any) -> Overlay:
        """Update overlay fields in place, clamping timing into the trim window."""
        overlay = self.get_overlay(overlay_id)
        tl = self.timeline
        if "start" in patch:
            patch["start"] = _clamp(patch["start"], tl.trim_start, patch.get("end", overlay.end) - 0.1)
        if "end" in patch:
            patch["end"] = _clamp(patch["end"], patch.get("start", overlay.start) + 0.1, tl.trim_end)

        try:
            updated = Overlay.model_validate({**overlay.model_dump(), **patch, "id": overlay.id})
        except PydanticValidationError as e:
            raise InvalidOverlayError(e.errors()[0]["msg"], overlay_id) from e
        index = tl.overlays.index(overlay)
        tl.overlays[index] = updated
        return updated

    def remove_overlay(self, overlay_id: str) -> None:
        overlay = self.get_overlay(overlay_id)
        self.timeline.overlays.remove(overlay)

    def active_overlays(self, at: float | None = None) -> list[Overlay]:
        t = self.preview_time if at is None else at
        return [o for o in self.timeline.overlays if o.start <= t <= o.end]

    @property
    def can_export(self) -> bool:
        tl = self.timeline
        if self.source is None:
            return False
        if not math.isfinite(tl.source_duration) or tl.source_duration <= 0:
            return False
        if tl.trim_end - tl.trim_start <= self.settings.min_clip_duration_s:
            return False
        return True
