"""Map timeline timestamps into the clip-relative time base.

The trimmed clip starts at t=0 once ``trim``/``setpts=PTS-STARTPTS`` have run,
so every overlay window is shifted by ``trim_start`` and capped at the clip
duration. Values are rounded to 2 decimals with ties away from zero, which is the
precision embedded in the filter graph.
"""

from dataclasses import dataclass
from typing import Optional

from reelcut.schemas.timeline import Overlay, Timeline, round_seconds


@dataclass(frozen=True)
class TimeWindow:
    """Clip-relative enable window for one overlay."""

    start: float
    end: float

    @property
    def duration(self) -> float:
        return round_seconds(self.end - self.start)


@dataclass(frozen=True)
class VisibleOverlay:
    """An overlay that survives normalization.

    ``index`` is the overlay's position in the timeline and names its staged
    image, so file names stay stable when earlier overlays are dropped.
    """

    index: int
    overlay: Overlay
    window: TimeWindow


def format_timestamp(value: float) -> str:
    """Format seconds the way they are embedded in the graph."""
    return f"{round_seconds(value):.2f}"


def normalize_window(
    trim_start: float,
    trim_end: float,
    overlay: Overlay,
) -> Optional[TimeWindow]:
    """Shift an overlay's [start, end] into the trimmed clip.

    Returns:
        The rounded window, or None when nothing of the overlay is visible
    """
    clip_duration = round_seconds(trim_end - trim_start)
    start = max(0.0, overlay.start - trim_start)
    end = max(start, min(overlay.end - trim_start, clip_duration))

    start = round_seconds(start)
    end = round_seconds(end)
    if end <= start:
        return None
    return TimeWindow(start=start, end=end)


def select_visible_overlays(timeline: Timeline) -> list[VisibleOverlay]:
    """Normalize every overlay and keep the visible ones in z-order."""
    visible = []
    for index, overlay in enumerate(timeline.overlays):
        window = normalize_window(timeline.trim_start, timeline.trim_end, overlay)
        if window is None:
            continue
        visible.append(VisibleOverlay(index=index, overlay=overlay, window=window))
    return visible
