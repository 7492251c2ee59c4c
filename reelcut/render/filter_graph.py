"""Filter-graph compilation for the export.

The graph is built as plain data first (stages made of filters, wired by
stream labels) and only turned into ffmpeg ``-filter_complex`` text by
:meth:`FilterGraph.serialize`.

Input layout (fixed):
    0        primary video (video + optional audio)
    1..n     rasterized overlay PNGs, in z-order
    n+1      background music, when present

Video chain:
    [0:v] trim, setpts, scale, crop, eq          -> [v0]
    [v0][1:v] overlay enable=between(...)        -> [v1]
    ...
    [v{n-1}][n:v] overlay ...                    -> [vout]
    (no overlays: [v0] null -> [vout])

Audio chain:
    [0:a] atrim, asetpts, volume                 -> [a0]      (original audio kept)
    [n+1:a] aloop, atrim, asetpts, volume        -> [amusic]  (music present)
    [a0][amusic] amix duration=shortest          -> [aout]    (both)
    [x] anull                                    -> [aout]    (exactly one)
"""

import logging
from dataclasses import dataclass, field
from typing import Optional, Sequence

from reelcut.render.time_window import VisibleOverlay, format_timestamp
from reelcut.schemas.timeline import Timeline

logger = logging.getLogger(__name__)

VIDEO_BASE_LABEL = "v0"
VIDEO_OUT_LABEL = "vout"
AUDIO_ORIGINAL_LABEL = "a0"
AUDIO_MUSIC_LABEL = "amusic"
AUDIO_OUT_LABEL = "aout"

# aloop needs a finite buffer size; this is the largest value it accepts
ALOOP_MAX_SIZE = 2147483647
MIX_DROPOUT_TRANSITION = 2


def _fmt(value: float) -> str:
    return format_timestamp(value)


@dataclass(frozen=True)
class Filter:
    """One ffmpeg filter with its already-formatted arguments."""

    name: str
    args: tuple[str, ...] = ()

    def serialize(self) -> str:
        if not self.args:
            return self.name
        return f"{self.name}={':'.join(self.args)}"


@dataclass(frozen=True)
class FilterStage:
    """A linear filter chain from labeled inputs to a single labeled output."""

    inputs: tuple[str, ...]
    filters: tuple[Filter, ...]
    output: str

    def serialize(self) -> str:
        input_str = "".join(f"[{label}]" for label in self.inputs)
        chain = ",".join(f.serialize() for f in self.filters)
        return f"{input_str}{chain}[{self.output}]"


@dataclass
class FilterGraph:
    """Compiled graph plus the terminal labels to map."""

    video_stages: list[FilterStage] = field(default_factory=list)
    audio_stages: list[FilterStage] = field(default_factory=list)
    video_label: str = VIDEO_OUT_LABEL
    audio_label: Optional[str] = None

    @property
    def stages(self) -> list[FilterStage]:
        return [*self.video_stages, *self.audio_stages]

    @property
    def overlay_stages(self) -> list[FilterStage]:
        return [s for s in self.video_stages if s.filters[0].name == "overlay"]

    @property
    def has_audio(self) -> bool:
        return self.audio_label is not None

    def serialize(self) -> str:
        """Render the ``-filter_complex`` expression."""
        return ";".join(stage.serialize() for stage in self.stages)


class FilterGraphBuilder:
    """Builds the export filter graph for one timeline snapshot."""

    def __init__(self, timeline: Timeline):
        self.timeline = timeline
        self.geometry = timeline.geometry
        self.clip_duration = timeline.clip_duration

    def _trim_args(self) -> tuple[str, str]:
        return (
            f"start={_fmt(self.timeline.trim_start)}",
            f"end={_fmt(self.timeline.trim_end)}",
        )

    def _scale_filter(self) -> Filter:
        """Scale so the target's dominant axis is filled; crop trims the rest."""
        if self.geometry.is_vertical:
            return Filter("scale", ("-2", str(self.geometry.height)))
        return Filter("scale", (str(self.geometry.width), "-2"))

    def _eq_filter(self) -> Filter:
        grade = self.timeline.color_grade
        return Filter("eq", (
            f"brightness={_fmt(grade.brightness)}",
            f"contrast={_fmt(grade.contrast)}",
            f"saturation={_fmt(grade.saturation)}",
        ))

    def build_base_stage(self) -> FilterStage:
        """Trim, reset timestamps, fit the frame and color grade the primary video."""
        return FilterStage(
            inputs=("0:v",),
            filters=(
                Filter("trim", self._trim_args()),
                Filter("setpts", ("PTS-STARTPTS",)),
                self._scale_filter(),
                Filter("crop", (str(self.geometry.width), str(self.geometry.height))),
                self._eq_filter(),
            ),
            output=VIDEO_BASE_LABEL,
        )

    def build_overlay_stage(
        self,
        previous_label: str,
        input_index: int,
        visible: VisibleOverlay,
        output_label: str,
    ) -> FilterStage:
        """Composite a full-frame overlay image, gated to its window."""
        window = visible.window
        enable_expr = f"between(t,{_fmt(window.start)},{_fmt(window.end)})"
        return FilterStage(
            inputs=(previous_label, f"{input_index}:v"),
            filters=(Filter("overlay", ("0", "0", f"enable='{enable_expr}'")),),
            output=output_label,
        )

    def build_video_chain(self, overlays: Sequence[VisibleOverlay]) -> list[FilterStage]:
        stages = [self.build_base_stage()]

        if not overlays:
            stages.append(FilterStage(inputs=(VIDEO_BASE_LABEL,), filters=(Filter("null"),), output=VIDEO_OUT_LABEL))
            return stages

        last_label = VIDEO_BASE_LABEL
        for position, visible in enumerate(overlays):
            is_last = position == len(overlays) - 1
            target_label = VIDEO_OUT_LABEL if is_last else f"v{position + 1}"
            stages.append(self.build_overlay_stage(last_label, position + 1, visible, target_label))
            last_label = target_label

        return stages

    def build_original_audio_stage(self) -> FilterStage:
        volume = self.timeline.audio_mix.video_volume
        return FilterStage(
            inputs=("0:a",),
            filters=(
                Filter("atrim", self._trim_args()),
                Filter("asetpts", ("PTS-STARTPTS",)),
                Filter("volume", (_fmt(volume),)),
            ),
            output=AUDIO_ORIGINAL_LABEL,
        )

    def build_music_stage(self, input_index: int) -> FilterStage:
        """Loop the music forever, then cut it to the clip length.

        Looping first lets music shorter than the clip fill all of it.
        """
        volume = self.timeline.audio_mix.music_volume
        return FilterStage(
            inputs=(f"{input_index}:a",),
            filters=(
                Filter("aloop", ("loop=-1", f"size={ALOOP_MAX_SIZE}")),
                Filter("atrim", ("0", _fmt(self.clip_duration))),
                Filter("asetpts", ("PTS-STARTPTS",)),
                Filter("volume", (_fmt(volume),)),
            ),
            output=AUDIO_MUSIC_LABEL,
        )

    def build_audio_chain(self, music_input_index: int) -> tuple[list[FilterStage], Optional[str]]:
        mix = self.timeline.audio_mix
        stages: list[FilterStage] = []
        labels: list[str] = []

        if mix.use_original_audio:
            stages.append(self.build_original_audio_stage())
            labels.append(AUDIO_ORIGINAL_LABEL)

        if mix.music is not None:
            stages.append(self.build_music_stage(music_input_index))
            labels.append(AUDIO_MUSIC_LABEL)

        if len(labels) == 2:
            stages.append(FilterStage(
                inputs=tuple(labels),
                filters=(Filter("amix", (
                    "inputs=2",
                    "duration=shortest",
                    f"dropout_transition={MIX_DROPOUT_TRANSITION}",
                )),),
                output=AUDIO_OUT_LABEL,
            ))
        elif len(labels) == 1:
            stages.append(FilterStage(inputs=(labels[0],), filters=(Filter("anull"),), output=AUDIO_OUT_LABEL))
        else:
            return stages, None

        return stages, AUDIO_OUT_LABEL

    def build(self, overlays: Sequence[VisibleOverlay]) -> FilterGraph:
        video_stages = self.build_video_chain(overlays)
        audio_stages, audio_label = self.build_audio_chain(music_input_index=len(overlays) + 1)

        graph = FilterGraph(
            video_stages=video_stages,
            audio_stages=audio_stages,
            video_label=VIDEO_OUT_LABEL,
            audio_label=audio_label,
        )
        logger.info(
            f"[GRAPH] Compiled {len(graph.stages)} stages: overlays={len(overlays)}, "
            f"audio={audio_label or 'none'}"
        )
        return graph


def compile_filter_graph(timeline: Timeline, overlays: Sequence[VisibleOverlay]) -> FilterGraph:
    """Compile the export graph for a timeline and its surviving overlays.

    ``overlays`` must be the overlays that were actually staged, in z-order;
    their position in this sequence decides their input index.
    """
    return FilterGraphBuilder(timeline).build(overlays)
