"""Assemble the ffmpeg argument list for an export."""

import logging
from dataclasses import dataclass, field
from typing import Optional, Sequence

from reelcut.config import Settings, get_settings
from reelcut.render.filter_graph import FilterGraph, compile_filter_graph
from reelcut.render.time_window import VisibleOverlay, select_visible_overlays
from reelcut.schemas.timeline import Timeline

logger = logging.getLogger(__name__)


def overlay_filename(index: int) -> str:
    """Working-storage name of the image for the overlay at timeline position ``index``."""
    return f"overlay-{index}.png"


@dataclass
class StagedInputs:
    """Working-storage names of every engine input, in input-index order."""

    video: str
    overlays: list[str] = field(default_factory=list)
    music: Optional[str] = None

    @property
    def files(self) -> list[str]:
        files = [self.video, *self.overlays]
        if self.music:
            files.append(self.music)
        return files


@dataclass
class ExportPlan:
    """Everything needed to run one export through the engine."""

    graph: FilterGraph
    inputs: StagedInputs
    overlays: list[VisibleOverlay]
    args: list[str]
    output: str


def build_output_args(settings: Settings) -> list[str]:
    return [
        "-c:v", settings.video_codec,
        "-profile:v", settings.video_profile,
        "-preset", settings.video_preset,
        "-crf", str(settings.video_crf),
        "-movflags", settings.movflags,
        "-pix_fmt", settings.pixel_format,
    ]


def assemble_command(
    graph: FilterGraph,
    inputs: StagedInputs,
    settings: Settings | None = None,
) -> list[str]:
    """Build the engine arguments (without the ffmpeg binary itself).

    Args:
        graph: Compiled filter graph
        inputs: Staged input names; their order must match the graph's input indices
        settings: Encoding settings, defaults to the global settings

    Returns:
        Ordered argument list ending with the output file name
    """
    settings = settings or get_settings()
    args: list[str] = []

    for name in inputs.files:
        args.extend(["-i", name])

    args.extend(["-filter_complex", graph.serialize()])

    args.extend(["-map", f"[{graph.video_label}]"])
    if graph.audio_label:
        args.extend(["-map", f"[{graph.audio_label}]"])
    else:
        args.append("-an")

    args.extend(build_output_args(settings))
    args.append(settings.output_filename)
    return args


def plan_export(
    timeline: Timeline,
    overlays: Sequence[VisibleOverlay] | None = None,
    settings: Settings | None = None,
) -> ExportPlan:
    """Compile a timeline into an export plan.

    Args:
        timeline: Timeline snapshot
        overlays: Overlays whose images were staged; defaults to every visible overlay
        settings: Settings override

    Returns:
        ExportPlan with graph, staged names and the final argument list
    """
    settings = settings or get_settings()
    if overlays is None:
        overlays = select_visible_overlays(timeline)
    overlays = list(overlays)

    music = timeline.audio_mix.music
    inputs = StagedInputs(
        video=settings.input_filename,
        overlays=[overlay_filename(v.index) for v in overlays],
        music=music.filename if music is not None else None,
    )
    graph = compile_filter_graph(timeline, overlays)
    args = assemble_command(graph, inputs, settings)

    logger.debug(f"[EXPORT] ffmpeg args: {args}")
    return ExportPlan(
        graph=graph,
        inputs=inputs,
        overlays=overlays,
        args=args,
        output=settings.output_filename,
    )
