"""Tests for ffmpeg argument assembly."""

from reelcut.config import Settings
from reelcut.render.command import StagedInputs, assemble_command, overlay_filename, plan_export
from reelcut.render.time_window import select_visible_overlays
from reelcut.schemas.timeline import Overlay

OUTPUT_ARGS = [
    "-c:v", "libx264",
    "-profile:v", "high",
    "-preset", "medium",
    "-crf", "18",
    "-movflags", "+faststart",
    "-pix_fmt", "yuv420p",
    "output.mp4",
]


def _input_names(args: list[str]) -> list[str]:
    return [args[i + 1] for i, a in enumerate(args) if a == "-i"]


class TestAssembleCommand:
    """Tests for assemble_command / plan_export."""

    def test_plain_clip(self, make_timeline):
        """Scenario A: one input, both labels mapped, fixed encoder flags."""
        plan = plan_export(make_timeline(trim_start=0, trim_end=10))

        assert plan.args[:2] == ["-i", "input.mp4"]
        assert plan.args[2] == "-filter_complex"
        assert plan.args[4:8] == ["-map", "[vout]", "-map", "[aout]"]
        assert plan.args[8:] == OUTPUT_ARGS

    def test_input_order(self, make_timeline, music_asset):
        """Video first, overlay images in z-order, music last."""
        overlays = [Overlay(start=1, end=2), Overlay(start=20, end=25), Overlay(start=3, end=4)]
        plan = plan_export(make_timeline(overlays=overlays, music=music_asset))

        assert _input_names(plan.args) == ["input.mp4", "overlay-0.png", "overlay-2.png", "bgm.mp3"]
        assert plan.inputs.files == _input_names(plan.args)

    def test_no_audio_disables_audio_output(self, make_timeline):
        plan = plan_export(make_timeline(use_original_audio=False))

        assert "-an" in plan.args
        assert "[aout]" not in plan.args
        assert plan.args.count("-map") == 1

    def test_graph_expression_is_single_argument(self, make_timeline):
        plan = plan_export(make_timeline(overlays=[Overlay(start=2, end=5)]))
        index = plan.args.index("-filter_complex")
        assert plan.args[index + 1] == plan.graph.serialize()

    def test_deterministic(self, make_timeline, music_asset):
        """Identical timeline state always assembles identical arguments."""
        def build():
            overlays = [
                Overlay(id="a", start=1.234, end=3.456, text="hello"),
                Overlay(id="b", start=2, end=40, text="world"),
            ]
            return make_timeline(trim_start=0.75, trim_end=12.5, overlays=overlays, music=music_asset)

        first = plan_export(build()).args
        second = plan_export(build()).args
        timeline = build()
        assert first == second
        assert plan_export(timeline).args == plan_export(timeline).args

    def test_only_staged_overlays_are_wired(self, make_timeline):
        """Overlays that failed to rasterize are left out of inputs and graph."""
        overlays = [Overlay(start=1, end=2), Overlay(start=3, end=4)]
        timeline = make_timeline(overlays=overlays)
        staged = select_visible_overlays(timeline)[1:]

        plan = plan_export(timeline, staged)

        assert _input_names(plan.args) == ["input.mp4", "overlay-1.png"]
        assert len(plan.graph.overlay_stages) == 1
        assert plan.graph.overlay_stages[0].inputs == ("v0", "1:v")

    def test_encoder_settings_override(self, make_timeline):
        settings = Settings(video_crf=23, video_preset="fast", output_filename="reel.mp4")
        plan = plan_export(make_timeline(), settings=settings)

        assert plan.args[-1] == "reel.mp4"
        assert plan.output == "reel.mp4"
        assert plan.args[plan.args.index("-crf") + 1] == "23"
        assert plan.args[plan.args.index("-preset") + 1] == "fast"

    def test_assemble_with_explicit_inputs(self, make_timeline):
        plan = plan_export(make_timeline())
        args = assemble_command(plan.graph, StagedInputs(video="source.mov"))
        assert args[:2] == ["-i", "source.mov"]


def test_overlay_filename():
    assert overlay_filename(3) == "overlay-3.png"
