from reelcut.render.command import ExportPlan, assemble_command, plan_export
from reelcut.render.engine import FFmpegEngine, get_engine, reset_engine
from reelcut.render.export import ExportJob, ExportOrchestrator, ExportPhase, ExportStatus, OutputHandle
from reelcut.render.filter_graph import FilterGraph, compile_filter_graph
from reelcut.render.overlay_rasterizer import OverlayRasterizer, RasterResult
from reelcut.render.time_window import TimeWindow, normalize_window, select_visible_overlays

__all__ = [
    "ExportJob",
    "ExportOrchestrator",
    "ExportPhase",
    "ExportPlan",
    "ExportStatus",
    "FFmpegEngine",
    "FilterGraph",
    "OutputHandle",
    "OverlayRasterizer",
    "RasterResult",
    "TimeWindow",
    "assemble_command",
    "compile_filter_graph",
    "get_engine",
    "normalize_window",
    "plan_export",
    "reset_engine",
    "select_visible_overlays",
]
