"""
Export orchestration.

Drives one export from a timeline snapshot to finished MP4 bytes:
1. Acquire the shared transcoding engine (loaded once per process)
2. Stage the primary video
3. Rasterize and stage every visible overlay (failures are skipped)
4. Stage the music track
5. Run ffmpeg with the assembled command
6. Read the output back and publish it

Job status: idle -> loading -> ready | error, and ready/error -> loading on
the next export. A second export while one is loading is refused; there is no
queue and no cancellation.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Awaitable, Callable, Optional
from uuid import uuid4

from reelcut.config import Settings, get_settings
from reelcut.exceptions import EngineError, ExportInProgressError, ExportValidationError
from reelcut.render.command import ExportPlan, overlay_filename, plan_export
from reelcut.render.engine import TranscodingEngine, get_engine
from reelcut.render.overlay_rasterizer import OverlayRasterizer
from reelcut.render.time_window import select_visible_overlays
from reelcut.schemas.timeline import EditSession, SourceVideo, Timeline

logger = logging.getLogger(__name__)


class ExportStatus(Enum):
    """Export job status."""

    IDLE = "idle"
    LOADING = "loading"
    READY = "ready"
    ERROR = "error"


class ExportPhase(Enum):
    """Sub-phase of a loading job, for progress messages."""

    INITIALIZING = "initializing"
    PROCESSING = "processing"


@dataclass
class OutputHandle:
    """Finished export bytes, released once superseded."""

    data: bytes = field(repr=False)
    filename: str = "output.mp4"
    content_type: str = "video/mp4"
    released: bool = False

    @property
    def size(self) -> int:
        return len(self.data)

    def read(self) -> bytes:
        if self.released:
            raise ValueError(f"Output {self.filename} has been released")
        return self.data

    def release(self) -> None:
        self.data = b""
        self.released = True


@dataclass
class ExportJob:
    """State of one export invocation."""

    id: str = field(default_factory=lambda: uuid4().hex)
    status: ExportStatus = ExportStatus.IDLE
    phase: Optional[ExportPhase] = None
    output: Optional[OutputHandle] = None
    error_detail: Optional[str] = None
    skipped_overlays: list[str] = field(default_factory=list)
    created_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None

    def to_dict(self) -> dict[str, Any]:
        """Serialize to dictionary."""
        return {
            "id": self.id,
            "status": self.status.value,
            "phase": self.phase.value if self.phase else None,
            "output_size": self.output.size if self.output and not self.output.released else None,
            "error_detail": self.error_detail,
            "skipped_overlays": list(self.skipped_overlays),
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
        }


ProgressCallback = Callable[[int, str], Any]
EngineProvider = Callable[[], Awaitable[TranscodingEngine]]


class ExportOrchestrator:
    """Runs exports for one edit session."""

    def __init__(
        self,
        session: EditSession,
        engine_provider: EngineProvider | None = None,
        settings: Settings | None = None,
    ):
        self.session = session
        self.settings = settings or get_settings()
        self._engine_provider = engine_provider or get_engine
        self._progress_callback: Optional[ProgressCallback] = None
        self.job = ExportJob()
        self._published: Optional[OutputHandle] = None
        # Survives reset(); storage names are shared until this job cleans up
        self._running: Optional[ExportJob] = None

        session.on_source_change(self.reset)

    @property
    def output(self) -> Optional[OutputHandle]:
        """The most recently published output, if any."""
        return self._published

    def set_progress_callback(self, callback: ProgressCallback) -> None:
        """Set callback for progress updates."""
        self._progress_callback = callback

    def _update_progress(self, progress: int, stage: str) -> None:
        if self._progress_callback:
            self._progress_callback(progress, stage)

    # ------------------------------------------------------------------
    # Guards
    # ------------------------------------------------------------------

    def validate(self) -> None:
        """Refuse exports the timeline cannot support.

        Raises:
            ExportInProgressError: If a job is still running, even one whose
                session was reset
            ExportValidationError: If the source or trim window is unusable
        """
        if self._running is not None or self.job.status == ExportStatus.LOADING:
            raise ExportInProgressError()

        timeline = self.session.timeline
        if self.session.source is None:
            raise ExportValidationError("no video loaded")
        if not timeline.source_duration or timeline.source_duration <= 0:
            raise ExportValidationError("source duration is unknown")
        min_len = self.settings.min_clip_duration_s
        if timeline.trim_end - timeline.trim_start <= min_len:
            raise ExportValidationError(f"clip must be longer than {min_len}s")

    # ------------------------------------------------------------------
    # Export
    # ------------------------------------------------------------------

    async def export(self) -> ExportJob:
        """Run a full export and return the finished job.

        Engine failures end the job in ``error`` instead of raising; only
        guard failures raise.
        """
        self.validate()

        timeline = self.session.snapshot()
        source = self.session.source
        job = ExportJob(status=ExportStatus.LOADING, created_at=datetime.now(timezone.utc))
        self.job = job
        self._running = job
        logger.info(
            f"[EXPORT] Job {job.id} started: {timeline.aspect_ratio}, "
            f"{timeline.trim_start:.2f}-{timeline.trim_end:.2f}s, overlays={len(timeline.overlays)}"
        )

        engine: Optional[TranscodingEngine] = None
        staged: list[str] = []
        try:
            job.phase = ExportPhase.INITIALIZING
            self._update_progress(5, "Loading transcoding engine")
            engine = await self._engine_provider()

            job.phase = ExportPhase.PROCESSING
            plan = await self._stage_inputs(engine, job, timeline, source, staged)
            staged.append(plan.output)

            self._update_progress(50, "Rendering video")
            await engine.exec(plan.args)

            self._update_progress(90, "Reading output")
            data = await engine.read_file(plan.output)
        except EngineError as e:
            self._fail(job, e.message)
        except Exception as e:
            logger.exception(f"[EXPORT] Job {job.id} failed unexpectedly")
            self._fail(job, str(e) or "Unexpected error occurred while exporting the video.")
        else:
            self._publish(job, OutputHandle(data=data, filename=plan.output))
        finally:
            if engine is not None:
                await self._cleanup(engine, staged)
            self._running = None

        return job

    async def _stage_inputs(
        self,
        engine: TranscodingEngine,
        job: ExportJob,
        timeline: Timeline,
        source: SourceVideo,
        staged: list[str],
    ) -> ExportPlan:
        """Write every engine input and compile the plan for what was staged."""
        self._update_progress(15, "Staging video")
        await engine.write_file(self.settings.input_filename, source.data)
        staged.append(self.settings.input_filename)

        self._update_progress(30, "Rendering captions")
        rasterizer = OverlayRasterizer(timeline.geometry, self.settings)
        rendered = []
        for visible in select_visible_overlays(timeline):
            result = await asyncio.to_thread(rasterizer.rasterize, visible.overlay)
            if not result.ok:
                job.skipped_overlays.append(visible.overlay.id)
                continue
            name = overlay_filename(visible.index)
            await engine.write_file(name, result.png)
            staged.append(name)
            rendered.append(visible)

        music = timeline.audio_mix.music
        if music is not None:
            self._update_progress(45, "Staging music")
            await engine.write_file(music.filename, music.data)
            staged.append(music.filename)

        return plan_export(timeline, rendered, self.settings)

    def _fail(self, job: ExportJob, detail: str) -> None:
        logger.error(f"[EXPORT] Job {job.id} failed: {detail}")
        job.status = ExportStatus.ERROR
        job.error_detail = detail
        job.completed_at = datetime.now(timezone.utc)

    def _publish(self, job: ExportJob, handle: OutputHandle) -> None:
        job.output = handle
        job.status = ExportStatus.READY
        job.completed_at = datetime.now(timezone.utc)

        if self.job is not job:
            # Session was reset while this job ran
            handle.release()
            return

        if self._published is not None:
            self._published.release()
        self._published = handle
        self._update_progress(100, "Complete")
        logger.info(f"[EXPORT] Job {job.id} ready: {handle.size} bytes")

    async def _cleanup(self, engine: TranscodingEngine, names: list[str]) -> None:
        """Remove this job's files from working storage."""
        for name in names:
            try:
                await engine.delete_file(name)
            except (EngineError, OSError) as e:
                logger.debug(f"[EXPORT] Failed to remove {name}: {e}")

    def reset(self) -> None:
        """Forget the current job and release its output."""
        if self._published is not None:
            self._published.release()
            self._published = None
        self.job = ExportJob()

    def close(self) -> None:
        """Release everything at session end."""
        self.reset()
