"""FFmpeg transcoding engine adapter.

The engine owns a private working directory. Inputs are written into it by
name, ffmpeg runs with that directory as its cwd, and the output is read back
by name. One engine instance is shared per process (see :func:`get_engine`);
invocations on it are serialized.
"""

import asyncio
import logging
import shutil
import tempfile
from pathlib import Path
from typing import Optional, Protocol

from reelcut.config import Settings, get_settings
from reelcut.exceptions import (
    EngineError,
    EngineInvocationError,
    EngineLoadError,
    EngineOutputError,
    EngineStagingError,
)

logger = logging.getLogger(__name__)

# Keep error details readable; ffmpeg prints the failing filter near the end
STDERR_TAIL_CHARS = 2000


class TranscodingEngine(Protocol):
    """What the export orchestrator needs from an engine."""

    async def write_file(self, name: str, data: bytes) -> None: ...

    async def read_file(self, name: str) -> bytes: ...

    async def delete_file(self, name: str) -> bool: ...

    async def exec(self, args: list[str]) -> None: ...


class FFmpegEngine:
    """ffmpeg binary plus a private working directory."""

    def __init__(self, settings: Settings | None = None):
        self.settings = settings or get_settings()
        self.ffmpeg_path = self.settings.ffmpeg_path
        self.work_dir: Optional[Path] = None
        self.version: Optional[str] = None
        self._exec_lock = asyncio.Lock()

    @property
    def loaded(self) -> bool:
        return self.work_dir is not None

    async def load(self) -> None:
        """Check the ffmpeg binary and create the working directory."""
        if self.loaded:
            return

        try:
            proc = await asyncio.create_subprocess_exec(
                self.ffmpeg_path, "-hide_banner", "-version",
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
            stdout, stderr = await proc.communicate()
        except OSError as e:
            raise EngineLoadError(f"Failed to start {self.ffmpeg_path}: {e}") from e

        if proc.returncode != 0:
            detail = stderr.decode(errors="replace").strip()
            raise EngineLoadError(f"{self.ffmpeg_path} -version failed: {detail}")

        lines = stdout.decode(errors="replace").splitlines()
        self.version = lines[0] if lines else "unknown"
        self.work_dir = Path(tempfile.mkdtemp(prefix=self.settings.engine_work_dir_prefix))
        logger.info(f"[ENGINE] Loaded {self.version}, working storage: {self.work_dir}")

    def _path(self, name: str) -> Path:
        if self.work_dir is None:
            raise EngineError("Transcoding engine is not loaded")
        if not name or name in (".", "..") or Path(name).name != name:
            raise EngineError(f"Invalid working storage name: {name!r}")
        return self.work_dir / name

    async def write_file(self, name: str, data: bytes) -> None:
        path = self._path(name)
        try:
            await asyncio.to_thread(path.write_bytes, data)
        except OSError as e:
            raise EngineStagingError(f"Failed to stage {name}: {e}") from e
        logger.debug(f"[ENGINE] Staged {name} ({len(data)} bytes)")

    async def read_file(self, name: str) -> bytes:
        path = self._path(name)
        try:
            return await asyncio.to_thread(path.read_bytes)
        except FileNotFoundError as e:
            raise EngineOutputError(f"Export output not found: {name}") from e
        except OSError as e:
            raise EngineOutputError(f"Failed to read {name}: {e}") from e

    async def delete_file(self, name: str) -> bool:
        path = self._path(name)
        try:
            await asyncio.to_thread(path.unlink)
        except FileNotFoundError:
            return False
        return True

    def list_files(self) -> list[str]:
        if self.work_dir is None:
            return []
        return sorted(p.name for p in self.work_dir.iterdir())

    async def exec(self, args: list[str]) -> None:
        """Run ffmpeg with ``args`` inside the working directory.

        Raises:
            EngineInvocationError: If ffmpeg cannot start or exits non-zero
        """
        if self.work_dir is None:
            raise EngineError("Transcoding engine is not loaded")

        cmd = [self.ffmpeg_path, "-y", "-hide_banner", "-nostdin", *args]
        async with self._exec_lock:
            logger.info(f"[ENGINE] Running ffmpeg with {len(args)} args")
            try:
                proc = await asyncio.create_subprocess_exec(
                    *cmd,
                    cwd=str(self.work_dir),
                    stdout=asyncio.subprocess.PIPE,
                    stderr=asyncio.subprocess.PIPE,
                )
                _, stderr = await proc.communicate()
            except OSError as e:
                raise EngineInvocationError(stderr=str(e)) from e

        if proc.returncode != 0:
            detail = stderr.decode(errors="replace").strip()[-STDERR_TAIL_CHARS:]
            raise EngineInvocationError(proc.returncode, detail)

    def close(self) -> None:
        """Remove the working directory."""
        if self.work_dir is not None:
            shutil.rmtree(self.work_dir, ignore_errors=True)
            self.work_dir = None


# ============================================================================
# Process-wide engine
# ============================================================================

_engine: Optional[FFmpegEngine] = None
_engine_lock: Optional[asyncio.Lock] = None


async def get_engine() -> FFmpegEngine:
    """Return the shared engine, loading it on first use.

    A failed load is not cached, so the next export tries again. The engine
    itself serializes invocations; callers must not interleave two exports'
    staging in the same working storage.
    """
    global _engine, _engine_lock

    if _engine is not None:
        return _engine
    if _engine_lock is None:
        _engine_lock = asyncio.Lock()

    async with _engine_lock:
        if _engine is None:
            engine = FFmpegEngine()
            await engine.load()
            _engine = engine
    return _engine


def is_engine_loaded() -> bool:
    return _engine is not None


def reset_engine() -> None:
    """Drop the shared engine and its working storage."""
    global _engine, _engine_lock
    if _engine is not None:
        _engine.close()
    _engine = None
    _engine_lock = None
