"""
Pytest fixtures for reelcut tests.

Most tests run against an in-memory fake engine. Tests that need a real
ffmpeg binary are marked with @pytest.mark.requires_ffmpeg and are skipped
when ffmpeg is not on PATH:

    pytest -m "not requires_ffmpeg"
"""

import asyncio
import shutil
import tempfile
from pathlib import Path

import pytest

from reelcut.exceptions import EngineInvocationError, EngineOutputError
from reelcut.schemas.timeline import AudioAsset, AudioMix, EditSession, Overlay, SourceVideo, Timeline


def pytest_collection_modifyitems(config, items):
    if shutil.which("ffmpeg"):
        return
    skip = pytest.mark.skip(reason="ffmpeg not available")
    for item in items:
        if "requires_ffmpeg" in item.keywords:
            item.add_marker(skip)


class FakeEngine:
    """In-memory stand-in for the ffmpeg engine."""

    def __init__(self, output: bytes = b"fake-mp4", exec_error: Exception | None = None):
        self.output = output
        self.exec_error = exec_error
        self.files: dict[str, bytes] = {}
        self.written: list[str] = []
        self.deleted: list[str] = []
        self.exec_calls: list[list[str]] = []

    async def write_file(self, name: str, data: bytes) -> None:
        self.files[name] = data
        self.written.append(name)

    async def read_file(self, name: str) -> bytes:
        if name not in self.files:
            raise EngineOutputError(f"Export output not found: {name}")
        return self.files[name]

    async def delete_file(self, name: str) -> bool:
        self.deleted.append(name)
        return self.files.pop(name, None) is not None

    async def exec(self, args: list[str]) -> None:
        self.exec_calls.append(list(args))
        if self.exec_error is not None:
            raise self.exec_error
        for i, arg in enumerate(args[:-1]):
            if arg == "-i" and args[i + 1] not in self.files:
                raise EngineInvocationError(1, f"{args[i + 1]}: No such file or directory")
        self.files[args[-1]] = self.output


class BlockingEngine(FakeEngine):
    """Fake engine whose exec waits until released."""

    def __init__(self):
        super().__init__()
        self.started = asyncio.Event()
        self.proceed = asyncio.Event()

    async def exec(self, args: list[str]) -> None:
        self.started.set()
        await self.proceed.wait()
        await super().exec(args)


@pytest.fixture
def fake_engine() -> FakeEngine:
    return FakeEngine()


@pytest.fixture
def failing_engine() -> FakeEngine:
    return FakeEngine(exec_error=EngineInvocationError(1, "Invalid filter graph"))


@pytest.fixture
def blocking_engine() -> BlockingEngine:
    return BlockingEngine()


@pytest.fixture
def make_timeline():
    """Factory for timelines with sensible defaults."""
    def _make(
        trim_start: float = 0.0,
        trim_end: float = 10.0,
        overlays: list[Overlay] | None = None,
        use_original_audio: bool = True,
        music: AudioAsset | None = None,
        aspect_ratio: str = "9:16",
    ) -> Timeline:
        return Timeline(
            trim_start=trim_start,
            trim_end=trim_end,
            source_duration=max(trim_end, 30.0),
            aspect_ratio=aspect_ratio,
            overlays=overlays or [],
            audio_mix=AudioMix(use_original_audio=use_original_audio, music=music),
        )
    return _make


@pytest.fixture
def music_asset() -> AudioAsset:
    return AudioAsset(data=b"ID3-fake-mp3", extension="mp3")


@pytest.fixture
def source_video() -> SourceVideo:
    return SourceVideo(data=b"fake-mp4-source", filename="clip.mp4", content_type="video/mp4")


@pytest.fixture
def session(source_video: SourceVideo) -> EditSession:
    """Session with a 20 second source loaded."""
    session = EditSession()
    session.load_video(source_video, 20.0)
    return session


@pytest.fixture
def temp_output_dir():
    """Temporary directory for test outputs."""
    with tempfile.TemporaryDirectory(prefix="reelcut_test_") as tmpdir:
        yield Path(tmpdir)
