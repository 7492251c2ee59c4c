import logging
from functools import lru_cache
from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="REELCUT_", env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    # Application
    app_name: str = "reelcut"
    app_version: str = "0.1.0"
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"

    # FFmpeg
    ffmpeg_path: str = "ffmpeg"
    ffprobe_path: str = "ffprobe"
    engine_work_dir_prefix: str = "reelcut_engine_"

    # Working storage file names
    input_filename: str = "input.mp4"
    output_filename: str = "output.mp4"

    # Output encoding
    video_codec: str = "libx264"
    video_profile: str = "high"
    video_preset: str = "medium"
    video_crf: int = 18
    pixel_format: str = "yuv420p"
    movflags: str = "+faststart"

    # Overlay rasterization
    # Width the caption font-size slider was calibrated against
    overlay_reference_width: int = 1080
    overlay_padding_ratio: float = 0.02
    overlay_text_bias_ratio: float = 0.08
    font_regular_candidates: list[str] = [
        "/usr/share/fonts/truetype/inter/Inter-Medium.ttf",
        "/System/Library/Fonts/Helvetica.ttc",
        "/usr/share/fonts/truetype/dejavu/DejaVuSans.ttf",
        "/usr/share/fonts/TTF/DejaVuSans.ttf",
    ]
    font_bold_candidates: list[str] = [
        "/usr/share/fonts/truetype/inter/Inter-Bold.ttf",
        "/System/Library/Fonts/Helvetica.ttc",
        "/usr/share/fonts/truetype/dejavu/DejaVuSans-Bold.ttf",
        "/usr/share/fonts/TTF/DejaVuSans-Bold.ttf",
    ]

    # Editing constraints
    min_clip_duration_s: float = 0.5


@lru_cache
def get_settings() -> Settings:
    return Settings()


def configure_logging(level: str | None = None) -> None:
    """Apply the configured log level to the package logger."""
    settings = get_settings()
    logging.basicConfig(format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    logging.getLogger("reelcut").setLevel(level or settings.log_level)
