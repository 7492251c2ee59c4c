"""Caption rasterization with Pillow.

Each overlay becomes a transparent PNG the size of the export frame. The
image carries its own position, so the compositing stage always places it at
0:0 and only gates it in time.
"""

import io
import logging
from dataclasses import dataclass
from functools import lru_cache
from typing import Optional

from PIL import Image, ImageColor, ImageDraw, ImageFont

from reelcut.config import Settings, get_settings
from reelcut.exceptions import OverlayRasterError
from reelcut.schemas.timeline import Overlay, TargetGeometry

logger = logging.getLogger(__name__)


@dataclass
class RasterResult:
    """Outcome of rasterizing one overlay: PNG bytes, or the reason it was skipped."""

    overlay: Overlay
    png: Optional[bytes] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.png is not None


@lru_cache(maxsize=32)
def _load_font(candidates: tuple[str, ...], size: int) -> ImageFont.FreeTypeFont | ImageFont.ImageFont:
    for candidate_path in candidates:
        try:
            font = ImageFont.truetype(candidate_path, size)
            logger.debug(f"[OVERLAY] Loaded font: {candidate_path}")
            return font
        except OSError:
            continue

    logger.warning("[OVERLAY] No suitable font found, using PIL default")
    return ImageFont.load_default(size=size)


def _to_rgba(color: str, opacity: float = 1.0) -> tuple[int, int, int, int]:
    rgb = ImageColor.getrgb(color)
    alpha = rgb[3] if len(rgb) == 4 else 255
    return (rgb[0], rgb[1], rgb[2], round(alpha * opacity))


class OverlayRasterizer:
    """Draws overlays onto transparent frames of a fixed target geometry."""

    def __init__(self, geometry: TargetGeometry, settings: Settings | None = None):
        self.width = geometry.width
        self.height = geometry.height
        self.settings = settings or get_settings()

    def font_size_px(self, overlay: Overlay) -> int:
        """Scale reference font units to the export width."""
        return round(overlay.font_size / self.settings.overlay_reference_width * self.width)

    def padding_px(self) -> int:
        return round(self.width * self.settings.overlay_padding_ratio)

    def anchor(self, overlay: Overlay) -> tuple[float, float]:
        return (overlay.x / 100 * self.width, overlay.y / 100 * self.height)

    def backdrop_box(self, overlay: Overlay, text_width: float) -> tuple[float, float, float, float]:
        """Backdrop rectangle (x0, y0, x1, y1) centered on the anchor."""
        padding = self.padding_px()
        box_width = text_width + padding * 2
        box_height = self.font_size_px(overlay) + padding * 2
        anchor_x, anchor_y = self.anchor(overlay)
        x0 = anchor_x - box_width / 2
        y0 = anchor_y - box_height / 2
        return (x0, y0, x0 + box_width, y0 + box_height)

    def _font_for(self, overlay: Overlay):
        candidates = (
            self.settings.font_bold_candidates
            if overlay.weight == "bold"
            else self.settings.font_regular_candidates
        )
        return _load_font(tuple(candidates), self.font_size_px(overlay))

    def render_image(self, overlay: Overlay) -> Image.Image:
        """Draw the backdrop and text for one overlay."""
        font = self._font_for(overlay)
        # Canvas text is single-line
        text = overlay.text.replace("\n", " ")

        img = Image.new("RGBA", (self.width, self.height), (0, 0, 0, 0))
        draw = ImageDraw.Draw(img)

        text_width = draw.textlength(text, font=font)
        box = self.backdrop_box(overlay, text_width)
        draw.rectangle(box, fill=_to_rgba(overlay.background_color, overlay.background_opacity))

        anchor_x, anchor_y = self.anchor(overlay)
        # Middle anchor sits above the visual center of most glyphs
        bias = self.font_size_px(overlay) * self.settings.overlay_text_bias_ratio
        draw.text(
            (anchor_x, anchor_y + bias),
            text,
            font=font,
            fill=_to_rgba(overlay.color),
            anchor="mm",
        )
        return img

    def encode(self, overlay: Overlay) -> bytes:
        """Render and PNG-encode an overlay.

        Raises:
            OverlayRasterError: If drawing or encoding fails
        """
        try:
            img = self.render_image(overlay)
            buffer = io.BytesIO()
            img.save(buffer, "PNG")
        except (OSError, ValueError) as e:
            raise OverlayRasterError(overlay.id, str(e)) from e
        return buffer.getvalue()

    def rasterize(self, overlay: Overlay) -> RasterResult:
        """Rasterize one overlay, converting failures into a skip result."""
        try:
            png = self.encode(overlay)
        except OverlayRasterError as e:
            logger.warning(f"[OVERLAY] Skipping overlay {overlay.id}: {e.message}")
            return RasterResult(overlay=overlay, error=e.message)

        logger.info(f"[OVERLAY] Rasterized overlay {overlay.id} ({self.width}x{self.height}, {len(png)} bytes)")
        return RasterResult(overlay=overlay, png=png)
