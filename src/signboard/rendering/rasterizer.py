"""Rasterize message text or uploaded images into device-sized bitmaps.

Text layout is computed in a small reference frame chosen by the panel's aspect
ratio and then scaled up to the physical resolution, so the same message looks
alike on a 720x240 strip and on a 1920x1080 screen.
"""

from __future__ import annotations

import base64
import io
import logging
from dataclasses import dataclass
from pathlib import Path

from PIL import Image, ImageDraw, ImageOps, UnidentifiedImageError

from ..domain.models import DisplayOptions, Position, Resolution
from ..exceptions import InvalidImageData
from .fonts import load_font, stroke_width_for

logger = logging.getLogger(__name__)

MIN_REFERENCE_FONT = 12.0
HEIGHT_FILL = 0.8
WIDTH_FILL = 1.2
MIN_FONT_RATIO = 0.3
MARGIN_RATIO = 0.05
MARGIN_MIN_PX = 20.0

# (aspect ratio lower bound, reference width, reference height)
_REFERENCE_FRAMES: tuple[tuple[float, int, int], ...] = (
    (3.0, 720, 240),
    (2.0, 600, 300),
    (1.5, 560, 315),
)
_SQUARE_FRAME = (400, 400)


def reference_frame(resolution: Resolution) -> tuple[int, int]:
    aspect = resolution.aspect_ratio
    for bound, width, height in _REFERENCE_FRAMES:
        if aspect > bound:
            return width, height
    return _SQUARE_FRAME


def split_lines(content: str) -> list[str]:
    return [line for line in content.splitlines() if line.strip()]


@dataclass(frozen=True, slots=True)
class FontLayout:
    """Font sizing for one message on one resolution."""

    reference_width: int
    reference_height: int
    base_scale: float
    reference_font_size: float
    final_scale: float
    final_font_size: float
    lines: tuple[str, ...]

    @property
    def line_count(self) -> int:
        return max(len(self.lines), 1)

    @property
    def line_height(self) -> float:
        return self.final_font_size


def compute_layout(content: str, font_size: int, resolution: Resolution) -> FontLayout:
    lines = split_lines(content)
    line_count = max(len(lines), 1)
    ref_w, ref_h = reference_frame(resolution)

    base_scale = min(ref_w / resolution.width, ref_h / resolution.height)
    font = font_size * base_scale

    by_height = ref_h / line_count * HEIGHT_FILL
    longest = max((len(line) for line in lines), default=0)
    by_width = ref_w / longest * WIDTH_FILL if longest else font
    min_size = font_size * base_scale * MIN_FONT_RATIO

    font = min(font, max(by_height, by_width, min_size))
    font = max(font, MIN_REFERENCE_FONT)

    final_scale = min(resolution.width / ref_w, resolution.height / ref_h)
    return FontLayout(
        reference_width=ref_w,
        reference_height=ref_h,
        base_scale=base_scale,
        reference_font_size=font,
        final_scale=final_scale,
        final_font_size=font * final_scale,
        lines=tuple(lines),
    )


@dataclass(frozen=True, slots=True)
class RasterArtifact:
    """A bitmap of exactly the device resolution."""

    width: int
    height: int
    image: Image.Image
    layout: FontLayout | None = None

    @property
    def pixels(self) -> bytes:
        return self.image.tobytes()

    def to_png(self) -> bytes:
        buffer = io.BytesIO()
        self.image.save(buffer, format="PNG")
        return buffer.getvalue()

    def to_base64(self) -> str:
        return base64.b64encode(self.to_png()).decode("ascii")


class Rasterizer:
    """Produce bitmaps for text and image submissions."""

    def __init__(self, font_path: Path | str | None = None) -> None:
        self._font_path = str(font_path) if font_path else None

    def preview_layout(self, content: str, options: DisplayOptions, resolution: Resolution) -> FontLayout:
        return compute_layout(content, options.font_size, resolution)

    def render(
        self, content: str, options: DisplayOptions, resolution: Resolution
    ) -> RasterArtifact:
        layout = compute_layout(content, options.font_size, resolution)
        width, height = resolution.width, resolution.height
        image = Image.new("RGB", (width, height), options.background_color)
        draw = ImageDraw.Draw(image)

        size = max(1, round(layout.final_font_size))
        font = load_font(size, self._font_path)
        line_height = layout.line_height
        start_y = (height - layout.line_count * line_height) / 2 + line_height / 2
        margin = max(width * MARGIN_RATIO, MARGIN_MIN_PX)
        if options.position is Position.LEFT:
            x, anchor = margin, "lm"
        elif options.position is Position.RIGHT:
            x, anchor = width - margin, "rm"
        else:
            x, anchor = width / 2, "mm"

        stroke = stroke_width_for(size)
        for index, line in enumerate(layout.lines):
            draw.text(
                (x, start_y + index * line_height),
                line,
                fill=options.color,
                font=font,
                anchor=anchor,
                stroke_width=stroke,
                stroke_fill=options.color,
            )

        logger.debug(
            "rendering.text.rendered",
            extra={
                "width": width,
                "height": height,
                "lines": layout.line_count,
                "font_size": size,
            },
        )
        return RasterArtifact(width=width, height=height, image=image, layout=layout)

    def render_image(
        self, data: bytes, options: DisplayOptions, resolution: Resolution
    ) -> RasterArtifact:
        """Fit an uploaded image inside the panel, letterboxed on the background."""
        try:
            with Image.open(io.BytesIO(data)) as source:
                source.load()
                picture = ImageOps.exif_transpose(source).convert("RGB")
        except (UnidentifiedImageError, OSError) as exc:
            raise InvalidImageData("image_data is not a decodable image") from exc

        width, height = resolution.width, resolution.height
        fitted = ImageOps.contain(picture, (width, height))
        canvas = Image.new("RGB", (width, height), options.background_color)
        canvas.paste(fitted, ((width - fitted.width) // 2, (height - fitted.height) // 2))
        logger.debug(
            "rendering.image.rendered",
            extra={"width": width, "height": height, "source": picture.size},
        )
        return RasterArtifact(width=width, height=height, image=canvas)


__all__ = [
    "FontLayout",
    "MIN_REFERENCE_FONT",
    "RasterArtifact",
    "Rasterizer",
    "compute_layout",
    "reference_frame",
    "split_lines",
]
