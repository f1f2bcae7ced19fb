"""Font loading for the rasterizer."""

from __future__ import annotations

import logging
from functools import lru_cache

from PIL import ImageFont

logger = logging.getLogger(__name__)

FontType = ImageFont.FreeTypeFont | ImageFont.ImageFont


@lru_cache(maxsize=64)
def load_font(size: int, font_path: str | None = None) -> FontType:
    """Return a font of ``size`` pixels.

    A configured TrueType file is preferred; when it is missing or unreadable the
    scalable face bundled with Pillow is used instead.
    """

    size = max(1, int(size))
    if font_path:
        try:
            return ImageFont.truetype(font_path, size)
        except OSError:
            logger.warning(
                "rendering.font.fallback",
                extra={"font_path": font_path, "size": size},
            )
    return ImageFont.load_default(size=size)


def stroke_width_for(size: int) -> int:
    """Stroke used to embolden the face, drawn in the fill colour."""

    return max(1, round(size / 24))


__all__ = ["FontType", "load_font", "stroke_width_for"]
