"""Text and image rasterization."""

from .fonts import load_font
from .rasterizer import (
    MIN_REFERENCE_FONT,
    FontLayout,
    RasterArtifact,
    Rasterizer,
    compute_layout,
    reference_frame,
    split_lines,
)

__all__ = [
    "FontLayout",
    "MIN_REFERENCE_FONT",
    "RasterArtifact",
    "Rasterizer",
    "compute_layout",
    "load_font",
    "reference_frame",
    "split_lines",
]
