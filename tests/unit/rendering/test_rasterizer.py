from __future__ import annotations

import base64
import io

import pytest
from PIL import Image

from src.signboard.domain.models import DisplayOptions, Position, Resolution
from src.signboard.exceptions import InvalidImageData
from src.signboard.rendering import (
    MIN_REFERENCE_FONT,
    Rasterizer,
    compute_layout,
    reference_frame,
    split_lines,
)

pytestmark = pytest.mark.unit

FULL_HD = Resolution(1920, 1080)


@pytest.mark.parametrize(
    "resolution, frame",
    [
        (Resolution(800, 200), (720, 240)),
        (Resolution(720, 240), (600, 300)),
        (Resolution(1000, 500), (560, 315)),
        (FULL_HD, (560, 315)),
        (Resolution(1200, 800), (400, 400)),
        (Resolution(1080, 1920), (400, 400)),
    ],
)
def test_reference_frame_follows_aspect_ratio(resolution: Resolution, frame: tuple[int, int]) -> None:
    assert reference_frame(resolution) == frame


def test_blank_lines_are_dropped() -> None:
    assert split_lines("first\n   \n\nsecond\n") == ["first", "second"]


def test_three_lines_on_full_hd_hit_the_floor_and_scale_up() -> None:
    content = "Meeting room A\nFloor 3\nWelcome"

    layout = compute_layout(content, 16, FULL_HD)

    assert (layout.reference_width, layout.reference_height) == (560, 315)
    assert layout.line_count == 3
    assert layout.base_scale == pytest.approx(560 / 1920)
    cap = max(315 / 3 * 0.8, 560 / len("Meeting room A") * 1.2, 16 * layout.base_scale * 0.3)
    assert MIN_REFERENCE_FONT <= layout.reference_font_size
    assert layout.reference_font_size <= max(cap, MIN_REFERENCE_FONT)
    assert layout.reference_font_size == pytest.approx(12.0)
    assert layout.final_scale == pytest.approx(1920 / 560)
    assert layout.final_font_size == pytest.approx(layout.reference_font_size * 1920 / 560)


def test_font_is_capped_by_the_largest_fit_bound() -> None:
    content = "\n".join(["x" * 50] * 10)

    layout = compute_layout(content, 120, Resolution(400, 400))

    # height cap 32 and width cap 9.6 both lose to the 30% floor of 36
    assert layout.reference_font_size == pytest.approx(36.0)
    assert layout.final_font_size == pytest.approx(36.0)


def test_short_single_line_keeps_requested_size() -> None:
    layout = compute_layout("Hello", 120, Resolution(400, 400))

    assert layout.reference_font_size == pytest.approx(120.0)


def test_empty_layout_uses_one_line() -> None:
    layout = compute_layout("", 16, FULL_HD)

    assert layout.lines == ()
    assert layout.line_count == 1
    assert layout.reference_font_size == pytest.approx(12.0)


def test_render_matches_device_resolution_exactly() -> None:
    artifact = Rasterizer().render("Hello", DisplayOptions(), Resolution(720, 240))

    assert (artifact.width, artifact.height) == (720, 240)
    assert artifact.image.size == (720, 240)
    assert len(artifact.pixels) == 720 * 240 * 3


def test_render_is_deterministic() -> None:
    options = DisplayOptions(font_size=24, color="#FF0000", background_color="#000033")
    rasterizer = Rasterizer()

    first = rasterizer.render("Line one\nLine two", options, FULL_HD)
    second = rasterizer.render("Line one\nLine two", options, FULL_HD)

    assert first.pixels == second.pixels
    assert first.to_png() == second.to_png()


def test_background_and_text_colours_are_applied() -> None:
    options = DisplayOptions(color="#FFFF00", background_color="#0000FF")

    artifact = Rasterizer().render("HELLO", options, Resolution(400, 400))

    colours = {colour for _, colour in artifact.image.getcolors(maxcolors=1 << 16)}
    assert (0, 0, 255) in colours
    assert (255, 255, 0) in colours
    assert artifact.image.getpixel((0, 0)) == (0, 0, 255)


@pytest.mark.parametrize(
    "position",
    [Position.LEFT, Position.CENTER, Position.RIGHT],
)
def test_horizontal_position_uses_margin(position: Position) -> None:
    options = DisplayOptions(position=position)
    artifact = Rasterizer().render("MMMM", options, FULL_HD)

    left, top, right, bottom = artifact.image.getbbox()
    margin = max(1920 * 0.05, 20)
    if position is Position.LEFT:
        assert margin - 5 <= left < 960
    elif position is Position.RIGHT:
        assert 960 < right <= 1920 - margin + 5
    else:
        assert abs((left + right) / 2 - 960) <= 10
    assert abs((top + bottom) / 2 - 540) <= 40


def test_lines_are_stacked_around_the_vertical_centre() -> None:
    artifact = Rasterizer().render("TOP\nBOTTOM", DisplayOptions(), FULL_HD)

    _, top, _, bottom = artifact.image.getbbox()
    assert top < 540 < bottom


def test_png_and_base64_encode_the_same_bitmap() -> None:
    artifact = Rasterizer().render("PNG", DisplayOptions(), Resolution(200, 100))

    decoded = Image.open(io.BytesIO(base64.b64decode(artifact.to_base64())))

    assert decoded.format == "PNG"
    assert decoded.size == (200, 100)
    assert decoded.convert("RGB").tobytes() == artifact.pixels


def test_missing_font_file_falls_back_to_default(tmp_path) -> None:
    rasterizer = Rasterizer(font_path=tmp_path / "missing.ttf")

    artifact = rasterizer.render("Fallback", DisplayOptions(), Resolution(320, 160))

    assert artifact.image.getbbox() is not None


def test_render_image_letterboxes_on_background() -> None:
    source = Image.new("RGB", (100, 100), (255, 0, 0))
    buffer = io.BytesIO()
    source.save(buffer, format="PNG")
    options = DisplayOptions(background_color="#00FF00")

    artifact = Rasterizer().render_image(buffer.getvalue(), options, Resolution(400, 200))

    assert artifact.image.size == (400, 200)
    assert artifact.image.getpixel((10, 100)) == (0, 255, 0)
    assert artifact.image.getpixel((200, 100)) == (255, 0, 0)
    assert artifact.image.getpixel((100, 100)) == (255, 0, 0)
    assert artifact.image.getpixel((99, 100)) == (0, 255, 0)


def test_render_image_rejects_garbage() -> None:
    with pytest.raises(InvalidImageData):
        Rasterizer().render_image(b"not an image", DisplayOptions(), FULL_HD)
