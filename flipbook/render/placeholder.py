from PIL import Image, ImageDraw, ImageFont

from flipbook.render.imaging import encode_image
from flipbook.render.models import RenderOptions

_TEXT_COLOR = (51, 51, 51)
_MUTED_COLOR = (136, 136, 136)
_ERROR_BACKGROUND = (248, 249, 250)
_ERROR_COLOR = (220, 53, 69)


def _font(size: int) -> ImageFont.FreeTypeFont | ImageFont.ImageFont:
    return ImageFont.load_default(size=size)


def _draw_centered(
    draw: ImageDraw.ImageDraw,
    width: int,
    y: int,
    text: str,
    font: ImageFont.FreeTypeFont | ImageFont.ImageFont,
    fill: tuple[int, int, int],
) -> None:
    left, _, right, _ = draw.textbbox((0, 0), text, font=font)
    draw.text(((width - (right - left)) / 2, y), text, font=font, fill=fill)


def _scaled(options: RenderOptions, base: int) -> int:
    return max(8, round(base * options.width / 800))


def error_image(options: RenderOptions) -> bytes:
    """Image delivered when every conversion strategy failed or timed out."""
    image = Image.new("RGB", (options.width, options.height), _ERROR_BACKGROUND)
    draw = ImageDraw.Draw(image)
    middle = options.height // 2
    _draw_centered(
        draw, options.width, middle - _scaled(options, 24), "Error Loading Page",
        _font(_scaled(options, 24)), _ERROR_COLOR,
    )
    _draw_centered(
        draw, options.width, middle + _scaled(options, 12),
        "Please try again or contact support", _font(_scaled(options, 16)), _MUTED_COLOR,
    )
    return encode_image(image, options.format, options.quality)


def no_text_image(
    options: RenderOptions,
    title: str,
    page_number: int,
    byte_size: int,
) -> bytes:
    """Informative page for documents without extractable text (scans, images)."""
    image = Image.new("RGB", (options.width, options.height), (255, 255, 255))
    draw = ImageDraw.Draw(image)
    draw.rectangle(
        (0, 0, options.width - 1, options.height - 1), outline=(221, 221, 221), width=2
    )

    y = _scaled(options, 60)
    lines = (
        (title or "Untitled document", _scaled(options, 24), _TEXT_COLOR),
        (f"Page {page_number}", _scaled(options, 18), _MUTED_COLOR),
        (f"{byte_size:,} bytes", _scaled(options, 14), _MUTED_COLOR),
        ("This page has no extractable text", _scaled(options, 16), _TEXT_COLOR),
    )
    for text, size, color in lines:
        _draw_centered(draw, options.width, y, text, _font(size), color)
        y += size * 2
    return encode_image(image, options.format, options.quality)
