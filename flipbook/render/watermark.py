from PIL import Image, ImageColor, ImageDraw, ImageFont

from flipbook.render.imaging import decode_image, encode_image
from flipbook.render.models import ImageFormat, Quality, WatermarkConfig, WatermarkPosition

_CORNER_MARGIN = 20
_TILE_SPACING = 3


def _text_stamp(config: WatermarkConfig, rotation: float) -> Image.Image:
    font = ImageFont.load_default(size=config.font_size)
    measure = ImageDraw.Draw(Image.new("RGBA", (1, 1)))
    left, top, right, bottom = measure.textbbox((0, 0), config.text, font=font)

    red, green, blue = ImageColor.getrgb(config.color)[:3]
    alpha = round(255 * config.opacity)
    stamp = Image.new("RGBA", (right - left + 2, bottom - top + 2), (0, 0, 0, 0))
    ImageDraw.Draw(stamp).text(
        (-left + 1, -top + 1), config.text, font=font, fill=(red, green, blue, alpha)
    )
    if rotation:
        stamp = stamp.rotate(rotation, expand=True, resample=Image.Resampling.BICUBIC)
    return stamp


def apply_watermark(
    image_bytes: bytes,
    config: WatermarkConfig,
    fmt: ImageFormat,
    quality: Quality,
) -> bytes:
    """Stamp ``config.text`` over an encoded page and re-encode it."""
    if not config.text or config.opacity == 0:
        return image_bytes

    page = decode_image(image_bytes).convert("RGBA")
    overlay = Image.new("RGBA", page.size, (0, 0, 0, 0))
    width, height = page.size

    if config.position is WatermarkPosition.CORNER:
        stamp = _text_stamp(config, 0)
        overlay.alpha_composite(
            stamp,
            (
                max(0, width - stamp.width - _CORNER_MARGIN),
                max(0, height - stamp.height - _CORNER_MARGIN),
            ),
        )
    elif config.position is WatermarkPosition.MULTIPLE:
        stamp = _text_stamp(config, config.rotation)
        step_x = stamp.width * _TILE_SPACING // 2 or 1
        step_y = stamp.height * _TILE_SPACING // 2 or 1
        for y in range(0, height, step_y):
            for x in range(0, width, step_x):
                overlay.alpha_composite(_crop_to(stamp, width - x, height - y), (x, y))
    else:
        rotation = config.rotation if config.position is WatermarkPosition.DIAGONAL else 0
        stamp = _crop_to(_text_stamp(config, rotation), width, height)
        overlay.alpha_composite(
            stamp, ((width - stamp.width) // 2, (height - stamp.height) // 2)
        )

    marked = Image.alpha_composite(page, overlay).convert("RGB")
    return encode_image(marked, fmt, quality)


def _crop_to(stamp: Image.Image, max_width: int, max_height: int) -> Image.Image:
    if stamp.width <= max_width and stamp.height <= max_height:
        return stamp
    return stamp.crop((0, 0, min(stamp.width, max_width), min(stamp.height, max_height)))
