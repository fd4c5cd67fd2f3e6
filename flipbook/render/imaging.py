import io

from PIL import Image, ImageOps

from flipbook.render.models import ImageFormat, Quality

QUALITY_LEVELS: dict[Quality, int] = {
    Quality.LOW: 60,
    Quality.MEDIUM: 80,
    Quality.HIGH: 95,
}

BACKGROUND = (255, 255, 255)


def fit_to_canvas(image: Image.Image, width: int, height: int) -> Image.Image:
    """Scale ``image`` to fit inside width x height and center it on white."""
    if image.mode in ("RGBA", "LA", "P"):
        image = image.convert("RGBA")
        flattened = Image.new("RGB", image.size, BACKGROUND)
        flattened.paste(image, mask=image.getchannel("A"))
        image = flattened
    elif image.mode != "RGB":
        image = image.convert("RGB")

    fitted = ImageOps.contain(image, (width, height))
    canvas = Image.new("RGB", (width, height), BACKGROUND)
    canvas.paste(fitted, ((width - fitted.width) // 2, (height - fitted.height) // 2))
    return canvas


def encode_image(image: Image.Image, fmt: ImageFormat, quality: Quality) -> bytes:
    buf = io.BytesIO()
    if fmt is ImageFormat.PNG:
        image.save(buf, format=fmt.pil_format, optimize=True)
    else:
        image.save(buf, format=fmt.pil_format, quality=QUALITY_LEVELS[quality])
    return buf.getvalue()


def decode_image(data: bytes) -> Image.Image:
    with Image.open(io.BytesIO(data)) as image:
        image.load()
        return image.copy()
