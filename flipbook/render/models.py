from dataclasses import dataclass
from enum import Enum


class Quality(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class ImageFormat(str, Enum):
    WEBP = "webp"
    JPEG = "jpeg"
    PNG = "png"

    @property
    def pil_format(self) -> str:
        return self.value.upper()

    @property
    def content_type(self) -> str:
        return f"image/{self.value}"


class WatermarkPosition(str, Enum):
    CENTER = "center"
    DIAGONAL = "diagonal"
    CORNER = "corner"
    MULTIPLE = "multiple"


@dataclass(frozen=True)
class WatermarkConfig:
    """Text stamped over a delivered page; applied per request, never cached."""

    text: str
    opacity: float = 0.1
    position: WatermarkPosition = WatermarkPosition.DIAGONAL
    font_size: int = 12
    color: str = "#000000"
    rotation: float = -45.0

    def __post_init__(self) -> None:
        if not 0.0 <= self.opacity <= 1.0:
            raise ValueError(f"Watermark opacity must be within 0..1, got {self.opacity}")
        if self.font_size <= 0:
            raise ValueError(f"Watermark font size must be positive, got {self.font_size}")
        object.__setattr__(self, "position", WatermarkPosition(self.position))


@dataclass(frozen=True)
class RenderOptions:
    width: int = 800
    height: int = 1200
    quality: Quality = Quality.MEDIUM
    format: ImageFormat = ImageFormat.WEBP
    watermark: WatermarkConfig | None = None

    def __post_init__(self) -> None:
        if self.width <= 0 or self.height <= 0:
            raise ValueError(
                f"Render size must be positive, got {self.width}x{self.height}"
            )
        object.__setattr__(self, "quality", Quality(self.quality))
        object.__setattr__(self, "format", ImageFormat(self.format))

    def without_watermark(self) -> "RenderOptions":
        if self.watermark is None:
            return self
        return RenderOptions(self.width, self.height, self.quality, self.format)


THUMBNAIL_OPTIONS = RenderOptions(
    width=200, height=280, quality=Quality.MEDIUM, format=ImageFormat.JPEG
)
