from dataclasses import asdict, dataclass
from typing import Any

from flipbook.render.models import ImageFormat, Quality, RenderOptions

DEFAULT_PRIORITY = 5
HIGH_PRIORITY = 10


@dataclass(frozen=True)
class ProcessingOptions:
    """Per-job conversion settings, stored as JSON on the job row."""

    quality: Quality = Quality.MEDIUM
    width: int = 800
    height: int = 1200
    format: ImageFormat = ImageFormat.WEBP
    max_pages: int | None = None
    extract_text: bool = True
    generate_thumbnails: bool = True

    def __post_init__(self) -> None:
        object.__setattr__(self, "quality", Quality(self.quality))
        object.__setattr__(self, "format", ImageFormat(self.format))
        if self.max_pages is not None and self.max_pages < 1:
            raise ValueError(f"max_pages must be positive, got {self.max_pages}")

    @property
    def priority(self) -> int:
        """High-quality jobs are claimed ahead of everything else."""
        return HIGH_PRIORITY if self.quality is Quality.HIGH else DEFAULT_PRIORITY

    def render_options(self) -> RenderOptions:
        return RenderOptions(
            width=self.width, height=self.height, quality=self.quality, format=self.format
        )

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["quality"] = self.quality.value
        data["format"] = self.format.value
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> "ProcessingOptions":
        """Build options from a job row; unknown keys are ignored."""
        if not data:
            return cls()
        known = {name: data[name] for name in cls.__dataclass_fields__ if name in data}
        return cls(**known)


@dataclass
class ProcessingResult:
    """Outcome of one successful processing run."""

    document_id: int
    total_pages: int
    text_extracted: bool
    warnings: list[str]


def page_image_key(document_id: int, page_number: int, fmt: ImageFormat) -> str:
    return f"pages/{document_id}/{page_number}.{fmt.value}"


def page_thumbnail_key(document_id: int, page_number: int) -> str:
    return f"thumbnails/{document_id}/{page_number}.jpeg"
