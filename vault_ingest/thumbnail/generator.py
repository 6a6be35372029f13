import base64
from dataclasses import dataclass
from io import BytesIO

from PIL import Image

from vault_ingest.resources.images import open_image

DEFAULT_MAX_SIZE = 200
DEFAULT_QUALITY = 80


@dataclass(frozen=True)
class Thumbnail:
    data_url: str
    width: int
    height: int
    size_bytes: int
    format: str = "webp"


class ThumbnailGenerator:
    """Downscales a page or photo into a small WebP data URL for previews."""

    def __init__(self, max_size: int = DEFAULT_MAX_SIZE, quality: int = DEFAULT_QUALITY) -> None:
        self._max_size = max_size
        self._quality = quality

    def generate(self, image: Image.Image) -> Thumbnail:
        thumb = image.convert("RGB") if image.mode not in ("RGB", "RGBA") else image.copy()
        # thumbnail() only ever shrinks and keeps the aspect ratio.
        thumb.thumbnail((self._max_size, self._max_size), Image.Resampling.LANCZOS)

        buffer = BytesIO()
        thumb.save(buffer, format="WEBP", quality=self._quality)
        encoded = buffer.getvalue()
        return Thumbnail(
            data_url="data:image/webp;base64," + base64.b64encode(encoded).decode("ascii"),
            width=thumb.width,
            height=thumb.height,
            size_bytes=len(encoded),
        )

    def generate_from_bytes(self, data: bytes) -> Thumbnail:
        return self.generate(open_image(data))
