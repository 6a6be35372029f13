from io import BytesIO

from PIL import Image
from pillow_heif import register_heif_opener

# HEIC/HEIF decoding for every Image.open in the process.
register_heif_opener()


def open_image(data: bytes) -> Image.Image:
    """Decode JPEG, PNG, WebP or HEIC/HEIF bytes into a fully loaded image.

    Raises:
        PIL.UnidentifiedImageError: if the bytes are not a supported image.
        OSError: if the image is truncated or cannot be decoded.
    """
    image = Image.open(BytesIO(data))
    image.load()
    return image
