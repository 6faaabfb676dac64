# FILE: bukedlist/images.py
from io import BytesIO
from typing import Optional

from PIL import Image, UnidentifiedImageError

# what a data URL carries when the bytes are not a recognizable image
FALLBACK_IMAGE_TYPE = "application/octet-stream"


def guess_image_type(blob: Optional[bytes]) -> Optional[str]:
    """MIME type of an image blob from its header, or None when Pillow can't tell."""
    if not blob:
        return None
    try:
        with Image.open(BytesIO(blob)) as im:
            return Image.MIME.get(im.format)
    except (UnidentifiedImageError, Image.DecompressionBombError, OSError, ValueError):
        return None
