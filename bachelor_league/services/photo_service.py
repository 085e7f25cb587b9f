"""
Contestant photo processing with Pillow.

Uploads are checked for size, MIME type and pixel count, then flattened to
RGB, center-cropped square, scaled to PHOTO_OUTPUT_SIZE and re-encoded as JPEG.
"""

import logging
from io import BytesIO

from PIL import Image

from bachelor_league.services.errors import ValidationError
from bachelor_league.utils.constants import (
    MAX_PHOTO_SIZE,
    PHOTO_OUTPUT_SIZE,
    PHOTO_JPEG_QUALITY,
    ALLOWED_PHOTO_TYPES,
)

logger = logging.getLogger(__name__)

MAX_PHOTO_PIXELS = 25_000_000  # ~5000x5000

Image.MAX_IMAGE_PIXELS = MAX_PHOTO_PIXELS


def validate_photo(file_bytes: bytes, content_type: str) -> None:
    """
    Reject uploads that are too big, of the wrong type, or not decodable.

    Raises:
        ValidationError: field "photo" with the reason
    """
    if not file_bytes:
        raise ValidationError.for_field("photo", "Photo file is empty", "required")

    if len(file_bytes) > MAX_PHOTO_SIZE:
        raise ValidationError.for_field(
            "photo", f"Photo exceeds maximum of {MAX_PHOTO_SIZE // (1024 * 1024)}MB", "too_large"
        )

    if content_type not in ALLOWED_PHOTO_TYPES:
        raise ValidationError.for_field(
            "photo",
            f"Invalid file type '{content_type}'. Allowed: JPEG, PNG, WebP, HEIC",
            "invalid_type",
        )

    try:
        with Image.open(BytesIO(file_bytes)) as img:
            width, height = img.size
            if width * height > MAX_PHOTO_PIXELS:
                raise ValidationError.for_field(
                    "photo", f"Photo dimensions too large ({width}x{height})", "too_large"
                )
            img.verify()
    except ValidationError:
        raise
    except Image.DecompressionBombError:
        raise ValidationError.for_field("photo", "Photo dimensions too large", "too_large")
    except Exception as e:
        raise ValidationError.for_field("photo", f"Invalid or corrupted image: {e}", "corrupt")


def process_photo(image_bytes: bytes) -> bytes:
    """
    Square-crop, resize and JPEG-encode a photo.

    Returns:
        JPEG bytes of a PHOTO_OUTPUT_SIZE x PHOTO_OUTPUT_SIZE image
    """
    img = Image.open(BytesIO(image_bytes))

    # Flatten transparency onto white
    if img.mode in ("RGBA", "P", "LA"):
        if img.mode == "P":
            img = img.convert("RGBA")
        background = Image.new("RGB", img.size, (255, 255, 255))
        background.paste(img, mask=img.split()[-1])
        img = background
    elif img.mode != "RGB":
        img = img.convert("RGB")

    width, height = img.size
    side = min(width, height)
    if width != height:
        left = (width - side) // 2
        top = (height - side) // 2
        img = img.crop((left, top, left + side, top + side))

    if img.size != (PHOTO_OUTPUT_SIZE, PHOTO_OUTPUT_SIZE):
        img = img.resize((PHOTO_OUTPUT_SIZE, PHOTO_OUTPUT_SIZE), Image.Resampling.LANCZOS)

    output = BytesIO()
    img.save(output, format="JPEG", quality=PHOTO_JPEG_QUALITY, optimize=True)
    return output.getvalue()
