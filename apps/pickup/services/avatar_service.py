"""
Profile photo validation and processing for pickup players.

Phone uploads arrive in many shapes: rotated JPEGs carrying an EXIF
orientation tag, transparent PNG stickers, HEIC captures. Everything is
normalized to an upright, opaque 512x512 JPEG so room cards and
participant lists can render avatars without further work.
"""

import logging
from io import BytesIO
from typing import Tuple

from PIL import Image, ImageOps

logger = logging.getLogger(__name__)

MAX_FILE_SIZE_BYTES = 5 * 1024 * 1024  # 5MB
MAX_IMAGE_PIXELS = 25_000_000  # 25MP, rejects decompression bombs
AVATAR_SIZE = 512
JPEG_QUALITY = 85
ALLOWED_CONTENT_TYPES = {"image/jpeg", "image/png", "image/webp", "image/heic", "image/heif"}

# Pillow refuses to decode anything larger
Image.MAX_IMAGE_PIXELS = MAX_IMAGE_PIXELS


def validate_avatar(file_bytes: bytes, content_type: str) -> Tuple[bool, str]:
    """
    Check that an upload can become a profile photo.

    Size and declared type are checked first; the bytes are then opened with
    Pillow so that truncated files and non-images are refused before any
    storage work happens.

    Args:
        file_bytes: Raw uploaded bytes
        content_type: MIME type reported by the client

    Returns:
        Tuple of (is_valid, error_message). error_message is empty when valid.
    """
    if not file_bytes:
        return False, "File is empty"
    if len(file_bytes) > MAX_FILE_SIZE_BYTES:
        return False, f"File size exceeds maximum of {MAX_FILE_SIZE_BYTES // (1024 * 1024)}MB"
    if not content_type or content_type not in ALLOWED_CONTENT_TYPES:
        return False, f"Invalid file type '{content_type}'. Allowed: JPEG, PNG, WebP, HEIC"

    try:
        img = Image.open(BytesIO(file_bytes))
        width, height = img.size
        if width * height > MAX_IMAGE_PIXELS:
            return False, f"Image dimensions too large ({width}x{height})"
        img.verify()
    except Image.DecompressionBombError:
        return False, "Image dimensions too large"
    except Exception as e:
        return False, f"Invalid or corrupted image file: {e}"

    return True, ""


def _to_rgb(img: Image.Image) -> Image.Image:
    """Flatten transparency onto white and drop any non-RGB mode."""
    if img.mode == "P":
        img = img.convert("RGBA")
    if img.mode in ("RGBA", "LA"):
        background = Image.new("RGB", img.size, (255, 255, 255))
        background.paste(img, mask=img.split()[-1])
        return background
    if img.mode != "RGB":
        return img.convert("RGB")
    return img


def _center_square(img: Image.Image) -> Image.Image:
    width, height = img.size
    if width == height:
        return img
    side = min(width, height)
    left = (width - side) // 2
    top = (height - side) // 2
    return img.crop((left, top, left + side, top + side))


def process_avatar(image_bytes: bytes) -> bytes:
    """
    Turn a validated upload into the stored profile photo.

    The image is rotated upright according to its EXIF orientation tag,
    flattened to RGB, center-cropped to a square and resized to
    AVATAR_SIZE before JPEG compression. Metadata is not carried over.

    Args:
        image_bytes: Bytes that already passed validate_avatar()

    Returns:
        JPEG bytes ready for upload
    """
    img = Image.open(BytesIO(image_bytes))
    # Phone cameras store sensor orientation in EXIF instead of rotating pixels
    img = ImageOps.exif_transpose(img)
    img = _center_square(_to_rgb(img))

    if img.size != (AVATAR_SIZE, AVATAR_SIZE):
        img = img.resize((AVATAR_SIZE, AVATAR_SIZE), Image.Resampling.LANCZOS)

    output = BytesIO()
    img.save(output, format="JPEG", quality=JPEG_QUALITY, optimize=True)
    logger.debug(f"Processed avatar: {len(image_bytes)} -> {output.tell()} bytes")
    return output.getvalue()
