"""
Image format conversion service

Turns uploaded image bytes (including HEIC from iPhones) into an
ImagePayload in a format Gemini accepts.
"""

import io
import mimetypes
from typing import Optional

from PIL import Image, UnidentifiedImageError

from models.schemas import ImagePayload

# Register HEIF/HEIC support
try:
    from pillow_heif import register_heif_opener
    register_heif_opener()
except ImportError:
    pass  # HEIF support not available

SUPPORTED_MIME_TYPES = {'image/png', 'image/jpeg', 'image/webp'}

FORMAT_TO_MIME = {
    'JPEG': 'image/jpeg',
    'PNG': 'image/png',
    'GIF': 'image/gif',
    'BMP': 'image/bmp',
    'WEBP': 'image/webp',
    'HEIC': 'image/heic',
    'HEIF': 'image/heif',
    'TIFF': 'image/tiff',
}


def detect_image_type(image_bytes: bytes, filename: Optional[str] = None) -> str:
    """
    Detect image MIME type.

    The decoded format wins over the filename; the filename is only used
    when Pillow can't identify the bytes.

    Args:
        image_bytes: Raw image bytes
        filename: Optional original filename

    Returns:
        MIME type string (e.g., 'image/jpeg')
    """
    try:
        with Image.open(io.BytesIO(image_bytes)) as img:
            mime_type = FORMAT_TO_MIME.get(img.format)
            if mime_type:
                return mime_type
    except (UnidentifiedImageError, OSError):
        pass

    if filename:
        mime_type, _ = mimetypes.guess_type(filename)
        if mime_type:
            return mime_type

    return 'image/jpeg'


def needs_conversion(mime_type: str) -> bool:
    """
    Check if image format needs conversion for Gemini compatibility.

    PNG, JPEG and WEBP pass through; everything else becomes JPEG.
    """
    return mime_type.lower() not in SUPPORTED_MIME_TYPES


def convert_to_jpeg(image_bytes: bytes, quality: int = 95) -> bytes:
    """
    Convert any image format to JPEG.

    Args:
        image_bytes: Raw bytes of the input image
        quality: JPEG quality (1-100, default 95)

    Returns:
        JPEG bytes

    Raises:
        ValueError: If conversion fails
    """
    try:
        with Image.open(io.BytesIO(image_bytes)) as img:
            # Flatten transparency onto a white background
            if img.mode in ('RGBA', 'LA', 'P'):
                background = Image.new('RGB', img.size, (255, 255, 255))
                if img.mode == 'P':
                    img = img.convert('RGBA')
                background.paste(img, mask=img.split()[-1])
                img = background
            elif img.mode != 'RGB':
                img = img.convert('RGB')

            output = io.BytesIO()
            img.save(output, 'JPEG', quality=quality, optimize=True)
            return output.getvalue()

    except (UnidentifiedImageError, OSError) as e:
        raise ValueError(f"Failed to convert image to JPEG: {e}")


def validate_and_prepare_image(image_bytes: bytes, filename: Optional[str] = None) -> ImagePayload:
    """
    Validate and prepare an uploaded image for use with Gemini.

    This function:
    1. Validates the image can be opened
    2. Checks its dimensions are reasonable
    3. Detects the format
    4. Converts to JPEG if the format isn't accepted as-is

    Args:
        image_bytes: Raw uploaded bytes
        filename: Original filename, used as a format hint

    Returns:
        ImagePayload ready for the controller

    Raises:
        ValueError: If image is invalid or cannot be processed
    """
    if not image_bytes:
        raise ValueError("Invalid image file: empty upload")

    try:
        with Image.open(io.BytesIO(image_bytes)) as img:
            img.verify()

        # Re-open (verify leaves the image unusable)
        with Image.open(io.BytesIO(image_bytes)) as img:
            width, height = img.size
    except (UnidentifiedImageError, OSError, SyntaxError) as e:
        raise ValueError(f"Invalid image file: {e}")

    if width < 10 or height < 10:
        raise ValueError("Invalid image file: image dimensions too small")
    if width > 10000 or height > 10000:
        raise ValueError("Invalid image file: image dimensions too large")

    mime_type = detect_image_type(image_bytes, filename)
    if needs_conversion(mime_type):
        print(f"  Converting {filename or 'upload'} from {mime_type} to image/jpeg")
        return ImagePayload(data=convert_to_jpeg(image_bytes), mime_type='image/jpeg')

    return ImagePayload(data=image_bytes, mime_type=mime_type)
