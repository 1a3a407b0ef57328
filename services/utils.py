"""
Utility functions for image handling

Data URL encoding/decoding plus the local-file helpers used by the CLI.
"""

import base64
import binascii
import mimetypes
import os
import re

DEFAULT_MIME_TYPE = "image/jpeg"

# Prefixes we know how to strip before sending bytes to Gemini
_KNOWN_PREFIX = re.compile(r"^data:image/(png|jpeg|jpg|webp);base64,")
_MIME_PREFIX = re.compile(r"^data:(image/[a-zA-Z+]+);base64,")
_ANY_PREFIX = re.compile(r"^data:[^;,]+;base64,")


def strip_data_url_prefix(data_url):
    """
    Remove a known data URL prefix, leaving the base64 payload.

    Input without a recognised prefix is returned unchanged and is assumed
    to already be the raw payload.
    """
    return _KNOWN_PREFIX.sub("", data_url, count=1)


def sniff_mime(data_url):
    """
    Read the mime type from a data URL prefix.

    Args:
        data_url: Data URL string (or raw base64 payload)

    Returns:
        str: The declared mime type, or image/jpeg if there is no prefix
    """
    match = _MIME_PREFIX.match(data_url or "")
    return match.group(1) if match else DEFAULT_MIME_TYPE


def decode_data_url(data_url):
    """
    Split a data URL into raw bytes and mime type.

    Args:
        data_url: 'data:image/png;base64,...' or a bare base64 payload

    Returns:
        tuple: (image_bytes, mime_type)

    Raises:
        ValueError: If the payload is not valid base64
    """
    # Other declared types (gif, svg+xml, ...) still carry a prefix to drop
    payload = _ANY_PREFIX.sub("", strip_data_url_prefix(data_url), count=1)
    try:
        image_bytes = base64.b64decode(payload, validate=True)
    except (binascii.Error, ValueError) as e:
        raise ValueError(f"Invalid base64 image payload: {e}")
    return image_bytes, sniff_mime(data_url)


def encode_data_url(image_bytes, mime_type=DEFAULT_MIME_TYPE):
    """Wrap raw bytes as a base64 data URL"""
    payload = base64.b64encode(image_bytes).decode("ascii")
    return f"data:{mime_type};base64,{payload}"


def read_local_image(image_path):
    """
    Reads a local image file and returns the bytes and mime type.

    Args:
        image_path: Path to the image file

    Returns:
        tuple: (image_bytes, mime_type)

    Raises:
        FileNotFoundError: If the image doesn't exist
    """
    if not os.path.exists(image_path):
        raise FileNotFoundError(f"Could not find image at: {image_path}")

    mime_type, _ = mimetypes.guess_type(image_path)
    if mime_type is None:
        mime_type = DEFAULT_MIME_TYPE

    with open(image_path, "rb") as f:
        image_bytes = f.read()

    return image_bytes, mime_type


def save_binary_file(file_name, data):
    """
    Saves binary data to a file.

    Returns:
        str: The file path where data was saved
    """
    with open(file_name, "wb") as f:
        f.write(data)
    print(f"File saved to: {file_name}")
    return file_name


def validate_image_path(image_path):
    """
    Validates that an image path exists and is a valid image format.

    Raises:
        FileNotFoundError: If file doesn't exist
        ValueError: If file is not a valid image format
    """
    if not os.path.exists(image_path):
        raise FileNotFoundError(f"Image not found: {image_path}")

    valid_extensions = {'.jpg', '.jpeg', '.png', '.gif', '.bmp', '.webp', '.heic', '.heif'}
    _, ext = os.path.splitext(image_path.lower())

    if ext not in valid_extensions:
        raise ValueError(f"Invalid image format: {ext}. Supported: {sorted(valid_extensions)}")

    return True
