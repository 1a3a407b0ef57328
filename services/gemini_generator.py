"""
Gemini Image Generation Service

Puts eyeglasses on a portrait using Gemini's image model, either from a
style description or from a reference photo of specific glasses.
"""

import os
from dataclasses import dataclass
from typing import List, Optional, Union

from google import genai
from google.genai import types

from models.schemas import ImagePayload
from .utils import encode_data_url

IMAGE_MODEL = os.getenv("GEMINI_IMAGE_MODEL", "gemini-2.5-flash-image")

TRY_ON_INSTRUCTION = (
    "Refine the first image by placing the glasses from the second image onto the "
    "person's face in the first image. Ensure realistic lighting, shadows, perspective, "
    "and fit. Do not alter the person's facial features significantly, just add the accessory."
)

STYLE_INSTRUCTION_TEMPLATE = (
    "Edit the image to add eyeglasses on the person's face. Style description: {style}. "
    "Ensure high-quality, photorealistic texturing and correct perspective."
)


class EyewearGenerationError(Exception):
    """Base class for image generation failures"""


class NoImageGeneratedError(EyewearGenerationError):
    """The model answered but no part carried image bytes"""


class GenerationServiceError(EyewearGenerationError):
    """Transport or service-side failure"""


def get_client(api_key=None):
    """
    Build a Gemini client.

    Args:
        api_key: Google API key (optional, reads GOOGLE_API_KEY or API_KEY from env)

    Raises:
        ValueError: If no API key is configured
    """
    if api_key is None:
        api_key = os.getenv("GOOGLE_API_KEY") or os.getenv("API_KEY")
        if not api_key:
            raise ValueError("GOOGLE_API_KEY not found in environment variables")
    return genai.Client(api_key=api_key)


@dataclass(frozen=True)
class ImagePart:
    data: bytes
    mime_type: str


@dataclass(frozen=True)
class TextPart:
    text: str


RequestPart = Union[ImagePart, TextPart]


class RequestBuilder:
    """
    Assembles the ordered parts of a multimodal request.

    Only ImagePart and TextPart are accepted, and each is checked as it is
    added so a malformed payload never reaches the API.
    """

    def __init__(self):
        self._parts: List[RequestPart] = []

    def add(self, part: RequestPart) -> "RequestBuilder":
        if isinstance(part, ImagePart):
            if not part.data:
                raise ValueError("Image part has no data")
            if not part.mime_type:
                raise ValueError("Image part has no mime type")
        elif isinstance(part, TextPart):
            if not part.text or not part.text.strip():
                raise ValueError("Text part is empty")
        else:
            raise TypeError(f"Unsupported request part: {type(part).__name__}")
        self._parts.append(part)
        return self

    def add_image(self, image: ImagePayload) -> "RequestBuilder":
        return self.add(ImagePart(data=image.data, mime_type=image.mime_type))

    def add_text(self, text: str) -> "RequestBuilder":
        return self.add(TextPart(text=text))

    @property
    def parts(self) -> List[RequestPart]:
        return list(self._parts)

    def build(self) -> List[types.Content]:
        if not self._parts:
            raise ValueError("Request has no parts")

        sdk_parts = []
        for part in self._parts:
            if isinstance(part, ImagePart):
                sdk_parts.append(types.Part.from_bytes(data=part.data, mime_type=part.mime_type))
            else:
                sdk_parts.append(types.Part.from_text(text=part.text))

        return [types.Content(role="user", parts=sdk_parts)]


def build_eyewear_request(source_image, instruction, reference_image=None):
    """
    Lay out the request parts: face first, then either the reference
    glasses plus the try-on instruction, or the styled text prompt.
    """
    builder = RequestBuilder().add_image(source_image)

    if reference_image is not None:
        builder.add_image(reference_image)
        builder.add_text(TRY_ON_INSTRUCTION)
    else:
        builder.add_text(STYLE_INSTRUCTION_TEMPLATE.format(style=instruction))

    return builder


def extract_image_data_url(response):
    """
    Return the first inline image of the first candidate as a PNG data URL.

    Raises:
        NoImageGeneratedError: If no part carries image bytes
    """
    candidates = getattr(response, "candidates", None) or []
    parts = []
    if candidates and candidates[0].content is not None:
        parts = candidates[0].content.parts or []

    text_responses = []
    for part in parts:
        inline_data = getattr(part, "inline_data", None)
        if inline_data is not None and inline_data.data:
            # Always re-emitted as PNG whatever the model reports
            return encode_data_url(inline_data.data, "image/png")
        if getattr(part, "text", None):
            text_responses.append(part.text)

    error_msg = "No image generated."
    if text_responses:
        error_msg += f" Text response: {' '.join(text_responses)[:100]}"
    raise NoImageGeneratedError(error_msg)


def generate_eyewear_image(source_image, instruction, reference_image=None, *, client=None, model=IMAGE_MODEL):
    """
    Generate a photo of the subject wearing glasses.

    Args:
        source_image: ImagePayload or data URL of the subject's face
        instruction: Free-text style description (ignored in try-on)
        reference_image: Optional ImagePayload or data URL of the glasses to use
        client: Gemini client (optional, built from env)
        model: Image model name

    Returns:
        str: The generated image as 'data:image/png;base64,...'

    Raises:
        NoImageGeneratedError: If the response contains no image
        GenerationServiceError: If the API call fails
    """
    if isinstance(source_image, str):
        source_image = ImagePayload.from_data_url(source_image)
    if isinstance(reference_image, str):
        reference_image = ImagePayload.from_data_url(reference_image)

    contents = build_eyewear_request(source_image, instruction, reference_image).build()

    mode_label = "try-on" if reference_image is not None else "style"
    print(f"\nGenerating eyewear image ({mode_label}) with {model}...")

    try:
        if client is None:
            client = get_client()
        response = client.models.generate_content(
            model=model,
            contents=contents,
        )
    except Exception as e:
        print(f"  ✗ Image generation error: {e}")
        raise GenerationServiceError(f"Image generation request failed: {e}") from e

    data_url = extract_image_data_url(response)
    print("  ✓ Eyewear image generated")
    return data_url
