from __future__ import annotations

import io
from types import SimpleNamespace

import pytest
from PIL import Image

from models.schemas import ImagePayload


def make_image_bytes(fmt: str = "PNG", size=(32, 32), mode: str = "RGB") -> bytes:
    buffer = io.BytesIO()
    Image.new(mode, size).save(buffer, fmt)
    return buffer.getvalue()


def image_response(*parts):
    """A fake generate_content response whose first candidate holds `parts`"""
    return SimpleNamespace(
        candidates=[SimpleNamespace(content=SimpleNamespace(parts=list(parts)))]
    )


def inline_part(data: bytes, mime_type: str = "image/jpeg"):
    return SimpleNamespace(inline_data=SimpleNamespace(data=data, mime_type=mime_type), text=None)


def text_part(text: str):
    return SimpleNamespace(inline_data=None, text=text)


class FakeModels:
    def __init__(self, response=None, error: Exception | None = None) -> None:
        self.response = response
        self.error = error
        self.calls: list[dict] = []

    def generate_content(self, **kwargs):
        self.calls.append(kwargs)
        if self.error is not None:
            raise self.error
        return self.response


class FakeClient:
    def __init__(self, response=None, error: Exception | None = None) -> None:
        self.models = FakeModels(response=response, error=error)


@pytest.fixture
def face() -> ImagePayload:
    return ImagePayload(data=b"face-bytes", mime_type="image/jpeg")


@pytest.fixture
def glasses() -> ImagePayload:
    return ImagePayload(data=b"glasses-bytes", mime_type="image/png")
