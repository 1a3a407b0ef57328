"""
Data schemas for the eyewear stylist

Plain dataclasses shared by the services, the web server and the views.
"""

import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Iterator, List, Optional, Tuple


class Mode(str, Enum):
    """Which workflow the user is in"""
    CONSULTANT = "CONSULTANT"  # AI suggests a style
    TRY_ON = "TRY_ON"          # user supplies the glasses image


@dataclass(frozen=True)
class ImagePayload:
    """An image as raw bytes plus its mime type"""
    data: bytes
    mime_type: str = "image/jpeg"

    @classmethod
    def from_data_url(cls, data_url: str) -> "ImagePayload":
        # Local import, services.utils imports nothing from models
        from services.utils import decode_data_url

        data, mime_type = decode_data_url(data_url)
        return cls(data=data, mime_type=mime_type)

    def to_data_url(self) -> str:
        from services.utils import encode_data_url

        return encode_data_url(self.data, self.mime_type)


@dataclass(frozen=True)
class Link:
    """A web citation attached to a grounded chat answer"""
    title: str
    url: str

    def to_dict(self) -> dict:
        return {"title": self.title, "url": self.url}


@dataclass
class ChatMessage:
    """Single message in the stylist conversation"""
    role: str  # 'user' or 'model'
    text: str
    links: Optional[List[Link]] = None
    id: str = field(default_factory=lambda: uuid.uuid4().hex)

    def to_dict(self) -> dict:
        data = {"id": self.id, "role": self.role, "text": self.text}
        if self.links is not None:
            data["links"] = [link.to_dict() for link in self.links]
        return data


class Conversation:
    """
    Append-only message log.

    Messages are never edited or removed individually; clear() is the only
    way to drop them and is used by a full reset.
    """

    def __init__(self):
        self._messages: List[ChatMessage] = []

    def append(self, message: ChatMessage) -> ChatMessage:
        self._messages.append(message)
        return message

    def add_user_message(self, text: str) -> ChatMessage:
        return self.append(ChatMessage(role="user", text=text))

    def add_model_message(self, text: str, links: Optional[List[Link]] = None) -> ChatMessage:
        return self.append(ChatMessage(role="model", text=text, links=links))

    def history(self) -> List[Tuple[str, str]]:
        """(role, text) pairs in order"""
        return [(m.role, m.text) for m in self._messages]

    def clear(self) -> None:
        self._messages = []

    @property
    def messages(self) -> Tuple[ChatMessage, ...]:
        return tuple(self._messages)

    def __len__(self) -> int:
        return len(self._messages)

    def __iter__(self) -> Iterator[ChatMessage]:
        return iter(tuple(self._messages))

    def is_empty(self) -> bool:
        return not self._messages


@dataclass
class StylistState:
    """Everything the controller owns"""
    mode: Mode = Mode.CONSULTANT
    subject_image: Optional[ImagePayload] = None
    reference_image: Optional[ImagePayload] = None
    generated_image: Optional[str] = None  # PNG data URL
    conversation: Conversation = field(default_factory=Conversation)


@dataclass
class UploadedImage:
    """Metadata about an image received from the browser"""
    original_filename: str
    mime_type: str
    file_size: int
    image_type: str  # 'subject' or 'reference'

    def to_dict(self) -> dict:
        return {
            "original_filename": self.original_filename,
            "mime_type": self.mime_type,
            "file_size": self.file_size,
            "image_type": self.image_type,
        }
