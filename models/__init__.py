"""
Data models for the eyewear stylist application
"""

from .schemas import (
    Mode,
    ImagePayload,
    Link,
    ChatMessage,
    Conversation,
    StylistState,
    UploadedImage
)

__all__ = [
    'Mode',
    'ImagePayload',
    'Link',
    'ChatMessage',
    'Conversation',
    'StylistState',
    'UploadedImage'
]
