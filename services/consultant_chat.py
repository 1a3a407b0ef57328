"""
Eyewear Consultant Chat Service

Answers style questions and finds shopping links using Gemini with
Google Search grounding. Never raises: failures become a fixed reply.
"""

import os
from dataclasses import dataclass, field
from typing import List

from google.genai import types

from models.schemas import Link
from .gemini_generator import get_client

CHAT_MODEL = os.getenv("GEMINI_CHAT_MODEL", "gemini-2.5-flash")

SYSTEM_INSTRUCTION = (
    "You are an expert optical stylist and vision consultant. Help the user find glasses, "
    "describe styles, and suggest brands. You speak Persian (Farsi). When looking for "
    "products, use Google Search to find real links."
)

EMPTY_REPLY_TEXT = "متاسفم، نمی‌توانم پاسخ دهم."
ERROR_REPLY_TEXT = "خطایی در ارتباط با مشاور رخ داد."


@dataclass
class ConsultantReply:
    text: str
    links: List[Link] = field(default_factory=list)


def build_chat_contents(message, history=()):
    """
    Turn prior (role, text) pairs plus the new message into Gemini contents.

    Leading model turns are dropped so the conversation opens with the user,
    and consecutive messages from the same role share one turn.
    """
    contents = []

    def add_turn(role, text):
        part = types.Part.from_text(text=text)
        if contents and contents[-1].role == role:
            contents[-1].parts.append(part)
        else:
            contents.append(types.Content(role=role, parts=[part]))

    for role, text in history:
        if not text or not text.strip():
            continue
        role = "user" if role == "user" else "model"
        if not contents and role != "user":
            continue
        add_turn(role, text)

    add_turn("user", message)
    return contents


def extract_links(response):
    """Every web citation in the first candidate's grounding metadata, in order"""
    links = []
    candidates = getattr(response, "candidates", None) or []
    if not candidates:
        return links

    metadata = getattr(candidates[0], "grounding_metadata", None)
    chunks = getattr(metadata, "grounding_chunks", None) or []
    for chunk in chunks:
        web = getattr(chunk, "web", None)
        if web is not None:
            links.append(Link(title=web.title or web.uri or "", url=web.uri or ""))
    return links


def chat_with_consultant(message, history=(), *, client=None, model=CHAT_MODEL):
    """
    Ask the consultant a question.

    Args:
        message: The user's message
        history: Prior (role, text) pairs, oldest first
        client: Gemini client (optional, built from env)
        model: Chat model name

    Returns:
        ConsultantReply with the answer text and any grounded links
    """
    try:
        if client is None:
            client = get_client()

        response = client.models.generate_content(
            model=model,
            contents=build_chat_contents(message, history),
            config=types.GenerateContentConfig(
                system_instruction=SYSTEM_INSTRUCTION,
                tools=[types.Tool(google_search=types.GoogleSearch())],
            ),
        )

        text = response.text or EMPTY_REPLY_TEXT
        links = extract_links(response)
        print(f"  ✓ Consultant replied ({len(links)} link(s))")
        return ConsultantReply(text=text, links=links)

    except Exception as e:
        print(f"  ✗ Chat error: {e}")
        return ConsultantReply(text=ERROR_REPLY_TEXT, links=[])
