from __future__ import annotations

from types import SimpleNamespace
from unittest.mock import patch

from conftest import FakeClient
from models.schemas import Link
from services.consultant_chat import (
    EMPTY_REPLY_TEXT,
    ERROR_REPLY_TEXT,
    SYSTEM_INSTRUCTION,
    build_chat_contents,
    chat_with_consultant,
)


def grounded_response(text, webs):
    chunks = [SimpleNamespace(web=web) for web in webs]
    return SimpleNamespace(
        text=text,
        candidates=[SimpleNamespace(grounding_metadata=SimpleNamespace(grounding_chunks=chunks))],
    )


def web(title, uri):
    return SimpleNamespace(title=title, uri=uri)


def test_reply_text_and_links_in_service_order():
    client = FakeClient(grounded_response("Try these", [
        web("Shop A", "https://a.example"),
        None,
        web("Shop B", "https://b.example"),
        web("Shop A", "https://a.example"),
    ]))

    reply = chat_with_consultant("find aviators", client=client)

    assert reply.text == "Try these"
    assert reply.links == [
        Link("Shop A", "https://a.example"),
        Link("Shop B", "https://b.example"),
        Link("Shop A", "https://a.example"),
    ]


def test_request_enables_search_and_persona():
    client = FakeClient(grounded_response("ok", []))
    chat_with_consultant("hello", client=client)

    config = client.models.calls[0]["config"]
    assert config.system_instruction == SYSTEM_INSTRUCTION
    assert config.tools[0].google_search is not None


def test_empty_text_uses_fallback():
    client = FakeClient(grounded_response(None, []))
    reply = chat_with_consultant("hello", client=client)
    assert reply.text == EMPTY_REPLY_TEXT
    assert reply.links == []


def test_missing_grounding_metadata_gives_no_links():
    response = SimpleNamespace(text="hi", candidates=[SimpleNamespace(grounding_metadata=None)])
    reply = chat_with_consultant("hello", client=FakeClient(response))
    assert reply.links == []


def test_service_failure_never_raises():
    reply = chat_with_consultant("hello", client=FakeClient(error=RuntimeError("503")))
    assert reply.text == ERROR_REPLY_TEXT
    assert reply.links == []


def test_missing_api_key_is_reported_as_fallback(monkeypatch):
    monkeypatch.delenv("GOOGLE_API_KEY", raising=False)
    monkeypatch.delenv("API_KEY", raising=False)
    with patch("services.consultant_chat.get_client", side_effect=ValueError("no key")):
        reply = chat_with_consultant("hello")
    assert reply.text == ERROR_REPLY_TEXT


def test_history_is_threaded_after_leading_model_turns():
    contents = build_chat_contents("and in black?", [
        ("model", "welcome"),
        ("user", "show me round frames"),
        ("model", "here they are"),
    ])

    assert [c.role for c in contents] == ["user", "model", "user"]
    assert contents[0].parts[0].text == "show me round frames"
    assert contents[-1].parts[0].text == "and in black?"


def test_same_role_neighbours_share_one_turn():
    contents = build_chat_contents("what about gold?", [
        ("user", "show me round frames"),
        ("model", ""),
        ("user", "thinner please"),
        ("model", "here"),
        ("model", "and another"),
    ])

    assert [c.role for c in contents] == ["user", "model", "user"]
    assert [p.text for p in contents[0].parts] == ["show me round frames", "thinner please"]
    assert [p.text for p in contents[1].parts] == ["here", "and another"]
    assert contents[-1].parts[0].text == "what about gold?"
