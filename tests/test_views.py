from __future__ import annotations

import pytest

from services.views import (
    ComparisonView,
    ConversationView,
    clamp_position,
    comparison_from_snapshot,
    position_from_pointer,
)


@pytest.mark.parametrize("pointer_x,expected", [
    (-500, 0.0),
    (100, 0.0),
    (150, 25.0),
    (300, 100.0),
    (10_000, 100.0),
])
def test_pointer_position_is_clamped(pointer_x, expected):
    assert position_from_pointer(pointer_x, container_left=100, container_width=200) == expected


def test_zero_width_container_gives_zero():
    assert position_from_pointer(50, 0, 0) == 0.0


def test_clamp_position_bounds():
    assert clamp_position(-1) == 0.0
    assert clamp_position(101) == 100.0
    assert clamp_position("42.5") == 42.5


def test_comparison_view_styles_follow_drag():
    view = ComparisonView(before="a", after="b", position=150)
    assert view.position == 100.0

    view.drag_to(pointer_x=25, container_left=0, container_width=100)

    assert view.clip_style == "clip-path: inset(0 75% 0 0);"
    assert view.handle_style == "left: 25%;"


def test_comparison_needs_both_images():
    assert comparison_from_snapshot({"subject_image": "a", "generated_image": None}) is None
    view = comparison_from_snapshot({"subject_image": "a", "generated_image": "b"})
    assert (view.before, view.after, view.position) == ("a", "b", 50.0)


def test_conversation_view_alignment_links_and_submit_state():
    snapshot = {
        "busy": False,
        "messages": [
            {"id": "1", "role": "user", "text": "hi"},
            {"id": "2", "role": "model", "text": "hello", "links": [{"title": "Shop", "url": "https://s"}]},
        ],
    }

    view = ConversationView.from_snapshot(snapshot, draft="  ")

    assert [row.align for row in view.rows] == ["right", "left"]
    assert view.rows[1].links == [{"title": "Shop", "url": "https://s"}]
    assert not view.can_submit

    assert ConversationView.from_snapshot(snapshot, draft="red frames").can_submit
    assert not ConversationView.from_snapshot(dict(snapshot, busy=True), draft="red frames").can_submit
