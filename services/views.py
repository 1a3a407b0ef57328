"""
View models for the comparison slider and the conversation pane.

Both are built from a controller snapshot and never touch live state.
"""

from dataclasses import dataclass, field
from typing import List, Optional


def clamp_position(value) -> float:
    """Clamp a slider position to [0, 100]"""
    return max(0.0, min(100.0, float(value)))


def position_from_pointer(pointer_x, container_left, container_width) -> float:
    """
    Convert a pointer or touch x coordinate to a slider percentage.

    Coordinates outside the container clamp to the nearest edge.
    """
    if container_width <= 0:
        return 0.0
    return clamp_position((pointer_x - container_left) / container_width * 100.0)


@dataclass
class ComparisonView:
    before: str
    after: str
    position: float = 50.0

    def __post_init__(self):
        self.position = clamp_position(self.position)

    def drag_to(self, pointer_x, container_left, container_width) -> float:
        self.position = position_from_pointer(pointer_x, container_left, container_width)
        return self.position

    @property
    def clip_style(self) -> str:
        # "before" shows on the left `position` percent
        return f"clip-path: inset(0 {100.0 - self.position:g}% 0 0);"

    @property
    def handle_style(self) -> str:
        return f"left: {self.position:g}%;"


@dataclass
class MessageRow:
    id: str
    role: str
    text: str
    align: str
    links: List[dict] = field(default_factory=list)


@dataclass
class ConversationView:
    rows: List[MessageRow]
    busy: bool = False
    draft: str = ""

    @classmethod
    def from_snapshot(cls, snapshot: dict, draft: str = "") -> "ConversationView":
        rows = [
            MessageRow(
                id=m["id"],
                role=m["role"],
                text=m["text"],
                # RTL layout: the user's own messages sit on the right
                align="right" if m["role"] == "user" else "left",
                links=list(m.get("links") or []),
            )
            for m in snapshot.get("messages", [])
        ]
        return cls(rows=rows, busy=bool(snapshot.get("busy")), draft=draft)

    @property
    def can_submit(self) -> bool:
        return not self.busy and bool(self.draft.strip())


def comparison_from_snapshot(snapshot: dict, position=50.0) -> Optional[ComparisonView]:
    """Only shown once there is both an original and a result"""
    if not snapshot.get("subject_image") or not snapshot.get("generated_image"):
        return None
    return ComparisonView(
        before=snapshot["subject_image"],
        after=snapshot["generated_image"],
        position=position,
    )
