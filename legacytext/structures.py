"""Core data structures for the legacytext database."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Union


class LegacySource(Enum):
    """Classic data file a text group was imported from."""

    TEXT_RSC = "TEXT.RSC"
    FACTION_TXT = "FACTION.TXT"


@dataclass(frozen=True)
class TextRun:
    """Literal run of characters."""

    text: str


@dataclass(frozen=True)
class JustifyLeft:
    """Left alignment directive."""


@dataclass(frozen=True)
class JustifyCenter:
    """Centre alignment directive."""


@dataclass(frozen=True)
class NewLine:
    """Explicit line break."""


INT16_MIN = -32768
INT16_MAX = 32767


@dataclass(frozen=True)
class PositionCursor:
    """Absolute placement of the text cursor."""

    x: int
    y: int

    def __post_init__(self) -> None:
        for name, value in (("x", self.x), ("y", self.y)):
            # bool is an int subclass but has no markup form.
            if type(value) is not int:
                raise TypeError(
                    f"Cursor {name} must be an int, got {type(value).__name__}."
                )
            if not INT16_MIN <= value <= INT16_MAX:
                raise ValueError(
                    f"Cursor {name}={value} is outside the signed 16-bit range."
                )


@dataclass(frozen=True)
class InputCursorMarker:
    """Point where the game overlays an interactive caret."""


@dataclass(frozen=True)
class SubrecordSeparator:
    """Ends one text element and starts the next within a record."""


Token = Union[
    TextRun,
    JustifyLeft,
    JustifyCenter,
    NewLine,
    PositionCursor,
    InputCursorMarker,
    SubrecordSeparator,
]


@dataclass
class TextElement:
    """A single unit of markup text."""

    text: str = ""


@dataclass
class TextGroup:
    """One localizable record: a key and its ordered text elements."""

    legacy_source: LegacySource
    primary_key: str
    elements: List[TextElement] = field(default_factory=lambda: [TextElement()])

    def texts(self) -> List[str]:
        return [element.text for element in self.elements]
