"""Shared fixtures for the legacytext tests."""

from typing import List, Sequence, Tuple

import pytest

from legacytext.archives import LegacyArchive, write_token_dump
from legacytext.database import TextDatabase
from legacytext.structures import (
    InputCursorMarker,
    JustifyCenter,
    JustifyLeft,
    NewLine,
    PositionCursor,
    SubrecordSeparator,
    TextRun,
    Token,
)


class MemoryArchive(LegacyArchive):
    """Archive backed by in-memory ``(record_id, tokens)`` pairs."""

    def __init__(self, records: Sequence[Tuple[int, Sequence[Token]]], *, loaded: bool = True):
        self.records = [(record_id, list(tokens)) for record_id, tokens in records]
        self.loaded = loaded

    @property
    def is_loaded(self) -> bool:
        return self.loaded

    @property
    def record_count(self) -> int:
        return len(self.records)

    def get_bytes_by_index(self, index: int) -> bytes:
        return str(index).encode("ascii")

    def read_tokens(self, buffer: bytes) -> List[Token]:
        return self.records[int(buffer.decode("ascii"))][1]

    def index_to_id(self, index: int) -> int:
        return self.records[index][0]


@pytest.fixture
def every_token_kind() -> List[Token]:
    """A canonical record using every token kind."""
    return [
        JustifyCenter(),
        TextRun("The Oath of the Blades"),
        NewLine(),
        JustifyLeft(),
        PositionCursor(10, 25),
        TextRun("Name: "),
        InputCursorMarker(),
        SubrecordSeparator(),
        TextRun("You have %di gold."),
        PositionCursor(-3, 0),
        NewLine(),
        NewLine(),
        SubrecordSeparator(),
    ]


@pytest.fixture
def sample_records() -> List[Tuple[int, List[Token]]]:
    return [
        (1000, [TextRun("Hello, traveler"), NewLine(), TextRun("Welcome to Daggerfall.")]),
        (1001, [JustifyCenter(), TextRun("Rest"), SubrecordSeparator(), TextRun("Wait")]),
        (7, []),
    ]


@pytest.fixture
def make_archive():
    """Factory for in-memory archives."""
    return MemoryArchive


@pytest.fixture
def memory_archive(sample_records) -> MemoryArchive:
    return MemoryArchive(sample_records)


@pytest.fixture
def database() -> TextDatabase:
    return TextDatabase()


@pytest.fixture
def token_dump(tmp_path, sample_records):
    """A JSON token dump of the sample records."""
    path = tmp_path / "text_rsc.json"
    write_token_dump(path, sample_records)
    return path
