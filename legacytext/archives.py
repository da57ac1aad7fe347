"""Legacy archive readers feeding the importer."""

from __future__ import annotations

import json
import pathlib
from abc import ABC, abstractmethod
from typing import Any, Dict, Iterator, List, Mapping, Optional, Sequence, Tuple

from .errors import ArchiveFormatError, UnsupportedArchiveError
from .structures import (
    InputCursorMarker,
    JustifyCenter,
    JustifyLeft,
    LegacySource,
    NewLine,
    PositionCursor,
    SubrecordSeparator,
    TextRun,
    Token,
)

ArchiveRecord = Tuple[int, int, List[Token]]

_SIMPLE_TOKENS = {
    "left": JustifyLeft,
    "center": JustifyCenter,
    "newline": NewLine,
    "input": InputCursorMarker,
    "separator": SubrecordSeparator,
}
_SIMPLE_KINDS = {token_type: kind for kind, token_type in _SIMPLE_TOKENS.items()}


def token_to_dict(token: Token) -> Dict[str, Any]:
    """Serialise a token for a JSON token dump."""

    if isinstance(token, TextRun):
        return {"kind": "text", "text": token.text}
    if isinstance(token, PositionCursor):
        return {"kind": "pos", "x": token.x, "y": token.y}
    kind = _SIMPLE_KINDS.get(type(token))
    if kind is None:
        raise ArchiveFormatError(f"Token {token!r} cannot be written to a token dump.")
    return {"kind": kind}


def token_from_dict(data: Mapping[str, Any]) -> Token:
    """Read a token from its JSON token dump form."""

    kind = data.get("kind")
    if not isinstance(kind, str):
        raise ArchiveFormatError(f"Token {data!r} has no kind.")
    try:
        if kind == "text":
            text = data["text"]
            if not isinstance(text, str):
                raise ArchiveFormatError(f"Text token needs a string, got {text!r}.")
            return TextRun(text)
        if kind == "pos":
            x, y = data["x"], data["y"]
            if type(x) is not int or type(y) is not int:
                raise ArchiveFormatError(f"Position token needs integers, got {data!r}.")
            return PositionCursor(x=x, y=y)
    except KeyError as exc:
        raise ArchiveFormatError(f"Token {data!r} is missing field {exc}.") from exc
    except ValueError as exc:
        raise ArchiveFormatError(str(exc)) from exc

    token_type = _SIMPLE_TOKENS.get(kind)
    if token_type is None:
        raise ArchiveFormatError(f"Unknown token kind {kind!r}.")
    return token_type()


class LegacyArchive(ABC):
    """Contract for a classic text archive the importer can read."""

    source: LegacySource = LegacySource.TEXT_RSC

    @property
    @abstractmethod
    def is_loaded(self) -> bool:
        """Whether the archive was opened successfully."""

    @property
    @abstractmethod
    def record_count(self) -> int:
        """Number of records in the archive."""

    @abstractmethod
    def get_bytes_by_index(self, index: int) -> bytes:
        """Return the raw bytes of one record."""

    @abstractmethod
    def read_tokens(self, buffer: bytes) -> List[Token]:
        """Decode a raw record buffer into tokens."""

    @abstractmethod
    def index_to_id(self, index: int) -> int:
        """Map a record index to its stable numeric record id."""

    def iter_records(self) -> Iterator[ArchiveRecord]:
        """Yield ``(index, record_id, tokens)`` for every record in order."""

        for index in range(self.record_count):
            buffer = self.get_bytes_by_index(index)
            yield index, self.index_to_id(index), self.read_tokens(buffer)


class JsonTokenArchive(LegacyArchive):
    """Archive read from a JSON dump of already-tokenised records.

    The dump holds ``{"source": ..., "records": [{"id": n, "tokens": [...]}]}``.
    A dump that cannot be read leaves ``is_loaded`` false and keeps the reason
    in ``load_error``.
    """

    def __init__(self, source_path: pathlib.Path):
        self.source_path = source_path
        self.load_error: Optional[str] = None
        self._ids: List[int] = []
        self._buffers: List[bytes] = []
        self._loaded = False
        self._load()

    @property
    def is_loaded(self) -> bool:
        return self._loaded

    @property
    def record_count(self) -> int:
        return len(self._buffers)

    def get_bytes_by_index(self, index: int) -> bytes:
        return self._buffers[index]

    def read_tokens(self, buffer: bytes) -> List[Token]:
        try:
            raw_tokens = json.loads(buffer.decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError) as exc:
            raise ArchiveFormatError(f"Record buffer is not a token list: {exc}") from exc
        if not isinstance(raw_tokens, list):
            raise ArchiveFormatError("Record buffer is not a token list.")
        tokens: List[Token] = []
        for raw in raw_tokens:
            if not isinstance(raw, Mapping):
                raise ArchiveFormatError(f"Token entry {raw!r} is not an object.")
            tokens.append(token_from_dict(raw))
        return tokens

    def index_to_id(self, index: int) -> int:
        return self._ids[index]

    # --- Internal helpers -------------------------------------------------

    def _load(self) -> None:
        try:
            payload = json.loads(self.source_path.read_text(encoding="utf-8"))
        except OSError as exc:
            self.load_error = f"Could not read {self.source_path}: {exc}"
            return
        except (UnicodeDecodeError, json.JSONDecodeError) as exc:
            self.load_error = f"{self.source_path} is not a JSON token dump: {exc}"
            return

        if not isinstance(payload, Mapping) or not isinstance(payload.get("records"), list):
            self.load_error = f"{self.source_path} has no 'records' list."
            return

        source_name = payload.get("source")
        if source_name is not None:
            try:
                self.source = LegacySource(source_name)
            except ValueError:
                self.load_error = f"Unknown legacy source {source_name!r}."
                return

        ids: List[int] = []
        buffers: List[bytes] = []
        for position, record in enumerate(payload["records"]):
            if not isinstance(record, Mapping):
                self.load_error = f"Record {position} is not an object."
                return
            record_id = record.get("id")
            tokens = record.get("tokens", [])
            if not isinstance(record_id, int) or isinstance(record_id, bool) or record_id < 0:
                self.load_error = f"Record {position} has an invalid id {record_id!r}."
                return
            if not isinstance(tokens, list):
                self.load_error = f"Record {position} has no token list."
                return
            ids.append(record_id)
            buffers.append(json.dumps(tokens, ensure_ascii=False).encode("utf-8"))

        self._ids = ids
        self._buffers = buffers
        self._loaded = True


def write_token_dump(
    destination: pathlib.Path,
    records: Sequence[Tuple[int, Sequence[Token]]],
    *,
    source: LegacySource = LegacySource.TEXT_RSC,
) -> None:
    """Write ``(record_id, tokens)`` pairs as a JSON token dump."""

    payload = {
        "source": source.value,
        "records": [
            {"id": record_id, "tokens": [token_to_dict(token) for token in tokens]}
            for record_id, tokens in records
        ],
    }
    destination.write_text(
        json.dumps(payload, ensure_ascii=False, indent=2),
        encoding="utf-8",
    )


def open_archive(path: pathlib.Path) -> LegacyArchive:
    """Select an appropriate archive reader for the provided file."""

    suffix = path.suffix.lower()
    if suffix == ".json":
        return JsonTokenArchive(path)
    raise UnsupportedArchiveError(
        f"No archive reader for '{path.name}'. Provide a .json token dump."
    )
