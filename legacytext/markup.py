"""Conversion between legacy text tokens and human-editable markup.

Markup keeps every legacy token in a single line of plain text:

* ``[/left]``, ``[/center]`` and ``[/input]`` are fixed directives.
* ``[/pos:x=<int>,y=<int>]`` places the cursor.
* ``\\n`` (backslash, letter n) is a line break.
* Subrecord separators are not written; each subrecord is its own element.

Literal text is escaped so it cannot be read back as markup: a backslash is
written as ``\\\\`` and a ``[/`` pair as ``\\[/``.
"""

from __future__ import annotations

import re
from typing import Dict, List, Optional, Sequence

from .errors import (
    MalformedDirectiveError,
    UnknownDirectiveError,
    UnsupportedTokenKindError,
)
from .structures import (
    INT16_MAX,
    INT16_MIN,
    InputCursorMarker,
    JustifyCenter,
    JustifyLeft,
    NewLine,
    PositionCursor,
    SubrecordSeparator,
    TextElement,
    TextGroup,
    TextRun,
    Token,
)

MARKUP_VERSION = 1

MARKUP_JUSTIFY_LEFT = "[/left]"
MARKUP_JUSTIFY_CENTER = "[/center]"
MARKUP_NEW_LINE = "\\n"
MARKUP_TEXT_POSITION = "[/pos:x={x},y={y}]"
MARKUP_INPUT_CURSOR = "[/input]"

DIRECTIVE_OPEN = "[/"

# Escapes and directives, closed or not. Text between matches is literal.
MARKUP_PATTERN = re.compile(
    r"\\(?P<escape>.)|\[/(?P<body>[^\]]*)(?P<close>\])?",
    re.DOTALL,
)
DIRECTIVE_NAME_PATTERN = re.compile(r"[a-z][a-z0-9_]*")
INTEGER_PATTERN = re.compile(r"-?[0-9]+")

_FIXED_DIRECTIVES = {
    "left": JustifyLeft,
    "center": JustifyCenter,
    "input": InputCursorMarker,
}
_ESCAPED_LITERALS = {"\\": "\\", "[": "["}


def escape_text(text: str) -> str:
    """Escape literal text so that it decodes back to itself."""

    return text.replace("\\", "\\\\").replace(DIRECTIVE_OPEN, "\\" + DIRECTIVE_OPEN)


def _format_token(token: Token) -> str:
    if isinstance(token, JustifyLeft):
        return MARKUP_JUSTIFY_LEFT
    if isinstance(token, JustifyCenter):
        return MARKUP_JUSTIFY_CENTER
    if isinstance(token, NewLine):
        return MARKUP_NEW_LINE
    if isinstance(token, PositionCursor):
        return MARKUP_TEXT_POSITION.format(x=token.x, y=token.y)
    if isinstance(token, InputCursorMarker):
        return MARKUP_INPUT_CURSOR
    raise UnsupportedTokenKindError(token)


def encode_tokens(tokens: Sequence[Token]) -> List[TextElement]:
    """Convert legacy tokens into one markup element per subrecord.

    The trailing element is always emitted, so the result holds one more
    element than there are separators and is never empty.
    """

    elements: List[TextElement] = []
    parts: List[str] = []
    pending: List[str] = []

    def flush_pending() -> None:
        # Runs are escaped together so a "[" ending one run and a "/"
        # starting the next cannot form a directive opener.
        if pending:
            parts.append(escape_text("".join(pending)))
            pending.clear()

    for token in tokens:
        if isinstance(token, TextRun):
            pending.append(token.text)
            continue
        flush_pending()
        if isinstance(token, SubrecordSeparator):
            elements.append(TextElement(text="".join(parts)))
            parts.clear()
            continue
        parts.append(_format_token(token))

    flush_pending()
    elements.append(TextElement(text="".join(parts)))
    return elements


def _parse_arguments(
    arg_text: str,
    *,
    fragment: str,
    key: Optional[str],
) -> Dict[str, str]:
    arguments: Dict[str, str] = {}
    for item in arg_text.split(","):
        name, sep, value = item.partition("=")
        if not sep or not name:
            raise MalformedDirectiveError(
                f"Argument '{item}' is not in key=value form",
                fragment=fragment,
                key=key,
            )
        if name in arguments:
            raise MalformedDirectiveError(
                f"Argument '{name}' given more than once",
                fragment=fragment,
                key=key,
            )
        arguments[name] = value
    return arguments


def _parse_position(
    arg_text: str,
    *,
    fragment: str,
    key: Optional[str],
) -> PositionCursor:
    arguments = _parse_arguments(arg_text, fragment=fragment, key=key)
    unexpected = sorted(set(arguments) - {"x", "y"})
    if unexpected:
        raise MalformedDirectiveError(
            f"Unexpected argument(s) {', '.join(unexpected)} for 'pos'",
            fragment=fragment,
            key=key,
        )
    coordinates: Dict[str, int] = {}
    for name in ("x", "y"):
        raw = arguments.get(name)
        if raw is None:
            raise MalformedDirectiveError(
                f"Missing '{name}' argument for 'pos'",
                fragment=fragment,
                key=key,
            )
        if not INTEGER_PATTERN.fullmatch(raw):
            raise MalformedDirectiveError(
                f"Argument '{name}' must be an integer",
                fragment=fragment,
                key=key,
            )
        value = int(raw)
        if not INT16_MIN <= value <= INT16_MAX:
            raise MalformedDirectiveError(
                f"Argument '{name}' is outside {INT16_MIN}..{INT16_MAX}",
                fragment=fragment,
                key=key,
            )
        coordinates[name] = value
    return PositionCursor(x=coordinates["x"], y=coordinates["y"])


def _parse_directive(body: str, *, fragment: str, key: Optional[str]) -> Token:
    name, sep, arg_text = body.partition(":")
    if not name:
        raise MalformedDirectiveError("Directive has no name", fragment=fragment, key=key)
    if not DIRECTIVE_NAME_PATTERN.fullmatch(name):
        raise UnknownDirectiveError(
            f"Unknown directive '{name}'", fragment=fragment, key=key
        )

    fixed = _FIXED_DIRECTIVES.get(name)
    if fixed is not None:
        if sep:
            raise MalformedDirectiveError(
                f"Directive '{name}' takes no arguments",
                fragment=fragment,
                key=key,
            )
        return fixed()

    if name == "pos":
        if not sep:
            raise MalformedDirectiveError(
                "Directive 'pos' requires x and y arguments",
                fragment=fragment,
                key=key,
            )
        return _parse_position(arg_text, fragment=fragment, key=key)

    raise UnknownDirectiveError(f"Unknown directive '{name}'", fragment=fragment, key=key)


def decode_text(text: str, key: Optional[str] = None) -> List[Token]:
    """Decode a single markup string into tokens."""

    tokens: List[Token] = []
    literal: List[str] = []

    def flush_literal() -> None:
        joined = "".join(literal)
        literal.clear()
        if joined:
            tokens.append(TextRun(joined))

    cursor = 0
    for match in MARKUP_PATTERN.finditer(text):
        literal.append(text[cursor:match.start()])
        cursor = match.end()

        escape = match.group("escape")
        if escape is not None:
            if escape == "n":
                flush_literal()
                tokens.append(NewLine())
            else:
                # Unknown escapes are kept verbatim.
                literal.append(_ESCAPED_LITERALS.get(escape, match.group(0)))
            continue

        fragment = match.group(0)
        if match.group("close") is None:
            raise MalformedDirectiveError(
                "Directive is missing its closing ']'",
                fragment=fragment,
                key=key,
            )
        flush_literal()
        tokens.append(_parse_directive(match.group("body"), fragment=fragment, key=key))

    literal.append(text[cursor:])
    flush_literal()
    return tokens


def decode_elements(
    elements: Sequence[TextElement],
    key: Optional[str] = None,
) -> List[Token]:
    """Convert markup elements back into the legacy token stream."""

    tokens: List[Token] = []
    for index, element in enumerate(elements):
        if index:
            tokens.append(SubrecordSeparator())
        tokens.extend(decode_text(element.text, key=key))
    return tokens


def decode_group(group: TextGroup) -> List[Token]:
    """Decode every element of a text group, reporting errors against its key."""

    return decode_elements(group.elements, key=group.primary_key)


def normalize_tokens(tokens: Sequence[Token]) -> List[Token]:
    """Return the canonical form of a token sequence.

    Empty text runs are dropped and adjacent runs merged, which is exactly
    what a decode of encoded markup yields.
    """

    normalized: List[Token] = []
    for token in tokens:
        if isinstance(token, TextRun):
            if not token.text:
                continue
            previous = normalized[-1] if normalized else None
            if isinstance(previous, TextRun):
                normalized[-1] = TextRun(previous.text + token.text)
                continue
        normalized.append(token)
    return normalized
