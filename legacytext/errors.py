"""Error definitions for the legacytext database and codec."""

from __future__ import annotations

from enum import Enum, auto
from typing import Optional


class ErrorCategory(Enum):
    """Categorises failures so callers can report them consistently."""

    SOURCE = auto()
    ENCODE = auto()
    DECODE = auto()
    CONFIGURATION = auto()


class LegacyTextError(Exception):
    """Base exception for all custom errors."""

    category: ErrorCategory = ErrorCategory.SOURCE


class SourceUnavailableError(LegacyTextError):
    """Raised when a legacy archive could not be opened or loaded."""


class UnsupportedArchiveError(LegacyTextError):
    """Raised when no archive reader handles a given file."""


class ArchiveFormatError(LegacyTextError):
    """Raised when an archive record cannot be read into tokens."""


class UnsupportedTokenKindError(LegacyTextError):
    """Raised when a token has no markup mapping."""

    category = ErrorCategory.ENCODE

    def __init__(self, token: object) -> None:
        self.token = token
        super().__init__(
            f"Unexpected legacy token encountered: {type(token).__name__} ({token!r})"
        )


class DirectiveError(LegacyTextError):
    """Base class for markup that cannot be decoded back into tokens."""

    category = ErrorCategory.DECODE

    def __init__(self, problem: str, *, fragment: str, key: Optional[str] = None) -> None:
        self.problem = problem
        self.fragment = fragment
        self.key = key
        location = f" in '{key}'" if key else ""
        super().__init__(f"{problem}{location}: {fragment!r}")


class UnknownDirectiveError(DirectiveError):
    """Raised when markup names a directive that does not exist."""


class MalformedDirectiveError(DirectiveError):
    """Raised when a directive is unterminated or has bad arguments."""


class ConfigurationError(LegacyTextError):
    """Raised when configuration sources are unreadable or invalid."""

    category = ErrorCategory.CONFIGURATION
