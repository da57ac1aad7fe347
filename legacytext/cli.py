"""Command line interface for the legacytext database."""

from __future__ import annotations

import argparse
import pathlib
import sys
from typing import Iterable, List, Optional

from .archives import open_archive, token_to_dict
from .database import TextDatabase
from .errors import (
    ConfigurationError,
    DirectiveError,
    LegacyTextError,
    SourceUnavailableError,
    UnsupportedArchiveError,
    UnsupportedTokenKindError,
)
from .importer import ImportSummary, import_archive
from .markup import decode_group
from .structures import LegacySource, TextGroup


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="legacytext",
        description=(
            "Import classic game text into a localization database and browse it as markup."
        ),
    )
    # Options every subcommand accepts after its name.
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Show detailed progress information.",
    )
    common.add_argument(
        "-a",
        "--archive",
        help="Path to the archive token dump (default: LEGACYTEXT_ARCHIVE).",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    import_parser = subparsers.add_parser(
        "import",
        parents=[common],
        help="Import an archive and report record and overwrite counts.",
    )
    import_parser.add_argument(
        "archive_file",
        nargs="?",
        metavar="ARCHIVE",
        help="Path to the archive token dump, same as --archive.",
    )

    search_parser = subparsers.add_parser(
        "search",
        parents=[common],
        help="Import an archive and list groups whose text contains a term.",
    )
    search_parser.add_argument(
        "term",
        nargs="?",
        default="",
        help="Case-insensitive substring to look for. Omit to list everything.",
    )

    show_parser = subparsers.add_parser(
        "show",
        parents=[common],
        help="Import an archive and print one text group.",
    )
    show_parser.add_argument("key", help="Database key, e.g. text.1000.")
    show_parser.add_argument(
        "--tokens",
        action="store_true",
        help="Also decode the markup back into legacy tokens.",
    )
    return parser


def load_database(
    *,
    archive_file: str,
    source: LegacySource | None,
    verbose: bool,
) -> tuple[int, TextDatabase | None, ImportSummary | None, str | None]:
    """Import an archive into a fresh database.

    Returns the exit code, database, summary, and message.
    """

    archive_path = pathlib.Path(archive_file).expanduser().resolve()
    if not archive_path.is_file():
        return 1, None, None, f"Archive not found: {archive_path}"

    database = TextDatabase()
    try:
        archive = open_archive(archive_path)
        summary = import_archive(archive, database, source=source, verbose=verbose)
    except UnsupportedArchiveError as exc:
        return 1, None, None, str(exc)
    except SourceUnavailableError as exc:
        return 1, None, None, str(exc)
    except UnsupportedTokenKindError as exc:
        return 1, None, None, f"Import aborted, database left unchanged. {exc}"
    except LegacyTextError as exc:
        return 1, None, None, f"{exc.category.name.title()} error: {exc}"
    except KeyboardInterrupt:
        return 2, None, None, "Import interrupted by user."

    return 0, database, summary, None


def print_summary(summary: ImportSummary) -> None:
    """Output a friendly report once an import completes."""

    print("\nImport complete.")
    print(f"  Source:          {summary.source.value}")
    print(f"  Records:         {summary.total_records}")
    print(f"  Overwrites:      {summary.overwrites}")
    print(f"  Elapsed time:    {summary.elapsed_seconds:.2f} seconds")


def print_group(group: TextGroup, *, with_tokens: bool = False) -> None:
    print(f"{group.primary_key} ({group.legacy_source.value})")
    for index, element in enumerate(group.elements):
        print(f"  [{index}] {element.text}")
    if with_tokens:
        for token in decode_group(group):
            print(f"    {token_to_dict(token)}")


def _resolve_defaults(
    args: argparse.Namespace,
) -> tuple[str | None, LegacySource | None, bool, str | None]:
    """Fill the archive, source and verbosity from configuration."""

    from .configuration import get_settings

    try:
        settings = get_settings()
    except ConfigurationError as exc:
        return None, None, bool(args.verbose), str(exc)
    archive = (
        getattr(args, "archive_file", None)
        or args.archive
        or settings.LEGACYTEXT_ARCHIVE
    )
    verbose = bool(args.verbose or settings.LEGACYTEXT_VERBOSE)
    return archive, settings.legacy_source(), verbose, None


def main(argv: Optional[Iterable[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(list(argv) if argv is not None else None)

    archive, source, verbose, message = _resolve_defaults(args)
    if message:
        print(message)
        return 1
    if not archive:
        parser.error("an archive path is required (--archive or LEGACYTEXT_ARCHIVE)")

    exit_code, database, summary, message = load_database(
        archive_file=archive,
        source=source,
        verbose=verbose,
    )
    if message:
        print(message)
    if database is None or summary is None:
        return exit_code

    if args.command == "import":
        print_summary(summary)
        return exit_code

    if args.command == "search":
        results: List[TextGroup] = sorted(
            database.search(args.term), key=lambda group: group.primary_key
        )
        for group in results:
            print_group(group)
        print(f"\n{len(results)} matching group(s).")
        return exit_code

    group = database.get(args.key)
    if group is None:
        print(f"No text group with key '{args.key}'.")
        return 1
    try:
        print_group(group, with_tokens=args.tokens)
    except DirectiveError as exc:
        print(exc)
        return 1
    return exit_code


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
