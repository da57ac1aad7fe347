"""Import of classic game text into a text database."""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from .archives import LegacyArchive
from .database import TextDatabase
from .errors import SourceUnavailableError
from .markup import encode_tokens
from .structures import LegacySource, TextGroup

TEXT_RSC_KEY_FORMAT = "text.{id}"


def make_text_rsc_key(record_id: int) -> str:
    """Create a TEXT.RSC key in the form ``text.<id>``."""

    return TEXT_RSC_KEY_FORMAT.format(id=int(record_id))


@dataclass
class ImportSummary:
    """Report returned after importing an archive."""

    source: LegacySource
    total_records: int
    overwrites: int
    elapsed_seconds: float
    keys: List[str] = field(default_factory=list)


class LegacyImportRunner:
    """Converts every record of a legacy archive into database text groups.

    Records are all encoded before the first insert, so a source that fails
    to load or a record that fails to encode leaves the database untouched.
    """

    def __init__(
        self,
        *,
        archive: LegacyArchive,
        database: TextDatabase,
        source: Optional[LegacySource] = None,
        verbose: bool = False,
    ) -> None:
        self.archive = archive
        self.database = database
        self.source = source or archive.source
        self.verbose = verbose

    def run(self) -> ImportSummary:
        start_time = time.time()

        if not self.archive.is_loaded:
            reason = getattr(self.archive, "load_error", None)
            raise SourceUnavailableError(
                f"Could not load {self.source.value}" + (f": {reason}" if reason else ".")
            )

        items = self._convert_records()
        overwrites = self.database.insert_many(items)

        summary = ImportSummary(
            source=self.source,
            total_records=len(items),
            overwrites=overwrites,
            elapsed_seconds=time.time() - start_time,
            keys=[key for key, _ in items],
        )
        if self.verbose:
            print(
                f"Added {summary.total_records} {self.source.value} entries "
                f"to database with {summary.overwrites} overwrites."
            )
        return summary

    def _convert_records(self) -> List[Tuple[str, TextGroup]]:
        items: List[Tuple[str, TextGroup]] = []
        for _, record_id, tokens in self.archive.iter_records():
            key = make_text_rsc_key(record_id)
            group = TextGroup(
                legacy_source=self.source,
                primary_key=key,
                elements=encode_tokens(tokens),
            )
            items.append((key, group))
        return items


def import_archive(
    archive: LegacyArchive,
    database: TextDatabase,
    *,
    source: Optional[LegacySource] = None,
    verbose: bool = False,
) -> ImportSummary:
    """Import every record of ``archive`` into ``database``. Duplicates are overwritten."""

    runner = LegacyImportRunner(
        archive=archive,
        database=database,
        source=source,
        verbose=verbose,
    )
    return runner.run()
