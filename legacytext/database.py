"""In-memory localization text database."""

from __future__ import annotations

import dataclasses
import threading
from typing import Dict, Iterable, Iterator, List, Optional, Tuple

from .structures import TextGroup


class TextDatabase:
    """Keyed store of text groups with substring search.

    Keys are case-sensitive and unique. Every read and mutation takes the
    store lock, and ``insert_many`` holds it for the whole batch so a batch
    lands in full or not at all.
    """

    def __init__(self) -> None:
        self._groups: Dict[str, TextGroup] = {}
        self._lock = threading.RLock()
        self.overwrite_count: int = 0

    def __len__(self) -> int:
        with self._lock:
            return len(self._groups)

    def __contains__(self, key: object) -> bool:
        with self._lock:
            return key in self._groups

    def __iter__(self) -> Iterator[TextGroup]:
        return iter(self._snapshot())

    def keys(self) -> List[str]:
        with self._lock:
            return list(self._groups)

    def get(self, key: str) -> Optional[TextGroup]:
        """Return the group stored under ``key``, if any."""

        with self._lock:
            return self._groups.get(key)

    def insert(self, key: str, group: TextGroup) -> bool:
        """Insert or replace a group and report whether one was replaced."""

        with self._lock:
            return self._insert(key, group)

    def insert_many(self, items: Iterable[Tuple[str, TextGroup]]) -> int:
        """Insert a batch of groups and return how many replaced existing ones."""

        pending = list(items)
        overwrites = 0
        with self._lock:
            for key, group in pending:
                if self._insert(key, group):
                    overwrites += 1
        return overwrites

    def remove(self, key: str) -> bool:
        with self._lock:
            return self._groups.pop(key, None) is not None

    def merge(self, other: "TextDatabase") -> int:
        """Copy every group of ``other`` into this database, replacing duplicates."""

        if other is self:
            return 0
        return self.insert_many(
            (group.primary_key, group) for group in other._snapshot()
        )

    def search(self, substring: Optional[str] = None) -> List[TextGroup]:
        """Return groups with any element containing ``substring``.

        Matching ignores case. ``None`` or an empty string lists every
        group. Result order is not defined.
        """

        needle = (substring or "").casefold()
        results: List[TextGroup] = []
        for group in self._snapshot():
            if not group.elements:
                continue
            if not needle:
                results.append(group)
                continue
            for element in group.elements:
                if needle in element.text.casefold():
                    results.append(group)
                    break
        return results

    def _insert(self, key: str, group: TextGroup) -> bool:
        if group.primary_key != key:
            group = dataclasses.replace(group, primary_key=key)
        replaced = key in self._groups
        self._groups[key] = group
        if replaced:
            self.overwrite_count += 1
        return replaced

    def _snapshot(self) -> List[TextGroup]:
        with self._lock:
            return list(self._groups.values())
