"""Runtime table of dynamically created strings with mark-and-sweep collection."""

from __future__ import annotations

from collections.abc import Iterator


class StringTable:
    """Tracks strings created at run time and frees the unused ones.

    Newly created strings start out marked as used.
    """

    def __init__(self) -> None:
        self._table: dict[str, bool] = {}

    def create(self, text: str) -> str:
        """Register ``text`` as a dynamic string and return it."""
        self._table[text] = True
        return text

    def duplicate(self, text: str) -> str:
        """Register a copy of ``text`` and return it."""
        return self.create(str(text))

    def clear_usage(self) -> None:
        """Mark every string as unused."""
        for text in self._table:
            self._table[text] = False

    def mark_used(self, text: str) -> None:
        """Mark ``text`` as used; strings not in the table are ignored."""
        if text in self._table:
            self._table[text] = True

    def gc(self) -> None:
        """Remove every string not marked as used."""
        self._table = {text: used for text, used in self._table.items() if used}

    def __contains__(self, text: object) -> bool:
        return text in self._table

    def __len__(self) -> int:
        return len(self._table)

    def __iter__(self) -> Iterator[str]:
        return iter(list(self._table))