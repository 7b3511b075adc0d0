from __future__ import annotations

from typing import Iterable, List, Mapping

from core.records import Record


class OutOfRange(IndexError):
    """An edit position does not index the current record sequence."""


class CollectionStore:
    """The session's single writable copy of the catalog, in sheet row order.

    ``version`` increments on every mutation so derived snapshots can tell
    they are stale. There is no history: overwritten values are gone.
    """

    def __init__(self) -> None:
        self._records: List[Record] = []
        self.version = 0

    def __len__(self) -> int:
        return len(self._records)

    def replace(self, records: Iterable[Mapping[str, str]]) -> None:
        self._records = [dict(r) for r in records]
        self.version += 1

    def set_field(self, position: int, field: str, value: str) -> None:
        if not 0 <= position < len(self._records):
            raise OutOfRange(f"position {position} outside 0..{len(self._records) - 1}")
        self._records[position][field] = value
        self.version += 1

    def snapshot(self) -> List[Record]:
        # By reference; callers derive from it and must not mutate it.
        return self._records
