from __future__ import annotations

import math
from typing import List, Sequence, TypeVar

T = TypeVar("T")


def _check(n: int, page_size: int) -> None:
    if page_size <= 0:
        raise ValueError(f"page_size must be positive, got {page_size}")
    if n < 0:
        raise ValueError(f"record count must be non-negative, got {n}")


def page_count(n: int, page_size: int) -> int:
    _check(n, page_size)
    return max(1, math.ceil(n / page_size))


def page_range(n: int, page: int, page_size: int) -> range:
    """Half-open index range shown on ``page`` (1-based). Not clamped."""
    _check(n, page_size)
    if page < 1:
        raise ValueError(f"page must be >= 1, got {page}")
    start = (page - 1) * page_size
    return range(min(start, n), min(page * page_size, n))


def page_slice(records: Sequence[T], page: int, page_size: int) -> List[T]:
    idx = page_range(len(records), page, page_size)
    return list(records[idx.start : idx.stop])


def absolute_position(page: int, page_size: int, row: int) -> int:
    return (page - 1) * page_size + row
