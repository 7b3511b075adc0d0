from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Sequence

import pandas as pd

from core.charts import staff_bar_chart, status_pie_chart, to_vega_spec
from core.pagination import page_count, page_range
from core.records import STAFF, STATUS, STATUS_COMPLETE, STATUS_INCOMPLETE, Record


@dataclass(frozen=True)
class CatalogSummary:
    total_records: int = 0
    complete_count: int = 0
    incomplete_count: int = 0
    active_staff: int = 0
    staff_tally: Dict[str, int] = field(default_factory=dict)


def _column(records: Sequence[Record], name: str) -> pd.Series:
    return pd.Series([r.get(name, "") for r in records], dtype="string")


def compute_summary(records: Sequence[Record]) -> CatalogSummary:
    """KPIs over the whole collection, not just the visible page."""
    if not records:
        return CatalogSummary()
    status = _column(records, STATUS)
    staff = _column(records, STAFF)
    staff = staff[staff != ""]
    tally = {str(k): int(v) for k, v in staff.value_counts(sort=False).items()}
    return CatalogSummary(
        total_records=len(records),
        complete_count=int((status == STATUS_COMPLETE).sum()),
        incomplete_count=int((status == STATUS_INCOMPLETE).sum()),
        active_staff=len(tally),
        staff_tally=tally,
    )


def status_breakdown(summary: CatalogSummary) -> Dict[str, int]:
    return {"complete": summary.complete_count, "incomplete": summary.incomplete_count}


def compute_overview(records: Sequence[Record], *, page: int, page_size: int) -> Dict[str, Any]:
    summary = compute_summary(records)
    n = len(records)
    idx = page_range(n, page, page_size)
    rows: List[Dict[str, Any]] = [{"position": i, **records[i]} for i in idx]

    charts: Dict[str, Any] = {"status_pie": to_vega_spec(status_pie_chart(status_breakdown(summary)))}
    if summary.staff_tally:
        charts["staff_bar"] = to_vega_spec(staff_bar_chart(summary.staff_tally))

    return {
        "kpis": asdict(summary),
        "status_breakdown": status_breakdown(summary),
        "page": {
            "page": page,
            "page_size": page_size,
            "page_count": page_count(n, page_size),
            "start": idx.start,
            "stop": idx.stop,
        },
        "rows": rows,
        "charts": charts,
    }
