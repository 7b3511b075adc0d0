from __future__ import annotations

from typing import Dict, Iterable, List, Mapping

import pandas as pd


Record = Dict[str, str]

NO = "NO"
CONTROL_NUMBER = "CONTROL NUMBER"
CALL_NO_082 = "CALL NO (082)"
CALL_NO_050_060 = "CALL NO (050/060)"
ACCESSION = "ACCESSION"
TITLE = "TITLE"
STATUS = "STATUS"
STAFF = "STAFF"
DATE = "DATE"

RECORD_FIELDS = [CONTROL_NUMBER, CALL_NO_082, CALL_NO_050_060, ACCESSION, TITLE, STATUS, STAFF, DATE]
CATALOG_COLUMNS = [NO] + RECORD_FIELDS
EDITABLE_FIELDS = [CONTROL_NUMBER, CALL_NO_050_060, STATUS, STAFF, DATE]

STATUS_COMPLETE = "Complete"
STATUS_INCOMPLETE = "Incomplete"
STATUS_OPTIONS = ["", STATUS_COMPLETE, STATUS_INCOMPLETE]
STAFF_OPTIONS = ["", "FATIHAH", "FAZILAH", "SAKINAH", "HUSNA", "ALIA", "EYZAN", "USER"]

# Sheet label -> canonical label. Nothing else is rewritten.
STATUS_ALIASES = {"Completed": STATUS_COMPLETE}


class InvalidEdit(ValueError):
    """An edit names a read-only field or a value outside its option set."""


def canonicalize_status(value: str) -> str:
    return STATUS_ALIASES.get(value, value)


def canonicalize_records(records: Iterable[Mapping[str, str]]) -> List[Record]:
    out: List[Record] = []
    for row in records:
        rec = dict(row)
        if STATUS in rec:
            rec[STATUS] = canonicalize_status(rec[STATUS])
        out.append(rec)
    return out


def as_text(value: object) -> str:
    if value is None:
        return ""
    try:
        if pd.isna(value):
            return ""
    except (TypeError, ValueError):
        pass
    return str(value)


def coerce_record(raw: Mapping[object, object]) -> Record:
    rec: Record = {str(k): as_text(v) for k, v in raw.items()}
    for col in CATALOG_COLUMNS:
        rec.setdefault(col, "")
    return rec


def validate_edit(field: str, value: str) -> None:
    if field not in EDITABLE_FIELDS:
        raise InvalidEdit(f"{field!r} is not editable; editable fields: {EDITABLE_FIELDS}")
    if field == STATUS and value not in STATUS_OPTIONS:
        raise InvalidEdit(f"Unknown status {value!r}; expected one of {STATUS_OPTIONS}")
    if field == STAFF and value not in STAFF_OPTIONS:
        raise InvalidEdit(f"Unknown staff {value!r}; expected one of {STAFF_OPTIONS}")
