from __future__ import annotations

import http.client
import logging
from pathlib import Path
from typing import IO, List, Union

import pandas as pd

from core.records import CATALOG_COLUMNS, Record, canonicalize_records, coerce_record
from core.settings import DEFAULT_CSV_URL


logger = logging.getLogger(__name__)

CSV_URL = DEFAULT_CSV_URL

CatalogSource = Union[str, Path, IO[str]]


class IngestionError(RuntimeError):
    """The catalog sheet could not be fetched or parsed."""


def read_catalog_frame(source: CatalogSource) -> pd.DataFrame:
    try:
        return pd.read_csv(
            source,
            dtype=str,
            keep_default_na=False,
            skip_blank_lines=False,
        )
    except (OSError, ValueError, http.client.HTTPException) as exc:
        # URLError/HTTPError are OSErrors, EmptyDataError/ParserError are ValueErrors
        # and a truncated download is an http.client.IncompleteRead.
        raise IngestionError(f"Could not load catalog from {source!r}: {exc}") from exc


def check_catalog_columns(df: pd.DataFrame) -> List[str]:
    """Return the catalog columns absent from ``df``; raise if none are present."""
    present = [c for c in CATALOG_COLUMNS if c in df.columns]
    if not present:
        raise IngestionError(f"No catalog columns found; got {list(df.columns)}")
    missing = [c for c in CATALOG_COLUMNS if c not in df.columns]
    if missing:
        logger.warning("Catalog sheet is missing columns %s; filling with blanks", missing)
    return missing


def frame_to_records(df: pd.DataFrame) -> List[Record]:
    rows = [coerce_record(row) for row in df.to_dict(orient="records")]
    return canonicalize_records(rows)


def load_catalog_records(source: CatalogSource = CSV_URL) -> List[Record]:
    """Fetch the catalog sheet once and return its rows in sheet order."""
    df = read_catalog_frame(source)
    check_catalog_columns(df)
    records = frame_to_records(df)
    logger.info("Loaded %d catalog records", len(records))
    return records
