"""
Step 10: Tabular export of date events.
One flat row per event, rendered as CSV.
"""
from __future__ import annotations

import csv
import io
from datetime import date
from typing import Iterable

from packages.shared.models import EventSource, ExportRow, PageClassification

CSV_HEADERS = ["Date", "Summary", "Type", "Page", "Primary", "Source", "Notes"]


def _format_date(value: str | date) -> str:
    if isinstance(value, date):
        return value.isoformat()
    try:
        return date.fromisoformat(value.strip()[:10]).isoformat()
    except ValueError:
        return value


def _single_line(value: str | None) -> str:
    # Spreadsheet tools choke on embedded record separators even when quoted.
    return " ".join((value or "").split())


def build_export_rows(events: Iterable) -> list[ExportRow]:
    """
    Map stored DateEvent rows (or any object with the same attributes)
    to export rows. Input order is kept; callers pass events already sorted.
    """
    rows: list[ExportRow] = []
    for event in events:
        page = getattr(event, "page", None)
        rows.append(ExportRow(
            date=_format_date(event.date),
            summary=_single_line(event.summary),
            type=str(event.type),
            page=page.page_number if page is not None else None,
            primary=bool(event.is_primary),
            source=str(event.source),
            notes=_single_line(event.user_notes),
        ))
    return rows


def generate_csv(rows: list[ExportRow]) -> bytes:
    buf = io.StringIO()
    writer = csv.writer(buf)
    writer.writerow(CSV_HEADERS)
    for row in rows:
        writer.writerow([
            row.date,
            row.summary,
            row.type,
            row.page if row.page is not None else "",
            "Yes" if row.primary else "No",
            row.source,
            row.notes,
        ])
    return buf.getvalue().encode("utf-8")


def export_filename(document_filename: str) -> str:
    stem = document_filename.rsplit(".", 1)[0] if "." in document_filename else document_filename
    return f"{stem}_events.csv"


def rows_from_classifications(classifications: Iterable[PageClassification]) -> list[ExportRow]:
    """Export rows straight from language-model output, ordered by date then page."""
    rows = [
        ExportRow(
            date=event.date.isoformat(),
            summary=_single_line(event.summary),
            type=event.type.value,
            page=c.page_number,
            primary=event.is_primary,
            source=EventSource.LLM.value,
        )
        for c in classifications
        for event in c.events
    ]
    return sorted(rows, key=lambda r: (r.date, r.page or 0))
