from __future__ import annotations

import logging
from typing import Any, Dict, List, Mapping, Optional, Protocol, Sequence

from .colors import normalize_color
from .models import RowRecord, RowStatus

LOGGER = logging.getLogger("sheet_poster.catalog")

FIRST_DATA_ROW = 2


class ColumnSource(Protocol):
    def fetch_column_grid(
        self, spreadsheet_id: str, sheet_name: str, column_letter: str = "B"
    ) -> List[Dict[str, Any]]: ...


def _cell_text(cell: Mapping[str, Any]) -> str:
    formatted = cell.get("formattedValue")
    if formatted:
        return str(formatted).strip()
    raw = (cell.get("effectiveValue") or {}).get("stringValue")
    return str(raw or "").strip()


def _cell_background(cell: Mapping[str, Any]) -> Any:
    # effectiveFormat reflects conditional formatting; userEnteredFormat does not.
    effective = cell.get("effectiveFormat") or {}
    background = effective.get("backgroundColor")
    if background is None:
        background = (effective.get("backgroundColorStyle") or {}).get("rgbColor")
    return background


def classify_row_status(background: Any, used_color: Optional[str]) -> RowStatus:
    """Compare a cell background with the marker colour.

    A background that cannot be interpreted yields INDETERMINATE, which callers
    treat as not used.
    """

    if not used_color or background is None:
        return RowStatus.UNUSED
    if not isinstance(background, (str, Mapping)):
        return RowStatus.INDETERMINATE
    if normalize_color(background) == normalize_color(used_color):
        return RowStatus.USED
    return RowStatus.UNUSED


def build_row_records(
    row_data: Sequence[Mapping[str, Any] | None],
    used_color: Optional[str],
    first_row: int = FIRST_DATA_ROW,
) -> List[RowRecord]:
    """Turn Sheets ``rowData`` for one column into ordered row records."""

    records: List[RowRecord] = []
    for offset, row in enumerate(row_data):
        row_index = first_row + offset
        cells = (row or {}).get("values") or []
        cell = cells[0] if cells else None
        if not cell:
            records.append(RowRecord(row_index, "", None, RowStatus.UNUSED))
            continue

        background = _cell_background(cell)
        canonical = None
        if isinstance(background, (str, Mapping)):
            canonical = normalize_color(background)
        records.append(
            RowRecord(
                row_index=row_index,
                text=_cell_text(cell),
                background_color=canonical,
                status=classify_row_status(background, used_color),
            )
        )
    return records


def read_column(
    source: ColumnSource,
    spreadsheet_id: str,
    sheet_name: str,
    column_letter: str,
    used_color: Optional[str],
) -> List[RowRecord]:
    """Read a column with its formatting and classify every row.

    Errors raised by ``source`` (``DataSourceError``) propagate unchanged.
    """

    row_data = source.fetch_column_grid(spreadsheet_id, sheet_name, column_letter)
    records = build_row_records(row_data, used_color)
    LOGGER.info("Read %s rows from %s!%s", len(records), sheet_name, column_letter)
    return records
