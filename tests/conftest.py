"""Shared fixtures: fake spreadsheet and publisher collaborators."""

from __future__ import annotations

from typing import Any, Dict, List, Optional

import pytest

from sheet_poster.config import AppConfig
from sheet_poster.models import PublishResult

RED = {"red": 1.0, "green": 0.0, "blue": 0.0}
WHITE = {"red": 1.0, "green": 1.0, "blue": 1.0}


def grid_cell(text: Optional[str], background: Any = None) -> Dict[str, Any]:
    """Build a Sheets RowData entry holding a single cell."""
    cell: Dict[str, Any] = {}
    if text is not None:
        cell["formattedValue"] = text
    if background is not None:
        cell["effectiveFormat"] = {"backgroundColor": background}
    return {"values": [cell]}


class FakeSheets:
    """Records every call made against the spreadsheet."""

    def __init__(self, row_data: Optional[List[Dict[str, Any]]] = None) -> None:
        self.row_data = row_data or []
        self.calls: List[tuple] = []
        self.read_error: Optional[Exception] = None
        self.mark_error: Optional[Exception] = None

    def fetch_column_grid(self, spreadsheet_id, sheet_name, column_letter="B"):
        self.calls.append(("fetch_column_grid", spreadsheet_id, sheet_name, column_letter))
        if self.read_error is not None:
            raise self.read_error
        return self.row_data

    def mark_row_used(self, spreadsheet_id, sheet_name, row_index, used_color):
        self.calls.append(("mark_row_used", spreadsheet_id, sheet_name, row_index, used_color))
        if self.mark_error is not None:
            raise self.mark_error


class FakePublisher:
    """Returns predictable Graph ids and records calls in order."""

    def __init__(self, log: Optional[List[tuple]] = None) -> None:
        self.calls: List[tuple] = log if log is not None else []
        self.publish_error: Optional[Exception] = None
        self.share_error: Optional[Exception] = None

    def publish(self, page_id, token, message, *, published=True, background_id=None):
        self.calls.append(("publish", page_id, token, message, published, background_id))
        if self.publish_error is not None:
            raise self.publish_error
        return PublishResult(object_id=f"{page_id}_1001", page_id=page_id)

    def share(self, page_id, token, post_id, *, published=True):
        self.calls.append(("share", page_id, token, post_id))
        if self.share_error is not None:
            raise self.share_error
        return PublishResult(object_id=f"{page_id}_2002", page_id=page_id)


@pytest.fixture
def app_config() -> AppConfig:
    return AppConfig(
        page_a_id="111",
        page_a_token="token-a",
        page_b_id="222",
        page_b_token="token-b",
        spreadsheet_id="sheet-id",
        sheet_tab_name="Messages",
        used_row_color="#FF0000",
        background_id="preset-default",
    )


@pytest.fixture
def fake_sheets() -> FakeSheets:
    return FakeSheets()


@pytest.fixture
def fake_publisher() -> FakePublisher:
    return FakePublisher()
