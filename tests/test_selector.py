"""Tests for selector.py: random choice among unused rows."""

import random

from sheet_poster.models import RowRecord, RowStatus, Selection
from sheet_poster.selector import eligible_rows, select_unused


def _row(index: int, text: str, used: bool = False) -> RowRecord:
    status = RowStatus.USED if used else RowStatus.UNUSED
    color = "255,0,0" if used else None
    return RowRecord(index, text, color, status)


class TestSelectUnused:
    def test_single_candidate_is_chosen(self) -> None:
        rows = [_row(2, "Hello"), _row(3, ""), _row(4, "World", used=True)]
        assert select_unused(rows) == Selection(text="Hello", row_index=2)

    def test_no_candidate_returns_none(self) -> None:
        rows = [_row(2, ""), _row(3, "Used", used=True)]
        assert select_unused(rows) is None

    def test_empty_catalog_returns_none(self) -> None:
        assert select_unused([]) is None

    def test_choice_uses_injected_rng(self) -> None:
        rows = [_row(i, f"msg {i}") for i in range(2, 12)]
        first = select_unused(rows, random.Random(7))
        second = select_unused(rows, random.Random(7))
        assert first == second
        assert first is not None and first.row_index in range(2, 12)

    def test_every_candidate_can_be_selected(self) -> None:
        rows = [_row(2, "a"), _row(3, "b"), _row(4, "c", used=True)]
        rng = random.Random(1)
        picked = {select_unused(rows, rng).row_index for _ in range(200)}
        assert picked == {2, 3}

    def test_selection_does_not_mutate_rows(self) -> None:
        rows = [_row(2, "a")]
        select_unused(rows)
        assert rows == [_row(2, "a")]


def test_eligible_rows_filters_blank_and_used() -> None:
    rows = [_row(2, "a"), _row(3, ""), _row(4, "b", used=True)]
    assert [r.row_index for r in eligible_rows(rows)] == [2]
