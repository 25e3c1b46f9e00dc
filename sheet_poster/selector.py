from __future__ import annotations

import logging
import random
from typing import Iterable, List, Optional

from .models import RowRecord, Selection

LOGGER = logging.getLogger("sheet_poster.selector")


def eligible_rows(rows: Iterable[RowRecord]) -> List[RowRecord]:
    return [row for row in rows if row.is_candidate]


def select_unused(
    rows: Iterable[RowRecord],
    rng: Optional[random.Random] = None,
) -> Optional[Selection]:
    """Pick one non-empty, unused row uniformly at random.

    Returns ``None`` when nothing is eligible. Nothing is reserved: two readers
    may pick the same row before either marks it used.
    """

    candidates = eligible_rows(rows)
    LOGGER.info("Found %s unused rows", len(candidates))
    if not candidates:
        return None

    chooser = rng if rng is not None else random
    chosen = chooser.choice(candidates)
    LOGGER.info("Selected row %s out of %s candidates", chosen.row_index, len(candidates))
    return Selection(text=chosen.text, row_index=chosen.row_index)
