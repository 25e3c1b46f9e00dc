from __future__ import annotations

from dataclasses import asdict, dataclass
from enum import Enum
from typing import Any, Dict, Optional

DEFAULT_POST_BASE_URL = "https://www.facebook.com/"


def post_url(object_id: str, base_url: str = DEFAULT_POST_BASE_URL) -> str:
    """Return the public URL for a ``<page>_<post>`` Graph object id."""

    return f"{base_url}{object_id.replace('_', '/posts/', 1)}"


class RowStatus(str, Enum):
    UNUSED = "unused"
    USED = "used"
    INDETERMINATE = "indeterminate"


class WorkflowStage(str, Enum):
    VALIDATING = "validating"
    SELECTING = "selecting"
    PUBLISHING_PRIMARY = "publishing_primary"
    SHARING = "sharing"
    MARKING_USED = "marking_used"
    DONE = "done"
    FAILED = "failed"


@dataclass(frozen=True, slots=True)
class RowRecord:
    """A single cell of the message column together with its colour state."""

    row_index: int  # spreadsheet 1-based row number
    text: str
    background_color: Optional[str]  # canonical "r,g,b" or None
    status: RowStatus

    @property
    def is_used(self) -> bool:
        return self.status is RowStatus.USED

    @property
    def is_candidate(self) -> bool:
        return bool(self.text) and not self.is_used


@dataclass(frozen=True, slots=True)
class Selection:
    text: str
    row_index: int


@dataclass(frozen=True, slots=True)
class PublishResult:
    """Identifier returned by the Graph API for a created post or share."""

    object_id: str
    page_id: str

    def url(self, base_url: str = DEFAULT_POST_BASE_URL) -> str:
        return post_url(self.object_id, base_url)


@dataclass(slots=True)
class WorkflowResult:
    post_id: str
    share_id: str
    message: str
    row_index: int
    post_url: str
    share_url: str
    success: bool = True

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(slots=True)
class DirectPostResult:
    post_id: str
    post_url: str
    message: str
    share_id: Optional[str] = None
    share_url: Optional[str] = None
    success: bool = True

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)
