"""Sheet-driven post-and-share workflow.

A run moves through ``WorkflowStage`` values strictly in order::

    VALIDATING -> SELECTING -> PUBLISHING_PRIMARY -> SHARING -> MARKING_USED -> DONE

Any failure ends the run in ``FAILED`` with the offending stage recorded on the
raised :class:`StageError`. Nothing is rolled back: when sharing or marking the
row fails, the primary post already exists and the row stays unused.
"""

from __future__ import annotations

import logging
import random
from typing import Callable, List, Optional, Protocol

from .catalog import read_column
from .config import PRIMARY_PAGE_KEYS, SECONDARY_PAGE_KEYS, SHEET_KEYS, AppConfig
from .errors import (
    DataSourceError,
    EmptyMessageError,
    NoCandidateError,
    PublishError,
    StageError,
    TransportError,
)
from .models import (
    DirectPostResult,
    PublishResult,
    RowRecord,
    Selection,
    WorkflowResult,
    WorkflowStage,
    post_url,
)
from .selector import select_unused

LOGGER = logging.getLogger("sheet_poster.workflow")

StageListener = Callable[[WorkflowStage], None]


class SheetSource(Protocol):
    def fetch_column_grid(self, spreadsheet_id: str, sheet_name: str, column_letter: str = "B") -> list: ...

    def mark_row_used(self, spreadsheet_id: str, sheet_name: str, row_index: int, used_color: str) -> None: ...


class Publisher(Protocol):
    def publish(
        self,
        page_id: str,
        token: str,
        message: str,
        *,
        published: bool = True,
        background_id: Optional[str] = None,
    ) -> PublishResult: ...

    def share(self, page_id: str, token: str, post_id: str, *, published: bool = True) -> PublishResult: ...


def _preview(text: str, limit: int) -> str:
    return text if len(text) <= limit else f"{text[:limit]}..."


class PostWorkflow:
    def __init__(
        self,
        config: AppConfig,
        sheets: SheetSource,
        publisher: Publisher,
        *,
        rng: Optional[random.Random] = None,
        on_stage: Optional[StageListener] = None,
    ) -> None:
        self._config = config
        self._sheets = sheets
        self._publisher = publisher
        self._rng = rng
        self._on_stage = on_stage
        self.stage: Optional[WorkflowStage] = None

    def ensure_config(self, keys: List[str] | tuple[str, ...]) -> None:
        """Fail with every missing key listed before any remote call."""

        self._config.ensure(keys)

    # Operations --------------------------------------------------------------
    def post_from_sheet_and_share(self, *, background_id: Optional[str] = None) -> WorkflowResult:
        """Publish a random unused sheet row, share it, then mark the row used."""

        conf = self._config
        self._enter(WorkflowStage.VALIDATING)
        try:
            self.ensure_config([*PRIMARY_PAGE_KEYS, *SECONDARY_PAGE_KEYS, *SHEET_KEYS])
        except Exception:
            self._enter(WorkflowStage.FAILED)
            raise

        LOGGER.info("Starting post-and-share run")

        self._enter(WorkflowStage.SELECTING)
        selection = self._select()

        self._enter(WorkflowStage.PUBLISHING_PRIMARY)
        primary = self._publish_primary(selection.text, background_id=background_id)

        self._enter(WorkflowStage.SHARING)
        shared = self._share(primary.object_id)

        self._enter(WorkflowStage.MARKING_USED)
        try:
            LOGGER.info("Marking row %s with colour %s", selection.row_index, conf.used_row_color)
            self._sheets.mark_row_used(
                conf.spreadsheet_id,
                conf.sheet_tab_name,
                selection.row_index,
                conf.used_row_color,
            )
        except DataSourceError as exc:
            LOGGER.error(
                "Post %s was published and shared but row %s could not be marked used",
                primary.object_id,
                selection.row_index,
            )
            raise self._fail(f"Failed to mark row {selection.row_index} as used", exc) from exc

        self._enter(WorkflowStage.DONE)
        result = WorkflowResult(
            post_id=primary.object_id,
            share_id=shared.object_id,
            message=selection.text,
            row_index=selection.row_index,
            post_url=post_url(primary.object_id, conf.post_base_url),
            share_url=post_url(shared.object_id, conf.post_base_url),
        )
        LOGGER.info("Post-and-share run completed for row %s", selection.row_index)
        return result

    def post_direct_message(
        self,
        message: str,
        *,
        share: bool = True,
        background_id: Optional[str] = None,
    ) -> DirectPostResult:
        """Publish ``message`` to the primary page without touching the sheet."""

        self._enter(WorkflowStage.VALIDATING)
        try:
            keys = [*PRIMARY_PAGE_KEYS, *(SECONDARY_PAGE_KEYS if share else ())]
            self.ensure_config(keys)
            text = (message or "").strip()
            if not text:
                raise EmptyMessageError()
        except Exception:
            self._enter(WorkflowStage.FAILED)
            raise

        self._enter(WorkflowStage.PUBLISHING_PRIMARY)
        primary = self._publish_primary(text, background_id=background_id)

        result = DirectPostResult(
            post_id=primary.object_id,
            post_url=post_url(primary.object_id, self._config.post_base_url),
            message=text,
        )
        if share:
            self._enter(WorkflowStage.SHARING)
            shared = self._share(primary.object_id)
            result.share_id = shared.object_id
            result.share_url = post_url(shared.object_id, self._config.post_base_url)

        self._enter(WorkflowStage.DONE)
        return result

    # Stages ------------------------------------------------------------------
    def _select(self) -> Selection:
        conf = self._config
        LOGGER.info("Looking for rows without the used marker colour")
        try:
            rows: List[RowRecord] = read_column(
                self._sheets,
                conf.spreadsheet_id,
                conf.sheet_tab_name,
                conf.message_column,
                conf.used_row_color,
            )
        except DataSourceError as exc:
            raise self._fail("Failed to read message catalog", exc) from exc

        selection = select_unused(rows, self._rng)
        if selection is None:
            self._enter(WorkflowStage.FAILED)
            raise NoCandidateError(len(rows))

        LOGGER.info("Message: %s", _preview(selection.text, 100))
        return selection

    def _publish_primary(self, message: str, background_id: Optional[str] = None) -> PublishResult:
        conf = self._config
        LOGGER.info("Posting to primary page %s: %s", conf.page_a_id, _preview(message, 50))
        try:
            result = self._publisher.publish(
                conf.page_a_id,
                conf.page_a_token,
                message,
                published=True,
                background_id=background_id or conf.background_id,
            )
        except (PublishError, TransportError) as exc:
            LOGGER.error("Facebook post error on primary page: %s", getattr(exc, "detail", None) or exc)
            raise self._fail("Failed to post to primary page", exc) from exc
        LOGGER.info("Primary post created: %s", result.object_id)
        return result

    def _share(self, post_id: str) -> PublishResult:
        conf = self._config
        LOGGER.info(
            "Sharing %s to secondary page %s",
            post_url(post_id, conf.post_base_url),
            conf.page_b_id,
        )
        try:
            result = self._publisher.share(conf.page_b_id, conf.page_b_token, post_id)
        except (PublishError, TransportError) as exc:
            LOGGER.error("Facebook share error on secondary page: %s", getattr(exc, "detail", None) or exc)
            if isinstance(exc, PublishError):
                if exc.is_permission_error:
                    LOGGER.error("Permission denied; check the access token and page permissions")
                elif exc.is_invalid_request:
                    LOGGER.error("Share request was rejected as malformed")
            raise self._fail("Failed to share to secondary page", exc) from exc
        LOGGER.info("Share created: %s", result.object_id)
        return result

    # Internal ----------------------------------------------------------------
    def _enter(self, stage: WorkflowStage) -> None:
        self.stage = stage
        LOGGER.debug("Workflow stage -> %s", stage.value)
        if self._on_stage is not None:
            self._on_stage(stage)

    def _fail(self, prefix: str, cause: BaseException) -> StageError:
        failed_stage = self.stage
        self._enter(WorkflowStage.FAILED)
        return StageError(failed_stage, prefix, cause)
