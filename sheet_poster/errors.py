"""Exception types raised by the sheet-to-page posting workflow.

Every error carries the fields a caller needs to branch on as attributes, so the
command line entry points can print structured remote error details.
"""

from __future__ import annotations

from typing import Any, Dict, Iterable, List, Optional


class SheetPosterError(Exception):
    """Base class for all errors raised by this package."""


class MissingConfigError(SheetPosterError):
    """Raised before any remote call when required configuration is absent.

    Args:
        missing: Every missing configuration key, in the order checked.
    """

    def __init__(self, missing: Iterable[str]) -> None:
        self.missing: List[str] = list(missing)
        super().__init__(
            f"Missing required configuration: {', '.join(self.missing)}"
        )


class DataSourceError(SheetPosterError):
    """Raised when reading from or writing to the spreadsheet fails.

    Args:
        operation: Short description of the spreadsheet call that failed.
        reason: Human-readable failure reason.
    """

    def __init__(self, operation: str, reason: str) -> None:
        self.operation = operation
        self.reason = reason
        super().__init__(f"Google Sheets {operation} failed: {reason}")


class CredentialsError(DataSourceError):
    """Raised when the service account key cannot be located or parsed."""

    def __init__(self, reason: str) -> None:
        super().__init__("authentication", reason)


class NoCandidateError(SheetPosterError):
    """Raised when the catalog holds no unused, non-empty message."""

    def __init__(self, total_rows: int = 0) -> None:
        self.total_rows = total_rows
        super().__init__(
            f"No unpublished message found ({total_rows} rows checked)"
        )


class EmptyMessageError(SheetPosterError):
    """Raised when direct post mode receives a blank message."""

    def __init__(self) -> None:
        super().__init__("Message is required when using direct post mode")


class PublishError(SheetPosterError):
    """Raised when the Graph API rejects a publish or share request.

    Args:
        message: Error message reported by the API, kept verbatim.
        code: Graph API error code (e.g. 100 for invalid parameters).
        error_type: Graph API error category (e.g. ``OAuthException``).
        subcode: Optional ``error_subcode`` value.
        fbtrace_id: Optional trace identifier for support requests.
        detail: The raw ``error`` object returned by the API.
    """

    PERMISSION_CODES = frozenset({10, 190, 200})
    INVALID_REQUEST_CODES = frozenset({100})

    def __init__(
        self,
        message: str,
        *,
        code: Optional[int] = None,
        error_type: Optional[str] = None,
        subcode: Optional[int] = None,
        fbtrace_id: Optional[str] = None,
        detail: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.message = message
        self.code = code
        self.error_type = error_type
        self.subcode = subcode
        self.fbtrace_id = fbtrace_id
        self.detail = detail or {}
        super().__init__(message)

    @property
    def is_permission_error(self) -> bool:
        if self.code is None:
            return False
        # 200-299 are the per-permission codes (e.g. 230, 283)
        return self.code in self.PERMISSION_CODES or 200 <= self.code <= 299

    @property
    def is_invalid_request(self) -> bool:
        return self.code in self.INVALID_REQUEST_CODES


class TransportError(SheetPosterError):
    """Raised when no response is received from the Graph API."""

    def __init__(self, reason: str) -> None:
        self.reason = reason
        super().__init__(f"No response received from Facebook API: {reason}")


class StageError(SheetPosterError):
    """Wraps a collaborator failure with the workflow stage that produced it.

    The original exception is available as ``__cause__``; when it was a
    :class:`PublishError` its remote error object is exposed as ``detail``.

    Args:
        stage: The ``WorkflowStage`` that was running.
        prefix: Stable, stage-specific message prefix.
        cause: The underlying exception.
    """

    def __init__(self, stage: Any, prefix: str, cause: BaseException) -> None:
        self.stage = stage
        self.prefix = prefix
        self.detail: Dict[str, Any] = getattr(cause, "detail", None) or {}
        super().__init__(f"{prefix}: {cause}")
