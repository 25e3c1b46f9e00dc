from __future__ import annotations

from typing import Any, Callable, Dict, List, Optional

import base64
import binascii
import json
import logging
import ssl
from pathlib import Path

from google.auth.exceptions import GoogleAuthError
from google.oauth2.service_account import Credentials
from googleapiclient.discovery import Resource
from googleapiclient.discovery import build
from googleapiclient.errors import HttpError
from googleapiclient.http import HttpRequest
from httplib2 import HttpLib2Error

from .catalog import classify_row_status
from .colors import to_api_color
from .errors import CredentialsError, DataSourceError
from .models import RowStatus

SCOPES = ["https://www.googleapis.com/auth/spreadsheets"]
DEFAULT_KEY_PATH = Path("service-account-key.json")

COLUMN_GRID_FIELDS = (
    "sheets.data.rowData.values("
    "formattedValue,effectiveValue.stringValue,"
    "effectiveFormat.backgroundColor,effectiveFormat.backgroundColorStyle)"
)

LOGGER = logging.getLogger(__name__)

_TRANSPORT_EXCEPTIONS = (ssl.SSLError, HttpLib2Error, OSError)


def _parse_json(raw: str, source: str) -> Dict[str, Any]:
    try:
        info = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise CredentialsError(f"Invalid service account JSON in {source}: {exc}") from exc
    if not isinstance(info, dict):
        raise CredentialsError(f"Service account JSON in {source} must be an object")
    return info


def _is_file(value: str) -> bool:
    try:
        return Path(value).expanduser().is_file()
    except (OSError, ValueError):
        # Long inline keys can exceed the platform's path length limit.
        return False


def load_service_account_info(
    key: Optional[str],
    fallback_path: Path = DEFAULT_KEY_PATH,
) -> Optional[Dict[str, Any]]:
    """Resolve service account credentials from a path, JSON or base64 string.

    Returns ``None`` when no key is configured and the fallback file is absent.
    """

    if key is None:
        if fallback_path.exists():
            return _parse_json(fallback_path.read_text(encoding="utf-8"), str(fallback_path))
        return None

    trimmed = key.strip()
    if not trimmed:
        raise CredentialsError(
            "GOOGLE_SERVICE_ACCOUNT_KEY is empty. Provide a file path, JSON string, or base64 string."
        )

    if not trimmed.startswith("{") and _is_file(trimmed):
        candidate = Path(trimmed).expanduser()
        try:
            contents = candidate.read_text(encoding="utf-8")
        except OSError as exc:
            raise CredentialsError(
                f"Failed to read service account key file at {candidate}: {exc}"
            ) from exc
        return _parse_json(contents, str(candidate))

    if trimmed.startswith("{") and trimmed.endswith("}"):
        return _parse_json(trimmed, "GOOGLE_SERVICE_ACCOUNT_KEY")

    try:
        decoded = base64.b64decode(trimmed, validate=True).decode("utf-8")
    except (binascii.Error, UnicodeDecodeError):
        decoded = ""
    if decoded.strip().startswith("{"):
        return _parse_json(decoded, "base64 GOOGLE_SERVICE_ACCOUNT_KEY")

    raise CredentialsError(
        "GOOGLE_SERVICE_ACCOUNT_KEY must be a path to a file, a JSON string, "
        "or a base64-encoded JSON string."
    )


def a1_range(sheet_name: str, cells: str) -> str:
    """Build an A1 range, quoting the tab name so spaces and quotes survive."""

    escaped = sheet_name.replace("'", "''")
    return f"'{escaped}'!{cells}"


class GoogleSheetsClient:
    """Thin wrapper around the Google Sheets API for the message column."""

    def __init__(
        self,
        service_account_key: Optional[str] = None,
        *,
        service: Resource | None = None,
    ) -> None:
        self._service_account_key = service_account_key
        self._service: Resource | None = service

    def _service_client(self) -> Resource:
        if self._service is None:
            info = load_service_account_info(self._service_account_key)
            if info is None:
                raise CredentialsError(
                    "Service account credentials not provided. Set "
                    "GOOGLE_SERVICE_ACCOUNT_KEY or add service-account-key.json"
                )
            try:
                creds = Credentials.from_service_account_info(info, scopes=SCOPES)
            except (ValueError, KeyError) as exc:
                raise CredentialsError(f"Service account key is not usable: {exc}") from exc
            self._service = build("sheets", "v4", credentials=creds, cache_discovery=False)
            LOGGER.debug("Google Sheets service initialised")
        return self._service

    # Reading -----------------------------------------------------------------
    def fetch_column_grid(
        self,
        spreadsheet_id: str,
        sheet_name: str,
        column_letter: str = "B",
    ) -> List[Dict[str, Any]]:
        """Return ``rowData`` for ``column_letter`` from row 2 downwards.

        Each entry is the raw Sheets ``RowData`` object, including the
        formatted value and the effective (post conditional formatting) format.
        """

        def _build_request() -> HttpRequest:
            service = self._service_client()
            return service.spreadsheets().get(
                spreadsheetId=spreadsheet_id,
                ranges=[a1_range(sheet_name, f"{column_letter}2:{column_letter}")],
                includeGridData=True,
                fields=COLUMN_GRID_FIELDS,
            )

        result = self._execute(_build_request, operation="read column formatting")
        sheets = result.get("sheets") or []
        if not sheets:
            return []
        grids = sheets[0].get("data") or []
        if not grids:
            return []
        return grids[0].get("rowData") or []

    def get_sheet_properties(self, spreadsheet_id: str, sheet_name: str) -> Dict[str, Any]:
        """Return the ``properties`` block of the named tab."""

        def _build_request() -> HttpRequest:
            service = self._service_client()
            return service.spreadsheets().get(
                spreadsheetId=spreadsheet_id,
                fields="sheets.properties",
            )

        result = self._execute(_build_request, operation="read sheet properties")
        for sheet in result.get("sheets", []):
            properties = sheet.get("properties", {})
            if properties.get("title") == sheet_name:
                return properties
        raise DataSourceError("read sheet properties", f'Sheet "{sheet_name}" not found')

    def row_status(
        self,
        spreadsheet_id: str,
        sheet_name: str,
        row_index: int,
        used_color: str,
    ) -> RowStatus:
        """Classify a whole row; any failure to read it yields INDETERMINATE."""

        def _build_request() -> HttpRequest:
            service = self._service_client()
            return service.spreadsheets().get(
                spreadsheetId=spreadsheet_id,
                ranges=[a1_range(sheet_name, f"{row_index}:{row_index}")],
                includeGridData=True,
            )

        try:
            result = self._execute(_build_request, operation="read row formatting")
            row_data = result["sheets"][0]["data"][0]["rowData"][0]
        except DataSourceError as exc:
            LOGGER.warning("Unable to check colour of row %s: %s", row_index, exc)
            return RowStatus.INDETERMINATE
        except (KeyError, IndexError, TypeError):
            return RowStatus.UNUSED

        cells = row_data.get("values") or []
        if not cells:
            return RowStatus.UNUSED
        for cell in cells:
            background = (cell.get("effectiveFormat") or {}).get("backgroundColor")
            status = classify_row_status(background, used_color)
            if status is not RowStatus.USED:
                return status
        return RowStatus.USED

    def is_row_marked_used(
        self,
        spreadsheet_id: str,
        sheet_name: str,
        row_index: int,
        used_color: str,
    ) -> bool:
        """True only when every cell in the row carries the marker colour."""

        return self.row_status(spreadsheet_id, sheet_name, row_index, used_color) is RowStatus.USED

    # Writing -----------------------------------------------------------------
    def mark_row_used(
        self,
        spreadsheet_id: str,
        sheet_name: str,
        row_index: int,
        used_color: str,
    ) -> None:
        """Paint the full width of ``row_index`` (1-based) with ``used_color``."""

        if row_index < 1:
            msg = f"Row numbers must be 1-based; received {row_index}"
            raise ValueError(msg)

        properties = self.get_sheet_properties(spreadsheet_id, sheet_name)
        column_count = (properties.get("gridProperties") or {}).get("columnCount", 26)
        requests = [
            {
                "repeatCell": {
                    "range": {
                        "sheetId": properties.get("sheetId", 0),
                        "startRowIndex": row_index - 1,
                        "endRowIndex": row_index,
                        "startColumnIndex": 0,
                        "endColumnIndex": column_count,
                    },
                    "cell": {
                        "userEnteredFormat": {"backgroundColor": to_api_color(used_color)},
                    },
                    "fields": "userEnteredFormat.backgroundColor",
                }
            }
        ]

        def _batch_update_request() -> HttpRequest:
            service = self._service_client()
            return service.spreadsheets().batchUpdate(
                spreadsheetId=spreadsheet_id,
                body={"requests": requests},
            )

        self._execute(_batch_update_request, operation="update row colour")
        LOGGER.info("Row %s marked as used with colour %s", row_index, used_color)

    # Internal ----------------------------------------------------------------
    def _execute(
        self,
        request_builder: Callable[[], HttpRequest],
        *,
        operation: str,
    ) -> dict:
        """Execute a Sheets API request once, translating failures."""

        try:
            return request_builder().execute()
        except HttpError as exc:
            status = getattr(exc.resp, "status", None)
            reason = getattr(exc, "reason", None) or str(exc)
            raise DataSourceError(operation, f"HTTP {status}: {reason}") from exc
        except GoogleAuthError as exc:
            # Token refresh problems surface here, not as HttpError
            raise DataSourceError(operation, f"authentication failed: {exc}") from exc
        except _TRANSPORT_EXCEPTIONS as exc:
            raise DataSourceError(operation, str(exc) or type(exc).__name__) from exc
