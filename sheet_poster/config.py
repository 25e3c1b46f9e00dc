from __future__ import annotations

import os
from pathlib import Path
from typing import Dict, Mapping, Optional

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator

from .errors import MissingConfigError

# Field name -> environment variable consulted when the YAML file omits the field.
ENV_VARS: Dict[str, str] = {
    "page_a_id": "PAGE_A_ID",
    "page_a_token": "PAGE_A_TOKEN",
    "page_b_id": "PAGE_B_ID",
    "page_b_token": "PAGE_B_TOKEN",
    "spreadsheet_id": "SPREADSHEET_ID",
    "sheet_tab_name": "SHEET_TAB_NAME",
    "used_row_color": "USED_ROW_COLOR",
    "background_id": "BACKGROUND_ID",
    "message_column": "MESSAGE_COLUMN",
    "service_account_key": "GOOGLE_SERVICE_ACCOUNT_KEY",
    "graph_api_version": "GRAPH_API_VERSION",
    "request_timeout": "REQUEST_TIMEOUT",
    "post_base_url": "POST_BASE_URL",
    "cron_schedule": "CRON_SCHEDULE",
    "run_on_start": "RUN_ON_START",
}

PRIMARY_PAGE_KEYS = ("page_a_id", "page_a_token")
SECONDARY_PAGE_KEYS = ("page_b_id", "page_b_token")
SHEET_KEYS = ("spreadsheet_id", "sheet_tab_name", "used_row_color")


class AppConfig(BaseModel):
    """Runtime settings; required keys are checked per operation, not here."""

    page_a_id: Optional[str] = Field(None, description="ID of the page receiving the original post")
    page_a_token: Optional[str] = Field(None, description="Page access token for the primary page")
    page_b_id: Optional[str] = Field(None, description="ID of the page that shares the post")
    page_b_token: Optional[str] = Field(None, description="Page access token for the secondary page")
    spreadsheet_id: Optional[str] = Field(None, description="ID of the spreadsheet holding messages")
    sheet_tab_name: Optional[str] = Field(None, description="Tab name that holds the message column")
    used_row_color: Optional[str] = Field(
        None,
        description="Hex background colour that marks a row as already published",
    )
    background_id: Optional[str] = Field(
        None,
        description="Default text_format_preset_id applied to primary posts",
    )
    message_column: str = Field("B", description="Column letter containing message text")
    service_account_key: Optional[str] = Field(
        None,
        description="Service account key as a file path, inline JSON or base64 JSON",
    )
    graph_api_version: str = Field("v21.0", description="Graph API version prefix")
    request_timeout: float = Field(30.0, gt=0, description="Timeout in seconds for Graph API calls")
    post_base_url: str = Field(
        "https://www.facebook.com/",
        description="Base URL used to build public post links",
    )
    cron_schedule: Optional[str] = Field(None, description="Cron expression for the scheduler")
    run_on_start: bool = Field(True, description="Run once immediately when the scheduler starts")

    @field_validator(
        "page_a_id",
        "page_a_token",
        "page_b_id",
        "page_b_token",
        "spreadsheet_id",
        "sheet_tab_name",
        "used_row_color",
        "background_id",
        "service_account_key",
        "cron_schedule",
        mode="before",
    )
    @classmethod
    def _blank_to_none(cls, value: object) -> object:
        if value is None:
            return None
        text = str(value).strip()
        return text or None

    @field_validator("message_column")
    @classmethod
    def _validate_column(cls, value: str) -> str:
        column = value.strip().upper()
        if not column.isalpha():
            raise ValueError(f"message_column must be a column letter, got '{value}'")
        return column

    @field_validator("run_on_start", mode="before")
    @classmethod
    def _parse_run_on_start(cls, value: object) -> object:
        # Only an explicit "false" disables the initial run.
        if isinstance(value, str):
            return value.strip().lower() != "false"
        return value

    @field_validator("post_base_url")
    @classmethod
    def _ensure_trailing_slash(cls, value: str) -> str:
        return value if value.endswith("/") else f"{value}/"

    def missing_keys(self, keys: tuple[str, ...] | list[str]) -> list[str]:
        return [key for key in keys if getattr(self, key, None) in (None, "")]

    def ensure(self, keys: tuple[str, ...] | list[str]) -> None:
        """Raise :class:`MissingConfigError` naming every absent key."""

        missing = self.missing_keys(keys)
        if missing:
            raise MissingConfigError(missing)


def _merge_environment(data: dict, environ: Mapping[str, str]) -> dict:
    merged = dict(data)
    for field_name, env_name in ENV_VARS.items():
        if merged.get(field_name) not in (None, ""):
            continue
        env_value = environ.get(env_name)
        if env_value is not None and env_value != "":
            merged[field_name] = env_value
    return merged


def load_config(
    path: str | Path | None = None,
    environ: Mapping[str, str] | None = None,
) -> AppConfig:
    """Load configuration from an optional YAML file plus environment variables.

    Values present in the YAML file win; anything missing there is read from
    the environment variable listed in :data:`ENV_VARS`.
    """

    data: dict = {}
    if path is not None:
        config_path = Path(path).expanduser().resolve()
        if not config_path.exists():
            msg = f"Configuration file not found: {config_path}"
            raise FileNotFoundError(msg)

        with config_path.open("r", encoding="utf-8") as fh:
            loaded = yaml.safe_load(fh)

        if loaded is None:
            msg = f"Configuration file is empty: {config_path}"
            raise ValueError(msg)
        if not isinstance(loaded, dict):
            msg = f"Configuration file must contain a mapping: {config_path}"
            raise ValueError(msg)
        data = loaded

    merged = _merge_environment(data, os.environ if environ is None else environ)

    try:
        return AppConfig.model_validate(merged)
    except ValidationError as exc:
        raise ValueError(f"Invalid configuration: {exc}") from exc
