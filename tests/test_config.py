"""Tests for config.py: YAML and environment configuration."""

from pathlib import Path

import pytest

from sheet_poster.config import AppConfig, load_config
from sheet_poster.errors import MissingConfigError


class TestLoadConfig:
    def test_environment_only(self) -> None:
        config = load_config(environ={"PAGE_A_ID": "111", "PAGE_A_TOKEN": "tok", "USED_ROW_COLOR": "#FF0000"})
        assert config.page_a_id == "111"
        assert config.page_a_token == "tok"
        assert config.used_row_color == "#FF0000"
        assert config.message_column == "B"
        assert config.run_on_start is True

    def test_yaml_wins_over_environment(self, tmp_path: Path) -> None:
        path = tmp_path / "config.yaml"
        path.write_text("page_a_id: 999\nsheet_tab_name: Queue\n", encoding="utf-8")

        config = load_config(path, environ={"PAGE_A_ID": "111", "SPREADSHEET_ID": "sid"})

        assert config.page_a_id == "999"
        assert config.sheet_tab_name == "Queue"
        assert config.spreadsheet_id == "sid"

    def test_blank_values_are_missing(self) -> None:
        config = load_config(environ={"PAGE_B_TOKEN": "   "})
        assert config.page_b_token is None

    def test_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(FileNotFoundError):
            load_config(tmp_path / "absent.yaml", environ={})

    def test_empty_file(self, tmp_path: Path) -> None:
        path = tmp_path / "config.yaml"
        path.write_text("", encoding="utf-8")
        with pytest.raises(ValueError, match="empty"):
            load_config(path, environ={})

    def test_cron_is_not_validated_on_load(self) -> None:
        """Only the scheduler interprets the expression."""
        assert load_config(environ={"CRON_SCHEDULE": "whenever"}).cron_schedule == "whenever"

    @pytest.mark.parametrize(
        ("raw", "expected"),
        [("false", False), ("FALSE", False), ("true", True), ("0", True), ("no", True)],
    )
    def test_run_on_start_only_false_disables(self, raw: str, expected: bool) -> None:
        assert load_config(environ={"RUN_ON_START": raw}).run_on_start is expected

    def test_column_is_normalised(self) -> None:
        assert load_config(environ={"MESSAGE_COLUMN": " c "}).message_column == "C"

    def test_bad_column(self) -> None:
        with pytest.raises(ValueError):
            load_config(environ={"MESSAGE_COLUMN": "B2"})


class TestEnsure:
    def test_lists_every_missing_key(self) -> None:
        config = AppConfig(page_a_id="1")
        with pytest.raises(MissingConfigError) as excinfo:
            config.ensure(("page_a_id", "page_a_token", "page_b_token"))
        assert excinfo.value.missing == ["page_a_token", "page_b_token"]
        assert "page_a_token, page_b_token" in str(excinfo.value)

    def test_passes_when_present(self) -> None:
        AppConfig(page_a_id="1", page_a_token="t").ensure(("page_a_id", "page_a_token"))
