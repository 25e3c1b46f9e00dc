from __future__ import annotations

import argparse
import logging
import sys
import threading
import time
from datetime import datetime
from pathlib import Path
from typing import Callable, Optional, Sequence

from croniter import croniter

from .config import AppConfig, load_config
from .facebook_client import FacebookClient
from .google_sheets import GoogleSheetsClient
from .main import load_env_files
from .run_guard import SerializedRunner
from .workflow import PostWorkflow

LOGGER = logging.getLogger("sheet_poster.scheduler")


class CronScheduler:
    """Fires ``runner`` on every tick of a cron expression.

    Each run is dispatched on its own daemon thread so a slow run never delays
    the next tick; the runner's guard decides whether the run actually starts.
    """

    def __init__(
        self,
        expression: str,
        runner: Callable[[], object],
        *,
        clock: Callable[[], datetime] = datetime.now,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        if not croniter.is_valid(expression):
            raise ValueError(f"Invalid cron schedule: {expression}")
        self._expression = expression
        self._runner = runner
        self._clock = clock
        self._sleep = sleep
        self._stop = threading.Event()

    def next_fire_time(self, after: Optional[datetime] = None) -> datetime:
        return croniter(self._expression, after or self._clock()).get_next(datetime)

    def dispatch(self) -> threading.Thread:
        thread = threading.Thread(target=self._runner, name="sheet-poster-run", daemon=True)
        thread.start()
        return thread

    def stop(self) -> None:
        self._stop.set()

    def run_forever(self, *, run_on_start: bool = True, max_ticks: Optional[int] = None) -> None:
        LOGGER.info("Scheduler started with cron pattern: %s", self._expression)
        if run_on_start:
            self.dispatch()

        ticks = 0
        next_fire = self.next_fire_time()
        while not self._stop.is_set():
            if max_ticks is not None and ticks >= max_ticks:
                break
            wait = (next_fire - self._clock()).total_seconds()
            if wait > 0:
                self._sleep(min(wait, 60.0))
                continue
            self.dispatch()
            ticks += 1
            # After a stall, skip the missed ticks instead of firing each one
            next_fire = self.next_fire_time(max(next_fire, self._clock()))


def _parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Post a random unused sheet row on a cron schedule"
    )
    parser.add_argument("--config", default=None, help="Optional path to a YAML configuration file")
    parser.add_argument(
        "--run-on-start",
        dest="run_on_start",
        action=argparse.BooleanOptionalAction,
        default=None,
        help="Run once immediately in addition to the schedule (default from RUN_ON_START)",
    )
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging")
    return parser.parse_args(argv)


def build_runner(config: AppConfig) -> SerializedRunner:
    sheets = GoogleSheetsClient(config.service_account_key)
    publisher = FacebookClient(
        config.graph_api_version,
        config.request_timeout,
        post_base_url=config.post_base_url,
    )
    workflow = PostWorkflow(config, sheets, publisher)
    return SerializedRunner(workflow.post_from_sheet_and_share)


def main(argv: Sequence[str] | None = None) -> int:
    args = _parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )

    config_path = Path(args.config).expanduser().resolve() if args.config else None
    load_env_files(config_path)
    try:
        config = load_config(config_path)
    except (FileNotFoundError, ValueError) as exc:
        LOGGER.error("%s", exc)
        return 1

    if not config.cron_schedule:
        LOGGER.error("Missing CRON_SCHEDULE; set it in .env or the configuration file")
        return 1

    run_on_start = config.run_on_start if args.run_on_start is None else args.run_on_start
    try:
        scheduler = CronScheduler(config.cron_schedule, build_runner(config))
    except ValueError as exc:
        LOGGER.error("%s", exc)
        return 1
    scheduler.run_forever(run_on_start=run_on_start)
    return 0


def run() -> None:
    try:
        sys.exit(main())
    except KeyboardInterrupt:
        print("Interrupted", file=sys.stderr)
        sys.exit(130)


if __name__ == "__main__":
    run()
