from __future__ import annotations

import logging
import threading
import time
from contextlib import contextmanager
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Iterator, Optional

LOGGER = logging.getLogger(__name__)


class RunGuard:
    """Single-slot token that keeps overlapping runs from starting."""

    def __init__(self) -> None:
        self._lock = threading.Lock()

    @property
    def is_running(self) -> bool:
        return self._lock.locked()

    def try_acquire(self) -> bool:
        return self._lock.acquire(blocking=False)

    def release(self) -> None:
        self._lock.release()

    @contextmanager
    def hold(self) -> Iterator[bool]:
        """Yield ``True`` when the slot was taken; release it on exit."""

        acquired = self.try_acquire()
        try:
            yield acquired
        finally:
            if acquired:
                self.release()


class RunStatus(str, Enum):
    SKIPPED = "skipped"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


@dataclass(slots=True)
class RunOutcome:
    status: RunStatus
    result: Any = None
    error: Optional[BaseException] = None
    duration: float = 0.0


class SerializedRunner:
    """Run ``job`` unless a previous invocation still holds the guard.

    Overlapping invocations are skipped, not queued. Job failures are logged
    and returned so a recurring trigger keeps going.
    """

    def __init__(self, job: Callable[[], Any], guard: RunGuard | None = None) -> None:
        self._job = job
        self.guard = guard or RunGuard()

    def __call__(self) -> RunOutcome:
        return self.run()

    def run(self) -> RunOutcome:
        with self.guard.hold() as acquired:
            if not acquired:
                LOGGER.warning("Previous job still running, skipping this cycle")
                return RunOutcome(RunStatus.SKIPPED)

            started = time.monotonic()
            LOGGER.info("Starting post-and-share job")
            try:
                result = self._job()
            except Exception as exc:
                duration = time.monotonic() - started
                LOGGER.error("Job failed after %.1fs: %s", duration, exc)
                detail = getattr(exc, "detail", None)
                if detail:
                    LOGGER.error("Facebook error detail: %s", detail)
                return RunOutcome(RunStatus.FAILED, error=exc, duration=duration)

            duration = time.monotonic() - started
            LOGGER.info("Job finished in %.1fs", duration)
            return RunOutcome(RunStatus.SUCCEEDED, result=result, duration=duration)
