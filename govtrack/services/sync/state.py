"""Process-local bookkeeping for scheduled and read-triggered syncs."""

import time
from typing import Callable, Dict, Optional, Set


class SyncState:
    """Last-run timestamps, in-flight scopes and running jobs.

    The clock is injectable so cooldown behaviour can be tested without
    sleeping. Nothing here is persisted; a restart starts from a clean slate.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self._clock = clock
        self._last_run: Dict[str, float] = {}
        self._in_flight: Set[str] = set()
        self._running_jobs: Set[str] = set()

    def now(self) -> float:
        return self._clock()

    def last_run(self, scope: str) -> Optional[float]:
        return self._last_run.get(scope)

    def cooling_down(self, scope: str, cooldown: float) -> bool:
        last = self._last_run.get(scope)
        return last is not None and self.now() - last < cooldown

    def is_in_flight(self, scope: str) -> bool:
        return scope in self._in_flight

    def mark_started(self, scope: str) -> None:
        self._last_run[scope] = self.now()
        self._in_flight.add(scope)

    def mark_finished(self, scope: str) -> None:
        self._in_flight.discard(scope)

    def try_start_job(self, job_name: str) -> bool:
        if job_name in self._running_jobs:
            return False
        self._running_jobs.add(job_name)
        return True

    def finish_job(self, job_name: str) -> None:
        self._running_jobs.discard(job_name)

    def is_job_running(self, job_name: str) -> bool:
        return job_name in self._running_jobs
