"""
Curiosity profile refresh handoff

Signal recording never waits on profile recomputation. Stale or missing
caches are submitted here; a daemon worker (started on first submit when
``auto_start`` is set, or an inline ``drain()``) runs the refresh with a
bounded retry count. Failures end up in the log and in
telemetry, never in the caller's result.
"""
from typing import Callable, Deque, Optional, Set, Tuple
from dataclasses import dataclass
from collections import deque
from threading import Event, Lock, Thread
import logging

from golden_path.core.telemetry import EngineTelemetry

logger = logging.getLogger(__name__)


@dataclass
class RefreshJob:
    tenant_id: str
    learner_id: str

    @property
    def key(self) -> Tuple[str, str]:
        return (self.tenant_id, self.learner_id)


class ProfileRefreshQueue:
    """
    Best-effort de-duplicating queue of profile refreshes
    """

    def __init__(
        self,
        refresh: Callable[[str, str], None],
        max_retries: int = 3,
        telemetry: Optional[EngineTelemetry] = None,
        auto_start: bool = False,
    ):
        """
        Args:
            refresh: Recomputes and persists one learner's profile
            max_retries: Retries after the first failed attempt
            telemetry: Receives attempt / success / failure counters
            auto_start: Start the worker on the first submit
        """
        self._refresh = refresh
        self.max_retries = max_retries
        self.telemetry = telemetry
        self.auto_start = auto_start

        self._lock = Lock()
        self._worker_lock = Lock()
        self._pending: Deque[RefreshJob] = deque()
        self._pending_keys: Set[Tuple[str, str]] = set()
        self._wakeup = Event()
        self._stopping = Event()
        self._worker: Optional[Thread] = None
        # Set by stop(); auto_start does not revive a stopped queue
        self._closed = False

    @property
    def pending_count(self) -> int:
        with self._lock:
            return len(self._pending)

    @property
    def running(self) -> bool:
        return self._worker is not None and self._worker.is_alive()

    def submit(self, tenant_id: str, learner_id: str) -> bool:
        """Queue a refresh. Returns False when one is already pending."""
        job = RefreshJob(tenant_id, learner_id)
        with self._lock:
            if job.key in self._pending_keys:
                return False
            self._pending.append(job)
            self._pending_keys.add(job.key)
        self._wakeup.set()
        if self.auto_start and not self.running:
            with self._worker_lock:
                started = not self._closed and self._spawn()
            if started:
                logger.info("Curiosity refresh worker started on first submit")
        return True

    def _next_job(self) -> Optional[RefreshJob]:
        with self._lock:
            if not self._pending:
                return None
            job = self._pending.popleft()
            self._pending_keys.discard(job.key)
            return job

    def _run_job(self, job: RefreshJob) -> bool:
        attempts = self.max_retries + 1
        last_error: Optional[Exception] = None

        for attempt in range(1, attempts + 1):
            if self.telemetry:
                self.telemetry.increment("curiosity_refresh_attempts_total")
            try:
                self._refresh(job.tenant_id, job.learner_id)
            except Exception as e:
                last_error = e
                logger.warning(
                    f"Profile refresh attempt {attempt}/{attempts} failed for "
                    f"{job.tenant_id}/{job.learner_id}: {e}"
                )
                continue

            if self.telemetry:
                self.telemetry.increment("curiosity_refresh_success_total")
            logger.debug(f"Profile cache refreshed for {job.tenant_id}/{job.learner_id}")
            return True

        logger.error(f"Profile refresh gave up for {job.tenant_id}/{job.learner_id}: {last_error}")
        if self.telemetry:
            self.telemetry.increment("curiosity_refresh_failures_total")
            self.telemetry.log_event(
                "curiosity",
                "profile_refresh_failed",
                {
                    "tenant_id": job.tenant_id,
                    "learner_id": job.learner_id,
                    "attempts": attempts,
                    "error": str(last_error),
                },
            )
        return False

    def drain(self) -> int:
        """Run every pending job on the calling thread. Returns jobs processed."""
        processed = 0
        while True:
            job = self._next_job()
            if job is None:
                return processed
            self._run_job(job)
            processed += 1

    # ==================== Worker ====================

    def _loop(self):
        while not self._stopping.is_set():
            self._wakeup.wait(timeout=0.5)
            self._wakeup.clear()
            self.drain()
        self.drain()

    def _spawn(self) -> bool:
        # Caller holds _worker_lock
        if self.running:
            return False
        self._stopping.clear()
        self._worker = Thread(target=self._loop, name="curiosity-refresh", daemon=True)
        self._worker.start()
        return True

    def start(self):
        with self._worker_lock:
            self._closed = False
            started = self._spawn()
        if started:
            logger.info("Curiosity refresh worker started")

    def stop(self, timeout: float = 5.0):
        """Stop the worker after it finishes the jobs already queued"""
        with self._worker_lock:
            self._closed = True
            worker = self._worker
            if worker is None:
                return
            self._stopping.set()
            self._wakeup.set()
            worker.join(timeout=timeout)
            self._worker = None
        logger.info("Curiosity refresh worker stopped")
