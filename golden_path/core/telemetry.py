from datetime import datetime
from typing import Dict, Any, Optional, List
from threading import Lock
import logging

logger = logging.getLogger(__name__)


DEFAULT_MAX_LOG_SIZE = 1000


class EngineTelemetry:
    """
    In-process counters and a rolling event log for the engines.

    One instance is injected into each engine that should share it.
    """

    def __init__(self, max_log_size: int = DEFAULT_MAX_LOG_SIZE):
        self._lock = Lock()
        self._metrics: Dict[str, Any] = {
            "operations_total": 0,
            "failures_total": 0,
            "curiosity_refresh_attempts_total": 0,
            "curiosity_refresh_success_total": 0,
            "curiosity_refresh_failures_total": 0,
            "start_time": datetime.utcnow().isoformat()
        }
        self._operation_counts: Dict[str, int] = {}
        self._failure_counts: Dict[str, int] = {}
        self._event_log: List[Dict[str, Any]] = []
        self._max_log_size = max_log_size

    def increment(self, metric: str, amount: int = 1):
        """Increment a named counter."""
        with self._lock:
            self._metrics[metric] = self._metrics.get(metric, 0) + amount

    def track_operation(self, operation: str, success: bool, error_code: Optional[str] = None, duration_ms: float = 0.0):
        """Track one engine operation and its outcome."""
        with self._lock:
            self._metrics["operations_total"] += 1
            self._operation_counts[operation] = self._operation_counts.get(operation, 0) + 1
            if not success:
                self._metrics["failures_total"] += 1
                key = error_code or "UNKNOWN"
                self._failure_counts[key] = self._failure_counts.get(key, 0) + 1

        logger.debug(f"Operation tracked: {operation} success={success} duration_ms={duration_ms:.2f}")

    def log_event(self, source: str, event: str, metadata: Optional[Dict[str, Any]] = None):
        """Append an event to the rolling log."""
        entry = {
            "timestamp": datetime.utcnow().isoformat(),
            "source": source,
            "event": event,
            "metadata": metadata or {}
        }

        with self._lock:
            self._event_log.append(entry)
            if len(self._event_log) > self._max_log_size:
                self._event_log.pop(0)

    def get_metrics(self) -> Dict[str, Any]:
        """Get current counters."""
        with self._lock:
            metrics = self._metrics.copy()
            metrics["operations"] = self._operation_counts.copy()
            metrics["failures"] = self._failure_counts.copy()
        return metrics

    def get_recent_events(self, limit: int = 50) -> List[Dict[str, Any]]:
        """Get the most recent events."""
        with self._lock:
            return list(self._event_log[-limit:])
