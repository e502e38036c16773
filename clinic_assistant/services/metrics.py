"""CloudWatch custom metrics emitter with background batching.

Publishes one data point per model call (count, latency, errors) and one
count per executed chat command, tagged with the command name and outcome.

Design
------
* Metrics are collected in a thread-safe in-memory buffer.
* When enabled, a daemon thread flushes the buffer to CloudWatch every
  ``flush_interval`` seconds and once more at process exit.
* When disabled (``METRICS_ENABLED != "true"``), data points are only
  logged at DEBUG level and the buffer is dropped on flush.
* Each ``put_metric_data`` call sends up to 1 000 data points
  (the CloudWatch API limit per request).

Usage
-----
>>> metrics = MetricsClient(enabled=False)
>>> metrics.record_call("anthropic", "chat_fallback", latency_ms=812.0)
>>> metrics.record_command("book", "success")
"""

from __future__ import annotations

import atexit
import logging
import threading
import time
from datetime import UTC, datetime
from typing import Any

logger = logging.getLogger(__name__)

NAMESPACE = "DentalClinicAssistant"
FLUSH_INTERVAL_SECONDS = 60
MAX_BATCH_SIZE = 1_000  # CloudWatch API limit per PutMetricData call


class MetricsClient:
    """Batched CloudWatch metrics publisher."""

    def __init__(self, *, enabled: bool = False, flush_interval: int = FLUSH_INTERVAL_SECONDS) -> None:
        self._enabled = enabled
        self._flush_interval = flush_interval
        self._buffer: list[dict[str, Any]] = []
        self._lock = threading.Lock()
        self._cw_client = None  # lazy-init
        self._stop = threading.Event()

        if self._enabled:
            self._start_flush_thread()

    def _get_cw_client(self):
        """Create the boto3 CloudWatch client on first use."""
        if self._cw_client is None:
            import boto3

            self._cw_client = boto3.client("cloudwatch")
        return self._cw_client

    # ── Public API ────────────────────────────────────────────────────

    def record_call(
        self,
        service: str,
        operation: str,
        *,
        latency_ms: float,
        error_type: str | None = None,
    ) -> None:
        """Record one call to an external service; ``error_type`` marks a failure."""
        now = datetime.now(UTC)
        status = "failure" if error_type else "success"
        dims = [{"Name": "Service", "Value": service}, {"Name": "Operation", "Value": operation}]

        self._append(
            {
                "MetricName": "ExternalAPI/RequestCount",
                "Dimensions": dims + [{"Name": "Status", "Value": status}],
                "Timestamp": now,
                "Value": 1,
                "Unit": "Count",
            }
        )
        self._append(
            {
                "MetricName": "ExternalAPI/Latency",
                "Dimensions": dims,
                "Timestamp": now,
                "Value": latency_ms,
                "Unit": "Milliseconds",
            }
        )
        if error_type:
            self._append(
                {
                    "MetricName": "ExternalAPI/ErrorCount",
                    "Dimensions": dims + [{"Name": "ErrorType", "Value": error_type}],
                    "Timestamp": now,
                    "Value": 1,
                    "Unit": "Count",
                }
            )
        logger.debug(
            "Metric: %s %s %s latency=%.1fms", service, operation, status, latency_ms,
        )

    def record_command(self, command: str, outcome: str) -> None:
        """Count one chat command execution (``outcome``: success/rejected/error/malformed)."""
        self._append(
            {
                "MetricName": "Chat/CommandCount",
                "Dimensions": [
                    {"Name": "Command", "Value": command},
                    {"Name": "Outcome", "Value": outcome},
                ],
                "Timestamp": datetime.now(UTC),
                "Value": 1,
                "Unit": "Count",
            }
        )
        logger.debug("Metric: command %s %s", command, outcome)

    @property
    def pending(self) -> int:
        """Number of buffered data points not yet flushed."""
        with self._lock:
            return len(self._buffer)

    def flush(self) -> int:
        """Send buffered metrics to CloudWatch.  Returns count sent."""
        with self._lock:
            if not self._buffer:
                return 0
            batch = self._buffer[:]
            self._buffer.clear()

        if not self._enabled:
            logger.debug("Metrics flush skipped (not enabled): %d items", len(batch))
            return 0

        sent = 0
        try:
            cw = self._get_cw_client()
            for i in range(0, len(batch), MAX_BATCH_SIZE):
                chunk = batch[i : i + MAX_BATCH_SIZE]
                cw.put_metric_data(Namespace=NAMESPACE, MetricData=chunk)
                sent += len(chunk)
            logger.info("Flushed %d metrics to CloudWatch", sent)
        except Exception:
            logger.exception("Failed to flush metrics to CloudWatch")
        return sent

    def close(self) -> None:
        """Stop the flush thread and push whatever is buffered."""
        self._stop.set()
        self.flush()

    # ── Internal ──────────────────────────────────────────────────────

    def _append(self, metric_data: dict[str, Any]) -> None:
        with self._lock:
            self._buffer.append(metric_data)

    def _start_flush_thread(self) -> None:
        def _loop():
            while not self._stop.wait(self._flush_interval):
                try:
                    self.flush()
                except Exception:
                    logger.exception("Metrics flush thread error")

        t = threading.Thread(target=_loop, daemon=True, name="metrics-flush")
        t.start()
        atexit.register(self.flush)
        logger.info("Metrics flush thread started (interval=%ds)", self._flush_interval)


def timed_ms(start: float) -> float:
    """Milliseconds elapsed since a ``time.perf_counter()`` reading."""
    return (time.perf_counter() - start) * 1000
