# ==============================================================================
# Emission Stats with Performance Instrumentation
# ==============================================================================
"""
Shared instrumentation for the emission pipeline.

Every emission attempt runs the same steps:

    1. encode   - records -> artifact bytes
    2. upload   - artifact -> S3
    3. load     - S3 artifact -> Redshift COPY (optional)

EmissionStats is a composition object owned by the coordinator. It records
per-stage timings and outcomes and provides:

- Periodic throughput summary (configurable interval, default 30s)
- Cumulative stats tracking
- Final summary on shutdown

Counters are guarded by a lock because callers may emit several batches
concurrently through one coordinator.
"""

import logging
import threading
import time
from collections import Counter

logger = logging.getLogger(__name__)


def _precision(ms: float) -> int:
    """Decimal places for a millisecond value: more for small values."""
    if ms >= 10:
        return 0
    if ms >= 1:
        return 1
    return 2


class EmissionStats:
    """Cumulative and periodic emission counters."""

    def __init__(
        self,
        summary_interval_seconds: float = 30.0,
        log: logging.Logger | None = None,
    ):
        """
        Args:
            summary_interval_seconds: How often to log throughput summaries
            log: Optional logger override. Defaults to this module's logger.
        """
        self._summary_interval = summary_interval_seconds
        self._log = log or logger
        self._lock = threading.Lock()

        # Cumulative stats (lifetime of this instance)
        self.delivered_batches = 0
        self.delivered_records = 0
        self.delivered_bytes = 0
        self.rows_loaded = 0
        self.failed_batches = 0
        self.failed_records = 0
        self.failures_by_stage: Counter[str] = Counter()
        self._cum_encode_ms = 0.0
        self._cum_upload_ms = 0.0
        self._cum_load_ms = 0.0
        self._start_time = time.monotonic()

        # Period stats (reset each summary interval)
        self._period_batches = 0
        self._period_records = 0
        self._period_failed = 0
        self._period_total_ms = 0.0
        self._last_summary_time = time.monotonic()

    def record_delivered(
        self,
        records: int,
        payload_bytes: int,
        encode_ms: float,
        upload_ms: float,
        load_ms: float = 0.0,
        rows_loaded: int | None = None,
    ) -> None:
        """Record a delivered batch and log a summary if one is due."""
        with self._lock:
            self.delivered_batches += 1
            self.delivered_records += records
            self.delivered_bytes += payload_bytes
            self.rows_loaded += rows_loaded or 0
            self._cum_encode_ms += encode_ms
            self._cum_upload_ms += upload_ms
            self._cum_load_ms += load_ms

            self._period_batches += 1
            self._period_records += records
            self._period_total_ms += encode_ms + upload_ms + load_ms
            self._maybe_log_summary()

    def record_failed(self, records: int, stage: str) -> None:
        """Record a batch that was not delivered."""
        with self._lock:
            self.failed_batches += 1
            self.failed_records += records
            self.failures_by_stage[stage] += 1
            self._period_failed += 1
            self._maybe_log_summary()

    def _maybe_log_summary(self) -> None:
        now = time.monotonic()
        if now - self._last_summary_time >= self._summary_interval:
            self._log_summary(now)

    def _log_summary(self, now: float) -> None:
        """Log periodic throughput summary and reset period counters."""
        elapsed = now - self._last_summary_time
        if elapsed <= 0 or (self._period_batches == 0 and self._period_failed == 0):
            return

        records_per_sec = self._period_records / elapsed
        avg_batch_ms = (
            self._period_total_ms / self._period_batches if self._period_batches else 0.0
        )
        self._log.info(
            "Throughput (%.1fs): %s records/sec | batches=%d failed=%d | avg_batch=%.*fms",
            elapsed,
            f"{records_per_sec:,.0f}",
            self._period_batches,
            self._period_failed,
            _precision(avg_batch_ms),
            avg_batch_ms,
        )

        self._period_batches = 0
        self._period_records = 0
        self._period_failed = 0
        self._period_total_ms = 0.0
        self._last_summary_time = now

    def log_final_summary(self) -> None:
        """Log final summary on shutdown."""
        with self._lock:
            total_elapsed = time.monotonic() - self._start_time
            if self.delivered_batches == 0 and self.failed_batches == 0:
                self._log.info("No batches emitted.")
                return

            self._log.info(
                "Final: %s records in %d batches (%s bytes, %s rows loaded) over %.1fs",
                f"{self.delivered_records:,}",
                self.delivered_batches,
                f"{self.delivered_bytes:,}",
                f"{self.rows_loaded:,}",
                total_elapsed,
            )
            if self.delivered_batches:
                n = self.delivered_batches
                self._log.info(
                    "Final averages: encode=%.*fms upload=%.*fms load=%.*fms",
                    _precision(self._cum_encode_ms / n),
                    self._cum_encode_ms / n,
                    _precision(self._cum_upload_ms / n),
                    self._cum_upload_ms / n,
                    _precision(self._cum_load_ms / n),
                    self._cum_load_ms / n,
                )
            if self.failed_batches:
                self._log.warning(
                    "Final: %d batches (%s records) not delivered | by stage: %s",
                    self.failed_batches,
                    f"{self.failed_records:,}",
                    ", ".join(f"{k}={v}" for k, v in sorted(self.failures_by_stage.items())),
                )
