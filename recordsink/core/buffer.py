# ==============================================================================
# Record Buffer
# ==============================================================================
"""
In-memory buffer that accumulates records until a flush threshold is met.

The buffer is the upstream stage of the emission pipeline: records are
consumed one at a time with their sequence tokens, and `snapshot()` hands
an immutable Batch to the coordinator. The buffer is only cleared after
the caller has decided the batch's fate (delivered or permanently failed).

Flush thresholds (any one triggers a flush):
- record_count_limit: number of buffered records
- byte_size_limit: total buffered bytes
- millis_between_flushes: time since the last clear
"""

import time
from collections.abc import Callable

from recordsink.core.models import Batch


class RecordBuffer:
    """Accumulates records and their sequence bounds."""

    def __init__(
        self,
        record_count_limit: int = 1000,
        byte_size_limit: int = 1024 * 1024,
        millis_between_flushes: int = 60_000,
        clock: Callable[[], float] = time.monotonic,
    ):
        """
        Initialize the buffer.

        Args:
            record_count_limit: Flush once this many records are buffered
            byte_size_limit: Flush once this many bytes are buffered
            millis_between_flushes: Flush once this much time has passed
            clock: Monotonic clock in seconds (injectable for tests)
        """
        if record_count_limit <= 0:
            raise ValueError("record_count_limit must be positive")
        if byte_size_limit <= 0:
            raise ValueError("byte_size_limit must be positive")
        self.record_count_limit = record_count_limit
        self.byte_size_limit = byte_size_limit
        self.millis_between_flushes = millis_between_flushes
        self._clock = clock

        self._records: list[bytes] = []
        self._byte_size = 0
        self._first_sequence: str | None = None
        self._last_sequence: str | None = None
        self._last_flush = clock()

    def consume(self, record: bytes, sequence, size: int | None = None) -> None:
        """
        Add a record to the buffer.

        Args:
            record: Record payload
            sequence: Source sequence token of the record
            size: Byte size to account for; defaults to len(record)
        """
        if not self._records:
            self._first_sequence = str(sequence)
        self._last_sequence = str(sequence)
        self._records.append(record)
        self._byte_size += len(record) if size is None else size

    def should_flush(self) -> bool:
        """True when any flush threshold has been reached."""
        if not self._records:
            return False
        elapsed_ms = (self._clock() - self._last_flush) * 1000
        return (
            len(self._records) >= self.record_count_limit
            or self._byte_size >= self.byte_size_limit
            or elapsed_ms >= self.millis_between_flushes
        )

    def snapshot(self) -> Batch:
        """
        Return an immutable batch of the buffered records.

        Raises:
            ValueError: If the buffer is empty
        """
        if not self._records:
            raise ValueError("Cannot snapshot an empty buffer")
        return Batch.of(self._records, self._first_sequence, self._last_sequence)

    def clear(self) -> None:
        """Drop buffered records and restart the flush timer."""
        self._records = []
        self._byte_size = 0
        self._first_sequence = None
        self._last_sequence = None
        self._last_flush = self._clock()

    @property
    def record_count(self) -> int:
        """Number of buffered records."""
        return len(self._records)

    @property
    def byte_size(self) -> int:
        """Number of buffered bytes."""
        return self._byte_size

    @property
    def first_sequence(self) -> str | None:
        return self._first_sequence

    @property
    def last_sequence(self) -> str | None:
        return self._last_sequence
