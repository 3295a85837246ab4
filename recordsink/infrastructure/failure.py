# ==============================================================================
# Failure Sinks
# ==============================================================================
"""
Final disposition of records that exhausted their delivery attempts.

- LoggingFailureSink: logs each failed record and drops it
- NdjsonFailureSink: appends failed batches to a dead-letter NDJSON file
  that can be replayed later

Each record is stored as a tagged value: bytes-like records base64-encoded,
str records as text. Anything else is stored as its repr and replays as an
UnencodableRecord.
"""

import base64
import json
import logging
import threading
from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import UTC, datetime
from pathlib import Path

from recordsink.base.sinks import FailureSink

logger = logging.getLogger(__name__)


class LoggingFailureSink(FailureSink):
    """Logs every failed record at ERROR level."""

    def __init__(self, log: logging.Logger | None = None):
        self._log = log or logger

    def fail(self, records: Sequence, error: str | None = None, metadata: dict | None = None) -> None:
        self._log.error(
            "Dropping %d records after exhausting retries (%s): %s",
            len(records),
            metadata or {},
            error or "unknown error",
        )
        for record in records:
            self._log.error("Record failed: %r", record)


@dataclass(frozen=True)
class FailedBatch:
    """One entry of the dead-letter file."""

    records: tuple
    error: str
    metadata: dict = field(default_factory=dict)
    failed_at: str = ""


@dataclass(frozen=True)
class UnencodableRecord:
    """A dead-lettered record that was neither bytes nor str."""

    type_name: str
    value: str


def _dump_record(record) -> dict:
    if isinstance(record, (bytes, bytearray, memoryview)):
        return {"type": "bytes", "value": base64.b64encode(bytes(record)).decode("ascii")}
    if isinstance(record, str):
        return {"type": "str", "value": record}
    logger.error("Dead-lettering non-bytes record of type %s: %r", type(record).__name__, record)
    return {"type": "repr", "type_name": type(record).__name__, "value": repr(record)}


def _load_record(data: dict):
    match data["type"]:
        case "bytes":
            return base64.b64decode(data["value"])
        case "str":
            return data["value"]
        case "repr":
            return UnencodableRecord(data.get("type_name", ""), data["value"])
        case other:
            raise ValueError(f"Unknown record type in dead-letter file: {other}")


class NdjsonFailureSink(FailureSink):
    """
    Dead-letter file with one JSON line per failed batch.

    Appends are serialized with a lock so concurrent emitters in one process
    never interleave lines.
    """

    def __init__(self, path: str | Path, mkdirs: bool = True):
        """
        Args:
            path: NDJSON file to append to
            mkdirs: Create the parent directory if missing
        """
        self._path = Path(path)
        self._lock = threading.Lock()
        if mkdirs:
            self._path.parent.mkdir(parents=True, exist_ok=True)

    @property
    def path(self) -> Path:
        return self._path

    def fail(self, records: Sequence, error: str | None = None, metadata: dict | None = None) -> None:
        line = json.dumps(
            {
                "failed_at": datetime.now(UTC).isoformat(),
                "error": error or "",
                "metadata": metadata or {},
                "records": [_dump_record(r) for r in records],
            }
        )
        with self._lock:
            with self._path.open("a", encoding="utf-8") as f:
                f.write(line + "\n")
        logger.warning("Wrote %d failed records to %s", len(records), self._path)

    def replay(self, max_batches: int = 100) -> list[FailedBatch]:
        """
        Read back failed batches, oldest first.

        Args:
            max_batches: Maximum number of entries to return

        Returns:
            Failed batches with decoded records (empty if the file is missing)
        """
        if not self._path.exists():
            return []
        batches = []
        with self._lock, self._path.open(encoding="utf-8") as f:
            for line in f:
                if len(batches) >= max_batches:
                    break
                if not line.strip():
                    continue
                data = json.loads(line)
                batches.append(
                    FailedBatch(
                        records=tuple(_load_record(r) for r in data["records"]),
                        error=data.get("error", ""),
                        metadata=data.get("metadata", {}),
                        failed_at=data.get("failed_at", ""),
                    )
                )
        return batches
