# ==============================================================================
# Shared Test Fixtures
# ==============================================================================
"""
Pytest fixtures shared across all test modules.

Provides:
- FakeS3Client: dict-backed stand-in for a boto3 S3 client (put_object, close)
- FakeWarehouse: transactional stand-in for Redshift. Connections stage
  COPY rows and ledger inserts until commit; rollback discards them.
  LOCK holds a table lock until the session commits or rolls back.
- Sample batches of bytes records

No AWS account or Redshift cluster is needed for any test.
"""

import threading
import time
from datetime import datetime

import pytest

from recordsink.core.models import Batch
from recordsink.infrastructure.object_store.s3 import S3ObjectSink
from recordsink.infrastructure.warehouse.redshift import RedshiftLoader

BUCKET = "test-bucket"


# ==============================================================================
# Object store fake
# ==============================================================================


class FakeS3Client:
    """Records put_object calls into an in-memory bucket map.

    Exceptions queued in `failures` are raised by the next put_object
    calls, one per call, before anything is stored.
    """

    def __init__(self):
        self.objects: dict[tuple[str, str], bytes] = {}
        self.calls: list[dict] = []
        self.failures: list[Exception] = []
        self.closed = False

    def put_object(self, Bucket, Key, Body, ContentLength=None):
        self.calls.append({"Bucket": Bucket, "Key": Key, "ContentLength": ContentLength})
        if self.failures:
            raise self.failures.pop(0)
        self.objects[(Bucket, Key)] = bytes(Body)
        return {"ETag": '"fake"'}

    def get(self, key: str, bucket: str = BUCKET) -> bytes:
        return self.objects[(bucket, key)]

    def close(self):
        self.closed = True


# ==============================================================================
# Warehouse fake
# ==============================================================================


class FakeCursor:
    """Interprets the handful of statements the loader issues."""

    def __init__(self, conn: "FakeConnection"):
        self._conn = conn
        self._rows: list[tuple] = []
        self.statements: list[tuple[str, tuple | None]] = []

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False

    def execute(self, sql, params=None):
        conn = self._conn
        warehouse = conn.warehouse
        self.statements.append((sql, params))
        warehouse.statements.append((sql, params))
        self._rows = []

        if sql.startswith("LOCK"):
            if warehouse.lock_errors:
                raise warehouse.lock_errors.pop(0)
            warehouse.table_lock.acquire()
            conn.locked = True
        elif "pg_last_copy_count" in sql:
            self._rows = [(conn.last_copy_count,)]
        elif sql.startswith("COPY"):
            location = params[0]
            warehouse.copies.append(location)
            time.sleep(warehouse.copy_delay)
            if warehouse.copy_errors:
                raise warehouse.copy_errors.pop(0)
            rows = warehouse.rows_for(location)
            conn.last_copy_count = rows
            conn.pending_rows += rows
        elif sql.startswith("INSERT INTO"):
            conn.pending_ledger.append(params)
        elif sql.startswith("SELECT artifact_key") and "WHERE" in sql:
            entry = warehouse.ledger.get(params[0])
            self._rows = [entry] if entry else []
        elif sql.startswith("SELECT artifact_key"):
            entries = sorted(warehouse.ledger.values(), key=lambda e: e[2], reverse=True)
            self._rows = entries[: params[0]]
        elif "CREATE TABLE" in sql:
            warehouse.ledger_created = True
        else:
            raise AssertionError(f"Unexpected statement: {sql}")

    def fetchone(self):
        return self._rows[0] if self._rows else None

    def fetchall(self):
        return list(self._rows)


class FakeConnection:
    """One warehouse session with its own uncommitted state."""

    def __init__(self, warehouse: "FakeWarehouse"):
        self.warehouse = warehouse
        self.closed = 0
        self.locked = False
        self.last_copy_count = 0
        self.pending_rows = 0
        self.pending_ledger: list[tuple] = []
        self.commits = 0
        self.rollbacks = 0

    def cursor(self):
        return FakeCursor(self)

    def commit(self):
        if self.warehouse.commit_error is not None:
            error, self.warehouse.commit_error = self.warehouse.commit_error, None
            raise error
        self.warehouse.table_rows += self.pending_rows
        for key, rows, loaded_at in self.pending_ledger:
            self.warehouse.ledger[key] = (key, rows, loaded_at)
        self.pending_rows = 0
        self.pending_ledger = []
        self.commits += 1
        self._unlock()

    def rollback(self):
        self.pending_rows = 0
        self.pending_ledger = []
        self.rollbacks += 1
        self._unlock()

    def _unlock(self):
        if self.locked:
            self.locked = False
            self.warehouse.table_lock.release()

    def close(self):
        self._unlock()
        self.closed = 1


class FakeWarehouse:
    """Committed state shared by every connection.

    Attributes:
        table_rows: Rows committed into the data table
        ledger: artifact_key -> (artifact_key, row_count, loaded_at)
        copies: Locations passed to COPY, in call order
        copy_rows: Per-location override of rows reported by COPY
        default_rows: Rows reported by COPY when no override applies
        copy_errors: Exceptions raised by the next COPY statements
        copy_delay: Seconds each COPY takes, to widen race windows
        lock_errors: Exceptions raised by the next LOCK statements
        commit_error: Exception raised by the next commit
        connect_error: Exception raised by the next connect()
    """

    def __init__(self, default_rows: int = 3):
        self.table_rows = 0
        self.ledger: dict[str, tuple] = {}
        self.copies: list[str] = []
        self.copy_rows: dict[str, int] = {}
        self.default_rows = default_rows
        self.copy_errors: list[Exception] = []
        self.copy_delay = 0.0
        self.lock_errors: list[Exception] = []
        self.commit_error: Exception | None = None
        self.connect_error: Exception | None = None
        self.connections: list[FakeConnection] = []
        self.statements: list[tuple[str, tuple | None]] = []
        self.ledger_created = False
        self.table_lock = threading.Lock()

    def rows_for(self, location: str) -> int:
        return self.copy_rows.get(location, self.default_rows)

    def preload(self, key: str, rows: int, loaded_at: datetime | None = None):
        """Add a committed ledger entry as if an earlier run loaded `key`."""
        self.ledger[key] = (key, rows, loaded_at or datetime(2024, 1, 1, 12, 0, 0))

    def connect(self) -> FakeConnection:
        if self.connect_error is not None:
            error, self.connect_error = self.connect_error, None
            raise error
        conn = FakeConnection(self)
        self.connections.append(conn)
        return conn


# ==============================================================================
# Fixtures
# ==============================================================================


@pytest.fixture()
def s3_client():
    """A clean in-memory S3 client for each test."""
    return FakeS3Client()


@pytest.fixture()
def object_sink(s3_client):
    """An S3ObjectSink over the fake client, retrying transport errors without waiting."""
    return S3ObjectSink(BUCKET, client=s3_client, upload_attempts=3, retry_wait_seconds=0)


@pytest.fixture()
def warehouse():
    """A fake warehouse whose COPY reports 3 rows by default."""
    return FakeWarehouse()


@pytest.fixture()
def loader(warehouse):
    """A RedshiftLoader connected to the fake warehouse."""
    return RedshiftLoader(
        warehouse.connect,
        table="events",
        credentials="aws_iam_role=arn:aws:iam::123456789012:role/copy",
        delimiter="|",
        ledger_table="load_ledger",
    )


@pytest.fixture()
def batch():
    """Three records with sequence numbers 100..102."""
    return Batch.of([b"a", b"b", b"c"], 100, 102)
