# ==============================================================================
# Redshift Warehouse Loader
# ==============================================================================
"""
Redshift implementation of the WarehouseLoader interface.

A load is one transaction on one connection:

    LOCK ledger
    SELECT ... FROM ledger WHERE artifact_key = <location>   -- short-circuit if found
    COPY <table> FROM <location> CREDENTIALS ... DELIMITER ...
    SELECT pg_last_copy_count()                               -- same session
    INSERT INTO ledger ...
    COMMIT

Any failure rolls the whole transaction back, so the ledger never records
a load that did not commit. The connection is closed on every exit path.
"""

import logging
from collections.abc import Callable

import psycopg2
from psycopg2.errors import UndefinedTable

from recordsink.base.sinks import WarehouseLoader
from recordsink.core.errors import LoadError
from recordsink.core.naming import GZIP_SUFFIX
from recordsink.infrastructure.warehouse.ledger import LoadLedger
from recordsink.utils.config import Settings, get_settings
from recordsink.utils.retry import POSTGRES_RETRY_EXCEPTIONS, retry_light

logger = logging.getLogger(__name__)


def build_credentials(settings: Settings) -> str:
    """
    Build the CREDENTIALS clause value for COPY.

    An IAM role is preferred; otherwise the static AWS keys are inlined.
    """
    if settings.redshift.iam_role:
        return f"aws_iam_role={settings.redshift.iam_role}"
    credentials = (
        f"aws_access_key_id={settings.aws.access_key_id};"
        f"aws_secret_access_key={settings.aws.secret_access_key}"
    )
    if settings.aws.session_token:
        credentials += f";token={settings.aws.session_token}"
    return credentials


class RedshiftLoader(WarehouseLoader):
    """
    Loads S3 artifacts into a Redshift table with COPY.

    Connections come from `connect` and are owned by a single call to
    load_and_verify(); nothing is shared between concurrent loads except the
    ledger table lock inside Redshift.
    """

    def __init__(
        self,
        connect: Callable[[], "psycopg2.extensions.connection"],
        table: str,
        credentials: str,
        delimiter: str = "|",
        ledger_table: str = "recordsink_load_ledger",
    ):
        """
        Initialize the loader.

        Args:
            connect: Returns a new DB-API connection to Redshift
            table: Target table for COPY (validated identifier)
            credentials: Value of the COPY CREDENTIALS clause
            delimiter: Single-character field delimiter
            ledger_table: Ledger table name (validated identifier)
        """
        self._connect = connect
        self._table = table
        self._credentials = credentials
        self._delimiter = delimiter
        self._ledger = LoadLedger(ledger_table)

    @classmethod
    def from_settings(cls, settings: Settings | None = None) -> "RedshiftLoader":
        """Build a loader from the Redshift and AWS settings."""
        settings = settings or get_settings()
        conn_string = settings.redshift.connection_string

        @retry_light(POSTGRES_RETRY_EXCEPTIONS, logger)
        def connect():
            return psycopg2.connect(conn_string)

        return cls(
            connect,
            table=settings.redshift.data_table,
            credentials=build_credentials(settings),
            delimiter=settings.redshift.data_delimiter,
            ledger_table=settings.redshift.ledger_table,
        )

    @property
    def table(self) -> str:
        """Get the target table name."""
        return self._table

    @property
    def ledger(self) -> LoadLedger:
        return self._ledger

    def copy_statement(self, location: str) -> tuple[str, tuple]:
        """
        Build the COPY statement for an artifact.

        Literals are passed as query parameters so credentials never appear
        in the statement text. Artifacts named *.gz are loaded with GZIP.

        Returns:
            (sql, params) for cursor.execute()
        """
        sql = f"COPY {self._table} FROM %s CREDENTIALS %s DELIMITER %s"
        if location.endswith(GZIP_SUFFIX):
            sql += " GZIP"
        return sql, (location, self._credentials, self._delimiter)

    def load_and_verify(self, location: str, expected_min_rows: int | None = None) -> int:
        """
        Load an artifact unless the ledger shows it was already loaded.

        Args:
            location: s3:// URI of the artifact
            expected_min_rows: Fewer reported rows than this fails the load

        Returns:
            Rows loaded by this call, or recorded by an earlier one

        Raises:
            LoadError: Connection, COPY or verification failure. No ledger
                entry is written.
        """
        try:
            conn = self._connect()
        except psycopg2.Error as e:
            raise LoadError(location, f"cannot connect to warehouse: {e}") from e

        try:
            with conn.cursor() as cur:
                self._lock_ledger(cur, location)
                entry = self._ledger.lookup(cur, location)
                if entry is not None:
                    conn.rollback()
                    logger.info(
                        "Skipping %s: already loaded %d rows at %s",
                        location,
                        entry.row_count,
                        entry.loaded_at,
                    )
                    return entry.row_count

                sql, params = self.copy_statement(location)
                cur.execute(sql, params)
                rows = self._last_copy_count(cur)
                self._verify(location, rows, expected_min_rows)
                self._ledger.record(cur, location, rows)
            conn.commit()
        except psycopg2.Error as e:
            self._rollback(conn)
            raise LoadError(location, str(e).strip()) from e
        except BaseException:
            # Includes LoadError from verification and cancellation
            self._rollback(conn)
            raise
        finally:
            self._close(conn)

        logger.info(
            "Successfully copied %d records to Redshift table %s from %s",
            rows,
            self._table,
            location,
        )
        return rows

    def ensure_ledger(self) -> None:
        """Create the ledger table if needed."""
        conn = self._connect()
        try:
            with conn.cursor() as cur:
                self._ledger.create(cur)
            conn.commit()
            logger.info("Ledger table %s is ready", self._ledger.table)
        except BaseException:
            self._rollback(conn)
            raise
        finally:
            self._close(conn)

    def ledger_entries(self, limit: int = 20):
        """Read the most recent ledger entries."""
        conn = self._connect()
        try:
            with conn.cursor() as cur:
                return self._ledger.entries(cur, limit)
        finally:
            self._close(conn)

    def _lock_ledger(self, cur, location: str) -> None:
        try:
            self._ledger.lock(cur)
        except UndefinedTable as e:
            raise LoadError(
                location,
                f"ledger table {self._ledger.table} does not exist; "
                "run `recordsink ledger init` to create it",
            ) from e

    @staticmethod
    def _last_copy_count(cur) -> int:
        """Rows loaded by the last COPY in this session."""
        cur.execute("SELECT pg_last_copy_count()")
        row = cur.fetchone()
        return int(row[0]) if row and row[0] is not None else 0

    @staticmethod
    def _verify(location: str, rows: int, expected_min_rows: int | None) -> None:
        if expected_min_rows is None:
            return
        if rows == 0 and expected_min_rows > 0:
            raise LoadError(location, "COPY loaded 0 rows")
        if rows < expected_min_rows:
            raise LoadError(
                location, f"COPY loaded {rows} rows, expected at least {expected_min_rows}"
            )

    @staticmethod
    def _rollback(conn) -> None:
        try:
            conn.rollback()
        except Exception as e:
            logger.warning("Rollback failed: %s", e)

    @staticmethod
    def _close(conn) -> None:
        try:
            if not conn.closed:
                conn.close()
        except Exception as e:
            logger.warning("Error closing connection: %s", e)
