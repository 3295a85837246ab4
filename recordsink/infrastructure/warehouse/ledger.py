# ==============================================================================
# Load Ledger
# ==============================================================================
"""
Ledger of artifacts already loaded into the warehouse.

The ledger lives in the warehouse itself, so a ledger row can be written in
the same transaction as the COPY it describes: either both commit or
neither does. It is the only source of load idempotency across restarts.

Redshift does not enforce PRIMARY KEY constraints, so uniqueness of
artifact_key is guaranteed by taking an exclusive table lock before the
lookup (see RedshiftLoader.load_and_verify).
"""

import logging
from datetime import UTC, datetime
from pathlib import Path

from jinja2 import Template

from recordsink.core.models import LedgerEntry

logger = logging.getLogger(__name__)


def get_ledger_sql_path() -> Path:
    """Get the path of the ledger table DDL template."""
    return Path(__file__).resolve().parent.parent.parent / "schema" / "ledger.sql"


def render_ledger_sql(ledger_table: str) -> str:
    """Render the ledger DDL for the given table name."""
    path = get_ledger_sql_path()
    if not path.exists():
        raise RuntimeError(f"Ledger schema file not found: {path}")
    return Template(path.read_text()).render(ledger_table=ledger_table)


class LoadLedger:
    """
    Cursor-level operations on the ledger table.

    Methods take an open cursor so the caller controls the transaction.
    The table name must already be validated (see validate_settings).
    """

    def __init__(self, table: str):
        self._table = table

    @property
    def table(self) -> str:
        """Get the ledger table name."""
        return self._table

    def create(self, cur) -> None:
        """Create the ledger table if it does not exist."""
        cur.execute(render_ledger_sql(self._table))

    def lock(self, cur) -> None:
        """Serialize loaders on the ledger until the transaction ends."""
        cur.execute(f"LOCK {self._table}")

    def lookup(self, cur, artifact_key: str) -> LedgerEntry | None:
        """
        Find the ledger entry for an artifact.

        Returns:
            The entry, or None if the artifact was never loaded
        """
        cur.execute(
            f"SELECT artifact_key, row_count, loaded_at FROM {self._table} "
            "WHERE artifact_key = %s",
            (artifact_key,),
        )
        row = cur.fetchone()
        if row is None:
            return None
        return LedgerEntry(artifact_key=row[0], row_count=row[1], loaded_at=row[2])

    def record(
        self, cur, artifact_key: str, row_count: int, loaded_at: datetime | None = None
    ) -> LedgerEntry:
        """Insert a ledger entry. Becomes visible when the transaction commits."""
        entry = LedgerEntry(
            artifact_key=artifact_key,
            row_count=row_count,
            loaded_at=loaded_at or datetime.now(UTC).replace(tzinfo=None),
        )
        cur.execute(
            f"INSERT INTO {self._table} (artifact_key, row_count, loaded_at) "
            "VALUES (%s, %s, %s)",
            (entry.artifact_key, entry.row_count, entry.loaded_at),
        )
        logger.debug("Ledger entry staged for %s (%d rows)", artifact_key, row_count)
        return entry

    def entries(self, cur, limit: int = 20) -> list[LedgerEntry]:
        """Most recently loaded artifacts, newest first."""
        cur.execute(
            f"SELECT artifact_key, row_count, loaded_at FROM {self._table} "
            "ORDER BY loaded_at DESC LIMIT %s",
            (limit,),
        )
        return [
            LedgerEntry(artifact_key=key, row_count=count, loaded_at=loaded_at)
            for key, count, loaded_at in cur.fetchall()
        ]
