# ==============================================================================
# Sink Abstract Base Classes
# ==============================================================================
"""
ABCs for the destinations an artifact passes through.

These define the "what" (store an artifact, load it, dispose of failed
records) not the "how". Concrete implementations live in infrastructure/.

Includes:
- ObjectSink: Durable, addressable object storage (S3)
- WarehouseLoader: Bulk load of a staged artifact into a table (Redshift)
- FailureSink: Final disposition of records the caller gave up on
"""

import logging
from abc import ABC, abstractmethod
from collections.abc import Sequence

logger = logging.getLogger(__name__)


class ObjectSink(ABC):
    """Stores named payloads in an object store."""

    @abstractmethod
    def put(self, name: str, payload: bytes) -> None:
        """
        Store a payload under `name`.

        Must overwrite any existing object with the same name, so that
        re-uploading the same artifact is safe.

        Args:
            name: Object key
            payload: Artifact bytes

        Raises:
            UploadError: If the object store did not accept the payload
        """
        ...

    @abstractmethod
    def uri(self, name: str) -> str:
        """Return the addressable location of `name` (e.g. s3://bucket/key)."""
        ...

    def fail(self, records: Sequence) -> None:
        """
        Report records that could not be delivered.

        Purely for observability; performs no delivery action.
        """
        for record in records:
            logger.error("Record failed: %r", record)

    @abstractmethod
    def shutdown(self) -> None:
        """Release the underlying client."""
        ...


class WarehouseLoader(ABC):
    """Loads artifacts that are already durable in the object store."""

    @abstractmethod
    def load_and_verify(self, location: str, expected_min_rows: int | None = None) -> int:
        """
        Bulk-load the artifact at `location` and verify the ingested row count.

        Loading the same location twice must issue the bulk load at most once.

        Args:
            location: Artifact URI (s3://bucket/key)
            expected_min_rows: Minimum rows the load must report, if known

        Returns:
            Rows loaded (or previously recorded as loaded)

        Raises:
            LoadError: If the load failed or could not be verified
        """
        ...

    def close(self) -> None:
        """Release loader resources. Connections are per call by default."""
        return None


class FailureSink(ABC):
    """Receives records that will not be retried."""

    @abstractmethod
    def fail(self, records: Sequence, error: str | None = None, metadata: dict | None = None) -> None:
        """
        Permanently dispose of records.

        Args:
            records: Records that exhausted their retries
            error: Last failure cause, if known
            metadata: Context such as sequence range or artifact name
        """
        ...
