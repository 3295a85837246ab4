# ==============================================================================
# Record Sink Domain Models
# ==============================================================================
"""
Domain models for the emission pipeline.

- Batch: immutable, ordered records bounded by two sequence tokens
- Artifact: encoded payload plus the name it is stored under
- DeliveryResult: outcome of a single emission attempt
- LedgerEntry: a confirmed warehouse load, as stored in the ledger table

This module is part of the core domain layer and has no external dependencies
beyond Pydantic.
"""

from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field


class EmissionStage(str, Enum):
    """Stages an emission attempt moves through."""

    ENCODING = "encoding"
    NAMING = "naming"
    UPLOADING = "uploading"
    LOADING = "loading"
    VERIFYING = "verifying"
    DELIVERED = "delivered"
    NOT_DELIVERED = "not_delivered"


@dataclass(frozen=True)
class Batch:
    """
    An immutable view of buffered records.

    Records keep source arrival order. Sequence tokens are carried as
    strings since stream sequence numbers routinely exceed 64 bits.

    Attributes:
        records: Opaque record payloads, in source order
        first_sequence: Sequence token of the first record
        last_sequence: Sequence token of the last record
    """

    records: tuple
    first_sequence: str
    last_sequence: str

    def __post_init__(self):
        object.__setattr__(self, "records", tuple(self.records))
        object.__setattr__(self, "first_sequence", str(self.first_sequence))
        object.__setattr__(self, "last_sequence", str(self.last_sequence))

    @classmethod
    def of(cls, records: Iterable, first_sequence, last_sequence) -> "Batch":
        """Build a batch from any iterable of records."""
        return cls(tuple(records), str(first_sequence), str(last_sequence))

    @property
    def record_count(self) -> int:
        """Number of records in the batch."""
        return len(self.records)

    def __len__(self) -> int:
        return len(self.records)


@dataclass(frozen=True)
class Artifact:
    """Encoded payload of a batch plus its assigned name."""

    name: str
    payload: bytes
    record_count: int

    @property
    def size(self) -> int:
        """Payload size in bytes."""
        return len(self.payload)


@dataclass(frozen=True)
class DeliveryResult:
    """
    Outcome of one emission attempt.

    A batch is atomic at the artifact granularity: `failed` is either empty
    (delivered) or the full original record tuple (not delivered).

    Attributes:
        failed: Records the caller must retry or route to a failure sink
        stage: DELIVERED, or the stage at which the attempt stopped
        artifact_name: Name generated for the batch, if naming was reached
        rows_loaded: Rows confirmed by the warehouse, if a load ran
        error: Description of the failure cause, if any
    """

    failed: tuple = ()
    stage: EmissionStage = EmissionStage.DELIVERED
    artifact_name: str | None = None
    rows_loaded: int | None = None
    error: str | None = field(default=None, compare=False)

    @property
    def delivered(self) -> bool:
        """True when the batch is durably visible in the terminal sink."""
        return self.stage == EmissionStage.DELIVERED

    @classmethod
    def delivered_result(
        cls, artifact_name: str | None = None, rows_loaded: int | None = None
    ) -> "DeliveryResult":
        """Result for a batch that reached its terminal sink."""
        return cls(
            failed=(),
            stage=EmissionStage.DELIVERED,
            artifact_name=artifact_name,
            rows_loaded=rows_loaded,
        )

    @classmethod
    def not_delivered(
        cls,
        batch: Batch,
        stage: EmissionStage,
        error: BaseException | str | None = None,
        artifact_name: str | None = None,
    ) -> "DeliveryResult":
        """Result carrying every record of `batch` back to the caller."""
        return cls(
            failed=batch.records,
            stage=stage,
            artifact_name=artifact_name,
            error=str(error) if error is not None else None,
        )


class LedgerEntry(BaseModel):
    """A confirmed warehouse load of one artifact."""

    artifact_key: str = Field(..., description="Artifact location (s3:// URI)")
    row_count: int = Field(..., ge=0, description="Rows reported by the warehouse")
    loaded_at: datetime = Field(..., description="Time the load was committed")

    model_config = {"frozen": True}
