# ==============================================================================
# Emission Coordinator
# ==============================================================================
"""
Per-batch orchestration of the emission protocol.

    ENCODING -> NAMING -> UPLOADING -> (LOADING -> VERIFYING)? -> DELIVERED

A failure at any stage ends the attempt as NOT_DELIVERED and hands the
entire original batch back to the caller. A batch counts as delivered only
once it is durably visible in the terminal sink: for warehouse-backed sinks
that means the warehouse confirmed the load, not merely that the artifact
was staged in S3.

The coordinator never raises for a per-batch failure. Retry policy and the
final disposition of failed records belong to the caller (see
recordsink.pipeline.deliver).

Usage:
    coordinator = EmissionCoordinator(S3ObjectSink("bucket"), encoder=GzipEncoder())
    result = coordinator.emit(batch)
    if result.delivered:
        checkpoint(batch.last_sequence)
"""

import logging
import time
from collections.abc import Sequence

from recordsink.base.sinks import ObjectSink, WarehouseLoader
from recordsink.core.encoding import ArtifactEncoder, IdentityEncoder
from recordsink.core.errors import EmissionError, EncodingError
from recordsink.core.models import Artifact, Batch, DeliveryResult, EmissionStage
from recordsink.core.naming import FilenameStrategy, SequenceRangeStrategy, with_suffix
from recordsink.emitters.stats import EmissionStats, _precision

logger = logging.getLogger(__name__)


class EmissionCoordinator:
    """
    Encodes, names, uploads and optionally loads one batch at a time.

    Holds no per-batch state, so concurrent emit() calls for different
    batches are safe as long as the injected collaborators are.
    """

    def __init__(
        self,
        object_sink: ObjectSink,
        encoder: ArtifactEncoder | None = None,
        strategy: FilenameStrategy | None = None,
        loader: WarehouseLoader | None = None,
        require_row_per_record: bool = False,
        stats: EmissionStats | None = None,
        log: logging.Logger | None = None,
    ):
        """
        Initialize the coordinator.

        Args:
            object_sink: Where artifacts are stored
            encoder: Records -> payload. Defaults to IdentityEncoder.
            strategy: Batch -> artifact name. Defaults to SequenceRangeStrategy.
                Wrapped with the encoder's suffix (e.g. ".gz") when it has one.
            loader: Optional warehouse loader run after a successful upload
            require_row_per_record: Expect at least one loaded row per record
                instead of at least one row per batch
            stats: Optional stats collector. A new one is created if None.
            log: Optional logger override. Defaults to this module's logger.
        """
        self._sink = object_sink
        self._encoder = encoder or IdentityEncoder()
        strategy = strategy or SequenceRangeStrategy()
        if self._encoder.suffix:
            strategy = with_suffix(self._encoder.suffix)(strategy)
        self._strategy = strategy
        self._loader = loader
        self._require_row_per_record = require_row_per_record
        self._log = log or logger
        self._stats = stats or EmissionStats(log=self._log)

    @property
    def stats(self) -> EmissionStats:
        return self._stats

    @property
    def object_sink(self) -> ObjectSink:
        return self._sink

    @property
    def loader(self) -> WarehouseLoader | None:
        return self._loader

    def name_for(self, batch: Batch) -> str:
        """Artifact name the batch is stored under."""
        return self._strategy(batch)

    def emit(self, batch: Batch) -> DeliveryResult:
        """
        Run one emission attempt for a batch.

        Args:
            batch: Immutable batch of records

        Returns:
            Delivered (empty failed set) or NotDelivered carrying every
            record of the batch
        """
        count = batch.record_count
        if count == 0:
            self._log.debug("Skipping empty batch")
            return DeliveryResult.delivered_result()

        # 1. Encode
        t0 = time.monotonic()
        try:
            payload = self._encoder.encode(batch.records)
        except EncodingError as e:
            self._log.error(
                "Error writing record to output stream. Failing this emit attempt "
                "(%d records, %s-%s). Record: %r",
                count,
                batch.first_sequence,
                batch.last_sequence,
                e.record,
            )
            return self._not_delivered(batch, EmissionStage.ENCODING, e)
        except Exception as e:
            self._log.exception("Unexpected error encoding %d records", count)
            return self._not_delivered(batch, EmissionStage.ENCODING, e)

        # 2. Name
        try:
            artifact = Artifact(self._strategy(batch), payload, count)
            uri = self._sink.uri(artifact.name)
        except Exception as e:
            self._log.exception(
                "Cannot name batch %s-%s (%d records)",
                batch.first_sequence,
                batch.last_sequence,
                count,
            )
            return self._not_delivered(batch, EmissionStage.NAMING, e)

        # 3. Upload
        t1 = time.monotonic()
        self._log.debug("Starting upload of %s containing %d records", uri, count)
        try:
            self._sink.put(artifact.name, artifact.payload)
        except Exception as e:
            self._log_failure("uploading", uri, count, e)
            return self._not_delivered(batch, EmissionStage.UPLOADING, e, artifact.name)
        t2 = time.monotonic()

        # 4. Load and verify
        rows = None
        if self._loader is not None:
            expected = count if self._require_row_per_record else 1
            try:
                rows = self._loader.load_and_verify(uri, expected)
            except Exception as e:
                self._log_failure("loading", uri, count, e)
                return self._not_delivered(batch, EmissionStage.LOADING, e, artifact.name)
            if rows < expected:
                self._log.error(
                    "Verification failed for %s: %d rows loaded, expected at least %d",
                    uri,
                    rows,
                    expected,
                )
                return self._not_delivered(
                    batch,
                    EmissionStage.VERIFYING,
                    f"{rows} rows loaded, expected at least {expected}",
                    artifact.name,
                )
        t3 = time.monotonic()

        encode_ms = (t1 - t0) * 1000
        upload_ms = (t2 - t1) * 1000
        load_ms = (t3 - t2) * 1000
        self._log.info(
            "Successfully emitted %s records to %s | %s bytes | "
            "encode=%.*fms upload=%.*fms load=%.*fms",
            f"{count:,}",
            uri,
            f"{artifact.size:,}",
            _precision(encode_ms),
            encode_ms,
            _precision(upload_ms),
            upload_ms,
            _precision(load_ms),
            load_ms,
        )
        self._stats.record_delivered(
            count, artifact.size, encode_ms, upload_ms, load_ms, rows_loaded=rows
        )
        return DeliveryResult.delivered_result(artifact.name, rows)

    def fail(self, records: Sequence) -> None:
        """Report records the caller has given up on (observability only)."""
        self._sink.fail(records)

    def shutdown(self) -> None:
        """Release sink and loader resources and log final stats."""
        self._stats.log_final_summary()
        self._sink.shutdown()
        if self._loader is not None:
            self._loader.close()

    def _log_failure(self, step: str, uri: str, count: int, error: Exception) -> None:
        if isinstance(error, EmissionError):
            self._log.error(
                "Failed %s %s (%d records). Failing this emit attempt: %s",
                step,
                uri,
                count,
                error,
            )
        else:
            self._log.exception(
                "Unexpected error %s %s (%d records). Failing this emit attempt.",
                step,
                uri,
                count,
            )

    def _not_delivered(
        self,
        batch: Batch,
        stage: EmissionStage,
        error: BaseException | str,
        artifact_name: str | None = None,
    ) -> DeliveryResult:
        self._stats.record_failed(batch.record_count, stage.value)
        return DeliveryResult.not_delivered(batch, stage, error, artifact_name)
