# ==============================================================================
# Delivery Pipeline
# ==============================================================================
"""
Caller-side delivery policy around the EmissionCoordinator.

The coordinator runs exactly one attempt per call. This module adds what
the caller owns:

- deliver(): re-submit the identical batch up to max_attempts times (so
  deterministic names make retries overwrite-safe), then route the records
  to a FailureSink
- drain(): feed (record, sequence) pairs through a RecordBuffer, delivering
  a batch each time a flush threshold is met, and report the last sequence
  that may be checkpointed

Encoding failures are not retried: the same records would fail the same way.
"""

import logging
from collections.abc import Callable, Iterable
from dataclasses import dataclass

from tenacity import RetryCallState, Retrying, retry_if_result, stop_after_attempt, wait_exponential

from recordsink.base.sinks import FailureSink
from recordsink.core.buffer import RecordBuffer
from recordsink.core.models import Batch, DeliveryResult, EmissionStage
from recordsink.emitters.coordinator import EmissionCoordinator
from recordsink.utils.retry import RETRY_WAIT_MAX

logger = logging.getLogger(__name__)


def _should_retry(result: DeliveryResult) -> bool:
    return not result.delivered and result.stage != EmissionStage.ENCODING


def _log_not_delivered(batch: Batch, max_attempts: int):
    def _log(retry_state: RetryCallState) -> None:
        result = retry_state.outcome.result() if retry_state.outcome else None
        logger.warning(
            "Batch %s-%s not delivered at %s (attempt %d/%d): %s",
            batch.first_sequence,
            batch.last_sequence,
            result.stage.value if result else "unknown",
            retry_state.attempt_number,
            max_attempts,
            result.error if result else None,
        )

    return _log


def deliver(
    coordinator: EmissionCoordinator,
    batch: Batch,
    failure_sink: FailureSink | None = None,
    max_attempts: int = 3,
    wait_seconds: float = 1.0,
) -> DeliveryResult:
    """
    Emit a batch with bounded retries.

    Args:
        coordinator: Coordinator running each attempt
        batch: Batch to deliver; re-submitted unchanged on every attempt
        failure_sink: Receives the records if every attempt fails
        max_attempts: Total attempts including the first
        wait_seconds: Initial backoff between attempts (0 disables waiting)

    Returns:
        The result of the last attempt
    """
    retrying = Retrying(
        stop=stop_after_attempt(max_attempts),
        wait=wait_exponential(multiplier=wait_seconds, min=wait_seconds, max=RETRY_WAIT_MAX),
        retry=retry_if_result(_should_retry),
        before_sleep=_log_not_delivered(batch, max_attempts),
        retry_error_callback=lambda state: state.outcome.result(),
    )
    result = retrying(coordinator.emit, batch)

    if not result.delivered:
        logger.error(
            "Giving up on batch %s-%s (%d records) at %s: %s",
            batch.first_sequence,
            batch.last_sequence,
            batch.record_count,
            result.stage.value,
            result.error,
        )
        coordinator.fail(result.failed)
        if failure_sink is not None:
            failure_sink.fail(
                result.failed,
                error=result.error,
                metadata={
                    "first_sequence": batch.first_sequence,
                    "last_sequence": batch.last_sequence,
                    "artifact_name": result.artifact_name,
                    "stage": result.stage.value,
                },
            )
    return result


@dataclass
class DrainSummary:
    """Totals for one drain() run."""

    delivered_batches: int = 0
    failed_batches: int = 0
    records: int = 0
    checkpoint: str | None = None


def drain(
    records: Iterable[tuple[bytes, object]],
    coordinator: EmissionCoordinator,
    buffer: RecordBuffer,
    failure_sink: FailureSink | None = None,
    max_attempts: int = 3,
    wait_seconds: float = 1.0,
    on_checkpoint: Callable[[str], None] | None = None,
) -> DrainSummary:
    """
    Buffer records and deliver them batch by batch.

    The checkpoint advances past a batch once it is delivered or handed to
    the failure sink, never before. Whatever is left in the buffer at the
    end of the input is flushed as a final batch.

    Args:
        records: (record, sequence) pairs in source order
        coordinator: Coordinator running each attempt
        buffer: Buffer deciding when to flush
        failure_sink: Receives records of batches that exhaust their attempts
        max_attempts: Attempts per batch
        wait_seconds: Initial backoff between attempts
        on_checkpoint: Called with the last sequence of each finished batch

    Returns:
        DrainSummary with batch counts and the final checkpoint
    """
    summary = DrainSummary()

    def flush() -> None:
        batch = buffer.snapshot()
        result = deliver(coordinator, batch, failure_sink, max_attempts, wait_seconds)
        if result.delivered:
            summary.delivered_batches += 1
        else:
            summary.failed_batches += 1
        summary.records += batch.record_count
        summary.checkpoint = batch.last_sequence
        buffer.clear()
        if on_checkpoint is not None:
            on_checkpoint(batch.last_sequence)

    for record, sequence in records:
        buffer.consume(record, sequence)
        if buffer.should_flush():
            flush()

    if buffer.record_count:
        flush()

    return summary
