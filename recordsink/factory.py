# ==============================================================================
# Sink Factory
# ==============================================================================
"""
Factory functions wiring the emission pipeline from configuration.

EMITTER_ENCODING, EMITTER_FILENAME_STRATEGY and S3_PREFIX select the
encoder and the (decorated) filename strategy; EMITTER_LOAD_INTO_WAREHOUSE
adds the Redshift loading stage.
"""

import logging

from recordsink.base.sinks import FailureSink, ObjectSink, WarehouseLoader
from recordsink.core.buffer import RecordBuffer
from recordsink.core.encoding import get_encoder
from recordsink.core.naming import FilenameStrategy, decorate, get_strategy, with_prefix
from recordsink.emitters.coordinator import EmissionCoordinator
from recordsink.utils.config import Settings, get_settings, validate_settings

logger = logging.getLogger(__name__)


def build_strategy(settings: Settings) -> FilenameStrategy:
    """Base strategy from settings, placed under the configured prefix."""
    return decorate(
        get_strategy(settings.emitter.filename_strategy),
        with_prefix(settings.s3.prefix),
    )


def build_coordinator(
    settings: Settings | None = None,
    object_sink: ObjectSink | None = None,
    loader: WarehouseLoader | None = None,
) -> EmissionCoordinator:
    """
    Build an EmissionCoordinator from configuration.

    Args:
        settings: Application settings. If None, uses get_settings().
        object_sink: Override for the S3 sink (e.g. in tests)
        loader: Override for the Redshift loader (e.g. in tests)

    Returns:
        Configured coordinator

    Raises:
        ConfigurationError: If the settings are incomplete or invalid
    """
    settings = settings or get_settings()
    validate_settings(settings)

    if object_sink is None:
        from recordsink.infrastructure.object_store.s3 import S3ObjectSink

        object_sink = S3ObjectSink.from_settings(settings)

    if loader is None and settings.emitter.load_into_warehouse:
        from recordsink.infrastructure.warehouse.redshift import RedshiftLoader

        loader = RedshiftLoader.from_settings(settings)

    coordinator = EmissionCoordinator(
        object_sink,
        encoder=get_encoder(settings.emitter.encoding),
        strategy=build_strategy(settings),
        loader=loader,
        require_row_per_record=settings.emitter.require_row_per_record,
    )
    logger.info(
        "Emitter ready: encoding=%s strategy=%s prefix=%r warehouse=%s",
        settings.emitter.encoding,
        settings.emitter.filename_strategy,
        settings.s3.prefix,
        "enabled" if loader is not None else "disabled",
    )
    return coordinator


def build_failure_sink(settings: Settings | None = None) -> FailureSink:
    """Dead-letter file if FAILURE_FILE is set, otherwise log-and-drop."""
    from recordsink.infrastructure.failure import LoggingFailureSink, NdjsonFailureSink

    settings = settings or get_settings()
    if settings.failure_file:
        return NdjsonFailureSink(settings.failure_file)
    return LoggingFailureSink()


def build_buffer(settings: Settings | None = None) -> RecordBuffer:
    """Record buffer with the configured flush thresholds."""
    settings = settings or get_settings()
    return RecordBuffer(
        record_count_limit=settings.buffer.record_count_limit,
        byte_size_limit=settings.buffer.byte_size_limit,
        millis_between_flushes=settings.buffer.millis_between_flushes,
    )
