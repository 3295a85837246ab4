"""
Core domain layer: models, errors, naming, encoding and buffering.

Nothing in this package performs network I/O.
"""

from recordsink.core.buffer import RecordBuffer
from recordsink.core.encoding import ArtifactEncoder, GzipEncoder, IdentityEncoder, get_encoder
from recordsink.core.errors import (
    ConfigurationError,
    EmissionError,
    EncodingError,
    LoadError,
    RecordSinkError,
    UploadError,
)
from recordsink.core.models import Artifact, Batch, DeliveryResult, EmissionStage, LedgerEntry
from recordsink.core.naming import (
    FilenameStrategy,
    SequenceRangeStrategy,
    TimestampStrategy,
    decorate,
    get_strategy,
    gzip_wrapping,
    with_prefix,
    with_suffix,
)

__all__ = [
    "Artifact",
    "ArtifactEncoder",
    "Batch",
    "ConfigurationError",
    "DeliveryResult",
    "EmissionError",
    "EmissionStage",
    "EncodingError",
    "FilenameStrategy",
    "GzipEncoder",
    "IdentityEncoder",
    "LedgerEntry",
    "LoadError",
    "RecordBuffer",
    "RecordSinkError",
    "SequenceRangeStrategy",
    "TimestampStrategy",
    "UploadError",
    "decorate",
    "get_encoder",
    "get_strategy",
    "gzip_wrapping",
    "with_prefix",
    "with_suffix",
]
