# ==============================================================================
# Artifact Encoders
# ==============================================================================
"""
Encoders that turn an ordered sequence of records into one byte payload.

- IdentityEncoder: records written as-is, back to back
- GzipEncoder: records written into a single gzip member

Encoders perform no I/O and are safe to re-run: the same records always
produce the same bytes (the gzip header carries mtime=0), so a retried
upload writes an identical object.
"""

import gzip
import io
from abc import ABC, abstractmethod
from collections.abc import Sequence

from recordsink.core.errors import EncodingError
from recordsink.core.naming import GZIP_SUFFIX

_BYTES_LIKE = (bytes, bytearray, memoryview)


class ArtifactEncoder(ABC):
    """Base class for artifact encoders."""

    # Filename suffix implied by the encoding ("" when none)
    suffix: str = ""

    @abstractmethod
    def encode(self, records: Sequence) -> bytes:
        """
        Encode records into a single payload.

        Args:
            records: Record payloads in source order

        Returns:
            Encoded artifact bytes

        Raises:
            EncodingError: If a record cannot be written. The offending
                record is attached as `error.record`.
        """
        ...

    @property
    def name(self) -> str:
        """Short name used in logs and configuration."""
        return type(self).__name__.removesuffix("Encoder").lower()


def _write_records(records: Sequence, out) -> None:
    """Write each record to `out`, raising EncodingError on the first bad one."""
    for record in records:
        if not isinstance(record, _BYTES_LIKE):
            raise EncodingError(record, f"Record is not bytes-like: {type(record).__name__}")
        out.write(record)


class IdentityEncoder(ArtifactEncoder):
    """Concatenates records without any framing."""

    def encode(self, records: Sequence) -> bytes:
        buffer = io.BytesIO()
        _write_records(records, buffer)
        return buffer.getvalue()


class GzipEncoder(ArtifactEncoder):
    """
    Concatenates records into one gzip stream.

    The result is a single self-contained gzip object: decompressing it
    yields r1 + r2 + ... + rn.
    """

    suffix = GZIP_SUFFIX

    def __init__(self, compresslevel: int = 9):
        """
        Args:
            compresslevel: zlib compression level (1-9)
        """
        if not 1 <= compresslevel <= 9:
            raise ValueError("compresslevel must be between 1 and 9")
        self._compresslevel = compresslevel

    def encode(self, records: Sequence) -> bytes:
        buffer = io.BytesIO()
        # GzipFile only writes its trailer on close, so read the buffer afterwards
        with gzip.GzipFile(
            fileobj=buffer, mode="wb", compresslevel=self._compresslevel, mtime=0
        ) as gz:
            _write_records(records, gz)
        return buffer.getvalue()


def get_encoder(name: str) -> ArtifactEncoder:
    """
    Look up an encoder by its configuration name.

    Args:
        name: "identity" or "gzip"

    Raises:
        ValueError: If the name is unknown
    """
    match name:
        case "identity":
            return IdentityEncoder()
        case "gzip":
            return GzipEncoder()
        case _:
            raise ValueError(f"Unknown encoding: '{name}'. Valid options are: identity, gzip")
