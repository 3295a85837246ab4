# ==============================================================================
# Record Sink Exceptions
# ==============================================================================
"""
Exception taxonomy for the emission pipeline.

Per-batch errors (EncodingError, UploadError, LoadError) derive from
EmissionError and are caught at the coordinator boundary, where they are
converted into a NotDelivered result. ConfigurationError is raised while
building sinks and is fatal at startup.
"""


class RecordSinkError(Exception):
    """Base error for the record sink."""

    pass


class ConfigurationError(RecordSinkError):
    """Missing or invalid sink parameters."""

    pass


class EmissionError(RecordSinkError):
    """Base class for errors that fail a single emission attempt."""

    pass


class EncodingError(EmissionError):
    """A record could not be written into the artifact payload."""

    def __init__(self, record: object, message: str | None = None):
        self.record = record
        super().__init__(message or f"Cannot encode record: {_preview(record)}")


class UploadError(EmissionError):
    """The object store rejected or did not acknowledge an upload."""

    def __init__(self, uri: str, message: str):
        self.uri = uri
        super().__init__(f"Upload to {uri} failed: {message}")


class LoadError(EmissionError):
    """The warehouse bulk load or its verification failed."""

    def __init__(self, location: str, message: str):
        self.location = location
        super().__init__(f"Load of {location} failed: {message}")


def _preview(record: object, limit: int = 64) -> str:
    """Short printable form of a record for log and error messages."""
    text = repr(record)
    if len(text) > limit:
        return text[:limit] + "..."
    return text
