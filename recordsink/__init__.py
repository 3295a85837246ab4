"""
recordsink: buffered emission of stream records to S3 and Redshift.

A batch of opaque byte records is encoded into one artifact, named, uploaded
to S3 and optionally COPY-loaded into Redshift, with at-least-once delivery
and ledger-backed idempotent retries.
"""

from recordsink.core import Batch, DeliveryResult, EmissionStage
from recordsink.emitters import EmissionCoordinator
from recordsink.pipeline import deliver, drain

__version__ = "0.1.0"

__all__ = [
    "Batch",
    "DeliveryResult",
    "EmissionCoordinator",
    "EmissionStage",
    "deliver",
    "drain",
]
