"""
Infrastructure adapters for the emission pipeline.

- S3ObjectSink: artifact storage in S3 (boto3)
- RedshiftLoader / LoadLedger: COPY into Redshift with a load ledger (psycopg2)
- LoggingFailureSink / NdjsonFailureSink: final disposition of failed records
"""

from recordsink.infrastructure.failure import FailedBatch, LoggingFailureSink, NdjsonFailureSink
from recordsink.infrastructure.object_store.s3 import S3ObjectSink, create_s3_client
from recordsink.infrastructure.warehouse.ledger import LoadLedger
from recordsink.infrastructure.warehouse.redshift import RedshiftLoader, build_credentials

__all__ = [
    "FailedBatch",
    "LoadLedger",
    "LoggingFailureSink",
    "NdjsonFailureSink",
    "RedshiftLoader",
    "S3ObjectSink",
    "build_credentials",
    "create_s3_client",
]
