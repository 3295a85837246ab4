"""Object store adapters."""

from recordsink.infrastructure.object_store.s3 import S3ObjectSink, create_s3_client

__all__ = ["S3ObjectSink", "create_s3_client"]
