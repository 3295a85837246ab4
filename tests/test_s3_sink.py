# ==============================================================================
# Tests for S3ObjectSink
# ==============================================================================
"""
Tests for the S3 object sink against an in-memory client.

Tests cover:
- Overwrite-safety of repeated puts under one key
- Mapping of S3 errors to UploadError
- Bounded retries on transport errors
- URIs and shutdown
"""

import logging
from unittest.mock import MagicMock

import pytest
from botocore.exceptions import ClientError, EndpointConnectionError

from recordsink.core.errors import UploadError
from recordsink.infrastructure.object_store.s3 import S3ObjectSink

BUCKET = "test-bucket"


def _client_error(code: str = "AccessDenied") -> ClientError:
    return ClientError({"Error": {"Code": code, "Message": "denied"}}, "PutObject")


# ==============================================================================
# put
# ==============================================================================


class TestPut:
    """Tests for uploading artifacts."""

    def test_stores_payload_under_name(self, object_sink, s3_client):
        object_sink.put("logs/100-102", b"abc")
        assert s3_client.get("logs/100-102") == b"abc"

    def test_passes_content_length(self, object_sink, s3_client):
        object_sink.put("100-102", b"abcde")
        assert s3_client.calls[0] == {"Bucket": BUCKET, "Key": "100-102", "ContentLength": 5}

    def test_same_content_twice_is_safe(self, object_sink, s3_client):
        """Re-uploading identical bytes under one name leaves one identical object."""
        object_sink.put("100-102", b"abc")
        object_sink.put("100-102", b"abc")
        assert s3_client.get("100-102") == b"abc"
        assert len(s3_client.objects) == 1

    def test_second_write_replaces_first(self, object_sink, s3_client):
        """A later upload overwrites a partial object rather than appending."""
        object_sink.put("100-102", b"ab")
        object_sink.put("100-102", b"abc")
        assert s3_client.get("100-102") == b"abc"


# ==============================================================================
# Errors and retries
# ==============================================================================


class TestPutErrors:
    """Tests for upload failures."""

    def test_client_error_becomes_upload_error(self, object_sink, s3_client):
        s3_client.failures.append(_client_error("AccessDenied"))
        with pytest.raises(UploadError) as exc_info:
            object_sink.put("100-102", b"abc")
        assert exc_info.value.uri == f"s3://{BUCKET}/100-102"
        assert "AccessDenied" in str(exc_info.value)
        assert s3_client.objects == {}

    def test_client_error_not_retried(self, object_sink, s3_client):
        s3_client.failures.append(_client_error())
        with pytest.raises(UploadError):
            object_sink.put("100-102", b"abc")
        assert len(s3_client.calls) == 1

    def test_transport_error_retried(self, object_sink, s3_client):
        s3_client.failures.append(EndpointConnectionError(endpoint_url="https://s3.example"))
        object_sink.put("100-102", b"abc")
        assert len(s3_client.calls) == 2
        assert s3_client.get("100-102") == b"abc"

    def test_transport_error_exhausts_attempts(self, object_sink, s3_client):
        s3_client.failures.extend(
            EndpointConnectionError(endpoint_url="https://s3.example") for _ in range(3)
        )
        with pytest.raises(UploadError):
            object_sink.put("100-102", b"abc")
        assert len(s3_client.calls) == 3

    def test_single_attempt(self, s3_client):
        sink = S3ObjectSink(BUCKET, client=s3_client, upload_attempts=1, retry_wait_seconds=0)
        s3_client.failures.append(EndpointConnectionError(endpoint_url="https://s3.example"))
        with pytest.raises(UploadError):
            sink.put("100-102", b"abc")
        assert len(s3_client.calls) == 1


# ==============================================================================
# uri / fail / shutdown
# ==============================================================================


class TestSinkHelpers:
    """Tests for uri(), fail() and shutdown()."""

    def test_uri(self, object_sink):
        assert object_sink.uri("logs/1-2.gz") == f"s3://{BUCKET}/logs/1-2.gz"
        assert object_sink.bucket == BUCKET

    def test_fail_logs_each_record(self, object_sink, caplog):
        with caplog.at_level(logging.ERROR):
            object_sink.fail([b"a", b"b"])
        assert caplog.text.count("Record failed") == 2

    def test_shutdown_closes_client(self, object_sink, s3_client):
        object_sink.shutdown()
        assert s3_client.closed is True

    def test_shutdown_tolerates_close_error(self, caplog):
        client = MagicMock()
        client.close.side_effect = RuntimeError("already closed")
        sink = S3ObjectSink(BUCKET, client=client)
        with caplog.at_level(logging.WARNING):
            sink.shutdown()
        assert "Error closing S3 client" in caplog.text
