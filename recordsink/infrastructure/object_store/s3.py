# ==============================================================================
# S3 Object Sink
# ==============================================================================
"""
S3 implementation of the ObjectSink interface.

Each artifact is written with a single PutObject call. PutObject replaces
any existing object under the same key, so re-uploading a retried batch
overwrites a partial or stale object instead of appending to it.
"""

import logging

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from recordsink.base.sinks import ObjectSink
from recordsink.core.errors import UploadError
from recordsink.utils.config import Settings, get_settings
from recordsink.utils.retry import RETRY_ATTEMPTS_LIGHT, RETRY_WAIT_MIN, S3_RETRY_EXCEPTIONS, retry_light

logger = logging.getLogger(__name__)

# Connection timeouts for the S3 client (seconds)
CONNECT_TIMEOUT = 10
READ_TIMEOUT = 60


def create_s3_client(settings: Settings | None = None):
    """
    Create a boto3 S3 client from settings.

    Static keys are used when configured; otherwise boto3's default
    credential chain applies (environment, profile, instance role).

    Args:
        settings: Application settings. If None, uses get_settings().
    """
    settings = settings or get_settings()
    kwargs = {
        "config": Config(connect_timeout=CONNECT_TIMEOUT, read_timeout=READ_TIMEOUT),
    }
    if settings.aws.region:
        kwargs["region_name"] = settings.aws.region
    if settings.s3.endpoint:
        kwargs["endpoint_url"] = settings.s3.endpoint
    if settings.aws.has_keys:
        kwargs["aws_access_key_id"] = settings.aws.access_key_id
        kwargs["aws_secret_access_key"] = settings.aws.secret_access_key
        if settings.aws.session_token:
            kwargs["aws_session_token"] = settings.aws.session_token
    return boto3.client("s3", **kwargs)


class S3ObjectSink(ObjectSink):
    """
    Stores artifacts as objects in one S3 bucket.

    Transport errors (timeouts, dropped connections) are retried a few times
    for the whole artifact; any remaining failure surfaces as UploadError.
    """

    def __init__(
        self,
        bucket: str,
        client=None,
        upload_attempts: int = RETRY_ATTEMPTS_LIGHT,
        retry_wait_seconds: float = RETRY_WAIT_MIN,
    ):
        """
        Initialize the sink.

        Args:
            bucket: Destination bucket
            client: boto3 S3 client. If None, one is created from settings.
            upload_attempts: Attempts per artifact on transport errors
            retry_wait_seconds: Initial backoff between attempts
        """
        self._bucket = bucket
        self._client = client if client is not None else create_s3_client()
        self._put_object = retry_light(
            S3_RETRY_EXCEPTIONS, logger, attempts=upload_attempts, wait_min=retry_wait_seconds
        )(self._client.put_object)

    @classmethod
    def from_settings(cls, settings: Settings | None = None) -> "S3ObjectSink":
        """Build a sink for the configured bucket."""
        settings = settings or get_settings()
        return cls(
            settings.s3.bucket,
            client=create_s3_client(settings),
            upload_attempts=settings.emitter.upload_attempts,
        )

    @property
    def bucket(self) -> str:
        """Get the destination bucket name."""
        return self._bucket

    def uri(self, name: str) -> str:
        return f"s3://{self._bucket}/{name}"

    def put(self, name: str, payload: bytes) -> None:
        """
        Upload `payload` as s3://{bucket}/{name}.

        Raises:
            UploadError: If S3 rejects the request or cannot be reached
        """
        uri = self.uri(name)
        logger.debug("Starting upload of %s (%d bytes)", uri, len(payload))
        try:
            self._put_object(
                Bucket=self._bucket,
                Key=name,
                Body=payload,
                ContentLength=len(payload),
            )
        except ClientError as e:
            code = e.response.get("Error", {}).get("Code", "Unknown")
            raise UploadError(uri, f"{code}: {e}") from e
        except BotoCoreError as e:
            raise UploadError(uri, str(e)) from e

    def shutdown(self) -> None:
        """Close the underlying HTTP connection pool."""
        try:
            self._client.close()
            logger.info("S3ObjectSink client closed (bucket=%s)", self._bucket)
        except Exception as e:
            logger.warning("Error closing S3 client: %s", e)
