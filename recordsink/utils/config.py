# ==============================================================================
# Application Configuration
# ==============================================================================
"""
Configuration management using pydantic-settings.

All configuration is loaded from environment variables, with support for
.env files via python-dotenv. Settings are immutable for the lifetime of a
sink instance; validate_settings() turns missing or inconsistent values into
a ConfigurationError at startup rather than a per-batch failure.
"""

import re
from functools import lru_cache
from typing import Literal, Optional

from dotenv import load_dotenv
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from recordsink.core.errors import ConfigurationError

# Load .env file before any settings are instantiated
load_dotenv()

# [schema.]table, unquoted identifiers only
_TABLE_PATTERN = re.compile(r"^[A-Za-z_][A-Za-z0-9_$]*(\.[A-Za-z_][A-Za-z0-9_$]*)?$")


class AwsSettings(BaseSettings):
    """AWS credentials shared by the S3 client and the Redshift COPY command."""

    model_config = SettingsConfigDict(env_prefix="AWS_")

    access_key_id: Optional[str] = Field(default=None, description="AWS access key ID")
    secret_access_key: Optional[str] = Field(default=None, description="AWS secret access key")
    session_token: Optional[str] = Field(default=None, description="AWS session token")
    region: Optional[str] = Field(default=None, description="AWS region")

    @property
    def has_keys(self) -> bool:
        """Check if static access keys are configured."""
        return bool(self.access_key_id and self.secret_access_key)


class S3Settings(BaseSettings):
    """Object store settings."""

    model_config = SettingsConfigDict(env_prefix="S3_")

    bucket: Optional[str] = Field(default=None, description="Destination bucket")
    endpoint: Optional[str] = Field(
        default=None, description="Custom endpoint URL (e.g. for S3-compatible stores)"
    )
    prefix: str = Field(default="", description="Key prefix for every artifact, e.g. logs/raw/")


class RedshiftSettings(BaseSettings):
    """Redshift connection and load settings."""

    model_config = SettingsConfigDict(env_prefix="REDSHIFT_")

    host: Optional[str] = Field(default=None, description="Redshift cluster endpoint")
    port: int = Field(default=5439, description="Redshift port")
    database: str = Field(default="dev", description="Database name")
    user: Optional[str] = Field(default=None, description="Redshift username")
    password: Optional[str] = Field(default=None, description="Redshift password")
    sslmode: str = Field(default="require", description="SSL mode")
    connect_timeout: int = Field(default=10, description="Connection timeout in seconds")

    data_table: Optional[str] = Field(default=None, description="Target table for COPY")
    data_delimiter: str = Field(default="|", description="Field delimiter for COPY")
    ledger_table: str = Field(
        default="recordsink_load_ledger", description="Table recording loaded artifacts"
    )
    iam_role: Optional[str] = Field(
        default=None, description="IAM role ARN for COPY (used instead of access keys)"
    )

    @property
    def connection_string(self) -> str:
        """Build Redshift (PostgreSQL protocol) connection string."""
        return (
            f"postgresql://{self.user}:{self.password}@"
            f"{self.host}:{self.port}/{self.database}"
            f"?sslmode={self.sslmode}&connect_timeout={self.connect_timeout}"
        )


class EmitterSettings(BaseSettings):
    """Emission pipeline settings."""

    model_config = SettingsConfigDict(env_prefix="EMITTER_")

    encoding: Literal["identity", "gzip"] = Field(
        default="identity", description="Artifact encoding (identity, gzip)"
    )
    filename_strategy: Literal["sequence", "timestamp"] = Field(
        default="sequence", description="Artifact naming (sequence, timestamp)"
    )
    load_into_warehouse: bool = Field(
        default=False, description="COPY each uploaded artifact into Redshift"
    )
    require_row_per_record: bool = Field(
        default=False,
        description="Require the warehouse to report at least one row per record",
    )
    upload_attempts: int = Field(
        default=3, description="Attempts per artifact upload on transport errors"
    )
    max_attempts: int = Field(
        default=3, description="Emission attempts per batch before records are failed"
    )
    retry_wait_seconds: float = Field(
        default=1.0, description="Initial wait between emission attempts"
    )


class BufferSettings(BaseSettings):
    """Record buffer flush thresholds."""

    model_config = SettingsConfigDict(env_prefix="BUFFER_")

    record_count_limit: int = Field(default=1000, description="Flush after N records")
    byte_size_limit: int = Field(default=1024 * 1024, description="Flush after N bytes")
    millis_between_flushes: int = Field(
        default=60_000, description="Flush after N milliseconds"
    )


class Settings(BaseSettings):
    """Main application settings."""

    model_config = SettingsConfigDict(
        extra="ignore",
    )

    # Nested settings
    aws: AwsSettings = Field(default_factory=AwsSettings)
    s3: S3Settings = Field(default_factory=S3Settings)
    redshift: RedshiftSettings = Field(default_factory=RedshiftSettings)
    emitter: EmitterSettings = Field(default_factory=EmitterSettings)
    buffer: BufferSettings = Field(default_factory=BufferSettings)

    # General settings
    log_level: str = Field(default="INFO", description="Logging level")
    failure_file: Optional[str] = Field(
        default=None, description="NDJSON file for permanently failed records"
    )


def validate_settings(settings: Settings) -> None:
    """
    Check that settings describe a usable sink.

    Args:
        settings: Settings to check

    Raises:
        ConfigurationError: Describing every problem found
    """
    problems = []

    if not settings.s3.bucket:
        problems.append("S3_BUCKET is required")
    if settings.emitter.upload_attempts < 1:
        problems.append("EMITTER_UPLOAD_ATTEMPTS must be at least 1")
    if settings.emitter.max_attempts < 1:
        problems.append("EMITTER_MAX_ATTEMPTS must be at least 1")

    if settings.emitter.load_into_warehouse:
        redshift = settings.redshift
        for name in ("host", "user", "password", "data_table"):
            if not getattr(redshift, name):
                problems.append(f"REDSHIFT_{name.upper()} is required when loading is enabled")
        if len(redshift.data_delimiter) != 1:
            problems.append("REDSHIFT_DATA_DELIMITER must be a single character")
        elif redshift.data_delimiter in ("'", "\\"):
            problems.append("REDSHIFT_DATA_DELIMITER cannot be a quote or backslash")
        for name in ("data_table", "ledger_table"):
            value = getattr(redshift, name)
            if value and not _TABLE_PATTERN.match(value):
                problems.append(f"REDSHIFT_{name.upper()} is not a valid table name: {value!r}")
        if not redshift.iam_role and not settings.aws.has_keys:
            problems.append(
                "COPY needs credentials: set REDSHIFT_IAM_ROLE or "
                "AWS_ACCESS_KEY_ID and AWS_SECRET_ACCESS_KEY"
            )

    if problems:
        raise ConfigurationError("Invalid configuration: " + "; ".join(problems))


@lru_cache
def get_settings() -> Settings:
    """
    Get cached application settings.

    Settings are loaded once and cached for subsequent calls.
    """
    return Settings()
