# ==============================================================================
# Tests for CLI Commands
# ==============================================================================
"""
Tests for the recordsink CLI.

Tests cover:
- Help output of the real command tree from recordsink.app
- `config show` JSON and human output
- `emit` against an in-memory S3 client
- Exit codes for configuration errors and undelivered batches

Settings and the coordinator are patched so no AWS account is needed.
CLI output is captured via typer.testing.CliRunner.
"""

import json
from unittest.mock import patch

import typer
from botocore.exceptions import ClientError
from typer.testing import CliRunner

from recordsink.app import app
from recordsink.cli.config import config_show
from recordsink.cli.emit import emit_file, read_records
from recordsink.core.errors import ConfigurationError
from recordsink.emitters.coordinator import EmissionCoordinator
from recordsink.utils.config import EmitterSettings, S3Settings, Settings

runner = CliRunner()


def _make_app():
    """Create a minimal Typer app with the commands under test."""
    test_app = typer.Typer()
    test_app.command("show")(config_show)
    test_app.command("emit")(emit_file)
    return test_app


def _settings(**overrides) -> Settings:
    values = {
        "s3": S3Settings(bucket="test-bucket"),
        "emitter": EmitterSettings(max_attempts=2, retry_wait_seconds=0),
    }
    values.update(overrides)
    return Settings(**values)


# ==============================================================================
# Help
# ==============================================================================


class TestHelp:
    """Tests that the full command tree is wired up."""

    def test_root_help(self):
        result = runner.invoke(app, ["--help"])
        assert result.exit_code == 0
        assert "Deliver buffered stream records to S3 and Redshift" in result.output
        for cmd in ("config", "ledger", "emit"):
            assert cmd in result.output, f"Missing command: {cmd}"

    def test_config_help(self):
        result = runner.invoke(app, ["config", "--help"])
        assert result.exit_code == 0
        assert "show" in result.output

    def test_ledger_help(self):
        result = runner.invoke(app, ["ledger", "--help"])
        assert result.exit_code == 0
        assert "init" in result.output
        assert "list" in result.output

    def test_emit_help(self):
        result = runner.invoke(app, ["emit", "--help"])
        assert result.exit_code == 0
        assert "--first-sequence" in result.output


# ==============================================================================
# config show
# ==============================================================================


class TestConfigShow:
    """Tests for `config show`."""

    def test_json_valid(self):
        with patch("recordsink.cli.config.get_settings", return_value=_settings()):
            result = runner.invoke(_make_app(), ["show", "--json"])
        assert result.exit_code == 0
        data = json.loads(result.output)
        assert data["s3"]["bucket"] == "test-bucket"
        assert data["valid"] is True
        assert data["problem"] is None

    def test_json_reports_problem(self):
        settings = _settings(s3=S3Settings(bucket=None))
        with patch("recordsink.cli.config.get_settings", return_value=settings):
            result = runner.invoke(_make_app(), ["show", "--json"])
        data = json.loads(result.output)
        assert data["valid"] is False
        assert "S3_BUCKET" in data["problem"]

    def test_human_output(self):
        with patch("recordsink.cli.config.get_settings", return_value=_settings()):
            result = runner.invoke(_make_app(), ["show"])
        assert result.exit_code == 0
        assert "test-bucket" in result.output
        assert "Configuration is valid" in result.output


# ==============================================================================
# emit
# ==============================================================================


class TestReadRecords:
    """Tests for the line reader used by `emit`."""

    def test_numbers_lines_and_skips_blanks(self, tmp_path):
        path = tmp_path / "records.psv"
        path.write_bytes(b"a|1\n\nb|2\nc|3")
        assert list(read_records(path, 100)) == [(b"a|1\n", 100), (b"b|2\n", 101), (b"c|3\n", 102)]


class TestEmit:
    """Tests for `emit`."""

    def test_emits_file(self, tmp_path, object_sink, s3_client):
        path = tmp_path / "records.psv"
        path.write_bytes(b"a\nb\nc\n")
        settings = _settings()
        with (
            patch("recordsink.cli.emit.get_settings", return_value=settings),
            patch(
                "recordsink.cli.emit.build_coordinator",
                return_value=EmissionCoordinator(object_sink),
            ),
        ):
            result = runner.invoke(_make_app(), ["emit", str(path), "--first-sequence", "100"])
        assert result.exit_code == 0, result.output
        assert "All batches delivered" in result.output
        assert s3_client.get("100-102") == b"a\nb\nc\n"
        assert s3_client.closed is True

    def test_undelivered_batch_exits_1(self, tmp_path, object_sink, s3_client):
        path = tmp_path / "records.psv"
        path.write_bytes(b"a\n")
        s3_client.failures.extend(
            ClientError({"Error": {"Code": "AccessDenied"}}, "PutObject") for _ in range(2)
        )
        with (
            patch("recordsink.cli.emit.get_settings", return_value=_settings()),
            patch(
                "recordsink.cli.emit.build_coordinator",
                return_value=EmissionCoordinator(object_sink),
            ),
        ):
            result = runner.invoke(_make_app(), ["emit", str(path)])
        assert result.exit_code == 1
        assert "Some batches were not delivered" in result.output

    def test_configuration_error_exits_2(self, tmp_path):
        path = tmp_path / "records.psv"
        path.write_bytes(b"a\n")
        with (
            patch("recordsink.cli.emit.get_settings", return_value=_settings()),
            patch(
                "recordsink.cli.emit.build_coordinator",
                side_effect=ConfigurationError("Invalid configuration: S3_BUCKET is required"),
            ),
        ):
            result = runner.invoke(_make_app(), ["emit", str(path)])
        assert result.exit_code == 2
        assert "S3_BUCKET is required" in result.output
