# ==============================================================================
# Emit Command
# ==============================================================================
"""
Emit a local file of newline-delimited records through the pipeline.

Each line (including its trailing newline) is one record. Lines receive
consecutive sequence numbers starting at --first-sequence, so re-running the
same file with the same start produces the same artifact names and the
ledger skips batches that were already loaded.
"""

from collections.abc import Iterator
from pathlib import Path
from typing import Annotated

import typer

from recordsink.cli.shared import C, I, fail_on_configuration_error
from recordsink.core.errors import ConfigurationError
from recordsink.factory import build_buffer, build_coordinator, build_failure_sink
from recordsink.pipeline import drain
from recordsink.utils.config import get_settings


def read_records(path: Path, first_sequence: int) -> Iterator[tuple[bytes, int]]:
    """Yield (line, sequence) pairs from a file, skipping blank lines."""
    sequence = first_sequence
    with path.open("rb") as f:
        for line in f:
            if not line.strip():
                continue
            if not line.endswith(b"\n"):
                line += b"\n"
            yield line, sequence
            sequence += 1


def emit_file(
    file: Annotated[
        Path,
        typer.Argument(exists=True, dir_okay=False, readable=True, help="Newline-delimited records"),
    ],
    first_sequence: Annotated[
        int, typer.Option("--first-sequence", "-s", help="Sequence number of the first line")
    ] = 0,
) -> None:
    """Buffer records from FILE and deliver them to S3 (and Redshift if enabled).

    Examples:
        recordsink emit events.psv
        recordsink emit events.psv --first-sequence 1000
    """
    settings = get_settings()
    try:
        coordinator = build_coordinator(settings)
    except ConfigurationError as e:
        fail_on_configuration_error(e)

    try:
        summary = drain(
            read_records(file, first_sequence),
            coordinator,
            build_buffer(settings),
            failure_sink=build_failure_sink(settings),
            max_attempts=settings.emitter.max_attempts,
            wait_seconds=settings.emitter.retry_wait_seconds,
        )
    finally:
        coordinator.shutdown()

    print()
    print(
        f"  {C.BOLD}Records:{C.RESET}    {summary.records:,} "
        f"({summary.delivered_batches} delivered, {summary.failed_batches} failed batches)"
    )
    print(f"  {C.BOLD}Checkpoint:{C.RESET} {summary.checkpoint}")
    print()

    if summary.failed_batches:
        print(f"{C.BRIGHT_RED}{I.CROSS} Some batches were not delivered{C.RESET}")
        raise typer.Exit(1)
    print(f"{C.BRIGHT_GREEN}{I.CHECK} All batches delivered{C.RESET}")
