# ==============================================================================
# Ledger Commands
# ==============================================================================
"""
Load ledger commands for the recordsink CLI.

The ledger table records every artifact confirmed as loaded into Redshift.
"""

import json as _json
from typing import Annotated

import typer
from rich.console import Console
from rich.table import Table

from recordsink.cli.shared import C, I, fail_on_configuration_error
from recordsink.core.errors import ConfigurationError
from recordsink.infrastructure.warehouse.redshift import RedshiftLoader
from recordsink.utils.config import get_settings, validate_settings


def _get_loader() -> RedshiftLoader:
    settings = get_settings()
    try:
        validate_settings(settings)
        if not settings.emitter.load_into_warehouse:
            raise ConfigurationError(
                "Warehouse loading is disabled (set EMITTER_LOAD_INTO_WAREHOUSE=true)"
            )
    except ConfigurationError as e:
        fail_on_configuration_error(e)
    return RedshiftLoader.from_settings(settings)


# ==============================================================================
# Commands
# ==============================================================================


def ledger_init() -> None:
    """Create the load ledger table if it does not exist."""
    loader = _get_loader()
    loader.ensure_ledger()
    print(f"{C.BRIGHT_GREEN}{I.CHECK} Ledger table {loader.ledger.table} is ready{C.RESET}")


def ledger_list(
    limit: Annotated[int, typer.Option("--limit", "-n", help="Number of entries to show")] = 20,
    json_output: Annotated[bool, typer.Option("--json", "-j", help="Output as JSON")] = False,
) -> None:
    """Show the most recently loaded artifacts.

    Examples:
        recordsink ledger list
        recordsink ledger list -n 50 --json
    """
    loader = _get_loader()
    entries = loader.ledger_entries(limit)

    if json_output:
        print(_json.dumps([e.model_dump(mode="json") for e in entries], indent=2))
        return

    if not entries:
        print(f"\n  {C.BRIGHT_YELLOW}{I.WARN} No artifacts loaded yet{C.RESET}\n")
        return

    console = Console()
    table = Table(
        title=f"Load Ledger: {loader.ledger.table}",
        show_header=True,
        header_style="bold",
    )
    table.add_column("Artifact")
    table.add_column("Rows", justify="right")
    table.add_column("Loaded at")

    for entry in entries:
        table.add_row(
            entry.artifact_key,
            f"{entry.row_count:,}",
            entry.loaded_at.strftime("%Y-%m-%d %H:%M:%S"),
        )

    print()
    console.print(table)
    print()
