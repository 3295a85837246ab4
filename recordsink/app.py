# ==============================================================================
# Record Sink CLI
# ==============================================================================
"""
Command-line interface for the record sink.

Usage:
    recordsink --help
    recordsink config show
    recordsink ledger init
    recordsink ledger list
    recordsink emit records.psv --first-sequence 100
"""

import logging
import os

import typer

from recordsink.utils.config import get_settings

# Set consistent terminal width for help output formatting
if "COLUMNS" not in os.environ:
    os.environ["COLUMNS"] = "115"

app = typer.Typer(
    name="recordsink",
    help="Deliver buffered stream records to S3 and Redshift",
    no_args_is_help=True,
    rich_markup_mode="rich",
)


@app.callback()
def configure_logging() -> None:
    """Deliver buffered stream records to S3 and Redshift."""
    logging.basicConfig(
        level=get_settings().log_level.upper(),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    # Suppress noisy third-party loggers
    logging.getLogger("botocore").setLevel(logging.WARNING)
    logging.getLogger("urllib3").setLevel(logging.WARNING)


config_app = typer.Typer(
    help="Configuration management",
    no_args_is_help=True,
)
app.add_typer(config_app, name="config")

from recordsink.cli.config import config_show

config_app.command("show")(config_show)

ledger_app = typer.Typer(
    help="Load ledger operations",
    no_args_is_help=True,
)
app.add_typer(ledger_app, name="ledger")

from recordsink.cli.ledger import ledger_init, ledger_list

ledger_app.command("init")(ledger_init)
ledger_app.command("list")(ledger_list)

from recordsink.cli.emit import emit_file

app.command("emit")(emit_file)


# ==============================================================================
# Entry Point
# ==============================================================================


def main() -> None:
    """CLI entry point."""
    app()


if __name__ == "__main__":
    main()
