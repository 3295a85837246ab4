# ==============================================================================
# Config Commands
# ==============================================================================
"""
Configuration commands for the recordsink CLI.
"""

import json
from typing import Annotated

import typer

from recordsink.cli.shared import C, I, mask
from recordsink.core.errors import ConfigurationError
from recordsink.utils.config import get_settings, validate_settings


# ==============================================================================
# Commands
# ==============================================================================


def config_show(
    json_output: Annotated[
        bool, typer.Option("--json", "-j", help="Output configuration as JSON")
    ] = False,
) -> None:
    """Display current configuration (includes secrets in JSON mode)."""
    settings = get_settings()

    try:
        validate_settings(settings)
        problem = None
    except ConfigurationError as e:
        problem = str(e)

    if json_output:
        config = {
            "s3": {
                "bucket": settings.s3.bucket,
                "endpoint": settings.s3.endpoint,
                "prefix": settings.s3.prefix,
            },
            "aws": {
                "region": settings.aws.region,
                "access_key_id": settings.aws.access_key_id,
                "secret_access_key": settings.aws.secret_access_key,
            },
            "redshift": {
                "host": settings.redshift.host,
                "port": settings.redshift.port,
                "database": settings.redshift.database,
                "user": settings.redshift.user,
                "password": settings.redshift.password,
                "data_table": settings.redshift.data_table,
                "data_delimiter": settings.redshift.data_delimiter,
                "ledger_table": settings.redshift.ledger_table,
                "iam_role": settings.redshift.iam_role,
            },
            "emitter": settings.emitter.model_dump(),
            "buffer": settings.buffer.model_dump(),
            "failure_file": settings.failure_file,
            "valid": problem is None,
            "problem": problem,
        }
        print(json.dumps(config, indent=2))
        return

    # Human-readable output
    print()
    print(f"{C.BOLD}Configuration{C.RESET}")
    print()

    print(f"{C.CYAN}S3{C.RESET}")
    print(f"  Bucket:     {C.WHITE}{settings.s3.bucket or '(not set)'}{C.RESET}")
    print(f"  Prefix:     {C.WHITE}{settings.s3.prefix or '(none)'}{C.RESET}")
    print(f"  Endpoint:   {C.WHITE}{settings.s3.endpoint or '(default)'}{C.RESET}")
    print(f"  Access key: {C.WHITE}{mask(settings.aws.access_key_id)}{C.RESET}")
    print()

    print(f"{C.CYAN}Emitter{C.RESET}")
    print(f"  Encoding:   {C.WHITE}{settings.emitter.encoding}{C.RESET}")
    print(f"  Filenames:  {C.WHITE}{settings.emitter.filename_strategy}{C.RESET}")
    print(f"  Attempts:   {C.WHITE}{settings.emitter.max_attempts}{C.RESET}")
    warehouse = "enabled" if settings.emitter.load_into_warehouse else "disabled"
    print(f"  Warehouse:  {C.WHITE}{warehouse}{C.RESET}")
    print()

    if settings.emitter.load_into_warehouse:
        print(f"{C.CYAN}Redshift{C.RESET}")
        print(f"  Host:       {C.WHITE}{settings.redshift.host}{C.RESET}")
        print(f"  Database:   {C.WHITE}{settings.redshift.database}{C.RESET}")
        print(f"  User:       {C.WHITE}{settings.redshift.user}{C.RESET}")
        print(f"  Password:   {C.WHITE}{mask(settings.redshift.password)}{C.RESET}")
        print(f"  Table:      {C.WHITE}{settings.redshift.data_table}{C.RESET}")
        print(f"  Delimiter:  {C.WHITE}{settings.redshift.data_delimiter!r}{C.RESET}")
        print(f"  Ledger:     {C.WHITE}{settings.redshift.ledger_table}{C.RESET}")
        print()

    if problem:
        print(f"{C.BRIGHT_YELLOW}{I.WARN} {problem}{C.RESET}")
    else:
        print(f"{C.BRIGHT_GREEN}{I.CHECK} Configuration is valid{C.RESET}")
    print()
