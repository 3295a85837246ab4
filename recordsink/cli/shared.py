# ==============================================================================
# Shared Utilities for CLI Commands
# ==============================================================================
"""
Shared utilities used across CLI command modules.

This module provides:
- ANSI color codes and status icons
- Error reporting helpers
"""

import typer

from recordsink.core.errors import ConfigurationError


class Colors:
    """ANSI color codes for terminal output."""

    RESET = "\033[0m"
    BOLD = "\033[1m"
    DIM = "\033[2m"

    # Colors
    RED = "\033[31m"
    GREEN = "\033[32m"
    YELLOW = "\033[33m"
    CYAN = "\033[36m"
    WHITE = "\033[37m"

    # Bright colors
    BRIGHT_RED = "\033[91m"
    BRIGHT_GREEN = "\033[92m"
    BRIGHT_YELLOW = "\033[93m"


class Icons:
    """Status icons using Unicode symbols."""

    CHECK = "✓"
    CROSS = "✗"
    WARN = "!"
    ARROW = "→"


# Module-level aliases for convenience
C, I = Colors, Icons


def fail_on_configuration_error(error: ConfigurationError) -> None:
    """Print a configuration error and exit with status 2."""
    print(f"{C.BRIGHT_RED}{I.CROSS} {error}{C.RESET}")
    raise typer.Exit(2)


def mask(secret: str | None) -> str:
    """Mask a secret for human-readable output."""
    if not secret:
        return "(not set)"
    return secret[:2] + "*" * max(len(secret) - 2, 4)
