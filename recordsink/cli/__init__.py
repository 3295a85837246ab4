# ==============================================================================
# CLI Commands Module
# ==============================================================================
"""
CLI commands for the record sink.

Commands are organized into separate modules for maintainability:
- shared.py: Colors, icons and error helpers
- config.py: Show configuration
- ledger.py: Create and inspect the load ledger
- emit.py: Emit a local file through the pipeline
"""

from recordsink.cli.shared import C, I, Colors, Icons

__all__ = ["C", "I", "Colors", "Icons"]
