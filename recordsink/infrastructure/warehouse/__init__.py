"""Warehouse adapters."""

from recordsink.infrastructure.warehouse.ledger import LoadLedger
from recordsink.infrastructure.warehouse.redshift import RedshiftLoader, build_credentials

__all__ = ["LoadLedger", "RedshiftLoader", "build_credentials"]
