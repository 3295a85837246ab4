# ==============================================================================
# Base Abstract Classes
# ==============================================================================
"""
Abstract base classes defining the contracts of the emission pipeline's
collaborators. Concrete adapters live in recordsink.infrastructure.
"""

from recordsink.base.sinks import FailureSink, ObjectSink, WarehouseLoader

__all__ = [
    "FailureSink",
    "ObjectSink",
    "WarehouseLoader",
]
