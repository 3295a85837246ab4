"""
Emission orchestration: the coordinator and its instrumentation.
"""

from recordsink.emitters.coordinator import EmissionCoordinator
from recordsink.emitters.stats import EmissionStats

__all__ = ["EmissionCoordinator", "EmissionStats"]
