"""
Common utilities and infrastructure for the projection analysis core.

This package provides foundational components used across all modules:
- Numerical constants with provenance
- Unit registry for projection parameters
- Shared value types (oblique pole)
- Logging and audit trail infrastructure
"""

from common.constants import NumericalConstants
from common.units import ureg, Q_, magnitude_in, to_radians
from common.types import Pole, LatLon, PlanePoint
from common.logging_config import get_logger, AuditLogger

__all__ = [
    "NumericalConstants",
    "ureg",
    "Q_",
    "magnitude_in",
    "to_radians",
    "Pole",
    "LatLon",
    "PlanePoint",
    "get_logger",
    "AuditLogger",
]
