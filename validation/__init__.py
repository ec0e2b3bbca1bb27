"""
Validation Framework for the Projection Analysis Core.

This module provides consistency checks for configured projections and
cross-checks against PROJ.
"""

from validation.consistency import (
    ConsistencyError,
    ProjectionConsistencyChecker,
    ValidationResult,
)

from validation.reference import (
    proj_definition,
    reference_project,
    reference_projection,
)

__all__ = [
    "ConsistencyError",
    "ProjectionConsistencyChecker",
    "ValidationResult",
    "proj_definition",
    "reference_project",
    "reference_projection",
]
