"""
Geospatial Module for the Projection Analysis Core.

All sphere-to-plane mappings system-wide originate from this module.
Downstream modules (sampling, analysis, validation) only ever go through
`configure` and the resulting `ConfiguredProjection`.

This module provides:
- Oblique aspects by spherical rotation
- The projection registry, parameter validation and configured projections
- Cylindrical, azimuthal, conic, pseudocylindrical, lenticular,
  elliptic-integral and table-driven projection families
"""

from geospatial.rotation import (
    ASPECT_PRESETS,
    antipode,
    aspect_preset,
    deobliquify,
    normalize_longitude,
    obliquify,
    random_pole,
)

from geospatial.projections import (
    Category,
    ConfiguredProjection,
    InvalidParameterError,
    ParameterSpec,
    ProjectionDescriptor,
    ProjectionFamily,
    ProjectionState,
    Property,
    TopologyFlag,
    configure,
    get_projection,
    list_projections,
    register_projection,
)

# Importing the family modules registers them, in display order
from geospatial import cylindrical
from geospatial import azimuthal
from geospatial import conic
from geospatial import pseudocylindrical
from geospatial import lenticular
from geospatial import elliptic
from geospatial import hyperelliptical

__all__ = [
    # Rotation
    "ASPECT_PRESETS",
    "antipode",
    "aspect_preset",
    "deobliquify",
    "normalize_longitude",
    "obliquify",
    "random_pole",
    # Projections
    "Category",
    "ConfiguredProjection",
    "InvalidParameterError",
    "ParameterSpec",
    "ProjectionDescriptor",
    "ProjectionFamily",
    "ProjectionState",
    "Property",
    "TopologyFlag",
    "configure",
    "get_projection",
    "list_projections",
    "register_projection",
]
