"""
Sampling Module for the Projection Analysis Core.

Builds the point sets every evaluation pass runs over:
- Plane rasters and inverse-projected regular grids
- Naive lat/lon grids for previews
- Globe-uniform grids for whole-sphere statistics
- Forward projection of grids, row-parallel on a thread pool
"""

from sampling.parallel import map_rows

from sampling.grids import (
    GridKind,
    PlaneGrid,
    SamplingGrid,
    globe_uniform_grid,
    latlon_grid,
    plane_grid,
    project_grid,
    regular_grid,
    sample_grid,
)

__all__ = [
    "map_rows",
    "GridKind",
    "PlaneGrid",
    "SamplingGrid",
    "globe_uniform_grid",
    "latlon_grid",
    "plane_grid",
    "project_grid",
    "regular_grid",
    "sample_grid",
]
