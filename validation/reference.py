"""
Reference Implementations from PROJ.

Families whose descriptor carries a PROJ definition can be evaluated by
`pyproj` on the same unit sphere (``+R=1``), which gives an independent
check of the closed forms. Parameter placeholders in the definition are
filled with the configured values in their declared units.
"""

from typing import Tuple

import numpy as np
from numpy.typing import NDArray
from pyproj import Proj

from common.logging_config import get_logger
from geospatial.projections import ConfiguredProjection

logger = get_logger(__name__)


def proj_definition(projection: ConfiguredProjection) -> str:
    """PROJ string for a configured projection.

    Raises
    ------
    ValueError
        If the family has no PROJ counterpart or the projection is oblique.
    """
    template = projection.descriptor.proj_definition
    if template is None:
        raise ValueError(f"{projection.key} has no PROJ reference")
    if projection.aspect is not None:
        raise ValueError(f"{projection.key}: PROJ reference only covers the standard aspect")
    return template.format(**projection.parameter_dict)


def reference_projection(projection: ConfiguredProjection) -> Proj:
    """`pyproj.Proj` equivalent of a configured projection."""
    definition = proj_definition(projection)
    logger.debug(f"Reference for {projection.key}: {definition}")
    return Proj(definition)


def reference_project(
    projection: ConfiguredProjection,
    lats: NDArray[np.float64],
    lons: NDArray[np.float64]
) -> Tuple[NDArray[np.float64], NDArray[np.float64]]:
    """Project radians with PROJ; non-finite results become NaN."""
    proj = reference_projection(projection)
    x, y = proj(np.asarray(lons, dtype=np.float64), np.asarray(lats, dtype=np.float64),
                radians=True)
    x = np.asarray(x, dtype=np.float64)
    y = np.asarray(y, dtype=np.float64)
    undefined = ~(np.isfinite(x) & np.isfinite(y))
    x = np.where(undefined, np.nan, x)
    y = np.where(undefined, np.nan, y)
    return x, y
