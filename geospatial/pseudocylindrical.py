"""
Pseudocylindrical Projections.

Parallels are straight horizontal lines; meridians curve towards the
poles. Both families here are equal-area.

References
----------
- Snyder, J.P. (1987). Map Projections - A Working Manual, §§30-31.
"""

import numpy as np

from common.constants import NumericalConstants
from geospatial.projections import (
    NAN_PAIR,
    Category,
    ProjectionDescriptor,
    ProjectionFamily,
    Property,
    TopologyFlag,
    fixed_extent,
    register_projection,
)

MOLLWEIDE_ITERATIONS = int(NumericalConstants.MOLLWEIDE_ITERATIONS.value)
SQRT2 = np.sqrt(2)


# =============================================================================
# Sinusoidal
# =============================================================================

def _project_sinusoidal(state, lat, lon):
    return lon * np.cos(lat), lat


def _inverse_sinusoidal(state, x, y):
    if abs(y) > np.pi/2:
        return NAN_PAIR
    cos_lat = np.cos(y)
    if cos_lat == 0:
        return (y, 0.0) if x == 0 else NAN_PAIR
    return y, x / cos_lat


SINUSOIDAL = register_projection(ProjectionFamily(
    descriptor=ProjectionDescriptor(
        key="sinusoidal",
        name="Sinusoidal",
        description="An equal-area map shaped like a sinusoid",
        width=2 * np.pi,
        height=np.pi,
        flags=TopologyFlag.WRAPS_ANTIMERIDIAN,
        category=Category.PSEUDOCYLINDRICAL,
        property=Property.EQUAL_AREA,
        proj_definition="+proj=sinu +R=1",
    ),
    configure=fixed_extent(2 * np.pi, np.pi),
    project=_project_sinusoidal,
    inverse=_inverse_sinusoidal,
))


# =============================================================================
# Mollweide
# =============================================================================

def mollweide_auxiliary_angle(lat: float) -> float:
    """Solve 2θ + sin 2θ = π sin φ for θ.

    Newton iteration on θ' = 2θ. Convergence is linear near the poles,
    where the root is double, hence the generous iteration cap.
    """
    if abs(lat) >= np.pi/2:
        return np.copysign(np.pi/2, lat)
    target = np.pi * np.sin(lat)
    theta2 = lat
    for _ in range(MOLLWEIDE_ITERATIONS):
        delta = (theta2 + np.sin(theta2) - target) / (1 + np.cos(theta2))
        theta2 -= delta
        if abs(delta) < 1e-15:
            break
    return theta2 / 2


def _project_mollweide(state, lat, lon):
    theta = mollweide_auxiliary_angle(lat)
    return 2 * SQRT2 / np.pi * lon * np.cos(theta), SQRT2 * np.sin(theta)


def _inverse_mollweide(state, x, y):
    sin_theta = y / SQRT2
    if abs(sin_theta) > 1:
        return NAN_PAIR
    theta = np.arcsin(sin_theta)
    lat = np.arcsin(np.clip((2 * theta + np.sin(2 * theta)) / np.pi, -1.0, 1.0))
    cos_theta = np.cos(theta)
    if cos_theta == 0:
        return (lat, 0.0) if x == 0 else NAN_PAIR
    return lat, np.pi * x / (2 * SQRT2 * cos_theta)


MOLLWEIDE = register_projection(ProjectionFamily(
    descriptor=ProjectionDescriptor(
        key="mollweide",
        name="Mollweide",
        description="An equal-area map shaped like an ellipse",
        width=4 * SQRT2,
        height=2 * SQRT2,
        flags=TopologyFlag.WRAPS_ANTIMERIDIAN,
        category=Category.PSEUDOCYLINDRICAL,
        property=Property.EQUAL_AREA,
        proj_definition="+proj=moll +R=1",
    ),
    configure=fixed_extent(4 * SQRT2, 2 * SQRT2),
    project=_project_mollweide,
    inverse=_inverse_mollweide,
))
