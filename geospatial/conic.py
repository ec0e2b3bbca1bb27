"""
Conic Projections.

Lambert conformal conic with one standard parallel, apex at the north
pole. Parallels are concentric arcs of radius

    ρ(φ) = F tanⁿ(π/4 - φ/2),   n = sin φ₁,
    F = cos φ₁ tanⁿ(π/4 + φ₁/2) / n

and the meridian at λ makes the angle nλ with the central meridian, so
the globe fills a sector of opening 2πn; the rest of the plane lies
beyond the antimeridian.

References
----------
- Snyder, J.P. (1987). Map Projections - A Working Manual, §15.
"""

from typing import Tuple

import numpy as np

from geospatial.projections import (
    NAN_PAIR,
    Category,
    ParameterSpec,
    ProjectionDescriptor,
    ProjectionFamily,
    ProjectionState,
    Property,
    TopologyFlag,
    register_projection,
)

CONIC_PARALLEL = ParameterSpec(
    name="standard_parallel",
    minimum=1.0,
    maximum=89.0,
    default=30.0,
    unit="degree",
    description="Latitude of true scale, where the cone touches the globe",
)

# Parallels further south than this fall outside the default window
WINDOW_LATITUDE = -np.pi/6


def _rho(lat, n, F):
    return F * np.power(np.tan(np.pi/4 - lat/2), n)


def _configure_lambert_conic(values: Tuple[float, ...]) -> ProjectionState:
    (parallel,) = values
    n = np.sin(parallel)
    F = np.cos(parallel) * np.power(np.tan(np.pi/4 + parallel/2), n) / n
    extent = 2 * _rho(WINDOW_LATITUDE, n, F)
    return ProjectionState(
        width=extent,
        height=extent,
        constants={"n": n, "F": F},
    )


def _project_lambert_conic(state, lat, lon):
    # The south pole is at infinity
    if lat <= -np.pi/2:
        return NAN_PAIR
    n = state.constants["n"]
    rho = _rho(lat, n, state.constants["F"])
    return rho * np.sin(n * lon), -rho * np.cos(n * lon)


def _inverse_lambert_conic(state, x, y):
    n = state.constants["n"]
    rho = np.hypot(x, y)
    lon = np.arctan2(x, -y) / n
    if rho == 0:
        return np.pi/2, lon
    lat = 2 * np.arctan(np.power(state.constants["F"] / rho, 1 / n)) - np.pi/2
    return lat, lon


_DEFAULT_STATE = _configure_lambert_conic((np.radians(CONIC_PARALLEL.default),))

LAMBERT_CONFORMAL_CONIC = register_projection(ProjectionFamily(
    descriptor=ProjectionDescriptor(
        key="lambert_conformal_conic",
        name="Lambert Conic",
        description="A conformal conic map",
        width=_DEFAULT_STATE.width,
        height=_DEFAULT_STATE.height,
        flags=(TopologyFlag.WRAPS_ANTIMERIDIAN | TopologyFlag.POLE_SINGULARITY
               | TopologyFlag.UNBOUNDED),
        category=Category.CONIC,
        property=Property.CONFORMAL,
        parameters=(CONIC_PARALLEL,),
        proj_definition="+proj=lcc +lat_1={standard_parallel} +lat_0=90 +R=1",
    ),
    configure=_configure_lambert_conic,
    project=_project_lambert_conic,
    inverse=_inverse_lambert_conic,
))
