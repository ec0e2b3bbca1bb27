"""
Cylindrical Projections.

Meridians are equally spaced vertical lines and parallels horizontal
lines; the families differ only in the spacing of the parallels.

Notes
-----
All formulas are for the unit sphere in the equatorial aspect
(Snyder 1987, §§7-10).
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
    fixed_extent,
    register_projection,
)

STANDARD_PARALLEL = ParameterSpec(
    name="standard_parallel",
    minimum=0.0,
    maximum=89.0,
    default=0.0,
    unit="degree",
    description="Latitude of true scale",
)


# =============================================================================
# Equirectangular
# =============================================================================

def _configure_equirectangular(values: Tuple[float, ...]) -> ProjectionState:
    (parallel,) = values
    cos_parallel = np.cos(parallel)
    return ProjectionState(
        width=2 * np.pi * cos_parallel,
        height=np.pi,
        constants={"cos_parallel": cos_parallel},
    )


def _project_equirectangular(state, lat, lon):
    return lon * state.constants["cos_parallel"], lat


def _inverse_equirectangular(state, x, y):
    if abs(y) > np.pi/2:
        return NAN_PAIR
    return y, x / state.constants["cos_parallel"]


EQUIRECTANGULAR = register_projection(ProjectionFamily(
    descriptor=ProjectionDescriptor(
        key="equirectangular",
        name="Equirectangular",
        description="An equidistant cylindrical map",
        width=2 * np.pi,
        height=np.pi,
        flags=TopologyFlag.WRAPS_ANTIMERIDIAN | TopologyFlag.POLE_SINGULARITY,
        category=Category.CYLINDRICAL,
        property=Property.EQUIDISTANT,
        parameters=(STANDARD_PARALLEL,),
        proj_definition="+proj=eqc +lat_ts={standard_parallel} +R=1",
    ),
    configure=_configure_equirectangular,
    project=_project_equirectangular,
    inverse=_inverse_equirectangular,
))


# =============================================================================
# Mercator
# =============================================================================

def _project_mercator(state, lat, lon):
    # The poles are at infinity
    if abs(lat) >= np.pi/2:
        return NAN_PAIR
    return lon, np.log(np.tan(np.pi/4 + lat/2))


def _inverse_mercator(state, x, y):
    return np.arctan(np.sinh(y)), x


MERCATOR = register_projection(ProjectionFamily(
    descriptor=ProjectionDescriptor(
        key="mercator",
        name="Mercator",
        description="A conformal cylindrical map",
        width=2 * np.pi,
        height=2 * np.pi,
        flags=(TopologyFlag.WRAPS_ANTIMERIDIAN | TopologyFlag.POLE_SINGULARITY
               | TopologyFlag.UNBOUNDED),
        category=Category.CYLINDRICAL,
        property=Property.CONFORMAL,
        proj_definition="+proj=merc +R=1",
    ),
    configure=fixed_extent(2 * np.pi, 2 * np.pi),
    project=_project_mercator,
    inverse=_inverse_mercator,
))


# =============================================================================
# Gall stereographic
# =============================================================================

GALL_X_SCALE = 1 / np.sqrt(2)
GALL_Y_SCALE = 1 + np.sqrt(2) / 2


def _project_gall(state, lat, lon):
    return lon * GALL_X_SCALE, GALL_Y_SCALE * np.tan(lat/2)


def _inverse_gall(state, x, y):
    lat = 2 * np.arctan(y / GALL_Y_SCALE)
    if abs(lat) > np.pi/2:
        return NAN_PAIR
    return lat, x / GALL_X_SCALE


GALL_STEREOGRAPHIC = register_projection(ProjectionFamily(
    descriptor=ProjectionDescriptor(
        key="gall_stereographic",
        name="Gall Stereographic",
        description="A compromise cylindrical map, similar to Mercator but bounded",
        width=2 * np.pi * GALL_X_SCALE,
        height=2 * GALL_Y_SCALE,
        flags=TopologyFlag.WRAPS_ANTIMERIDIAN | TopologyFlag.POLE_SINGULARITY,
        category=Category.CYLINDRICAL,
        property=Property.COMPROMISE,
        proj_definition="+proj=gall +R=1",
    ),
    configure=fixed_extent(2 * np.pi * GALL_X_SCALE, 2 * GALL_Y_SCALE),
    project=_project_gall,
    inverse=_inverse_gall,
))


# =============================================================================
# Cylindrical equal-area (Lambert, Behrmann, Gall-Peters, ...)
# =============================================================================

def _configure_equal_area(values: Tuple[float, ...]) -> ProjectionState:
    (parallel,) = values
    cos_parallel = np.cos(parallel)
    return ProjectionState(
        width=2 * np.pi * cos_parallel,
        height=2 / cos_parallel,
        constants={"cos_parallel": cos_parallel},
    )


def _project_equal_area(state, lat, lon):
    cos_parallel = state.constants["cos_parallel"]
    return lon * cos_parallel, np.sin(lat) / cos_parallel


def _inverse_equal_area(state, x, y):
    cos_parallel = state.constants["cos_parallel"]
    sin_lat = y * cos_parallel
    if abs(sin_lat) > 1:
        return NAN_PAIR
    return np.arcsin(sin_lat), x / cos_parallel


CYLINDRICAL_EQUAL_AREA = register_projection(ProjectionFamily(
    descriptor=ProjectionDescriptor(
        key="cylindrical_equal_area",
        name="Equal-Area Cylindrical",
        description="An equal-area cylindrical map",
        width=2 * np.pi,
        height=2.0,
        flags=TopologyFlag.WRAPS_ANTIMERIDIAN | TopologyFlag.POLE_SINGULARITY,
        category=Category.CYLINDRICAL,
        property=Property.EQUAL_AREA,
        parameters=(STANDARD_PARALLEL,),
        proj_definition="+proj=cea +lat_ts={standard_parallel} +R=1",
    ),
    configure=_configure_equal_area,
    project=_project_equal_area,
    inverse=_inverse_equal_area,
))
