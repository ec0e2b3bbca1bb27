"""
Azimuthal Projections (north-polar aspect).

Every azimuthal family places the north pole at the origin and maps the
parallel at latitude φ to a circle of radius ρ(φ):

    x = ρ sin λ,    y = -ρ cos λ

so the whole family is defined by ρ and its inverse. Other centres are
obtained through the oblique aspect.

References
----------
- Snyder, J.P. (1987). Map Projections - A Working Manual, §§20-25.
"""

from typing import Tuple

import numpy as np

from common.constants import NumericalConstants
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
from numerical_analysis import newton_raphson_1d

INVERSE_TOLERANCE = NumericalConstants.INVERSE_TOLERANCE.value


def _to_plane(rho: float, lon: float) -> Tuple[float, float]:
    return rho * np.sin(lon), -rho * np.cos(lon)


def _to_polar(x: float, y: float) -> Tuple[float, float]:
    """Radius and longitude of a plane point."""
    return np.hypot(x, y), np.arctan2(x, -y)


def _azimuthal_family(key, name, description, extent, flags, prop, rho, colatitude,
                      proj_definition=None, max_rho=np.inf):
    """Register an azimuthal family from its radius function and inverse.

    `rho` maps latitude to radius and returns NaN outside the domain;
    `colatitude` maps radius back to latitude.
    """
    def project(state, lat, lon):
        r = rho(lat)
        if not np.isfinite(r):
            return NAN_PAIR
        return _to_plane(r, lon)

    def inverse(state, x, y):
        r, lon = _to_polar(x, y)
        if r > max_rho:
            return NAN_PAIR
        return colatitude(r), lon

    return register_projection(ProjectionFamily(
        descriptor=ProjectionDescriptor(
            key=key,
            name=name,
            description=description,
            width=extent,
            height=extent,
            flags=flags,
            category=Category.AZIMUTHAL,
            property=prop,
            proj_definition=proj_definition,
        ),
        configure=fixed_extent(extent, extent),
        project=project,
        inverse=inverse,
    ))


AZIMUTHAL_EQUIDISTANT = _azimuthal_family(
    key="azimuthal_equidistant",
    name="Polar",
    description="An azimuthal equidistant map, as on the UN flag",
    extent=2 * np.pi,
    flags=TopologyFlag.POLE_SINGULARITY,
    prop=Property.EQUIDISTANT,
    rho=lambda lat: np.pi/2 - lat,
    colatitude=lambda r: np.pi/2 - r,
    proj_definition="+proj=aeqd +lat_0=90 +R=1",
    max_rho=np.pi,
)


def _stereographic_rho(lat):
    # The south pole is at infinity
    if lat <= -np.pi/2:
        return np.nan
    return 2 * np.tan(np.pi/4 - lat/2)


STEREOGRAPHIC = _azimuthal_family(
    key="stereographic",
    name="Stereographic",
    description="A conformal azimuthal map of infinite extent",
    extent=8.0,
    flags=TopologyFlag.POLE_SINGULARITY | TopologyFlag.UNBOUNDED,
    prop=Property.CONFORMAL,
    rho=_stereographic_rho,
    colatitude=lambda r: np.pi/2 - 2 * np.arctan(r / 2),
    proj_definition="+proj=stere +lat_0=90 +R=1",
)


AZIMUTHAL_EQUAL_AREA = _azimuthal_family(
    key="azimuthal_equal_area",
    name="Lambert Azimuthal",
    description="An equal-area azimuthal map",
    extent=4.0,
    flags=TopologyFlag.POLE_SINGULARITY,
    prop=Property.EQUAL_AREA,
    rho=lambda lat: 2 * np.sin(np.pi/4 - lat/2),
    colatitude=lambda r: np.pi/2 - 2 * np.arcsin(min(r / 2, 1.0)),
    proj_definition="+proj=laea +lat_0=90 +R=1",
    max_rho=2.0,
)


ORTHOGRAPHIC = _azimuthal_family(
    key="orthographic",
    name="Orthographic",
    description="A perspective map that mimics the view from space",
    extent=2.0,
    flags=TopologyFlag.HEMISPHERE_ONLY,
    prop=Property.PERSPECTIVE,
    rho=lambda lat: np.cos(lat) if lat >= 0 else np.nan,
    colatitude=lambda r: np.arccos(min(r, 1.0)),
    proj_definition="+proj=ortho +lat_0=90 +R=1",
    max_rho=1.0,
)


GNOMONIC = _azimuthal_family(
    key="gnomonic",
    name="Gnomonic",
    description="A perspective map on which great circles are straight lines",
    extent=6.0,
    flags=TopologyFlag.HEMISPHERE_ONLY | TopologyFlag.UNBOUNDED,
    prop=Property.PERSPECTIVE,
    rho=lambda lat: np.cos(lat) / np.sin(lat) if lat > 0 else np.nan,
    colatitude=lambda r: np.arctan2(1.0, r),
    proj_definition="+proj=gnom +lat_0=90 +R=1",
)


# =============================================================================
# Magnifier
# =============================================================================
#
# Radius is π f(p) with p = 1/2 + φ/π and
#     f(p) = 1 - (1 - a) p - a p^n,
# a polynomial that magnifies the centre. It has no algebraic inverse for
# general n, so the inverse runs Newton-Raphson from a coarse seed table.

MAGNIFIER_WEIGHT = ParameterSpec(
    name="weight",
    minimum=0.0,
    maximum=1.0,
    default=0.9,
    unit="dimensionless",
    description="Share of the high-order term in the radius polynomial",
)

MAGNIFIER_EXPONENT = ParameterSpec(
    name="exponent",
    minimum=1.0,
    maximum=12.0,
    default=7.0,
    unit="dimensionless",
    description="Order of the high-order term in the radius polynomial",
)


def _magnifier_radius(p, weight, exponent):
    return 1 - (1 - weight) * p - weight * np.power(p, exponent)


def _magnifier_slope(p, weight, exponent):
    return -(1 - weight) - weight * exponent * np.power(p, exponent - 1)


def _configure_magnifier(values: Tuple[float, ...]) -> ProjectionState:
    weight, exponent = values
    seed_count = int(NumericalConstants.MAGNIFIER_SEED_TABLE_SIZE.value)
    p = np.linspace(0.0, 1.0, seed_count)
    f = _magnifier_radius(p, weight, exponent)
    return ProjectionState(
        width=2 * np.pi,
        height=2 * np.pi,
        constants={"weight": weight, "exponent": exponent},
        # Reversed so the radius column is increasing for np.interp
        tables={"seed_radius": f[::-1].copy(), "seed_p": p[::-1].copy()},
    )


def _project_magnifier(state, lat, lon):
    p = 0.5 + lat / np.pi
    r = np.pi * _magnifier_radius(p, state.constants["weight"], state.constants["exponent"])
    return _to_plane(r, lon)


def _inverse_magnifier(state, x, y):
    r, lon = _to_polar(x, y)
    if r > np.pi:
        return NAN_PAIR

    weight = state.constants["weight"]
    exponent = state.constants["exponent"]
    target = r / np.pi
    p0 = float(np.interp(target, state.tables["seed_radius"], state.tables["seed_p"]))

    p = newton_raphson_1d(
        target,
        p0,
        lambda q: _magnifier_radius(q, weight, exponent),
        lambda q: _magnifier_slope(q, weight, exponent),
        INVERSE_TOLERANCE,
    )
    if p is None:
        return NAN_PAIR
    return np.pi * (p - 0.5), lon


MAGNIFIER = register_projection(ProjectionFamily(
    descriptor=ProjectionDescriptor(
        key="magnifier",
        name="Magnifier",
        description="A novelty azimuthal map that magnifies the centre profusely",
        width=2 * np.pi,
        height=2 * np.pi,
        flags=TopologyFlag.POLE_SINGULARITY,
        category=Category.AZIMUTHAL,
        property=Property.COMPROMISE,
        parameters=(MAGNIFIER_WEIGHT, MAGNIFIER_EXPONENT),
    ),
    configure=_configure_magnifier,
    project=_project_magnifier,
    inverse=_inverse_magnifier,
))
