"""
Tobler Hyperelliptical Projection.

Scientific Context
------------------
An equal-area pseudocylindrical family whose meridians are blends of
straight lines and superellipses. With row position y ∈ [0, 1] the
parallel length is proportional to

    w(y) = α + (1 - α) (1 - |y|^K)^(1/K)

and the equal-area condition fixes the latitude of every row through

    dZ/dy = w(y) / ∫₀¹ w,     Z = sin φ.

Implementation
--------------
`configure` integrates this once into a monotone table of ``N + 1``
values of sin φ at y = i/N. `project` binary-searches the table for
|sin φ| (exact hit or linear interpolation between the bracketing rows);
`inverse` reads the table back with cubic Aitken interpolation on the
four nearest rows. Vertical coordinates are scaled by the normalising
integral so the map is equal-area on the unit sphere.

References
----------
- Tobler, W.R. (1973). The hyperelliptical and other new pseudo
  cylindrical equal area map projections. JGR 78(11), 1753-1759.
"""

from typing import Tuple

import numpy as np
from numpy.typing import NDArray

from common.constants import NumericalConstants
from common.logging_config import get_logger
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
from numerical_analysis import (
    aitken_interpolate,
    linear_interpolate,
    simpson_integrate,
    simpson_ode_solve,
)

logger = get_logger(__name__)

TABLE_SIZE = int(NumericalConstants.TOBLER_TABLE_SIZE.value)

ALPHA = ParameterSpec(
    name="alpha",
    minimum=0.0,
    maximum=1.0,
    default=0.0,
    unit="dimensionless",
    description="Weight of the straight-line (sinusoidal-like) meridian component",
)

KAPPA = ParameterSpec(
    name="K",
    minimum=1.0,
    maximum=5.0,
    default=2.5,
    unit="dimensionless",
    description="Exponent of the superellipse meridian component",
)


def hyperellipse(y, kappa):
    """(1 - |y|^K)^(1/K), elementwise."""
    return np.power(1 - np.power(np.abs(y), kappa), 1 / kappa)


def _parallel_length(y, alpha, kappa):
    return alpha + (1 - alpha) * hyperellipse(y, kappa)


def build_table(
    alpha: float,
    kappa: float,
    size: int = TABLE_SIZE
) -> Tuple[NDArray[np.float64], float]:
    """Integrate the row-to-latitude table.

    Returns
    -------
    Tuple[ndarray, float]
        sin φ at rows ``i/size`` and the normalising integral ∫₀¹ w.
    """
    step = 1.0 / size
    epsilon = simpson_integrate(0.0, 1.0, lambda y: hyperellipse(y, kappa), step)
    norm = alpha + (1 - alpha) * epsilon
    table = simpson_ode_solve(
        1.0, size, lambda y: np.abs(_parallel_length(y, alpha, kappa) / norm), step
    )
    return table, norm


def _configure_tobler(values: Tuple[float, ...]) -> ProjectionState:
    alpha, kappa = values
    logger.debug(f"Building {TABLE_SIZE}-row hyperelliptical table (alpha={alpha}, K={kappa})")
    table, norm = build_table(alpha, kappa)
    return ProjectionState(
        width=2 * np.pi,
        height=2 / norm,
        constants={"alpha": alpha, "kappa": kappa, "norm": norm},
        tables={"sin_latitude": table},
    )


def _row_of(table, z0: float) -> float:
    """Row fraction y whose tabulated sin φ equals `z0`."""
    n = len(table) - 1
    i = int(np.searchsorted(table, z0))
    if i > n:
        return 1.0
    if table[i] == z0:
        return i / n
    return linear_interpolate(z0, table[i - 1], table[i], i - 1, i) / n


def _project_tobler(state, lat, lon):
    c = state.constants
    y = _row_of(state.tables["sin_latitude"], abs(np.sin(lat)))
    return (
        lon * abs(_parallel_length(y, c["alpha"], c["kappa"])),
        np.sign(lat) * y / c["norm"],
    )


def _inverse_tobler(state, x, y):
    c = state.constants
    table = state.tables["sin_latitude"]
    n = len(table) - 1

    row = abs(y) * c["norm"]
    if row > 1:
        return NAN_PAIR

    start = min(max(int(row * n) - 1, 0), n - 3)
    nodes = np.arange(start, start + 4) / n
    sin_lat = aitken_interpolate(row, nodes, table[start:start + 4])
    lat = np.sign(y) * np.arcsin(np.clip(sin_lat, 0.0, 1.0))

    width = abs(_parallel_length(row, c["alpha"], c["kappa"]))
    if width == 0:
        return (lat, 0.0) if x == 0 else NAN_PAIR
    return lat, x / width


_DEFAULT_NORM = ALPHA.default + (1 - ALPHA.default) * simpson_integrate(
    0.0, 1.0, lambda y: hyperellipse(y, KAPPA.default), 1.0 / TABLE_SIZE
)

TOBLER_HYPERELLIPTICAL = register_projection(ProjectionFamily(
    descriptor=ProjectionDescriptor(
        key="tobler_hyperelliptical",
        name="Tobler Hyperelliptical",
        description="An equal-area projection shaped like a hyperellipse",
        width=2 * np.pi,
        height=2 / _DEFAULT_NORM,
        flags=TopologyFlag.WRAPS_ANTIMERIDIAN | TopologyFlag.POLE_SINGULARITY,
        category=Category.PSEUDOCYLINDRICAL,
        property=Property.EQUAL_AREA,
        parameters=(ALPHA, KAPPA),
    ),
    configure=_configure_tobler,
    project=_project_tobler,
    inverse=_inverse_tobler,
))
