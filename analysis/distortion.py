"""
Local Distortion of Map Projections.

Scientific Context
------------------
Domain: Cartography
Model: Tissot's indicatrix from a finite-difference Jacobian

Near a point, a projection is approximated by its Jacobian

    J = | a  b |      a = ∂x/∂λ / cos φ,  b = ∂x/∂φ
        | c  d |      c = ∂y/∂λ / cos φ,  d = ∂y/∂φ

(the longitude column is scaled by 1/cos φ so both columns are per unit
distance on the sphere). An infinitesimal circle maps to an ellipse whose
semi-axes are the singular values σ1 ≥ σ2 of J. Two scalar measures are
reported per point:

- areal distortion  ln(σ1 σ2) = ln |det J|       (0 for equal-area maps)
- shape distortion  ln(σ1 / σ2)                  (0 for conformal maps)

With q1 = |(a + d, c - b)| and q2 = |(a - d, c + b)| the singular values
are (q1 ± q2) / 2, so no eigen-decomposition is needed.

The derivatives are symmetric differences with a step proportional to the
grid spacing. A point has no distortion value (NaN) when the stencil
leaves the sphere, crosses the antimeridian, touches an undefined point,
or straddles an interruption of the map (forward and backward differences
disagree).

References
----------
- Snyder, J.P. (1987). Map Projections - A Working Manual, §4.
- Tissot, A. (1881). Mémoire sur la représentation des surfaces.
"""

from dataclasses import dataclass, field
from typing import Dict, Iterator, Optional, Tuple

import numpy as np
from numpy.typing import NDArray
import xarray as xr

from common.constants import NumericalConstants
from common.logging_config import get_logger
from geospatial.projections import ConfiguredProjection
from sampling.grids import SamplingGrid
from sampling.parallel import ProgressCallback, map_rows

logger = get_logger(__name__)

FINITE_DIFFERENCE_FRACTION = NumericalConstants.FINITE_DIFFERENCE_FRACTION.value
DISCONTINUITY_RATIO = NumericalConstants.DISCONTINUITY_RATIO.value
LN_10 = NumericalConstants.LN_10.value

# Long rows (globe-uniform grids are a single row) are split into chunks
# of this many cells for the thread pool
CHUNK_COLUMNS = 2048

Jacobian = Tuple[float, float, float, float]


@dataclass
class TissotIndicatrix:
    """Tissot's indicatrix at a point.

    Attributes
    ----------
    semi_major, semi_minor : float
        Principal scale factors σ1 ≥ σ2.
    orientation_rad : float
        Direction of the major axis on the map, from the +x axis.
    area_scale : float
        σ1 σ2.
    angular_distortion_rad : float
        Maximum angular deformation 2ω, sin ω = (σ1 - σ2) / (σ1 + σ2).
    """
    semi_major: float
    semi_minor: float
    orientation_rad: float
    area_scale: float
    angular_distortion_rad: float

    @property
    def areal_distortion(self) -> float:
        return float(np.log(self.area_scale))

    @property
    def shape_distortion(self) -> float:
        return float(np.log(self.semi_major / self.semi_minor))

    @property
    def is_conformal(self) -> bool:
        return abs(self.semi_major - self.semi_minor) < 1e-6

    @property
    def is_equal_area(self) -> bool:
        return abs(self.area_scale - 1.0) < 1e-6


def _jumps(backward: Tuple[float, float], forward: Tuple[float, float]) -> bool:
    """True if one-sided differences disagree by more than DISCONTINUITY_RATIO."""
    scale = max(np.hypot(*backward), np.hypot(*forward))
    if scale == 0:
        return False
    change = np.hypot(forward[0] - backward[0], forward[1] - backward[1])
    return change > DISCONTINUITY_RATIO * scale


def jacobian_at(
    projection: ConfiguredProjection,
    lat: float,
    lon: float,
    step: float
) -> Optional[Jacobian]:
    """Finite-difference Jacobian (a, b, c, d) at a point, or None.

    Parameters
    ----------
    projection : ConfiguredProjection
        Map to differentiate.
    lat, lon : float
        Point in radians.
    step : float
        Half-width of the symmetric difference, radians.

    Returns
    -------
    Tuple[float, float, float, float] or None
        None where no reliable derivative exists.
    """
    if not (np.isfinite(lat) and np.isfinite(lon)):
        return None
    if lat - step < -np.pi/2 or lat + step > np.pi/2:
        return None
    if projection.aspect is None and abs(lon) + step > np.pi:
        return None

    centre = projection.project(lat, lon)
    east = projection.project(lat, lon + step)
    west = projection.project(lat, lon - step)
    north = projection.project(lat + step, lon)
    south = projection.project(lat - step, lon)
    if not np.all(np.isfinite((centre, east, west, north, south))):
        return None

    if _jumps((centre[0] - west[0], centre[1] - west[1]),
              (east[0] - centre[0], east[1] - centre[1])):
        return None
    if _jumps((centre[0] - south[0], centre[1] - south[1]),
              (north[0] - centre[0], north[1] - centre[1])):
        return None

    cos_lat = np.cos(lat)
    a = (east[0] - west[0]) / (2 * step) / cos_lat
    c = (east[1] - west[1]) / (2 * step) / cos_lat
    b = (north[0] - south[0]) / (2 * step)
    d = (north[1] - south[1]) / (2 * step)
    return a, b, c, d


def _singular_values(jacobian: Jacobian) -> Tuple[float, float]:
    a, b, c, d = jacobian
    q1 = np.hypot(a + d, c - b)
    q2 = np.hypot(a - d, c + b)
    return (q1 + q2) / 2, abs(q1 - q2) / 2


def distortion_at(
    projection: ConfiguredProjection,
    lat: float,
    lon: float,
    step: float
) -> Tuple[float, float]:
    """(areal, shape) distortion at a point, NaN pair where undefined."""
    jacobian = jacobian_at(projection, lat, lon, step)
    if jacobian is None:
        return np.nan, np.nan

    a, b, c, d = jacobian
    det = abs(a * d - b * c)
    major, minor = _singular_values(jacobian)
    if det == 0 or minor == 0 or not np.isfinite(det):
        return np.nan, np.nan
    return float(np.log(det)), float(np.log(major / minor))


def tissot_indicatrix(
    projection: ConfiguredProjection,
    lat: float,
    lon: float,
    step: float = 1e-5
) -> Optional[TissotIndicatrix]:
    """Tissot's indicatrix at a point, or None where undefined."""
    jacobian = jacobian_at(projection, lat, lon, step)
    if jacobian is None:
        return None

    a, b, c, d = jacobian
    major, minor = _singular_values(jacobian)
    if minor == 0:
        return None
    orientation = 0.5 * np.arctan2(2 * (a * c + b * d), (a**2 + b**2) - (c**2 + d**2))
    return TissotIndicatrix(
        semi_major=float(major),
        semi_minor=float(minor),
        orientation_rad=float(orientation),
        area_scale=float(major * minor),
        angular_distortion_rad=float(2 * np.arcsin((major - minor) / (major + minor))),
    )


# =============================================================================
# Aggregates
# =============================================================================

@dataclass
class DistortionStatistics:
    """Whole-grid summary of a distortion pass.

    Means and standard deviations use finite samples only; on a grid with
    no finite sample they are NaN.

    Attributes
    ----------
    mean_areal, std_areal : float
        Mean and standard deviation of ln area scale.
    mean_shape, std_shape : float
        Mean and standard deviation of ln shape stretch.
    nan_fraction : float
        Fraction of grid cells without a distortion value.
    sample_count : int
        Number of grid cells.
    finite_count : int
        Number of cells with a distortion value.
    """
    mean_areal: float
    std_areal: float
    mean_shape: float
    std_shape: float
    nan_fraction: float
    sample_count: int
    finite_count: int

    @classmethod
    def from_arrays(
        cls,
        areal: NDArray[np.float64],
        shape: NDArray[np.float64]
    ) -> 'DistortionStatistics':
        finite = np.isfinite(areal) & np.isfinite(shape)
        sample_count = int(areal.size)
        finite_count = int(np.count_nonzero(finite))

        if finite_count == 0:
            mean_areal = std_areal = mean_shape = std_shape = np.nan
        else:
            mean_areal = float(np.mean(areal[finite]))
            std_areal = float(np.std(areal[finite]))
            mean_shape = float(np.mean(shape[finite]))
            std_shape = float(np.std(shape[finite]))

        nan_fraction = 1.0 - finite_count / sample_count if sample_count else np.nan
        return cls(
            mean_areal=mean_areal,
            std_areal=std_areal,
            mean_shape=mean_shape,
            std_shape=std_shape,
            nan_fraction=nan_fraction,
            sample_count=sample_count,
            finite_count=finite_count,
        )

    @property
    def areal_decibels(self) -> float:
        """Spread of the area scale, in decibels."""
        return self.std_areal / LN_10 * 10

    @property
    def shape_decibels(self) -> float:
        """Mean shape stretch, in decibels."""
        return self.mean_shape / LN_10 * 10

    def to_dict(self) -> Dict[str, float]:
        return {
            "mean_areal": self.mean_areal,
            "std_areal": self.std_areal,
            "mean_shape": self.mean_shape,
            "std_shape": self.std_shape,
            "nan_fraction": self.nan_fraction,
            "sample_count": self.sample_count,
            "finite_count": self.finite_count,
            "areal_decibels": self.areal_decibels,
            "shape_decibels": self.shape_decibels,
        }


@dataclass(eq=False)
class DistortionResult:
    """Per-cell distortion of one projection over one grid.

    Attributes
    ----------
    areal, shape : ndarray
        Distortion values, grid shape, NaN where undefined.
    grid : SamplingGrid
        The grid the values belong to.
    projection_key : str
        Registry key of the projection.
    step : float
        Finite-difference step used, radians.
    parameters : dict
        Configured parameters in declared units.
    """
    areal: NDArray[np.float64]
    shape: NDArray[np.float64]
    grid: SamplingGrid
    projection_key: str
    step: float
    parameters: Dict[str, float] = field(default_factory=dict)

    def statistics(self) -> DistortionStatistics:
        return DistortionStatistics.from_arrays(self.areal, self.shape)

    def to_dataset(self) -> xr.Dataset:
        """Export as an xarray Dataset with lat/lon coordinates."""
        dims = ("row", "col")
        return xr.Dataset(
            data_vars={
                "areal": (dims, self.areal, {"long_name": "ln areal scale"}),
                "shape": (dims, self.shape, {"long_name": "ln shape stretch"}),
            },
            coords={
                "lat": (dims, self.grid.lat, {"units": "radian"}),
                "lon": (dims, self.grid.lon, {"units": "radian"}),
            },
            attrs={
                "projection": self.projection_key,
                "grid_kind": self.grid.kind.value,
                "spacing": self.grid.spacing,
                "step": self.step,
                **{f"parameter_{k}": v for k, v in self.parameters.items()},
            },
        )


# =============================================================================
# Grid passes
# =============================================================================

def _fill_cells(
    projection: ConfiguredProjection,
    grid: SamplingGrid,
    step: float,
    areal: NDArray[np.float64],
    shape: NDArray[np.float64],
    row: int,
    columns: slice
) -> None:
    for j in range(*columns.indices(grid.shape[1])):
        areal[row, j], shape[row, j] = distortion_at(
            projection, grid.lat[row, j], grid.lon[row, j], step
        )


def _step_for(grid: SamplingGrid, step_fraction: float) -> float:
    if not step_fraction > 0:
        raise ValueError(f"step_fraction must be positive, got {step_fraction!r}")
    return grid.spacing * step_fraction


def iter_distortion_rows(
    projection: ConfiguredProjection,
    grid: SamplingGrid,
    step_fraction: float = FINITE_DIFFERENCE_FRACTION
) -> Iterator[Tuple[int, NDArray[np.float64], NDArray[np.float64]]]:
    """Compute distortion one grid row at a time.

    Yields
    ------
    Tuple[int, ndarray, ndarray]
        Row index, areal row and shape row. Stopping iteration abandons
        the remaining rows.
    """
    step = _step_for(grid, step_fraction)
    rows, cols = grid.shape
    for i in range(rows):
        areal = np.full((1, cols), np.nan)
        shape = np.full((1, cols), np.nan)
        row_grid = SamplingGrid(
            lat=grid.lat[i:i + 1], lon=grid.lon[i:i + 1],
            spacing=grid.spacing, kind=grid.kind,
        )
        _fill_cells(projection, row_grid, step, areal, shape, 0, slice(None))
        yield i, areal[0], shape[0]


def compute_distortion(
    projection: ConfiguredProjection,
    grid: SamplingGrid,
    step_fraction: float = FINITE_DIFFERENCE_FRACTION,
    normalize_area: bool = False,
    workers: Optional[int] = None,
    progress: Optional[ProgressCallback] = None
) -> DistortionResult:
    """Distortion at every cell of a grid.

    Parameters
    ----------
    projection : ConfiguredProjection
        Map to analyse.
    grid : SamplingGrid
        Points to evaluate.
    step_fraction : float
        Finite-difference step as a fraction of the grid spacing.
    normalize_area : bool
        Subtract the mean finite areal value, for maps whose overall scale
        is arbitrary.
    workers : int, optional
        Thread count; cells are evaluated in independent row chunks.
    progress : callable, optional
        Called as ``progress(completed, total)`` per finished chunk.

    Returns
    -------
    DistortionResult
        Per-cell values; see `DistortionResult.statistics`.
    """
    step = _step_for(grid, step_fraction)
    rows, cols = grid.shape
    areal = np.full(grid.shape, np.nan)
    shape = np.full(grid.shape, np.nan)

    tasks = [
        (i, slice(start, min(start + CHUNK_COLUMNS, cols)))
        for i in range(rows)
        for start in range(0, cols, CHUNK_COLUMNS)
    ]

    def run_task(k: int) -> None:
        row, columns = tasks[k]
        _fill_cells(projection, grid, step, areal, shape, row, columns)

    map_rows(run_task, len(tasks), workers, progress)

    if normalize_area:
        finite = np.isfinite(areal)
        if np.any(finite):
            areal -= np.mean(areal[finite])

    result = DistortionResult(
        areal=areal,
        shape=shape,
        grid=grid,
        projection_key=projection.key,
        step=step,
        parameters=projection.parameter_dict,
    )

    stats = result.statistics()
    if stats.nan_fraction > 0.5:
        logger.warning(
            f"{projection.key}: {stats.nan_fraction:.1%} of {grid.kind.value} "
            f"samples have no distortion value"
        )
    else:
        logger.debug(
            f"{projection.key}: {stats.finite_count}/{stats.sample_count} cells, "
            f"mean areal {stats.mean_areal:.4f}, mean shape {stats.mean_shape:.4f}"
        )
    return result
