"""
Sampling Grids for Projection Evaluation.

Scientific Context
------------------
Statistics of a projection's distortion depend on how the sphere is
sampled. Three grids are provided:

- **Regular**: pixel centres of a raster over the map's plane extent,
  inverse-projected to the sphere. This is what a rendered map shows;
  cells outside the image of the globe are NaN.
- **Lat/lon**: evenly spaced in latitude and longitude. Cheap and useful
  for previews, but it over-weights the poles, so it must not be used for
  whole-globe statistics.
- **Globe-uniform**: latitude bands of equal angular height, each holding
  a number of samples proportional to its circumference, so every sample
  stands for (nearly) the same solid angle.

Each grid carries a nominal angular ``spacing``; finite-difference steps
for distortion are taken as a fraction of it.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional

import numpy as np
from numpy.typing import NDArray

from common.logging_config import get_logger
from geospatial.projections import ConfiguredProjection
from sampling.parallel import ProgressCallback, map_rows

logger = get_logger(__name__)


class GridKind(Enum):
    """How a sampling grid places its points."""
    REGULAR = "regular"
    GLOBE_UNIFORM = "globe_uniform"
    LATLON = "latlon"


@dataclass(frozen=True, eq=False)
class SamplingGrid:
    """Row-major grid of points on the sphere.

    Attributes
    ----------
    lat, lon : ndarray
        Coordinates in radians, shape (rows, cols). NaN marks cells with no
        point on the sphere.
    spacing : float
        Nominal angular distance between neighbouring samples, radians.
    kind : GridKind
        Sampling scheme that produced the grid.
    """
    lat: NDArray[np.float64]
    lon: NDArray[np.float64]
    spacing: float
    kind: GridKind

    @property
    def shape(self):
        return self.lat.shape

    @property
    def size(self) -> int:
        return int(self.lat.size)

    @property
    def valid_fraction(self) -> float:
        """Fraction of cells that hold a point on the sphere."""
        if self.size == 0:
            return 0.0
        return float(np.mean(np.isfinite(self.lat) & np.isfinite(self.lon)))


@dataclass(frozen=True, eq=False)
class PlaneGrid:
    """Row-major grid of plane points, NaN where undefined."""
    x: NDArray[np.float64]
    y: NDArray[np.float64]

    @property
    def shape(self):
        return self.x.shape


def _check_resolution(resolution: int, name: str = "resolution") -> int:
    if int(resolution) != resolution or resolution < 1:
        raise ValueError(f"{name} must be a positive integer, got {resolution!r}")
    return int(resolution)


def plane_grid(projection: ConfiguredProjection, resolution: int) -> PlaneGrid:
    """Pixel centres over the configured plane extent.

    Parameters
    ----------
    projection : ConfiguredProjection
        Supplies the width and height of the map.
    resolution : int
        Number of columns; the row count follows the aspect ratio.

    Returns
    -------
    PlaneGrid
        Row 0 is the top of the map (largest y).
    """
    cols = _check_resolution(resolution)
    rows = max(1, int(round(cols / projection.aspect_ratio)))
    width, height = projection.width, projection.height

    xs = ((np.arange(cols) + 0.5) / cols - 0.5) * width
    ys = (0.5 - (np.arange(rows) + 0.5) / rows) * height
    x, y = np.meshgrid(xs, ys)
    return PlaneGrid(x=x, y=y)


def _column_spacing(lat: NDArray[np.float64], lon: NDArray[np.float64]) -> float:
    """Median great-circle distance between vertically adjacent cells, radians.

    NaN when no pair of vertically adjacent cells is on the globe.
    """
    lat1, lat2 = lat[:-1], lat[1:]
    half_dlon = (lon[1:] - lon[:-1]) / 2
    h = np.sin((lat2 - lat1) / 2)**2 + np.cos(lat1) * np.cos(lat2) * np.sin(half_dlon)**2
    distance = 2 * np.arcsin(np.sqrt(np.clip(h, 0.0, 1.0)))
    distance = distance[np.isfinite(distance)]
    if distance.size == 0:
        return np.nan
    return float(np.median(distance))


def regular_grid(
    projection: ConfiguredProjection,
    resolution: int,
    crop_antimeridian: bool = True,
    workers: Optional[int] = None,
    progress: Optional[ProgressCallback] = None
) -> SamplingGrid:
    """Inverse-project a plane raster onto the sphere.

    Parameters
    ----------
    projection : ConfiguredProjection
        Map to sample.
    resolution : int
        Raster columns.
    crop_antimeridian : bool
        If True, cells whose inverse longitude falls beyond ±180° are NaN;
        otherwise they wrap around.
    workers : int, optional
        Thread count for the row-parallel inverse pass.
    progress : callable, optional
        Per-row progress callback.

    Returns
    -------
    SamplingGrid
        Grid of kind REGULAR with the raster's shape. Its spacing is the
        median sphere distance between vertically adjacent cells (π/rows
        when no such pair is on the globe), since plane units vary by family.
    """
    plane = plane_grid(projection, resolution)
    rows, cols = plane.shape
    lat = np.full(plane.shape, np.nan)
    lon = np.full(plane.shape, np.nan)

    def fill_row(i: int) -> None:
        for j in range(cols):
            lat[i, j], lon[i, j] = projection.inverse(
                plane.x[i, j], plane.y[i, j], crop_antimeridian
            )

    map_rows(fill_row, rows, workers, progress)

    spacing = _column_spacing(lat, lon)
    if not np.isfinite(spacing):
        spacing = np.pi / rows
    grid = SamplingGrid(lat=lat, lon=lon, spacing=spacing, kind=GridKind.REGULAR)
    logger.debug(
        f"Regular {rows}x{cols} grid for {projection.key}: "
        f"{grid.valid_fraction:.1%} of cells on the globe"
    )
    return grid


def latlon_grid(resolution: int) -> SamplingGrid:
    """Evenly spaced latitude/longitude cell centres.

    `resolution` longitudes by half as many latitudes, north to south.
    Over-samples the poles; for previews only.
    """
    cols = _check_resolution(resolution)
    rows = max(1, cols // 2)
    lats = np.pi/2 - (np.arange(rows) + 0.5) * np.pi / rows
    lons = -np.pi + (np.arange(cols) + 0.5) * 2 * np.pi / cols
    lon, lat = np.meshgrid(lons, lats)
    return SamplingGrid(lat=lat, lon=lon, spacing=np.pi / rows, kind=GridKind.LATLON)


def globe_uniform_grid(angular_resolution: float) -> SamplingGrid:
    """Samples of (nearly) equal solid angle over the whole sphere.

    Parameters
    ----------
    angular_resolution : float
        Target distance between neighbouring samples, radians.

    Returns
    -------
    SamplingGrid
        Grid of kind GLOBE_UNIFORM. Band lengths differ, so the samples
        are stored as a single row, band after band from north to south.

    Notes
    -----
    Bands are centred at equal latitude steps of about `angular_resolution`;
    a band at latitude φ holds ``round(2π cos φ / angular_resolution)``
    longitudes (at least one), evenly spaced and offset by half a step.
    """
    if not np.isfinite(angular_resolution) or not 0 < angular_resolution <= np.pi:
        raise ValueError(
            f"angular_resolution must lie in (0, π], got {angular_resolution!r}"
        )

    n_bands = max(1, int(round(np.pi / angular_resolution)))
    band_lats = np.pi/2 - (np.arange(n_bands) + 0.5) * np.pi / n_bands

    lats = []
    lons = []
    for band_lat in band_lats:
        count = max(1, int(round(2 * np.pi * np.cos(band_lat) / angular_resolution)))
        lons.append(-np.pi + (np.arange(count) + 0.5) * 2 * np.pi / count)
        lats.append(np.full(count, band_lat))

    lat = np.concatenate(lats)[np.newaxis, :]
    lon = np.concatenate(lons)[np.newaxis, :]
    logger.debug(f"Globe-uniform grid: {n_bands} bands, {lat.size} samples")
    return SamplingGrid(
        lat=lat, lon=lon, spacing=float(angular_resolution), kind=GridKind.GLOBE_UNIFORM
    )


def sample_grid(
    kind: GridKind,
    resolution,
    crop_antimeridian: bool = True,
    projection: Optional[ConfiguredProjection] = None,
    workers: Optional[int] = None
) -> SamplingGrid:
    """Build a grid of the requested kind.

    Parameters
    ----------
    kind : GridKind or str
        Sampling scheme.
    resolution : int or float
        Raster columns for REGULAR and LATLON; angular resolution in
        radians for GLOBE_UNIFORM.
    crop_antimeridian : bool
        Passed to `regular_grid`.
    projection : ConfiguredProjection, optional
        Required for REGULAR grids.
    workers : int, optional
        Thread count for REGULAR grids.

    Raises
    ------
    ValueError
        If a REGULAR grid is requested without a projection, or the
        resolution is invalid.
    """
    kind = GridKind(kind)
    if kind is GridKind.REGULAR:
        if projection is None:
            raise ValueError("A regular grid needs a configured projection")
        return regular_grid(projection, resolution, crop_antimeridian, workers)
    if kind is GridKind.LATLON:
        return latlon_grid(resolution)
    return globe_uniform_grid(resolution)


def project_grid(
    projection: ConfiguredProjection,
    grid: SamplingGrid,
    workers: Optional[int] = None,
    progress: Optional[ProgressCallback] = None
) -> PlaneGrid:
    """Forward-project every point of a grid.

    Returns
    -------
    PlaneGrid
        Same shape as `grid`, NaN where the grid cell is empty or the
        projection is undefined.
    """
    rows, cols = grid.shape
    x = np.full(grid.shape, np.nan)
    y = np.full(grid.shape, np.nan)

    def fill_row(i: int) -> None:
        for j in range(cols):
            x[i, j], y[i, j] = projection.project(grid.lat[i, j], grid.lon[i, j])

    map_rows(fill_row, rows, workers, progress)
    return PlaneGrid(x=x, y=y)
