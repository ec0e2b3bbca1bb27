"""
Distortion Analysis Runs.

`ProjectionAnalyzer` reproduces the workflow of an interactive distortion
viewer without any of its presentation:

1. a rough distortion map on a regular grid of the projection (what the
   viewer would colour and show),
2. whole-globe statistics on a globe-uniform grid: histograms of both
   measures and their decibel summaries,
3. on request, a fine map at full resolution.

Each run is recorded by the `AuditLogger` with its configuration hash and
the aggregates of every distortion pass.

Decibel Summaries
-----------------
Areal distortion is summarised by the spread of ln(area scale), shape
distortion by the mean of ln(stretch); both are converted to decibels,
``value / ln 10 * 10``.
"""

from dataclasses import asdict, dataclass
from datetime import datetime
from typing import Any, Callable, Dict, Mapping, Optional, Sequence, Tuple, Union

import numpy as np
from numpy.typing import NDArray

from common.constants import NumericalConstants
from common.logging_config import AuditLogger, get_logger
from common.types import Pole
from common.units import ParameterValue
from geospatial.projections import ConfiguredProjection, InvalidParameterError, configure
from sampling.grids import globe_uniform_grid, regular_grid
from sampling.parallel import ProgressCallback
from analysis.distortion import (
    DistortionResult,
    DistortionStatistics,
    compute_distortion,
)

logger = get_logger(__name__)

LN_10 = NumericalConstants.LN_10.value

# Histogram ranges of ln(area scale) and ln(stretch)
AREAL_RANGE = (-LN_10, LN_10)
SHAPE_RANGE = (0.0, LN_10)

# Colour sensitivity of the distortion map
COLOUR_SENSITIVITY = 0.6


def _round_half_up(values):
    return np.floor(np.asarray(values) + 0.5)


def histogram(
    values: NDArray[np.float64],
    minimum: float,
    maximum: float,
    bins: int,
    converter: Callable[[NDArray[np.float64]], NDArray[np.float64]] = np.exp
) -> Tuple[NDArray[np.float64], NDArray[np.float64]]:
    """Percentage of finite samples nearest to each of ``bins + 1`` centres.

    Parameters
    ----------
    values : ndarray
        Samples of any shape; non-finite samples are ignored.
    minimum, maximum : float
        First and last bin centre.
    bins : int
        Number of intervals between the centres.
    converter : callable
        Maps a bin centre to its label (``np.exp`` turns ln-scale centres
        into scale factors).

    Returns
    -------
    Tuple[ndarray, ndarray]
        Labels rounded to two decimals, and the percentage of finite
        samples in each bin. Samples outside the range count towards the
        total but fall in no bin. Percentages are NaN if no sample is
        finite.
    """
    if bins < 1 or not maximum > minimum:
        raise ValueError(f"Invalid histogram range [{minimum}, {maximum}] with {bins} bins")

    finite = np.asarray(values, dtype=np.float64)
    finite = finite[np.isfinite(finite)]

    index = _round_half_up((finite - minimum) / (maximum - minimum) * bins).astype(int)
    in_range = (index >= 0) & (index <= bins)
    counts = np.bincount(index[in_range], minlength=bins + 1).astype(np.float64)

    if finite.size == 0:
        percentages = np.full(bins + 1, np.nan)
    else:
        percentages = counts / finite.size * 100

    centres = np.arange(bins + 1) * (maximum - minimum) / bins + minimum
    labels = _round_half_up(100 * converter(centres)) / 100
    return labels, percentages


def format_decibels(value: float) -> str:
    """Two-decimal text of a decibel figure, capped at "1000+"."""
    if value < 1000:
        return str(float(_round_half_up(value * 100) / 100))
    return "1000+"


def distortion_colors(
    areal: NDArray[np.float64],
    shape: NDArray[np.float64]
) -> NDArray[np.uint8]:
    """RGBA colouring of a distortion map.

    Areal distortion is contoured to whole decibels and shape distortion
    to half decibels. Shrunk cells are tinted red, enlarged cells blue,
    and shape distortion darkens both. Undefined cells are transparent.

    Returns
    -------
    ndarray
        uint8 array of shape ``areal.shape + (4,)``.
    """
    areal = np.asarray(areal, dtype=np.float64)
    shape = np.asarray(shape, dtype=np.float64)
    defined = np.isfinite(areal) & np.isfinite(shape)

    with np.errstate(invalid="ignore"):
        size_contour = _round_half_up(areal / (LN_10 / 10)) * LN_10 / 10
        shape_contour = _round_half_up(shape / (LN_10 / 20)) * LN_10 / 20

        shade = 255.9 * np.exp(-shape_contour * COLOUR_SENSITIVITY)
        scaled = shade * np.exp(-np.abs(size_contour) * COLOUR_SENSITIVITY)
        shrinking = areal < 0

        red = np.where(shrinking, shade, scaled)
        green = scaled
        blue = np.where(shrinking, scaled, shade)

    rgba = np.zeros(areal.shape + (4,), dtype=np.uint8)
    for channel, values in enumerate((red, green, blue)):
        rgba[..., channel] = np.where(defined, np.clip(values, 0, 255), 0).astype(np.uint8)
    rgba[..., 3] = np.where(defined, 255, 0)
    return rgba


@dataclass
class AnalysisConfig:
    """Configuration of a distortion analysis run.

    Attributes
    ----------
    rough_samples : int
        Columns of the preview map.
    fine_samples : int
        Columns of the full-resolution map.
    globe_resolution : float
        Angular resolution of the globe-uniform grid, radians.
    crop_antimeridian : bool
        Blank out map cells beyond ±180° in the preview map.
    step_fraction : float
        Finite-difference step as a fraction of grid spacing.
    histogram_bins : int
        Intervals of each histogram.
    normalize_area : bool
        Subtract the mean log-area before summarising.
    workers : int, optional
        Thread count for grid passes.
    """
    rough_samples: int = int(NumericalConstants.ROUGH_SAMPLES.value)
    fine_samples: int = int(NumericalConstants.FINE_SAMPLES.value)
    globe_resolution: float = NumericalConstants.GLOBE_RESOLUTION.value
    crop_antimeridian: bool = True
    step_fraction: float = NumericalConstants.FINITE_DIFFERENCE_FRACTION.value
    histogram_bins: int = 20
    normalize_area: bool = False
    workers: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class AnalysisReport:
    """Everything one analysis run produces.

    Attributes
    ----------
    run_id : str
        Audit identifier of the run.
    projection_key : str
        Registry key of the analysed projection.
    parameters : dict
        Configured parameters in declared units.
    map_distortion : DistortionResult
        Rough map over the projection's regular grid.
    globe_distortion : DistortionResult
        Distortion over the globe-uniform grid.
    areal_histogram, shape_histogram : Tuple[ndarray, ndarray]
        (labels, percentages) of the globe-uniform values.
    """
    run_id: str
    projection_key: str
    parameters: Dict[str, float]
    map_distortion: DistortionResult
    globe_distortion: DistortionResult
    areal_histogram: Tuple[NDArray[np.float64], NDArray[np.float64]]
    shape_histogram: Tuple[NDArray[np.float64], NDArray[np.float64]]

    @property
    def globe_statistics(self) -> DistortionStatistics:
        return self.globe_distortion.statistics()

    @property
    def areal_summary(self) -> str:
        return format_decibels(self.globe_statistics.areal_decibels) + "dB"

    @property
    def shape_summary(self) -> str:
        return format_decibels(self.globe_statistics.shape_decibels) + "dB"


class ProjectionAnalyzer:
    """Runs distortion analyses and records them in the audit trail."""

    def __init__(self, config: Optional[AnalysisConfig] = None):
        self.config = config or AnalysisConfig()
        self._logger = get_logger("ProjectionAnalyzer")
        self._audit = AuditLogger()

    def configure(
        self,
        projection: str,
        parameters: Union[None, Sequence[ParameterValue], Mapping[str, ParameterValue]] = None,
        aspect: Optional[Pole] = None
    ) -> ConfiguredProjection:
        """`configure`, recording rejected parameters before re-raising."""
        try:
            return configure(projection, parameters, aspect)
        except InvalidParameterError as e:
            self._audit.log_parameter_rejection(
                projection=e.projection or str(projection),
                parameter=e.parameter,
                value=e.value,
                reason=e.reason,
            )
            raise

    def _record(self, result: DistortionResult) -> DistortionResult:
        stats = result.statistics()
        self._audit.log_distortion_summary(
            projection=result.projection_key,
            grid_kind=result.grid.kind.value,
            sample_count=stats.sample_count,
            nan_fraction=stats.nan_fraction,
            mean_areal=stats.mean_areal,
            std_areal=stats.std_areal,
            mean_shape=stats.mean_shape,
            context={"shape": list(result.grid.shape), "step": result.step},
        )
        return result

    def _map(
        self,
        projection: ConfiguredProjection,
        samples: int,
        crop_antimeridian: bool,
        progress: Optional[ProgressCallback]
    ) -> DistortionResult:
        grid = regular_grid(
            projection, samples, crop_antimeridian, workers=self.config.workers
        )
        return self._record(compute_distortion(
            projection,
            grid,
            step_fraction=self.config.step_fraction,
            normalize_area=self.config.normalize_area,
            workers=self.config.workers,
            progress=progress,
        ))

    def rough_map(
        self,
        projection: ConfiguredProjection,
        progress: Optional[ProgressCallback] = None
    ) -> DistortionResult:
        """Distortion over a preview-resolution regular grid."""
        return self._map(
            projection, self.config.rough_samples, self.config.crop_antimeridian, progress
        )

    def fine_map(
        self,
        projection: ConfiguredProjection,
        progress: Optional[ProgressCallback] = None
    ) -> DistortionResult:
        """Distortion over a full-resolution regular grid (never cropped)."""
        return self._map(projection, self.config.fine_samples, False, progress)

    def globe_distortion(
        self,
        projection: ConfiguredProjection,
        progress: Optional[ProgressCallback] = None
    ) -> DistortionResult:
        """Distortion over a globe-uniform grid, for statistics."""
        grid = globe_uniform_grid(self.config.globe_resolution)
        return self._record(compute_distortion(
            projection,
            grid,
            step_fraction=self.config.step_fraction,
            normalize_area=self.config.normalize_area,
            workers=self.config.workers,
            progress=progress,
        ))

    def analyze(
        self,
        projection: ConfiguredProjection,
        run_id: Optional[str] = None
    ) -> AnalysisReport:
        """Rough map, globe statistics and histograms for one projection.

        Parameters
        ----------
        projection : ConfiguredProjection
            Projection to analyse.
        run_id : str, optional
            Audit identifier; generated from the key and time if omitted.

        Returns
        -------
        AnalysisReport
            Distortion results and summaries.
        """
        run_id = run_id or f"{projection.key}_{datetime.now():%Y%m%d_%H%M%S_%f}"
        run_config = {
            "projection": projection.key,
            "parameters": projection.parameter_dict,
            "aspect": projection.aspect.to_degrees() if projection.aspect else None,
            "analysis": self.config.to_dict(),
        }

        with self._audit.run_context(run_id, run_config):
            map_distortion = self.rough_map(projection)
            globe = self.globe_distortion(projection)

        bins = self.config.histogram_bins
        report = AnalysisReport(
            run_id=run_id,
            projection_key=projection.key,
            parameters=projection.parameter_dict,
            map_distortion=map_distortion,
            globe_distortion=globe,
            areal_histogram=histogram(globe.areal, *AREAL_RANGE, bins, np.exp),
            shape_histogram=histogram(globe.shape, *SHAPE_RANGE, bins, np.exp),
        )
        self._logger.info(
            f"{projection.key}: areal {report.areal_summary}, shape {report.shape_summary}"
        )
        return report
