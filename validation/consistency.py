"""
Consistency Tests for Configured Projections.

This module verifies that a configured projection behaves as its
descriptor claims.

Test Categories
---------------
1. Round trip (inverse undoes project on the defined domain)
2. Equal-area property (ln area scale ≈ 0 over the globe)
3. Conformal property (ln shape stretch ≈ 0 over the globe)
4. Agreement with the PROJ implementation of the same map
"""

from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

import numpy as np
from numpy.typing import NDArray

from common.logging_config import get_logger
from geospatial.projections import ConfiguredProjection, Property
from geospatial.rotation import normalize_longitude
from sampling.grids import SamplingGrid, globe_uniform_grid, latlon_grid
from analysis.distortion import compute_distortion
from validation.reference import reference_project

logger = get_logger(__name__)

# Default sample sets
ROUND_TRIP_COLUMNS = 24
GLOBE_CHECK_RESOLUTION = 0.05


@dataclass
class ValidationResult:
    """Result of a validation check.

    Attributes
    ----------
    test_name : str
        Name of the test.
    passed : bool
        Whether the test passed.
    message : str
        Description of result.
    details : dict
        Additional details.
    """
    test_name: str
    passed: bool
    message: str
    details: Dict[str, Any]


class ConsistencyError(Exception):
    """A consistency check failed in strict mode."""

    def __init__(self, result: ValidationResult):
        self.result = result
        super().__init__(f"{result.test_name}: {result.message}")


def _sample_points(
    lats: Optional[NDArray[np.float64]],
    lons: Optional[NDArray[np.float64]]
) -> Tuple[NDArray[np.float64], NDArray[np.float64]]:
    if lats is None or lons is None:
        grid = latlon_grid(ROUND_TRIP_COLUMNS)
        return grid.lat.ravel(), grid.lon.ravel()
    return np.asarray(lats, dtype=np.float64).ravel(), np.asarray(lons, dtype=np.float64).ravel()


def _angular_error(lat0, lon0, lat1, lon1):
    """Approximate angle between two nearby points on the sphere."""
    dlon = normalize_longitude(lon1 - lon0)
    return np.hypot(lat1 - lat0, np.cos(lat0) * dlon)


class ProjectionConsistencyChecker:
    """Checker for the geometric consistency of configured projections.

    Validates that projections invert correctly and preserve the metric
    property their descriptor declares.
    """

    def __init__(
        self,
        strict_mode: bool = False,
        log_violations: bool = True
    ):
        """Initialize consistency checker.

        Parameters
        ----------
        strict_mode : bool
            If True, raise `ConsistencyError` on violations.
        log_violations : bool
            Whether to log violations.
        """
        self.strict_mode = strict_mode
        self.log_violations = log_violations
        self._logger = get_logger("ProjectionConsistencyChecker")

    def _finish(self, result: ValidationResult) -> ValidationResult:
        if not result.passed:
            if self.log_violations:
                self._logger.warning(f"{result.test_name} FAILED: {result.message}")
            if self.strict_mode:
                raise ConsistencyError(result)
        return result

    def check_all(
        self,
        projection: ConfiguredProjection,
        globe_resolution: float = GLOBE_CHECK_RESOLUTION
    ) -> List[ValidationResult]:
        """Run every check that applies to the projection.

        Parameters
        ----------
        projection : ConfiguredProjection
            Projection to check.
        globe_resolution : float
            Angular resolution of the grid for property checks, radians.

        Returns
        -------
        List[ValidationResult]
            Results of all applicable checks.
        """
        results = [self.check_round_trip(projection)]

        grid = globe_uniform_grid(globe_resolution)
        prop = projection.descriptor.property
        if prop is Property.EQUAL_AREA:
            results.append(self.check_equal_area(projection, grid))
        elif prop is Property.CONFORMAL:
            results.append(self.check_conformal(projection, grid))

        if projection.descriptor.proj_definition is not None and projection.aspect is None:
            results.append(self.check_reference(projection))

        return results

    def check_round_trip(
        self,
        projection: ConfiguredProjection,
        lats: Optional[NDArray[np.float64]] = None,
        lons: Optional[NDArray[np.float64]] = None,
        tolerance: float = 1e-6
    ) -> ValidationResult:
        """Check that ``inverse(project(p))`` returns p where p is defined."""
        lats, lons = _sample_points(lats, lons)

        errors = []
        lost = 0
        for lat, lon in zip(lats, lons):
            x, y = projection.project(lat, lon)
            if not (np.isfinite(x) and np.isfinite(y)):
                continue
            lat1, lon1 = projection.inverse(x, y, crop_antimeridian=False)
            if not np.isfinite(lat1):
                lost += 1
                continue
            errors.append(_angular_error(lat, lon, lat1, lon1))

        errors = np.asarray(errors)
        max_error = float(np.max(errors)) if errors.size else np.nan
        passed = lost == 0 and errors.size > 0 and max_error <= tolerance

        return self._finish(ValidationResult(
            test_name="round_trip",
            passed=passed,
            message=(
                f"{projection.key} round trip: max error {max_error:.3e} rad "
                f"over {errors.size} points, {lost} not inverted"
            ),
            details={
                "max_error": max_error,
                "points": int(errors.size),
                "not_inverted": lost,
                "tolerance": tolerance,
            },
        ))

    def _check_measure(
        self,
        test_name: str,
        measure: str,
        projection: ConfiguredProjection,
        grid: Optional[SamplingGrid],
        tolerance: float
    ) -> ValidationResult:
        grid = grid if grid is not None else globe_uniform_grid(GLOBE_CHECK_RESOLUTION)
        result = compute_distortion(projection, grid)
        values = getattr(result, measure)
        values = np.abs(values[np.isfinite(values)])

        if values.size == 0:
            mean_error = max_error = np.nan
            passed = False
        else:
            mean_error = float(np.mean(values))
            max_error = float(np.max(values))
            passed = mean_error <= tolerance

        return self._finish(ValidationResult(
            test_name=test_name,
            passed=passed,
            message=(
                f"{projection.key} {measure} distortion: mean |value| {mean_error:.3e}, "
                f"max {max_error:.3e}"
            ),
            details={
                "mean_abs": mean_error,
                "max_abs": max_error,
                "finite_samples": int(values.size),
                "tolerance": tolerance,
            },
        ))

    def check_equal_area(
        self,
        projection: ConfiguredProjection,
        grid: Optional[SamplingGrid] = None,
        tolerance: float = 1e-3
    ) -> ValidationResult:
        """Check that ln area scale is close to zero over the globe."""
        return self._check_measure("equal_area", "areal", projection, grid, tolerance)

    def check_conformal(
        self,
        projection: ConfiguredProjection,
        grid: Optional[SamplingGrid] = None,
        tolerance: float = 1e-3
    ) -> ValidationResult:
        """Check that ln shape stretch is close to zero over the globe."""
        return self._check_measure("conformal", "shape", projection, grid, tolerance)

    def check_reference(
        self,
        projection: ConfiguredProjection,
        lats: Optional[NDArray[np.float64]] = None,
        lons: Optional[NDArray[np.float64]] = None,
        tolerance: float = 1e-6
    ) -> ValidationResult:
        """Compare forward projections with PROJ on points both define."""
        lats, lons = _sample_points(lats, lons)
        x, y = projection.project_many(lats, lons)
        ref_x, ref_y = reference_project(projection, lats, lons)

        common = np.isfinite(x) & np.isfinite(ref_x)
        differences = np.hypot(x[common] - ref_x[common], y[common] - ref_y[common])
        max_difference = float(np.max(differences)) if differences.size else np.nan
        passed = differences.size > 0 and max_difference <= tolerance

        return self._finish(ValidationResult(
            test_name="proj_reference",
            passed=passed,
            message=(
                f"{projection.key} vs PROJ: max difference {max_difference:.3e} "
                f"over {differences.size} points"
            ),
            details={
                "max_difference": max_difference,
                "points": int(differences.size),
                "tolerance": tolerance,
            },
        ))
