"""
Numerical Constants for Projection Evaluation and Distortion Analysis.

This module collects the fixed numbers the projection core depends on:
solver iteration caps, series lengths, table resolutions and the default
sampling densities of an analysis run. Each constant carries its unit and
provenance so that changes to accuracy/cost trade-offs stay traceable.

References
----------
- Snyder, J. P. (1987). Map Projections: A Working Manual. USGS PP 1395.
- Tobler, W. R. (1973). The hyperelliptical and other new pseudo
  cylindrical equal area map projections. JGR 78(11).
- Abramowitz & Stegun (1964), 17.3 (complete elliptic integral K).
"""

from dataclasses import dataclass
from typing import Final
import numpy as np


@dataclass(frozen=True)
class Constant:
    """A numerical constant with provenance.

    Attributes
    ----------
    value : float
        The nominal value of the constant.
    unit : str
        Unit of the constant ("dimensionless", "radian", "count").
    source : str
        Where the value comes from.
    description : str
        Human-readable description of the constant.
    """
    value: float
    unit: str
    source: str
    description: str


class NumericalConstants:
    """Registry of numerical constants used throughout the projection core.

    Solvers
    -------
    Iteration caps and tolerances for the Newton-Raphson and series
    evaluators. Every iterative routine in the core is bounded by one of
    these values.

    Tables and Sampling
    -------------------
    Resolutions of precomputed lookup tables and default densities of the
    grids used for distortion analysis.
    """

    # =========================================================================
    # Solvers
    # =========================================================================

    NEWTON_MAX_ITERATIONS: Final[Constant] = Constant(
        value=8,
        unit="count",
        source="Projection inverse solvers",
        description="Hard cap on Newton-Raphson updates (1-D and 2-D)"
    )

    INVERSE_TOLERANCE: Final[Constant] = Constant(
        value=1e-10,
        unit="dimensionless",
        source="Projection inverse solvers",
        description="Residual tolerance for iterative inverse transforms"
    )

    ELLIPTIC_SERIES_TERMS: Final[Constant] = Constant(
        value=100,
        unit="count",
        source="Peirce quincuncial series, A&S 17.4",
        description="Number of terms of the incomplete elliptic integral series"
    )

    ELLIPTIC_MODULUS_SQUARED: Final[Constant] = Constant(
        value=0.5,
        unit="dimensionless",
        source="Peirce (1879)",
        description="Squared modulus k^2 of the quincuncial elliptic integral"
    )

    SERIES_SANITY_BOUND: Final[Constant] = Constant(
        value=10.0,
        unit="dimensionless",
        source="Peirce quincuncial series",
        description="Series results with larger magnitude are clamped to the origin"
    )

    MOLLWEIDE_ITERATIONS: Final[Constant] = Constant(
        value=30,
        unit="count",
        source="Snyder (1987), eq. 31-4",
        description="Iteration cap for the Mollweide auxiliary angle"
    )

    # =========================================================================
    # Tables
    # =========================================================================

    TOBLER_TABLE_SIZE: Final[Constant] = Constant(
        value=20000,
        unit="count",
        source="Tobler (1973)",
        description="Intervals in the hyperelliptical row-to-latitude table"
    )

    MAGNIFIER_SEED_TABLE_SIZE: Final[Constant] = Constant(
        value=65,
        unit="count",
        source="Magnifier inverse",
        description="Coarse samples used to seed the magnifier Newton inverse"
    )

    ELLIPTIC_SEED_TABLE_SIZE: Final[Constant] = Constant(
        value=17,
        unit="count",
        source="Peirce quincuncial inverse",
        description="Radii and angles per quarter sector of the quincuncial seed table"
    )

    # =========================================================================
    # Distortion analysis
    # =========================================================================

    ROUGH_SAMPLES: Final[Constant] = Constant(
        value=500,
        unit="count",
        source="Distortion analyser",
        description="Columns of the preview distortion map"
    )

    FINE_SAMPLES: Final[Constant] = Constant(
        value=2048,
        unit="count",
        source="Distortion analyser",
        description="Columns of the full-resolution distortion map"
    )

    GLOBE_RESOLUTION: Final[Constant] = Constant(
        value=0.01,
        unit="radian",
        source="Distortion analyser",
        description="Angular spacing of the globe-uniform statistics grid"
    )

    FINITE_DIFFERENCE_FRACTION: Final[Constant] = Constant(
        value=0.01,
        unit="dimensionless",
        source="Distortion analyser",
        description="Finite-difference step as a fraction of grid spacing"
    )

    DISCONTINUITY_RATIO: Final[Constant] = Constant(
        value=0.5,
        unit="dimensionless",
        source="Distortion analyser",
        description=(
            "Relative mismatch between forward and backward differences "
            "above which a stencil is treated as crossing an interruption"
        )
    )

    LN_10: Final[Constant] = Constant(
        value=float(np.log(10.0)),
        unit="dimensionless",
        source="Mathematical constant",
        description="Natural logarithm of 10, for decibel conversion"
    )
