"""
Analysis Module for the Projection Analysis Core.

This module provides:
- Finite-difference Jacobians and Tissot's indicatrix
- Per-cell areal and shape distortion over sampling grids
- Aggregate statistics, histograms and decibel summaries
- Audited analysis runs
"""

from analysis.distortion import (
    DistortionResult,
    DistortionStatistics,
    TissotIndicatrix,
    compute_distortion,
    distortion_at,
    iter_distortion_rows,
    jacobian_at,
    tissot_indicatrix,
)

from analysis.analyzer import (
    AnalysisConfig,
    AnalysisReport,
    ProjectionAnalyzer,
    distortion_colors,
    format_decibels,
    histogram,
)

__all__ = [
    # Distortion
    "DistortionResult",
    "DistortionStatistics",
    "TissotIndicatrix",
    "compute_distortion",
    "distortion_at",
    "iter_distortion_rows",
    "jacobian_at",
    "tissot_indicatrix",
    # Analysis runs
    "AnalysisConfig",
    "AnalysisReport",
    "ProjectionAnalyzer",
    "distortion_colors",
    "format_decibels",
    "histogram",
]
