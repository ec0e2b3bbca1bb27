"""
Logging Configuration and Audit Trail Infrastructure.

This module provides structured logging for the projection core and an
audit trail for distortion analysis runs. Every analysis run records the
configuration hash, the projection and parameters it evaluated, and the
aggregate distortion statistics it produced, so that reported numbers can
be traced back to the exact inputs.
"""

import hashlib
import json
import logging
import sys
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional
from contextlib import contextmanager
import threading


def get_logger(name: str, level: int = logging.INFO) -> logging.Logger:
    """Get a logger configured for the projection core.

    Parameters
    ----------
    name : str
        Logger name (typically __name__).
    level : int
        Logging level.

    Returns
    -------
    logging.Logger
        Configured logger instance.
    """
    logger = logging.getLogger(name)

    if not logger.handlers:
        handler = logging.StreamHandler(sys.stdout)
        formatter = logging.Formatter(
            '%(asctime)s | %(name)s | %(levelname)s | %(message)s',
            datefmt='%Y-%m-%d %H:%M:%S'
        )
        handler.setFormatter(formatter)
        logger.addHandler(handler)

    logger.setLevel(level)
    return logger


@dataclass
class ParameterRejection:
    """Record of a parameter vector refused by ``configure``.

    Attributes
    ----------
    timestamp : datetime
        When the rejection occurred.
    projection : str
        Registry key of the projection.
    parameter : str
        Name of the offending parameter.
    value : float
        The rejected value.
    reason : str
        Why the value was rejected.
    """
    timestamp: datetime
    projection: str
    parameter: str
    value: float
    reason: str


@dataclass
class DistortionSummaryRecord:
    """Record of the aggregate distortion of one sampling pass.

    Attributes
    ----------
    timestamp : datetime
        When the pass finished.
    projection : str
        Registry key of the projection.
    grid_kind : str
        Sampling scheme of the pass ('regular', 'globe_uniform', 'latlon').
    sample_count : int
        Number of grid cells evaluated.
    nan_fraction : float
        Fraction of cells whose distortion is undefined.
    mean_areal : float
        Mean natural-log areal distortion over finite cells.
    std_areal : float
        Standard deviation of the areal distortion over finite cells.
    mean_shape : float
        Mean natural-log shape distortion over finite cells.
    context : dict
        Additional context (resolution, aspect, ...).
    """
    timestamp: datetime
    projection: str
    grid_kind: str
    sample_count: int
    nan_fraction: float
    mean_areal: float
    std_areal: float
    mean_shape: float
    context: Dict[str, Any] = field(default_factory=dict)


@dataclass
class RunMetadata:
    """Metadata for an analysis run.

    This captures all information needed to reproduce a set of
    distortion figures.
    """
    run_id: str
    start_time: datetime
    end_time: Optional[datetime] = None
    config_hash: str = ""
    projection: str = ""
    parameters: Dict[str, float] = field(default_factory=dict)
    output_metadata: Dict[str, Any] = field(default_factory=dict)
    parameter_rejections: List[ParameterRejection] = field(default_factory=list)
    distortion_summaries: List[DistortionSummaryRecord] = field(default_factory=list)

    def compute_config_hash(self, config: Dict[str, Any]) -> str:
        """Compute a deterministic hash of the configuration.

        Parameters
        ----------
        config : dict
            The configuration dictionary.

        Returns
        -------
        str
            Truncated SHA-256 hash of the configuration.
        """
        config_str = json.dumps(config, sort_keys=True, default=str)
        self.config_hash = hashlib.sha256(config_str.encode()).hexdigest()[:16]
        return self.config_hash


class AuditLogger:
    """Central logging facility for analysis audit trails.

    Thread Safety
    -------------
    Record mutation happens under a lock so grid workers may report from
    several threads.

    Examples
    --------
    >>> audit = AuditLogger()
    >>> with audit.run_context("mercator_001", {"projection": "mercator"}):
    ...     audit.log_parameter_rejection(
    ...         projection="equirectangular",
    ...         parameter="standard_parallel",
    ...         value=95.0,
    ...         reason="above maximum 89.0",
    ...     )
    >>> summary = audit.get_run_summary("mercator_001")
    """

    _instance: Optional['AuditLogger'] = None
    _lock = threading.Lock()

    def __new__(cls) -> 'AuditLogger':
        """Singleton pattern for global audit logger."""
        if cls._instance is None:
            with cls._lock:
                if cls._instance is None:
                    cls._instance = super().__new__(cls)
                    cls._instance._initialized = False
        return cls._instance

    def __init__(self):
        """Initialize the audit logger."""
        if self._initialized:
            return

        self._runs: Dict[str, RunMetadata] = {}
        self._current_run_id: Optional[str] = None
        self._records_lock = threading.Lock()
        self._logger = get_logger("audit")
        self._initialized = True

    @contextmanager
    def run_context(self, run_id: str, config: Optional[Dict[str, Any]] = None):
        """Context manager for an analysis run.

        Parameters
        ----------
        run_id : str
            Unique identifier for this run.
        config : dict, optional
            Configuration to compute hash from. The 'projection' and
            'parameters' entries, when present, are copied onto the run.

        Yields
        ------
        RunMetadata
            The metadata object for this run.
        """
        metadata = RunMetadata(
            run_id=run_id,
            start_time=datetime.now()
        )

        if config:
            metadata.compute_config_hash(config)
            metadata.projection = str(config.get("projection", ""))
            metadata.parameters = dict(config.get("parameters", {}))

        with self._records_lock:
            self._runs[run_id] = metadata
            self._current_run_id = run_id

        self._logger.info(f"Starting run {run_id} with config hash {metadata.config_hash}")

        try:
            yield metadata
        finally:
            metadata.end_time = datetime.now()
            with self._records_lock:
                self._current_run_id = None
            self._logger.info(
                f"Completed run {run_id}. "
                f"Rejections: {len(metadata.parameter_rejections)}, "
                f"Distortion passes: {len(metadata.distortion_summaries)}"
            )

    def _current_run(self) -> Optional[RunMetadata]:
        if self._current_run_id and self._current_run_id in self._runs:
            return self._runs[self._current_run_id]
        return None

    def log_parameter_rejection(
        self,
        projection: str,
        parameter: str,
        value: float,
        reason: str
    ) -> None:
        """Log a parameter vector refused during configuration.

        Parameters
        ----------
        projection : str
            Registry key of the projection.
        parameter : str
            Name of the offending parameter.
        value : float
            The rejected value.
        reason : str
            Why it was rejected.
        """
        rejection = ParameterRejection(
            timestamp=datetime.now(),
            projection=projection,
            parameter=parameter,
            value=value,
            reason=reason
        )

        with self._records_lock:
            run = self._current_run()
            if run is not None:
                run.parameter_rejections.append(rejection)

        self._logger.warning(
            f"PARAMETER REJECTED | {projection} | {parameter}={value} | {reason}"
        )

    def log_distortion_summary(
        self,
        projection: str,
        grid_kind: str,
        sample_count: int,
        nan_fraction: float,
        mean_areal: float,
        std_areal: float,
        mean_shape: float,
        context: Optional[Dict[str, Any]] = None
    ) -> None:
        """Log the aggregate statistics of a distortion pass.

        Parameters
        ----------
        projection : str
            Registry key of the projection.
        grid_kind : str
            Sampling scheme used for the pass.
        sample_count : int
            Number of cells evaluated.
        nan_fraction : float
            Fraction of undefined cells.
        mean_areal, std_areal, mean_shape : float
            Aggregates over finite cells.
        context : dict, optional
            Additional context.
        """
        record = DistortionSummaryRecord(
            timestamp=datetime.now(),
            projection=projection,
            grid_kind=grid_kind,
            sample_count=sample_count,
            nan_fraction=nan_fraction,
            mean_areal=mean_areal,
            std_areal=std_areal,
            mean_shape=mean_shape,
            context=context or {}
        )

        with self._records_lock:
            run = self._current_run()
            if run is not None:
                run.distortion_summaries.append(record)

        log_msg = (
            f"DISTORTION | {projection} | {grid_kind} | n={sample_count} | "
            f"areal mean={mean_areal:.6f} std={std_areal:.6f} | "
            f"shape mean={mean_shape:.6f} | nan={nan_fraction:.3f}"
        )

        if nan_fraction > 0.5:
            self._logger.warning(log_msg)
        else:
            self._logger.info(log_msg)

    def get_run_summary(self, run_id: str) -> Dict[str, Any]:
        """Get a summary of an analysis run.

        Parameters
        ----------
        run_id : str
            The run identifier.

        Returns
        -------
        dict
            Summary including rejection counts and distortion aggregates.
        """
        if run_id not in self._runs:
            raise KeyError(f"No run found with ID {run_id}")

        metadata = self._runs[run_id]

        rejection_counts = {}
        for r in metadata.parameter_rejections:
            rejection_counts[r.parameter] = rejection_counts.get(r.parameter, 0) + 1

        distortion_results = {}
        for d in metadata.distortion_summaries:
            distortion_results[d.grid_kind] = {
                "sample_count": d.sample_count,
                "nan_fraction": d.nan_fraction,
                "mean_areal": d.mean_areal,
                "std_areal": d.std_areal,
                "mean_shape": d.mean_shape,
            }

        return {
            "run_id": run_id,
            "config_hash": metadata.config_hash,
            "projection": metadata.projection,
            "parameters": metadata.parameters,
            "start_time": metadata.start_time.isoformat(),
            "end_time": metadata.end_time.isoformat() if metadata.end_time else None,
            "total_parameter_rejections": len(metadata.parameter_rejections),
            "rejection_counts_by_parameter": rejection_counts,
            "distortion": distortion_results,
        }

    def export_run_artifacts(self, run_id: str, output_path: Path) -> None:
        """Export all audit artifacts for a run to JSON.

        Parameters
        ----------
        run_id : str
            The run identifier.
        output_path : Path
            Path to write the JSON file.
        """
        if run_id not in self._runs:
            raise KeyError(f"No run found with ID {run_id}")

        metadata = self._runs[run_id]

        artifacts = {
            "run_id": metadata.run_id,
            "config_hash": metadata.config_hash,
            "projection": metadata.projection,
            "parameters": metadata.parameters,
            "start_time": metadata.start_time.isoformat(),
            "end_time": metadata.end_time.isoformat() if metadata.end_time else None,
            "output_metadata": metadata.output_metadata,
            "parameter_rejections": [
                {
                    "timestamp": r.timestamp.isoformat(),
                    "projection": r.projection,
                    "parameter": r.parameter,
                    "value": r.value,
                    "reason": r.reason,
                }
                for r in metadata.parameter_rejections
            ],
            "distortion_summaries": [
                {
                    "timestamp": d.timestamp.isoformat(),
                    "projection": d.projection,
                    "grid_kind": d.grid_kind,
                    "sample_count": d.sample_count,
                    "nan_fraction": d.nan_fraction,
                    "mean_areal": d.mean_areal,
                    "std_areal": d.std_areal,
                    "mean_shape": d.mean_shape,
                    "context": d.context,
                }
                for d in metadata.distortion_summaries
            ]
        }

        with open(output_path, 'w') as f:
            json.dump(artifacts, f, indent=2, default=str)

        self._logger.info(f"Exported audit artifacts to {output_path}")
