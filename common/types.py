"""
Type Definitions for the Projection Core.

This module defines the small value types passed between the rotation,
projection, sampling and distortion modules. Angles are always stored in
RADIANS; the degree constructors exist for presets and user input.
"""

from dataclasses import dataclass
from typing import Tuple
import numpy as np


# (latitude, longitude) in radians
LatLon = Tuple[float, float]

# (x, y) in projection units of the unit sphere
PlanePoint = Tuple[float, float]


@dataclass(frozen=True)
class Pole:
    """Orientation of an oblique aspect.

    The oblique frame is defined by where its north pole sits on the globe
    and by a twist of the frame about that pole.

    Attributes
    ----------
    latitude : float
        Latitude of the oblique north pole in RADIANS. Range: [-π/2, π/2].
    longitude : float
        Longitude of the oblique north pole in RADIANS.
    twist : float
        Rotation about the oblique pole in RADIANS.

    Notes
    -----
    A pole at exactly ±π/2 selects the pure longitude-shift branch of the
    rotation. ``from_degrees(90, 0, 0)`` lands on π/2 exactly.

    Examples
    --------
    >>> pole = Pole.from_degrees(31.7833, 35.216, -35)
    >>> round(np.degrees(pole.latitude), 4)
    31.7833
    """
    latitude: float  # radians
    longitude: float  # radians
    twist: float = 0.0  # radians

    def __post_init__(self):
        """Validate the pole latitude."""
        if not -np.pi/2 <= self.latitude <= np.pi/2:
            raise ValueError(
                f"Pole latitude {self.latitude} rad out of range [-π/2, π/2]. "
                f"Did you pass degrees instead of radians?"
            )

    @property
    def is_standard(self) -> bool:
        """True for the identity aspect (pole at the north pole, no twist)."""
        return self.latitude == np.pi/2 and self.longitude == 0 and self.twist == 0

    def to_degrees(self) -> Tuple[float, float, float]:
        """Convert to degrees for display.

        Returns
        -------
        Tuple[float, float, float]
            (latitude_degrees, longitude_degrees, twist_degrees)
        """
        return (
            float(np.degrees(self.latitude)),
            float(np.degrees(self.longitude)),
            float(np.degrees(self.twist)),
        )

    @classmethod
    def from_degrees(cls, lat_deg: float, lon_deg: float, twist_deg: float = 0.0) -> 'Pole':
        """Create a pole from degrees (convenience constructor).

        Parameters
        ----------
        lat_deg : float
            Latitude of the oblique pole in degrees.
        lon_deg : float
            Longitude of the oblique pole in degrees.
        twist_deg : float, optional
            Twist about the pole in degrees.

        Returns
        -------
        Pole
            Pole with internally stored radians.
        """
        return cls(
            latitude=float(np.radians(lat_deg)),
            longitude=float(np.radians(lon_deg)),
            twist=float(np.radians(twist_deg)),
        )
