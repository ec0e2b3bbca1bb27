"""
Map Projection Registry and Configured Projections.

This module defines the projection abstraction shared by every family:
immutable descriptors, declared parameters with validated ranges, a closed
registry mapping a tag to its ``configure``/``project``/``inverse`` triple,
and `ConfiguredProjection`, the immutable value produced by `configure`.

Scientific Context
------------------
Domain: Cartography
Model: Mappings of the unit sphere onto the plane

Every family is written for its standard aspect on the unit sphere. The
oblique aspect is applied here, around the family functions, by the
spherical rotation in `geospatial.rotation`, so no family needs to know
about it.

Undefined Points
----------------
A point outside a family's domain, or one for which an iterative inverse
did not converge, comes back as a NaN pair. Nothing in the per-point path
raises; dense sampling passes only ever check ``np.isfinite``.

References
----------
- Snyder, J.P. (1987). Map Projections - A Working Manual. USGS Prof. Paper 1395.
- Snyder, J.P. (1993). Flattening the Earth. University of Chicago Press.
"""

from dataclasses import dataclass, field, replace
from enum import Enum, IntFlag
from types import MappingProxyType
from typing import Callable, Dict, List, Mapping, Optional, Sequence, Tuple, Union

import numpy as np
from numpy.typing import NDArray

from common.types import LatLon, PlanePoint, Pole
from common.units import ParameterValue, magnitude_in, to_radians
from common.logging_config import get_logger
from geospatial.rotation import obliquify, deobliquify, normalize_longitude

logger = get_logger(__name__)

NAN_PAIR: Tuple[float, float] = (np.nan, np.nan)

# Inverse longitudes this far past ±π still count as on the seam
SEAM_TOLERANCE = 1e-12


class Category(Enum):
    """Geometric construction of a projection."""
    CYLINDRICAL = "cylindrical"
    AZIMUTHAL = "azimuthal"
    PSEUDOCYLINDRICAL = "pseudocylindrical"
    CONIC = "conic"
    OTHER = "other"


class Property(Enum):
    """Metric property a projection preserves (or balances)."""
    EQUAL_AREA = "equal-area"
    CONFORMAL = "conformal"
    EQUIDISTANT = "equidistant"
    COMPROMISE = "compromise"
    PERSPECTIVE = "perspective"


class TopologyFlag(IntFlag):
    """Topological features of a projection's plane image."""
    NONE = 0
    WRAPS_ANTIMERIDIAN = 1
    POLE_SINGULARITY = 2
    UNBOUNDED = 4
    HEMISPHERE_ONLY = 8


class InvalidParameterError(ValueError):
    """A projection parameter was rejected by ``configure``.

    Attributes
    ----------
    parameter : str
        Name of the offending parameter.
    value : object
        The rejected value.
    reason : str
        Why the value was rejected.
    projection : str
        Registry key of the projection being configured.
    """

    def __init__(self, parameter: str, value, reason: str, projection: str = ""):
        self.parameter = parameter
        self.value = value
        self.reason = reason
        self.projection = projection
        prefix = f"{projection}: " if projection else ""
        super().__init__(f"{prefix}invalid {parameter}={value!r}: {reason}")


@dataclass(frozen=True)
class ParameterSpec:
    """A named projection parameter with its valid range.

    Attributes
    ----------
    name : str
        Parameter name, used as the keyword in mapping-style configuration.
    minimum, maximum : float
        Inclusive valid range, in `unit`.
    default : float
        Default value, in `unit`.
    unit : str
        Declared unit ('degree' or 'dimensionless').
    description : str
        Human-readable description.
    """
    name: str
    minimum: float
    maximum: float
    default: float
    unit: str = "degree"
    description: str = ""

    def validate(self, value: ParameterValue, projection: str = "") -> float:
        """Check a value against this parameter's declaration.

        Returns
        -------
        float
            The value in the declared unit.

        Raises
        ------
        InvalidParameterError
            On incompatible units, non-finite values or out-of-range values.
        """
        try:
            magnitude = magnitude_in(value, self.unit)
        except (TypeError, ValueError) as e:
            raise InvalidParameterError(self.name, value, str(e), projection) from e

        if not np.isfinite(magnitude):
            raise InvalidParameterError(self.name, value, "not a finite number", projection)
        if magnitude < self.minimum:
            raise InvalidParameterError(
                self.name, value, f"below minimum {self.minimum} {self.unit}", projection
            )
        if magnitude > self.maximum:
            raise InvalidParameterError(
                self.name, value, f"above maximum {self.maximum} {self.unit}", projection
            )
        return magnitude

    def to_internal(self, value: float) -> float:
        """Convert a validated value to the radians/dimensionless form families use."""
        return to_radians(value, self.unit)


@dataclass(frozen=True)
class ProjectionDescriptor:
    """Immutable metadata describing a projection family.

    Attributes
    ----------
    key : str
        Registry tag.
    name : str
        Display name.
    description : str
        One-line description.
    width, height : float
        Plane extent of the default configuration, unit sphere.
    flags : TopologyFlag
        Topological features of the plane image.
    category : Category
        Geometric construction.
    property : Property
        Preserved metric property.
    parameters : tuple of ParameterSpec
        Ordered parameters, in the order ``configure`` expects them.
    proj_definition : str, optional
        PROJ string template for reference comparison; ``{name}`` fields
        are filled with parameter values in their declared units.
    """
    key: str
    name: str
    description: str
    width: float
    height: float
    flags: TopologyFlag
    category: Category
    property: Property
    parameters: Tuple[ParameterSpec, ...] = ()
    proj_definition: Optional[str] = None

    @property
    def aspect_ratio(self) -> float:
        """Plane width over height of the default configuration."""
        return self.width / self.height

    @property
    def default_parameters(self) -> Tuple[float, ...]:
        return tuple(p.default for p in self.parameters)

    @property
    def parameter_names(self) -> Tuple[str, ...]:
        return tuple(p.name for p in self.parameters)

    def has_flag(self, flag: TopologyFlag) -> bool:
        return bool(self.flags & flag)


@dataclass(frozen=True, eq=False)
class ProjectionState:
    """Everything a family precomputes in ``configure``.

    Attributes
    ----------
    width, height : float
        Plane extent for the configured parameters.
    constants : Mapping[str, float]
        Derived scalar constants.
    tables : Mapping[str, ndarray]
        Read-only lookup tables.
    """
    width: float
    height: float
    constants: Mapping[str, float] = field(default_factory=dict)
    tables: Mapping[str, NDArray[np.float64]] = field(default_factory=dict)

    def __post_init__(self):
        for table in self.tables.values():
            table.setflags(write=False)
        object.__setattr__(self, "constants", MappingProxyType(dict(self.constants)))
        object.__setattr__(self, "tables", MappingProxyType(dict(self.tables)))


ConfigureFunction = Callable[[Tuple[float, ...]], ProjectionState]
ForwardFunction = Callable[[ProjectionState, float, float], PlanePoint]
InverseFunction = Callable[[ProjectionState, float, float], LatLon]


@dataclass(frozen=True)
class ProjectionFamily:
    """Dispatch-table entry: descriptor plus its three functions.

    ``configure`` receives parameters converted to radians/dimensionless.
    ``project`` receives a normalised standard-aspect coordinate.
    ``inverse`` returns a raw longitude, which may lie beyond ±π where a
    plane point falls outside the image of the globe.
    """
    descriptor: ProjectionDescriptor
    configure: ConfigureFunction
    project: ForwardFunction
    inverse: InverseFunction

    @property
    def key(self) -> str:
        return self.descriptor.key


def fixed_extent(width: float, height: float) -> ConfigureFunction:
    """Configure function for families without parameters."""
    def configure(values: Tuple[float, ...]) -> ProjectionState:
        return ProjectionState(width=width, height=height)
    return configure


_REGISTRY: Dict[str, ProjectionFamily] = {}


def register_projection(family: ProjectionFamily) -> ProjectionFamily:
    """Add a family to the registry.

    Raises
    ------
    ValueError
        If the key is already taken.
    """
    if family.key in _REGISTRY:
        raise ValueError(f"Projection '{family.key}' is already registered")
    _REGISTRY[family.key] = family
    return family


def list_projections() -> List[ProjectionDescriptor]:
    """Descriptors of all registered families, in registration order."""
    return [family.descriptor for family in _REGISTRY.values()]


def get_projection(name: str) -> ProjectionFamily:
    """Look up a family by registry key or display name (case-insensitive).

    Raises
    ------
    KeyError
        If no family matches.
    """
    if name in _REGISTRY:
        return _REGISTRY[name]
    wanted = name.strip().lower()
    for family in _REGISTRY.values():
        if family.descriptor.name.lower() == wanted or family.key == wanted:
            return family
    raise KeyError(f"Unknown projection '{name}'")


@dataclass(frozen=True, eq=False)
class ConfiguredProjection:
    """A projection family bound to a validated parameter vector.

    Instances are immutable; changing parameters or aspect produces a new
    instance, so evaluation is safe from any number of threads.

    Attributes
    ----------
    family : ProjectionFamily
        The dispatch-table entry.
    parameters : tuple of float
        Validated parameters in their declared units.
    state : ProjectionState
        Precomputed constants and tables.
    aspect : Pole, optional
        Oblique aspect, or None for the standard aspect.
    """
    family: ProjectionFamily
    parameters: Tuple[float, ...]
    state: ProjectionState
    aspect: Optional[Pole] = None

    @property
    def descriptor(self) -> ProjectionDescriptor:
        return self.family.descriptor

    @property
    def key(self) -> str:
        return self.family.key

    @property
    def width(self) -> float:
        return self.state.width

    @property
    def height(self) -> float:
        return self.state.height

    @property
    def aspect_ratio(self) -> float:
        return self.state.width / self.state.height

    @property
    def parameter_dict(self) -> Dict[str, float]:
        return dict(zip(self.descriptor.parameter_names, self.parameters))

    def project(self, lat: float, lon: float) -> PlanePoint:
        """Map a point on the sphere to the plane.

        Parameters
        ----------
        lat, lon : float
            Coordinate in radians, standard frame.

        Returns
        -------
        Tuple[float, float]
            (x, y) on the unit-sphere plane, or (nan, nan) where undefined.
        """
        if not (np.isfinite(lat) and np.isfinite(lon)) or abs(lat) > np.pi/2:
            return NAN_PAIR

        if self.aspect is not None:
            lat, lon = obliquify(self.aspect, (lat, lon))
        else:
            lon = float(normalize_longitude(lon))

        with np.errstate(all="ignore"):
            x, y = self.family.project(self.state, lat, lon)

        if not (np.isfinite(x) and np.isfinite(y)):
            return NAN_PAIR
        return float(x), float(y)

    def inverse(self, x: float, y: float, crop_antimeridian: bool = True) -> LatLon:
        """Map a plane point back to the sphere.

        Parameters
        ----------
        x, y : float
            Plane coordinate.
        crop_antimeridian : bool
            If True, points whose longitude falls beyond ±180° (outside the
            image of the globe) are undefined; otherwise they wrap.

        Returns
        -------
        Tuple[float, float]
            (lat, lon) in radians, or (nan, nan) where undefined.
        """
        if not (np.isfinite(x) and np.isfinite(y)):
            return NAN_PAIR

        with np.errstate(all="ignore"):
            lat, lon = self.family.inverse(self.state, x, y)

        if not (np.isfinite(lat) and np.isfinite(lon)) or abs(lat) > np.pi/2:
            return NAN_PAIR

        if abs(lon) > np.pi:
            if crop_antimeridian and abs(lon) > np.pi + SEAM_TOLERANCE:
                return NAN_PAIR
            lon = float(normalize_longitude(lon))

        if self.aspect is not None:
            lat, lon = deobliquify(self.aspect, (lat, lon))
        return float(lat), float(lon)

    def project_many(
        self,
        lats: NDArray[np.float64],
        lons: NDArray[np.float64]
    ) -> Tuple[NDArray[np.float64], NDArray[np.float64]]:
        """Project arrays of coordinates point by point.

        Parameters
        ----------
        lats, lons : ndarray
            Coordinates in radians, any matching shape.

        Returns
        -------
        Tuple[ndarray, ndarray]
            (x, y) arrays of the same shape, NaN where undefined.
        """
        lats = np.asarray(lats, dtype=np.float64)
        lons = np.asarray(lons, dtype=np.float64)
        x = np.full(lats.shape, np.nan)
        y = np.full(lats.shape, np.nan)
        for index in np.ndindex(lats.shape):
            x[index], y[index] = self.project(lats[index], lons[index])
        return x, y

    def reconfigure(
        self,
        parameters: Union[Sequence[ParameterValue], Mapping[str, ParameterValue]]
    ) -> 'ConfiguredProjection':
        """Configure the same family and aspect with new parameters."""
        return configure(self.family, parameters, self.aspect)

    def with_aspect(self, aspect: Optional[Pole]) -> 'ConfiguredProjection':
        """Same parameters and tables, different oblique aspect."""
        return replace(self, aspect=_effective_aspect(aspect))


def _effective_aspect(aspect: Optional[Pole]) -> Optional[Pole]:
    if aspect is not None and aspect.is_standard:
        return None
    return aspect


def _parameter_vector(
    descriptor: ProjectionDescriptor,
    parameters: Union[None, Sequence[ParameterValue], Mapping[str, ParameterValue]]
) -> Tuple[ParameterValue, ...]:
    if parameters is None:
        return descriptor.default_parameters

    if isinstance(parameters, Mapping):
        unknown = set(parameters) - set(descriptor.parameter_names)
        if unknown:
            name = sorted(unknown)[0]
            raise InvalidParameterError(
                name, parameters[name], "unknown parameter", descriptor.key
            )
        return tuple(parameters.get(p.name, p.default) for p in descriptor.parameters)

    values = tuple(parameters)
    if len(values) != len(descriptor.parameters):
        raise InvalidParameterError(
            "parameters",
            values,
            f"expected {len(descriptor.parameters)} value(s), got {len(values)}",
            descriptor.key,
        )
    return values


def configure(
    projection: Union[str, ProjectionFamily],
    parameters: Union[None, Sequence[ParameterValue], Mapping[str, ParameterValue]] = None,
    aspect: Optional[Pole] = None
) -> ConfiguredProjection:
    """Validate parameters and build a configured projection.

    All parameters are validated before any table is built, so a failure
    leaves every existing `ConfiguredProjection` untouched.

    Parameters
    ----------
    projection : str or ProjectionFamily
        Registry key, display name, or family.
    parameters : sequence or mapping, optional
        Values in declared units (or pint quantities), positionally or by
        name. Defaults are used when omitted.
    aspect : Pole, optional
        Oblique aspect.

    Returns
    -------
    ConfiguredProjection
        Fresh immutable configured projection.

    Raises
    ------
    InvalidParameterError
        If a parameter is missing, unknown, non-finite or out of range.
    KeyError
        If `projection` names no registered family.
    """
    family = projection if isinstance(projection, ProjectionFamily) else get_projection(projection)
    descriptor = family.descriptor

    values = _parameter_vector(descriptor, parameters)
    validated = tuple(
        spec.validate(value, descriptor.key)
        for spec, value in zip(descriptor.parameters, values)
    )
    internal = tuple(
        spec.to_internal(value) for spec, value in zip(descriptor.parameters, validated)
    )

    state = family.configure(internal)
    logger.debug(
        f"Configured {descriptor.key} with {dict(zip(descriptor.parameter_names, validated))}"
    )

    return ConfiguredProjection(
        family=family,
        parameters=validated,
        state=state,
        aspect=_effective_aspect(aspect),
    )
