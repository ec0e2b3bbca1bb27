"""
Conformal Projections Built on the Elliptic Integral of the First Kind.

Scientific Context
------------------
Peirce's quincuncial projection maps the southern hemisphere conformally
onto a square standing on a vertex (a diamond) and the northern hemisphere
onto the four corner triangles that complete the enclosing square. With

    w = tan(φ/2 + π/4) e^{iλ}

(the stereographic image from the north pole, |w| ≤ 1 in the south) the
diamond image is ``z = F(arccos w, k)`` with k² = 1/2, where F is the
incomplete elliptic integral of the first kind. The unit circle |w| = 1
(the equator) goes to the four diamond edges; points of the northern
hemisphere follow by Schwarz reflection across the edge their quadrant
maps to.

F is evaluated by the power series

    F(φ, k) = Σ_n |C(-1/2, n)| k^{2n} ∫₀^φ sin^{2n} t dt,

with both the binomial coefficient and the integral advanced by
recurrences from the previous term. 100 terms are summed; where the series
cannot represent the point (non-finite or |z| > 10) the result is clamped
to z = 0. The series ratio k² sin²φ = (1 - w²)/2 reaches 1 at w = ±i, so
points near those two vertices are evaluated through the quarter-turn
symmetry z(iw) = K + i (z(w) - K) from the sectors around w = ±1, where
the ratio stays below 1/√2.

Guyou's projection is the same map applied to two transverse hemispheres
placed side by side.

Implementation
--------------
Complex values use numpy's complex128 scalars; the inverse is a complex
Newton iteration run through the real 2-D solver via the Cauchy-Riemann
equations, started from the nearest entry of a coarse (φ, z) table built
at configure time and folded by the same quarter turns.

References
----------
- Peirce, C.S. (1879). A quincuncial projection of the sphere.
  American Journal of Mathematics 2(4).
- Lee, L.P. (1976). Conformal Projections Based on Elliptic Functions.
- Abramowitz & Stegun (1964), 17.3.
"""

from typing import Dict, Mapping, Optional, Tuple

import numpy as np
from numpy.typing import NDArray

from common.constants import NumericalConstants
from common.types import Pole
from geospatial.projections import (
    NAN_PAIR,
    Category,
    ProjectionDescriptor,
    ProjectionFamily,
    ProjectionState,
    Property,
    TopologyFlag,
    register_projection,
)
from geospatial.rotation import obliquify, deobliquify
from numerical_analysis import newton_raphson_2d

SERIES_TERMS = int(NumericalConstants.ELLIPTIC_SERIES_TERMS.value)
MODULUS_SQUARED = NumericalConstants.ELLIPTIC_MODULUS_SQUARED.value
SANITY_BOUND = NumericalConstants.SERIES_SANITY_BOUND.value
INVERSE_TOLERANCE = NumericalConstants.INVERSE_TOLERANCE.value


def complete_elliptic_k(modulus_squared: float) -> float:
    """Complete elliptic integral K(k) by the arithmetic-geometric mean."""
    a, b = 1.0, np.sqrt(1.0 - modulus_squared)
    for _ in range(32):
        if abs(a - b) <= 1e-16 * a:
            break
        a, b = (a + b) / 2, np.sqrt(a * b)
    return np.pi / (2 * a)


K = complete_elliptic_k(MODULUS_SQUARED)


def elliptic_f(phi: complex) -> complex:
    """Incomplete elliptic integral F(φ, k), k² = 1/2, for complex φ.

    Parameters
    ----------
    phi : complex
        Amplitude.

    Returns
    -------
    complex
        Partial sum of the first ``SERIES_TERMS`` terms.
    """
    phi = np.complex128(phi)
    sin_phi = np.sin(phi)
    cos_phi = np.cos(phi)
    sin_squared = sin_phi * sin_phi

    integral = phi        # ∫ sin^{2n} t dt for n = 0
    power = sin_phi       # sin^{2n-1} φ for n = 1
    coefficient = 1.0     # |C(-1/2, n)| k^{2n}
    total = phi

    for n in range(1, SERIES_TERMS):
        integral = integral * (2*n - 1) / (2*n) - cos_phi * power / (2*n)
        power = power * sin_squared
        coefficient *= (2*n - 1) / (2*n) * MODULUS_SQUARED
        total = total + coefficient * integral

    return total


def elliptic_f_derivative(phi: complex) -> complex:
    """dF/dφ = (1 - k² sin²φ)^(-1/2)."""
    return 1 / np.sqrt(1 - MODULUS_SQUARED * np.sin(np.complex128(phi))**2)


# Reflections of the diamond across each of its edges. Index by the
# quadrant of w (0: 0 ≤ arg w ≤ π/2, counting counter-clockwise).
_REFLECTIONS = (
    lambda z: -1j * np.conj(z),
    lambda z: 2*K + 1j * np.conj(z - 2*K),
    lambda z: 2*K - 1j * np.conj(z - 2*K),
    lambda z: 1j * np.conj(z),
)


def _quadrant(angle: float) -> int:
    if 0 <= angle <= np.pi/2:
        return 0
    if angle > np.pi/2:
        return 1
    if angle < -np.pi/2:
        return 2
    return 3


def _diamond_z(w: complex) -> complex:
    """Series image of a point of the closed unit disc.

    Near w = ±i the series ratio k² sin²φ approaches 1 and 100 terms fall
    short, so those points are turned a quarter towards w = ±1 and the
    image turned back about the diamond centre, z(iw) = K + i (z(w) - K).
    """
    if abs(w.imag) <= abs(w.real):
        return elliptic_f(np.arccos(w))
    if w.imag > 0:
        return K + 1j * (elliptic_f(np.arccos(-1j * w)) - K)
    return K - 1j * (elliptic_f(np.arccos(1j * w)) - K)


def quincuncial_z(lat: float, lon: float) -> complex:
    """Series-space image z of a point; the diamond has vertices 0, K∓iK, 2K."""
    w_magnitude = np.tan(lat/2 + np.pi/4)
    if w_magnitude <= 1:
        z = _diamond_z(np.complex128(w_magnitude * np.exp(1j * lon)))
    else:
        # 1/conj(w) is the mirror point in the southern hemisphere
        mirror = np.exp(1j * lon) / w_magnitude
        z = _REFLECTIONS[_quadrant(lon)](_diamond_z(np.complex128(mirror)))

    if not np.isfinite(z) or abs(z) > SANITY_BOUND:
        return 0j
    return complex(z)


def seed_tables() -> Dict[str, NDArray[np.complex128]]:
    """Coarse (φ, z = F(φ)) samples over the sectors |Im w| ≤ |Re w| of the disc.

    Returns
    -------
    dict
        ``seed_phi`` amplitudes and ``seed_z`` their series images, used to
        start the inverse Newton iteration from the nearest tabulated z.
    """
    size = int(NumericalConstants.ELLIPTIC_SEED_TABLE_SIZE.value)
    radius, angle = np.meshgrid(
        np.linspace(0.0, 1.0, size), np.linspace(-np.pi/4, np.pi/4, size)
    )
    w = (radius * np.exp(1j * angle)).ravel()
    phi = np.arccos(np.concatenate([w, -w]))
    return {"seed_phi": phi, "seed_z": elliptic_f(phi)}


def _solve_sector(z: complex, seeds: Mapping[str, NDArray]) -> Optional[complex]:
    """Amplitude φ with F(φ) = z for z in the sectors around the vertices 0 and 2K."""
    start = complex(seeds["seed_phi"][np.argmin(np.abs(seeds["seed_z"] - z))])
    cache = {}

    def value(a, b):
        key = (a, b)
        if key not in cache:
            cache.clear()
            cache[key] = elliptic_f(complex(a, b))
        return cache[key]

    def slope(a, b):
        return elliptic_f_derivative(complex(a, b))

    result = newton_raphson_2d(
        z.real, z.imag, start.real, start.imag,
        lambda a, b: value(a, b).real,
        lambda a, b: value(a, b).imag,
        lambda a, b: slope(a, b).real,
        lambda a, b: -slope(a, b).imag,
        lambda a, b: slope(a, b).imag,
        lambda a, b: slope(a, b).real,
        INVERSE_TOLERANCE,
    )
    if result is None:
        return None
    return complex(*result)


def _solve_diamond(z: complex, seeds: Mapping[str, NDArray]) -> Optional[complex]:
    """w with |w| ≤ 1 whose series image is `z`, or None."""
    offset = z - K
    if abs(offset.imag) <= abs(offset.real):
        phi, turn = _solve_sector(z, seeds), 1
    elif offset.imag < 0:
        # Near K - iK, the image of w = i
        phi, turn = _solve_sector(K - 1j * offset, seeds), 1j
    else:
        phi, turn = _solve_sector(K + 1j * offset, seeds), -1j
    if phi is None:
        return None
    return complex(turn * np.cos(phi))


def quincuncial_inverse_z(z: complex, seeds: Mapping[str, NDArray]) -> Tuple[float, float]:
    """(lat, lon) of a series-space point inside the enclosing square."""
    x, y = K - z.real, z.imag
    if max(abs(x), abs(y)) > K * (1 + 1e-12):
        return NAN_PAIR

    if abs(x) + abs(y) <= K:
        w = _solve_diamond(z, seeds)
        if w is None:
            return NAN_PAIR
        return 2 * np.arctan(abs(w)) - np.pi/2, np.angle(w)

    # Corner triangle: reflect into the diamond and mirror the latitude
    if x >= 0:
        quadrant = 0 if y <= 0 else 3
    else:
        quadrant = 1 if y <= 0 else 2
    w = _solve_diamond(complex(_REFLECTIONS[quadrant](z)), seeds)
    if w is None:
        return NAN_PAIR
    return np.pi/2 - 2 * np.arctan(abs(w)), np.angle(w)


# =============================================================================
# Peirce quincuncial
# =============================================================================

def _configure_quincuncial(values: Tuple[float, ...]) -> ProjectionState:
    return ProjectionState(width=2 * K, height=2 * K, tables=seed_tables())


def _project_quincuncial(state, lat, lon):
    z = quincuncial_z(lat, lon)
    return K - z.real, z.imag


def _inverse_quincuncial(state, x, y):
    return quincuncial_inverse_z(complex(K - x, y), state.tables)


PIERCE_QUINCUNCIAL = register_projection(ProjectionFamily(
    descriptor=ProjectionDescriptor(
        key="pierce_quincuncial",
        name="Pierce Quincuncial",
        description="A conformal map that tessellates as a square",
        width=2 * K,
        height=2 * K,
        flags=TopologyFlag.POLE_SINGULARITY,
        category=Category.OTHER,
        property=Property.CONFORMAL,
    ),
    configure=_configure_quincuncial,
    project=_project_quincuncial,
    inverse=_inverse_quincuncial,
))


# =============================================================================
# Guyou
# =============================================================================
#
# Each hemisphere is turned so its centre (on the equator at ∓90°) becomes
# the oblique south pole, projected onto the quincuncial diamond, and the
# diamond rotated by 45° into a square of side √2 K.

GUYOU_SIDE = np.sqrt(2) * K
_WEST_POLE = Pole(latitude=0.0, longitude=np.pi/2, twist=-np.pi/4)
_EAST_POLE = Pole(latitude=0.0, longitude=-np.pi/2, twist=-np.pi/4)


def _configure_guyou(values: Tuple[float, ...]) -> ProjectionState:
    return ProjectionState(width=2 * GUYOU_SIDE, height=GUYOU_SIDE, tables=seed_tables())


def _project_guyou(state, lat, lon):
    west = lon <= 0
    pole = _WEST_POLE if west else _EAST_POLE
    lat1, lon1 = obliquify(pole, (lat, lon))
    z = quincuncial_z(lat1, lon1)
    x, y = K - z.real, z.imag
    offset = -GUYOU_SIDE / 2 if west else GUYOU_SIDE / 2
    return (x + y) / np.sqrt(2) + offset, (y - x) / np.sqrt(2)


def _inverse_guyou(state, x, y):
    if abs(x) > GUYOU_SIDE or abs(y) > GUYOU_SIDE / 2:
        return NAN_PAIR
    west = x <= 0
    u = x + GUYOU_SIDE / 2 if west else x - GUYOU_SIDE / 2
    local_x = (u - y) / np.sqrt(2)
    local_y = (u + y) / np.sqrt(2)
    if abs(local_x) + abs(local_y) > K * (1 + 1e-12):
        return NAN_PAIR

    lat1, lon1 = quincuncial_inverse_z(complex(K - local_x, local_y), state.tables)
    if not np.isfinite(lat1):
        return NAN_PAIR
    return deobliquify(_WEST_POLE if west else _EAST_POLE, (lat1, lon1))


GUYOU = register_projection(ProjectionFamily(
    descriptor=ProjectionDescriptor(
        key="guyou",
        name="Guyou",
        description="A conformal map of two square hemispheres",
        width=2 * GUYOU_SIDE,
        height=GUYOU_SIDE,
        flags=TopologyFlag.POLE_SINGULARITY,
        category=Category.OTHER,
        property=Property.CONFORMAL,
    ),
    configure=_configure_guyou,
    project=_project_guyou,
    inverse=_inverse_guyou,
))
