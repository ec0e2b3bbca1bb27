"""
Bounded Newton-Raphson Root Finding.

Projections whose forward transform is closed-form but whose inverse is
not are inverted with these solvers. Both are hard-capped at
``NumericalConstants.NEWTON_MAX_ITERATIONS`` updates and never raise on a
numeric failure: a target they cannot reach yields ``None``, which the
projection layer turns into a NaN coordinate pair.
"""

from typing import Callable, Optional, Tuple

import numpy as np

from common.constants import NumericalConstants

MAX_ITERATIONS = int(NumericalConstants.NEWTON_MAX_ITERATIONS.value)

ScalarFunction = Callable[[float], float]
VectorFunction = Callable[[float, float], float]


def newton_raphson_1d(
    target: float,
    x0: float,
    f: ScalarFunction,
    dfdx: ScalarFunction,
    tolerance: float
) -> Optional[float]:
    """Solve ``f(x) = target`` starting from `x0`.

    Parameters
    ----------
    target : float
        The value `f` should reach.
    x0 : float
        Initial guess.
    f, dfdx : callable
        Function and its derivative.
    tolerance : float
        Accepted absolute residual. A residual equal to the tolerance
        counts as converged.

    Returns
    -------
    float or None
        The root, or None if the residual still exceeds `tolerance` after
        the iteration cap, the derivative vanished, or an iterate became
        non-finite.
    """
    x = x0
    error = f(x) - target

    for _ in range(MAX_ITERATIONS):
        if not abs(error) > tolerance:
            break
        slope = dfdx(x)
        if slope == 0 or not np.isfinite(slope):
            return None
        x -= error / slope
        error = f(x) - target
        if not np.isfinite(error):
            return None

    if not np.isfinite(error) or abs(error) > tolerance:
        return None
    return x


def newton_raphson_2d(
    target_x: float,
    target_y: float,
    phi0: float,
    lam0: float,
    f1: VectorFunction,
    f2: VectorFunction,
    df1dphi: VectorFunction,
    df1dlam: VectorFunction,
    df2dphi: VectorFunction,
    df2dlam: VectorFunction,
    tolerance: float
) -> Optional[Tuple[float, float]]:
    """Solve ``(f1, f2)(phi, lam) = (target_x, target_y)``.

    Each update inverts the 2x2 Jacobian in closed form (Cramer's rule).

    Parameters
    ----------
    target_x, target_y : float
        Plane coordinates to invert.
    phi0, lam0 : float
        Initial guess.
    f1, f2 : callable
        Forward x and y as functions of ``(phi, lam)``.
    df1dphi, df1dlam, df2dphi, df2dlam : callable
        Partial derivatives of `f1` and `f2`.
    tolerance : float
        Accepted Euclidean residual.

    Returns
    -------
    tuple of float or None
        ``(phi, lam)``, or None when the residual still exceeds
        `tolerance` after the iteration cap or the Jacobian is singular.
    """
    phi = phi0
    lam = lam0
    f1mx = f1(phi, lam) - target_x
    f2my = f2(phi, lam) - target_y
    error = np.hypot(f1mx, f2my)

    for _ in range(MAX_ITERATIONS):
        if not error > tolerance:
            break
        a = df1dphi(phi, lam)
        b = df1dlam(phi, lam)
        c = df2dphi(phi, lam)
        d = df2dlam(phi, lam)
        det = a * d - c * b
        if det == 0 or not np.isfinite(det):
            return None
        phi -= (f1mx * d - f2my * b) / det
        lam -= (f2my * a - f1mx * c) / det
        f1mx = f1(phi, lam) - target_x
        f2my = f2(phi, lam) - target_y
        error = np.hypot(f1mx, f2my)
        if not np.isfinite(error):
            return None

    if not np.isfinite(error) or error > tolerance:
        return None
    return phi, lam
