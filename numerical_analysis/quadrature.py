"""
Composite Simpson Quadrature and Cumulative Integration.

Scientific Context
------------------
Table-driven projections describe their vertical coordinate through an
integral of the parallel length. Building the remapping table therefore
needs a definite integral (for normalisation) and a running integral
sampled at evenly spaced rows. Both are computed with the composite
Simpson rule on a fixed step.

Notes
-----
Integrands are evaluated on numpy arrays, so `f` must be a ufunc-style
callable (``np.sin``, a lambda built from numpy operations, ...).

References
----------
- Burden & Faires, Numerical Analysis, 9th ed., §4.4.
"""

from typing import Callable

import numpy as np
from numpy.typing import NDArray

from common.logging_config import get_logger

logger = get_logger(__name__)

Integrand = Callable[[NDArray[np.float64]], NDArray[np.float64]]


def _simpson_panels(
    left: NDArray[np.float64],
    right: NDArray[np.float64],
    f: Integrand
) -> NDArray[np.float64]:
    """Simpson estimate over each [left, right] panel."""
    width = right - left
    return width / 6 * (f(left) + 4 * f((left + right) / 2) + f(right))


def simpson_integrate(a: float, b: float, f: Integrand, step: float) -> float:
    """Definite integral of `f` from `a` to `b` by composite Simpson's rule.

    Parameters
    ----------
    a, b : float
        Integration bounds, ``b > a``.
    f : callable
        Integrand, evaluated on arrays of abscissae.
    step : float
        Panel width. The last panel is shrunk so it ends exactly at `b`.

    Returns
    -------
    float
        The integral estimate. No error estimate is produced.

    Raises
    ------
    ValueError
        If ``b <= a`` or ``step <= 0``.
    """
    if not b > a:
        raise ValueError(f"Upper bound {b} must exceed lower bound {a}")
    if not step > 0:
        raise ValueError(f"Step must be positive, got {step}")

    num_panels = int(np.ceil((b - a) / step))
    left = a + step * np.arange(num_panels, dtype=np.float64)
    right = np.minimum(left + step, b)
    right[-1] = b

    return float(np.sum(_simpson_panels(left, right, f)))


def simpson_ode_solve(T: float, n: int, f: Integrand, step: float) -> NDArray[np.float64]:
    """Cumulative integral of `f` sampled at ``0, T/n, ..., T``.

    Solves ``dy/dt = f(t)`` with ``y(0) = 0``. Each output interval
    ``[i*T/n, (i+1)*T/n]`` is marched in Simpson panels no wider than
    `step`, the last panel of each interval shrunk to land on the sample.

    Parameters
    ----------
    T : float
        End of the integration range.
    n : int
        Number of output intervals; the result has ``n + 1`` samples.
    f : callable
        Derivative, evaluated on arrays of times.
    step : float
        Maximum panel width.

    Returns
    -------
    ndarray
        Shape ``(n + 1,)``. Non-decreasing whenever ``f >= 0``.
    """
    if n < 1:
        raise ValueError(f"Need at least one interval, got n={n}")
    if not T > 0:
        raise ValueError(f"Integration range must be positive, got T={T}")
    if not step > 0:
        raise ValueError(f"Step must be positive, got {step}")

    times = T * np.arange(n + 1, dtype=np.float64) / n
    interval = T / n
    panels_per_interval = max(1, int(np.ceil(interval / step)))

    # (n, panels_per_interval + 1) knots, each row ending on its sample time
    offsets = np.minimum(np.arange(panels_per_interval + 1) * step, interval)
    knots = times[:-1, None] + offsets[None, :]
    knots[:, -1] = times[1:]

    increments = _simpson_panels(knots[:, :-1], knots[:, 1:], f).sum(axis=1)

    y = np.empty(n + 1, dtype=np.float64)
    y[0] = 0.0
    np.cumsum(increments, out=y[1:])

    logger.debug(f"Integrated {n} intervals with {panels_per_interval} panel(s) each")
    return y
