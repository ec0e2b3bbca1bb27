"""
Polynomial and Linear Interpolation on Lookup Tables.

Notes
-----
`aitken_interpolate` has no extrapolation guard: callers pick the table
slice so that `x` lies inside (or very near) it.
"""

from typing import Optional

import numpy as np
from numpy.typing import NDArray


def aitken_interpolate(
    x: float,
    X: NDArray[np.float64],
    f: NDArray[np.float64],
    start: int = 0,
    stop: Optional[int] = None
) -> float:
    """Estimate f(x) by Aitken-Neville successive interpolation.

    Parameters
    ----------
    x : float
        Abscissa to evaluate at.
    X : ndarray
        Sorted table abscissae.
    f : ndarray
        Table values, same length as `X`.
    start, stop : int, optional
        Restrict the interpolating polynomial to the slice ``[start, stop)``.

    Returns
    -------
    float
        Value of the interpolating polynomial through the slice at `x`.
    """
    xs = np.asarray(X[start:stop], dtype=np.float64)
    p = np.array(f[start:stop], dtype=np.float64)
    n = len(xs)
    if n == 0:
        raise ValueError("Cannot interpolate on an empty table slice")

    # Row i of the Neville tableau overwrites p[i:] in place
    for i in range(1, n):
        p[i:] = (p[i - 1] * (xs[i:] - x) - p[i:] * (xs[i - 1] - x)) / (xs[i:] - xs[i - 1])

    return float(p[-1])


def linear_interpolate(x: float, x0: float, x1: float, y0: float, y1: float) -> float:
    """Map `x` from the segment [x0, x1] linearly onto [y0, y1]."""
    return (x - x0) * (y1 - y0) / (x1 - x0) + y0
