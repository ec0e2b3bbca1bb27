"""
Numerical Analysis Kernel.

Projection-agnostic primitives used by the projection families:
- Composite Simpson integration and cumulative (ODE) integration
- Bounded 1-D and 2-D Newton-Raphson root finding
- Aitken-Neville and linear interpolation

Nothing in this package knows about cartography.
"""

from numerical_analysis.quadrature import simpson_integrate, simpson_ode_solve
from numerical_analysis.root_finding import newton_raphson_1d, newton_raphson_2d
from numerical_analysis.interpolation import aitken_interpolate, linear_interpolate

__all__ = [
    "simpson_integrate",
    "simpson_ode_solve",
    "newton_raphson_1d",
    "newton_raphson_2d",
    "aitken_interpolate",
    "linear_interpolate",
]
