"""
Unit Handling for Projection Parameters.

This module provides a centralized unit registry using the `pint` library.
Projection parameters are declared with a unit ("degree" for standard
parallels, "dimensionless" for shape coefficients); callers may pass
either bare numbers in the declared unit or `pint` quantities, which are
converted before range validation.

Example Usage
-------------
>>> from common.units import Q_, magnitude_in
>>> magnitude_in(Q_(0.5, 'radian'), 'degree')
28.64788975654116
"""

from typing import Union

import pint
from pint import UnitRegistry as PintUnitRegistry

# Create the global unit registry
ureg = PintUnitRegistry()

# Convenience alias for creating quantities
Q_ = ureg.Quantity

ParameterValue = Union[float, int, pint.Quantity]


def magnitude_in(value: ParameterValue, unit: str) -> float:
    """Express a value as a bare float in the given unit.

    Parameters
    ----------
    value : float or pint.Quantity
        A bare number (assumed to already be in `unit`) or a quantity.
    unit : str
        The target unit string (e.g., 'degree', 'dimensionless').

    Returns
    -------
    float
        The magnitude of `value` in `unit`.

    Raises
    ------
    ValueError
        If `value` is a quantity whose units are incompatible with `unit`.
    """
    if isinstance(value, pint.Quantity):
        try:
            return float(value.to(unit).magnitude)
        except pint.DimensionalityError as e:
            raise ValueError(
                f"Incompatible units: expected {unit}, got {value.units}"
            ) from e
    return float(value)


def to_radians(value: float, unit: str) -> float:
    """Convert an angle in `unit` to radians.

    Dimensionless values are returned unchanged.
    """
    if unit == "dimensionless":
        return float(value)
    return float(Q_(value, unit).to("radian").magnitude)
