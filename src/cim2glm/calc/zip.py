"""
ZIP load model fractions.

A load is split into constant-impedance (Z), constant-current (I) and
constant-power (P) parts. CIM gives either the three percentages or only a
voltage exponent of an exponential load model.
"""
from __future__ import annotations

from enum import IntEnum

__all__ = ["ZIP", "zip_fractions", "normalize_zip"]


class ZIP(IntEnum):
    """Position of each load category in a load tensor."""
    Z = 0
    I = 1
    P = 2


def normalize_zip(z: float, i: float, p: float) -> tuple[float, float, float]:
    """Scale (z, i, p) so they sum to one."""
    total = z + i + p
    if total == 0.0:
        raise ValueError("ZIP coefficients must not all be zero")
    return z / total, i / total, p / total


def zip_fractions(
    exponent: float,
    z: float,
    i: float,
    p: float
) -> tuple[float, float, float]:
    """
    Returns the (Z, I, P) fractions of one channel (real or reactive) of a
    load.

    Parameters
    ----------
    exponent:
        Voltage exponent of the exponential load model. Only used when the
        percentages do not sum to a positive value.
    z, i, p:
        Constant-impedance, constant-current and constant-power percentages.

    Returns
    -------
    tuple[float, float, float]
        The fractions sum to one. Without usable percentages, the exponent
        selects one category: around 1 (0.9 to 1.1, exclusive) is constant
        current, around 2 (1.9 to 2.1) is constant impedance, anything else
        is constant power.
    """
    if z + i + p > 0.0:
        return normalize_zip(z, i, p)
    if 0.9 < exponent < 1.1:
        return 0.0, 1.0, 0.0
    if 1.9 < exponent < 2.1:
        return 1.0, 0.0, 0.0
    return 0.0, 0.0, 1.0
