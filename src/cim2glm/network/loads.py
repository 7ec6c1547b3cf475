"""
Decomposition of equipment load into the per-phase, per-category load tensor
of a bus.
"""
from __future__ import annotations

import numpy as np

from ..calc.zip import ZIP, zip_fractions, normalize_zip
from .graph import BusAccumulator, P, Q

__all__ = ["phase_fractions", "accumulate_load", "rescale", "reapply_zip"]


def phase_fractions(phs: str) -> np.ndarray:
    """
    Share of a load taken by phase A (or s1), B (or s2) and C. A secondary
    marker "S" puts the load on both legs of the secondary, alongside any A
    or B already present; C only counts when it is named.
    """
    f = np.array([
        1.0 if ("A" in phs or "S" in phs) else 0.0,
        1.0 if ("B" in phs or "S" in phs) else 0.0,
        1.0 if "C" in phs else 0.0
    ])
    n = f.sum()
    if n > 0.0:
        f /= n
    return f


def accumulate_load(
    bus: BusAccumulator,
    phs: str,
    p: float,
    q: float,
    p_exp: float = 0.0,
    q_exp: float = 0.0,
    pz: float = 0.0,
    pi: float = 0.0,
    pp: float = 0.0,
    qz: float = 0.0,
    qi: float = 0.0,
    qp: float = 0.0
) -> None:
    """
    Adds a load of `p` + j`q` to `bus`.

    Parameters
    ----------
    bus:
        Bus the load is connected to. Its phases are merged with `phs`.
    phs:
        Phases of the load; the load is divided equally among them.
    p, q:
        Total real (W) and reactive (var) power of the load.
    p_exp, q_exp:
        Voltage exponents of real and reactive power, used when the ZIP
        percentages of a channel sum to zero.
    pz, pi, pp, qz, qi, qp:
        Constant impedance, current and power percentages of real and
        reactive power.
    """
    f_phase = phase_fractions(phs)
    f_p = np.array(zip_fractions(p_exp, pz, pi, pp))
    f_q = np.array(zip_fractions(q_exp, qz, qi, qp))
    bus.add_phases(phs)
    bus.load[:, :, P] += np.outer(f_phase, f_p) * p
    bus.load[:, :, Q] += np.outer(f_phase, f_q) * q


def rescale(bus: BusAccumulator, factor: float) -> None:
    """Multiplies every load component of `bus` by `factor`."""
    bus.load *= factor


def reapply_zip(bus: BusAccumulator, z: float, i: float, p: float) -> None:
    """
    Redistributes the total real and reactive load of each phase over the
    Z, I and P categories in proportion to (`z`, `i`, `p`). Phase totals are
    preserved; the previous split is discarded.
    """
    fractions = np.empty(len(ZIP))
    fractions[ZIP.Z], fractions[ZIP.I], fractions[ZIP.P] = normalize_zip(z, i, p)
    totals = bus.load.sum(axis=1)  # (phase, channel)
    bus.load[:] = totals[:, np.newaxis, :] * fractions[np.newaxis, :, np.newaxis]
