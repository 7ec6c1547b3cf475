"""
Phase algebra on GridLAB-D phase strings.

A phase string holds some of the primary phases "A", "B", "C" in that order,
optionally followed by markers: "N" (wye/neutral), "D" (delta) or "S"
(split-phase secondary). CIM secondary phase codes (s1, s2, s12) use a
lower-case "s".
"""
from __future__ import annotations

from typing import Iterable

from .enums import PhaseCode, SinglePhaseKind

__all__ = [
    "PRIMARY_PHASES",
    "DEFAULT_PHASES",
    "parse_phase_code",
    "merge_phases",
    "count_primary_phases",
    "shunt_suffix",
    "wire_phases",
    "has_secondary"
]


PRIMARY_PHASES = "ABC"
DEFAULT_PHASES = "ABC"


def parse_phase_code(uri: str | None) -> str:
    """
    Returns the phase letters of a CIM `PhaseCode` enumeration value, e.g.
    "ABCN" or "s12N". Absent or unrecognised codes default to "ABC".
    """
    code = PhaseCode.parse(uri)
    if code == PhaseCode.UNKNOWN:
        return DEFAULT_PHASES
    return code.value


def merge_phases(a: str, b: str) -> str:
    """Union of the primary phases in `a` and `b`, in A, B, C order."""
    return "".join(p for p in PRIMARY_PHASES if p in a or p in b)


def count_primary_phases(phs: str) -> int:
    """Number of primary phases in `phs` (1..3); 3 if there are none."""
    n = sum(1 for p in PRIMARY_PHASES if p in phs)
    return n if n > 0 else 3


def shunt_suffix(phs: str, is_delta: bool) -> str:
    """
    Append the connection marker for a shunt (load or capacitor): "D" for a
    delta connection, otherwise "N" unless a marker is already present.
    """
    if is_delta:
        return phs if "D" in phs else phs + "D"
    if "D" in phs or "N" in phs:
        return phs
    return phs + "N"


def has_secondary(phs: str) -> bool:
    return "s" in phs or "S" in phs


def wire_phases(kinds: Iterable[SinglePhaseKind]) -> str:
    """
    Accumulate the individual phases of a piece of equipment.

    Parameters
    ----------
    kinds:
        The `SinglePhaseKind` of every phase sub-object found on the
        equipment, in any order.

    Returns
    -------
    str
        "ABC" if no phase sub-objects were found. Otherwise the primary
        phases present, followed by "S" if a secondary phase (s1 or s2) is
        present.
    """
    kinds = list(kinds)
    if not kinds:
        return DEFAULT_PHASES
    found = {k.value for k in kinds}
    phs = "".join(p for p in PRIMARY_PHASES if p in found)
    if SinglePhaseKind.s1 in kinds or SinglePhaseKind.s2 in kinds:
        phs += "S"
    return phs
