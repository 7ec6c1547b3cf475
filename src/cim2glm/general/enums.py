"""
Closed enumerations for the CIM enumeration types the translator reads.

CIM serialises enumeration values as resources, e.g.
``http://iec.ch/TC57/2012/CIM-schema-cim16#PhaseCode.ABCN``. Each enum below
has a single `parse` classmethod that accepts such a URI (or the bare literal)
and returns the `UNKNOWN` member for anything it does not recognise.
"""
from __future__ import annotations

from enum import StrEnum

__all__ = [
    "PhaseCode",
    "SinglePhaseKind",
    "WindingConnection",
    "PhaseShuntConnectionKind",
    "RegulatingControlModeKind",
    "enum_literal"
]


def enum_literal(uri: str, type_name: str) -> str:
    """Strip the namespace and the `<type_name>.` prefix from an enum URI."""
    s = str(uri).strip()
    if "#" in s:
        s = s.rsplit("#", 1)[1]
    prefix = type_name + "."
    idx = s.rfind(prefix)
    if idx >= 0:
        s = s[idx + len(prefix):]
    return s


class _CIMEnum(StrEnum):

    @classmethod
    def parse(cls, uri: str | None):
        if uri is None:
            return cls.UNKNOWN
        literal = enum_literal(uri, cls.__name__)
        try:
            return cls(literal)
        except ValueError:
            return cls.UNKNOWN


class PhaseCode(_CIMEnum):
    ABCN = "ABCN"
    ABC = "ABC"
    ABN = "ABN"
    ACN = "ACN"
    BCN = "BCN"
    AB = "AB"
    AC = "AC"
    BC = "BC"
    AN = "AN"
    BN = "BN"
    CN = "CN"
    A = "A"
    B = "B"
    C = "C"
    N = "N"
    s1N = "s1N"
    s2N = "s2N"
    s12N = "s12N"
    s1 = "s1"
    s2 = "s2"
    s12 = "s12"
    UNKNOWN = "unknown"

    @property
    def is_secondary(self) -> bool:
        return self.value.startswith("s")


class SinglePhaseKind(_CIMEnum):
    A = "A"
    B = "B"
    C = "C"
    N = "N"
    s1 = "s1"
    s2 = "s2"
    UNKNOWN = "unknown"

    @property
    def is_secondary(self) -> bool:
        return self in (SinglePhaseKind.s1, SinglePhaseKind.s2)

    @property
    def is_phase(self) -> bool:
        """True for conductors that carry a phase (A, B, C, s1, s2)."""
        return self not in (SinglePhaseKind.N, SinglePhaseKind.UNKNOWN)


class WindingConnection(_CIMEnum):
    """
    Transformer winding connection kinds.

    D: delta, Y: wye, Z: zig-zag, Yn: grounded wye, Zn: grounded zig-zag,
    A: autotransformer, I: single-phase.
    """
    D = "D"
    Y = "Y"
    Z = "Z"
    Yn = "Yn"
    Zn = "Zn"
    A = "A"
    I = "I"
    UNKNOWN = "unknown"


class PhaseShuntConnectionKind(_CIMEnum):
    D = "D"
    Y = "Y"
    Yn = "Yn"
    I = "I"
    G = "G"
    UNKNOWN = "unknown"

    @property
    def is_delta(self) -> bool:
        return self == PhaseShuntConnectionKind.D


class RegulatingControlModeKind(_CIMEnum):
    voltage = "voltage"
    activePower = "activePower"
    reactivePower = "reactivePower"
    currentFlow = "currentFlow"
    admittance = "admittance"
    timeScheduled = "timeScheduled"
    temperature = "temperature"
    powerFactor = "powerFactor"
    userDefined = "userDefined"
    UNKNOWN = "unknown"
