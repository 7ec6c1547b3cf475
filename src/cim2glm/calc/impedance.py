"""
Phase impedance and capacitance matrices of line configurations.

CIM stores the phase impedance of a line code as the lower triangle of a
symmetric n x n matrix, one `PhaseImpedanceData` entry per element with a
1-based sequence number. GridLAB-D expects a full set of `zij` / `cij`
values (in ohm/mile and nF/mile) and names the phase combination a line
configuration applies to explicitly, so one CIM line code can turn into
several `LineConfiguration` records.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable
import math

import numpy as np
import numpy.typing as npt

from ..pint_setup import METRES_PER_MILE

__all__ = [
    "LEGACY_ADMITTANCE_CONSTANT",
    "triangle_size",
    "matrix_index",
    "matrix_position",
    "PhaseImpedanceData",
    "ImpedanceMatrix",
    "LineConfiguration",
    "line_config_name",
    "triplex_config_name",
    "susceptance_to_capacitance",
    "assemble_phase_impedance",
    "build_line_configurations",
    "sequence_to_phase",
    "sequence_line_configurations",
]


# 2 * pi * 60 Hz rounded, used for CIM PerLengthPhaseImpedance data.
LEGACY_ADMITTANCE_CONSTANT = 377.0

# Phase combinations and the 1-based GridLAB-D matrix indices they occupy.
_SINGLE_PHASES = (("A", 1), ("B", 2), ("C", 3))
_PHASE_PAIRS = (("AB", 1, 2), ("BC", 2, 3), ("AC", 1, 3))


def triangle_size(n: int) -> int:
    """Number of elements in the lower triangle of an n x n matrix."""
    return n * (n + 1) // 2


def matrix_index(n: int, row: int, col: int) -> int:
    """
    Returns the 0-based position of element (`row`, `col`) of the lower
    triangle of an `n` x `n` symmetric matrix. The CIM sequence number of the
    element is the returned index + 1.

    Elements are enumerated row after row:
    (0,0) -> 0, (1,0) -> 1, (1,1) -> 2, (2,0) -> 3, (2,1) -> 4, (2,2) -> 5.
    If `col` > `row`, the mirrored element is meant.
    """
    if col > row:
        row, col = col, row
    if not (0 <= col <= row < n):
        raise IndexError(f"element ({row}, {col}) is outside a {n}x{n} matrix")
    return row * (row + 1) // 2 + col


def matrix_position(n: int, idx: int) -> tuple[int, int]:
    """Inverse of `matrix_index`: returns (row, col) with row >= col."""
    if not (0 <= idx < triangle_size(n)):
        raise IndexError(f"index {idx} is outside the triangle of a {n}x{n} matrix")
    row = 0
    while (row + 1) * (row + 2) // 2 <= idx:
        row += 1
    return row, idx - row * (row + 1) // 2


def susceptance_to_capacitance(b: float, frequency: float | None = None) -> float:
    """
    Converts susceptance (S) to capacitance in nF. Without a `frequency` the
    legacy 377 rad/s constant is used.
    """
    if frequency is None:
        return b * 1.0e9 / LEGACY_ADMITTANCE_CONSTANT
    return b * 1.0e9 / (2.0 * math.pi * frequency)


@dataclass(frozen=True)
class PhaseImpedanceData:
    """One element of a CIM per-length phase impedance (SI units per metre)."""
    sequence_number: int
    r: float = 0.0
    x: float = 0.0
    b: float = 0.0


@dataclass
class ImpedanceMatrix:
    """
    Triangular array of resistance, reactance (ohm/mile) and capacitance
    (nF/mile) entries of an n-conductor bundle.
    """
    n: int
    r: npt.NDArray[np.float64] = field(init=False)
    x: npt.NDArray[np.float64] = field(init=False)
    c: npt.NDArray[np.float64] = field(init=False)

    def __post_init__(self):
        if self.n not in (1, 2, 3):
            raise ValueError(f"conductor count must be 1, 2 or 3, not {self.n}")
        size = triangle_size(self.n)
        self.r = np.zeros(size)
        self.x = np.zeros(size)
        self.c = np.zeros(size)

    def set(self, row: int, col: int, r: float, x: float, c: float) -> None:
        idx = matrix_index(self.n, row, col)
        self.r[idx] = r
        self.x[idx] = x
        self.c[idx] = c

    def z(self, row: int, col: int) -> complex:
        idx = matrix_index(self.n, row, col)
        return complex(self.r[idx], self.x[idx])

    def cap(self, row: int, col: int) -> float:
        return float(self.c[matrix_index(self.n, row, col)])

    def dense_z(self) -> npt.NDArray[np.complex128]:
        """Full symmetric n x n impedance matrix."""
        Z = np.zeros((self.n, self.n), dtype=complex)
        for i in range(self.n):
            for j in range(self.n):
                Z[i, j] = self.z(i, j)
        return Z


@dataclass
class LineConfiguration:
    """
    A GridLAB-D `line_configuration` (or `triplex_line_configuration`).

    `z` and `c` map 1-based (i, j) GridLAB-D indices to impedance in ohm/mile
    and capacitance in nF/mile, in the order they are written. Triplex
    configurations carry no capacitance.
    """
    name: str
    phases: str
    z: dict[tuple[int, int], complex] = field(default_factory=dict)
    c: dict[tuple[int, int], float] = field(default_factory=dict)
    triplex: bool = False


def line_config_name(root: str, phases: str) -> str:
    return f"lcon_{root}_{phases}"


def triplex_config_name(root: str) -> str:
    return f"tcon_{root}"


def assemble_phase_impedance(
    n: int,
    data: Iterable[PhaseImpedanceData],
    frequency: float | None = None
) -> ImpedanceMatrix:
    """
    Assemble the triangular matrix of a CIM `PerLengthPhaseImpedance`.

    Parameters
    ----------
    n:
        `PerLengthPhaseImpedance.conductorCount`.
    data:
        The sparse `PhaseImpedanceData` entries; missing elements stay zero.
    frequency:
        If given, susceptance is converted to capacitance at this frequency
        instead of with the legacy 377 rad/s constant.

    Returns
    -------
    ImpedanceMatrix
        r and x in ohm/mile, c in nF/mile.
    """
    matrix = ImpedanceMatrix(n)
    for d in data:
        row, col = matrix_position(n, d.sequence_number - 1)
        matrix.set(
            row, col,
            r=METRES_PER_MILE * d.r,
            x=METRES_PER_MILE * d.x,
            c=METRES_PER_MILE * susceptance_to_capacitance(d.b, frequency)
        )
    return matrix


def _pair_configuration(
    name: str,
    phases: str,
    i: int,
    j: int,
    z_self: tuple[complex, complex],
    z_mutual: complex,
    c_self: tuple[float, float],
    c_mutual: float
) -> LineConfiguration:
    lc = LineConfiguration(name=name, phases=phases)
    lc.z[(i, i)] = z_self[0]
    lc.c[(i, i)] = c_self[0]
    lc.z[(i, j)] = z_mutual
    lc.c[(i, j)] = c_mutual
    lc.z[(j, i)] = z_mutual
    lc.c[(j, i)] = c_mutual
    lc.z[(j, j)] = z_self[1]
    lc.c[(j, j)] = c_self[1]
    return lc


def build_line_configurations(
    root: str,
    matrix: ImpedanceMatrix,
    want_secondary: bool = True
) -> list[LineConfiguration]:
    """
    Shape an assembled matrix into the GridLAB-D line configurations.

    - 1 conductor: three single-phase variants `_A`, `_B` and `_C`.
    - 2 conductors and "triplex" in the name: one triplex configuration
      (nothing if secondaries are not wanted).
    - 2 conductors otherwise: the variants `_AB`, `_BC` and `_AC`.
    - 3 conductors: one `_ABC` variant.
    """
    configs: list[LineConfiguration] = []
    n = matrix.n
    if n == 1:
        for phs, k in _SINGLE_PHASES:
            lc = LineConfiguration(name=line_config_name(root, phs), phases=phs)
            lc.z[(k, k)] = matrix.z(0, 0)
            lc.c[(k, k)] = matrix.cap(0, 0)
            configs.append(lc)
    elif n == 2 and "triplex" in root:
        if want_secondary:
            lc = LineConfiguration(
                name=triplex_config_name(root),
                phases="S",
                triplex=True
            )
            lc.z[(1, 1)] = matrix.z(0, 0)
            lc.z[(1, 2)] = matrix.z(1, 0)
            lc.z[(2, 1)] = matrix.z(1, 0)
            lc.z[(2, 2)] = matrix.z(1, 1)
            configs.append(lc)
    elif n == 2:
        for phs, i, j in _PHASE_PAIRS:
            configs.append(_pair_configuration(
                line_config_name(root, phs), phs, i, j,
                z_self=(matrix.z(0, 0), matrix.z(1, 1)),
                z_mutual=matrix.z(1, 0),
                c_self=(matrix.cap(0, 0), matrix.cap(1, 1)),
                c_mutual=matrix.cap(1, 0)
            ))
    else:
        lc = LineConfiguration(name=line_config_name(root, "ABC"), phases="ABC")
        for row in range(3):
            for col in range(row + 1):
                lc.z[(row + 1, col + 1)] = matrix.z(row, col)
                lc.c[(row + 1, col + 1)] = matrix.cap(row, col)
                if row != col:
                    lc.z[(col + 1, row + 1)] = matrix.z(row, col)
                    lc.c[(col + 1, row + 1)] = matrix.cap(row, col)
        configs.append(lc)
    return configs


def sequence_to_phase(zero: complex | float, positive: complex | float):
    """
    Returns the (self, mutual) phase-domain terms of a balanced line from its
    zero- and positive-sequence values: ((Z0 + 2 Z1) / 3, (Z0 - Z1) / 3).
    Works for impedance as well as capacitance.
    """
    return (zero + 2.0 * positive) / 3.0, (zero - positive) / 3.0


def sequence_line_configurations(
    root: str,
    r1: float, x1: float, c1: float,
    r0: float, x0: float, c0: float
) -> list[LineConfiguration]:
    """
    Build all seven phase variants (ABC, AB, AC, BC, A, B, C) of a balanced
    line from sequence data in ohm/mile and nF/mile. All variants are needed
    because the phases that refer to the line code are unknown up front.
    """
    zs, zm = sequence_to_phase(complex(r0, x0), complex(r1, x1))
    cs, cm = sequence_to_phase(c0, c1)

    abc = LineConfiguration(name=line_config_name(root, "ABC"), phases="ABC")
    for i in range(1, 4):
        for j in range(1, 4):
            abc.z[(i, j)] = zs if i == j else zm
            abc.c[(i, j)] = cs if i == j else cm
    configs = [abc]

    for phs, i, j in (("AB", 1, 2), ("AC", 1, 3), ("BC", 2, 3)):
        configs.append(_pair_configuration(
            line_config_name(root, phs), phs, i, j,
            z_self=(zs, zs), z_mutual=zm, c_self=(cs, cs), c_mutual=cm
        ))

    for phs, k in _SINGLE_PHASES:
        lc = LineConfiguration(name=line_config_name(root, phs), phases=phs)
        lc.z[(k, k)] = zs
        lc.c[(k, k)] = cs
        configs.append(lc)
    return configs
