from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterator
import logging

import numpy as np
import numpy.typing as npt

from ..calc.zip import ZIP
from ..exceptions import UnknownBusError
from ..general.phases import PRIMARY_PHASES, merge_phases

__all__ = ["BusAccumulator", "BusRegistry", "P", "Q"]

logger = logging.getLogger(__name__)

# Channels of the load tensor.
P = 0
Q = 1


@dataclass(slots=True)
class BusAccumulator:
    """
    A bus (CIM ConnectivityNode) in the network, with everything the
    equipment passes learn about it.

    Attributes
    ----------
    name:
        GridLAB-D name of the bus (with the `nd_` prefix).
    phases:
        Primary phases present, a subset of "ABC" in that order. Only grows.
    nominal_voltage:
        Nominal line-to-neutral voltage; -1 until some pass sets it. The last
        pass that touches the bus wins.
    delta, secondary, swing:
        Flags that are only ever switched on. If `secondary` is set, the
        phase A and B rows of the load tensor hold the s1 and s2 legs of a
        split-phase secondary fed from the primary phase in `phases`.
    load:
        Load tensor of shape (3, 3, 2), indexed by phase (A, B, C), load
        category (see `ZIP`) and channel (`P` real, `Q` reactive), in W and
        var.
    """
    name: str

    phases: str = field(init=False, default="")
    nominal_voltage: float = field(init=False, default=-1.0)
    delta: bool = field(init=False, default=False)
    secondary: bool = field(init=False, default=False)
    swing: bool = field(init=False, default=False)
    load: npt.NDArray[np.float64] = field(init=False)

    def __post_init__(self):
        self.load = np.zeros((len(PRIMARY_PHASES), len(ZIP), 2))

    def add_phases(self, phs: str) -> None:
        """
        Merge the primary phases of `phs` into the bus. A lower- or upper-case
        "s" marks the bus as a secondary, a "D" marks it delta-connected.
        """
        self.phases = merge_phases(self.phases, phs)
        if "s" in phs or "S" in phs:
            self.secondary = True
        if "D" in phs:
            self.delta = True

    def mark_delta(self) -> None:
        self.delta = True

    def mark_swing(self) -> None:
        self.swing = True

    def set_nominal_voltage(self, v_ln: float) -> None:
        if self.nominal_voltage > 0.0 and not np.isclose(self.nominal_voltage, v_ln):
            logger.debug(
                f"{self.name}: nominal voltage {self.nominal_voltage:.6g} V "
                f"overwritten with {v_ln:.6g} V"
            )
        self.nominal_voltage = v_ln

    @property
    def gld_phases(self) -> str:
        """Phases with exactly one connection suffix: D, S or N."""
        if self.delta and not self.secondary:
            return self.phases + "D"
        if self.secondary:
            return self.phases + "S"
        return self.phases + "N"

    def has_load(self) -> bool:
        return bool(np.any(self.load != 0.0))

    def phase_power(self, phase: int) -> complex:
        """Total complex power on `phase` (0, 1 or 2) over all categories."""
        p, q = self.load[phase].sum(axis=0)
        return complex(p, q)

    def category_power(self, phase: int, category: ZIP) -> complex:
        p, q = self.load[phase, category]
        return complex(p, q)


class BusRegistry:
    """
    Aggregate root of the bus state of one translation run. Busses are created
    once, in the topology discovery pass, and never removed.
    """

    def __init__(self) -> None:
        self._busses: dict[str, BusAccumulator] = {}

    @property
    def busses(self) -> dict[str, BusAccumulator]:
        return self._busses

    def get_or_create_bus(self, bus_id: str) -> BusAccumulator:
        if not bus_id:
            raise ValueError("bus_id must be a non-empty string.")
        bus = self._busses.get(bus_id)
        if bus is None:
            bus = BusAccumulator(bus_id)
            self._busses[bus_id] = bus
        return bus

    def get_bus(self, bus_id: str) -> BusAccumulator:
        bus = self._busses.get(bus_id)
        if bus is None:
            raise UnknownBusError(f"Bus '{bus_id}' not found.")
        return bus

    @property
    def swing_bus(self) -> BusAccumulator | None:
        for bus in self._busses.values():
            if bus.swing:
                return bus
        return None

    def __contains__(self, bus_id: str) -> bool:
        return bus_id in self._busses

    def __iter__(self) -> Iterator[BusAccumulator]:
        return iter(self._busses.values())

    def __len__(self) -> int:
        return len(self._busses)
